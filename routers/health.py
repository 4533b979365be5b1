"""Health check router with real dependency connectivity checks."""

import asyncio
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from artwork.client import ITunesArtworkClient
from artwork.dispatcher import ArtworkDispatcher
from artwork.scheduler import VisibilityScheduler
from catalogue.store import CatalogueStore
from config.settings import Settings, get_settings
from core.dependencies import (
    get_artwork_client,
    get_catalogue_store,
    get_dispatcher,
    get_scheduler,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

CHECK_TIMEOUT = 3.0
CORE_SERVICES = {"catalogue"}


async def _check_catalogue(store: CatalogueStore) -> str:
    """Report whether the catalogue loaded."""
    return "ok" if store.loaded else "error"


async def _check_itunes_api(client: ITunesArtworkClient, settings: Settings) -> str:
    """Ping the iTunes Search API via the lookup client."""
    if not settings.enable_artwork_lookup:
        return "unavailable"
    return "ok" if await client.check_api() else "error"


async def _run_check(coro) -> str:
    """Run a single health check with a timeout."""
    try:
        return await asyncio.wait_for(coro, timeout=CHECK_TIMEOUT)
    except TimeoutError:
        return "timeout"


@router.get(
    "/health",
    summary="Health check",
    responses={
        200: {"description": "Service is healthy or degraded"},
        503: {"description": "Service is unhealthy (catalogue not loaded)"},
    },
)
async def health_check(
    settings: Settings = Depends(get_settings),
    store: CatalogueStore = Depends(get_catalogue_store),
    client: ITunesArtworkClient = Depends(get_artwork_client),
    dispatcher: ArtworkDispatcher = Depends(get_dispatcher),
    scheduler: VisibilityScheduler = Depends(get_scheduler),
):
    """Health check with connectivity probes for every dependency."""
    results = await asyncio.gather(
        _run_check(_check_catalogue(store)),
        _run_check(_check_itunes_api(client, settings)),
    )

    services = {
        "catalogue": results[0],
        "itunes_api": results[1],
    }

    core_ok = all(services[s] == "ok" for s in CORE_SERVICES)
    all_configured_ok = all(v in ("ok", "unavailable") for v in services.values())

    if core_ok and all_configured_ok:
        status = "healthy"
    elif core_ok:
        status = "degraded"
    else:
        status = "unhealthy"

    body = {
        "status": status,
        "version": settings.app_version,
        "services": services,
        "catalogue": {"songs": store.total, "error": store.load_error},
        "artwork_cache": dispatcher.stats(),
        "renders": scheduler.stats(),
    }

    status_code = 200 if status in ("healthy", "degraded") else 503
    return JSONResponse(content=body, status_code=status_code)
