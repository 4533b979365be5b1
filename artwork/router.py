"""FastAPI router for lazy artwork enrichment."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from artwork.dispatcher import ArtworkDispatcher
from artwork.models import ArtworkResponse, TriggerRequest, TriggerResponse
from artwork.scheduler import VisibilityReport, VisibilityScheduler
from config.settings import Settings, get_settings
from core.dependencies import get_dispatcher, get_scheduler
from core.telemetry import init_artwork_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/artwork", tags=["artwork"])


def _require_lookup_enabled(settings: Settings) -> None:
    """Raise 503 if artwork lookup is switched off."""
    if not settings.enable_artwork_lookup:
        raise HTTPException(
            status_code=503,
            detail="Artwork lookup is disabled. Set ENABLE_ARTWORK_LOOKUP=true to enable.",
        )


def _require_live_render(scheduler: VisibilityScheduler, render_id: int) -> None:
    """Raise 404 if the render was replaced or has expired."""
    if not scheduler.is_live(render_id):
        raise HTTPException(
            status_code=404,
            detail=f"Render {render_id} not found or expired. Search again to start a new render.",
        )


def _trigger_response(
    scheduler: VisibilityScheduler, render_id: int, triggered: list[str]
) -> TriggerResponse:
    return TriggerResponse(
        render_id=render_id,
        triggered=triggered,
        artwork=scheduler.applied(render_id),
    )


@router.post(
    "/visibility",
    response_model=TriggerResponse,
    summary="Report the viewport and placeholder positions",
    responses={
        200: {"description": "Intersecting placeholders triggered"},
        404: {"description": "Render not found or expired"},
        503: {"description": "Artwork lookup disabled"},
    },
)
async def report_visibility(
    report: VisibilityReport,
    settings: Settings = Depends(get_settings),
    scheduler: VisibilityScheduler = Depends(get_scheduler),
) -> TriggerResponse:
    """Trigger artwork for placeholders inside the margin-grown viewport."""
    _require_lookup_enabled(settings)
    _require_live_render(scheduler, report.render_id)
    init_artwork_stats()
    triggered = scheduler.observe(report)
    return _trigger_response(scheduler, report.render_id, triggered)


@router.post(
    "/trigger",
    response_model=TriggerResponse,
    summary="Trigger artwork for placeholders known to be visible",
    responses={
        200: {"description": "Placeholders triggered"},
        404: {"description": "Render not found or expired"},
        503: {"description": "Artwork lookup disabled"},
    },
)
async def trigger_placeholders(
    request: TriggerRequest,
    settings: Settings = Depends(get_settings),
    scheduler: VisibilityScheduler = Depends(get_scheduler),
) -> TriggerResponse:
    """Trigger artwork for placeholders the client found intersecting."""
    _require_lookup_enabled(settings)
    _require_live_render(scheduler, request.render_id)
    init_artwork_stats()
    triggered = scheduler.trigger_many(request.render_id, request.placeholder_ids)
    return _trigger_response(scheduler, request.render_id, triggered)


@router.get(
    "/placeholders",
    response_model=TriggerResponse,
    summary="Artwork applied to a render",
    responses={
        200: {"description": "Applied artwork returned"},
        404: {"description": "Render not found or expired"},
    },
)
async def get_applied_artwork(
    render_id: int = Query(..., description="Render returned by the search"),
    scheduler: VisibilityScheduler = Depends(get_scheduler),
) -> TriggerResponse:
    """Poll for artwork that arrived after a placeholder was triggered."""
    _require_live_render(scheduler, render_id)
    return _trigger_response(scheduler, render_id, [])


@router.get(
    "",
    response_model=ArtworkResponse,
    summary="Ensure artwork for a single song",
    responses={
        200: {"description": "Current enrichment state returned"},
        503: {"description": "Artwork lookup disabled"},
    },
)
async def get_artwork(
    title: str = Query(..., min_length=1, description="Song title"),
    artist: str = Query(..., min_length=1, description="Artist name"),
    settings: Settings = Depends(get_settings),
    dispatcher: ArtworkDispatcher = Depends(get_dispatcher),
) -> ArtworkResponse:
    """Return cached artwork, or start (or join) the lookup for it."""
    _require_lookup_enabled(settings)
    init_artwork_stats()
    result = dispatcher.ensure_artwork(title, artist)
    return ArtworkResponse(
        title=title,
        artist=artist,
        status=result.status,
        artwork_url=result.artwork_url,
    )
