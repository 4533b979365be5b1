"""FastAPI dependency injection providers."""

import logging

from fastapi import Depends
from posthog import Posthog

from artwork.client import ITunesArtworkClient
from artwork.dispatcher import ArtworkDispatcher
from artwork.scheduler import VisibilityScheduler
from catalogue.loader import fetch_catalogue
from catalogue.search import SearchController
from catalogue.store import CatalogueStore
from config.settings import Settings, get_settings
from core.exceptions import CatalogueLoadError
from core.sentry import capture_exception

logger = logging.getLogger(__name__)

# Module-level instances for lifecycle management
_catalogue_store: CatalogueStore | None = None
_artwork_client: ITunesArtworkClient | None = None
_dispatcher: ArtworkDispatcher | None = None
_scheduler: VisibilityScheduler | None = None
_search_controller: SearchController | None = None
_posthog_client: Posthog | None = None


def get_catalogue_store() -> CatalogueStore:
    """Get the process-wide catalogue store."""
    global _catalogue_store
    if _catalogue_store is None:
        _catalogue_store = CatalogueStore()
    return _catalogue_store


async def load_catalogue(settings: Settings | None = None) -> CatalogueStore:
    """Load the catalogue once into the store.

    Failures are reported through the store's status and never raised.
    """
    settings = settings or get_settings()
    store = get_catalogue_store()
    source = settings.resolved_catalogue_source

    try:
        songs = await fetch_catalogue(source)
    except CatalogueLoadError as e:
        store.fail(e.message)
        capture_exception(e, {"source": source, **e.details})
        return store

    store.load(songs)
    return store


def get_artwork_client(settings: Settings = Depends(get_settings)) -> ITunesArtworkClient:
    """Get the iTunes artwork lookup client."""
    global _artwork_client
    if _artwork_client is None:
        _artwork_client = ITunesArtworkClient(
            search_url=settings.itunes_search_url,
            timeout=settings.itunes_timeout,
            limit=settings.artwork_lookup_limit,
        )
        logger.info(f"iTunes artwork client initialized ({settings.itunes_search_url})")
    return _artwork_client


def get_dispatcher(settings: Settings = Depends(get_settings)) -> ArtworkDispatcher:
    """Get the process-wide artwork dispatcher."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = ArtworkDispatcher(
            get_artwork_client(settings),
            failure_ttl=settings.artwork_failure_ttl,
            failure_cache_maxsize=settings.artwork_failure_cache_maxsize,
        )
        retry = (
            f"retried after {settings.artwork_failure_ttl}s"
            if settings.artwork_failure_ttl
            else "never retried"
        )
        logger.info(f"Artwork dispatcher initialized (failed lookups {retry})")
    return _dispatcher


def get_scheduler(settings: Settings = Depends(get_settings)) -> VisibilityScheduler:
    """Get the process-wide visibility scheduler."""
    global _scheduler
    if _scheduler is None:
        _scheduler = VisibilityScheduler(
            get_dispatcher(settings),
            root_margin=settings.visibility_root_margin,
            threshold=settings.visibility_threshold,
            render_ttl=settings.visibility_render_ttl,
            max_renders=settings.visibility_max_renders,
        )
    return _scheduler


def get_search_controller(settings: Settings = Depends(get_settings)) -> SearchController:
    """Get the search controller."""
    global _search_controller
    if _search_controller is None:
        _search_controller = SearchController(get_catalogue_store(), get_scheduler(settings))
    return _search_controller


async def close_artwork_services() -> None:
    """Let outstanding lookups settle, then close the HTTP client."""
    global _artwork_client, _dispatcher, _scheduler, _search_controller
    if _dispatcher:
        await _dispatcher.wait_idle()
    if _artwork_client:
        await _artwork_client.close()
    _artwork_client = None
    _dispatcher = None
    _scheduler = None
    _search_controller = None


def reset_catalogue_store() -> None:
    """Drop the catalogue store (used between tests)."""
    global _catalogue_store
    _catalogue_store = None


def get_posthog_client(settings: Settings = Depends(get_settings)) -> Posthog | None:
    """Get PostHog client instance.

    Args:
        settings: Application settings

    Returns:
        Optional[Posthog]: PostHog client if configured and enabled, None otherwise
    """
    global _posthog_client

    if not settings.enable_telemetry:
        logger.debug("Telemetry disabled")
        return None

    if not settings.posthog_api_key:
        logger.debug("POSTHOG_API_KEY not set - telemetry disabled")
        return None

    if _posthog_client is None:
        _posthog_client = Posthog(
            project_api_key=settings.posthog_api_key,
            host=settings.posthog_host,
        )
        logger.info(f"PostHog client initialized (host: {settings.posthog_host})")

    return _posthog_client


def flush_posthog() -> None:
    """Flush any buffered PostHog events."""
    if _posthog_client:
        _posthog_client.flush()


def shutdown_posthog() -> None:
    """Shutdown PostHog client gracefully."""
    global _posthog_client
    if _posthog_client:
        _posthog_client.shutdown()
        _posthog_client = None
        logger.info("PostHog client shutdown")
