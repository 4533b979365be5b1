"""Main application entry point for the Song Catalogue Artwork service."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request

from artwork.router import router as artwork_router
from catalogue.router import router as catalogue_router
from config.settings import get_settings
from core.dependencies import (
    close_artwork_services,
    flush_posthog,
    load_catalogue,
    shutdown_posthog,
)
from core.logging import setup_logging
from core.sentry import init_sentry
from routers.health import router as health_router

load_dotenv()

settings = get_settings()

init_sentry(
    dsn=settings.sentry_dsn,
    environment="production" if settings.log_level != "DEBUG" else "development",
    release=settings.app_version,
)

log_file = None
if settings.log_level != "DEBUG":
    log_dir = Path("/app/logs") if Path("/app/logs").exists() else Path("logs")
    log_file = log_dir / "song-catalogue-artwork.log"
setup_logging(level=settings.log_level, log_file=log_file)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the catalogue on startup; settle lookups and close clients on shutdown."""
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Log level: {settings.log_level}")
    logger.info(f"Artwork lookup: {'enabled' if settings.enable_artwork_lookup else 'disabled'}")

    store = await load_catalogue(settings)
    logger.info(f"Catalogue: {store.total} songs" if store.loaded else "Catalogue: not loaded")

    yield

    logger.info("Shutting down application")
    shutdown_posthog()
    await close_artwork_services()
    logger.info("All services shut down")


app = FastAPI(
    title=settings.app_name,
    description="Searchable song catalogue with lazily loaded, deduplicated artwork",
    version=settings.app_version,
    lifespan=lifespan,
)


@app.middleware("http")
async def posthog_flush_middleware(request: Request, call_next):
    """Flush PostHog events after each request to prevent data loss."""
    response = await call_next(request)
    flush_posthog()
    return response


app.include_router(health_router, prefix="", tags=["health"])
app.include_router(catalogue_router, prefix="/api/v1", tags=["catalogue"])
app.include_router(artwork_router, prefix="/api/v1", tags=["artwork"])

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
