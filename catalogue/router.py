"""Catalogue search router."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from posthog import Posthog

from catalogue.models import CatalogueView
from catalogue.search import SearchController
from core.dependencies import get_posthog_client, get_search_controller
from core.telemetry import RequestTelemetry, init_artwork_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/songs", tags=["catalogue"])


@router.get(
    "/search",
    response_model=CatalogueView,
    summary="Search the song catalogue",
    description="""
    Filter the catalogue by substring match on title or artist and start a new render.

    Both typing and an explicit submit call this endpoint. An empty `q`
    returns the whole catalogue. Each card carries a `placeholder_id`; report
    its visibility to `/api/v1/artwork/visibility` to load its artwork.
    Pass the previous `render_id` as `replaces` so its watches are torn down.

    Example request:
    ```
    GET /api/v1/songs/search?q=beatles
    ```
    """,
    responses={
        200: {"description": "Rendered result list returned"},
        500: {"description": "Internal server error"},
    },
)
async def search_songs(
    q: str | None = Query(None, description="Free-text query"),
    replaces: int | None = Query(
        None, description="This viewer's previous render_id; its watches are discarded"
    ),
    controller: SearchController = Depends(get_search_controller),
    posthog_client: Posthog | None = Depends(get_posthog_client),
) -> CatalogueView:
    """Search the catalogue and render the results."""
    init_artwork_stats()
    telemetry = RequestTelemetry()

    try:
        view = controller.search(q, telemetry=telemetry, replaces=replaces)
    except Exception as e:
        logger.error(f"Catalogue search failed: {e}")
        raise HTTPException(status_code=500, detail="Internal server error") from e

    if posthog_client:
        telemetry.send_to_posthog(
            posthog_client,
            "catalogue_search",
            {"showing": view.showing, "total": view.total, "had_query": bool(view.query)},
        )
    return view
