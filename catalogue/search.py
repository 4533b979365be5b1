"""Search controller: query -> filtered catalogue -> fresh render."""

import logging

from artwork.scheduler import VisibilityScheduler
from catalogue.models import CatalogueView, SongCard
from catalogue.store import CatalogueStore
from core.telemetry import RequestTelemetry

logger = logging.getLogger(__name__)


def status_message(showing: int, total: int, load_error: str | None = None) -> str:
    """Status line shown above the results."""
    if load_error:
        return f"Catalogue error: {load_error}"
    if showing == 0:
        return f"No matches. Showing 0 of {total} songs."
    return f"Showing {showing} of {total} songs."


class SearchController:
    """Turns user input into a new render of the catalogue.

    Every keystroke and every explicit submit go through :meth:`search`.
    """

    def __init__(self, store: CatalogueStore, scheduler: VisibilityScheduler):
        self.store = store
        self.scheduler = scheduler

    def search(
        self,
        raw_query: str | None,
        telemetry: RequestTelemetry | None = None,
        replaces: int | None = None,
    ) -> CatalogueView:
        """Filter the catalogue and render the result list.

        Synchronous: the watches of the render this one ``replaces`` are torn
        down and the new placeholders registered before any lookup can settle.
        """
        telemetry = telemetry or RequestTelemetry()
        query = raw_query or ""

        with telemetry.track_step("filter"):
            songs = self.store.filter(query)

        with telemetry.track_step("render"):
            render_id = self.scheduler.begin_render(replaces=replaces)
            cards = []
            for song in songs:
                placeholder = self.scheduler.watch(
                    render_id, song.display_title, song.display_artist
                )
                cards.append(
                    SongCard(
                        placeholder_id=placeholder.placeholder_id,
                        title=placeholder.title,
                        artist=placeholder.artist,
                        artwork_url=self.scheduler.artwork_for(render_id, placeholder.placeholder_id),
                    )
                )

        logger.debug(f"Render {render_id}: '{query}' -> {len(cards)} of {self.store.total}")
        return CatalogueView(
            query=query,
            status=status_message(len(cards), self.store.total, self.store.load_error),
            showing=len(cards),
            total=self.store.total,
            render_id=render_id,
            cards=cards,
        )
