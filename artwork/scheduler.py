"""Visibility scheduler: one-shot artwork triggers for rendered placeholders.

Each search starts a render and hands out fresh :class:`Placeholder` handles
for it. A placeholder is watched until it is first reported inside the
observation region (the viewport grown by ``root_margin`` above and below, so
artwork starts loading just before the card scrolls into view). The first
intersection deregisters the watch and ensures the song's artwork; later
reports for the same placeholder are ignored.

Many viewers share one scheduler, so render state is keyed by ``render_id``.
A viewer starting a new render names the render it replaces, which discards
that render's watches wholesale; renders nobody replaces expire after
``render_ttl`` seconds without activity. Lookups started by a discarded render
keep running and still fill the shared cache, but their results are only
applied to placeholders of renders that are still live.
"""

import itertools
import logging
import time
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from functools import partial

from cachetools import TTLCache  # type: ignore[import-untyped]
from pydantic import BaseModel

from artwork.dispatcher import ArtworkDispatcher, EnrichmentStatus
from core.normalize import song_key

logger = logging.getLogger(__name__)

ROOT_MARGIN = 300.0
THRESHOLD = 0.01
RENDER_TTL = 1800.0
MAX_RENDERS = 1000


@dataclass(frozen=True)
class Placeholder:
    """Handle for one rendered artwork slot."""

    placeholder_id: str
    render_id: int
    title: str
    artist: str
    key: str = field(compare=False)


@dataclass
class Render:
    """Placeholders, open watches and applied artwork of one rendered list."""

    render_id: int
    placeholders: dict[str, Placeholder] = field(default_factory=dict)
    watches: set[str] = field(default_factory=set)
    applied: dict[str, str] = field(default_factory=dict)


class PlaceholderBounds(BaseModel):
    """Vertical extent of a rendered placeholder, in document coordinates."""

    placeholder_id: str
    top: float
    bottom: float


class VisibilityReport(BaseModel):
    """Viewport position plus the placeholders the client currently lays out."""

    render_id: int
    viewport_top: float
    viewport_bottom: float
    placeholders: list[PlaceholderBounds] = []


def intersects(
    bounds: PlaceholderBounds,
    viewport_top: float,
    viewport_bottom: float,
    root_margin: float = ROOT_MARGIN,
    threshold: float = THRESHOLD,
) -> bool:
    """Whether a placeholder counts as visible in the margin-grown viewport.

    The visible share of the placeholder's height must reach ``threshold``.
    A zero-height placeholder counts when it lies inside the region.
    """
    region_top = viewport_top - root_margin
    region_bottom = viewport_bottom + root_margin
    height = bounds.bottom - bounds.top

    if height <= 0:
        return region_top <= bounds.top <= region_bottom

    overlap = min(bounds.bottom, region_bottom) - max(bounds.top, region_top)
    if overlap <= 0:
        return False
    return overlap / height >= threshold


ApplyCallback = Callable[[Placeholder, str], None]


class VisibilityScheduler:
    """Tracks live renders, their placeholders and the artwork applied to them."""

    def __init__(
        self,
        dispatcher: ArtworkDispatcher,
        root_margin: float = ROOT_MARGIN,
        threshold: float = THRESHOLD,
        on_apply: ApplyCallback | None = None,
        render_ttl: float = RENDER_TTL,
        max_renders: int = MAX_RENDERS,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.dispatcher = dispatcher
        self.root_margin = root_margin
        self.threshold = threshold
        self.on_apply = on_apply
        self._render_ids = itertools.count(1)
        self._renders: TTLCache = TTLCache(maxsize=max_renders, ttl=render_ttl, timer=timer)

    def begin_render(self, replaces: int | None = None) -> int:
        """Start a new render, discarding the one it replaces.

        Args:
            replaces: The viewer's previous render id. Its watches are torn
                down before the new render exists.
        """
        if replaces is not None:
            old = self._renders.pop(replaces, None)
            if old is not None and old.watches:
                logger.debug(f"Discarding {len(old.watches)} watches of render {replaces}")
        render_id = next(self._render_ids)
        self._renders[render_id] = Render(render_id)
        return render_id

    def is_live(self, render_id: int) -> bool:
        return render_id in self._renders

    def _live(self, render_id: int) -> Render | None:
        """Look up a live render and restart its expiry clock."""
        render = self._renders.get(render_id)
        if render is not None:
            self._renders[render_id] = render
        return render

    def watch(self, render_id: int, title: str, artist: str) -> Placeholder:
        """Register a one-shot visibility trigger for a new placeholder.

        Artwork that is already cached is applied straight away; the watch is
        still installed and simply finds the cache on its first trigger.

        Raises:
            KeyError: If the render has been discarded or has expired.
        """
        render = self._live(render_id)
        if render is None:
            raise KeyError(render_id)
        placeholder = Placeholder(
            placeholder_id=uuid.uuid4().hex,
            render_id=render_id,
            title=title,
            artist=artist,
            key=song_key(title, artist),
        )
        render.placeholders[placeholder.placeholder_id] = placeholder
        render.watches.add(placeholder.placeholder_id)

        cached = self.dispatcher.cached(title, artist)
        if cached:
            render.applied[placeholder.placeholder_id] = cached
        return placeholder

    def is_watched(self, render_id: int, placeholder_id: str) -> bool:
        render = self._renders.get(render_id)
        return render is not None and placeholder_id in render.watches

    def trigger(self, render_id: int, placeholder_id: str) -> EnrichmentStatus | None:
        """Handle the first intersection of a placeholder.

        Returns:
            The enrichment status, or None if the placeholder is unknown,
            belongs to a discarded render, or has already been triggered.
        """
        render = self._live(render_id)
        if render is None or placeholder_id not in render.watches:
            return None
        render.watches.discard(placeholder_id)
        placeholder = render.placeholders[placeholder_id]

        cached = self.dispatcher.cached(placeholder.title, placeholder.artist)
        if cached:
            self._apply(placeholder, cached)
            return EnrichmentStatus.FOUND

        result = self.dispatcher.ensure_artwork(
            placeholder.title,
            placeholder.artist,
            on_resolved=partial(self._apply, placeholder),
        )
        return result.status

    def trigger_many(self, render_id: int, placeholder_ids: Iterable[str]) -> list[str]:
        """Trigger several placeholders; returns the ids that were still watched."""
        return [pid for pid in placeholder_ids if self.trigger(render_id, pid) is not None]

    def observe(self, report: VisibilityReport) -> list[str]:
        """Trigger every watched placeholder intersecting the observation region."""
        render = self._renders.get(report.render_id)
        if render is None:
            return []
        visible = [
            bounds.placeholder_id
            for bounds in report.placeholders
            if bounds.placeholder_id in render.watches
            and intersects(
                bounds,
                report.viewport_top,
                report.viewport_bottom,
                root_margin=self.root_margin,
                threshold=self.threshold,
            )
        ]
        return self.trigger_many(report.render_id, visible)

    def _apply(self, placeholder: Placeholder, artwork_url: str) -> None:
        render = self._renders.get(placeholder.render_id)
        if render is None or placeholder.placeholder_id not in render.placeholders:
            logger.debug(f"Ignoring artwork for stale placeholder {placeholder.placeholder_id}")
            return
        render.applied[placeholder.placeholder_id] = artwork_url
        if self.on_apply is not None:
            self.on_apply(placeholder, artwork_url)

    def artwork_for(self, render_id: int, placeholder_id: str) -> str | None:
        render = self._renders.get(render_id)
        return render.applied.get(placeholder_id) if render is not None else None

    def applied(self, render_id: int) -> dict[str, str]:
        """Artwork applied so far to placeholders of a live render."""
        render = self._live(render_id)
        return dict(render.applied) if render is not None else {}

    def stats(self) -> dict[str, int]:
        return {
            "live_renders": len(self._renders),
            "open_watches": sum(len(r.watches) for r in self._renders.values()),
        }
