import logging
from collections.abc import Iterable, Mapping
from typing import Any

from catalogue.models import Song
from core.normalize import normalize

logger = logging.getLogger(__name__)


def sort_key(song: Song) -> tuple[str, str]:
    """Sort by normalized title, then normalized artist."""
    return normalize(song.title), normalize(song.artist)


class CatalogueStore:
    """In-memory song catalogue, kept in (title, artist) order."""

    def __init__(self):
        self._songs: list[Song] = []
        self._load_error: str | None = None
        self._loaded = False

    @property
    def songs(self) -> list[Song]:
        return self._songs

    @property
    def total(self) -> int:
        return len(self._songs)

    @property
    def load_error(self) -> str | None:
        return self._load_error

    @property
    def loaded(self) -> bool:
        return self._loaded

    def load(self, items: Iterable[Song | Mapping[str, Any]]) -> None:
        """Replace the catalogue with ``items``, sorted.

        The sort is stable, so songs with identical normalized keys keep
        their original relative order.
        """
        songs = [item if isinstance(item, Song) else Song.model_validate(item) for item in items]
        self._songs = sorted(songs, key=sort_key)
        self._load_error = None
        self._loaded = True
        logger.info(f"Catalogue loaded: {len(self._songs)} songs")

    def fail(self, message: str) -> None:
        """Record a catalogue load failure; the catalogue stays empty."""
        self._songs = []
        self._load_error = message
        self._loaded = False
        logger.error(f"Catalogue unavailable: {message}")

    def filter(self, query: str | None) -> list[Song]:
        """Songs whose normalized title or artist contains the normalized query.

        An empty query returns the full catalogue. Results keep catalogue order.
        """
        term = normalize(query)
        if not term:
            return self._songs

        return [
            song
            for song in self._songs
            if term in normalize(song.title) or term in normalize(song.artist)
        ]
