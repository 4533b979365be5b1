"""Shared test factories for model construction."""

from unittest.mock import AsyncMock

from catalogue.models import Song


def make_song(title="Let It Be", artist="The Beatles", **kwargs):
    """Build a Song with sensible defaults."""
    return Song(title=title, artist=artist, **kwargs)


def make_lookup_service(artwork_url="https://is1.mzstatic.com/image/100x100bb.jpg", **kwargs):
    """Build an AsyncMock lookup service returning a fixed artwork URL."""
    service = AsyncMock()
    service.lookup = AsyncMock(return_value=artwork_url, **kwargs)
    return service


SONGS_PAYLOAD = [
    {"title": "Let It Be", "artist": "The Beatles"},
    {"title": "Bohemian Rhapsody", "artist": "Queen"},
    {"title": "Don’t Stop Me Now", "artist": "Queen"},
    {"title": "Jóga", "artist": "Björk"},
]
