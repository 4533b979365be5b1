"""One-shot catalogue fetch-and-parse.

The catalogue source is either a local JSON file or an http(s) URL serving a
JSON array of ``{title, artist}`` records. There is no retry and no
pagination: a failure is reported once and the catalogue stays empty.
"""

import logging
from pathlib import Path

import httpx
from pydantic import TypeAdapter, ValidationError

from catalogue.models import Song
from core.exceptions import CatalogueLoadError

logger = logging.getLogger(__name__)

_songs_adapter = TypeAdapter(list[Song])


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def parse_catalogue(payload: bytes | str, source: str = "catalogue") -> list[Song]:
    """Parse a JSON array of song records.

    Raises:
        CatalogueLoadError: If the payload is not valid JSON or not a list of records
    """
    try:
        return _songs_adapter.validate_json(payload)
    except ValidationError as e:
        raise CatalogueLoadError(
            f"Invalid catalogue data in {source}",
            details={"source": source, "errors": e.error_count()},
        ) from e


async def fetch_catalogue(source: str, client: httpx.AsyncClient | None = None) -> list[Song]:
    """Fetch and parse the song catalogue.

    Args:
        source: Local file path or http(s) URL
        client: Optional HTTP client (a short-lived one is created otherwise)

    Returns:
        The songs, in source order

    Raises:
        CatalogueLoadError: On a non-success status, unreadable file or parse error
    """
    if not _is_url(source):
        path = Path(source)
        try:
            payload = path.read_bytes()
        except OSError as e:
            raise CatalogueLoadError(f"Cannot read {path}: {e.strerror or e}") from e
        songs = parse_catalogue(payload, source=path.name)
        logger.info(f"Read {len(songs)} songs from {path}")
        return songs

    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=10.0)
    try:
        response = await http.get(source)
        if response.status_code != 200:
            raise CatalogueLoadError(
                f"HTTP {response.status_code} loading {source.rsplit('/', 1)[-1]}",
                details={"source": source, "status_code": response.status_code},
            )
        songs = parse_catalogue(response.content, source=source.rsplit("/", 1)[-1])
    except httpx.RequestError as e:
        raise CatalogueLoadError(f"Request failed loading {source}: {e}") from e
    finally:
        if owns_client:
            await http.aclose()

    logger.info(f"Fetched {len(songs)} songs from {source}")
    return songs
