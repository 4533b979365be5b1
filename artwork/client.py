"""iTunes Search API client for song artwork."""

import logging

import httpx

from core.exceptions import ArtworkLookupError

logger = logging.getLogger(__name__)

ITUNES_SEARCH_URL = "https://itunes.apple.com/search"


class ITunesArtworkClient:
    """Looks up one artwork URL per (title, artist) via the iTunes Search API.

    The client reports failures by raising; deciding what a failure means is
    left to the caller.
    """

    def __init__(
        self,
        search_url: str = ITUNES_SEARCH_URL,
        timeout: float = 10.0,
        limit: int = 1,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.search_url = search_url
        self.timeout = timeout
        self.limit = limit
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": "SongCatalogueArtworkService/1.0"},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def check_api(self) -> bool:
        """Check iTunes Search API connectivity."""
        try:
            client = await self._get_client()
            resp = await client.get(self.search_url, params={"term": "test", "limit": 1})
            return bool(resp.status_code == 200)
        except Exception:
            return False

    async def lookup(self, title: str, artist: str) -> str | None:
        """Find the artwork URL for a song.

        Args:
            title: Song title
            artist: Artist name

        Returns:
            The ``artworkUrl100`` of the best match, or None if there is no match

        Raises:
            ArtworkLookupError: On transport errors, non-success status or a malformed body
        """
        params = {
            "term": f"{title} {artist}",
            "media": "music",
            "entity": "song",
            "limit": self.limit,
        }
        client = await self._get_client()

        try:
            response = await client.get(self.search_url, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise ArtworkLookupError(
                f"iTunes search returned HTTP {e.response.status_code}",
                details={"title": title, "artist": artist, "status_code": e.response.status_code},
            ) from e
        except httpx.RequestError as e:
            raise ArtworkLookupError(
                f"iTunes search request failed: {e}",
                details={"title": title, "artist": artist},
            ) from e
        except ValueError as e:
            raise ArtworkLookupError(
                "iTunes search returned invalid JSON",
                details={"title": title, "artist": artist},
            ) from e

        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list) or not results or not isinstance(results[0], dict):
            logger.debug(f"No iTunes match for '{title}' by '{artist}'")
            return None

        artwork_url = results[0].get("artworkUrl100")
        if not isinstance(artwork_url, str) or not artwork_url.strip():
            return None
        return artwork_url
