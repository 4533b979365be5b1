"""Artwork cache and lookup dispatcher.

Every artwork lookup goes through :meth:`ArtworkDispatcher.ensure_artwork`,
the single decision point that guarantees each identity key is looked up at
most once at a time, and (by default) at most once per process.

The dispatcher runs on one asyncio event loop. Nothing awaits between the
record/in-flight check and the in-flight add, so two callers for the same key
can never both dispatch.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from cachetools import TTLCache  # type: ignore[import-untyped]

from core.exceptions import ArtworkLookupError
from core.normalize import song_key
from core.sentry import add_artwork_breadcrumb, capture_exception
from core.telemetry import (
    record_cache_hit,
    record_lookup_dispatched,
    record_lookup_time,
    record_pending_join,
)

logger = logging.getLogger(__name__)

ArtworkCallback = Callable[[str], None]
"""Called with the artwork URL once a lookup finds one."""


class ArtworkLookupService(Protocol):
    async def lookup(self, title: str, artist: str) -> str | None: ...


class EnrichmentStatus(StrEnum):
    """Immediate outcome of an ensure_artwork call."""

    FOUND = "found"
    """Artwork already cached."""

    EMPTY = "empty"
    """Already looked up; nothing found (or the lookup failed)."""

    PENDING = "pending"
    """A lookup for this key is already in flight; nothing new dispatched."""

    DISPATCHED = "dispatched"
    """A new lookup was started by this call."""


@dataclass
class EnrichmentResult:
    key: str
    status: EnrichmentStatus
    artwork_url: str | None = None
    task: asyncio.Task | None = None


class ArtworkDispatcher:
    """Maps identity keys to artwork and deduplicates outstanding lookups.

    Records are write-once: a key maps to a URL or to ``None`` (looked up,
    nothing found) and is never overwritten or removed. When ``failure_ttl``
    is set, lookups that *errored* are remembered in an expiring cache instead,
    so the key can be looked up again once the entry expires. Lookups that
    succeeded with no result are always permanent.
    """

    def __init__(
        self,
        lookup_service: ArtworkLookupService,
        failure_ttl: int | None = None,
        failure_cache_maxsize: int = 1000,
    ):
        self.lookup_service = lookup_service
        self._records: dict[str, str | None] = {}
        self._failures: TTLCache | None = (
            TTLCache(maxsize=failure_cache_maxsize, ttl=failure_ttl) if failure_ttl else None
        )
        # key -> callbacks waiting on the outstanding lookup
        self._in_flight: dict[str, list[ArtworkCallback]] = {}
        self._tasks: set[asyncio.Task] = set()

    def has_record(self, key: str) -> bool:
        """True once a key has been looked up (found or empty)."""
        if key in self._records:
            return True
        return self._failures is not None and key in self._failures

    def is_in_flight(self, key: str) -> bool:
        return key in self._in_flight

    def cached(self, title: str, artist: str) -> str | None:
        """Cached artwork URL for a song, or None if absent or empty."""
        return self._records.get(song_key(title, artist))

    def ensure_artwork(
        self,
        title: str,
        artist: str,
        on_resolved: ArtworkCallback | None = None,
    ) -> EnrichmentResult:
        """Make sure artwork for a song is cached or being looked up.

        Must be called from the event loop thread.

        Args:
            title: Song title
            artist: Artist name
            on_resolved: Called with the URL if the outstanding lookup finds
                artwork. Never called for empty or failed lookups, nor when the
                result is already cached (it is returned directly instead).

        Returns:
            EnrichmentResult with the immediate status; for DISPATCHED the
            lookup task is attached.
        """
        key = song_key(title, artist)

        if self.has_record(key):
            record_cache_hit()
            artwork_url = self._records.get(key)
            status = EnrichmentStatus.FOUND if artwork_url else EnrichmentStatus.EMPTY
            return EnrichmentResult(key=key, status=status, artwork_url=artwork_url)

        if key in self._in_flight:
            record_pending_join()
            if on_resolved is not None:
                self._in_flight[key].append(on_resolved)
            return EnrichmentResult(key=key, status=EnrichmentStatus.PENDING)

        self._in_flight[key] = [on_resolved] if on_resolved is not None else []
        record_lookup_dispatched()
        add_artwork_breadcrumb("lookup_dispatched", {"key": key})
        logger.debug(f"Dispatching artwork lookup for '{key}'")

        task = asyncio.create_task(self._resolve(key, title, artist), name=f"artwork:{key}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return EnrichmentResult(key=key, status=EnrichmentStatus.DISPATCHED, task=task)

    async def _lookup(self, key: str, title: str, artist: str) -> tuple[str | None, bool]:
        """Run one lookup. Returns (artwork_url, failed); never raises Exception."""
        start = time.perf_counter()
        try:
            return await self.lookup_service.lookup(title, artist) or None, False
        except ArtworkLookupError as e:
            logger.warning(f"Artwork lookup failed for '{title}' by '{artist}': {e.message}")
            add_artwork_breadcrumb("lookup_failed", {"key": key, **e.details}, level="warning")
            return None, True
        except Exception as e:
            logger.error(f"Unexpected artwork lookup error for '{title}' by '{artist}': {e}")
            capture_exception(e, {"key": key, "title": title, "artist": artist})
            return None, True
        finally:
            record_lookup_time((time.perf_counter() - start) * 1000)

    async def _resolve(self, key: str, title: str, artist: str) -> str | None:
        try:
            artwork_url, failed = await self._lookup(key, title, artist)
            self._store(key, artwork_url, failed)
        finally:
            waiters = self._in_flight.pop(key, [])

        if artwork_url:
            for callback in waiters:
                self._notify(callback, key, artwork_url)
        return artwork_url

    def _store(self, key: str, artwork_url: str | None, failed: bool) -> None:
        if failed and self._failures is not None:
            self._failures[key] = None
            return
        self._records.setdefault(key, artwork_url)
        logger.debug(f"Artwork for '{key}': {artwork_url or 'none'}")

    def _notify(self, callback: ArtworkCallback, key: str, artwork_url: str) -> None:
        try:
            callback(artwork_url)
        except Exception:
            logger.exception(f"Artwork callback for '{key}' raised")

    async def wait_idle(self) -> None:
        """Wait until every outstanding lookup has settled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def stats(self) -> dict[str, int]:
        return {
            "records": len(self._records),
            "found": sum(1 for url in self._records.values() if url),
            "empty": sum(1 for url in self._records.values() if not url),
            "expiring_failures": len(self._failures) if self._failures is not None else 0,
            "in_flight": len(self._in_flight),
        }
