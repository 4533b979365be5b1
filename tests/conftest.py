"""Shared test fixtures for pytest."""

import asyncio

import pytest

from artwork.dispatcher import ArtworkDispatcher
from artwork.scheduler import VisibilityScheduler
from catalogue.search import SearchController
from catalogue.store import CatalogueStore
from tests.factories import SONGS_PAYLOAD, make_lookup_service


class GatedLookupService:
    """Lookup service whose calls block until released, so tests can overlap them."""

    def __init__(self, results: dict[str, str | None] | None = None, default: str | None = None):
        self.results = results or {}
        self.default = default
        self.calls: list[tuple[str, str]] = []
        self.release = asyncio.Event()
        self.error: Exception | None = None

    async def lookup(self, title: str, artist: str) -> str | None:
        self.calls.append((title, artist))
        await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.results.get(title, self.default)


@pytest.fixture
def lookup_service():
    """Mock lookup service that finds artwork for everything."""
    return make_lookup_service()


@pytest.fixture
def gated_lookup():
    return GatedLookupService(default="https://is1.mzstatic.com/image/gated/100x100bb.jpg")


@pytest.fixture
def dispatcher(lookup_service):
    return ArtworkDispatcher(lookup_service)


@pytest.fixture
def scheduler(dispatcher):
    return VisibilityScheduler(dispatcher)


@pytest.fixture
def store():
    store = CatalogueStore()
    store.load(SONGS_PAYLOAD)
    return store


@pytest.fixture
def controller(store, scheduler):
    return SearchController(store, scheduler)
