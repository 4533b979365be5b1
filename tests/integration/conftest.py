"""Integration test fixtures.

Wires the real store, dispatcher, scheduler and iTunes client together; only
the iTunes HTTP transport is replaced, by an ``httpx.MockTransport`` that
records every request.
"""

import asyncio

import httpx
import pytest
import pytest_asyncio

from artwork.client import ITunesArtworkClient
from artwork.dispatcher import ArtworkDispatcher
from artwork.scheduler import VisibilityScheduler
from catalogue.search import SearchController
from catalogue.store import CatalogueStore
from config.settings import Settings, get_settings
from core.dependencies import (
    get_dispatcher,
    get_posthog_client,
    get_scheduler,
    get_search_controller,
)

SEED_SONGS = [
    {"title": "Let It Be", "artist": "The Beatles"},
    {"title": "Let It Be", "artist": "The Beatles", "version": "Naked"},
    {"title": "Bohemian Rhapsody", "artist": "Queen"},
    {"title": "Under Pressure", "artist": "Queen & David Bowie"},
    {"title": "Obscure B-Side", "artist": "Nobody"},
    {"title": "Broken Record", "artist": "Flaky Server"},
]

ARTWORK = {
    "Let It Be The Beatles": "https://is1.mzstatic.com/image/let-it-be/100x100bb.jpg",
    "Bohemian Rhapsody Queen": "https://is1.mzstatic.com/image/bohemian/100x100bb.jpg",
    "Under Pressure Queen & David Bowie": "https://is1.mzstatic.com/image/pressure/100x100bb.jpg",
}


class FakeITunes:
    """Serves canned iTunes search responses after an optional gate opens."""

    def __init__(self):
        self.terms: list[str] = []
        self.gate = asyncio.Event()
        self.gate.set()

    async def handler(self, request: httpx.Request) -> httpx.Response:
        term = request.url.params["term"]
        self.terms.append(term)
        await self.gate.wait()
        if term.startswith("Broken Record"):
            return httpx.Response(500)
        url = ARTWORK.get(term)
        results = [{"trackName": term, "artworkUrl100": url}] if url else []
        return httpx.Response(200, json={"resultCount": len(results), "results": results})


@pytest.fixture
def fake_itunes():
    return FakeITunes()


@pytest.fixture
def wired(fake_itunes):
    client = ITunesArtworkClient(transport=httpx.MockTransport(fake_itunes.handler))
    dispatcher = ArtworkDispatcher(client)
    scheduler = VisibilityScheduler(dispatcher)
    store = CatalogueStore()
    store.load(SEED_SONGS)
    controller = SearchController(store, scheduler)
    return controller, scheduler, dispatcher


@pytest.fixture
def app(wired):
    from main import app

    controller, scheduler, dispatcher = wired
    app.dependency_overrides[get_search_controller] = lambda: controller
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_posthog_client] = lambda: None
    app.dependency_overrides[get_settings] = lambda: Settings(enable_telemetry=False)
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app):
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://test"
    ) as http:
        yield http
