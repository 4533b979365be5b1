"""Unit tests for artwork/router.py."""

import pytest
from httpx import ASGITransport, AsyncClient

from config.settings import Settings, get_settings
from core.dependencies import get_dispatcher, get_posthog_client, get_scheduler
from tests.unit.conftest import override_deps

ART = "https://is1.mzstatic.com/image/100x100bb.jpg"


@pytest.fixture
def app_client(scheduler, dispatcher, mock_settings):
    from main import app

    with override_deps(
        app,
        {
            get_scheduler: scheduler,
            get_dispatcher: dispatcher,
            get_posthog_client: None,
            get_settings: mock_settings,
        },
    ):
        yield app


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


class TestVisibility:
    @pytest.mark.asyncio
    async def test_triggers_intersecting_placeholders(self, app_client, scheduler, dispatcher):
        render = scheduler.begin_render()
        near = scheduler.watch(render, "Let It Be", "The Beatles")
        far = scheduler.watch(render, "Bohemian Rhapsody", "Queen")

        report = {
            "render_id": render,
            "viewport_top": 0,
            "viewport_bottom": 800,
            "placeholders": [
                {"placeholder_id": near.placeholder_id, "top": 1000, "bottom": 1080},
                {"placeholder_id": far.placeholder_id, "top": 4000, "bottom": 4080},
            ],
        }
        async with _client(app_client) as client:
            resp = await client.post("/api/v1/artwork/visibility", json=report)

            assert resp.status_code == 200
            assert resp.json()["triggered"] == [near.placeholder_id]
            assert resp.json()["render_id"] == render

            await dispatcher.wait_idle()
            resp = await client.get(
                "/api/v1/artwork/placeholders", params={"render_id": render}
            )

        assert resp.json()["artwork"] == {near.placeholder_id: ART}

    @pytest.mark.asyncio
    async def test_invalid_report(self, app_client):
        async with _client(app_client) as client:
            resp = await client.post("/api/v1/artwork/visibility", json={"viewport_top": 0})
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_replaced_render_returns_404(self, app_client, scheduler):
        render = scheduler.begin_render()
        scheduler.begin_render(replaces=render)
        report = {"render_id": render, "viewport_top": 0, "viewport_bottom": 800}
        async with _client(app_client) as client:
            resp = await client.post("/api/v1/artwork/visibility", json=report)
            polled = await client.get(
                "/api/v1/artwork/placeholders", params={"render_id": render}
            )
        assert resp.status_code == 404
        assert polled.status_code == 404


class TestTrigger:
    @pytest.mark.asyncio
    async def test_cached_artwork_returned_immediately(self, app_client, scheduler, dispatcher):
        await dispatcher.ensure_artwork("Let It Be", "The Beatles").task
        render = scheduler.begin_render()
        placeholder = scheduler.watch(render, "Let It Be", "The Beatles")

        async with _client(app_client) as client:
            resp = await client.post(
                "/api/v1/artwork/trigger",
                json={
                    "render_id": render,
                    "placeholder_ids": [placeholder.placeholder_id, "stale-id"],
                },
            )

        body = resp.json()
        assert body["triggered"] == [placeholder.placeholder_id]
        assert body["artwork"][placeholder.placeholder_id] == ART

    @pytest.mark.asyncio
    async def test_disabled_lookup_returns_503(self, scheduler, dispatcher):
        from main import app

        with override_deps(
            app,
            {
                get_scheduler: scheduler,
                get_dispatcher: dispatcher,
                get_settings: Settings(enable_artwork_lookup=False),
            },
        ):
            async with _client(app) as client:
                resp = await client.post("/api/v1/artwork/trigger", json={"render_id": 1, "placeholder_ids": []})

        assert resp.status_code == 503


class TestGetArtwork:
    @pytest.mark.asyncio
    async def test_dispatch_then_found(self, app_client, dispatcher, lookup_service):
        params = {"title": "Let It Be", "artist": "The Beatles"}
        async with _client(app_client) as client:
            first = await client.get("/api/v1/artwork", params=params)
            await dispatcher.wait_idle()
            second = await client.get("/api/v1/artwork", params=params)

        assert first.json()["status"] == "dispatched"
        assert first.json()["artwork_url"] is None
        assert second.json() == {
            "title": "Let It Be",
            "artist": "The Beatles",
            "status": "found",
            "artwork_url": ART,
        }
        assert lookup_service.lookup.await_count == 1

    @pytest.mark.asyncio
    async def test_missing_params(self, app_client):
        async with _client(app_client) as client:
            resp = await client.get("/api/v1/artwork", params={"title": "Let It Be"})
        assert resp.status_code == 422
