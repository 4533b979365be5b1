"""Unit test fixtures."""

from contextlib import contextmanager
from unittest.mock import Mock

import pytest

from config.settings import Settings


@contextmanager
def override_deps(app, overrides):
    """Set FastAPI dependency overrides and clear them on exit.

    Args:
        app: The FastAPI application.
        overrides: A dict mapping dependency functions to their replacement values.
    """

    def _make_override(val):
        return lambda: val

    for dep_fn, provider in overrides.items():
        app.dependency_overrides[dep_fn] = _make_override(provider)
    try:
        yield app
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def mock_settings(monkeypatch):
    """Settings with safe test defaults (no real DSNs or keys)."""
    monkeypatch.setenv("SENTRY_DSN", "")
    monkeypatch.setenv("POSTHOG_API_KEY", "")
    monkeypatch.setenv("ENABLE_TELEMETRY", "false")
    return Settings(
        sentry_dsn=None,
        posthog_api_key=None,
        enable_telemetry=False,
        catalogue_source="test_songs.json",
    )


@pytest.fixture
def mock_posthog_client():
    """Mock PostHog client."""
    client = Mock()
    client.capture = Mock()
    client.flush = Mock()
    client.shutdown = Mock()
    return client


@pytest.fixture(autouse=True)
def reset_state():
    """Reset the artwork stats ContextVar and dependency singletons between tests."""
    import core.dependencies as deps
    from core.telemetry import _artwork_stats_var

    token = _artwork_stats_var.set(None)
    yield
    _artwork_stats_var.reset(token)
    deps._artwork_client = None
    deps._dispatcher = None
    deps._scheduler = None
    deps._search_controller = None
    deps._posthog_client = None
    deps.reset_catalogue_store()
