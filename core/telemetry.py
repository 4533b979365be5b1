"""Telemetry module for tracking request performance with PostHog."""

import logging
import time
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

from posthog import Posthog

logger = logging.getLogger(__name__)

DISTINCT_ID = "song-catalogue-artwork-service"


@dataclass
class StepResult:
    """Result of a tracked step."""

    duration_ms: float
    success: bool = True
    error_type: str | None = None


@dataclass
class RequestTelemetry:
    """Tracks performance metrics for a single request."""

    steps: dict[str, StepResult] = field(default_factory=dict)
    start_time: float = field(default_factory=time.perf_counter)

    @contextmanager
    def track_step(self, step_name: str):
        """Context manager to time a step.

        Args:
            step_name: Name of the step being tracked
        """
        step_start = time.perf_counter()
        error_type = None

        try:
            yield
        except Exception as e:
            error_type = type(e).__name__
            raise
        finally:
            self.steps[step_name] = StepResult(
                duration_ms=(time.perf_counter() - step_start) * 1000,
                success=error_type is None,
                error_type=error_type,
            )

    def get_total_duration_ms(self) -> float:
        """Get total elapsed time since telemetry was created."""
        return (time.perf_counter() - self.start_time) * 1000

    def get_step_timings(self) -> dict[str, float]:
        """Get timing for each step in milliseconds."""
        return {f"{name}_ms": step.duration_ms for name, step in self.steps.items()}

    def send_to_posthog(
        self,
        posthog_client: Posthog,
        event: str,
        extra_properties: dict[str, Any] | None = None,
    ) -> None:
        """Send the summary event (with step timings and artwork stats) to PostHog.

        Args:
            posthog_client: PostHog client instance
            event: Event name for the summary event
            extra_properties: Additional properties to include in the event
        """
        posthog_client.capture(
            distinct_id=DISTINCT_ID,
            event=event,
            properties={
                "total_duration_ms": round(self.get_total_duration_ms(), 2),
                "steps": self.get_step_timings(),
                "artwork": get_artwork_stats() or _empty_stats(),
                **(extra_properties or {}),
            },
        )

        logger.debug(
            f"Sent telemetry '{event}': {len(self.steps)} steps, "
            f"total {self.get_total_duration_ms():.1f}ms"
        )


# ---------------------------------------------------------------------------
# Per-request artwork stats via ContextVar
# ---------------------------------------------------------------------------

_artwork_stats_var: ContextVar[dict | None] = ContextVar("artwork_stats", default=None)


def _empty_stats() -> dict:
    return {
        "cache_hits": 0,
        "pending_joins": 0,
        "lookups_dispatched": 0,
        "lookup_time_ms": 0.0,
    }


def init_artwork_stats() -> None:
    """Initialize artwork stats for the current request context."""
    _artwork_stats_var.set(_empty_stats())


def record_cache_hit() -> None:
    """Record an enrichment answered from the artwork record."""
    stats = _artwork_stats_var.get()
    if stats is not None:
        stats["cache_hits"] += 1


def record_pending_join() -> None:
    """Record an enrichment that joined an already in-flight lookup."""
    stats = _artwork_stats_var.get()
    if stats is not None:
        stats["pending_joins"] += 1


def record_lookup_dispatched() -> None:
    """Record a new outbound artwork lookup."""
    stats = _artwork_stats_var.get()
    if stats is not None:
        stats["lookups_dispatched"] += 1


def record_lookup_time(ms: float) -> None:
    """Accumulate artwork lookup time.

    Lookup tasks copy the request context when created, so they share the
    request's stats dict.
    """
    stats = _artwork_stats_var.get()
    if stats is not None:
        stats["lookup_time_ms"] += ms


def get_artwork_stats() -> dict | None:
    """Get artwork stats for the current request context, or None if not initialized."""
    return _artwork_stats_var.get()
