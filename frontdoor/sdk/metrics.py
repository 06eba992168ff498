from __future__ import annotations

"""Prometheus metrics for the identity and launch flow."""

from collections.abc import Sequence

from prometheus_client import (
    generate_latest,
    start_http_server,
    REGISTRY as global_registry,
)
from frontdoor.foundation.metrics_factory import (
    get_or_create_counter,
    get_or_create_gauge,
    reset_metrics as reset_registered_metrics,
)

_REGISTERED_METRICS: set[str] = set()

#: Numeric encoding of :class:`~frontdoor.sdk.poller.PollerState` for the gauge.
POLLER_STATE_VALUES = {"idle": 0, "polling": 1, "terminal": 2}


def _counter(name: str, documentation: str, labelnames: Sequence[str] | None = None):
    metric = get_or_create_counter(name, documentation, labelnames)
    _REGISTERED_METRICS.add(getattr(metric, "_name", name))
    return metric


def _gauge(name: str, documentation: str, labelnames: Sequence[str] | None = None):
    metric = get_or_create_gauge(name, documentation, labelnames)
    _REGISTERED_METRICS.add(getattr(metric, "_name", name))
    return metric


signing_attempts_total = _counter(
    "frontdoor_signing_attempts_total",
    "personal_sign attempts by outcome",
    ["outcome"],
)

siwe_attempts_total = _counter(
    "frontdoor_siwe_attempts_total",
    "SIWE login attempts by outcome",
    ["outcome"],
)

launch_total = _counter(
    "frontdoor_launch_total",
    "Launch protocol runs by outcome",
    ["outcome"],
)

session_polls_total = _counter(
    "frontdoor_session_polls_total",
    "Session status polls by reported status",
    ["status"],
)

poller_state = _gauge(
    "frontdoor_poller_state",
    "Current session poller state (0=idle, 1=polling, 2=terminal)",
)


def observe_signing_attempt(outcome: str) -> None:
    signing_attempts_total.labels(outcome=outcome).inc()


def observe_siwe_attempt(outcome: str) -> None:
    siwe_attempts_total.labels(outcome=outcome).inc()


def observe_launch(outcome: str) -> None:
    launch_total.labels(outcome=outcome).inc()


def observe_session_poll(status: str) -> None:
    session_polls_total.labels(status=status or "unknown").inc()


def set_poller_state(state: str) -> None:
    poller_state.set(POLLER_STATE_VALUES.get(state, 0))


def start_metrics_server(port: int = 8000) -> None:
    """Expose metrics via an HTTP server."""
    start_http_server(port, registry=global_registry)


def collect_metrics() -> str:
    """Return metrics in text exposition format."""
    text: str = generate_latest(global_registry).decode()
    return text


def reset_metrics() -> None:
    """Reset metric values for tests."""
    reset_registered_metrics(_REGISTERED_METRICS)


__all__ = [
    "collect_metrics",
    "launch_total",
    "observe_launch",
    "observe_session_poll",
    "observe_signing_attempt",
    "observe_siwe_attempt",
    "poller_state",
    "reset_metrics",
    "session_polls_total",
    "set_poller_state",
    "signing_attempts_total",
    "siwe_attempts_total",
    "start_metrics_server",
]
