"""Shared runtime flags for SDK features sourced from configuration."""

from __future__ import annotations

from typing import Any

from . import configuration

HTTP_TIMEOUT_SECONDS: float = 10.0
HTTP_READ_RETRIES: int = 2
POLL_INTERVAL_MS: int = 1500
POLL_FLOOR_MS: int = 1200
POLL_MAX_CONSECUTIVE_FAILURES: int | None = None


def _reload_from_config(cfg: Any | None = None) -> None:
    global HTTP_TIMEOUT_SECONDS, HTTP_READ_RETRIES, POLL_INTERVAL_MS
    global POLL_FLOOR_MS, POLL_MAX_CONSECUTIVE_FAILURES

    unified = cfg or configuration.get_unified_config()
    gateway_cfg = unified.gateway
    polling_cfg = unified.polling

    HTTP_TIMEOUT_SECONDS = float(gateway_cfg.timeout_seconds)
    HTTP_READ_RETRIES = max(0, int(gateway_cfg.read_retries))
    POLL_INTERVAL_MS = max(1, int(polling_cfg.interval_ms))
    POLL_FLOOR_MS = max(0, int(polling_cfg.interactive_floor_ms))
    POLL_MAX_CONSECUTIVE_FAILURES = polling_cfg.max_consecutive_failures


def reload() -> None:
    """Reload runtime settings from the unified configuration."""

    cfg = configuration.reload()
    _reload_from_config(cfg)


def effective_poll_interval_ms(declared_ms: int | None, *, interactive: bool = False) -> int:
    """Return the poll interval to use for a bootstrap-declared value.

    Interactive callers never poll faster than ``POLL_FLOOR_MS``.
    """

    interval = int(declared_ms) if declared_ms and int(declared_ms) > 0 else POLL_INTERVAL_MS
    if interactive:
        interval = max(interval, POLL_FLOOR_MS)
    return interval


_reload_from_config()


__all__ = [
    "HTTP_READ_RETRIES",
    "HTTP_TIMEOUT_SECONDS",
    "POLL_FLOOR_MS",
    "POLL_INTERVAL_MS",
    "POLL_MAX_CONSECUTIVE_FAILURES",
    "effective_poll_interval_ms",
    "reload",
]
