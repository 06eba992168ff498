"""Helpers shared by CLI commands."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Awaitable, TypeVar

import yaml  # type: ignore[import-untyped]

from frontdoor.foundation.config import UnifiedConfig
from frontdoor.sdk import configuration, runtime
from frontdoor.sdk import metrics as sdk_metrics
from frontdoor.sdk.errors import FrontdoorError
from frontdoor.services.gateway.client import FrontdoorGatewayClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def configure_logging(level: str | None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or "WARNING").upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def load_cli_config(path: str | None) -> UnifiedConfig:
    """Load ``path`` (or the discovered file) and refresh runtime flags."""

    if path:
        configuration.pin_config_file(path)
    runtime.reload()
    return configuration.get_unified_config()


def start_telemetry(cfg: UnifiedConfig) -> bool:
    """Serve Prometheus metrics when ``telemetry.metrics_port`` is set."""

    port = cfg.telemetry.metrics_port
    if not port:
        return False
    sdk_metrics.start_metrics_server(port)
    logger.info("Serving metrics on port %d", port)
    return True


def gateway_client(cfg: UnifiedConfig, gateway_url: str | None = None) -> FrontdoorGatewayClient:
    if gateway_url:
        cfg.gateway.url = gateway_url
    return FrontdoorGatewayClient.from_config(cfg.gateway)


def read_mapping_file(path: str) -> dict[str, Any]:
    """Read a YAML or JSON mapping from ``path`` (``-`` for stdin)."""

    text = sys.stdin.read() if path == "-" else Path(path).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise TypeError(f"{path}: expected a mapping")
    return data


def dump(data: Any, *, as_json: bool) -> str:
    if as_json:
        return json.dumps(data, indent=2, sort_keys=True, default=str)
    return yaml.safe_dump(data, sort_keys=False)


def report_error(exc: FrontdoorError) -> int:
    field = getattr(exc, "field", None)
    prefix = f"[{exc.code}]" + (f" {field}:" if field else "")
    print(f"{prefix} {exc}", file=sys.stderr)
    return 1


def run_async(coro: Awaitable[T]) -> T:
    return asyncio.run(coro)  # type: ignore[arg-type]


def add_common_arguments(parser: Any) -> None:
    parser.add_argument("--config", "-c", default=None, help="Path to frontdoor.yml")
    parser.add_argument("--gateway-url", default=None, help="Override gateway.url")
    parser.add_argument("--json", action="store_true", help="Output JSON instead of YAML")
