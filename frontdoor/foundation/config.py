from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, FrozenSet, Mapping

import yaml  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)


_GATEWAY_ALIASES: dict[str, str] = {
    "gateway_url": "url",
    "base_url": "url",
    "timeout": "timeout_seconds",
    "retries": "read_retries",
}

_IDENTITY_ALIASES: dict[str, str] = {
    "privy_app_id": "app_id",
    "identity_app_id": "app_id",
    "privy_client_id": "client_id",
    "identity_client_id": "client_id",
    "provider_factory": "provider",
}

_POLLING_ALIASES: dict[str, str] = {
    "poll_interval_ms": "interval_ms",
    "floor_ms": "interactive_floor_ms",
}


@dataclass
class GatewayConfig:
    """Where the frontdoor gateway lives and how to talk to it."""

    url: str = field(default="http://localhost:8000", metadata={"env": "FRONTDOOR_GATEWAY_URL"})
    base_path: str = field(default="/api/frontdoor", metadata={"env": "FRONTDOOR_GATEWAY_BASE_PATH"})
    timeout_seconds: float = field(default=10.0, metadata={"env": "FRONTDOOR_HTTP_TIMEOUT"})
    read_retries: int = field(default=2, metadata={"env": "FRONTDOOR_HTTP_READ_RETRIES"})


@dataclass
class IdentityConfig:
    """Delegated identity provider wiring.

    ``provider`` is a ``module:factory`` path; the factory receives the
    bootstrap payload and returns an ``IdentityProvider``.
    """

    provider: str | None = field(default=None, metadata={"env": "FRONTDOOR_IDENTITY_PROVIDER"})
    app_id: str | None = field(default=None, metadata={"env": "FRONTDOOR_IDENTITY_APP_ID"})
    client_id: str | None = field(default=None, metadata={"env": "FRONTDOOR_IDENTITY_CLIENT_ID"})
    origin: str | None = field(default=None, metadata={"env": "FRONTDOOR_ORIGIN"})
    domain: str | None = field(default=None, metadata={"env": "FRONTDOOR_SIWE_DOMAIN"})


@dataclass
class ChainConfig:
    """Host substring -> required network id."""

    required_networks: dict[str, int] = field(
        default_factory=lambda: {"verify-sepolia": 11155111}
    )


@dataclass
class WalletConfig:
    rpc_url: str | None = field(default=None, metadata={"env": "FRONTDOOR_WALLET_RPC_URL"})
    vendor: str = field(default="generic", metadata={"env": "FRONTDOOR_WALLET_VENDOR"})
    timeout_seconds: float = field(default=120.0, metadata={"env": "FRONTDOOR_WALLET_TIMEOUT"})


@dataclass
class PollingConfig:
    interval_ms: int = field(default=1500, metadata={"env": "FRONTDOOR_POLL_INTERVAL_MS"})
    interactive_floor_ms: int = field(default=1200, metadata={"env": "FRONTDOOR_POLL_FLOOR_MS"})
    max_consecutive_failures: int | None = field(
        default=None, metadata={"env": "FRONTDOOR_POLL_MAX_FAILURES"}
    )
    redirect_delay_seconds: float = field(
        default=0.0, metadata={"env": "FRONTDOOR_REDIRECT_DELAY"}
    )


@dataclass
class TelemetryConfig:
    metrics_port: int | None = field(default=None, metadata={"env": "FRONTDOOR_METRICS_PORT"})


CONFIG_SECTION_NAMES: tuple[str, ...] = (
    "gateway",
    "identity",
    "chain",
    "wallet",
    "polling",
    "telemetry",
)


@dataclass
class UnifiedConfig:
    """Configuration aggregating every client section."""

    gateway: GatewayConfig = field(default_factory=GatewayConfig)
    identity: IdentityConfig = field(default_factory=IdentityConfig)
    chain: ChainConfig = field(default_factory=ChainConfig)
    wallet: WalletConfig = field(default_factory=WalletConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)
    present_sections: FrozenSet[str] = field(default_factory=frozenset)


def find_config_file(cwd: Path | None = None) -> str | None:
    """Return the first discoverable configuration file in ``cwd``."""

    base = Path.cwd() if cwd is None else cwd

    for name in ("frontdoor.yml", "frontdoor.yaml"):
        candidate = base / name
        if candidate.is_file():
            return str(candidate)
    return None


def _read_config_mapping(path: str) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as fh:
            try:
                data = yaml.safe_load(fh) or {}
            except yaml.YAMLError as exc:
                logger.error("Failed to parse configuration file %s: %s", path, exc)
                raise ValueError(f"Failed to parse configuration file {path}") from exc
    except (FileNotFoundError, OSError) as exc:
        logger.error("Unable to open configuration file %s: %s", path, exc)
        raise

    if not isinstance(data, dict):
        raise TypeError("Unified config must be a mapping")
    return data


def _extract_sections(data: Mapping[str, Any]) -> tuple[dict[str, dict[str, Any]], FrozenSet[str]]:
    present_sections: FrozenSet[str] = frozenset(
        section
        for section in CONFIG_SECTION_NAMES
        if section in data and isinstance(data.get(section), dict)
    )

    sections: dict[str, dict[str, Any]] = {}
    for section_name in CONFIG_SECTION_NAMES:
        raw_section = data.get(section_name, {})
        if raw_section is None:
            raw_section = {}
        if not isinstance(raw_section, dict):
            raise TypeError(f"{section_name} section must be a mapping")
        sections[section_name] = dict(raw_section)
    return sections, present_sections


def _apply_aliases(section: Mapping[str, Any], aliases: Mapping[str, str], *, logger_prefix: str) -> dict[str, Any]:
    normalized = dict(section)
    for alias, canonical in aliases.items():
        if canonical in normalized:
            continue
        if alias in normalized:
            logger.warning(
                "%s: key '%s' is deprecated; use '%s' instead",
                logger_prefix,
                alias,
                canonical,
            )
            normalized[canonical] = normalized.pop(alias)
    return normalized


def _coerce_env(raw: str, default: Any) -> Any:
    if isinstance(default, bool):
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return raw


def apply_env_overrides(section: Any, environ: Mapping[str, str] | None = None) -> Any:
    """Overlay environment variables declared in field metadata onto ``section``."""

    env = os.environ if environ is None else environ
    for f in fields(section):
        key = f.metadata.get("env")
        if not key or key not in env:
            continue
        raw = env[key]
        current = getattr(section, f.name)
        try:
            if current is not None:
                value = _coerce_env(raw, current)
            elif str(f.type).startswith("int"):
                value = int(raw) if raw.strip() else None
            else:
                value = raw or None
        except ValueError as exc:
            raise ValueError(f"{key} has an invalid value: {raw!r}") from exc
        setattr(section, f.name, value)
    return section


def _build(cls: type, data: Dict[str, Any], section_name: str) -> Any:
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise TypeError(f"{section_name}: unknown keys {', '.join(unknown)}")
    return cls(**data)


def load_config(path: str | None = None, *, environ: Mapping[str, str] | None = None) -> UnifiedConfig:
    """Parse YAML and populate :class:`UnifiedConfig`.

    With ``path=None`` only defaults and environment overrides apply.
    """

    data = _read_config_mapping(path) if path else {}
    sections, present_sections = _extract_sections(data)

    gateway_data = _apply_aliases(sections["gateway"], _GATEWAY_ALIASES, logger_prefix="gateway")
    identity_data = _apply_aliases(sections["identity"], _IDENTITY_ALIASES, logger_prefix="identity")
    polling_data = _apply_aliases(sections["polling"], _POLLING_ALIASES, logger_prefix="polling")

    chain_data = sections["chain"]
    networks = chain_data.get("required_networks")
    if networks is not None:
        if not isinstance(networks, dict):
            raise TypeError("chain.required_networks must be a mapping")
        chain_data["required_networks"] = {
            str(k).lower(): int(v, 0) if isinstance(v, str) else int(v) for k, v in networks.items()
        }

    unified = UnifiedConfig(
        gateway=_build(GatewayConfig, gateway_data, "gateway"),
        identity=_build(IdentityConfig, identity_data, "identity"),
        chain=_build(ChainConfig, chain_data, "chain"),
        wallet=_build(WalletConfig, sections["wallet"], "wallet"),
        polling=_build(PollingConfig, polling_data, "polling"),
        telemetry=_build(TelemetryConfig, sections["telemetry"], "telemetry"),
        present_sections=present_sections,
    )
    for section_name in CONFIG_SECTION_NAMES:
        apply_env_overrides(getattr(unified, section_name), environ)
    return unified


__all__ = [
    "CONFIG_SECTION_NAMES",
    "ChainConfig",
    "GatewayConfig",
    "IdentityConfig",
    "PollingConfig",
    "TelemetryConfig",
    "UnifiedConfig",
    "WalletConfig",
    "apply_env_overrides",
    "find_config_file",
    "load_config",
]
