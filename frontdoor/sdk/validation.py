"""Runtime profile validation.

``validate`` turns loosely typed field values (form input, a suggested
draft, a YAML file) into an immutable :class:`RuntimeConfig`.  Checks run in
a fixed order and stop at the first failure; the raised
:class:`~frontdoor.sdk.errors.ValidationError` names the offending field.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .addresses import normalize_optional_address
from .context import Identity
from .errors import InvalidAddress, ValidationError

CUSTODY_MODES = ("operator_wallet", "user_wallet", "dual_mode")
VERIFICATION_BACKENDS = ("eigencloud_primary", "fallback_only")
AUTH_SCHEMES = ("bearer", "api_key")

OPERATOR_CUSTODY = frozenset({"operator_wallet", "dual_mode"})
USER_CUSTODY = frozenset({"user_wallet", "dual_mode"})

#: (minimum, maximum) for integer fields, inclusive.
INTEGER_RANGES: dict[str, tuple[int, int]] = {
    "request_timeout_ms": (1000, 120000),
    "max_retries": (0, 10),
    "retry_backoff_ms": (0, 30000),
    "max_position_size_usd": (1, 10_000_000),
    "leverage_cap": (1, 20),
    "max_allocation_usd": (1, 10_000_000),
    "per_trade_notional_cap_usd": (1, 10_000_000),
    "max_leverage": (1, 20),
    "max_slippage_bps": (1, 5000),
    "verification_eigencloud_timeout_ms": (1, 120000),
}

# Fields that end up in file paths or URLs on the provisioned instance.
PATH_LIKE_FIELDS = (
    "verification_fallback_chain_path",
    "hyperliquid_api_base_url",
    "hyperliquid_ws_url",
    "verification_eigencloud_endpoint",
)

_WHITESPACE = re.compile(r"\s")
_NEWLINE = re.compile(r"[\r\n]")


class RuntimeConfig(BaseModel):
    """A validated runtime profile, frozen once built."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    config_version: int = 2
    profile_domain: str = "general"
    domain_overrides: dict[str, Any] = Field(default_factory=dict)
    inference_summary: str | None = None
    inference_confidence: float | None = None
    inference_warnings: list[str] = Field(default_factory=list)

    profile_name: str
    hyperliquid_network: str
    paper_live_policy: str
    hyperliquid_api_base_url: str | None = None
    hyperliquid_ws_url: str | None = None
    request_timeout_ms: int
    max_retries: int
    retry_backoff_ms: int
    max_position_size_usd: int
    leverage_cap: int
    max_allocation_usd: int
    per_trade_notional_cap_usd: int
    max_leverage: int
    max_slippage_bps: int
    symbol_allowlist: list[str]
    symbol_denylist: list[str] = Field(default_factory=list)
    custody_mode: Literal["operator_wallet", "user_wallet", "dual_mode"]
    operator_wallet_address: str | None = None
    user_wallet_address: str | None = None
    vault_address: str | None = None
    information_sharing_scope: str
    kill_switch_enabled: bool = False
    kill_switch_behavior: str
    enable_memory: bool = False
    gateway_auth_key: str = Field(repr=False)
    eigencloud_auth_key: str | None = Field(default=None, repr=False)
    verification_backend: Literal["eigencloud_primary", "fallback_only"] = "eigencloud_primary"
    verification_eigencloud_endpoint: str | None = None
    verification_eigencloud_auth_scheme: Literal["bearer", "api_key"] = "bearer"
    verification_eigencloud_timeout_ms: int = 5000
    verification_fallback_enabled: bool = True
    verification_fallback_signing_key_id: str | None = None
    verification_fallback_chain_path: str | None = None
    verification_fallback_require_signed_receipts: bool = True
    accept_terms: bool

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON body sent as ``config`` to the gateway."""

        return self.model_dump(mode="json")


# ---------------------------------------------------------------------------
# Field readers
# ---------------------------------------------------------------------------


def _text(raw: Mapping[str, Any], name: str) -> str:
    value = raw.get(name)
    return "" if value is None else str(value).strip()


def _required(raw: Mapping[str, Any], name: str, default: str | None = None) -> str:
    value = _text(raw, name) or (default or "")
    if not value:
        raise ValidationError(name, f"{name} is required.")
    return value


def _optional(raw: Mapping[str, Any], name: str) -> str | None:
    return _text(raw, name) or None


def _integer(raw: Mapping[str, Any], name: str, default: int | None = None) -> int:
    low, high = INTEGER_RANGES[name]
    value = raw.get(name)
    if (value is None or value == "") and default is not None:
        value = default
    if isinstance(value, bool):
        raise ValidationError(name, f"{name} must be a valid number.")
    try:
        number = float(str(value).strip()) if not isinstance(value, (int, float)) else float(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(name, f"{name} must be a valid number.") from None
    if not math.isfinite(number):
        raise ValidationError(name, f"{name} must be a valid number.")
    result = math.floor(number)
    if result < low or result > high:
        raise ValidationError(name, f"{name} must be between {low} and {high}.")
    return result


def _boolean(raw: Mapping[str, Any], name: str, default: bool = False) -> bool:
    value = raw.get(name)
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"0", "false", "no", "off"}:
        return False
    raise ValidationError(name, f"{name} must be a boolean.")


def parse_symbols(value: Any) -> list[str]:
    """Split a comma list (or sequence) into trimmed upper-case symbols."""

    if value is None:
        return []
    items = value if isinstance(value, (list, tuple)) else str(value).split(",")
    return [s for s in (str(item).strip().upper() for item in items) if s]


def _wallet(raw: Mapping[str, Any], name: str) -> str | None:
    try:
        return normalize_optional_address(raw.get(name), field=name)
    except InvalidAddress as exc:
        raise ValidationError(name, str(exc)) from None


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate(raw: Mapping[str, Any], identity: Identity | str | None) -> RuntimeConfig:
    """Validate ``raw`` against the wallet bound in ``identity``.

    ``identity`` may be the bound :class:`Identity`, a bare wallet address or
    ``None`` when no wallet is connected.  The returned config carries the
    effective user wallet (the bound wallet when the field was left blank).
    """

    # Field-level reads, in form order.
    profile_name = _text(raw, "profile_name")
    hyperliquid_network = _required(raw, "hyperliquid_network")
    paper_live_policy = _required(raw, "paper_live_policy")
    api_base_url = _optional(raw, "hyperliquid_api_base_url")
    ws_url = _optional(raw, "hyperliquid_ws_url")
    ints = {
        name: _integer(raw, name, 5000 if name == "verification_eigencloud_timeout_ms" else None)
        for name in INTEGER_RANGES
    }
    symbol_allowlist = parse_symbols(raw.get("symbol_allowlist"))
    symbol_denylist = parse_symbols(raw.get("symbol_denylist"))
    custody_mode = _required(raw, "custody_mode")
    operator_wallet = _wallet(raw, "operator_wallet_address")
    user_wallet = _wallet(raw, "user_wallet_address")
    vault_address = _wallet(raw, "vault_address")
    information_sharing_scope = _required(raw, "information_sharing_scope")
    kill_switch_enabled = _boolean(raw, "kill_switch_enabled")
    kill_switch_behavior = _required(raw, "kill_switch_behavior")
    enable_memory = _boolean(raw, "enable_memory")
    gateway_auth_key = _required(raw, "gateway_auth_key")
    eigencloud_auth_key = _optional(raw, "eigencloud_auth_key")
    verification_backend = _required(raw, "verification_backend", "eigencloud_primary")
    eigencloud_endpoint = _optional(raw, "verification_eigencloud_endpoint")
    auth_scheme = _required(raw, "verification_eigencloud_auth_scheme", "bearer")
    fallback_enabled = _boolean(raw, "verification_fallback_enabled", True)
    fallback_signing_key_id = _optional(raw, "verification_fallback_signing_key_id")
    fallback_chain_path = _optional(raw, "verification_fallback_chain_path")
    require_signed = _boolean(raw, "verification_fallback_require_signed_receipts", True)
    accept_terms = _boolean(raw, "accept_terms")

    # Cross-field invariants.
    if not profile_name:
        raise ValidationError("profile_name", "Profile name is required.")
    if not accept_terms:
        raise ValidationError("accept_terms", "Risk acknowledgement is required.")
    if ints["per_trade_notional_cap_usd"] > ints["max_allocation_usd"]:
        raise ValidationError(
            "per_trade_notional_cap_usd",
            "Per-trade cap must be less than or equal to max allocation.",
        )
    if ints["max_leverage"] > ints["leverage_cap"]:
        raise ValidationError(
            "max_leverage", "Copy max leverage must be less than or equal to leverage cap."
        )
    if not symbol_allowlist:
        raise ValidationError("symbol_allowlist", "Symbol allowlist must include at least one market.")
    if custody_mode not in CUSTODY_MODES:
        raise ValidationError("custody_mode", "Invalid custody mode.")
    if custody_mode in OPERATOR_CUSTODY and not operator_wallet:
        raise ValidationError(
            "operator_wallet_address",
            "Operator wallet address is required for operator_wallet/dual_mode.",
        )

    bound = identity.wallet_address if isinstance(identity, Identity) else identity
    try:
        connected_wallet = normalize_optional_address(bound)
    except InvalidAddress as exc:
        raise ValidationError("wallet_address", str(exc)) from None
    effective_user_wallet = user_wallet or connected_wallet
    if custody_mode in USER_CUSTODY:
        if not connected_wallet:
            raise ValidationError(
                "wallet_address",
                "Connected wallet address is required for user_wallet/dual_mode.",
            )
        if effective_user_wallet != connected_wallet:
            raise ValidationError(
                "user_wallet_address", "User wallet address must match the connected wallet."
            )

    if not 16 <= len(gateway_auth_key) <= 128 or _WHITESPACE.search(gateway_auth_key):
        raise ValidationError(
            "gateway_auth_key", "Gateway auth key must be 16-128 chars with no whitespace."
        )
    if verification_backend not in VERIFICATION_BACKENDS:
        raise ValidationError("verification_backend", "Invalid verification backend.")
    if auth_scheme not in AUTH_SCHEMES:
        raise ValidationError(
            "verification_eigencloud_auth_scheme", "Invalid verification auth scheme."
        )
    if verification_backend == "fallback_only" and not fallback_enabled:
        raise ValidationError(
            "verification_fallback_enabled",
            "Fallback must be enabled when verification backend is fallback_only.",
        )

    path_values = {
        "verification_fallback_chain_path": fallback_chain_path,
        "hyperliquid_api_base_url": api_base_url,
        "hyperliquid_ws_url": ws_url,
        "verification_eigencloud_endpoint": eigencloud_endpoint,
    }
    for name in PATH_LIKE_FIELDS:
        value = path_values[name]
        if value and _NEWLINE.search(value):
            raise ValidationError(name, f"{name} must not include newlines.")

    return RuntimeConfig(
        profile_domain=_text(raw, "profile_domain") or "general",
        profile_name=profile_name,
        hyperliquid_network=hyperliquid_network,
        paper_live_policy=paper_live_policy,
        hyperliquid_api_base_url=api_base_url,
        hyperliquid_ws_url=ws_url,
        symbol_allowlist=symbol_allowlist,
        symbol_denylist=symbol_denylist,
        custody_mode=custody_mode,
        operator_wallet_address=operator_wallet,
        user_wallet_address=effective_user_wallet,
        vault_address=vault_address,
        information_sharing_scope=information_sharing_scope,
        kill_switch_enabled=kill_switch_enabled,
        kill_switch_behavior=kill_switch_behavior,
        enable_memory=enable_memory,
        gateway_auth_key=gateway_auth_key,
        eigencloud_auth_key=eigencloud_auth_key,
        verification_backend=verification_backend,
        verification_eigencloud_endpoint=eigencloud_endpoint,
        verification_eigencloud_auth_scheme=auth_scheme,
        verification_fallback_enabled=fallback_enabled,
        verification_fallback_signing_key_id=fallback_signing_key_id,
        verification_fallback_chain_path=fallback_chain_path,
        verification_fallback_require_signed_receipts=require_signed,
        accept_terms=accept_terms,
        **ints,
    )


__all__ = [
    "AUTH_SCHEMES",
    "CUSTODY_MODES",
    "INTEGER_RANGES",
    "PATH_LIKE_FIELDS",
    "RuntimeConfig",
    "VERIFICATION_BACKENDS",
    "parse_symbols",
    "validate",
]
