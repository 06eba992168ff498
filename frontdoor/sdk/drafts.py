"""Helpers for turning a suggested configuration into an editable draft."""

from __future__ import annotations

import re
import secrets
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

AUTH_KEY_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz23456789"
AUTH_KEY_LENGTH = 32
DEFAULT_SYMBOLS = ("BTC", "ETH")

_LIVE_OBJECTIVE = re.compile(r"live|execution|execute|trade|production|autonomous|deploy|24/7")
_STAGING_HOST = re.compile(r"stage|staging|-stg")


def generate_gateway_auth_key(length: int = AUTH_KEY_LENGTH) -> str:
    return "".join(secrets.choice(AUTH_KEY_ALPHABET) for _ in range(length))


def mask_key(value: str | None) -> str:
    """``abcd...wxyz`` for display; short values are shown as-is."""

    if not value or len(value) <= 8:
        return value or "-"
    return f"{value[:4]}...{value[-4:]}"


def normalize_draft(
    config: Mapping[str, Any],
    *,
    wallet_address: str | None = None,
    gateway_auth_key: str | None = None,
    now_ms: int | None = None,
) -> dict[str, Any]:
    """Fill the defaults a suggested config may leave out.

    ``accept_terms`` is left untouched; consent must come from the user.
    """

    out = dict(config)
    stamp = int(time.time() * 1000) if now_ms is None else now_ms
    out["profile_name"] = out.get("profile_name") or f"frontdoor_profile_{stamp}"
    out["profile_domain"] = out.get("profile_domain") or "general"
    out["custody_mode"] = out.get("custody_mode") or "user_wallet"
    out["verification_backend"] = out.get("verification_backend") or "eigencloud_primary"
    out["gateway_auth_key"] = (
        out.get("gateway_auth_key") or gateway_auth_key or generate_gateway_auth_key()
    )
    out["user_wallet_address"] = out.get("user_wallet_address") or wallet_address
    if not out.get("symbol_allowlist"):
        out["symbol_allowlist"] = list(DEFAULT_SYMBOLS)
    if out.get("enable_memory") is None:
        out["enable_memory"] = True
    return out


@dataclass(frozen=True)
class RuntimeDecision:
    mode: str
    title: str
    reason: str


def derive_runtime_decision(objective: str | None, config: Mapping[str, Any]) -> RuntimeDecision:
    """Pick a dedicated instance for execution-style objectives, shared otherwise."""

    live = bool(_LIVE_OBJECTIVE.search(str(objective or "").lower()))
    policy = str(config.get("paper_live_policy") or "").lower()
    if live or policy == "live_allowed":
        return RuntimeDecision(
            mode="dedicated",
            title="Dedicated enclaved instance",
            reason="Objective indicates continuous or execution-sensitive behavior.",
        )
    return RuntimeDecision(
        mode="shared",
        title="Shared runtime first",
        reason="Objective indicates research/planning posture.",
    )


def environment_label(hostname: str | None) -> str:
    host = str(hostname or "").strip().lower()
    if not host or host in {"localhost", "127.0.0.1"}:
        return "Local"
    if _STAGING_HOST.search(host):
        return "Staging"
    return "Production"


__all__ = [
    "AUTH_KEY_ALPHABET",
    "RuntimeDecision",
    "derive_runtime_decision",
    "environment_label",
    "generate_gateway_auth_key",
    "mask_key",
    "normalize_draft",
]
