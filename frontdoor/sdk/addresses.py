"""EVM address and network id normalization helpers."""

from __future__ import annotations

import re
from typing import Any

from .errors import InvalidAddress

_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
_HEX_RE = re.compile(r"^0x[0-9a-fA-F]+$")
_DEC_RE = re.compile(r"^\d+$")


def is_hex_address(value: Any) -> bool:
    return isinstance(value, str) and bool(_ADDRESS_RE.fullmatch(value.strip()))


def normalize_address(value: Any, *, field: str = "wallet_address") -> str:
    """Return ``value`` as a lowercase ``0x`` + 40 hex address.

    Raises :class:`InvalidAddress` for anything else.  Idempotent.
    """

    text = str(value or "").strip()
    if not _ADDRESS_RE.fullmatch(text):
        raise InvalidAddress(
            "Wallet addresses must be 0x-prefixed 40-hex values.",
            details={"field": field},
        )
    return text.lower()


def normalize_optional_address(value: Any, *, field: str = "wallet_address") -> str | None:
    if value is None or not str(value).strip():
        return None
    return normalize_address(value, field=field)


def normalize_chain_id(value: Any) -> str:
    """Normalize a network id to lowercase ``0x`` hex, or ``""`` if unusable."""

    if isinstance(value, bool):
        return ""
    if isinstance(value, int):
        return hex(value) if value > 0 else ""
    if not isinstance(value, str):
        return ""
    raw = value.strip()
    if not raw:
        return ""
    if raw.lower().startswith("eip155:"):
        raw = raw[len("eip155:") :]
    if _HEX_RE.fullmatch(raw):
        parsed = int(raw, 16)
    elif _DEC_RE.fullmatch(raw):
        parsed = int(raw, 10)
    else:
        return ""
    return hex(parsed) if parsed > 0 else ""


def parse_chain_id(value: Any) -> int | None:
    normalized = normalize_chain_id(value)
    if not normalized:
        return None
    return int(normalized, 16)


def to_hex_utf8(message: str) -> str:
    return "0x" + str(message or "").encode("utf-8").hex()


__all__ = [
    "is_hex_address",
    "normalize_address",
    "normalize_optional_address",
    "normalize_chain_id",
    "parse_chain_id",
    "to_hex_utf8",
]
