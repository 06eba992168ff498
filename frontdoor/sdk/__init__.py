"""Frontdoor client SDK.

Primary API:
  Launchpad       Bootstrap → connect → authenticate → validate → launch → poll
  SessionContext  Per-session state with a single ``reset``
  validate        Runtime profile validation

Example:
    from frontdoor.sdk import Launchpad
    from frontdoor.foundation.config import load_config

    pad = Launchpad.from_config(load_config("frontdoor.yml"), wallet_transport=wallet)
    await pad.connect()
    session = await pad.run(draft, objective="paper trade BTC")

For the individual stages, import from submodules:
    from frontdoor.sdk.signing import SigningAdapter
    from frontdoor.sdk.identity import DelegatedIdentitySession
"""

from __future__ import annotations

import importlib
from typing import Any, Mapping

__all__ = [
    "Launchpad",
    "SessionContext",
    "Identity",
    "RuntimeConfig",
    "validate",
    "FrontdoorError",
]

_PUBLIC_API: Mapping[str, tuple[str, str]] = {
    "Launchpad": ("frontdoor.sdk.orchestrator", "Launchpad"),
    "SessionContext": ("frontdoor.sdk.context", "SessionContext"),
    "Identity": ("frontdoor.sdk.context", "Identity"),
    "RuntimeConfig": ("frontdoor.sdk.validation", "RuntimeConfig"),
    "validate": ("frontdoor.sdk.validation", "validate"),
    "FrontdoorError": ("frontdoor.sdk.errors", "FrontdoorError"),
}

# Available but not advertised in __all__
_EXTENDED_API: Mapping[str, tuple[str, str | None]] = {
    "ChainPolicy": ("frontdoor.sdk.chain_policy", "ChainPolicy"),
    "WalletIdentitySource": ("frontdoor.sdk.wallet", "WalletIdentitySource"),
    "WalletVendor": ("frontdoor.sdk.wallet", "WalletVendor"),
    "JsonRpcWalletTransport": ("frontdoor.sdk.wallet", "JsonRpcWalletTransport"),
    "SigningAdapter": ("frontdoor.sdk.signing", "SigningAdapter"),
    "DelegatedIdentitySession": ("frontdoor.sdk.identity", "DelegatedIdentitySession"),
    "LaunchProtocol": ("frontdoor.sdk.launch", "LaunchProtocol"),
    "LaunchSession": ("frontdoor.sdk.launch", "LaunchSession"),
    "SessionPoller": ("frontdoor.sdk.poller", "SessionPoller"),
    "OnboardingHandshake": ("frontdoor.sdk.onboarding", "OnboardingHandshake"),
    "sanitize": ("frontdoor.sdk.redirect", "sanitize"),
    "normalize_address": ("frontdoor.sdk.addresses", "normalize_address"),
    "normalize_draft": ("frontdoor.sdk.drafts", "normalize_draft"),
    "metrics": ("frontdoor.sdk.metrics", None),
}

_ALL_API = {**_PUBLIC_API, **_EXTENDED_API}


def __getattr__(name: str) -> Any:
    target = _ALL_API.get(name)
    if target is None:
        raise AttributeError(name)
    module_path, attr = target
    module = importlib.import_module(module_path)
    value = module if attr is None else getattr(module, attr)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(set(__all__))
