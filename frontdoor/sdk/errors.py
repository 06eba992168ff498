"""Error taxonomy for the identity and launch flow.

Every error carries a stable ``code`` so callers (CLI, UI glue) can branch
without parsing messages.  ``str(err)`` is always the user-facing text; for
gateway failures it is the backend-provided message verbatim.
"""

from __future__ import annotations

from typing import Any


class FrontdoorError(Exception):
    """Base class for all orchestration failures."""

    code: str = "frontdoor_error"
    #: Fatal errors must not be retried from the same context.
    fatal: bool = False

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ---------------------------------------------------------------------------
# Bootstrap
# ---------------------------------------------------------------------------
class FrontdoorDisabled(FrontdoorError):
    code = "frontdoor_disabled"
    fatal = True


class IdentityConfigMissing(FrontdoorError):
    code = "identity_config_missing"
    fatal = True


# ---------------------------------------------------------------------------
# Wallet
# ---------------------------------------------------------------------------
class NoWalletProvider(FrontdoorError):
    code = "no_wallet_provider"


class NoAccount(FrontdoorError):
    code = "no_account"


class WalletNotConnected(FrontdoorError):
    """A step that needs a bound wallet ran before ``connect``."""

    code = "wallet_not_connected"


class InvalidAddress(FrontdoorError):
    code = "invalid_address"


class IdentityMismatch(FrontdoorError):
    """A newly resolved wallet differs from the one bound to the session."""

    code = "identity_mismatch"


class ChainMismatch(FrontdoorError):
    code = "chain_mismatch"

    def __init__(self, required: int, actual: str | None) -> None:
        super().__init__(
            f"Wallet must be connected to chain {required} for this gateway.",
            details={"required": required, "actual": actual},
        )
        self.required = required
        self.actual = actual


class WalletRpcError(FrontdoorError):
    """Error object returned by a wallet transport (EIP-1193 style)."""

    code = "wallet_rpc_error"

    def __init__(self, message: str, *, rpc_code: int | None = None, data: Any = None) -> None:
        super().__init__(message, details={"rpc_code": rpc_code})
        self.rpc_code = rpc_code
        self.data = data


class SignatureFailed(FrontdoorError):
    code = "signature_failed"

    def __init__(self, message: str, *, last_error: BaseException | None = None, attempts: int = 0) -> None:
        super().__init__(message, details={"attempts": attempts})
        self.last_error = last_error
        self.attempts = attempts


# ---------------------------------------------------------------------------
# Delegated identity
# ---------------------------------------------------------------------------
class IdentityProviderError(FrontdoorError):
    """Failure reported by the delegated identity provider.

    ``provider_code`` is the structured error code when the provider sends
    one; classification falls back to message text when it does not.
    """

    code = "identity_provider_error"

    def __init__(self, message: str, *, provider_code: str | None = None) -> None:
        super().__init__(message, details={"provider_code": provider_code})
        self.provider_code = provider_code


class SiweAuthFailed(FrontdoorError):
    code = "siwe_auth_failed"


class TokenRetrievalFailed(FrontdoorError):
    code = "token_retrieval_failed"


class StaleSession(FrontdoorError):
    """The session context was reset while a request was in flight."""

    code = "stale_session"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
class ValidationError(FrontdoorError):
    """A runtime configuration invariant does not hold.

    ``field`` names the offending field so callers can highlight it.
    """

    code = "validation_error"

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message, details={"field": field})
        self.field = field


# ---------------------------------------------------------------------------
# Gateway / launch
# ---------------------------------------------------------------------------
class GatewayRequestError(FrontdoorError):
    """Non-success response (or transport failure) from the gateway."""

    code = "gateway_request_failed"

    def __init__(self, message: str, *, status_code: int | None = None, path: str | None = None) -> None:
        super().__init__(message, details={"status_code": status_code, "path": path})
        self.status_code = status_code
        self.path = path


class ChallengeFailed(FrontdoorError):
    code = "challenge_failed"


class VerifyFailed(FrontdoorError):
    code = "verify_failed"


class OnboardingIncomplete(FrontdoorError):
    code = "onboarding_incomplete"


class InvalidRedirect(FrontdoorError):
    code = "invalid_redirect"
    fatal = True


class PollingError(FrontdoorError):
    code = "polling_error"


__all__ = [
    "FrontdoorError",
    "FrontdoorDisabled",
    "IdentityConfigMissing",
    "NoWalletProvider",
    "NoAccount",
    "WalletNotConnected",
    "InvalidAddress",
    "IdentityMismatch",
    "ChainMismatch",
    "WalletRpcError",
    "SignatureFailed",
    "IdentityProviderError",
    "SiweAuthFailed",
    "TokenRetrievalFailed",
    "StaleSession",
    "ValidationError",
    "GatewayRequestError",
    "ChallengeFailed",
    "VerifyFailed",
    "OnboardingIncomplete",
    "InvalidRedirect",
    "PollingError",
]
