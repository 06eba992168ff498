"""Frontdoor gateway API client."""

from .client import FrontdoorGatewayClient
from .models import (
    Bootstrap,
    ChallengeResponse,
    OnboardingState,
    SessionStatus,
    SuggestConfigResponse,
)
from .transport import RetryTransport

__all__ = [
    "Bootstrap",
    "ChallengeResponse",
    "FrontdoorGatewayClient",
    "OnboardingState",
    "RetryTransport",
    "SessionStatus",
    "SuggestConfigResponse",
]
