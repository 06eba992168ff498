from __future__ import annotations

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class _GatewayModel(BaseModel):
    # The gateway grows fields faster than clients; ignore what we don't use.
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Bootstrap(_GatewayModel):
    enabled: bool = False
    require_delegated_identity: bool = Field(
        default=False,
        validation_alias=AliasChoices("require_delegated_identity", "require_privy"),
    )
    identity_app_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("identity_app_id", "privy_app_id"),
    )
    identity_client_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("identity_client_id", "privy_client_id"),
    )
    poll_interval_ms: Optional[int] = None
    mandatory_steps: list[str] = Field(default_factory=list)


class SuggestConfigRequest(_GatewayModel):
    wallet_address: str
    intent: str
    domain: Optional[str] = None
    gateway_auth_key: Optional[str] = None


class SuggestConfigResponse(_GatewayModel):
    config: dict[str, Any] = Field(default_factory=dict)
    assumptions: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class ChallengeRequest(_GatewayModel):
    wallet_address: str
    delegated_user_id: Optional[str] = None
    chain_id: Optional[int] = None


class ChallengeResponse(_GatewayModel):
    session_id: str
    message: str
    version: Optional[int | str] = None


class VerifyRequest(_GatewayModel):
    session_id: str
    wallet_address: str
    delegated_user_id: Optional[str] = None
    identity_token: Optional[str] = None
    access_token: Optional[str] = None
    message: str
    signature: str
    config: dict[str, Any]


class SessionStatus(_GatewayModel):
    session_id: Optional[str] = None
    status: str = ""
    detail: Optional[str] = None
    instance_url: Optional[str] = None
    verify_url: Optional[str] = None
    error: Optional[str] = None
    profile_name: Optional[str] = None
    eigen_app_id: Optional[str] = None


class OnboardingState(_GatewayModel):
    session_id: Optional[str] = None
    objective: Optional[str] = None
    missing_fields: list[str] = Field(default_factory=list)
    current_step: Optional[str] = None
    completed: bool = False

    @property
    def ready_to_sign(self) -> bool:
        return self.completed or self.current_step == "ready_to_sign"


class OnboardingChatRequest(_GatewayModel):
    session_id: str
    message: str


class OnboardingChatResponse(_GatewayModel):
    state: OnboardingState = Field(default_factory=OnboardingState)


__all__ = [
    "Bootstrap",
    "ChallengeRequest",
    "ChallengeResponse",
    "OnboardingChatRequest",
    "OnboardingChatResponse",
    "OnboardingState",
    "SessionStatus",
    "SuggestConfigRequest",
    "SuggestConfigResponse",
    "VerifyRequest",
]
