"""Challenge → signature → verify launch sequence."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from frontdoor.services.gateway.client import FrontdoorGatewayClient
from frontdoor.services.gateway.models import VerifyRequest

from . import metrics as sdk_metrics
from .addresses import parse_chain_id
from .context import SessionContext
from .errors import (
    ChallengeFailed,
    FrontdoorError,
    GatewayRequestError,
    OnboardingIncomplete,
    VerifyFailed,
)
from .onboarding import OnboardingHandshake
from .signing import SigningAdapter
from .validation import RuntimeConfig

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int], None]

TERMINAL_STATUSES = frozenset({"ready", "failed", "expired"})


@dataclass
class LaunchSession:
    session_id: str
    challenge_message: str
    status: str = "challenge_issued"
    instance_url: Optional[str] = None
    verify_url: Optional[str] = None
    version: Optional[str] = None
    progress: int = 0
    detail: Optional[str] = None
    error: Optional[str] = None

    @property
    def terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class LaunchProtocol:
    """Issue a challenge, sign it and submit the verification.

    Each step must succeed before the next starts.  Gateway failures are
    re-raised as :class:`ChallengeFailed` / :class:`VerifyFailed` with the
    backend's message unchanged.
    """

    def __init__(
        self,
        context: SessionContext,
        gateway: FrontdoorGatewayClient,
        *,
        signer: SigningAdapter | None = None,
        onboarding: OnboardingHandshake | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.context = context
        self.gateway = gateway
        self.signer = signer or SigningAdapter.from_context(context)
        self.onboarding = onboarding
        self.on_progress = on_progress

    def _progress(self, session: LaunchSession | None, label: str, value: int) -> None:
        if session is not None:
            session.progress = value
        logger.info("%s (%d%%)", label, value)
        if self.on_progress is not None:
            self.on_progress(label, value)

    async def launch(self, config: RuntimeConfig, *, objective: str | None = None) -> LaunchSession:
        try:
            session = await self._launch(config, objective)
        except FrontdoorError as exc:
            sdk_metrics.observe_launch(exc.code)
            raise
        sdk_metrics.observe_launch("verified")
        return session

    async def _launch(self, config: RuntimeConfig, objective: str | None) -> LaunchSession:
        identity = self.context.require_identity()
        generation = self.context.generation

        self._progress(None, "Issuing challenge", 8)
        try:
            challenge = await self.gateway.create_challenge(
                wallet_address=identity.wallet_address,
                delegated_user_id=identity.delegated_user_id,
                chain_id=parse_chain_id(identity.chain_id),
            )
        except GatewayRequestError as exc:
            raise ChallengeFailed(str(exc), details=exc.details) from exc
        if not challenge.session_id or not challenge.message:
            raise ChallengeFailed("Gateway returned an empty challenge.")
        self.context.ensure_current(generation)

        session = LaunchSession(
            session_id=challenge.session_id,
            challenge_message=challenge.message,
            version=None if challenge.version is None else str(challenge.version),
        )
        self._progress(session, "Challenge created. Awaiting wallet signature", 20)

        if objective is not None and self.onboarding is not None:
            try:
                await self.onboarding.ensure_ready(session.session_id, config, objective)
            except GatewayRequestError as exc:
                raise OnboardingIncomplete(str(exc), details=exc.details) from exc
            self.context.ensure_current(generation)

        signature = await self.signer.sign(session.challenge_message, identity.wallet_address)
        self.context.ensure_current(generation)
        self._progress(session, "Signature accepted. Starting provisioning", 38)

        request = VerifyRequest(
            session_id=session.session_id,
            wallet_address=identity.wallet_address,
            delegated_user_id=identity.delegated_user_id,
            identity_token=identity.identity_token,
            access_token=identity.access_token,
            message=session.challenge_message,
            signature=signature,
            config=config.to_payload(),
        )
        try:
            await self.gateway.verify(request)
        except GatewayRequestError as exc:
            raise VerifyFailed(str(exc), details=exc.details) from exc
        self.context.ensure_current(generation)

        session.status = "verified"
        self.context.runtime_config = config
        self.context.launch_session = session
        logger.info("Launch session %s verified", session.session_id)
        return session


__all__ = ["LaunchProtocol", "LaunchSession", "TERMINAL_STATUSES"]
