"""Drive the gateway onboarding conversation to ``ready_to_sign``."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

from frontdoor.services.gateway.client import FrontdoorGatewayClient
from frontdoor.services.gateway.models import OnboardingState

from .errors import OnboardingIncomplete

logger = logging.getLogger(__name__)

_ASSIGNMENT_UNSAFE = re.compile(r"[\n\r,;=]")


def build_assignments(profile_name: str | None) -> str:
    """Return the field assignment message for the onboarding chat."""

    name = _ASSIGNMENT_UNSAFE.sub("_", str(profile_name or "frontdoor_profile"))
    return f"profile_name={name}, gateway_auth_key=__from_config__, accept_terms=true"


def _profile_name(config: Any) -> str | None:
    if isinstance(config, Mapping):
        return config.get("profile_name")
    return getattr(config, "profile_name", None)


class OnboardingHandshake:
    def __init__(self, gateway: FrontdoorGatewayClient) -> None:
        self.gateway = gateway

    async def _say(self, session_id: str, message: str) -> OnboardingState:
        logger.debug("onboarding[%s] <- %s", session_id, message)
        return await self.gateway.post_onboarding_chat(session_id, message)

    async def ensure_ready(self, session_id: str, config: Any, objective: str | None) -> OnboardingState:
        """Answer the onboarding prompts until the session may be signed.

        Raises :class:`OnboardingIncomplete` if required fields stay missing
        or the conversation never reaches ``ready_to_sign``.
        """

        profile_name = _profile_name(config)
        objective_text = (objective or "").strip() or (
            f"Launch profile {profile_name or 'frontdoor_profile'} with deterministic verification."
        )
        assignments = build_assignments(profile_name)

        state = await self.gateway.get_onboarding_state(session_id)
        if not state.objective:
            state = await self._say(session_id, objective_text)
        if state.missing_fields:
            state = await self._say(session_id, assignments)
        if not state.ready_to_sign:
            state = await self._say(session_id, "confirm plan")
        if state.missing_fields:
            state = await self._say(session_id, assignments)
            state = await self._say(session_id, "confirm plan")
        if state.missing_fields:
            raise OnboardingIncomplete(
                "Onboarding required variables unresolved: " + ", ".join(state.missing_fields),
                details={"missing_fields": list(state.missing_fields)},
            )
        if not state.ready_to_sign:
            state = await self._say(session_id, "confirm sign")
        if not state.ready_to_sign:
            raise OnboardingIncomplete("Onboarding did not reach ready_to_sign state.")
        logger.info("Onboarding ready for session %s", session_id)
        return state


__all__ = ["OnboardingHandshake", "build_assignments"]
