from __future__ import annotations

import logging
from typing import Any, Optional, TypeVar
from urllib.parse import quote

import httpx
from opentelemetry.propagate import inject
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from frontdoor.sdk import runtime
from frontdoor.sdk.errors import GatewayRequestError

from .models import (
    Bootstrap,
    ChallengeRequest,
    ChallengeResponse,
    OnboardingChatRequest,
    OnboardingChatResponse,
    OnboardingState,
    SessionStatus,
    SuggestConfigRequest,
    SuggestConfigResponse,
    VerifyRequest,
)
from .transport import RetryTransport

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def extract_error_message(resp: httpx.Response) -> str:
    """Return the backend's own error text for a failed response.

    Preference: ``error``, ``message``, ``detail`` from a JSON body, then the
    raw body, then ``"<status> <reason>"``.
    """

    text = resp.text or ""
    payload: Any = None
    if text:
        try:
            payload = resp.json()
        except ValueError:
            payload = None
    if isinstance(payload, dict):
        for key in ("error", "message", "detail"):
            value = payload.get(key)
            if value:
                return value if isinstance(value, str) else str(value)
    if text.strip():
        return text
    return f"{resp.status_code} {resp.reason_phrase}".strip()


class FrontdoorGatewayClient:
    """HTTP client for the frontdoor endpoints of the gateway."""

    def __init__(
        self,
        gateway_url: str,
        *,
        base_path: str = "/api/frontdoor",
        timeout: float | None = None,
        retries: int | None = None,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = gateway_url.rstrip("/") + "/" + base_path.strip("/")
        self._timeout = runtime.HTTP_TIMEOUT_SECONDS if timeout is None else timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self._timeout, transport=transport)
        self._transport = RetryTransport(
            self._client,
            timeout=self._timeout,
            retries=runtime.HTTP_READ_RETRIES if retries is None else retries,
        )

    @classmethod
    def from_config(cls, gateway_cfg: Any, **kwargs: Any) -> "FrontdoorGatewayClient":
        return cls(
            gateway_cfg.url,
            base_path=gateway_cfg.base_path,
            timeout=gateway_cfg.timeout_seconds,
            retries=gateway_cfg.read_retries,
            **kwargs,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "FrontdoorGatewayClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------
    async def get_bootstrap(self) -> Bootstrap:
        data = await self._request("GET", "/bootstrap")
        return self._parse(Bootstrap, data, "/bootstrap")

    async def suggest_config(
        self,
        *,
        wallet_address: str,
        intent: str,
        gateway_auth_key: Optional[str] = None,
        domain: Optional[str] = None,
    ) -> SuggestConfigResponse:
        body = SuggestConfigRequest(
            wallet_address=wallet_address,
            intent=intent,
            domain=domain,
            gateway_auth_key=gateway_auth_key,
        )
        data = await self._request("POST", "/suggest-config", json=body.model_dump())
        return self._parse(SuggestConfigResponse, data, "/suggest-config")

    async def create_challenge(
        self,
        *,
        wallet_address: str,
        delegated_user_id: Optional[str],
        chain_id: Optional[int],
    ) -> ChallengeResponse:
        body = ChallengeRequest(
            wallet_address=wallet_address,
            delegated_user_id=delegated_user_id,
            chain_id=chain_id,
        )
        data = await self._request("POST", "/challenge", json=body.model_dump())
        return self._parse(ChallengeResponse, data, "/challenge")

    async def verify(self, request: VerifyRequest) -> dict[str, Any]:
        data = await self._request("POST", "/verify", json=request.model_dump())
        return data if isinstance(data, dict) else {}

    async def get_session(self, session_id: str) -> SessionStatus:
        path = f"/session/{quote(session_id, safe='')}"
        data = await self._request("GET", path)
        return self._parse(SessionStatus, data, path)

    async def get_onboarding_state(self, session_id: str) -> OnboardingState:
        data = await self._request(
            "GET", "/onboarding/state", params={"session_id": session_id}
        )
        return self._parse(OnboardingState, data, "/onboarding/state")

    async def post_onboarding_chat(self, session_id: str, message: str) -> OnboardingState:
        body = OnboardingChatRequest(session_id=session_id, message=message)
        data = await self._request("POST", "/onboarding/chat", json=body.model_dump())
        return self._parse(OnboardingChatResponse, data, "/onboarding/chat").state

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _build_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Accept": "application/json"}
        inject(headers)
        return headers

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = self.base_url + path
        try:
            resp = await self._transport.request(
                method, url, headers=self._build_headers(), **kwargs
            )
        except httpx.HTTPError as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise GatewayRequestError(str(exc) or type(exc).__name__, path=path) from exc

        if resp.status_code >= 400:
            message = extract_error_message(resp)
            logger.debug("%s %s -> %s: %s", method, path, resp.status_code, message)
            raise GatewayRequestError(message, status_code=resp.status_code, path=path)
        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as exc:
            raise GatewayRequestError(
                "invalid gateway response", status_code=resp.status_code, path=path
            ) from exc

    def _parse(self, model: type[ModelT], data: Any, path: str) -> ModelT:
        if not isinstance(data, dict):
            raise GatewayRequestError("invalid gateway response", path=path)
        try:
            return model.model_validate(data)
        except PydanticValidationError as exc:
            raise GatewayRequestError("invalid gateway response", path=path) from exc


__all__ = ["FrontdoorGatewayClient", "extract_error_message"]
