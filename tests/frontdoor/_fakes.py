"""In-memory wallet, identity provider and gateway doubles."""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx

from frontdoor.sdk.errors import IdentityProviderError
from frontdoor.services.gateway.client import FrontdoorGatewayClient

WALLET = "0x" + "ab" * 20
OTHER_WALLET = "0x" + "cd" * 20
SEPOLIA_HEX = "0xaa36a7"
GATEWAY_URL = "http://gw.test"
BASE = "/api/frontdoor"


class FakeWallet:
    """EIP-1193 style wallet answering from a method table.

    Values may be plain results, exceptions (raised) or callables taking
    the params list.  ``personal_sign`` signs every shape by default.
    """

    def __init__(
        self,
        *,
        accounts: list[str] | None = None,
        chain_id: Any = SEPOLIA_HEX,
        sign: Callable[[list[Any]], Any] | None = None,
        **methods: Any,
    ) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.methods: dict[str, Any] = {
            "eth_requestAccounts": [WALLET] if accounts is None else accounts,
            "eth_chainId": chain_id,
            "personal_sign": sign or (lambda params: "0xsig-" + str(params[0])[:12]),
        }
        self.methods.update(methods)

    async def request(self, method: str, params: list[Any] | None = None) -> Any:
        self.calls.append((method, params))
        if method not in self.methods:
            raise RuntimeError(f"unexpected wallet method {method}")
        value = self.methods[method]
        if isinstance(value, BaseException):
            raise value
        if callable(value):
            return value(params)
        return value

    def called(self, method: str) -> list[Any]:
        return [params for name, params in self.calls if name == method]


class NativeWallet(FakeWallet):
    def __init__(self, native: Any = "0xnative", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.native = native
        self.native_calls: list[tuple[str, str]] = []

    async def sign_message(self, message: str, address: str) -> str:
        self.native_calls.append((message, address))
        if isinstance(self.native, BaseException):
            raise self.native
        return self.native


def user_payload(user_id: str = "did:user:1", wallet: str = WALLET) -> dict[str, Any]:
    return {
        "id": user_id,
        "linked_accounts": [
            {"type": "wallet", "chain_type": "ethereum", "address": wallet.upper().replace("0X", "0x")}
        ],
    }


class FakeIdentityProvider:
    """Identity provider accepting SIWE logins whose wallet passes ``accept``."""

    def __init__(
        self,
        *,
        current_user: Any = None,
        accept: Callable[[dict[str, Any]], bool] | None = None,
        reject_error: BaseException | None = None,
        identity_token: Any = "id-token",
        access_token: Any = "access-token",
        user: dict[str, Any] | None = None,
    ) -> None:
        self.current_user = current_user
        self.accept = accept or (lambda wallet: True)
        self.reject_error = reject_error
        self.identity_token = identity_token
        self.access_token = access_token
        self.user = user_payload() if user is None else user
        self.init_calls: list[tuple[dict[str, Any], str, str]] = []
        self.login_calls: list[tuple[str, dict[str, Any], str]] = []
        self.logout_calls = 0

    async def get_current_user(self):
        return self.current_user

    async def init_siwe(self, wallet, domain, uri):
        self.init_calls.append((dict(wallet), domain, uri))
        return {"message": f"siwe:{wallet['chainId']}:{len(self.init_calls)}"}

    async def login_with_siwe(self, signature, wallet, message):
        self.login_calls.append((signature, dict(wallet), message))
        if not self.accept(dict(wallet)):
            raise self.reject_error or IdentityProviderError("Invalid SIWE message and/or signature")
        return {"user": self.user}

    async def logout(self):
        self.logout_calls += 1
        self.current_user = None

    async def get_identity_token(self):
        if isinstance(self.identity_token, BaseException):
            raise self.identity_token
        return self.identity_token

    async def get_access_token(self):
        if isinstance(self.access_token, BaseException):
            raise self.access_token
        return self.access_token


class GatewayStub:
    """Route table behind an :class:`httpx.MockTransport`.

    Each route holds a queue of responses; the last one repeats.  Entries
    may be :class:`httpx.Response`, exceptions or ``callable(request)``.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Any]] = {}
        self.requests: list[httpx.Request] = []

    def route(self, method: str, path: str, *responses: Any) -> "GatewayStub":
        self.routes[(method, BASE + path)] = list(responses)
        return self

    def json(self, method: str, path: str, *payloads: Any, status: int = 200) -> "GatewayStub":
        return self.route(method, path, *(httpx.Response(status, json=p) for p in payloads))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"error": f"no route for {request.url.path}"})
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, BaseException):
            raise item
        if callable(item):
            return item(request)
        return item

    def client(self, **kwargs: Any) -> FrontdoorGatewayClient:
        kwargs.setdefault("retries", 0)
        return FrontdoorGatewayClient(
            GATEWAY_URL, transport=httpx.MockTransport(self.handler), **kwargs
        )

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == BASE + path]

    def bodies(self, path: str) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.calls(path)]


def valid_profile(**overrides: Any) -> dict[str, Any]:
    profile: dict[str, Any] = {
        "profile_name": "alpha",
        "hyperliquid_network": "testnet",
        "paper_live_policy": "paper_only",
        "request_timeout_ms": 10000,
        "max_retries": 2,
        "retry_backoff_ms": 500,
        "max_position_size_usd": 1000,
        "leverage_cap": 5,
        "max_allocation_usd": 1000,
        "per_trade_notional_cap_usd": 100,
        "max_leverage": 3,
        "max_slippage_bps": 50,
        "symbol_allowlist": "btc, eth",
        "custody_mode": "user_wallet",
        "information_sharing_scope": "signals_only",
        "kill_switch_behavior": "pause_agent",
        "gateway_auth_key": "k" * 24,
        "accept_terms": True,
    }
    profile.update(overrides)
    return profile


def provider_factory(bootstrap: Any) -> FakeIdentityProvider:
    provider = FakeIdentityProvider()
    provider.bootstrap = bootstrap
    return provider
