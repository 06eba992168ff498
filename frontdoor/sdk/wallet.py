"""Wallet transports and the wallet identity source.

A wallet transport is anything that answers EIP-1193 style ``request``
calls.  Vendor-specific behaviour is looked up from a closed
:class:`WalletVendor` set rather than probed from the transport object.
"""

from __future__ import annotations

import enum
import itertools
import logging
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import httpx

from . import runtime
from .addresses import normalize_address
from .chain_policy import ChainPolicy
from .context import SessionContext
from .errors import InvalidAddress, NoAccount, NoWalletProvider, WalletRpcError

logger = logging.getLogger(__name__)


@runtime_checkable
class WalletTransport(Protocol):
    """EIP-1193 ``request`` surface used by the client."""

    async def request(self, method: str, params: list[Any] | None = None) -> Any:
        ...


@runtime_checkable
class NativeSigner(Protocol):
    """Wallets that sign through their own API instead of ``personal_sign``."""

    async def sign_message(self, message: str, address: str) -> str:
        ...


class WalletVendor(str, enum.Enum):
    METAMASK = "metamask"
    COINBASE = "coinbase_wallet"
    BRAVE = "brave_wallet"
    DELEGATED = "delegated"
    GENERIC = "generic"

    @classmethod
    def parse(cls, value: "str | WalletVendor | None") -> "WalletVendor":
        if isinstance(value, WalletVendor):
            return value
        text = str(value or "").strip().lower()
        for vendor in cls:
            if vendor.value == text or vendor.name.lower() == text:
                return vendor
        if text in {"coinbase", "coinbasewallet"}:
            return cls.COINBASE
        if text in {"brave", "bravewallet"}:
            return cls.BRAVE
        return cls.GENERIC


@dataclass(frozen=True)
class WalletCapabilities:
    """How a vendor identifies itself and signs."""

    #: ``walletClientType`` reported to the identity provider (``None`` = omit).
    wallet_client_type: str | None
    connector_type: str = "injected"
    #: Vendor exposes a native ``sign_message`` path tried before ``personal_sign``.
    native_sign: bool = False


_CAPABILITIES: dict[WalletVendor, WalletCapabilities] = {
    WalletVendor.METAMASK: WalletCapabilities(wallet_client_type="metamask"),
    WalletVendor.COINBASE: WalletCapabilities(wallet_client_type="coinbase_wallet"),
    WalletVendor.BRAVE: WalletCapabilities(wallet_client_type="brave_wallet"),
    WalletVendor.DELEGATED: WalletCapabilities(
        wallet_client_type="privy", connector_type="embedded", native_sign=True
    ),
    WalletVendor.GENERIC: WalletCapabilities(wallet_client_type=None),
}


def capabilities_for(vendor: WalletVendor | str | None) -> WalletCapabilities:
    return _CAPABILITIES[WalletVendor.parse(vendor)]


@dataclass(frozen=True)
class WalletConnection:
    address: str
    network_id: str


class WalletIdentitySource:
    """Acquire an account and network from a wallet transport.

    A successful :meth:`connect` binds the transport (and its vendor) to the
    session context; the signing adapter reads it from there.
    """

    def __init__(
        self,
        context: SessionContext,
        transport: WalletTransport | None,
        *,
        vendor: WalletVendor | str | None = None,
        chain_policy: ChainPolicy | None = None,
        hostname: str | None = None,
    ) -> None:
        self.context = context
        self.transport = transport
        self.vendor = WalletVendor.parse(vendor)
        self.chain_policy = chain_policy or ChainPolicy()
        self.hostname = hostname

    async def connect(self) -> WalletConnection:
        transport = self.transport
        if transport is None:
            raise NoWalletProvider("No EVM wallet provider is available.")
        generation = self.context.generation

        accounts = await transport.request("eth_requestAccounts")
        if not isinstance(accounts, (list, tuple)) or not accounts or not accounts[0]:
            raise NoAccount("Wallet provider did not return an account.")
        chain_id = await transport.request("eth_chainId")

        try:
            address = normalize_address(accounts[0])
        except InvalidAddress:
            raise InvalidAddress(
                "Wallet provider returned an invalid EVM address.",
                details={"field": "wallet_address"},
            ) from None

        network_id = await self.chain_policy.enforce(transport, chain_id, hostname=self.hostname)

        self.context.ensure_current(generation)
        self.context.bind_wallet(address, network_id)
        self.context.transport = transport
        self.context.vendor = self.vendor
        logger.info("Wallet connected (%s, vendor=%s)", address, self.vendor.value)
        return WalletConnection(address=address, network_id=network_id)


class JsonRpcWalletTransport:
    """JSON-RPC 2.0 over HTTP to a wallet endpoint (e.g. a local signer)."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self._client = client or httpx.AsyncClient(
            timeout=timeout if timeout is not None else runtime.HTTP_TIMEOUT_SECONDS
        )
        self._owns_client = client is None
        self._ids = itertools.count(1)

    async def request(self, method: str, params: list[Any] | None = None) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": list(params or []),
        }
        logger.debug("wallet rpc %s", method)
        try:
            resp = await self._client.post(self.url, json=payload)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as exc:
            raise WalletRpcError(f"Wallet endpoint request failed: {exc}") from exc
        except ValueError as exc:
            raise WalletRpcError("Wallet endpoint returned a non-JSON response.") from exc

        if not isinstance(data, dict):
            raise WalletRpcError("Wallet endpoint returned a malformed JSON-RPC response.")
        error = data.get("error")
        if error:
            if isinstance(error, dict):
                code = error.get("code")
                raise WalletRpcError(
                    str(error.get("message") or "Wallet request failed."),
                    rpc_code=int(code) if isinstance(code, int) else None,
                    data=error.get("data"),
                )
            raise WalletRpcError(str(error))
        return data.get("result")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "JsonRpcWalletTransport":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


__all__ = [
    "JsonRpcWalletTransport",
    "NativeSigner",
    "WalletCapabilities",
    "WalletConnection",
    "WalletIdentitySource",
    "WalletTransport",
    "WalletVendor",
    "capabilities_for",
]
