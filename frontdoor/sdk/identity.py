"""Delegated identity (sign-in with Ethereum) session.

The identity provider is an external collaborator reached through the
:class:`IdentityProvider` protocol.  Its backend is picky about the exact
wallet descriptor shape, so authentication walks an ordered list of
descriptor variants and, within each, every signature shape the wallet
produces.

Rejections are classified by the provider's structured error code when one
is present.  Matching on message text is a degraded-compatibility path for
providers that only return free-form messages.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable
from urllib.parse import urlsplit

from . import metrics as sdk_metrics
from .addresses import parse_chain_id
from .context import Identity, SessionContext
from .errors import SiweAuthFailed, TokenRetrievalFailed
from .signing import SigningAdapter
from .wallet import WalletVendor, capabilities_for

logger = logging.getLogger(__name__)

INVALID_SIWE_CODES = frozenset({"invalid_siwe", "invalid_siwe_message", "invalid_siwe_signature"})
_INVALID_SIWE_SUBSTRINGS = ("invalid siwe message", "invalid siwe", "and/or signature")


@runtime_checkable
class IdentityProvider(Protocol):
    """Operations consumed from the delegated identity SDK."""

    async def get_current_user(self) -> Mapping[str, Any] | None:
        ...

    async def init_siwe(self, wallet: Mapping[str, Any], domain: str, uri: str) -> Mapping[str, Any]:
        """Return ``{"message": <SIWE message>}`` for ``wallet``."""
        ...

    async def login_with_siwe(
        self, signature: str, wallet: Mapping[str, Any], message: str
    ) -> Mapping[str, Any]:
        """Return ``{"user": {...}}`` on success."""
        ...

    async def logout(self) -> None:
        ...

    async def get_identity_token(self) -> str | None:
        ...

    async def get_access_token(self) -> str | None:
        ...


@dataclass(frozen=True)
class DelegatedUser:
    id: str | None
    wallets: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_payload(cls, payload: Any) -> "DelegatedUser | None":
        if not isinstance(payload, Mapping):
            return None
        if "user" in payload:
            payload = payload["user"]
            if not isinstance(payload, Mapping):
                return None
        linked = payload.get("linked_accounts")
        if linked is None:
            linked = payload.get("linkedAccounts")
        wallets: set[str] = set()
        for item in linked if isinstance(linked, list) else []:
            if not isinstance(item, Mapping) or item.get("type") != "wallet":
                continue
            chain_type = item.get("chain_type", item.get("chainType"))
            if chain_type != "ethereum":
                continue
            address = str(item.get("address") or "").strip().lower()
            if address:
                wallets.add(address)
        user_id = payload.get("id")
        if not user_id and not wallets:
            return None
        return cls(id=str(user_id) if user_id else None, wallets=frozenset(wallets))

    def has_wallet(self, address: str) -> bool:
        return str(address or "").lower() in self.wallets


@dataclass(frozen=True)
class SiweWalletDescriptor:
    address: str
    chain_id: str
    wallet_client_type: str | None = None
    connector_type: str | None = None

    @property
    def dedup_key(self) -> tuple[str, str, str]:
        return (self.chain_id, self.wallet_client_type or "", self.connector_type or "")

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"address": self.address, "chainId": self.chain_id}
        if self.wallet_client_type:
            payload["walletClientType"] = self.wallet_client_type
        if self.connector_type:
            payload["connectorType"] = self.connector_type
        return payload


def build_siwe_descriptors(
    address: str, chain_number: int, vendor: WalletVendor | str | None = None
) -> list[SiweWalletDescriptor]:
    """Return the ordered, deduplicated descriptor variants to try."""

    caps = capabilities_for(vendor)
    candidates = [
        SiweWalletDescriptor(address, f"eip155:{chain_number}", caps.wallet_client_type, caps.connector_type),
        SiweWalletDescriptor(address, str(chain_number), caps.wallet_client_type, caps.connector_type),
        SiweWalletDescriptor(address, f"eip155:{chain_number}", None, None),
    ]
    seen: set[tuple[str, str, str]] = set()
    out: list[SiweWalletDescriptor] = []
    for candidate in candidates:
        if candidate.dedup_key in seen:
            continue
        seen.add(candidate.dedup_key)
        out.append(candidate)
    return out


def is_invalid_siwe_error(exc: BaseException) -> bool:
    """Return ``True`` when ``exc`` means "try another message/signature"."""

    for attr in ("provider_code", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, str) and value.lower() in INVALID_SIWE_CODES:
            return True
    # Degraded path: providers without structured codes.
    text = str(getattr(exc, "message", None) or exc or "").lower()
    return any(needle in text for needle in _INVALID_SIWE_SUBSTRINGS)


def siwe_domain_for(origin: str) -> str:
    parts = urlsplit(origin or "")
    return (parts.hostname or parts.netloc or "").strip()


class SessionState(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    SIWE_PENDING = "siwe_pending"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


class DelegatedIdentitySession:
    def __init__(
        self,
        context: SessionContext,
        provider: IdentityProvider,
        *,
        signer: SigningAdapter | None = None,
        origin: str | None = None,
        domain: str | None = None,
    ) -> None:
        self.context = context
        self.provider = provider
        self.signer = signer or SigningAdapter.from_context(context)
        self.origin = origin or context.origin
        self.domain = domain or siwe_domain_for(self.origin)
        self.state = SessionState.UNAUTHENTICATED
        self.attempted: list[SiweWalletDescriptor] = []

    async def authenticate(self) -> Identity:
        identity = self.context.require_identity()
        generation = self.context.generation
        chain_number = parse_chain_id(identity.chain_id)
        if not chain_number:
            self.state = SessionState.FAILED
            raise SiweAuthFailed("Chain ID unavailable for delegated SIWE auth.")

        self.state = SessionState.SIWE_PENDING
        self.attempted = []
        try:
            user = await self._existing_user_for(identity.wallet_address)
            if user is None:
                user = await self._login(identity.wallet_address, chain_number)
            self.context.ensure_current(generation)
            await self._hydrate(identity, user, generation)
        except BaseException:
            self.state = SessionState.FAILED
            raise
        self.state = SessionState.AUTHENTICATED
        logger.info("Delegated identity authenticated for %s", identity.wallet_address)
        return identity

    async def _existing_user_for(self, address: str) -> DelegatedUser | None:
        try:
            current = DelegatedUser.from_payload(await self.provider.get_current_user())
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.debug("No existing delegated session: %s", exc)
            return None
        if current is None:
            return None
        if current.has_wallet(address):
            logger.info("Reusing existing delegated session for %s", address)
            return current
        # Another account is signed in; drop it before SIWE login.
        logger.info("Existing delegated session belongs to another wallet; logging out")
        try:
            await self.provider.logout()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("Best-effort delegated logout failed: %s", exc)
        return None

    async def _login(self, address: str, chain_number: int) -> DelegatedUser:
        domain = self.domain
        uri = self.origin
        last_error: BaseException | None = None
        vendor = self.context.vendor or self.signer.vendor

        for descriptor in build_siwe_descriptors(address, chain_number, vendor):
            self.attempted.append(descriptor)
            wallet = descriptor.to_payload()
            logger.debug("SIWE attempt with descriptor %s", wallet)
            try:
                init = await self.provider.init_siwe(wallet, domain, uri)
                message = str((init or {}).get("message") or "")
                login = await self._login_with_signatures(wallet, message, address)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                if not is_invalid_siwe_error(exc):
                    sdk_metrics.observe_siwe_attempt("error")
                    raise
                logger.debug("SIWE descriptor rejected: %s", exc)
                sdk_metrics.observe_siwe_attempt("rejected")
                last_error = exc
                continue
            user = DelegatedUser.from_payload(login)
            if user is None:
                raise SiweAuthFailed("Delegated SIWE authentication did not return a user id.")
            sdk_metrics.observe_siwe_attempt("success")
            return user

        if last_error is not None:
            raise last_error
        raise SiweAuthFailed("Delegated SIWE authentication failed.")

    async def _login_with_signatures(
        self, wallet: Mapping[str, Any], message: str, address: str
    ) -> Mapping[str, Any]:
        last_error: BaseException | None = None
        signatures = self.signer.iter_signatures(message, address)
        try:
            async for signature in signatures:
                try:
                    return await self.provider.login_with_siwe(signature, wallet, message)
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    if not is_invalid_siwe_error(exc):
                        raise
                    logger.debug("SIWE signature rejected: %s", exc)
                    last_error = exc
        finally:
            await signatures.aclose()
        if last_error is not None:
            raise last_error
        raise SiweAuthFailed("Invalid SIWE message and/or signature")

    async def _hydrate(self, identity: Identity, user: DelegatedUser, generation: int) -> None:
        if not user.id:
            raise SiweAuthFailed("Delegated SIWE authentication did not return a user id.")
        identity_token, access_token = await asyncio.gather(
            self._fetch_token(self.provider.get_identity_token, "identity"),
            self._fetch_token(self.provider.get_access_token, "access"),
        )
        self.context.ensure_current(generation)
        identity.delegated_user_id = user.id
        identity.identity_token = identity_token or None
        identity.access_token = access_token or None
        if not identity.has_token:
            raise TokenRetrievalFailed("Delegated token retrieval failed. Please retry authentication.")

    async def _fetch_token(self, getter, kind: str) -> str | None:
        try:
            token = await getter()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("Failed to fetch %s token: %s", kind, exc)
            return None
        return token if isinstance(token, str) and token else None


__all__ = [
    "DelegatedIdentitySession",
    "DelegatedUser",
    "INVALID_SIWE_CODES",
    "IdentityProvider",
    "SessionState",
    "SiweWalletDescriptor",
    "build_siwe_descriptors",
    "is_invalid_siwe_error",
    "siwe_domain_for",
]
