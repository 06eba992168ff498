"""End-to-end identity and launch flow.

:class:`Launchpad` wires the stages together in their required order::

    load_bootstrap → connect → authenticate → validate → launch → poll

Each stage refuses to run until the previous one has produced what it needs.
``logout`` stops polling and resets the whole session context.
"""

from __future__ import annotations

import asyncio
import importlib
import logging
from collections.abc import Mapping
from typing import Any, Callable
from urllib.parse import urlsplit

from frontdoor.foundation.config import UnifiedConfig
from frontdoor.services.gateway.client import FrontdoorGatewayClient
from frontdoor.services.gateway.models import Bootstrap

from .chain_policy import ChainPolicy
from .context import Identity, SessionContext
from .drafts import normalize_draft
from .errors import (
    FrontdoorDisabled,
    IdentityConfigMissing,
    SiweAuthFailed,
    TokenRetrievalFailed,
)
from .identity import DelegatedIdentitySession, IdentityProvider
from .launch import LaunchProtocol, LaunchSession, ProgressCallback
from .onboarding import OnboardingHandshake
from .poller import Navigator, SessionPoller
from .signing import SigningAdapter
from .validation import RuntimeConfig, validate
from .wallet import JsonRpcWalletTransport, WalletIdentitySource, WalletTransport, WalletVendor

logger = logging.getLogger(__name__)

IdentityProviderFactory = Callable[[Bootstrap], IdentityProvider]


def load_identity_provider(path: str, bootstrap: Bootstrap) -> IdentityProvider:
    """Build a provider from a ``module:factory`` path."""

    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise IdentityConfigMissing(f"Identity provider must be 'module:factory', got {path!r}.")
    module = importlib.import_module(module_name)
    factory = getattr(module, attr)
    return factory(bootstrap)


class Launchpad:
    def __init__(
        self,
        gateway: FrontdoorGatewayClient,
        *,
        context: SessionContext | None = None,
        origin: str | None = None,
        wallet_transport: WalletTransport | None = None,
        vendor: WalletVendor | str | None = None,
        identity_provider: IdentityProvider | IdentityProviderFactory | None = None,
        chain_policy: ChainPolicy | None = None,
        navigator: Navigator | None = None,
        on_progress: ProgressCallback | None = None,
        interactive: bool = False,
        max_consecutive_failures: int | None = None,
        redirect_delay_seconds: float = 0.0,
        identity_app_id: str | None = None,
        identity_client_id: str | None = None,
        siwe_domain: str | None = None,
    ) -> None:
        self.gateway = gateway
        self.context = context or SessionContext()
        if origin:
            self.context.origin = origin
        self.wallet_transport = wallet_transport
        self.vendor = WalletVendor.parse(vendor)
        self._identity_provider_source = identity_provider
        self.identity_provider: IdentityProvider | None = None
        self.chain_policy = chain_policy or ChainPolicy()
        self.navigator = navigator
        self.on_progress = on_progress
        self.interactive = interactive
        self.max_consecutive_failures = max_consecutive_failures
        self.redirect_delay_seconds = redirect_delay_seconds
        self.identity_app_id = identity_app_id
        self.identity_client_id = identity_client_id
        self.siwe_domain = siwe_domain
        self.bootstrap: Bootstrap | None = None
        self.poller: SessionPoller | None = None

    @classmethod
    def from_config(
        cls,
        cfg: UnifiedConfig,
        *,
        gateway: FrontdoorGatewayClient | None = None,
        wallet_transport: WalletTransport | None = None,
        identity_provider: IdentityProvider | IdentityProviderFactory | None = None,
        **kwargs: Any,
    ) -> "Launchpad":
        if wallet_transport is None and cfg.wallet.rpc_url:
            wallet_transport = JsonRpcWalletTransport(
                cfg.wallet.rpc_url, timeout=cfg.wallet.timeout_seconds
            )
        if identity_provider is None and cfg.identity.provider:
            provider_path = cfg.identity.provider
            identity_provider = lambda bootstrap: load_identity_provider(provider_path, bootstrap)  # noqa: E731
        kwargs.setdefault("max_consecutive_failures", cfg.polling.max_consecutive_failures)
        kwargs.setdefault("redirect_delay_seconds", cfg.polling.redirect_delay_seconds)
        kwargs.setdefault("identity_app_id", cfg.identity.app_id)
        kwargs.setdefault("identity_client_id", cfg.identity.client_id)
        kwargs.setdefault("siwe_domain", cfg.identity.domain)
        return cls(
            gateway or FrontdoorGatewayClient.from_config(cfg.gateway),
            origin=cfg.identity.origin,
            wallet_transport=wallet_transport,
            vendor=cfg.wallet.vendor,
            identity_provider=identity_provider,
            chain_policy=ChainPolicy(cfg.chain.required_networks),
            **kwargs,
        )

    @property
    def hostname(self) -> str:
        return urlsplit(self.context.origin).hostname or ""

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------
    async def load_bootstrap(self) -> Bootstrap:
        bootstrap = self._with_local_identity_app(await self.gateway.get_bootstrap())
        if not bootstrap.enabled:
            raise FrontdoorDisabled("Frontdoor flow is not enabled.")
        if bootstrap.require_delegated_identity and not bootstrap.identity_app_id:
            raise IdentityConfigMissing("Delegated identity app configuration missing.")
        self.bootstrap = bootstrap
        self.context.bootstrap = bootstrap.model_dump()
        logger.info(
            "Bootstrap loaded (delegated identity %s)",
            "required" if bootstrap.require_delegated_identity else "optional",
        )
        return bootstrap

    def _with_local_identity_app(self, bootstrap: Bootstrap) -> Bootstrap:
        """Fill identity app ids the gateway left out from local config."""

        update: dict[str, Any] = {}
        if not bootstrap.identity_app_id and self.identity_app_id:
            update["identity_app_id"] = self.identity_app_id
        if not bootstrap.identity_client_id and self.identity_client_id:
            update["identity_client_id"] = self.identity_client_id
        return bootstrap.model_copy(update=update) if update else bootstrap

    async def _require_bootstrap(self) -> Bootstrap:
        if self.bootstrap is None:
            return await self.load_bootstrap()
        return self.bootstrap

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------
    async def connect(self) -> Identity:
        """Connect the wallet and, when required, sign in to the identity provider."""

        bootstrap = await self._require_bootstrap()
        source = WalletIdentitySource(
            self.context,
            self.wallet_transport,
            vendor=self.vendor,
            chain_policy=self.chain_policy,
            hostname=self.hostname,
        )
        await source.connect()
        if bootstrap.require_delegated_identity:
            return await self.authenticate()
        return self.context.require_identity()

    def _resolve_identity_provider(self, bootstrap: Bootstrap) -> IdentityProvider:
        if self.identity_provider is not None:
            return self.identity_provider
        source = self._identity_provider_source
        if source is None:
            raise IdentityConfigMissing("Delegated identity provider is not configured.")
        if isinstance(source, IdentityProvider) and not isinstance(source, type):
            provider = source
        else:
            provider = source(bootstrap)
        self.identity_provider = provider
        return provider

    async def authenticate(self) -> Identity:
        bootstrap = await self._require_bootstrap()
        provider = self._resolve_identity_provider(bootstrap)
        session = DelegatedIdentitySession(
            self.context,
            provider,
            signer=SigningAdapter.from_context(self.context),
            domain=self.siwe_domain,
        )
        return await session.authenticate()

    def _require_launch_identity(self, bootstrap: Bootstrap) -> Identity:
        identity = self.context.require_identity()
        if bootstrap.require_delegated_identity:
            if not identity.delegated_user_id:
                raise SiweAuthFailed("Delegated authentication is required.")
            if not identity.has_token:
                raise TokenRetrievalFailed("Delegated token unavailable. Re-authenticate.")
        return identity

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    async def suggest_config(
        self, intent: str, *, gateway_auth_key: str | None = None
    ) -> tuple[dict[str, Any], list[str]]:
        """Ask the gateway for a draft and fill in local defaults.

        Returns the draft and the gateway's assumptions plus warnings.
        """

        identity = self.context.require_identity()
        generation = self.context.generation
        suggestion = await self.gateway.suggest_config(
            wallet_address=identity.wallet_address,
            intent=intent,
            gateway_auth_key=gateway_auth_key,
        )
        self.context.ensure_current(generation)
        draft = normalize_draft(
            suggestion.config,
            wallet_address=identity.wallet_address,
            gateway_auth_key=gateway_auth_key,
        )
        return draft, [*suggestion.assumptions, *suggestion.warnings]

    def validate(self, raw: Mapping[str, Any] | RuntimeConfig) -> RuntimeConfig:
        if isinstance(raw, RuntimeConfig):
            raw = raw.model_dump()
        return validate(raw, self.context.identity)

    # ------------------------------------------------------------------
    # Launch and polling
    # ------------------------------------------------------------------
    async def launch(
        self, raw: Mapping[str, Any] | RuntimeConfig, *, objective: str | None = None
    ) -> LaunchSession:
        """Validate ``raw`` and run the launch protocol; starts the poller on success."""

        config = self.validate(raw)
        bootstrap = await self._require_bootstrap()
        self._require_launch_identity(bootstrap)

        if self.poller is not None:
            await self.poller.stop()
            self.poller = None

        protocol = LaunchProtocol(
            self.context,
            self.gateway,
            signer=SigningAdapter.from_context(self.context),
            onboarding=OnboardingHandshake(self.gateway),
            on_progress=self.on_progress,
        )
        session = await protocol.launch(config, objective=objective)
        self.poller = SessionPoller(
            self.gateway,
            session,
            origin=self.context.origin,
            interval_ms=bootstrap.poll_interval_ms,
            interactive=self.interactive,
            max_consecutive_failures=self.max_consecutive_failures,
            navigator=self.navigator,
            redirect_delay_seconds=self.redirect_delay_seconds,
            context=self.context,
        )
        self.poller.start()
        return session

    async def wait(self) -> LaunchSession | None:
        if self.poller is None:
            return None
        return await self.poller.wait()

    async def run(
        self, raw: Mapping[str, Any] | RuntimeConfig, *, objective: str | None = None
    ) -> LaunchSession | None:
        await self.launch(raw, objective=objective)
        return await self.wait()

    # ------------------------------------------------------------------
    async def logout(self) -> None:
        """Stop polling, sign out of the identity provider and reset all state."""

        if self.poller is not None:
            await self.poller.stop()
            self.poller = None
        provider = self.identity_provider
        if provider is not None:
            try:
                await provider.logout()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("Identity provider logout failed: %s", exc)
        self.bootstrap = None
        self.context.reset()


__all__ = ["Launchpad", "load_identity_provider"]
