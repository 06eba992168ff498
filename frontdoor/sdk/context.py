"""Session-scoped orchestration state.

One :class:`SessionContext` is threaded through a connect → authenticate →
validate → launch → poll flow.  ``reset()`` clears every field at once and
bumps ``generation`` so results of requests issued before the reset can be
recognised and dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .addresses import normalize_address
from .errors import IdentityMismatch, StaleSession, WalletNotConnected

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from .launch import LaunchSession
    from .validation import RuntimeConfig
    from .wallet import WalletTransport, WalletVendor

logger = logging.getLogger(__name__)


@dataclass
class Identity:
    """The verified identity for one session."""

    wallet_address: str
    chain_id: str
    delegated_user_id: str | None = None
    identity_token: str | None = None
    access_token: str | None = None

    @property
    def has_token(self) -> bool:
        return bool(self.identity_token or self.access_token)


@dataclass
class SessionContext:
    """Mutable state owned by a single user session."""

    origin: str = "http://localhost"
    identity: Identity | None = None
    transport: "WalletTransport | None" = None
    vendor: "WalletVendor | None" = None
    bootstrap: dict[str, Any] = field(default_factory=dict)
    runtime_config: "RuntimeConfig | None" = None
    launch_session: "LaunchSession | None" = None
    generation: int = 0

    # ------------------------------------------------------------------
    def bind_wallet(self, address: str, chain_id: str) -> Identity:
        """Bind ``address`` to this session.

        A different wallet than the one already bound raises
        :class:`IdentityMismatch`; the existing binding is kept.
        """

        normalized = normalize_address(address)
        current = self.identity
        if current is not None and current.wallet_address != normalized:
            raise IdentityMismatch(
                "Connected wallet differs from the wallet bound to this session. Log out first.",
                details={"bound": current.wallet_address, "resolved": normalized},
            )
        if current is None:
            self.identity = Identity(wallet_address=normalized, chain_id=chain_id)
            logger.info("Bound wallet %s on chain %s", normalized, chain_id or "?")
        else:
            current.chain_id = chain_id
        return self.identity  # type: ignore[return-value]

    def require_identity(self) -> Identity:
        if self.identity is None:
            raise WalletNotConnected("Connect wallet first.")
        return self.identity

    # ------------------------------------------------------------------
    def ensure_current(self, generation: int) -> None:
        """Raise :class:`StaleSession` if the context was reset after ``generation``."""

        if generation != self.generation:
            logger.debug(
                "Discarding stale result (generation %s, current %s)", generation, self.generation
            )
            raise StaleSession("Session was reset while a request was in flight.")

    def reset(self) -> None:
        """Tear down identity, configuration and launch state together."""

        self.identity = None
        self.transport = None
        self.vendor = None
        self.bootstrap = {}
        self.runtime_config = None
        self.launch_session = None
        self.generation += 1
        logger.info("Session context reset (generation %s)", self.generation)


__all__ = ["Identity", "SessionContext"]
