import pytest

from frontdoor.sdk.context import SessionContext
from frontdoor.sdk.errors import IdentityMismatch, StaleSession, WalletNotConnected

from tests.frontdoor._fakes import OTHER_WALLET, WALLET


def test_bind_wallet_normalizes_and_updates_chain():
    ctx = SessionContext()
    ident = ctx.bind_wallet(WALLET.upper().replace("0X", "0x"), "0x1")
    assert ident.wallet_address == WALLET
    ctx.bind_wallet(WALLET, "0xaa36a7")
    assert ctx.identity is ident
    assert ident.chain_id == "0xaa36a7"


def test_bind_different_wallet_is_refused():
    ctx = SessionContext()
    ctx.bind_wallet(WALLET, "0x1")
    with pytest.raises(IdentityMismatch):
        ctx.bind_wallet(OTHER_WALLET, "0x1")
    assert ctx.identity.wallet_address == WALLET


def test_require_identity_without_wallet():
    with pytest.raises(WalletNotConnected, match="Connect wallet first"):
        SessionContext().require_identity()


def test_reset_clears_everything_and_bumps_generation():
    ctx = SessionContext()
    ctx.bind_wallet(WALLET, "0x1")
    ctx.bootstrap = {"enabled": True}
    ctx.transport = object()
    generation = ctx.generation

    ctx.reset()

    assert ctx.identity is None
    assert ctx.transport is None
    assert ctx.vendor is None
    assert ctx.bootstrap == {}
    assert ctx.runtime_config is None
    assert ctx.launch_session is None
    assert ctx.generation == generation + 1
    with pytest.raises(StaleSession):
        ctx.ensure_current(generation)
    ctx.ensure_current(ctx.generation)


def test_rebinding_after_reset_accepts_new_wallet():
    ctx = SessionContext()
    ctx.bind_wallet(WALLET, "0x1")
    ctx.reset()
    assert ctx.bind_wallet(OTHER_WALLET, "0x1").wallet_address == OTHER_WALLET
