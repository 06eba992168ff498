import asyncio

import httpx
import pytest

from frontdoor.foundation.config import UnifiedConfig
from frontdoor.sdk.errors import (
    FrontdoorDisabled,
    GatewayRequestError,
    IdentityConfigMissing,
    SiweAuthFailed,
    ValidationError,
    WalletNotConnected,
)
from frontdoor.sdk.orchestrator import Launchpad, load_identity_provider
from frontdoor.services.gateway.models import Bootstrap

from tests.frontdoor._fakes import (
    OTHER_WALLET,
    SEPOLIA_HEX,
    WALLET,
    FakeIdentityProvider,
    FakeWallet,
    GatewayStub,
    valid_profile,
)

BOOTSTRAP = {
    "enabled": True,
    "require_privy": True,
    "privy_app_id": "app-123",
    "poll_interval_ms": 1,
    "unknown_field": "ignored",
}


def _stub(bootstrap=None):
    return (
        GatewayStub()
        .json("GET", "/bootstrap", bootstrap or BOOTSTRAP)
        .json("POST", "/challenge", {"session_id": "sess-9", "message": "launch challenge"})
        .json("POST", "/verify", {"accepted": True})
        .json(
            "GET",
            "/session/sess-9",
            {"status": "provisioning"},
            {"status": "ready", "instance_url": "https://x.example/run"},
        )
    )


def _pad(gateway, **kwargs):
    kwargs.setdefault("origin", "https://app.example")
    kwargs.setdefault("wallet_transport", FakeWallet())
    kwargs.setdefault("vendor", "metamask")
    kwargs.setdefault("identity_provider", FakeIdentityProvider())
    return Launchpad(gateway, **kwargs)


@pytest.mark.asyncio
async def test_end_to_end_launch_navigates_to_instance():
    stub = _stub()
    navigated = []
    progress = []
    async with stub.client() as gateway:
        pad = _pad(gateway, navigator=navigated.append, on_progress=lambda label, value: progress.append(value))
        identity = await pad.connect()
        assert identity.delegated_user_id == "did:user:1"
        assert identity.chain_id == SEPOLIA_HEX

        session = await pad.run(valid_profile(), objective=None)

    assert session.status == "ready"
    assert navigated == ["https://x.example/run"]
    assert progress == [8, 20, 38]
    assert pad.context.bootstrap["identity_app_id"] == "app-123"
    assert pad.context.runtime_config.user_wallet_address == WALLET
    verify = stub.bodies("/verify")[0]
    assert verify["delegated_user_id"] == "did:user:1"
    assert verify["identity_token"] == "id-token"


@pytest.mark.asyncio
async def test_disabled_bootstrap_stops_before_wallet():
    stub = GatewayStub().json("GET", "/bootstrap", {"enabled": False})
    wallet = FakeWallet()
    async with stub.client() as gateway:
        pad = _pad(gateway, wallet_transport=wallet)
        with pytest.raises(FrontdoorDisabled) as excinfo:
            await pad.connect()
    assert excinfo.value.fatal
    assert wallet.calls == []


@pytest.mark.asyncio
async def test_required_identity_without_app_id():
    stub = GatewayStub().json("GET", "/bootstrap", {"enabled": True, "require_delegated_identity": True})
    async with stub.client() as gateway:
        with pytest.raises(IdentityConfigMissing):
            await _pad(gateway).load_bootstrap()


@pytest.mark.asyncio
async def test_optional_identity_skips_provider():
    stub = _stub({"enabled": True, "require_privy": False, "poll_interval_ms": 1})
    provider = FakeIdentityProvider()
    async with stub.client() as gateway:
        pad = _pad(gateway, identity_provider=provider)
        identity = await pad.connect()
        session = await pad.run(valid_profile())
    assert identity.delegated_user_id is None
    assert provider.init_calls == []
    assert session.status == "ready"


@pytest.mark.asyncio
async def test_missing_provider_when_identity_required():
    stub = _stub()
    async with stub.client() as gateway:
        pad = _pad(gateway, identity_provider=None)
        with pytest.raises(IdentityConfigMissing):
            await pad.connect()
    assert pad.context.identity.wallet_address == WALLET


@pytest.mark.asyncio
async def test_validation_failure_happens_before_any_network_call():
    stub = _stub()
    async with stub.client() as gateway:
        pad = _pad(gateway)
        pad.context.bind_wallet(WALLET, SEPOLIA_HEX)
        with pytest.raises(ValidationError) as excinfo:
            await pad.launch(valid_profile(per_trade_notional_cap_usd=5000, max_allocation_usd=1000))
    assert excinfo.value.field == "per_trade_notional_cap_usd"
    assert stub.requests == []
    assert pad.poller is None


@pytest.mark.asyncio
async def test_launch_requires_delegated_identity_when_bootstrap_does():
    stub = _stub()
    async with stub.client() as gateway:
        pad = _pad(gateway)
        pad.context.bind_wallet(WALLET, SEPOLIA_HEX)
        with pytest.raises(SiweAuthFailed):
            await pad.launch(valid_profile())
    assert stub.calls("/challenge") == []


@pytest.mark.asyncio
async def test_suggest_config_returns_normalized_draft():
    stub = GatewayStub().json(
        "POST",
        "/suggest-config",
        {"config": {"hyperliquid_network": "testnet"}, "assumptions": ["paper first"], "warnings": ["no vault"]},
    )
    async with stub.client() as gateway:
        pad = _pad(gateway)
        pad.context.bind_wallet(WALLET, SEPOLIA_HEX)
        draft, notes = await pad.suggest_config("grow BTC slowly", gateway_auth_key="g" * 20)
    assert draft["hyperliquid_network"] == "testnet"
    assert draft["user_wallet_address"] == WALLET
    assert draft["gateway_auth_key"] == "g" * 20
    assert notes == ["paper first", "no vault"]
    body = stub.bodies("/suggest-config")[0]
    assert body["wallet_address"] == WALLET
    assert body["intent"] == "grow BTC slowly"


@pytest.mark.asyncio
async def test_logout_stops_poller_and_resets_context():
    stub = _stub()
    stub.json("GET", "/session/sess-9", {"status": "provisioning"})
    provider = FakeIdentityProvider()
    async with stub.client() as gateway:
        pad = _pad(gateway, identity_provider=provider)
        await pad.connect()
        await pad.launch(valid_profile())
        poller = pad.poller
        generation = pad.context.generation
        await asyncio.sleep(0.01)
        await pad.logout()

    assert pad.poller is None
    assert poller.navigated_to is None
    assert provider.logout_calls == 1
    assert pad.bootstrap is None
    assert pad.context.identity is None
    assert pad.context.launch_session is None
    assert pad.context.generation == generation + 1


@pytest.mark.asyncio
async def test_second_launch_replaces_poller():
    stub = _stub({**BOOTSTRAP, "require_privy": False})
    stub.json("GET", "/session/sess-9", {"status": "provisioning"})
    async with stub.client() as gateway:
        pad = _pad(gateway)
        await pad.connect()
        await pad.launch(valid_profile())
        first = pad.poller
        await pad.launch(valid_profile())
        assert pad.poller is not first
        assert first._task is None
        await pad.logout()


@pytest.mark.asyncio
async def test_provider_factory_receives_bootstrap():
    stub = _stub()
    seen = []

    def factory(bootstrap):
        seen.append(bootstrap)
        return FakeIdentityProvider()

    async with stub.client() as gateway:
        pad = _pad(gateway, identity_provider=factory)
        await pad.connect()
    assert isinstance(seen[0], Bootstrap)
    assert seen[0].identity_app_id == "app-123"


def test_load_identity_provider_from_path():
    bootstrap = Bootstrap.model_validate(BOOTSTRAP)
    provider = load_identity_provider("tests.frontdoor._fakes:provider_factory", bootstrap)
    assert provider.bootstrap is bootstrap
    with pytest.raises(IdentityConfigMissing):
        load_identity_provider("no_colon_here", bootstrap)


@pytest.mark.asyncio
async def test_from_config_wires_sections():
    cfg = UnifiedConfig()
    cfg.identity.origin = "https://verify-sepolia.example"
    cfg.identity.provider = "tests.frontdoor._fakes:provider_factory"
    cfg.polling.max_consecutive_failures = 4
    stub = _stub()
    async with stub.client() as gateway:
        pad = Launchpad.from_config(cfg, gateway=gateway, wallet_transport=FakeWallet())
        assert pad.hostname == "verify-sepolia.example"
        assert pad.max_consecutive_failures == 4
        await pad.connect()
    assert pad.identity_provider.bootstrap.identity_app_id == "app-123"
    assert pad.context.identity.chain_id == SEPOLIA_HEX


@pytest.mark.asyncio
async def test_gateway_error_on_bootstrap_is_verbatim():
    stub = GatewayStub().route("GET", "/bootstrap", httpx.Response(503, json={"message": "maintenance"}))
    async with stub.client() as gateway:
        with pytest.raises(GatewayRequestError, match="^maintenance$"):
            await _pad(gateway).connect()


@pytest.mark.asyncio
async def test_local_app_id_fills_missing_bootstrap_value():
    stub = _stub({"enabled": True, "require_delegated_identity": True, "poll_interval_ms": 1})
    async with stub.client() as gateway:
        pad = _pad(gateway, identity_app_id="local-app", identity_client_id="local-client")
        bootstrap = await pad.load_bootstrap()
    assert bootstrap.identity_app_id == "local-app"
    assert bootstrap.identity_client_id == "local-client"


@pytest.mark.asyncio
async def test_gateway_app_id_wins_over_local_value():
    stub = _stub()
    async with stub.client() as gateway:
        pad = _pad(gateway, identity_app_id="local-app")
        bootstrap = await pad.load_bootstrap()
    assert bootstrap.identity_app_id == "app-123"


@pytest.mark.asyncio
async def test_configured_siwe_domain_reaches_provider():
    cfg = UnifiedConfig()
    cfg.identity.origin = "https://app.example"
    cfg.identity.domain = "login.example"
    provider = FakeIdentityProvider()
    stub = _stub()
    async with stub.client() as gateway:
        pad = Launchpad.from_config(
            cfg, gateway=gateway, wallet_transport=FakeWallet(), identity_provider=provider
        )
        await pad.connect()
    assert [call[1] for call in provider.init_calls] == ["login.example"]


@pytest.mark.asyncio
async def test_steps_before_connect_ask_for_wallet():
    stub = _stub()
    async with stub.client() as gateway:
        pad = _pad(gateway)
        with pytest.raises(WalletNotConnected, match="Connect wallet first"):
            await pad.suggest_config("grow BTC")
        with pytest.raises(WalletNotConnected):
            await pad.launch(valid_profile(custody_mode="operator_wallet", operator_wallet_address=OTHER_WALLET))
    assert stub.calls("/suggest-config") == []
    assert stub.calls("/challenge") == []
