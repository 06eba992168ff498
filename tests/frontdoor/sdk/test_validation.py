import pydantic
import pytest

from frontdoor.sdk.context import Identity
from frontdoor.sdk.errors import ValidationError
from frontdoor.sdk.validation import RuntimeConfig, parse_symbols, validate

from tests.frontdoor._fakes import OTHER_WALLET, WALLET, valid_profile

OPERATOR = "0x" + "12" * 20


def _field_error(raw, identity=WALLET):
    with pytest.raises(ValidationError) as excinfo:
        validate(raw, identity)
    return excinfo.value


def test_valid_profile_builds_frozen_config():
    config = validate(valid_profile(), Identity(wallet_address=WALLET, chain_id="0x1"))
    assert isinstance(config, RuntimeConfig)
    assert config.symbol_allowlist == ["BTC", "ETH"]
    assert config.user_wallet_address == WALLET
    assert config.verification_backend == "eigencloud_primary"
    assert config.verification_eigencloud_auth_scheme == "bearer"
    assert config.verification_eigencloud_timeout_ms == 5000
    assert config.verification_fallback_enabled is True
    assert config.verification_fallback_require_signed_receipts is True
    assert config.config_version == 2
    with pytest.raises(pydantic.ValidationError):
        config.profile_name = "changed"


def test_payload_carries_secrets_for_the_gateway():
    payload = validate(valid_profile(), WALLET).to_payload()
    assert payload["gateway_auth_key"] == "k" * 24
    assert payload["custody_mode"] == "user_wallet"
    assert payload["accept_terms"] is True


def test_numbers_are_floored_and_strings_accepted():
    config = validate(valid_profile(max_retries="3.9", leverage_cap=5.7), WALLET)
    assert config.max_retries == 3
    assert config.leverage_cap == 5


@pytest.mark.parametrize(
    "field, value",
    [
        ("request_timeout_ms", 999),
        ("request_timeout_ms", 120001),
        ("max_retries", 11),
        ("retry_backoff_ms", -1),
        ("max_slippage_bps", 0),
        ("max_slippage_bps", 5001),
        ("leverage_cap", 21),
        ("max_allocation_usd", 10_000_001),
        ("verification_eigencloud_timeout_ms", 120001),
    ],
)
def test_integer_ranges(field, value):
    assert _field_error(valid_profile(**{field: value})).field == field


@pytest.mark.parametrize("value", ["abc", float("nan"), float("inf"), None, True])
def test_non_numeric_integer_rejected(value):
    err = _field_error(valid_profile(max_retries=value))
    assert err.field == "max_retries"


def test_integer_too_large_for_float_rejected():
    err = _field_error(valid_profile(max_allocation_usd=10**400))
    assert err.field == "max_allocation_usd"
    assert "valid number" in str(err)


def test_integer_range_boundaries_accepted():
    config = validate(
        valid_profile(request_timeout_ms=1000, max_retries=0, retry_backoff_ms=30000, max_slippage_bps=5000),
        WALLET,
    )
    assert config.request_timeout_ms == 1000
    assert config.max_slippage_bps == 5000


@pytest.mark.parametrize(
    "field", ["hyperliquid_network", "paper_live_policy", "information_sharing_scope", "kill_switch_behavior"]
)
def test_required_text_fields(field):
    assert _field_error(valid_profile(**{field: "  "})).field == field


def test_profile_name_required():
    assert _field_error(valid_profile(profile_name="")).field == "profile_name"


@pytest.mark.parametrize("value", [False, "false", None])
def test_accept_terms_required(value):
    assert _field_error(valid_profile(accept_terms=value)).field == "accept_terms"


def test_per_trade_cap_above_allocation_fails():
    err = _field_error(valid_profile(per_trade_notional_cap_usd=1001, max_allocation_usd=1000))
    assert err.field == "per_trade_notional_cap_usd"


def test_per_trade_cap_equal_to_allocation_passes():
    assert validate(valid_profile(per_trade_notional_cap_usd=1000), WALLET).per_trade_notional_cap_usd == 1000


def test_max_leverage_above_cap_fails():
    assert _field_error(valid_profile(max_leverage=6, leverage_cap=5)).field == "max_leverage"


@pytest.mark.parametrize("value", ["", " , ,", []])
def test_symbol_allowlist_needs_one_market(value):
    assert _field_error(valid_profile(symbol_allowlist=value)).field == "symbol_allowlist"


def test_parse_symbols():
    assert parse_symbols(" btc, ,eth ") == ["BTC", "ETH"]
    assert parse_symbols(["sol", " "]) == ["SOL"]
    assert parse_symbols(None) == []


def test_unknown_custody_mode():
    assert _field_error(valid_profile(custody_mode="cold_storage")).field == "custody_mode"


@pytest.mark.parametrize("mode", ["operator_wallet", "dual_mode"])
def test_operator_custody_needs_operator_wallet(mode):
    assert _field_error(valid_profile(custody_mode=mode)).field == "operator_wallet_address"


def test_operator_custody_without_connected_wallet():
    config = validate(valid_profile(custody_mode="operator_wallet", operator_wallet_address=OPERATOR), None)
    assert config.operator_wallet_address == OPERATOR
    assert config.user_wallet_address is None


def test_user_custody_needs_connected_wallet():
    assert _field_error(valid_profile(), identity=None).field == "wallet_address"


def test_blank_user_wallet_is_filled_from_connected_wallet():
    config = validate(valid_profile(user_wallet_address="  "), WALLET)
    assert config.user_wallet_address == WALLET


def test_user_wallet_must_match_connected_wallet():
    err = _field_error(valid_profile(user_wallet_address=OTHER_WALLET))
    assert err.field == "user_wallet_address"


def test_user_wallet_case_does_not_matter():
    upper = WALLET.upper().replace("0X", "0x")
    assert validate(valid_profile(user_wallet_address=upper), WALLET).user_wallet_address == WALLET


@pytest.mark.parametrize("field", ["operator_wallet_address", "user_wallet_address", "vault_address"])
def test_malformed_wallet_fields(field):
    assert _field_error(valid_profile(**{field: "0xnothex"})).field == field


@pytest.mark.parametrize("key", ["k" * 15, "k" * 129, "k" * 10 + " " + "k" * 10])
def test_gateway_auth_key_shape(key):
    assert _field_error(valid_profile(gateway_auth_key=key)).field == "gateway_auth_key"


def test_gateway_auth_key_boundaries():
    assert validate(valid_profile(gateway_auth_key="k" * 16), WALLET)
    assert validate(valid_profile(gateway_auth_key="k" * 128), WALLET)


def test_gateway_auth_key_required():
    assert _field_error(valid_profile(gateway_auth_key=None)).field == "gateway_auth_key"


def test_unknown_verification_backend():
    assert _field_error(valid_profile(verification_backend="magic")).field == "verification_backend"


def test_unknown_auth_scheme():
    err = _field_error(valid_profile(verification_eigencloud_auth_scheme="basic"))
    assert err.field == "verification_eigencloud_auth_scheme"


def test_fallback_only_requires_fallback_enabled():
    err = _field_error(
        valid_profile(verification_backend="fallback_only", verification_fallback_enabled=False)
    )
    assert err.field == "verification_fallback_enabled"


@pytest.mark.parametrize(
    "field",
    [
        "verification_fallback_chain_path",
        "hyperliquid_api_base_url",
        "hyperliquid_ws_url",
        "verification_eigencloud_endpoint",
    ],
)
def test_path_like_fields_reject_newlines(field):
    assert _field_error(valid_profile(**{field: "https://a.example/\nx"})).field == field


def test_invalid_boolean():
    assert _field_error(valid_profile(enable_memory="maybe")).field == "enable_memory"


def test_first_failure_wins():
    err = _field_error(valid_profile(hyperliquid_network="", profile_name=""))
    assert err.field == "hyperliquid_network"
