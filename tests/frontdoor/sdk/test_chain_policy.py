import pytest

from frontdoor.sdk.chain_policy import SEPOLIA_CHAIN_ID, ChainPolicy
from frontdoor.sdk.errors import ChainMismatch, WalletRpcError

from tests.frontdoor._fakes import SEPOLIA_HEX, FakeWallet


class SwitchingWallet(FakeWallet):
    """Wallet whose chain changes once a switch or add request lands."""

    def __init__(self, start="0x1", *, known=True, follow=True):
        super().__init__(chain_id=start)
        self.known = known
        self.follow = follow
        self.methods["eth_chainId"] = lambda params: self.chain
        self.methods["wallet_switchEthereumChain"] = self._switch
        self.methods["wallet_addEthereumChain"] = self._add
        self.chain = start

    def _switch(self, params):
        if not self.known:
            raise WalletRpcError("Unrecognized chain ID", rpc_code=4902)
        if self.follow:
            self.chain = params[0]["chainId"]

    def _add(self, params):
        self.known = True
        self.chain = params[0]["chainId"]


def test_required_network_matches_host_substring():
    policy = ChainPolicy()
    assert policy.required_network("app.verify-sepolia.example") == SEPOLIA_CHAIN_ID
    assert policy.required_network("app.example") is None
    assert policy.required_network(None) is None


@pytest.mark.asyncio
async def test_enforce_without_requirement_keeps_chain():
    wallet = SwitchingWallet("0x89")
    assert await ChainPolicy().enforce(wallet, "0x89", hostname="localhost") == "0x89"
    assert wallet.called("wallet_switchEthereumChain") == []


@pytest.mark.asyncio
async def test_enforce_on_required_chain_does_not_switch():
    wallet = SwitchingWallet(SEPOLIA_HEX)
    result = await ChainPolicy().enforce(wallet, "11155111", hostname="verify-sepolia.test")
    assert result == SEPOLIA_HEX
    assert wallet.called("wallet_switchEthereumChain") == []


@pytest.mark.asyncio
async def test_enforce_switches_to_required_chain():
    wallet = SwitchingWallet("0x1")
    result = await ChainPolicy().enforce(wallet, "0x1", hostname="verify-sepolia.test")
    assert result == SEPOLIA_HEX
    assert wallet.called("wallet_switchEthereumChain") == [[{"chainId": SEPOLIA_HEX}]]


@pytest.mark.asyncio
async def test_enforce_adds_unknown_chain_then_confirms():
    wallet = SwitchingWallet("0x1", known=False)
    result = await ChainPolicy().enforce(wallet, "0x1", hostname="verify-sepolia.test")
    assert result == SEPOLIA_HEX
    added = wallet.called("wallet_addEthereumChain")
    assert len(added) == 1
    assert added[0][0]["chainId"] == SEPOLIA_HEX


@pytest.mark.asyncio
async def test_enforce_raises_when_wallet_stays_on_other_chain():
    wallet = SwitchingWallet("0x1", follow=False)
    with pytest.raises(ChainMismatch) as excinfo:
        await ChainPolicy().enforce(wallet, "0x1", hostname="verify-sepolia.test")
    assert excinfo.value.required == SEPOLIA_CHAIN_ID
    assert excinfo.value.actual == "0x1"


@pytest.mark.asyncio
async def test_enforce_propagates_other_switch_errors():
    wallet = SwitchingWallet("0x1")
    wallet.methods["wallet_switchEthereumChain"] = WalletRpcError("User rejected", rpc_code=4001)
    with pytest.raises(WalletRpcError):
        await ChainPolicy().enforce(wallet, "0x1", hostname="verify-sepolia.test")
    assert wallet.called("wallet_addEthereumChain") == []


@pytest.mark.asyncio
async def test_custom_required_networks():
    wallet = SwitchingWallet("0x1")
    policy = ChainPolicy({"Polygon-Host": 137})
    assert await policy.enforce(wallet, "0x1", hostname="app.polygon-host.io") == "0x89"
