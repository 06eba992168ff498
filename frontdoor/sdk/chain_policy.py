"""Host-to-network requirements and wallet network enforcement."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .addresses import normalize_chain_id, parse_chain_id
from .errors import ChainMismatch, WalletRpcError

if TYPE_CHECKING:  # pragma: no cover
    from .wallet import WalletTransport

logger = logging.getLogger(__name__)

SEPOLIA_CHAIN_ID = 11155111

#: EIP-1193 error code for "Unrecognized chain ID".
UNKNOWN_CHAIN_ERROR_CODE = 4902

# Networks that can be added to a wallet that does not know them yet.
ADDABLE_NETWORKS: dict[int, dict[str, Any]] = {
    SEPOLIA_CHAIN_ID: {
        "chainId": "0xaa36a7",
        "chainName": "Sepolia",
        "nativeCurrency": {"name": "Sepolia Ether", "symbol": "ETH", "decimals": 18},
        "rpcUrls": ["https://rpc.sepolia.org"],
        "blockExplorerUrls": ["https://sepolia.etherscan.io"],
    },
}

DEFAULT_REQUIRED_NETWORKS: dict[str, int] = {"verify-sepolia": SEPOLIA_CHAIN_ID}


class ChainPolicy:
    """Map deployment hosts to the network their gateway verifies on.

    ``required_networks`` maps a lowercase host substring to a network id; the
    first matching entry wins.
    """

    def __init__(self, required_networks: Mapping[str, int] | None = None) -> None:
        networks = DEFAULT_REQUIRED_NETWORKS if required_networks is None else required_networks
        self.required_networks = {str(k).lower(): int(v) for k, v in networks.items()}

    def required_network(self, hostname: str | None) -> int | None:
        host = str(hostname or "").strip().lower()
        if not host:
            return None
        for needle, network in self.required_networks.items():
            if needle and needle in host:
                return network
        return None

    async def enforce(
        self,
        transport: "WalletTransport",
        current: Any,
        *,
        hostname: str | None = None,
        required: int | None = None,
    ) -> str:
        """Make sure ``transport`` is on the required network.

        Returns the (normalized) network id the wallet ends up on.  Raises
        :class:`ChainMismatch` when the wallet is still elsewhere after the
        switch request.
        """

        target = required if required is not None else self.required_network(hostname)
        if target is None:
            return normalize_chain_id(current)
        if parse_chain_id(current) == target:
            return normalize_chain_id(current)

        logger.info("Switching wallet from chain %s to %s", current, target)
        await self._switch(transport, target)
        switched = await transport.request("eth_chainId")
        if parse_chain_id(switched) != target:
            raise ChainMismatch(target, normalize_chain_id(switched) or None)
        return normalize_chain_id(switched)

    async def _switch(self, transport: "WalletTransport", network: int) -> None:
        try:
            await transport.request("wallet_switchEthereumChain", [{"chainId": hex(network)}])
            return
        except WalletRpcError as exc:
            add_params = ADDABLE_NETWORKS.get(network)
            if exc.rpc_code != UNKNOWN_CHAIN_ERROR_CODE or add_params is None:
                raise
        logger.info("Wallet does not know chain %s; requesting add", network)
        await transport.request("wallet_addEthereumChain", [dict(add_params)])


__all__ = [
    "ADDABLE_NETWORKS",
    "ChainPolicy",
    "DEFAULT_REQUIRED_NETWORKS",
    "SEPOLIA_CHAIN_ID",
    "UNKNOWN_CHAIN_ERROR_CODE",
]
