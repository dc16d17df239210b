"""ContractUtility: Web3 initialization and contract ABI loading."""

import json
import logging
import os
from pathlib import Path

from web3 import Web3

logger = logging.getLogger(__name__)

# Public JSON-RPC endpoints per network.
NETWORKS: dict[str, str] = {
    "ethereum": "https://ethereum-rpc.publicnode.com",
    "bsc": "https://bsc-dataseed.bnbchain.org",
    "polygon": "https://polygon-rpc.com",
    "arbitrum": "https://arb1.arbitrum.io/rpc",
    "optimism": "https://mainnet.optimism.io",
    "base": "https://mainnet.base.org",
    "localnet": "http://localhost:8545",
}

DEFAULT_RPC_TIMEOUT = 10.0


class ContractUtility:
    """Utility for Web3 connection and contract ABI loading.

    Oracle queries are bounded by the provider's request timeout; a query
    that exceeds it fails like any other oracle error.

    :ivar network: Network RPC URL.
    :ivar w3: Configured Web3 instance.
    """

    def __init__(
        self,
        network_name: str,
        rpc_url: str | None = None,
        timeout: float = DEFAULT_RPC_TIMEOUT,
    ) -> None:
        """Initialize the contract utility.

        :param network_name: Name of the network to connect to, or an RPC URL.
        :param rpc_url: Optional RPC URL overriding the network default.
        :param timeout: Per-request timeout in seconds (default: 10.0).
        """
        # Explicit URL, then RPC_URL env var, then the network default
        self.network = (
            rpc_url
            or os.environ.get("RPC_URL")
            or NETWORKS.get(network_name, network_name)
        )
        logger.debug(f"Connecting to {self.network} (timeout={timeout}s)")
        self.w3 = Web3(
            Web3.HTTPProvider(self.network, request_kwargs={"timeout": timeout})
        )

    @staticmethod
    def get_abi(contract_name: str) -> list:
        """Load the ABI of a contract from the packaged abi folder.

        :param contract_name: Name of the contract (e.g., "IOracle").
        :returns: Contract ABI.
        """
        abi_path = (
            Path(__file__).parent.parent / "abi" / f"{contract_name}.json"
        ).resolve()

        with open(abi_path, "r") as file:
            contract_data = json.load(file)

        return contract_data["abi"]
