"""ContractUtility: Web3 initialization and contract binding."""

import os

from eth_account import Account
from eth_account.signers.local import LocalAccount
from sapphirepy import sapphire
from web3 import Web3
from web3.contract import Contract
from web3.middleware import SignAndSendRawMiddlewareBuilder

from .abis import ABIS

# Well-known localnet test account (Hardhat/Anvil account #0).
LOCALNET_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"

NETWORKS = {
    "sapphire": "https://sapphire.oasis.io",
    "sapphire-testnet": "https://testnet.sapphire.oasis.io",
    "sapphire-localnet": "http://localhost:8545",
}


class ContractUtility:
    """Utility for Web3 connection and contract binding.

    :ivar network: Network RPC URL.
    :ivar w3: Configured Web3 instance with Sapphire wrapping.
    """

    def __init__(self, network_name: str, request_timeout: float = 10.0) -> None:
        """Initialize the contract utility.

        :param network_name: Name of the network to connect to, or an RPC URL.
        :param request_timeout: Per-request HTTP timeout in seconds.
        """
        # RPC_URL env var overrides the default for the network
        self.network = os.environ.get("RPC_URL") or NETWORKS.get(network_name, network_name)

        self.w3 = Web3(
            Web3.HTTPProvider(self.network, request_kwargs={"timeout": request_timeout})
        )

        # A signer is only needed for the mutating circuit breaker probe
        private_key = os.environ.get("PRIVATE_KEY")
        if not private_key and network_name == "sapphire-localnet":
            private_key = LOCALNET_PRIVATE_KEY
        if private_key:
            account: LocalAccount = Account.from_key(private_key)
            self.w3.middleware_onion.add(SignAndSendRawMiddlewareBuilder.build(account))
            self.w3.eth.default_account = account.address
        self.w3 = sapphire.wrap(self.w3)

    @property
    def default_account(self) -> str | None:
        """Address transactions are sent from, if a signer is configured."""
        account = self.w3.eth.default_account
        return account if isinstance(account, str) else None

    @staticmethod
    def get_abi(contract_name: str) -> list:
        """Return the ABI of a known contract interface.

        :param contract_name: Interface name (e.g., "AggregatorV2V3Interface").
        :returns: ABI list.
        :raises ValueError: If the interface is unknown.
        """
        try:
            return ABIS[contract_name]
        except KeyError:
            raise ValueError(
                f"Unknown contract '{contract_name}'. Available: {sorted(ABIS)}"
            ) from None

    def contract(self, contract_name: str, address: str) -> Contract:
        """Bind a known contract interface at an address.

        :param contract_name: Interface name.
        :param address: Contract address (any case).
        :returns: web3 Contract instance.
        """
        return self.w3.eth.contract(
            address=Web3.to_checksum_address(address),
            abi=self.get_abi(contract_name),
        )
