"""FeedHandle: Interface to an external price feed and its web3 implementation.

A feed exposes a time-ordered history of rounds. Every method may raise;
callers inside the engine wrap each call with :func:`~.SafeCall.safe_call`.

.. code-block:: python

    feed = AggregatorFeed(contract_utility.contract("AggregatorV2V3Interface", addr))
    round_id, answer, updated_at = feed.latest_round_data()
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from web3 import Web3

if TYPE_CHECKING:
    from web3.contract import Contract


@runtime_checkable
class FeedHandle(Protocol):
    """Contract every price feed must satisfy.

    :ivar address: Checksummed identifier of the feed, used as the subject
        for warning flags and the circuit breaker.
    """

    address: str

    def decimals(self) -> int:
        """Return the number of decimals the feed reports answers with."""
        ...

    def latest_round_id(self) -> int:
        """Return the id of the latest round."""
        ...

    def latest_round_data(self) -> tuple[int, int, int]:
        """Return ``(round_id, answer, updated_at)`` of the latest round."""
        ...

    def get_round_data(self, round_id: int) -> tuple[int, int]:
        """Return ``(answer, updated_at)`` for a historical round."""
        ...


def handle_address(handle: FeedHandle | str) -> str:
    """Return the checksummed address of a handle or a raw address string."""
    if isinstance(handle, str):
        return Web3.to_checksum_address(handle)
    return Web3.to_checksum_address(handle.address)


class AggregatorFeed:
    """Feed backed by an on-chain Chainlink ``AggregatorV2V3Interface`` contract.

    :ivar contract: Bound web3 contract.
    :ivar address: Checksummed contract address.
    """

    def __init__(self, contract: Contract) -> None:
        """Initialize the feed.

        :param contract: web3 contract bound with the aggregator ABI.
        """
        self.contract = contract
        self.address = Web3.to_checksum_address(contract.address)

    def __repr__(self) -> str:
        """Return a developer-friendly string representation."""
        return f"AggregatorFeed({self.address!r})"

    def decimals(self) -> int:
        """Return the number of decimals the aggregator answers with."""
        return int(self.contract.functions.decimals().call())

    def description(self) -> str:
        """Return the aggregator's description (e.g., "ETH / USD")."""
        return str(self.contract.functions.description().call())

    def latest_round_id(self) -> int:
        """Return the aggregator's latest round id."""
        return int(self.contract.functions.latestRound().call())

    def latest_round_data(self) -> tuple[int, int, int]:
        """Return ``(round_id, answer, updated_at)`` of the latest round."""
        round_id, answer, _started_at, updated_at, _answered_in = (
            self.contract.functions.latestRoundData().call()
        )
        return int(round_id), int(answer), int(updated_at)

    def get_round_data(self, round_id: int) -> tuple[int, int]:
        """Return ``(answer, updated_at)`` for a historical round.

        :param round_id: Round to look up.
        """
        _round, answer, _started_at, updated_at, _answered_in = (
            self.contract.functions.getRoundData(round_id).call()
        )
        return int(answer), int(updated_at)
