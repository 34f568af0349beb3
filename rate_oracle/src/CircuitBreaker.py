"""CircuitBreaker: Detect implausible jumps in a feed's rate.

Two operations with different mutability:

- ``is_invalid(address, rate)`` is read-only and repeatable.
- ``probe_circuit_breaker(address, rate)`` records ``rate`` as the feed's last
  value and latches the breaker when the rate is anomalous. It is used right
  before an exchange executes.

:class:`DeviationCircuitBreaker` is an in-process implementation. A rate is
anomalous when it is zero or when it moved by at least ``factor`` (up or
down) relative to the last probed value. Once broken, a feed stays broken
until its last value is reset by the owner.

.. code-block:: python

    >>> breaker = DeviationCircuitBreaker(factor=2 * UNIT)
    >>> addr = "0x" + "11" * 20
    >>> breaker.probe_circuit_breaker(addr, 100 * UNIT)
    False
    >>> breaker.is_invalid(addr, 250 * UNIT)
    True
    >>> breaker.probe_circuit_breaker(addr, 150 * UNIT)
    False
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, Sequence, runtime_checkable

from web3 import Web3

from .Authorization import OwnerAuthorization
from .FixedPoint import UNIT, divide_decimal, multiply_decimal

if TYPE_CHECKING:
    from web3.contract import Contract

logger = logging.getLogger(__name__)


@runtime_checkable
class CircuitBreaker(Protocol):
    """Contract for an anomaly detector guarding feed rates."""

    def probe_circuit_breaker(self, oracle_address: str, value: int) -> bool:
        """Record ``value`` and return True if the breaker is (now) broken."""
        ...

    def is_invalid(self, oracle_address: str, value: int) -> bool:
        """Return True if ``value`` would be considered anomalous."""
        ...


class DeviationCircuitBreaker:
    """In-process circuit breaker based on the deviation from the last value.

    :ivar factor: Deviation factor in 18-decimal fixed point (e.g. 1.5 units
        breaks on a 50% rise or a one-third fall).
    """

    DEFAULT_FACTOR = 3 * UNIT // 2

    def __init__(
        self,
        factor: int = DEFAULT_FACTOR,
        authorization: OwnerAuthorization | None = None,
    ) -> None:
        """Initialize the circuit breaker.

        :param factor: Deviation factor, must be greater than one unit.
        :param authorization: Owner check guarding the reset operation. If
            None, resets are unrestricted.
        :raises ValueError: If factor is not greater than one unit.
        """
        if factor <= UNIT:
            raise ValueError("factor must be greater than one unit")
        self.factor = factor
        self.authorization = authorization
        self._last_value: dict[str, int] = {}
        self._broken: dict[str, bool] = {}

    def last_value(self, oracle_address: str) -> int:
        """Return the last probed value for a feed, 0 if none."""
        return self._last_value.get(Web3.to_checksum_address(oracle_address), 0)

    def circuit_broken(self, oracle_address: str) -> bool:
        """Return True if the breaker for a feed is latched."""
        return self._broken.get(Web3.to_checksum_address(oracle_address), False)

    def is_deviation_above_threshold(self, base: int, comparison: int) -> bool:
        """Check whether ``comparison`` deviates from ``base`` by the factor.

        A zero base means there is nothing to compare against yet.
        """
        if base == 0:
            return False
        return comparison >= multiply_decimal(base, self.factor) or comparison <= divide_decimal(
            base, self.factor
        )

    def _is_invalid(self, oracle_address: str, value: int) -> bool:
        return value == 0 or self.is_deviation_above_threshold(
            self._last_value.get(oracle_address, 0), value
        )

    def is_invalid(self, oracle_address: str, value: int) -> bool:
        """Return True if the feed is latched or ``value`` is anomalous.

        Does not record ``value``.
        """
        address = Web3.to_checksum_address(oracle_address)
        return self._broken.get(address, False) or self._is_invalid(address, value)

    def probe_circuit_breaker(self, oracle_address: str, value: int) -> bool:
        """Check ``value``, latch the breaker if anomalous, and record it.

        :param oracle_address: Feed address.
        :param value: Current normalized rate.
        :returns: True if the breaker is broken after this probe.
        """
        address = Web3.to_checksum_address(oracle_address)
        if not self._broken.get(address, False) and self._is_invalid(address, value):
            self._broken[address] = True
            logger.warning(
                f"Circuit broken for {address}: "
                f"last={self._last_value.get(address, 0)}, new={value}"
            )
        self._last_value[address] = value
        return self._broken.get(address, False)

    def reset_last_value(
        self,
        caller: str,
        oracle_addresses: Sequence[str],
        values: Sequence[int],
    ) -> None:
        """Override last values and clear the latch for the given feeds.

        :param caller: Address performing the reset.
        :param oracle_addresses: Feed addresses to reset.
        :param values: New last values, one per address.
        :raises NotAuthorizedError: If caller is not the owner.
        :raises ValueError: If the sequences differ in length.
        """
        if self.authorization is not None:
            self.authorization.require_owner(caller)
        if len(oracle_addresses) != len(values):
            raise ValueError("oracle_addresses must be the same length as values")

        for oracle_address, value in zip(oracle_addresses, values):
            address = Web3.to_checksum_address(oracle_address)
            self._last_value[address] = value
            self._broken[address] = False
            logger.info(f"Circuit breaker reset for {address} (last={value})")


class CircuitBreakerContract:
    """Circuit breaker backed by an on-chain contract.

    The read-only check is a plain call. The probe is first simulated to
    obtain its result and then sent as a transaction so the contract records
    the value; the web3 instance must have a default account that the
    contract accepts as a prober.

    :ivar contract: Bound web3 contract.
    """

    def __init__(self, contract: Contract) -> None:
        """Initialize the circuit breaker.

        :param contract: web3 contract bound with the CircuitBreaker ABI.
        """
        self.contract = contract

    def __repr__(self) -> str:
        """Return a developer-friendly string representation."""
        return f"CircuitBreakerContract({self.contract.address!r})"

    def is_invalid(self, oracle_address: str, value: int) -> bool:
        """Return the contract's read-only classification of ``value``."""
        return bool(
            self.contract.functions.isInvalid(
                Web3.to_checksum_address(oracle_address), value
            ).call()
        )

    def probe_circuit_breaker(self, oracle_address: str, value: int) -> bool:
        """Probe the contract, recording ``value`` on-chain.

        :returns: True if the breaker is broken after this probe.
        """
        fn = self.contract.functions.probeCircuitBreaker(
            Web3.to_checksum_address(oracle_address), value
        )
        broken = bool(fn.call())

        w3 = self.contract.w3
        tx_hash = fn.transact()
        receipt = w3.eth.wait_for_transaction_receipt(tx_hash)
        if receipt["status"] != 1:
            raise RuntimeError(f"probeCircuitBreaker transaction reverted: {tx_hash.hex()}")

        logger.debug(f"Probed circuit breaker for {oracle_address}: broken={broken}")
        return broken
