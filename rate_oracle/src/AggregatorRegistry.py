"""AggregatorRegistry: Currency key to price feed mapping.

The registry holds, per currency key, the feed handle and the feed's decimals
as captured at registration. Keys are also kept in an enumeration list for
iteration. Removal swaps the removed key with the last one, so iteration
order is not stable across removals.

Only the owner may add or remove aggregators; the owner check is injected at
construction.

.. code-block:: python

    registry = AggregatorRegistry(OwnerAuthorization(owner))
    registry.add_aggregator(owner, CurrencyKey.from_string("sETH"), eth_feed)
    registry.aggregator_keys()
    # [CurrencyKey('sETH')]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterator, Union

from .Authorization import OwnerAuthorization
from .CurrencyKey import CurrencyKey
from .errors import AggregatorNotFoundError, InvalidAggregatorError
from .FeedHandle import FeedHandle, handle_address
from .RateNormalizer import MAX_DECIMALS
from .SafeCall import safe_call

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregatorAdded:
    """Emitted when a feed is registered or replaced for a key."""

    currency_key: CurrencyKey
    aggregator: str


@dataclass(frozen=True)
class AggregatorRemoved:
    """Emitted when a registered key is removed from the enumeration list."""

    currency_key: CurrencyKey
    aggregator: str


RegistryEvent = Union[AggregatorAdded, AggregatorRemoved]


class AggregatorRegistry:
    """Registry of price feeds by currency key.

    :ivar authorization: Owner check for mutations.
    """

    def __init__(self, authorization: OwnerAuthorization) -> None:
        """Initialize an empty registry.

        :param authorization: Owner check guarding add/remove.
        """
        self.authorization = authorization
        self._aggregators: dict[CurrencyKey, FeedHandle] = {}
        self._decimals: dict[CurrencyKey, int] = {}
        self._keys: list[CurrencyKey] = []
        self._key_index: dict[CurrencyKey, int] = {}
        self._listeners: list[Callable[[RegistryEvent], None]] = []

    def __len__(self) -> int:
        """Return the number of registered keys."""
        return len(self._keys)

    def __contains__(self, key: object) -> bool:
        """Check whether a key has a registered feed."""
        return key in self._aggregators

    def __iter__(self) -> Iterator[CurrencyKey]:
        """Iterate over registered keys (order unstable across removals)."""
        return iter(list(self._keys))

    def subscribe(self, listener: Callable[[RegistryEvent], None]) -> None:
        """Register a callback receiving registry events."""
        self._listeners.append(listener)

    def _emit(self, event: RegistryEvent) -> None:
        logger.info(f"{type(event).__name__}: {event.currency_key} -> {event.aggregator}")
        for listener in self._listeners:
            listener(event)

    def add_aggregator(self, caller: str, currency_key: CurrencyKey, handle: FeedHandle) -> None:
        """Register or replace the feed for a currency key.

        The feed must answer a latest round query with a non-negative round id
        and report at most 27 decimals. The decimals are captured here and used
        for every later normalization.

        :param caller: Address performing the operation.
        :param currency_key: Key to register.
        :param handle: Feed to bind to the key.
        :raises NotAuthorizedError: If caller is not the owner.
        :raises InvalidAggregatorError: If the feed fails the liveness probe or
            reports too many decimals.
        """
        self.authorization.require_owner(caller)
        address = handle_address(handle)

        probe = safe_call(
            handle.latest_round_id,
            default=-1,
            description=f"latestRound() on {address}",
            validate=lambda r: isinstance(r, int) and r >= 0,
            log_level=logging.WARNING,
        )
        if not probe.ok:
            raise InvalidAggregatorError(f"Given Aggregator is invalid: {address}")

        decimals = safe_call(
            handle.decimals,
            default=-1,
            description=f"decimals() on {address}",
            validate=lambda d: isinstance(d, int) and d >= 0,
            log_level=logging.WARNING,
        )
        if not decimals.ok:
            raise InvalidAggregatorError(f"Given Aggregator is invalid: {address}")
        if decimals.value > MAX_DECIMALS:
            raise InvalidAggregatorError(
                f"Aggregator decimals should be lower or equal to {MAX_DECIMALS}, "
                f"got {decimals.value}"
            )

        if currency_key not in self._key_index:
            self._key_index[currency_key] = len(self._keys)
            self._keys.append(currency_key)
        self._aggregators[currency_key] = handle
        self._decimals[currency_key] = decimals.value

        self._emit(AggregatorAdded(currency_key, address))

    def remove_aggregator(self, caller: str, currency_key: CurrencyKey) -> None:
        """Remove the feed registered for a currency key.

        :param caller: Address performing the operation.
        :param currency_key: Key to remove.
        :raises NotAuthorizedError: If caller is not the owner.
        :raises AggregatorNotFoundError: If no feed is registered for the key.
        """
        self.authorization.require_owner(caller)
        handle = self._aggregators.get(currency_key)
        if handle is None:
            raise AggregatorNotFoundError(f"No aggregator exists for key {currency_key}")

        del self._aggregators[currency_key]
        self._decimals.pop(currency_key, None)

        if self._swap_remove(currency_key):
            self._emit(AggregatorRemoved(currency_key, handle_address(handle)))

    def _swap_remove(self, currency_key: CurrencyKey) -> bool:
        index = self._key_index.pop(currency_key, None)
        if index is None:
            return False
        last = self._keys.pop()
        if last != currency_key:
            self._keys[index] = last
            self._key_index[last] = index
        return True

    def aggregator(self, currency_key: CurrencyKey) -> FeedHandle | None:
        """Return the feed registered for a key, or None."""
        return self._aggregators.get(currency_key)

    def decimals(self, currency_key: CurrencyKey) -> int:
        """Return the decimals captured at registration, 0 if unregistered."""
        return self._decimals.get(currency_key, 0)

    def aggregator_keys(self) -> list[CurrencyKey]:
        """Return a copy of the enumeration list."""
        return list(self._keys)

    def currencies_using_aggregator(self, handle: FeedHandle | str) -> list[CurrencyKey]:
        """Return every key currently bound to a feed.

        :param handle: Feed handle or its address.
        :returns: Keys in enumeration order.
        """
        address = handle_address(handle)
        return [
            key
            for key in self._keys
            if handle_address(self._aggregators[key]) == address
        ]
