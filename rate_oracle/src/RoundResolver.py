"""RoundResolver: Current and historical rates read from registered feeds.

Every feed call is wrapped so that an unreachable feed, a missing round, or a
malformed response resolves to a zero sentinel instead of an exception. The
pivot currency has no feed and no rounds: it always rates at one unit with
time 0.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .AggregatorRegistry import AggregatorRegistry
from .CurrencyKey import SUSD, CurrencyKey
from .FeedHandle import handle_address
from .FixedPoint import UNIT
from .RateNormalizer import format_aggregator_answer
from .SafeCall import safe_call

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateAndUpdatedTime:
    """A normalized rate and the time it was reported.

    :ivar rate: Rate with 18 fractional digits, 0 when unknown.
    :ivar updated_at: Unix timestamp, 0 when unknown or for the pivot.
    """

    rate: int
    updated_at: int

    def __iter__(self):
        """Allow tuple unpacking as ``rate, updated_at``."""
        return iter((self.rate, self.updated_at))


NO_RATE = RateAndUpdatedTime(rate=0, updated_at=0)
PIVOT_RATE = RateAndUpdatedTime(rate=UNIT, updated_at=0)


def _is_int_tuple(value: object, length: int) -> bool:
    return (
        isinstance(value, tuple)
        and len(value) == length
        and all(isinstance(v, int) for v in value)
    )


class RoundResolver:
    """Resolves rates and timestamps at the latest or a given round.

    :ivar registry: Registry of feeds.
    :ivar pivot: Unit-valued pivot currency key.
    """

    def __init__(self, registry: AggregatorRegistry, pivot: CurrencyKey = SUSD) -> None:
        """Initialize the resolver.

        :param registry: Registry providing feeds and captured decimals.
        :param pivot: Pivot currency key (default sUSD).
        """
        self.registry = registry
        self.pivot = pivot

    def current_round_id(self, currency_key: CurrencyKey) -> int:
        """Return the feed's latest round id, 0 for the pivot or on failure."""
        if currency_key == self.pivot:
            return 0
        handle = self.registry.aggregator(currency_key)
        if handle is None:
            return 0
        return safe_call(
            handle.latest_round_id,
            default=0,
            description=f"latestRound() for {currency_key}",
            validate=lambda r: isinstance(r, int) and r >= 0,
        ).value

    def rate_and_updated_time(self, currency_key: CurrencyKey) -> RateAndUpdatedTime:
        """Return the latest normalized rate and its update time.

        :param currency_key: Currency to look up.
        :returns: Pivot ⇒ (UNIT, 0); unregistered or failing feed ⇒ (0, 0).
        :raises NegativeRateError: If the feed reports a negative answer.
        """
        if currency_key == self.pivot:
            return PIVOT_RATE
        handle = self.registry.aggregator(currency_key)
        if handle is None:
            return NO_RATE

        result = safe_call(
            handle.latest_round_data,
            default=None,
            description=f"latestRoundData() for {currency_key}",
            validate=lambda v: _is_int_tuple(v, 3),
        )
        if not result.ok:
            return NO_RATE
        _round_id, answer, updated_at = result.value
        return RateAndUpdatedTime(
            rate=format_aggregator_answer(answer, self.registry.decimals(currency_key)),
            updated_at=updated_at,
        )

    def rate_and_timestamp_at_round(
        self, currency_key: CurrencyKey, round_id: int
    ) -> RateAndUpdatedTime:
        """Return the normalized rate and update time at a historical round.

        :param currency_key: Currency to look up.
        :param round_id: Round to read.
        :returns: Pivot ⇒ (UNIT, 0) for any round; failure ⇒ (0, 0).
        :raises NegativeRateError: If the feed reports a negative answer.
        """
        if currency_key == self.pivot:
            return PIVOT_RATE
        handle = self.registry.aggregator(currency_key)
        if handle is None:
            return NO_RATE

        result = safe_call(
            lambda: handle.get_round_data(round_id),
            default=None,
            description=f"getRoundData({round_id}) for {currency_key}",
            validate=lambda v: _is_int_tuple(v, 2),
        )
        if not result.ok:
            return NO_RATE
        answer, updated_at = result.value
        return RateAndUpdatedTime(
            rate=format_aggregator_answer(answer, self.registry.decimals(currency_key)),
            updated_at=updated_at,
        )

    def last_round_id_before_elapsed_secs(
        self,
        currency_key: CurrencyKey,
        starting_round_id: int,
        starting_timestamp: int,
        time_diff: int,
    ) -> int:
        """Find the last round reported within ``time_diff`` of a start time.

        Walks forward from ``starting_round_id`` until the next round has no
        timestamp or was reported after ``starting_timestamp + time_diff``.
        The scan is unbounded; callers must ensure the feed's history ends.

        :returns: The last round id satisfying the bound.
        """
        round_id = starting_round_id
        deadline = starting_timestamp + time_diff
        while True:
            next_timestamp = self.rate_and_timestamp_at_round(currency_key, round_id + 1).updated_at
            if next_timestamp == 0 or next_timestamp > deadline:
                return round_id
            round_id += 1

    def rates_and_times_last_n_rounds(
        self, currency_key: CurrencyKey, num_rounds: int, round_id: int = 0
    ) -> list[RateAndUpdatedTime]:
        """Collect up to ``num_rounds`` samples walking backwards.

        :param currency_key: Currency to look up.
        :param num_rounds: Maximum number of samples.
        :param round_id: Round to start from; 0 means the current round.
        :returns: Samples in descending round order. The walk stops after
            reading round 0, so fewer than ``num_rounds`` may be returned.
        """
        samples: list[RateAndUpdatedTime] = []
        round_id = round_id if round_id > 0 else self.current_round_id(currency_key)
        for _ in range(num_rounds):
            samples.append(self.rate_and_timestamp_at_round(currency_key, round_id))
            if round_id == 0:
                break
            round_id -= 1
        return samples

    def feed_address(self, currency_key: CurrencyKey) -> str | None:
        """Return the checksummed feed address for a key, or None."""
        handle = self.registry.aggregator(currency_key)
        return handle_address(handle) if handle is not None else None
