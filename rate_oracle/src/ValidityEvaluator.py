"""ValidityEvaluator: Classify rates as usable or invalid.

A non-pivot rate is invalid when it is any of:

- stale: older than the configured stale period;
- flagged: the warning flag provider reports the key's feed;
- circuit-broken: the circuit breaker classifies the rate as anomalous.

The pivot currency is always valid. Validity is a boolean result, never an
exception; a failing flag provider or circuit breaker counts as "no warning".

Batch checks fetch every flag in a single provider request before iterating.
"""

from __future__ import annotations

import logging
import time
from typing import Sequence

from .CurrencyKey import CurrencyKey
from .CircuitBreaker import CircuitBreaker
from .errors import AggregatorNotFoundError
from .Flags import FlagProvider
from .RateSettings import RateSettings
from .RoundResolver import RateAndUpdatedTime, RoundResolver
from .SafeCall import safe_call

logger = logging.getLogger(__name__)


class ValidityEvaluator:
    """Evaluates staleness, warning flags, and circuit breaking for rates.

    :ivar resolver: Source of rates and update times.
    :ivar settings: Stale period configuration.
    :ivar circuit_breaker: Anomaly detector.
    :ivar flags: Warning flag provider, or None when not configured.
    """

    def __init__(
        self,
        resolver: RoundResolver,
        settings: RateSettings,
        circuit_breaker: CircuitBreaker,
        flags: FlagProvider | None = None,
    ) -> None:
        """Initialize the evaluator.

        :param resolver: Resolver used to read rates.
        :param settings: Read-only settings providing the stale period.
        :param circuit_breaker: Circuit breaker used for anomaly checks.
        :param flags: Optional flag provider.
        """
        self.resolver = resolver
        self.settings = settings
        self.circuit_breaker = circuit_breaker
        self.flags = flags

    @property
    def pivot(self) -> CurrencyKey:
        """The unit-valued pivot currency."""
        return self.resolver.pivot

    # ---- single checks ------------------------------------------------------

    def rate_is_stale_with_time(self, stale_period: int, updated_at: int) -> bool:
        """Return True if a rate updated at ``updated_at`` is older than allowed."""
        return int(time.time()) - updated_at > stale_period

    def rate_is_stale(self, currency_key: CurrencyKey) -> bool:
        """Return True if the key's latest rate is stale. The pivot never is."""
        if currency_key == self.pivot:
            return False
        updated_at = self.resolver.rate_and_updated_time(currency_key).updated_at
        return self.rate_is_stale_with_time(self.settings.rate_stale_period, updated_at)

    def rate_is_flagged(self, currency_key: CurrencyKey) -> bool:
        """Return True if the flag provider warns about the key's feed. The pivot never is."""
        if self.flags is None or currency_key == self.pivot:
            return False
        address = self.resolver.feed_address(currency_key)
        if address is None:
            return False
        return safe_call(
            lambda: self.flags.get_flag(address),
            default=False,
            description=f"getFlag({address})",
            validate=lambda v: isinstance(v, bool),
            log_level=logging.WARNING,
        ).value

    def rate_is_circuit_broken_with_rate(self, currency_key: CurrencyKey, rate: int) -> bool:
        """Read-only circuit breaker check of ``rate`` for the key's feed."""
        if currency_key == self.pivot:
            return False
        address = self.resolver.feed_address(currency_key)
        if address is None:
            return False
        return safe_call(
            lambda: self.circuit_breaker.is_invalid(address, rate),
            default=False,
            description=f"isInvalid({address})",
            validate=lambda v: isinstance(v, bool),
            log_level=logging.WARNING,
        ).value

    def rate_is_circuit_broken(self, currency_key: CurrencyKey) -> bool:
        """Return True if the key's latest rate is classified as anomalous."""
        if currency_key == self.pivot:
            return False
        rate = self.resolver.rate_and_updated_time(currency_key).rate
        return self.rate_is_circuit_broken_with_rate(currency_key, rate)

    def _is_invalid(self, currency_key: CurrencyKey, entry: RateAndUpdatedTime) -> bool:
        return (
            self.rate_is_stale_with_time(self.settings.rate_stale_period, entry.updated_at)
            or self.rate_is_flagged(currency_key)
            or self.rate_is_circuit_broken_with_rate(currency_key, entry.rate)
        )

    def rate_and_invalid(self, currency_key: CurrencyKey) -> tuple[int, bool]:
        """Return the latest rate and whether it is invalid.

        Read-only: the circuit breaker is consulted without recording the rate.
        """
        entry = self.resolver.rate_and_updated_time(currency_key)
        if currency_key == self.pivot:
            return entry.rate, False
        return entry.rate, self._is_invalid(currency_key, entry)

    def rate_is_invalid(self, currency_key: CurrencyKey) -> bool:
        """Return True if the key's latest rate is invalid."""
        return self.rate_and_invalid(currency_key)[1]

    def rate_with_safety_checks(self, currency_key: CurrencyKey) -> tuple[int, bool, bool]:
        """Read a rate right before an exchange executes.

        The circuit breaker is probed with the rate, which records it. A
        broken breaker aborts the exchange; stale or flagged rates trigger a
        different fallback, so the two conditions are reported separately.

        :param currency_key: Currency to read.
        :returns: ``(rate, broken, stale_or_flagged)``.
        :raises AggregatorNotFoundError: If a non-pivot key has no feed.
        """
        if currency_key == self.pivot:
            return self.resolver.rate_and_updated_time(currency_key).rate, False, False

        address = self.resolver.feed_address(currency_key)
        if address is None:
            raise AggregatorNotFoundError(f"No aggregator for asset {currency_key}")

        entry = self.resolver.rate_and_updated_time(currency_key)
        broken = safe_call(
            lambda: self.circuit_breaker.probe_circuit_breaker(address, entry.rate),
            default=False,
            description=f"probeCircuitBreaker({address})",
            validate=lambda v: isinstance(v, bool),
            log_level=logging.WARNING,
        ).value
        stale_or_flagged = self.rate_is_stale_with_time(
            self.settings.rate_stale_period, entry.updated_at
        ) or self.rate_is_flagged(currency_key)

        if broken or stale_or_flagged:
            logger.warning(
                f"{currency_key}: rate={entry.rate} broken={broken} "
                f"stale_or_flagged={stale_or_flagged}"
            )
        return entry.rate, broken, stale_or_flagged

    # ---- batch checks -------------------------------------------------------

    def flags_for_rates(self, currency_keys: Sequence[CurrencyKey]) -> list[bool]:
        """Return the warning flag of each key using one provider request.

        Keys without a feed (and the pivot) are never flagged.
        """
        flag_list = [False] * len(currency_keys)
        if self.flags is None:
            return flag_list

        positions: list[int] = []
        addresses: list[str] = []
        for i, key in enumerate(currency_keys):
            if key == self.pivot:
                continue
            address = self.resolver.feed_address(key)
            if address is not None:
                positions.append(i)
                addresses.append(address)
        if not addresses:
            return flag_list

        flags = self.flags
        result = safe_call(
            lambda: flags.get_flags(addresses),
            default=[],
            description=f"getFlags({len(addresses)} feeds)",
            validate=lambda v: isinstance(v, list) and len(v) == len(addresses),
            log_level=logging.WARNING,
        )
        for position, flagged in zip(positions, result.value):
            flag_list[position] = bool(flagged)
        return flag_list

    def rates_and_invalid_for_currencies(
        self, currency_keys: Sequence[CurrencyKey]
    ) -> tuple[list[int], bool]:
        """Return the latest rate of every key and whether any is invalid.

        All rates are collected; there is no short-circuit.
        """
        flag_list = self.flags_for_rates(currency_keys)
        stale_period = self.settings.rate_stale_period

        rates: list[int] = []
        any_invalid = False
        for key, flagged in zip(currency_keys, flag_list):
            entry = self.resolver.rate_and_updated_time(key)
            rates.append(entry.rate)
            if key == self.pivot or any_invalid:
                continue
            any_invalid = (
                flagged
                or self.rate_is_stale_with_time(stale_period, entry.updated_at)
                or self.rate_is_circuit_broken_with_rate(key, entry.rate)
            )
        return rates, any_invalid

    def any_rate_is_invalid(self, currency_keys: Sequence[CurrencyKey]) -> bool:
        """Return True as soon as one non-pivot key has an invalid rate."""
        flag_list = self.flags_for_rates(currency_keys)
        stale_period = self.settings.rate_stale_period

        for key, flagged in zip(currency_keys, flag_list):
            if key == self.pivot:
                continue
            entry = self.resolver.rate_and_updated_time(key)
            if (
                flagged
                or self.rate_is_stale_with_time(stale_period, entry.updated_at)
                or self.rate_is_circuit_broken_with_rate(key, entry.rate)
            ):
                return True
        return False

    def any_rate_is_invalid_at_round(
        self, currency_keys: Sequence[CurrencyKey], round_ids: Sequence[int]
    ) -> bool:
        """Return True as soon as one non-pivot key is invalid at its round.

        Staleness is measured against the current clock and stale period, not
        the age the round had when it was current, and the circuit breaker
        sees the historical rate. Existing callers depend on this behaviour.

        :raises ValueError: If the two sequences differ in length.
        """
        if len(round_ids) != len(currency_keys):
            raise ValueError("roundIds must be the same length as currencyKeys")

        flag_list = self.flags_for_rates(currency_keys)
        stale_period = self.settings.rate_stale_period

        for key, round_id, flagged in zip(currency_keys, round_ids, flag_list):
            if key == self.pivot:
                continue
            entry = self.resolver.rate_and_timestamp_at_round(key, round_id)
            if (
                flagged
                or self.rate_is_stale_with_time(stale_period, entry.updated_at)
                or self.rate_is_circuit_broken_with_rate(key, entry.rate)
            ):
                return True
        return False
