"""ExchangeRates: Public surface of the rates engine.

Wires the registry, round resolver, validity evaluator, and cross-rate
calculator together. Currency arguments accept a :class:`CurrencyKey`, a
symbol string, or raw bytes.

Architecture:
    - AggregatorRegistry: key -> (feed, decimals), owner-only mutations
    - RoundResolver: current/historical normalized rates, never raises on
      feed failure
    - ValidityEvaluator: stale / flagged / circuit-broken classification
    - CrossRateCalculator: conversions through the pivot currency

.. code-block:: python

    rates = ExchangeRates(OwnerAuthorization(owner))
    rates.add_aggregator(owner, "sETH", eth_feed)
    rate, invalid = rates.rate_and_invalid("sETH")
    value = rates.effective_value("sETH", 10**18, "sUSD")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Sequence, Union

from .AggregatorRegistry import AggregatorRegistry, RegistryEvent
from .Authorization import OwnerAuthorization
from .CircuitBreaker import CircuitBreaker, CircuitBreakerContract, DeviationCircuitBreaker
from .CrossRateCalculator import CrossRateCalculator, EffectiveValue
from .CurrencyKey import SUSD, CurrencyKey, to_currency_key
from .FeedHandle import AggregatorFeed, FeedHandle
from .Flags import ChainlinkFlags, FlagProvider
from .RateSettings import RateSettings
from .RoundResolver import RateAndUpdatedTime, RoundResolver
from .ValidityEvaluator import ValidityEvaluator

if TYPE_CHECKING:
    from .ContractUtility import ContractUtility

logger = logging.getLogger(__name__)

KeyLike = Union[CurrencyKey, str, bytes]


class ExchangeRates:
    """Exchange rates engine.

    :ivar settings: Read-only configuration.
    :ivar registry: Feed registry.
    :ivar resolver: Round resolver.
    :ivar validity: Validity evaluator.
    :ivar calculator: Cross-rate calculator.
    """

    def __init__(
        self,
        authorization: OwnerAuthorization,
        settings: RateSettings | None = None,
        circuit_breaker: CircuitBreaker | None = None,
        flags: FlagProvider | None = None,
        pivot: CurrencyKey = SUSD,
    ) -> None:
        """Initialize the engine.

        :param authorization: Owner check for registry mutations.
        :param settings: Configuration; read from the environment if None.
        :param circuit_breaker: Anomaly detector; an in-process
            DeviationCircuitBreaker using the configured factor if None.
        :param flags: Warning flag provider; flag checks disabled if None.
        :param pivot: Unit-valued pivot currency (default sUSD).
        """
        self.settings = settings if settings is not None else RateSettings.from_env()
        if circuit_breaker is None:
            circuit_breaker = DeviationCircuitBreaker(
                factor=self.settings.circuit_breaker_factor,
                authorization=authorization,
            )

        self.registry = AggregatorRegistry(authorization)
        self.resolver = RoundResolver(self.registry, pivot=pivot)
        self.validity = ValidityEvaluator(
            self.resolver, self.settings, circuit_breaker, flags=flags
        )
        self.calculator = CrossRateCalculator(self.resolver)

        logger.info(
            f"ExchangeRates initialized: pivot={pivot}, "
            f"stale_period={self.settings.rate_stale_period}s, "
            f"flags={'enabled' if flags is not None else 'disabled'}, "
            f"circuit_breaker={type(circuit_breaker).__name__}"
        )

    @classmethod
    def from_network(
        cls,
        contract_utility: ContractUtility,
        authorization: OwnerAuthorization,
        settings: RateSettings | None = None,
        circuit_breaker_address: str | None = None,
    ) -> ExchangeRates:
        """Build an engine whose collaborators are on-chain contracts.

        :param contract_utility: Connected contract utility.
        :param authorization: Owner check for registry mutations.
        :param settings: Configuration; read from the environment if None.
        :param circuit_breaker_address: Optional CircuitBreaker contract; the
            in-process breaker is used if None.
        """
        settings = settings if settings is not None else RateSettings.from_env()

        flags: FlagProvider | None = None
        if settings.aggregator_warning_flags:
            flags = ChainlinkFlags(
                contract_utility.contract("Flags", settings.aggregator_warning_flags)
            )

        circuit_breaker: CircuitBreaker | None = None
        if circuit_breaker_address:
            circuit_breaker = CircuitBreakerContract(
                contract_utility.contract("CircuitBreaker", circuit_breaker_address)
            )

        return cls(authorization, settings, circuit_breaker=circuit_breaker, flags=flags)

    @property
    def pivot(self) -> CurrencyKey:
        """The unit-valued pivot currency."""
        return self.resolver.pivot

    # ---- configuration ------------------------------------------------------

    def rate_stale_period(self) -> int:
        """Return the configured stale period in seconds."""
        return self.settings.rate_stale_period

    def aggregator_warning_flags(self) -> str | None:
        """Return the configured flags contract address, or None."""
        return self.settings.aggregator_warning_flags

    # ---- registry -----------------------------------------------------------

    def subscribe(self, listener: Callable[[RegistryEvent], None]) -> None:
        """Register a callback receiving registry events."""
        self.registry.subscribe(listener)

    def add_aggregator(self, caller: str, currency_key: KeyLike, handle: FeedHandle) -> None:
        """Register or replace the feed for a currency. Owner only."""
        self.registry.add_aggregator(caller, to_currency_key(currency_key), handle)

    def add_aggregator_at(
        self,
        caller: str,
        currency_key: KeyLike,
        address: str,
        contract_utility: ContractUtility,
    ) -> AggregatorFeed:
        """Register the on-chain aggregator at ``address``. Owner only.

        :returns: The bound feed.
        """
        feed = AggregatorFeed(contract_utility.contract("AggregatorV2V3Interface", address))
        self.add_aggregator(caller, currency_key, feed)
        return feed

    def remove_aggregator(self, caller: str, currency_key: KeyLike) -> None:
        """Remove the feed for a currency. Owner only."""
        self.registry.remove_aggregator(caller, to_currency_key(currency_key))

    def aggregator_keys(self) -> list[CurrencyKey]:
        """Return the registered currency keys."""
        return self.registry.aggregator_keys()

    def aggregators(self, currency_key: KeyLike) -> FeedHandle | None:
        """Return the feed for a currency, or None."""
        return self.registry.aggregator(to_currency_key(currency_key))

    def currency_key_decimals(self, currency_key: KeyLike) -> int:
        """Return the decimals captured when the currency's feed was added."""
        return self.registry.decimals(to_currency_key(currency_key))

    def currencies_using_aggregator(self, handle: FeedHandle | str) -> list[CurrencyKey]:
        """Return every currency bound to a feed (handle or address)."""
        return self.registry.currencies_using_aggregator(handle)

    # ---- rates --------------------------------------------------------------

    def get_current_round_id(self, currency_key: KeyLike) -> int:
        """Return the latest round id of a currency's feed, 0 if unknown."""
        return self.resolver.current_round_id(to_currency_key(currency_key))

    def rate_and_updated_time(self, currency_key: KeyLike) -> RateAndUpdatedTime:
        """Return the latest rate and update time of a currency."""
        return self.resolver.rate_and_updated_time(to_currency_key(currency_key))

    def rate_for_currency(self, currency_key: KeyLike) -> int:
        """Return the latest rate of a currency."""
        return self.rate_and_updated_time(currency_key).rate

    def rates_for_currencies(self, currency_keys: Sequence[KeyLike]) -> list[int]:
        """Return the latest rate of each currency."""
        return [self.rate_for_currency(k) for k in currency_keys]

    def last_rate_update_times(self, currency_key: KeyLike) -> int:
        """Return the update time of a currency's latest rate."""
        return self.rate_and_updated_time(currency_key).updated_at

    def last_rate_update_times_for_currencies(
        self, currency_keys: Sequence[KeyLike]
    ) -> list[int]:
        """Return the update time of each currency's latest rate."""
        return [self.last_rate_update_times(k) for k in currency_keys]

    def rate_and_timestamp_at_round(
        self, currency_key: KeyLike, round_id: int
    ) -> RateAndUpdatedTime:
        """Return a currency's rate and update time at a given round."""
        return self.resolver.rate_and_timestamp_at_round(to_currency_key(currency_key), round_id)

    def get_last_round_id_before_elapsed_secs(
        self,
        currency_key: KeyLike,
        starting_round_id: int,
        starting_timestamp: int,
        time_diff: int,
    ) -> int:
        """Return the last round reported within ``time_diff`` of a start time."""
        return self.resolver.last_round_id_before_elapsed_secs(
            to_currency_key(currency_key), starting_round_id, starting_timestamp, time_diff
        )

    def rates_and_updated_time_for_currency_last_n_rounds(
        self, currency_key: KeyLike, num_rounds: int, round_id: int = 0
    ) -> tuple[list[int], list[int]]:
        """Return rates and times for up to ``num_rounds`` rounds, newest first.

        :returns: ``(rates, times)`` of equal length.
        """
        samples = self.resolver.rates_and_times_last_n_rounds(
            to_currency_key(currency_key), num_rounds, round_id
        )
        return [s.rate for s in samples], [s.updated_at for s in samples]

    # ---- validity -----------------------------------------------------------

    def rate_is_stale(self, currency_key: KeyLike) -> bool:
        """Return True if a currency's latest rate is stale."""
        return self.validity.rate_is_stale(to_currency_key(currency_key))

    def rate_is_flagged(self, currency_key: KeyLike) -> bool:
        """Return True if a currency's feed has a warning flag raised."""
        return self.validity.rate_is_flagged(to_currency_key(currency_key))

    def rate_is_circuit_broken(self, currency_key: KeyLike) -> bool:
        """Return True if a currency's latest rate is classified as anomalous."""
        return self.validity.rate_is_circuit_broken(to_currency_key(currency_key))

    def rate_is_invalid(self, currency_key: KeyLike) -> bool:
        """Return True if a currency's latest rate is invalid."""
        return self.validity.rate_is_invalid(to_currency_key(currency_key))

    def rate_and_invalid(self, currency_key: KeyLike) -> tuple[int, bool]:
        """Return a currency's latest rate and whether it is invalid."""
        return self.validity.rate_and_invalid(to_currency_key(currency_key))

    def rate_with_safety_checks(self, currency_key: KeyLike) -> tuple[int, bool, bool]:
        """Return ``(rate, broken, stale_or_flagged)``, probing the breaker."""
        return self.validity.rate_with_safety_checks(to_currency_key(currency_key))

    def rates_and_invalid_for_currencies(
        self, currency_keys: Sequence[KeyLike]
    ) -> tuple[list[int], bool]:
        """Return every currency's rate and whether any is invalid."""
        return self.validity.rates_and_invalid_for_currencies(
            [to_currency_key(k) for k in currency_keys]
        )

    def any_rate_is_invalid(self, currency_keys: Sequence[KeyLike]) -> bool:
        """Return True if any non-pivot currency's rate is invalid."""
        return self.validity.any_rate_is_invalid([to_currency_key(k) for k in currency_keys])

    def any_rate_is_invalid_at_round(
        self, currency_keys: Sequence[KeyLike], round_ids: Sequence[int]
    ) -> bool:
        """Return True if any non-pivot currency is invalid at its round."""
        return self.validity.any_rate_is_invalid_at_round(
            [to_currency_key(k) for k in currency_keys], round_ids
        )

    # ---- conversions --------------------------------------------------------

    def effective_value(
        self, source_currency_key: KeyLike, source_amount: int, destination_currency_key: KeyLike
    ) -> int:
        """Convert an amount between currencies at the latest rates."""
        return self.calculator.effective_value(
            to_currency_key(source_currency_key),
            source_amount,
            to_currency_key(destination_currency_key),
        )

    def effective_value_and_rates(
        self, source_currency_key: KeyLike, source_amount: int, destination_currency_key: KeyLike
    ) -> EffectiveValue:
        """Convert an amount and return the rates used."""
        return self.calculator.effective_value_and_rates(
            to_currency_key(source_currency_key),
            source_amount,
            to_currency_key(destination_currency_key),
        )

    def effective_value_and_rates_at_round(
        self,
        source_currency_key: KeyLike,
        source_amount: int,
        destination_currency_key: KeyLike,
        round_id_for_src: int,
        round_id_for_dest: int,
    ) -> EffectiveValue:
        """Convert an amount at the rates of specific rounds."""
        return self.calculator.effective_value_and_rates_at_round(
            to_currency_key(source_currency_key),
            source_amount,
            to_currency_key(destination_currency_key),
            round_id_for_src,
            round_id_for_dest,
        )
