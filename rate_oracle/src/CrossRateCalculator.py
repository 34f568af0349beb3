"""CrossRateCalculator: Convert amounts between currencies via the pivot.

Every rate is expressed against the pivot currency, so converting ``amount``
of ``src`` into ``dest`` is ``amount * src_rate / dest_rate``, rounding
half-up at each step. A zero destination rate yields a zero value.

.. code-block:: python

    >>> calc.effective_value(SETH, 2 * UNIT, SBTC)  # ETH=2000, BTC=40000
    100000000000000000
"""

from __future__ import annotations

from typing import NamedTuple

from .CurrencyKey import CurrencyKey
from .FixedPoint import divide_decimal_round, multiply_decimal_round
from .RoundResolver import RoundResolver


class EffectiveValue(NamedTuple):
    """Result of a conversion.

    :ivar value: Converted amount in the destination currency.
    :ivar source_rate: Rate used for the source currency.
    :ivar destination_rate: Rate used for the destination currency.
    """

    value: int
    source_rate: int
    destination_rate: int


def convert(amount: int, source_rate: int, destination_rate: int) -> int:
    """Convert ``amount`` given both rates; 0 when the destination rate is 0."""
    if destination_rate == 0:
        return 0
    return divide_decimal_round(multiply_decimal_round(amount, source_rate), destination_rate)


class CrossRateCalculator:
    """Computes effective values of amounts across currencies.

    :ivar resolver: Source of current and historical rates.
    """

    def __init__(self, resolver: RoundResolver) -> None:
        """Initialize the calculator.

        :param resolver: Resolver used to read rates.
        """
        self.resolver = resolver

    def effective_value_and_rates(
        self,
        source_currency_key: CurrencyKey,
        source_amount: int,
        destination_currency_key: CurrencyKey,
    ) -> EffectiveValue:
        """Convert using the latest rates.

        :param source_currency_key: Currency the amount is denominated in.
        :param source_amount: Amount with 18 fractional digits.
        :param destination_currency_key: Currency to convert into.
        :returns: EffectiveValue; same currency passes the amount through.
        """
        source_rate = self.resolver.rate_and_updated_time(source_currency_key).rate
        if source_currency_key == destination_currency_key:
            return EffectiveValue(source_amount, source_rate, source_rate)

        destination_rate = self.resolver.rate_and_updated_time(destination_currency_key).rate
        return EffectiveValue(
            convert(source_amount, source_rate, destination_rate),
            source_rate,
            destination_rate,
        )

    def effective_value(
        self,
        source_currency_key: CurrencyKey,
        source_amount: int,
        destination_currency_key: CurrencyKey,
    ) -> int:
        """Convert using the latest rates and return only the value."""
        return self.effective_value_and_rates(
            source_currency_key, source_amount, destination_currency_key
        ).value

    def effective_value_and_rates_at_round(
        self,
        source_currency_key: CurrencyKey,
        source_amount: int,
        destination_currency_key: CurrencyKey,
        round_id_for_src: int,
        round_id_for_dest: int,
    ) -> EffectiveValue:
        """Convert using the rates reported at specific rounds.

        The amount passes through unchanged only when both the currency and
        the round match.
        """
        source_rate = self.resolver.rate_and_timestamp_at_round(
            source_currency_key, round_id_for_src
        ).rate
        if (
            source_currency_key == destination_currency_key
            and round_id_for_src == round_id_for_dest
        ):
            return EffectiveValue(source_amount, source_rate, source_rate)

        destination_rate = self.resolver.rate_and_timestamp_at_round(
            destination_currency_key, round_id_for_dest
        ).rate
        return EffectiveValue(
            convert(source_amount, source_rate, destination_rate),
            source_rate,
            destination_rate,
        )
