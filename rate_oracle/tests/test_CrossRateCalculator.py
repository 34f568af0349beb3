"""Unit tests for CrossRateCalculator."""

import pytest

from rate_oracle.src.AggregatorRegistry import AggregatorRegistry
from rate_oracle.src.CrossRateCalculator import CrossRateCalculator, EffectiveValue, convert
from rate_oracle.src.CurrencyKey import SUSD, CurrencyKey
from rate_oracle.src.FixedPoint import UNIT
from rate_oracle.src.RoundResolver import RoundResolver

SETH = CurrencyKey.from_string("sETH")
SBTC = CurrencyKey.from_string("sBTC")
SEUR = CurrencyKey.from_string("sEUR")


@pytest.fixture
def registry(authorization, owner, make_feed) -> AggregatorRegistry:
    """Registry with sETH (2000 then 2500) and sBTC (40000 then 50000)."""
    registry = AggregatorRegistry(authorization)
    registry.add_aggregator(
        owner, SETH, make_feed(decimals=8, rounds={1: (2000_00000000, 100), 2: (2500_00000000, 200)})
    )
    registry.add_aggregator(
        owner, SBTC, make_feed(decimals=18, rounds={1: (40000 * UNIT, 100), 2: (50000 * UNIT, 200)})
    )
    return registry


@pytest.fixture
def calculator(registry) -> CrossRateCalculator:
    return CrossRateCalculator(RoundResolver(registry))


class TestConvert:
    """Test the conversion formula."""

    def test_zero_destination_rate(self) -> None:
        """Converting into an unpriced currency yields zero."""
        assert convert(5 * UNIT, 2 * UNIT, 0) == 0

    def test_rounds_each_step(self) -> None:
        """1 unit at rate 1 into a rate of 3 rounds to the nearest 1e-18."""
        assert convert(UNIT, UNIT, 3 * UNIT) == 333333333333333333
        assert convert(2 * UNIT, UNIT, 3 * UNIT) == 666666666666666667


class TestEffectiveValue:
    """Test conversions at the latest rates."""

    def test_eth_to_btc(self, calculator) -> None:
        """2 sETH at 2500 is 0.1 sBTC at 50000."""
        assert calculator.effective_value(SETH, 2 * UNIT, SBTC) == UNIT // 10

    def test_eth_to_pivot(self, calculator) -> None:
        """Converting into the pivot multiplies by the source rate."""
        assert calculator.effective_value(SETH, 3 * UNIT, SUSD) == 7500 * UNIT

    def test_pivot_to_btc(self, calculator) -> None:
        """Converting from the pivot divides by the destination rate."""
        assert calculator.effective_value(SUSD, 25000 * UNIT, SBTC) == UNIT // 2

    @pytest.mark.parametrize("amount", [0, 1, UNIT, 123456789 * UNIT])
    @pytest.mark.parametrize("key", [SETH, SUSD, SEUR])
    def test_same_currency_passthrough(self, calculator, key, amount: int) -> None:
        """Converting into the same currency returns the amount."""
        result = calculator.effective_value_and_rates(key, amount, key)
        assert result.value == amount
        assert result.source_rate == result.destination_rate

    def test_unregistered_destination(self, calculator) -> None:
        """A zero destination rate yields zero without raising."""
        assert calculator.effective_value_and_rates(SETH, UNIT, SEUR) == EffectiveValue(
            0, 2500 * UNIT, 0
        )

    def test_unregistered_source(self, calculator) -> None:
        """An unpriced source converts to zero."""
        assert calculator.effective_value(SEUR, UNIT, SETH) == 0

    def test_returns_rates(self, calculator) -> None:
        """The rates used are returned with the value."""
        value, source_rate, destination_rate = calculator.effective_value_and_rates(
            SBTC, UNIT, SETH
        )
        assert (value, source_rate, destination_rate) == (20 * UNIT, 50000 * UNIT, 2500 * UNIT)


class TestEffectiveValueAtRound:
    """Test conversions at historical rounds."""

    def test_uses_given_rounds(self, calculator) -> None:
        """sETH at round 1 (2000) into sBTC at round 2 (50000)."""
        result = calculator.effective_value_and_rates_at_round(SETH, 5 * UNIT, SBTC, 1, 2)
        assert result == EffectiveValue(UNIT // 5, 2000 * UNIT, 50000 * UNIT)

    def test_same_key_same_round_passthrough(self, calculator) -> None:
        """The same key at the same round returns the amount."""
        result = calculator.effective_value_and_rates_at_round(SETH, 7 * UNIT, SETH, 1, 1)
        assert result == EffectiveValue(7 * UNIT, 2000 * UNIT, 2000 * UNIT)

    def test_same_key_different_rounds_converts(self, calculator) -> None:
        """The same currency at two rounds converts between the two rates."""
        result = calculator.effective_value_and_rates_at_round(SETH, 5 * UNIT, SETH, 1, 2)
        assert result == EffectiveValue(4 * UNIT, 2000 * UNIT, 2500 * UNIT)

    def test_missing_destination_round(self, calculator) -> None:
        """A missing destination round yields zero."""
        result = calculator.effective_value_and_rates_at_round(SETH, UNIT, SBTC, 1, 99)
        assert result.value == 0
        assert result.destination_rate == 0

    def test_pivot_any_round(self, calculator) -> None:
        """The pivot rates at one unit for any round id."""
        result = calculator.effective_value_and_rates_at_round(SUSD, 4000 * UNIT, SETH, 12345, 1)
        assert result == EffectiveValue(2 * UNIT, UNIT, 2000 * UNIT)
