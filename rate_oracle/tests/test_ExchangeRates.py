"""Unit tests for the ExchangeRates engine and its web3 adapters."""

from unittest.mock import MagicMock, patch

import pytest
from web3 import Web3

from rate_oracle.src.AggregatorRegistry import AggregatorAdded
from rate_oracle.src.CircuitBreaker import CircuitBreakerContract, DeviationCircuitBreaker
from rate_oracle.src.CurrencyKey import SUSD, CurrencyKey
from rate_oracle.src.ExchangeRates import ExchangeRates
from rate_oracle.src.FeedHandle import AggregatorFeed
from rate_oracle.src.Flags import ChainlinkFlags
from rate_oracle.src.FixedPoint import UNIT
from rate_oracle.src.RateSettings import RateSettings
from rate_oracle.src.RoundResolver import RateAndUpdatedTime

SETH = CurrencyKey.from_string("sETH")
NOW = 1_700_000_000
STALE_PERIOD = 3600
FEED_ADDRESS = Web3.to_checksum_address("0x" + "5f" * 20)
FLAGS_ADDRESS = Web3.to_checksum_address("0x" + "4a" * 20)


@pytest.fixture(autouse=True)
def frozen_time():
    with patch("rate_oracle.src.ValidityEvaluator.time.time", return_value=NOW):
        yield


def _aggregator_contract(decimals: int = 8, rounds: dict | None = None) -> MagicMock:
    """MagicMock bound like an AggregatorV2V3Interface contract."""
    rounds = rounds or {1: (250_00000000, NOW - 10)}
    latest = max(rounds)
    contract = MagicMock()
    contract.address = FEED_ADDRESS
    contract.functions.decimals.return_value.call.return_value = decimals
    contract.functions.description.return_value.call.return_value = "ETH / USD"
    contract.functions.latestRound.return_value.call.return_value = latest
    answer, updated_at = rounds[latest]
    contract.functions.latestRoundData.return_value.call.return_value = (
        latest, answer, updated_at, updated_at, latest,
    )
    contract.functions.getRoundData.side_effect = lambda r: MagicMock(
        call=MagicMock(return_value=(r, rounds[r][0], rounds[r][1], rounds[r][1], r))
    )
    return contract


class TestRates:
    """Test rate queries through the engine."""

    def test_eight_decimal_feed(self, rates, owner, make_feed) -> None:
        """A raw answer of 250_00000000 at 8 decimals reads as 250 units."""
        rates.add_aggregator(owner, SETH, make_feed(decimals=8, rounds={1: (250_00000000, NOW)}))
        assert rates.rate_and_updated_time(SETH) == RateAndUpdatedTime(250 * UNIT, NOW)
        assert rates.rate_for_currency("sETH") == 250 * UNIT

    def test_twenty_decimal_feed_truncates(self, rates, owner, make_feed) -> None:
        """A 20-decimal answer drops its last two digits."""
        rates.add_aggregator(owner, "sETH", make_feed(decimals=20, rounds={1: (12345, NOW)}))
        assert rates.rate_for_currency(SETH) == 123

    def test_unregistered(self, rates) -> None:
        """An unknown currency has rate 0 at time 0 and is invalid."""
        assert rates.rate_and_updated_time("sXYZ") == RateAndUpdatedTime(0, 0)
        assert rates.rate_is_invalid("sXYZ") is True

    def test_pivot(self, rates) -> None:
        """The pivot is always one unit and valid."""
        assert rates.rate_for_currency("sUSD") == UNIT
        assert rates.rate_is_invalid(SUSD) is False
        assert rates.pivot == SUSD

    def test_key_forms_are_equivalent(self, rates, owner, make_feed) -> None:
        """Symbols, raw bytes, and hex all address the same currency."""
        rates.add_aggregator(owner, "sETH", make_feed(rounds={1: (1_00000000, NOW)}))
        assert rates.rate_for_currency(SETH.to_bytes()) == UNIT
        assert rates.rate_for_currency(SETH.to_hex()) == UNIT

    def test_batch_queries(self, rates, owner, make_feed) -> None:
        """Batch reads keep the order of the requested keys."""
        rates.add_aggregator(owner, SETH, make_feed(rounds={1: (3_00000000, NOW - 5)}))
        assert rates.rates_for_currencies(["sUSD", "sETH", "sXYZ"]) == [UNIT, 3 * UNIT, 0]
        assert rates.last_rate_update_times_for_currencies(["sUSD", "sETH"]) == [0, NOW - 5]
        assert rates.last_rate_update_times("sETH") == NOW - 5

    def test_history(self, rates, owner, make_feed) -> None:
        """Round lookups and walks go through the resolver."""
        feed = make_feed(rounds={1: (1_00000000, 100), 2: (2_00000000, 200), 3: (3_00000000, 300)})
        rates.add_aggregator(owner, SETH, feed)

        assert rates.get_current_round_id("sETH") == 3
        assert rates.rate_and_timestamp_at_round("sETH", 2) == RateAndUpdatedTime(2 * UNIT, 200)
        assert rates.get_last_round_id_before_elapsed_secs("sETH", 1, 100, 150) == 2
        assert rates.rates_and_updated_time_for_currency_last_n_rounds("sETH", 2) == (
            [3 * UNIT, 2 * UNIT],
            [300, 200],
        )


class TestRegistry:
    """Test registry operations through the engine."""

    def test_add_and_remove(self, rates, owner, make_feed) -> None:
        """Registry operations accept symbols and emit events."""
        feed = make_feed(decimals=8)
        events = []
        rates.subscribe(events.append)

        rates.add_aggregator(owner, "sETH", feed)
        assert rates.aggregator_keys() == [SETH]
        assert rates.aggregators("sETH") is feed
        assert rates.currency_key_decimals("sETH") == 8
        assert rates.currencies_using_aggregator(feed) == [SETH]
        assert events == [AggregatorAdded(SETH, feed.address)]

        rates.remove_aggregator(owner, "sETH")
        assert rates.aggregator_keys() == []
        assert rates.aggregators("sETH") is None

    def test_settings_accessors(self, rates) -> None:
        """Configuration is exposed read-only."""
        assert rates.rate_stale_period() == STALE_PERIOD
        assert rates.aggregator_warning_flags() is None


class TestValidity:
    """Test validity queries through the engine."""

    def test_stale_rate(self, rates, owner, make_feed) -> None:
        """An old update makes the rate stale and invalid."""
        rates.add_aggregator(owner, SETH, make_feed(rounds={1: (1_00000000, NOW - STALE_PERIOD - 1)}))
        assert rates.rate_is_stale("sETH") is True
        assert rates.rate_and_invalid("sETH") == (UNIT, True)

    def test_flagged_rate(self, rates, owner, make_feed, flags) -> None:
        """A raised flag invalidates the batch."""
        feed = make_feed(rounds={1: (1_00000000, NOW)})
        rates.add_aggregator(owner, SETH, feed)
        flags.raise_flag(feed.address)

        assert rates.rate_is_flagged("sETH") is True
        assert rates.any_rate_is_invalid(["sUSD", "sETH"]) is True

    def test_safety_checks_probe_breaker(self, rates, owner, make_feed, breaker) -> None:
        """Safety checks record the rate and report a later jump."""
        feed = make_feed(rounds={1: (100_00000000, NOW)})
        rates.add_aggregator(owner, SETH, feed)

        assert rates.rate_with_safety_checks("sETH") == (100 * UNIT, False, False)
        assert breaker.last_value(feed.address) == 100 * UNIT

        feed.push(500_00000000, NOW)
        assert rates.rate_is_circuit_broken("sETH") is True
        assert rates.rate_with_safety_checks("sETH") == (500 * UNIT, True, False)

    def test_rates_and_invalid(self, rates, owner, make_feed) -> None:
        """Batch read returns every rate and the combined verdict."""
        rates.add_aggregator(owner, SETH, make_feed(rounds={1: (2_00000000, NOW)}))
        assert rates.rates_and_invalid_for_currencies(["sUSD", "sETH"]) == ([UNIT, 2 * UNIT], False)

    def test_at_round(self, rates, owner, make_feed) -> None:
        """Historical rounds are checked per key."""
        rates.add_aggregator(owner, SETH, make_feed(rounds={1: (2_00000000, NOW)}))
        assert rates.any_rate_is_invalid_at_round(["sUSD", "sETH"], [0, 1]) is False
        assert rates.any_rate_is_invalid_at_round(["sETH"], [9]) is True


class TestConversions:
    """Test conversions through the engine."""

    def test_effective_value(self, rates, owner, make_feed) -> None:
        """Conversions accept symbol keys in both directions."""
        rates.add_aggregator(owner, SETH, make_feed(rounds={1: (2000_00000000, NOW)}))
        assert rates.effective_value("sETH", 2 * UNIT, "sUSD") == 4000 * UNIT
        value, source_rate, destination_rate = rates.effective_value_and_rates(
            "sUSD", 1000 * UNIT, "sETH"
        )
        assert (value, source_rate, destination_rate) == (UNIT // 2, UNIT, 2000 * UNIT)

    def test_effective_value_at_round(self, rates, owner, make_feed) -> None:
        """Historical conversions use the requested rounds."""
        feed = make_feed(rounds={1: (1000_00000000, NOW), 2: (2000_00000000, NOW)})
        rates.add_aggregator(owner, SETH, feed)
        result = rates.effective_value_and_rates_at_round("sETH", UNIT, "sUSD", 1, 0)
        assert result.value == 1000 * UNIT


class TestConstruction:
    """Test engine wiring."""

    def test_default_breaker_uses_settings_factor(self, authorization) -> None:
        """Without a breaker the settings factor configures the in-process one."""
        settings = RateSettings(circuit_breaker_factor=3 * UNIT)
        rates = ExchangeRates(authorization, settings)

        breaker = rates.validity.circuit_breaker
        assert isinstance(breaker, DeviationCircuitBreaker)
        assert breaker.factor == 3 * UNIT
        assert rates.validity.flags is None

    def test_settings_from_env(self, authorization) -> None:
        """Missing settings are read from the environment."""
        with patch.dict("os.environ", {"RATE_STALE_PERIOD": "60"}, clear=True):
            rates = ExchangeRates(authorization)
        assert rates.rate_stale_period() == 60

    def test_from_network(self, authorization) -> None:
        """Configured addresses bind the on-chain flags and breaker."""
        contract_utility = MagicMock()
        settings = RateSettings(aggregator_warning_flags=FLAGS_ADDRESS)

        rates = ExchangeRates.from_network(
            contract_utility,
            authorization,
            settings=settings,
            circuit_breaker_address="0x" + "cc" * 20,
        )

        assert isinstance(rates.validity.flags, ChainlinkFlags)
        assert isinstance(rates.validity.circuit_breaker, CircuitBreakerContract)
        names = [c.args[0] for c in contract_utility.contract.call_args_list]
        assert names == ["Flags", "CircuitBreaker"]

    def test_from_network_without_flags(self, authorization) -> None:
        """Without addresses no contracts are bound."""
        contract_utility = MagicMock()
        rates = ExchangeRates.from_network(contract_utility, authorization, settings=RateSettings())

        assert rates.validity.flags is None
        assert isinstance(rates.validity.circuit_breaker, DeviationCircuitBreaker)
        contract_utility.contract.assert_not_called()

    def test_add_aggregator_at(self, rates, owner) -> None:
        """An aggregator address is bound and registered."""
        contract_utility = MagicMock()
        contract_utility.contract.return_value = _aggregator_contract()

        feed = rates.add_aggregator_at(owner, "sETH", FEED_ADDRESS, contract_utility)

        contract_utility.contract.assert_called_once_with("AggregatorV2V3Interface", FEED_ADDRESS)
        assert isinstance(feed, AggregatorFeed)
        assert rates.rate_for_currency("sETH") == 250 * UNIT


class TestAggregatorFeed:
    """Test the web3-backed feed."""

    def test_reads(self) -> None:
        """Contract responses are unpacked into feed tuples."""
        contract = _aggregator_contract(rounds={1: (5, 10), 2: (7, 20)})
        feed = AggregatorFeed(contract)

        assert feed.address == FEED_ADDRESS
        assert feed.decimals() == 8
        assert feed.description() == "ETH / USD"
        assert feed.latest_round_id() == 2
        assert feed.latest_round_data() == (2, 7, 20)
        assert feed.get_round_data(1) == (5, 10)


class TestChainlinkFlags:
    """Test the web3-backed flag provider."""

    def test_single_flag(self) -> None:
        """A single flag is read with a checksummed address."""
        contract = MagicMock()
        contract.functions.getFlag.return_value.call.return_value = True
        assert ChainlinkFlags(contract).get_flag(FEED_ADDRESS) is True
        contract.functions.getFlag.assert_called_once_with(FEED_ADDRESS)

    def test_batch_flags(self) -> None:
        """Batch flags are read in one call."""
        contract = MagicMock()
        contract.functions.getFlags.return_value.call.return_value = [True, False]
        subjects = [FEED_ADDRESS, FLAGS_ADDRESS.lower()]

        assert ChainlinkFlags(contract).get_flags(subjects) == [True, False]
        contract.functions.getFlags.assert_called_once_with([FEED_ADDRESS, FLAGS_ADDRESS])
