"""Shared fixtures: in-memory feeds and a wired-up engine."""

from __future__ import annotations

import itertools

import pytest
from web3 import Web3

from rate_oracle.src.Authorization import OwnerAuthorization
from rate_oracle.src.CircuitBreaker import DeviationCircuitBreaker
from rate_oracle.src.ExchangeRates import ExchangeRates
from rate_oracle.src.Flags import StaticFlags
from rate_oracle.src.RateSettings import RateSettings

OWNER = "0x" + "aa" * 20
STRANGER = "0x" + "bb" * 20
NOW = 1_700_000_000
STALE_PERIOD = 3600

_addresses = itertools.count(1)


class FakeFeed:
    """In-memory feed with a round history.

    ``rounds`` maps round id to ``(answer, updated_at)``. The latest round is
    the highest id. Setting ``broken`` makes every call raise.
    """

    def __init__(
        self,
        decimals: int = 8,
        rounds: dict[int, tuple[int, int]] | None = None,
        address: str | None = None,
    ) -> None:
        self._decimals = decimals
        self.rounds: dict[int, tuple[int, int]] = dict(rounds or {})
        self.address = Web3.to_checksum_address(address or "0x" + f"{next(_addresses):040x}")
        self.broken = False
        self.calls: list[str] = []

    def _check(self, name: str) -> None:
        self.calls.append(name)
        if self.broken:
            raise ConnectionError(f"{name}: feed unreachable")

    def push(self, answer: int, updated_at: int) -> int:
        """Append a new round and return its id."""
        round_id = max(self.rounds, default=0) + 1
        self.rounds[round_id] = (answer, updated_at)
        return round_id

    def decimals(self) -> int:
        self._check("decimals")
        return self._decimals

    def latest_round_id(self) -> int:
        self._check("latest_round_id")
        return max(self.rounds, default=0)

    def latest_round_data(self) -> tuple[int, int, int]:
        self._check("latest_round_data")
        round_id = max(self.rounds, default=0)
        answer, updated_at = self.rounds.get(round_id, (0, 0))
        return round_id, answer, updated_at

    def get_round_data(self, round_id: int) -> tuple[int, int]:
        self._check("get_round_data")
        if round_id not in self.rounds:
            raise ValueError(f"No data present for round {round_id}")
        return self.rounds[round_id]


class CountingFlags(StaticFlags):
    """StaticFlags that counts provider requests."""

    def __init__(self, flagged=()) -> None:
        super().__init__(flagged)
        self.get_flag_calls = 0
        self.get_flags_calls = 0

    def get_flag(self, subject: str) -> bool:
        self.get_flag_calls += 1
        return super().get_flag(subject)

    def get_flags(self, subjects):
        self.get_flags_calls += 1
        return [StaticFlags.get_flag(self, s) for s in subjects]


@pytest.fixture
def authorization() -> OwnerAuthorization:
    """Owner check for OWNER."""
    return OwnerAuthorization(OWNER)


@pytest.fixture
def settings() -> RateSettings:
    """Settings with a one hour stale period."""
    return RateSettings(rate_stale_period=STALE_PERIOD)


@pytest.fixture
def flags() -> CountingFlags:
    """Empty in-process flag provider."""
    return CountingFlags()


@pytest.fixture
def breaker(authorization) -> DeviationCircuitBreaker:
    """In-process circuit breaker with a 2x deviation factor."""
    return DeviationCircuitBreaker(factor=2 * 10**18, authorization=authorization)


@pytest.fixture
def rates(authorization, settings, breaker, flags) -> ExchangeRates:
    """Engine wired with in-process collaborators."""
    return ExchangeRates(authorization, settings, circuit_breaker=breaker, flags=flags)


@pytest.fixture
def make_feed():
    """Factory for FakeFeed instances."""
    return FakeFeed


@pytest.fixture
def owner() -> str:
    """Address of the registry owner."""
    return OWNER


@pytest.fixture
def stranger() -> str:
    """Address that is not the owner."""
    return STRANGER
