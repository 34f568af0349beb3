"""RateSettings: Read-only configuration consumed by the rates engine.

Values come from environment variables unless given explicitly:

- ``RATE_STALE_PERIOD``: seconds after which a rate is stale (default 25 hours).
- ``AGGREGATOR_WARNING_FLAGS``: address of the warning flags contract
  (unset disables flag checks).
- ``CIRCUIT_BREAKER_FACTOR``: deviation factor of the in-process circuit
  breaker as a decimal string (default "1.5").
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from web3 import Web3

from .FixedPoint import UNIT, from_decimal_string

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

DEFAULT_RATE_STALE_PERIOD = 25 * 60 * 60
DEFAULT_CIRCUIT_BREAKER_FACTOR = 3 * UNIT // 2


@dataclass(frozen=True)
class RateSettings:
    """Configuration values read by the engine.

    :ivar rate_stale_period: Max age of a rate in seconds.
    :ivar aggregator_warning_flags: Flags contract address, or None.
    :ivar circuit_breaker_factor: Deviation factor in 18-decimal fixed point.
    """

    rate_stale_period: int = DEFAULT_RATE_STALE_PERIOD
    aggregator_warning_flags: str | None = None
    circuit_breaker_factor: int = DEFAULT_CIRCUIT_BREAKER_FACTOR

    def __post_init__(self) -> None:
        """Validate values and normalize the flags address.

        :raises ValueError: If a value is out of range.
        """
        if self.rate_stale_period < 0:
            raise ValueError("rate_stale_period must not be negative")
        if self.circuit_breaker_factor <= UNIT:
            raise ValueError("circuit_breaker_factor must be greater than 1")

        flags = self.aggregator_warning_flags
        if flags is not None:
            if not Web3.is_address(flags):
                raise ValueError(f"Invalid aggregator warning flags address: {flags}")
            flags = Web3.to_checksum_address(flags)
            if flags == ZERO_ADDRESS:
                flags = None
            object.__setattr__(self, "aggregator_warning_flags", flags)

    @classmethod
    def from_env(cls) -> RateSettings:
        """Build settings from environment variables.

        :raises ValueError: If a variable holds an invalid value.
        """
        stale_period = os.environ.get("RATE_STALE_PERIOD")
        factor = os.environ.get("CIRCUIT_BREAKER_FACTOR")
        return cls(
            rate_stale_period=int(stale_period) if stale_period else DEFAULT_RATE_STALE_PERIOD,
            aggregator_warning_flags=os.environ.get("AGGREGATOR_WARNING_FLAGS") or None,
            circuit_breaker_factor=(
                from_decimal_string(factor) if factor else DEFAULT_CIRCUIT_BREAKER_FACTOR
            ),
        )
