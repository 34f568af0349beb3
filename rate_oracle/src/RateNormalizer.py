"""RateNormalizer: Scale raw feed answers to 18-decimal fixed point.

Feeds report integers at their own precision (0 to 27 decimals). The
registry captures each feed's decimals once at registration; the value
passed here must be that captured value, never one re-read from the feed.

.. code-block:: python

    >>> format_aggregator_answer(250_00000000, 8)
    250000000000000000000
    >>> format_aggregator_answer(123456789012345678901234, 20)
    1234567890123456789012
"""

from typing import Final

from .errors import NegativeRateError
from .FixedPoint import DECIMALS

MAX_DECIMALS: Final[int] = 27


def format_aggregator_answer(raw_value: int, decimals: int) -> int:
    """Convert a raw feed answer into the canonical 18-decimal representation.

    Answers with more than 18 decimals are truncated, not rounded.

    :param raw_value: Signed integer answer reported by the feed.
    :param decimals: Decimals captured for the feed at registration.
    :returns: Non-negative rate with 18 fractional digits.
    :raises NegativeRateError: If raw_value is negative.
    """
    if raw_value < 0:
        raise NegativeRateError(f"Negative rate not supported: {raw_value}")

    if decimals == 0 or decimals == DECIMALS:
        return raw_value
    if decimals < DECIMALS:
        return raw_value * 10 ** (DECIMALS - decimals)
    return raw_value // 10 ** (decimals - DECIMALS)
