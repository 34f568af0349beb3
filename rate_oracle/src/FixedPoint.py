"""Fixed-point decimal arithmetic on integers with 18 fractional digits.

A value ``x`` represents ``x / UNIT``. Multiplication and division round the
result half-up to the nearest representable value.

.. code-block:: python

    >>> multiply_decimal_round(3 * UNIT, UNIT // 2)
    1500000000000000000
    >>> divide_decimal_round(UNIT, 3 * UNIT)
    333333333333333333
"""

from typing import Final

DECIMALS: Final[int] = 18
UNIT: Final[int] = 10**DECIMALS


def multiply_decimal(x: int, y: int, precision_unit: int = UNIT) -> int:
    """Multiply two fixed-point values, truncating the result."""
    return x * y // precision_unit


def multiply_decimal_round(x: int, y: int, precision_unit: int = UNIT) -> int:
    """Multiply two fixed-point values, rounding half-up.

    :param x: First factor.
    :param y: Second factor.
    :param precision_unit: Unit of the fixed-point representation.
    :returns: ``round(x * y / precision_unit)``.
    """
    quotient_times_ten = x * y // (precision_unit // 10)
    if quotient_times_ten % 10 >= 5:
        quotient_times_ten += 10
    return quotient_times_ten // 10


def divide_decimal(x: int, y: int, precision_unit: int = UNIT) -> int:
    """Divide two fixed-point values, truncating the result."""
    return x * precision_unit // y


def divide_decimal_round(x: int, y: int, precision_unit: int = UNIT) -> int:
    """Divide two fixed-point values, rounding half-up.

    :param x: Dividend.
    :param y: Divisor, must be non-zero.
    :param precision_unit: Unit of the fixed-point representation.
    :returns: ``round(x * precision_unit / y)``.
    :raises ZeroDivisionError: If y is zero.
    """
    result_times_ten = x * (precision_unit * 10) // y
    if result_times_ten % 10 >= 5:
        result_times_ten += 10
    return result_times_ten // 10


def to_decimal_string(value: int, decimals: int = DECIMALS) -> str:
    """Render a fixed-point integer as a plain decimal string.

    .. code-block:: python

        >>> to_decimal_string(2_500000000000000000)
        '2.5'
    """
    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(value), 10**decimals)
    frac_str = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{sign}{whole}.{frac_str}" if frac_str else f"{sign}{whole}"


def from_decimal_string(text: str, decimals: int = DECIMALS) -> int:
    """Parse a decimal string such as ``"1.25"`` into a fixed-point integer.

    :raises ValueError: If the string is not a plain decimal number or has
        more fractional digits than the representation holds.
    """
    text = text.strip()
    negative = text.startswith("-")
    if negative:
        text = text[1:]
    whole, _, frac = text.partition(".")
    if not (whole or frac) or not (whole + frac).isdigit():
        raise ValueError(f"Invalid decimal amount: {text!r}")
    if len(frac) > decimals:
        raise ValueError(f"Amount {text!r} has more than {decimals} fractional digits")
    value = int(whole or "0") * 10**decimals + int(frac.ljust(decimals, "0") or "0")
    return -value if negative else value
