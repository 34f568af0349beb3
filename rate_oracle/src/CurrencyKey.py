"""CurrencyKey: Fixed-length identifier for a currency in the rates registry.

Keys are stored as 32-byte values, the same layout a ``bytes32`` currency key
has on-chain. A symbol such as ``"sETH"`` is UTF-8 encoded and right-padded
with zero bytes. Keys support equality and hashing only.

.. code-block:: python

    >>> key = CurrencyKey.from_string("sETH")
    >>> str(key)
    'sETH'
    >>> len(key.to_bytes())
    32
    >>> key == CurrencyKey(key.to_bytes())
    True
"""

from __future__ import annotations

from web3 import Web3

KEY_LENGTH = 32


class CurrencyKey:
    """An opaque 32-byte currency identifier.

    :ivar value: Raw 32-byte key.
    """

    __slots__ = ("value",)

    def __init__(self, value: bytes) -> None:
        """Initialize a currency key from raw bytes.

        :param value: Up to 32 bytes; shorter values are right-padded.
        :raises ValueError: If value is longer than 32 bytes.
        """
        if len(value) > KEY_LENGTH:
            raise ValueError(
                f"Currency key must be at most {KEY_LENGTH} bytes, got {len(value)}"
            )
        self.value = bytes(value).ljust(KEY_LENGTH, b"\x00")

    def __str__(self) -> str:
        """Return the symbol with padding stripped."""
        return self.value.rstrip(b"\x00").decode("utf-8", errors="replace")

    def __repr__(self) -> str:
        """Return a developer-friendly string representation."""
        return f"CurrencyKey({str(self)!r})"

    def __hash__(self) -> int:
        """Return hash for use in dicts and sets."""
        return hash(self.value)

    def __eq__(self, other: object) -> bool:
        """Check equality on the raw 32-byte value."""
        if not isinstance(other, CurrencyKey):
            return NotImplemented
        return self.value == other.value

    def to_bytes(self) -> bytes:
        """Return the padded 32-byte value."""
        return self.value

    def to_hex(self) -> str:
        """Return the key as a 0x-prefixed hex string."""
        return Web3.to_hex(self.value)

    @classmethod
    def from_string(cls, symbol: str) -> CurrencyKey:
        """Build a key from a currency symbol.

        :param symbol: Symbol such as "sUSD" or "sBTC". Case is preserved.
        :returns: New CurrencyKey instance.
        :raises ValueError: If the symbol is empty or too long.

        .. code-block:: python

            >>> CurrencyKey.from_string("sBTC").to_hex()[:10]
            '0x73425443'
        """
        symbol = symbol.strip()
        if not symbol:
            raise ValueError("Currency symbol must not be empty")
        return cls(Web3.to_bytes(text=symbol))

    @classmethod
    def from_hex(cls, hex_value: str) -> CurrencyKey:
        """Build a key from a 0x-prefixed bytes32 hex string."""
        return cls(Web3.to_bytes(hexstr=hex_value))


# The unit-valued pivot currency. It has no feed and always rates at one unit.
SUSD = CurrencyKey.from_string("sUSD")


def to_currency_key(key: CurrencyKey | str | bytes) -> CurrencyKey:
    """Coerce a symbol, raw bytes, or an existing key into a CurrencyKey.

    :param key: CurrencyKey, symbol string, or raw bytes.
    :returns: CurrencyKey instance.
    """
    if isinstance(key, CurrencyKey):
        return key
    if isinstance(key, (bytes, bytearray)):
        return CurrencyKey(bytes(key))
    if key.startswith("0x") and len(key) == 2 + 2 * KEY_LENGTH:
        return CurrencyKey.from_hex(key)
    return CurrencyKey.from_string(key)
