"""Flags: Aggregator warning flag providers.

A flag provider reports whether a warning is raised against a feed. The
engine treats an unconfigured provider, and any provider failure, as "no
warning".
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Sequence, runtime_checkable

from web3 import Web3

if TYPE_CHECKING:
    from web3.contract import Contract


@runtime_checkable
class FlagProvider(Protocol):
    """Contract for a warning flag provider."""

    def get_flag(self, subject: str) -> bool:
        """Return True if a warning is raised against ``subject``."""
        ...

    def get_flags(self, subjects: Sequence[str]) -> list[bool]:
        """Return warning flags for several subjects in one request."""
        ...


class ChainlinkFlags:
    """Flag provider backed by a Chainlink ``Flags`` contract.

    :ivar contract: Bound web3 contract.
    """

    def __init__(self, contract: Contract) -> None:
        """Initialize the provider.

        :param contract: web3 contract bound with the Flags ABI.
        """
        self.contract = contract

    def __repr__(self) -> str:
        """Return a developer-friendly string representation."""
        return f"ChainlinkFlags({self.contract.address!r})"

    def get_flag(self, subject: str) -> bool:
        """Return the raised flag for a single aggregator address."""
        return bool(
            self.contract.functions.getFlag(Web3.to_checksum_address(subject)).call()
        )

    def get_flags(self, subjects: Sequence[str]) -> list[bool]:
        """Return raised flags for several aggregator addresses."""
        addresses = [Web3.to_checksum_address(s) for s in subjects]
        return [bool(flag) for flag in self.contract.functions.getFlags(addresses).call()]


class StaticFlags:
    """In-process flag provider holding a fixed set of flagged subjects.

    Useful for local runs and tests where no Flags contract is deployed.

    .. code-block:: python

        >>> flags = StaticFlags()
        >>> flags.raise_flag("0x" + "11" * 20)
        >>> flags.get_flag("0x" + "11" * 20)
        True
    """

    def __init__(self, flagged: Sequence[str] = ()) -> None:
        """Initialize with an optional set of flagged addresses."""
        self._flagged: set[str] = {Web3.to_checksum_address(s) for s in flagged}

    def raise_flag(self, subject: str) -> None:
        """Raise the warning flag for a subject."""
        self._flagged.add(Web3.to_checksum_address(subject))

    def lower_flag(self, subject: str) -> None:
        """Lower the warning flag for a subject."""
        self._flagged.discard(Web3.to_checksum_address(subject))

    def get_flag(self, subject: str) -> bool:
        """Return True if the subject is flagged."""
        return Web3.to_checksum_address(subject) in self._flagged

    def get_flags(self, subjects: Sequence[str]) -> list[bool]:
        """Return flags for several subjects."""
        return [self.get_flag(s) for s in subjects]
