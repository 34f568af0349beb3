"""Authorization: Owner check injected into privileged components.

.. code-block:: python

    >>> auth = OwnerAuthorization("0x" + "aa" * 20)
    >>> auth.is_owner("0x" + "AA" * 20)
    True
"""

from web3 import Web3

from .errors import NotAuthorizedError


class OwnerAuthorization:
    """Allows privileged operations only for a single owner address.

    :ivar owner: Checksummed owner address.
    """

    def __init__(self, owner: str) -> None:
        """Initialize the check.

        :param owner: Owner address (any case).
        :raises ValueError: If owner is not a valid address.
        """
        if not Web3.is_address(owner):
            raise ValueError(f"Invalid owner address: {owner}")
        self.owner = Web3.to_checksum_address(owner)

    def __repr__(self) -> str:
        """Return a developer-friendly string representation."""
        return f"OwnerAuthorization({self.owner!r})"

    def is_owner(self, caller: str) -> bool:
        """Return True if caller is the owner."""
        return Web3.is_address(caller) and Web3.to_checksum_address(caller) == self.owner

    def require_owner(self, caller: str) -> None:
        """Raise unless caller is the owner.

        :param caller: Address attempting the operation.
        :raises NotAuthorizedError: If caller is not the owner.
        """
        if not self.is_owner(caller):
            raise NotAuthorizedError(caller)
