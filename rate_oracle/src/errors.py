"""Exception hierarchy for the exchange rates engine.

Only hard validation failures raise. Failures of external collaborators
(feeds, flag provider, circuit breaker) are absorbed by the read paths and
never surface as one of these exceptions.
"""


class ExchangeRatesError(Exception):
    """Base exception for exchange rates errors."""

    pass


class NotAuthorizedError(ExchangeRatesError):
    """Raised when a privileged operation is called by a non-owner.

    :ivar caller: Address that attempted the operation.
    """

    def __init__(self, caller: str, message: str = "Only the contract owner may perform this action"):
        """Initialize the authorization error.

        :param caller: Address that attempted the operation.
        :param message: Error message.
        """
        self.caller = caller
        super().__init__(f"{message} (caller: {caller})")


class InvalidAggregatorError(ExchangeRatesError):
    """Raised when a feed fails the registration checks."""

    pass


class AggregatorNotFoundError(ExchangeRatesError):
    """Raised when an operation requires a registered aggregator and none exists."""

    pass


class NegativeRateError(ExchangeRatesError):
    """Raised when a feed reports a negative answer."""

    pass
