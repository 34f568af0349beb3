"""
Exchange Rates Oracle - Feed Registry and Rate Validity Module

This module provides exchange rates read from external price feeds:
- CurrencyKey: Fixed-length currency identifiers
- AggregatorRegistry: Currency key to feed mapping with owner-only mutations
- RoundResolver: Current and historical normalized rates
- ValidityEvaluator: Stale / flagged / circuit-broken classification
- CrossRateCalculator: Conversions through the pivot currency
- ExchangeRates: Public surface wiring the above together
"""

from .AggregatorRegistry import AggregatorAdded, AggregatorRegistry, AggregatorRemoved
from .Authorization import OwnerAuthorization
from .CircuitBreaker import CircuitBreakerContract, DeviationCircuitBreaker
from .CrossRateCalculator import CrossRateCalculator, EffectiveValue
from .CurrencyKey import SUSD, CurrencyKey
from .errors import (
    AggregatorNotFoundError,
    ExchangeRatesError,
    InvalidAggregatorError,
    NegativeRateError,
    NotAuthorizedError,
)
from .ExchangeRates import ExchangeRates
from .FeedHandle import AggregatorFeed, FeedHandle
from .FixedPoint import UNIT
from .Flags import ChainlinkFlags, StaticFlags
from .RateNormalizer import format_aggregator_answer
from .RateSettings import RateSettings
from .RoundResolver import RateAndUpdatedTime, RoundResolver
from .ValidityEvaluator import ValidityEvaluator

__all__ = [
    "AggregatorAdded",
    "AggregatorFeed",
    "AggregatorNotFoundError",
    "AggregatorRegistry",
    "AggregatorRemoved",
    "ChainlinkFlags",
    "CircuitBreakerContract",
    "CrossRateCalculator",
    "CurrencyKey",
    "DeviationCircuitBreaker",
    "EffectiveValue",
    "ExchangeRates",
    "ExchangeRatesError",
    "FeedHandle",
    "InvalidAggregatorError",
    "NegativeRateError",
    "NotAuthorizedError",
    "OwnerAuthorization",
    "RateAndUpdatedTime",
    "RateSettings",
    "RoundResolver",
    "StaticFlags",
    "SUSD",
    "UNIT",
    "ValidityEvaluator",
    "format_aggregator_answer",
]
