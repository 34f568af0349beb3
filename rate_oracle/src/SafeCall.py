"""SafeCall: Absorb collaborator failures into deterministic defaults.

Read queries must not fail because a feed, the flag provider, or the circuit
breaker misbehaved. Every call to one of them goes through :func:`safe_call`,
which returns an explicit :class:`CallResult` and lets the caller decide the
default.

.. code-block:: python

    >>> safe_call(lambda: 1 // 0, default=0, description="divide").value
    0
    >>> safe_call(lambda: 42, default=0).ok
    True
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CallResult(Generic[T]):
    """Outcome of a collaborator call.

    :ivar value: Returned value, or the default if the call failed.
    :ivar ok: True if the call completed and its result was accepted.
    :ivar error: The absorbed exception, if any.
    """

    value: T
    ok: bool
    error: Exception | None = None


def safe_call(
    fn: Callable[[], T],
    *,
    default: T,
    description: str = "external call",
    validate: Callable[[T], bool] | None = None,
    log_level: int = logging.DEBUG,
) -> CallResult[T]:
    """Invoke a collaborator, turning any failure into ``default``.

    :param fn: Zero-argument callable performing the external call.
    :param default: Value returned when the call raises or is rejected.
    :param description: Label used in log messages.
    :param validate: Optional predicate; a result failing it counts as a
        malformed response.
    :param log_level: Level used to log absorbed failures.
    :returns: CallResult carrying the value and whether the call succeeded.
    """
    try:
        value = fn()
        accepted = validate is None or bool(validate(value))
    except Exception as exc:
        logger.log(log_level, f"{description} failed: {exc!r}")
        return CallResult(value=default, ok=False, error=exc)

    if not accepted:
        logger.log(log_level, f"{description} returned malformed response: {value!r}")
        return CallResult(value=default, ok=False)

    return CallResult(value=value, ok=True)
