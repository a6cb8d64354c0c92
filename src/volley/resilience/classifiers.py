"""Transient fault classifiers.

A classifier answers one question: is this error safe to retry? Every
built-in classifier first unwraps exception groups down to the innermost
error before testing it.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Iterable

from volley.resilience.errors import OperationCancelledError, StorageError, status_of

SERVICE_UNAVAILABLE = 503
TOO_MANY_REQUESTS = 429

# Provider messages known to describe a transient condition
DEFAULT_RETRYABLE_MESSAGES: tuple[str, ...] = ("One of the specified inputs is invalid",)

# Errors signalling that the call was cancelled or timed out
CANCELLATION_ERRORS: tuple[type[BaseException], ...] = (
    asyncio.CancelledError,
    OperationCancelledError,
    TimeoutError,
)

# Transport-level errors that may sit underneath a StorageError
TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    *CANCELLATION_ERRORS,
    ConnectionError,
)


def unwrap_error(exc: BaseException) -> BaseException:
    """Descend through exception groups to the innermost first error."""
    current = exc
    while isinstance(current, BaseExceptionGroup) and current.exceptions:
        current = current.exceptions[0]
    return current


class TransientFaultClassifier(ABC):
    """Abstract base for transient fault detection."""

    @abstractmethod
    def is_transient(self, exc: BaseException) -> bool:
        """Return True if ``exc`` may be retried."""
        ...


class CatchAllClassifier(TransientFaultClassifier):
    """Treats every error as transient."""

    def is_transient(self, exc: BaseException) -> bool:
        return True


class TransportFaultClassifier(TransientFaultClassifier):
    """Retries cancellations, timeouts, 503s, transport failures and known messages.

    Args:
        retryable_messages: Substrings that mark an error as retryable
            when found in its message. Matching is case-sensitive.
    """

    def __init__(self, retryable_messages: Iterable[str] = DEFAULT_RETRYABLE_MESSAGES) -> None:
        self.retryable_messages = tuple(retryable_messages)

    def is_transient(self, exc: BaseException) -> bool:
        error = unwrap_error(exc)

        if isinstance(error, CANCELLATION_ERRORS):
            return True

        if isinstance(error, StorageError):
            if error.status_code == SERVICE_UNAVAILABLE:
                return True
            if isinstance(error.__cause__, TRANSPORT_ERRORS):
                return True

        message = str(error)
        return any(fragment in message for fragment in self.retryable_messages)


class ThrottleClassifier(TransientFaultClassifier):
    """Retries only throttled requests (status 429)."""

    def is_transient(self, exc: BaseException) -> bool:
        return status_of(unwrap_error(exc)) == TOO_MANY_REQUESTS
