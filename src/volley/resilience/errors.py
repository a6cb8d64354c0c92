"""Error taxonomy for the resilience core.

Retry exhaustion and non-retryable failures re-raise the caller's
original exception object unchanged. The classes here cover the
conditions the engine itself signals (threshold, incident, cancellation,
exhausted failover regions) plus StorageError, the status-carrying error
that targets raise and classifiers inspect.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class AttemptOutcome(str, Enum):
    """Tagged outcome of a single attempt, reported to metrics sinks."""

    success = "success"
    retryable = "retryable"
    fatal = "fatal"


class VolleyError(Exception):
    """Base class for errors raised by volley itself."""


class OperationCancelledError(VolleyError):
    """Cancellation-kind error: the operation was stopped before it could finish."""

    def __init__(self, message: str = "The operation was cancelled") -> None:
        super().__init__(message)


class ThresholdExceededError(OperationCancelledError):
    """Raised when the total elapsed time of a call exceeds its threshold."""

    def __init__(self, elapsed: float, threshold: float, attempts: int) -> None:
        self.elapsed = elapsed
        self.threshold = threshold
        self.attempts = attempts
        super().__init__(
            f"The current execution time {elapsed:.3f}s exceeds the threshold "
            f"{threshold:.3f}s after {attempts} retries"
        )


class IncidentThresholdExceededError(OperationCancelledError):
    """Raised when retries pass the incident-logging count.

    The original error is always attached as ``__cause__``.
    """

    def __init__(self, incident_threshold: int, attempts: int) -> None:
        self.incident_threshold = incident_threshold
        self.attempts = attempts
        super().__init__(f"The retry threshold of {incident_threshold} was exceeded")


class RegionsExhaustedError(VolleyError):
    """Terminal failover error: every fallback region has been tried."""

    def __init__(self, attempts: int, region_count: int) -> None:
        self.attempts = attempts
        self.region_count = region_count
        super().__init__(
            f"All regions tried ({region_count} regions, {attempts} attempts)"
        )


class StorageError(VolleyError):
    """Error raised by a storage target, optionally carrying an HTTP-like status code."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class StorageErrorKind(str, Enum):
    """Caller-facing category of a storage failure."""

    none = "none"
    not_found = "not_found"
    etag_mismatch = "etag_mismatch"
    duplicate_id = "duplicate_id"
    storage = "storage"


_STATUS_KINDS: dict[int, StorageErrorKind] = {
    404: StorageErrorKind.not_found,
    412: StorageErrorKind.etag_mismatch,
    409: StorageErrorKind.duplicate_id,
}


def status_of(exc: BaseException) -> int | None:
    """Return the status code an exception carries, if any.

    Checks ``status_code`` first, then ``status``, the attributes SDK
    exceptions commonly set.
    """
    status: Any = getattr(exc, "status_code", None)
    if status is None:
        status = getattr(exc, "status", None)
    if isinstance(status, int):
        return status
    return None


def wrap_storage_error(exc: BaseException) -> StorageError:
    """Wrap an arbitrary exception in a StorageError.

    A single-member exception group is flattened first so that the
    wrapper carries the real failure. The wrapped exception becomes
    ``__cause__`` and its status code, if any, is copied over.
    """
    inner = exc
    while isinstance(inner, BaseExceptionGroup) and len(inner.exceptions) == 1:
        inner = inner.exceptions[0]

    if isinstance(inner, StorageError):
        return inner

    error = StorageError(str(inner), status_code=status_of(inner))
    error.__cause__ = inner
    return error


def classify_storage_error(exc: BaseException) -> StorageErrorKind:
    """Map a failure onto the category a caller would branch on.

    Anything that is not a StorageError (directly or as the sole member
    of an exception group) is ``none``.
    """
    candidate = exc
    if isinstance(candidate, BaseExceptionGroup) and len(candidate.exceptions) == 1:
        candidate = candidate.exceptions[0]
    if not isinstance(candidate, StorageError):
        return StorageErrorKind.none

    if candidate.status_code is not None and candidate.status_code in _STATUS_KINDS:
        return _STATUS_KINDS[candidate.status_code]
    return StorageErrorKind.storage
