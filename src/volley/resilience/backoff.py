"""Backoff strategies: how long to wait before the next attempt, and whether to.

Each strategy is a pure function of the zero-based retry index. The
executor asks for a decision only after the failure has been classified
as transient, so strategies never look at the error itself.

Example:
    >>> from volley.resilience.backoff import ExponentialBackoff
    >>>
    >>> strategy = ExponentialBackoff(max_retries=5, min_backoff=1.0, max_backoff=30.0, delta_backoff=10.0)
    >>> decision = strategy.next_delay(2)
    >>> decision.should_retry
    True
"""

from __future__ import annotations

import math
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import NamedTuple

# Upper bound for any single wait, in seconds
MAX_RETRY_DELAY = 60.0


class RetryDecision(NamedTuple):
    """Outcome of a backoff computation."""

    should_retry: bool
    delay: float


STOP = RetryDecision(False, 0.0)


def clamp_delay(delay: float) -> float:
    """Replace a delay outside [0, MAX_RETRY_DELAY] with MAX_RETRY_DELAY.

    Guards the sleep against negative, overflowed or NaN values coming
    out of a misconfigured strategy.
    """
    if math.isnan(delay) or delay < 0 or delay > MAX_RETRY_DELAY:
        return MAX_RETRY_DELAY
    return delay


class BackoffStrategy(ABC):
    """Abstract base for backoff strategies."""

    max_retries: int

    @abstractmethod
    def next_delay(self, attempt: int) -> RetryDecision:
        """Decide whether retry number ``attempt`` may happen and after what delay.

        Args:
            attempt: Zero-based count of retries performed so far.

        Returns:
            RetryDecision with the retry flag and the delay in seconds.
        """
        ...


@dataclass(frozen=True)
class NoRetry(BackoffStrategy):
    """Never retry."""

    max_retries: int = 0

    def next_delay(self, attempt: int) -> RetryDecision:
        return STOP


@dataclass(frozen=True)
class FixedInterval(BackoffStrategy):
    """Same delay before every retry."""

    max_retries: int = 5
    interval: float = 1.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.interval < 0:
            raise ValueError("interval must be >= 0")

    def next_delay(self, attempt: int) -> RetryDecision:
        if attempt < self.max_retries:
            return RetryDecision(True, self.interval)
        return STOP


@dataclass(frozen=True)
class ExponentialBackoff(BackoffStrategy):
    """Randomized exponential backoff bounded by [min_backoff, max_backoff].

    delta = (2 ** attempt - 1) * uniform(0.8 * delta_backoff, 1.2 * delta_backoff)
    delay = min(min_backoff + delta, max_backoff)

    The random factor is drawn on every call, so two calls with the same
    attempt index usually return different delays.
    """

    max_retries: int = 5
    min_backoff: float = 1.0
    max_backoff: float = 30.0
    delta_backoff: float = 10.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.min_backoff < 0 or self.max_backoff < 0 or self.delta_backoff < 0:
            raise ValueError("backoff values must be >= 0")
        if self.min_backoff > self.max_backoff:
            raise ValueError("min_backoff must be <= max_backoff")

    def next_delay(self, attempt: int) -> RetryDecision:
        if attempt >= self.max_retries:
            return STOP

        spread = random.uniform(0.8 * self.delta_backoff, 1.2 * self.delta_backoff)  # noqa: S311
        try:
            delta = (2.0**attempt - 1.0) * spread
        except OverflowError:
            delta = math.inf
        return RetryDecision(True, min(self.min_backoff + delta, self.max_backoff))


@dataclass(frozen=True)
class ProgressiveBackoff(BackoffStrategy):
    """Linearly growing delay: initial_interval + increment * attempt."""

    max_retries: int = 5
    initial_interval: float = 1.0
    increment: float = 0.5

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.initial_interval < 0 or self.increment < 0:
            raise ValueError("intervals must be >= 0")

    def next_delay(self, attempt: int) -> RetryDecision:
        if attempt < self.max_retries:
            return RetryDecision(True, self.initial_interval + self.increment * attempt)
        return STOP
