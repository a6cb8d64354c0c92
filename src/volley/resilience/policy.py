"""Immutable retry policy configuration.

A RetryPolicyConfig is created once per call site and shared for the
life of the process. It selects one backoff variant through ``kind`` and
carries the parameters for every variant, so the same model can be read
straight out of volley.yaml.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

from volley.resilience.backoff import (
    BackoffStrategy,
    ExponentialBackoff,
    FixedInterval,
    NoRetry,
    ProgressiveBackoff,
)

DEFAULT_RETRY_COUNT = 5
DEFAULT_RETRY_INTERVAL = 1.0
DEFAULT_MIN_BACKOFF = 1.0
DEFAULT_MAX_BACKOFF = 30.0
DEFAULT_DELTA_BACKOFF = 10.0
DEFAULT_RETRY_INCREMENT = 0.5
DEFAULT_THRESHOLD_INTERVAL = 180.0

BackoffKind = Literal["none", "fixed", "exponential", "progressive"]


class RetryPolicyConfig(BaseModel):
    """Retry policy for one call site.

    All durations are in seconds. ``fast_first_retry`` left as None
    resolves to True for the none/fixed/exponential kinds and False for
    progressive.
    """

    model_config = {"extra": "forbid", "frozen": True}

    kind: BackoffKind = "exponential"
    max_retry_count: int = Field(default=DEFAULT_RETRY_COUNT, ge=0)
    fast_first_retry: bool | None = None
    threshold_interval: float = DEFAULT_THRESHOLD_INTERVAL
    retry_count_after_which_incident_is_logged: int | None = Field(default=None, ge=0)

    # fixed
    retry_interval: float = Field(default=DEFAULT_RETRY_INTERVAL, ge=0.0)

    # exponential
    min_backoff: float = Field(default=DEFAULT_MIN_BACKOFF, ge=0.0)
    max_backoff: float = Field(default=DEFAULT_MAX_BACKOFF, ge=0.0)
    delta_backoff: float = Field(default=DEFAULT_DELTA_BACKOFF, ge=0.0)

    # progressive
    initial_interval: float = Field(default=DEFAULT_RETRY_INTERVAL, ge=0.0)
    increment: float = Field(default=DEFAULT_RETRY_INCREMENT, ge=0.0)

    @model_validator(mode="after")
    def _check_backoff_bounds(self) -> RetryPolicyConfig:
        if self.min_backoff > self.max_backoff:
            raise ValueError("min_backoff must be <= max_backoff")
        return self

    @property
    def effective_fast_first_retry(self) -> bool:
        """Resolved fast-first-retry flag."""
        if self.fast_first_retry is not None:
            return self.fast_first_retry
        return self.kind != "progressive"

    def build_backoff(self) -> BackoffStrategy:
        """Create the backoff strategy this configuration describes.

        A zero retry count always yields NoRetry, whatever the kind.
        """
        if self.kind == "none" or self.max_retry_count == 0:
            return NoRetry()
        if self.kind == "fixed":
            return FixedInterval(max_retries=self.max_retry_count, interval=self.retry_interval)
        if self.kind == "exponential":
            return ExponentialBackoff(
                max_retries=self.max_retry_count,
                min_backoff=self.min_backoff,
                max_backoff=self.max_backoff,
                delta_backoff=self.delta_backoff,
            )
        return ProgressiveBackoff(
            max_retries=self.max_retry_count,
            initial_interval=self.initial_interval,
            increment=self.increment,
        )


DEFAULT_EXPONENTIAL = RetryPolicyConfig(kind="exponential")
DEFAULT_FIXED = RetryPolicyConfig(kind="fixed")
DEFAULT_PROGRESSIVE = RetryPolicyConfig(kind="progressive")
