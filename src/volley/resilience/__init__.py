"""Volley resilience core - retry executor, backoff, classifiers, guards and failover."""

from volley.resilience.backoff import (
    MAX_RETRY_DELAY,
    BackoffStrategy,
    ExponentialBackoff,
    FixedInterval,
    NoRetry,
    ProgressiveBackoff,
    RetryDecision,
    clamp_delay,
)
from volley.resilience.classifiers import (
    CatchAllClassifier,
    ThrottleClassifier,
    TransientFaultClassifier,
    TransportFaultClassifier,
    unwrap_error,
)
from volley.resilience.errors import (
    AttemptOutcome,
    IncidentThresholdExceededError,
    OperationCancelledError,
    RegionsExhaustedError,
    StorageError,
    ThresholdExceededError,
    VolleyError,
)
from volley.resilience.executor import RetryExecutor
from volley.resilience.failover import RegionFailoverState
from volley.resilience.metrics import MetricsSink
from volley.resilience.pipeline import ResiliencePipeline
from volley.resilience.policy import (
    DEFAULT_EXPONENTIAL,
    DEFAULT_FIXED,
    DEFAULT_PROGRESSIVE,
    RetryPolicyConfig,
)
from volley.resilience.threshold import AllowAllGuard, StopOnExceedGuard, ThresholdGuard

__all__ = [
    "AllowAllGuard",
    "AttemptOutcome",
    "BackoffStrategy",
    "CatchAllClassifier",
    "DEFAULT_EXPONENTIAL",
    "DEFAULT_FIXED",
    "DEFAULT_PROGRESSIVE",
    "ExponentialBackoff",
    "FixedInterval",
    "IncidentThresholdExceededError",
    "MAX_RETRY_DELAY",
    "MetricsSink",
    "NoRetry",
    "OperationCancelledError",
    "ProgressiveBackoff",
    "RegionFailoverState",
    "RegionsExhaustedError",
    "ResiliencePipeline",
    "RetryDecision",
    "RetryExecutor",
    "RetryPolicyConfig",
    "StopOnExceedGuard",
    "StorageError",
    "ThresholdExceededError",
    "ThresholdGuard",
    "ThrottleClassifier",
    "TransientFaultClassifier",
    "TransportFaultClassifier",
    "VolleyError",
    "clamp_delay",
    "unwrap_error",
]
