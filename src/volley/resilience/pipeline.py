"""Per-call-site composition of throttle failover around transient retries.

The outer executor only retries throttled (429) responses and moves the
request to the next fallback region each time; it stops when the
regions run out. The inner executor retries transport faults against
the current region. Both executors see the same RegionFailoverState,
which is also handed to the action so it can pick its target region.
Retries from either layer reach the metrics sink; the call's success or
failure reaches it once.
"""

from __future__ import annotations

import asyncio
import sys
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, TypeVar

from volley.resilience.classifiers import (
    ThrottleClassifier,
    TransientFaultClassifier,
    TransportFaultClassifier,
)
from volley.resilience.executor import RetryExecutor
from volley.resilience.failover import (
    DEFAULT_FAILOVER_REGIONS,
    RegionFailoverState,
    throttle_error_handler,
    transient_error_handler,
)
from volley.resilience.metrics import MetricsSink, RetryOnlyMetricsSink
from volley.resilience.policy import RetryPolicyConfig
from volley.resilience.threshold import ThresholdGuard

if TYPE_CHECKING:
    from volley.models.config import ResilienceConfig

T = TypeVar("T")

TRANSIENT_POLICY = RetryPolicyConfig(
    kind="progressive",
    max_retry_count=3,
    initial_interval=1.0,
    increment=1.0,
    threshold_interval=10.0,
)

# Bounded by the region list, not by the retry count
THROTTLE_POLICY = RetryPolicyConfig(
    kind="progressive",
    max_retry_count=sys.maxsize,
    initial_interval=0.0,
    increment=0.0,
    threshold_interval=10.0,
)


class ResiliencePipeline:
    """Throttle-failover executor wrapped around a transient-retry executor.

    Args:
        transient_policy: Policy for the inner, same-region retries.
        throttle_policy: Policy for the outer, region-failover retries.
        regions: Ordered fallback regions used once throttling starts.
        transient_classifier: Classifier for the inner executor.
        guard: Threshold guard shared by both executors.
        metrics: Sink for call events. The inner executor only reports
            retries to it; success and give-up are reported once, by the
            outer executor.
        sleep: Blocking sleep passed to both executors.
        async_sleep: Awaitable sleep passed to both executors.
    """

    def __init__(
        self,
        transient_policy: RetryPolicyConfig = TRANSIENT_POLICY,
        throttle_policy: RetryPolicyConfig = THROTTLE_POLICY,
        regions: Sequence[str] = DEFAULT_FAILOVER_REGIONS,
        *,
        transient_classifier: TransientFaultClassifier | None = None,
        guard: ThresholdGuard | None = None,
        metrics: MetricsSink | None = None,
        sleep: Callable[[float], None] = time.sleep,
        async_sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        classifier = transient_classifier or TransportFaultClassifier()
        self.regions = tuple(regions)
        self.transient = RetryExecutor[RegionFailoverState](
            transient_policy,
            classifier,
            guard,
            on_error=transient_error_handler(classifier),
            metrics=RetryOnlyMetricsSink(metrics) if metrics is not None else None,
            sleep=sleep,
            async_sleep=async_sleep,
        )
        self.throttle = RetryExecutor[RegionFailoverState](
            throttle_policy,
            ThrottleClassifier(),
            guard,
            on_error=throttle_error_handler(self.regions),
            metrics=metrics,
            sleep=sleep,
            async_sleep=async_sleep,
        )

    @classmethod
    def from_config(
        cls,
        config: ResilienceConfig,
        metrics: MetricsSink | None = None,
        guard: ThresholdGuard | None = None,
    ) -> ResiliencePipeline:
        """Build a pipeline from the resilience section of volley.yaml."""
        return cls(
            transient_policy=config.transient,
            throttle_policy=config.throttle,
            regions=config.regions,
            transient_classifier=TransportFaultClassifier(config.retryable_messages),
            guard=guard,
            metrics=metrics,
        )

    def call(
        self,
        action: Callable[[RegionFailoverState], T],
        state: RegionFailoverState | None = None,
    ) -> T:
        """Run ``action`` with throttle failover and transient retries, blocking."""
        request_state = state if state is not None else RegionFailoverState()
        return self.throttle.execute(
            lambda s: self.transient.execute(action, s),
            request_state,
        )

    async def call_async(
        self,
        action: Callable[[RegionFailoverState], Awaitable[T]],
        cancel_event: asyncio.Event | None = None,
        state: RegionFailoverState | None = None,
    ) -> T:
        """Await ``action`` with throttle failover and transient retries."""
        request_state = state if state is not None else RegionFailoverState()
        return await self.throttle.execute_async(
            lambda s: self.transient.execute_async(action, cancel_event, s),
            cancel_event,
            request_state,
        )
