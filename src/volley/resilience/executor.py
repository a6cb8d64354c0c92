"""RetryExecutor: runs an action until it succeeds or the policy gives up.

One executor combines a RetryPolicyConfig (backoff variant, retry
budget, time threshold) with a transient fault classifier and a
threshold guard. It holds no mutable state of its own, so a single
instance is safely shared by every thread and task of a call site.

Per attempt:
    1. Abort with ThresholdExceededError if the guard reports the
       elapsed-time budget spent (checked before the first attempt too).
    2. Run the action, then the optional result hook. Either may raise.
    3. On failure run the optional error hook, then ask the classifier
       and the backoff strategy whether to go again.
    4. No retry: re-raise the original error unchanged.
    5. Past the incident count: raise IncidentThresholdExceededError
       from the original error.
    6. Otherwise wait (skipped before the first retry when fast first
       retry is on) and loop.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

from volley.resilience.backoff import BackoffStrategy, clamp_delay
from volley.resilience.classifiers import CatchAllClassifier, TransientFaultClassifier
from volley.resilience.errors import (
    AttemptOutcome,
    IncidentThresholdExceededError,
    OperationCancelledError,
    ThresholdExceededError,
)
from volley.resilience.metrics import MetricsSink, NullMetricsSink
from volley.resilience.policy import RetryPolicyConfig
from volley.resilience.threshold import AllowAllGuard, ThresholdGuard

T = TypeVar("T")
S = TypeVar("S")

ErrorHook = Callable[[Exception, S], None]
ResultHook = Callable[[Any, S], None]


class _NoState:
    """Marker for calls made without a state object."""

    def __repr__(self) -> str:
        return "<no state>"


NO_STATE: Any = _NoState()


class RetryExecutor(Generic[S]):
    """Executes actions under one retry policy.

    Args:
        config: Immutable retry policy.
        classifier: Decides which errors are transient. Defaults to
            CatchAllClassifier.
        guard: Elapsed-time threshold guard. Defaults to AllowAllGuard.
        on_error: Hook called with (error, state) after every failed
            attempt, before the retry decision. Exceptions it raises
            replace the original error.
        on_result: Hook called with (result, state) after every
            successful attempt. Raising turns the success into a failure.
        metrics: Sink for attempt events. Defaults to NullMetricsSink.
        sleep: Blocking sleep used between attempts.
        async_sleep: Awaitable sleep used between async attempts.
        clock: Monotonic clock in seconds.
    """

    def __init__(
        self,
        config: RetryPolicyConfig,
        classifier: TransientFaultClassifier | None = None,
        guard: ThresholdGuard | None = None,
        *,
        on_error: ErrorHook[S] | None = None,
        on_result: ResultHook[S] | None = None,
        metrics: MetricsSink | None = None,
        sleep: Callable[[float], None] = time.sleep,
        async_sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._config = config
        self._backoff: BackoffStrategy = config.build_backoff()
        self._classifier = classifier or CatchAllClassifier()
        self._guard = guard or AllowAllGuard()
        self._on_error = on_error
        self._on_result = on_result
        self._metrics = metrics or NullMetricsSink()
        self._sleep = sleep
        self._async_sleep = async_sleep
        self._clock = clock

    @property
    def config(self) -> RetryPolicyConfig:
        return self._config

    @property
    def classifier(self) -> TransientFaultClassifier:
        return self._classifier

    def execute(self, action: Callable[..., T], state: S = NO_STATE) -> T:
        """Run ``action`` until it succeeds or the policy stops retrying.

        ``action`` is called with ``state`` when one is given and with no
        arguments otherwise. The calling thread sleeps between attempts.

        Raises:
            ThresholdExceededError: The time threshold was spent before an attempt.
            IncidentThresholdExceededError: Retries passed the incident count.
            Exception: The original error, when it is not retried.
        """
        hook_state = self._hook_state(state)
        attempt = 0
        started = self._clock()

        while True:
            self._check_threshold(started, attempt, hook_state)

            attempt_started = self._clock()
            try:
                result = action() if state is NO_STATE else action(state)
                if self._on_result is not None:
                    self._on_result(result, hook_state)
            except Exception as exc:
                delay = self._handle_failure(exc, attempt, hook_state)
                attempt += 1
            else:
                self._metrics.on_success(self._clock() - attempt_started, hook_state)
                return result

            if attempt > 1 or not self._config.effective_fast_first_retry:
                self._sleep(delay)

    async def execute_async(
        self,
        action: Callable[..., Awaitable[T]],
        cancel_event: asyncio.Event | None = None,
        state: S = NO_STATE,
    ) -> T:
        """Await ``action`` until it succeeds or the policy stops retrying.

        Same state machine as ``execute``, but the task (not the thread)
        is suspended between attempts. ``cancel_event`` is checked once
        per loop iteration; an attempt or delay already in flight is not
        interrupted.

        Raises:
            OperationCancelledError: ``cancel_event`` was set.
            ThresholdExceededError: The time threshold was spent before an attempt.
            IncidentThresholdExceededError: Retries passed the incident count.
            Exception: The original error, when it is not retried.
        """
        hook_state = self._hook_state(state)
        attempt = 0
        started = self._clock()

        while cancel_event is None or not cancel_event.is_set():
            self._check_threshold(started, attempt, hook_state)

            attempt_started = self._clock()
            try:
                result = await (action() if state is NO_STATE else action(state))
                if self._on_result is not None:
                    self._on_result(result, hook_state)
            except Exception as exc:
                delay = self._handle_failure(exc, attempt, hook_state)
                attempt += 1
            else:
                self._metrics.on_success(self._clock() - attempt_started, hook_state)
                return result

            if attempt > 1 or not self._config.effective_fast_first_retry:
                await self._async_sleep(delay)

        error = OperationCancelledError()
        self._metrics.on_failure(error, AttemptOutcome.fatal, hook_state)
        raise error

    def next_delay(self, attempt: int, exc: BaseException) -> float | None:
        """Return the clamped delay before retry ``attempt``, or None to stop."""
        decision = self._backoff.next_delay(attempt)
        if not decision.should_retry or not self._classifier.is_transient(exc):
            return None
        return clamp_delay(decision.delay)

    def _check_threshold(self, started: float, attempt: int, state: Any) -> None:
        elapsed = self._clock() - started
        threshold = self._config.threshold_interval
        if self._guard.is_exceeded(threshold, elapsed):
            error = ThresholdExceededError(elapsed=elapsed, threshold=threshold, attempts=attempt)
            self._metrics.on_failure(error, AttemptOutcome.fatal, state)
            raise error

    def _handle_failure(self, exc: Exception, attempt: int, state: Any) -> float:
        """Run the failure half of the state machine; return the delay or raise."""
        if self._on_error is not None:
            self._on_error(exc, state)

        delay = self.next_delay(attempt, exc)
        if delay is None:
            self._metrics.on_failure(exc, AttemptOutcome.fatal, state)
            raise exc

        incident_threshold = self._config.retry_count_after_which_incident_is_logged
        if incident_threshold is not None and attempt > incident_threshold:
            self._metrics.on_failure(exc, AttemptOutcome.retryable, state)
            raise IncidentThresholdExceededError(incident_threshold, attempt) from exc

        self._metrics.on_retry(exc, attempt + 1, delay, state)
        return delay

    @staticmethod
    def _hook_state(state: Any) -> Any:
        return None if state is NO_STATE else state
