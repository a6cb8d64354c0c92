"""Metrics sinks: where the retry executor reports attempt events.

The executor owns no counters of its own. Each executor is handed a sink
at construction and calls it synchronously from inside the retry loop,
so a sink must be cheap and must not raise.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from volley.resilience.errors import AttemptOutcome

if TYPE_CHECKING:
    from volley.models.run import RunStatus


class MetricsSink:
    """Base sink. Every hook is a no-op; subclasses override what they need."""

    def on_success(self, elapsed: float, state: Any) -> None:
        """An attempt succeeded after ``elapsed`` seconds."""

    def on_retry(self, error: BaseException, attempt: int, delay: float, state: Any) -> None:
        """Retry number ``attempt`` will start after ``delay`` seconds."""

    def on_failure(self, error: BaseException, outcome: AttemptOutcome, state: Any) -> None:
        """The call ended with ``error``."""


class NullMetricsSink(MetricsSink):
    """Discards every event."""


class RunStatusSink(MetricsSink):
    """Counts retries on a shared RunStatus.

    Call outcomes are recorded once per logical call by the runner, not
    here, because nested executors would report the same failure twice.
    """

    def __init__(self, status: RunStatus) -> None:
        self._status = status

    def on_retry(self, error: BaseException, attempt: int, delay: float, state: Any) -> None:
        self._status.record_retry()


class RetryOnlyMetricsSink(MetricsSink):
    """Forwards only retry events to another sink.

    Used for the inner executor of a nested pair: its success and
    give-up events are intermediate, and the outer executor reports the
    outcome of the logical call.
    """

    def __init__(self, sink: MetricsSink) -> None:
        self._sink = sink

    def on_retry(self, error: BaseException, attempt: int, delay: float, state: Any) -> None:
        self._sink.on_retry(error, attempt, delay, state)


class StructlogMetricsSink(MetricsSink):
    """Logs retry and failure events through structlog."""

    def __init__(self, name: str = "retry") -> None:
        self._name = name
        self._log = structlog.get_logger(__name__)

    def on_success(self, elapsed: float, state: Any) -> None:
        self._log.debug("retry.attempt_succeeded", policy=self._name, elapsed_ms=int(elapsed * 1000))

    def on_retry(self, error: BaseException, attempt: int, delay: float, state: Any) -> None:
        self._log.info(
            "retry.scheduled",
            policy=self._name,
            attempt=attempt,
            delay_ms=int(delay * 1000),
            error_type=type(error).__name__,
            error=str(error),
        )

    def on_failure(self, error: BaseException, outcome: AttemptOutcome, state: Any) -> None:
        self._log.warning(
            "retry.gave_up",
            policy=self._name,
            outcome=outcome.value,
            error_type=type(error).__name__,
            error=str(error),
        )


class CompositeMetricsSink(MetricsSink):
    """Fans every event out to a list of sinks, in order."""

    def __init__(self, sinks: list[MetricsSink]) -> None:
        self._sinks = sinks

    def on_success(self, elapsed: float, state: Any) -> None:
        for sink in self._sinks:
            sink.on_success(elapsed, state)

    def on_retry(self, error: BaseException, attempt: int, delay: float, state: Any) -> None:
        for sink in self._sinks:
            sink.on_retry(error, attempt, delay, state)

    def on_failure(self, error: BaseException, outcome: AttemptOutcome, state: Any) -> None:
        for sink in self._sinks:
            sink.on_failure(error, outcome, state)
