"""Run data models: live counters, sampled snapshots and the final result.

RunStatus is a plain lock-guarded class because every worker touches it
on every call. The snapshot and result models are pydantic so they
serialize straight to JSON.
"""

from __future__ import annotations

import threading
from enum import Enum

from pydantic import BaseModel, Field

from volley.resilience.errors import StorageErrorKind

# Column order of the status timeline CSV
TIMELINE_COLUMNS: tuple[str, ...] = (
    "Timestamp",
    "ThreadCount",
    "PendingWorkItemCount",
    "CompletedWorkItemCount",
    "StartedCalls",
    "CompletedCalls",
    "CancelledCalls",
    "TimedoutCalls",
    "NumberOfRetries",
    "NumberOfFailures",
)


class RunStatusSnapshot(BaseModel):
    """Point-in-time copy of the run counters."""

    model_config = {"extra": "forbid"}

    timestamp_ms: int = 0
    thread_count: int = 0
    pending_tasks: int = 0
    completed_tasks: int = 0
    started_calls: int = 0
    completed_calls: int = 0
    cancelled_calls: int = 0
    timed_out_calls: int = 0
    retries: int = 0
    failures: int = 0

    def as_row(self) -> list[int]:
        """Values in TIMELINE_COLUMNS order."""
        return [
            self.timestamp_ms,
            self.thread_count,
            self.pending_tasks,
            self.completed_tasks,
            self.started_calls,
            self.completed_calls,
            self.cancelled_calls,
            self.timed_out_calls,
            self.retries,
            self.failures,
        ]


class RunStatus:
    """Thread-safe call counters shared by every worker of a run."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.started_calls = 0
        self.completed_calls = 0
        self.cancelled_calls = 0
        self.timed_out_calls = 0
        self.retries = 0
        self.failures = 0

    def record_started(self) -> None:
        with self._lock:
            self.started_calls += 1

    def record_completed(self) -> None:
        with self._lock:
            self.completed_calls += 1

    def record_cancelled(self) -> None:
        with self._lock:
            self.cancelled_calls += 1

    def record_timeout(self) -> None:
        with self._lock:
            self.timed_out_calls += 1

    def record_retry(self) -> None:
        with self._lock:
            self.retries += 1

    def record_failure(self) -> None:
        with self._lock:
            self.failures += 1

    def snapshot(
        self,
        timestamp_ms: int = 0,
        thread_count: int = 0,
        pending_tasks: int = 0,
        completed_tasks: int = 0,
    ) -> RunStatusSnapshot:
        """Copy the counters, adding the scheduler figures supplied by the caller."""
        with self._lock:
            return RunStatusSnapshot(
                timestamp_ms=timestamp_ms,
                thread_count=thread_count,
                pending_tasks=pending_tasks,
                completed_tasks=completed_tasks,
                started_calls=self.started_calls,
                completed_calls=self.completed_calls,
                cancelled_calls=self.cancelled_calls,
                timed_out_calls=self.timed_out_calls,
                retries=self.retries,
                failures=self.failures,
            )


class IterationStatus(str, Enum):
    """Outcome of one worker iteration."""

    succeeded = "succeeded"
    failed = "failed"


class IterationResult(BaseModel):
    """Result of a single call made by a worker."""

    model_config = {"extra": "forbid"}

    worker: int
    iteration: int
    operation: str
    status: IterationStatus
    duration_ms: int
    attempts: int = 0
    region: str | None = None
    error_type: str | None = None
    error_kind: StorageErrorKind | None = None
    error_message: str | None = None

    @property
    def failure_label(self) -> str | None:
        """Storage error kind when the failure has one, else the error type."""
        if self.error_kind is not None and self.error_kind != StorageErrorKind.none:
            return self.error_kind.value
        return self.error_type


class Verdict(str, Enum):
    """Overall verdict for a stress run."""

    PASS = "PASS"
    FAIL = "FAIL"


class StressRunResult(BaseModel):
    """Aggregate result of a stress run.

    Contains every iteration result, the sampled status timeline and the
    computed counts, latency percentiles and verdict.
    """

    model_config = {"extra": "forbid"}

    run_id: str
    target: str
    started_at: str
    duration_seconds: float
    workers: int
    iterations_requested: int

    iterations: list[IterationResult] = Field(default_factory=list)
    iterations_total: int = 0
    iterations_succeeded: int = 0
    iterations_failed: int = 0
    failure_rate: float = 0.0
    max_failure_rate: float = 0.0
    # failure label -> count; see IterationResult.failure_label
    failure_types: dict[str, int] = Field(default_factory=dict)

    latency_p50_ms: float | None = None
    latency_p95_ms: float | None = None
    latency_max_ms: int | None = None

    total_retries: int = 0
    failovers: int = 0
    stopped_early: bool = False

    verdict: Verdict = Verdict.PASS
    timeline: list[RunStatusSnapshot] = Field(default_factory=list)
