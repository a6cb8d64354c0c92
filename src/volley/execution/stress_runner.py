"""StressRunner: concurrent worker orchestration with status sampling.

Runs W workers against one shared target. Each worker performs up to N
iterations, pausing for a random think time between them, until the
run's duration cap is reached. Every call goes through the resilience
pipeline and is traced with OperationDiagnostics. A sampler task copies
the shared RunStatus counters at a fixed interval to build the status
timeline.
"""

from __future__ import annotations

import asyncio
import random
import statistics
import threading
import time
import uuid
from collections import Counter
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import structlog

from volley.execution.diagnostics import OperationDiagnostics, trace_request_async
from volley.models.config import ProjectConfig
from volley.models.run import (
    IterationResult,
    IterationStatus,
    RunStatus,
    RunStatusSnapshot,
    StressRunResult,
    Verdict,
)
from volley.resilience.errors import (
    OperationCancelledError,
    StorageError,
    ThresholdExceededError,
    classify_storage_error,
    wrap_storage_error,
)
from volley.resilience.failover import RegionFailoverState
from volley.resilience.metrics import CompositeMetricsSink, RunStatusSink, StructlogMetricsSink
from volley.resilience.pipeline import ResiliencePipeline
from volley.resilience.threshold import AllowAllGuard, StopOnExceedGuard
from volley.targets.base import BaseTarget

logger = structlog.get_logger(__name__)


class StressRunner:
    """Orchestrates a concurrent stress run against a target.

    Args:
        target: The service under test, shared by all workers.
        config: Project configuration (workers, iterations, duration,
            think time, sampling, resilience).
        pipeline: Resilience pipeline to route calls through. Built from
            ``config.resilience`` when omitted.
        status: Shared counters. A fresh RunStatus when omitted.
        seed: Seed for the think-time generator.
    """

    def __init__(
        self,
        target: BaseTarget,
        config: ProjectConfig,
        pipeline: ResiliencePipeline | None = None,
        status: RunStatus | None = None,
        seed: int | None = None,
    ) -> None:
        self._target = target
        self._config = config
        self._status = status or RunStatus()
        self._random = random.Random(seed)  # noqa: S311
        if pipeline is None:
            guard = StopOnExceedGuard() if config.resilience.stop_on_threshold else AllowAllGuard()
            metrics = CompositeMetricsSink(
                [RunStatusSink(self._status), StructlogMetricsSink(target.target_name())]
            )
            pipeline = ResiliencePipeline.from_config(config.resilience, metrics=metrics, guard=guard)
        self._pipeline = pipeline
        self._operations = list(config.operations) or ["read"]

    @property
    def status(self) -> RunStatus:
        return self._status

    async def run_all(
        self,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> StressRunResult:
        """Execute the run and return aggregate results.

        Args:
            progress_callback: Optional callback(completed, total) called
                after each iteration completes.

        Returns:
            StressRunResult with every iteration, the timeline and the verdict.
        """
        cfg = self._config
        total = cfg.workers * cfg.iterations
        results: list[IterationResult] = []
        timeline: list[RunStatusSnapshot] = []
        stop_event = asyncio.Event()
        started_at = datetime.now(timezone.utc).isoformat()
        start = time.perf_counter()

        log = logger.bind(target=self._target.target_name(), workers=cfg.workers)
        log.info("stress_run.started", iterations=cfg.iterations, duration_seconds=cfg.duration_seconds)

        async def run_worker(worker: int) -> None:
            for iteration in range(cfg.iterations):
                if stop_event.is_set():
                    return

                result = await self._execute_iteration(worker, iteration, stop_event)
                results.append(result)
                if progress_callback is not None:
                    progress_callback(len(results), total)

                if iteration < cfg.iterations - 1:
                    await self._think(stop_event)

        async with asyncio.TaskGroup() as tg:
            tg.create_task(self._sample(start, timeline, results, stop_event))
            workers = [tg.create_task(run_worker(w)) for w in range(cfg.workers)]

            _done, pending = await asyncio.wait(workers, timeout=cfg.duration_seconds)
            stopped_early = bool(pending)
            stop_event.set()

        timeline.append(self._snapshot(start, len(results)))
        elapsed = time.perf_counter() - start
        log.info("stress_run.finished", iterations=len(results), elapsed_seconds=round(elapsed, 3))

        return self._build_result(
            results,
            timeline,
            started_at=started_at,
            elapsed=elapsed,
            stopped_early=stopped_early,
        )

    async def _execute_iteration(
        self,
        worker: int,
        iteration: int,
        stop_event: asyncio.Event,
    ) -> IterationResult:
        """Make one call through the pipeline and record its outcome."""
        operation = self._operations[(worker + iteration) % len(self._operations)]
        state = RegionFailoverState()

        async def call(diagnostics: OperationDiagnostics):
            diagnostics.client_data.update(worker=worker, iteration=iteration)
            return await self._pipeline.call_async(
                lambda s: self._call_target(
                    operation, None if s.is_primary_region else s.current_region
                ),
                cancel_event=stop_event,
                state=state,
            )

        self._status.record_started()
        diagnostics = await trace_request_async(call, operation)

        if diagnostics.succeeded:
            self._status.record_completed()
            status = IterationStatus.succeeded
        else:
            self._record_failure(diagnostics.error)
            status = IterationStatus.failed

        error = diagnostics.error
        return IterationResult(
            worker=worker,
            iteration=iteration,
            operation=operation,
            status=status,
            duration_ms=diagnostics.elapsed_ms,
            attempts=state.attempt,
            region=None if state.is_primary_region else _region_or_none(state),
            error_type=type(error).__name__ if error is not None else None,
            error_kind=classify_storage_error(error) if error is not None else None,
            error_message=str(error) if error is not None else None,
        )

    async def _call_target(self, operation: str, region: str | None) -> Any:
        """Call the target, normalizing its failures to StorageError."""
        try:
            return await self._target.execute(operation, region)
        except Exception as exc:
            raise wrap_storage_error(exc)

    def _record_failure(self, error: Exception | None) -> None:
        if isinstance(error, ThresholdExceededError) or (
            isinstance(error, StorageError) and isinstance(error.__cause__, TimeoutError)
        ):
            self._status.record_timeout()
        elif isinstance(error, OperationCancelledError):
            self._status.record_cancelled()
        self._status.record_failure()

    async def _think(self, stop_event: asyncio.Event) -> None:
        """Pause for a random think time, waking early if the run stops."""
        think = self._config.think_time
        seconds = self._random.randint(think.min_ms, think.max_ms) / 1000
        if seconds <= 0:
            return
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=seconds)
        except TimeoutError:
            pass

    async def _sample(
        self,
        start: float,
        timeline: list[RunStatusSnapshot],
        results: list[IterationResult],
        stop_event: asyncio.Event,
    ) -> None:
        """Append a status snapshot every sample interval until the run stops."""
        interval = self._config.sample_interval_ms / 1000
        while not stop_event.is_set():
            timeline.append(self._snapshot(start, len(results)))
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except TimeoutError:
                pass

    def _snapshot(self, start: float, completed: int) -> RunStatusSnapshot:
        return self._status.snapshot(
            timestamp_ms=int((time.perf_counter() - start) * 1000),
            thread_count=threading.active_count(),
            pending_tasks=len(asyncio.all_tasks()),
            completed_tasks=completed,
        )

    def _build_result(
        self,
        results: list[IterationResult],
        timeline: list[RunStatusSnapshot],
        *,
        started_at: str,
        elapsed: float,
        stopped_early: bool,
    ) -> StressRunResult:
        """Build the final StressRunResult from individual iteration results."""
        cfg = self._config
        n_total = len(results)
        n_succeeded = sum(1 for r in results if r.status == IterationStatus.succeeded)
        n_failed = n_total - n_succeeded
        failure_rate = n_failed / n_total if n_total else 0.0

        failure_types = Counter(r.failure_label for r in results if r.failure_label is not None)

        latencies = [r.duration_ms for r in results]
        latency_p50: float | None = None
        latency_p95: float | None = None
        if len(latencies) == 1:
            # statistics.quantiles requires >= 2 data points
            latency_p50 = latency_p95 = float(latencies[0])
        elif latencies:
            # quantiles(n=100) gives 99 cut points -> index 49 is p50, 94 is p95
            quantiles = statistics.quantiles(latencies, n=100)
            latency_p50 = quantiles[49]
            latency_p95 = quantiles[94]

        if n_total == 0 or failure_rate > cfg.max_failure_rate:
            verdict = Verdict.FAIL
        else:
            verdict = Verdict.PASS

        return StressRunResult(
            run_id=str(uuid.uuid4()),
            target=self._target.target_name(),
            started_at=started_at,
            duration_seconds=elapsed,
            workers=cfg.workers,
            iterations_requested=cfg.workers * cfg.iterations,
            iterations=results,
            iterations_total=n_total,
            iterations_succeeded=n_succeeded,
            iterations_failed=n_failed,
            failure_rate=failure_rate,
            max_failure_rate=cfg.max_failure_rate,
            failure_types=dict(failure_types),
            latency_p50_ms=latency_p50,
            latency_p95_ms=latency_p95,
            latency_max_ms=max(latencies) if latencies else None,
            total_retries=self._status.retries,
            failovers=sum(1 for r in results if r.region is not None),
            stopped_early=stopped_early,
            verdict=verdict,
            timeline=timeline,
        )


def _region_or_none(state: RegionFailoverState) -> str | None:
    """Current failover region, or None once every region was exhausted."""
    if 0 <= state.current_region_index < len(state.regions):
        return state.regions[state.current_region_index]
    return None
