"""Tests for volley.models.run - RunStatus counters and result models."""

from __future__ import annotations

import threading

import pytest
from pydantic import ValidationError

from volley.models.run import (
    TIMELINE_COLUMNS,
    IterationResult,
    IterationStatus,
    RunStatus,
    RunStatusSnapshot,
    StressRunResult,
    Verdict,
)
from volley.resilience.errors import StorageErrorKind


class TestRunStatus:
    def test_counters_start_at_zero(self):
        snapshot = RunStatus().snapshot()
        assert snapshot.as_row() == [0] * len(TIMELINE_COLUMNS)

    def test_record_methods(self):
        status = RunStatus()
        status.record_started()
        status.record_started()
        status.record_completed()
        status.record_cancelled()
        status.record_timeout()
        status.record_retry()
        status.record_failure()
        snapshot = status.snapshot(timestamp_ms=120, thread_count=3, pending_tasks=4, completed_tasks=1)
        assert snapshot.as_row() == [120, 3, 4, 1, 2, 1, 1, 1, 1, 1]

    def test_thread_safe_increments(self):
        status = RunStatus()

        def hammer():
            for _ in range(1000):
                status.record_retry()

        threads = [threading.Thread(target=hammer) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert status.retries == 8000


class TestRunStatusSnapshot:
    def test_row_matches_columns(self):
        snapshot = RunStatusSnapshot(timestamp_ms=1, failures=9)
        row = snapshot.as_row()
        assert len(row) == len(TIMELINE_COLUMNS)
        assert row[0] == 1
        assert row[TIMELINE_COLUMNS.index("NumberOfFailures")] == 9


class TestStressRunResult:
    def test_json_round_trip_keeps_nested_models(self):
        result = StressRunResult(
            run_id="r1",
            target="simulated",
            started_at="2026-01-01T00:00:00+00:00",
            duration_seconds=1.5,
            workers=1,
            iterations_requested=1,
            iterations=[
                IterationResult(
                    worker=0,
                    iteration=0,
                    operation="read",
                    status=IterationStatus.succeeded,
                    duration_ms=12,
                )
            ],
            timeline=[RunStatusSnapshot(timestamp_ms=50, started_calls=1)],
            verdict=Verdict.FAIL,
        )
        loaded = StressRunResult.model_validate_json(result.model_dump_json())
        assert loaded == result
        assert loaded.verdict is Verdict.FAIL

    def test_rejects_unknown_keys(self):
        with pytest.raises(ValidationError):
            IterationResult(
                worker=0,
                iteration=0,
                operation="read",
                status="succeeded",
                duration_ms=1,
                retries=2,  # type: ignore[call-arg]
            )


class TestIterationResult:
    def _failed(self, **fields) -> IterationResult:
        return IterationResult(
            worker=0,
            iteration=0,
            operation="write",
            status=IterationStatus.failed,
            duration_ms=3,
            **fields,
        )

    def test_failure_label_prefers_storage_kind(self):
        result = self._failed(error_type="StorageError", error_kind=StorageErrorKind.not_found)
        assert result.failure_label == "not_found"

    def test_failure_label_falls_back_to_type(self):
        result = self._failed(error_type="RegionsExhaustedError", error_kind=StorageErrorKind.none)
        assert result.failure_label == "RegionsExhaustedError"

    def test_no_label_on_success(self):
        result = IterationResult(
            worker=0, iteration=0, operation="read", status=IterationStatus.succeeded, duration_ms=1
        )
        assert result.failure_label is None

    def test_kind_serialized_as_value(self):
        result = self._failed(error_type="StorageError", error_kind=StorageErrorKind.etag_mismatch)
        assert result.model_dump(mode="json")["error_kind"] == "etag_mismatch"
