"""Tests for the JSON storage layer (RunStore) and the timeline CSV."""

from __future__ import annotations

import csv
import io
import json
import os
import uuid
from pathlib import Path

import pytest

from volley.models.run import TIMELINE_COLUMNS, RunStatusSnapshot, StressRunResult, Verdict
from volley.storage.json_store import RunStore, render_timeline_csv


def _make_run_result(
    run_id: str | None = None,
    timeline: list[RunStatusSnapshot] | None = None,
) -> StressRunResult:
    """Build a valid StressRunResult with realistic field values."""
    return StressRunResult(
        run_id=run_id or str(uuid.uuid4()),
        target="simulated",
        started_at="2026-03-01T12:00:00+00:00",
        duration_seconds=4.2,
        workers=2,
        iterations_requested=10,
        iterations_total=10,
        iterations_succeeded=9,
        iterations_failed=1,
        failure_rate=0.1,
        max_failure_rate=0.05,
        failure_types={"storage": 1},
        total_retries=3,
        verdict=Verdict.FAIL,
        timeline=timeline or [],
    )


@pytest.fixture
def store(tmp_path: Path) -> RunStore:
    return RunStore(tmp_path)


class TestRunStore:
    """Test saving, loading and the latest pointer."""

    def test_save_creates_json(self, store: RunStore):
        result = _make_run_result()
        path = store.save_run(result)
        assert path == store.runs_dir / f"{result.run_id}.json"
        data = json.loads(path.read_text())
        assert data["run_id"] == result.run_id
        assert data["verdict"] == "FAIL"

    def test_no_tmp_file_left_behind(self, store: RunStore):
        store.save_run(_make_run_result())
        assert list(store.runs_dir.glob("*.tmp")) == []

    def test_round_trip(self, store: RunStore):
        result = _make_run_result()
        store.save_run(result)
        assert store.load_run(result.run_id) == result

    def test_load_missing_raises(self, store: RunStore):
        with pytest.raises(FileNotFoundError, match="Run not found"):
            store.load_run("nope")

    def test_custom_storage_dir(self, tmp_path: Path):
        store = RunStore(tmp_path, storage_dir="data")
        assert store.runs_dir == tmp_path / "data" / "runs"

    def test_list_runs(self, store: RunStore):
        assert store.list_runs() == []
        first = _make_run_result(run_id="first")
        second = _make_run_result(run_id="second")
        store.save_run(first)
        store.save_run(second)
        os.utime(store.runs_dir / "first.json", (1_000, 1_000))
        assert store.list_runs() == ["first", "second"]

    def test_latest_symlink(self, store: RunStore):
        older = _make_run_result(run_id="older")
        newer = _make_run_result(run_id="newer")
        store.save_run(older)
        store.save_run(newer)
        store.update_latest_symlink("older")
        store.update_latest_symlink("newer")
        latest = store.load_latest_run()
        assert latest is not None
        assert latest.run_id == "newer"

    def test_latest_fallback_file(self, store: RunStore, monkeypatch):
        result = _make_run_result(run_id="fallback")
        store.save_run(result)

        def no_symlinks(*args, **kwargs):
            raise OSError("symlinks not supported")

        monkeypatch.setattr(os, "symlink", no_symlinks)
        store.update_latest_symlink("fallback")
        assert (store.runs_dir / ".latest").read_text() == "fallback"
        latest = store.load_latest_run()
        assert latest is not None
        assert latest.run_id == "fallback"

    def test_latest_none_when_empty(self, store: RunStore):
        assert store.load_latest_run() is None

    def test_save_timeline_csv(self, store: RunStore):
        result = _make_run_result(
            timeline=[
                RunStatusSnapshot(timestamp_ms=0),
                RunStatusSnapshot(timestamp_ms=50, started_calls=2, retries=1),
            ]
        )
        path = store.save_timeline_csv(result)
        assert path.suffix == ".csv"
        rows = list(csv.reader(path.read_text().splitlines()))
        assert rows[0] == list(TIMELINE_COLUMNS)
        assert len(rows) == 2


class TestRenderTimelineCsv:
    def _rows(self, timeline: list[RunStatusSnapshot]) -> list[list[str]]:
        return list(csv.reader(io.StringIO(render_timeline_csv(timeline))))

    def test_header_only_for_empty_timeline(self):
        assert self._rows([]) == [list(TIMELINE_COLUMNS)]

    def test_header_names(self):
        header = render_timeline_csv([]).splitlines()[0]
        assert header == (
            "Timestamp,ThreadCount,PendingWorkItemCount,CompletedWorkItemCount,"
            "StartedCalls,CompletedCalls,CancelledCalls,TimedoutCalls,"
            "NumberOfRetries,NumberOfFailures"
        )

    def test_idle_prefix_skipped_and_rebased(self):
        rows = self._rows(
            [
                RunStatusSnapshot(timestamp_ms=0),
                RunStatusSnapshot(timestamp_ms=50),
                RunStatusSnapshot(timestamp_ms=100, started_calls=1),
                RunStatusSnapshot(timestamp_ms=150, started_calls=3, completed_calls=1),
            ]
        )
        assert len(rows) == 3
        assert rows[1][0] == "50"
        assert rows[2][0] == "100"
        assert rows[2][TIMELINE_COLUMNS.index("CompletedCalls")] == "1"

    def test_no_idle_prefix_keeps_timestamps(self):
        rows = self._rows([RunStatusSnapshot(timestamp_ms=30, started_calls=1)])
        assert rows[1][0] == "30"
