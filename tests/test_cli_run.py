"""Tests for the volley run, report, queue and top-level CLI commands.

Runs go against the simulated target with zero latency and zero think
time so a full stress run finishes in well under a second.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
import yaml
from typer.testing import CliRunner

from volley import __version__
from volley.cli.main import app

runner = CliRunner()


def _write_config(directory: Path, **overrides: Any) -> Path:
    simulated = {
        "min_latency_ms": 0,
        "max_latency_ms": 0,
        "throttle_rate": 0.0,
        "unavailable_rate": 0.0,
        "timeout_rate": 0.0,
        "not_found_rate": 0.0,
    }
    simulated.update(overrides.pop("simulated", {}))
    data: dict[str, Any] = {
        "workers": 2,
        "iterations": 3,
        "duration_seconds": 30,
        "sample_interval_ms": 5,
        "think_time": {"min_ms": 0, "max_ms": 0},
        "simulated": simulated,
    }
    data.update(overrides)
    path = directory / "volley.yaml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


class TestRunCommand:
    """Test volley run end to end."""

    def test_pass_exits_zero(self, tmp_path: Path):
        config = _write_config(tmp_path)
        result = runner.invoke(app, ["run", "--config", str(config)])
        assert result.exit_code == 0, result.output
        assert "PASS" in result.output

    def test_json_output(self, tmp_path: Path):
        config = _write_config(tmp_path)
        result = runner.invoke(app, ["run", "--config", str(config), "--json", "--no-save"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["verdict"] == "PASS"
        assert data["iterations_total"] == 6
        assert data["workers"] == 2

    def test_cli_overrides(self, tmp_path: Path):
        config = _write_config(tmp_path)
        result = runner.invoke(
            app,
            ["run", "--config", str(config), "-w", "1", "-n", "2", "--json", "--no-save"],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["iterations_total"] == 2
        assert data["workers"] == 1

    def test_saves_run_and_timeline(self, tmp_path: Path):
        config = _write_config(tmp_path)
        result = runner.invoke(app, ["run", "--config", str(config)])
        assert result.exit_code == 0, result.output

        runs_dir = tmp_path / ".volley" / "runs"
        json_files = [p for p in runs_dir.glob("*.json")]
        assert len(json_files) == 1
        run_id = json_files[0].stem
        assert (runs_dir / f"{run_id}.csv").exists()
        assert f"Run saved: {run_id}" in result.output

    def test_no_save_writes_nothing(self, tmp_path: Path):
        config = _write_config(tmp_path)
        result = runner.invoke(app, ["run", "--config", str(config), "--no-save"])
        assert result.exit_code == 0
        assert not (tmp_path / ".volley").exists()

    def test_failures_exit_one(self, tmp_path: Path):
        config = _write_config(tmp_path, simulated={"not_found_rate": 1.0})
        result = runner.invoke(app, ["run", "--config", str(config), "--no-save"])
        assert result.exit_code == 1
        assert "FAIL" in result.output

    def test_missing_config_exits_two(self, tmp_path: Path):
        result = runner.invoke(app, ["run", "--config", str(tmp_path / "absent.yaml")])
        assert result.exit_code == 2

    def test_invalid_config_exits_two(self, tmp_path: Path):
        config = tmp_path / "volley.yaml"
        config.write_text("workers: 0\n", encoding="utf-8")
        result = runner.invoke(app, ["run", "--config", str(config)])
        assert result.exit_code == 2

    def test_malformed_yaml_exits_two(self, tmp_path: Path):
        config = tmp_path / "volley.yaml"
        config.write_text("workers: [1, 2\n", encoding="utf-8")
        result = runner.invoke(app, ["run", "--config", str(config)])
        assert result.exit_code == 2

    def test_unknown_target_exits_two(self, tmp_path: Path):
        config = _write_config(tmp_path, target="cassandra")
        result = runner.invoke(app, ["run", "--config", str(config)])
        assert result.exit_code == 2


class TestReportCommand:
    """Test volley report against runs saved by volley run."""

    def _saved_run_ids(self, directory: Path) -> list[str]:
        return [p.stem for p in (directory / ".volley" / "runs").glob("*.json")]

    def test_latest_run(self, tmp_path: Path):
        config = _write_config(tmp_path)
        runner.invoke(app, ["run", "--config", str(config)])
        [run_id] = self._saved_run_ids(tmp_path)

        result = runner.invoke(app, ["report", "--config", str(config)])
        assert result.exit_code == 0, result.output
        assert f"Run: {run_id}" in result.output
        assert "PASS" in result.output

    def test_run_by_id(self, tmp_path: Path):
        config = _write_config(tmp_path, simulated={"not_found_rate": 1.0})
        runner.invoke(app, ["run", "--config", str(config)])
        [run_id] = self._saved_run_ids(tmp_path)

        result = runner.invoke(app, ["report", run_id, "--config", str(config)])
        assert result.exit_code == 0, result.output
        assert "FAIL" in result.output
        assert "not_found: 6" in result.output

    def test_unknown_run_exits_one(self, tmp_path: Path):
        config = _write_config(tmp_path)
        runner.invoke(app, ["run", "--config", str(config)])
        result = runner.invoke(app, ["report", "missing", "--config", str(config)])
        assert result.exit_code == 1
        assert "Run 'missing' not found." in result.output
        assert "Available runs:" in result.output

    def test_history(self, tmp_path: Path):
        config = _write_config(tmp_path)
        runner.invoke(app, ["run", "--config", str(config)])
        runner.invoke(app, ["run", "--config", str(config)])

        result = runner.invoke(app, ["report", "--history", "--config", str(config)])
        assert result.exit_code == 0, result.output
        assert "Run History" in result.output
        assert "2 runs shown." in result.output

    def test_history_failures_only(self, tmp_path: Path):
        config = _write_config(tmp_path)
        runner.invoke(app, ["run", "--config", str(config)])
        result = runner.invoke(
            app, ["report", "--history", "--failures", "--config", str(config)]
        )
        assert result.exit_code == 0
        assert "No matching runs found." in result.output

    def test_no_runs(self, tmp_path: Path):
        config = _write_config(tmp_path)
        result = runner.invoke(app, ["report", "--config", str(config)])
        assert result.exit_code == 0
        assert "No stored runs found." in result.output


class TestQueueCommand:
    def test_soak_drains(self):
        result = runner.invoke(
            app,
            [
                "queue",
                "--count",
                "20",
                "--min-delay",
                "0.01",
                "--max-delay",
                "0.05",
                "--report-interval",
                "0.02",
                "--seed",
                "3",
            ],
        )
        assert result.exit_code == 0, result.output
        assert "20/20 waits fired" in result.output
        assert "pending=" in result.output

    def test_rejects_inverted_range(self):
        result = runner.invoke(app, ["queue", "--min-delay", "5", "--max-delay", "1"])
        assert result.exit_code == 2


class TestMainApp:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"volley {__version__}" in result.output

    @pytest.mark.parametrize("log_format", ["console", "json"])
    def test_log_formats_accepted(self, tmp_path: Path, log_format: str):
        config = _write_config(tmp_path)
        result = runner.invoke(
            app, ["--log-format", log_format, "run", "--config", str(config), "--no-save"]
        )
        assert result.exit_code == 0, result.output

    def test_invalid_log_format(self, tmp_path: Path):
        config = _write_config(tmp_path)
        result = runner.invoke(app, ["--log-format", "xml", "run", "--config", str(config)])
        assert result.exit_code == 2

    def test_invalid_log_level(self, tmp_path: Path):
        config = _write_config(tmp_path)
        result = runner.invoke(app, ["--log-level", "loud", "run", "--config", str(config)])
        assert result.exit_code == 2
