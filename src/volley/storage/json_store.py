"""JSON file storage layer for Volley run persistence.

Stores StressRunResult objects as JSON files under .volley/runs/ with a
'latest' symlink, and writes each run's status timeline as CSV next to
it. Uses atomic writes to prevent corruption.
"""

from __future__ import annotations

import csv
import io
import os
from pathlib import Path

from volley.models.run import TIMELINE_COLUMNS, RunStatusSnapshot, StressRunResult


class RunStore:
    """Persist and query StressRunResult objects as files in .volley/.

    File layout:
        .volley/
            runs/
                {run-id}.json    # Full run result
                {run-id}.csv     # Status timeline
                latest           # Symlink to the newest {run-id}.json

    Writes are atomic (write to .tmp, then rename) to prevent partial files.
    """

    def __init__(self, project_root: Path, storage_dir: str | None = None) -> None:
        effective_dir = storage_dir or ".volley"
        self.volley_dir = project_root / effective_dir
        self.runs_dir = self.volley_dir / "runs"

    def ensure_dirs(self) -> None:
        """Create the .volley/runs/ directory."""
        self.runs_dir.mkdir(parents=True, exist_ok=True)

    def save_run(self, result: StressRunResult) -> Path:
        """Save a StressRunResult as .volley/runs/{run_id}.json.

        Args:
            result: The run result to persist.

        Returns:
            Path to the written JSON file.
        """
        self.ensure_dirs()
        run_file = self.runs_dir / f"{result.run_id}.json"
        self._atomic_write(run_file, result.model_dump_json(indent=2))
        return run_file

    def save_timeline_csv(self, result: StressRunResult) -> Path:
        """Write the run's status timeline as .volley/runs/{run_id}.csv.

        Args:
            result: The run result whose timeline to export.

        Returns:
            Path to the written CSV file.
        """
        self.ensure_dirs()
        csv_file = self.runs_dir / f"{result.run_id}.csv"
        self._atomic_write(csv_file, render_timeline_csv(result.timeline))
        return csv_file

    def load_run(self, run_id: str) -> StressRunResult:
        """Load a StressRunResult from its JSON file.

        Raises:
            FileNotFoundError: If the run file does not exist.
        """
        run_file = self.runs_dir / f"{run_id}.json"
        if not run_file.exists():
            raise FileNotFoundError(f"Run not found: {run_id}")
        return StressRunResult.model_validate_json(run_file.read_text(encoding="utf-8"))

    def list_runs(self) -> list[str]:
        """List stored run IDs, oldest file first."""
        if not self.runs_dir.exists():
            return []
        files = [p for p in self.runs_dir.glob("*.json") if not p.is_symlink()]
        files.sort(key=lambda p: p.stat().st_mtime)
        return [p.stem for p in files]

    def update_latest_symlink(self, run_id: str) -> None:
        """Create or update a 'latest' symlink pointing to the given run.

        Uses atomic pattern: create symlink at tmp path, then os.replace.
        Falls back to writing a .latest text file if symlinks fail (Windows).

        Args:
            run_id: The run ID to point 'latest' at.
        """
        self.ensure_dirs()
        target = f"{run_id}.json"
        link_path = self.runs_dir / "latest"

        try:
            tmp_link = self.runs_dir / f".latest_tmp_{run_id}"
            if tmp_link.exists() or tmp_link.is_symlink():
                tmp_link.unlink()
            os.symlink(target, tmp_link)
            os.replace(tmp_link, link_path)
        except OSError:
            # Fallback for systems without symlink support
            fallback_path = self.runs_dir / ".latest"
            fallback_path.write_text(run_id, encoding="utf-8")

    def load_latest_run(self) -> StressRunResult | None:
        """Load the most recent run via the latest symlink, or None."""
        link_path = self.runs_dir / "latest"
        fallback_path = self.runs_dir / ".latest"

        run_id: str | None = None
        if link_path.is_symlink():
            run_id = os.readlink(link_path).removesuffix(".json")
        elif fallback_path.exists():
            run_id = fallback_path.read_text(encoding="utf-8").strip()

        if run_id is None:
            return None
        try:
            return self.load_run(run_id)
        except FileNotFoundError:
            return None

    @staticmethod
    def _atomic_write(path: Path, content: str) -> None:
        tmp_file = path.with_name(path.name + ".tmp")
        tmp_file.write_text(content, encoding="utf-8")
        tmp_file.replace(path)


def render_timeline_csv(timeline: list[RunStatusSnapshot]) -> str:
    """Render snapshots as CSV with the TIMELINE_COLUMNS header.

    Leading snapshots taken before any call started are dropped, and the
    remaining timestamps are rebased onto the last of those idle samples.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(TIMELINE_COLUMNS)

    base_ms = 0
    for snapshot in timeline:
        if snapshot.started_calls == 0:
            base_ms = snapshot.timestamp_ms
            continue
        row = snapshot.as_row()
        row[0] = snapshot.timestamp_ms - base_ms
        writer.writerow(row)

    return buffer.getvalue()
