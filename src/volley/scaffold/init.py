"""Project scaffolding for `volley init`.

Generates a volley.yaml with every setting at its default value and a
.gitignore entry for the .volley/ run store. Non-interactive.
"""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from volley.models.config import CONFIG_FILENAME, STORAGE_DIRNAME

console = Console()

DEFAULT_CONFIG_TEMPLATE = """\
# Volley stress run configuration.
# Durations under resilience are seconds; everything else is labelled.

target: simulated
operations: [read, write, query]
workers: 10
iterations: 20
duration_seconds: 60
sample_interval_ms: 50
max_failure_rate: 0.05
log_format: console

think_time:
  min_ms: 500
  max_ms: 5000

resilience:
  regions: ["West US", "East US"]
  stop_on_threshold: false
  transient:
    kind: progressive
    max_retry_count: 3
    initial_interval: 1.0
    increment: 1.0
    threshold_interval: 10.0
  throttle:
    kind: progressive
    max_retry_count: 1000000
    initial_interval: 0.0
    increment: 0.0
    threshold_interval: 10.0

simulated:
  min_latency_ms: 5
  max_latency_ms: 50
  throttle_rate: 0.05
  unavailable_rate: 0.05
  timeout_rate: 0.02
  not_found_rate: 0.0
  healthy_regions: ["East US"]
"""


class ProjectExistsError(Exception):
    """Raised when scaffold_project would overwrite existing files."""

    def __init__(self, conflicting_files: list[str]) -> None:
        self.conflicting_files = conflicting_files
        files_str = ", ".join(conflicting_files)
        super().__init__(f"Files already exist: {files_str}")


def scaffold_project(directory: Path, force: bool = False) -> list[str]:
    """Generate a Volley project in the given directory.

    Args:
        directory: Target directory for the project.
        force: If True, overwrite an existing volley.yaml. If False, raise
            ProjectExistsError when it already exists.

    Returns:
        List of created file paths (relative to directory).

    Raises:
        ProjectExistsError: If volley.yaml exists and force is False.
    """
    directory = directory.resolve()
    config_path = directory / CONFIG_FILENAME

    if config_path.exists() and not force:
        raise ProjectExistsError([CONFIG_FILENAME])

    directory.mkdir(parents=True, exist_ok=True)
    config_path.write_text(DEFAULT_CONFIG_TEMPLATE, encoding="utf-8")
    created = [CONFIG_FILENAME]

    gitignore_path = directory / ".gitignore"
    store_entry = f"{STORAGE_DIRNAME}/"
    if gitignore_path.exists():
        content = gitignore_path.read_text(encoding="utf-8")
        if store_entry not in content.splitlines():
            if content and not content.endswith("\n"):
                content += "\n"
            content += store_entry + "\n"
            gitignore_path.write_text(content, encoding="utf-8")
            created.append(".gitignore (updated)")
    else:
        gitignore_path.write_text(store_entry + "\n", encoding="utf-8")
        created.append(".gitignore")

    console.print("[green][bold]Project initialized successfully![/bold][/green]")
    for path in created:
        console.print(f"  [green]✓[/green] {path}")

    return created
