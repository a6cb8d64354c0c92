"""volley run -- stress a target through the resilience pipeline.

Loads volley.yaml, resolves the target, runs the workers via
StressRunner, renders Rich verdict output, persists the run result and
its status timeline, and exits with the verdict's code.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import NoReturn, Optional

import structlog
import typer
import yaml
from pydantic import ValidationError
from rich.console import Console

from volley.cli.logs import configure_logging
from volley.cli.output import (
    create_run_progress,
    output_json,
    render_details,
    render_headline,
)
from volley.execution.stress_runner import StressRunner
from volley.models.config import ProjectConfig, find_project_root, load_project_config
from volley.models.run import StressRunResult
from volley.storage.json_store import RunStore
from volley.targets.base import BaseTarget
from volley.targets.registry import get_target

console = Console(stderr=True)
logger = structlog.get_logger(__name__)

# Exit code mapping: verdict -> exit code
EXIT_CODES: dict[str, int] = {
    "PASS": 0,
    "FAIL": 1,
}
CONFIG_ERROR_EXIT_CODE = 2


def run(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to volley.yaml"),
    workers: Optional[int] = typer.Option(None, "-w", "--workers", min=1, help="Concurrent workers"),
    iterations: Optional[int] = typer.Option(
        None, "-n", "--iterations", min=1, help="Iterations per worker"
    ),
    duration: Optional[float] = typer.Option(
        None, "--duration", min=0.001, help="Run duration cap in seconds"
    ),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for think time and fault injection"),
    format_json: bool = typer.Option(False, "--json", help="Output pure JSON to stdout"),
    no_save: bool = typer.Option(False, "--no-save", help="Do not persist the run under .volley/"),
    verbose: bool = typer.Option(False, "-V", "--verbose", help="Show detail sections even on pass"),
) -> None:
    """Run a stress test against the configured target."""
    if config_path is not None and not config_path.exists():
        _config_error(f"Config file not found: {config_path}")

    try:
        config = load_project_config(config_path)
    except (ValidationError, yaml.YAMLError) as exc:
        _config_error(f"Invalid configuration: {exc}")

    options = ctx.obj or {}
    if options.get("log_format") is None and config.log_format != "console":
        configure_logging(config.log_format, options.get("log_level", "warning"))

    config = _apply_overrides(
        config, workers=workers, iterations=iterations, duration=duration, seed=seed
    )

    try:
        target = get_target(config.target, config.simulated)
    except (ValueError, ImportError, TypeError) as exc:
        _config_error(f"Target error: {exc}")

    result = asyncio.run(_run_async(target, config, seed=seed, format_json=format_json))

    if not no_save:
        project_root = find_project_root(config_path)
        store = RunStore(project_root, config.storage_dir)
        store.save_run(result)
        store.save_timeline_csv(result)
        store.update_latest_symlink(result.run_id)
        logger.info("stress_run.saved", run_id=result.run_id, runs_dir=str(store.runs_dir))

    if format_json:
        output_json(result)
    else:
        output_console = Console()
        render_headline(result, output_console)
        if result.verdict.value != "PASS" or verbose:
            render_details(result, output_console)
        if not no_save:
            output_console.print(f"[dim]Run saved: {result.run_id}[/dim]")

    exit_code = EXIT_CODES.get(result.verdict.value, 1)
    if exit_code != 0:
        raise typer.Exit(code=exit_code)


async def _run_async(
    target: BaseTarget,
    config: ProjectConfig,
    *,
    seed: int | None,
    format_json: bool,
) -> StressRunResult:
    """Async implementation of the run command."""
    runner = StressRunner(target, config, seed=seed)

    progress = None if format_json else create_run_progress(console)
    if progress is None:
        return await runner.run_all()

    with progress:
        task = progress.add_task("Running iterations", total=config.workers * config.iterations)

        def on_progress(completed: int, total: int) -> None:
            progress.update(task, completed=completed)

        return await runner.run_all(progress_callback=on_progress)


def _apply_overrides(
    config: ProjectConfig,
    *,
    workers: int | None,
    iterations: int | None,
    duration: float | None,
    seed: int | None,
) -> ProjectConfig:
    """Return a copy of config with CLI overrides applied."""
    update: dict = {}
    if workers is not None:
        update["workers"] = workers
    if iterations is not None:
        update["iterations"] = iterations
    if duration is not None:
        update["duration_seconds"] = duration
    if seed is not None and config.simulated.seed is None:
        update["simulated"] = config.simulated.model_copy(update={"seed": seed})
    return config.model_copy(update=update) if update else config


def _config_error(message: str) -> NoReturn:
    console.print(f"[bold red]{message}[/bold red]")
    raise typer.Exit(code=CONFIG_ERROR_EXIT_CODE)
