"""volley report -- display stored run results and history trends.

Shows the latest run's headline and detail sections by default, a
specific run when given its ID, and a --history trend table across
recent runs. Reads run results from RunStore.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.table import Table

from volley.cli.output import render_details, render_headline, verdict_display
from volley.models.config import find_project_root, load_project_config
from volley.models.run import StressRunResult, Verdict
from volley.storage.json_store import RunStore


def _render_history(
    results: list[StressRunResult],
    console: Console,
    *,
    failures_only: bool = False,
) -> None:
    """Render trend table of recent runs.

    Args:
        results: Run results, ordered chronologically.
        console: Rich Console for output.
        failures_only: If True, only show runs with a FAIL verdict.
    """
    if failures_only:
        results = [r for r in results if r.verdict != Verdict.PASS]

    if not results:
        console.print("[dim]No matching runs found.[/dim]")
        return

    console.print()
    table = Table(box=box.ROUNDED, title="Run History")
    table.add_column("Run ID")
    table.add_column("Target")
    table.add_column("Verdict")
    table.add_column("Iterations", justify="right")
    table.add_column("Failure rate", justify="right")
    table.add_column("p95", justify="right")
    table.add_column("Retries", justify="right")

    for result in results:
        symbol, style = verdict_display(result.verdict)
        p95 = f"{result.latency_p95_ms:.0f}ms" if result.latency_p95_ms is not None else "-"
        table.add_row(
            result.run_id[:8],
            result.target,
            f"[{style}]{symbol}[/{style}]",
            f"{result.iterations_succeeded}/{result.iterations_total}",
            f"{result.failure_rate:.1%}",
            p95,
            str(result.total_retries),
        )

    console.print(table)

    if len(results) >= 2:
        console.print(
            f"\n{len(results)} runs shown. "
            f"Failure rate trend: {results[0].failure_rate:.1%} -> {results[-1].failure_rate:.1%}"
        )
    else:
        console.print(f"\n{len(results)} run(s) shown.")


def report(
    run_id: Optional[str] = typer.Argument(None, help="Run ID to display (default: latest)"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to volley.yaml"),
    history: bool = typer.Option(False, "--history", help="Show trend view of recent runs"),
    limit: int = typer.Option(10, "--limit", "-l", min=1, help="Number of runs to show in history"),
    failures_only: bool = typer.Option(False, "--failures", help="Show only failed runs in history"),
) -> None:
    """Display stored run results and history trends."""
    console = Console()

    project_root = find_project_root(config_path)
    project_config = load_project_config(config_path)
    store = RunStore(project_root, storage_dir=project_config.storage_dir)
    if not store.runs_dir.exists():
        console.print("[dim]No stored runs found. Run 'volley run' first.[/dim]")
        raise typer.Exit(code=0)

    if history:
        run_ids = store.list_runs()[-limit:]
        results: list[StressRunResult] = []
        for rid in run_ids:
            try:
                results.append(store.load_run(rid))
            except ValidationError:
                console.print(f"[dim]Warning: skipping run {rid} (could not load)[/dim]")
        _render_history(results, console, failures_only=failures_only)
        return

    if run_id is not None:
        try:
            result = store.load_run(run_id)
        except FileNotFoundError:
            console.print(f"Run '{run_id}' not found.")
            available = store.list_runs()
            if available:
                console.print(f"Available runs: {', '.join(available[-10:])}")
            raise typer.Exit(code=1)
    else:
        latest = store.load_latest_run()
        if latest is None:
            console.print("[dim]No runs found. Run 'volley run' first.[/dim]")
            raise typer.Exit(code=0)
        result = latest

    console.print(f"[bold]Run:[/bold] {result.run_id}  [dim]{result.started_at}[/dim]")
    render_headline(result, console)
    render_details(result, console)
