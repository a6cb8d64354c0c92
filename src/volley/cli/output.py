"""Rich terminal output layer for stress run results.

Provides progress bar, headline verdict table, detail sections,
and JSON output for StressRunResult display in terminal and CI.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from rich import box
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

if TYPE_CHECKING:
    from volley.models.run import StressRunResult, Verdict


# Verdict styling map: verdict value -> (symbol, Rich markup style)
_VERDICT_STYLES: dict[str, tuple[str, str]] = {
    "PASS": ("✓ PASS", "bold green"),
    "FAIL": ("✗ FAIL", "bold red"),
}


def verdict_display(verdict: Verdict) -> tuple[str, str]:
    """Return (symbol, style) for a verdict value."""
    return _VERDICT_STYLES.get(verdict.value, ("✗ UNKNOWN", "bold red"))


def create_run_progress(console: Console) -> Progress | None:
    """Create a Rich Progress bar for iteration progress.

    Returns None if the console is not a terminal (CI/pipe mode),
    so the caller can skip progress display.
    """
    if not console.is_terminal:
        return None

    return Progress(
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )


def render_headline(result: StressRunResult, console: Console) -> None:
    """Render a compact headline verdict table for the run result.

    Args:
        result: The StressRunResult to display.
        console: Rich Console for output.
    """
    table = Table(box=box.SIMPLE, show_header=False, padding=(0, 2))
    table.add_column("Key", style="bold")
    table.add_column("Value")

    symbol, style = verdict_display(result.verdict)
    table.add_row("Verdict", f"[{style}]{symbol}[/{style}]")

    table.add_row(
        "Iterations",
        f"{result.iterations_succeeded}/{result.iterations_total} succeeded "
        f"(failure rate {result.failure_rate:.1%}, max {result.max_failure_rate:.1%})",
    )
    table.add_row("Workers", f"{result.workers} against {result.target}")

    if result.latency_p50_ms is not None and result.latency_p95_ms is not None:
        table.add_row(
            "Latency",
            f"p50={result.latency_p50_ms:.0f}ms p95={result.latency_p95_ms:.0f}ms "
            f"max={result.latency_max_ms}ms",
        )

    if result.total_retries > 0:
        table.add_row("Retries", str(result.total_retries))

    if result.failovers > 0:
        table.add_row("Failovers", f"{result.failovers} iteration(s) ended on a fallback region")

    if result.stopped_early:
        table.add_row(
            "Status",
            f"duration cap reached after {result.iterations_total}/"
            f"{result.iterations_requested} iterations",
        )

    console.print()
    console.print(table)


def render_details(result: StressRunResult, console: Console) -> None:
    """Render detail sections for failure analysis.

    Shows the failure type histogram, the final status counters and a
    few sample failures when available.
    """
    console.print()

    if result.failure_types:
        console.print("[bold]Failure Types[/bold]")
        ranked = sorted(result.failure_types.items(), key=lambda item: item[1], reverse=True)
        for i, (error_type, count) in enumerate(ranked, 1):
            console.print(f"  {i}. {error_type}: {count}")
        console.print()

    if result.timeline:
        last = result.timeline[-1]
        console.print(
            f"[bold]Calls:[/bold] started={last.started_calls} completed={last.completed_calls} "
            f"cancelled={last.cancelled_calls} timed_out={last.timed_out_calls} "
            f"failures={last.failures}"
        )
        console.print()

    samples = [r for r in result.iterations if r.error_message is not None]
    if samples:
        console.print("[bold]Sample Failures[/bold]")
        for j, sample in enumerate(samples[:3], 1):
            detail = f"worker {sample.worker} #{sample.iteration} {sample.operation}: {sample.error_message}"
            truncated = detail[:200] + "..." if len(detail) > 200 else detail
            console.print(f"  {j}. {truncated}")
        console.print()


def output_json(result: StressRunResult) -> None:
    """Write the run result as pure JSON to stdout.

    No Rich markup, no color, no extra text. Suitable for
    CI pipeline consumption and machine parsing.
    """
    sys.stdout.write(result.model_dump_json(indent=2))
    sys.stdout.write("\n")
