"""volley queue -- soak the deferred execution queue.

Registers a batch of random waits on one DeferredExecutionQueue and
reports the pending count and process thread count once per report
interval until every wait has fired. The thread count staying flat
while hundreds of waits are outstanding is the point of the exercise.
"""

from __future__ import annotations

import random
import threading
import time
from typing import Optional

import structlog
import typer
from rich.console import Console

from volley.timing.wait_queue import DeferredExecutionQueue

console = Console()
logger = structlog.get_logger(__name__)


def queue(
    count: int = typer.Option(100, "--count", min=1, help="Number of waits to register"),
    min_delay: float = typer.Option(3.0, "--min-delay", min=0.0, help="Shortest wait in seconds"),
    max_delay: float = typer.Option(6.0, "--max-delay", min=0.0, help="Longest wait in seconds"),
    report_interval: float = typer.Option(
        1.0, "--report-interval", min=0.01, help="Seconds between status lines"
    ),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for the wait durations"),
) -> None:
    """Soak the deferred execution queue with random waits."""
    if min_delay > max_delay:
        console.print("[bold red]--min-delay must be <= --max-delay[/bold red]")
        raise typer.Exit(code=2)

    rng = random.Random(seed)  # noqa: S311
    deferred = DeferredExecutionQueue()
    fired = 0
    fired_lock = threading.Lock()

    def on_timeout() -> None:
        nonlocal fired
        with fired_lock:
            fired += 1

    start = time.monotonic()
    for _ in range(count):
        deferred.schedule(rng.uniform(min_delay, max_delay), on_timeout)

    logger.info("queue_soak.started", count=count, min_delay=min_delay, max_delay=max_delay)

    deferred.start(initial_delay=0.0)
    try:
        while deferred.has_pending:
            _print_status(start, deferred)
            time.sleep(report_interval)
        _print_status(start, deferred)
    finally:
        deferred.stop()

    console.print(f"[green]{fired}/{count} waits fired in {time.monotonic() - start:.2f}s[/green]")
    logger.info("queue_soak.finished", fired=fired)


def _print_status(start: float, deferred: DeferredExecutionQueue) -> None:
    console.print(
        f"[bold]{time.monotonic() - start:6.1f}s[/bold]  "
        f"pending={deferred.pending_count}  threads={threading.active_count()}"
    )
