"""Volley CLI entry point."""

from typing import Optional

import typer

from volley import __version__
from volley.cli.init_cmd import init
from volley.cli.logs import configure_logging
from volley.cli.queue_cmd import queue
from volley.cli.report_cmd import report
from volley.cli.run_cmd import run

app = typer.Typer(
    name="volley",
    help="Resilience and stress harness for storage clients",
    no_args_is_help=True,
)

# Register subcommands
app.command()(init)
app.command()(queue)
app.command()(report)
app.command()(run)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"volley {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    log_format: Optional[str] = typer.Option(
        None, "--log-format", help="Log renderer: 'console' or 'json'. Overrides volley.yaml."
    ),
    log_level: str = typer.Option(
        "warning", "--log-level", help="Minimum log level: debug, info, warning or error."
    ),
) -> None:
    """Resilience and stress harness for storage clients."""
    configure_logging(log_format or "console", log_level)
    ctx.obj = {"log_format": log_format, "log_level": log_level}
