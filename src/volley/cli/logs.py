"""structlog configuration shared by the CLI commands."""

from __future__ import annotations

import logging
import sys

import structlog
import typer

LOG_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def configure_logging(log_format: str = "console", log_level: str = "warning") -> None:
    """Configure structlog for the requested format and level.

    Log lines go to stderr so that --json output on stdout stays parseable.
    """
    if log_format == "console":
        renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer()
    elif log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        typer.echo(f"Invalid log format: {log_format!r}. Must be 'console' or 'json'.", err=True)
        raise typer.Exit(code=2)

    level = LOG_LEVELS.get(log_level.lower())
    if level is None:
        choices = ", ".join(LOG_LEVELS)
        typer.echo(f"Invalid log level: {log_level!r}. Must be one of: {choices}.", err=True)
        raise typer.Exit(code=2)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )
