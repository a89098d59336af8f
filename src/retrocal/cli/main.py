"""
Main CLI application using Typer with router-based command dispatch.

All command groups are registered through the centralized CliRouter.
"""

from __future__ import annotations

import typer

from ..infra.logging import configure_logging
from .commands import schedule
from .router import get_router

app = typer.Typer(help="RetroCal rerun-avoiding content calendar")

router = get_router(app)

router.register(
    "schedule",
    schedule.app,
    help_text="Generate and check rerun-avoiding schedules",
)


@app.callback()
def main(
    log_level: str | None = typer.Option(None, "--log-level", help="Override LOG_LEVEL for this run"),
):
    """RetroCal - rotation scheduling with rerun avoidance."""
    configure_logging(log_level)


def cli():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()
