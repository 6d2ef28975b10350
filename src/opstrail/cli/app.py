"""
Root Typer application for the opstrail CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from opstrail.core.logging import configure_logging
from opstrail.core.settings import load_settings

app = Typer(
    name="opstrail",
    help="opstrail — inspect operation and sequence execution reports.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from opstrail import __version__

        typer.echo(f"opstrail {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Override OPSTRAIL_LOG_LEVEL."),
) -> None:
    """opstrail CLI — browse report dumps and execution trees."""
    settings = load_settings()
    configure_logging(level=log_level or settings.log_level, json_format=settings.log_json)


# ── Sub-commands ─────────────────────────────────────────────────────────

from opstrail.cli.reports import app as reports_app  # noqa: E402

app.add_typer(reports_app, name="reports", help="Report dump inspection.")
