"""
CLI: ``opstrail reports`` — inspect report dumps.
"""

from __future__ import annotations

from pathlib import Path

import typer

from opstrail.cli.utils import (
    build_report_tree,
    console,
    fail,
    load_reporter,
    output_json,
    print_report,
    print_report_table,
)
from opstrail.core.errors import ReportNotFoundError

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_reports(
    dump: Path = typer.Argument(..., exists=True, dir_okay=False, help="Report dump (JSON)"),
    definition: str | None = typer.Option(None, "--definition", "-d", help="Only reports of this definition ID"),
    failed: bool = typer.Option(False, "--failed", help="Only failed reports"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List every report in a dump, in insertion order."""
    reports = load_reporter(dump).get_reports()
    if definition:
        reports = [r for r in reports if r.definition.id == definition]
    if failed:
        reports = [r for r in reports if not r.ok]

    if json_out:
        output_json(reports)
        return
    print_report_table(reports, title="Reports")


@app.command("show")
def show_report(
    dump: Path = typer.Argument(..., exists=True, dir_okay=False, help="Report dump (JSON)"),
    report_id: str = typer.Argument(..., help="Report ID"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show one report."""
    reporter = load_reporter(dump)
    try:
        report = reporter.get_report(report_id)
    except ReportNotFoundError as e:
        fail(str(e))

    if json_out:
        output_json(report)
        return
    print_report(report)


@app.command("tree")
def show_tree(
    dump: Path = typer.Argument(..., exists=True, dir_okay=False, help="Report dump (JSON)"),
    report_id: str = typer.Argument(..., help="Root report ID"),
    json_out: bool = typer.Option(False, "--json", help="Print the subtree in replay order"),
) -> None:
    """Show the execution tree rooted at a report."""
    reporter = load_reporter(dump)
    try:
        if json_out:
            output_json(reporter.get_execution_reports(report_id))
            return
        tree = build_report_tree(reporter, report_id)
    except ReportNotFoundError as e:
        fail(str(e))
    console.print(tree)
