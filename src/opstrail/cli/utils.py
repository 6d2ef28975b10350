"""
CLI utility helpers — report loading and output formatting.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from opstrail.core.errors import OpsError
from opstrail.operations import MemoryReporter, Report, load_reports

console = Console()
err_console = Console(stderr=True)


# ── Loading ──────────────────────────────────────────────────────────────


def load_reporter(path: Path) -> MemoryReporter:
    """Load a report dump into a ``MemoryReporter``; exit 1 on bad input."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        fail(f"Cannot read {path}: {e}")
    try:
        return MemoryReporter(load_reports(text))
    except (OpsError, ValueError, KeyError, TypeError) as e:
        fail(f"Invalid report dump {path}: {e}")


def fail(message: str) -> NoReturn:
    err_console.print(f"[bold red]Error[/bold red]: {message}")
    raise typer.Exit(code=1)


# ── Output helpers ───────────────────────────────────────────────────────


def status_label(report: Report[Any, Any]) -> str:
    return "[green]ok[/green]" if report.ok else "[red]failed[/red]"


def error_message(report: Report[Any, Any]) -> str:
    return "" if report.err is None else str(report.err)


def output_json(reports: list[Report[Any, Any]] | Report[Any, Any]) -> None:
    if isinstance(reports, list):
        payload: Any = [r.to_dict() for r in reports]
    else:
        payload = reports.to_dict()
    console.print_json(json.dumps(payload, default=str))


def print_report_table(reports: list[Report[Any, Any]], *, title: str = "") -> None:
    """Render reports as a Rich table."""
    if not reports:
        console.print("[dim]No reports.[/dim]")
        return
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in ("id", "definition", "version", "status", "children", "timestamp", "error"):
        table.add_column(col, overflow="fold")
    for r in reports:
        table.add_row(
            r.id,
            r.definition.id,
            str(r.definition.version),
            status_label(r),
            str(len(r.child_operation_reports)),
            r.timestamp.isoformat(),
            error_message(r),
        )
    console.print(table)


def print_report(report: Report[Any, Any]) -> None:
    """Render one report as a key/value table."""
    table = Table(title=f"Report: {report.id}", show_header=False, pad_edge=False)
    table.add_column("field", style="bold")
    table.add_column("value", overflow="fold")
    rows = {
        "definition": report.definition.id,
        "version": str(report.definition.version),
        "description": report.definition.description,
        "status": status_label(report),
        "timestamp": report.timestamp.isoformat(),
        "input": json.dumps(report.input, default=str),
        "output": json.dumps(report.output, default=str),
        "error": error_message(report),
        "children": ", ".join(report.child_operation_reports),
    }
    for key, value in rows.items():
        table.add_row(key, value)
    console.print(table)


def build_report_tree(reporter: MemoryReporter, root_id: str) -> Tree:
    """Build a Rich tree of the execution rooted at ``root_id``.

    A report already shown is marked ``(repeated)`` and not expanded again.
    """
    seen: set[str] = set()

    def label(report: Report[Any, Any]) -> str:
        return f"{report.definition.id} v{report.definition.version} {status_label(report)} [dim]{report.id}[/dim]"

    def add_children(node: Tree, report: Report[Any, Any]) -> None:
        seen.add(report.id)
        for child_id in report.child_operation_reports:
            child = reporter.get_report(child_id)
            if child.id in seen:
                node.add(f"{label(child)} [yellow](repeated)[/yellow]")
                continue
            add_children(node.add(label(child)), child)

    root = reporter.get_report(root_id)
    tree = Tree(label(root))
    add_children(tree, root)
    return tree
