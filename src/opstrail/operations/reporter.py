"""Reporters — storage for execution reports.

:class:`Reporter` is the storage contract the execution engine writes to.
:class:`MemoryReporter` is the in-process reference implementation and
:class:`RecentReporter` is the capturing wrapper ``execute_sequence`` uses
to find out which reports a sequence handler produced.

Architecture::

    Reporter (ABC)
    ├── add_report(report)
    ├── get_report(id)                 → Report | ReportNotFoundError
    ├── get_reports()                  → all reports, insertion order
    └── get_execution_reports(root_id) → subtree, descendants first

    MemoryReporter(Reporter)            list + id index behind a lock
    RecentReporter(Reporter)            forwards to inner, buffers what it saw

Thread safety:
    Both implementations serialize access with a lock. RecentReporter
    holds its lock across the forward to the wrapped reporter. No lock is
    held while handlers run.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

from opstrail.core.errors import ReportNotFoundError
from opstrail.operations.report import Report


class Reporter(ABC):
    """Storage contract for reports.

    ``add_report`` may raise for backends that can fail; the engine
    surfaces that as ``ReportStorageError`` and never retries it.
    """

    @abstractmethod
    def add_report(self, report: Report[Any, Any]) -> None:
        """Append a report."""
        ...

    @abstractmethod
    def get_report(self, report_id: str) -> Report[Any, Any]:
        """Return the report with ``report_id``.

        Raises:
            ReportNotFoundError: If no such report was stored.
        """
        ...

    @abstractmethod
    def get_reports(self) -> list[Report[Any, Any]]:
        """Return every stored report in insertion order."""
        ...

    @abstractmethod
    def get_execution_reports(self, report_id: str) -> list[Report[Any, Any]]:
        """Return the report and all its transitive children.

        Children precede the parent that references them (post-order), so
        the list can be replayed front to back.

        Raises:
            ReportNotFoundError: If the root or a referenced child is missing.
        """
        ...


def collect_execution_reports(reporter: Reporter, report_id: str) -> list[Report[Any, Any]]:
    """Depth-first, post-order walk of the report tree rooted at ``report_id``.

    Uses only ``reporter.get_report`` so any backend can reuse it.
    """
    ordered: list[Report[Any, Any]] = []
    visited: set[str] = set()

    def visit(current_id: str) -> None:
        if current_id in visited:
            return
        visited.add(current_id)
        report = reporter.get_report(current_id)
        for child_id in report.child_operation_reports:
            visit(child_id)
        ordered.append(report)

    visit(report_id)
    return ordered


class MemoryReporter(Reporter):
    """Stores reports in memory.

    Example:
        >>> reporter = MemoryReporter()
        >>> reporter.add_report(report)
        >>> reporter.get_report(report.id) is report
        True

    Args:
        reports: Reports to seed the reporter with, e.g. loaded from a
            previous run's dump.
    """

    def __init__(self, reports: Iterable[Report[Any, Any]] | None = None):
        self._lock = threading.RLock()
        self._reports: list[Report[Any, Any]] = []
        self._index: dict[str, Report[Any, Any]] = {}
        for report in reports or ():
            self._append(report)

    def _append(self, report: Report[Any, Any]) -> None:
        self._reports.append(report)
        self._index[report.id] = report

    def add_report(self, report: Report[Any, Any]) -> None:
        with self._lock:
            self._append(report)

    def get_report(self, report_id: str) -> Report[Any, Any]:
        with self._lock:
            try:
                return self._index[report_id]
            except KeyError:
                raise ReportNotFoundError(report_id) from None

    def get_reports(self) -> list[Report[Any, Any]]:
        with self._lock:
            return list(self._reports)

    def get_execution_reports(self, report_id: str) -> list[Report[Any, Any]]:
        with self._lock:
            return collect_execution_reports(self, report_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._reports)


class RecentReporter(Reporter):
    """Forwards to another reporter and remembers the reports it stored.

    ``execute_sequence`` wraps the caller's reporter in one of these for the
    duration of a sequence handler. Everything still lands in the wrapped
    reporter; the buffer only holds reports added through this instance,
    which are exactly the sequence's direct children.

    A report is buffered only after the wrapped reporter accepted it. Both
    steps happen under one lock, so the buffer order matches the order the
    reports reached the wrapped reporter.

    Wrapping another ``RecentReporter`` forwards to the reporter underneath
    it, so a nested sequence's children are not buffered by its parent.
    """

    def __init__(self, inner: Reporter):
        while isinstance(inner, RecentReporter):
            inner = inner.inner
        self._inner = inner
        self._lock = threading.Lock()
        self._recent: list[Report[Any, Any]] = []

    @property
    def inner(self) -> Reporter:
        return self._inner

    def add_report(self, report: Report[Any, Any]) -> None:
        with self._lock:
            self._inner.add_report(report)
            self._recent.append(report)

    def get_report(self, report_id: str) -> Report[Any, Any]:
        return self._inner.get_report(report_id)

    def get_reports(self) -> list[Report[Any, Any]]:
        return self._inner.get_reports()

    def get_execution_reports(self, report_id: str) -> list[Report[Any, Any]]:
        return self._inner.get_execution_reports(report_id)

    def recent_reports(self) -> list[Report[Any, Any]]:
        """Reports added through this wrapper, in call order."""
        with self._lock:
            return list(self._recent)

    def recent_report_ids(self) -> list[str]:
        with self._lock:
            return [r.id for r in self._recent]
