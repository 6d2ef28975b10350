"""Reports — immutable records of execution attempts.

Every call to ``execute_operation``/``execute_sequence`` produces exactly
one :class:`Report`. Reports are created once and never mutated; a
sequence's report lists the IDs of the reports produced directly inside
its handler, so a full call tree can be rebuilt from a flat store.

Architecture::

    Report (frozen)
    ├── id                        fresh uuid4 per execution
    ├── definition                Definition snapshot
    ├── input / output            opaque values
    ├── timestamp                 UTC creation time
    ├── err                       terminal handler error or None
    └── child_operation_reports   direct children IDs (sequences only)

    SequenceReport(Report)
    └── execution_reports         whole subtree, children before parents

Serialized shape (``to_dict``)::

    {"ID", "Definition": {"ID", "Version", "Description"}, "Output",
     "Input", "Timestamp", "Error", "ChildOperationReports": [...]}
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from opstrail.core.errors import error_from_dict, error_to_dict
from opstrail.operations.definition import Definition

IN = TypeVar("IN")
OUT = TypeVar("OUT")


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


@dataclass(frozen=True)
class Report(Generic[IN, OUT]):
    """Outcome of one execution of an operation or sequence.

    Attributes:
        id: Unique report ID.
        definition: Definition of the executed unit of work.
        input: The input the execution was *started* with. Input hooks
            applied between retries never show up here.
        output: Output of the final attempt (None when it failed).
        timestamp: When the report was created.
        err: Terminal handler error, None on success.
        child_operation_reports: IDs of the reports created directly
            inside a sequence handler, in call order.
    """

    id: str
    definition: Definition
    input: IN
    output: OUT | None
    timestamp: datetime
    err: Exception | None = None
    child_operation_reports: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.err is None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted report shape."""
        return {
            "ID": self.id,
            "Definition": self.definition.to_dict(),
            "Output": self.output,
            "Input": self.input,
            "Timestamp": self.timestamp.isoformat(),
            "Error": error_to_dict(self.err),
            "ChildOperationReports": list(self.child_operation_reports),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Report[Any, Any]:
        """Deserialize a report; errors come back as ``RecordedError``."""
        return Report(
            id=data["ID"],
            definition=Definition.from_dict(data["Definition"]),
            input=data.get("Input"),
            output=data.get("Output"),
            timestamp=datetime.fromisoformat(data["Timestamp"]),
            err=error_from_dict(data.get("Error")),
            child_operation_reports=tuple(data.get("ChildOperationReports") or ()),
        )


@dataclass(frozen=True)
class SequenceReport(Report[IN, OUT]):
    """A sequence's report plus every report of its execution subtree.

    ``execution_reports`` is ordered children first, with this sequence's
    own report last.
    """

    execution_reports: tuple[Report[Any, Any], ...] = field(default=(), compare=False)


def new_report(
    definition: Definition,
    input: IN,
    output: OUT | None,
    err: Exception | None,
    *child_report_ids: str,
) -> Report[IN, OUT]:
    """Create a report with a fresh ID and the current timestamp.

    ``child_report_ids`` only applies to sequences.
    """
    return Report(
        id=str(uuid.uuid4()),
        definition=definition,
        input=input,
        output=output,
        timestamp=utcnow(),
        err=err,
        child_operation_reports=tuple(child_report_ids),
    )


def generic_report(report: Report[Any, Any]) -> Report[Any, Any]:
    """Map a typed report to the plain form handed to reporters.

    Subclass extras (such as ``SequenceReport.execution_reports``) are
    dropped so stored reports never embed other reports.
    """
    return Report(
        id=report.id,
        definition=report.definition,
        input=report.input,
        output=report.output,
        timestamp=report.timestamp,
        err=report.err,
        child_operation_reports=tuple(report.child_operation_reports),
    )


def dump_reports(reports: list[Report[Any, Any]], *, indent: int | None = 2) -> str:
    """Serialize reports to a JSON array.

    Inputs and outputs must be JSON-serializable; anything else is written
    via ``str()``.
    """
    return json.dumps([r.to_dict() for r in reports], indent=indent, default=str)


def load_reports(text: str) -> list[Report[Any, Any]]:
    """Parse a JSON array produced by :func:`dump_reports`."""
    data = json.loads(text)
    if not isinstance(data, list):
        raise ValueError("Report dump must be a JSON array")
    return [Report.from_dict(item) for item in data]
