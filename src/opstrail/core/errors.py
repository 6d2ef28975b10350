"""
Structured error types for opstrail.

Every error raised by the engine derives from ``OpsError`` and carries a
category, a retry hint and an optional chained cause, so callers can tell
"the work failed" apart from "the bookkeeping failed" and log both.

Hierarchy::

    OpsError
      ├── InvalidDefinitionError   ── bad operation/sequence definition
      ├── ReportNotFoundError      ── report ID absent from a reporter
      ├── ReportStorageError       ── reporter could not store/fetch reports
      ├── ExecutionFailedError     ── handler ultimately failed
      ├── UnrecoverableError       ── handler asked to stop retrying
      └── RecordedError            ── error rebuilt from a serialized report

Usage:
    from opstrail.core.errors import new_unrecoverable_error

    def handler(bundle, deps, tx):
        if tx.nonce_too_low:
            raise new_unrecoverable_error(ValueError("nonce too low"))
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from opstrail.operations.report import Report


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    VALIDATION = "VALIDATION"     # Bad definitions, malformed input
    STORAGE = "STORAGE"           # Reporter failures, missing reports
    EXECUTION = "EXECUTION"       # Handler failures
    CONFIG = "CONFIG"             # Invalid settings
    INTERNAL = "INTERNAL"         # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"           # Uncategorized errors


class OpsError(Exception):
    """
    Base exception for all opstrail errors.

    Subclasses set ``default_category`` and ``default_retryable``; both can
    be overridden per instance.

    Examples:
        >>> error = OpsError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.to_dict()["retryable"]
        False
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


class InvalidDefinitionError(OpsError):
    """Raised when an operation or sequence definition is malformed."""

    default_category = ErrorCategory.VALIDATION


class ReportNotFoundError(OpsError):
    """Raised when a report ID is not known to a reporter.

    This is an expected outcome for callers probing whether a report exists.
    """

    default_category = ErrorCategory.STORAGE

    def __init__(self, report_id: str):
        self.report_id = report_id
        super().__init__(f"report_id {report_id}: report not found")


class ReportStorageError(OpsError):
    """Raised when a report could not be stored in, or read back from, a reporter.

    ``report`` is the report that was built for the execution. Its ``err``
    reflects only the handler outcome, never the storage failure.
    """

    default_category = ErrorCategory.STORAGE

    def __init__(self, message: str, *, report: Report | None = None, cause: BaseException | None = None):
        super().__init__(message, cause=cause)
        self.report = report


class ExecutionFailedError(OpsError):
    """Raised when an operation or sequence handler ultimately failed.

    The report has already been stored when this is raised; ``report.err``
    is the handler's terminal error.
    """

    default_category = ErrorCategory.EXECUTION

    def __init__(self, message: str, *, report: Report, cause: BaseException | None = None):
        super().__init__(message, cause=cause)
        self.report = report


class UnrecoverableError(OpsError):
    """Marks a handler error that must not be retried.

    The message is the wrapped error's message so that the surfaced error
    reads the same as the original.
    """

    default_category = ErrorCategory.EXECUTION

    def __init__(self, cause: BaseException):
        super().__init__(str(cause), cause=cause)


class RecordedError(OpsError):
    """An error restored from a serialized report.

    Only the type name and message survive serialization.
    """

    default_category = ErrorCategory.UNKNOWN

    def __init__(self, message: str, *, error_type: str = "Exception", payload: dict[str, Any] | None = None):
        super().__init__(message)
        self.error_type = error_type
        self.payload = payload or {}

    def to_dict(self) -> dict[str, Any]:
        result = dict(self.payload)
        result.setdefault("error_type", self.error_type)
        result.setdefault("message", self.message)
        return result


def new_unrecoverable_error(err: BaseException) -> UnrecoverableError:
    """Wrap ``err`` so the retry loop stops after the current attempt."""
    return UnrecoverableError(err)


def iter_error_chain(error: BaseException | None):
    """Yield ``error`` and every error reachable through its cause chain.

    Follows explicit wrapping only (``cause`` and ``__cause__``), not the
    implicit ``__context__``. Each error is yielded at most once.
    """
    seen: set[int] = set()
    pending = [error]
    while pending:
        current = pending.pop()
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        pending.extend([current.__cause__, getattr(current, "cause", None)])


def is_unrecoverable(error: BaseException | None) -> bool:
    """Check whether ``error`` or anything it wraps is an ``UnrecoverableError``."""
    return any(isinstance(e, UnrecoverableError) for e in iter_error_chain(error))


def error_to_dict(error: BaseException | None) -> dict[str, Any] | None:
    """Serialize an error into the structured payload stored on reports."""
    if error is None:
        return None
    if isinstance(error, OpsError):
        return error.to_dict()
    return {"error_type": type(error).__name__, "message": str(error)}


def error_from_dict(payload: dict[str, Any] | str | None) -> RecordedError | None:
    """Rebuild a report error from its serialized payload."""
    if payload is None:
        return None
    if isinstance(payload, str):
        return RecordedError(payload)
    return RecordedError(
        payload.get("message", ""),
        error_type=payload.get("error_type", "Exception"),
        payload=payload,
    )


__all__ = [
    "ErrorCategory",
    "OpsError",
    "InvalidDefinitionError",
    "ReportNotFoundError",
    "ReportStorageError",
    "ExecutionFailedError",
    "UnrecoverableError",
    "RecordedError",
    "new_unrecoverable_error",
    "iter_error_chain",
    "is_unrecoverable",
    "error_to_dict",
    "error_from_dict",
]
