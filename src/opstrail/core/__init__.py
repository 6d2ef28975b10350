"""Cross-cutting primitives: errors, logging and settings."""

from opstrail.core.errors import (
    ErrorCategory,
    ExecutionFailedError,
    InvalidDefinitionError,
    OpsError,
    RecordedError,
    ReportNotFoundError,
    ReportStorageError,
    UnrecoverableError,
    is_unrecoverable,
    new_unrecoverable_error,
)
from opstrail.core.logging import configure_logging, get_logger
from opstrail.core.settings import OpstrailSettings, load_settings

__all__ = [
    "ErrorCategory",
    "ExecutionFailedError",
    "InvalidDefinitionError",
    "OpsError",
    "RecordedError",
    "ReportNotFoundError",
    "ReportStorageError",
    "UnrecoverableError",
    "is_unrecoverable",
    "new_unrecoverable_error",
    "configure_logging",
    "get_logger",
    "OpstrailSettings",
    "load_settings",
]
