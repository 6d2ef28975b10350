"""Operations — retryable units of work with an auditable report trail.

Quick start::

    from opstrail.operations import (
        MemoryReporter, new_bundle, new_operation, execute_operation,
    )

    plus1 = new_operation("plus1", "1.0.0", "adds one",
                          lambda bundle, deps, x: x + 1)
    bundle = new_bundle(None, None, MemoryReporter())
    report = execute_operation(bundle, plus1, None, 1)

Module map::

    definition.py   Definition, Operation, Sequence
    report.py       Report, SequenceReport, (de)serialization
    reporter.py     Reporter, MemoryReporter, RecentReporter
    bundle.py       Bundle, ExecutionContext
    retry.py        RetryPolicy, RetryConfig, execute options, attempt loop
    execute.py      execute_operation, execute_sequence
"""

from opstrail.core.errors import (
    ExecutionFailedError,
    ReportNotFoundError,
    ReportStorageError,
    UnrecoverableError,
    is_unrecoverable,
    new_unrecoverable_error,
)
from opstrail.operations.bundle import (
    Bundle,
    ExecutionContext,
    background_context,
    new_bundle,
)
from opstrail.operations.definition import (
    Definition,
    Operation,
    Sequence,
    new_operation,
    new_sequence,
)
from opstrail.operations.execute import execute_operation, execute_sequence
from opstrail.operations.report import (
    Report,
    SequenceReport,
    dump_reports,
    generic_report,
    load_reports,
    new_report,
)
from opstrail.operations.reporter import (
    MemoryReporter,
    RecentReporter,
    Reporter,
    collect_execution_reports,
)
from opstrail.operations.retry import (
    ExecuteConfig,
    ExecuteOption,
    RetryConfig,
    RetryPolicy,
    build_execute_config,
    with_retry_config,
)

__all__ = [
    # Units of work
    "Definition",
    "Operation",
    "Sequence",
    "new_operation",
    "new_sequence",
    # Reports
    "Report",
    "SequenceReport",
    "new_report",
    "generic_report",
    "dump_reports",
    "load_reports",
    # Reporters
    "Reporter",
    "MemoryReporter",
    "RecentReporter",
    "collect_execution_reports",
    # Context
    "Bundle",
    "ExecutionContext",
    "background_context",
    "new_bundle",
    # Execution
    "execute_operation",
    "execute_sequence",
    "ExecuteConfig",
    "ExecuteOption",
    "RetryConfig",
    "RetryPolicy",
    "build_execute_config",
    "with_retry_config",
    # Errors
    "ExecutionFailedError",
    "ReportNotFoundError",
    "ReportStorageError",
    "UnrecoverableError",
    "is_unrecoverable",
    "new_unrecoverable_error",
]
