"""Executing operations and sequences.

``execute_operation`` runs a leaf operation under the retry policy and
stores one report for the whole call. ``execute_sequence`` runs a
composite handler against a scoped bundle whose reporter captures the
reports the handler produces, then stores the sequence's own report next
to them with their IDs as children.

Both return the report on success. Failures raise:

- ``ExecutionFailedError``: the handler ultimately failed. The report was
  stored and is on ``.report``; ``report.err`` is the handler error.
- ``ReportStorageError``: the reporter refused the report (or, for
  sequences, could not read the subtree back). The built report is on
  ``.report``; its ``err`` still reflects only the handler outcome.

Example:
    >>> report = execute_operation(bundle, plus1, None, 1)
    >>> report.output
    2
"""

from __future__ import annotations

from typing import Any, TypeVar

from opstrail.core.errors import ExecutionFailedError, ReportStorageError
from opstrail.operations.bundle import Bundle
from opstrail.operations.definition import Operation, Sequence
from opstrail.operations.report import Report, SequenceReport, generic_report, new_report
from opstrail.operations.reporter import RecentReporter
from opstrail.operations.retry import (
    ExecuteOption,
    build_execute_config,
    run_once,
    run_with_retry,
)

IN = TypeVar("IN")
OUT = TypeVar("OUT")
DEP = TypeVar("DEP")


def execute_operation(
    bundle: Bundle,
    operation: Operation[IN, OUT, DEP],
    deps: DEP,
    input: IN,
    *options: ExecuteOption,
) -> Report[IN, OUT]:
    """Execute an operation with the given dependencies and input.

    By default the handler is retried up to ``bundle.retry_policy.attempts``
    times with exponential backoff. Pass ``with_retry_config(...)`` to
    disable retries or to adjust the input between attempts. A handler
    stops the retries early by raising ``new_unrecoverable_error(err)``.

    Raises:
        ExecutionFailedError: The handler failed on its last attempt, or
            the input hook raised after a failed attempt. Either way the
            report holds the handler error; a hook error is the cause.
        ReportStorageError: The report could not be stored.
    """
    config = build_execute_config(options)
    retry_config = config.retry_config
    definition = operation.definition
    log = bundle.logger.bind(operation=definition.id, version=str(definition.version))

    def attempt(attempt_input: IN) -> OUT:
        return operation.execute(bundle, deps, attempt_input)

    if retry_config.disable_retry:
        outcome = run_once(attempt, input)
    else:
        ctx = bundle.get_context()

        def on_retry(attempt_no: int, error: Exception, delay: float) -> None:
            log.warning(
                "operation_retrying",
                attempt=attempt_no,
                error=str(error),
                delay=round(delay, 3),
            )

        outcome = run_with_retry(
            attempt,
            input,
            deps,
            policy=bundle.retry_policy,
            input_hook=retry_config.input_hook,
            wait=ctx.wait,
            on_retry=on_retry,
        )

    report = new_report(definition, input, outcome.output, outcome.error)
    _store(bundle, report, log)

    if outcome.hook_error is not None:
        log.error(
            "operation_input_hook_failed",
            report_id=report.id,
            attempts=outcome.attempts,
            error=str(report.err),
            hook_error=str(outcome.hook_error),
        )
        raise ExecutionFailedError(
            f"operation {definition.id} failed: {report.err} (input hook raised: {outcome.hook_error!r})",
            report=report,
            cause=outcome.hook_error,
        )

    if report.err is not None:
        log.error("operation_failed", report_id=report.id, attempts=outcome.attempts, error=str(report.err))
        raise ExecutionFailedError(
            f"operation {definition.id} failed: {report.err}",
            report=report,
            cause=report.err,
        )

    log.debug("operation_completed", report_id=report.id, attempts=outcome.attempts)
    return report


def execute_sequence(
    bundle: Bundle,
    sequence: Sequence[IN, OUT, DEP],
    deps: DEP,
    input: IN,
) -> SequenceReport[IN, OUT]:
    """Execute a sequence and return its report with the full execution subtree.

    The handler receives a bundle whose reporter records every report
    added through it; those become the sequence report's children. Nested
    sequences get their own recorder, so grandchildren stay attached to
    their own parent.

    A failing child operation does not abort the sequence; the handler
    decides whether to let the error propagate.

    Raises:
        ExecutionFailedError: The handler raised. The report (with its
            subtree) was stored and is on ``.report``.
        ReportStorageError: The report could not be stored or its subtree
            could not be read back.
    """
    definition = sequence.definition
    log = bundle.logger.bind(sequence=definition.id, version=str(definition.version))
    log.info("sequence_started", description=definition.description)

    recorder = RecentReporter(bundle.reporter)
    scoped = bundle.with_reporter(recorder)

    output: OUT | None = None
    error: Exception | None = None
    try:
        output = sequence.handler(scoped, deps, input)
    except Exception as e:
        error = e

    report = new_report(definition, input, output, error, *recorder.recent_report_ids())
    _store(bundle, report, log)

    try:
        execution_reports = bundle.reporter.get_execution_reports(report.id)
    except Exception as e:
        raise ReportStorageError(
            f"failed to read execution reports of {report.id}: {e}",
            report=report,
            cause=e,
        ) from e

    sequence_report = SequenceReport(
        id=report.id,
        definition=report.definition,
        input=report.input,
        output=report.output,
        timestamp=report.timestamp,
        err=report.err,
        child_operation_reports=report.child_operation_reports,
        execution_reports=tuple(execution_reports),
    )

    if error is not None:
        log.error("sequence_failed", report_id=report.id, error=str(error))
        raise ExecutionFailedError(
            f"sequence {definition.id} failed: {error}",
            report=sequence_report,
            cause=error,
        )

    log.info("sequence_completed", report_id=report.id, children=len(report.child_operation_reports))
    return sequence_report


def _store(bundle: Bundle, report: Report[Any, Any], log: Any) -> None:
    try:
        bundle.reporter.add_report(generic_report(report))
    except Exception as e:
        log.error("report_store_failed", report_id=report.id, error=str(e))
        raise ReportStorageError(
            f"failed to store report {report.id}: {e}",
            report=report,
            cause=e,
        ) from e
    log.debug("report_stored", report_id=report.id)
