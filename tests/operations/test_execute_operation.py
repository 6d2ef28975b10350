"""Tests for execute_operation."""

from __future__ import annotations

import time

import pytest
import structlog
from structlog.testing import capture_logs

from opstrail.core.errors import ExecutionFailedError, ReportStorageError, UnrecoverableError
from opstrail.operations import (
    ExecutionContext,
    MemoryReporter,
    RetryConfig,
    RetryPolicy,
    execute_operation,
    new_bundle,
    new_operation,
    new_unrecoverable_error,
    with_retry_config,
)


class ErrorReporter(MemoryReporter):
    """Reporter whose calls fail with the configured errors."""

    def __init__(self, add_error=None, execution_reports_error=None):
        super().__init__()
        self.add_error = add_error
        self.execution_reports_error = execution_reports_error

    def add_report(self, report):
        if self.add_error is not None:
            raise self.add_error
        super().add_report(report)

    def get_execution_reports(self, report_id):
        if self.execution_reports_error is not None:
            raise self.execution_reports_error
        return super().get_execution_reports(report_id)


class Plus1:
    """Handler that fails ``fail_times`` times before adding one."""

    def __init__(self, fail_times=2, unrecoverable=False):
        self.fail_times = fail_times
        self.unrecoverable = unrecoverable
        self.calls = []

    def __call__(self, bundle, deps, input):
        self.calls.append(input)
        if self.unrecoverable:
            raise new_unrecoverable_error(ValueError("fatal error"))
        if self.fail_times > 0:
            self.fail_times -= 1
            raise ValueError("test error")
        return input + 1


def _op(handler):
    return new_operation("plus1", "1.0.0", "test operation", handler)


@pytest.mark.parametrize(
    "options, unrecoverable, want_calls, want_output, want_err",
    [
        pytest.param((), False, 3, 2, None, id="DefaultRetry"),
        pytest.param(
            (with_retry_config(RetryConfig(disable_retry=True)),), False, 1, None, "test error",
            id="NoRetry",
        ),
        pytest.param(
            (with_retry_config(RetryConfig(input_hook=lambda input, deps: 5)),), False, 3, 6, None,
            id="NewInputHook",
        ),
        pytest.param((), True, 1, None, "fatal error", id="UnrecoverableError"),
    ],
)
def test_execute_operation(bundle, reporter, options, unrecoverable, want_calls, want_output, want_err):
    handler = Plus1(unrecoverable=unrecoverable)
    op = _op(handler)

    if want_err:
        with pytest.raises(ExecutionFailedError, match=want_err) as exc_info:
            execute_operation(bundle, op, None, 1, *options)
        report = exc_info.value.report
        assert want_err in str(report.err)
        assert report.output is None
    else:
        report = execute_operation(bundle, op, None, 1, *options)
        assert report.err is None
        assert report.output == want_output

    assert len(handler.calls) == want_calls
    assert reporter.get_report(report.id) == report


class TestRetrySemantics:
    def test_retry_bound(self, bundle):
        handler = Plus1(fail_times=1000)
        with pytest.raises(ExecutionFailedError, match="test error"):
            execute_operation(bundle, _op(handler), None, 1)
        assert len(handler.calls) == 10

    def test_retry_budget_from_bundle(self, reporter):
        bundle = new_bundle(None, None, reporter, retry_policy=RetryPolicy(attempts=4, base_delay=0, max_jitter=0))
        handler = Plus1(fail_times=1000)
        with pytest.raises(ExecutionFailedError):
            execute_operation(bundle, _op(handler), None, 1)
        assert len(handler.calls) == 4

    def test_unrecoverable_is_the_report_error(self, bundle):
        with pytest.raises(ExecutionFailedError) as exc_info:
            execute_operation(bundle, _op(Plus1(unrecoverable=True)), None, 1)
        assert isinstance(exc_info.value.report.err, UnrecoverableError)
        assert exc_info.value.__cause__ is exc_info.value.report.err

    def test_unrecoverable_wrapped_in_other_error(self, bundle):
        calls = []

        def handler(b, deps, input):
            calls.append(input)
            try:
                raise new_unrecoverable_error(ValueError("nonce too low"))
            except UnrecoverableError as e:
                raise RuntimeError("submit failed") from e

        with pytest.raises(ExecutionFailedError, match="submit failed"):
            execute_operation(bundle, _op(handler), None, 1)
        assert len(calls) == 1

    def test_failing_input_hook_records_handler_error(self, bundle, reporter):
        def hook(input, deps):
            raise KeyError("limit")

        handler = Plus1(fail_times=1000)
        option = with_retry_config(RetryConfig(input_hook=hook))
        with pytest.raises(ExecutionFailedError, match="test error") as exc_info:
            execute_operation(bundle, _op(handler), None, 1, option)
        assert handler.calls == [1]
        assert isinstance(exc_info.value.__cause__, KeyError)
        stored = reporter.get_report(exc_info.value.report.id)
        assert str(stored.err) == "test error"
        assert stored.input == 1

    def test_implicit_context_reraise_is_retried(self, bundle):
        calls = []

        def handler(b, deps, input):
            calls.append(input)
            try:
                raise new_unrecoverable_error(ValueError("nonce too low"))
            except UnrecoverableError:
                raise RuntimeError("submit failed")

        with pytest.raises(ExecutionFailedError, match="submit failed"):
            execute_operation(bundle, _op(handler), None, 1)
        assert len(calls) == 10

    def test_input_hook_increments(self, bundle):
        handler = Plus1(fail_times=2)
        hook = with_retry_config(RetryConfig(input_hook=lambda input, deps: input + deps))
        report = execute_operation(bundle, _op(handler), 10, 1, hook)
        assert handler.calls == [1, 11, 21]
        assert report.output == 22
        assert report.input == 1

    def test_input_hook_ignored_when_retry_disabled(self, bundle):
        hooked = []
        option = with_retry_config(RetryConfig(disable_retry=True, input_hook=lambda i, d: hooked.append(i)))
        with pytest.raises(ExecutionFailedError):
            execute_operation(bundle, _op(Plus1()), None, 1, option)
        assert hooked == []

    def test_handler_receives_bundle_and_deps(self, bundle):
        seen = {}

        def handler(b, deps, input):
            seen["bundle"] = b
            seen["deps"] = deps
            return input

        execute_operation(bundle, _op(handler), {"client": "x"}, 1)
        assert seen == {"bundle": bundle, "deps": {"client": "x"}}

    def test_cancelled_context_stops_retrying(self, reporter):
        ctx = ExecutionContext()
        ctx.cancel()
        bundle = new_bundle(lambda: ctx, None, reporter, retry_policy=RetryPolicy(base_delay=30.0))
        handler = Plus1(fail_times=1000)
        with pytest.raises(ExecutionFailedError, match="test error"):
            execute_operation(bundle, _op(handler), None, 1)
        assert len(handler.calls) == 1
        assert len(reporter) == 1

    @pytest.mark.slow
    def test_waits_real_backoff(self, reporter):
        policy = RetryPolicy(attempts=3, base_delay=0.05, multiplier=2.0, max_jitter=0.0)
        bundle = new_bundle(None, None, reporter, retry_policy=policy)
        started = time.monotonic()
        report = execute_operation(bundle, _op(Plus1(fail_times=2)), None, 1)
        assert report.output == 2
        assert time.monotonic() - started >= 0.14


class TestReports:
    def test_fresh_id_per_call(self, bundle, reporter):
        op = _op(lambda b, d, i: i)
        ids = {execute_operation(bundle, op, None, 1).id for _ in range(5)}
        assert len(ids) == 5
        assert len(reporter.get_reports()) == 5

    def test_report_fields(self, bundle):
        op = _op(lambda b, d, i: i * 2)
        report = execute_operation(bundle, op, None, 21)
        assert report.definition is op.definition
        assert report.input == 21
        assert report.output == 42
        assert report.child_operation_reports == ()

    def test_failed_report_is_stored(self, bundle, reporter):
        with pytest.raises(ExecutionFailedError) as exc_info:
            execute_operation(bundle, _op(Plus1(fail_times=1000)), None, 1)
        stored = reporter.get_report(exc_info.value.report.id)
        assert str(stored.err) == "test error"


class TestStorageFailure:
    def test_storage_error_surfaces_on_success(self):
        reporter = ErrorReporter(add_error=OSError("add report error"))
        bundle = new_bundle(None, None, reporter)
        with pytest.raises(ReportStorageError, match="add report error") as exc_info:
            execute_operation(bundle, _op(lambda b, d, i: i + 1), None, 1)
        report = exc_info.value.report
        assert report.err is None
        assert report.output == 2
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_storage_error_wins_over_handler_error(self, fast_policy):
        reporter = ErrorReporter(add_error=OSError("add report error"))
        bundle = new_bundle(None, None, reporter, retry_policy=fast_policy)
        with pytest.raises(ReportStorageError) as exc_info:
            execute_operation(bundle, _op(Plus1(unrecoverable=True)), None, 1)
        assert "fatal error" in str(exc_info.value.report.err)


class TestLogging:
    def test_retries_are_logged(self, reporter, fast_policy):
        bundle = new_bundle(None, structlog.get_logger("tests"), reporter, retry_policy=fast_policy)
        with capture_logs() as logs:
            execute_operation(bundle, _op(Plus1(fail_times=2)), None, 1)
        retries = [e for e in logs if e["event"] == "operation_retrying"]
        assert [e["attempt"] for e in retries] == [1, 2]
        assert all(e["operation"] == "plus1" for e in retries)
        assert retries[0]["error"] == "test error"
        assert retries[0]["log_level"] == "warning"

    def test_failure_is_logged(self, bundle):
        with capture_logs() as logs:
            with pytest.raises(ExecutionFailedError):
                execute_operation(bundle, _op(Plus1(unrecoverable=True)), None, 1)
        assert any(e["event"] == "operation_failed" for e in logs)
