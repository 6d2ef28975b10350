"""Bundle — the execution context threaded through every call.

A :class:`Bundle` carries everything an operation or sequence needs from
its surroundings: a logger, a context provider with a cancellation signal,
the reporter that receives reports and the retry policy. It is passed
explicitly to every handler; nothing is looked up from module globals.

.. code-block:: text

    Bundle
    ├── .logger         → structlog logger
    ├── .get_context()  → ExecutionContext (cancel(), cancelled, wait())
    ├── .reporter       → Reporter receiving reports
    └── .retry_policy   → RetryPolicy used by execute_operation

Example:
    >>> bundle = new_bundle(background_context, get_logger(__name__), MemoryReporter())
    >>> report = execute_operation(bundle, plus1, None, 1)
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any

from opstrail.core.logging import get_logger
from opstrail.core.settings import OpstrailSettings
from opstrail.operations.reporter import Reporter
from opstrail.operations.retry import RetryPolicy


class ExecutionContext:
    """Cancellation signal shared by the handlers of one run.

    Handlers may poll ``cancelled``; the retry loop waits on it between
    attempts so a cancelled run stops retrying.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block up to ``timeout`` seconds; True if cancelled meanwhile."""
        return self._event.wait(timeout)


def background_context() -> ExecutionContext:
    """Return a fresh context that is never cancelled unless asked to."""
    return ExecutionContext()


@dataclass(frozen=True)
class Bundle:
    """Execution context passed to every handler."""

    logger: Any
    get_context: Callable[[], ExecutionContext]
    reporter: Reporter
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)

    def with_reporter(self, reporter: Reporter) -> Bundle:
        """Return a copy of this bundle bound to ``reporter``."""
        return replace(self, reporter=reporter)


def new_bundle(
    get_context: Callable[[], ExecutionContext] | None,
    logger: Any,
    reporter: Reporter,
    *,
    retry_policy: RetryPolicy | None = None,
    settings: OpstrailSettings | None = None,
) -> Bundle:
    """Create a bundle.

    Args:
        get_context: Context provider; ``background_context`` when None.
        logger: Structured logger; ``get_logger("opstrail")`` when None.
        reporter: Reporter receiving every report.
        retry_policy: Explicit retry policy. Takes precedence over settings.
        settings: Settings the retry policy is derived from when no policy
            is given.
    """
    if retry_policy is None:
        retry_policy = RetryPolicy.from_settings(settings) if settings else RetryPolicy()
    return Bundle(
        logger=logger if logger is not None else get_logger("opstrail"),
        get_context=get_context or background_context,
        reporter=reporter,
        retry_policy=retry_policy,
    )
