"""Retry policy, execute options and the attempt loop.

By default ``execute_operation`` invokes a failing handler up to 10 times
with exponential backoff and jitter between attempts. Callers shape a
single call with options:

    >>> execute_operation(bundle, op, deps, tx,
    ...                   with_retry_config(RetryConfig(input_hook=raise_limit)))

Options are pure functions ``ExecuteConfig -> ExecuteConfig`` reduced in
order over the defaults by :func:`build_execute_config`, so the result
never depends on hidden mutation.

Attempt loop::

    attempt 0 ── handler(input) ──ok──────────────────────────▶ output
                    │ error
                    ├─ unrecoverable? ───────────────────────▶ error
                    ├─ last attempt?  ───────────────────────▶ error
                    ├─ log, input = input_hook(input, deps)
                    └─ wait backoff (cancellable) ─cancelled─▶ error
    attempt 1 ── ...
"""

from __future__ import annotations

import random
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from functools import reduce
from typing import TYPE_CHECKING, Generic, TypeVar

from opstrail.core.errors import is_unrecoverable

if TYPE_CHECKING:
    from opstrail.core.settings import OpstrailSettings

IN = TypeVar("IN")
OUT = TypeVar("OUT")
DEP = TypeVar("DEP")

DEFAULT_ATTEMPTS = 10


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff with jitter.

    Delay before retry ``n`` (zero-based) is
    ``min(base_delay * multiplier ** n, max_delay) + uniform(0, max_jitter)``.

    Attributes:
        attempts: Total handler invocations allowed, first attempt included.
        base_delay: Delay before the first retry, in seconds.
        multiplier: Exponential growth factor.
        max_jitter: Upper bound of the random jitter, in seconds.
        max_delay: Cap on the exponential part (None = uncapped).
    """

    attempts: int = DEFAULT_ATTEMPTS
    base_delay: float = 0.1
    multiplier: float = 2.0
    max_jitter: float = 0.1
    max_delay: float | None = None

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError(f"attempts must be >= 1, got {self.attempts}")

    @classmethod
    def from_settings(cls, settings: OpstrailSettings) -> RetryPolicy:
        return cls(
            attempts=settings.retry_attempts,
            base_delay=settings.retry_base_delay,
            multiplier=settings.retry_multiplier,
            max_jitter=settings.retry_max_jitter,
            max_delay=settings.retry_max_delay,
        )

    def next_delay(self, attempt: int) -> float:
        """Delay in seconds before the retry following ``attempt`` (zero-based)."""
        delay = self.base_delay * (self.multiplier ** attempt)
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        if self.max_jitter > 0:
            delay += random.uniform(0, self.max_jitter)
        return delay


@dataclass(frozen=True)
class RetryConfig(Generic[IN, DEP]):
    """Per-call retry behaviour.

    Attributes:
        disable_retry: Invoke the handler exactly once.
        input_hook: ``input_hook(input, deps) -> input`` called after each
            failed attempt to produce the next attempt's input (e.g. to
            raise a gas limit). Ignored when ``disable_retry`` is set.
    """

    disable_retry: bool = False
    input_hook: Callable[[IN, DEP], IN] | None = None


@dataclass(frozen=True)
class ExecuteConfig(Generic[IN, DEP]):
    """Configuration of one ``execute_operation`` call."""

    retry_config: RetryConfig[IN, DEP] = field(default_factory=RetryConfig)


ExecuteOption = Callable[[ExecuteConfig], ExecuteConfig]


def with_retry_config(config: RetryConfig[IN, DEP]) -> ExecuteOption:
    """Option replacing the retry configuration."""

    def apply(current: ExecuteConfig) -> ExecuteConfig:
        return replace(current, retry_config=config)

    return apply


def build_execute_config(options: Iterable[ExecuteOption]) -> ExecuteConfig:
    """Reduce ``options`` in order over the default configuration."""
    return reduce(lambda config, option: option(config), options, ExecuteConfig())


@dataclass
class AttemptOutcome(Generic[OUT]):
    """Result of the attempt loop."""

    output: OUT | None = None
    error: Exception | None = None
    attempts: int = 0
    hook_error: Exception | None = None


def run_with_retry(
    call: Callable[[IN], OUT],
    input: IN,
    deps: DEP,
    *,
    policy: RetryPolicy,
    input_hook: Callable[[IN, DEP], IN] | None = None,
    wait: Callable[[float], bool] | None = None,
    on_retry: Callable[[int, Exception, float], None] | None = None,
) -> AttemptOutcome[OUT]:
    """Run ``call`` until it succeeds, fails unrecoverably or runs out of attempts.

    Args:
        call: One attempt; receives the input for that attempt.
        input: Input of the first attempt.
        deps: Passed to ``input_hook``.
        policy: Attempt budget and backoff.
        input_hook: Produces the next attempt's input after a failure.
        wait: Sleeps for the given delay; returns True to abort (cancelled).
        on_retry: Called with (attempt number, error, delay) before waiting.

    Returns:
        The last attempt's output or error. Errors are returned, not raised.
        A failing ``input_hook`` ends the loop; its error is kept on
        ``hook_error`` next to the handler error it followed.
    """
    if wait is None:
        wait = _never_cancelled_sleep

    current_input = input
    outcome: AttemptOutcome[OUT] = AttemptOutcome()
    for attempt in range(policy.attempts):
        outcome.attempts = attempt + 1
        try:
            outcome.output = call(current_input)
            outcome.error = None
            return outcome
        except Exception as e:
            outcome.output = None
            outcome.error = e

        if is_unrecoverable(outcome.error) or attempt + 1 >= policy.attempts:
            break

        delay = policy.next_delay(attempt)
        if on_retry is not None:
            on_retry(attempt + 1, outcome.error, delay)
        if input_hook is not None:
            try:
                current_input = input_hook(current_input, deps)
            except Exception as e:
                outcome.hook_error = e
                break
        if wait(delay):
            break

    return outcome


def run_once(call: Callable[[IN], OUT], input: IN) -> AttemptOutcome[OUT]:
    """Single attempt, used when retry is disabled."""
    try:
        return AttemptOutcome(output=call(input), attempts=1)
    except Exception as e:
        return AttemptOutcome(error=e, attempts=1)


def _never_cancelled_sleep(delay: float) -> bool:
    time.sleep(delay)
    return False
