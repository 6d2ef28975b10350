"""
Shared pytest fixtures for opstrail tests.

Provides:
- A fresh MemoryReporter per test
- A zero-delay retry policy so retry tests do not sleep
- A Bundle wired to both
"""

from __future__ import annotations

import pytest
import structlog

from opstrail.operations import Bundle, MemoryReporter, RetryPolicy, new_bundle


@pytest.fixture
def reporter() -> MemoryReporter:
    return MemoryReporter()


@pytest.fixture
def fast_policy() -> RetryPolicy:
    """Default attempt budget, no backoff delay."""
    return RetryPolicy(base_delay=0.0, max_jitter=0.0)


@pytest.fixture
def bundle(reporter: MemoryReporter, fast_policy: RetryPolicy) -> Bundle:
    return new_bundle(None, structlog.get_logger("tests"), reporter, retry_policy=fast_policy)
