"""Environment-driven settings for opstrail.

``OpstrailSettings`` holds the retry policy defaults and logging options.
Values come from ``OPSTRAIL_*`` environment variables or a ``.env`` file.

Settings are loaded explicitly with :func:`load_settings` and handed to
whatever needs them (``new_bundle(settings=...)``, the CLI); there is no
process-wide settings object.

Examples:
    >>> from opstrail.core.settings import load_settings
    >>> settings = load_settings(retry_attempts=3)
    >>> settings.retry_attempts
    3
"""

from __future__ import annotations

from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class OpstrailSettings(BaseSettings):
    """Settings shared by the execution engine and the CLI.

    Fields
    ──────
    retry_attempts    : Handler invocations per execution when retry is enabled
    retry_base_delay  : First backoff delay in seconds
    retry_multiplier  : Exponential growth factor of the backoff delay
    retry_max_jitter  : Upper bound of the random jitter added to each delay
    retry_max_delay   : Cap on the exponential part of the delay (None = no cap)
    log_level         : Structlog log level
    log_json          : JSON logs (True), console logs (False), auto (None)
    """

    model_config = SettingsConfigDict(
        env_prefix="OPSTRAIL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Retry ────────────────────────────────────────────────────
    retry_attempts: int = Field(default=10, ge=1)
    retry_base_delay: float = Field(default=0.1, ge=0)
    retry_multiplier: float = Field(default=2.0, ge=1)
    retry_max_jitter: float = Field(default=0.1, ge=0)
    retry_max_delay: float | None = Field(default=None, ge=0)

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool | None = None


def load_settings(**overrides: Any) -> OpstrailSettings:
    """Load settings from the environment, applying keyword overrides."""
    return OpstrailSettings(**overrides)


__all__ = ["OpstrailSettings", "load_settings"]
