"""Tests for opstrail.core.settings module.

Covers:
- Defaults match the reference retry policy
- OPSTRAIL_* environment overrides
- Validation of out-of-range values
- Conversion into a RetryPolicy
"""

import pytest
from pydantic import ValidationError

from opstrail.core.settings import OpstrailSettings, load_settings
from opstrail.operations import RetryPolicy


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch, tmp_path):
    # keep a developer's .env out of the tests
    monkeypatch.chdir(tmp_path)
    for name in (
        "OPSTRAIL_RETRY_ATTEMPTS",
        "OPSTRAIL_RETRY_BASE_DELAY",
        "OPSTRAIL_LOG_LEVEL",
        "OPSTRAIL_RETRY_MAX_DELAY",
    ):
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    def test_retry_defaults(self):
        s = OpstrailSettings()
        assert s.retry_attempts == 10
        assert s.retry_base_delay == 0.1
        assert s.retry_multiplier == 2.0
        assert s.retry_max_jitter == 0.1
        assert s.retry_max_delay is None

    def test_logging_defaults(self):
        s = OpstrailSettings()
        assert s.log_level == "INFO"
        assert s.log_json is None


class TestEnvOverride:
    def test_attempts_from_env(self, monkeypatch):
        monkeypatch.setenv("OPSTRAIL_RETRY_ATTEMPTS", "3")
        assert load_settings().retry_attempts == 3

    def test_max_delay_from_env(self, monkeypatch):
        monkeypatch.setenv("OPSTRAIL_RETRY_MAX_DELAY", "5.5")
        assert load_settings().retry_max_delay == 5.5

    def test_log_level_from_env(self, monkeypatch):
        monkeypatch.setenv("OPSTRAIL_LOG_LEVEL", "DEBUG")
        assert load_settings().log_level == "DEBUG"

    def test_env_file(self, tmp_path):
        (tmp_path / ".env").write_text("OPSTRAIL_RETRY_ATTEMPTS=4\n")
        assert load_settings().retry_attempts == 4

    def test_keyword_override_wins(self, monkeypatch):
        monkeypatch.setenv("OPSTRAIL_RETRY_ATTEMPTS", "3")
        assert load_settings(retry_attempts=7).retry_attempts == 7


class TestValidation:
    def test_zero_attempts_rejected(self):
        with pytest.raises(ValidationError):
            OpstrailSettings(retry_attempts=0)

    def test_negative_delay_rejected(self):
        with pytest.raises(ValidationError):
            OpstrailSettings(retry_base_delay=-1)


class TestRetryPolicyFromSettings:
    def test_maps_every_field(self):
        s = load_settings(
            retry_attempts=4,
            retry_base_delay=0.5,
            retry_multiplier=3.0,
            retry_max_jitter=0.0,
            retry_max_delay=2.0,
        )
        assert RetryPolicy.from_settings(s) == RetryPolicy(
            attempts=4, base_delay=0.5, multiplier=3.0, max_jitter=0.0, max_delay=2.0,
        )
