"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from stateflow_cli.config import StateflowConfig

pytestmark = pytest.mark.unit


def test_defaults(config):
    assert config.default_interval_seconds == 1.0
    assert config.default_backoff_rate == 2.0
    assert config.default_max_attempts == 3
    assert config.max_definition_bytes == 10 * 1024 * 1024
    assert config.log_level == "INFO"
    assert config.log_format == "console"


def test_environment_overrides(config, monkeypatch):
    monkeypatch.setenv("STATEFLOW_DEFAULT_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("STATEFLOW_DEFAULT_INTERVAL_SECONDS", "0.25")
    monkeypatch.setenv("STATEFLOW_LOG_FORMAT", "json")

    loaded = StateflowConfig(_env_file=None)  # type: ignore[call-arg]

    assert loaded.default_max_attempts == 5
    assert loaded.default_interval_seconds == 0.25
    assert loaded.log_format == "json"


def test_env_file_is_read(config, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("STATEFLOW_DEFAULT_BACKOFF_RATE=3\n", encoding="utf-8")

    loaded = StateflowConfig(_env_file=env_file)  # type: ignore[call-arg]

    assert loaded.default_backoff_rate == 3.0


def test_negative_retry_defaults_rejected(config):
    with pytest.raises(ValidationError):
        StateflowConfig(_env_file=None, default_max_attempts=-1)  # type: ignore[call-arg]


def test_max_steps_default_and_override(config, monkeypatch):
    assert config.max_steps == 1000

    monkeypatch.setenv("STATEFLOW_MAX_STEPS", "50")

    assert StateflowConfig(_env_file=None).max_steps == 50  # type: ignore[call-arg]
