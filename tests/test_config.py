"""Tests for centralized Config class."""
import importlib

import pytest

from hookgate import config as config_module
from hookgate.config import Config


ENV_KEYS = (
    "HOOKGATE_CONFIG",
    "HOOKGATE_FAIL_FAST",
    "HOOKGATE_LOG_LEVEL",
    "HOOKGATE_LOG_FILE",
    "HOOKGATE_AUDIT_LOG",
    "HOOKGATE_AUDIT_ROTATION_BYTES",
    "HOOKGATE_AUDIT_RETENTION_DAYS",
    "HOOKGATE_GIT_TIMEOUT",
)


@pytest.fixture
def reload_config(monkeypatch):
    """
    Reload the config module under a patched environment.

    The module's original Config class is put back afterwards, since other
    modules hold a reference to it.
    """
    monkeypatch.setattr(config_module, "Config", config_module.Config)

    def _reload(**env):
        for key in ENV_KEYS:
            monkeypatch.delenv(key, raising=False)
        for key, value in env.items():
            monkeypatch.setenv(key, value)
        return importlib.reload(config_module).Config

    return _reload


def test_config_defaults(reload_config):
    """Verify default configuration values."""
    config = reload_config()
    assert config.CONFIG_FILE == ".hookgate.yaml"
    assert config.FAIL_FAST is False
    assert config.LOG_LEVEL == "ERROR"
    assert config.AUDIT_LOG_PATH == ""
    assert config.AUDIT_RETENTION_DAYS == 30
    assert config.GIT_TIMEOUT == 30
    assert config.MAX_EXCERPT_LENGTH == 120


def test_config_environment_overrides(reload_config):
    """Environment variables override defaults."""
    config = reload_config(
        HOOKGATE_CONFIG="policy/rules.yaml",
        HOOKGATE_FAIL_FAST="yes",
        HOOKGATE_LOG_LEVEL="debug",
        HOOKGATE_GIT_TIMEOUT="5",
        HOOKGATE_AUDIT_LOG="/var/log/hookgate.jsonl",
    )
    assert config.CONFIG_FILE == "policy/rules.yaml"
    assert config.FAIL_FAST is True
    assert config.LOG_LEVEL == "DEBUG"
    assert config.GIT_TIMEOUT == 5
    assert config.AUDIT_LOG_PATH == "/var/log/hookgate.jsonl"


def test_config_invalid_integer(reload_config):
    """A non-numeric integer variable fails at import."""
    with pytest.raises(ValueError, match="HOOKGATE_GIT_TIMEOUT"):
        reload_config(HOOKGATE_GIT_TIMEOUT="soon")


def test_config_validation_passes():
    assert Config.validate() is True


def test_config_validation_fails_on_zero_timeout(monkeypatch):
    """Config.validate() should fail if the git timeout is not positive."""
    monkeypatch.setattr(Config, "GIT_TIMEOUT", 0)
    with pytest.raises(ValueError, match="GIT_TIMEOUT must be > 0"):
        Config.validate()


def test_config_validation_fails_on_unknown_log_level(monkeypatch):
    monkeypatch.setattr(Config, "LOG_LEVEL", "LOUD")
    with pytest.raises(ValueError, match="LOG_LEVEL must be one of"):
        Config.validate()


def test_config_validation_collects_all_errors(monkeypatch):
    """Every failing check is reported in one message."""
    monkeypatch.setattr(Config, "AUDIT_RETENTION_DAYS", -1)
    monkeypatch.setattr(Config, "MAX_EXCERPT_LENGTH", 0)
    monkeypatch.setattr(Config, "CONFIG_FILE", "")
    with pytest.raises(ValueError) as exc_info:
        Config.validate()
    message = str(exc_info.value)
    assert "AUDIT_RETENTION_DAYS must be >= 0" in message
    assert "MAX_EXCERPT_LENGTH must be > 0" in message
    assert "CONFIG_FILE must not be empty" in message


def test_config_zero_retention_allowed(monkeypatch):
    monkeypatch.setattr(Config, "AUDIT_RETENTION_DAYS", 0)
    assert Config.validate() is True
