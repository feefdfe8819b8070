"""Tests for sheet_relay.config -- env-var config loading and validation.

NOT to be confused with test_config_loader.py (hierarchical YAML config)
or test_config_schema.py (Pydantic models). This tests the runtime
settings path: validate_config() and load_config().
"""

import logging
from pathlib import Path

import pytest

from sheet_relay.config import RuntimeConfig, load_config, validate_config

# -------------------------------------------------------------------------
# validate_config()
# -------------------------------------------------------------------------


def _runtime(tmp_path, **kwargs) -> RuntimeConfig:
    kwargs.setdefault("workbook", tmp_path / "wb.json")
    kwargs.setdefault("lock_file", tmp_path / "wb.json.lock")
    kwargs.setdefault("audit_log", tmp_path / "audit.jsonl")
    return RuntimeConfig(**kwargs)


class TestValidateConfig:
    """Tests for validate_config() -- path and range checks."""

    def test_valid_config(self, tmp_path):
        validate_config(_runtime(tmp_path))

    def test_workbook_directory_rejected(self, tmp_path):
        with pytest.raises(ValueError, match="path is a directory"):
            validate_config(_runtime(tmp_path, workbook=tmp_path))

    def test_lock_file_cannot_be_workbook(self, tmp_path):
        config = _runtime(tmp_path, lock_file=tmp_path / "wb.json")
        with pytest.raises(ValueError, match="Lock file cannot be the workbook"):
            validate_config(config)

    def test_blank_user_rejected(self, tmp_path):
        with pytest.raises(ValueError, match="user cannot be empty"):
            validate_config(_runtime(tmp_path, user="   "))

    def test_user_is_stripped(self, tmp_path):
        config = _runtime(tmp_path, user="  ann ")
        validate_config(config)
        assert config.user == "ann"

    @pytest.mark.parametrize("timeout", [0, -1, 301])
    def test_timeout_out_of_range(self, tmp_path, timeout):
        with pytest.raises(ValueError, match="Invalid lock timeout"):
            validate_config(_runtime(tmp_path, lock_timeout=timeout))

    def test_zero_attempts_rejected(self, tmp_path):
        with pytest.raises(ValueError, match="max_attempts"):
            validate_config(_runtime(tmp_path, max_attempts=0))

    def test_long_timeout_warns(self, tmp_path, caplog):
        """Timeouts above a minute are allowed but logged."""
        with caplog.at_level(logging.WARNING):
            validate_config(_runtime(tmp_path, lock_timeout=120))
        assert "unusually long" in caplog.text


# -------------------------------------------------------------------------
# load_config()
# -------------------------------------------------------------------------


class TestLoadConfig:
    """Tests for load_config() precedence and defaults."""

    def test_missing_workbook_raises(self):
        with pytest.raises(ValueError, match="Workbook not found"):
            load_config()

    def test_defaults_derived_from_workbook(self, tmp_path):
        config = load_config(workbook=str(tmp_path / "wb.json"))

        assert config.workbook == tmp_path / "wb.json"
        assert config.lock_file == tmp_path / "wb.json.lock"
        assert config.audit_log == tmp_path / "audit.jsonl"
        assert config.user == "system"
        assert config.lock_timeout == 5.0
        assert config.max_attempts == 3
        assert config.debug is False

    def test_env_vars_used(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SHEET_RELAY_WORKBOOK", str(tmp_path / "env.json"))
        monkeypatch.setenv("SHEET_RELAY_USER", "ops")
        monkeypatch.setenv("SHEET_RELAY_LOCK_TIMEOUT", "2.5")
        monkeypatch.setenv("SHEET_RELAY_DEBUG", "yes")

        config = load_config()

        assert config.workbook == tmp_path / "env.json"
        assert config.user == "ops"
        assert config.lock_timeout == 2.5
        assert config.debug is True

    def test_cli_beats_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SHEET_RELAY_WORKBOOK", str(tmp_path / "env.json"))
        monkeypatch.setenv("SHEET_RELAY_LOCK_TIMEOUT", "2.5")

        config = load_config(workbook=str(tmp_path / "cli.json"), lock_timeout=9)

        assert config.workbook == tmp_path / "cli.json"
        assert config.lock_timeout == 9.0

    def test_env_beats_yaml(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SHEET_RELAY_USER", "env-user")
        config = load_config(
            yaml_fallbacks={
                "workbook": str(tmp_path / "yaml.json"),
                "user": "yaml-user",
            }
        )
        assert config.user == "env-user"
        assert config.workbook == tmp_path / "yaml.json"

    def test_yaml_fallbacks_used(self, tmp_path):
        config = load_config(
            yaml_fallbacks={
                "workbook": str(tmp_path / "yaml.json"),
                "audit_log": str(tmp_path / "logs" / "a.jsonl"),
                "lock_timeout": 12,
                "max_attempts": 5,
                "initial_delay": 0.1,
            }
        )
        assert config.audit_log == tmp_path / "logs" / "a.jsonl"
        assert config.lock_timeout == 12.0
        assert config.max_attempts == 5
        assert config.initial_delay == 0.1

    def test_bad_timeout_env_raises(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SHEET_RELAY_LOCK_TIMEOUT", "soon")
        with pytest.raises(ValueError, match="SHEET_RELAY_LOCK_TIMEOUT"):
            load_config(workbook=str(tmp_path / "wb.json"))

    def test_home_is_expanded(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        config = load_config(workbook="~/wb.json")
        assert config.workbook == Path(tmp_path) / "wb.json"
