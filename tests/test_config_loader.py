"""
Tests for SLAConfigManager YAML loading and for process settings.
"""
from datetime import date, time
from pathlib import Path

import pytest

from src.config import Priority, Settings, SLAKind, WorkOrderType
from src.core.exceptions import ConfigurationException
from src.sla.infrastructure import SLAConfigManager

REPO_CONFIG = Path(__file__).resolve().parent.parent / "sla_config.yaml"


def _write(tmp_path, text):
    path = tmp_path / "sla_config.yaml"
    path.write_text(text)
    return path


class TestSLAConfigManager:
    """Loads once, fails loudly."""

    def test_repository_config_loads(self):
        config = SLAConfigManager().load(REPO_CONFIG)
        assert config.calendar.timezone == "Asia/Ho_Chi_Minh"
        assert date(2025, 4, 30) in config.calendar.holidays
        assert config.resolve_budget(Priority.HIGH, WorkOrderType.BREAKDOWN, SLAKind.COMPLETION).minutes == 24 * 60

    def test_repository_config_matches_defaults(self):
        """The shipped YAML restates the built-in budgets."""
        from src.sla.domain import SLAConfig

        loaded = SLAConfigManager().load(REPO_CONFIG)
        defaults = SLAConfig()
        assert loaded.priorities == defaults.priorities
        assert loaded.type_overrides == defaults.type_overrides
        assert loaded.escalation == defaults.escalation

    def test_partial_file_keeps_defaults(self, tmp_path):
        path = _write(tmp_path, """
calendar:
  working_days: [0, 1, 2, 3, 4]
  start: "07:30"
priorities:
  Medium:
    response: {minutes: 180}
    completion: {hours: 36}
""")
        manager = SLAConfigManager()
        config = manager.load(path)

        assert manager.get_config() is config
        assert config.calendar.working_days == [0, 1, 2, 3, 4]
        assert config.calendar.start == time(7, 30)
        assert config.calendar.end == time(17, 0)
        assert config.priorities[Priority.MEDIUM].completion.minutes == 36 * 60
        assert config.warning_threshold == 0.8

    def test_missing_file_gives_defaults(self, tmp_path):
        config = SLAConfigManager().load(tmp_path / "absent.yaml")
        assert config.fallback_priority == Priority.MEDIUM
        assert config.calendar.working_days == [0, 1, 2, 3, 4, 5]

    def test_empty_file_gives_defaults(self, tmp_path):
        config = SLAConfigManager().load(_write(tmp_path, ""))
        assert Priority.EMERGENCY in config.priorities

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ConfigurationException) as exc:
            SLAConfigManager().load(_write(tmp_path, "calendar: [unclosed"))
        assert "path" in exc.value.details

    def test_not_a_mapping(self, tmp_path):
        with pytest.raises(ConfigurationException):
            SLAConfigManager().load(_write(tmp_path, "- 1\n- 2\n"))

    def test_unknown_priority_key(self, tmp_path):
        path = _write(tmp_path, """
priorities:
  Urgent:
    response: {minutes: 5}
    completion: {minutes: 60}
""")
        with pytest.raises(ConfigurationException) as exc:
            SLAConfigManager().load(path)
        assert exc.value.details["errors"]

    def test_unknown_field(self, tmp_path):
        with pytest.raises(ConfigurationException):
            SLAConfigManager().load(_write(tmp_path, "business_hours: 9-5\n"))

    def test_empty_week_rejected_at_load(self, tmp_path):
        with pytest.raises(ConfigurationException):
            SLAConfigManager().load(_write(tmp_path, "calendar:\n  working_days: []\n"))

    def test_config_before_load(self):
        with pytest.raises(RuntimeError):
            SLAConfigManager().config


class TestSettings:
    """Environment-driven process settings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        settings = Settings(_env_file=None)
        assert settings.sla_sweep_interval_seconds == 900
        assert settings.sla_config_path == Path("sla_config.yaml")

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("SLA_SWEEP_INTERVAL_SECONDS", "60")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        settings = Settings(_env_file=None)
        assert settings.sla_sweep_interval_seconds == 60
        assert settings.log_level == "DEBUG"

    def test_bad_environment(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "qa")
        with pytest.raises(ValueError):
            Settings(_env_file=None)
