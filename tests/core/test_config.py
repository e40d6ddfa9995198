"""Tests for runguard.core.config - settings and YAML lane config."""

from datetime import timedelta

import pytest

from runguard.core.config import (
    DEFAULT_LANE,
    GuardConfig,
    LaneConfig,
    RunGuardSettings,
    clear_settings_cache,
    get_settings,
    load_config,
)
from runguard.core.errors import ConfigError


class TestRunGuardSettings:
    """Environment-driven settings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("RUNGUARD_DATABASE_PATH")
        settings = RunGuardSettings(_env_file=None)
        assert settings.grace_seconds == 300
        assert settings.default_budget_seconds == 1
        assert settings.log_retention_days == 30
        assert settings.database_path.endswith("runguard.db")
        assert settings.alert_webhook_url is None

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("RUNGUARD_GRACE_SECONDS", "600")
        monkeypatch.setenv("RUNGUARD_LOG_FORMAT", "json")
        settings = RunGuardSettings(_env_file=None)
        assert settings.grace_seconds == 600
        assert settings.log_format == "json"

    def test_get_settings_cached(self):
        assert get_settings() is get_settings()
        first = get_settings()
        clear_settings_cache()
        assert get_settings() is not first


class TestLaneConfig:
    def test_default_state_prefix(self):
        assert LaneConfig(name="jobs").state_key_prefix == "lane.jobs"

    def test_explicit_prefix_kept(self):
        lane = LaneConfig(name="jobs", state_key_prefix="project.rabbitmq")
        assert lane.state_key_prefix == "project.rabbitmq"

    def test_grace_override(self):
        assert LaneConfig(name="a").grace(300) == timedelta(minutes=5)
        assert LaneConfig(name="a", grace_seconds=60).grace(300) == timedelta(minutes=1)

    def test_duplicate_units_rejected(self):
        with pytest.raises(ValueError, match="duplicate unit names: a"):
            LaneConfig(name="x", units=["a", "b", "a"])


class TestGuardConfig:
    def test_lane_names_injected(self):
        config = GuardConfig.model_validate({"lanes": {"jobs": {"units": ["a"]}, "empty": None}})
        assert config.lane("jobs").name == "jobs"
        assert config.lane("empty").units == []

    def test_unknown_lane(self):
        with pytest.raises(ConfigError, match="Unknown lane: nope"):
            GuardConfig().lane("nope")


class TestLoadConfig:
    def test_load(self, tmp_path):
        path = tmp_path / "runguard.yaml"
        path.write_text(
            "modules: [myapp.consumers]\n"
            "lanes:\n"
            f"  {DEFAULT_LANE}:\n"
            "    enabled_key: project.rabbitmq_active\n"
            "    state_key_prefix: project.rabbitmq\n"
            "    units: [orders-queue, emails-queue]\n"
        )
        config = load_config(path)
        assert config.modules == ["myapp.consumers"]
        lane = config.lane(DEFAULT_LANE)
        assert lane.enabled_key == "project.rabbitmq_active"
        assert lane.units == ["orders-queue", "emails-queue"]

    def test_empty_file(self, tmp_path):
        path = tmp_path / "runguard.yaml"
        path.write_text("")
        assert load_config(path).lanes == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Config file not found"):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "runguard.yaml"
        path.write_text("lanes: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "runguard.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="must be a mapping"):
            load_config(path)

    def test_validation_error(self, tmp_path):
        path = tmp_path / "runguard.yaml"
        path.write_text("lanes:\n  a:\n    grace_seconds: -5\n")
        with pytest.raises(ConfigError, match="Invalid config"):
            load_config(path)
