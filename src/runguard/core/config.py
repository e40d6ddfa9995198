"""
Centralized settings and lane configuration for runguard.

Manifesto:
    Process-level knobs (database, logging, grace interval) come from
    ``RUNGUARD_*`` environment variables or a ``.env`` file through one
    cached :class:`RunGuardSettings`.  What a lane runs comes from a YAML
    file loaded once at start-up into :class:`GuardConfig`.

Example ``runguard.yaml``::

    modules:
      - myapp.consumers
    lanes:
      rabbitmq-consumers:
        enabled_key: project.rabbitmq_active
        state_key_prefix: project.rabbitmq
        units: [orders-queue, emails-queue]

Tags:
    configuration, settings, pydantic, yaml, runguard

Doc-Types:
    api-reference
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from runguard.core.errors import ConfigError

DEFAULT_LANE = "rabbitmq-consumers"


class RunGuardSettings(BaseSettings):
    """Process-level configuration.

    All fields can be set via ``RUNGUARD_*`` environment variables (e.g.
    ``RUNGUARD_GRACE_SECONDS=600``) or a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="RUNGUARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Storage ──────────────────────────────────────────────────
    database_path: str = Field(default=str(Path.home() / ".runguard" / "runguard.db"))
    config_file: str = Field(default="runguard.yaml")

    # ── Gate / execution ─────────────────────────────────────────
    grace_seconds: int = Field(default=300, ge=0)
    default_budget_seconds: int = Field(default=1, ge=1)

    # ── Scheduler ────────────────────────────────────────────────
    log_retention_days: int = Field(default=30, ge=1)

    # ── Logging / alerting ───────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")
    alert_webhook_url: str | None = Field(default=None)


_settings_cache: dict[str, RunGuardSettings] = {}


def get_settings(*, _force_reload: bool = False) -> RunGuardSettings:
    """Load, validate, and cache a :class:`RunGuardSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]
    settings = RunGuardSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


# ── Lane configuration ───────────────────────────────────────────────────


class LaneConfig(BaseModel):
    """One independently gated execution lane."""

    name: str
    enabled_key: str | None = None
    state_key_prefix: str = ""
    grace_seconds: int | None = Field(default=None, ge=0)
    units: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _default_prefix(self) -> LaneConfig:
        if not self.state_key_prefix:
            self.state_key_prefix = f"lane.{self.name}"
        return self

    @field_validator("units")
    @classmethod
    def _unique_units(cls, value: list[str]) -> list[str]:
        duplicates = sorted({u for u in value if value.count(u) > 1})
        if duplicates:
            raise ValueError(f"duplicate unit names: {', '.join(duplicates)}")
        return value

    def grace(self, default_seconds: int) -> timedelta:
        seconds = self.grace_seconds if self.grace_seconds is not None else default_seconds
        return timedelta(seconds=seconds)


class GuardConfig(BaseModel):
    """Static configuration loaded once at process start."""

    modules: list[str] = Field(default_factory=list)
    lanes: dict[str, LaneConfig] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _inject_lane_names(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("lanes"), dict):
            data = dict(data)
            data["lanes"] = {
                name: {**(body or {}), "name": name} for name, body in data["lanes"].items()
            }
        return data

    def lane(self, name: str) -> LaneConfig:
        try:
            return self.lanes[name]
        except KeyError:
            available = ", ".join(sorted(self.lanes)) or "none"
            raise ConfigError(f"Unknown lane: {name} (configured: {available})").with_context(lane=name) from None


def load_config(path: str | Path) -> GuardConfig:
    """Read a YAML config file into :class:`GuardConfig`.

    Raises:
        ConfigError: If the file is missing, is not valid YAML, or fails validation.
    """
    config_path = Path(path).expanduser()
    if not config_path.is_file():
        raise ConfigError(f"Config file not found: {config_path}")
    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}", cause=e) from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be a mapping: {config_path}")
    try:
        return GuardConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {config_path}: {e}", cause=e) from e


__all__ = [
    "DEFAULT_LANE",
    "RunGuardSettings",
    "get_settings",
    "clear_settings_cache",
    "LaneConfig",
    "GuardConfig",
    "load_config",
]
