"""
Shared pytest fixtures and configuration for runguard tests.

This module provides:
- In-memory SQLite connection and settings store
- A registry and lane configuration for the default consumer lane
- A controllable clock for gate/grace tests

Usage:
    Fixtures are auto-discovered by pytest; request them as arguments.

    def test_something(runner, lane, clock):
        ...
"""

import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

# Ensure runguard package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from runguard.core.alerts import Alerter, AlertSeverity
from runguard.core.config import LaneConfig, clear_settings_cache
from runguard.core.connection import SqliteConnection
from runguard.core.run_state import RunStateStore
from runguard.core.settings_store import SqliteSettingsStore
from runguard.framework.registry import UnitRegistry
from runguard.framework.runner import CycleRunner


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        # CLI tests touch a real SQLite file end to end
        if "cli" in test_path.parts or "integration" in str(test_path):
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Settings Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch, tmp_path):
    """Keep every test away from ~/.runguard and a developer's .env."""
    monkeypatch.setenv("RUNGUARD_DATABASE_PATH", str(tmp_path / "runguard.db"))
    monkeypatch.setenv("RUNGUARD_CONFIG_FILE", str(tmp_path / "runguard.yaml"))
    monkeypatch.delenv("RUNGUARD_ALERT_WEBHOOK_URL", raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Clock
# =============================================================================


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def t0() -> datetime:
    """10:00:00 UTC on a fixed day."""
    return datetime(2024, 3, 1, 10, 0, 0, tzinfo=UTC)


@pytest.fixture
def clock(t0) -> FixedClock:
    return FixedClock(t0)


# =============================================================================
# Storage
# =============================================================================


@pytest.fixture
def conn():
    """In-memory SQLite connection, closed after the test."""
    connection = SqliteConnection(":memory:")
    yield connection
    connection.close()


@pytest.fixture
def store(conn) -> SqliteSettingsStore:
    return SqliteSettingsStore(conn)


# =============================================================================
# Lane / Registry / Runner
# =============================================================================


@pytest.fixture
def lane() -> LaneConfig:
    """Consumer lane with a feature flag and two default units."""
    return LaneConfig(
        name="rabbitmq-consumers",
        enabled_key="project.rabbitmq_active",
        state_key_prefix="project.rabbitmq",
        units=["orders-queue", "emails-queue"],
    )


@pytest.fixture
def enabled_store(store, lane) -> SqliteSettingsStore:
    store.save_setting(lane.enabled_key, "1")
    return store


@pytest.fixture
def run_state(store, lane) -> RunStateStore:
    return RunStateStore(store, lane.state_key_prefix)


@pytest.fixture
def calls() -> list:
    """Records (unit name, budget) for every unit invocation."""
    return []


@pytest.fixture
def registry(calls) -> UnitRegistry:
    reg = UnitRegistry()

    @reg.unit("orders-queue")
    def orders(budget_seconds):
        calls.append(("orders-queue", budget_seconds))

    @reg.unit("emails-queue")
    def emails(budget_seconds):
        calls.append(("emails-queue", budget_seconds))

    return reg


class RecordingChannel:
    """Alert channel that keeps every alert it receives."""

    def __init__(self) -> None:
        self.name = "recording"
        self.min_severity = AlertSeverity.INFO
        self.alerts = []

    def send(self, alert) -> bool:
        self.alerts.append(alert)
        return True


@pytest.fixture
def alert_channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def alerter(alert_channel) -> Alerter:
    return Alerter([alert_channel])


@pytest.fixture
def runner(enabled_store, registry, alerter, clock) -> CycleRunner:
    return CycleRunner(enabled_store, registry, alerter=alerter, clock=clock)
