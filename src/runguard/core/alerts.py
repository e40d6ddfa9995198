"""
Alert forwarding for failed invocations.

Every error kind caught at the top of a cycle or dispatch (except a
throttled cycle, which is routine) is turned into an :class:`Alert` and
fanned out to the configured channels.

Design Principles:
- Protocol over inheritance: channels only need ``name``, ``min_severity``
  and ``send``
- Delivery never raises: a broken channel must not change the exit code
"""

from __future__ import annotations

import json
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from runguard.core.errors import RunGuardError
from runguard.core.logging import get_logger

logger = get_logger(__name__)


class AlertSeverity(str, Enum):
    """Alert severity levels."""

    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return list(AlertSeverity).index(self)


@dataclass
class Alert:
    """An alert to be sent to one or more channels."""

    severity: AlertSeverity
    title: str
    message: str
    source: str  # lane or "scheduler"

    error: RunGuardError | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_error(cls, error: RunGuardError, *, source: str, severity: AlertSeverity = AlertSeverity.ERROR) -> Alert:
        return cls(
            severity=severity,
            title=type(error).__name__,
            message=error.message,
            source=source,
            error=error,
            metadata=dict(error.context),
        )

    def to_dict(self) -> dict[str, Any]:
        result = {
            "severity": self.severity.value,
            "title": self.title,
            "message": self.message,
            "source": self.source,
            "created_at": self.created_at.isoformat(),
        }
        if self.error:
            result["error"] = self.error.to_dict()
        if self.metadata:
            result["metadata"] = self.metadata
        return result


@runtime_checkable
class AlertChannel(Protocol):
    """Protocol for alert channels."""

    name: str
    min_severity: AlertSeverity

    def send(self, alert: Alert) -> bool: ...


class LogChannel:
    """Writes alerts as structured log events."""

    def __init__(self, name: str = "log", *, min_severity: AlertSeverity = AlertSeverity.WARNING) -> None:
        self.name = name
        self.min_severity = min_severity

    def send(self, alert: Alert) -> bool:
        log = logger.error if alert.severity.rank >= AlertSeverity.ERROR.rank else logger.warning
        log("alert", **alert.to_dict())
        return True


class WebhookChannel:
    """POSTs the alert as JSON to a URL."""

    def __init__(
        self,
        url: str,
        name: str = "webhook",
        *,
        min_severity: AlertSeverity = AlertSeverity.ERROR,
        timeout_seconds: float = 5.0,
    ) -> None:
        self.url = url
        self.name = name
        self.min_severity = min_severity
        self.timeout_seconds = timeout_seconds

    def send(self, alert: Alert) -> bool:
        body = json.dumps(alert.to_dict(), default=str).encode("utf-8")
        request = urllib.request.Request(
            self.url,
            data=body,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with urllib.request.urlopen(request, timeout=self.timeout_seconds) as response:
                ok = 200 <= response.status < 300
        except (urllib.error.URLError, TimeoutError, OSError) as e:
            logger.warning("alert.webhook_failed", channel=self.name, error=str(e))
            return False
        if not ok:
            logger.warning("alert.webhook_rejected", channel=self.name)
        return ok


class Alerter:
    """Fans an alert out to every channel whose ``min_severity`` admits it."""

    def __init__(self, channels: list[AlertChannel] | None = None) -> None:
        self.channels: list[AlertChannel] = channels if channels is not None else [LogChannel()]

    def send(self, alert: Alert) -> int:
        """Deliver ``alert``; returns how many channels accepted it."""
        delivered = 0
        for channel in self.channels:
            if alert.severity.rank < channel.min_severity.rank:
                continue
            if channel.send(alert):
                delivered += 1
        return delivered

    def error(self, error: RunGuardError, *, source: str) -> int:
        return self.send(Alert.from_error(error, source=source))


def build_alerter(webhook_url: str | None = None) -> Alerter:
    """Log channel always, plus a webhook channel when a URL is configured."""
    channels: list[AlertChannel] = [LogChannel()]
    if webhook_url:
        channels.append(WebhookChannel(webhook_url))
    return Alerter(channels)


__all__ = [
    "AlertSeverity",
    "Alert",
    "AlertChannel",
    "LogChannel",
    "WebhookChannel",
    "Alerter",
    "build_alerter",
]
