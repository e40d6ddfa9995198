"""
Structured logging for runguard.

Configuration is read from arguments or environment variables:
- RUNGUARD_LOG_LEVEL: DEBUG | INFO | WARNING | ERROR (default: INFO)
- RUNGUARD_LOG_FORMAT: json | console (default: console)

Logs go to stderr so that the per-unit lines a cycle prints on stdout stay
machine-readable for the cron wrapper.

Usage:
    from runguard.core.logging import configure_logging, get_logger, bind_context

    configure_logging()
    log = get_logger(__name__)

    bind_context(lane="rabbitmq-consumers")
    log.info("cycle.started", units=3)
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any, Literal

import structlog
from structlog.types import Processor

_configured = False


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | str | None = None,
    format: Literal["json", "console"] | str | None = None,
    force: bool = False,
) -> None:
    """
    Configure structured logging for the process.

    Should be called once at start-up (the CLI root callback does it).
    Subsequent calls are no-ops unless ``force=True``.

    Args:
        level: Log level (overrides RUNGUARD_LOG_LEVEL)
        format: Output format (overrides RUNGUARD_LOG_FORMAT)
        force: Reconfigure even if already configured
    """
    global _configured

    if _configured and not force:
        return

    log_level = (level or os.environ.get("RUNGUARD_LOG_LEVEL", "INFO")).upper()
    log_format = (format or os.environ.get("RUNGUARD_LOG_FORMAT", "console")).lower()
    level_num = getattr(logging, log_level, logging.INFO)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level_num,
        force=True,
    )
    logging.getLogger("runguard").setLevel(level_num)

    _configured = True


def get_logger(name: str | None = None) -> Any:
    """Get a structlog bound logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs of this invocation."""
    structlog.contextvars.bind_contextvars(**{k: v for k, v in kwargs.items() if v is not None})


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all bound context."""
    structlog.contextvars.clear_contextvars()


def is_configured() -> bool:
    """Check if logging has been configured."""
    return _configured
