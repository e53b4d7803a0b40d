"""Structured logging configuration for Clinidraft.

Events are emitted through structlog and written by a single stdlib
handler on the root logger (stdout, or a size-rotated file). Every event
carries the request correlation ID and the bound intake ID when set.
Values under patient-identifying keys are redacted before rendering.

Example usage:
    >>> from clinidraft.config import LoggingConfig
    >>> from clinidraft.logging import setup_logging, get_logger, bind_intake_context
    >>>
    >>> setup_logging(LoggingConfig(level="INFO", format="json"))
    >>> logger = get_logger(__name__)
    >>> bind_intake_context(intake_id="3f0c...")
    >>> logger.info("draft_generation_started", force=False)
"""

from __future__ import annotations

import contextvars
import logging
import logging.handlers
import sys
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog

from clinidraft.config import LoggingConfig

if TYPE_CHECKING:
    from collections.abc import Iterator

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)


def add_correlation_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add correlation_id to log event if set in context.

    Args:
        logger: Logger instance (unused, required by structlog protocol)
        method_name: Log method name (unused, required by structlog protocol)
        event_dict: Current event dictionary to augment

    Returns:
        Event dictionary with correlation_id added if available
    """
    correlation_id = _correlation_id.get()
    if correlation_id is not None:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def set_correlation_id(correlation_id: str | None) -> None:
    """Set correlation ID for current context."""
    _correlation_id.set(correlation_id)


def get_correlation_id() -> str | None:
    """Get current correlation ID from context."""
    return _correlation_id.get()


@contextmanager
def correlation_scope(correlation_id: str) -> Iterator[str]:
    """Set the correlation ID for the block, restoring the previous one after.

    Args:
        correlation_id: ID to attach to every event logged inside the block

    Yields:
        The correlation ID
    """
    token = _correlation_id.set(correlation_id)
    try:
        yield correlation_id
    finally:
        _correlation_id.reset(token)


def bind_intake_context(intake_id: str) -> None:
    """Bind the intake being processed to all subsequent logs.

    The binding lives in structlog's contextvars, so each asyncio task
    spawned afterwards inherits it.

    Args:
        intake_id: Intake identifier to bind
    """
    structlog.contextvars.bind_contextvars(intake_id=intake_id)


REDACTED = "[redacted]"

# Event keys that may carry patient-identifying or free-text clinical data
SENSITIVE_KEYS = frozenset(
    {"patient_name", "full_name", "date_of_birth", "answers", "prompt", "raw_output"}
)


def redact_sensitive(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Replace values of patient-identifying keys before rendering."""
    for key in SENSITIVE_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def _build_handler(config: LoggingConfig) -> logging.Handler:
    if config.file is None:
        return logging.StreamHandler(sys.stdout)

    config.file.parent.mkdir(parents=True, exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        filename=config.file,
        maxBytes=config.rotation_size_mb * 1024 * 1024,
        backupCount=config.retention_count,
        encoding="utf-8",
    )


def _build_renderer(log_format: str) -> Any:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def setup_logging(config: LoggingConfig) -> None:
    """Configure structlog and the root stdlib handler.

    Replaces any previously installed root handlers.

    Args:
        config: Logging configuration from ClinidraftConfig
    """
    log_level = getattr(logging, config.level)

    handler = _build_handler(config)
    handler.setLevel(log_level)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_correlation_id,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            redact_sensitive,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _build_renderer(config.format),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Configured structlog BoundLogger instance
    """
    return structlog.get_logger(name)
