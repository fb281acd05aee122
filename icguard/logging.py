"""
Structured logging for the validation core.

Configures structlog with JSON output for production and a console renderer
for development, and provides a helper for security events so that every
detection is logged with the same shape. Callers must only pass masked
previews of user input; raw values never reach the log.
"""

import logging
from enum import Enum
from typing import Any

import structlog


class SecurityEventType(Enum):
    """Security event types emitted by the scanner-backed validators."""
    SQL_INJECTION_ATTEMPT = "sql_injection_attempt"
    OS_COMMAND_ATTEMPT = "os_command_attempt"
    XSS_ATTEMPT = "xss_attempt"
    SUSPICIOUS_CARD_INPUT = "suspicious_card_input"


def configure_logging(level: str = "INFO", log_format: str = "json",
                      cache_loggers: bool = True) -> None:
    """
    Configure structlog for the application.

    Args:
        level: Minimum log level name (DEBUG, INFO, WARNING, ...)
        log_format: ``json`` for machine-readable output, ``console`` for
            coloured development output
        cache_loggers: Cache bound loggers on first use; switched off under
            test so log capture keeps seeing module-level loggers
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]

    if log_format == "console":
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=True)]
    else:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]

    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.WriteLoggerFactory(),
        cache_logger_on_first_use=cache_loggers,
    )


_security_logger = structlog.get_logger("icguard.security")


def log_security_event(event_type: SecurityEventType, severity: str = "medium", **details: Any) -> None:
    """
    Log a detected security event.

    Args:
        event_type: Kind of detection
        severity: low, medium, high or critical
        **details: Context such as field name and masked preview
    """
    _security_logger.warning(
        "Security event detected",
        event_type=event_type.value,
        severity=severity,
        **details
    )
