"""Structured logging configuration with redaction support."""

import logging
import sys
from typing import Any, Dict, Optional, TextIO

import structlog

SENSITIVE_KEYS = {
    "api_key",
    "openai_api_key",
    "elevenlabs_api_key",
    "xi-api-key",
    "xi_api_key",
    "authorization",
    "secret",
    "password",
}


def redact_sensitive(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """Redact provider credentials and other secrets from log entries."""
    for key in list(event_dict.keys()):
        key_lower = key.lower()
        if any(sensitive in key_lower for sensitive in SENSITIVE_KEYS):
            event_dict[key] = "REDACTED"

    return event_dict


def configure_logging(log_level: str = "INFO", stream: Optional[TextIO] = None) -> None:
    """Configure structlog for JSON output with correlation/job ID support.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        stream: Where log lines go; defaults to stdout
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=level,
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_sensitive,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(stream),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a configured logger, optionally bound to a logger name."""
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger_name=name)
    return logger
