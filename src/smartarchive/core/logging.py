"""Structured logging using structlog.

Loggers emit snake_case events with key/value context:

    >>> from smartarchive.core.logging import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("batch_resolved", batch=1, resolved=9, unresolved=1)

configure_logging() is called once by the application entry point. Until then
structlog's defaults apply, which is what the test suite runs with.
"""

from __future__ import annotations

import logging
import re
import sys
from typing import Any, MutableMapping

import structlog
from structlog.types import EventDict, Processor

SENSITIVE_PATTERNS = [
    re.compile(r".*password.*", re.IGNORECASE),
    re.compile(r".*token.*", re.IGNORECASE),
    re.compile(r".*api_key.*", re.IGNORECASE),
    re.compile(r".*secret.*", re.IGNORECASE),
]

REDACTED_VALUE = "[REDACTED]"


def sanitize_for_logging(data: MutableMapping[str, Any]) -> dict[str, Any]:
    """Redact values whose keys look like credentials.

    >>> sanitize_for_logging({"api_key": "sk-123", "credential": "credential-1"})
    {'api_key': '[REDACTED]', 'credential': 'credential-1'}
    """
    sanitized: dict[str, Any] = {}
    for key, value in data.items():
        if any(pattern.match(key) for pattern in SENSITIVE_PATTERNS):
            sanitized[key] = REDACTED_VALUE
        elif isinstance(value, dict):
            sanitized[key] = sanitize_for_logging(value)
        else:
            sanitized[key] = value
    return sanitized


def sanitization_processor(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> MutableMapping[str, Any]:
    return sanitize_for_logging(event_dict)


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Route structlog through stdlib logging with the given level and renderer."""
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level, force=True)

    renderer: Processor = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )
    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        sanitization_processor,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        renderer,
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Return a structlog logger for the calling module."""
    return structlog.get_logger(name)
