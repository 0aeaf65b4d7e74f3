"""Structured logging configuration."""

import logging
import sys
from collections.abc import MutableMapping
from typing import Any, cast

import structlog

from ledgercrm.config import get_settings

# Event keys whose values are personal data and must never reach a log sink
SENSITIVE_LOG_KEYS = frozenset(
    {
        "document",
        "account",
        "iban",
        "participant_document",
        "name",
        "email",
        "primary_email",
        "secondary_email",
        "mobile_phone",
        "other_phone",
        "mother_name",
        "father_name",
    }
)
REDACTED = "[REDACTED]"


def redact_sensitive_fields(
    _logger: Any, _method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask personal data passed as top-level event fields."""
    for key in SENSITIVE_LOG_KEYS.intersection(event_dict):
        if event_dict[key] is not None:
            event_dict[key] = REDACTED
    return event_dict


def setup_logging() -> None:
    """Configure structured logging for the application."""
    settings = get_settings()

    log_level = logging.DEBUG if settings.app_debug else logging.INFO

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        redact_sensitive_fields,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.is_development:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    # SQL echo would print ciphertext and search tokens; keep it quiet
    for logger_name in ["uvicorn", "uvicorn.access", "sqlalchemy.engine", "aiosqlite"]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def bind_request_context(**fields: Any) -> None:
    """Attach fields (organization_id, request_id) to every log line of the request."""
    structlog.contextvars.bind_contextvars(**fields)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
