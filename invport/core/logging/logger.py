"""
Structured Logging Module using structlog

Production logging for the inventory service:
- Request ID correlation for tracing one HTTP request across layers
- Stage tags (CB.2, DB.1, RL.1, ...) for execution flow
- JSON output for log aggregation, console output for local work
- Redaction of connection-string secrets
"""

import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone

import structlog
from structlog.types import EventDict, WrappedLogger

from invport.core.config.settings import get_settings

# Context variable for the current request ID
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

# key=value secrets inside SQL and storage connection strings
_SECRET_PATTERNS = (
    re.compile(r"(?i)\b(password|pwd)\s*=\s*[^;]*"),
    re.compile(r"(?i)\b(accountkey)\s*=\s*[^;]*"),
    re.compile(r"(?i)\b(sharedaccesssignature|sig)\s*=\s*[^;&]*"),
)


def add_request_id(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add request ID to log event from context variable.

    STAGE-L.1: Request ID injection
    """
    request_id = request_id_ctx.get()
    if request_id and "request_id" not in event_dict:
        event_dict["request_id"] = request_id
    return event_dict


def add_timestamp(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add ISO timestamp to log event.

    STAGE-L.2: Timestamp injection
    """
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    return event_dict


def redact_text(text: str) -> str:
    """Mask password and account-key values inside a connection string or message."""
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(lambda m: f"{m.group(1)}=[REDACTED]", text)
    return text


def redact_secrets(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Redact secrets from every string field of the event.

    STAGE-L.3: Secret redaction

    Driver errors frequently echo the connection string they failed with, so
    every top-level string value is scanned, not just the message.
    """
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = redact_text(value)
    return event_dict


def add_log_level_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Upper-case the level name.

    STAGE-L.4: Log level injection
    """
    if "level" in event_dict:
        event_dict["level"] = event_dict["level"].upper()
    return event_dict


def setup_logging(log_level: str | None = None, log_format: str | None = None) -> None:
    """
    Setup structured logging with structlog.

    STAGE-L: Logging initialization

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format ('json' or 'console')
    """
    settings = get_settings()

    log_level = log_level or settings.logging.LOG_LEVEL
    log_format = log_format or settings.logging.LOG_FORMAT

    logging.basicConfig(
        format="%(message)s", stream=sys.stdout, level=getattr(logging, log_level.upper())
    )

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_request_id,
            add_timestamp,
            structlog.stdlib.add_log_level,
            add_log_level_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            redact_secrets,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("message", key="value", stage="DB.1")
    """
    return structlog.get_logger(name)


def set_request_id(request_id: str) -> None:
    """Set the request ID in context for the current request."""
    request_id_ctx.set(request_id)


def get_request_id() -> str | None:
    """Get the current request ID from context."""
    return request_id_ctx.get()


def clear_request_id() -> None:
    """Clear the request ID from context at the end of request processing."""
    request_id_ctx.set(None)


def log_stage(
    logger: structlog.stdlib.BoundLogger, stage: str, message: str, level: str = "info", **kwargs
) -> None:
    """
    Log a message with stage information.

    Usage:
        log_stage(logger, "INV.1", "Listing vehicles", page=2)
    """
    log_func = getattr(logger, level.lower())
    log_func(message, stage=stage, **kwargs)
