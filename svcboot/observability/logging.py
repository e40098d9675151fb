"""Structured logging for svcboot services.

Logging is built on structlog rendering through the standard library
``logging`` handlers, so that third-party loggers (uvicorn in particular)
end up in the same stream as application events.

Usage:
    from svcboot.observability import configure_logging, get_logger

    # Configure logging once at startup
    configure_logging(level="INFO", format="json")

    logger = get_logger(__name__)
    logger.info("server_starting", port=8080)

    # Flush handlers before the process exits
    sync_logging()
"""

import logging
import logging.handlers
import sys
import uuid
from contextvars import ContextVar
from pathlib import Path
from typing import Optional

import structlog
from structlog.types import EventDict, Processor


# Context variable for correlation ID tracking
correlation_id_var: ContextVar[Optional[str]] = ContextVar(
    "correlation_id", default=None
)

LOG_FORMATS = ("json", "console")


def add_correlation_id(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add the current correlation ID, if any, to the event."""
    correlation_id = correlation_id_var.get()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def add_log_level(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add log level to event dictionary.

    Args:
        logger: Logger instance
        method_name: Name of the logging method
        event_dict: Event dictionary to modify

    Returns:
        Modified event dictionary with level
    """
    if method_name == "warn":
        method_name = "warning"
    event_dict["level"] = method_name
    return event_dict


def configure_logging(
    level: str = "INFO",
    format: str = "json",
    log_file: Optional[Path] = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> None:
    """Configure structured logging.

    Safe to call more than once; existing root handlers are replaced.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Output format ("json" or "console")
        log_file: Optional path for file logging with rotation
        max_bytes: Maximum size of log file before rotation
        backup_count: Number of backup files to keep

    Raises:
        ValueError: if ``format`` is not a known renderer

    Example:
        >>> configure_logging(level="DEBUG", format="console")
        >>> configure_logging(level="INFO", log_file=Path("logs/service.log"))
    """
    if format not in LOG_FORMATS:
        raise ValueError(f"Unknown log format: {format!r} (expected one of {LOG_FORMATS})")

    logging_level = getattr(logging, level.upper(), logging.INFO)

    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging_level)
    handlers.append(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=str(log_file),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(logging_level)
        handlers.append(file_handler)

    # Clear existing handlers to allow reconfiguration
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        if isinstance(handler, logging.handlers.RotatingFileHandler):
            handler.close()
    root_logger.setLevel(logging_level)
    for handler in handlers:
        handler.setFormatter(logging.Formatter("%(message)s"))
        root_logger.addHandler(handler)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        add_correlation_id,
        add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=shared_processors + [renderer],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog BoundLogger
    """
    return structlog.get_logger(name)


def sync_logging() -> None:
    """Flush every handler attached to the root logger."""
    for handler in logging.getLogger().handlers:
        handler.flush()


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Set correlation ID for request tracing.

    Args:
        correlation_id: Correlation ID (auto-generated if None)

    Returns:
        The correlation ID that was set
    """
    if correlation_id is None:
        correlation_id = f"req-{uuid.uuid4().hex[:12]}"
    correlation_id_var.set(correlation_id)
    return correlation_id


def clear_correlation_id() -> None:
    correlation_id_var.set(None)


def get_correlation_id() -> Optional[str]:
    return correlation_id_var.get()


__all__ = [
    "LOG_FORMATS",
    "configure_logging",
    "get_logger",
    "sync_logging",
    "set_correlation_id",
    "clear_correlation_id",
    "get_correlation_id",
]
