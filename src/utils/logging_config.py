"""Structured logging configuration for Bank Informer."""

from __future__ import annotations

import json
import logging
import re
import sys
from pathlib import Path
from typing import Any

_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)


SENSITIVE_PATTERNS = [
    "path_api_key",
    "cmc_api_key",
    "api_key",
    "x-cmc_pro_api_key",
    "authorization",
    "token",
    "password",
    "secret",
]


def redact(message: str) -> str:
    """Replace values that follow a sensitive key with ``[REDACTED]``."""
    lowered = message.lower()
    for pattern in SENSITIVE_PATTERNS:
        if pattern in lowered:
            message = re.sub(
                rf"{re.escape(pattern)}['\"]?\s*[:=]\s*['\"]?[\w\-]+",
                f"{pattern}=[REDACTED]",
                message,
                flags=re.IGNORECASE,
            )
    return message


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self, *args: Any, sanitize: bool = True, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.sanitize = sanitize

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": redact(message) if self.sanitize else message,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Fields passed through ``extra=`` or LogContext.
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class SanitizingFormatter(logging.Formatter):
    """Formatter that redacts API keys and auth headers from log lines."""

    def format(self, record: logging.LogRecord) -> str:
        record_copy = logging.makeLogRecord(record.__dict__)
        record_copy.msg = redact(record_copy.getMessage())
        record_copy.args = ()

        return super().format(record_copy)


def setup_logging(
    level: str = "INFO",
    *,
    structured: bool = False,
    sanitize: bool = True,
    log_file: str | None = None,
) -> None:
    """
    Configure logging for the application.

    Log lines go to stderr so the report on stdout stays readable.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        structured: Use JSON structured logging
        sanitize: Sanitize sensitive data from logs
        log_file: Optional file path for log output
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    if structured:
        formatter: logging.Formatter = StructuredFormatter(sanitize=sanitize)
    elif sanitize:
        formatter = SanitizingFormatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as exc:
            root_logger.warning(
                "Failed to set up file logging to %s: %s", log_file, exc
            )

    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("keyring").setLevel(logging.WARNING)


class LogContext:
    """
    Context manager for adding extra fields to all logs within a scope.

    Example:
        with LogContext(command="report", run_date="2024-01-01"):
            logger.info("Collecting balances")
    """

    def __init__(self, **kwargs: Any) -> None:
        self.context = kwargs
        self.old_factory = logging.getLogRecordFactory()

    def __enter__(self) -> None:
        def record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
            record = self.old_factory(*args, **kwargs)
            for key, value in self.context.items():
                setattr(record, key, value)
            return record

        logging.setLogRecordFactory(record_factory)

    def __exit__(self, *args: Any) -> None:
        logging.setLogRecordFactory(self.old_factory)
