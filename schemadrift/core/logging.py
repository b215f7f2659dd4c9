"""Structured logging configuration for schemadrift."""

import logging
import sys
from typing import Optional, TextIO

from json_log_formatter import JSONFormatter


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    subject: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """Configure logging for schemadrift.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: If True, use JSON format; otherwise use normal format
        subject: Optional subject to include in every log line
        stream: Output stream (default: stdout)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger("schemadrift")
    logger.setLevel(log_level)

    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(log_level)

    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = StructuredFormatter()

    handler.setFormatter(formatter)
    if subject:
        handler.addFilter(_SubjectFilter(subject))
    logger.addHandler(handler)


class _SubjectFilter(logging.Filter):
    def __init__(self, subject: str):
        super().__init__()
        self.subject = subject

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "subject"):
            record.subject = self.subject
        return True


class StructuredFormatter(logging.Formatter):
    """Structured formatter that adds context to log messages."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with context."""
        context = getattr(record, "context", {})

        parts = [f"[{record.levelname}]"]

        if hasattr(record, "subject"):
            parts.append(f"subject={record.subject}")

        if hasattr(record, "version"):
            parts.append(f"version={record.version}")

        for key, value in context.items():
            parts.append(f"{key}={value}")

        parts.append(record.getMessage())

        if record.exc_info:
            parts.append("\n" + self.formatException(record.exc_info))

        return " ".join(parts)
