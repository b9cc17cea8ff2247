"""Structured logging configuration for the matching service."""

from __future__ import annotations

import logging
import sys

_CONTEXT_FIELDS = ("form_id", "response_id", "stage")


class StructuredFormatter(logging.Formatter):
    """key=value formatter that appends pipeline context passed via ``extra``."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in _CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        line = " ".join(f"{key}={value}" for key, value in log_data.items())
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(level: str = "INFO") -> None:
    """Install the structured handler on the root logger once."""

    root = logging.getLogger()
    root.setLevel(level.upper())
    if any(isinstance(handler.formatter, StructuredFormatter) for handler in root.handlers):
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter())
    root.addHandler(handler)
