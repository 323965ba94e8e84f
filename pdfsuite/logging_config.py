"""Logging configuration utilities."""

from __future__ import annotations

import logging
import sys
from typing import Optional

# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime"}


class ContextFormatter(logging.Formatter):
    """Formatter that appends ``extra`` fields as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if not context:
            return base
        rendered = " ".join(f"{key}={value!r}" for key, value in sorted(context.items()))
        return f"{base} | {rendered}"


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger with a concise format including structured context."""

    root_logger = logging.getLogger()
    if root_logger.handlers:
        # Under uvicorn the handlers already exist; only align their levels.
        for handler in root_logger.handlers:
            handler.setLevel(level)
        root_logger.setLevel(level)
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ContextFormatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a module logger."""

    return logging.getLogger(name if name else __name__)


__all__ = ["ContextFormatter", "configure_logging", "get_logger"]
