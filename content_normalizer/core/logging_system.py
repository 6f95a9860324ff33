"""Logging setup with per-request context.

This module handles logging configuration for the package:
- request_id ContextVar bound for the duration of one stream read
- RequestContextFilter: stamps request_id on every record
- configure_logging: installs a single console handler on the package logger

Modules log through ``logging.getLogger(__name__)``; nothing here replaces that.
"""

from __future__ import annotations

import contextlib
import logging
import sys
from contextvars import ContextVar
from typing import Iterator, Optional

PACKAGE_LOGGER_NAME = "content_normalizer"

request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

_console_formatter = logging.Formatter(
    "%(asctime)s.%(msecs)03d | %(levelname)-8s | [request=%(request_id)s] %(name)s:%(funcName)s:%(lineno)d - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


class RequestContextFilter(logging.Filter):
    """Attach the current request id to each record (``-`` when unbound)."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id.get() or "-"
        return True


class _ConsoleHandler(logging.StreamHandler):
    """Marker subclass so configure_logging can find its own handler."""


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """Install (once) a console handler on the package logger and set its level."""
    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    resolved = logging.getLevelName(level.upper()) if isinstance(level, str) else level
    if not isinstance(resolved, int):
        resolved = logging.INFO
    logger.setLevel(resolved)

    handler = next((h for h in logger.handlers if isinstance(h, _ConsoleHandler)), None)
    if handler is None:
        handler = _ConsoleHandler(sys.stderr)
        handler.setFormatter(_console_formatter)
        handler.addFilter(RequestContextFilter())
        logger.addHandler(handler)
    handler.setLevel(resolved)
    return logger


@contextlib.contextmanager
def bind_request_id(value: Optional[str]) -> Iterator[None]:
    """Bind ``value`` as the current request id within the block."""
    token = request_id.set(value)
    try:
        yield
    finally:
        request_id.reset(token)
