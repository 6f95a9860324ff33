"""Core infrastructure: configuration, errors, logging and timing."""

from __future__ import annotations

from typing import Optional

from .config import DEFAULT_VALVES, Valves
from .errors import ChatError, ErrorCode, NetworkError, build_network_error
from .logging_system import bind_request_id, configure_logging
from .timing_logger import set_timing_enabled, timed, timing_scope


def apply_valves(valves: Optional[Valves] = None) -> Valves:
    """Apply the logging-related valves (LOG_LEVEL, ENABLE_TIMING_LOG) to the process."""
    valves = valves or DEFAULT_VALVES
    configure_logging(valves.LOG_LEVEL)
    set_timing_enabled(valves.ENABLE_TIMING_LOG)
    return valves


__all__ = [
    "DEFAULT_VALVES",
    "Valves",
    "ChatError",
    "ErrorCode",
    "NetworkError",
    "apply_valves",
    "build_network_error",
    "bind_request_id",
    "configure_logging",
    "set_timing_enabled",
    "timed",
    "timing_scope",
]
