"""Function timing instrumentation.

Provides:
- @timed decorator for sync and async functions
- timing_scope() context manager for code block timing
- A bounded per-request buffer of timing records (get_timing_events)

Timings are only recorded when enabled via set_timing_enabled() (the
ENABLE_TIMING_LOG valve); otherwise the decorator costs one flag check.

Usage:
    from .core.timing_logger import timed, timing_scope

    @timed
    def decode(...):
        with timing_scope("meta_charset"):
            ...
"""

from __future__ import annotations

import functools
import inspect
import logging
import threading
import time
from collections import deque
from contextlib import contextmanager
from typing import Any, Callable, Deque, Dict, Iterator, List, Optional, TypeVar

from .logging_system import request_id as _request_id

TIMING_LOGGER = logging.getLogger("content_normalizer.timing")

# Maximum events per request to prevent unbounded growth
MAX_TIMING_EVENTS = 1000

_timing_enabled = False
_timing_events: Dict[str, Deque[Dict[str, Any]]] = {}
_timing_lock = threading.Lock()

F = TypeVar("F", bound=Callable[..., Any])


def set_timing_enabled(enabled: bool) -> None:
    """Turn timing capture on or off for the whole process."""
    global _timing_enabled
    _timing_enabled = bool(enabled)


def is_timing_enabled() -> bool:
    return _timing_enabled


def _record(label: str, elapsed_ms: float) -> None:
    TIMING_LOGGER.debug("%s took %.3f ms", label, elapsed_ms)
    key = _request_id.get()
    if not key:
        return
    with _timing_lock:
        bucket = _timing_events.get(key)
        if bucket is None:
            bucket = deque(maxlen=MAX_TIMING_EVENTS)
            _timing_events[key] = bucket
        bucket.append({"label": label, "elapsed_ms": round(elapsed_ms, 3), "ts": time.time()})


def get_timing_events(request_id: str) -> List[Dict[str, Any]]:
    """Return a copy of the timing records captured for ``request_id``."""
    with _timing_lock:
        return list(_timing_events.get(request_id, ()))


def clear_timing_events(request_id: Optional[str] = None) -> None:
    """Drop captured records for one request, or for all requests."""
    with _timing_lock:
        if request_id is None:
            _timing_events.clear()
        else:
            _timing_events.pop(request_id, None)


@contextmanager
def timing_scope(label: str) -> Iterator[None]:
    """Time the enclosed block under ``label``."""
    if not _timing_enabled:
        yield
        return
    start = time.perf_counter()
    try:
        yield
    finally:
        _record(label, (time.perf_counter() - start) * 1000)


def timed(func: F) -> F:
    """Decorator recording the wall time of each call to ``func``."""
    label = f"{func.__module__}.{func.__qualname__}"

    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            if not _timing_enabled:
                return await func(*args, **kwargs)
            start = time.perf_counter()
            try:
                return await func(*args, **kwargs)
            finally:
                _record(label, (time.perf_counter() - start) * 1000)

        return async_wrapper  # type: ignore[return-value]

    @functools.wraps(func)
    def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
        if not _timing_enabled:
            return func(*args, **kwargs)
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            _record(label, (time.perf_counter() - start) * 1000)

    return sync_wrapper  # type: ignore[return-value]
