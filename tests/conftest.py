"""Test configuration helpers for unit tests."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from content_normalizer.core import timing_logger


class _FakeContent:
    """Fake aiohttp response content with configurable chunk iteration."""

    def __init__(self, chunks: list[bytes]) -> None:
        self._chunks = chunks
        self.requested_sizes: list[int] = []

    async def iter_chunked(self, size: int):
        self.requested_sizes.append(size)
        for chunk in self._chunks:
            await asyncio.sleep(0)
            yield chunk


class FakeStreamResponse:
    """Fake aiohttp-style streaming response."""

    def __init__(
        self,
        chunks: list[bytes] | None = None,
        *,
        status: int = 200,
        reason: str | None = None,
        json_body: Any = None,
        json_error: Exception | None = None,
    ) -> None:
        self.status = status
        self.reason = reason
        self.content = _FakeContent(chunks or [])
        self._json_body = json_body
        self._json_error = json_error

    async def json(self, content_type: str | None = "application/json") -> Any:
        if self._json_error is not None:
            raise self._json_error
        return self._json_body


def sse_frame(payload: Any, *, event: str | None = None) -> bytes:
    """Encode one event-stream frame carrying ``payload`` (JSON-encoded unless str)."""
    data = payload if isinstance(payload, str) else json.dumps(payload)
    prefix = f"event: {event}\n" if event else ""
    return f"{prefix}data: {data}\n\n".encode()


@pytest.fixture(autouse=True)
def _reset_timing():
    timing_logger.set_timing_enabled(False)
    timing_logger.clear_timing_events()
    yield
    timing_logger.set_timing_enabled(False)
    timing_logger.clear_timing_events()
