"""Server-Sent Events (SSE) parsing.

This module turns a streaming HTTP response into discrete event-stream frames:
- Non-success responses become NetworkError (JSON body or "<status> <text>")
- Body chunks are decoded incrementally (multi-byte characters may straddle chunks)
- Line parsing (data:, event:, id:, retry:, comments) with CRLF/LF/CR endings
- Multi-line data accumulation and frame dispatch on blank lines

Both aiohttp.ClientResponse and httpx.Response (opened with ``stream``) are
accepted. Frames are delivered synchronously in arrival order; the only
suspension point is awaiting the next body chunk.
"""

from __future__ import annotations

import codecs
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Optional

import aiohttp
import httpx

from ..core.config import DEFAULT_SSE_CHUNK_BYTES
from ..core.errors import build_network_error

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TransportEvent:
    """One complete event-stream frame."""

    data: str
    event_name: Optional[str] = None
    id: Optional[str] = None


# -----------------------------------------------------------------------------
# Incremental parser
# -----------------------------------------------------------------------------

class SSEParser:
    """Incremental event-stream parser; one instance per stream.

    Feed decoded text in any fragmentation with ``feed``; each call returns
    the frames completed by that fragment. A frame is dispatched on a blank
    line once at least one ``data`` field was seen. An unterminated trailing
    frame is never dispatched.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._data_lines: list[str] = []
        self._event_name: Optional[str] = None
        self._started = False
        self.last_event_id: Optional[str] = None
        self.reconnect_interval_ms: Optional[int] = None

    def reset(self) -> None:
        """Drop buffered input and the pending frame."""
        self._buffer = ""
        self._data_lines = []
        self._event_name = None
        self._started = False

    @property
    def has_pending_frame(self) -> bool:
        return bool(self._buffer or self._data_lines)

    def feed(self, chunk: str) -> list[TransportEvent]:
        if not chunk:
            return []
        if not self._started:
            self._started = True
            if chunk.startswith("\ufeff"):
                chunk = chunk[1:]

        self._buffer += chunk
        frames: list[TransportEvent] = []
        buf = self._buffer
        start = 0
        length = len(buf)

        while start < length:
            cr = buf.find("\r", start)
            lf = buf.find("\n", start)
            if cr == -1 and lf == -1:
                break
            if cr != -1 and (lf == -1 or cr < lf):
                if cr + 1 == length:
                    # Wait for the next fragment: this CR may be half of a CRLF.
                    break
                line_end = cr
                next_start = cr + 2 if buf[cr + 1] == "\n" else cr + 1
            else:
                line_end = lf
                next_start = lf + 1

            frame = self._process_line(buf[start:line_end])
            if frame is not None:
                frames.append(frame)
            start = next_start

        self._buffer = buf[start:]
        return frames

    def finish(self) -> list[TransportEvent]:
        """Flush at end of input: a held-back trailing CR still ends its line."""
        if not self._buffer.endswith("\r"):
            return []
        line, self._buffer = self._buffer[:-1], ""
        frame = self._process_line(line)
        return [frame] if frame is not None else []

    def _process_line(self, line: str) -> Optional[TransportEvent]:
        if not line:
            return self._dispatch()
        if line.startswith(":"):
            return None

        field_name, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if field_name == "data":
            self._data_lines.append(value)
        elif field_name == "event":
            self._event_name = value
        elif field_name == "id":
            if "\x00" not in value:
                self.last_event_id = value
        elif field_name == "retry":
            if value.isdigit():
                self.reconnect_interval_ms = int(value)
        return None

    def _dispatch(self) -> Optional[TransportEvent]:
        if not self._data_lines:
            self._event_name = None
            return None
        frame = TransportEvent(
            data="\n".join(self._data_lines),
            event_name=self._event_name or None,
            id=self.last_event_id,
        )
        self._data_lines = []
        self._event_name = None
        return frame


# -----------------------------------------------------------------------------
# Response access (aiohttp / httpx)
# -----------------------------------------------------------------------------

def _response_status(response: Any) -> tuple[int, str]:
    if isinstance(response, httpx.Response):
        return response.status_code, response.reason_phrase or ""
    return int(response.status), getattr(response, "reason", None) or ""


async def _read_error_body(response: Any) -> Any:
    """Best-effort JSON error body; None when absent or not JSON."""
    try:
        if isinstance(response, httpx.Response):
            await response.aread()
            return response.json()
        return await response.json(content_type=None)
    except (ValueError, aiohttp.ClientError, httpx.HTTPError, UnicodeDecodeError) as exc:
        LOGGER.debug("Error response body is not JSON: %s", exc)
        return None


def _iter_body_chunks(response: Any, chunk_size: int) -> AsyncIterator[bytes]:
    if isinstance(response, httpx.Response):
        return response.aiter_bytes(chunk_size)
    return response.content.iter_chunked(chunk_size)


async def _raise_for_status(response: Any) -> None:
    status, reason = _response_status(response)
    if 200 <= status < 300:
        return
    body = await _read_error_body(response)
    raise build_network_error(status, reason, body)


# -----------------------------------------------------------------------------
# Public API
# -----------------------------------------------------------------------------

async def iter_events(response: Any, *, chunk_size: int = DEFAULT_SSE_CHUNK_BYTES) -> AsyncIterator[TransportEvent]:
    """Yield every complete frame of ``response`` in arrival order.

    Raises:
        NetworkError: the response status is not 2xx.
    """
    await _raise_for_status(response)

    parser = SSEParser()
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    async for chunk in _iter_body_chunks(response, chunk_size):
        for frame in parser.feed(decoder.decode(chunk)):
            yield frame
    for frame in parser.feed(decoder.decode(b"", final=True)):
        yield frame
    for frame in parser.finish():
        yield frame

    if parser.has_pending_frame:
        LOGGER.debug("Stream ended with an unterminated frame; discarding it")


async def read_events(
    response: Any,
    on_frame: Callable[[TransportEvent], None],
    *,
    chunk_size: int = DEFAULT_SSE_CHUNK_BYTES,
) -> None:
    """Read ``response`` to the end, calling ``on_frame`` for each complete frame.

    Args:
        response: aiohttp.ClientResponse or streaming httpx.Response.
        on_frame: Called synchronously with each TransportEvent
            (``event_name`` is None when the frame names no event).
        chunk_size: Maximum bytes requested per body read.

    Raises:
        NetworkError: the response status is not 2xx.
    """
    async for frame in iter_events(response, chunk_size=chunk_size):
        on_frame(frame)
