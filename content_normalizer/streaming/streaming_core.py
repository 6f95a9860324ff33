"""Responses stream driver.

Glues the event-stream reader to the event normalizer:
- ``[DONE]`` frames mark the stream finished (later frames are still delivered)
- frame data is JSON-decoded; undecodable frames are dropped
- completion, incompletion and error events mark the stream finished

Also provides ResponsesAccumulator, a handler that folds a stream into the
values a chat UI renders, and extract_response_image() for recovering the
final image from a completed response when no image events were streamed.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..core.config import DEFAULT_SSE_CHUNK_BYTES, SSE_DONE_SENTINEL
from ..core.logging_system import bind_request_id
from ..core.timing_logger import timed
from .responses_events import (
    Completed,
    FunctionCall,
    Incomplete,
    ResponsesStreamHandler,
    StreamError,
    handle_responses_event,
)
from .sse_parser import TransportEvent, read_events

LOGGER = logging.getLogger(__name__)

_IMAGE_FORMAT_MIME = {
    "png": "image/png",
    "jpeg": "image/jpeg",
    "webp": "image/webp",
}

# -----------------------------------------------------------------------------
# Completed-response images
# -----------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ResponseImage:
    """Final image found in a completed response's output items."""

    base64: str
    mime_type: str = "image/png"
    revised_prompt: Optional[str] = None

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64}"

    @property
    def markdown(self) -> str:
        return f"![image]({self.data_url})"


def _image_payload_b64(raw: Any) -> str:
    if isinstance(raw, list):
        raw = raw[0] if raw else None
    if isinstance(raw, str):
        return raw
    if isinstance(raw, Mapping):
        value = raw.get("b64_json") or raw.get("base64") or ""
        return value if isinstance(value, str) else ""
    return ""


def extract_response_image(response: Any) -> Optional[ResponseImage]:
    """Return the first ``image_generation_call`` image of ``response``, if any."""
    if not isinstance(response, Mapping):
        return None
    output = response.get("output") or []
    if not isinstance(output, list):
        return None
    item = next(
        (it for it in output if isinstance(it, Mapping) and it.get("type") == "image_generation_call"),
        None,
    )
    if item is None:
        return None

    raw = None
    for key in ("result", "image_b64", "image_base64", "b64_json"):
        if item.get(key) is not None:
            raw = item.get(key)
            break
    b64 = _image_payload_b64(raw)
    if not b64:
        return None

    fmt = str(item.get("output_format") or item.get("format") or "png").lower()
    revised = item.get("revised_prompt")
    return ResponseImage(
        base64=b64,
        mime_type=_IMAGE_FORMAT_MIME.get(fmt, "image/png"),
        revised_prompt=revised if isinstance(revised, str) and revised else None,
    )


# -----------------------------------------------------------------------------
# Accumulating handler
# -----------------------------------------------------------------------------

@dataclass
class ResponsesAccumulator(ResponsesStreamHandler):
    """Handler that folds a Responses stream into renderable state.

    Deltas append; a final text replaces what the deltas built up.
    """

    text: str = ""
    reasoning: str = ""
    partial_images: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)
    function_calls: list[FunctionCall] = field(default_factory=list)
    response: Any = None
    response_image: Optional[ResponseImage] = None
    error_message: Optional[str] = None
    error_raw: Any = None
    finished: bool = False
    incomplete: bool = False

    def on_text_delta(self, text: str) -> None:
        self.text += text

    def on_text_final(self, text: str) -> None:
        self.text = text or self.text

    def on_reasoning_delta(self, text: str) -> None:
        self.reasoning += text

    def on_reasoning_final(self, text: str) -> None:
        self.reasoning = text or self.reasoning

    def on_image_partial(self, b64: str) -> None:
        self.partial_images.append(b64)

    def on_image_done(self, b64: str) -> None:
        self.images.append(b64)

    def on_function_call(self, call: FunctionCall) -> None:
        self.function_calls.append(call)

    def on_completed_response(self, response: Any) -> None:
        self.response = response
        self.response_image = extract_response_image(response)

    def on_completed(self) -> None:
        self.finished = True

    def on_incomplete_response(self, response: Any) -> None:
        self.response = response

    def on_incomplete(self) -> None:
        self.finished = True
        self.incomplete = True

    def on_error(self, message: str, raw: Any = None) -> None:
        self.error_message = message
        self.error_raw = raw
        self.finished = True

    def display_text(self) -> str:
        """Text plus the recovered image (and its revised prompt) as markdown."""
        display = self.text
        if self.response_image is not None:
            display += f"\n\n{self.response_image.markdown}"
            if self.response_image.revised_prompt:
                display += f"\n\n_Revised prompt:_\n{self.response_image.revised_prompt}"
        return display.strip()


# -----------------------------------------------------------------------------
# Stream driver
# -----------------------------------------------------------------------------

@timed
async def stream_responses(
    response: Any,
    handler: ResponsesStreamHandler,
    *,
    request_id: Optional[str] = None,
    chunk_size: int = DEFAULT_SSE_CHUNK_BYTES,
) -> bool:
    """Drive ``handler`` from a Responses-API event stream.

    Args:
        response: aiohttp.ClientResponse or streaming httpx.Response.
        handler: Receiver of the normalized events.
        request_id: Identifier bound to log records for this stream
            (generated when omitted).
        chunk_size: Maximum bytes requested per body read.

    Returns:
        True when the stream ended explicitly (``[DONE]``, completion,
        incompletion or an error event); False when the body simply ran out.

    Raises:
        NetworkError: the response status is not 2xx.
    """
    finished = False
    frames = 0

    def on_frame(frame: TransportEvent) -> None:
        nonlocal finished, frames
        frames += 1
        if frame.data == SSE_DONE_SENTINEL:
            finished = True
            return
        try:
            payload = json.loads(frame.data)
        except ValueError:
            LOGGER.debug("Dropping non-JSON frame (event=%s): %.200s", frame.event_name, frame.data)
            return
        events = handle_responses_event(payload, frame.event_name, handler)
        if any(isinstance(event, (Completed, Incomplete, StreamError)) for event in events):
            finished = True

    with bind_request_id(request_id or uuid.uuid4().hex[:12]):
        LOGGER.debug("Reading Responses stream")
        await read_events(response, on_frame, chunk_size=chunk_size)
        LOGGER.debug("Responses stream ended after %d frames (finished=%s)", frames, finished)
    return finished
