"""Streaming response processing subsystem.

This package contains streaming-related functionality:
- sse_parser: incremental event-stream parsing and response reading
- responses_events: normalization of Responses-API payloads into StreamEvents
- streaming_core: stream driver, accumulating handler, final-image recovery
"""

from .responses_events import (
    Completed,
    CompletedWithResponse,
    FunctionCall,
    ImageDone,
    ImagePartial,
    Incomplete,
    IncompleteWithResponse,
    ReasoningDelta,
    ReasoningFinal,
    ResponsesStreamHandler,
    StreamError,
    StreamEvent,
    TextDelta,
    TextFinal,
    dispatch_stream_event,
    handle_responses_event,
    normalize_responses_event,
)
from .sse_parser import SSEParser, TransportEvent, iter_events, read_events
from .streaming_core import ResponseImage, ResponsesAccumulator, extract_response_image, stream_responses

__all__ = [
    "Completed",
    "CompletedWithResponse",
    "FunctionCall",
    "ImageDone",
    "ImagePartial",
    "Incomplete",
    "IncompleteWithResponse",
    "ReasoningDelta",
    "ReasoningFinal",
    "ResponsesStreamHandler",
    "StreamError",
    "StreamEvent",
    "TextDelta",
    "TextFinal",
    "dispatch_stream_event",
    "handle_responses_event",
    "normalize_responses_event",
    "SSEParser",
    "TransportEvent",
    "iter_events",
    "read_events",
    "ResponseImage",
    "ResponsesAccumulator",
    "extract_response_image",
    "stream_responses",
]
