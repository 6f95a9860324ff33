"""Normalization of Responses-API streaming payloads into semantic events.

Upstream providers stream untyped JSON objects whose ``type`` (or, when
absent, the SSE event name) selects the meaning. This module maps them onto
a closed set of StreamEvent dataclasses:

- text:       TextDelta, TextFinal (refusals are treated as text)
- reasoning:  ReasoningDelta, ReasoningFinal
- images:     ImagePartial, ImageDone
- tools:      FunctionCall (completed function_call output items)
- lifecycle:  CompletedWithResponse, Completed, IncompleteWithResponse, Incomplete
- failures:   StreamError

Unknown or malformed payloads produce no events and never raise, so new
upstream event types cannot break a stream.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Literal, Mapping, Optional, Union

from ..core.utils import _first_non_empty_str

LOGGER = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Events
# -----------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class TextDelta:
    text: str
    kind: Literal["text_delta"] = field(default="text_delta", init=False)


@dataclass(frozen=True, slots=True)
class TextFinal:
    text: str
    kind: Literal["text_final"] = field(default="text_final", init=False)


@dataclass(frozen=True, slots=True)
class ReasoningDelta:
    text: str
    kind: Literal["reasoning_delta"] = field(default="reasoning_delta", init=False)


@dataclass(frozen=True, slots=True)
class ReasoningFinal:
    text: str
    kind: Literal["reasoning_final"] = field(default="reasoning_final", init=False)


@dataclass(frozen=True, slots=True)
class ImagePartial:
    base64: str
    kind: Literal["image_partial"] = field(default="image_partial", init=False)


@dataclass(frozen=True, slots=True)
class ImageDone:
    base64: str
    kind: Literal["image_done"] = field(default="image_done", init=False)


@dataclass(frozen=True, slots=True)
class FunctionCall:
    id: Optional[str]
    name: Optional[str]
    arguments: Optional[str]
    call_id: Optional[str]
    kind: Literal["function_call"] = field(default="function_call", init=False)


@dataclass(frozen=True, slots=True)
class Completed:
    kind: Literal["completed"] = field(default="completed", init=False)


@dataclass(frozen=True, slots=True)
class CompletedWithResponse:
    response: Any
    kind: Literal["completed_with_response"] = field(default="completed_with_response", init=False)


@dataclass(frozen=True, slots=True)
class Incomplete:
    kind: Literal["incomplete"] = field(default="incomplete", init=False)


@dataclass(frozen=True, slots=True)
class IncompleteWithResponse:
    response: Any
    kind: Literal["incomplete_with_response"] = field(default="incomplete_with_response", init=False)


@dataclass(frozen=True, slots=True)
class StreamError:
    message: str
    raw: Any = None
    kind: Literal["error"] = field(default="error", init=False)


StreamEvent = Union[
    TextDelta,
    TextFinal,
    ReasoningDelta,
    ReasoningFinal,
    ImagePartial,
    ImageDone,
    FunctionCall,
    Completed,
    CompletedWithResponse,
    Incomplete,
    IncompleteWithResponse,
    StreamError,
]

# -----------------------------------------------------------------------------
# Handler interface
# -----------------------------------------------------------------------------

class ResponsesStreamHandler:
    """Receiver for normalized events.

    Every method is a no-op; override only the events you care about.
    Events without an override are ignored.
    """

    def on_text_delta(self, text: str) -> None: ...

    def on_text_final(self, text: str) -> None: ...

    def on_reasoning_delta(self, text: str) -> None: ...

    def on_reasoning_final(self, text: str) -> None: ...

    def on_image_partial(self, b64: str) -> None: ...

    def on_image_done(self, b64: str) -> None: ...

    def on_function_call(self, call: FunctionCall) -> None: ...

    def on_completed(self) -> None: ...

    def on_completed_response(self, response: Any) -> None: ...

    def on_incomplete(self) -> None: ...

    def on_incomplete_response(self, response: Any) -> None: ...

    def on_error(self, message: str, raw: Any = None) -> None: ...


def dispatch_stream_event(event: StreamEvent, handler: ResponsesStreamHandler) -> None:
    """Invoke the handler method matching ``event``."""
    match event:
        case TextDelta(text=text):
            handler.on_text_delta(text)
        case TextFinal(text=text):
            handler.on_text_final(text)
        case ReasoningDelta(text=text):
            handler.on_reasoning_delta(text)
        case ReasoningFinal(text=text):
            handler.on_reasoning_final(text)
        case ImagePartial(base64=b64):
            handler.on_image_partial(b64)
        case ImageDone(base64=b64):
            handler.on_image_done(b64)
        case FunctionCall():
            handler.on_function_call(event)
        case Completed():
            handler.on_completed()
        case CompletedWithResponse(response=response):
            handler.on_completed_response(response)
        case Incomplete():
            handler.on_incomplete()
        case IncompleteWithResponse(response=response):
            handler.on_incomplete_response(response)
        case StreamError(message=message, raw=raw):
            handler.on_error(message, raw)
        case _:
            raise TypeError(f"Unhandled stream event: {event!r}")


# -----------------------------------------------------------------------------
# Builders (one per dispatch key)
# -----------------------------------------------------------------------------

Events = tuple[StreamEvent, ...]
_NO_EVENTS: Events = ()


def _is_present(value: Any) -> bool:
    """Objects and arrays count as present even when empty; scalars by truthiness."""
    if isinstance(value, (Mapping, list)):
        return True
    return bool(value)


def _present_or(*candidates: Any) -> Any:
    """Return the first present candidate (the last one when none is)."""
    for candidate in candidates:
        if _is_present(candidate):
            return candidate
    return candidates[-1]


def _error_message(err: Any, fallback: str) -> str:
    message = err.get("message") if isinstance(err, Mapping) else None
    if message:
        return message if isinstance(message, str) else str(message)
    return fallback


def _on_error(payload: Mapping[str, Any]) -> Events:
    err = _present_or(payload.get("error"), payload)
    return (StreamError(_error_message(err, "Response stream error"), err),)


def _on_failed(payload: Mapping[str, Any]) -> Events:
    response = payload.get("response")
    nested = response.get("error") if isinstance(response, Mapping) else None
    err = _present_or(nested, payload.get("error"), payload)
    return (StreamError(_error_message(err, "Response failed"), err),)


def _on_incomplete(payload: Mapping[str, Any]) -> Events:
    response = payload.get("response")
    if _is_present(response):
        return (IncompleteWithResponse(response), Incomplete())
    return (Incomplete(),)


def _on_completed(payload: Mapping[str, Any]) -> Events:
    response = payload.get("response")
    if _is_present(response):
        return (CompletedWithResponse(response), Completed())
    return (Completed(),)


def _text_from(key: str, event_cls: Callable[[str], StreamEvent]) -> Callable[[Mapping[str, Any]], Events]:
    """Builder emitting ``event_cls(payload[key])`` when that value is a non-empty string."""

    def build(payload: Mapping[str, Any]) -> Events:
        value = payload.get(key)
        if isinstance(value, str) and value:
            return (event_cls(value),)
        return _NO_EVENTS

    return build


def _on_image_done(payload: Mapping[str, Any]) -> Events:
    b64 = _first_non_empty_str(
        payload.get("result"),
        payload.get("image_b64"),
        payload.get("image_base64"),
        payload.get("b64_json"),
    )
    return (ImageDone(b64),) if b64 else _NO_EVENTS


def _on_output_item_done(payload: Mapping[str, Any]) -> Events:
    item = payload.get("item")
    if not isinstance(item, Mapping):
        return _NO_EVENTS
    if item.get("type") != "function_call" or item.get("status") != "completed":
        return _NO_EVENTS
    return (
        FunctionCall(
            id=item.get("id"),
            name=item.get("name"),
            arguments=item.get("arguments"),
            call_id=item.get("call_id"),
        ),
    )


def _ignore(_payload: Mapping[str, Any]) -> Events:
    return _NO_EVENTS


_DISPATCH: dict[str, Callable[[Mapping[str, Any]], Events]] = {
    "error": _on_error,
    "response.failed": _on_failed,
    "response.incomplete": _on_incomplete,
    "response.completed": _on_completed,
    "response.output_text.delta": _text_from("delta", TextDelta),
    "response.output_text.done": _text_from("text", TextFinal),
    "response.refusal.delta": _text_from("delta", TextDelta),
    "response.refusal.done": _ignore,
    "response.reasoning_summary_text.delta": _text_from("delta", ReasoningDelta),
    "response.reasoning_text.delta": _text_from("delta", ReasoningDelta),
    "response.reasoning_summary_text.done": _text_from("text", ReasoningFinal),
    "response.reasoning_text.done": _text_from("text", ReasoningFinal),
    "response.image_generation_call.partial_image": _text_from("partial_image_b64", ImagePartial),
    "response.image_generation_call.done": _on_image_done,
    "response.image_generation_call.completed": _on_image_done,
    "image_generation.completed": _on_image_done,
    "response.output_item.done": _on_output_item_done,
}

# -----------------------------------------------------------------------------
# Public API
# -----------------------------------------------------------------------------

def dispatch_key(payload: Any, event_name: Optional[str] = None) -> Optional[str]:
    """Return ``payload["type"]``, falling back to the SSE event name."""
    if not isinstance(payload, Mapping):
        return None
    key = payload.get("type") or event_name
    return key if isinstance(key, str) and key else None


def normalize_responses_event(payload: Any, event_name: Optional[str] = None) -> Events:
    """Map one upstream payload to its StreamEvents (usually zero or one).

    Completion and incompletion with a response body yield two events, the
    ``...WithResponse`` variant first.
    """
    key = dispatch_key(payload, event_name)
    if key is None:
        return _NO_EVENTS
    builder = _DISPATCH.get(key, _ignore)
    return builder(payload)


def handle_responses_event(
    payload: Any,
    event_name: Optional[str],
    handler: ResponsesStreamHandler,
) -> Events:
    """Normalize ``payload`` and deliver each resulting event to ``handler``."""
    events = normalize_responses_event(payload, event_name)
    for event in events:
        dispatch_stream_event(event, handler)
    return events
