"""Content normalization and streaming-event layer.

This package turns untrusted byte streams into a small set of typed values:
- ingest: binary sniffing, charset heuristics, attachment classification
- streaming: event-stream reading and Responses-API event normalization
- core: configuration (Valves), errors, logging, timing

Public names are resolved lazily via __getattr__ so that importing the
package does not import aiohttp/httpx until the streaming side is used.
"""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Any

try:
    from importlib.metadata import version as _get_version
    __version__ = _get_version("content-normalizer")
except Exception:
    __version__ = "0.1.0"  # Fallback if not installed as package

if TYPE_CHECKING:
    from .core import ChatError, ErrorCode, NetworkError, Valves, apply_valves, configure_logging
    from .ingest import (
        DecodeResult,
        InMemoryFile,
        LocalFile,
        classify_file,
        classify_files,
        decode_url_encoded_content,
        decode_with_heuristics,
        describe_audio_warning,
        describe_unsupported,
        is_probably_binary,
    )
    from .streaming import (
        ResponsesAccumulator,
        ResponsesStreamHandler,
        SSEParser,
        TransportEvent,
        extract_response_image,
        handle_responses_event,
        iter_events,
        normalize_responses_event,
        read_events,
        stream_responses,
    )

_LAZY_EXPORTS: dict[str, str] = {
    "ChatError": ".core",
    "ErrorCode": ".core",
    "NetworkError": ".core",
    "Valves": ".core",
    "apply_valves": ".core",
    "configure_logging": ".core",
    "DecodeResult": ".ingest",
    "InMemoryFile": ".ingest",
    "LocalFile": ".ingest",
    "classify_file": ".ingest",
    "classify_files": ".ingest",
    "decode_url_encoded_content": ".ingest",
    "decode_with_heuristics": ".ingest",
    "describe_audio_warning": ".ingest",
    "describe_unsupported": ".ingest",
    "is_probably_binary": ".ingest",
    "ResponsesAccumulator": ".streaming",
    "ResponsesStreamHandler": ".streaming",
    "SSEParser": ".streaming",
    "TransportEvent": ".streaming",
    "extract_response_image": ".streaming",
    "handle_responses_event": ".streaming",
    "iter_events": ".streaming",
    "normalize_responses_event": ".streaming",
    "read_events": ".streaming",
    "stream_responses": ".streaming",
}


def __getattr__(name: str) -> Any:
    module_name = _LAZY_EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    value = getattr(importlib.import_module(module_name, __name__), name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(set(globals()) | set(_LAZY_EXPORTS))


__all__ = ["__version__", *_LAZY_EXPORTS]
