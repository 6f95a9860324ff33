"""Configuration for the content normalizer.

This module contains all configuration schemas and constants:
- Valves: runtime configuration (sniff and scan sizes, fallback encodings, audio lists, etc.)
- Supported audio MIME types and extensions
- Charset fallback order and mojibake markers
- User-facing message templates for file diagnostics
- HTTP status text fallbacks used by the event-stream reader
"""

from __future__ import annotations

import logging
import os
from typing import Any, Literal, cast

from pydantic import BaseModel, Field, model_validator

LOGGER = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------

BINARY_SNIFF_BYTES = 512
MOJIBAKE_SCAN_CHARS = 1000

# U+FFFD is what lossy decoders leave behind; U+001A (SUB) is the marker
# legacy converters write in place of unmappable characters.
MOJIBAKE_MARKERS = "\ufffd\x1a"

FALLBACK_ENCODINGS: tuple[str, ...] = (
    "shift_jis",
    "euc-jp",
    "iso-2022-jp",
    "windows-1252",
    "iso-8859-1",
)

SUPPORTED_AUDIO_MIME_TYPES: tuple[str, ...] = (
    "audio/wav",
    "audio/mp3",
    "audio/mpeg",
    "audio/aiff",
    "audio/aac",
    "audio/ogg",
    "audio/flac",
    "audio/m4a",
    "audio/x-m4a",
)
SUPPORTED_AUDIO_EXTENSIONS: tuple[str, ...] = ("wav", "mp3", "aiff", "aac", "ogg", "flac", "m4a")
SUPPORTED_AUDIO_LABEL = "WAV, MP3, AIFF, AAC, OGG, FLAC, M4A"

OCTET_STREAM_MIME = "application/octet-stream"
PDF_MIME = "application/pdf"

DEFAULT_TEXT_DOCUMENT_BANNER = "Text Document: {name}"

DEFAULT_SSE_CHUNK_BYTES = 4096
SSE_DONE_SENTINEL = "[DONE]"

HTTP_STATUS_TEXT: dict[int, str] = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    429: "Too Many Requests",
}

# -----------------------------------------------------------------------------
# Message templates
# -----------------------------------------------------------------------------

FILE_ERROR_UNSUPPORTED_AUDIO_TEMPLATE = 'Unsupported audio format "{type}". Supported: {supported}'
FILE_ERROR_PDF_NOT_SUPPORTED_TEMPLATE = 'PDF file "{name}" is not supported.'
FILE_ERROR_BINARY_NOT_SUPPORTED_TEMPLATE = 'File "{name}" appears to be a binary file and is not supported.'
FILE_ERROR_PROCESS_FAILED_TEMPLATE = 'Could not process file "{name}": {message}'
AUDIO_WARNING_UNCOMMON_FORMAT_TEMPLATE = (
    'Audio format "{type}" is uncommon; it will be sent as .{extension} and may not be accepted by every model.'
)
AUDIO_WARNING_EXTENSION_FALLBACK_TEMPLATE = (
    'No audio MIME type was declared; treating the file as audio based on its .{extension} extension.'
)

_ALLOWED_LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _resolve_log_level_default() -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
    """Normalize env-provided log level to the allowed literal set."""
    value = (os.getenv("CONTENT_NORMALIZER_LOG_LEVEL") or "INFO").strip().upper()
    if value not in _ALLOWED_LOG_LEVELS:
        value = "INFO"
    return cast(Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], value)


def _split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


# -----------------------------------------------------------------------------
# Valves
# -----------------------------------------------------------------------------

class Valves(BaseModel):
    """Runtime configuration shared by the ingestion and streaming paths."""

    @model_validator(mode="before")
    @classmethod
    def _normalize_lists(cls, values):
        """Accept comma-separated strings for list valves and lowercase their entries."""
        if not isinstance(values, dict):
            return values

        normalized: dict[str, Any] = dict(values)
        for key in (
            "FALLBACK_ENCODINGS",
            "SUPPORTED_AUDIO_MIME_TYPES",
            "SUPPORTED_AUDIO_EXTENSIONS",
        ):
            raw = normalized.get(key)
            if raw is None:
                continue
            items = _split_csv(raw) if isinstance(raw, str) else list(raw)
            cleaned: list[str] = []
            for item in items:
                text = str(item).strip().lower()
                if key == "SUPPORTED_AUDIO_EXTENSIONS":
                    text = text.lstrip(".")
                if text and text not in cleaned:
                    cleaned.append(text)
            normalized[key] = cleaned
        return normalized

    # Ingestion
    BINARY_SNIFF_BYTES: int = Field(
        default=BINARY_SNIFF_BYTES,
        ge=1,
        description="Number of leading bytes inspected for NUL bytes when deciding whether content is binary.",
    )
    MOJIBAKE_SCAN_CHARS: int = Field(
        default=MOJIBAKE_SCAN_CHARS,
        ge=1,
        description="Number of leading decoded characters scanned for mojibake markers after a UTF-8 decode.",
    )
    MOJIBAKE_MARKERS: str = Field(
        default=MOJIBAKE_MARKERS,
        min_length=1,
        description="Characters whose presence in decoded UTF-8 text triggers the legacy-encoding fallback.",
    )
    FALLBACK_ENCODINGS: list[str] = Field(
        default_factory=lambda: list(FALLBACK_ENCODINGS),
        description=(
            "Ordered encodings tried strictly when UTF-8 text looks garbled. "
            "Accepts a list or a comma-separated string."
        ),
    )
    SUPPORTED_AUDIO_MIME_TYPES: list[str] = Field(
        default_factory=lambda: list(SUPPORTED_AUDIO_MIME_TYPES),
        description="Audio MIME types accepted without a warning (exact or prefix match).",
    )
    SUPPORTED_AUDIO_EXTENSIONS: list[str] = Field(
        default_factory=lambda: list(SUPPORTED_AUDIO_EXTENSIONS),
        description="File extensions treated as audio when no specific MIME type was declared.",
    )
    TEXT_DOCUMENT_BANNER: str = Field(
        default=DEFAULT_TEXT_DOCUMENT_BANNER,
        description="First line prepended to decoded text documents. `{name}` is replaced with the filename.",
    )
    ACCEPT_PDF: bool = Field(
        default=True,
        description="When False, PDF files are reported as unsupported instead of being routed to PDF handling.",
    )
    REJECT_UNCOMMON_AUDIO: bool = Field(
        default=False,
        description=(
            "When True, audio with a MIME type outside SUPPORTED_AUDIO_MIME_TYPES is rejected "
            "instead of being accepted with a warning."
        ),
    )

    # Streaming
    SSE_CHUNK_BYTES: int = Field(
        default=DEFAULT_SSE_CHUNK_BYTES,
        ge=1,
        description="Maximum number of bytes requested per read from a streaming response body.",
    )

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default_factory=_resolve_log_level_default,
        description="Minimum level for the package console handler. Defaults to CONTENT_NORMALIZER_LOG_LEVEL.",
    )
    ENABLE_TIMING_LOG: bool = Field(
        default=False,
        description="Log function timings at DEBUG on the content_normalizer.timing logger.",
    )


DEFAULT_VALVES = Valves()
