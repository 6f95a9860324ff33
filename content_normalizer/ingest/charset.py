"""Charset detection and decoding for untrusted text content.

Decoding never raises. The stages are:

1. charset from the Content-Type header (default utf-8), strict decode
2. strict utf-8 retry, then a lossy utf-8 decode reported as ``unknown``
3. ``<meta charset>`` override when it names another codec and decodes strictly
4. legacy-encoding fallbacks when utf-8 text contains mojibake markers
5. percent-encoded UTF-8 runs (``%E3%81%82``) decoded in place
"""

from __future__ import annotations

import codecs
import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote_to_bytes

from ..core.config import DEFAULT_VALVES, Valves
from ..core.timing_logger import timed
from .binary import ByteBuffer

LOGGER = logging.getLogger(__name__)

UNKNOWN_CHARSET = "unknown"

_CHARSET_PARAM_RE = re.compile(r"charset=([^;]+)", re.IGNORECASE)
_META_CHARSET_RE = re.compile(r"""<meta[^>]*charset\s*=\s*['"]*([^'">]+)""", re.IGNORECASE)
_PERCENT_RUN_RE = re.compile(r"(?:%[0-9A-F]{2})+", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class DecodeResult:
    """Decoded text plus the charset that actually produced it."""

    text: str
    charset: str


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

def extract_charset(content_type_header: Optional[str]) -> Optional[str]:
    """Return the lowercased ``charset=`` parameter of a Content-Type value."""
    if not content_type_header:
        return None
    match = _CHARSET_PARAM_RE.search(content_type_header)
    if not match:
        return None
    value = match.group(1).strip().strip("'\"").strip().lower()
    return value or None


def _codec_name(label: str) -> Optional[str]:
    """Canonical codec name for ``label``; None for unknown or non-text codecs (hex, rot13, zlib)."""
    try:
        info = codecs.lookup(label)
    except LookupError:
        return None
    if not getattr(info, "_is_text_encoding", True):
        return None
    return info.name


def _same_codec(left: str, right: str) -> bool:
    left_name = _codec_name(left)
    return left_name is not None and left_name == _codec_name(right)


def _strict_decode(data: bytes, charset: str) -> Optional[str]:
    """Decode without substitution; None on unknown labels or invalid input."""
    codec = _codec_name(charset)
    if codec is None:
        return None
    if codec == "utf-8":
        # Match WHATWG decoders: a leading BOM is consumed, not returned.
        codec = "utf-8-sig"
    try:
        return data.decode(codec, errors="strict")
    except (LookupError, UnicodeDecodeError, ValueError):
        return None


def _has_mojibake(text: str, markers: str, scan_chars: int) -> bool:
    prefix = text[:scan_chars]
    return any(marker in prefix for marker in markers)


def _decode_percent_run(match: re.Match[str]) -> str:
    run = match.group(0)
    try:
        return unquote_to_bytes(run).decode("utf-8")
    except UnicodeDecodeError:
        return run


def decode_url_encoded_content(content: str) -> str:
    """Decode runs of percent-encoded UTF-8 (``%E3%82%B7``) inside ``content``.

    Runs that are not valid UTF-8 are left untouched.
    """
    return _PERCENT_RUN_RE.sub(_decode_percent_run, content)


# -----------------------------------------------------------------------------
# Decoder
# -----------------------------------------------------------------------------

@timed
def decode_with_heuristics(
    buffer: ByteBuffer,
    content_type_header: Optional[str] = None,
    *,
    valves: Optional[Valves] = None,
) -> DecodeResult:
    """Decode ``buffer`` to text, resolving charset ambiguity heuristically.

    Args:
        buffer: Raw bytes to decode. Not modified.
        content_type_header: Optional Content-Type style value; its
            ``charset=`` parameter is the first candidate.
        valves: Configuration providing the mojibake markers, scan length
            and fallback encodings (defaults to DEFAULT_VALVES).

    Returns:
        DecodeResult with the decoded text and the effective charset
        (``"unknown"`` when only a lossy decode was possible).
    """
    valves = valves or DEFAULT_VALVES
    data = bytes(buffer)

    charset = extract_charset(content_type_header) or "utf-8"
    content = _strict_decode(data, charset)

    if content is None:
        if charset != "utf-8":
            LOGGER.debug("Strict decode with declared charset %r failed; retrying utf-8", charset)
        charset = "utf-8"
        content = _strict_decode(data, charset)

    if content is None:
        LOGGER.debug("Strict utf-8 decode failed; falling back to lossy decode")
        lossy = data.decode("utf-8-sig", errors="replace")
        return DecodeResult(decode_url_encoded_content(lossy), UNKNOWN_CHARSET)

    meta_match = _META_CHARSET_RE.search(content)
    if meta_match:
        meta_charset = meta_match.group(1).strip().lower()
        if meta_charset and meta_charset != charset and not _same_codec(meta_charset, charset):
            meta_content = _strict_decode(data, meta_charset)
            if meta_content is not None:
                LOGGER.debug("Using charset %r declared by <meta> tag", meta_charset)
                return DecodeResult(decode_url_encoded_content(meta_content), meta_charset)

    if _same_codec(charset, "utf-8") and _has_mojibake(
        content, valves.MOJIBAKE_MARKERS, valves.MOJIBAKE_SCAN_CHARS
    ):
        for encoding in valves.FALLBACK_ENCODINGS:
            alt_content = _strict_decode(data, encoding)
            if alt_content and not _has_mojibake(
                alt_content, valves.MOJIBAKE_MARKERS, valves.MOJIBAKE_SCAN_CHARS
            ):
                LOGGER.debug("UTF-8 text looked garbled; re-decoded as %s", encoding)
                return DecodeResult(decode_url_encoded_content(alt_content), encoding)

    return DecodeResult(decode_url_encoded_content(content), charset)
