"""Error types for the content normalizer.

This module handles all error-related functionality:
- ErrorCode: closed set of error codes surfaced to callers
- ChatError: base exception carrying an ErrorCode
- NetworkError: non-success responses from a streaming endpoint
- Error body parsing and status text fallbacks

Only transport failures are raised. Decode, classification and stream
normalization problems are returned as data (see ingest.types and
streaming.responses_events).
"""

from __future__ import annotations

import enum
import logging
from typing import Any, Optional

from .config import HTTP_STATUS_TEXT
from .utils import _compact_json, _is_empty_json, _normalize_optional_str

LOGGER = logging.getLogger(__name__)


class ErrorCode(str, enum.Enum):
    """Codes attached to every ChatError."""

    NETWORK_ERROR = "NETWORK_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


# -----------------------------------------------------------------------------
# Exceptions
# -----------------------------------------------------------------------------

class ChatError(RuntimeError):
    """Base class for errors raised by this package."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.UNKNOWN_ERROR, cause: Any = None) -> None:
        self.code = code
        self.cause = cause
        super().__init__(message)


class NetworkError(ChatError):
    """Raised when a streaming endpoint answers with a non-success status."""

    def __init__(
        self,
        message: str,
        *,
        status: int,
        reason: str = "",
        body: Any = None,
    ) -> None:
        """Normalize the response metadata into convenient attributes."""
        self.status = status
        self.reason = reason or ""
        self.body = body
        self.upstream_message = _extract_error_message(body)
        super().__init__(message, ErrorCode.NETWORK_ERROR, body)


# -----------------------------------------------------------------------------
# Error Helper Functions
# -----------------------------------------------------------------------------

def _status_text(status: int, reason: Optional[str]) -> str:
    """Return the transport's reason phrase, or a fixed fallback for common statuses."""
    return (reason or "").strip() or HTTP_STATUS_TEXT.get(status, "")


def _extract_error_message(body: Any) -> Optional[str]:
    """Pull ``error.message`` (or a top-level ``message``) out of a JSON error body."""
    if not isinstance(body, dict):
        return None
    error_section = body.get("error")
    if isinstance(error_section, dict):
        message = _normalize_optional_str(error_section.get("message"))
        if message:
            return message
    elif isinstance(error_section, str):
        return _normalize_optional_str(error_section)
    return _normalize_optional_str(body.get("message"))


def build_network_error(status: int, reason: Optional[str], body: Any) -> NetworkError:
    """Create the NetworkError for a failed response.

    A non-empty JSON body becomes the message verbatim (compact JSON);
    otherwise the message is ``"<status> <statusText>"``.
    """
    if not _is_empty_json(body):
        message = _compact_json(body)
    else:
        body = None
        message = f"{status} {_status_text(status, reason)}"
    LOGGER.warning("Streaming request failed with HTTP %s: %s", status, message)
    return NetworkError(message, status=status, reason=_status_text(status, reason), body=body)
