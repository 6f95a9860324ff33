"""Shared utility functions for the content normalizer.

This module contains small helpers used across the codebase:
- JSON helpers (_compact_json, _is_empty_json)
- String normalization
- Filename and MIME helpers

These utilities have no package dependencies and can be used by any module.
"""

from __future__ import annotations

import json
from typing import Any, Optional

# -----------------------------------------------------------------------------
# JSON Helpers
# -----------------------------------------------------------------------------

def _compact_json(value: Any) -> str:
    """Serialize ``value`` without whitespace, the way browsers stringify JSON."""
    try:
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError):
        return str(value)


def _is_empty_json(value: Any) -> bool:
    """Return True unless ``value`` is a non-empty object, array or string."""
    if isinstance(value, (dict, list, str)):
        return len(value) == 0
    return True


# -----------------------------------------------------------------------------
# String Normalization
# -----------------------------------------------------------------------------

def _normalize_optional_str(value: Any) -> Optional[str]:
    """Return a stripped string or None when empty/not a string."""
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text or None


def _first_non_empty_str(*values: Any) -> Optional[str]:
    """Return the first argument that is a non-empty string."""
    for value in values:
        if isinstance(value, str) and value:
            return value
    return None


# -----------------------------------------------------------------------------
# Filename and MIME helpers
# -----------------------------------------------------------------------------

def _file_extension(name: str) -> str:
    """Return the lowercased extension of ``name`` without the dot ('' when absent)."""
    base = (name or "").rsplit("/", 1)[-1]
    if "." not in base:
        return ""
    return base.rsplit(".", 1)[-1].strip().lower()


def _normalize_mime(value: Optional[str]) -> str:
    """Return the lowercased MIME essence (parameters removed)."""
    if not value:
        return ""
    return value.split(";", 1)[0].strip().lower()
