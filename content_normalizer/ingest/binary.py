"""Binary content detection."""

from __future__ import annotations

from typing import Union

from ..core.config import BINARY_SNIFF_BYTES

ByteBuffer = Union[bytes, bytearray, memoryview]


def is_probably_binary(buffer: ByteBuffer, sniff_bytes: int = BINARY_SNIFF_BYTES) -> bool:
    """Return True when a NUL byte appears in the first ``sniff_bytes`` bytes.

    Sparse binary formats without an early NUL byte are reported as text.
    """
    return b"\x00" in bytes(buffer[:sniff_bytes])
