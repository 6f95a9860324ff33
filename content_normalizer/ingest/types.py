"""File inputs and classification results.

Results are closed unions of frozen dataclasses; consumers are expected to
``match`` on them. Every variant carries a literal ``type`` (results) or
``code`` (errors/warnings) tag for serialization.
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Optional, Protocol, Union, runtime_checkable


# -----------------------------------------------------------------------------
# File inputs
# -----------------------------------------------------------------------------

@runtime_checkable
class FileLike(Protocol):
    """A file with a declared MIME type whose bytes are read on demand."""

    name: str
    mime_type: str

    def read_bytes(self) -> bytes: ...


@dataclass(frozen=True, slots=True)
class InMemoryFile:
    """Uploaded file already held in memory."""

    name: str
    mime_type: str
    data: bytes

    def read_bytes(self) -> bytes:
        return self.data


@dataclass(frozen=True, slots=True)
class LocalFile:
    """File on disk; MIME type is guessed from the suffix when not declared."""

    path: Path
    mime_type: str = ""
    name: str = ""

    def __post_init__(self) -> None:
        path = Path(self.path)
        object.__setattr__(self, "path", path)
        if not self.name:
            object.__setattr__(self, "name", path.name)
        if not self.mime_type:
            guessed, _ = mimetypes.guess_type(path.name)
            object.__setattr__(self, "mime_type", guessed or "")

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()


# -----------------------------------------------------------------------------
# Audio warnings
# -----------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class UncommonAudioFormat:
    mime_type: str
    extension: str
    code: Literal["audio_warning_uncommon_format"] = field(default="audio_warning_uncommon_format", init=False)


@dataclass(frozen=True, slots=True)
class AudioExtensionFallback:
    extension: str
    code: Literal["audio_warning_extension_fallback"] = field(
        default="audio_warning_extension_fallback", init=False
    )


AudioWarning = Union[UncommonAudioFormat, AudioExtensionFallback]


# -----------------------------------------------------------------------------
# Unsupported file errors
# -----------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class UnsupportedAudioFormat:
    mime_type: str
    supported: str
    code: Literal["unsupported_audio_format"] = field(default="unsupported_audio_format", init=False)


@dataclass(frozen=True, slots=True)
class PdfNotSupported:
    """Only produced when PDF handling is switched off (ACCEPT_PDF=False)."""

    code: Literal["pdf_not_supported"] = field(default="pdf_not_supported", init=False)


@dataclass(frozen=True, slots=True)
class BinaryNotSupported:
    code: Literal["binary_not_supported"] = field(default="binary_not_supported", init=False)


@dataclass(frozen=True, slots=True)
class ProcessFailed:
    message: str
    code: Literal["process_failed"] = field(default="process_failed", init=False)


UnsupportedFileError = Union[UnsupportedAudioFormat, PdfNotSupported, BinaryNotSupported, ProcessFailed]


# -----------------------------------------------------------------------------
# Classification results
# -----------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class TextFile:
    file: FileLike
    content: str
    charset: str
    type: Literal["text"] = field(default="text", init=False)


@dataclass(frozen=True, slots=True)
class ImageFile:
    file: FileLike
    type: Literal["image"] = field(default="image", init=False)


@dataclass(frozen=True, slots=True)
class AudioFile:
    file: FileLike
    warning: Optional[AudioWarning] = None
    type: Literal["audio"] = field(default="audio", init=False)


@dataclass(frozen=True, slots=True)
class PdfFile:
    file: FileLike
    type: Literal["pdf"] = field(default="pdf", init=False)


@dataclass(frozen=True, slots=True)
class UnsupportedFile:
    file: FileLike
    error: UnsupportedFileError
    type: Literal["unsupported"] = field(default="unsupported", init=False)


ProcessedFileResult = Union[TextFile, ImageFile, AudioFile, PdfFile, UnsupportedFile]
