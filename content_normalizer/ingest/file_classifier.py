"""File classification for chat attachments.

Routes a file to exactly one ProcessedFileResult variant. Precedence, first
match wins:

1. declared ``image/*``                    -> ImageFile
2. declared ``audio/*``                    -> AudioFile (warning when uncommon)
3. no/generic MIME + audio extension       -> AudioFile (extension fallback warning)
4. ``application/pdf`` or ``.pdf`` name    -> PdfFile
5. NUL byte in the leading bytes           -> UnsupportedFile(BinaryNotSupported)
6. anything else                           -> TextFile (charset heuristics)

Failures while reading or decoding become UnsupportedFile(ProcessFailed);
nothing is raised to the caller.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from ..core.config import (
    AUDIO_WARNING_EXTENSION_FALLBACK_TEMPLATE,
    AUDIO_WARNING_UNCOMMON_FORMAT_TEMPLATE,
    DEFAULT_VALVES,
    FILE_ERROR_BINARY_NOT_SUPPORTED_TEMPLATE,
    FILE_ERROR_PDF_NOT_SUPPORTED_TEMPLATE,
    FILE_ERROR_PROCESS_FAILED_TEMPLATE,
    FILE_ERROR_UNSUPPORTED_AUDIO_TEMPLATE,
    OCTET_STREAM_MIME,
    PDF_MIME,
    SUPPORTED_AUDIO_LABEL,
    Valves,
)
from ..core.timing_logger import timed
from ..core.utils import _file_extension, _normalize_mime
from .binary import is_probably_binary
from .charset import decode_with_heuristics
from .types import (
    AudioExtensionFallback,
    AudioFile,
    AudioWarning,
    BinaryNotSupported,
    FileLike,
    ImageFile,
    PdfFile,
    PdfNotSupported,
    ProcessedFileResult,
    ProcessFailed,
    TextFile,
    UncommonAudioFormat,
    UnsupportedAudioFormat,
    UnsupportedFile,
)

LOGGER = logging.getLogger(__name__)


def _is_supported_audio_mime(mime_type: str, supported: Iterable[str]) -> bool:
    return any(mime_type == fmt or mime_type.startswith(fmt) for fmt in supported)


def _guess_audio_extension(mime_type: str, name: str) -> str:
    """Best-guess extension: the filename's, else the MIME subtype (``x-`` dropped)."""
    extension = _file_extension(name)
    if extension:
        return extension
    subtype = mime_type.split("/", 1)[-1]
    if subtype.startswith("x-"):
        subtype = subtype[2:]
    return subtype


def _classify_audio(file: FileLike, mime_type: str, valves: Valves) -> ProcessedFileResult:
    if _is_supported_audio_mime(mime_type, valves.SUPPORTED_AUDIO_MIME_TYPES):
        return AudioFile(file)
    if valves.REJECT_UNCOMMON_AUDIO:
        return UnsupportedFile(file, UnsupportedAudioFormat(mime_type, SUPPORTED_AUDIO_LABEL))
    extension = _guess_audio_extension(mime_type, file.name)
    LOGGER.info("Accepting uncommon audio format %s for %r", mime_type, file.name)
    return AudioFile(file, UncommonAudioFormat(mime_type, extension))


def _read_and_classify(file: FileLike, mime_type: str, valves: Valves) -> ProcessedFileResult:
    data = file.read_bytes()

    if mime_type == PDF_MIME or file.name.lower().endswith(".pdf"):
        if not valves.ACCEPT_PDF:
            return UnsupportedFile(file, PdfNotSupported())
        return PdfFile(file)

    if is_probably_binary(data, valves.BINARY_SNIFF_BYTES):
        return UnsupportedFile(file, BinaryNotSupported())

    decoded = decode_with_heuristics(data, file.mime_type, valves=valves)
    banner = valves.TEXT_DOCUMENT_BANNER.format(name=file.name)
    return TextFile(file, f"{banner}\n\n{decoded.text}", decoded.charset)


@timed
def classify_file(file: FileLike, valves: Optional[Valves] = None) -> ProcessedFileResult:
    """Classify ``file`` into exactly one ProcessedFileResult variant.

    Args:
        file: Any object exposing ``name``, ``mime_type`` and ``read_bytes()``.
        valves: Configuration (supported audio lists, strict switches, banner).

    Returns:
        The result variant. Content is read at most once, and only when the
        declared type alone does not decide the outcome.
    """
    valves = valves or DEFAULT_VALVES
    mime_type = _normalize_mime(file.mime_type)

    if mime_type.startswith("image/"):
        return ImageFile(file)

    if mime_type.startswith("audio/"):
        return _classify_audio(file, mime_type, valves)

    if mime_type in ("", OCTET_STREAM_MIME):
        extension = _file_extension(file.name)
        if extension and extension in valves.SUPPORTED_AUDIO_EXTENSIONS:
            return AudioFile(file, AudioExtensionFallback(extension))

    try:
        return _read_and_classify(file, mime_type, valves)
    except Exception as exc:
        LOGGER.warning("Failed to process file %r: %s", file.name, exc, exc_info=True)
        return UnsupportedFile(file, ProcessFailed(str(exc) or exc.__class__.__name__))


def classify_files(files: Iterable[FileLike], valves: Optional[Valves] = None) -> list[ProcessedFileResult]:
    """Classify a batch in order; one failing file never affects the others."""
    return [classify_file(file, valves) for file in files]


# -----------------------------------------------------------------------------
# Diagnostics
# -----------------------------------------------------------------------------

def describe_unsupported(result: UnsupportedFile) -> str:
    """Return the user-facing explanation for an unsupported file."""
    name = result.file.name
    match result.error:
        case UnsupportedAudioFormat(mime_type=mime_type, supported=supported):
            return FILE_ERROR_UNSUPPORTED_AUDIO_TEMPLATE.format(type=mime_type, supported=supported)
        case PdfNotSupported():
            return FILE_ERROR_PDF_NOT_SUPPORTED_TEMPLATE.format(name=name)
        case BinaryNotSupported():
            return FILE_ERROR_BINARY_NOT_SUPPORTED_TEMPLATE.format(name=name)
        case ProcessFailed(message=message):
            return FILE_ERROR_PROCESS_FAILED_TEMPLATE.format(name=name, message=message)
        case _:
            return FILE_ERROR_PROCESS_FAILED_TEMPLATE.format(name=name, message="Unknown error")


def describe_audio_warning(warning: AudioWarning) -> str:
    """Return the user-facing advisory for an accepted audio file."""
    match warning:
        case UncommonAudioFormat(mime_type=mime_type, extension=extension):
            return AUDIO_WARNING_UNCOMMON_FORMAT_TEMPLATE.format(type=mime_type, extension=extension)
        case AudioExtensionFallback(extension=extension):
            return AUDIO_WARNING_EXTENSION_FALLBACK_TEMPLATE.format(extension=extension)
        case _:
            raise TypeError(f"Unknown audio warning: {warning!r}")
