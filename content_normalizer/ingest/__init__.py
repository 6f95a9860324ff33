"""Ingestion path: binary sniffing, charset decoding and file classification.

This package contains:
- binary: NUL-byte sniffer for binary content
- charset: heuristic charset decoding with percent-decoding post-pass
- types: file inputs and the closed result/error variants
- file_classifier: routing of attachments to result variants
"""

from .binary import is_probably_binary
from .charset import DecodeResult, decode_url_encoded_content, decode_with_heuristics, extract_charset
from .file_classifier import classify_file, classify_files, describe_audio_warning, describe_unsupported
from .types import (
    AudioExtensionFallback,
    AudioFile,
    AudioWarning,
    BinaryNotSupported,
    FileLike,
    ImageFile,
    InMemoryFile,
    LocalFile,
    PdfFile,
    PdfNotSupported,
    ProcessedFileResult,
    ProcessFailed,
    TextFile,
    UncommonAudioFormat,
    UnsupportedAudioFormat,
    UnsupportedFile,
    UnsupportedFileError,
)

__all__ = [
    "is_probably_binary",
    "DecodeResult",
    "decode_url_encoded_content",
    "decode_with_heuristics",
    "extract_charset",
    "classify_file",
    "classify_files",
    "describe_audio_warning",
    "describe_unsupported",
    "AudioExtensionFallback",
    "AudioFile",
    "AudioWarning",
    "BinaryNotSupported",
    "FileLike",
    "ImageFile",
    "InMemoryFile",
    "LocalFile",
    "PdfFile",
    "PdfNotSupported",
    "ProcessedFileResult",
    "ProcessFailed",
    "TextFile",
    "UncommonAudioFormat",
    "UnsupportedAudioFormat",
    "UnsupportedFile",
    "UnsupportedFileError",
]
