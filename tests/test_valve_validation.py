"""Tests for valve validation, defaults, and edge cases."""

from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from content_normalizer.core import apply_valves, timing_logger
from content_normalizer.core.config import (
    FALLBACK_ENCODINGS,
    SUPPORTED_AUDIO_EXTENSIONS,
    SUPPORTED_AUDIO_MIME_TYPES,
    Valves,
)
from content_normalizer.core.logging_system import PACKAGE_LOGGER_NAME


class TestValveDefaults:
    def test_defaults(self) -> None:
        valves = Valves()
        assert valves.BINARY_SNIFF_BYTES == 512
        assert valves.MOJIBAKE_SCAN_CHARS == 1000
        assert valves.MOJIBAKE_MARKERS == "\ufffd\x1a"
        assert valves.FALLBACK_ENCODINGS == list(FALLBACK_ENCODINGS)
        assert valves.SUPPORTED_AUDIO_MIME_TYPES == list(SUPPORTED_AUDIO_MIME_TYPES)
        assert valves.SUPPORTED_AUDIO_EXTENSIONS == list(SUPPORTED_AUDIO_EXTENSIONS)
        assert valves.ACCEPT_PDF is True
        assert valves.REJECT_UNCOMMON_AUDIO is False
        assert valves.SSE_CHUNK_BYTES == 4096
        assert valves.ENABLE_TIMING_LOG is False

    def test_list_defaults_are_not_shared(self) -> None:
        first = Valves()
        first.FALLBACK_ENCODINGS.append("koi8-r")
        assert "koi8-r" not in Valves().FALLBACK_ENCODINGS

    def test_log_level_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CONTENT_NORMALIZER_LOG_LEVEL", " debug ")
        assert Valves().LOG_LEVEL == "DEBUG"

    def test_invalid_log_level_environment_falls_back(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CONTENT_NORMALIZER_LOG_LEVEL", "chatty")
        assert Valves().LOG_LEVEL == "INFO"


class TestListNormalization:
    def test_csv_string_is_split_and_lowercased(self) -> None:
        valves = Valves(FALLBACK_ENCODINGS="Shift_JIS, EUC-JP,,shift_jis")
        assert valves.FALLBACK_ENCODINGS == ["shift_jis", "euc-jp"]

    def test_extensions_drop_leading_dot(self) -> None:
        valves = Valves(SUPPORTED_AUDIO_EXTENSIONS=[".MP3", "wav", ".wav"])
        assert valves.SUPPORTED_AUDIO_EXTENSIONS == ["mp3", "wav"]

    def test_mime_list_accepts_list(self) -> None:
        valves = Valves(SUPPORTED_AUDIO_MIME_TYPES=["Audio/WAV", " audio/opus "])
        assert valves.SUPPORTED_AUDIO_MIME_TYPES == ["audio/wav", "audio/opus"]


class TestValidation:
    @pytest.mark.parametrize("field", ["BINARY_SNIFF_BYTES", "MOJIBAKE_SCAN_CHARS", "SSE_CHUNK_BYTES"])
    def test_sizes_must_be_positive(self, field: str) -> None:
        with pytest.raises(ValidationError):
            Valves(**{field: 0})

    def test_markers_cannot_be_empty(self) -> None:
        with pytest.raises(ValidationError):
            Valves(MOJIBAKE_MARKERS="")

    def test_unknown_log_level_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Valves(LOG_LEVEL="LOUD")


def test_apply_valves_configures_logging_and_timing() -> None:
    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    previous_level = logger.level
    previous_handlers = list(logger.handlers)
    try:
        valves = apply_valves(Valves(LOG_LEVEL="WARNING", ENABLE_TIMING_LOG=True))
        assert valves.LOG_LEVEL == "WARNING"
        assert logger.level == logging.WARNING
        assert timing_logger.is_timing_enabled() is True
    finally:
        logger.setLevel(previous_level)
        for handler in list(logger.handlers):
            if handler not in previous_handlers:
                logger.removeHandler(handler)
