"""Tests for Settings, provider enums, and PipelineConfig."""

from __future__ import annotations

import pytest

from src.config import Settings
from src.errors import (
    AuthError,
    NotConfiguredError,
    NotFoundError,
    ParseError,
    PayloadTooLargeError,
    UpstreamError,
    ValidationError,
)
from src.pipeline_config import LLMProvider, PipelineConfig, StoreBackend, TranscriptionProvider

# ---------------------------------------------------------------------------
# Enum tests
# ---------------------------------------------------------------------------


class TestLLMProvider:
    def test_values(self) -> None:
        assert LLMProvider.GEMINI.value == "gemini"
        assert LLMProvider.ANTHROPIC.value == "anthropic"

    def test_invalid_raises(self) -> None:
        with pytest.raises(ValueError):
            LLMProvider("openai")

    def test_is_str_subclass(self) -> None:
        """Enum values behave as plain strings for JSON serialization."""
        assert isinstance(LLMProvider.GEMINI, str)


class TestTranscriptionProvider:
    def test_from_string(self) -> None:
        assert TranscriptionProvider("openai") is TranscriptionProvider.OPENAI
        assert TranscriptionProvider("assemblyai") is TranscriptionProvider.ASSEMBLYAI


class TestStoreBackend:
    def test_values(self) -> None:
        assert {b.value for b in StoreBackend} == {"memory", "file", "supabase"}


# ---------------------------------------------------------------------------
# PipelineConfig tests
# ---------------------------------------------------------------------------


class TestPipelineConfig:
    def test_defaults(self) -> None:
        cfg = PipelineConfig()
        assert cfg.llm_provider is LLMProvider.GEMINI
        assert cfg.transcription_provider is TranscriptionProvider.OPENAI
        assert cfg.store_backend is StoreBackend.FILE

    def test_from_settings(self) -> None:
        cfg = PipelineConfig.from_settings(
            Settings(llm_provider="Anthropic", transcription_provider="assemblyai", result_store="memory")
        )
        assert cfg.llm_provider is LLMProvider.ANTHROPIC
        assert cfg.transcription_provider is TranscriptionProvider.ASSEMBLYAI
        assert cfg.store_backend is StoreBackend.MEMORY

    def test_from_settings_rejects_unknown(self) -> None:
        with pytest.raises(ValueError):
            PipelineConfig.from_settings(Settings(llm_provider="mystery"))

    def test_immutable(self) -> None:
        cfg = PipelineConfig()
        with pytest.raises(AttributeError):
            cfg.llm_provider = LLMProvider.ANTHROPIC  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Settings tests
# ---------------------------------------------------------------------------


class TestSettings:
    def test_limits(self) -> None:
        s = Settings(_env_file=None)  # type: ignore[call-arg]
        assert s.max_upload_bytes == 25 * 1024 * 1024
        assert s.max_audio_duration_seconds == 600
        assert s.transcription_max_attempts == 3

    def test_google_api_key_alias(self, monkeypatch) -> None:  # type: ignore[no-untyped-def]
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.setenv("GOOGLE_API_KEY", "g-key")
        assert Settings(_env_file=None).gemini_api_key == "g-key"  # type: ignore[call-arg]


# ---------------------------------------------------------------------------
# Error taxonomy
# ---------------------------------------------------------------------------


class TestErrors:
    @pytest.mark.parametrize(
        "error, status",
        [
            (ValidationError("x"), 400),
            (AuthError("x"), 401),
            (NotFoundError("x"), 404),
            (PayloadTooLargeError("x"), 413),
            (NotConfiguredError("x"), 501),
            (UpstreamError("x"), 502),
            (ParseError("x"), 502),
        ],
    )
    def test_status_codes(self, error, status: int) -> None:  # type: ignore[no-untyped-def]
        assert error.status_code == status
        assert error.payload()["error"] == "x"

    def test_upstream_details_truncated(self) -> None:
        payload = UpstreamError("x", provider="gemini", status=500, details="d" * 1000).payload()
        assert len(payload["details"]) == 200
        assert payload["provider"] == "gemini"

    def test_parse_raw_truncated(self) -> None:
        assert len(ParseError("x", raw="r" * 1000).payload()["raw"]) == 500
