"""Pipeline configuration: provider enums and PipelineConfig dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from src.config import Settings


class LLMProvider(str, Enum):
    """Generation providers available for action extraction."""

    GEMINI = "gemini"
    ANTHROPIC = "anthropic"


class TranscriptionProvider(str, Enum):
    """Speech-to-text providers available for audio transcription."""

    OPENAI = "openai"
    ASSEMBLYAI = "assemblyai"


class StoreBackend(str, Enum):
    """Backends for the per-session result and link store."""

    MEMORY = "memory"
    FILE = "file"
    SUPABASE = "supabase"


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable configuration for the voice-to-work pipeline.

    Defaults mirror the project's current behaviour (Gemini extraction,
    Whisper transcription, file-backed result store).
    """

    llm_provider: LLMProvider = LLMProvider.GEMINI
    transcription_provider: TranscriptionProvider = TranscriptionProvider.OPENAI
    store_backend: StoreBackend = StoreBackend.FILE

    @classmethod
    def from_settings(cls, settings: Settings) -> PipelineConfig:
        """Build a config from settings, raising ValueError on unknown values."""
        return cls(
            llm_provider=LLMProvider(settings.llm_provider.lower()),
            transcription_provider=TranscriptionProvider(settings.transcription_provider.lower()),
            store_backend=StoreBackend(settings.result_store.lower()),
        )
