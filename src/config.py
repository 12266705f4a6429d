from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings validated via Pydantic.

    Values are loaded from environment variables and/or a .env file.
    """

    # API Keys
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("gemini_api_key", "google_api_key"),
    )
    assemblyai_api_key: str = ""

    # Providers
    llm_provider: str = "gemini"
    gemini_model: str = "gemini-2.5-flash"
    llm_model: str = "claude-sonnet-4-20250514"
    transcription_provider: str = "openai"
    whisper_model: str = "whisper-1"

    # Atlassian OAuth + REST
    atlassian_client_id: str = ""
    atlassian_client_secret: str = ""
    atlassian_redirect_uri: str = "http://localhost:8080/oauth/callback"
    atlassian_cloud_id: str = ""
    atlassian_site_url: str = ""
    atlassian_token: str = ""  # Optional service token used when no user token is present
    default_project_key: str = "ENG"
    default_space_key: str = "DOC"
    app_url: str = "http://localhost:8501"

    # Storage
    result_store: str = "file"
    result_store_path: str = "data/results.json"
    recordings_dir: str = "recordings"
    supabase_url: str = ""
    supabase_key: str = ""

    # Limits
    max_upload_bytes: int = 25 * 1024 * 1024
    max_audio_duration_seconds: int = 10 * 60
    transcription_max_attempts: int = 3

    # App config
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "populate_by_name": True}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Gracefully handles missing .env files (e.g. in CI/testing) by falling
    back to environment variables and defaults.
    """
    try:
        return Settings()
    except Exception:
        # If .env is missing or unreadable, build settings from env vars only.
        return Settings(_env_file=None)  # type: ignore[call-arg]


settings = get_settings()
