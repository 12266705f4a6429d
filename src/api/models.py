"""Pydantic request/response schemas for the VoiceToWork API.

Field names are snake_case in Python and camelCase on the wire; requests
accept either spelling.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from src.sessions.store import DEFAULT_SESSION_ID


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ParseRequest(CamelModel):
    """Request body for the /api/parse endpoint.

    ``text`` is optional at the schema level so an empty or missing value
    is reported as a 400 with the usual error body rather than a 422.
    """

    text: str | None = None
    session_id: str = DEFAULT_SESSION_ID


class ProcessRequest(CamelModel):
    """Request body for the /process endpoint.

    Supply ``audio_data`` (base64) or ``media_url``, or a
    ``source_transcript`` already produced by in-browser speech recognition.
    """

    audio_data: str | None = None
    media_url: str | None = None
    source_transcript: str | None = None
    session_id: str | None = None
    duration_seconds: float | None = None
    filename: str = "audio.webm"


class ProcessResponse(CamelModel):
    """Response body for the /process endpoint."""

    session_id: str
    transcript: str
    summary: str
    actions: list[dict[str, Any]]
    processing_method: str
    extraction_source: str | None = None


class FormatOutputRequest(CamelModel):
    """Request body for the /format-output endpoint."""

    forge_results: list[dict[str, Any]] = []
    session_id: str = ""
    original_actions: list[dict[str, Any]] = []


class FormattedItem(CamelModel):
    type: str
    title: str | None = None
    url: str | None = None
    description: str


class FormatOutputResponse(CamelModel):
    summary: str
    items: list[FormattedItem]
    session_id: str


class ExecuteRequest(CamelModel):
    """Request body for the /api/execute endpoint (the confirmed action list)."""

    session_id: str | None = None
    actions: list[dict[str, Any]]
    transcript: str = ""
    project_key: str | None = None
    space_key: str | None = None


class TokenRequest(BaseModel):
    """Request body for the /oauth/token endpoint."""

    code: str | None = None
    state: str | None = None


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    scope: str | None = None
    token_type: str = "Bearer"


class WorkspacesResponse(CamelModel):
    jira_projects: list[dict[str, Any]]
    confluence_spaces: list[dict[str, Any]]
