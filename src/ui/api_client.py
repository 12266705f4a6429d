"""HTTP client wrapper for the VoiceToWork FastAPI backend."""

from __future__ import annotations

import base64
import os
from typing import Any

import httpx
import streamlit as st

API_URL = os.getenv("API_URL", "http://localhost:8080")


def _error_message(exc: httpx.HTTPError) -> str:
    """Prefer the API's ``error`` field over httpx's generic message."""
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            body = exc.response.json()
        except ValueError:
            return str(exc)
        if isinstance(body, dict) and body.get("error"):
            details = body.get("details") or body.get("raw")
            return f"{body['error']} ({details})" if details else str(body["error"])
    return str(exc)


def _auth_headers(token: str | None) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"} if token else {}


def check_health() -> bool:
    """Return True if the API server responds to /health."""
    try:
        r = httpx.get(f"{API_URL}/health", timeout=5.0)
        return r.status_code == 200
    except httpx.ConnectError:
        return False


def process_session(
    audio: bytes | None = None,
    filename: str = "audio.webm",
    source_transcript: str | None = None,
) -> dict[str, Any]:
    """Send audio and/or a transcript to /process; returns the review payload."""
    payload: dict[str, Any] = {"filename": filename}
    if audio:
        payload["audioData"] = base64.b64encode(audio).decode("ascii")
    if source_transcript:
        payload["sourceTranscript"] = source_transcript
    try:
        r = httpx.post(f"{API_URL}/process", json=payload, timeout=180.0)
        r.raise_for_status()
        return r.json()  # type: ignore[no-any-return]
    except httpx.HTTPError as e:
        st.error(f"Processing failed: {_error_message(e)}")
        return {}


def execute_actions(
    session_id: str,
    actions: list[dict[str, Any]],
    transcript: str = "",
    token: str | None = None,
    project_key: str | None = None,
    space_key: str | None = None,
) -> dict[str, Any]:
    """Run the confirmed actions against Jira and Confluence.

    ``project_key`` and ``space_key`` apply to actions that name no project or space.
    """
    payload: dict[str, Any] = {"sessionId": session_id, "actions": actions, "transcript": transcript}
    if project_key:
        payload["projectKey"] = project_key
    if space_key:
        payload["spaceKey"] = space_key
    try:
        r = httpx.post(
            f"{API_URL}/api/execute",
            json=payload,
            headers=_auth_headers(token),
            timeout=120.0,
        )
        r.raise_for_status()
        return r.json()  # type: ignore[no-any-return]
    except httpx.HTTPError as e:
        st.error(f"Execution failed: {_error_message(e)}")
        return {}


def get_workspaces(token: str | None = None) -> dict[str, Any]:
    try:
        r = httpx.get(f"{API_URL}/api/workspaces", headers=_auth_headers(token), timeout=30.0)
        r.raise_for_status()
        return r.json()  # type: ignore[no-any-return]
    except httpx.HTTPError:
        return {"jiraProjects": [], "confluenceSpaces": []}


def get_session(session_id: str) -> dict[str, Any]:
    try:
        r = httpx.get(f"{API_URL}/api/sessions/{session_id}", timeout=10.0)
        r.raise_for_status()
        return r.json()  # type: ignore[no-any-return]
    except httpx.HTTPError:
        return {}
