"""FastAPI dependencies shared by the route modules.

Tests swap these out through ``app.dependency_overrides``.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from functools import lru_cache
from typing import Annotated

from fastapi import Cookie, Depends, Header

from src.atlassian.client import AtlassianClient
from src.atlassian.oauth import resolve_cloud_id
from src.config import settings
from src.errors import AuthError
from src.recordings.storage import RecordingStore
from src.sessions.store import ResultStore, create_store
from src.transcription.client import TranscriptionClient

TOKEN_COOKIE = "atlassian_token"


@lru_cache
def get_store() -> ResultStore:
    return create_store(settings)


@lru_cache
def get_recording_store() -> RecordingStore:
    return RecordingStore(settings.recordings_dir)


def get_transcriber() -> TranscriptionClient:
    return TranscriptionClient()


def get_access_token(
    authorization: Annotated[str | None, Header()] = None,
    atlassian_token: Annotated[str | None, Cookie()] = None,
) -> str:
    """Resolve the Atlassian access token for this request.

    Order: ``Authorization: Bearer`` header, the OAuth callback cookie, then
    the ``ATLASSIAN_TOKEN`` setting.
    """
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()
    if atlassian_token:
        return atlassian_token
    if settings.atlassian_token:
        return settings.atlassian_token
    raise AuthError("Not authenticated with Atlassian. Visit /oauth/login first.")


async def get_atlassian_client(
    token: Annotated[str, Depends(get_access_token)],
) -> AsyncIterator[AtlassianClient]:
    cloud_id, site_url = await asyncio.to_thread(resolve_cloud_id, token)
    client = AtlassianClient(token, cloud_id, site_url)
    try:
        yield client
    finally:
        client.close()
