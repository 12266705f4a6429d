"""Shared fixtures: swap the API's stores and clients for local fakes."""

from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import MagicMock

import pytest

from src.api.deps import get_atlassian_client, get_recording_store, get_store, get_transcriber
from src.api.main import app
from src.pipeline_config import TranscriptionProvider
from src.recordings.storage import RecordingStore
from src.sessions.store import InMemoryResultStore


@pytest.fixture
def memory_store() -> Iterator[InMemoryResultStore]:
    store = InMemoryResultStore()
    app.dependency_overrides[get_store] = lambda: store
    yield store
    app.dependency_overrides.pop(get_store, None)


@pytest.fixture
def recording_store(tmp_path) -> Iterator[RecordingStore]:  # type: ignore[no-untyped-def]
    store = RecordingStore(tmp_path / "recordings")
    app.dependency_overrides[get_recording_store] = lambda: store
    yield store
    app.dependency_overrides.pop(get_recording_store, None)


@pytest.fixture
def transcriber() -> Iterator[MagicMock]:
    mock = MagicMock()
    mock.provider = TranscriptionProvider.OPENAI
    mock.is_configured.return_value = True
    mock.transcribe.return_value = "Fix the login bug and write a doc about it"
    app.dependency_overrides[get_transcriber] = lambda: mock
    yield mock
    app.dependency_overrides.pop(get_transcriber, None)


@pytest.fixture
def atlassian() -> Iterator[MagicMock]:
    """A mocked AtlassianClient injected into the execution routes."""
    mock = MagicMock()
    mock.find_account_id.return_value = None
    mock.issue_url.side_effect = lambda key: f"https://example.atlassian.net/browse/{key}"
    mock.page_url.return_value = "https://example.atlassian.net/wiki/pages/1"
    mock.get_space_id.return_value = "100"
    app.dependency_overrides[get_atlassian_client] = lambda: mock
    yield mock
    app.dependency_overrides.pop(get_atlassian_client, None)
