"""Tests for API endpoints (no external API keys required)."""

from __future__ import annotations

import base64
import json
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from src.api.main import app
from src.config import settings
from src.errors import UpstreamError
from src.extraction.extractor import MANUAL_REVIEW_TITLE
from src.pipeline_config import LLMProvider

client = TestClient(app)
client_no_raise = TestClient(app, raise_server_exceptions=False)

SCENARIO = "Fix the login bug and write a doc about it"

MODEL_OUTPUT = json.dumps(
    {
        "summary": "A bug and a doc.",
        "actions": [
            {"action": "create_issue", "target": "jira", "title": "Fix the login bug"},
            {"action": "create_page", "target": "confluence", "title": "Login bug write-up"},
        ],
    }
)


def _model_returns(output: str):  # type: ignore[no-untyped-def]
    return (
        patch("src.extraction.extractor.llm.is_configured", return_value=True),
        patch("src.extraction.extractor.llm.current_provider", return_value=LLMProvider.GEMINI),
        patch("src.extraction.extractor.llm.generate_json", return_value=output),
    )


def _no_model():  # type: ignore[no-untyped-def]
    return (
        patch("src.extraction.extractor.llm.is_configured", return_value=False),
        patch("src.extraction.extractor.llm.current_provider", return_value=LLMProvider.GEMINI),
    )


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_cost_info():
    data = client.get("/cost-info").json()
    assert data["estimatedCosts"] == {
        "whisperPerMinute": 0.006,
        "geminiPer1kTokens": 0.000075,
        "webSpeechAPI": 0,
    }
    assert data["optimization"]["maxFileSize"] == settings.max_upload_bytes


class TestHealthAI:
    def test_ok(self) -> None:
        with patch("src.api.main.llm.check_model", return_value={"ok": True, "model": "m"}):
            response = client.get("/health/ai")
        assert response.status_code == 200

    def test_unreachable(self) -> None:
        status = {"ok": False, "model": "m", "error": "connectivity_failed"}
        with patch("src.api.main.llm.check_model", return_value=status):
            response = client.get("/health/ai")
        assert response.status_code == 503
        assert response.json()["error"] == "connectivity_failed"


# ---------------------------------------------------------------------------
# /api/parse and /api/last
# ---------------------------------------------------------------------------


@pytest.mark.usefixtures("memory_store")
class TestParse:
    def test_missing_text_returns_400(self) -> None:
        response = client.post("/api/parse", json={})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid payload: expected { text: string }"}

    def test_blank_text_returns_400(self) -> None:
        response = client.post("/api/parse", json={"text": "   "})
        assert response.status_code == 400

    def test_malformed_model_output_returns_502(self) -> None:
        a, b, c = _model_returns("not json at all")
        with a, b, c:
            response = client.post("/api/parse", json={"text": SCENARIO})
        assert response.status_code == 502
        body = response.json()
        assert body["error"] == "Could not parse JSON from model response"
        assert body["raw"] == "not json at all"

    def test_non_finite_model_output_not_stored(self) -> None:
        a, b, c = _model_returns('{"summary": "s", "actions": [], "score": NaN}')
        with a, b, c:
            response = client.post("/api/parse", json={"text": SCENARIO, "sessionId": "nan"})
        assert response.status_code == 502
        assert client.get("/api/last", params={"sessionId": "nan"}).status_code == 404

    def test_upstream_error_returns_502(self) -> None:
        with (
            patch("src.extraction.extractor.llm.is_configured", return_value=True),
            patch("src.extraction.extractor.llm.current_provider", return_value=LLMProvider.GEMINI),
            patch(
                "src.extraction.extractor.llm.generate_json",
                side_effect=UpstreamError(
                    "Gemini API request failed", provider="gemini", status=503, details="overloaded"
                ),
            ),
        ):
            response = client.post("/api/parse", json={"text": SCENARIO})
        assert response.status_code == 502
        assert response.json() == {
            "error": "Gemini API request failed",
            "provider": "gemini",
            "status": 503,
            "details": "overloaded",
        }

    def test_last_404_before_parse(self) -> None:
        response = client.get("/api/last")
        assert response.status_code == 404
        assert "error" in response.json()

    def test_parse_then_last_identical(self) -> None:
        a, b, c = _model_returns(MODEL_OUTPUT)
        with a, b, c:
            parsed = client.post("/api/parse", json={"text": SCENARIO})
        assert parsed.status_code == 200
        body = parsed.json()
        assert [x["action"] for x in body["actions"]] == ["create_issue", "create_page"]
        assert body["metadata"]["actionsFound"] == 2

        last = client.get("/api/last")
        assert last.status_code == 200
        assert last.content == parsed.content

    def test_sessions_kept_apart(self) -> None:
        a, b, c = _model_returns(MODEL_OUTPUT)
        with a, b, c:
            client.post("/api/parse", json={"text": SCENARIO, "sessionId": "s1"})
        assert client.get("/api/last", params={"sessionId": "s1"}).status_code == 200
        assert client.get("/api/last").status_code == 404

    def test_unhandled_error_returns_500(self) -> None:
        with patch("src.api.routes.parse.parse_transcript", side_effect=RuntimeError("boom")):
            response = client_no_raise.post("/api/parse", json={"text": SCENARIO})
        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error", "message": "boom"}


# ---------------------------------------------------------------------------
# /process and /format-output
# ---------------------------------------------------------------------------


class TestProcess:
    def test_browser_transcript_skips_transcription(self, memory_store, transcriber) -> None:  # type: ignore[no-untyped-def]
        a, b = _no_model()
        with a, b:
            response = client.post("/process", json={"sourceTranscript": SCENARIO, "sessionId": "s1"})
        assert response.status_code == 200, response.text
        body = response.json()
        assert body["processingMethod"] == "web-speech-api"
        assert body["sessionId"] == "s1"
        assert [x["target"] for x in body["actions"]] == ["jira", "confluence"]
        transcriber.transcribe.assert_not_called()

        record = memory_store.get_session("s1")
        assert record["transcript"] == SCENARIO
        assert len(record["actions"]) == 2

    def test_audio_transcribed(self, memory_store, transcriber) -> None:  # type: ignore[no-untyped-def]
        audio = base64.b64encode(b"\x1aE\xdf\xa3webm").decode()
        a, b = _no_model()
        with a, b:
            response = client.post("/process", json={"audioData": audio, "sourceTranscript": "hi"})
        assert response.status_code == 200, response.text
        body = response.json()
        assert body["processingMethod"] == "whisper-api"
        assert body["transcript"] == SCENARIO
        assert body["sessionId"].startswith("sess_")
        transcriber.transcribe.assert_called_once()

    def test_data_url_accepted(self, memory_store, transcriber) -> None:  # type: ignore[no-untyped-def]
        audio = "data:audio/webm;base64," + base64.b64encode(b"abc").decode()
        a, b = _no_model()
        with a, b:
            response = client.post("/process", json={"audioData": audio})
        assert response.status_code == 200
        assert transcriber.transcribe.call_args.args[0] == b"abc"

    def test_nothing_to_process(self, memory_store, transcriber) -> None:  # type: ignore[no-untyped-def]
        response = client.post("/process", json={})
        assert response.status_code == 400

    def test_invalid_base64(self, memory_store, transcriber) -> None:  # type: ignore[no-untyped-def]
        response = client.post("/process", json={"audioData": "!!not base64!!"})
        assert response.status_code == 400

    def test_too_long(self, memory_store, transcriber) -> None:  # type: ignore[no-untyped-def]
        audio = base64.b64encode(b"abc").decode()
        response = client.post("/process", json={"audioData": audio, "durationSeconds": 601})
        assert response.status_code == 413
        transcriber.transcribe.assert_not_called()

    def test_transcription_not_configured(self, memory_store, transcriber) -> None:  # type: ignore[no-untyped-def]
        transcriber.is_configured.return_value = False
        audio = base64.b64encode(b"abc").decode()
        response = client.post("/process", json={"audioData": audio})
        assert response.status_code == 501

    def test_extraction_failure_gives_manual_review(self, memory_store, transcriber) -> None:  # type: ignore[no-untyped-def]
        with patch(
            "src.extraction.extractor.extract_actions",
            side_effect=UpstreamError("Gemini API request failed"),
        ):
            response = client.post("/process", json={"sourceTranscript": SCENARIO})
        assert response.status_code == 200
        actions = response.json()["actions"]
        assert [x["title"] for x in actions] == [MANUAL_REVIEW_TITLE]


def test_format_output():
    response = client.post(
        "/format-output",
        json={
            "forgeResults": [
                {"type": "jira_issue", "id": "1", "key": "ENG-1", "url": "https://x/browse/ENG-1", "title": "Fix"}
            ],
            "sessionId": "s1",
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["summary"] == "Created 1 item from your session."
    assert body["sessionId"] == "s1"
    assert body["items"][0]["url"] == "https://x/browse/ENG-1"


# ---------------------------------------------------------------------------
# /api/execute, /api/sessions, /api/workspaces
# ---------------------------------------------------------------------------


ACTIONS = [
    {"action": "create_issue", "target": "jira", "title": "Fix the login bug"},
    {"action": "create_page", "target": "confluence", "title": "Login bug write-up"},
]


class TestExecute:
    def test_partial_success(self, memory_store, atlassian: MagicMock) -> None:  # type: ignore[no-untyped-def]
        atlassian.create_issue.return_value = {"id": "10001", "key": "ENG-7"}
        atlassian.create_page.side_effect = UpstreamError("Atlassian API request failed", status=500)

        response = client.post("/api/execute", json={"sessionId": "s1", "actions": ACTIONS})

        assert response.status_code == 200, response.text
        body = response.json()
        assert [i["key"] for i in body["created"]] == ["ENG-7"]
        assert len(body["failed"]) == 1
        assert body["failed"][0]["action"]["title"] == "Login bug write-up"
        assert body["summary"] == "Created 1 item from your session."

        record = client.get("/api/sessions/s1").json()
        assert record["relatedIssues"] == ["ENG-7"]
        assert record["meta"]["lastExecution"] == {"succeeded": 1, "failed": 1}

    def test_selected_workspace_used_as_default(self, memory_store, atlassian: MagicMock) -> None:  # type: ignore[no-untyped-def]
        atlassian.create_issue.return_value = {"id": "10002", "key": "PAY-1"}
        atlassian.create_page.return_value = {"id": "56", "title": "Login bug write-up"}
        atlassian.get_space_id.return_value = "900"
        actions = ACTIONS + [
            {
                "action": "create_issue",
                "target": "jira",
                "title": "Pinned",
                "identifier": {"projectKey": "OPS"},
            }
        ]

        response = client.post(
            "/api/execute",
            json={"sessionId": "s2", "actions": actions, "projectKey": "PAY", "spaceKey": "TEAM"},
        )

        assert response.status_code == 200, response.text
        projects = [c.args[0]["project"] for c in atlassian.create_issue.call_args_list]
        assert projects == [{"key": "PAY"}, {"key": "OPS"}]
        atlassian.get_space_id.assert_called_once_with("TEAM")

    def test_settings_default_without_selection(self, memory_store, atlassian: MagicMock) -> None:  # type: ignore[no-untyped-def]
        atlassian.create_issue.return_value = {"id": "10003", "key": "ENG-9"}
        client.post("/api/execute", json={"actions": ACTIONS[:1]})
        assert atlassian.create_issue.call_args.args[0]["project"] == {"key": settings.default_project_key}

    def test_invalid_action_rejected(self, memory_store, atlassian: MagicMock) -> None:  # type: ignore[no-untyped-def]
        response = client.post(
            "/api/execute",
            json={"actions": [ACTIONS[0], {"action": "create_page", "target": "confluence"}]},
        )
        assert response.status_code == 400
        assert "[1]" in response.json()["error"]
        atlassian.create_issue.assert_not_called()

    def test_empty_list_rejected(self, memory_store, atlassian: MagicMock) -> None:  # type: ignore[no-untyped-def]
        response = client.post("/api/execute", json={"actions": []})
        assert response.status_code == 400

    def test_requires_token(self, memory_store, monkeypatch) -> None:  # type: ignore[no-untyped-def]
        monkeypatch.setattr(settings, "atlassian_token", "")
        response = client.post("/api/execute", json={"actions": ACTIONS})
        assert response.status_code == 401
        assert "oauth/login" in response.json()["error"]


@pytest.mark.usefixtures("memory_store")
def test_unknown_session_404():
    assert client.get("/api/sessions/nope").status_code == 404


def test_workspaces(atlassian: MagicMock) -> None:
    atlassian.list_projects.return_value = [{"id": "1", "key": "ENG", "name": "Engineering", "extra": 1}]
    atlassian.list_spaces.return_value = [{"id": "2", "key": "DOC", "name": "Docs"}]
    response = client.get("/api/workspaces")
    assert response.status_code == 200
    assert response.json() == {
        "jiraProjects": [{"id": "1", "key": "ENG", "name": "Engineering"}],
        "confluenceSpaces": [{"id": "2", "key": "DOC", "name": "Docs"}],
    }


# ---------------------------------------------------------------------------
# OAuth
# ---------------------------------------------------------------------------


class TestOAuthRoutes:
    def test_login_not_configured(self, monkeypatch) -> None:  # type: ignore[no-untyped-def]
        monkeypatch.setattr(settings, "atlassian_client_id", "")
        response = client.get("/oauth/login", follow_redirects=False)
        assert response.status_code == 501

    def test_login_redirects_with_state_cookie(self, monkeypatch) -> None:  # type: ignore[no-untyped-def]
        monkeypatch.setattr(settings, "atlassian_client_id", "cid")
        response = client.get("/oauth/login", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"].startswith("https://auth.atlassian.com/authorize?")
        assert "oauth_state=" in response.headers["set-cookie"]

    def test_callback_without_code(self) -> None:
        response = client.get("/oauth/callback", follow_redirects=False)
        assert response.status_code == 400
        assert "Authorization failed" in response.text

    def test_callback_state_mismatch(self) -> None:
        browser = TestClient(app, cookies={"oauth_state": "expected"})
        response = browser.get("/oauth/callback?code=abc&state=other", follow_redirects=False)
        assert response.status_code == 401

    def test_callback_sets_token_cookie(self, monkeypatch) -> None:  # type: ignore[no-untyped-def]
        from src.atlassian.oauth import OAuthTokens

        monkeypatch.setattr(settings, "app_url", "http://localhost:8501")
        browser = TestClient(app, cookies={"oauth_state": "st"})
        with patch(
            "src.api.routes.oauth.exchange_code",
            return_value=OAuthTokens(access_token="tok", expires_in=3600),
        ) as mock_exchange:
            response = browser.get("/oauth/callback?code=abc&state=st", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == "http://localhost:8501"
        assert "atlassian_token=tok" in response.headers["set-cookie"]
        mock_exchange.assert_called_once_with("abc")

    def test_token_requires_code(self) -> None:
        response = client.post("/oauth/token", json={})
        assert response.status_code == 400

    def test_logout_clears_cookie(self) -> None:
        response = client.get("/logout", follow_redirects=False)
        assert response.status_code == 302
        assert "atlassian_token=" in response.headers["set-cookie"]


# ---------------------------------------------------------------------------
# Recordings
# ---------------------------------------------------------------------------


class TestRecordings:
    def test_save_list_delete(self, recording_store) -> None:  # type: ignore[no-untyped-def]
        saved = client.post("/save-mp3", files={"audio": ("note.mp3", b"ID3data", "audio/mpeg")})
        assert saved.status_code == 200
        assert saved.json()["filename"] == "note.mp3"

        listed = client.get("/recordings").json()["recordings"]
        assert listed == [{"filename": "note.mp3", "path": "./recordings/note.mp3", "size": 7}]

        deleted = client.delete("/recordings/note.mp3")
        assert deleted.status_code == 200
        assert client.get("/recordings").json()["recordings"] == []

    def test_blob_upload_gets_generated_name(self, recording_store) -> None:  # type: ignore[no-untyped-def]
        saved = client.post("/save-mp3", files={"audio": ("blob", b"data", "audio/mpeg")})
        assert saved.json()["filename"].startswith("recording-")

    def test_delete_missing(self, recording_store) -> None:  # type: ignore[no-untyped-def]
        response = client.delete("/recordings/missing.mp3")
        assert response.status_code == 404
        assert response.json() == {"error": "File not found"}

    def test_empty_upload(self, recording_store) -> None:  # type: ignore[no-untyped-def]
        response = client.post("/save-mp3", files={"audio": ("note.mp3", b"", "audio/mpeg")})
        assert response.status_code == 400

    def test_transcribe(self, recording_store, transcriber) -> None:  # type: ignore[no-untyped-def]
        response = client.post("/transcribe", files={"audio": ("note.webm", b"webm", "audio/webm")})
        assert response.status_code == 200
        assert response.json()["transcript"] == SCENARIO
        assert [r.filename for r in recording_store.list()] == ["note.webm"]
