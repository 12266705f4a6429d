"""Tests for the session result stores."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest

from src.config import Settings
from src.sessions.store import (
    FileResultStore,
    InMemoryResultStore,
    SupabaseResultStore,
    create_store,
    merge_session,
    new_session_id,
)

RESULT = {
    "input": "Fix the login bug",
    "actions": [{"action": "create_issue", "title": "Fix the login bug", "target": "jira"}],
    "raw": {"actions": []},
    "metadata": {"inputLength": 17, "actionsFound": 1, "timestamp": "2026-10-18T09:00:00.000Z"},
}


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):  # type: ignore[no-untyped-def]
    if request.param == "memory":
        return InMemoryResultStore()
    return FileResultStore(tmp_path / "results.json")


class TestResultStores:
    def test_missing_result(self, store) -> None:  # type: ignore[no-untyped-def]
        assert store.get_result("default") is None
        assert store.get_session("default") is None

    def test_last_result_is_byte_identical(self, store) -> None:  # type: ignore[no-untyped-def]
        store.save_result("default", RESULT)
        assert json.dumps(store.get_result("default")) == json.dumps(RESULT)

    def test_results_overwrite(self, store) -> None:  # type: ignore[no-untyped-def]
        store.save_result("default", RESULT)
        store.save_result("default", {**RESULT, "input": "second"})
        assert store.get_result("default")["input"] == "second"

    def test_sessions_isolated(self, store) -> None:  # type: ignore[no-untyped-def]
        store.save_result("a", RESULT)
        assert store.get_result("b") is None

    def test_session_links_accumulate(self, store) -> None:  # type: ignore[no-untyped-def]
        store.save_session("s1", {"relatedIssues": ["ENG-1"], "meta": {"a": 1}})
        store.save_session("s1", {"relatedIssues": ["ENG-1", "ENG-2"], "relatedPages": ["9"], "meta": {"b": 2}})
        record = store.get_session("s1")
        assert record["relatedIssues"] == ["ENG-1", "ENG-2"]
        assert record["relatedPages"] == ["9"]
        assert record["meta"] == {"a": 1, "b": 2}


def test_file_store_survives_reopen(tmp_path) -> None:  # type: ignore[no-untyped-def]
    path = tmp_path / "nested" / "results.json"
    FileResultStore(path).save_result("default", RESULT)
    assert FileResultStore(path).get_result("default") == RESULT


def test_file_store_tolerates_corrupt_file(tmp_path) -> None:  # type: ignore[no-untyped-def]
    path = tmp_path / "results.json"
    path.write_text("{not json")
    assert FileResultStore(path).get_result("default") is None


def test_memory_store_returns_copies() -> None:
    store = InMemoryResultStore()
    store.save_result("default", RESULT)
    store.get_result("default")["input"] = "mutated"
    assert store.get_result("default")["input"] == RESULT["input"]


class TestMergeSession:
    def test_new_record(self) -> None:
        assert merge_session(None, {"transcript": "hi"}) == {"transcript": "hi"}

    def test_scalars_replaced(self) -> None:
        merged = merge_session({"transcript": "old", "relatedIssues": ["A-1"]}, {"transcript": "new"})
        assert merged == {"transcript": "new", "relatedIssues": ["A-1"]}

    def test_existing_not_mutated(self) -> None:
        existing = {"relatedIssues": ["A-1"]}
        merge_session(existing, {"relatedIssues": ["A-2"]})
        assert existing == {"relatedIssues": ["A-1"]}


class TestSupabaseResultStore:
    def test_save_result_upserts(self) -> None:
        client = MagicMock()
        SupabaseResultStore(client).save_result("s1", RESULT)
        client.table.assert_called_with("extraction_results")
        client.table.return_value.upsert.assert_called_once_with(
            {"session_id": "s1", "payload": RESULT}
        )

    def test_get_result_missing(self) -> None:
        client = MagicMock()
        client.table.return_value.select.return_value.eq.return_value.execute.return_value.data = []
        assert SupabaseResultStore(client).get_result("s1") is None

    def test_get_result_found(self) -> None:
        client = MagicMock()
        client.table.return_value.select.return_value.eq.return_value.execute.return_value.data = [
            {"payload": RESULT}
        ]
        assert SupabaseResultStore(client).get_result("s1") == RESULT


class TestCreateStore:
    def test_memory(self) -> None:
        assert isinstance(create_store(Settings(result_store="memory")), InMemoryResultStore)

    def test_file(self, tmp_path) -> None:  # type: ignore[no-untyped-def]
        store = create_store(Settings(result_store="file", result_store_path=str(tmp_path / "r.json")))
        assert isinstance(store, FileResultStore)

    def test_supabase(self) -> None:
        with patch("src.sessions.store.create_client") as mock_create:
            store = create_store(
                Settings(result_store="supabase", supabase_url="https://x.supabase.co", supabase_key="k")
            )
        mock_create.assert_called_once_with("https://x.supabase.co", "k")
        assert isinstance(store, SupabaseResultStore)

    def test_unknown_backend(self) -> None:
        with pytest.raises(ValueError):
            create_store(Settings(result_store="redis"))


def test_new_session_id_format() -> None:
    session_id = new_session_id()
    assert session_id.startswith("sess_")
    assert session_id[5:].isdigit()
