"""Key-value stores for per-session extraction results and session links.

Every store keeps two records per session id: the last extraction result
(single slot, overwritten on each parse) and the session record holding the
transcript, actions, and the issues/pages created from them. Writes are
last-writer-wins with no locking.
"""

from __future__ import annotations

import copy
import json
import logging
import time
from pathlib import Path
from typing import Any, Protocol, cast

from supabase import Client, create_client

from src.config import Settings
from src.pipeline_config import StoreBackend

logger = logging.getLogger(__name__)

DEFAULT_SESSION_ID = "default"


def new_session_id() -> str:
    return f"sess_{int(time.time() * 1000)}"


class ResultStore(Protocol):
    def save_result(self, session_id: str, result: dict[str, Any]) -> None: ...

    def get_result(self, session_id: str) -> dict[str, Any] | None: ...

    def save_session(self, session_id: str, record: dict[str, Any]) -> None: ...

    def get_session(self, session_id: str) -> dict[str, Any] | None: ...


def merge_session(existing: dict[str, Any] | None, update: dict[str, Any]) -> dict[str, Any]:
    """Merge a partial session update into an existing record.

    ``relatedIssues`` and ``relatedPages`` accumulate without duplicates;
    ``meta`` is merged key by key; everything else is replaced.
    """
    merged = copy.deepcopy(existing) if existing else {}
    for key, value in update.items():
        if key in ("relatedIssues", "relatedPages"):
            current = list(merged.get(key, []))
            current.extend(v for v in value if v not in current)
            merged[key] = current
        elif key == "meta" and isinstance(value, dict):
            merged[key] = {**merged.get("meta", {}), **value}
        else:
            merged[key] = value
    return merged


class InMemoryResultStore:
    """Process-local store; contents vanish on restart."""

    def __init__(self) -> None:
        self._results: dict[str, dict[str, Any]] = {}
        self._sessions: dict[str, dict[str, Any]] = {}

    def save_result(self, session_id: str, result: dict[str, Any]) -> None:
        self._results[session_id] = copy.deepcopy(result)

    def get_result(self, session_id: str) -> dict[str, Any] | None:
        result = self._results.get(session_id)
        return copy.deepcopy(result) if result is not None else None

    def save_session(self, session_id: str, record: dict[str, Any]) -> None:
        self._sessions[session_id] = merge_session(self._sessions.get(session_id), record)

    def get_session(self, session_id: str) -> dict[str, Any] | None:
        record = self._sessions.get(session_id)
        return copy.deepcopy(record) if record is not None else None


class FileResultStore:
    """JSON-file store so the last result survives a restart.

    The whole file is re-read on each access and rewritten on each save.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, dict[str, Any]]:
        if not self.path.exists():
            return {"results": {}, "sessions": {}}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Could not read result store %s: %s", self.path, exc)
            return {"results": {}, "sessions": {}}
        data.setdefault("results", {})
        data.setdefault("sessions", {})
        return cast(dict[str, dict[str, Any]], data)

    def _write(self, data: dict[str, dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        tmp.replace(self.path)

    def save_result(self, session_id: str, result: dict[str, Any]) -> None:
        data = self._load()
        data["results"][session_id] = result
        self._write(data)

    def get_result(self, session_id: str) -> dict[str, Any] | None:
        return self._load()["results"].get(session_id)

    def save_session(self, session_id: str, record: dict[str, Any]) -> None:
        data = self._load()
        data["sessions"][session_id] = merge_session(data["sessions"].get(session_id), record)
        self._write(data)

    def get_session(self, session_id: str) -> dict[str, Any] | None:
        return self._load()["sessions"].get(session_id)


class SupabaseResultStore:
    """Supabase-backed store using two jsonb tables keyed by session id.

    Tables: ``extraction_results(session_id text primary key, payload jsonb)``
    and ``session_links(session_id text primary key, payload jsonb)``.
    """

    def __init__(self, client: Client) -> None:
        self.client = client

    def _get(self, table: str, session_id: str) -> dict[str, Any] | None:
        result = self.client.table(table).select("payload").eq("session_id", session_id).execute()
        rows = cast(list[dict[str, Any]], result.data)
        if not rows:
            return None
        return cast(dict[str, Any], rows[0]["payload"])

    def _put(self, table: str, session_id: str, payload: dict[str, Any]) -> None:
        self.client.table(table).upsert({"session_id": session_id, "payload": payload}).execute()

    def save_result(self, session_id: str, result: dict[str, Any]) -> None:
        self._put("extraction_results", session_id, result)

    def get_result(self, session_id: str) -> dict[str, Any] | None:
        return self._get("extraction_results", session_id)

    def save_session(self, session_id: str, record: dict[str, Any]) -> None:
        merged = merge_session(self._get("session_links", session_id), record)
        self._put("session_links", session_id, merged)

    def get_session(self, session_id: str) -> dict[str, Any] | None:
        return self._get("session_links", session_id)


def create_store(settings: Settings) -> ResultStore:
    """Build the store selected by ``settings.result_store``."""
    backend = StoreBackend(settings.result_store.lower())
    if backend is StoreBackend.SUPABASE:
        client = create_client(settings.supabase_url, settings.supabase_key)
        return SupabaseResultStore(client)
    if backend is StoreBackend.FILE:
        return FileResultStore(settings.result_store_path)
    return InMemoryResultStore()
