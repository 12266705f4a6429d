"""Tests for the review table conversion used by the Streamlit UI."""

from __future__ import annotations

from unittest.mock import MagicMock

from src.execution.executor import ActionExecutor
from src.extraction.extractor import normalize_actions
from src.ui.actions_table import COLUMNS, ROW_ID, actions_to_rows, rows_to_actions

ACTIONS = [
    {
        "action": "create_issue",
        "title": "Fix the login bug",
        "target": "jira",
        "identifier": {"projectKey": "ENG"},
        "data": {"summary": "Fix the login bug", "labels": ["auth"]},
    },
    {"action": "create_page", "title": "Write-up", "target": "confluence"},
]


def test_rows_have_every_column() -> None:
    for row in actions_to_rows(ACTIONS):
        assert set(row) == set(COLUMNS) | {ROW_ID}
        assert row["include"] is True
    assert ROW_ID not in COLUMNS


def test_unedited_rows_round_trip() -> None:
    assert rows_to_actions(actions_to_rows(ACTIONS), ACTIONS) == ACTIONS


def test_unchecked_rows_dropped() -> None:
    rows = actions_to_rows(ACTIONS)
    rows[0]["include"] = False
    assert [a["title"] for a in rows_to_actions(rows, ACTIONS)] == ["Write-up"]


def test_edits_applied_and_cleared() -> None:
    rows = actions_to_rows(ACTIONS)
    rows[0]["project"] = ""
    rows[0]["assignee"] = "Priya"
    rows[0]["title"] = "  Fix login  "
    action = rows_to_actions(rows, ACTIONS)[0]
    assert action["title"] == "Fix login"
    assert "identifier" not in action
    assert action["data"] == {"summary": "Fix login", "labels": ["auth"], "assignee": "Priya"}


def test_edited_title_becomes_issue_summary() -> None:
    originals = [
        {
            "action": "create_issue",
            "target": "jira",
            "title": "Fix login",
            "data": {"summary": "Fix login"},
        }
    ]
    rows = actions_to_rows(originals)
    rows[0]["title"] = "Fix SSO login redirect"

    client = MagicMock()
    client.create_issue.return_value = {"id": "1", "key": "ENG-1"}
    ActionExecutor(client, "s").execute(normalize_actions(rows_to_actions(rows, originals)))

    assert client.create_issue.call_args.args[0]["summary"] == "Fix SSO login redirect"


def test_deleted_row_keeps_hidden_fields_aligned() -> None:
    originals = [
        {"action": "delete_page", "target": "confluence", "title": "Old notes", "identifier": {"pageId": "111"}},
        {
            "action": "update_page",
            "target": "confluence",
            "title": "Runbook",
            "identifier": {"pageId": "222"},
            "data": {"body": "<p>new</p>"},
        },
    ]
    rows = actions_to_rows(originals)
    del rows[0]

    confirmed = rows_to_actions(rows, originals)

    assert confirmed == [originals[1]]


def test_added_row_without_original() -> None:
    rows = [{"include": True, "action": "create_issue", "target": "jira", "title": "New", "due_date": "2026-11-01"}]
    assert rows_to_actions(rows) == [
        {"action": "create_issue", "target": "jira", "title": "New", "data": {"dueDate": "2026-11-01"}}
    ]


def test_added_row_alongside_originals_gets_no_hidden_fields() -> None:
    rows = actions_to_rows(ACTIONS)
    rows.append({ROW_ID: None, "include": True, "action": "create_page", "target": "confluence", "title": "Extra"})
    assert rows_to_actions(rows, ACTIONS)[-1] == {"action": "create_page", "target": "confluence", "title": "Extra"}
