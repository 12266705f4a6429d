"""Flatten actions into editable table rows and back.

The review page edits actions in ``st.data_editor``, which needs one flat
row per action. ``rows_to_actions`` drops unchecked rows and empty cells so
the result is a valid action list for /api/execute.
"""

from __future__ import annotations

from typing import Any

# (row column, section, wire key)
_NESTED_COLUMNS = [
    ("project", "identifier", "projectKey"),
    ("issue_key", "identifier", "issueKey"),
    ("space", "identifier", "spaceKey"),
    ("page_title", "identifier", "pageTitle"),
    ("assignee", "data", "assignee"),
    ("due_date", "data", "dueDate"),
    ("priority", "data", "priority"),
    ("description", "data", "description"),
]

# Hidden column linking a row to its original action, left out of COLUMNS
ROW_ID = "row_id"

COLUMNS = ["include", "action", "target", "title"] + [c for c, _, _ in _NESTED_COLUMNS]


def actions_to_rows(actions: list[dict[str, Any]]) -> list[dict[str, Any]]:
    rows = []
    for i, action in enumerate(actions):
        row: dict[str, Any] = {
            ROW_ID: str(i),
            "include": True,
            "action": action.get("action"),
            "target": action.get("target"),
            "title": action.get("title") or "",
        }
        for column, section, key in _NESTED_COLUMNS:
            value = (action.get(section) or {}).get(key)
            row[column] = "" if value is None else str(value)
        rows.append(row)
    return rows


def rows_to_actions(
    rows: list[dict[str, Any]], originals: list[dict[str, Any]] | None = None
) -> list[dict[str, Any]]:
    """Rebuild action dicts from edited rows, keeping fields the table hides.

    ``originals`` is matched through each row's ``row_id``, so deleting rows
    never shifts hidden fields onto another action. Rows added in the editor
    have no original.
    """
    by_id = {str(i): original for i, original in enumerate(originals or [])}
    actions = []
    for row in rows:
        if not row.get("include", True):
            continue
        base = by_id.get(str(row.get(ROW_ID)), {})
        action: dict[str, Any] = {
            "action": row.get("action"),
            "target": row.get("target"),
        }
        title = str(row.get("title") or "").strip()
        if title:
            action["title"] = title

        identifier = dict(base.get("identifier") or {})
        data = dict(base.get("data") or {})
        # A hidden summary would override the edited title
        if title and title != base.get("title") and "summary" in data:
            data["summary"] = title
        sections = {"identifier": identifier, "data": data}
        for column, section, key in _NESTED_COLUMNS:
            value = str(row.get(column) or "").strip()
            if value:
                sections[section][key] = value
            else:
                sections[section].pop(key, None)
        if identifier:
            action["identifier"] = identifier
        if data:
            action["data"] = data
        actions.append(action)
    return actions
