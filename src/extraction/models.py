"""Data models for extracted Atlassian actions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

MAX_TITLE_LENGTH = 100


class ActionType(StrEnum):
    """Operations an extracted action can request."""

    CREATE_ISSUE = "create_issue"
    UPDATE_ISSUE = "update_issue"
    DELETE_ISSUE = "delete_issue"
    CREATE_PAGE = "create_page"
    UPDATE_PAGE = "update_page"
    DELETE_PAGE = "delete_page"

    @property
    def is_create(self) -> bool:
        return self.value.startswith("create_")

    @property
    def expected_target(self) -> Target:
        return Target.JIRA if self.value.endswith("_issue") else Target.CONFLUENCE


class Target(StrEnum):
    """External system an action applies to."""

    JIRA = "jira"
    CONFLUENCE = "confluence"


# Wire name -> attribute name
_IDENTIFIER_FIELDS = {
    "issueKey": "issue_key",
    "projectKey": "project_key",
    "pageId": "page_id",
    "pageTitle": "page_title",
    "spaceKey": "space_key",
}

_DATA_FIELDS = {
    "summary": "summary",
    "description": "description",
    "issueType": "issue_type",
    "priority": "priority",
    "assignee": "assignee",
    "labels": "labels",
    "dueDate": "due_date",
    "body": "body",
}


def _to_wire(obj: Any, fields: dict[str, str]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for wire, attr in fields.items():
        value = getattr(obj, attr)
        if value is not None:
            out[wire] = list(value) if isinstance(value, list) else value
    return out


def _clean_str(value: Any) -> str | None:
    """Accept strings and numbers (page ids often come back numeric)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


@dataclass
class ActionIdentifier:
    """Locates an existing issue/page, or the project/space for a new one."""

    issue_key: str | None = None
    project_key: str | None = None
    page_id: str | None = None
    page_title: str | None = None
    space_key: str | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ActionIdentifier:
        return cls(**{attr: _clean_str(raw.get(wire)) for wire, attr in _IDENTIFIER_FIELDS.items()})

    def to_dict(self) -> dict[str, Any]:
        return _to_wire(self, _IDENTIFIER_FIELDS)

    def is_empty(self) -> bool:
        return not self.to_dict()


@dataclass
class ActionData:
    """Field values for the issue or page an action creates or edits."""

    summary: str | None = None
    description: str | None = None
    issue_type: str | None = None
    priority: str | None = None
    assignee: str | None = None
    labels: list[str] | None = None
    due_date: str | None = None
    body: str | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ActionData:
        values: dict[str, Any] = {}
        for wire, attr in _DATA_FIELDS.items():
            if attr == "labels":
                labels = raw.get(wire)
                if isinstance(labels, list):
                    cleaned = [s for s in (_clean_str(x) for x in labels) if s]
                    values[attr] = cleaned or None
                continue
            values[attr] = _clean_str(raw.get(wire))
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        return _to_wire(self, _DATA_FIELDS)

    def is_empty(self) -> bool:
        return not self.to_dict()


@dataclass
class Action:
    """A normalized instruction to create/update/delete an issue or page."""

    action: ActionType
    target: Target
    title: str | None = None
    identifier: ActionIdentifier | None = None
    data: ActionData | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"action": self.action.value}
        if self.title is not None:
            out["title"] = self.title
        out["target"] = self.target.value
        if self.identifier is not None and not self.identifier.is_empty():
            out["identifier"] = self.identifier.to_dict()
        if self.data is not None and not self.data.is_empty():
            out["data"] = self.data.to_dict()
        return out


@dataclass
class ExtractionMetadata:
    input_length: int
    actions_found: int
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "inputLength": self.input_length,
            "actionsFound": self.actions_found,
            "timestamp": self.timestamp,
        }


@dataclass
class ExtractionResult:
    """Outcome of one extraction call, persisted as the session's last result."""

    input: str
    actions: list[Action]
    metadata: ExtractionMetadata
    raw: dict[str, Any] = field(default_factory=dict)
    summary: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "input": self.input,
            "actions": [a.to_dict() for a in self.actions],
            "raw": self.raw,
            "metadata": self.metadata.to_dict(),
        }
