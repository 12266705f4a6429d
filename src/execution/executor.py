"""Sequential executor that applies confirmed actions to Jira and Confluence.

Each action's outcome is recorded independently: a failure is logged and
reported, and execution continues with the next action. Items created before
a failure stay in the report; nothing is rolled back.
"""

from __future__ import annotations

import html
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from src.atlassian.client import AtlassianClient, to_adf
from src.errors import AppError, ValidationError
from src.extraction.models import Action, ActionData, ActionType

logger = logging.getLogger(__name__)

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class OutcomeStatus(StrEnum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class ItemLink:
    """The Jira issue or Confluence page an action touched."""

    type: str  # "jira_issue" or "confluence_page"
    id: str
    title: str | None = None
    key: str | None = None
    url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type, "id": self.id}
        if self.key is not None:
            out["key"] = self.key
        out["url"] = self.url
        out["title"] = self.title
        return out


@dataclass
class ActionOutcome:
    index: int
    action: Action
    status: OutcomeStatus
    item: ItemLink | None = None
    error: str | None = None
    error_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "index": self.index,
            "action": self.action.to_dict(),
            "status": self.status.value,
        }
        if self.item is not None:
            out["item"] = self.item.to_dict()
        if self.error is not None:
            out["error"] = self.error
            out["errorType"] = self.error_type
        return out


@dataclass
class ExecutionReport:
    """Partial-success result: every action appears exactly once in ``outcomes``."""

    session_id: str
    outcomes: list[ActionOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> list[ActionOutcome]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.SUCCEEDED]

    @property
    def failed(self) -> list[ActionOutcome]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.FAILED]

    @property
    def created(self) -> list[ItemLink]:
        return [
            o.item for o in self.succeeded if o.item is not None and o.action.action.is_create
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "created": [i.to_dict() for i in self.created],
            "succeeded": [o.to_dict() for o in self.succeeded],
            "failed": [o.to_dict() for o in self.failed],
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


def _page_body(title: str, data: ActionData | None, session_id: str, transcript: str) -> str:
    if data is not None and data.body:
        return data.body
    description = data.description if data is not None and data.description else ""
    parts = [f"<h2>{html.escape(title)}</h2>", f"<p>{html.escape(description)}</p>", "<hr/>"]
    parts.append(f"<p><em>Created from voice session: {html.escape(session_id)}</em></p>")
    if transcript:
        parts.append(f"<h3>Transcript</h3><pre>{html.escape(transcript)}</pre>")
    return "".join(parts)


class ActionExecutor:
    """Apply a confirmed action list against one Atlassian site."""

    def __init__(
        self,
        client: AtlassianClient,
        session_id: str,
        default_project_key: str = "ENG",
        default_space_key: str = "DOC",
        transcript: str = "",
    ) -> None:
        self.client = client
        self.session_id = session_id
        self.default_project_key = default_project_key
        self.default_space_key = default_space_key
        self.transcript = transcript
        self._space_ids: dict[str, str] = {}
        self._handlers: dict[ActionType, Callable[[Action], ItemLink]] = {
            ActionType.CREATE_ISSUE: self._create_issue,
            ActionType.UPDATE_ISSUE: self._update_issue,
            ActionType.DELETE_ISSUE: self._delete_issue,
            ActionType.CREATE_PAGE: self._create_page,
            ActionType.UPDATE_PAGE: self._update_page,
            ActionType.DELETE_PAGE: self._delete_page,
        }

    def execute(self, actions: list[Action]) -> ExecutionReport:
        """Run every action in order and report each outcome."""
        report = ExecutionReport(session_id=self.session_id)
        for index, action in enumerate(actions):
            try:
                if action.target is not action.action.expected_target:
                    raise ValidationError(
                        f"{action.action.value} cannot target {action.target.value}"
                    )
                item = self._handlers[action.action](action)
            except AppError as exc:
                logger.warning("Action %d (%s) failed: %s", index, action.action.value, exc.message)
                report.outcomes.append(
                    ActionOutcome(
                        index=index,
                        action=action,
                        status=OutcomeStatus.FAILED,
                        error=exc.message,
                        error_type=type(exc).__name__,
                    )
                )
                continue
            except Exception as exc:
                logger.exception("Action %d (%s) failed unexpectedly", index, action.action.value)
                report.outcomes.append(
                    ActionOutcome(
                        index=index,
                        action=action,
                        status=OutcomeStatus.FAILED,
                        error=str(exc),
                        error_type=type(exc).__name__,
                    )
                )
                continue

            logger.info("Action %d (%s) succeeded: %s", index, action.action.value, item.key or item.id)
            report.outcomes.append(
                ActionOutcome(index=index, action=action, status=OutcomeStatus.SUCCEEDED, item=item)
            )
        return report

    # ------------------------------------------------------------------
    # Jira
    # ------------------------------------------------------------------

    def _issue_fields(self, action: Action, creating: bool) -> dict[str, Any]:
        data = action.data or ActionData()
        fields: dict[str, Any] = {}
        # An update only renames the issue when a new summary is given
        summary = data.summary or (action.title if creating else None)
        if summary:
            fields["summary"] = summary[:255]

        description = data.description or ""
        if data.due_date and not _ISO_DATE.match(data.due_date):
            # Jira only accepts YYYY-MM-DD; keep spoken dates in the description.
            description = f"{description}\n\nDue: {data.due_date}".strip()
        elif data.due_date:
            fields["duedate"] = data.due_date

        if data.assignee:
            account_id = self.client.find_account_id(data.assignee)
            if account_id:
                fields["assignee"] = {"id": account_id}
            else:
                description = f"{description}\n\nAssignee: {data.assignee}".strip()

        if creating:
            description = description or f"Created from voice session: {self.session_id}"
        if description:
            fields["description"] = to_adf(description)
        if data.priority:
            fields["priority"] = {"name": data.priority}
        if data.labels:
            fields["labels"] = [label.replace(" ", "-") for label in data.labels]
        return fields

    def _issue_key(self, action: Action) -> str:
        if action.identifier is None or not action.identifier.issue_key:
            raise ValidationError(f"{action.action.value} requires identifier.issueKey")
        return action.identifier.issue_key

    def _create_issue(self, action: Action) -> ItemLink:
        project_key = (
            action.identifier.project_key
            if action.identifier is not None and action.identifier.project_key
            else self.default_project_key
        )
        fields = self._issue_fields(action, creating=True)
        fields["project"] = {"key": project_key}
        fields["issuetype"] = {"name": (action.data.issue_type if action.data else None) or "Task"}
        result = self.client.create_issue(fields)
        key = str(result["key"])
        return ItemLink(
            type="jira_issue",
            id=str(result["id"]),
            key=key,
            url=self.client.issue_url(key) or result.get("self"),
            title=action.title,
        )

    def _update_issue(self, action: Action) -> ItemLink:
        key = self._issue_key(action)
        fields = self._issue_fields(action, creating=False)
        if not fields:
            raise ValidationError("update_issue has no fields to change")
        self.client.update_issue(key, fields)
        return ItemLink(type="jira_issue", id=key, key=key, url=self.client.issue_url(key), title=action.title)

    def _delete_issue(self, action: Action) -> ItemLink:
        key = self._issue_key(action)
        self.client.delete_issue(key)
        return ItemLink(type="jira_issue", id=key, key=key, title=action.title)

    # ------------------------------------------------------------------
    # Confluence
    # ------------------------------------------------------------------

    def _space_id(self, action: Action) -> str:
        key = (
            action.identifier.space_key
            if action.identifier is not None and action.identifier.space_key
            else self.default_space_key
        )
        if key not in self._space_ids:
            self._space_ids[key] = self.client.get_space_id(key)
        return self._space_ids[key]

    def _page_id(self, action: Action) -> str:
        ident = action.identifier
        if ident is not None and ident.page_id:
            return ident.page_id
        if ident is not None and ident.page_title:
            space_id = self._space_id(action) if ident.space_key else None
            return self.client.find_page_id(ident.page_title, space_id)
        raise ValidationError(f"{action.action.value} requires identifier.pageId or identifier.pageTitle")

    def _create_page(self, action: Action) -> ItemLink:
        title = action.title or ""
        page = self.client.create_page(
            self._space_id(action),
            title,
            _page_body(title, action.data, self.session_id, self.transcript),
        )
        return ItemLink(
            type="confluence_page", id=str(page["id"]), url=self.client.page_url(page), title=title
        )

    def _update_page(self, action: Action) -> ItemLink:
        data = action.data
        if data is None or not (data.body or data.description):
            raise ValidationError("update_page requires data.body or data.description")
        page_id = self._page_id(action)
        body = data.body or f"<p>{html.escape(data.description or '')}</p>"
        page = self.client.update_page(page_id, body_html=body)
        return ItemLink(
            type="confluence_page",
            id=page_id,
            url=self.client.page_url(page),
            title=action.title or page.get("title"),
        )

    def _delete_page(self, action: Action) -> ItemLink:
        page_id = self._page_id(action)
        self.client.delete_page(page_id)
        title = action.title or (action.identifier.page_title if action.identifier else None)
        return ItemLink(type="confluence_page", id=page_id, title=title)


def session_links(report: ExecutionReport) -> dict[str, Any]:
    """Session-record update listing the issues and pages touched."""
    items = [o.item for o in report.succeeded if o.item is not None]
    return {
        "relatedIssues": [i.key or i.id for i in items if i.type == "jira_issue"],
        "relatedPages": [i.id for i in items if i.type == "confluence_page"],
    }
