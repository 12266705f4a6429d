"""Execution endpoints: apply confirmed actions to Jira and Confluence."""

from __future__ import annotations

import asyncio
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends

from src.api.deps import get_atlassian_client, get_store
from src.api.models import ExecuteRequest, WorkspacesResponse
from src.atlassian.client import AtlassianClient
from src.config import settings
from src.errors import NotFoundError, ValidationError
from src.execution.executor import ActionExecutor, session_links
from src.execution.formatter import format_output, format_report_text
from src.extraction.extractor import normalize_action, utc_timestamp
from src.extraction.models import Action
from src.sessions.store import ResultStore, new_session_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def _validate_actions(raw_actions: list[dict[str, Any]]) -> list[Action]:
    actions: list[Action] = []
    invalid: list[int] = []
    for i, raw in enumerate(raw_actions):
        action = normalize_action(raw)
        if action is None:
            invalid.append(i)
        else:
            actions.append(action)
    if invalid:
        raise ValidationError(f"Invalid actions at positions {invalid}")
    if not actions:
        raise ValidationError("No actions to execute")
    return actions


@router.post("/execute")
async def execute(
    request: ExecuteRequest,
    client: Annotated[AtlassianClient, Depends(get_atlassian_client)],
    store: Annotated[ResultStore, Depends(get_store)],
) -> dict[str, Any]:
    """Run the confirmed actions in order.

    Responds 200 even when some actions failed; each failure is listed
    under ``failed`` and items created before it are kept.
    """
    actions = _validate_actions(request.actions)
    session_id = request.session_id or new_session_id()
    executor = ActionExecutor(
        client,
        session_id,
        default_project_key=request.project_key or settings.default_project_key,
        default_space_key=request.space_key or settings.default_space_key,
        transcript=request.transcript,
    )
    report = await asyncio.to_thread(executor.execute, actions)
    logger.info(
        "Session %s: %d succeeded, %d failed",
        session_id,
        len(report.succeeded),
        len(report.failed),
    )

    store.save_session(
        session_id,
        {
            **session_links(report),
            "meta": {"lastExecution": {"succeeded": len(report.succeeded), "failed": len(report.failed)}},
            "updatedAt": utc_timestamp(),
        },
    )

    body = report.to_dict()
    formatted = format_output(
        [item.to_dict() for item in report.created],
        session_id,
        [a.to_dict() for a in actions if a.action.is_create],
    )
    body["summary"] = formatted["summary"]
    body["items"] = formatted["items"]
    body["text"] = format_report_text(body)
    return body


@router.get("/sessions/{session_id}")
async def get_session(
    session_id: str,
    store: Annotated[ResultStore, Depends(get_store)],
) -> dict[str, Any]:
    record = store.get_session(session_id)
    if record is None:
        raise NotFoundError(f"Session {session_id} not found")
    return record


@router.get("/workspaces", response_model=WorkspacesResponse)
async def workspaces(
    client: Annotated[AtlassianClient, Depends(get_atlassian_client)],
) -> WorkspacesResponse:
    """Jira projects and Confluence spaces visible to the current token."""
    projects = await asyncio.to_thread(client.list_projects)
    spaces = await asyncio.to_thread(client.list_spaces)
    return WorkspacesResponse(
        jira_projects=[
            {"id": p.get("id"), "key": p.get("key"), "name": p.get("name")} for p in projects
        ],
        confluence_spaces=[
            {"id": s.get("id"), "key": s.get("key"), "name": s.get("name")} for s in spaces
        ],
    )
