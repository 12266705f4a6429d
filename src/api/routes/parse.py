"""Parse endpoints: transcript text in, validated action list out."""

from __future__ import annotations

import asyncio
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query

from src.api.deps import get_store
from src.api.models import ParseRequest
from src.errors import NotFoundError
from src.extraction.extractor import parse_transcript
from src.sessions.store import DEFAULT_SESSION_ID, ResultStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.post("/parse")
async def parse(
    request: ParseRequest,
    store: Annotated[ResultStore, Depends(get_store)],
) -> dict[str, Any]:
    """Extract actions from ``text`` and keep the result as the session's last.

    Returns 400 for empty text and 502 when the model output is unusable.
    """
    logger.info("Parsing %d characters for session %s", len(request.text or ""), request.session_id)
    result = await asyncio.to_thread(parse_transcript, request.text or "", request.session_id, store)
    return result.to_dict()


@router.get("/last")
async def last(
    store: Annotated[ResultStore, Depends(get_store)],
    session_id: Annotated[str, Query(alias="sessionId")] = DEFAULT_SESSION_ID,
) -> dict[str, Any]:
    result = store.get_result(session_id)
    if result is None:
        raise NotFoundError("No parsed result available yet")
    return result
