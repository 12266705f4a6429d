"""Transcript-to-action extraction: prompt, generate, parse, validate, persist."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from src.errors import ParseError, ValidationError
from src.extraction import llm
from src.extraction.models import (
    MAX_TITLE_LENGTH,
    Action,
    ActionData,
    ActionIdentifier,
    ActionType,
    ExtractionMetadata,
    ExtractionResult,
    Target,
)
from src.extraction.parser import parse_model_json
from src.extraction.prompts import build_system_prompt, build_user_prompt
from src.extraction.rules import heuristic_actions
from src.pipeline_config import LLMProvider

if TYPE_CHECKING:
    from src.sessions.store import ResultStore

logger = logging.getLogger(__name__)

MANUAL_REVIEW_TITLE = "Manual Review Required"


@dataclass
class ExtractionOutcome:
    """Everything one extraction attempt produced.

    ``error`` is set when the model output could not be used; ``actions`` is
    then empty (or the fallback action, on the fallback path).
    """

    actions: list[Action] = field(default_factory=list)
    summary: str = ""
    raw: dict[str, Any] = field(default_factory=dict)
    raw_text: str = ""
    error: str | None = None
    source: str = "model"  # "model", "heuristic", or "fallback"


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_action(raw: Any) -> Action | None:
    """Validate one candidate action; return None if it must be dropped."""
    if not isinstance(raw, dict):
        return None

    try:
        action_type = ActionType(raw.get("action"))
        target = Target(raw.get("target"))
    except ValueError:
        return None

    title = raw.get("title")
    title = title.strip()[:MAX_TITLE_LENGTH].strip() if isinstance(title, str) else None
    if action_type.is_create and not title:
        return None

    identifier = raw.get("identifier")
    data = raw.get("data")
    return Action(
        action=action_type,
        target=target,
        title=title if title else None,
        identifier=ActionIdentifier.from_dict(identifier) if isinstance(identifier, dict) else None,
        data=ActionData.from_dict(data) if isinstance(data, dict) else None,
    )


def normalize_actions(candidates: list[Any]) -> list[Action]:
    """Keep only schema-conforming actions, in their original order."""
    actions: list[Action] = []
    for raw in candidates:
        action = normalize_action(raw)
        if action is None:
            logger.debug("Dropping invalid action candidate: %r", raw)
            continue
        actions.append(action)
    return actions


def extract_actions(transcript: str, provider: LLMProvider | None = None) -> ExtractionOutcome:
    """Extract actions from a transcript.

    Malformed model output never raises: the outcome carries ``error`` and an
    empty action list. Upstream failures (``UpstreamError``) propagate. When
    no generation provider is configured the routing table is applied
    directly.
    """
    provider = provider or llm.current_provider()
    if not llm.is_configured(provider):
        logger.warning("No %s API key configured; using heuristic extraction", provider.value)
        actions = heuristic_actions(transcript)
        return ExtractionOutcome(
            actions=actions,
            summary=f"Extracted {len(actions)} actionable items from transcript.",
            raw={"actions": [a.to_dict() for a in actions]},
            source="heuristic",
        )

    raw_text = llm.generate_json(build_system_prompt(), build_user_prompt(transcript), provider)
    parsed = parse_model_json(raw_text)
    if parsed.value is None:
        return ExtractionOutcome(
            raw_text=raw_text, error="Could not parse JSON from model response"
        )

    candidates = parsed.value.get("actions")
    if not isinstance(candidates, list):
        return ExtractionOutcome(
            raw=parsed.value, raw_text=raw_text, error="Invalid response structure"
        )

    actions = normalize_actions(candidates)
    summary = parsed.value.get("summary")
    logger.info(
        "Extracted %d/%d actions (parse step: %s)", len(actions), len(candidates), parsed.step
    )
    return ExtractionOutcome(
        actions=actions,
        summary=summary if isinstance(summary, str) else "",
        raw=parsed.value,
        raw_text=raw_text,
    )


def parse_transcript(text: str, session_id: str, store: ResultStore) -> ExtractionResult:
    """Extract, attach metadata, and persist as the session's last result.

    Raises:
        ValidationError: ``text`` is empty.
        ParseError: the model output was unusable.
        UpstreamError: the generation API failed.
    """
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("Invalid payload: expected { text: string }")

    outcome = extract_actions(text)
    if outcome.error:
        raise ParseError(outcome.error, raw=outcome.raw_text)

    result = ExtractionResult(
        input=text,
        actions=outcome.actions,
        raw=outcome.raw,
        summary=outcome.summary,
        metadata=ExtractionMetadata(
            input_length=len(text),
            actions_found=len(outcome.actions),
            timestamp=utc_timestamp(),
        ),
    )
    store.save_result(session_id, result.to_dict())
    return result


def manual_review_action(transcript: str = "") -> Action:
    """The single action returned when extraction cannot produce anything."""
    description = "Please review the transcript and create tasks manually."
    if transcript:
        excerpt = transcript[:200]
        description = f"{description}\n\n{excerpt}{'...' if len(transcript) > 200 else ''}"
    return Action(
        action=ActionType.CREATE_ISSUE,
        target=Target.JIRA,
        title=MANUAL_REVIEW_TITLE,
        data=ActionData(summary=MANUAL_REVIEW_TITLE, description=description),
    )


def extract_with_fallback(transcript: str) -> ExtractionOutcome:
    """Extraction for the processing flow: never raises.

    Any failure, upstream or parse, yields a single manual-review action so
    the reviewer always has something to act on.
    """
    try:
        outcome = extract_actions(transcript)
    except Exception:
        logger.exception("Action extraction failed; returning manual review fallback")
        return ExtractionOutcome(
            actions=[manual_review_action(transcript)],
            summary="Failed to extract actions from transcript.",
            error="extraction_failed",
            source="fallback",
        )

    if outcome.error:
        logger.warning("Model output unusable (%s); returning manual review fallback", outcome.error)
        outcome.actions = [manual_review_action(transcript)]
        outcome.summary = "Transcript processed; actions need manual review."
        outcome.source = "fallback"
    elif not outcome.summary:
        outcome.summary = f"Extracted {len(outcome.actions)} actionable items from transcript."
    return outcome
