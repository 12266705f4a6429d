"""Tolerant JSON parsing for generation-model output.

Tries, in order:
1. ``strict``: ``json.loads`` on the stripped text
2. ``fenced``: strip markdown code fences, then ``json.loads``
3. ``largest_object``: the largest brace-balanced ``{...}`` substring
4. ``actions_object``: any other balanced substring carrying an ``"actions"`` key

Every step is logged with its outcome and recorded on the returned
``ParseOutcome``. The parser never raises; callers decide what a failed
outcome means.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^\s*```[a-zA-Z0-9_-]*\s*$")


@dataclass
class ParseStep:
    name: str
    ok: bool
    detail: str = ""


@dataclass
class ParseOutcome:
    """Result of parsing: ``value`` is None when every step failed."""

    value: dict[str, Any] | None
    steps: list[ParseStep] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.value is not None

    @property
    def step(self) -> str | None:
        """Name of the step that succeeded."""
        for s in self.steps:
            if s.ok:
                return s.name
        return None


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite number {name}")


def _loads(text: str) -> tuple[dict[str, Any] | None, str]:
    try:
        value = json.loads(text, parse_constant=_reject_constant)
    except json.JSONDecodeError as exc:
        return None, f"invalid json: {exc.msg} at {exc.pos}"
    except ValueError as exc:
        return None, f"invalid json: {exc}"
    # A bare array is treated as the action list itself
    if isinstance(value, list):
        return {"actions": value}, "bare array"
    if not isinstance(value, dict):
        return None, f"top-level {type(value).__name__}, expected object"
    return value, "object"


def _strip_fences(text: str) -> str | None:
    lines = text.strip().split("\n")
    if not any(_FENCE.match(line) for line in lines):
        return None
    return "\n".join(line for line in lines if not _FENCE.match(line))


def balanced_objects(text: str) -> list[str]:
    """Return every brace-balanced ``{...}`` substring, longest first.

    String literals are respected so braces inside quoted values do not
    affect the depth count.
    """
    spans: list[str] = []
    for start, ch in enumerate(text):
        if ch != "{":
            continue
        depth = 0
        in_string = False
        escaped = False
        for end in range(start, len(text)):
            c = text[end]
            if in_string:
                if escaped:
                    escaped = False
                elif c == "\\":
                    escaped = True
                elif c == '"':
                    in_string = False
                continue
            if c == '"':
                in_string = True
            elif c == "{":
                depth += 1
            elif c == "}":
                depth -= 1
                if depth == 0:
                    spans.append(text[start : end + 1])
                    break
    spans.sort(key=len, reverse=True)
    return spans


def parse_model_json(raw: str) -> ParseOutcome:
    """Parse model output into a JSON object, recording each attempt."""
    outcome = ParseOutcome(value=None)

    def record(name: str, value: dict[str, Any] | None, detail: str) -> bool:
        ok = value is not None
        outcome.steps.append(ParseStep(name=name, ok=ok, detail=detail))
        logger.debug("JSON parse step %s: %s (%s)", name, "ok" if ok else "failed", detail)
        if ok:
            outcome.value = value
        return ok

    if not raw or not raw.strip():
        record("strict", None, "empty response")
        logger.info("Model returned an empty response")
        return outcome

    value, detail = _loads(raw.strip())
    if record("strict", value, detail):
        return outcome

    unfenced = _strip_fences(raw)
    if unfenced is None:
        record("fenced", None, "no code fence")
    else:
        value, detail = _loads(unfenced)
        if record("fenced", value, detail):
            return outcome

    candidates = balanced_objects(raw)
    if not candidates:
        record("largest_object", None, "no balanced object")
        logger.info("No JSON structure found in model response")
        return outcome

    value, detail = _loads(candidates[0])
    if record("largest_object", value, detail):
        return outcome

    for candidate in candidates[1:]:
        if '"actions"' not in candidate:
            continue
        value, detail = _loads(candidate)
        if value is not None and "actions" in value:
            record("actions_object", value, detail)
            return outcome
    record("actions_object", None, "no parseable object with an actions key")

    logger.info("All JSON parse steps failed (%d candidates)", len(candidates))
    return outcome
