"""Routing rules: map transcript clauses to a target system and default action.

The table is evaluated top to bottom and the first matching rule wins, so
deletions and edits of documents are checked before the broader
documentation and work-item patterns. The same table renders the heuristics
section of the extraction prompt and drives the offline extractor used when
no generation provider is configured.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from src.extraction.models import MAX_TITLE_LENGTH, Action, ActionData, ActionType, Target

_DOC_NOUNS = r"(docs?|documents?|documentation|pages?|notes?|write[\s-]?ups?|wiki|minutes)"


@dataclass(frozen=True)
class RoutingRule:
    """One row of the routing table."""

    name: str
    pattern: re.Pattern[str]
    target: Target
    action_default: ActionType
    keywords: str  # Human-readable trigger list rendered into the prompt


ROUTING_RULES: list[RoutingRule] = [
    RoutingRule(
        name="delete_document",
        pattern=re.compile(rf"\b(delete|remove|trash|archive)\b.*\b{_DOC_NOUNS}\b", re.IGNORECASE),
        target=Target.CONFLUENCE,
        action_default=ActionType.DELETE_PAGE,
        keywords="delete/remove a doc, page, or notes",
    ),
    RoutingRule(
        name="delete_work_item",
        pattern=re.compile(r"\b(delete|remove|drop|cancel)\b", re.IGNORECASE),
        target=Target.JIRA,
        action_default=ActionType.DELETE_ISSUE,
        keywords="delete, remove, drop, cancel",
    ),
    RoutingRule(
        name="update_document",
        pattern=re.compile(
            rf"\b(update|edit|change|append|revise|add\s+to)\b.*\b{_DOC_NOUNS}\b", re.IGNORECASE
        ),
        target=Target.CONFLUENCE,
        action_default=ActionType.UPDATE_PAGE,
        keywords="update/edit/change/append to an existing doc or page",
    ),
    RoutingRule(
        name="create_document",
        pattern=re.compile(
            rf"\b(write|document|summari[sz]e|summary|{_DOC_NOUNS})\b", re.IGNORECASE
        ),
        target=Target.CONFLUENCE,
        action_default=ActionType.CREATE_PAGE,
        keywords="write, document, add notes, make page, create doc, summary, documentation, notes",
    ),
    RoutingRule(
        name="update_work_item",
        pattern=re.compile(
            r"\b(update|edit|change|reassign|close|resolve|push(ed)?\s+back|reschedule|delay|postpone)\b",
            re.IGNORECASE,
        ),
        target=Target.JIRA,
        action_default=ActionType.UPDATE_ISSUE,
        keywords="update, edit, change, reassign, close, resolve, push back, reschedule, delay",
    ),
    RoutingRule(
        name="create_work_item",
        pattern=re.compile(
            r"\b(fix|resolve|implement|complete|finish|do|assign|tasks?|issues?|bugs?|tickets?|"
            r"sprint|schedule|plan|review|create|make|add|open|file|build|investigate)\b",
            re.IGNORECASE,
        ),
        target=Target.JIRA,
        action_default=ActionType.CREATE_ISSUE,
        keywords="fix, implement, complete, do, finish, assign, task, issue, bug, sprint, schedule, plan, review",
    ),
]

_CLAUSE_SPLIT = re.compile(r"[.!?;\n]+|,?\s+\b(?:and\s+then|and|also|then)\b\s+", re.IGNORECASE)
_FILLER_PREFIX = re.compile(r"^(also|then|so|and|please|finally|okay|ok|um+|uh+)[,\s]+", re.IGNORECASE)


def route_clause(text: str, rules: list[RoutingRule] | None = None) -> RoutingRule | None:
    """Return the first rule whose pattern matches ``text``, or None."""
    for rule in rules if rules is not None else ROUTING_RULES:
        if rule.pattern.search(text):
            return rule
    return None


def split_clauses(text: str) -> list[str]:
    """Split free-form speech into candidate action clauses."""
    clauses: list[str] = []
    for part in _CLAUSE_SPLIT.split(text):
        clause = part.strip(" ,")
        while True:
            stripped = _FILLER_PREFIX.sub("", clause)
            if stripped == clause:
                break
            clause = stripped
        if clause:
            clauses.append(clause)
    return clauses


def _title_from_clause(clause: str) -> str:
    title = clause[0].upper() + clause[1:]
    return title[:MAX_TITLE_LENGTH].strip()


def heuristic_actions(text: str, rules: list[RoutingRule] | None = None) -> list[Action]:
    """Extract actions from ``text`` using the routing table alone.

    Each clause that matches a rule becomes one action with the rule's
    target and default action type; unmatched clauses are ignored.
    """
    actions: list[Action] = []
    for clause in split_clauses(text):
        rule = route_clause(clause, rules)
        if rule is None:
            continue
        title = _title_from_clause(clause)
        data = ActionData(summary=title) if rule.target is Target.JIRA else None
        actions.append(
            Action(action=rule.action_default, target=rule.target, title=title, data=data)
        )
    return actions


def render_heuristics(rules: list[RoutingRule] | None = None) -> str:
    """Render the routing table as the prompt's decision heuristics section."""
    lines: list[str] = ["### Decision Heuristics (evaluated in priority order)", ""]
    for i, rule in enumerate(rules if rules is not None else ROUTING_RULES, 1):
        lines.append(
            f'{i}. target="{rule.target.value}", default action {rule.action_default.value}'
            f" - triggers: {rule.keywords}"
        )
    lines.append("")
    lines.append(
        "Prefer Jira for actions that need to be tracked or executed (do/fix/schedule) and "
        "Confluence for content to be stored or documented."
    )
    return "\n".join(lines)
