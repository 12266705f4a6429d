"""Summaries of executed actions for the review UI and /format-output."""

from __future__ import annotations

from typing import Any

_TYPE_LABELS = {
    "jira_issue": "Jira issue",
    "confluence_page": "Confluence page",
}


def _describe(item: dict[str, Any], original: dict[str, Any] | None) -> str:
    """One sentence saying what the item relates to."""
    label = _TYPE_LABELS.get(str(item.get("type")), "Item")
    title = item.get("title") or (original or {}).get("title") or item.get("key") or item.get("id")
    data = (original or {}).get("data") or {}
    detail = data.get("description") or data.get("summary")
    sentence = f"{label} for \"{title}\""
    if detail and detail != title:
        first = str(detail).strip().split("\n")[0]
        sentence += f": {first[:140]}"
    return sentence + "."


def format_output(
    results: list[dict[str, Any]],
    session_id: str,
    original_actions: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Format created-item results into ``{summary, items, sessionId}``.

    ``original_actions`` is matched to ``results`` by title, falling back to
    position, to enrich each item's description.
    """
    originals = original_actions or []
    by_title = {a.get("title"): a for a in originals if a.get("title")}

    items: list[dict[str, Any]] = []
    for i, item in enumerate(results):
        original = by_title.get(item.get("title"))
        if original is None and i < len(originals):
            original = originals[i]
        items.append(
            {
                "type": item.get("type", "other"),
                "title": item.get("title") or item.get("key") or item.get("id"),
                "url": item.get("url"),
                "description": _describe(item, original),
            }
        )

    count = len(items)
    if count == 0:
        summary = "No items were created from your session."
    else:
        summary = f"Created {count} item{'s' if count != 1 else ''} from your session."
    return {"summary": summary, "items": items, "sessionId": session_id}


def format_report_text(report: dict[str, Any]) -> str:
    """Markdown-style text listing successes and failures of an execution report."""
    parts: list[str] = []
    succeeded = report.get("succeeded", [])
    failed = report.get("failed", [])

    if succeeded:
        parts.append("**Completed:**")
        for i, outcome in enumerate(succeeded, 1):
            item = outcome.get("item", {})
            label = _TYPE_LABELS.get(item.get("type"), "Item")
            name = item.get("key") or item.get("title") or item.get("id")
            line = f"  {i}. {outcome['action']['action']} - {label} {name}"
            if item.get("url"):
                line += f" ({item['url']})"
            parts.append(line)
        parts.append("")

    if failed:
        parts.append("**Failed:**")
        for i, outcome in enumerate(failed, 1):
            title = outcome["action"].get("title") or outcome["action"]["action"]
            parts.append(f"  {i}. {title}: {outcome.get('error')}")
        parts.append("")

    if not parts:
        return "No actions were executed."
    return "\n".join(parts).strip()
