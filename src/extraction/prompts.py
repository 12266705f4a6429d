"""Instruction prompt for transcript-to-action extraction."""

from __future__ import annotations

import json

from src.extraction.rules import render_heuristics

_SCHEMA = """\
{
  "summary": "one or two sentences describing the transcript",
  "actions": [
    {
      "action": "create_issue" | "update_issue" | "delete_issue" | "create_page" | "update_page" | "delete_page",
      "title": "short, human-readable title (required for create_*; optional otherwise)",
      "target": "jira" | "confluence",
      "identifier": {
        "issueKey": "e.g. PROJ-123",
        "projectKey": "e.g. PROJ",
        "pageId": "confluence page id if known",
        "pageTitle": "page title if the id is unknown",
        "spaceKey": "e.g. ENG"
      },
      "data": {
        "summary": "short summary",
        "description": "longer text",
        "issueType": "Bug | Task | Story",
        "priority": "Highest | High | Medium | Low",
        "assignee": "name",
        "labels": ["list", "of", "tags"],
        "dueDate": "date or natural language",
        "body": "confluence body content"
      }
    }
  ]
}"""

# (input, expected output) pairs shown to the model
FEW_SHOT_EXAMPLES: list[tuple[str, dict[str, object]]] = [
    (
        "Fix the API rate limit bug and update the onboarding docs. "
        "Delete page 'Old Sprint Plan' in space ENG.",
        {
            "summary": "A rate-limit bug fix plus two documentation changes.",
            "actions": [
                {
                    "action": "create_issue",
                    "title": "Fix API rate limit bug",
                    "target": "jira",
                    "data": {"issueType": "Bug", "summary": "Fix API rate limit bug"},
                },
                {
                    "action": "update_page",
                    "title": "Update onboarding documentation",
                    "target": "confluence",
                    "identifier": {"pageTitle": "Onboarding documentation"},
                },
                {
                    "action": "delete_page",
                    "target": "confluence",
                    "identifier": {"pageTitle": "Old Sprint Plan", "spaceKey": "ENG"},
                },
            ],
        },
    ),
    (
        "Okay so Priya needs to set up a planning meeting with me at 4 about the Q3 roadmap. "
        "The flaky checkout test in PAY-88 is fixed now, close it out. "
        "And can someone write up notes from today's architecture review.",
        {
            "summary": "Roadmap planning, a resolved test issue, and review notes.",
            "actions": [
                {
                    "action": "create_issue",
                    "title": "Schedule Q3 roadmap planning meeting with Priya",
                    "target": "jira",
                    "data": {"issueType": "Task", "assignee": "Priya", "dueDate": "4:00 PM"},
                },
                {
                    "action": "update_issue",
                    "title": "Close flaky checkout test",
                    "target": "jira",
                    "identifier": {"issueKey": "PAY-88"},
                    "data": {"description": "Flaky checkout test has been fixed."},
                },
                {
                    "action": "create_page",
                    "title": "Architecture review notes",
                    "target": "confluence",
                },
            ],
        },
    ),
]


def build_system_prompt() -> str:
    """Return the fixed instruction prompt with heuristics and examples."""
    examples = "\n\n".join(
        f"Input: {text!r}\nOutput:\n{json.dumps(output, indent=2)}"
        for text, output in FEW_SHOT_EXAMPLES
    )
    return (
        "You are an action parser for Atlassian tools.\n\n"
        "Extract ALL actionable items from the user's input and return them as STRICT JSON.\n"
        "Return ONLY a valid JSON object with this structure:\n"
        f"{_SCHEMA}\n\n"
        "---\n"
        f"{render_heuristics()}\n\n"
        "If no valid actions are found, return {\"summary\": \"...\", \"actions\": []}.\n"
        "Do NOT include explanations, prose, or markdown. Return VALID JSON ONLY.\n\n"
        "---\n"
        "### Examples\n\n"
        f"{examples}"
    )


def build_user_prompt(transcript: str) -> str:
    return f"Input: {transcript}\n\nOutput:"
