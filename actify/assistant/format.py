"""
Prompt formatting for query and search results.
Keeps tool output small enough to feed back into the assistant's context window.
"""

from datetime import date, datetime
import math
from typing import Any, Dict, List

MAX_TEXT_LENGTH = 200
MAX_LIST_ITEMS = 10
CHARS_PER_TOKEN = 4

ENTITY_TYPE_GROUPS = [
    ("User Data", lambda name: name == "User"),
    ("Activities", lambda name: name in ("Activity", "Verification")),
    ("Volunteering", lambda name: name.startswith("Volunteering")),
    ("Organizations", lambda name: name == "Organization"),
    ("Alumni", lambda name: name.startswith("Alumni") or name.startswith("Extracted") or name == "AdmissionResult"),
]


def compact_row(row: Any) -> Any:
    """Shrink one result row: drop nulls, truncate text, round floats, shorten lists."""
    if not isinstance(row, dict):
        return row

    compacted: Dict[str, Any] = {}
    for key, value in row.items():
        if value is None:
            continue
        if isinstance(value, str):
            compacted[key] = value[:MAX_TEXT_LENGTH] + "..." if len(value) > MAX_TEXT_LENGTH else value
        elif isinstance(value, float):
            compacted[key] = round(value, 2)
        elif isinstance(value, datetime):
            compacted[key] = value.date().isoformat()
        elif isinstance(value, date):
            compacted[key] = value.isoformat()
        elif isinstance(value, (list, tuple)):
            compacted[key] = list(value)[:MAX_LIST_ITEMS]
        elif isinstance(value, dict):
            compacted[key] = compact_row(value)
        else:
            compacted[key] = value
    return compacted


def compact_results(rows: List[Any]) -> List[Any]:
    return [compact_row(row) for row in rows]


def _row_summary(row: Dict[str, Any], entity_type: str) -> str:
    if entity_type == "Activity":
        text = row.get("name") or "Activity"
        if row.get("organization"):
            text += f" at {row['organization']}"
        if row.get("totalHours"):
            text += f" ({row['totalHours']}h)"
        return text

    if entity_type == "Organization":
        text = str(row.get("name"))
        if row.get("presidentName"):
            text += f" - President: {row['presidentName']}"
        if row.get("category"):
            text += f" ({row['category']})"
        return text

    if entity_type == "VolunteeringParticipation":
        name = row.get("organizationName") or row.get("activityName") or "Volunteering"
        text = f"{name} - {row.get('totalHours')}h"
        if row.get("verified"):
            text += " (verified)"
        return text

    if entity_type == "VolunteeringOpportunity":
        text = f"{row.get('title')} at {row.get('organization')}"
        if row.get("totalHours"):
            text += f" ({row['totalHours']}h)"
        return text

    if entity_type == "VolunteeringGoal":
        text = f"Target: {row.get('targetHours')}h"
        if row.get("description"):
            text += f" - {row['description']}"
        return text

    if entity_type == "AlumniProfile":
        text = row.get("displayName") or "Alumni"
        if row.get("intendedMajor"):
            text += f" ({row['intendedMajor']})"
        return text

    if entity_type == "ExtractedActivity":
        text = str(row.get("title"))
        if row.get("organization"):
            text += f" at {row['organization']}"
        if row.get("hours"):
            text += f" ({row['hours']}h)"
        return text

    if entity_type == "AdmissionResult":
        text = f"{row.get('collegeName')}: {row.get('decision')}"
        if row.get("decisionRound"):
            text += f" ({row['decisionRound']})"
        return text

    return str(row.get("name") or row.get("title") or row.get("displayName") or f"ID: {row.get('id')}")


def format_results_for_prompt(rows: List[Dict[str, Any]], entity_type: str, max_rows: int = 10) -> str:
    """
    Render query rows as a numbered one-line-per-row summary.

    Args:
        rows: Query result rows
        entity_type: Entity type the rows belong to
        max_rows: Rows shown before the rest are elided

    Returns:
        Markdown-ish text for the assistant prompt
    """
    if not rows:
        return f"No {entity_type} records found."

    shown = compact_results(rows[:max_rows])
    more = f", showing {max_rows}" if len(rows) > max_rows else ""

    output = f"**{entity_type} ({len(rows)} total{more}):**\n"
    for index, row in enumerate(shown, start=1):
        output += f"{index}. {_row_summary(row, entity_type)}\n"
    return output


def format_entity_type_description(entity_type: str, fields: List[str]) -> str:
    listed = ", ".join(fields[:8])
    extra = f", and {len(fields) - 8} more" if len(fields) > 8 else ""
    return f"{entity_type}: Available fields include {listed}{extra}."


def format_entity_types_list(entity_types: List[str]) -> str:
    """Group entity type names by product area."""
    grouped: Dict[str, List[str]] = {label: [] for label, _ in ENTITY_TYPE_GROUPS}
    grouped["Other"] = []

    for name in entity_types:
        for label, matches in ENTITY_TYPE_GROUPS:
            if matches(name):
                grouped[label].append(name)
                break
        else:
            grouped["Other"].append(name)

    output = "**Available Data Models:**\n"
    for label, names in grouped.items():
        if names:
            output += f"- {label}: {', '.join(names)}\n"
    return output


def estimate_tokens(text: str) -> int:
    """Rough token count at four characters per token."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def truncate_to_token_budget(text: str, max_tokens: int) -> str:
    if estimate_tokens(text) <= max_tokens:
        return text
    return text[:max_tokens * CHARS_PER_TOKEN] + "... [truncated]"
