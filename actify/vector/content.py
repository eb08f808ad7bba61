"""
Content builder: turns a record into the text blob that gets embedded.

Each supported entity type registers a recipe that selects and labels fields.
Pure functions only; PII is stripped from the assembled text before it leaves here.
"""

import json
from typing import Any, Callable, Dict, List, Optional

from .embeddings import strip_pii
from .types import EmbeddableContent
from ..util.logging import logger

Recipe = Callable[[Dict[str, Any]], str]

_RECIPES: Dict[str, Recipe] = {}
_OWNER_FIELDS: Dict[str, str] = {}


def content_recipe(entity_type: str, owner_field: Optional[str] = None):
    """Register the recipe for an entity type, optionally naming its owner field."""
    def decorator(func: Recipe) -> Recipe:
        _RECIPES[entity_type] = func
        if owner_field:
            _OWNER_FIELDS[entity_type] = owner_field
        return func
    return decorator


def _labeled(row: Dict[str, Any], pairs) -> str:
    parts = []
    for label, field in pairs:
        value = row.get(field)
        if value:
            parts.append(f"{label}: {value}")
    return "\n".join(parts)


@content_recipe("AlumniApplication")
def _alumni_application(row):
    return row.get("rawText") or ""


@content_recipe("ExtractedEssay")
def _extracted_essay(row):
    text = _labeled(row, [("Topic", "topic"), ("Prompt", "prompt"), ("Summary", "summary")])
    tags = _parse_tags(row.get("tags"))
    if tags:
        text = "\n".join(p for p in [text, f"Tags: {', '.join(tags)}"] if p)
    return text


@content_recipe("ExtractedActivity")
def _extracted_activity(row):
    return _labeled(row, [
        ("Activity", "title"),
        ("Organization", "organization"),
        ("Role", "role"),
        ("Description", "description"),
        ("Hours", "hours"),
        ("Years", "years"),
    ])


@content_recipe("ExtractedAward")
def _extracted_award(row):
    return _labeled(row, [("Award", "title"), ("Level", "level"), ("Year", "year"), ("Description", "description")])


@content_recipe("AdmissionResult")
def _admission_result(row):
    return _labeled(row, [
        ("College", "collegeName"),
        ("Decision", "decision"),
        ("Round", "decisionRound"),
        ("Rank", "rankBucket"),
    ])


@content_recipe("Organization")
def _organization(row):
    return _labeled(row, [
        ("Organization", "name"),
        ("Description", "description"),
        ("Category", "category"),
        ("Leadership", "leadership"),
        ("President", "presidentName"),
    ])


@content_recipe("VolunteeringOpportunity")
def _volunteering_opportunity(row):
    return _labeled(row, [
        ("Opportunity", "title"),
        ("Organization", "organization"),
        ("Description", "description"),
        ("Category", "category"),
        ("Location", "location"),
    ])


@content_recipe("Activity", owner_field="studentId")
def _activity(row):
    return _labeled(row, [
        ("Activity", "name"),
        ("Organization", "organization"),
        ("Role", "role"),
        ("Description", "description"),
        ("Category", "category"),
    ])


@content_recipe("VolunteeringParticipation", owner_field="studentId")
def _volunteering_participation(row):
    return _labeled(row, [
        ("Activity", "activityName"),
        ("Organization", "organizationName"),
        ("Hours", "totalHours"),
    ])


def _parse_tags(raw: Any) -> List[str]:
    if isinstance(raw, list):
        return [str(t) for t in raw]
    if not raw:
        return []
    try:
        tags = json.loads(raw)
    except (TypeError, ValueError):
        return []
    return [str(t) for t in tags] if isinstance(tags, list) else []


def build_content(entity_type: str, record: Optional[Dict[str, Any]]) -> Optional[EmbeddableContent]:
    """
    Build embeddable content from a record.

    Returns:
        EmbeddableContent, or None for unsupported types and records with nothing to index
    """
    if not record:
        return None

    recipe = _RECIPES.get(entity_type)
    if recipe is None:
        logger.warning(f"No content recipe for entity type {entity_type}")
        return None

    content = recipe(record)
    if not content or not content.strip():
        return None

    owner_id = None
    owner_field = _OWNER_FIELDS.get(entity_type)
    if owner_field:
        owner_id = record.get(owner_field)

    return EmbeddableContent(content=strip_pii(content), owner_id=owner_id)


def get_supported_entity_types() -> List[str]:
    return list(_RECIPES.keys())


def is_entity_type_supported(entity_type: str) -> bool:
    return entity_type in _RECIPES
