"""
Privacy and authorization for queries and search.

Decides per (principal, entity type) whether access is allowed and which
mandatory filter must be ANDed into every read, sanitizes requested field
lists, and applies record-level disclosure rules to result rows.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .registry import (
    can_student_access_entity_type,
    get_user_scope_field,
    is_user_scoped_entity_type,
    default_registry,
    SchemaRegistry,
)
from .schema import Principal
from . import config
from ..util.logging import logger, audit_event

SENSITIVE_FIELD_BLOCKLIST = ["password", "secret", "token", "hash", "apiKey"]

# Friendly synonyms callers (usually the assistant) use for real field names
FIELD_ALIASES: Dict[str, Dict[str, str]] = {
    "Activity": {"title": "name", "club": "organization", "hours": "totalHours", "type": "category"},
    "Organization": {"title": "name", "president": "presidentName", "type": "category", "email": "contactEmail"},
    "VolunteeringOpportunity": {"name": "title", "hours": "totalHours", "org": "organization"},
    "VolunteeringParticipation": {"name": "activityName", "organization": "organizationName", "hours": "totalHours"},
    "VolunteeringGoal": {"hours": "targetHours", "goal": "targetHours"},
    "AlumniProfile": {"name": "displayName", "major": "intendedMajor", "email": "contactEmail", "interests": "careerInterestTags"},
    "ExtractedActivity": {"name": "title"},
    "ExtractedAward": {"name": "title"},
    "AdmissionResult": {"college": "collegeName", "school": "collegeName", "result": "decision", "round": "decisionRound"},
}

# Curated projections returned when a student's field list matches nothing real
DEFAULT_SAFE_FIELDS: Dict[str, List[str]] = {
    "Activity": ["id", "name", "category", "organization", "role", "totalHours", "status"],
    "Verification": ["id", "activityId", "status"],
    "Organization": ["id", "name", "description", "category", "presidentName"],
    "VolunteeringOpportunity": ["id", "title", "organization", "category", "location", "totalHours"],
    "VolunteeringParticipation": ["id", "activityName", "organizationName", "totalHours", "status", "verified"],
    "VolunteeringGoal": ["id", "targetHours", "description"],
    "AlumniProfile": ["id", "displayName", "intendedMajor", "careerInterestTags", "graduationYear"],
    "AlumniApplication": ["id", "status"],
    "ExtractedEssay": ["id", "topic", "summary"],
    "ExtractedActivity": ["id", "title", "organization", "role", "hours"],
    "ExtractedAward": ["id", "title", "level", "year"],
    "AdmissionResult": ["id", "collegeName", "decision", "decisionRound"],
}


@dataclass
class AccessConstraints:
    allowed: bool
    mandatory_filter: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None


@dataclass
class DisclosurePolicy:
    """Tiered disclosure driven by a per-record setting field."""
    field: str
    hidden_values: List[str]
    partial_values: List[str]
    identifier_fields: List[str]
    placeholders: Dict[str, str] = field(default_factory=dict)


DISCLOSURE_POLICIES: Dict[str, DisclosurePolicy] = {
    "AlumniProfile": DisclosurePolicy(
        field="privacy",
        hidden_values=["ANONYMOUS"],
        partial_values=["PSEUDONYM"],
        identifier_fields=["fullName", "contactEmail", "userId"],
        placeholders={"displayName": "Anonymous Alumni"},
    ),
}

# Entity types whose visibility follows the disclosure setting of an ancestor
# AlumniProfile: entity type -> chain of (foreign key field, parent entity type)
DISCLOSURE_PARENTS = {
    "AlumniApplication": [("alumniProfileId", "AlumniProfile")],
    "ExtractedEssay": [("applicationId", "AlumniApplication"), ("alumniProfileId", "AlumniProfile")],
    "ExtractedActivity": [("applicationId", "AlumniApplication"), ("alumniProfileId", "AlumniProfile")],
    "ExtractedAward": [("applicationId", "AlumniApplication"), ("alumniProfileId", "AlumniProfile")],
    "AdmissionResult": [("applicationId", "AlumniApplication"), ("alumniProfileId", "AlumniProfile")],
}

_ACCESS_POLICIES: Dict[str, Callable[[Principal], AccessConstraints]] = {}


def access_policy(entity_type: str):
    """Register a bespoke access policy for non-elevated principals."""
    def decorator(func: Callable[[Principal], AccessConstraints]):
        _ACCESS_POLICIES[entity_type] = func
        return func
    return decorator


@access_policy("Organization")
def _organization_policy(principal: Principal) -> AccessConstraints:
    return AccessConstraints(allowed=True, mandatory_filter={"status": "APPROVED"})


@access_policy("VolunteeringOpportunity")
def _opportunity_policy(principal: Principal) -> AccessConstraints:
    return AccessConstraints(allowed=True, mandatory_filter={"status": "approved"})


@access_policy("AlumniProfile")
def _alumni_profile_policy(principal: Principal) -> AccessConstraints:
    return AccessConstraints(allowed=True, mandatory_filter={"privacy": {"in": ["FULL", "PSEUDONYM"]}})


@access_policy("User")
def _user_policy(principal: Principal) -> AccessConstraints:
    return AccessConstraints(allowed=False, error_message="Students cannot access other users' data")


def get_access_constraints(principal: Principal, entity_type: str) -> AccessConstraints:
    """
    Determine whether a principal may read an entity type and under which filter.

    Elevated principals get full access. Other principals are limited to the
    student allow-list, see only their own rows of user-scoped types, and are
    subject to any bespoke policy registered for the type.
    """
    if principal.is_elevated:
        return AccessConstraints(allowed=True)

    # User carries its own denial message
    if entity_type == "User":
        return _ACCESS_POLICIES["User"](principal)

    if not can_student_access_entity_type(entity_type):
        return AccessConstraints(allowed=False, error_message=f"Students cannot access {entity_type} data")

    if is_user_scoped_entity_type(entity_type):
        scope_field = get_user_scope_field(entity_type)
        if scope_field:
            return AccessConstraints(allowed=True, mandatory_filter={scope_field: principal.id})

    policy = _ACCESS_POLICIES.get(entity_type)
    if policy:
        return policy(principal)

    return AccessConstraints(allowed=True)


def merge_filters(user_filter: Optional[Dict[str, Any]], mandatory_filter: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """AND a caller filter with a mandatory filter; the mandatory side is never dropped."""
    if not mandatory_filter:
        return user_filter or {}
    if not user_filter:
        return mandatory_filter
    return {"AND": [user_filter, mandatory_filter]}


def _is_sensitive_field(name: str) -> bool:
    lowered = name.lower()
    return any(term.lower() in lowered for term in SENSITIVE_FIELD_BLOCKLIST)


def redact_fields(entity_type: str, requested_fields: Optional[List[str]], role: str,
                  registry: SchemaRegistry = None) -> Optional[List[str]]:
    """
    Sanitize a requested field projection.

    Args:
        entity_type: Entity type being queried
        requested_fields: Field names asked for, possibly using aliases
        role: Principal role
        registry: Schema registry to validate against

    Returns:
        The field list to select, or None to select the default projection
    """
    if not requested_fields:
        return None

    registry = registry or default_registry
    aliases = FIELD_ALIASES.get(entity_type, {})

    resolved: List[str] = []
    for name in requested_fields:
        real = aliases.get(name, name)
        if real not in resolved:
            resolved.append(real)

    blocked = [f for f in resolved if _is_sensitive_field(f)]
    if blocked:
        audit_event(
            event_type="privacy.fields_blocked",
            identifiers={"entity_type": entity_type, "role": role},
            payload={"blocked": blocked}
        )
    sanitized = [f for f in resolved if not _is_sensitive_field(f)]

    if config.is_elevated_role(role):
        return sanitized or None

    valid_names = set(registry.get_scalar_fields(entity_type))
    invalid = [f for f in sanitized if f not in valid_names]
    if invalid:
        logger.warning(f"Dropping unknown fields for {entity_type}: {', '.join(invalid)}")
    sanitized = [f for f in sanitized if f in valid_names]

    if not sanitized:
        defaults = DEFAULT_SAFE_FIELDS.get(entity_type)
        return list(defaults) if defaults else None

    return sanitized


def default_projection(entity_type: str, registry: SchemaRegistry = None) -> List[str]:
    """All column-backed, non-sensitive fields of an entity type."""
    registry = registry or default_registry
    return [f for f in registry.get_scalar_fields(entity_type) if not _is_sensitive_field(f)]


def apply_record_level_redaction(rows: List[Dict[str, Any]], entity_type: str) -> List[Dict[str, Any]]:
    """
    Apply tiered disclosure to result rows.

    Fully hidden rows are dropped (the mandatory filter should already have
    excluded them); partially disclosed rows lose their direct identifiers.
    """
    policy = DISCLOSURE_POLICIES.get(entity_type)
    if not policy:
        return rows

    redacted = []
    for row in rows:
        setting = row.get(policy.field)
        if setting in policy.hidden_values:
            continue
        if setting in policy.partial_values:
            row = dict(row)
            for name in policy.identifier_fields:
                if name in row:
                    row[name] = None
            for name, placeholder in policy.placeholders.items():
                if name in row and not row[name]:
                    row[name] = placeholder
        redacted.append(row)
    return redacted


def is_record_visible(principal: Principal, entity_type: str, record_id: str, record_source) -> bool:
    """
    Per-record visibility check used when ranking search matches.

    The record must satisfy the principal's mandatory filter and, for
    alumni-derived types, must not belong to an anonymous profile.
    """
    if principal.is_elevated:
        return True

    constraints = get_access_constraints(principal, entity_type)
    if not constraints.allowed:
        return False

    if constraints.mandatory_filter:
        scoped = merge_filters({"id": record_id}, constraints.mandatory_filter)
        if record_source.count(entity_type, scoped) == 0:
            return False

    chain = DISCLOSURE_PARENTS.get(entity_type)
    if chain:
        record = record_source.get(entity_type, record_id)
        for fk_field, parent_type in chain:
            if not record or not record.get(fk_field):
                return False
            record = record_source.get(parent_type, record[fk_field])
        policy = DISCLOSURE_POLICIES["AlumniProfile"]
        if not record or record.get(policy.field) in policy.hidden_values:
            return False

    return True
