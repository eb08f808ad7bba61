"""
Schema introspection over an explicit entity-type registry.

The registry is the single description of the data model: the record store
builds its tables from it, and the query engine, privacy layer and text-search
fallback discover fields through it instead of hardcoding them.
"""

from typing import Dict, List, Optional

from .schema import EntityTypeDescription, FieldDescription
from . import models

SENSITIVE_FIELD_TERMS = ["password", "secret", "token", "hash"]

# Entity types whose records belong to exactly one principal
USER_SCOPED_ENTITY_TYPES = [
    "Activity",
    "Verification",
    "VolunteeringParticipation",
    "VolunteeringGoal",
]

# Field carrying ownership; AlumniProfile has an owner but is not user-scoped
USER_SCOPE_FIELDS = {
    "Activity": "studentId",
    "Verification": "studentId",
    "VolunteeringParticipation": "studentId",
    "VolunteeringGoal": "studentId",
    "AlumniProfile": "userId",
}

# Platform-wide types the student principal class may read
STUDENT_ACCESSIBLE_ENTITY_TYPES = [
    "Organization",
    "VolunteeringOpportunity",
    "AlumniProfile",
    "AlumniApplication",
    "ExtractedActivity",
    "ExtractedEssay",
    "ExtractedAward",
    "AdmissionResult",
]


class SchemaRegistry:
    """Registry of entity-type descriptions with a describe cache."""

    def __init__(self):
        self._fields: Dict[str, List[FieldDescription]] = {}
        self._tables: Dict[str, str] = {}
        self._summaries: Dict[str, str] = {}
        self._cache: Dict[str, EntityTypeDescription] = {}

    def register(self, name: str, fields: List[FieldDescription], table_name: Optional[str] = None,
                 summary: Optional[str] = None) -> None:
        """Register an entity type. Field names must be unique and exactly one must be the id."""
        names = [f.name for f in fields]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate field names in entity type '{name}'")
        id_fields = [f for f in fields if f.is_id]
        if len(id_fields) != 1:
            raise ValueError(f"Entity type '{name}' must have exactly one id field, found {len(id_fields)}")

        self._fields[name] = list(fields)
        self._tables[name] = table_name or name.lower()
        if summary:
            self._summaries[name] = summary
        self._cache.pop(name, None)

    def list_entity_types(self) -> List[str]:
        return list(self._fields.keys())

    def describe_entity_type(self, name: str) -> Optional[EntityTypeDescription]:
        if name in self._cache:
            return self._cache[name]

        fields = self._fields.get(name)
        if fields is None:
            return None

        relations = [f.relation_to for f in fields if f.is_relation and f.relation_to]
        description = EntityTypeDescription(
            name=name,
            table_name=self._tables[name],
            fields=list(fields),
            relations=relations,
            description=self._generate_summary(name, fields),
        )
        self._cache[name] = description
        return description

    def clear_cache(self) -> None:
        self._cache.clear()

    def get_scalar_fields(self, name: str) -> List[str]:
        description = self.describe_entity_type(name)
        if not description:
            return []
        return [f.name for f in description.scalar_fields()]

    def get_searchable_text_fields(self, name: str) -> List[str]:
        """String, non-relation, non-id fields whose name is not sensitive."""
        description = self.describe_entity_type(name)
        if not description:
            return []

        return [
            f.name for f in description.fields
            if not f.is_relation
            and f.type == "String"
            and not f.is_id
            and not any(term in f.name.lower() for term in SENSITIVE_FIELD_TERMS)
        ]

    def _generate_summary(self, name: str, fields: List[FieldDescription]) -> str:
        field_names = [f.name for f in fields if not f.is_relation][:5]
        base = self._summaries.get(name) or f"{name} records"
        return f"{base}. Key fields: {', '.join(field_names)}"


def build_default_registry() -> SchemaRegistry:
    registry = SchemaRegistry()
    for name, fields in models.ENTITY_FIELDS.items():
        registry.register(name, fields, models.TABLE_NAMES.get(name), models.DESCRIPTIONS.get(name))
    return registry


# Global registry instance
default_registry = build_default_registry()


def list_entity_types() -> List[str]:
    return default_registry.list_entity_types()


def describe_entity_type(name: str) -> Optional[EntityTypeDescription]:
    return default_registry.describe_entity_type(name)


def clear_entity_type_cache() -> None:
    default_registry.clear_cache()


def get_searchable_text_fields(name: str) -> List[str]:
    return default_registry.get_searchable_text_fields(name)


def get_scalar_fields(name: str) -> List[str]:
    return default_registry.get_scalar_fields(name)


def is_user_scoped_entity_type(name: str) -> bool:
    return name in USER_SCOPED_ENTITY_TYPES


def get_user_scope_field(name: str) -> Optional[str]:
    return USER_SCOPE_FIELDS.get(name)


def can_student_access_entity_type(name: str) -> bool:
    """Type-level access for the lower-privilege principal class."""
    return name in STUDENT_ACCESSIBLE_ENTITY_TYPES or name in USER_SCOPED_ENTITY_TYPES
