"""
Typed records shared across the retrieval core.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from . import config


@dataclass
class FieldDescription:
    name: str
    type: str  # String|Int|Float|Boolean|DateTime or a related entity-type name
    is_list: bool = False
    is_required: bool = False
    is_relation: bool = False
    relation_to: Optional[str] = None
    is_id: bool = False
    is_unique: bool = False


@dataclass
class EntityTypeDescription:
    name: str
    table_name: str
    fields: List[FieldDescription]
    relations: List[str] = field(default_factory=list)
    description: str = ""

    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    def get_field(self, name: str) -> Optional[FieldDescription]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def scalar_fields(self) -> List[FieldDescription]:
        """Fields backed by a column (everything except relations)."""
        return [f for f in self.fields if not f.is_relation]


@dataclass
class EmbeddingRecord:
    entity_type: str
    record_id: str
    content: str
    vector: str  # JSON-encoded unit vector
    owner_id: Optional[str] = None
    model: Optional[str] = None
    updated_at: Optional[datetime] = None


@dataclass
class Principal:
    """The caller on whose behalf a query or search runs."""
    id: str
    role: str = "student"

    @property
    def is_elevated(self) -> bool:
        return config.is_elevated_role(self.role)

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "role": self.role}
