"""
Request and response models for the retrieval API.
"""

from pydantic import BaseModel, field_validator, ConfigDict
from typing import Optional, List, Dict, Any


class HealthResponse(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    status: str
    version: str
    db_health: bool
    embedding_count: int
    embedding_model: str


class EntityTypeListResponse(BaseModel):
    entity_types: List[str]
    formatted: str


class FieldInfo(BaseModel):
    name: str
    type: str
    is_list: bool = False
    is_required: bool = False
    is_relation: bool = False
    relation_to: Optional[str] = None
    is_id: bool = False
    is_unique: bool = False


class EntityTypeResponse(BaseModel):
    name: str
    description: str
    fields: List[FieldInfo]
    relations: List[str]


class QueryRequest(BaseModel):
    """Structured query against one entity type."""
    entity_type: str
    filter: Optional[Dict[str, Any]] = None
    fields: Optional[List[str]] = None
    limit: Optional[int] = None
    order_by: Optional[Dict[str, str]] = None

    @field_validator('entity_type')
    @classmethod
    def entity_type_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('entity_type cannot be empty')
        return v


class QueryResponse(BaseModel):
    success: bool
    data: Optional[List[Dict[str, Any]]] = None
    count: Optional[int] = None
    error: Optional[str] = None


class SearchRequest(BaseModel):
    """Semantic search request. A blank query yields no matches."""
    query: str
    entity_types: Optional[List[str]] = None
    top_k: int = 10

    @field_validator('top_k')
    @classmethod
    def top_k_must_be_positive(cls, v):
        if v <= 0:
            raise ValueError('top_k must be positive')
        return v


class SearchMatchModel(BaseModel):
    entity_type: str
    record_id: str
    score: float
    snippet: str
    owner_id: Optional[str] = None


class SearchResponse(BaseModel):
    matches: List[SearchMatchModel]
    total_candidates: int
    formatted: str


class RebuildRequest(BaseModel):
    """Rebuild embeddings for one entity type, or all supported types when omitted."""
    entity_type: Optional[str] = None


class RebuildResponse(BaseModel):
    status: str
    entity_types: List[str]
