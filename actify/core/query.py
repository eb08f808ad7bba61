"""
Generic, privacy-safe query engine over any registered entity type.
Every failure is returned as a structured result; nothing is raised to the caller.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .privacy import (
    DISCLOSURE_POLICIES,
    apply_record_level_redaction,
    default_projection,
    get_access_constraints,
    merge_filters,
    redact_fields,
)
from .records import FILTER_OPERATORS, IGNORED_FILTER_KEYS, FilterError, IRecordSource
from .registry import SchemaRegistry, default_registry
from .schema import EntityTypeDescription, Principal
from . import config
from ..util.logging import logger

SAFE_ORDER_BY_FIELDS = [
    "id",
    "createdAt",
    "updatedAt",
    "name",
    "title",
    "startDate",
    "endDate",
    "status",
    "totalHours",
    "targetHours",
]


@dataclass
class QueryParams:
    entity_type: str
    filter: Optional[Dict[str, Any]] = None
    fields: Optional[List[str]] = None
    limit: Optional[int] = None
    order_by: Optional[Dict[str, str]] = None  # {"field": ..., "direction": "asc"|"desc"}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueryParams":
        return cls(
            entity_type=data.get("entity_type") or data.get("entityType") or "",
            filter=data.get("filter"),
            fields=data.get("fields"),
            limit=data.get("limit"),
            order_by=data.get("order_by") or data.get("orderBy"),
        )


@dataclass
class QueryResult:
    success: bool
    data: Optional[List[Dict[str, Any]]] = None
    count: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_validated_limit(requested_limit: Optional[int]) -> int:
    """Clamp a requested limit to [1, QUERY_MAX_LIMIT]; missing or non-positive means the default."""
    if not requested_limit or requested_limit <= 0:
        return config.QUERY_DEFAULT_LIMIT
    return min(int(requested_limit), config.QUERY_MAX_LIMIT)


def is_safe_order_by_field(field: str) -> bool:
    return field in SAFE_ORDER_BY_FIELDS


def resolve_order_by(description: EntityTypeDescription, order_by: Optional[Dict[str, str]]) -> Tuple[str, str]:
    """Validated (field, direction); falls back to newest-first by createdAt, else by id."""
    field_names = description.field_names()
    if order_by and order_by.get("field"):
        field = order_by["field"]
        if is_safe_order_by_field(field) and field in field_names:
            direction = "asc" if str(order_by.get("direction", "desc")).lower() == "asc" else "desc"
            return field, direction
        logger.warning(f"Ignoring unsafe order field '{field}' for {description.name}")

    if "createdAt" in field_names:
        return "createdAt", "desc"
    return "id", "desc"


def validate_filter_operator(operator: str) -> bool:
    return operator in FILTER_OPERATORS


def build_filter(filters: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build a filter from loosely shaped caller input.

    A scalar means equality, a list means membership, and a dict is passed
    through after its operators are checked against the allow-list. None
    values are skipped.

    Raises:
        FilterError: if a passthrough dict uses an unknown operator
    """
    where: Dict[str, Any] = {}

    for field, value in (filters or {}).items():
        if value is None:
            continue

        if field in ("AND", "OR"):
            children = value if isinstance(value, list) else [value]
            where[field] = [build_filter(child) for child in children]
        elif isinstance(value, dict):
            for op in value:
                if op not in IGNORED_FILTER_KEYS and not validate_filter_operator(op):
                    raise FilterError(f"Unsupported filter operator '{op}'")
            where[field] = value
        elif isinstance(value, (list, tuple)):
            where[field] = {"in": list(value)}
        else:
            where[field] = value

    return where


def parse_search_query(search_text: str, entity_type: str, registry: SchemaRegistry = None) -> Dict[str, Any]:
    """OR of case-insensitive contains over the entity type's searchable text fields."""
    registry = registry or default_registry
    text_fields = registry.get_searchable_text_fields(entity_type)
    if not text_fields:
        return {}
    return {"OR": [{field: {"contains": search_text}} for field in text_fields]}


class QueryEngine:
    """Executes structured filter/sort/project queries with privacy enforcement."""

    def __init__(self, record_source: IRecordSource, registry: SchemaRegistry = None):
        self.record_source = record_source
        self.registry = registry or default_registry

    def query(self, params, principal: Principal) -> QueryResult:
        """
        Run a query on behalf of a principal.

        Args:
            params: QueryParams or an equivalent dict
            principal: Caller whose access constraints apply

        Returns:
            QueryResult; count is the number of rows returned after redaction
        """
        if isinstance(params, dict):
            params = QueryParams.from_dict(params)
        entity_type = params.entity_type

        try:
            description = self.registry.describe_entity_type(entity_type)
            if not description:
                return QueryResult(success=False, error=f"Entity type '{entity_type}' not found")

            constraints = get_access_constraints(principal, entity_type)
            if not constraints.allowed:
                logger.log_query(entity_type, principal.id, status="denied",
                                 details={"reason": constraints.error_message})
                return QueryResult(success=False, error=constraints.error_message or "Access denied")

            caller_filter = build_filter(params.filter) if params.filter else None
            final_filter = merge_filters(caller_filter, constraints.mandatory_filter)

            fields = redact_fields(entity_type, params.fields, principal.role, self.registry)
            if fields is None:
                fields = default_projection(entity_type, self.registry)

            # The disclosure setting must be read even when not projected
            select = list(fields)
            hidden_setting = None
            policy = DISCLOSURE_POLICIES.get(entity_type)
            if policy and policy.field not in select:
                select.append(policy.field)
                hidden_setting = policy.field

            limit = get_validated_limit(params.limit)
            order_by = resolve_order_by(description, params.order_by)

            rows = self.record_source.find_many(
                entity_type,
                filter=final_filter or None,
                fields=select,
                limit=limit,
                order_by=order_by,
            )

            rows = apply_record_level_redaction(rows, entity_type)
            if hidden_setting:
                rows = [{k: v for k, v in row.items() if k != hidden_setting} for row in rows]

            logger.log_query(entity_type, principal.id, details={"rows": len(rows), "limit": limit})
            return QueryResult(success=True, data=rows, count=len(rows))

        except FilterError as e:
            logger.log_query(entity_type, principal.id, status="failed", details={"error": str(e)})
            return QueryResult(success=False, error=str(e))
        except Exception as e:
            logger.error(f"Error executing query on {entity_type}: {e}")
            return QueryResult(success=False, error=str(e) or "Query execution failed")

    def count_records(self, entity_type: str, filter: Optional[Dict[str, Any]], principal: Principal) -> int:
        """Count matching rows under the same privacy merge. Returns 0 on denial or any error."""
        try:
            if not self.registry.describe_entity_type(entity_type):
                return 0

            constraints = get_access_constraints(principal, entity_type)
            if not constraints.allowed:
                return 0

            caller_filter = build_filter(filter) if filter else None
            final_filter = merge_filters(caller_filter, constraints.mandatory_filter)
            return self.record_source.count(entity_type, final_filter or None)
        except Exception as e:
            logger.error(f"Error counting {entity_type} records: {e}")
            return 0
