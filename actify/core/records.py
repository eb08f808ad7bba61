"""
Record source: generic tabular access to entity-type collections.

The core only needs fetch-by-id, cursor paging, filtered reads and counts.
SQLiteRecordStore provides these over tables generated from the schema registry;
insert/delete stand in for the application's own CRUD code.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
import sqlite3
from typing import Any, Dict, List, Optional, Sequence, Tuple
import uuid

from .db import get_db, init_db
from .registry import SchemaRegistry, default_registry
from .schema import EntityTypeDescription

FILTER_OPERATORS = [
    "equals",
    "contains",
    "startsWith",
    "endsWith",
    "gt",
    "gte",
    "lt",
    "lte",
    "in",
    "notIn",
]

# Accepted for compatibility with callers that ask for case-insensitive matching;
# text operators are always case-insensitive here.
IGNORED_FILTER_KEYS = ["mode"]

_COMPARISONS = {"gt": ">", "gte": ">=", "lt": "<", "lte": "<="}


class FilterError(ValueError):
    """Raised for filters naming unknown fields or operators."""


class IRecordSource(ABC):
    """Abstract interface for reading entity-type collections."""

    @abstractmethod
    def get(self, entity_type: str, record_id: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def list_page(self, entity_type: str, limit: int, cursor: Optional[str] = None,
                  filter: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Records ordered by id ascending, strictly after cursor."""
        pass

    @abstractmethod
    def find_many(self, entity_type: str, filter: Optional[Dict[str, Any]] = None,
                  fields: Optional[Sequence[str]] = None, limit: Optional[int] = None,
                  order_by: Optional[Tuple[str, str]] = None) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def count(self, entity_type: str, filter: Optional[Dict[str, Any]] = None) -> int:
        pass


def _to_sql_value(value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _compile_operator(column: str, op: str, operand: Any) -> Tuple[str, List[Any]]:
    if op == "equals":
        if operand is None:
            return f"{column} IS NULL", []
        return f"{column} = ?", [_to_sql_value(operand)]

    if op in ("contains", "startsWith", "endsWith"):
        text = _escape_like(str(operand).lower())
        pattern = {"contains": f"%{text}%", "startsWith": f"{text}%", "endsWith": f"%{text}"}[op]
        return f"LOWER({column}) LIKE ? ESCAPE '\\'", [pattern]

    if op in _COMPARISONS:
        return f"{column} {_COMPARISONS[op]} ?", [_to_sql_value(operand)]

    # in / notIn
    if not isinstance(operand, (list, tuple, set)):
        raise FilterError(f"Operator '{op}' requires a list value")
    values = [_to_sql_value(v) for v in operand]
    if not values:
        return ("0", []) if op == "in" else ("1", [])
    placeholders = ", ".join("?" for _ in values)
    keyword = "IN" if op == "in" else "NOT IN"
    return f"{column} {keyword} ({placeholders})", values


def _compile_node(description: EntityTypeDescription, node: Dict[str, Any]) -> Tuple[str, List[Any]]:
    if not isinstance(node, dict):
        raise FilterError("Filter must be an object")

    scalar_names = {f.name for f in description.scalar_fields()}
    clauses: List[str] = []
    params: List[Any] = []

    for key, value in node.items():
        if key in ("AND", "OR"):
            children = value if isinstance(value, list) else [value]
            compiled = [_compile_node(description, child) for child in children]
            if not compiled:
                clauses.append("1" if key == "AND" else "0")
                continue
            joiner = " AND " if key == "AND" else " OR "
            clauses.append("(" + joiner.join(sql for sql, _ in compiled) + ")")
            for _, child_params in compiled:
                params.extend(child_params)
            continue

        if key not in scalar_names:
            raise FilterError(f"Unknown field '{key}' for {description.name}")
        column = f'"{key}"'

        if isinstance(value, dict):
            for op, operand in value.items():
                if op in IGNORED_FILTER_KEYS:
                    continue
                if op not in FILTER_OPERATORS:
                    raise FilterError(f"Unsupported filter operator '{op}'")
                sql, op_params = _compile_operator(column, op, operand)
                clauses.append(sql)
                params.extend(op_params)
        elif isinstance(value, (list, tuple)):
            sql, op_params = _compile_operator(column, "in", list(value))
            clauses.append(sql)
            params.extend(op_params)
        else:
            sql, op_params = _compile_operator(column, "equals", value)
            clauses.append(sql)
            params.extend(op_params)

    if not clauses:
        return "1", []
    return "(" + " AND ".join(clauses) + ")", params


def compile_filter(description: EntityTypeDescription, filter: Optional[Dict[str, Any]]) -> Tuple[str, List[Any]]:
    """
    Compile a filter dict into a parameterised SQL condition.

    Supported shapes: {field: scalar}, {field: [values]}, {field: {operator: value}},
    and {"AND": [...]} / {"OR": [...]} nesting.

    Raises:
        FilterError: on unknown fields or operators
    """
    if not filter:
        return "1", []
    return _compile_node(description, filter)


class SQLiteRecordStore(IRecordSource):
    """Record source over registry-generated SQLite tables."""

    def __init__(self, db_path: Optional[str] = None, registry: SchemaRegistry = None, initialize: bool = True):
        self.db_path = db_path
        self.registry = registry or default_registry
        if initialize:
            init_db(db_path, self.registry)

    def _describe(self, entity_type: str) -> EntityTypeDescription:
        description = self.registry.describe_entity_type(entity_type)
        if description is None:
            raise ValueError(f"Unknown entity type '{entity_type}'")
        return description

    def _row_to_dict(self, description: EntityTypeDescription, row: sqlite3.Row) -> Dict[str, Any]:
        record = dict(row)
        for field in description.scalar_fields():
            if field.type == "Boolean" and record.get(field.name) is not None:
                record[field.name] = bool(record[field.name])
        return record

    def insert(self, entity_type: str, record: Dict[str, Any]) -> Dict[str, Any]:
        description = self._describe(entity_type)
        scalar_names = [f.name for f in description.scalar_fields()]

        unknown = [k for k in record if k not in scalar_names]
        if unknown:
            raise ValueError(f"Unknown fields for {entity_type}: {', '.join(unknown)}")

        values = dict(record)
        values.setdefault("id", uuid.uuid4().hex)
        now = datetime.now().isoformat()
        for stamp in ("createdAt", "updatedAt"):
            if stamp in scalar_names:
                values.setdefault(stamp, now)
        for field in description.scalar_fields():
            if field.type == "Boolean":
                values.setdefault(field.name, False)

        columns = list(values.keys())
        column_sql = ", ".join(f'"{c}"' for c in columns)
        placeholders = ", ".join("?" for _ in columns)

        with get_db(self.db_path) as conn:
            conn.execute(
                f'INSERT INTO "{description.table_name}" ({column_sql}) VALUES ({placeholders})',
                [_to_sql_value(values[c]) for c in columns]
            )
            conn.commit()

        return self.get(entity_type, values["id"])

    def delete(self, entity_type: str, record_id: str) -> bool:
        description = self._describe(entity_type)
        with get_db(self.db_path) as conn:
            cursor = conn.execute(f'DELETE FROM "{description.table_name}" WHERE "id" = ?', (record_id,))
            conn.commit()
            return cursor.rowcount > 0

    def get(self, entity_type: str, record_id: str) -> Optional[Dict[str, Any]]:
        description = self._describe(entity_type)
        with get_db(self.db_path) as conn:
            row = conn.execute(
                f'SELECT * FROM "{description.table_name}" WHERE "id" = ?', (record_id,)
            ).fetchone()
        return self._row_to_dict(description, row) if row else None

    def list_page(self, entity_type: str, limit: int, cursor: Optional[str] = None,
                  filter: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        description = self._describe(entity_type)
        where_sql, params = compile_filter(description, filter)
        if cursor is not None:
            where_sql = f'{where_sql} AND "id" > ?'
            params = params + [cursor]

        with get_db(self.db_path) as conn:
            rows = conn.execute(
                f'SELECT * FROM "{description.table_name}" WHERE {where_sql} ORDER BY "id" ASC LIMIT ?',
                params + [limit]
            ).fetchall()
        return [self._row_to_dict(description, row) for row in rows]

    def find_many(self, entity_type: str, filter: Optional[Dict[str, Any]] = None,
                  fields: Optional[Sequence[str]] = None, limit: Optional[int] = None,
                  order_by: Optional[Tuple[str, str]] = None) -> List[Dict[str, Any]]:
        description = self._describe(entity_type)
        scalar_names = {f.name for f in description.scalar_fields()}
        where_sql, params = compile_filter(description, filter)

        if fields:
            unknown = [f for f in fields if f not in scalar_names]
            if unknown:
                raise FilterError(f"Unknown fields for {entity_type}: {', '.join(unknown)}")
            select_sql = ", ".join(f'"{f}"' for f in fields)
        else:
            select_sql = "*"

        sql = f'SELECT {select_sql} FROM "{description.table_name}" WHERE {where_sql}'

        if order_by:
            field_name, direction = order_by
            if field_name not in scalar_names:
                raise FilterError(f"Unknown order field '{field_name}' for {entity_type}")
            direction = "ASC" if str(direction).lower() == "asc" else "DESC"
            sql += f' ORDER BY "{field_name}" {direction}'

        if limit is not None:
            sql += " LIMIT ?"
            params = params + [limit]

        with get_db(self.db_path) as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_dict(description, row) for row in rows]

    def count(self, entity_type: str, filter: Optional[Dict[str, Any]] = None) -> int:
        description = self._describe(entity_type)
        where_sql, params = compile_filter(description, filter)
        with get_db(self.db_path) as conn:
            row = conn.execute(
                f'SELECT COUNT(*) FROM "{description.table_name}" WHERE {where_sql}', params
            ).fetchone()
        return row[0]
