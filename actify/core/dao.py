"""
Embedding store backed by the SQLite embeddings table.
One row per (entity_type, record_id); writes are upserts, last write wins.
"""

import sqlite3
from datetime import datetime
from typing import Dict, List, Optional

from .db import get_db, init_db
from .schema import EmbeddingRecord
from ..util.logging import logger


class EmbeddingDAO:
    """Data access for persisted embeddings."""

    def __init__(self, db_path: Optional[str] = None, initialize: bool = True):
        self.db_path = db_path
        if initialize:
            init_db(db_path)

    def upsert(self, entity_type: str, record_id: str, content: str, vector_json: str,
               owner_id: Optional[str] = None, model: Optional[str] = None) -> None:
        """Insert or overwrite the embedding for a record."""
        with get_db(self.db_path) as conn:
            conn.execute(
                '''
                INSERT INTO embeddings (entity_type, record_id, content, vector, owner_id, model, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(entity_type, record_id) DO UPDATE SET
                    content = excluded.content,
                    vector = excluded.vector,
                    owner_id = excluded.owner_id,
                    model = excluded.model,
                    updated_at = excluded.updated_at
                ''',
                (entity_type, record_id, content, vector_json, owner_id, model, datetime.now().isoformat())
            )
            conn.commit()

    def get(self, entity_type: str, record_id: str) -> Optional[EmbeddingRecord]:
        with get_db(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM embeddings WHERE entity_type = ? AND record_id = ?",
                (entity_type, record_id)
            ).fetchone()
        return _to_record(row) if row else None

    def find_many(self, entity_types: List[str], owner_scopes: Optional[Dict[str, str]] = None,
                  model: Optional[str] = None) -> List[EmbeddingRecord]:
        """
        Fetch embeddings for a set of entity types.

        Args:
            entity_types: Entity types to include
            owner_scopes: entity_type -> owner_id; rows of those types must belong to that owner
            model: When given, only rows produced by this embedding model

        Returns:
            EmbeddingRecords in (entity_type, record_id) order
        """
        if not entity_types:
            return []

        owner_scopes = owner_scopes or {}
        conditions = []
        params: List[object] = []
        for entity_type in entity_types:
            if entity_type in owner_scopes:
                conditions.append("(entity_type = ? AND owner_id = ?)")
                params.extend([entity_type, owner_scopes[entity_type]])
            else:
                conditions.append("(entity_type = ?)")
                params.append(entity_type)

        sql = f"SELECT * FROM embeddings WHERE ({' OR '.join(conditions)})"
        if model is not None:
            sql += " AND model = ?"
            params.append(model)
        sql += " ORDER BY entity_type, record_id"

        with get_db(self.db_path) as conn:
            rows = conn.execute(sql, params).fetchall()
        return [_to_record(row) for row in rows]

    def delete(self, entity_type: str, record_id: str) -> bool:
        """Delete an embedding. Returns True if a row was removed."""
        with get_db(self.db_path) as conn:
            cursor = conn.execute(
                "DELETE FROM embeddings WHERE entity_type = ? AND record_id = ?",
                (entity_type, record_id)
            )
            conn.commit()
            return cursor.rowcount > 0

    def count(self, entity_type: Optional[str] = None) -> int:
        try:
            with get_db(self.db_path) as conn:
                if entity_type:
                    row = conn.execute("SELECT COUNT(*) FROM embeddings WHERE entity_type = ?", (entity_type,)).fetchone()
                else:
                    row = conn.execute("SELECT COUNT(*) FROM embeddings").fetchone()
            return row[0]
        except sqlite3.Error as e:
            logger.error(f"Failed to count embeddings: {e}")
            return 0

    def clear(self, entity_type: Optional[str] = None) -> None:
        with get_db(self.db_path) as conn:
            if entity_type:
                conn.execute("DELETE FROM embeddings WHERE entity_type = ?", (entity_type,))
            else:
                conn.execute("DELETE FROM embeddings")
            conn.commit()


def _to_record(row: sqlite3.Row) -> EmbeddingRecord:
    updated_at = row["updated_at"]
    if isinstance(updated_at, str):
        try:
            updated_at = datetime.fromisoformat(updated_at)
        except ValueError:
            updated_at = None
    return EmbeddingRecord(
        entity_type=row["entity_type"],
        record_id=row["record_id"],
        content=row["content"],
        vector=row["vector"],
        owner_id=row["owner_id"],
        model=row["model"],
        updated_at=updated_at,
    )
