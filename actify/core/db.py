"""
SQLite connection handling and table creation.
Record tables are generated from the schema registry; the embeddings table is owned by the core.
"""

import sqlite3
from contextlib import contextmanager
from typing import Generator, Optional

from .config import DB_PATH, ensure_db_directory
from .registry import SchemaRegistry, default_registry

SQL_TYPES = {
    "String": "TEXT",
    "Int": "INTEGER",
    "Float": "REAL",
    "Boolean": "INTEGER",
    "DateTime": "TEXT",
}


@contextmanager
def get_db(db_path: Optional[str] = None) -> Generator[sqlite3.Connection, None, None]:
    """Get a SQLite database connection with dict-like rows."""
    conn = sqlite3.connect(db_path or DB_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def init_db(db_path: Optional[str] = None, registry: SchemaRegistry = None):
    """Initialize the database with the embeddings table and one table per entity type."""
    ensure_db_directory(db_path)
    registry = registry or default_registry

    with get_db(db_path) as conn:
        cursor = conn.cursor()

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS embeddings (
                entity_type TEXT NOT NULL,
                record_id TEXT NOT NULL,
                content TEXT NOT NULL,
                vector TEXT NOT NULL,
                owner_id TEXT,
                model TEXT,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (entity_type, record_id)
            )
        ''')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_embeddings_entity_type ON embeddings(entity_type)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_embeddings_owner ON embeddings(entity_type, owner_id)')

        for name in registry.list_entity_types():
            cursor.execute(create_table_sql(registry, name))

        conn.commit()


def create_table_sql(registry: SchemaRegistry, entity_type: str) -> str:
    description = registry.describe_entity_type(entity_type)
    columns = []
    for field in description.scalar_fields():
        column = f'"{field.name}" {SQL_TYPES.get(field.type, "TEXT")}'
        if field.is_id:
            column += " PRIMARY KEY"
        elif field.is_unique:
            column += " UNIQUE"
        columns.append(column)
    return f'CREATE TABLE IF NOT EXISTS "{description.table_name}" ({", ".join(columns)})'


def health_check(db_path: Optional[str] = None):
    """Check database health."""
    try:
        with get_db(db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT name FROM sqlite_master WHERE type='table';")
            table_names = [row[0] for row in cursor.fetchall()]
            return 'embeddings' in table_names
    except sqlite3.Error:
        return False
