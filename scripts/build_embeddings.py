#!/usr/bin/env python3
"""
Embedding build utility.
Indexes one entity type, or every supported type, from the record store into the embeddings table.

Usage:
    python -m scripts.build_embeddings [--entity-type Organization] [--clear]
"""

import argparse
import sys

from actify.core.config import DB_PATH, INDEX_BATCH_SIZE, INDEX_DELAY_SEC, get_embedding_provider
from actify.core.dao import EmbeddingDAO
from actify.core.records import SQLiteRecordStore
from actify.vector.content import get_supported_entity_types, is_entity_type_supported
from actify.vector.indexer import Indexer


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Build embeddings for Actify records")
    parser.add_argument("--entity-type", help="Only index this entity type")
    parser.add_argument("--db-path", default=DB_PATH, help="SQLite database path")
    parser.add_argument("--batch-size", type=int, default=INDEX_BATCH_SIZE, help="Records per page")
    parser.add_argument("--delay", type=float, default=INDEX_DELAY_SEC, help="Seconds to pause between records")
    parser.add_argument("--clear", action="store_true", help="Delete existing embeddings for the selected types first")
    return parser.parse_args(argv)


def main(argv=None, embedding_provider=None) -> int:
    """Build embeddings. Returns the process exit code."""
    args = parse_args(argv)

    if args.entity_type and not is_entity_type_supported(args.entity_type):
        print(f"ERROR: Unsupported entity type: {args.entity_type}")
        print(f"Supported types: {', '.join(get_supported_entity_types())}")
        return 1

    entity_types = [args.entity_type] if args.entity_type else get_supported_entity_types()

    provider = embedding_provider or get_embedding_provider()
    embedding_store = EmbeddingDAO(args.db_path)
    record_source = SQLiteRecordStore(args.db_path)
    indexer = Indexer(provider, embedding_store, record_source, delay_sec=args.delay)

    print(f"Building embeddings with {provider.model_id} for: {', '.join(entity_types)}")

    if args.clear:
        for entity_type in entity_types:
            embedding_store.clear(entity_type)
        print("✓ Cleared existing embeddings")

    total_indexed = 0
    total_failed = 0
    for entity_type in entity_types:
        try:
            summary = indexer.index_entity_type(entity_type, batch_size=args.batch_size)
        except Exception as e:
            print(f"ERROR: Failed to index {entity_type}: {e}")
            total_failed += 1
            continue

        total_indexed += summary.total_indexed
        total_failed += summary.total_failed
        print(f"  {entity_type}: {summary.total_indexed} indexed, {summary.total_failed} failed")

    print(f"✓ Indexed {total_indexed} records ({total_failed} failed)")
    print(f"Embeddings stored: {embedding_store.count()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
