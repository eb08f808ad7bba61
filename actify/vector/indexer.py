"""
Indexer: builds content, embeds it and persists it in the embedding store.

Batch indexing is serial with a short pause between records. A failing record
is counted and skipped and never aborts the batch.
"""

import time
from typing import Any, Callable, Dict, List, Optional

from .content import build_content, get_supported_entity_types, is_entity_type_supported
from .embeddings import IEmbeddingProvider, create_text_embedding, encode_vector, normalize
from .types import BatchResult, IndexSummary
from ..core.config import INDEX_BATCH_SIZE, INDEX_DELAY_SEC
from ..core.dao import EmbeddingDAO
from ..core.records import IRecordSource
from ..util.logging import logger


class Indexer:
    """Keeps the embedding store in step with source records."""

    def __init__(self, embedding_provider: IEmbeddingProvider, embedding_store: EmbeddingDAO,
                 record_source: IRecordSource, delay_sec: float = INDEX_DELAY_SEC,
                 sleep: Callable[[float], None] = time.sleep):
        self.embedding_provider = embedding_provider
        self.embedding_store = embedding_store
        self.record_source = record_source
        self.delay_sec = delay_sec
        self._sleep = sleep

    def index_record(self, entity_type: str, record: Dict[str, Any]) -> bool:
        """Embed and upsert an already-fetched record. Returns False on any failure."""
        record_id = record.get("id") if record else None
        try:
            embeddable = build_content(entity_type, record)
            if embeddable is None:
                logger.log_index_operation("upsert", entity_type, record_id, status="skipped",
                                           details={"reason": "no content to embed"})
                return False

            raw_vector = create_text_embedding(embeddable.content, self.embedding_provider)
            vector_json = encode_vector(normalize(raw_vector))

            self.embedding_store.upsert(
                entity_type=entity_type,
                record_id=record_id,
                content=embeddable.content,
                vector_json=vector_json,
                owner_id=embeddable.owner_id,
                model=self.embedding_provider.model_id,
            )

            logger.log_index_operation("upsert", entity_type, record_id, details={"dimension": len(raw_vector)})
            return True

        except Exception as e:
            logger.log_index_operation("upsert", entity_type, record_id, status="failed", details={"error": str(e)})
            return False

    def upsert_embedding(self, entity_type: str, record_id: str) -> bool:
        """Fetch a record by id and (re)index it."""
        if not is_entity_type_supported(entity_type):
            logger.log_index_operation("upsert", entity_type, record_id, status="skipped",
                                       details={"reason": "unsupported entity type"})
            return False

        try:
            record = self.record_source.get(entity_type, record_id)
        except Exception as e:
            logger.log_index_operation("fetch", entity_type, record_id, status="failed", details={"error": str(e)})
            return False

        if not record:
            logger.log_index_operation("upsert", entity_type, record_id, status="skipped",
                                       details={"reason": "record not found"})
            return False

        return self.index_record(entity_type, record)

    def delete_embedding(self, entity_type: str, record_id: str) -> bool:
        """Remove a record's embedding. Deleting an absent embedding counts as success."""
        try:
            removed = self.embedding_store.delete(entity_type, record_id)
            logger.log_index_operation("delete", entity_type, record_id, details={"removed": removed})
            return True
        except Exception as e:
            logger.log_index_operation("delete", entity_type, record_id, status="failed", details={"error": str(e)})
            return False

    def index_batch(self, entity_type: str, limit: int = INDEX_BATCH_SIZE, cursor: Optional[str] = None,
                    filter: Optional[Dict[str, Any]] = None) -> BatchResult:
        """
        Index one page of records after the cursor.

        Args:
            entity_type: Entity type to index
            limit: Page size
            cursor: Last id seen by the previous page
            filter: Optional record filter

        Returns:
            BatchResult; cursor is set only when the page was full
        """
        if not is_entity_type_supported(entity_type):
            logger.log_index_operation("batch", entity_type, status="skipped",
                                       details={"reason": "unsupported entity type"})
            return BatchResult()

        try:
            records = self.record_source.list_page(entity_type, limit=limit, cursor=cursor, filter=filter)
        except Exception as e:
            logger.log_index_operation("batch", entity_type, status="failed", details={"error": str(e), "cursor": cursor})
            return BatchResult()

        if not records:
            return BatchResult()

        result = BatchResult()
        for position, record in enumerate(records):
            if self.index_record(entity_type, record):
                result.indexed += 1
            else:
                result.failed += 1

            if self.delay_sec > 0 and position < len(records) - 1:
                self._sleep(self.delay_sec)

        if len(records) == limit:
            result.cursor = records[-1]["id"]

        logger.log_index_operation("batch", entity_type, details={
            "indexed": result.indexed, "failed": result.failed, "next_cursor": result.cursor
        })
        return result

    def index_entity_type(self, entity_type: str, batch_size: int = INDEX_BATCH_SIZE) -> IndexSummary:
        """Index every record of an entity type, page by page."""
        summary = IndexSummary()
        cursor = None

        while True:
            result = self.index_batch(entity_type, limit=batch_size, cursor=cursor)
            summary.total_indexed += result.indexed
            summary.total_failed += result.failed

            if not result.cursor:
                break
            cursor = result.cursor

        logger.log_index_operation("entity_type", entity_type, details={
            "total_indexed": summary.total_indexed, "total_failed": summary.total_failed
        })
        return summary

    def index_all(self, entity_types: Optional[List[str]] = None) -> Dict[str, IndexSummary]:
        """Index several entity types; one failing type is recorded with failed=-1."""
        results: Dict[str, IndexSummary] = {}
        for entity_type in entity_types or get_supported_entity_types():
            try:
                results[entity_type] = self.index_entity_type(entity_type)
            except Exception as e:
                logger.error(f"Error indexing {entity_type}: {e}")
                results[entity_type] = IndexSummary(total_indexed=0, total_failed=-1)
        return results
