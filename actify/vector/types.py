"""
Result types produced by the content builder, indexer and search engine.
None of these are persisted.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional


@dataclass
class EmbeddableContent:
    """Sanitized text ready for embedding."""

    content: str
    """PII-stripped text blob"""

    owner_id: Optional[str] = None
    """Principal owning the source record, for user-scoped entity types"""


@dataclass
class SearchMatch:
    """Represents a single ranked search hit."""

    entity_type: str
    """Entity type of the matched record"""

    record_id: str
    """Identifier of the matched record"""

    score: float
    """Cosine similarity, or the fixed fallback score for text matches"""

    snippet: str
    """Truncated excerpt of the matched content"""

    owner_id: Optional[str] = None
    """Owning principal, when the entity type is user-scoped"""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SearchResult:
    """Matches for one search call plus the number of candidates considered."""

    matches: List[SearchMatch] = field(default_factory=list)
    total_candidates: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matches": [m.to_dict() for m in self.matches],
            "total_candidates": self.total_candidates,
        }


@dataclass
class BatchResult:
    """Outcome of indexing one page of records."""

    indexed: int = 0
    failed: int = 0
    cursor: Optional[str] = None
    """Last-seen id when the page was full; None once the collection is exhausted"""


@dataclass
class IndexSummary:
    """Totals for indexing a whole entity type."""

    total_indexed: int = 0
    total_failed: int = 0
