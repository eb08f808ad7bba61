"""
Semantic search over indexed records with privacy filtering.

Vectors are compared in process: candidate embeddings are loaded from the
embedding store, scored by cosine against the query and thresholded. When
nothing clears the threshold, or anything goes wrong, a plain text search
over the record source takes over.
"""

from typing import Any, Dict, List, Optional

from .content import get_supported_entity_types
from .embeddings import IEmbeddingProvider, cosine, create_text_embedding, normalize, parse_vector
from .types import SearchMatch, SearchResult
from ..core import config
from ..core.dao import EmbeddingDAO
from ..core.privacy import get_access_constraints, is_record_visible, merge_filters
from ..core.records import IRecordSource
from ..core.registry import SchemaRegistry, default_registry, get_user_scope_field, is_user_scoped_entity_type
from ..core.schema import Principal
from ..util.logging import logger

SNIPPET_LENGTH = 200
FALLBACK_FIELD_EXCERPT = 100

PRIVACY_MODES = ("enforced", "open")


def _snippet(content: str) -> str:
    return content[:SNIPPET_LENGTH] + ("..." if len(content) > SNIPPET_LENGTH else "")


class SearchEngine:
    """Vector similarity search with a text-search fallback."""

    def __init__(self, embedding_provider: IEmbeddingProvider, embedding_store: EmbeddingDAO,
                 record_source: IRecordSource, registry: SchemaRegistry = None,
                 threshold: float = config.SEARCH_SIMILARITY_THRESHOLD,
                 privacy_mode: str = config.SEARCH_PRIVACY_MODE):
        if privacy_mode not in PRIVACY_MODES:
            raise ValueError(f"Unknown privacy mode '{privacy_mode}'")
        self.embedding_provider = embedding_provider
        self.embedding_store = embedding_store
        self.record_source = record_source
        self.registry = registry or default_registry
        self.threshold = threshold
        self.privacy_mode = privacy_mode

    @property
    def enforced(self) -> bool:
        return self.privacy_mode == "enforced"

    def _candidate_types(self, principal: Principal, entity_types: Optional[List[str]]) -> List[str]:
        candidates = list(entity_types) if entity_types is not None else get_supported_entity_types()
        if not self.enforced:
            return candidates
        return [t for t in candidates if get_access_constraints(principal, t).allowed]

    def _owner_scopes(self, principal: Principal, entity_types: List[str]) -> Dict[str, str]:
        if not self.enforced or principal.is_elevated:
            return {}
        return {
            t: principal.id for t in entity_types
            if is_user_scoped_entity_type(t) and get_user_scope_field(t)
        }

    def search(self, query: str, principal: Principal, entity_types: Optional[List[str]] = None,
               top_k: int = config.SEARCH_DEFAULT_TOP_K) -> SearchResult:
        """
        Rank indexed records against a free-text query.

        Args:
            query: Free-text query
            principal: Caller whose access constraints apply in enforced mode
            entity_types: Optional subset of entity types to search
            top_k: Maximum number of matches

        Returns:
            SearchResult; total_candidates counts the embeddings compared,
            or the fallback matches when the fallback answered
        """
        if not query or not query.strip():
            return SearchResult()

        candidate_types = self._candidate_types(principal, entity_types)
        if not candidate_types:
            logger.log_search(query, principal.id, status="denied", details={"reason": "no accessible entity types"})
            return SearchResult()

        try:
            query_vector = normalize(create_text_embedding(query, self.embedding_provider))

            embeddings = self.embedding_store.find_many(
                candidate_types,
                owner_scopes=self._owner_scopes(principal, candidate_types),
                model=self.embedding_provider.model_id,
            )

            scored: List[SearchMatch] = []
            for embedding in embeddings:
                vector = parse_vector(embedding.vector)
                score = cosine(query_vector, vector) if vector else 0.0
                if score <= self.threshold:
                    continue
                scored.append(SearchMatch(
                    entity_type=embedding.entity_type,
                    record_id=embedding.record_id,
                    score=score,
                    snippet=_snippet(embedding.content),
                    owner_id=embedding.owner_id,
                ))

            scored.sort(key=lambda m: m.score, reverse=True)

            if self.enforced:
                scored = [
                    m for m in scored
                    if is_record_visible(principal, m.entity_type, m.record_id, self.record_source)
                ]

            matches = scored[:top_k]

            if not matches:
                logger.log_search(query, principal.id, status="fallback",
                                  details={"candidates": len(embeddings), "reason": "no matches above threshold"})
                return self._fallback(query, principal, candidate_types, top_k)

            logger.log_search(query, principal.id, details={"candidates": len(embeddings), "matches": len(matches)})
            return SearchResult(matches=matches, total_candidates=len(embeddings))

        except Exception as e:
            logger.log_search(query, principal.id, status="fallback", details={"error": str(e)})
            return self._fallback(query, principal, candidate_types, top_k)

    def _fallback(self, query: str, principal: Principal, entity_types: List[str], top_k: int) -> SearchResult:
        matches = self._text_search(query, principal, entity_types, top_k)
        return SearchResult(matches=matches, total_candidates=len(matches))

    def _fetch_text_matches(self, principal: Principal, entity_type: str, text_filter: Dict[str, Any],
                            top_k: int) -> List[Dict[str, Any]]:
        """Page through matching rows by id until top_k visible rows are collected."""
        visible: List[Dict[str, Any]] = []
        cursor = None
        while len(visible) < top_k:
            page = self.record_source.list_page(entity_type, limit=top_k, cursor=cursor, filter=text_filter)
            for record in page:
                if self.enforced and not is_record_visible(principal, entity_type, record["id"], self.record_source):
                    continue
                visible.append(record)
            if len(page) < top_k:
                break
            cursor = page[-1]["id"]
        return visible[:top_k]

    def _text_search(self, query: str, principal: Principal, entity_types: List[str], top_k: int) -> List[SearchMatch]:
        """Case-insensitive substring search over each type's text fields. Never raises."""
        matches: List[SearchMatch] = []
        needle = query.lower()

        for entity_type in entity_types:
            try:
                text_fields = self.registry.get_searchable_text_fields(entity_type)
                if not text_fields:
                    continue

                text_filter = {"OR": [{field: {"contains": query}} for field in text_fields]}
                if self.enforced:
                    constraints = get_access_constraints(principal, entity_type)
                    if not constraints.allowed:
                        continue
                    text_filter = merge_filters(text_filter, constraints.mandatory_filter)

                records = self._fetch_text_matches(principal, entity_type, text_filter, top_k)

                for record in records:
                    parts = []
                    for field in text_fields:
                        value = record.get(field)
                        if isinstance(value, str) and needle in value.lower():
                            parts.append(f"{field}: {value[:FALLBACK_FIELD_EXCERPT]}")

                    snippet = " | ".join(parts)[:SNIPPET_LENGTH] + "..." if parts else "Match found"

                    matches.append(SearchMatch(
                        entity_type=entity_type,
                        record_id=record["id"],
                        score=config.FALLBACK_SCORE,
                        snippet=snippet,
                        owner_id=record.get("studentId") or record.get("userId"),
                    ))
            except Exception as e:
                logger.error(f"Text search failed for {entity_type}: {e}")

        return matches[:top_k]


def format_search_results(matches: List[SearchMatch]) -> str:
    """Group matches by entity type into a short report for the assistant."""
    if not matches:
        return "No relevant results found."

    grouped: Dict[str, List[SearchMatch]] = {}
    for match in matches:
        grouped.setdefault(match.entity_type, []).append(match)

    output = f"Found {len(matches)} relevant results:\n\n"
    for entity_type, group in grouped.items():
        output += f"**{entity_type}** ({len(group)}):\n"
        for match in group:
            output += f"- [{round(match.score * 100)}%] {match.snippet}\n"
            output += f"  (ID: {match.record_id})\n"
        output += "\n"

    return output
