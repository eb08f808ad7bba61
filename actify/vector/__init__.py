"""
Vector layer: embedding primitives, content builder, indexer and semantic search.
"""

from .embeddings import (
    IEmbeddingProvider,
    DeterministicHashEmbedding,
    SentenceTransformerEmbedding,
    OpenAIEmbedding,
    EmptyInputError,
    DimensionMismatchError,
)
from .types import EmbeddableContent, SearchMatch, SearchResult, BatchResult, IndexSummary
from .indexer import Indexer
from .search import SearchEngine, format_search_results

__all__ = [
    'IEmbeddingProvider',
    'DeterministicHashEmbedding',
    'SentenceTransformerEmbedding',
    'OpenAIEmbedding',
    'EmptyInputError',
    'DimensionMismatchError',
    'EmbeddableContent',
    'SearchMatch',
    'SearchResult',
    'BatchResult',
    'IndexSummary',
    'Indexer',
    'SearchEngine',
    'format_search_results',
]
