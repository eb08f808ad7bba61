"""
Embedding providers and vector math primitives.
Vectors are stored unit-normalized so a dot product equals cosine similarity.
"""

from abc import ABC, abstractmethod
import hashlib
import json
import re
from typing import List, Optional, Sequence

import numpy as np

from ..core.config import EMBED_MAX_CHARS
from ..util.logging import logger


class EmptyInputError(ValueError):
    """Raised when asked to embed empty or whitespace-only text."""


class DimensionMismatchError(ValueError):
    """Raised when comparing vectors of different lengths."""


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    @abstractmethod
    def embed_text(self, text: str) -> List[float]:
        """Generate embedding vector for given text."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass

    @property
    @abstractmethod
    def model_id(self) -> str:
        """Identifier stored alongside every vector this provider produces."""
        pass


class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic token-hashing embedding provider.

    Each lowercase alphanumeric token is hashed to a bucket and a sign, so
    texts sharing words point in similar directions. Useful for tests and
    offline indexing without model downloads.
    """

    def __init__(self, dimension: int = 384):
        self.dimension = dimension

    def embed_text(self, text: str) -> List[float]:
        vector = [0.0] * self.dimension
        for token in re.findall(r"[a-z0-9]+", text.lower()):
            digest = hashlib.md5(token.encode()).hexdigest()
            bucket = int(digest[:8], 16) % self.dimension
            sign = 1.0 if int(digest[8:10], 16) % 2 == 0 else -1.0
            vector[bucket] += sign
        return vector

    def get_dimension(self) -> int:
        return self.dimension

    @property
    def model_id(self) -> str:
        return f"hash-{self.dimension}"


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Sentence transformers embedding provider using pre-trained models."""

    def __init__(self, model_name: str = "all-mpnet-base-v2"):
        self.model_name = model_name
        self._model = None
        self._dimension = None

    @property
    def model(self):
        if self._model is None:
            from sentence_transformers import SentenceTransformer
            self._model = SentenceTransformer(self.model_name)
        return self._model

    def embed_text(self, text: str) -> List[float]:
        embedding = self.model.encode(text, convert_to_tensor=False)
        return embedding.tolist()

    def get_dimension(self) -> int:
        if self._dimension is None:
            self._dimension = self.model.get_sentence_embedding_dimension()
        return self._dimension

    @property
    def model_id(self) -> str:
        return self.model_name


class OpenAIEmbedding(IEmbeddingProvider):
    """OpenAI embeddings API provider (text-embedding-3-small by default).

    Rate-limit and authentication errors from the client propagate unchanged.
    """

    DIMENSIONS = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }

    def __init__(self, model: str = "text-embedding-3-small", api_key: Optional[str] = None, client=None):
        self.model = model
        self._api_key = api_key
        self._client = client

    @property
    def client(self):
        if self._client is None:
            from openai import OpenAI
            self._client = OpenAI(api_key=self._api_key)
        return self._client

    def embed_text(self, text: str) -> List[float]:
        response = self.client.embeddings.create(
            model=self.model,
            input=text,
            encoding_format="float",
        )
        return list(response.data[0].embedding)

    def get_dimension(self) -> int:
        return self.DIMENSIONS.get(self.model, 1536)

    @property
    def model_id(self) -> str:
        return self.model


def create_text_embedding(text: str, provider: IEmbeddingProvider, max_chars: int = EMBED_MAX_CHARS) -> List[float]:
    """
    Embed text with the given provider.

    Args:
        text: Text to embed, truncated to max_chars to respect the provider's token ceiling
        provider: Embedding provider
        max_chars: Truncation length

    Returns:
        Raw (not normalized) embedding vector

    Raises:
        EmptyInputError: if text is empty or whitespace-only
    """
    if not text or not text.strip():
        raise EmptyInputError("Cannot create embedding for empty text")

    try:
        return provider.embed_text(text[:max_chars])
    except Exception as e:
        logger.error(f"Embedding provider {provider.__class__.__name__} failed: {e}")
        raise


def normalize(vector: Sequence[float]) -> List[float]:
    """Scale a vector to unit length. A zero vector is returned unchanged."""
    arr = np.asarray(vector, dtype=float)
    norm = np.linalg.norm(arr)
    if norm == 0:
        return list(vector)
    return (arr / norm).tolist()


def cosine(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two unit-normalized vectors (plain dot product).

    Raises:
        DimensionMismatchError: if the vectors differ in length
    """
    if len(a) != len(b):
        raise DimensionMismatchError(f"Vectors must have the same length ({len(a)} != {len(b)})")
    if len(a) == 0:
        return 0.0
    return float(np.dot(np.asarray(a, dtype=float), np.asarray(b, dtype=float)))


_EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
_PAREN_PHONE_RE = re.compile(r"\(\d{3}\)\s*\d{3}[-.]?\d{4}\b")
_PHONE_RE = re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b")
_SSN_RE = re.compile(r"\b\d{3}-\d{2}-\d{4}\b")


def strip_pii(text: str) -> str:
    """Replace emails, US phone numbers and SSN-shaped sequences with placeholders.

    Best-effort only; international formats are not recognised.
    """
    cleaned = _EMAIL_RE.sub("[EMAIL]", text)
    cleaned = _PAREN_PHONE_RE.sub("[PHONE]", cleaned)
    cleaned = _PHONE_RE.sub("[PHONE]", cleaned)
    cleaned = _SSN_RE.sub("[SSN]", cleaned)
    return cleaned


def encode_vector(vector: Sequence[float]) -> str:
    """Encode a vector as a JSON array for storage."""
    return json.dumps([float(v) for v in vector])


def parse_vector(vector_json: str) -> List[float]:
    """Decode a stored vector. Unparseable data yields an empty vector."""
    try:
        parsed = json.loads(vector_json)
    except (TypeError, ValueError) as e:
        logger.error(f"Could not parse stored vector: {e}")
        return []

    if not isinstance(parsed, list) or not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in parsed):
        logger.error("Stored vector is not a numeric array")
        return []

    return [float(v) for v in parsed]
