"""
Runtime configuration for the retrieval core.
All settings come from environment variables with conservative defaults.
"""

import os
from pathlib import Path

# Database path configuration
DB_PATH = os.getenv("DB_PATH", "./data/actify.db")

DEBUG = os.getenv("DEBUG", "false").lower() == "true"

# Embedding provider configuration
EMBED_PROVIDER = os.getenv("EMBED_PROVIDER", "hash")  # hash|sentence_transformers|openai
EMBED_MODEL_NAME = os.getenv("EMBED_MODEL_NAME", "all-mpnet-base-v2")
EMBED_DIM = int(os.getenv("EMBED_DIM", "384"))
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_EMBED_MODEL = os.getenv("OPENAI_EMBED_MODEL", "text-embedding-3-small")
# ~8000 tokens for the OpenAI embedding models
EMBED_MAX_CHARS = int(os.getenv("EMBED_MAX_CHARS", "32000"))

# Indexer configuration
INDEX_BATCH_SIZE = int(os.getenv("INDEX_BATCH_SIZE", "50"))
INDEX_DELAY_SEC = float(os.getenv("INDEX_DELAY_SEC", "0.1"))

# Search configuration
SEARCH_SIMILARITY_THRESHOLD = float(os.getenv("SEARCH_SIMILARITY_THRESHOLD", "0.3"))
SEARCH_DEFAULT_TOP_K = int(os.getenv("SEARCH_DEFAULT_TOP_K", "10"))
SEARCH_MAX_TOP_K = int(os.getenv("SEARCH_MAX_TOP_K", "20"))
SEARCH_PRIVACY_MODE = os.getenv("SEARCH_PRIVACY_MODE", "enforced")  # enforced|open
FALLBACK_SCORE = 0.5

# Generic query configuration
QUERY_DEFAULT_LIMIT = int(os.getenv("QUERY_DEFAULT_LIMIT", "20"))
QUERY_MAX_LIMIT = int(os.getenv("QUERY_MAX_LIMIT", "50"))

# Principal roles with full access
ELEVATED_ROLES = [r.strip() for r in os.getenv("ELEVATED_ROLES", "admin").split(",") if r.strip()]

# Assistant configuration
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "llama3.1:8b")
ASSISTANT_MAX_ROUNDS = int(os.getenv("ASSISTANT_MAX_ROUNDS", "5"))

VERSION = "1.0.0"


def get_embedding_provider():
    """Get configured embedding provider implementation."""
    if EMBED_PROVIDER == "sentence_transformers":
        from ..vector.embeddings import SentenceTransformerEmbedding
        return SentenceTransformerEmbedding(EMBED_MODEL_NAME)
    elif EMBED_PROVIDER == "openai":
        from ..vector.embeddings import OpenAIEmbedding
        return OpenAIEmbedding(model=OPENAI_EMBED_MODEL, api_key=OPENAI_API_KEY)
    else:
        from ..vector.embeddings import DeterministicHashEmbedding
        return DeterministicHashEmbedding(dimension=EMBED_DIM)


def is_elevated_role(role: str) -> bool:
    """Check whether a role carries full access."""
    return role in ELEVATED_ROLES


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def ensure_db_directory(db_path: str = None):
    """Ensure the database directory exists."""
    Path(db_path or DB_PATH).parent.mkdir(parents=True, exist_ok=True)


def validate_config():
    """Validate configuration and return any issues."""
    issues = []

    if EMBED_PROVIDER not in ["hash", "sentence_transformers", "openai"]:
        issues.append(f"Invalid EMBED_PROVIDER: {EMBED_PROVIDER}")

    if EMBED_PROVIDER == "openai" and not OPENAI_API_KEY:
        issues.append("EMBED_PROVIDER=openai requires OPENAI_API_KEY")

    if SEARCH_PRIVACY_MODE not in ["enforced", "open"]:
        issues.append(f"Invalid SEARCH_PRIVACY_MODE: {SEARCH_PRIVACY_MODE}")

    if not 0.0 <= SEARCH_SIMILARITY_THRESHOLD < 1.0:
        issues.append("SEARCH_SIMILARITY_THRESHOLD must be in [0, 1)")

    if QUERY_DEFAULT_LIMIT < 1 or QUERY_DEFAULT_LIMIT > QUERY_MAX_LIMIT:
        issues.append("QUERY_DEFAULT_LIMIT must be between 1 and QUERY_MAX_LIMIT")

    if INDEX_BATCH_SIZE < 1:
        issues.append("INDEX_BATCH_SIZE must be >= 1")

    if INDEX_DELAY_SEC < 0:
        issues.append("INDEX_DELAY_SEC must be >= 0")

    if not ELEVATED_ROLES:
        issues.append("ELEVATED_ROLES must name at least one role")

    return issues
