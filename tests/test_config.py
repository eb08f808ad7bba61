"""
Tests for configuration helpers.
"""

from unittest.mock import patch

from actify.core import config
from actify.vector.embeddings import DeterministicHashEmbedding, OpenAIEmbedding


def test_default_provider_is_hash():
    with patch.object(config, "EMBED_PROVIDER", "hash"), patch.object(config, "EMBED_DIM", 16):
        provider = config.get_embedding_provider()

    assert isinstance(provider, DeterministicHashEmbedding)
    assert provider.model_id == "hash-16"


def test_openai_provider_selected():
    with patch.object(config, "EMBED_PROVIDER", "openai"), patch.object(config, "OPENAI_API_KEY", "sk-test"):
        provider = config.get_embedding_provider()

    assert isinstance(provider, OpenAIEmbedding)


def test_validate_config_reports_issues():
    with patch.object(config, "EMBED_PROVIDER", "openai"), \
            patch.object(config, "OPENAI_API_KEY", None), \
            patch.object(config, "SEARCH_PRIVACY_MODE", "relaxed"), \
            patch.object(config, "ELEVATED_ROLES", []):
        issues = config.validate_config()

    assert "EMBED_PROVIDER=openai requires OPENAI_API_KEY" in issues
    assert "Invalid SEARCH_PRIVACY_MODE: relaxed" in issues
    assert "ELEVATED_ROLES must name at least one role" in issues


def test_is_elevated_role():
    assert config.is_elevated_role("admin") is True
    assert config.is_elevated_role("student") is False


def test_ensure_db_directory(tmp_path):
    db_path = tmp_path / "nested" / "dir" / "actify.db"
    config.ensure_db_directory(str(db_path))
    assert db_path.parent.is_dir()
