"""
Tests for the embedding build script.
"""

from pathlib import Path
import re

from scripts.build_embeddings import main


def test_unsupported_entity_type(db_path, provider, capsys):
    assert main(["--entity-type", "User", "--db-path", db_path], embedding_provider=provider) == 1

    output = capsys.readouterr().out
    assert "ERROR: Unsupported entity type: User" in output
    assert "Organization" in output


def test_builds_all_supported_types(seeded, db_path, provider, embedding_store, capsys):
    assert main(["--db-path", db_path, "--delay", "0"], embedding_provider=provider) == 0

    assert embedding_store.count("Activity") == 3
    assert embedding_store.count("Organization") == 2
    assert embedding_store.count("User") == 0
    output = capsys.readouterr().out
    assert "  Activity: 3 indexed, 0 failed" in output
    assert f"Embeddings stored: {embedding_store.count()}" in output


def test_clear_single_type(seeded, db_path, provider, embedding_store, capsys):
    embedding_store.upsert("Organization", "stale-org", "Old", "[1.0]", model=provider.model_id)

    assert main(["--entity-type", "Organization", "--db-path", db_path, "--delay", "0", "--clear"],
                embedding_provider=provider) == 0

    assert embedding_store.get("Organization", "stale-org") is None
    assert embedding_store.count("Organization") == 2
    assert "✓ Cleared existing embeddings" in capsys.readouterr().out


def test_scripts_not_packaged():
    """The CLI runs from a checkout; only the actify packages are distributed."""
    pyproject = Path(__file__).resolve().parent.parent / "pyproject.toml"
    include = re.search(r"^include = (.*)$", pyproject.read_text(), re.MULTILINE).group(1)
    assert include == '["actify*"]'
