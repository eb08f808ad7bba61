"""
Tests for the embedding store.
"""

from actify.core.dao import EmbeddingDAO


def test_upsert_is_unique_per_record(embedding_store):
    """Re-indexing a record overwrites its row instead of adding one."""
    embedding_store.upsert("Organization", "o1", "first", "[1.0, 0.0]", model="m1")
    embedding_store.upsert("Organization", "o1", "second", "[0.0, 1.0]", model="m2")

    assert embedding_store.count("Organization") == 1
    record = embedding_store.get("Organization", "o1")
    assert record.content == "second"
    assert record.vector == "[0.0, 1.0]"
    assert record.model == "m2"
    assert record.updated_at is not None


def test_same_record_id_in_different_types(embedding_store):
    embedding_store.upsert("Organization", "x", "org", "[1.0]")
    embedding_store.upsert("Activity", "x", "act", "[1.0]", owner_id="student-1")

    assert embedding_store.count() == 2
    assert embedding_store.get("Activity", "x").owner_id == "student-1"


def test_find_many_scopes_and_models(embedding_store):
    embedding_store.upsert("Activity", "a1", "mine", "[1.0]", owner_id="student-1", model="m")
    embedding_store.upsert("Activity", "a2", "theirs", "[1.0]", owner_id="student-2", model="m")
    embedding_store.upsert("Organization", "o1", "org", "[1.0]", model="m")
    embedding_store.upsert("Organization", "o2", "old model", "[1.0]", model="old")

    rows = embedding_store.find_many(["Activity", "Organization"],
                                     owner_scopes={"Activity": "student-1"}, model="m")

    assert [(r.entity_type, r.record_id) for r in rows] == [("Activity", "a1"), ("Organization", "o1")]
    assert embedding_store.find_many([]) == []


def test_delete_and_clear(embedding_store):
    embedding_store.upsert("Organization", "o1", "a", "[1.0]")
    embedding_store.upsert("Organization", "o2", "b", "[1.0]")
    embedding_store.upsert("Activity", "a1", "c", "[1.0]")

    assert embedding_store.delete("Organization", "o1") is True
    assert embedding_store.delete("Organization", "o1") is False

    embedding_store.clear("Organization")
    assert embedding_store.count("Organization") == 0
    assert embedding_store.count() == 1


def test_count_on_broken_database_is_zero(tmp_path):
    dao = EmbeddingDAO(str(tmp_path / "missing" / "nested" / "x.db"), initialize=False)
    assert dao.count() == 0
