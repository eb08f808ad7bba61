"""
Tests for semantic search: ranking, privacy modes, threshold and the text-search fallback.
"""

import pytest
from unittest.mock import MagicMock

from actify.core.schema import EmbeddingRecord
from actify.vector.embeddings import encode_vector
from actify.vector.search import SearchEngine, format_search_results
from actify.vector.types import SearchMatch


@pytest.fixture
def indexed(seeded, indexer):
    indexer.index_all()
    return seeded


class TestSemanticSearch:
    def test_index_and_find(self, indexed, search_engine, student):
        result = search_engine.search("robotics", student)

        ids = [m.record_id for m in result.matches]
        assert ids == ["act-1", "org-approved", "essay-full"]
        assert result.matches[0].score == pytest.approx(1.0)
        assert result.matches[0].owner_id == "student-1"
        assert result.total_candidates > 0

    def test_enforced_mode_hides_other_students_and_anonymous_alumni(self, indexed, search_engine, other_student):
        ids = [m.record_id for m in search_engine.search("robotics", other_student).matches]

        assert "act-1" not in ids
        assert "essay-anon" not in ids
        assert "org-approved" in ids

    def test_open_mode_skips_privacy_filtering(self, indexed, provider, embedding_store, record_store, student):
        engine = SearchEngine(provider, embedding_store, record_store, privacy_mode="open")

        ids = [m.record_id for m in engine.search("robotics", student).matches]

        assert ids == ["act-1", "org-approved", "essay-anon", "essay-full"]

    def test_admin_sees_everything(self, indexed, search_engine, admin):
        ids = [m.record_id for m in search_engine.search("robotics", admin).matches]
        assert "essay-anon" in ids

    def test_top_k(self, indexed, search_engine, admin):
        assert len(search_engine.search("robotics", admin, top_k=2).matches) == 2

    def test_entity_type_subset(self, indexed, search_engine, student):
        result = search_engine.search("robotics", student, entity_types=["Organization"])
        assert [m.entity_type for m in result.matches] == ["Organization"]

    def test_denied_types_yield_nothing(self, indexed, search_engine, student):
        result = search_engine.search("robotics", student, entity_types=["User"])
        assert result.matches == []
        assert result.total_candidates == 0

    def test_empty_entity_type_list_searches_nothing(self, indexed, search_engine, admin):
        result = search_engine.search("robotics", admin, entity_types=[])
        assert result.matches == []
        assert result.total_candidates == 0

    def test_blank_query(self, search_engine, student):
        search_engine.embedding_provider = MagicMock()

        result = search_engine.search("   ", student)

        assert result.matches == []
        search_engine.embedding_provider.embed_text.assert_not_called()

    def test_snippet_truncated(self, record_store, indexer, search_engine, admin):
        record_store.insert("AlumniApplication", {"id": "long-app", "alumniProfileId": "x",
                                                  "rawText": "robotics " * 60})
        indexer.upsert_embedding("AlumniApplication", "long-app")

        match = search_engine.search("robotics", admin).matches[0]

        assert match.snippet.endswith("...")
        assert len(match.snippet) == 203

    def test_other_model_embeddings_ignored(self, indexed, embedding_store, search_engine, admin):
        embedding_store.clear()
        embedding_store.upsert("Organization", "org-approved", "Robotics Club",
                               encode_vector([1.0] + [0.0] * 7), model="some-other-model")

        result = search_engine.search("robotics", admin)

        assert result.matches
        assert all(m.score == 0.5 for m in result.matches)

    def test_corrupt_vector_scores_zero(self, indexed, embedding_store, search_engine, admin):
        embedding_store.upsert("Organization", "org-pending", "Chess Society", "not json",
                               model=search_engine.embedding_provider.model_id)

        ids = [m.record_id for m in search_engine.search("robotics", admin).matches]

        assert "org-pending" not in ids
        assert "org-approved" in ids


class TestThreshold:
    def _engine(self, vectors):
        provider = MagicMock()
        provider.model_id = "m"
        provider.embed_text.return_value = [1.0, 0.0]
        store = MagicMock()
        store.find_many.return_value = [
            EmbeddingRecord("Organization", record_id, "content", encode_vector(vector), model="m")
            for record_id, vector in vectors
        ]
        source = MagicMock()
        source.find_many.return_value = []
        return SearchEngine(provider, store, source, privacy_mode="open")

    def test_scores_at_threshold_excluded(self, student):
        engine = self._engine([
            ("exact", [0.3, 0.9539392014169456]),
            ("above", [0.6, 0.8]),
            ("best", [1.0, 0.0]),
        ])

        result = engine.search("anything", student)

        assert [m.record_id for m in result.matches] == ["best", "above"]
        assert all(m.score > 0.3 for m in result.matches)
        assert result.total_candidates == 3

    def test_ties_keep_store_order(self, student):
        engine = self._engine([("a", [1.0, 0.0]), ("b", [1.0, 0.0]), ("c", [1.0, 0.0])])
        assert [m.record_id for m in engine.search("x", student).matches] == ["a", "b", "c"]

    def test_unknown_privacy_mode(self):
        with pytest.raises(ValueError):
            SearchEngine(MagicMock(), MagicMock(), MagicMock(), privacy_mode="relaxed")


class TestFallback:
    def test_no_semantic_matches_falls_back_to_text(self, indexed, search_engine, student):
        result = search_engine.search("Library", student)

        assert len(result.matches) == 1
        match = result.matches[0]
        assert match.record_id == "act-3"
        assert match.score == 0.5
        assert match.snippet == "organization: Library..."
        assert match.owner_id == "student-1"
        assert result.total_candidates == 1

    def test_fallback_respects_privacy(self, indexed, search_engine, other_student):
        assert search_engine.search("Library", other_student).matches == []

    def test_provider_error_falls_back(self, seeded, embedding_store, record_store, student):
        provider = MagicMock()
        provider.embed_text.side_effect = RuntimeError("service unavailable")
        engine = SearchEngine(provider, embedding_store, record_store)

        result = engine.search("robotics", student)

        assert [m.record_id for m in result.matches] == ["essay-full", "org-approved", "act-1"]
        assert all(m.score == 0.5 for m in result.matches)

    def test_fallback_survives_broken_entity_type(self, seeded, embedding_store, student):
        provider = MagicMock()
        provider.embed_text.side_effect = RuntimeError("down")
        source = MagicMock(wraps=seeded)
        original_list_page = seeded.list_page

        def list_page(entity_type, **kwargs):
            if entity_type == "Activity":
                raise RuntimeError("no such table")
            return original_list_page(entity_type, **kwargs)

        source.list_page.side_effect = list_page
        engine = SearchEngine(provider, embedding_store, source)

        ids = [m.record_id for m in engine.search("robotics", student).matches]

        assert "org-approved" in ids
        assert "act-1" not in ids

    def test_fallback_skips_past_hidden_rows(self, record_store, embedding_store, student):
        """Rows from anonymous alumni do not crowd a visible match out of the page."""
        record_store.insert("AlumniProfile", {"id": "ap-hidden", "privacy": "ANONYMOUS"})
        record_store.insert("AlumniProfile", {"id": "ap-shown", "privacy": "FULL", "displayName": "Jamie"})
        record_store.insert("AlumniApplication", {"id": "app-hidden", "alumniProfileId": "ap-hidden"})
        record_store.insert("AlumniApplication", {"id": "app-shown", "alumniProfileId": "ap-shown"})
        for i in range(1, 4):
            record_store.insert("ExtractedEssay", {"id": f"e-anon-{i}", "applicationId": "app-hidden",
                                                   "topic": "Robotics"})
        record_store.insert("ExtractedEssay", {"id": "e-full", "applicationId": "app-shown", "topic": "Robotics"})

        provider = MagicMock()
        provider.embed_text.side_effect = RuntimeError("down")
        engine = SearchEngine(provider, embedding_store, record_store)

        result = engine.search("robotics", student, entity_types=["ExtractedEssay"], top_k=3)

        assert [m.record_id for m in result.matches] == ["e-full"]

    def test_fallback_snippet_default(self, record_store, embedding_store, admin):
        """A match on a field the snippet builder skips still gets a snippet."""
        provider = MagicMock()
        provider.embed_text.side_effect = RuntimeError("down")
        source = MagicMock()
        source.list_page.return_value = [{"id": "o1", "name": None}]
        engine = SearchEngine(provider, embedding_store, source, privacy_mode="open")

        result = engine.search("robotics", admin, entity_types=["Organization"])

        assert result.matches[0].snippet == "Match found"


def test_format_search_results():
    matches = [
        SearchMatch("Organization", "o1", 0.912, "Robotics Club"),
        SearchMatch("Activity", "a1", 0.5, "Robotics team"),
        SearchMatch("Organization", "o2", 0.4, "Chess"),
    ]

    output = format_search_results(matches)

    assert output == (
        "Found 3 relevant results:\n\n"
        "**Organization** (2):\n"
        "- [91%] Robotics Club\n  (ID: o1)\n"
        "- [40%] Chess\n  (ID: o2)\n"
        "\n"
        "**Activity** (1):\n"
        "- [50%] Robotics team\n  (ID: a1)\n"
        "\n"
    )


def test_format_no_results():
    assert format_search_results([]) == "No relevant results found."
