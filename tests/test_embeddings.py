"""
Tests for the vector primitives: providers, normalization, cosine, PII stripping
and vector (de)serialization.
"""

import math

import pytest
from unittest.mock import MagicMock

from actify.vector.embeddings import (
    IEmbeddingProvider,
    DeterministicHashEmbedding,
    OpenAIEmbedding,
    EmptyInputError,
    DimensionMismatchError,
    create_text_embedding,
    normalize,
    cosine,
    strip_pii,
    encode_vector,
    parse_vector,
)


def _norm(vector):
    return math.sqrt(sum(v * v for v in vector))


def test_embedding_interface():
    """The hash provider implements the provider interface."""
    embedder = DeterministicHashEmbedding(dimension=384)

    assert isinstance(embedder, IEmbeddingProvider)
    assert embedder.get_dimension() == 384
    assert embedder.model_id == "hash-384"


def test_deterministic_embedding():
    """Same text, same vector, across instances."""
    vector1 = DeterministicHashEmbedding(dimension=128).embed_text("Robotics club captain")
    vector2 = DeterministicHashEmbedding(dimension=128).embed_text("Robotics club captain")

    assert vector1 == vector2
    assert len(vector1) == 128


def test_hash_embedding_empty_text_is_zero_vector():
    vector = DeterministicHashEmbedding(dimension=16).embed_text("")
    assert vector == [0.0] * 16


def test_texts_sharing_words_are_similar():
    embedder = DeterministicHashEmbedding(dimension=384)
    a = normalize(embedder.embed_text("robotics club"))
    b = normalize(embedder.embed_text("robotics club"))
    c = normalize(embedder.embed_text("robotics"))

    assert cosine(a, b) == pytest.approx(1.0)
    assert cosine(a, c) > 0.3


class TestCreateTextEmbedding:
    def test_empty_input_rejected(self):
        provider = MagicMock()
        with pytest.raises(EmptyInputError):
            create_text_embedding("   ", provider)
        provider.embed_text.assert_not_called()

    def test_truncates_to_max_chars(self):
        provider = MagicMock()
        provider.embed_text.return_value = [1.0, 0.0]

        create_text_embedding("x" * 50, provider, max_chars=10)

        provider.embed_text.assert_called_once_with("x" * 10)

    def test_provider_errors_propagate(self):
        provider = MagicMock()
        provider.embed_text.side_effect = RuntimeError("rate limited")

        with pytest.raises(RuntimeError, match="rate limited"):
            create_text_embedding("hello", provider)


class TestNormalize:
    def test_unit_length(self):
        assert _norm(normalize([3.0, 4.0])) == pytest.approx(1.0)
        assert normalize([3.0, 4.0]) == pytest.approx([0.6, 0.8])

    def test_idempotent(self):
        once = normalize([0.2, -1.5, 7.0, 0.01])
        twice = normalize(once)
        assert twice == pytest.approx(once)

    def test_zero_vector_unchanged(self):
        assert normalize([0.0, 0.0, 0.0]) == [0.0, 0.0, 0.0]


class TestCosine:
    def test_bounds(self):
        vectors = [normalize(v) for v in ([1, 2, 3], [-3, 0.5, 2], [0, 0, 1], [-1, -2, -3])]
        for a in vectors:
            for b in vectors:
                assert -1.0 - 1e-9 <= cosine(a, b) <= 1.0 + 1e-9

    def test_identical_and_opposite(self):
        v = normalize([1.0, 2.0, 2.0])
        assert cosine(v, v) == pytest.approx(1.0)
        assert cosine(v, [-x for x in v]) == pytest.approx(-1.0)

    def test_dimension_mismatch(self):
        """Vectors from different providers cannot be compared."""
        with pytest.raises(DimensionMismatchError):
            cosine([0.1] * 768, [0.1] * 1536)

    def test_empty_vectors(self):
        assert cosine([], []) == 0.0


class TestStripPii:
    def test_replaces_contact_details(self):
        text = "Email jane.doe@example.com or call 555-123-4567, SSN 123-45-6789"
        cleaned = strip_pii(text)

        assert "jane.doe@example.com" not in cleaned
        assert "555-123-4567" not in cleaned
        assert "123-45-6789" not in cleaned
        assert "[EMAIL]" in cleaned
        assert "[PHONE]" in cleaned
        assert "[SSN]" in cleaned

    def test_parenthesized_phone(self):
        assert strip_pii("Office: (555) 123-4567") == "Office: [PHONE]"

    def test_idempotent(self):
        text = "Reach me at a@b.io, 555.123.4567 or (555) 987 6543. SSN 987-65-4321."
        once = strip_pii(text)
        assert strip_pii(once) == once

    def test_plain_text_untouched(self):
        text = "Led the robotics team for 3 years, 120 hours total."
        assert strip_pii(text) == text


class TestVectorSerialization:
    def test_round_trip(self):
        vector = normalize([1.0, 2.0, 3.0])
        assert parse_vector(encode_vector(vector)) == pytest.approx(vector)

    @pytest.mark.parametrize("raw", ["not json", "{\"a\": 1}", "[1, \"two\", 3]", None])
    def test_corrupt_vector_parses_empty(self, raw):
        assert parse_vector(raw) == []


class TestOpenAIEmbedding:
    def test_calls_embeddings_api(self):
        client = MagicMock()
        client.embeddings.create.return_value = MagicMock(data=[MagicMock(embedding=[0.1, 0.2, 0.3])])
        provider = OpenAIEmbedding(model="text-embedding-3-small", client=client)

        vector = provider.embed_text("hello")

        assert vector == [0.1, 0.2, 0.3]
        client.embeddings.create.assert_called_once_with(
            model="text-embedding-3-small", input="hello", encoding_format="float"
        )
        assert provider.get_dimension() == 1536
        assert provider.model_id == "text-embedding-3-small"
