"""Tests for the offline FakeEmbedding provider.

FakeEmbedding backs offline runs and most pipeline tests, so its vectors
must be deterministic, normalized and similar for texts that share words.
"""

import math

import pytest

from libs.embedding.base_embedding import EmbeddingResult
from libs.embedding.local_embedding import FakeEmbedding


def cosine(a, b):
    return sum(x * y for x, y in zip(a, b))


class TestFakeEmbedding:
    """Tests for FakeEmbedding provider."""

    def test_initialization(self):
        embedding = FakeEmbedding()

        assert embedding.provider_name == "fake"
        assert embedding.dimensions == 384
        assert embedding.model_name == "feature-hashing"
        assert embedding.api_key_masked == "NOT_SET"

    def test_remote_settings_ignored(self):
        embedding = FakeEmbedding(dimensions=64, api_key="unused-key", model="ignored", timeout=5.0)

        assert embedding.dimensions == 64
        assert embedding.model_name == "feature-hashing"

    def test_embed_returns_one_vector_per_text(self):
        result = FakeEmbedding(dimensions=32).embed(["alpha", "beta", "gamma"])

        assert isinstance(result, EmbeddingResult)
        assert len(result.vectors) == 3
        assert all(len(v) == 32 for v in result.vectors)

    def test_empty_input(self):
        assert FakeEmbedding().embed([]).vectors == []

    def test_vectors_are_unit_length(self):
        vectors = FakeEmbedding().embed(["INSAT-3D carries an imager", "MOSDAC"]).vectors
        for vector in vectors:
            assert math.isclose(math.sqrt(sum(x * x for x in vector)), 1.0)

    def test_deterministic_across_instances(self):
        text = "Oceansat-2 carries a scatterometer"
        assert FakeEmbedding().embed_single(text) == FakeEmbedding().embed_single(text)

    def test_text_without_tokens_gets_fixed_vector(self):
        vector = FakeEmbedding(dimensions=8).embed_single("!!! ...")
        assert vector == [1.0] + [0.0] * 7

    def test_case_insensitive(self):
        embedding = FakeEmbedding()
        assert embedding.embed_single("SCATSAT-1 Winds") == embedding.embed_single("scatsat-1 winds")

    def test_shared_words_score_higher(self):
        embedding = FakeEmbedding()
        query = embedding.embed_single("What is INSAT-3D?")
        related = embedding.embed_single("INSAT-3D is a meteorological satellite.")
        unrelated = embedding.embed_single("Data products are released after registration.")

        assert cosine(query, related) > cosine(query, unrelated)

    @pytest.mark.parametrize("dimensions", [1, 16, 1536])
    def test_custom_dimensions(self, dimensions):
        vector = FakeEmbedding(dimensions=dimensions).embed_single("satellite data")
        assert len(vector) == dimensions

    def test_repr(self):
        assert repr(FakeEmbedding(dimensions=16)) == "FakeEmbedding(provider=fake, dimensions=16)"
