"""
Unit Tests for the embedding providers

MockEmbeddings is checked for the properties retrieval relies on;
OpenAIEmbeddings is checked against a MagicMock client.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import numpy as np
import pytest

from rag_gateway.core.protocols import EmbeddingProvider
from rag_gateway.embeddings import (
    DEFAULT_DIMENSIONS,
    MockEmbeddings,
    OpenAIEmbeddings,
    get_embedding_provider,
)


def _cosine(a, b):
    return float(np.dot(a, b) / (np.linalg.norm(a) * np.linalg.norm(b)))


# ---------------------------------------------------------------------------
# MOCK PROVIDER
# ---------------------------------------------------------------------------


class TestMockEmbeddings:

    def test_dimensions_and_unit_norm(self):
        vector = MockEmbeddings(dimensions=64).embed("VPN setup guide")

        assert vector.shape == (64,)
        assert np.linalg.norm(vector) == pytest.approx(1.0, abs=1e-6)

    def test_deterministic(self):
        a = MockEmbeddings().embed("password rotation policy")
        b = MockEmbeddings().embed("password rotation policy")
        np.testing.assert_array_equal(a, b)

    def test_case_insensitive(self):
        provider = MockEmbeddings()
        np.testing.assert_array_equal(provider.embed("Security"), provider.embed("security"))

    def test_shared_words_are_closer(self):
        provider = MockEmbeddings()
        query = provider.embed("security best practices")

        related = provider.embed("best practices for security reviews")
        unrelated = provider.embed("quarterly revenue forecast")

        assert _cosine(query, related) > _cosine(query, unrelated)

    def test_empty_text_is_zero_vector(self):
        vector = MockEmbeddings(dimensions=8).embed("")
        assert not vector.any()

    def test_batch_matches_single(self):
        provider = MockEmbeddings(dimensions=32)
        texts = ["one document", "another document"]

        batch = provider.embed_batch(texts)

        assert len(batch) == 2
        for text, vector in zip(texts, batch):
            np.testing.assert_array_equal(vector, provider.embed(text))


# ---------------------------------------------------------------------------
# OPENAI PROVIDER
# ---------------------------------------------------------------------------


def _embedding_response(*vectors):
    return SimpleNamespace(data=[SimpleNamespace(embedding=list(v)) for v in vectors])


class TestOpenAIEmbeddings:

    def test_embed_requests_index_dimensions(self):
        client = MagicMock()
        client.embeddings.create.return_value = _embedding_response([0.1, 0.2, 0.3])
        provider = OpenAIEmbeddings(dimensions=3, client=client)

        vector = provider.embed("vpn")

        client.embeddings.create.assert_called_once_with(
            input="vpn", model="text-embedding-3-small", dimensions=3
        )
        assert vector.dtype == np.float32
        assert vector.tolist() == pytest.approx([0.1, 0.2, 0.3])

    def test_embed_batch_single_call(self):
        client = MagicMock()
        client.embeddings.create.return_value = _embedding_response([1.0, 0.0], [0.0, 1.0])
        provider = OpenAIEmbeddings(dimensions=2, client=client)

        vectors = provider.embed_batch(["a", "b"])

        assert client.embeddings.create.call_count == 1
        assert [v.tolist() for v in vectors] == [[1.0, 0.0], [0.0, 1.0]]

    def test_embed_batch_empty_makes_no_call(self):
        client = MagicMock()
        provider = OpenAIEmbeddings(client=client)

        assert provider.embed_batch([]) == []
        client.embeddings.create.assert_not_called()


# ---------------------------------------------------------------------------
# FACTORY
# ---------------------------------------------------------------------------


class TestFactory:

    def test_mock(self):
        provider = get_embedding_provider(use_mock=True, dimensions=16)

        assert isinstance(provider, MockEmbeddings)
        assert provider.dimensions == 16
        assert isinstance(provider, EmbeddingProvider)

    def test_openai(self):
        provider = get_embedding_provider(use_mock=False, api_key="sk-test")

        assert isinstance(provider, OpenAIEmbeddings)
        assert provider.dimensions == DEFAULT_DIMENSIONS
