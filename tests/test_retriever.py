"""
Unit Tests for HybridRetriever

Runs the full search path against the in-memory store with mock
embeddings and a mock generation model. Failure paths swap in
MagicMock collaborators.
"""

from unittest.mock import MagicMock

import numpy as np
import pytest

from rag_gateway.core import SearchHit, SearchResponse
from rag_gateway.core.errors import InvalidInputError, SearchError
from rag_gateway.embeddings import MockEmbeddings
from rag_gateway.generation import MockGenerationModel
from rag_gateway.retrieval.document import Document
from rag_gateway.retrieval.memory_store import InMemoryDocumentStore
from rag_gateway.retrieval.seeds import seed_document_store
from rag_gateway.schemas.requests import SearchOptions
from rag_gateway.search import HybridRetriever, Reranker, SearchFilters
from rag_gateway.search.retriever import parse_aggregations, validate_top_k

INDEX = "docs"
DIMS = 32


# ---------------------------------------------------------------------------
# FIXTURES
# ---------------------------------------------------------------------------


@pytest.fixture
def corpus():
    return [
        Document(id="sec-it-1", title="Password Policy", content="Passwords must be rotated and stored hashed.",
                 category="security", department="it", tags=["passwords"], date="2024-03-01"),
        Document(id="sec-it-2", title="Security Patching", content="Apply security patches within seven days.",
                 category="security", department="it", tags=["patching"], date="2024-04-01"),
        Document(id="sec-hr", title="Security Awareness Training", content="Staff complete security training yearly.",
                 category="security", department="hr", tags=["training"], date="2024-03-15"),
        Document(id="ops-it", title="Backup Operations", content="Nightly backups protect security-critical data.",
                 category="operations", department="it", tags=["backup"], date="2024-05-01"),
        Document(id="hr-leave", title="Leave Policy", content="Employees accrue paid leave monthly.",
                 category="policy", department="hr", tags=["leave"], date="2024-01-10"),
    ]


@pytest.fixture
def embeddings():
    return MockEmbeddings(dimensions=DIMS)


@pytest.fixture
def store(corpus, embeddings):
    store = InMemoryDocumentStore(dimensions=DIMS)
    seed_document_store(store, embeddings, INDEX, documents=corpus)
    return store


@pytest.fixture
def retriever(store, embeddings):
    return HybridRetriever(store, embeddings, INDEX, reranker=Reranker(MockGenerationModel()))


# ---------------------------------------------------------------------------
# INPUT VALIDATION
# ---------------------------------------------------------------------------


class TestValidateTopK:

    @pytest.mark.parametrize("value", [0, -1, 2.5, "3", True, None])
    def test_rejects(self, value):
        with pytest.raises(InvalidInputError):
            validate_top_k(value)

    def test_accepts_positive_int(self):
        assert validate_top_k(3) == 3

    def test_search_rejects_before_any_call(self):
        store = MagicMock()
        embeddings = MagicMock()
        retriever = HybridRetriever(store, embeddings, INDEX)

        with pytest.raises(InvalidInputError):
            retriever.search("q", top_k=0)

        embeddings.embed.assert_not_called()
        store.search.assert_not_called()


# ---------------------------------------------------------------------------
# HYBRID SEARCH
# ---------------------------------------------------------------------------


class TestHybridSearch:

    def test_hybrid_by_default(self, retriever):
        result = retriever.search("security training", top_k=3)

        assert result.search_type == "hybrid"
        assert 0 < len(result.results) <= 3
        assert result.warnings == []
        assert result.used_reranking is False

    def test_confidence_in_unit_interval(self, retriever):
        result = retriever.search("security", top_k=5)

        for candidate in result.results:
            assert 0.0 <= candidate.result.confidence_score <= 1.0
            assert candidate.combined_score == candidate.retrieval_score

    def test_document_has_id_and_no_embedding(self, retriever):
        result = retriever.search("backup", top_k=1)
        document = result.results[0].result.document

        assert document["id"] == result.results[0].id
        assert "embedding" not in document

    def test_filter_conjunction(self, retriever):
        """Every result satisfies every filter kind."""
        filters = SearchFilters(category=frozenset({"security"}), department=frozenset({"it"}))

        result = retriever.search("security", filters=filters, top_k=5)

        assert {c.id for c in result.results} == {"sec-it-1", "sec-it-2"}
        for candidate in result.results:
            assert candidate.result.document["category"] == "security"
            assert candidate.result.document["department"] == "it"

    def test_filters_matching_nothing(self, retriever):
        filters = SearchFilters(category=frozenset({"nope"}))

        result = retriever.search("security", filters=filters, top_k=5)

        assert result.results == []
        assert result.total_hits == 0

    def test_lexical_only_when_disabled(self, retriever):
        result = retriever.search("security", top_k=3, options=SearchOptions(use_hybrid=False))

        assert result.search_type == "lexical"
        assert result.embedding_ms == 0.0

    def test_empty_query_skips_embedding(self, store):
        embeddings = MagicMock()
        retriever = HybridRetriever(store, embeddings, INDEX)

        result = retriever.search("", top_k=10)

        embeddings.embed.assert_not_called()
        assert result.search_type == "lexical"
        assert result.total_hits == 5

    def test_aggregations(self, retriever):
        options = SearchOptions(include_aggregations=True, use_hybrid=False)
        result = retriever.search("", top_k=1, options=options)

        categories = {b["key"]: b["count"] for b in result.aggregations["categories"]}
        assert categories["security"] == 3

    def test_no_aggregations_by_default(self, retriever):
        assert retriever.search("security", top_k=2).aggregations is None


# ---------------------------------------------------------------------------
# DEGRADATION AND FAILURES
# ---------------------------------------------------------------------------


class TestDegradation:

    def test_embedding_failure_falls_back_to_lexical(self, store, caplog):
        embeddings = MagicMock()
        embeddings.embed.side_effect = RuntimeError("embedding service down")
        retriever = HybridRetriever(store, embeddings, INDEX)

        result = retriever.search("security", top_k=3)

        assert result.search_type == "lexical"
        assert result.results
        assert result.warnings == ["Semantic search unavailable; lexical results only"]
        assert "Embedding failed" in caplog.text

    def test_wrong_dimensions_fall_back_to_lexical(self, store):
        embeddings = MagicMock()
        embeddings.dimensions = DIMS
        embeddings.embed.return_value = np.ones(DIMS // 2)
        retriever = HybridRetriever(store, embeddings, INDEX)

        result = retriever.search("security", top_k=3)

        assert result.search_type == "lexical"

    def test_store_failure_is_search_error(self, embeddings):
        store = MagicMock()
        store.search.side_effect = ConnectionError("connection refused")
        retriever = HybridRetriever(store, embeddings, INDEX)

        with pytest.raises(SearchError, match="Search failed: connection refused"):
            retriever.search("security", top_k=3)

    def test_rerank_failure_keeps_retrieval_order(self, store, embeddings):
        model = MagicMock()
        model.rerank_documents.side_effect = TimeoutError("model timeout")
        retriever = HybridRetriever(store, embeddings, INDEX, reranker=Reranker(model))
        plain = HybridRetriever(store, embeddings, INDEX)

        options = SearchOptions(enable_reranking=True)
        result = retriever.search("security", top_k=2, options=options)
        expected = plain.search("security", top_k=6)

        assert result.used_reranking is False
        assert [c.id for c in result.results] == [c.id for c in expected.results[:2]]
        assert "Reranking unavailable; retrieval order kept" in result.warnings


# ---------------------------------------------------------------------------
# RERANKING AND POST-FILTERING
# ---------------------------------------------------------------------------


class TestRerankingAndPostFilter:

    def test_reranking_requests_three_times_top_k(self, embeddings):
        store = MagicMock()
        store.search.return_value = SearchResponse(hits=[], total=0)
        retriever = HybridRetriever(store, embeddings, INDEX, reranker=Reranker(MockGenerationModel()))

        retriever.search("security", top_k=2, options=SearchOptions(enable_reranking=True))

        body = store.search.call_args.args[1]
        assert body["size"] == 6

    def test_reranked_results(self, retriever):
        result = retriever.search("security patches", top_k=2, options=SearchOptions(enable_reranking=True))

        assert result.used_reranking is True
        assert len(result.results) == 2
        assert all(c.rerank_score is not None for c in result.results)
        assert result.results[0].combined_score >= result.results[1].combined_score

    def test_post_filter_drops_and_adjusts_total(self, embeddings):
        store = MagicMock()
        store.search.return_value = SearchResponse(
            hits=[
                SearchHit(id="a", score=0.03, source={"category": "security", "department": "it"}),
                SearchHit(id="b", score=0.02, source={"category": "policy", "department": "it"}),
            ],
            total=2,
        )
        retriever = HybridRetriever(store, embeddings, INDEX)
        filters = SearchFilters(category=frozenset({"security"}))

        result = retriever.search("q", filters=filters, top_k=5)

        assert [c.id for c in result.results] == ["a"]
        assert result.total_hits == 1


class TestParseAggregations:

    def test_prefers_key_as_string(self):
        raw = {
            "timeline": {"buckets": [{"key": 1704067200000, "key_as_string": "2024-01-01", "doc_count": 3}]},
            "categories": {"buckets": [{"key": "security", "doc_count": 2}]},
        }

        parsed = parse_aggregations(raw)

        assert parsed["timeline"] == [{"key": "2024-01-01", "count": 3}]
        assert parsed["categories"] == [{"key": "security", "count": 2}]
