"""
Unit Tests for InMemoryDocumentStore

The in-memory store interprets the query DSL the retriever emits, so
these tests feed it the same bodies the query builder produces.
"""

import numpy as np
import pytest

from rag_gateway.core import DocumentStore
from rag_gateway.core.errors import InvalidDocumentError
from rag_gateway.retrieval.document import Document
from rag_gateway.retrieval.memory_store import InMemoryDocumentStore, edit_distance, tokenize
from rag_gateway.schemas.requests import SearchOptions
from rag_gateway.search.filters import SearchFilters
from rag_gateway.search.query_builder import build_hybrid_body, build_lexical_body

INDEX = "docs"


# ---------------------------------------------------------------------------
# FIXTURES
# ---------------------------------------------------------------------------


def _unit(i: int) -> np.ndarray:
    vector = np.zeros(3, dtype=np.float32)
    vector[i] = 1.0
    return vector


@pytest.fixture
def documents():
    return [
        Document(
            id="enc",
            title="Encryption Standards",
            content="Use strong encryption for data at rest. Rotate encryption keys yearly.",
            category="security",
            department="it",
            tags=["encryption", "security"],
            date="2024-01-15",
            embedding=_unit(0),
        ),
        Document(
            id="mfa",
            title="Multi-Factor Authentication",
            content="Enable authentication with hardware keys for every account.",
            category="security",
            department="hr",
            tags=["mfa", "security"],
            date="2024-02-10",
            embedding=_unit(1),
        ),
        Document(
            id="k8s",
            title="Kubernetes Deployments",
            content="Rolling updates keep services available during deployments.",
            category="infrastructure",
            department="it",
            tags=["kubernetes"],
            date="2024-02-20",
            embedding=_unit(2),
        ),
    ]


@pytest.fixture
def store(documents):
    store = InMemoryDocumentStore(dimensions=3)
    store.create_index(INDEX, 3)
    result = store.bulk_index(INDEX, documents)
    assert result.ok
    return store


def _ids(response):
    return [hit.id for hit in response.hits]


# ---------------------------------------------------------------------------
# HELPERS
# ---------------------------------------------------------------------------


class TestTextHelpers:

    def test_tokenize(self):
        assert tokenize("AES-256 Encryption!") == ["aes", "256", "encryption"]

    def test_edit_distance(self):
        assert edit_distance("encrypton", "encryption", 2) == 1
        assert edit_distance("kitten", "sitting", 3) == 3

    def test_edit_distance_short_circuits(self):
        assert edit_distance("a", "abcdef", 2) == 3


# ---------------------------------------------------------------------------
# WRITES
# ---------------------------------------------------------------------------


class TestIndexing:

    def test_satisfies_protocol(self):
        assert isinstance(InMemoryDocumentStore(), DocumentStore)

    def test_create_index_is_idempotent(self):
        store = InMemoryDocumentStore()

        assert store.create_index(INDEX, 3) is True
        assert store.create_index(INDEX, 3) is False

    def test_index_document_returns_id(self, store):
        doc_id = store.index_document(INDEX, Document(id="new", title="T", content="C"))

        assert doc_id == "new"
        assert store.count(INDEX) == 4

    def test_index_document_generates_id(self, store):
        doc_id = store.index_document(INDEX, Document(id="", title="T", content="C"))

        assert doc_id.startswith("doc-")

    def test_index_document_rejects_invalid(self, store):
        with pytest.raises(InvalidDocumentError):
            store.index_document(INDEX, Document(id="bad", title="", content="C"))
        assert store.count(INDEX) == 3

    def test_bulk_index_reports_errors(self):
        store = InMemoryDocumentStore(dimensions=3)
        result = store.bulk_index(INDEX, [
            Document(id="ok", title="T", content="C"),
            Document(id="bad", title="T", content=""),
            Document(id="dims", title="T", content="C", embedding=np.zeros(5)),
        ])

        assert result.indexed == 1
        assert len(result.errors) == 2
        assert not result.ok

    def test_new_documents_are_searchable(self, store):
        store.index_document(INDEX, Document(id="vpn", title="VPN Access", content="Remote VPN setup."))
        response = store.search(INDEX, build_lexical_body("vpn", None, 5, SearchOptions()))

        assert _ids(response) == ["vpn"]


# ---------------------------------------------------------------------------
# LEXICAL SEARCH
# ---------------------------------------------------------------------------


class TestLexicalSearch:

    def test_best_match_first(self, store):
        response = store.search(INDEX, build_lexical_body("encryption", None, 5, SearchOptions()))

        assert _ids(response)[0] == "enc"
        assert response.hits[0].score > 0

    def test_non_matching_documents_excluded(self, store):
        response = store.search(INDEX, build_lexical_body("kubernetes", None, 5, SearchOptions()))

        assert _ids(response) == ["k8s"]
        assert response.total == 1

    def test_fuzzy_matching(self, store):
        response = store.search(INDEX, build_lexical_body("encrypton", None, 5, SearchOptions()))

        assert _ids(response) == ["enc"]

    def test_empty_query_matches_all(self, store):
        response = store.search(INDEX, build_lexical_body("", None, 10, SearchOptions()))

        assert response.total == 3

    def test_filters_apply(self, store):
        filters = SearchFilters(category=frozenset({"security"}), department=frozenset({"it"}))
        response = store.search(INDEX, build_lexical_body("", filters, 10, SearchOptions()))

        assert _ids(response) == ["enc"]

    def test_size_limits_hits_not_total(self, store):
        response = store.search(INDEX, build_lexical_body("", None, 1, SearchOptions()))

        assert len(response.hits) == 1
        assert response.total == 3

    def test_embedding_excluded_from_source(self, store):
        response = store.search(INDEX, build_lexical_body("encryption", None, 5, SearchOptions()))

        assert "embedding" not in response.hits[0].source

    def test_highlight_marks_query_terms(self, store):
        response = store.search(INDEX, build_lexical_body("encryption", None, 5, SearchOptions()))
        highlight = response.hits[0].highlight

        assert "<em>Encryption</em>" in highlight["title"][0]
        assert any("<em>encryption</em>" in fragment for fragment in highlight["content"])

    def test_unknown_clause_rejected(self, store):
        with pytest.raises(ValueError, match="Unsupported query clause"):
            store.search(INDEX, {"query": {"fuzzy_wuzzy": {}}})

    def test_missing_index_is_empty(self):
        response = InMemoryDocumentStore().search("nope", {"query": {"match_all": {}}})

        assert response.hits == []
        assert response.total == 0


# ---------------------------------------------------------------------------
# VECTOR AND HYBRID SEARCH
# ---------------------------------------------------------------------------


class TestVectorSearch:

    def test_knn_orders_by_cosine(self, store):
        body = {"knn": {"field": "embedding", "query_vector": [0.9, 0.1, 0.0], "k": 3, "num_candidates": 10}}
        response = store.search(INDEX, body)

        assert _ids(response)[:2] == ["enc", "mfa"]

    def test_knn_score_is_es_cosine(self, store):
        body = {"knn": {"field": "embedding", "query_vector": [1.0, 0.0, 0.0], "k": 1, "num_candidates": 10}}
        response = store.search(INDEX, body)

        assert response.hits[0].score == pytest.approx(1.0)

    def test_knn_zero_vector(self, store):
        body = {"knn": {"field": "embedding", "query_vector": [0.0, 0.0, 0.0], "k": 3, "num_candidates": 10}}
        response = store.search(INDEX, body)

        assert all(hit.score == pytest.approx(0.5) for hit in response.hits)

    def test_hybrid_rrf_sets_rank_and_fused_score(self, store):
        body = build_hybrid_body("encryption", _unit(0), None, 2, 2, SearchOptions())
        response = store.search(INDEX, body)

        top = response.hits[0]
        assert top.id == "enc"
        assert top.rank == 1
        assert top.score == pytest.approx(1 / 61 + 1 / 61)

    def test_hybrid_filters_both_channels(self, store):
        filters = SearchFilters(department=frozenset({"it"}))
        body = build_hybrid_body("authentication", _unit(1), filters, 3, 3, SearchOptions())
        response = store.search(INDEX, body)

        assert "mfa" not in _ids(response)


# ---------------------------------------------------------------------------
# AGGREGATIONS
# ---------------------------------------------------------------------------


class TestAggregations:

    def test_terms_and_histogram(self, store):
        options = SearchOptions(include_aggregations=True)
        response = store.search(INDEX, build_lexical_body("", None, 10, options))
        aggs = response.aggregations

        categories = {b["key"]: b["doc_count"] for b in aggs["categories"]["buckets"]}
        assert categories == {"security": 2, "infrastructure": 1}

        timeline = {b["key_as_string"]: b["doc_count"] for b in aggs["timeline"]["buckets"]}
        assert timeline == {"2024-01-01": 1, "2024-02-01": 2}

    def test_aggregations_cover_all_matches(self, store):
        options = SearchOptions(include_aggregations=True)
        response = store.search(INDEX, build_lexical_body("", None, 1, options))
        tags = {b["key"]: b["doc_count"] for b in response.aggregations["tags"]["buckets"]}

        assert tags["security"] == 2
