"""
Unit Tests for Search Filters and Query Construction

Query bodies are pure functions of their inputs, so they are asserted
on directly without a store.
"""

from datetime import date

import pytest

from rag_gateway.core.errors import InvalidInputError
from rag_gateway.schemas.requests import SearchOptions
from rag_gateway.search.filters import DateRange, SearchFilters, parse_iso_date
from rag_gateway.search.query_builder import (
    LEXICAL_FIELDS,
    build_hybrid_body,
    build_knn_query,
    build_lexical_body,
    build_lexical_query,
    candidate_count,
)


# ---------------------------------------------------------------------------
# FILTER PARSING
# ---------------------------------------------------------------------------


class TestSearchFiltersParsing:
    """Wire filters become SearchFilters; malformed ones are rejected."""

    def test_empty(self):
        filters = SearchFilters.from_dict(None)

        assert filters.is_empty
        assert filters.to_clauses() == []

    def test_camel_case_wire_shape(self):
        filters = SearchFilters.from_dict({
            "category": ["security"],
            "department": ["it"],
            "dateRange": {"start": "2024-01-01", "end": "2024-12-31T23:59:59Z"},
        })

        assert filters.category == frozenset({"security"})
        assert filters.department == frozenset({"it"})
        assert filters.date_range == DateRange(date(2024, 1, 1), date(2024, 12, 31))
        assert filters.count == 3

    def test_inverted_date_range_rejected(self):
        with pytest.raises(InvalidInputError):
            SearchFilters.from_dict({"dateRange": {"start": "2024-06-01", "end": "2024-01-01"}})

    def test_unknown_filter_rejected(self):
        with pytest.raises(InvalidInputError):
            SearchFilters.from_dict({"colour": ["red"]})

    def test_wrong_type_rejected(self):
        with pytest.raises(InvalidInputError):
            SearchFilters.from_dict({"category": 42})

    def test_parse_iso_date(self):
        assert parse_iso_date("2024-03-15T10:00:00Z") == date(2024, 3, 15)
        assert parse_iso_date("not a date") is None
        assert parse_iso_date(None) is None


# ---------------------------------------------------------------------------
# FILTER SEMANTICS
# ---------------------------------------------------------------------------


class TestSearchFiltersMatching:
    """AND across kinds, OR within a kind."""

    @pytest.fixture
    def filters(self):
        return SearchFilters(
            category=frozenset({"security", "policy"}),
            department=frozenset({"it"}),
        )

    def test_matches_all_kinds(self, filters):
        assert filters.matches({"category": "security", "department": "it"})

    def test_or_within_a_kind(self, filters):
        assert filters.matches({"category": "policy", "department": "it"})

    def test_and_across_kinds(self, filters):
        assert not filters.matches({"category": "security", "department": "hr"})

    def test_tags_match_any(self):
        filters = SearchFilters(tags=frozenset({"mfa", "sso"}))

        assert filters.matches({"tags": ["authentication", "mfa"]})
        assert not filters.matches({"tags": ["encryption"]})

    def test_date_range_inclusive(self):
        filters = SearchFilters(date_range=DateRange(date(2024, 1, 1), date(2024, 1, 31)))

        assert filters.matches({"date": "2024-01-31"})
        assert not filters.matches({"date": "2024-02-01"})
        assert not filters.matches({})

    def test_clauses_use_keyword_fields(self, filters):
        clauses = filters.to_clauses()

        assert {"terms": {"category.keyword": ["policy", "security"]}} in clauses
        assert {"terms": {"department.keyword": ["it"]}} in clauses


# ---------------------------------------------------------------------------
# QUERY BODIES
# ---------------------------------------------------------------------------


class TestQueryBuilder:
    """Shape of the lexical, vector and hybrid bodies."""

    def test_lexical_query_fields_and_fuzziness(self):
        query = build_lexical_query("password policy")
        multi_match = query["bool"]["should"][0]["multi_match"]

        assert multi_match["fields"] == LEXICAL_FIELDS
        assert multi_match["fuzziness"] == "AUTO"
        assert multi_match["operator"] == "or"
        assert query["bool"]["should"][1]["match_phrase"]["content"]["boost"] == 2.0

    def test_empty_query_matches_all(self):
        query = build_lexical_query("   ")

        assert query["bool"]["must"] == [{"match_all": {}}]

    def test_filters_on_both_channels(self):
        filters = SearchFilters(category=frozenset({"security"}))
        body = build_hybrid_body("mfa", [0.1, 0.2], filters, 5, 5, SearchOptions())
        standard, knn = body["retriever"]["rrf"]["retrievers"]

        expected = [{"terms": {"category.keyword": ["security"]}}]
        assert standard["standard"]["query"]["bool"]["filter"] == expected
        assert knn["knn"]["filter"] == expected

    def test_knn_candidate_counts(self):
        knn = build_knn_query([0.0, 1.0], k=10, num_candidates=5)

        assert knn["k"] == 10
        assert knn["num_candidates"] == 10
        assert knn["field"] == "embedding"

    def test_candidate_count_at_least_twice_top_k(self):
        assert candidate_count(5, 5) == 10
        assert candidate_count(5, 15) == 15

    def test_hybrid_body_rrf_parameters(self):
        options = SearchOptions(rrf_rank_constant=20, rrf_window_size=10)
        body = build_hybrid_body("q", [1.0], None, 5, 15, options)
        rrf = body["retriever"]["rrf"]

        assert rrf["rank_constant"] == 20
        assert rrf["rank_window_size"] == 15
        assert body["size"] == 15
        assert body["_source"] == {"excludes": ["embedding"]}

    def test_aggregations_only_when_requested(self):
        without = build_lexical_body("q", None, 5, SearchOptions())
        with_aggs = build_lexical_body("q", None, 5, SearchOptions(include_aggregations=True))

        assert "aggs" not in without
        assert set(with_aggs["aggs"]) == {"categories", "departments", "tags", "timeline"}
