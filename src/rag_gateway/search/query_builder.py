"""
Query construction for the two retrieval channels.

Every function here is PURE - same inputs, same query body - so the
bodies can be asserted on directly in tests without a store.

Lexical channel: multi_match over title^3, summary^2, content, tags^1.5
with fuzzy matching and OR semantics, plus a match_phrase boost on
content. An empty query degrades to match_all.

Vector channel: knn over ``embedding`` (cosine), asking for at least
2 x topK neighbours out of a candidate pool.

Hybrid: both channels under an RRF retriever, with the same filters.
"""

from __future__ import annotations

from typing import Any, Sequence

from rag_gateway.schemas.requests import SearchOptions
from rag_gateway.search.filters import SearchFilters

LEXICAL_FIELDS = ["title^3", "summary^2", "content", "tags^1.5"]
PHRASE_BOOST = 2.0
EMBEDDING_FIELD = "embedding"


def build_lexical_query(query: str, filters: SearchFilters | None = None) -> dict[str, Any]:
    """Bool query for the lexical channel."""
    clauses = filters.to_clauses() if filters else []

    if not query or not query.strip():
        # An empty multi_match is invalid; match everything instead
        return {"bool": {"must": [{"match_all": {}}], "filter": clauses}}

    return {
        "bool": {
            "should": [
                {
                    "multi_match": {
                        "query": query,
                        "fields": list(LEXICAL_FIELDS),
                        "type": "best_fields",
                        "fuzziness": "AUTO",
                        "operator": "or",
                    }
                },
                {
                    "match_phrase": {
                        "content": {"query": query, "boost": PHRASE_BOOST}
                    }
                },
            ],
            "minimum_should_match": 1,
            "filter": clauses,
        }
    }


def build_knn_query(
    embedding: Sequence[float],
    k: int,
    num_candidates: int,
    filters: SearchFilters | None = None,
) -> dict[str, Any]:
    """knn clause for the vector channel."""
    knn: dict[str, Any] = {
        "field": EMBEDDING_FIELD,
        "query_vector": [float(x) for x in embedding],
        "k": k,
        "num_candidates": max(num_candidates, k),
    }
    clauses = filters.to_clauses() if filters else []
    if clauses:
        knn["filter"] = clauses
    return knn


def build_aggregations() -> dict[str, Any]:
    """Facet counts plus a monthly histogram."""
    return {
        "categories": {"terms": {"field": "category.keyword", "size": 10}},
        "departments": {"terms": {"field": "department.keyword", "size": 10}},
        "tags": {"terms": {"field": "tags.keyword", "size": 20}},
        "timeline": {
            "date_histogram": {"field": "date", "calendar_interval": "month"}
        },
    }


def build_highlight() -> dict[str, Any]:
    return {
        "pre_tags": ["<em>"],
        "post_tags": ["</em>"],
        "fields": {
            "content": {"fragment_size": 150, "number_of_fragments": 2},
            "title": {"number_of_fragments": 0},
        },
    }


def candidate_count(top_k: int, size: int) -> int:
    """Neighbours requested from the vector channel."""
    return max(2 * top_k, size)


def _decorate(body: dict[str, Any], options: SearchOptions) -> dict[str, Any]:
    body["_source"] = {"excludes": [EMBEDDING_FIELD]}
    if options.include_aggregations:
        body["aggs"] = build_aggregations()
    if options.highlight:
        body["highlight"] = build_highlight()
    return body


def build_hybrid_body(
    query: str,
    embedding: Sequence[float],
    filters: SearchFilters | None,
    top_k: int,
    size: int,
    options: SearchOptions,
) -> dict[str, Any]:
    """Fused lexical + vector retrieval body."""
    k = candidate_count(top_k, size)
    body = {
        "retriever": {
            "rrf": {
                "retrievers": [
                    {"standard": {"query": build_lexical_query(query, filters)}},
                    {"knn": build_knn_query(embedding, k, options.num_candidates, filters)},
                ],
                "rank_constant": options.rrf_rank_constant,
                "rank_window_size": max(options.rrf_window_size, size),
            }
        },
        "size": size,
    }
    return _decorate(body, options)


def build_lexical_body(
    query: str,
    filters: SearchFilters | None,
    size: int,
    options: SearchOptions,
) -> dict[str, Any]:
    """Lexical-only body, used when no embedding is available."""
    body = {
        "query": build_lexical_query(query, filters),
        "size": size,
        "track_total_hits": True,
    }
    return _decorate(body, options)
