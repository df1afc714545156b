"""
Search module - hybrid lexical + vector retrieval.

This module provides:
- SearchFilters / DateRange: faceted filters shared by both channels
- reciprocal_rank_fusion(): pure RRF over ranked id lists
- query_builder: store query bodies for each channel
- Reranker: model-scored second pass with soft fallback
- HybridRetriever: the orchestrator
"""

from rag_gateway.search.filters import DateRange, SearchFilters, parse_iso_date
from rag_gateway.search.fusion import max_fused_score, reciprocal_rank_fusion
from rag_gateway.search.results import (
    LEXICAL_SCORE_CEILING,
    RankedCandidate,
    SearchResult,
    SearchType,
    normalize_score,
    score_ceiling,
)
from rag_gateway.search.reranker import (
    RERANK_WEIGHT,
    RETRIEVAL_WEIGHT,
    Reranker,
    RerankOutcome,
)
from rag_gateway.search.retriever import (
    HybridRetriever,
    RetrievalResult,
    parse_aggregations,
    validate_top_k,
)

__all__ = [
    "DateRange",
    "SearchFilters",
    "parse_iso_date",
    "reciprocal_rank_fusion",
    "max_fused_score",
    "LEXICAL_SCORE_CEILING",
    "RankedCandidate",
    "SearchResult",
    "SearchType",
    "normalize_score",
    "score_ceiling",
    "RETRIEVAL_WEIGHT",
    "RERANK_WEIGHT",
    "Reranker",
    "RerankOutcome",
    "HybridRetriever",
    "RetrievalResult",
    "parse_aggregations",
    "validate_top_k",
]
