"""
Per-request result types of the search path.

SearchResult carries the store-native score (unbounded, engine-specific)
and the normalised ``confidence_score`` surfaced to callers.
RankedCandidate wraps a result with its rerank annotations.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from rag_gateway.search.fusion import max_fused_score

SearchType = Literal["hybrid", "lexical"]

# Empirical upper bound for the lexical channel's BM25 scores
LEXICAL_SCORE_CEILING = 20.0


def score_ceiling(search_type: SearchType, rank_constant: int) -> float:
    """Score that maps to full confidence for a given search type."""
    if search_type == "hybrid":
        return max_fused_score(rank_constant)
    return LEXICAL_SCORE_CEILING


def normalize_score(score: float, ceiling: float) -> float:
    """Divide by the ceiling and clamp to [0, 1]."""
    if ceiling <= 0:
        return 0.0
    return min(max(score / ceiling, 0.0), 1.0)


@dataclass
class SearchResult:
    id: str
    score: float
    document: dict
    confidence_score: float
    highlights: dict[str, list[str]] | None = None
    rank: int | None = None


@dataclass
class RankedCandidate:
    """A search result annotated by the reranker.

    Without reranking, ``rerank_score`` is None and ``combined_score``
    equals the retrieval score.
    """
    result: SearchResult
    retrieval_score: float
    rerank_score: float | None = None
    combined_score: float = 0.0

    @classmethod
    def unranked(cls, result: SearchResult) -> "RankedCandidate":
        return cls(
            result=result,
            retrieval_score=result.confidence_score,
            rerank_score=None,
            combined_score=result.confidence_score,
        )

    @property
    def id(self) -> str:
        return self.result.id
