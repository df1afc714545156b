"""
Reranker - second-pass scoring of fused candidates.

The generation model scores each candidate against the query; the
combined score blends that with the normalised retrieval score:

    combined = 0.4 * retrieval + 0.6 * rerank

FAILURE POLICY:
---------------
Reranking is an enhancement. If the model call raises, or returns a
short, long or non-numeric score list, a warning is logged and the
first topK candidates are returned in retrieval order. ``rerank`` never
raises for model failures.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from rag_gateway.core import GenerationModel
from rag_gateway.search.results import RankedCandidate

logger = logging.getLogger(__name__)

RETRIEVAL_WEIGHT = 0.4
RERANK_WEIGHT = 0.6
RERANK_TEXT_LIMIT = 2000


@dataclass
class RerankOutcome:
    candidates: list[RankedCandidate]
    used_reranking: bool


def _clamp(value: float) -> float:
    return min(max(value, 0.0), 1.0)


def candidate_text(candidate: RankedCandidate) -> str:
    document = candidate.result.document
    text = f"{document.get('title', '')}\n{document.get('content', '')}"
    return text[:RERANK_TEXT_LIMIT]


class Reranker:
    """Blends model relevance scores with retrieval scores."""

    def __init__(
        self,
        model: GenerationModel,
        retrieval_weight: float = RETRIEVAL_WEIGHT,
        rerank_weight: float = RERANK_WEIGHT,
    ):
        self.model = model
        self.retrieval_weight = retrieval_weight
        self.rerank_weight = rerank_weight

    def _fallback(self, candidates: list[RankedCandidate], top_k: int) -> RerankOutcome:
        return RerankOutcome(candidates=list(candidates[:top_k]), used_reranking=False)

    def rerank(
        self,
        query: str,
        candidates: list[RankedCandidate],
        top_k: int,
    ) -> RerankOutcome:
        """Return at most top_k candidates ordered by combined score."""
        if not candidates:
            return RerankOutcome(candidates=[], used_reranking=False)

        payload = [{"id": c.id, "text": candidate_text(c)} for c in candidates]
        try:
            scores = self.model.rerank_documents(query, payload)
        except Exception as e:
            logger.warning(f"Reranking failed, keeping retrieval order: {e}")
            return self._fallback(candidates, top_k)

        if not isinstance(scores, (list, tuple)):
            logger.warning(f"Reranker returned {type(scores).__name__}, keeping retrieval order")
            return self._fallback(candidates, top_k)
        if len(scores) != len(candidates):
            logger.warning(
                f"Reranker returned {len(scores)} scores for {len(candidates)} "
                "candidates, keeping retrieval order"
            )
            return self._fallback(candidates, top_k)

        try:
            values = [float(score) for score in scores]
        except (TypeError, ValueError) as e:
            logger.warning(f"Reranker returned non-numeric scores: {e}")
            return self._fallback(candidates, top_k)
        if not all(math.isfinite(value) for value in values):
            logger.warning("Reranker returned non-finite scores, keeping retrieval order")
            return self._fallback(candidates, top_k)

        ranked = []
        for candidate, value in zip(candidates, values):
            rerank_score = _clamp(value)
            ranked.append(RankedCandidate(
                result=candidate.result,
                retrieval_score=candidate.retrieval_score,
                rerank_score=rerank_score,
                combined_score=(
                    self.retrieval_weight * candidate.retrieval_score
                    + self.rerank_weight * rerank_score
                ),
            ))

        # Stable: equal combined scores keep retrieval order
        ranked.sort(key=lambda c: c.combined_score, reverse=True)
        return RerankOutcome(candidates=ranked[:top_k], used_reranking=True)
