"""
Reciprocal Rank Fusion (RRF).

Combines ranked lists from different retrieval channels without
normalising their scores: each document earns ``1 / (k + rank)`` from
every list it appears in (ranks are 1-based) and the contributions are
summed. A document ranked 1st lexically and 3rd semantically with
k=60 scores ``1/61 + 1/63``.
"""

from __future__ import annotations

from typing import Sequence

DEFAULT_RANK_CONSTANT = 60
DEFAULT_WINDOW_SIZE = 100


def reciprocal_rank_fusion(
    ranked_lists: Sequence[Sequence[str]],
    rank_constant: int = DEFAULT_RANK_CONSTANT,
    window_size: int = DEFAULT_WINDOW_SIZE,
) -> list[tuple[str, float]]:
    """
    Fuse ranked lists of document ids.

    Args:
        ranked_lists: One list of ids per channel, best first.
        rank_constant: The RRF ``k``. Larger values flatten rank influence.
        window_size: Candidates considered per list before fusion.

    Returns:
        (id, score) pairs sorted by descending score. Ties keep the order
        in which ids were first seen.
    """
    if rank_constant < 1:
        raise ValueError("rank_constant must be >= 1")
    if window_size < 1:
        raise ValueError("window_size must be >= 1")

    scores: dict[str, float] = {}
    for ranked in ranked_lists:
        seen: set[str] = set()
        rank = 0
        for doc_id in ranked:
            if doc_id in seen:
                continue
            seen.add(doc_id)
            rank += 1
            if rank > window_size:
                break
            scores[doc_id] = scores.get(doc_id, 0.0) + 1.0 / (rank_constant + rank)

    return sorted(scores.items(), key=lambda item: item[1], reverse=True)


def max_fused_score(rank_constant: int, channels: int = 2) -> float:
    """Best achievable fused score: rank 1 in every channel."""
    return channels / (rank_constant + 1)
