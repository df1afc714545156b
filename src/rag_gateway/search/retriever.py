"""
Hybrid Retriever - the centre of the search path.

FLOW:
-----
1. Embed the query (skipped for empty queries or use_hybrid=False)
2. Build one body: RRF over the lexical and vector channels, or the
   lexical channel alone when no embedding is available
3. Execute it against the document store in a single round trip
4. Post-filter client-side, normalise scores into confidence
5. Optionally rerank (3 x topK candidates in, topK out)

DEGRADATION:
------------
Embedding is an enhancement. If it fails, or returns a vector of the
wrong size, the request continues lexical-only (search_type="lexical")
and a warning is logged. Store failures are not recoverable and surface
as SearchError("Search failed: ...").
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from rag_gateway.core import DocumentStore, EmbeddingProvider, SearchHit
from rag_gateway.core.errors import GatewayError, InvalidInputError, SearchError
from rag_gateway.observability import attributes as attrs
from rag_gateway.observability.tracer import GatewayTracer, get_tracer
from rag_gateway.schemas.requests import SearchOptions
from rag_gateway.search.filters import SearchFilters
from rag_gateway.search.query_builder import EMBEDDING_FIELD, build_hybrid_body, build_lexical_body
from rag_gateway.search.reranker import Reranker
from rag_gateway.search.results import (
    RankedCandidate,
    SearchResult,
    SearchType,
    normalize_score,
    score_ceiling,
)

logger = logging.getLogger(__name__)

RERANK_CANDIDATE_FACTOR = 3


@dataclass
class RetrievalResult:
    """Output of one retrieval: ranked candidates plus timings."""
    results: list[RankedCandidate]
    total_hits: int
    search_type: SearchType
    aggregations: dict[str, list[dict[str, Any]]] | None = None
    took_ms: float = 0.0
    embedding_ms: float = 0.0
    store_ms: float = 0.0
    rerank_ms: float = 0.0
    used_reranking: bool = False
    warnings: list[str] = field(default_factory=list)


def parse_aggregations(raw: dict[str, Any]) -> dict[str, list[dict[str, Any]]]:
    """Flatten store bucket aggregations into {name: [{key, count}]}."""
    parsed = {}
    for name, agg in raw.items():
        parsed[name] = [
            {
                "key": bucket.get("key_as_string", bucket.get("key")),
                "count": bucket.get("doc_count", 0),
            }
            for bucket in agg.get("buckets", [])
        ]
    return parsed


def _document_from_hit(hit: SearchHit) -> dict[str, Any]:
    document = {k: v for k, v in hit.source.items() if k != EMBEDDING_FIELD}
    document["id"] = hit.id
    return document


def validate_top_k(top_k: Any) -> int:
    if isinstance(top_k, bool) or not isinstance(top_k, int) or top_k <= 0:
        raise InvalidInputError(f"topK must be a positive integer, got {top_k!r}")
    return top_k


class HybridRetriever:
    """
    Lexical + vector retrieval fused with RRF.

    Dependencies are INJECTED; the same class runs against Elasticsearch
    with OpenAI embeddings or against the in-memory store with mocks.
    """

    def __init__(
        self,
        store: DocumentStore,
        embeddings: EmbeddingProvider,
        index: str,
        reranker: Reranker | None = None,
        tracer: GatewayTracer | None = None,
        capture_content: bool = False,
    ):
        self.store = store
        self.embeddings = embeddings
        self.index = index
        self.reranker = reranker
        self._tracer = tracer
        self.capture_content = capture_content

    @property
    def tracer(self) -> GatewayTracer:
        return self._tracer or get_tracer()

    def _embed(self, query: str) -> np.ndarray | None:
        """Query embedding, or None when the vector channel is unavailable."""
        try:
            embedding = self.embeddings.embed(query)
        except Exception as e:
            logger.warning(f"Embedding failed, falling back to lexical search: {e}")
            return None

        expected = self.embeddings.dimensions
        if len(embedding) != expected:
            logger.warning(
                f"Embedding has {len(embedding)} dimensions, expected {expected}; "
                "falling back to lexical search"
            )
            return None
        return embedding

    def search(
        self,
        query: str,
        filters: SearchFilters | None = None,
        top_k: int = 5,
        options: SearchOptions | None = None,
    ) -> RetrievalResult:
        """
        Retrieve up to top_k ranked candidates.

        Raises:
            InvalidInputError: top_k is not a positive integer
            SearchError: the document store call failed
        """
        validate_top_k(top_k)
        options = options or SearchOptions()
        filters = filters or SearchFilters()
        query = query or ""

        rerank = options.enable_reranking and self.reranker is not None
        size = RERANK_CANDIDATE_FACTOR * top_k if rerank else top_k
        start = time.perf_counter()

        span_attrs = attrs.search_attributes(
            index=self.index,
            top_k=top_k,
            filter_count=filters.count,
            query=query if self.capture_content else None,
        )
        with self.tracer.start_span("retrieval.search", attributes=span_attrs) as span:
            warnings: list[str] = []
            embedding = None
            embedding_ms = 0.0
            if options.use_hybrid and query.strip():
                embed_start = time.perf_counter()
                embedding = self._embed(query)
                embedding_ms = (time.perf_counter() - embed_start) * 1000
                if embedding is None:
                    warnings.append("Semantic search unavailable; lexical results only")
                    span.set_attribute(attrs.RETRIEVAL_DEGRADED, True)

            search_type: SearchType
            if embedding is not None:
                search_type = "hybrid"
                body = build_hybrid_body(query, embedding, filters, top_k, size, options)
            else:
                search_type = "lexical"
                body = build_lexical_body(query, filters, size, options)

            store_start = time.perf_counter()
            try:
                response = self.store.search(self.index, body)
            except GatewayError:
                raise
            except Exception as e:
                span.fail(e)
                raise SearchError(str(e)) from e
            store_ms = (time.perf_counter() - store_start) * 1000

            ceiling = score_ceiling(search_type, options.rrf_rank_constant)
            candidates: list[RankedCandidate] = []
            dropped = 0
            for hit in response.hits:
                if not filters.matches(hit.source):
                    dropped += 1
                    continue
                candidates.append(RankedCandidate.unranked(SearchResult(
                    id=hit.id,
                    score=hit.score,
                    document=_document_from_hit(hit),
                    confidence_score=normalize_score(hit.score, ceiling),
                    highlights=hit.highlight,
                    rank=hit.rank,
                )))
            if dropped:
                logger.debug(f"Post-filter dropped {dropped} hits the store returned")
            total_hits = max(response.total - dropped, len(candidates))

            used_reranking = False
            rerank_ms = 0.0
            if rerank and candidates:
                rerank_start = time.perf_counter()
                outcome = self.reranker.rerank(query, candidates, top_k)
                rerank_ms = (time.perf_counter() - rerank_start) * 1000
                candidates = outcome.candidates
                used_reranking = outcome.used_reranking
                if not used_reranking:
                    warnings.append("Reranking unavailable; retrieval order kept")
            else:
                candidates = candidates[:top_k]

            aggregations = None
            if options.include_aggregations:
                aggregations = parse_aggregations(response.aggregations)

            span.set_attributes({
                attrs.RETRIEVAL_SEARCH_TYPE: search_type,
                attrs.RETRIEVAL_TOTAL_HITS: total_hits,
                attrs.RETRIEVAL_RESULT_COUNT: len(candidates),
                attrs.RETRIEVAL_USED_RERANKING: used_reranking,
                attrs.RETRIEVAL_EMBEDDING_MS: embedding_ms,
                attrs.RETRIEVAL_STORE_MS: store_ms,
                attrs.RETRIEVAL_RERANK_MS: rerank_ms,
            })

        return RetrievalResult(
            results=candidates,
            total_hits=total_hits,
            search_type=search_type,
            aggregations=aggregations,
            took_ms=(time.perf_counter() - start) * 1000,
            embedding_ms=embedding_ms,
            store_ms=store_ms,
            rerank_ms=rerank_ms,
            used_reranking=used_reranking,
            warnings=warnings,
        )
