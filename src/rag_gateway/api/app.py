"""
HTTP surface - FastAPI app over a Gateway.

The app holds no logic of its own: each endpoint parses the request
model, calls the matching Gateway method and serializes the result with
camelCase keys.

ERRORS:
-------
- InvalidInputError or a request that fails validation -> 400 {error}
- UpstreamError / SearchError -> 502 {error}
- GET /health -> 503 when the document store does not answer

Launch:
    rag-gateway serve --port 8080
"""

from __future__ import annotations

import logging
from dataclasses import asdict, is_dataclass
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic.alias_generators import to_camel

from rag_gateway.core.errors import InvalidInputError, UpstreamError
from rag_gateway.gateway import Gateway, build_gateway
from rag_gateway.schemas.requests import (
    AnalyzeRequest,
    CiteRequest,
    CompareRequest,
    SearchRequest,
    SummarizeRequest,
)
from rag_gateway.search import RankedCandidate, RetrievalResult

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# SERIALIZATION
# ---------------------------------------------------------------------------


def camelize(value: Any) -> Any:
    """Recursively convert dataclasses and dict keys to camelCase JSON."""
    if is_dataclass(value) and not isinstance(value, type):
        value = asdict(value)
    if isinstance(value, dict):
        return {
            to_camel(k) if isinstance(k, str) else k: camelize(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [camelize(v) for v in value]
    return value


def serialize_candidate(candidate: RankedCandidate) -> dict[str, Any]:
    result = candidate.result
    return {
        "id": result.id,
        "score": result.score,
        "confidenceScore": result.confidence_score,
        "document": camelize(result.document),
        "highlights": result.highlights,
        "rank": result.rank,
        "retrievalScore": candidate.retrieval_score,
        "rerankScore": candidate.rerank_score,
        "combinedScore": candidate.combined_score,
    }


def serialize_search(result: RetrievalResult) -> dict[str, Any]:
    return {
        "results": [serialize_candidate(c) for c in result.results],
        "totalHits": result.total_hits,
        "searchType": result.search_type,
        "usedReranking": result.used_reranking,
        "aggregations": result.aggregations,
        "searchMetrics": {
            "tookMs": result.took_ms,
            "embeddingMs": result.embedding_ms,
            "storeMs": result.store_ms,
            "rerankMs": result.rerank_ms,
            "warnings": result.warnings,
        },
    }


# ---------------------------------------------------------------------------
# APP FACTORY
# ---------------------------------------------------------------------------


def create_app(gateway: Gateway | None = None) -> FastAPI:
    """Build the app around a gateway (built from env when not given)."""
    gateway = gateway or build_gateway()

    app = FastAPI(
        title="RAG Gateway",
        description="Hybrid retrieval and citation-grounded generation tools",
        version="0.1.0",
    )
    app.state.gateway = gateway

    @app.exception_handler(InvalidInputError)
    async def invalid_input(request: Request, exc: InvalidInputError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = errors[0]["msg"] if errors else "Invalid request"
        location = ".".join(str(part) for part in errors[0]["loc"][1:]) if errors else ""
        if location:
            message = f"{location}: {message}"
        return JSONResponse(status_code=400, content={"error": message})

    @app.exception_handler(UpstreamError)
    async def upstream_failure(request: Request, exc: UpstreamError) -> JSONResponse:
        logger.error(f"{request.url.path} failed: {exc}")
        return JSONResponse(status_code=502, content={"error": str(exc)})

    # -- tools -------------------------------------------------------------

    @app.post("/tool/search")
    def search(body: SearchRequest) -> dict[str, Any]:
        return serialize_search(gateway.search(body))

    @app.post("/tool/summarize")
    def summarize(body: SummarizeRequest) -> dict[str, Any]:
        return camelize(gateway.summarize(body))

    @app.post("/tool/cite")
    def cite(body: CiteRequest) -> dict[str, Any]:
        return camelize(gateway.cite(body))

    @app.post("/tool/compare")
    def compare(body: CompareRequest) -> dict[str, Any]:
        return camelize(gateway.compare(body))

    @app.post("/tool/analyze")
    def analyze(body: AnalyzeRequest) -> dict[str, Any]:
        return camelize(gateway.analyze(body))

    # -- operations --------------------------------------------------------

    @app.get("/health")
    def health() -> JSONResponse:
        status = gateway.health()
        code = 200 if status["document_store"] else 503
        return JSONResponse(status_code=code, content=camelize(status))

    @app.get("/metrics")
    def metrics() -> dict[str, Any]:
        return camelize(gateway.metrics_view())

    return app
