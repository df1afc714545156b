"""
Gateway - composition root and tool facade.

build_gateway() picks every collaborator ONCE, at process start:
Elasticsearch + OpenAI in live mode, the in-memory store + mock models
otherwise (seeded with the enterprise corpus). The Gateway then exposes
one method per tool; the HTTP app and the CLI only translate to and
from it.

Each tool call is timed, traced and reported to the metrics sink,
whether it succeeds or raises.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Iterator

from rag_gateway.config import GatewayConfig
from rag_gateway.core import DocumentStore, EmbeddingProvider, GenerationModel
from rag_gateway.core.errors import GatewayError
from rag_gateway.embeddings import get_embedding_provider
from rag_gateway.generation import get_generation_model
from rag_gateway.grounding import (
    CiteResult,
    GroundedSummarizer,
    SummaryResult,
    cite,
    verify_citations,
)
from rag_gateway.metrics import (
    InMemoryMetricsCollector,
    MetricsSink,
    SearchMetrics,
    SummarizationMetrics,
    ToolMetrics,
    dashboard_view,
)
from rag_gateway.observability import attributes as attrs
from rag_gateway.observability.tracer import GatewayTracer, get_tracer
from rag_gateway.retrieval import InMemoryDocumentStore, get_document_store
from rag_gateway.retrieval.seeds import seed_document_store
from rag_gateway.schemas.requests import (
    AnalyzeRequest,
    CiteRequest,
    CompareRequest,
    SearchOptions,
    SearchRequest,
    SummarizeRequest,
)
from rag_gateway.search import HybridRetriever, Reranker, RetrievalResult, SearchFilters
from rag_gateway.tools import AnalyzeTool, CompareTool

logger = logging.getLogger(__name__)


class Gateway:
    """One method per tool, plus health and metrics."""

    def __init__(
        self,
        config: GatewayConfig,
        store: DocumentStore,
        retriever: HybridRetriever,
        summarizer: GroundedSummarizer,
        compare_tool: CompareTool,
        analyze_tool: AnalyzeTool,
        metrics: MetricsSink,
        tracer: GatewayTracer | None = None,
    ):
        self.config = config
        self.store = store
        self.retriever = retriever
        self.summarizer = summarizer
        self.compare_tool = compare_tool
        self.analyze_tool = analyze_tool
        self.metrics = metrics
        self._tracer = tracer

    @property
    def tracer(self) -> GatewayTracer:
        return self._tracer or get_tracer()

    @property
    def mode(self) -> str:
        return self.config.mode

    @contextmanager
    def _tool(self, name: str) -> Iterator[None]:
        """Time, trace and record one tool execution."""
        start = time.perf_counter()
        with self.tracer.start_span(f"tool.{name}", attributes={attrs.TOOL_NAME: name}) as span:
            try:
                yield
            except Exception as e:
                latency_ms = (time.perf_counter() - start) * 1000
                self.metrics.record_tool_execution(
                    ToolMetrics(tool=name, latency_ms=latency_ms, success=False, error=str(e))
                )
                span.set_attributes(attrs.tool_attributes(name, False, latency_ms, str(e)))
                span.fail(e)
                raise
            latency_ms = (time.perf_counter() - start) * 1000
            self.metrics.record_tool_execution(
                ToolMetrics(tool=name, latency_ms=latency_ms, success=True)
            )
            span.set_attributes(attrs.tool_attributes(name, True, latency_ms))

    def _with_defaults(self, options: SearchOptions) -> SearchOptions:
        """Apply configured RRF defaults to options the caller left unset."""
        update = {}
        if "rrf_rank_constant" not in options.model_fields_set:
            update["rrf_rank_constant"] = self.config.rrf_rank_constant
        if "rrf_window_size" not in options.model_fields_set:
            update["rrf_window_size"] = self.config.rrf_window_size
        return options.model_copy(update=update) if update else options

    # -- tools -------------------------------------------------------------

    def search(self, request: SearchRequest) -> RetrievalResult:
        with self._tool("search"):
            filters = SearchFilters.from_payload(request.filters)
            result = self.retriever.search(
                request.query,
                filters=filters,
                top_k=request.top_k,
                options=self._with_defaults(request.options),
            )

        scores = [c.result.confidence_score for c in result.results]
        self.metrics.record_search(SearchMetrics(
            total_ms=result.took_ms,
            store_ms=result.store_ms,
            embedding_ms=result.embedding_ms,
            rerank_ms=result.rerank_ms,
            result_count=len(result.results),
            max_score=max(scores, default=0.0),
            avg_score=sum(scores) / len(scores) if scores else 0.0,
            used_hybrid=result.search_type == "hybrid",
            used_reranking=result.used_reranking,
            filter_count=filters.count,
        ))
        return result

    def summarize(self, request: SummarizeRequest) -> SummaryResult:
        with self._tool("summarize"):
            result = self.summarizer.summarize(request.query, request.documents, request.options)

        self.metrics.record_summarization(SummarizationMetrics(
            input_tokens=result.metadata["input_tokens"],
            output_tokens=result.metadata["output_tokens"],
            generation_ms=result.metadata["generation_ms"],
            model=result.metadata["model"],
            temperature=result.metadata["temperature"],
        ))
        return result

    def cite(self, request: CiteRequest) -> CiteResult:
        """Citations for generated text; falls back to the uncited text."""
        with self._tool("cite"):
            try:
                result = cite(request.search_results, request.generated_text, request.style)
            except GatewayError:
                raise
            except Exception as e:
                logger.warning(f"Citation failed, returning uncited text: {e}")
                verification = verify_citations(request.generated_text)
                verification.warnings.append(f"Citation unavailable: {e}")
                result = CiteResult(
                    citations=[],
                    formatted="",
                    cited_text=request.generated_text,
                    verification=verification,
                )
            logger.debug(f"Cited {len(result.citations)} sources, verified={result.verification.is_verified}")
        return result

    def compare(self, request: CompareRequest) -> dict[str, Any]:
        with self._tool("compare"):
            return self.compare_tool.compare(request.documents, request.options)

    def analyze(self, request: AnalyzeRequest) -> dict[str, Any]:
        with self._tool("analyze"):
            return self.analyze_tool.analyze(request.documents, request.options)

    # -- operations --------------------------------------------------------

    def health(self) -> dict[str, Any]:
        store_ok = self.store.ping()
        return {
            "status": "ok" if store_ok else "unavailable",
            "document_store": store_ok,
            "mode": self.mode,
        }

    def metrics_view(self) -> dict[str, Any]:
        return dashboard_view(self.metrics.summary())


def build_gateway(
    config: GatewayConfig | None = None,
    metrics: MetricsSink | None = None,
    store: DocumentStore | None = None,
    embeddings: EmbeddingProvider | None = None,
    model: GenerationModel | None = None,
    seed: bool | None = None,
    tracer: GatewayTracer | None = None,
) -> Gateway:
    """
    Wire the gateway from config. Explicit collaborators override the
    ones config would pick (tests pass mocks this way).

    Args:
        seed: Seed the store with the enterprise corpus. Defaults to
            True for an in-memory store, False otherwise.
    """
    config = config or GatewayConfig.from_env()
    use_mock = config.use_mock

    if store is None:
        store = get_document_store(use_memory=use_mock, config=config.store)
    if embeddings is None:
        embeddings = get_embedding_provider(
            use_mock=use_mock,
            model=config.model.embedding_model,
            dimensions=config.model.dimensions,
            api_key=config.model.api_key or None,
            timeout=config.model.timeout,
            max_retries=config.model.max_retries,
        )
    if model is None:
        model = get_generation_model(
            use_mock=use_mock,
            model=config.model.generation_model,
            api_key=config.model.api_key or None,
            timeout=config.model.timeout,
            max_retries=config.model.max_retries,
        )

    if seed is None:
        seed = isinstance(store, InMemoryDocumentStore)
    if seed:
        seed_document_store(store, embeddings, config.store.index)

    capture = config.tracing.capture_content
    retriever = HybridRetriever(
        store=store,
        embeddings=embeddings,
        index=config.store.index,
        reranker=Reranker(model),
        tracer=tracer,
        capture_content=capture,
    )
    logger.info(f"Gateway ready in {config.mode} mode (index: {config.store.index})")

    return Gateway(
        config=config,
        store=store,
        retriever=retriever,
        summarizer=GroundedSummarizer(model, tracer=tracer, capture_content=capture),
        compare_tool=CompareTool(
            model,
            timeout=config.tools.fanout_timeout_s,
            max_workers=config.tools.max_workers,
        ),
        analyze_tool=AnalyzeTool(
            model,
            timeout=config.tools.fanout_timeout_s,
            max_workers=config.tools.max_workers,
        ),
        metrics=metrics or InMemoryMetricsCollector(),
        tracer=tracer,
    )
