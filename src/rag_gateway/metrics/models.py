"""
Metrics data models - plain dataclasses, no behaviour.

Per-event records (what the gateway reports) and the aggregate summary
(what the dashboard reads).
"""

from dataclasses import dataclass, field


# ---------------------------------------------------------------------------
# PER-EVENT RECORDS
# ---------------------------------------------------------------------------


@dataclass
class SearchMetrics:
    """One retrieval, with the time spent in each stage."""

    total_ms: float
    store_ms: float
    embedding_ms: float
    rerank_ms: float
    result_count: int
    max_score: float
    avg_score: float
    used_hybrid: bool
    used_reranking: bool
    filter_count: int


@dataclass
class SummarizationMetrics:
    """One grounded generation."""

    input_tokens: int
    output_tokens: int
    generation_ms: float
    model: str
    temperature: float


@dataclass
class ToolMetrics:
    """One tool invocation (search, summarize, cite, compare, analyze)."""

    tool: str
    latency_ms: float
    success: bool
    error: str | None = None


# ---------------------------------------------------------------------------
# AGGREGATE SUMMARY
# ---------------------------------------------------------------------------


@dataclass
class SearchSummary:
    total_searches: int = 0
    avg_latency_ms: float = 0.0
    p95_latency_ms: float = 0.0
    p99_latency_ms: float = 0.0
    avg_relevance: float = 0.0
    hybrid_rate: float = 0.0
    reranking_rate: float = 0.0


@dataclass
class GenerationSummary:
    total_summarizations: int = 0
    avg_generation_ms: float = 0.0
    total_tokens: int = 0
    avg_tokens_per_request: float = 0.0


@dataclass
class ToolSummary:
    total_executions: int = 0
    success_rate: float = 0.0
    avg_latency_ms: float = 0.0
    executions_by_tool: dict[str, int] = field(default_factory=dict)


@dataclass
class SystemSummary:
    uptime_s: float = 0.0
    request_count: int = 0
    error_rate: float = 0.0
    avg_response_ms: float = 0.0


@dataclass
class MetricsSummary:
    search: SearchSummary
    generation: GenerationSummary
    tools: ToolSummary
    system: SystemSummary
