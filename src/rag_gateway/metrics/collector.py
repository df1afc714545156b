"""
Metrics collection - an explicitly passed sink, not a module singleton.

The gateway owns one MetricsSink and reports every search, generation
and tool call to it. FastAPI runs sync handlers on a thread pool, so
the in-memory collector serialises access with a lock.

LIFECYCLE:
----------
- record_* appends samples
- summary() computes aggregates on read
- reset() drops all samples and restarts the uptime clock
"""

from __future__ import annotations

import math
import statistics
import threading
import time
from collections import Counter
from typing import Protocol, runtime_checkable

from rag_gateway.metrics.models import (
    GenerationSummary,
    MetricsSummary,
    SearchMetrics,
    SearchSummary,
    SummarizationMetrics,
    SystemSummary,
    ToolMetrics,
    ToolSummary,
)


@runtime_checkable
class MetricsSink(Protocol):
    """Contract for metrics reporting."""

    def record_search(self, metrics: SearchMetrics) -> None:
        ...

    def record_summarization(self, metrics: SummarizationMetrics) -> None:
        ...

    def record_tool_execution(self, metrics: ToolMetrics) -> None:
        ...

    def summary(self) -> MetricsSummary:
        ...

    def reset(self) -> None:
        ...


def percentile(sorted_values: list[float], p: float) -> float:
    """Nearest-rank percentile of an ascending list (0.0 when empty)."""
    if not sorted_values:
        return 0.0
    index = math.ceil(len(sorted_values) * p) - 1
    return sorted_values[max(0, min(index, len(sorted_values) - 1))]


def _mean(values: list[float]) -> float:
    return statistics.fmean(values) if values else 0.0


class InMemoryMetricsCollector:
    """Thread-safe in-process collector."""

    def __init__(self):
        self._lock = threading.Lock()
        self._searches: list[SearchMetrics] = []
        self._summarizations: list[SummarizationMetrics] = []
        self._tools: list[ToolMetrics] = []
        self._started = time.monotonic()

    def record_search(self, metrics: SearchMetrics) -> None:
        with self._lock:
            self._searches.append(metrics)

    def record_summarization(self, metrics: SummarizationMetrics) -> None:
        with self._lock:
            self._summarizations.append(metrics)

    def record_tool_execution(self, metrics: ToolMetrics) -> None:
        with self._lock:
            self._tools.append(metrics)

    def reset(self) -> None:
        with self._lock:
            self._searches = []
            self._summarizations = []
            self._tools = []
            self._started = time.monotonic()

    def summary(self) -> MetricsSummary:
        with self._lock:
            searches = list(self._searches)
            summarizations = list(self._summarizations)
            tools = list(self._tools)
            uptime = time.monotonic() - self._started

        return MetricsSummary(
            search=self._search_summary(searches),
            generation=self._generation_summary(summarizations),
            tools=self._tool_summary(tools),
            system=SystemSummary(
                uptime_s=uptime,
                request_count=len(tools),
                error_rate=(sum(1 for t in tools if not t.success) / len(tools)) if tools else 0.0,
                avg_response_ms=_mean([t.latency_ms for t in tools]),
            ),
        )

    @staticmethod
    def _search_summary(searches: list[SearchMetrics]) -> SearchSummary:
        if not searches:
            return SearchSummary()
        latencies = sorted(s.total_ms for s in searches)
        return SearchSummary(
            total_searches=len(searches),
            avg_latency_ms=_mean(latencies),
            p95_latency_ms=percentile(latencies, 0.95),
            p99_latency_ms=percentile(latencies, 0.99),
            avg_relevance=_mean([s.avg_score for s in searches]),
            hybrid_rate=sum(1 for s in searches if s.used_hybrid) / len(searches),
            reranking_rate=sum(1 for s in searches if s.used_reranking) / len(searches),
        )

    @staticmethod
    def _generation_summary(summarizations: list[SummarizationMetrics]) -> GenerationSummary:
        if not summarizations:
            return GenerationSummary()
        total_tokens = sum(m.input_tokens + m.output_tokens for m in summarizations)
        return GenerationSummary(
            total_summarizations=len(summarizations),
            avg_generation_ms=_mean([m.generation_ms for m in summarizations]),
            total_tokens=total_tokens,
            avg_tokens_per_request=total_tokens / len(summarizations),
        )

    @staticmethod
    def _tool_summary(tools: list[ToolMetrics]) -> ToolSummary:
        if not tools:
            return ToolSummary()
        return ToolSummary(
            total_executions=len(tools),
            success_rate=sum(1 for t in tools if t.success) / len(tools),
            avg_latency_ms=_mean([t.latency_ms for t in tools]),
            executions_by_tool=dict(Counter(t.tool for t in tools)),
        )


class NoOpMetricsSink:
    """Discards everything; summary() is always empty."""

    def record_search(self, metrics: SearchMetrics) -> None:
        pass

    def record_summarization(self, metrics: SummarizationMetrics) -> None:
        pass

    def record_tool_execution(self, metrics: ToolMetrics) -> None:
        pass

    def summary(self) -> MetricsSummary:
        return MetricsSummary(
            search=SearchSummary(),
            generation=GenerationSummary(),
            tools=ToolSummary(),
            system=SystemSummary(),
        )

    def reset(self) -> None:
        pass
