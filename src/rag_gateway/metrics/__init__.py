"""Metrics module - sink protocol, in-memory collector and dashboard views."""

from rag_gateway.metrics.collector import (
    InMemoryMetricsCollector,
    MetricsSink,
    NoOpMetricsSink,
    percentile,
)
from rag_gateway.metrics.dashboard import (
    HealthStatus,
    dashboard_view,
    format_uptime,
    health_status,
)
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

__all__ = [
    "MetricsSink",
    "InMemoryMetricsCollector",
    "NoOpMetricsSink",
    "percentile",
    "HealthStatus",
    "dashboard_view",
    "format_uptime",
    "health_status",
    "SearchMetrics",
    "SummarizationMetrics",
    "ToolMetrics",
    "MetricsSummary",
    "SearchSummary",
    "GenerationSummary",
    "ToolSummary",
    "SystemSummary",
]
