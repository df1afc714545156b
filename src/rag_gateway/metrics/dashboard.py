"""
Dashboard views over a MetricsSummary.

health_status() turns aggregates into healthy / degraded / unhealthy
plus human-readable alerts; dashboard_view() is the formatted payload
served at GET /metrics.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal

from rag_gateway.metrics.models import MetricsSummary

HealthLevel = Literal["healthy", "degraded", "unhealthy"]

# Thresholds
DEGRADED_ERROR_RATE = 0.10
UNHEALTHY_ERROR_RATE = 0.25
DEGRADED_P95_MS = 300.0
UNHEALTHY_P95_MS = 1000.0
SLOW_GENERATION_MS = 2000.0
MIN_TOOL_SUCCESS_RATE = 0.95


@dataclass
class HealthStatus:
    status: HealthLevel
    alerts: list[str] = field(default_factory=list)


def health_status(summary: MetricsSummary) -> HealthStatus:
    """Classify overall health from error rate, latency and success rate."""
    alerts: list[str] = []
    status: HealthLevel = "healthy"

    def degrade() -> None:
        nonlocal status
        if status == "healthy":
            status = "degraded"

    error_rate = summary.system.error_rate
    if error_rate > DEGRADED_ERROR_RATE:
        alerts.append(f"High error rate: {error_rate * 100:.2f}%")
        degrade()
    if error_rate > UNHEALTHY_ERROR_RATE:
        status = "unhealthy"

    p95 = summary.search.p95_latency_ms
    if p95 > DEGRADED_P95_MS:
        alerts.append(f"High search latency (p95): {p95:.0f}ms")
        degrade()
    if p95 > UNHEALTHY_P95_MS:
        status = "unhealthy"

    if summary.generation.avg_generation_ms > SLOW_GENERATION_MS:
        alerts.append(f"Slow generation: {summary.generation.avg_generation_ms:.0f}ms")
        degrade()

    # Only meaningful once something has run
    if summary.tools.total_executions and summary.tools.success_rate < MIN_TOOL_SUCCESS_RATE:
        alerts.append(f"Low tool success rate: {summary.tools.success_rate * 100:.2f}%")
        degrade()

    return HealthStatus(status=status, alerts=alerts)


def format_uptime(seconds: float) -> str:
    seconds = int(seconds)
    minutes, hours, days = seconds // 60, seconds // 3600, seconds // 86400
    if days:
        return f"{days}d {hours % 24}h"
    if hours:
        return f"{hours}h {minutes % 60}m"
    if minutes:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


def dashboard_view(summary: MetricsSummary) -> dict[str, Any]:
    """Raw aggregates plus a formatted overview and the health verdict."""
    health = health_status(summary)
    top_tools = sorted(
        summary.tools.executions_by_tool.items(), key=lambda item: item[1], reverse=True
    )[:5]
    return {
        "overview": {
            "status": health.status,
            "uptime": format_uptime(summary.system.uptime_s),
            "total_requests": summary.system.request_count,
            "error_rate": f"{summary.system.error_rate * 100:.2f}%",
        },
        "search": {
            "total_searches": summary.search.total_searches,
            "avg_latency": f"{summary.search.avg_latency_ms:.0f}ms",
            "p95_latency": f"{summary.search.p95_latency_ms:.0f}ms",
            "p99_latency": f"{summary.search.p99_latency_ms:.0f}ms",
            "hybrid_rate": f"{summary.search.hybrid_rate * 100:.1f}%",
            "reranking_rate": f"{summary.search.reranking_rate * 100:.1f}%",
            "avg_relevance": f"{summary.search.avg_relevance:.2f}",
        },
        "generation": {
            "total_summarizations": summary.generation.total_summarizations,
            "avg_generation_time": f"{summary.generation.avg_generation_ms:.0f}ms",
            "total_tokens": summary.generation.total_tokens,
        },
        "tools": {
            "total_executions": summary.tools.total_executions,
            "success_rate": f"{summary.tools.success_rate * 100:.2f}%",
            "top_tools": [{"name": name, "executions": count} for name, count in top_tools],
        },
        "metrics": asdict(summary),
        "health": asdict(health),
    }
