"""
Observability Module - OpenTelemetry tracing

Spans cover the retrieval pipeline (embed, store, rerank) and each
gateway tool; OpenAI calls are traced by OpenInference
auto-instrumentation.

USAGE:
------
# At application startup:
from rag_gateway.observability import init_tracing

init_tracing()  # No-op unless TRACING_ENABLED=true

# In code that needs tracing:
from rag_gateway.observability import get_tracer

tracer = get_tracer()
with tracer.start_span("retrieval.search", attributes={"retrieval.top_k": 5}) as span:
    # ... do work ...
    span.set_attribute("retrieval.total_hits", 12)
"""

from __future__ import annotations

import logging

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
)

from rag_gateway.observability.config import (
    TracingConfig,
    get_config,
    reset_config,
)
from rag_gateway.observability.tracer import (
    NoOpSpan,
    NoOpTracer,
    GatewaySpan,
    GatewayTracer,
    get_tracer,
    reset_tracer,
)
from rag_gateway.observability.attributes import (
    GEN_AI_REQUEST_MODEL,
    GEN_AI_SYSTEM,
    RETRIEVAL_SEARCH_TYPE,
    RETRIEVAL_TOTAL_HITS,
    RETRIEVAL_USED_RERANKING,
    TOOL_NAME,
    generation_attributes,
    search_attributes,
    tool_attributes,
)

logger = logging.getLogger(__name__)

_provider: TracerProvider | None = None


def _span_exporter(config: TracingConfig) -> SpanExporter:
    if config.otlp_endpoint:
        logger.info(f"Exporting traces to: {config.otlp_endpoint}")
        return OTLPSpanExporter(endpoint=config.otlp_endpoint)
    logger.info("Exporting traces to console")
    return ConsoleSpanExporter()


def init_tracing(config: TracingConfig | None = None) -> bool:
    """
    Install the gateway's tracer provider, once per process.

    Spans are batched to OTLP/HTTP when an endpoint is configured and
    printed to the console otherwise. OpenAI calls are picked up by the
    OpenInference instrumentor registered here.

    Returns:
        True once tracing is live, False when disabled or setup failed
    """
    global _provider
    if _provider is not None:
        return True

    config = config or get_config()
    if not config.enabled:
        logger.debug("Tracing disabled")
        return False

    resource = Resource.create({SERVICE_NAME: config.service_name})
    provider = TracerProvider(resource=resource)
    try:
        provider.add_span_processor(BatchSpanProcessor(_span_exporter(config)))
    except Exception as e:
        logger.error(f"Failed to initialize tracing: {e}")
        return False
    trace.set_tracer_provider(provider)

    from rag_gateway.observability.instrumentation import register_instrumentors
    register_instrumentors()

    _provider = provider
    # Tools built before this point cached a NoOpTracer
    reset_tracer()
    return True


def shutdown_tracing() -> None:
    """Flush buffered spans and return to the untraced state."""
    global _provider
    if _provider is None:
        return

    provider, _provider = _provider, None
    try:
        provider.shutdown()
    except Exception as e:
        logger.warning(f"Error shutting down tracing: {e}")
    reset_tracer()
    reset_config()


__all__ = [
    # Initialization
    "init_tracing",
    "shutdown_tracing",
    # Config
    "TracingConfig",
    "get_config",
    "reset_config",
    # Tracer
    "GatewayTracer",
    "GatewaySpan",
    "NoOpTracer",
    "NoOpSpan",
    "get_tracer",
    "reset_tracer",
    # Attributes
    "GEN_AI_SYSTEM",
    "GEN_AI_REQUEST_MODEL",
    "RETRIEVAL_SEARCH_TYPE",
    "RETRIEVAL_TOTAL_HITS",
    "RETRIEVAL_USED_RERANKING",
    "TOOL_NAME",
    # Helpers
    "search_attributes",
    "generation_attributes",
    "tool_attributes",
]
