"""
Semantic Conventions for Span Attributes

Attribute keys follow the OpenTelemetry GenAI conventions, plus custom
namespaces for the retrieval pipeline and the gateway tools.

Reference: https://opentelemetry.io/docs/specs/semconv/gen-ai/
"""

# ---------------------------------------------------------------------------
# GENAI NAMESPACE (OTel standard)
# ---------------------------------------------------------------------------

GEN_AI_SYSTEM = "gen_ai.system"  # "openai"
GEN_AI_REQUEST_MODEL = "gen_ai.request.model"  # "gpt-4o-mini"
GEN_AI_REQUEST_TEMPERATURE = "gen_ai.request.temperature"
GEN_AI_REQUEST_MAX_TOKENS = "gen_ai.request.max_tokens"

# Only set when TRACING_CAPTURE_CONTENT is enabled
GEN_AI_PROMPT = "gen_ai.prompt"
GEN_AI_COMPLETION = "gen_ai.completion"


# ---------------------------------------------------------------------------
# RETRIEVAL NAMESPACE (custom)
# ---------------------------------------------------------------------------

RETRIEVAL_QUERY = "retrieval.query"  # content capture only
RETRIEVAL_INDEX = "retrieval.index"
RETRIEVAL_TOP_K = "retrieval.top_k"
RETRIEVAL_SEARCH_TYPE = "retrieval.search_type"  # "hybrid", "lexical"
RETRIEVAL_FILTER_COUNT = "retrieval.filter_count"
RETRIEVAL_TOTAL_HITS = "retrieval.total_hits"
RETRIEVAL_RESULT_COUNT = "retrieval.result_count"
RETRIEVAL_USED_RERANKING = "retrieval.used_reranking"
RETRIEVAL_DEGRADED = "retrieval.degraded"  # embedding unavailable
RETRIEVAL_EMBEDDING_MS = "retrieval.embedding_ms"
RETRIEVAL_STORE_MS = "retrieval.store_ms"
RETRIEVAL_RERANK_MS = "retrieval.rerank_ms"


# ---------------------------------------------------------------------------
# GROUNDING NAMESPACE (custom)
# ---------------------------------------------------------------------------

GROUNDING_DOCUMENT_COUNT = "grounding.document_count"
GROUNDING_STYLE = "grounding.style"
GROUNDING_INVALID_REFERENCES = "grounding.invalid_references"
GROUNDING_CITATION_COUNT = "grounding.citation_count"
GROUNDING_VERIFIED = "grounding.verified"


# ---------------------------------------------------------------------------
# TOOL NAMESPACE (custom)
# ---------------------------------------------------------------------------

TOOL_NAME = "tool.name"  # "search", "summarize", "cite", ...
TOOL_SUCCESS = "tool.success"
TOOL_ERROR = "tool.error"
TOOL_LATENCY_MS = "tool.latency_ms"


# ---------------------------------------------------------------------------
# HELPER FUNCTIONS
# ---------------------------------------------------------------------------


def search_attributes(
    index: str,
    top_k: int,
    filter_count: int,
    query: str | None = None,
) -> dict:
    """Create attributes dict for a retrieval span."""
    attrs = {
        RETRIEVAL_INDEX: index,
        RETRIEVAL_TOP_K: top_k,
        RETRIEVAL_FILTER_COUNT: filter_count,
    }
    if query is not None:
        attrs[RETRIEVAL_QUERY] = query
    return attrs


def generation_attributes(
    model: str,
    temperature: float,
    max_tokens: int,
) -> dict:
    """Create attributes dict for a generation span."""
    return {
        GEN_AI_SYSTEM: "openai",
        GEN_AI_REQUEST_MODEL: model,
        GEN_AI_REQUEST_TEMPERATURE: temperature,
        GEN_AI_REQUEST_MAX_TOKENS: max_tokens,
    }


def tool_attributes(
    tool: str,
    success: bool,
    latency_ms: float,
    error: str | None = None,
) -> dict:
    """Create attributes dict for a tool execution span."""
    attrs = {
        TOOL_NAME: tool,
        TOOL_SUCCESS: success,
        TOOL_LATENCY_MS: latency_ms,
    }
    if error:
        attrs[TOOL_ERROR] = error
    return attrs
