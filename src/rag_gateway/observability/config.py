"""
Tracing Configuration

Loads OpenTelemetry settings from environment variables.
"""

import os
from dataclasses import dataclass


def _flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() in ("true", "1", "yes")


@dataclass
class TracingConfig:
    """Configuration for OpenTelemetry tracing.

    Environment Variables:
        TRACING_ENABLED: Enable tracing (default: false)
        OTEL_SERVICE_NAME: Service name on exported spans (default: rag-gateway)
        OTEL_EXPORTER_OTLP_ENDPOINT: OTLP/HTTP collector (console exporter if empty)
        TRACING_CAPTURE_CONTENT: Record queries and generated text on spans (default: false)

    PRIVACY WARNING:
        Setting TRACING_CAPTURE_CONTENT=true exports raw user queries and
        model output to the collector. Enterprise documents may be
        confidential; only enable this against a trusted collector.
    """

    enabled: bool = False
    service_name: str = "rag-gateway"
    otlp_endpoint: str | None = None
    capture_content: bool = False

    @classmethod
    def from_env(cls) -> "TracingConfig":
        """Load config from environment variables."""
        return cls(
            enabled=_flag("TRACING_ENABLED"),
            service_name=os.environ.get("OTEL_SERVICE_NAME", "rag-gateway"),
            otlp_endpoint=os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT") or None,
            capture_content=_flag("TRACING_CAPTURE_CONTENT"),
        )


_config: TracingConfig | None = None


def get_config() -> TracingConfig:
    """Get the global tracing config (lazy-loaded from env)."""
    global _config
    if _config is None:
        _config = TracingConfig.from_env()
    return _config


def reset_config() -> None:
    """Reset config (useful for testing)."""
    global _config
    _config = None
