"""
Gateway configuration - every setting the composition root needs.

All values come from environment variables (``.env`` is loaded by the
CLI). Mock collaborators are used when MOCK=true, or when either the
Elasticsearch URL or the OpenAI key is missing.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from rag_gateway.embeddings import DEFAULT_DIMENSIONS, DEFAULT_EMBEDDING_MODEL
from rag_gateway.generation import DEFAULT_GENERATION_MODEL
from rag_gateway.observability.config import TracingConfig
from rag_gateway.retrieval.store import StoreConfig


def _flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() in ("true", "1", "yes")


@dataclass
class ModelConfig:
    """Embedding and generation model settings.

    Environment Variables:
        OPENAI_API_KEY: API key (mock models are used when unset)
        EMBEDDING_MODEL: default text-embedding-3-small
        EMBEDDING_DIMENSIONS: default 768
        GENERATION_MODEL: default gpt-4o-mini
        MODEL_TIMEOUT: per-call timeout in seconds (default: 30)
        MODEL_MAX_RETRIES: client retries (default: 2)
    """

    api_key: str = ""
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    dimensions: int = DEFAULT_DIMENSIONS
    generation_model: str = DEFAULT_GENERATION_MODEL
    timeout: float = 30.0
    max_retries: int = 2

    @classmethod
    def from_env(cls) -> "ModelConfig":
        return cls(
            api_key=os.environ.get("OPENAI_API_KEY", ""),
            embedding_model=os.environ.get("EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL),
            dimensions=int(os.environ.get("EMBEDDING_DIMENSIONS", str(DEFAULT_DIMENSIONS))),
            generation_model=os.environ.get("GENERATION_MODEL", DEFAULT_GENERATION_MODEL),
            timeout=float(os.environ.get("MODEL_TIMEOUT", "30")),
            max_retries=int(os.environ.get("MODEL_MAX_RETRIES", "2")),
        )


@dataclass
class ToolsConfig:
    """Fan-out settings for the compare and analyze tools.

    Environment Variables:
        FANOUT_TIMEOUT: deadline for one fan-out, seconds (default: 60)
        FANOUT_WORKERS: thread pool size (default: 8)
    """

    fanout_timeout_s: float = 60.0
    max_workers: int = 8

    @classmethod
    def from_env(cls) -> "ToolsConfig":
        return cls(
            fanout_timeout_s=float(os.environ.get("FANOUT_TIMEOUT", "60")),
            max_workers=int(os.environ.get("FANOUT_WORKERS", "8")),
        )


@dataclass
class GatewayConfig:
    """Top-level configuration.

    Environment Variables:
        MOCK: force mock collaborators (default: false)
        RRF_RANK_CONSTANT: default rank constant (default: 60)
        RRF_WINDOW_SIZE: default fusion window (default: 100)
        LOG_LEVEL: default INFO
        HOST / PORT: HTTP bind address (default: 0.0.0.0:8080)
    """

    store: StoreConfig = field(default_factory=StoreConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)
    tracing: TracingConfig = field(default_factory=TracingConfig)
    force_mock: bool = False
    rrf_rank_constant: int = 60
    rrf_window_size: int = 100
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8080

    @property
    def use_mock(self) -> bool:
        return self.force_mock or not self.store.url or not self.model.api_key

    @property
    def mode(self) -> str:
        return "mock" if self.use_mock else "live"

    @classmethod
    def from_env(cls) -> "GatewayConfig":
        model = ModelConfig.from_env()
        store = StoreConfig.from_env()
        store.dimensions = model.dimensions
        return cls(
            store=store,
            model=model,
            tools=ToolsConfig.from_env(),
            tracing=TracingConfig.from_env(),
            force_mock=_flag("MOCK"),
            rrf_rank_constant=int(os.environ.get("RRF_RANK_CONSTANT", "60")),
            rrf_window_size=int(os.environ.get("RRF_WINDOW_SIZE", "100")),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            host=os.environ.get("HOST", "0.0.0.0"),
            port=int(os.environ.get("PORT", "8080")),
        )
