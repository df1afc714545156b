"""
Embeddings module - text embedding generation.

1. Protocol (EmbeddingProvider, in core.protocols) defines the interface
2. Production implementation (OpenAIEmbeddings)
3. Test double (MockEmbeddings) for fast testing
4. Factory function (get_embedding_provider)
"""

from rag_gateway.embeddings.openai_embeddings import (
    DEFAULT_DIMENSIONS,
    DEFAULT_EMBEDDING_MODEL,
    OpenAIEmbeddings,
    MockEmbeddings,
    get_embedding_provider,
)

__all__ = [
    "DEFAULT_DIMENSIONS",
    "DEFAULT_EMBEDDING_MODEL",
    "OpenAIEmbeddings",
    "MockEmbeddings",
    "get_embedding_provider",
]
