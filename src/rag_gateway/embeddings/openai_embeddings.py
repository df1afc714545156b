"""
Query and document embeddings for the ``embedding`` field of the index.

Vectors are compared by cosine similarity, and both providers return
float32 arrays of the index dimensionality (768 by default).
"""

from __future__ import annotations

import hashlib
import os
import re

import numpy as np
from openai import OpenAI

from rag_gateway.core.protocols import EmbeddingProvider

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"
DEFAULT_DIMENSIONS = 768

_TOKEN_RE = re.compile(r"\w+")


class OpenAIEmbeddings:
    """
    OpenAI-based embedding provider.

    The text-embedding-3 models support shortened vectors, so the
    provider requests exactly the index dimensionality.
    """

    def __init__(
        self,
        model: str = DEFAULT_EMBEDDING_MODEL,
        dimensions: int = DEFAULT_DIMENSIONS,
        api_key: str | None = None,
        timeout: float = 30.0,
        max_retries: int = 2,
        client: OpenAI | None = None,
    ):
        self.model = model
        self._dimensions = dimensions
        self._client = client or OpenAI(
            api_key=api_key or os.environ.get("OPENAI_API_KEY"),
            timeout=timeout,
            max_retries=max_retries,
        )

    @property
    def dimensions(self) -> int:
        """Return embedding dimensions requested from the model."""
        return self._dimensions

    def _request(self, payload: str | list[str]) -> list[np.ndarray]:
        response = self._client.embeddings.create(
            input=payload, model=self.model, dimensions=self._dimensions
        )
        return [np.asarray(item.embedding, dtype=np.float32) for item in response.data]

    def embed(self, text: str) -> np.ndarray:
        return self._request(text)[0]

    def embed_batch(self, texts: list[str]) -> list[np.ndarray]:
        """One API call for the whole batch."""
        return self._request(texts) if texts else []


class MockEmbeddings:
    """
    Mock embedding provider for testing without API calls.

    Hashes each lowercase token into a signed bucket (feature hashing),
    so texts sharing words land close together in cosine space.
    Deterministic across processes. NOT for production use.
    """

    def __init__(self, dimensions: int = DEFAULT_DIMENSIONS):
        self._dimensions = dimensions

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def embed(self, text: str) -> np.ndarray:
        """Generate a deterministic pseudo-embedding from token hashes."""
        vector = np.zeros(self._dimensions, dtype=np.float32)
        for token in _TOKEN_RE.findall(text.lower()):
            h = hashlib.sha256(token.encode()).digest()
            bucket = int.from_bytes(h[:4], "big") % self._dimensions
            sign = 1.0 if h[4] % 2 == 0 else -1.0
            vector[bucket] += sign

        norm = np.linalg.norm(vector)
        if norm > 0:
            vector /= norm
        return vector

    def embed_batch(self, texts: list[str]) -> list[np.ndarray]:
        """Generate embeddings for multiple texts."""
        return [self.embed(text) for text in texts]


def get_embedding_provider(
    use_mock: bool = False,
    model: str = DEFAULT_EMBEDDING_MODEL,
    dimensions: int = DEFAULT_DIMENSIONS,
    api_key: str | None = None,
    timeout: float = 30.0,
    max_retries: int = 2,
) -> EmbeddingProvider:
    """
    Factory function to get the appropriate embedding provider.

    Args:
        use_mock: If True, return MockEmbeddings (for testing)
    """
    if use_mock:
        return MockEmbeddings(dimensions=dimensions)
    return OpenAIEmbeddings(
        model=model,
        dimensions=dimensions,
        api_key=api_key,
        timeout=timeout,
        max_retries=max_retries,
    )
