"""
Core protocols defining contracts for the entire system.

All infrastructure components implement these protocols,
enabling dependency injection and easy testing.

PATTERN:
- Protocol defines the contract
- A production implementation talks to the real service
- A test double (mock / in-memory) satisfies the same contract
- A factory function picks one, once, at process start
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import numpy as np

if TYPE_CHECKING:
    from rag_gateway.retrieval.document import Document


# ---------------------------------------------------------------------------
# EMBEDDING PROVIDER PROTOCOL
# ---------------------------------------------------------------------------


@runtime_checkable
class EmbeddingProvider(Protocol):
    """
    Contract for embedding generation.

    Implementations:
    - OpenAIEmbeddings (production)
    - MockEmbeddings (testing)
    """

    @property
    def dimensions(self) -> int:
        """Length of every vector this provider returns."""
        ...

    def embed(self, text: str) -> np.ndarray:
        """Generate embedding for a single text."""
        ...

    def embed_batch(self, texts: list[str]) -> list[np.ndarray]:
        """Generate embeddings for multiple texts."""
        ...


# ---------------------------------------------------------------------------
# GENERATION MODEL PROTOCOL
# ---------------------------------------------------------------------------


@runtime_checkable
class GenerationModel(Protocol):
    """
    Contract for free-text generation and relevance scoring.

    Implementations:
    - OpenAIGenerationModel (production)
    - MockGenerationModel (testing/development)
    """

    @property
    def model_name(self) -> str:
        ...

    def generate_text(
        self,
        prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1024,
    ) -> str:
        """Generate text for a prompt."""
        ...

    def rerank_documents(
        self,
        query: str,
        documents: list[dict[str, str]],
    ) -> list[float]:
        """
        Score each {id, text} document against the query.

        Returns one score per input document, in input order.
        """
        ...


# ---------------------------------------------------------------------------
# DOCUMENT STORE PROTOCOL
# ---------------------------------------------------------------------------


@dataclass
class SearchHit:
    """A raw hit as returned by the document store."""
    id: str
    score: float
    source: dict[str, Any]
    highlight: dict[str, list[str]] | None = None
    rank: int | None = None  # set by rank-fusion retrievers


@dataclass
class SearchResponse:
    """Raw store response: hits plus optional aggregations."""
    hits: list[SearchHit]
    total: int
    max_score: float | None = None
    took_ms: float = 0.0
    aggregations: dict[str, Any] = field(default_factory=dict)


@dataclass
class BulkIndexResult:
    """Outcome of a bulk indexing call."""
    indexed: int
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@runtime_checkable
class DocumentStore(Protocol):
    """
    Contract for the search engine behind the gateway.

    Query bodies use the Elasticsearch query DSL: a top-level ``query``
    (lexical), ``knn`` (vector) or ``retriever.rrf`` (fused hybrid).

    Implementations:
    - ElasticsearchDocumentStore (production)
    - InMemoryDocumentStore (testing/development)
    """

    def search(self, index: str, body: dict[str, Any]) -> SearchResponse:
        """Execute a query body against an index."""
        ...

    def index_document(self, index: str, document: Document) -> str:
        """Index one document. Returns its id."""
        ...

    def bulk_index(self, index: str, documents: list[Document]) -> BulkIndexResult:
        """Index many documents in one call."""
        ...

    def create_index(self, index: str, dimensions: int) -> bool:
        """Create the index with the document mapping. False if it exists."""
        ...

    def ping(self) -> bool:
        """Health check. Never raises."""
        ...
