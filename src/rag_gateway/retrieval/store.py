"""
Document store implementations following the protocol pattern.

Pattern: Protocol → Production impl → Test double → Factory

This module contains:
1. StoreConfig - Configuration dataclass
2. ElasticsearchDocumentStore - Elasticsearch (production)
3. get_document_store() - Factory function

The test double, InMemoryDocumentStore, lives in memory_store.py.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any

from elasticsearch import BadRequestError, Elasticsearch, helpers

from rag_gateway.core import BulkIndexResult, DocumentStore, SearchHit, SearchResponse
from rag_gateway.core.errors import InvalidDocumentError
from rag_gateway.retrieval.document import Document
from rag_gateway.retrieval.memory_store import InMemoryDocumentStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# CONFIGURATION
# ---------------------------------------------------------------------------


@dataclass
class StoreConfig:
    """Configuration for the document store.

    Environment Variables:
        ELASTICSEARCH_URL: Cluster endpoint (mock store is used when unset)
        ELASTICSEARCH_API_KEY: API key for the cluster
        ELASTICSEARCH_INDEX: Index name (default: enterprise_docs)
        ES_REQUEST_TIMEOUT: Per-request timeout in seconds (default: 10)
        ES_MAX_RETRIES: Transport-level retries (default: 2)
        EMBEDDING_DIMENSIONS: Dense vector size (default: 768)
    """

    url: str = ""
    api_key: str = ""
    index: str = "enterprise_docs"
    dimensions: int = 768
    request_timeout: float = 10.0
    max_retries: int = 2

    @classmethod
    def from_env(cls) -> "StoreConfig":
        return cls(
            url=os.environ.get("ELASTICSEARCH_URL", ""),
            api_key=os.environ.get("ELASTICSEARCH_API_KEY", ""),
            index=os.environ.get("ELASTICSEARCH_INDEX", "enterprise_docs"),
            dimensions=int(os.environ.get("EMBEDDING_DIMENSIONS", "768")),
            request_timeout=float(os.environ.get("ES_REQUEST_TIMEOUT", "10")),
            max_retries=int(os.environ.get("ES_MAX_RETRIES", "2")),
        )


def index_mappings(dimensions: int) -> dict[str, Any]:
    """Mapping for the document index: text + keyword facets + dense vector."""
    keyword_text = {"type": "text", "fields": {"keyword": {"type": "keyword"}}}
    return {
        "properties": {
            "title": {"type": "text", "analyzer": "standard"},
            "content": {"type": "text", "analyzer": "standard"},
            "summary": {"type": "text", "analyzer": "standard"},
            "category": keyword_text,
            "department": keyword_text,
            "tags": keyword_text,
            "author": {"type": "keyword"},
            "source_url": {"type": "keyword"},
            "section": {"type": "keyword"},
            "date": {"type": "date"},
            "timestamp": {"type": "date"},
            "embedding": {
                "type": "dense_vector",
                "dims": dimensions,
                "index": True,
                "similarity": "cosine",
            },
        }
    }


def parse_search_response(raw: dict[str, Any]) -> SearchResponse:
    """Convert an Elasticsearch search response body into a SearchResponse."""
    hits_block = raw.get("hits", {})
    total = hits_block.get("total", 0)
    if isinstance(total, dict):
        total = total.get("value", 0)

    hits = [
        SearchHit(
            id=str(hit["_id"]),
            score=float(hit.get("_score") or 0.0),
            source=hit.get("_source", {}),
            highlight=hit.get("highlight"),
            rank=hit.get("_rank"),
        )
        for hit in hits_block.get("hits", [])
    ]

    return SearchResponse(
        hits=hits,
        total=int(total),
        max_score=hits_block.get("max_score"),
        took_ms=float(raw.get("took", 0)),
        aggregations=raw.get("aggregations") or {},
    )


# ---------------------------------------------------------------------------
# ELASTICSEARCH STORE (Production)
# ---------------------------------------------------------------------------


class ElasticsearchDocumentStore:
    """
    Elasticsearch-backed document store.

    Lexical search, kNN search and RRF fusion all run inside the cluster;
    this adapter only forwards query bodies and converts responses.
    The client is long-lived and shared across requests.
    """

    def __init__(self, config: StoreConfig, client: Elasticsearch | None = None):
        self.config = config
        self._client = client or Elasticsearch(
            config.url,
            api_key=config.api_key or None,
            request_timeout=config.request_timeout,
            max_retries=config.max_retries,
            retry_on_timeout=True,
        )

    def search(self, index: str, body: dict[str, Any]) -> SearchResponse:
        """Execute a query body against an index."""
        response = self._client.search(index=index, **body)
        raw = response.body if hasattr(response, "body") else response
        return parse_search_response(raw)

    def index_document(self, index: str, document: Document) -> str:
        """Index one document; rejects documents without title/content."""
        document.validate(self.config.dimensions)
        response = self._client.index(
            index=index,
            id=document.id or None,
            document=document.to_source(),
        )
        return str(response["_id"])

    def bulk_index(self, index: str, documents: list[Document]) -> BulkIndexResult:
        """Index many documents; invalid ones are reported, not sent."""
        errors: list[str] = []
        actions = []
        for doc in documents:
            try:
                doc.validate(self.config.dimensions)
            except InvalidDocumentError as e:
                errors.append(str(e))
                continue
            action = {"_index": index, "_source": doc.to_source()}
            if doc.id:
                action["_id"] = doc.id
            actions.append(action)

        if not actions:
            return BulkIndexResult(indexed=0, errors=errors)

        indexed, failures = helpers.bulk(
            self._client,
            actions,
            raise_on_error=False,
            refresh="wait_for",
        )
        errors.extend(str(failure) for failure in failures)
        return BulkIndexResult(indexed=indexed, errors=errors)

    def create_index(self, index: str, dimensions: int) -> bool:
        """Create the index. Returns False if it already exists."""
        try:
            self._client.indices.create(index=index, mappings=index_mappings(dimensions))
        except BadRequestError as e:
            if e.error == "resource_already_exists_exception":
                logger.info(f"Index already exists: {index}")
                return False
            raise
        logger.info(f"Created index: {index}")
        return True

    def ping(self) -> bool:
        """Health check."""
        try:
            return bool(self._client.ping())
        except Exception as e:
            logger.warning(f"Elasticsearch ping failed: {e}")
            return False


# ---------------------------------------------------------------------------
# FACTORY FUNCTION
# ---------------------------------------------------------------------------


def get_document_store(
    use_memory: bool = False,
    config: StoreConfig | None = None,
) -> DocumentStore:
    """
    Factory function to get the appropriate document store.

    Args:
        use_memory: Use the in-memory store (default: False)
        config: Store configuration (read from env if not provided)

    Returns:
        DocumentStore implementation
    """
    config = config or StoreConfig.from_env()

    if use_memory or not config.url:
        return InMemoryDocumentStore(dimensions=config.dimensions)
    return ElasticsearchDocumentStore(config)
