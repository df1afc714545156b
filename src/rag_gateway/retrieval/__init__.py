"""
Retrieval module - document model and document stores.

This module provides:
- Document: The document model
- StoreConfig: Configuration for stores
- ElasticsearchDocumentStore: Production store
- InMemoryDocumentStore: Testing/development store
- get_document_store(): Factory function

ARCHITECTURE:
-------------
1. Protocol defines the contract (in core.protocols)
2. Multiple implementations (Elasticsearch, in-memory)
3. Factory function for instantiation
4. Test doubles for fast unit tests
"""

# Document model
from rag_gateway.retrieval.document import Document

# Store implementations and factory
from rag_gateway.retrieval.memory_store import InMemoryDocumentStore
from rag_gateway.retrieval.store import (
    ElasticsearchDocumentStore,
    StoreConfig,
    get_document_store,
    index_mappings,
)

__all__ = [
    "Document",
    "StoreConfig",
    "ElasticsearchDocumentStore",
    "InMemoryDocumentStore",
    "get_document_store",
    "index_mappings",
]
