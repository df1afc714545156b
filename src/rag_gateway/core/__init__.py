"""
Core module - shared protocols, types and errors for the entire system.

USAGE:
------
from rag_gateway.core import DocumentStore, EmbeddingProvider

class MyDocumentStore:
    '''Implements DocumentStore protocol.'''
    ...
"""

from rag_gateway.core.errors import (
    GatewayError,
    InvalidInputError,
    InvalidDocumentError,
    UpstreamError,
    SearchError,
)
from rag_gateway.core.protocols import (
    # Protocols
    EmbeddingProvider,
    GenerationModel,
    DocumentStore,
    # Data classes
    SearchHit,
    SearchResponse,
    BulkIndexResult,
)

__all__ = [
    # Errors
    "GatewayError",
    "InvalidInputError",
    "InvalidDocumentError",
    "UpstreamError",
    "SearchError",
    # Protocols
    "EmbeddingProvider",
    "GenerationModel",
    "DocumentStore",
    # Data classes
    "SearchHit",
    "SearchResponse",
    "BulkIndexResult",
]
