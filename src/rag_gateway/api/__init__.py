"""HTTP surface (FastAPI) for the gateway tools."""

from rag_gateway.api.app import camelize, create_app, serialize_candidate, serialize_search

__all__ = [
    "camelize",
    "create_app",
    "serialize_candidate",
    "serialize_search",
]
