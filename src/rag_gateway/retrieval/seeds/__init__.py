"""
Seed data for the retrieval system.

Separating data from infrastructure enables:
- Content updates without code changes
- Easy testing with controlled data
"""

from rag_gateway.retrieval.seeds.enterprise_docs import (
    embed_documents,
    get_enterprise_documents,
    seed_document_store,
)

__all__ = ["embed_documents", "get_enterprise_documents", "seed_document_store"]
