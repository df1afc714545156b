"""
RAG Gateway - hybrid retrieval and citation-grounded generation tools.

Entry points:
- rag_gateway.gateway.build_gateway: composition root
- rag_gateway.api.create_app: FastAPI surface
- rag_gateway.cli.main: the ``rag-gateway`` command
"""

__version__ = "0.1.0"
