"""
Enterprise knowledge base seed data.

Ten short documents across security, product, process, technology,
infrastructure and policy. Used by ``rag-gateway ingest`` and to seed
the in-memory store in mock mode.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rag_gateway.core import BulkIndexResult
from rag_gateway.retrieval.document import Document

if TYPE_CHECKING:
    from rag_gateway.core import DocumentStore, EmbeddingProvider

logger = logging.getLogger(__name__)


def get_enterprise_documents() -> list[Document]:
    """Seed documents with stable ids, so re-ingesting overwrites."""
    return [
        Document(
            id="sec-mfa",
            title="Multi-Factor Authentication Best Practices",
            content=(
                "MFA is a critical security mechanism requiring multiple verification "
                "methods. Implementation includes hardware keys, backup codes, regular "
                "audits, and user training. MFA reduces unauthorized access by over 99%."
            ),
            category="security",
            department="cybersecurity",
            author="Security Team",
            tags=["mfa", "security"],
            source_url="https://docs.company.com/security/mfa",
            date="2024-10-22",
        ),
        Document(
            id="sec-encryption",
            title="Encryption Strategies for Data Protection",
            content=(
                "Enterprise encryption uses AES-256 for data at rest and TLS 1.3 for "
                "transit. Key management via HSM with automatic rotation. Critical for "
                "GDPR and PCI-DSS compliance."
            ),
            category="security",
            department="data-security",
            author="Security Team",
            tags=["encryption", "security"],
            source_url="https://docs.company.com/security/encryption",
            date="2024-10-20",
        ),
        Document(
            id="sec-incident-response",
            title="Security Incident Response Procedures",
            content=(
                "Incident response procedures include detection, classification, "
                "isolation of affected systems, forensic analysis, recovery, and "
                "post-incident review. Response time SLAs: Critical 15min, High 1hr, "
                "Medium 4hrs."
            ),
            category="security",
            department="incident-response",
            author="Incident Response Team",
            tags=["incident", "security"],
            source_url="https://docs.company.com/security/incidents",
            date="2024-10-19",
        ),
        Document(
            id="support-platform",
            title="Customer Support Platform Features",
            content=(
                "Our support platform handles multi-channel ticket management with "
                "intelligent routing, AI-powered automation, real-time chat with video "
                "integration, and comprehensive knowledge base. First response 5 "
                "minutes, resolution 24 hours."
            ),
            category="product",
            department="customer-success",
            author="Product Team",
            tags=["support", "platform"],
            source_url="https://docs.company.com/support/platform",
            date="2024-10-23",
        ),
        Document(
            id="support-best-practices",
            title="Customer Support Best Practices",
            content=(
                "Support excellence requires 15-minute response times, professional "
                "friendly tone, problem-solving approach with escalation only when "
                "necessary, continuous training, and quality metrics targeting 90% CSAT."
            ),
            category="process",
            department="customer-success",
            author="Training Team",
            tags=["support", "training"],
            source_url="https://docs.company.com/support/best-practices",
            date="2024-10-21",
        ),
        Document(
            id="ai-hybrid-search",
            title="AI-Powered Hybrid Search Implementation",
            content=(
                "Hybrid search combines BM25 keyword search with vector semantic search "
                "using transformers. Reciprocal Rank Fusion merges results. "
                "Cross-encoder reranking provides final ordering. NDCG@10 target 0.75+."
            ),
            category="technology",
            department="engineering",
            author="AI Team",
            tags=["ai", "search"],
            source_url="https://docs.company.com/ai/hybrid-search",
            date="2024-10-22",
        ),
        Document(
            id="ai-nlp",
            title="Natural Language Processing for Enterprises",
            content=(
                "NLP techniques include tokenization, NER, POS tagging, sentiment "
                "analysis, and topic modeling. Applications: auto-classification, "
                "information extraction, summarization, duplicate detection, compliance "
                "analysis."
            ),
            category="technology",
            department="data-science",
            author="Data Science Team",
            tags=["nlp", "ai"],
            source_url="https://docs.company.com/ai/nlp",
            date="2024-10-20",
        ),
        Document(
            id="infra-cloud",
            title="Cloud Infrastructure Architecture",
            content=(
                "Cloud architecture requires high availability, scalability, security, "
                "cost optimization, and disaster recovery. Components: load balancing, "
                "auto-scaling, containerization, microservices, VPC, storage solutions, "
                "backups."
            ),
            category="infrastructure",
            department="platform-engineering",
            author="Infrastructure Team",
            tags=["cloud", "devops"],
            source_url="https://docs.company.com/infra/architecture",
            date="2024-10-21",
        ),
        Document(
            id="infra-kubernetes",
            title="Kubernetes Deployment Strategies",
            content=(
                "K8s deployment strategies include rolling deployments, blue-green, "
                "canary, and shadow deployments. Resource management via "
                "requests/limits, QoS classes, horizontal pod autoscaling, and GitOps "
                "workflows."
            ),
            category="infrastructure",
            department="platform-engineering",
            author="Platform Team",
            tags=["kubernetes", "devops"],
            source_url="https://docs.company.com/infra/kubernetes",
            date="2024-10-19",
        ),
        Document(
            id="policy-remote-work",
            title="Remote Work Policy Guidelines",
            content=(
                "Remote work available for most roles with manager approval. "
                "Requirements: regular hours 9-5, VPN mandatory, MFA required, "
                "professional appearance on calls, secure workspace, reliable internet "
                "25Mbps+. Daily standups and weekly meetings."
            ),
            category="policy",
            department="human-resources",
            author="HR Department",
            tags=["remote", "policy"],
            source_url="https://docs.company.com/policies/remote-work",
            date="2024-10-15",
        ),
    ]


def embed_documents(documents: list[Document], embeddings: EmbeddingProvider) -> list[Document]:
    """Fill in missing embeddings with one batch call."""
    pending = [doc for doc in documents if doc.embedding is None]
    if pending:
        texts = [f"{doc.title}\n{doc.content}" for doc in pending]
        for doc, vector in zip(pending, embeddings.embed_batch(texts)):
            doc.embedding = vector
    return documents


def seed_document_store(
    store: DocumentStore,
    embeddings: EmbeddingProvider,
    index: str,
    documents: list[Document] | None = None,
) -> BulkIndexResult:
    """
    Create the index (if missing) and bulk-index the seed documents.

    Works with any DocumentStore implementation.
    """
    docs = embed_documents(documents or get_enterprise_documents(), embeddings)
    store.create_index(index, embeddings.dimensions)
    result = store.bulk_index(index, docs)

    categories = sorted({doc.category for doc in docs})
    logger.info(
        f"Seeded {result.indexed} documents into {index} "
        f"({len(categories)} categories: {', '.join(categories)})"
    )
    for error in result.errors:
        logger.warning(f"Seed document rejected: {error}")
    return result
