"""
Grounding module - generation tied back to retrieved sources.

- GroundedSummarizer: [Source N]-attributed summaries
- citations: lexical extraction, formatting, injection and verification
"""

from rag_gateway.grounding.citations import (
    Citation,
    CitationVerification,
    CiteResult,
    cite,
    extract_citations,
    extract_snippet,
    format_citations,
    inject_inline_citations,
    strip_sources_section,
    verify_citations,
)
from rag_gateway.grounding.summarizer import (
    GroundedSummarizer,
    SummaryResult,
    coerce_documents,
    max_tokens_for,
    referenced_sources,
    temperature_for,
    validate_source_references,
)

__all__ = [
    "Citation",
    "CitationVerification",
    "CiteResult",
    "cite",
    "extract_citations",
    "extract_snippet",
    "format_citations",
    "inject_inline_citations",
    "strip_sources_section",
    "verify_citations",
    "GroundedSummarizer",
    "SummaryResult",
    "coerce_documents",
    "max_tokens_for",
    "referenced_sources",
    "temperature_for",
    "validate_source_references",
]
