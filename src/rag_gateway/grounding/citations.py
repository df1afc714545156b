"""
Citation Engine - lexical grounding of generated text.

Every function here is deterministic and makes no model call: given the
same documents and text, the same citations come out.

OPERATIONS:
-----------
- extract_citations: which documents support the generated sentences
- inject_inline_citations: add [k] markers and a Sources list
- verify_citations: advisory check that text is cited at all
- extract_snippet: best 100-char window of a document for a query
"""

from __future__ import annotations

import logging
import re
import string
from dataclasses import dataclass, field
from typing import Sequence

from rag_gateway.core.errors import InvalidInputError
from rag_gateway.grounding.summarizer import coerce_documents
from rag_gateway.schemas.requests import DocumentPayload

logger = logging.getLogger(__name__)

MIN_SENTENCE_LENGTH = 20
SIGNIFICANT_WORD_LENGTH = 4
SENTENCE_MATCH_THRESHOLD = 0.4
RELEVANCE_THRESHOLD = 0.3
INJECTION_OVERLAP_THRESHOLD = 0.3
SNIPPET_WINDOW = 100
FALLBACK_SNIPPET_LENGTH = 150

CITATION_STYLES = ("inline", "footnote", "endnote")

_MARKER_RE = re.compile(r"\[(?:Source )?\d+\]")
_CITATION_MARK_RE = re.compile(r"\[\d+\]")
_SOURCES_SECTION_RE = re.compile(
    # Header alone on its line, or followed inline by a [n] or n. entry
    r"\s*^\**(?:Sources|References):\**(?:[ \t]*$|[ \t]+(?:\[\d+\]|\d+\.)).*\Z",
    re.MULTILINE | re.DOTALL,
)


@dataclass
class Citation:
    source_id: str
    title: str
    snippet: str
    relevance_score: float
    section: str | None = None


@dataclass
class CitationVerification:
    is_verified: bool
    citation_count: int
    missing_citations: bool
    warnings: list[str] = field(default_factory=list)


@dataclass
class CiteResult:
    citations: list[Citation]
    formatted: str
    cited_text: str
    verification: CitationVerification


def _significant_words(sentence: str) -> list[str]:
    words = (word.strip(string.punctuation) for word in sentence.split())
    return [word for word in words if len(word) > SIGNIFICANT_WORD_LENGTH]


# ---------------------------------------------------------------------------
# SNIPPETS
# ---------------------------------------------------------------------------


def extract_snippet(content: str, query: str, context_length: int = 150) -> str | None:
    """
    Snippet of ``content`` around the 100-char window that contains the
    most query words (longer than 3 chars).

    Returns None when no window shares a word with the query.
    """
    lower_content = content.lower()
    query_words = [w for w in query.lower()[:50].split() if len(w) > 3]
    if not query_words:
        return None

    best_match = -1
    best_score = 0
    for i in range(max(len(lower_content) - 50, 1)):
        window = lower_content[i:i + SNIPPET_WINDOW]
        score = sum(1 for word in query_words if word in window)
        if score > best_score:
            best_score = score
            best_match = i

    if best_match == -1 or best_score == 0:
        return None

    start = max(0, best_match - 50)
    end = min(len(content), best_match + context_length)
    snippet = content[start:end]
    if start > 0:
        snippet = "..." + snippet
    if end < len(content):
        snippet = snippet + "..."
    return snippet


# ---------------------------------------------------------------------------
# EXTRACTION
# ---------------------------------------------------------------------------


def extract_citations(
    results: Sequence[DocumentPayload | dict],
    generated_text: str,
) -> list[Citation]:
    """
    Score each document by how much of the generated text it supports.

    A sentence (over 20 chars) supports a document when more than 40% of
    its significant words (over 4 chars) appear in the document content;
    the match fractions are summed. Documents above 0.3 are cited, most
    relevant first.
    """
    documents = coerce_documents(results)
    text = _MARKER_RE.sub("", generated_text)
    sentences = [
        s.strip().lower() for s in re.split(r"[.!?]+", text)
        if len(s.strip()) > MIN_SENTENCE_LENGTH
    ]

    citations = []
    for doc in documents:
        content = doc.content or ""
        lower_content = content.lower()
        relevance = 0.0
        snippets: list[str] = []

        for sentence in sentences:
            words = _significant_words(sentence)
            if not words:
                continue
            matches = sum(1 for word in words if word in lower_content)
            fraction = matches / len(words)
            if fraction > SENTENCE_MATCH_THRESHOLD:
                relevance += fraction
                snippet = extract_snippet(content, sentence[:50])
                if snippet:
                    snippets.append(snippet)

        if relevance > RELEVANCE_THRESHOLD:
            citations.append(Citation(
                source_id=doc.id,
                title=doc.title,
                snippet=snippets[0] if snippets else content[:FALLBACK_SNIPPET_LENGTH] + "...",
                relevance_score=min(relevance, 1.0),
                section=doc.section,
            ))

    citations.sort(key=lambda c: c.relevance_score, reverse=True)
    return citations


# ---------------------------------------------------------------------------
# FORMATTING AND INJECTION
# ---------------------------------------------------------------------------


def format_citations(citations: Sequence[Citation], style: str = "inline") -> str:
    """Render a citation list in inline, footnote or endnote style."""
    if style == "inline":
        return "\n".join(
            f'[{i}] {c.title} - "{c.snippet}"' for i, c in enumerate(citations, start=1)
        )
    if style == "footnote":
        return "\n".join(
            f"{i}. {c.title}, relevance: {c.relevance_score * 100:.1f}%"
            for i, c in enumerate(citations, start=1)
        )
    if style == "endnote":
        return "\n\n".join(
            f"[{i}] {c.title}{f', Section: {c.section}' if c.section else ''}\n"
            f'    "{c.snippet}"'
            for i, c in enumerate(citations, start=1)
        )
    raise InvalidInputError(f"Unknown citation style: {style!r}")


def strip_sources_section(text: str) -> str:
    """Remove a trailing Sources/References list, if any."""
    return _SOURCES_SECTION_RE.sub("", text).rstrip()


def inject_inline_citations(text: str, citations: Sequence[Citation]) -> str:
    """
    Mark the first sentence each citation supports with [k] and append a
    Sources list.

    Idempotent: an existing Sources section is replaced, and a marker
    already on a sentence is not added again, so applying this twice
    gives the same text as applying it once.
    """
    if not citations:
        return text

    body = strip_sources_section(text.rstrip())
    parts = re.split(r"([.!?]+)", body)

    for idx, citation in enumerate(citations, start=1):
        mark = f"[{idx}]"
        words = [w for w in citation.snippet.lower().split() if len(w) > SIGNIFICANT_WORD_LENGTH]
        if not words:
            continue
        for i in range(0, len(parts), 2):
            sentence = parts[i]
            if not sentence.strip():
                continue
            lower = sentence.lower()
            matches = sum(1 for word in words if word in lower)
            if matches / len(words) > INJECTION_OVERLAP_THRESHOLD:
                if mark not in sentence:
                    parts[i] = sentence.rstrip() + f" {mark}"
                break

    return "".join(parts) + "\n\n**Sources:**\n" + format_citations(citations, "endnote")


# ---------------------------------------------------------------------------
# VERIFICATION
# ---------------------------------------------------------------------------


def verify_citations(text: str, required: int = 2) -> CitationVerification:
    """
    Advisory check: enough [n] markers and a Sources/References list.

    Never raises for under-cited text; shortfalls come back as warnings.
    """
    count = len(_CITATION_MARK_RE.findall(text))
    warnings = []
    if count < required:
        warnings.append(f"Only {count} citations found, expected at least {required}")

    has_list = "Sources:" in text or "References:" in text
    if not has_list and count > 0:
        warnings.append("Citation marks found but no citation list")

    return CitationVerification(
        is_verified=count >= required and has_list,
        citation_count=count,
        missing_citations=count < required,
        warnings=warnings,
    )


def cite(
    results: Sequence[DocumentPayload | dict],
    generated_text: str,
    style: str = "inline",
) -> CiteResult:
    """Extract, format, inject and verify in one call."""
    if style not in CITATION_STYLES:
        raise InvalidInputError(f"Unknown citation style: {style!r}")

    citations = extract_citations(results, generated_text)
    cited_text = inject_inline_citations(generated_text, citations)
    if not citations:
        logger.info("No document supports the generated text; returning it uncited")

    return CiteResult(
        citations=citations,
        formatted=format_citations(citations, style),
        cited_text=cited_text,
        verification=verify_citations(cited_text),
    )
