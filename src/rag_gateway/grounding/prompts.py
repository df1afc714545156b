"""
Grounded-generation prompts - kept apart from the code that sends them.

Every function here is PURE: same documents and options, same prompt.
Prompt wording can be reviewed and tested without a model call.
"""

from __future__ import annotations

from typing import Sequence

from rag_gateway.schemas.requests import DocumentPayload

EXCERPT_LENGTH = 800


# ---------------------------------------------------------------------------
# STYLE AND TONE BLOCKS
# ---------------------------------------------------------------------------

STYLE_INSTRUCTIONS = {
    "brief": (
        "Write a brief summary: 2-3 sentences covering only the single most "
        "important answer to the question."
    ),
    "comprehensive": (
        "Write a comprehensive summary: cover every relevant point the sources "
        "make, group related points together, and note where sources agree or differ."
    ),
    "technical": (
        "Write a technical summary: keep exact figures, versions, standards and "
        "configuration details. Prefer precise terminology over paraphrase."
    ),
    "executive": (
        "Write an executive summary: lead with the conclusion, then the business "
        "impact, risks and recommended actions. Leave out implementation detail."
    ),
}

TONE_INSTRUCTIONS = {
    "formal": "Use a formal register. No contractions, no colloquialisms.",
    "casual": "Use a relaxed, conversational register while staying accurate.",
    "professional": "Use a clear, professional register suitable for internal documentation.",
}

GROUNDING_RULES = """RULES (CRITICAL - NEVER VIOLATE):
1. Use ONLY information from the numbered sources below. Do not add outside knowledge.
2. If the sources do not answer the question, say so explicitly.
3. Never invent a source number. Valid numbers are 1 to {count}."""

CITATION_RULE = """4. Cite every claim with its source marker, e.g. [Source 1] or [Source 2][Source 3].
   Place the marker at the end of the sentence it supports."""

NO_CITATION_RULE = "4. Do not include source markers in the text."


# ---------------------------------------------------------------------------
# PROMPT FORMATTING
# ---------------------------------------------------------------------------


def source_excerpt(document: DocumentPayload) -> str:
    """Summary if the document has one, else the start of the content."""
    if document.summary:
        return document.summary
    return document.content[:EXCERPT_LENGTH]


def format_source_block(index: int, document: DocumentPayload) -> str:
    """``[Source N: title — category | author | url]`` followed by the excerpt."""
    header = (
        f"[Source {index}: {document.title} — {document.category or 'uncategorized'}"
        f" | {document.author or 'unknown author'} | {document.source_url or 'no url'}]"
    )
    excerpt = " ".join(source_excerpt(document).split())
    return f"{header}\n{excerpt}"


def build_summary_prompt(
    query: str,
    documents: Sequence[DocumentPayload],
    style: str,
    tone: str,
    max_length: int,
    include_citations: bool = True,
) -> str:
    """
    Format the grounded summarization prompt.

    Args:
        query: The user's question
        documents: Sources, numbered from 1 in the given order
        style: brief | comprehensive | technical | executive
        tone: formal | casual | professional
        max_length: Approximate word budget
        include_citations: Ask for [Source N] markers

    Returns:
        Prompt string for the generation model
    """
    sources = "\n\n".join(
        format_source_block(i, doc) for i, doc in enumerate(documents, start=1)
    )
    rules = GROUNDING_RULES.format(count=len(documents))
    rules += "\n" + (CITATION_RULE if include_citations else NO_CITATION_RULE)

    return f"""You are an enterprise knowledge assistant answering from internal documents.

QUESTION: {query}

{rules}

STYLE: {STYLE_INSTRUCTIONS[style]}
TONE: {TONE_INSTRUCTIONS[tone]}
LENGTH: At most about {max_length} words.

SOURCES:

{sources}

Answer the question now."""
