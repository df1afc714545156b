"""
Grounded Summarizer - source-attributed generation.

FLOW:
-----
1. Number the documents and build the prompt (grounding/prompts.py)
2. Generate, with a lower temperature for the technical style
3. Validate every [Source N] marker against the document count;
   out-of-range markers are rewritten, never silently dropped

The rewrite surfaces hallucinated or injected references to the reader
as ``[Invalid Reference: Source N]``.
"""

from __future__ import annotations

import logging
import math
import re
import time
from dataclasses import dataclass, field
from typing import Any, Sequence

from pydantic import ValidationError

from rag_gateway.core import GenerationModel
from rag_gateway.core.errors import GatewayError, InvalidInputError, UpstreamError
from rag_gateway.grounding.prompts import build_summary_prompt
from rag_gateway.observability import attributes as attrs
from rag_gateway.observability.tracer import GatewayTracer, get_tracer
from rag_gateway.schemas.requests import DocumentPayload, SummarizeOptions

logger = logging.getLogger(__name__)

SOURCE_MARKER_RE = re.compile(r"\[Source (\d+)\]")

TECHNICAL_TEMPERATURE = 0.3
DEFAULT_TEMPERATURE = 0.7
MIN_MAX_TOKENS = 128
MAX_MAX_TOKENS = 2048
TOKENS_PER_WORD = 1.3


@dataclass
class SummaryResult:
    summary: str
    citations: list[dict[str, Any]] = field(default_factory=list)
    source_documents: list[dict[str, Any]] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)


def temperature_for(style: str) -> float:
    return TECHNICAL_TEMPERATURE if style == "technical" else DEFAULT_TEMPERATURE


def max_tokens_for(max_length: int) -> int:
    """Token budget for a word budget, bounded to [128, 2048]."""
    return min(max(math.ceil(max_length * 1.5), MIN_MAX_TOKENS), MAX_MAX_TOKENS)


def estimate_tokens(text: str) -> int:
    return int(len(text.split()) * TOKENS_PER_WORD)


def validate_source_references(text: str, document_count: int) -> tuple[str, list[int]]:
    """
    Rewrite [Source N] markers with N outside [1, document_count].

    Returns:
        (validated text, invalid source numbers in order of appearance)
    """
    invalid: list[int] = []

    def check(match: re.Match) -> str:
        number = int(match.group(1))
        if 1 <= number <= document_count:
            return match.group(0)
        invalid.append(number)
        return f"[Invalid Reference: Source {number}]"

    return SOURCE_MARKER_RE.sub(check, text), invalid


def referenced_sources(text: str) -> list[int]:
    """Source numbers cited in the text, first appearance first."""
    return list(dict.fromkeys(int(n) for n in SOURCE_MARKER_RE.findall(text)))


def coerce_documents(documents: Sequence[DocumentPayload | dict]) -> list[DocumentPayload]:
    """Accept payload models or raw dicts; malformed ones are invalid input."""
    parsed = []
    for doc in documents:
        if isinstance(doc, DocumentPayload):
            parsed.append(doc)
            continue
        try:
            parsed.append(DocumentPayload.model_validate(doc))
        except ValidationError as e:
            raise InvalidInputError(f"Invalid document: {e.errors()[0]['msg']}") from e
    return parsed


class GroundedSummarizer:
    """Summarizes documents with verifiable [Source N] attribution."""

    def __init__(
        self,
        model: GenerationModel,
        tracer: GatewayTracer | None = None,
        capture_content: bool = False,
    ):
        self.model = model
        self._tracer = tracer
        self.capture_content = capture_content

    @property
    def tracer(self) -> GatewayTracer:
        return self._tracer or get_tracer()

    def summarize(
        self,
        query: str,
        documents: Sequence[DocumentPayload | dict],
        options: SummarizeOptions | None = None,
    ) -> SummaryResult:
        """
        Raises:
            InvalidInputError: no documents, or a malformed document
            UpstreamError: the generation call failed
        """
        options = options or SummarizeOptions()
        docs = coerce_documents(documents)
        if not docs:
            raise InvalidInputError("At least 1 document required for summarization")

        prompt = build_summary_prompt(
            query,
            docs,
            style=options.style,
            tone=options.tone,
            max_length=options.max_length,
            include_citations=options.include_citations,
        )
        temperature = temperature_for(options.style)
        max_tokens = max_tokens_for(options.max_length)

        span_attrs = attrs.generation_attributes(self.model.model_name, temperature, max_tokens)
        span_attrs[attrs.GROUNDING_DOCUMENT_COUNT] = len(docs)
        span_attrs[attrs.GROUNDING_STYLE] = options.style
        with self.tracer.start_span("grounding.summarize", attributes=span_attrs) as span:
            start = time.perf_counter()
            try:
                text = self.model.generate_text(prompt, temperature=temperature, max_tokens=max_tokens)
                if not isinstance(text, str):
                    raise TypeError(f"model returned {type(text).__name__}, expected text")
            except GatewayError:
                raise
            except Exception as e:
                span.fail(e)
                raise UpstreamError(f"Summarization failed: {e}") from e
            generation_ms = (time.perf_counter() - start) * 1000

            summary, invalid = validate_source_references(text.strip(), len(docs))
            if invalid:
                logger.warning(f"Rewrote invalid source references: {invalid}")
            span.set_attribute(attrs.GROUNDING_INVALID_REFERENCES, len(invalid))
            if self.capture_content:
                span.set_attribute(attrs.GEN_AI_PROMPT, prompt)
                span.set_attribute(attrs.GEN_AI_COMPLETION, summary)

        citations = [
            {
                "index": number,
                "source_id": docs[number - 1].id,
                "title": docs[number - 1].title,
                "url": docs[number - 1].source_url,
            }
            for number in referenced_sources(summary)
        ]
        source_documents = [
            {
                "index": i,
                "id": doc.id,
                "title": doc.title,
                "category": doc.category,
                "author": doc.author,
                "source_url": doc.source_url,
            }
            for i, doc in enumerate(docs, start=1)
        ]

        return SummaryResult(
            summary=summary,
            citations=citations,
            source_documents=source_documents,
            metadata={
                "style": options.style,
                "tone": options.tone,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "document_count": len(docs),
                "word_count": len(summary.split()),
                "input_tokens": estimate_tokens(prompt),
                "output_tokens": estimate_tokens(summary),
                "generation_ms": generation_ms,
                "model": self.model.model_name,
                "invalid_references": invalid,
            },
        )
