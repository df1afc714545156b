"""
Compare tool - side-by-side comparison of two or more documents.

Key points are extracted per document concurrently, then one call
contrasts them and an optional second call writes a short summary.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Sequence

from rag_gateway.core import GenerationModel
from rag_gateway.core.errors import GatewayError, InvalidInputError, UpstreamError
from rag_gateway.grounding.summarizer import coerce_documents
from rag_gateway.schemas.requests import CompareOptions, DocumentPayload
from rag_gateway.tools.fanout import DEFAULT_MAX_WORKERS, DEFAULT_TIMEOUT_S, run_concurrently
from rag_gateway.tools.parsing import bullet_points, extract_section

logger = logging.getLogger(__name__)


def key_points_prompt(document: DocumentPayload) -> str:
    return f"""Extract 5-7 key points from this document:
Title: {document.title}
Content: {document.content}

Format as a bulleted list."""


def differences_prompt(summaries: list[dict[str, Any]]) -> str:
    blocks = []
    for i, summary in enumerate(summaries, start=1):
        points = "\n".join(f"- {p}" for p in summary["key_points"])
        blocks.append(f"Document {i}: {summary['title']}\nKey Points:\n{points}\n")
    joined = "\n".join(blocks)
    return f"""Compare these documents and identify similarities and differences:

{joined}
Provide:
1. Common themes (similarities)
2. Key differences
3. Unique aspects of each document"""


def comparison_summary_prompt(comparison: dict[str, Any]) -> str:
    return f"""Generate a concise comparison summary for these documents:
{json.dumps(comparison, indent=2, default=str)}

Provide a 2-3 sentence executive summary."""


class CompareTool:
    """Compares documents with the generation model."""

    def __init__(
        self,
        model: GenerationModel,
        timeout: float = DEFAULT_TIMEOUT_S,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        self.model = model
        self.timeout = timeout
        self.max_workers = max_workers

    def _generate(self, prompt: str) -> str:
        try:
            return self.model.generate_text(prompt) or ""
        except GatewayError:
            raise
        except Exception as e:
            raise UpstreamError(f"Comparison failed: {e}") from e

    def _key_points(self, document: DocumentPayload) -> list[str]:
        response = self.model.generate_text(key_points_prompt(document))
        return bullet_points(response)

    def compare(
        self,
        documents: Sequence[DocumentPayload | dict],
        options: CompareOptions | None = None,
    ) -> dict[str, Any]:
        """
        Raises:
            InvalidInputError: fewer than 2 documents
            UpstreamError: a model call failed or timed out
        """
        options = options or CompareOptions()
        docs = coerce_documents(documents)
        if len(docs) < 2:
            raise InvalidInputError("At least 2 documents required for comparison")

        key_points = run_concurrently(
            [lambda doc=doc: self._key_points(doc) for doc in docs],
            timeout=self.timeout,
            max_workers=self.max_workers,
            label="compare",
        )

        summaries = []
        for doc, points in zip(docs, key_points):
            summary: dict[str, Any] = {"id": doc.id, "title": doc.title, "key_points": points}
            if options.include_metadata:
                summary["metadata"] = {
                    "category": doc.category,
                    "department": doc.department,
                    "date": doc.date,
                    "author": doc.author,
                }
            summaries.append(summary)

        comparison: dict[str, Any] = {
            "documents": summaries,
            "similarities": [],
            "differences": [],
            "unique_aspects": [],
        }

        if options.highlight_differences:
            analysis = self._generate(differences_prompt(summaries))
            comparison["similarities"] = extract_section(analysis, "similarities")
            comparison["differences"] = extract_section(analysis, "differences")
            comparison["unique_aspects"] = extract_section(analysis, "unique")

        if options.generate_summary:
            comparison["summary"] = self._generate(comparison_summary_prompt(comparison)).strip()

        logger.debug(f"Compared {len(docs)} documents")
        return comparison
