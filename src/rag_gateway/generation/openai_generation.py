"""
Generation Module - Single Responsibility: talk to the text model.

Two operations, both behind the GenerationModel protocol:
- generate_text: free-text completion for a prompt
- rerank_documents: one relevance score per candidate, order-aligned

Reranking uses OpenAI structured outputs so the score list is parsed
against a Pydantic schema instead of scraped from free text.
"""

from __future__ import annotations

import logging
import os
import re

from openai import OpenAI
from pydantic import BaseModel, Field

from rag_gateway.core.errors import UpstreamError
from rag_gateway.core.protocols import GenerationModel

logger = logging.getLogger(__name__)

DEFAULT_GENERATION_MODEL = "gpt-4o-mini"
RERANK_TEXT_LIMIT = 2000

RERANK_SYSTEM_PROMPT = """You are a search relevance judge.
For each numbered document, score how well it answers the query on a scale
from 0.0 (irrelevant) to 1.0 (directly answers the query).
Return exactly one score per document, in the order given."""


class RelevanceScores(BaseModel):
    """Structured output contract for reranking."""

    scores: list[float] = Field(
        description="One relevance score in [0, 1] per document, same order as input"
    )


def build_rerank_prompt(query: str, documents: list[dict[str, str]]) -> str:
    """Pure function: the user message for a rerank call."""
    lines = [f"QUERY: {query}", "", f"DOCUMENTS ({len(documents)}):"]
    for i, doc in enumerate(documents, start=1):
        text = doc.get("text", "")[:RERANK_TEXT_LIMIT]
        lines.append(f"[{i}] {text}")
    return "\n".join(lines)


class OpenAIGenerationModel:
    """OpenAI chat-completions backed generation model."""

    def __init__(
        self,
        model: str = DEFAULT_GENERATION_MODEL,
        api_key: str | None = None,
        timeout: float = 30.0,
        max_retries: int = 2,
        client: OpenAI | None = None,
    ):
        self._model = model
        self._client = client or OpenAI(
            api_key=api_key or os.environ.get("OPENAI_API_KEY"),
            timeout=timeout,
            max_retries=max_retries,
        )

    @property
    def model_name(self) -> str:
        return self._model

    def generate_text(
        self,
        prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1024,
    ) -> str:
        """Generate text for a prompt."""
        response = self._client.chat.completions.create(
            model=self._model,
            messages=[{"role": "user", "content": prompt}],
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return response.choices[0].message.content or ""

    def rerank_documents(
        self,
        query: str,
        documents: list[dict[str, str]],
    ) -> list[float]:
        """Score documents against the query with a structured-output call."""
        if not documents:
            return []

        response = self._client.beta.chat.completions.parse(
            model=self._model,
            messages=[
                {"role": "system", "content": RERANK_SYSTEM_PROMPT},
                {"role": "user", "content": build_rerank_prompt(query, documents)},
            ],
            response_format=RelevanceScores,
            temperature=0.0,
        )
        parsed = response.choices[0].message.parsed
        if parsed is None:
            raise UpstreamError("Model returned no parsed relevance scores")
        return list(parsed.scores)


# ---------------------------------------------------------------------------
# MOCK MODEL (Testing/Development)
# ---------------------------------------------------------------------------

_SOURCE_HEADER_RE = re.compile(r"^\[Source (\d+):.*\]$")
_WORD_RE = re.compile(r"\w+")


class MockGenerationModel:
    """
    Deterministic stand-in for the generation model.

    - Summary prompts (with [Source N: ...] headers) get one sentence per
      source, each tagged with its [Source N] marker.
    - Sentiment prompts get a neutral score line.
    - Anything else gets a bullet list built from the prompt's content.
    - Reranking scores by query-word overlap.

    NOT for production use - only for testing/development.
    """

    def __init__(self, model_name: str = "mock-generation"):
        self._model_name = model_name

    @property
    def model_name(self) -> str:
        return self._model_name

    def generate_text(
        self,
        prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1024,
    ) -> str:
        lines = prompt.splitlines()

        sentences = []
        for i, line in enumerate(lines):
            match = _SOURCE_HEADER_RE.match(line.strip())
            if match and i + 1 < len(lines):
                excerpt = lines[i + 1].strip()
                first = re.split(r"(?<=[.!?])\s+", excerpt)[0].rstrip(".!?")
                if first:
                    sentences.append(f"{first} [Source {match.group(1)}].")
        if sentences:
            return " ".join(sentences)

        if "sentiment" in prompt.lower():
            return "Sentiment score: 0.0\nLabel: neutral\nExplanation: Informational content."

        content = ""
        for line in lines:
            if line.startswith("Content:"):
                content = line[len("Content:"):].strip()
                break
        points = [s.strip() for s in re.split(r"[.!?]+", content) if s.strip()]
        if not points:
            return "Summary:\n- No content available"
        return "Key points:\n" + "\n".join(f"- {p}" for p in points[:7])

    def rerank_documents(
        self,
        query: str,
        documents: list[dict[str, str]],
    ) -> list[float]:
        query_words = {w for w in _WORD_RE.findall(query.lower()) if len(w) > 2}
        scores = []
        for doc in documents:
            doc_words = set(_WORD_RE.findall(doc.get("text", "").lower()))
            if not query_words:
                scores.append(0.0)
            else:
                scores.append(len(query_words & doc_words) / len(query_words))
        return scores


def get_generation_model(
    use_mock: bool = False,
    model: str = DEFAULT_GENERATION_MODEL,
    api_key: str | None = None,
    timeout: float = 30.0,
    max_retries: int = 2,
) -> GenerationModel:
    """
    Factory function to get the appropriate generation model.

    Args:
        use_mock: If True, return MockGenerationModel (for testing)
    """
    if use_mock:
        return MockGenerationModel()
    logger.debug(f"Using OpenAI generation model {model}")
    return OpenAIGenerationModel(
        model=model,
        api_key=api_key,
        timeout=timeout,
        max_retries=max_retries,
    )
