"""
Analyze tool - sentiment, entities, topics and insights per document.

Every (document, analysis) pair is an independent model call; all of
them fan out together and are joined under one deadline before the
cross-document aggregate is computed.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Callable, Sequence

from rag_gateway.core import GenerationModel
from rag_gateway.core.errors import InvalidInputError
from rag_gateway.grounding.summarizer import coerce_documents
from rag_gateway.schemas.requests import AnalyzeOptions, DocumentPayload
from rag_gateway.tools.fanout import DEFAULT_MAX_WORKERS, DEFAULT_TIMEOUT_S, run_concurrently
from rag_gateway.tools.parsing import (
    extract_section,
    list_items,
    parse_sentiment_score,
    sentiment_label,
)

logger = logging.getLogger(__name__)

CONTENT_LIMIT = 1000
TOPIC_CONFIDENCE = 0.8
ENTITY_CATEGORIES = ("people", "organizations", "locations", "technologies", "products")


def _document_block(document: DocumentPayload) -> str:
    content = " ".join(document.content[:CONTENT_LIMIT].split())
    return f"Title: {document.title}\nContent: {content}"


def sentiment_prompt(document: DocumentPayload) -> str:
    return f"""Analyze the sentiment of this document and provide a score from -1 (very negative) to 1 (very positive):

{_document_block(document)}

Respond with:
1. Sentiment score (number between -1 and 1)
2. Sentiment label (positive/negative/neutral)
3. Brief explanation"""


def entities_prompt(document: DocumentPayload) -> str:
    return f"""Extract key entities from this document:

{_document_block(document)}

List entities in these categories:
- People
- Organizations
- Locations
- Technologies
- Products"""


def topics_prompt(document: DocumentPayload) -> str:
    return f"""Identify the main topics and themes in this document:

{_document_block(document)}

List 5-7 main topics with confidence scores."""


def insights_prompt(document: DocumentPayload) -> str:
    return f"""Generate actionable insights from this document:

{_document_block(document)}

Provide:
1. Key takeaways (3-5 points)
2. Actionable recommendations
3. Potential implications"""


def aggregate_analyses(analyses: list[dict[str, Any]]) -> dict[str, Any]:
    """Cross-document view: mean sentiment, topic frequency, distribution."""
    sentiments = [a["sentiment"]["score"] for a in analyses if "sentiment" in a]
    average = sum(sentiments) / len(sentiments) if sentiments else 0.0

    topic_counts = Counter(
        topic["topic"] for a in analyses for topic in a.get("topics", [])
    )
    top_topics = [
        {"topic": topic, "frequency": count}
        for topic, count in topic_counts.most_common(10)
    ]

    return {
        "total_documents": len(analyses),
        "average_sentiment": average,
        "top_topics": top_topics,
        "sentiment_distribution": {
            "positive": sum(1 for s in sentiments if s > 0.3),
            "neutral": sum(1 for s in sentiments if -0.3 <= s <= 0.3),
            "negative": sum(1 for s in sentiments if s < -0.3),
        },
    }


class AnalyzeTool:
    """Per-document analyses with the generation model."""

    def __init__(
        self,
        model: GenerationModel,
        timeout: float = DEFAULT_TIMEOUT_S,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        self.model = model
        self.timeout = timeout
        self.max_workers = max_workers

    def sentiment(self, document: DocumentPayload) -> dict[str, Any]:
        response = self.model.generate_text(sentiment_prompt(document))
        score = parse_sentiment_score(response)
        return {"score": score, "label": sentiment_label(score), "explanation": response}

    def entities(self, document: DocumentPayload) -> dict[str, list[str]]:
        response = self.model.generate_text(entities_prompt(document))
        return {
            category: extract_section(response, category, numbered=True)
            for category in ENTITY_CATEGORIES
        }

    def topics(self, document: DocumentPayload) -> list[dict[str, Any]]:
        response = self.model.generate_text(topics_prompt(document))
        return [
            {"topic": item, "confidence": TOPIC_CONFIDENCE}
            for item in list_items(response)
        ]

    def insights(self, document: DocumentPayload) -> dict[str, Any]:
        response = self.model.generate_text(insights_prompt(document))
        return {
            "key_takeaways": extract_section(response, "takeaways", numbered=True),
            "recommendations": extract_section(response, "recommendations", numbered=True),
            "implications": extract_section(response, "implications", numbered=True),
            "full_analysis": response,
        }

    def analyze(
        self,
        documents: Sequence[DocumentPayload | dict],
        options: AnalyzeOptions | None = None,
    ) -> dict[str, Any]:
        """
        Raises:
            InvalidInputError: empty document list
            UpstreamError: a model call failed or timed out
        """
        options = options or AnalyzeOptions()
        docs = coerce_documents(documents)
        if not docs:
            raise InvalidInputError("At least 1 document required for analysis")

        analyses_wanted: list[tuple[str, Callable[[DocumentPayload], Any]]] = []
        if options.include_sentiment:
            analyses_wanted.append(("sentiment", self.sentiment))
        if options.include_entities:
            analyses_wanted.append(("entities", self.entities))
        if options.include_topics:
            analyses_wanted.append(("topics", self.topics))
        if options.include_insights:
            analyses_wanted.append(("insights", self.insights))

        jobs = [(i, name, fn) for i in range(len(docs)) for name, fn in analyses_wanted]
        outputs = run_concurrently(
            [lambda i=i, fn=fn: fn(docs[i]) for i, _, fn in jobs],
            timeout=self.timeout,
            max_workers=self.max_workers,
            label="analyze",
        )

        analyses: list[dict[str, Any]] = [{"id": doc.id, "title": doc.title} for doc in docs]
        for (i, name, _), output in zip(jobs, outputs):
            analyses[i][name] = output

        logger.debug(f"Analyzed {len(docs)} documents ({len(jobs)} model calls)")
        return {
            "documents": analyses,
            "aggregate": aggregate_analyses(analyses),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
