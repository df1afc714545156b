"""
Document model for the retrieval system.

Single responsibility: Define the structure of documents stored in the
document index, and convert them to and from the store's source body.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np

from rag_gateway.core.errors import InvalidDocumentError

SUMMARY_LENGTH = 200


@dataclass
class Document:
    """
    A document as indexed in the enterprise corpus.

    ``summary`` is derived from the content when absent. ``embedding``
    must match the index dimensionality once set; ``validate`` enforces
    that and the presence of title and content before indexing.
    """
    id: str
    title: str
    content: str
    summary: str | None = None
    category: str = ""
    department: str = ""
    tags: list[str] = field(default_factory=list)
    author: str = ""
    date: str | None = None  # ISO-8601
    source_url: str = ""
    section: str | None = None
    embedding: np.ndarray | None = None

    @property
    def effective_summary(self) -> str:
        """The stored summary, or the first 200 chars of content."""
        if self.summary:
            return self.summary
        if len(self.content) > SUMMARY_LENGTH:
            return self.content[:SUMMARY_LENGTH] + "..."
        return self.content

    def validate(self, dimensions: int | None = None) -> None:
        """Raise InvalidDocumentError if the document cannot be indexed."""
        if not self.title or not self.title.strip():
            raise InvalidDocumentError(f"Document {self.id!r} has no title")
        if not self.content or not self.content.strip():
            raise InvalidDocumentError(f"Document {self.id!r} has no content")
        if self.embedding is not None and dimensions is not None:
            if len(self.embedding) != dimensions:
                raise InvalidDocumentError(
                    f"Document {self.id!r} embedding has {len(self.embedding)} "
                    f"dimensions, expected {dimensions}"
                )

    def to_source(self) -> dict[str, Any]:
        """Body stored in the index (everything but the id)."""
        source: dict[str, Any] = {
            "title": self.title,
            "content": self.content,
            "summary": self.effective_summary,
            "category": self.category,
            "department": self.department,
            "tags": list(self.tags),
            "author": self.author,
            "source_url": self.source_url,
        }
        if self.date:
            source["date"] = self.date
            source["timestamp"] = self.date
        if self.section:
            source["section"] = self.section
        if self.embedding is not None:
            source["embedding"] = [float(x) for x in self.embedding]
        return source

    @classmethod
    def from_source(cls, doc_id: str, source: dict[str, Any]) -> "Document":
        """Rebuild a document from a stored body."""
        embedding = source.get("embedding")
        tags = source.get("tags") or []
        if isinstance(tags, str):
            tags = [tags]
        return cls(
            id=doc_id,
            title=source.get("title", ""),
            content=source.get("content", ""),
            summary=source.get("summary"),
            category=source.get("category") or "",
            department=source.get("department") or "",
            tags=list(tags),
            author=source.get("author") or "",
            date=source.get("date") or source.get("timestamp"),
            source_url=source.get("source_url") or "",
            section=source.get("section"),
            embedding=np.asarray(embedding, dtype=np.float32) if embedding else None,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization (no embedding)."""
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "summary": self.effective_summary,
            "category": self.category,
            "department": self.department,
            "tags": list(self.tags),
            "author": self.author,
            "date": self.date,
            "source_url": self.source_url,
            "section": self.section,
        }
