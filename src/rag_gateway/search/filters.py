"""
Search filters - faceted filtering shared by both retrieval channels.

Semantics: filter kinds are combined with AND; values within one kind
are combined with OR. ``category in {A, B} AND department in {X}``.

The same clause list is attached to the lexical and the vector channel
so fusion never mixes filtered and unfiltered candidates. ``matches``
re-applies the filters client-side after the store answers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from pydantic import ValidationError

from rag_gateway.core.errors import InvalidInputError
from rag_gateway.schemas.requests import FiltersPayload


def parse_iso_date(value: Any) -> date | None:
    """Calendar date of an ISO-8601 date or timestamp, None if unparsable."""
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


@dataclass(frozen=True)
class DateRange:
    start: date | None = None
    end: date | None = None

    def contains(self, value: date | None) -> bool:
        if value is None:
            return False
        if self.start and value < self.start:
            return False
        if self.end and value > self.end:
            return False
        return True

    def to_clause(self) -> dict:
        bounds = {}
        if self.start:
            bounds["gte"] = self.start.isoformat()
        if self.end:
            bounds["lte"] = self.end.isoformat()
        return {"range": {"date": bounds}}


@dataclass(frozen=True)
class SearchFilters:
    """Optional faceted filters for a search request."""
    date_range: DateRange | None = None
    category: frozenset[str] = field(default_factory=frozenset)
    department: frozenset[str] = field(default_factory=frozenset)
    tags: frozenset[str] = field(default_factory=frozenset)

    @property
    def count(self) -> int:
        """Number of active filter kinds."""
        return sum([
            self.date_range is not None,
            bool(self.category),
            bool(self.department),
            bool(self.tags),
        ])

    @property
    def is_empty(self) -> bool:
        return self.count == 0

    def to_clauses(self) -> list[dict]:
        """Store filter clauses (terms on keyword fields, range on date)."""
        clauses: list[dict] = []
        if self.category:
            clauses.append({"terms": {"category.keyword": sorted(self.category)}})
        if self.department:
            clauses.append({"terms": {"department.keyword": sorted(self.department)}})
        if self.tags:
            clauses.append({"terms": {"tags.keyword": sorted(self.tags)}})
        if self.date_range is not None:
            clauses.append(self.date_range.to_clause())
        return clauses

    def matches(self, source: dict[str, Any]) -> bool:
        """Client-side check of a stored document body against the filters."""
        if self.category and source.get("category") not in self.category:
            return False
        if self.department and source.get("department") not in self.department:
            return False
        if self.tags:
            doc_tags = source.get("tags") or []
            if isinstance(doc_tags, str):
                doc_tags = [doc_tags]
            if not self.tags.intersection(doc_tags):
                return False
        if self.date_range is not None:
            doc_date = parse_iso_date(source.get("date") or source.get("timestamp"))
            if not self.date_range.contains(doc_date):
                return False
        return True

    @classmethod
    def from_payload(cls, payload: FiltersPayload | None) -> "SearchFilters":
        if payload is None:
            return cls()
        date_range = None
        if payload.date_range and (payload.date_range.start or payload.date_range.end):
            date_range = DateRange(payload.date_range.start, payload.date_range.end)
        return cls(
            date_range=date_range,
            category=frozenset(payload.category),
            department=frozenset(payload.department),
            tags=frozenset(payload.tags),
        )

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> "SearchFilters":
        """Parse the wire shape; malformed filters raise InvalidInputError."""
        if not raw:
            return cls()
        try:
            payload = FiltersPayload.model_validate(raw)
        except ValidationError as e:
            raise InvalidInputError(f"Invalid filters: {e.errors()[0]['msg']}") from e
        return cls.from_payload(payload)
