"""
Request Schemas

These Pydantic models define the INPUT CONTRACT of the gateway tools.
The HTTP layer and the CLI both parse into them, so validation happens
once, before any external call is made.

Wire names are camelCase (``topK``, ``enableReranking``); Python code
uses the snake_case field names. Both are accepted on input.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base model: camelCase aliases, snake_case accepted too."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


# ---------------------------------------------------------------------------
# FILTERS
# ---------------------------------------------------------------------------


class DateRangePayload(WireModel):
    start: date | None = None
    end: date | None = None

    @field_validator("start", "end", mode="before")
    @classmethod
    def _date_part(cls, value: Any) -> Any:
        # Accept full ISO timestamps; only the calendar date matters
        if isinstance(value, str) and len(value) > 10:
            return value[:10]
        return value

    @model_validator(mode="after")
    def _ordered(self) -> "DateRangePayload":
        if self.start and self.end and self.start > self.end:
            raise ValueError("dateRange.start must not be after dateRange.end")
        return self


class FiltersPayload(WireModel):
    date_range: DateRangePayload | None = None
    category: list[str] = Field(default_factory=list)
    department: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# TOOL OPTIONS
# ---------------------------------------------------------------------------


class SearchOptions(WireModel):
    """Options for the search tool."""

    enable_reranking: bool = False
    include_aggregations: bool = False
    rrf_rank_constant: int = Field(default=60, ge=1)
    rrf_window_size: int = Field(default=100, ge=1)
    num_candidates: int = Field(default=100, ge=1)
    use_hybrid: bool = True
    highlight: bool = True


SummaryStyle = Literal["brief", "comprehensive", "technical", "executive"]
SummaryTone = Literal["formal", "casual", "professional"]


class SummarizeOptions(WireModel):
    """Options for the grounded summarizer."""

    style: SummaryStyle = "comprehensive"
    tone: SummaryTone = "professional"
    max_length: int = Field(default=300, ge=20, le=2000)
    include_citations: bool = True


class CompareOptions(WireModel):
    include_metadata: bool = True
    highlight_differences: bool = True
    generate_summary: bool = True


class AnalyzeOptions(WireModel):
    include_sentiment: bool = True
    include_entities: bool = True
    include_topics: bool = True
    include_insights: bool = True


CitationStyle = Literal["inline", "footnote", "endnote"]


# ---------------------------------------------------------------------------
# REQUEST BODIES
# ---------------------------------------------------------------------------


class DocumentPayload(BaseModel):
    """A document as passed between tools (search output, summarize input)."""

    model_config = ConfigDict(extra="ignore")

    id: str
    title: str
    content: str = ""
    summary: str | None = None
    category: str = ""
    department: str = ""
    tags: list[str] = Field(default_factory=list)
    author: str = ""
    date: str | None = None
    source_url: str = ""
    section: str | None = None
    score: float | None = None


class SearchRequest(WireModel):
    query: str = ""
    filters: FiltersPayload | None = None
    top_k: int = Field(default=5, gt=0, le=100)
    options: SearchOptions = Field(default_factory=SearchOptions)


class SummarizeRequest(WireModel):
    query: str
    documents: list[DocumentPayload]
    options: SummarizeOptions = Field(default_factory=SummarizeOptions)


class CiteRequest(WireModel):
    search_results: list[DocumentPayload]
    generated_text: str
    style: CitationStyle = "inline"


class CompareRequest(WireModel):
    documents: list[DocumentPayload]
    options: CompareOptions = Field(default_factory=CompareOptions)


class AnalyzeRequest(WireModel):
    documents: list[DocumentPayload]
    options: AnalyzeOptions = Field(default_factory=AnalyzeOptions)
