"""Pydantic input contracts for the gateway tools."""

from rag_gateway.schemas.requests import (
    AnalyzeOptions,
    AnalyzeRequest,
    CiteRequest,
    CitationStyle,
    CompareOptions,
    CompareRequest,
    DateRangePayload,
    DocumentPayload,
    FiltersPayload,
    SearchOptions,
    SearchRequest,
    SummarizeOptions,
    SummarizeRequest,
    SummaryStyle,
    SummaryTone,
)

__all__ = [
    "AnalyzeOptions",
    "AnalyzeRequest",
    "CiteRequest",
    "CitationStyle",
    "CompareOptions",
    "CompareRequest",
    "DateRangePayload",
    "DocumentPayload",
    "FiltersPayload",
    "SearchOptions",
    "SearchRequest",
    "SummarizeOptions",
    "SummarizeRequest",
    "SummaryStyle",
    "SummaryTone",
]
