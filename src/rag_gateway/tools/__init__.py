"""
Document tools beyond search: comparison and analysis.

Both fan out independent model calls concurrently under a deadline.
"""

from rag_gateway.tools.analyze import AnalyzeTool, aggregate_analyses
from rag_gateway.tools.compare import CompareTool
from rag_gateway.tools.fanout import run_concurrently
from rag_gateway.tools.parsing import (
    bullet_points,
    extract_section,
    list_items,
    parse_sentiment_score,
    sentiment_label,
)

__all__ = [
    "AnalyzeTool",
    "CompareTool",
    "aggregate_analyses",
    "run_concurrently",
    "bullet_points",
    "extract_section",
    "list_items",
    "parse_sentiment_score",
    "sentiment_label",
]
