"""
Unit Tests for the Compare and Analyze tools

The generation model is either the deterministic mock or a MagicMock
whose replies depend on which prompt it receives.
"""

import threading
import time
from unittest.mock import MagicMock

import pytest

from rag_gateway.core.errors import InvalidInputError, UpstreamError
from rag_gateway.generation import MockGenerationModel
from rag_gateway.schemas.requests import AnalyzeOptions, CompareOptions
from rag_gateway.tools import AnalyzeTool, CompareTool
from rag_gateway.tools.analyze import aggregate_analyses
from rag_gateway.tools.fanout import run_concurrently
from rag_gateway.tools.parsing import (
    bullet_points,
    extract_section,
    list_items,
    parse_sentiment_score,
    sentiment_label,
)


# ---------------------------------------------------------------------------
# FIXTURES
# ---------------------------------------------------------------------------


@pytest.fixture
def documents():
    return [
        {
            "id": "sec-mfa",
            "title": "MFA Guide",
            "content": "Require MFA for remote access. Hardware keys resist phishing.",
            "category": "security",
            "author": "Security Team",
        },
        {
            "id": "sec-encryption",
            "title": "Encryption Guide",
            "content": "Encrypt data at rest. Rotate keys yearly. Use TLS in transit.",
            "category": "security",
        },
    ]


def _scripted_reply(prompt: str) -> str:
    if prompt.startswith("Extract 5-7 key points"):
        return "Key points:\n- point one\n- point two"
    if prompt.startswith("Compare these documents"):
        return (
            "Similarities:\n- both cover security\n\n"
            "Differences:\n- one covers keys\n\n"
            "Unique aspects:\n- only one covers TLS"
        )
    if prompt.startswith("Analyze the sentiment"):
        return "Sentiment score: 0.8\nLabel: positive"
    if prompt.startswith("Extract key entities"):
        return (
            "People:\n- Alice\n\nOrganizations:\n- Acme\n\nLocations:\n- Berlin\n\n"
            "Technologies:\n- Kubernetes\n\nProducts:\n- Widget"
        )
    if prompt.startswith("Identify the main topics"):
        return "1. Security\n2. Compliance"
    if prompt.startswith("Generate actionable insights"):
        return (
            "Key takeaways:\n1. Patch fast\n\n"
            "Recommendations:\n1. Automate\n\n"
            "Implications:\n1. Less risk"
        )
    return "Both documents address security."


@pytest.fixture
def scripted_model():
    model = MagicMock()
    model.generate_text.side_effect = lambda prompt, **kwargs: _scripted_reply(prompt)
    return model


# ---------------------------------------------------------------------------
# FAN-OUT
# ---------------------------------------------------------------------------


class TestRunConcurrently:

    def test_results_in_submission_order(self):
        def slow(value, delay):
            time.sleep(delay)
            return value

        results = run_concurrently([lambda: slow("a", 0.05), lambda: slow("b", 0.0)])

        assert results == ["a", "b"]

    def test_empty(self):
        assert run_concurrently([]) == []

    def test_task_failure_is_upstream_error(self):
        def boom():
            raise RuntimeError("model down")

        with pytest.raises(UpstreamError, match="analyze failed: model down"):
            run_concurrently([boom, lambda: 1], label="analyze")

    def test_gateway_errors_pass_through(self):
        def invalid():
            raise InvalidInputError("bad document")

        with pytest.raises(InvalidInputError):
            run_concurrently([invalid])

    def test_deadline(self):
        release = threading.Event()

        def stuck():
            release.wait(5)
            return "late"

        try:
            with pytest.raises(UpstreamError, match="timed out"):
                run_concurrently([stuck], timeout=0.05)
        finally:
            release.set()


# ---------------------------------------------------------------------------
# PARSING
# ---------------------------------------------------------------------------


class TestParsing:

    def test_bullet_points(self):
        assert bullet_points("Intro\n- one\n* two\n• three\nplain") == ["one", "two", "three"]

    def test_extract_section_stops_at_blank(self):
        text = "Similarities:\n- a\n- b\n\nDifferences:\n- c"

        assert extract_section(text, "similarities") == ["a", "b"]
        assert extract_section(text, "differences") == ["c"]

    def test_extract_section_numbered(self):
        assert extract_section("Key takeaways:\n1. first\n2. second", "takeaways", numbered=True) == [
            "first",
            "second",
        ]

    def test_extract_section_missing_keyword(self):
        assert extract_section("- a", "differences") == []

    def test_list_items(self):
        assert list_items("Topics:\n1. Security\n- Compliance\nnot an item") == ["Security", "Compliance"]

    @pytest.mark.parametrize("text,expected", [
        ("Sentiment score: 0.6", 0.6),
        ("score -0.4 overall", -0.4),
        ("Score: 3", 1.0),
        ("no number here", 0.0),
    ])
    def test_parse_sentiment_score(self, text, expected):
        assert parse_sentiment_score(text) == pytest.approx(expected)

    def test_sentiment_label(self):
        assert sentiment_label(0.5) == "positive"
        assert sentiment_label(-0.5) == "negative"
        assert sentiment_label(0.3) == "neutral"


# ---------------------------------------------------------------------------
# COMPARE
# ---------------------------------------------------------------------------


class TestCompareTool:

    def test_requires_two_documents(self, scripted_model, documents):
        with pytest.raises(InvalidInputError, match="At least 2 documents required for comparison"):
            CompareTool(scripted_model).compare(documents[:1])

        scripted_model.generate_text.assert_not_called()

    def test_comparison(self, scripted_model, documents):
        result = CompareTool(scripted_model).compare(documents)

        assert [d["id"] for d in result["documents"]] == ["sec-mfa", "sec-encryption"]
        assert result["documents"][0]["key_points"] == ["point one", "point two"]
        assert result["documents"][0]["metadata"]["category"] == "security"
        assert result["similarities"] == ["both cover security"]
        assert result["differences"] == ["one covers keys"]
        assert result["unique_aspects"] == ["only one covers TLS"]
        assert result["summary"] == "Both documents address security."

    def test_options_skip_calls(self, scripted_model, documents):
        options = CompareOptions(include_metadata=False, highlight_differences=False, generate_summary=False)

        result = CompareTool(scripted_model).compare(documents, options)

        assert "metadata" not in result["documents"][0]
        assert "summary" not in result
        assert result["differences"] == []
        assert scripted_model.generate_text.call_count == 2

    def test_model_failure(self, documents):
        model = MagicMock()
        model.generate_text.side_effect = ConnectionError("unreachable")

        with pytest.raises(UpstreamError):
            CompareTool(model).compare(documents)

    @pytest.mark.parametrize("failing_prompt", ["Compare these documents", "Generate a concise comparison summary"])
    def test_comparison_call_failure_is_upstream_error(self, scripted_model, documents, failing_prompt):
        def reply(prompt, **kwargs):
            if prompt.startswith(failing_prompt):
                raise ConnectionError("reset by peer")
            return _scripted_reply(prompt)

        scripted_model.generate_text.side_effect = reply

        with pytest.raises(UpstreamError, match="Comparison failed: reset by peer"):
            CompareTool(scripted_model).compare(documents)

    def test_with_mock_model(self, documents):
        result = CompareTool(MockGenerationModel()).compare(documents)

        assert result["documents"][1]["key_points"] == [
            "Encrypt data at rest",
            "Rotate keys yearly",
            "Use TLS in transit",
        ]


# ---------------------------------------------------------------------------
# ANALYZE
# ---------------------------------------------------------------------------


class TestAnalyzeTool:

    def test_requires_documents(self, scripted_model):
        with pytest.raises(InvalidInputError):
            AnalyzeTool(scripted_model).analyze([])

    def test_full_analysis(self, scripted_model, documents):
        result = AnalyzeTool(scripted_model).analyze(documents)
        first = result["documents"][0]

        assert first["sentiment"] == {
            "score": 0.8,
            "label": "positive",
            "explanation": "Sentiment score: 0.8\nLabel: positive",
        }
        assert first["entities"]["people"] == ["Alice"]
        assert first["entities"]["technologies"] == ["Kubernetes"]
        assert [t["topic"] for t in first["topics"]] == ["Security", "Compliance"]
        assert first["insights"]["key_takeaways"] == ["Patch fast"]
        assert first["insights"]["recommendations"] == ["Automate"]
        assert result["timestamp"]

    def test_one_call_per_document_and_analysis(self, scripted_model, documents):
        AnalyzeTool(scripted_model).analyze(documents)

        assert scripted_model.generate_text.call_count == 8

    def test_options_select_analyses(self, scripted_model, documents):
        options = AnalyzeOptions(include_entities=False, include_topics=False, include_insights=False)

        result = AnalyzeTool(scripted_model).analyze(documents, options)

        assert set(result["documents"][0]) == {"id", "title", "sentiment"}
        assert scripted_model.generate_text.call_count == 2

    def test_aggregate(self, scripted_model, documents):
        aggregate = AnalyzeTool(scripted_model).analyze(documents)["aggregate"]

        assert aggregate["total_documents"] == 2
        assert aggregate["average_sentiment"] == pytest.approx(0.8)
        assert aggregate["sentiment_distribution"] == {"positive": 2, "neutral": 0, "negative": 0}
        assert {"topic": "Security", "frequency": 2} in aggregate["top_topics"]

    def test_with_mock_model(self, documents):
        result = AnalyzeTool(MockGenerationModel()).analyze(documents)

        assert result["documents"][0]["sentiment"]["label"] == "neutral"
        assert result["aggregate"]["sentiment_distribution"]["neutral"] == 2


class TestAggregateAnalyses:

    def test_empty(self):
        aggregate = aggregate_analyses([])

        assert aggregate["total_documents"] == 0
        assert aggregate["average_sentiment"] == 0.0
