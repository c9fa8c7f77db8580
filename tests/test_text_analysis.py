from __future__ import annotations

import asyncio
from typing import Any

import pytest

from scholarship_search.config import SearchSettings
from scholarship_search.enrich import comprehend as comprehend_module
from scholarship_search.enrich import text_analysis as text_analysis_module
from scholarship_search.enrich.comprehend import ComprehendTextAnalyzer
from scholarship_search.enrich.text_analysis import (
    NEUTRAL_SENTIMENT,
    combined_result_text,
    enrich_results,
    extract_scholarship_info,
    truncate_utf8,
)
from scholarship_search.normalize.schema import ScholarshipResult


class RecordingAnalyzer:
    def __init__(self, *, fail: set[str] | None = None) -> None:
        self.fail = fail or set()
        self.texts: list[str] = []

    def _maybe_fail(self, facet: str, text: str) -> None:
        self.texts.append(text)
        if facet in self.fail:
            raise RuntimeError(f"{facet} unavailable")

    def detect_entities(self, text: str) -> list[dict[str, Any]]:
        self._maybe_fail("entities", text)
        return [{"Type": "ORGANIZATION", "Text": "Society of Builders", "Score": 0.98}]

    def detect_key_phrases(self, text: str) -> list[dict[str, Any]]:
        self._maybe_fail("keyPhrases", text)
        return [{"Text": "engineering students", "Score": 0.9}]

    def detect_sentiment(self, text: str) -> dict[str, Any]:
        self._maybe_fail("sentiment", text)
        return {"sentiment": "POSITIVE", "sentimentScore": {"Positive": 0.9}}


def _result(title: str, **fields: Any) -> ScholarshipResult:
    return ScholarshipResult(scholarship_id=title, source="fixture", title=title, url="", **fields)


@pytest.mark.parametrize("limit", [1, 2, 3, 4, 5, 6, 7, 10])
def test_truncation_respects_byte_limit_and_character_boundaries(limit: int) -> None:
    text = "aé€😀b"  # 1 + 2 + 3 + 4 + 1 bytes

    truncated = truncate_utf8(text, limit)

    assert len(truncated.encode("utf-8")) <= limit
    assert text.startswith(truncated)


def test_truncation_examples() -> None:
    assert truncate_utf8("aé€😀b", 5) == "aé"
    assert truncate_utf8("aé€😀b", 6) == "aé€"
    assert truncate_utf8("short", 4500) == "short"
    assert truncate_utf8("anything", 0) == ""


def test_combined_text_joins_title_description_eligibility() -> None:
    results = [_result("A", description="desc", eligibility="elig"), _result("B")]

    assert combined_result_text(results) == "A desc elig B"


def test_enrichment_runs_all_facets_on_truncated_text() -> None:
    analyzer = RecordingAnalyzer()
    results = [_result("Engineering Award " * 50)]

    analysis = asyncio.run(enrich_results(analyzer, results, max_bytes=100))

    assert analysis is not None
    assert analysis["sentiment"]["sentiment"] == "POSITIVE"
    assert analysis["keyPhrases"][0]["Text"] == "engineering students"
    assert analysis["scholarshipInfo"]["organizations"] == [{"text": "Society of Builders", "score": 0.98}]
    assert len(analyzer.texts) == 3
    assert all(len(text.encode("utf-8")) <= 100 for text in analyzer.texts)


def test_failed_facet_falls_back_to_default() -> None:
    analyzer = RecordingAnalyzer(fail={"entities", "sentiment"})

    analysis = asyncio.run(enrich_results(analyzer, [_result("Award", description="text")]))

    assert analysis is not None
    assert analysis["entities"] == []
    assert analysis["sentiment"] == NEUTRAL_SENTIMENT
    assert analysis["keyPhrases"] == [{"Text": "engineering students", "Score": 0.9}]


def test_no_results_or_no_analyzer_means_no_analysis() -> None:
    assert asyncio.run(enrich_results(RecordingAnalyzer(), [])) is None
    assert asyncio.run(enrich_results(None, [_result("Award")])) is None


def test_entities_are_grouped_by_scholarship_relevance() -> None:
    info = extract_scholarship_info(
        [
            {"Type": "LOCATION", "Text": "Ohio", "Score": 0.9},
            {"Type": "QUANTITY", "Text": "$5,000", "Score": 0.8},
            {"Type": "QUANTITY", "Text": "several", "Score": 0.5},
            {"Type": "DATE", "Text": "March 1", "Score": 0.95},
            {"Type": "OTHER", "Text": "Computer Science", "Score": 0.7},
            {"Type": "OTHER", "Text": "Hispanic students", "Score": 0.6},
            {"Type": "PERSON", "Text": "Jane Doe", "Score": 0.99},
        ]
    )

    assert [item["text"] for item in info["locations"]] == ["Ohio"]
    assert [item["text"] for item in info["amounts"]] == ["$5,000"]
    assert [item["text"] for item in info["dates"]] == ["March 1"]
    assert [item["text"] for item in info["academicFields"]] == ["Computer Science"]
    assert [item["text"] for item in info["demographics"]] == ["Hispanic students"]
    assert info["organizations"] == []


def test_comprehend_analyzer_maps_responses() -> None:
    calls: list[tuple[str, dict[str, Any]]] = []

    class FakeComprehend:
        def detect_entities(self, **kwargs: Any) -> dict[str, Any]:
            calls.append(("entities", kwargs))
            return {"Entities": [{"Type": "DATE", "Text": "May"}]}

        def detect_key_phrases(self, **kwargs: Any) -> dict[str, Any]:
            calls.append(("key_phrases", kwargs))
            return {}

        def detect_sentiment(self, **kwargs: Any) -> dict[str, Any]:
            calls.append(("sentiment", kwargs))
            return {"Sentiment": "NEUTRAL", "SentimentScore": {"Neutral": 0.99}}

    analyzer = ComprehendTextAnalyzer(FakeComprehend(), language_code="es")

    assert analyzer.detect_entities("texto") == [{"Type": "DATE", "Text": "May"}]
    assert analyzer.detect_key_phrases("texto") == []
    assert analyzer.detect_sentiment("texto") == {"sentiment": "NEUTRAL", "sentimentScore": {"Neutral": 0.99}}
    assert calls[0] == ("entities", {"Text": "texto", "LanguageCode": "es"})


def test_comprehend_client_makes_single_attempts_within_the_analysis_timeout(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    seen: dict[str, Any] = {}

    def fake_client(service_name: str, **kwargs: Any) -> object:
        seen["service_name"] = service_name
        seen.update(kwargs)
        return object()

    monkeypatch.setattr(comprehend_module.boto3, "client", fake_client)
    settings = SearchSettings.from_mapping({"analysis_timeout_seconds": 7.5, "aws_region": "us-west-2"})

    analyzer = ComprehendTextAnalyzer.from_settings(settings)

    config = seen["config"]
    assert seen["service_name"] == "comprehend"
    assert seen["region_name"] == "us-west-2"
    assert config.retries == {"total_max_attempts": 1, "mode": "standard"}
    assert config.connect_timeout == 7.5
    assert config.read_timeout == 7.5
    assert analyzer.language_code == "en"


def test_analysis_errors_leave_the_response_without_analysis(monkeypatch: pytest.MonkeyPatch) -> None:
    async def broken_analysis(*args: Any, **kwargs: Any) -> dict[str, Any]:
        raise UnicodeEncodeError("utf-8", "\ud800", 0, 1, "surrogates not allowed")

    monkeypatch.setattr(text_analysis_module, "analyze_text", broken_analysis)

    analysis = asyncio.run(enrich_results(RecordingAnalyzer(), [_result("Award", description="text")]))

    assert analysis is None


def test_truncation_replaces_lone_surrogates() -> None:
    assert truncate_utf8("bad \ud800 text", 4500) == "bad ? text"
