from __future__ import annotations

import asyncio
import time
from typing import Any

import pytest
import requests

from scholarship_search.config import SearchSettings
from scholarship_search.errors import ValidationError
from scholarship_search.ingest.base import SourceKind
from scholarship_search.ingest.sources.careeronestop import CareerOneStopSource
from scholarship_search.ingest.sources.generative import GenerativeRecommendationSource
from scholarship_search.ingest.sources.structured_store import StructuredStoreSource
from scholarship_search.io.store import SnapshotScholarshipStore
from scholarship_search.service import ScholarshipSearchService

from tests.fakes import FakeSource


class CannedGenerator:
    def __init__(self, reply: str) -> None:
        self.reply = reply

    def complete(self, system: str, prompt: str, max_tokens: int, temperature: float) -> str:
        return self.reply


class TimingOutHttpClient:
    def get_text(self, url: str, *, params: dict[str, Any] | None = None) -> str:
        raise requests.ConnectTimeout("Max retries exceeded")


class StaticAnalyzer:
    def detect_entities(self, text: str) -> list[dict[str, Any]]:
        return [{"Type": "LOCATION", "Text": "Ohio", "Score": 0.9}]

    def detect_key_phrases(self, text: str) -> list[dict[str, Any]]:
        return []

    def detect_sentiment(self, text: str) -> dict[str, Any]:
        return {"sentiment": "NEUTRAL", "sentimentScore": None}


def _store_source(*records: dict[str, Any]) -> StructuredStoreSource:
    return StructuredStoreSource(SnapshotScholarshipStore.from_records(records))


def _engineering(title: str) -> dict[str, Any]:
    return {"title": title, "description": "Engineering scholarship", "amount": "$1,000"}


def test_three_matching_sources_rank_structured_store_first_on_ties() -> None:
    store = _store_source({**_engineering("Gamma Award"), "major": "Engineering", "active": "true"})
    adapters = [
        FakeSource("CareerOneStop", SourceKind.SCRAPE, [_engineering("Alpha Award")]),
        FakeSource("generative-ai", SourceKind.GENERATIVE, [_engineering("Beta Award")]),
        store,
    ]
    service = ScholarshipSearchService(adapters)

    response = asyncio.run(service.search({"subjectAreas": ["Engineering"], "keywords": "robotics"}))

    assert response.total_found == 3
    assert all(result.relevance_score >= 10 for result in response.scholarships)
    assert [result.source for result in response.scholarships] == [
        "structured-store",
        "generative-ai",
        "CareerOneStop",
    ]


def test_malformed_generative_reply_contributes_nothing() -> None:
    adapters = [
        GenerativeRecommendationSource(CannedGenerator("Sorry, I cannot help.")),
        FakeSource("CareerOneStop", SourceKind.SCRAPE, [{"title": "Scraped Award"}]),
    ]
    service = ScholarshipSearchService(adapters)

    response = asyncio.run(service.search({"keywords": "nursing"}))

    assert [result.title for result in response.scholarships] == ["Scraped Award"]
    assert response.sources_used == ("CareerOneStop",)
    assert "generative-ai" not in response.to_dict()["metadata"]["sourceCounts"]


def test_timed_out_scrape_source_does_not_block_the_others() -> None:
    adapters = [
        CareerOneStopSource(TimingOutHttpClient()),
        FakeSource("generative-ai", SourceKind.GENERATIVE, [{"title": "AI Pick"}]),
        FakeSource("structured-store", SourceKind.STRUCTURED_STORE, [{"title": "Stored Pick"}]),
        FakeSource("CollegeScholarships.org", SourceKind.SCRAPE, [{"title": "Hung"}], delay_seconds=10.0),
    ]
    settings = SearchSettings.from_mapping({"search_deadline_seconds": 0.5})
    service = ScholarshipSearchService(adapters, settings=settings)

    started_at = time.monotonic()
    response = asyncio.run(service.search({"keywords": "pick"}))

    assert time.monotonic() - started_at < 5.0
    assert sorted(response.sources_used) == ["generative-ai", "structured-store"]
    assert {result.title for result in response.scholarships} == {"AI Pick", "Stored Pick"}


def test_null_criteria_fail_before_any_source_is_called() -> None:
    source = FakeSource("generative-ai", SourceKind.GENERATIVE, [{"title": "Never"}])
    service = ScholarshipSearchService([source])

    with pytest.raises(ValidationError):
        asyncio.run(service.search(None))
    assert source.calls == []


def test_envelope_shape_truncation_and_analysis() -> None:
    records = [{"title": f"Award {index}", "description": "Ohio students"} for index in range(5)]
    service = ScholarshipSearchService(
        [FakeSource("generative-ai", SourceKind.GENERATIVE, records)],
        analyzer=StaticAnalyzer(),
    )

    payload = asyncio.run(service.search({"geographicRestrictions": "Ohio"}, max_results=2)).to_dict()

    assert set(payload) == {"scholarships", "totalFound", "searchTimestamp", "metadata"}
    assert payload["totalFound"] == len(payload["scholarships"]) == 2
    assert payload["searchTimestamp"].endswith("Z")
    assert payload["metadata"]["sourcesUsed"] == ["generative-ai"]
    assert payload["metadata"]["sourceCounts"] == {"generative-ai": 5}
    assert isinstance(payload["metadata"]["processingTimeMs"], int)
    assert payload["metadata"]["analysis"]["scholarshipInfo"]["locations"][0]["text"] == "Ohio"
    assert payload["scholarships"][0]["source"] == "generative-ai"


def test_every_source_failing_still_returns_an_envelope() -> None:
    service = ScholarshipSearchService(
        [FakeSource("generative-ai", SourceKind.GENERATIVE, error=RuntimeError("quota exceeded"))],
        analyzer=StaticAnalyzer(),
    )

    payload = asyncio.run(service.search({"keywords": "anything"})).to_dict()

    assert payload["scholarships"] == []
    assert payload["totalFound"] == 0
    assert payload["metadata"]["sourcesUsed"] == []
    assert "analysis" not in payload["metadata"]


@pytest.mark.parametrize("max_results", [0, -3, "10", 2.5, True])
def test_invalid_max_results_are_rejected(max_results: Any) -> None:
    service = ScholarshipSearchService([])

    with pytest.raises(ValidationError):
        asyncio.run(service.search({}, max_results=max_results))


def test_max_results_default_and_cap() -> None:
    service = ScholarshipSearchService([], settings=SearchSettings.from_mapping({"max_results_cap": 40}))

    assert service.resolve_max_results(None) == 25
    assert service.resolve_max_results(500) == 40


def test_list_sources_describes_adapters() -> None:
    service = ScholarshipSearchService(
        [_store_source(), CareerOneStopSource(TimingOutHttpClient())],
    )

    assert service.list_sources() == [
        {"name": "structured-store", "kind": "structured_store", "url": ""},
        {"name": "CareerOneStop", "kind": "scrape", "url": "https://www.careeronestop.org"},
    ]


def test_unencodable_text_from_a_source_does_not_break_search_or_analysis() -> None:
    reply = r'[{"title": "Award \udc80", "description": "bad \ud800 text"}]'
    service = ScholarshipSearchService(
        [GenerativeRecommendationSource(CannedGenerator(reply))],
        analyzer=StaticAnalyzer(),
    )

    response = asyncio.run(service.search({"keywords": "award"}))

    assert response.total_found == 1
    result = response.scholarships[0]
    assert "\ud800" not in result.description
    assert "\udc80" not in result.title
    assert result.scholarship_id
    assert response.analysis is not None
    assert response.analysis["sentiment"]["sentiment"] == "NEUTRAL"
