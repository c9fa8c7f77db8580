from __future__ import annotations

from typing import Any, Sequence

from scholarship_search.config import SearchSettings
from scholarship_search.io.store import ScholarshipStore

from .base import SourceAdapter
from .http import PoliteHttpClient
from .sources.careeronestop import CareerOneStopSource
from .sources.collegescholarships import CollegeScholarshipsSource
from .sources.generative import GenerativeRecommendationSource, TextGenerator
from .sources.structured_store import StructuredStoreSource


def register_sources(
    settings: SearchSettings,
    *,
    store: ScholarshipStore | None = None,
    generator: TextGenerator | None = None,
    http_client: PoliteHttpClient | None = None,
) -> list[SourceAdapter]:
    """Adapters in trust order. Sources whose collaborator is not supplied are left out."""

    adapters: list[SourceAdapter] = []
    if store is not None:
        adapters.append(StructuredStoreSource(store))
    if generator is not None:
        adapters.append(
            GenerativeRecommendationSource(
                generator,
                max_tokens=settings.generative_max_tokens,
                temperature=settings.generative_temperature,
            )
        )
    if http_client is not None:
        adapters.append(CareerOneStopSource(http_client, max_results=settings.scrape_max_results))
        adapters.append(CollegeScholarshipsSource(http_client, max_results=settings.scrape_max_results))
    return adapters


def list_sources(adapters: Sequence[SourceAdapter]) -> list[dict[str, Any]]:
    return [adapter.describe() for adapter in adapters]
