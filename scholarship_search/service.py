"""Search entry point.

``ScholarshipSearchService.search`` validates the raw criteria, fans out to
every source, ranks the deduplicated results and assembles the envelope.
Only :class:`~scholarship_search.errors.ValidationError` ever escapes it.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Sequence

from dotenv import load_dotenv

from scholarship_search.aggregate import Aggregator
from scholarship_search.config import SearchSettings
from scholarship_search.criteria import normalize_criteria
from scholarship_search.enrich.comprehend import ComprehendTextAnalyzer
from scholarship_search.enrich.text_analysis import TextAnalyzer, enrich_results
from scholarship_search.errors import ValidationError
from scholarship_search.ingest.base import SourceAdapter
from scholarship_search.ingest.http import PoliteHttpClient
from scholarship_search.ingest.registry import list_sources, register_sources
from scholarship_search.ingest.sources.generative import OpenAIChatGenerator
from scholarship_search.ingest.sources.structured_store import StructuredStoreSource
from scholarship_search.io.store import SnapshotScholarshipStore
from scholarship_search.rank.ranking import rank_results
from scholarship_search.rank.weights import ScoringWeights
from scholarship_search.response import SearchResponse, assemble_response

logger = logging.getLogger(__name__)


class ScholarshipSearchService:
    def __init__(
        self,
        adapters: Sequence[SourceAdapter],
        *,
        settings: SearchSettings | None = None,
        analyzer: TextAnalyzer | None = None,
        weights: ScoringWeights | None = None,
        http_client: PoliteHttpClient | None = None,
    ) -> None:
        self.settings = settings or SearchSettings.baseline()
        self.adapters = list(adapters)
        self.analyzer = analyzer
        self.weights = weights or ScoringWeights.baseline()
        self._http_client = http_client
        fallback = next((adapter for adapter in self.adapters if isinstance(adapter, StructuredStoreSource)), None)
        self.aggregator = Aggregator(
            self.adapters,
            deadline_seconds=self.settings.search_deadline_seconds,
            fallback=fallback,
            fallback_limit=self.settings.fallback_listing_size,
        )

    @classmethod
    def from_settings(
        cls,
        settings: SearchSettings | None = None,
        *,
        enable_generative: bool = True,
        enable_scrapers: bool = True,
        enable_analysis: bool = True,
    ) -> ScholarshipSearchService:
        """Wire the production collaborators described by ``settings``.

        The structured store is skipped when no snapshot exists yet, and the
        generative source when no ``OPENAI_API_KEY`` is configured.
        """

        active = settings or SearchSettings.from_env()
        load_dotenv()

        store = None
        if active.store_path.exists():
            store = SnapshotScholarshipStore.from_parquet(active.store_path)
        else:
            logger.warning("No scholarship store at %s; structured-store source disabled.", active.store_path)

        generator = None
        if enable_generative and os.getenv("OPENAI_API_KEY"):
            generator = OpenAIChatGenerator.from_settings(active)

        http_client = PoliteHttpClient.from_settings(active) if enable_scrapers else None

        analyzer = None
        if enable_analysis:
            analyzer = ComprehendTextAnalyzer.from_settings(active)

        adapters = register_sources(active, store=store, generator=generator, http_client=http_client)
        return cls(adapters, settings=active, analyzer=analyzer, http_client=http_client)

    def list_sources(self) -> list[dict[str, Any]]:
        return list_sources(self.adapters)

    def close(self) -> None:
        if self._http_client is not None:
            self._http_client.close()

    def resolve_max_results(self, max_results: Any) -> int:
        if max_results is None:
            return self.settings.default_max_results
        if isinstance(max_results, bool) or not isinstance(max_results, int):
            raise ValidationError(f"maxResults must be an integer (got {max_results!r}).")
        if max_results < 1:
            raise ValidationError("maxResults must be at least 1.")
        return min(max_results, self.settings.max_results_cap)

    async def search(self, raw_criteria: Any, max_results: Any = None) -> SearchResponse:
        started_at = time.monotonic()
        criteria = normalize_criteria(raw_criteria)
        limit = self.resolve_max_results(max_results)

        aggregate = await self.aggregator.aggregate(criteria)
        ranked = rank_results(
            aggregate.results,
            criteria,
            trust_tiers=aggregate.trust_tiers,
            weights=self.weights,
        )
        returned = ranked[:limit]
        analysis = await enrich_results(
            self.analyzer,
            returned,
            max_bytes=self.settings.analysis_max_bytes,
        )

        response = assemble_response(
            returned,
            max_results=limit,
            elapsed_seconds=time.monotonic() - started_at,
            sources_used=aggregate.sources_used,
            source_counts=aggregate.source_counts,
            analysis=analysis,
        )
        logger.info(
            "Search returned %d of %d results from %s in %dms.",
            response.total_found,
            len(ranked),
            ", ".join(response.sources_used) or "no sources",
            response.processing_time_ms,
        )
        return response
