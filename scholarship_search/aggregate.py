"""Concurrent fan-out over every configured source.

Each adapter runs as its own task. The aggregator waits for all of them up
to one overall deadline; adapters still running at the deadline are
cancelled and count as timed out. Failures are logged and recorded on the
adapter's :class:`AdapterOutcome`, never raised.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Sequence

import httpx
import requests

from scholarship_search.criteria import SearchCriteria
from scholarship_search.errors import AdapterFailure, ParseFailure, UpstreamTimeout
from scholarship_search.ingest.base import SourceAdapter, SourceKind
from scholarship_search.ingest.sources.structured_store import StructuredStoreSource
from scholarship_search.normalize.result import normalize_records
from scholarship_search.normalize.schema import ScholarshipResult

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AdapterOutcome:
    name: str
    kind: SourceKind
    results: list[ScholarshipResult] = field(default_factory=list)
    error: AdapterFailure | None = None
    elapsed_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class AggregateResult:
    """Deduplicated results in adapter order, plus what each adapter did."""

    results: list[ScholarshipResult]
    outcomes: list[AdapterOutcome]
    used_fallback: bool = False

    @property
    def sources_used(self) -> list[str]:
        used: list[str] = []
        for result in self.results:
            if result.source not in used:
                used.append(result.source)
        return used

    @property
    def source_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for result in self.results:
            counts[result.source] = counts.get(result.source, 0) + 1
        return counts

    @property
    def trust_tiers(self) -> dict[str, int]:
        return {outcome.name: int(outcome.kind) for outcome in self.outcomes}


def dedupe_results(results: Sequence[ScholarshipResult]) -> list[ScholarshipResult]:
    """Drop repeats of ``(lowercased title, source)``, keeping the first seen."""

    seen: set[tuple[str, str]] = set()
    unique: list[ScholarshipResult] = []
    for result in results:
        key = (result.title.lower(), result.source)
        if key in seen:
            continue
        seen.add(key)
        unique.append(result)
    return unique


def classify_failure(source: str, exc: BaseException) -> AdapterFailure:
    if isinstance(exc, AdapterFailure):
        return exc
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError, requests.Timeout, httpx.TimeoutException)):
        return UpstreamTimeout(source, f"timed out ({type(exc).__name__})")
    if isinstance(exc, json.JSONDecodeError):
        return ParseFailure(source, f"unparseable response: {exc}")
    return AdapterFailure(source, f"{type(exc).__name__}: {exc}")


class Aggregator:
    def __init__(
        self,
        adapters: Sequence[SourceAdapter],
        *,
        deadline_seconds: float = 30.0,
        fallback: StructuredStoreSource | None = None,
        fallback_limit: int = 25,
    ) -> None:
        names = [adapter.name for adapter in adapters]
        if len(set(names)) != len(names):
            raise ValueError(f"Adapter names must be unique (got {names}).")
        self.adapters = list(adapters)
        self.deadline_seconds = deadline_seconds
        self.fallback = fallback
        self.fallback_limit = fallback_limit

    async def aggregate(self, criteria: SearchCriteria) -> AggregateResult:
        tasks = [asyncio.create_task(self._run_adapter(adapter, criteria)) for adapter in self.adapters]
        outcomes: list[AdapterOutcome] = []
        if tasks:
            done, pending = await asyncio.wait(tasks, timeout=self.deadline_seconds)
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

            for adapter, task in zip(self.adapters, tasks):
                if task in done:
                    outcomes.append(task.result())
                    continue
                outcome = AdapterOutcome(
                    name=adapter.name,
                    kind=adapter.kind,
                    error=UpstreamTimeout(adapter.name, f"no response within {self.deadline_seconds:.1f}s"),
                    elapsed_seconds=self.deadline_seconds,
                )
                logger.warning("Source=%s cancelled at the search deadline.", adapter.name)
                outcomes.append(outcome)

        combined = [result for outcome in outcomes for result in outcome.results]
        results = dedupe_results(combined)
        if len(results) < len(combined):
            logger.debug("Dropped %d duplicate results.", len(combined) - len(results))

        used_fallback = False
        if not results and criteria.is_empty() and self.fallback is not None:
            results = await self._default_listing(self.fallback)
            used_fallback = bool(results)

        return AggregateResult(results=results, outcomes=outcomes, used_fallback=used_fallback)

    async def _run_adapter(self, adapter: SourceAdapter, criteria: SearchCriteria) -> AdapterOutcome:
        started_at = time.monotonic()
        try:
            records = await adapter.search(criteria)
            results = normalize_records(records or [], adapter.name, base_url=adapter.base_url)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            failure = classify_failure(adapter.name, exc)
            elapsed = time.monotonic() - started_at
            logger.warning(
                "Source=%s failed after %.3fs (%s); contributing no results.",
                adapter.name,
                elapsed,
                type(failure).__name__,
                exc_info=True,
            )
            return AdapterOutcome(name=adapter.name, kind=adapter.kind, error=failure, elapsed_seconds=elapsed)

        elapsed = time.monotonic() - started_at
        logger.info("Source=%s records=%d elapsed=%.3fs", adapter.name, len(results), elapsed)
        return AdapterOutcome(name=adapter.name, kind=adapter.kind, results=results, elapsed_seconds=elapsed)

    async def _default_listing(self, fallback: StructuredStoreSource) -> list[ScholarshipResult]:
        try:
            records = await asyncio.wait_for(
                fallback.default_listing(self.fallback_limit), timeout=self.deadline_seconds
            )
        except Exception:
            logger.warning("Default listing unavailable.", exc_info=True)
            return []
        results = dedupe_results(normalize_records(records, fallback.name, base_url=fallback.base_url))
        logger.info("Criteria were empty and no source matched; serving %d default listings.", len(results))
        return results
