from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

from scholarship_search.normalize.schema import ScholarshipResult


@dataclass(frozen=True, slots=True)
class SearchResponse:
    """Search envelope; ``total_found`` always equals ``len(scholarships)``."""

    scholarships: tuple[ScholarshipResult, ...]
    search_timestamp: str
    processing_time_ms: int
    sources_used: tuple[str, ...] = ()
    source_counts: Mapping[str, int] = field(default_factory=dict)
    analysis: Mapping[str, Any] | None = None

    @property
    def total_found(self) -> int:
        return len(self.scholarships)

    def to_dict(self) -> dict[str, Any]:
        metadata: dict[str, Any] = {
            "sourcesUsed": list(self.sources_used),
            "processingTimeMs": self.processing_time_ms,
            "sourceCounts": dict(self.source_counts),
        }
        if self.analysis is not None:
            metadata["analysis"] = dict(self.analysis)
        return {
            "scholarships": [result.to_dict() for result in self.scholarships],
            "totalFound": self.total_found,
            "searchTimestamp": self.search_timestamp,
            "metadata": metadata,
        }


def utc_timestamp(now: datetime | None = None) -> str:
    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def assemble_response(
    ranked: Sequence[ScholarshipResult],
    *,
    max_results: int,
    elapsed_seconds: float,
    sources_used: Sequence[str] = (),
    source_counts: Mapping[str, int] | None = None,
    analysis: Mapping[str, Any] | None = None,
    now: datetime | None = None,
) -> SearchResponse:
    return SearchResponse(
        scholarships=tuple(ranked[:max_results]),
        search_timestamp=utc_timestamp(now),
        processing_time_ms=max(0, int(round(elapsed_seconds * 1000))),
        sources_used=tuple(sources_used),
        source_counts=dict(source_counts or {}),
        analysis=analysis,
    )
