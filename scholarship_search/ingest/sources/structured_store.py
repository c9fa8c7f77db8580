from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from scholarship_search.config import FALLBACK_LISTING_HARD_CAP
from scholarship_search.criteria import SearchCriteria
from scholarship_search.ingest.base import SourceAdapter, SourceKind
from scholarship_search.io.store import FilterPredicate, KeyCondition, ScholarshipStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class QueryPlan:
    """A single-index lookup plus post-filters; ``key`` is ``None`` for a bounded scan."""

    key: KeyCondition | None
    filters: tuple[FilterPredicate, ...] = field(default_factory=tuple)
    limit: int | None = None

    @property
    def index_name(self) -> str | None:
        return self.key.index_name if self.key is not None else None


def plan_query(criteria: SearchCriteria, *, scan_limit: int = FALLBACK_LISTING_HARD_CAP) -> QueryPlan:
    """Pick the most selective index and push every other criterion into filters.

    Index priority: academic level, subject area, geographic restriction,
    ethnicity, gender, GPA. Without any of those, the plan is a scan capped
    at ``scan_limit`` rows that keeps only the amount and GPA filters.
    """

    key = _select_key(criteria)
    if key is None:
        return QueryPlan(
            key=None,
            filters=tuple(_amount_filters(criteria) + _gpa_filters(criteria, key)),
            limit=min(scan_limit, FALLBACK_LISTING_HARD_CAP),
        )

    filters: list[FilterPredicate] = []
    index = key.index_name

    if criteria.subject_areas and index != "MajorIndex":
        filters.append(FilterPredicate("major", "contains_any", criteria.subject_areas))
    elif len(criteria.subject_areas) > 1:
        # The index keys on the first subject; the rest must appear together in the major text.
        filters.append(FilterPredicate("major", "contains", ", ".join(criteria.subject_areas[1:])))
    if criteria.geographic_restriction and index != "LocationIndex":
        filters.append(FilterPredicate("state", "contains", criteria.geographic_restriction))
    if criteria.ethnicity and index != "DemographicsIndex":
        filters.append(FilterPredicate("ethnicity", "contains", criteria.ethnicity))
    if criteria.gender and index != "GenderIndex":
        filters.append(FilterPredicate("gender", "contains", criteria.gender))
    filters.extend(_gpa_filters(criteria, key))

    if criteria.target_type and criteria.target_type != "Both":
        filters.append(
            FilterPredicate("targetType", "contains_any", (criteria.target_type, "Both"), missing_ok=True)
        )
    if criteria.essay_required is not None:
        filters.append(FilterPredicate("essayRequired", "eq", str(criteria.essay_required).lower()))
    if criteria.recommendation_required is not None:
        filters.append(
            FilterPredicate("recommendationRequired", "eq", str(criteria.recommendation_required).lower())
        )
    if criteria.deadline_range is not None:
        if criteria.deadline_range.start is not None:
            filters.append(FilterPredicate("deadline", "gte", criteria.deadline_range.start.isoformat()))
        if criteria.deadline_range.end is not None:
            filters.append(FilterPredicate("deadline", "lte", criteria.deadline_range.end.isoformat()))
    filters.extend(_amount_filters(criteria))

    return QueryPlan(key=key, filters=tuple(filters))


def _select_key(criteria: SearchCriteria) -> KeyCondition | None:
    if criteria.academic_level:
        return KeyCondition("EducationLevelIndex", "educationLevel", criteria.academic_level)
    if criteria.subject_areas:
        return KeyCondition("MajorIndex", "major", criteria.subject_areas[0])
    if criteria.geographic_restriction:
        return KeyCondition("LocationIndex", "state", criteria.geographic_restriction)
    if criteria.ethnicity:
        return KeyCondition("DemographicsIndex", "ethnicity", criteria.ethnicity)
    if criteria.gender:
        return KeyCondition("GenderIndex", "gender", criteria.gender)
    if criteria.min_gpa is not None:
        return KeyCondition("GPAIndex", "minimumGPA", criteria.min_gpa)
    return None


def _gpa_filters(criteria: SearchCriteria, key: KeyCondition | None) -> list[FilterPredicate]:
    if criteria.min_gpa is None or (key is not None and key.index_name == "GPAIndex"):
        return []
    # Records without a stated minimum GPA are open to every applicant.
    return [FilterPredicate("minimumGPA", "lte", criteria.min_gpa, missing_ok=True)]


def _amount_filters(criteria: SearchCriteria) -> list[FilterPredicate]:
    amount_range = criteria.amount_range
    if amount_range is None:
        return []
    filters: list[FilterPredicate] = []
    if amount_range.minimum is not None:
        filters.append(FilterPredicate("amountMax", "gte", amount_range.minimum, missing_ok=True))
    if amount_range.maximum is not None:
        filters.append(FilterPredicate("amountMin", "lte", amount_range.maximum, missing_ok=True))
    return filters


class StructuredStoreSource(SourceAdapter):
    name = "structured-store"
    kind = SourceKind.STRUCTURED_STORE

    def __init__(self, store: ScholarshipStore, *, base_url: str = "", scan_limit: int = FALLBACK_LISTING_HARD_CAP) -> None:
        self._store = store
        self.base_url = base_url
        self.scan_limit = scan_limit

    async def search(self, criteria: SearchCriteria) -> list[dict[str, Any]]:
        plan = plan_query(criteria, scan_limit=self.scan_limit)
        started_at = time.monotonic()
        if plan.key is None:
            records = await asyncio.to_thread(self._store.scan, plan.filters, active_only=True, limit=plan.limit)
        else:
            records = await asyncio.to_thread(self._store.query, plan.key, plan.filters, active_only=True)
        logger.info(
            "Source=%s index=%s filters=%d records=%d elapsed=%.3fs",
            self.name,
            plan.index_name or "scan",
            len(plan.filters),
            len(records),
            time.monotonic() - started_at,
        )
        return records

    async def default_listing(self, limit: int) -> list[dict[str, Any]]:
        """Currently active records, used only when a search had no constraints at all."""

        bounded = min(limit, FALLBACK_LISTING_HARD_CAP)
        return await asyncio.to_thread(self._store.scan, (), active_only=True, limit=bounded)
