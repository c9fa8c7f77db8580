from __future__ import annotations

from dataclasses import replace
from typing import Mapping, Sequence

import pandas as pd

from scholarship_search.criteria import SearchCriteria
from scholarship_search.normalize.schema import ScholarshipResult
from scholarship_search.rank.scoring import score_result
from scholarship_search.rank.weights import ScoringWeights

# Sources without a known tier sort after every known one.
UNKNOWN_TRUST_TIER = 99


def rank_results(
    results: Sequence[ScholarshipResult],
    criteria: SearchCriteria,
    *,
    trust_tiers: Mapping[str, int] | None = None,
    weights: ScoringWeights | None = None,
) -> list[ScholarshipResult]:
    """Score every result and sort by score (desc), source trust tier, then arrival order."""

    if not results:
        return []

    tiers = trust_tiers or {}
    scored = [replace(result, relevance_score=score_result(result, criteria, weights)) for result in results]
    frame = pd.DataFrame(
        {
            "score": [result.relevance_score for result in scored],
            "trust": [int(tiers.get(result.source, UNKNOWN_TRUST_TIER)) for result in scored],
            "position": range(len(scored)),
        }
    )
    ordered = frame.sort_values(
        by=["score", "trust", "position"],
        ascending=[False, True, True],
        kind="mergesort",
    )
    return [scored[position] for position in ordered["position"].tolist()]
