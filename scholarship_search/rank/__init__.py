from __future__ import annotations

from .ranking import rank_results
from .scoring import build_search_terms, score_result
from .weights import ScoringWeights

__all__ = ["ScoringWeights", "build_search_terms", "rank_results", "score_result"]
