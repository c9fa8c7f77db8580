"""Additive relevance scoring.

``score_result`` is a pure function of ``(result, criteria, weights)``:

* presence: one point each for a title, a description and an amount;
* term match: the criteria's subject areas, target type (unless ``Both``),
  ethnicity, gender and whitespace-split keywords are matched as
  case-insensitive substrings against the result's eligibility,
  description, title, organization and subject text. Any hit earns the base
  bonus, a bonus proportional to the share of terms matched, and a further
  bonus per term found in the title;
* field bonuses: a subject area found in the academic-level field, the
  gender, and the ethnicity.
"""

from __future__ import annotations

from scholarship_search.criteria import SearchCriteria
from scholarship_search.normalize.schema import ScholarshipResult
from scholarship_search.rank.weights import ScoringWeights


def build_search_terms(criteria: SearchCriteria) -> list[str]:
    terms: list[str] = []
    terms.extend(criteria.subject_areas)
    if criteria.target_type and criteria.target_type != "Both":
        terms.append(criteria.target_type)
    if criteria.ethnicity:
        terms.append(criteria.ethnicity)
    if criteria.gender:
        terms.append(criteria.gender)
    terms.extend(criteria.keyword_tokens())

    unique: list[str] = []
    seen: set[str] = set()
    for term in terms:
        lowered = term.strip().lower()
        if lowered and lowered not in seen:
            seen.add(lowered)
            unique.append(lowered)
    return unique


def _searchable_text(result: ScholarshipResult) -> str:
    parts = (
        result.eligibility,
        result.description,
        result.title,
        result.organization,
        result.subject_areas,
    )
    return " ".join(part for part in parts if part).lower()


def _contains(haystack: str | None, needle: str | None) -> bool:
    if not haystack or not needle:
        return False
    return needle.strip().lower() in haystack.lower()


def score_result(
    result: ScholarshipResult,
    criteria: SearchCriteria,
    weights: ScoringWeights | None = None,
) -> float:
    active = weights or ScoringWeights.baseline()
    score = 0.0

    for present in (result.title, result.description, result.amount):
        if present:
            score += active.presence

    terms = build_search_terms(criteria)
    if terms:
        text = _searchable_text(result)
        title = result.title.lower()
        matched = [term for term in terms if term in text]
        if matched:
            score += active.term_match_base
            # Python's round() is half-to-even; half-up keeps 2.5 -> 3.
            score += float(int(active.term_match_proportional * len(matched) / len(terms) + 0.5))
            score += active.title_match * sum(1 for term in matched if term in title)

    if any(_contains(result.academic_level, subject) for subject in criteria.subject_areas):
        score += active.academic_level
    if _contains(result.gender, criteria.gender):
        score += active.gender
    if _contains(result.ethnicity, criteria.ethnicity):
        score += active.ethnicity

    return score
