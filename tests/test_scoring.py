from __future__ import annotations

import pytest

from scholarship_search.criteria import normalize_criteria
from scholarship_search.normalize.schema import ScholarshipResult
from scholarship_search.rank.scoring import build_search_terms, score_result
from scholarship_search.rank.weights import ScoringWeights


def _result(title: str, **fields: object) -> ScholarshipResult:
    return ScholarshipResult(scholarship_id=title, source="fixture", title=title, url="", **fields)


def test_search_terms_combine_criteria_fields() -> None:
    criteria = normalize_criteria(
        {
            "subjectAreas": ["Engineering"],
            "targetType": "Merit",
            "gender": "Female",
            "ethnicity": "Hispanic",
            "keywords": "robotics  engineering",
        }
    )

    assert build_search_terms(criteria) == ["engineering", "merit", "hispanic", "female", "robotics"]
    assert build_search_terms(normalize_criteria({"targetType": "Both", "keywords": "a b"})) == ["a", "b"]


def test_term_matches_earn_base_proportional_and_title_points() -> None:
    criteria = normalize_criteria({"subjectAreas": ["Engineering"], "keywords": "robotics"})
    result = _result("Robotics Grant", description="For engineering students", amount="$1,000")

    # presence 3, base 10, proportional 20 (2/2), one title match 5
    assert score_result(result, criteria) == 38.0


def test_proportional_bonus_rounds_half_up() -> None:
    criteria = normalize_criteria({"keywords": "robotics x1 x2 x3 x4 x5 x6 x7"})

    # presence 1, base 10, round(20 * 1/8 = 2.5) -> 3, title match 5
    assert score_result(_result("Robotics"), criteria) == 19.0


def test_no_matching_terms_leaves_presence_only() -> None:
    criteria = normalize_criteria({"keywords": "astronomy"})

    assert score_result(_result("Nursing Award", description="Nursing"), criteria) == 2.0
    assert score_result(_result("Nursing Award"), normalize_criteria({})) == 1.0


def test_field_bonuses_for_level_gender_and_ethnicity() -> None:
    criteria = normalize_criteria({"subjectAreas": ["Engineering"], "gender": "Female", "ethnicity": "Hispanic"})
    result = _result(
        "Plain Award",
        academic_level="Engineering Graduate",
        gender="Female only",
        ethnicity="Hispanic/Latino",
    )

    assert score_result(result, criteria) == 21.0


def test_score_is_deterministic() -> None:
    criteria = normalize_criteria({"subjectAreas": ["Nursing"], "keywords": "rural health"})
    result = _result("Rural Nursing Fund", description="Health careers", eligibility="Nursing students")

    assert score_result(result, criteria) == score_result(result, criteria)


def test_custom_weights() -> None:
    weights = ScoringWeights.from_mapping({"presence": 0.0, "title_match": 0.0})
    criteria = normalize_criteria({"keywords": "robotics"})

    assert score_result(_result("Robotics", description="d"), criteria, weights) == 30.0
    assert weights.to_dict()["term_match_base"] == 10.0
    with pytest.raises(ValueError):
        ScoringWeights.from_mapping({"gender": -1})
