from __future__ import annotations

from datetime import date

import pytest

from scholarship_search.criteria import AmountRange, SearchCriteria, migrate_legacy_criteria, normalize_criteria
from scholarship_search.errors import ValidationError


def test_missing_or_non_keyed_criteria_are_rejected() -> None:
    with pytest.raises(ValidationError):
        normalize_criteria(None)
    with pytest.raises(ValidationError):
        normalize_criteria(["Engineering"])
    with pytest.raises(ValidationError):
        normalize_criteria("robotics")


def test_empty_object_means_no_constraints() -> None:
    criteria = normalize_criteria({})

    assert criteria == SearchCriteria()
    assert criteria.is_empty()


def test_canonical_criteria_are_cleaned_without_inventing_filters() -> None:
    criteria = normalize_criteria(
        {
            "subjectAreas": ["engineering", " Computer  Science ", "Engineering"],
            "keywords": "  robotics   club ",
            "academicLevel": "undergraduate",
            "targetType": "merit",
            "academicGPA": "3.5",
            "essayRequired": "false",
            "recommendationRequired": None,
        }
    )

    assert criteria.subject_areas == ("Computer Science", "engineering")
    assert criteria.keywords == "robotics club"
    assert criteria.keyword_tokens() == ["robotics", "club"]
    assert criteria.academic_level == "Undergraduate"
    assert criteria.target_type == "Merit"
    assert criteria.min_gpa == 3.5
    assert criteria.essay_required is False
    assert criteria.recommendation_required is None
    assert criteria.gender is None
    assert criteria.amount_range is None
    assert not criteria.is_empty()


@pytest.mark.parametrize(
    "payload",
    [
        {"academicGPA": 4.5},
        {"academicGPA": True},
        {"academicLevel": "Kindergarten"},
        {"targetType": "Athletic"},
        {"essayRequired": "sometimes"},
        {"keywords": 42},
        {"subjectAreas": [1, 2]},
        {"amountRange": {"min": 5000, "max": 100}},
        {"deadlineRange": {"startDate": "2027-05-01", "endDate": "2027-01-01"}},
        {"deadlineRange": {"startDate": "next week"}},
        {"deadlineRange": {"startDate": "2025-01-01garbage"}},
    ],
)
def test_invalid_field_values_are_rejected(payload: dict) -> None:
    with pytest.raises(ValidationError):
        normalize_criteria(payload)


def test_amount_and_deadline_ranges_are_parsed() -> None:
    criteria = normalize_criteria(
        {
            "amountRange": {"min": 1000, "max": "5000"},
            "deadlineRange": {"startDate": "2027-01-01", "endDate": "2027-06-30T00:00:00Z"},
        }
    )

    assert criteria.amount_range == AmountRange(minimum=1000.0, maximum=5000.0)
    assert criteria.deadline_range is not None
    assert criteria.deadline_range.start == date(2027, 1, 1)
    assert criteria.deadline_range.end == date(2027, 6, 30)
    assert criteria.to_dict()["deadlineRange"] == {"startDate": "2027-01-01", "endDate": "2027-06-30"}


def test_deadline_within_days_resolves_from_today() -> None:
    criteria = normalize_criteria({"deadlineWithinDays": 30}, today=date(2026, 10, 1))

    assert criteria.deadline_range is not None
    assert criteria.deadline_range.start == date(2026, 10, 1)
    assert criteria.deadline_range.end == date(2026, 10, 31)

    with pytest.raises(ValidationError):
        normalize_criteria({"deadlineWithinDays": 30, "deadlineRange": {"endDate": "2027-01-01"}})


def test_legacy_shape_is_migrated() -> None:
    criteria = normalize_criteria(
        {
            "searchQuery": "robotics",
            "educationLevel": "Graduate",
            "state": "Ohio",
            "subjectAreas": ["Engineering"],
        }
    )

    assert criteria.keywords == "robotics"
    assert criteria.academic_level == "Graduate"
    assert criteria.geographic_restriction == "Ohio"
    assert criteria.subject_areas == ("Engineering",)


def test_legacy_keyword_array_is_joined() -> None:
    migrated = migrate_legacy_criteria({"keywords": ["stem", " women "], "educationYear": "College Junior"})

    assert migrated == {"keywords": "stem women", "academicLevel": "College Junior"}


def test_mixing_legacy_and_canonical_fields_is_rejected() -> None:
    with pytest.raises(ValidationError):
        normalize_criteria({"searchQuery": "nursing", "academicLevel": "Undergraduate"})
    with pytest.raises(ValidationError):
        normalize_criteria({"keywords": ["nursing"], "geographicRestrictions": "Texas"})
    with pytest.raises(ValidationError):
        normalize_criteria({"keywords": ["nursing"], "searchQuery": "nursing"})
    with pytest.raises(ValidationError):
        normalize_criteria({"keywords": "robotics", "searchQuery": "nursing"})


def test_amount_range_overlap() -> None:
    wanted = AmountRange(minimum=1000, maximum=5000)

    assert wanted.contains(500, 1500)
    assert wanted.contains(None, None)
    assert not wanted.contains(100, 500)
    assert not wanted.contains(6000, None)
