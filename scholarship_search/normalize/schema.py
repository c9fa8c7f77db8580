from __future__ import annotations

from dataclasses import dataclass
from typing import Any

UNSPECIFIED = "Not specified"


@dataclass(frozen=True, slots=True)
class ScholarshipResult:
    """Canonical scholarship record returned by every search."""

    scholarship_id: str
    source: str
    title: str
    url: str
    description: str | None = None
    organization: str | None = None
    amount: str | None = None
    amount_min: float | None = None
    amount_max: float | None = None
    deadline: str | None = None
    eligibility: str | None = None
    gender: str | None = None
    ethnicity: str | None = None
    academic_level: str | None = None
    min_gpa: float | None = None
    essay_required: bool | None = None
    recommendation_required: bool | None = None
    renewable: bool | None = None
    geographic_restriction: str | None = None
    subject_areas: str | None = None
    relevance_score: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "scholarshipId": self.scholarship_id,
            "title": self.title,
            "description": self.description,
            "organization": self.organization,
            "amount": self.amount,
            "amountMin": self.amount_min,
            "amountMax": self.amount_max,
            "deadline": self.deadline,
            "eligibility": self.eligibility,
            "gender": self.gender,
            "ethnicity": self.ethnicity,
            "academicLevel": self.academic_level,
            "academicGPA": self.min_gpa,
            "essayRequired": self.essay_required,
            "recommendationRequired": self.recommendation_required,
            "renewable": self.renewable,
            "geographicRestrictions": self.geographic_restriction,
            "subjectAreas": self.subject_areas,
            "source": self.source,
            "url": self.url,
            "relevanceScore": self.relevance_score,
        }
