"""Search criteria validation and canonicalization.

Two request shapes exist in the field. The canonical shape uses
``keywords`` (string), ``academicLevel`` and ``geographicRestrictions``;
the legacy shape uses ``searchQuery``, ``educationLevel``/``educationYear``,
``state`` and a bare ``keywords`` array. A request must use one or the
other: mixing legacy-only and canonical-only keys is rejected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Mapping

from scholarship_search.errors import ValidationError

logger = logging.getLogger(__name__)

EDUCATION_LEVELS = (
    "High School",
    "Undergraduate",
    "Graduate",
    "High School Junior",
    "High School Senior",
    "College Freshman",
    "College Sophomore",
    "College Junior",
    "College Senior",
    "Graduate Student",
)
TARGET_TYPES = ("Merit", "Need", "Both")

CANONICAL_ONLY_KEYS = frozenset(
    {"academicLevel", "geographicRestrictions", "amountRange", "deadlineRange", "deadlineWithinDays"}
)
LEGACY_ONLY_KEYS = frozenset({"searchQuery", "educationLevel", "educationYear", "state"})
SHARED_KEYS = frozenset(
    {
        "subjectAreas",
        "keywords",
        "targetType",
        "gender",
        "ethnicity",
        "academicGPA",
        "essayRequired",
        "recommendationRequired",
    }
)

_LEVEL_LOOKUP = {level.lower(): level for level in EDUCATION_LEVELS}
_TARGET_LOOKUP = {target.lower(): target for target in TARGET_TYPES}


@dataclass(frozen=True, slots=True)
class AmountRange:
    minimum: float | None = None
    maximum: float | None = None

    def contains(self, low: float | None, high: float | None) -> bool:
        """True when an award spanning ``low..high`` overlaps this range."""
        if low is None and high is None:
            return True
        award_low = low if low is not None else high
        award_high = high if high is not None else low
        if self.minimum is not None and award_high is not None and award_high < self.minimum:
            return False
        if self.maximum is not None and award_low is not None and award_low > self.maximum:
            return False
        return True


@dataclass(frozen=True, slots=True)
class DeadlineRange:
    start: date | None = None
    end: date | None = None


@dataclass(frozen=True, slots=True)
class SearchCriteria:
    """Canonical search filters. ``None`` always means "no constraint"."""

    subject_areas: tuple[str, ...] = ()
    keywords: str = ""
    academic_level: str | None = None
    target_type: str | None = None
    gender: str | None = None
    ethnicity: str | None = None
    geographic_restriction: str | None = None
    min_gpa: float | None = None
    essay_required: bool | None = None
    recommendation_required: bool | None = None
    amount_range: AmountRange | None = None
    deadline_range: DeadlineRange | None = None

    def is_empty(self) -> bool:
        return (
            not self.subject_areas
            and not self.keywords
            and self.academic_level is None
            and self.target_type is None
            and self.gender is None
            and self.ethnicity is None
            and self.geographic_restriction is None
            and self.min_gpa is None
            and self.essay_required is None
            and self.recommendation_required is None
            and self.amount_range is None
            and self.deadline_range is None
        )

    def keyword_tokens(self) -> list[str]:
        return self.keywords.split()

    def to_dict(self) -> dict[str, Any]:
        return {
            "subjectAreas": list(self.subject_areas),
            "keywords": self.keywords,
            "academicLevel": self.academic_level,
            "targetType": self.target_type,
            "gender": self.gender,
            "ethnicity": self.ethnicity,
            "geographicRestrictions": self.geographic_restriction,
            "academicGPA": self.min_gpa,
            "essayRequired": self.essay_required,
            "recommendationRequired": self.recommendation_required,
            "amountRange": (
                {"min": self.amount_range.minimum, "max": self.amount_range.maximum}
                if self.amount_range is not None
                else None
            ),
            "deadlineRange": (
                {
                    "startDate": _iso_or_none(self.deadline_range.start),
                    "endDate": _iso_or_none(self.deadline_range.end),
                }
                if self.deadline_range is not None
                else None
            ),
        }


def normalize_criteria(raw: Any, *, today: date | None = None) -> SearchCriteria:
    """Validate a loosely-typed request body and return canonical criteria."""

    if raw is None:
        raise ValidationError("Search criteria object is required.")
    if not isinstance(raw, Mapping):
        raise ValidationError(
            f"Search criteria must be a keyed object, got {type(raw).__name__}."
        )

    payload = dict(raw)
    if _is_legacy_shape(payload):
        payload = migrate_legacy_criteria(payload)

    unknown = sorted(set(payload) - CANONICAL_ONLY_KEYS - SHARED_KEYS)
    if unknown:
        logger.debug("Ignoring unknown criteria keys: %s", ", ".join(unknown))

    keywords = payload.get("keywords")
    if keywords is None:
        keywords = ""
    if not isinstance(keywords, str):
        raise ValidationError("'keywords' must be a string.")

    return SearchCriteria(
        subject_areas=_subject_areas(payload.get("subjectAreas")),
        keywords=" ".join(keywords.split()),
        academic_level=_choice(payload.get("academicLevel"), _LEVEL_LOOKUP, "academicLevel"),
        target_type=_choice(payload.get("targetType"), _TARGET_LOOKUP, "targetType"),
        gender=_optional_text(payload.get("gender"), "gender"),
        ethnicity=_optional_text(payload.get("ethnicity"), "ethnicity"),
        geographic_restriction=_optional_text(
            payload.get("geographicRestrictions"), "geographicRestrictions"
        ),
        min_gpa=_gpa(payload.get("academicGPA")),
        essay_required=_tri_state(payload.get("essayRequired"), "essayRequired"),
        recommendation_required=_tri_state(
            payload.get("recommendationRequired"), "recommendationRequired"
        ),
        amount_range=_amount_range(payload.get("amountRange")),
        deadline_range=_deadline_range(
            payload.get("deadlineRange"),
            payload.get("deadlineWithinDays"),
            today=today or date.today(),
        ),
    )


def migrate_legacy_criteria(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Map a legacy ``SearchFilters`` body onto the canonical key set."""

    mixed = sorted(set(payload) & CANONICAL_ONLY_KEYS)
    if mixed:
        raise ValidationError(
            "Criteria mix legacy fields with structured fields "
            f"({', '.join(mixed)}); send one schema only."
        )

    migrated = {key: value for key, value in payload.items() if key in SHARED_KEYS}

    keywords = payload.get("keywords")
    search_query = payload.get("searchQuery")
    if keywords is not None and search_query is not None:
        raise ValidationError("Send either 'searchQuery' or 'keywords', not both.")
    if isinstance(keywords, list):
        migrated["keywords"] = " ".join(str(item).strip() for item in keywords if str(item).strip())
    elif search_query is not None:
        if not isinstance(search_query, str):
            raise ValidationError("'searchQuery' must be a string.")
        migrated["keywords"] = search_query

    level = payload.get("educationLevel")
    year = payload.get("educationYear")
    if level is not None:
        migrated["academicLevel"] = level
    elif isinstance(year, str) and year.strip().lower() in _LEVEL_LOOKUP:
        migrated["academicLevel"] = year
    elif year is not None:
        logger.info("Dropping legacy educationYear=%r with no matching academic level.", year)

    if payload.get("state") is not None:
        migrated["geographicRestrictions"] = payload["state"]
    return migrated


def _is_legacy_shape(payload: Mapping[str, Any]) -> bool:
    if set(payload) & LEGACY_ONLY_KEYS:
        return True
    if isinstance(payload.get("keywords"), list):
        return True
    return False


def _iso_or_none(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


def _optional_text(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"'{field_name}' must be a string or null.")
    cleaned = " ".join(value.split())
    return cleaned or None


def _choice(value: Any, lookup: Mapping[str, str], field_name: str) -> str | None:
    text = _optional_text(value, field_name)
    if text is None:
        return None
    canonical = lookup.get(text.lower())
    if canonical is None:
        raise ValidationError(
            f"'{field_name}' must be one of: {', '.join(lookup.values())} (got {text!r})."
        )
    return canonical


def _subject_areas(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple, set, frozenset)):
        raise ValidationError("'subjectAreas' must be a list of strings.")

    seen: dict[str, str] = {}
    for item in value:
        if not isinstance(item, str):
            raise ValidationError("'subjectAreas' must contain only strings.")
        cleaned = " ".join(item.split())
        if cleaned and cleaned.lower() not in seen:
            seen[cleaned.lower()] = cleaned
    return tuple(sorted(seen.values(), key=str.lower))


def _gpa(value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError("'academicGPA' must be a number between 0.0 and 4.0.")
    try:
        gpa = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError("'academicGPA' must be a number between 0.0 and 4.0.") from exc
    if not 0.0 <= gpa <= 4.0:
        raise ValidationError(f"'academicGPA' must be between 0.0 and 4.0 (got {gpa}).")
    return gpa


def _tri_state(value: Any, field_name: str) -> bool | None:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
        return value.strip().lower() == "true"
    raise ValidationError(f"'{field_name}' must be true, false or null.")


def _number(value: Any, field_name: str) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"'{field_name}' must be a number.")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"'{field_name}' must be a number.") from exc
    if number < 0:
        raise ValidationError(f"'{field_name}' cannot be negative.")
    return number


def _amount_range(value: Any) -> AmountRange | None:
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise ValidationError("'amountRange' must be an object with 'min' and/or 'max'.")
    minimum = _number(value.get("min"), "amountRange.min")
    maximum = _number(value.get("max"), "amountRange.max")
    if minimum is None and maximum is None:
        return None
    if minimum is not None and maximum is not None and minimum > maximum:
        raise ValidationError("'amountRange.min' cannot exceed 'amountRange.max'.")
    return AmountRange(minimum=minimum, maximum=maximum)


def _iso_date(value: Any, field_name: str) -> date | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"'{field_name}' must be an ISO date string.")
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError as exc:
        raise ValidationError(f"'{field_name}' must be an ISO date (YYYY-MM-DD), got {value!r}.") from exc


def _deadline_range(value: Any, within_days: Any, *, today: date) -> DeadlineRange | None:
    if value is not None and within_days is not None:
        raise ValidationError("Send either 'deadlineRange' or 'deadlineWithinDays', not both.")

    if within_days is not None:
        if isinstance(within_days, bool) or not isinstance(within_days, int) or within_days < 0:
            raise ValidationError("'deadlineWithinDays' must be a non-negative integer.")
        return DeadlineRange(start=today, end=today + timedelta(days=within_days))

    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise ValidationError("'deadlineRange' must be an object with 'startDate' and/or 'endDate'.")
    start = _iso_date(value.get("startDate"), "deadlineRange.startDate")
    end = _iso_date(value.get("endDate"), "deadlineRange.endDate")
    if start is None and end is None:
        return None
    if start is not None and end is not None and start > end:
        raise ValidationError("'deadlineRange.startDate' cannot be after 'endDate'.")
    return DeadlineRange(start=start, end=end)
