"""Maps raw adapter records onto :class:`ScholarshipResult`.

Raw records are untyped dictionaries whose keys differ per source (the
structured store uses ``educationLevel``, the generative recommender may use
``name``/``award_amount``/``due_date``, scrapers emit their own shape). The
first alias present wins.
"""

from __future__ import annotations

import logging
import re
from html import unescape
from typing import Any, Iterable, Mapping
from urllib.parse import urljoin

from scholarship_search.normalize.canonical_id import generate_scholarship_id
from scholarship_search.normalize.schema import ScholarshipResult

logger = logging.getLogger(__name__)

_TAG_PATTERN = re.compile(r"<[^>]+>")
_MONEY_PATTERN = re.compile(r"\$\s?(\d{1,3}(?:,\d{3})+|\d+)(?:\.\d{2})?")

_ALIASES: dict[str, tuple[str, ...]] = {
    "title": ("title", "name", "scholarshipName"),
    "description": ("description", "desc", "summary"),
    "organization": ("organization", "provider", "sponsor", "organizationName"),
    "amount": ("amount", "award_amount", "awardAmount", "award", "value"),
    "amount_min": ("amountMin", "amount_min"),
    "amount_max": ("amountMax", "amount_max"),
    "deadline": ("deadline", "due_date", "dueDate", "applicationDeadline"),
    "eligibility": ("eligibility", "requirements", "key_eligibility", "eligibilityRequirements"),
    "url": ("url", "link", "website"),
    "gender": ("gender",),
    "ethnicity": ("ethnicity",),
    "academic_level": ("academicLevel", "educationLevel", "education_level", "level"),
    "min_gpa": ("academicGPA", "minimumGPA", "minimum_gpa", "gpa", "min_gpa"),
    "essay_required": ("essayRequired", "essay_required"),
    "recommendation_required": ("recommendationRequired", "recommendation_required"),
    "renewable": ("renewable", "isRenewable", "is_recurring"),
    "geographic_restriction": ("geographicRestrictions", "geographic_restrictions", "state", "location"),
    "subject_areas": ("subjectAreas", "subject_areas", "major", "majors"),
}


def normalize_record(
    raw: Mapping[str, Any],
    source_name: str,
    *,
    base_url: str = "",
) -> ScholarshipResult | None:
    """Return a canonical result, or ``None`` when the record has no title."""

    if not isinstance(raw, Mapping):
        return None

    title = _clean_text(_first(raw, "title"))
    if not title:
        return None

    description = _clean_text(_first(raw, "description")) or None
    organization = _clean_text(_first(raw, "organization")) or None
    deadline = _clean_text(_first(raw, "deadline")) or None
    amount, amount_min, amount_max = reconcile_amount(
        _first(raw, "amount"), _first(raw, "amount_min"), _first(raw, "amount_max")
    )
    url = _resolve_url(_first(raw, "url"), base_url)

    return ScholarshipResult(
        scholarship_id=generate_scholarship_id(
            source=source_name,
            title=title,
            organization=organization,
            amount_min=amount_min,
            amount_max=amount_max,
            deadline=deadline,
            url=url,
        ),
        source=source_name,
        title=title,
        url=url,
        description=description,
        organization=organization,
        amount=amount,
        amount_min=amount_min,
        amount_max=amount_max,
        deadline=deadline,
        eligibility=flatten_eligibility(_first(raw, "eligibility")),
        gender=_joined_text(_first(raw, "gender")),
        ethnicity=_joined_text(_first(raw, "ethnicity")),
        academic_level=_joined_text(_first(raw, "academic_level")),
        min_gpa=_coerce_float(_first(raw, "min_gpa")),
        essay_required=_coerce_bool(_first(raw, "essay_required")),
        recommendation_required=_coerce_bool(_first(raw, "recommendation_required")),
        renewable=_coerce_bool(_first(raw, "renewable")),
        geographic_restriction=_joined_text(_first(raw, "geographic_restriction")),
        subject_areas=_joined_text(_first(raw, "subject_areas")),
    )


def normalize_records(
    records: Iterable[Mapping[str, Any]],
    source_name: str,
    *,
    base_url: str = "",
) -> list[ScholarshipResult]:
    normalized: list[ScholarshipResult] = []
    dropped = 0
    for raw in records:
        result = normalize_record(raw, source_name, base_url=base_url)
        if result is None:
            dropped += 1
            continue
        normalized.append(result)
    if dropped:
        logger.debug("Source=%s dropped %d records without a title", source_name, dropped)
    return normalized


def flatten_eligibility(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, Mapping):
        parts = [_clean_text(item) for item in value.values()]
    elif isinstance(value, (list, tuple)):
        parts = [_clean_text(item) for item in value]
    else:
        return _clean_text(value) or None
    joined = ", ".join(part for part in parts if part)
    return joined or None


def reconcile_amount(
    amount: Any, amount_min: Any, amount_max: Any
) -> tuple[str | None, float | None, float | None]:
    """Return ``(display, min, max)`` from whichever representation is present."""

    low = _coerce_float(amount_min)
    high = _coerce_float(amount_max)

    if isinstance(amount, (int, float)) and not isinstance(amount, bool):
        numeric = float(amount)
        low = numeric if low is None else low
        high = numeric if high is None else high
        return format_amount_range(low, high), low, high

    display = _clean_text(amount) or None
    if display is not None and low is None and high is None:
        low, high = extract_amount_range(display)
    if display is None and (low is not None or high is not None):
        display = format_amount_range(low, high)
    return display, low, high


def extract_amount_range(text: str) -> tuple[float | None, float | None]:
    matches = [float(chunk.replace(",", "")) for chunk in _MONEY_PATTERN.findall(text)]
    if not matches:
        return None, None
    return min(matches), max(matches)


def format_amount_range(amount_min: float | None, amount_max: float | None) -> str | None:
    if amount_min is None and amount_max is None:
        return None
    if amount_min is None:
        return f"Up to ${amount_max:,.0f}"
    if amount_max is None:
        return f"${amount_min:,.0f}+"
    if abs(amount_min - amount_max) < 1e-9:
        return f"${amount_min:,.0f}"
    return f"${amount_min:,.0f} - ${amount_max:,.0f}"


def _first(raw: Mapping[str, Any], field_name: str) -> Any:
    for key in _ALIASES[field_name]:
        value = raw.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def _clean_text(value: Any) -> str:
    if value is None:
        return ""
    text = unescape(str(value))
    text = _TAG_PATTERN.sub(" ", text)
    # Lone surrogates (valid in JSON escapes) cannot be encoded downstream.
    text = text.encode("utf-8", "replace").decode("utf-8")
    return " ".join(text.split())


def _joined_text(value: Any) -> str | None:
    if isinstance(value, (list, tuple, set)):
        joined = ", ".join(part for part in (_clean_text(item) for item in value) if part)
        return joined or None
    return _clean_text(value) or None


def _resolve_url(value: Any, base_url: str) -> str:
    url = _clean_text(value)
    if not url:
        return base_url
    if url.startswith(("http://", "https://")):
        return url
    return urljoin(base_url, url) if base_url else url


def _coerce_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        numeric = float(str(value).replace(",", "").replace("$", "").strip())
    except (TypeError, ValueError):
        return None
    if numeric != numeric:
        return None
    return numeric


def _coerce_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "y"}:
            return True
        if lowered in {"false", "no", "n"}:
            return False
    return None
