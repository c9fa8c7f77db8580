"""Canonical result schema and record normalization."""

from scholarship_search.normalize.result import flatten_eligibility, normalize_record, normalize_records
from scholarship_search.normalize.schema import UNSPECIFIED, ScholarshipResult

__all__ = [
    "UNSPECIFIED",
    "ScholarshipResult",
    "flatten_eligibility",
    "normalize_record",
    "normalize_records",
]
