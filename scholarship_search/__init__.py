"""Multi-source scholarship search.

Fans a single search out to the structured store, a generative recommender
and a set of scraped listing sites, then normalizes, scores and ranks the
combined results.
"""

from scholarship_search.criteria import SearchCriteria, normalize_criteria
from scholarship_search.errors import ValidationError
from scholarship_search.service import ScholarshipSearchService

__all__ = [
    "ScholarshipSearchService",
    "SearchCriteria",
    "ValidationError",
    "normalize_criteria",
]
