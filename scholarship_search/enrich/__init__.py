"""Optional natural-language analysis attached to search responses."""

from scholarship_search.enrich.text_analysis import (
    NEUTRAL_SENTIMENT,
    TextAnalyzer,
    enrich_results,
    extract_scholarship_info,
    truncate_utf8,
)

__all__ = [
    "NEUTRAL_SENTIMENT",
    "TextAnalyzer",
    "enrich_results",
    "extract_scholarship_info",
    "truncate_utf8",
]
