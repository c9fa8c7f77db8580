"""Entity, key-phrase and sentiment analysis over a result set.

The three facets are requested concurrently. A failed facet falls back to
its default (no entities, no key phrases, neutral sentiment) so one failing
call never discards the others.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol, Sequence

from scholarship_search.config import ANALYSIS_HARD_BYTE_LIMIT
from scholarship_search.normalize.schema import ScholarshipResult

logger = logging.getLogger(__name__)

NEUTRAL_SENTIMENT: dict[str, Any] = {"sentiment": "NEUTRAL", "sentimentScore": None}

_ACADEMIC_MARKERS = ("computer", "engineering", "science", "business", "arts", "medicine")
_DEMOGRAPHIC_MARKERS = ("female", "male", "hispanic", "african", "asian", "native")


class TextAnalyzer(Protocol):
    def detect_entities(self, text: str) -> list[dict[str, Any]]:  # pragma: no cover
        ...

    def detect_key_phrases(self, text: str) -> list[dict[str, Any]]:  # pragma: no cover
        ...

    def detect_sentiment(self, text: str) -> dict[str, Any]:  # pragma: no cover
        ...


def truncate_utf8(text: str, max_bytes: int = ANALYSIS_HARD_BYTE_LIMIT) -> str:
    """Cut ``text`` to at most ``max_bytes`` UTF-8 bytes without splitting a character."""

    if max_bytes <= 0:
        return ""
    encoded = text.encode("utf-8", errors="replace")
    if len(encoded) <= max_bytes:
        return encoded.decode("utf-8")
    # errors="ignore" drops the partial trailing sequence left by the byte cut.
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


def combined_result_text(results: Sequence[ScholarshipResult]) -> str:
    parts: list[str] = []
    for result in results:
        for value in (result.title, result.description, result.eligibility):
            if value:
                parts.append(value)
    return " ".join(parts).strip()


async def _facet(name: str, call: Any, text: str, default: Any) -> Any:
    try:
        return await asyncio.to_thread(call, text)
    except Exception:
        logger.warning("Text analysis facet '%s' failed; using default.", name, exc_info=True)
        return default


async def analyze_text(analyzer: TextAnalyzer, text: str, *, max_bytes: int) -> dict[str, Any]:
    truncated = truncate_utf8(text, max_bytes)
    entities, key_phrases, sentiment = await asyncio.gather(
        _facet("entities", analyzer.detect_entities, truncated, []),
        _facet("keyPhrases", analyzer.detect_key_phrases, truncated, []),
        _facet("sentiment", analyzer.detect_sentiment, truncated, dict(NEUTRAL_SENTIMENT)),
    )
    return {
        "entities": entities,
        "keyPhrases": key_phrases,
        "sentiment": sentiment,
        "scholarshipInfo": extract_scholarship_info(entities),
    }


async def enrich_results(
    analyzer: TextAnalyzer | None,
    results: Sequence[ScholarshipResult],
    *,
    max_bytes: int = 4500,
) -> dict[str, Any] | None:
    """Analysis payload for the response metadata, or ``None`` when there is nothing to analyze."""

    if analyzer is None or not results:
        return None
    text = combined_result_text(results)
    if not text:
        return None
    try:
        return await analyze_text(analyzer, text, max_bytes=max_bytes)
    except Exception:
        logger.warning("Text analysis failed; responding without it.", exc_info=True)
        return None


def extract_scholarship_info(entities: Sequence[dict[str, Any]]) -> dict[str, list[dict[str, Any]]]:
    info: dict[str, list[dict[str, Any]]] = {
        "organizations": [],
        "locations": [],
        "amounts": [],
        "dates": [],
        "academicFields": [],
        "demographics": [],
    }
    for entity in entities:
        entity_type = entity.get("Type")
        text = str(entity.get("Text") or "")
        item = {"text": text, "score": entity.get("Score")}
        lowered = text.lower()

        if entity_type == "ORGANIZATION":
            info["organizations"].append(item)
        elif entity_type == "LOCATION":
            info["locations"].append(item)
        elif entity_type == "QUANTITY":
            if "$" in text or any(char.isdigit() for char in text) or "dollar" in lowered:
                info["amounts"].append(item)
        elif entity_type == "DATE":
            info["dates"].append(item)
        elif entity_type == "OTHER":
            if any(marker in lowered for marker in _ACADEMIC_MARKERS):
                info["academicFields"].append(item)
            elif any(marker in lowered for marker in _DEMOGRAPHIC_MARKERS):
                info["demographics"].append(item)
    return info
