"""Generative-AI scholarship recommendations.

The model is asked for a JSON array of scholarship objects. Replies are
free-form text, so parsing tries, in order: the whole reply as JSON, a
```json fenced block, the outermost ``[...]`` span. Anything else is
treated as "no recommendations" rather than an error.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from typing import Any, Optional, Protocol

import httpx
from dotenv import load_dotenv
from openai import OpenAI

from scholarship_search.config import SearchSettings
from scholarship_search.criteria import SearchCriteria
from scholarship_search.ingest.base import SourceAdapter, SourceKind

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a scholarship research assistant. Recommend real, currently offered "
    "college scholarships. Reply with JSON only."
)

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


class TextGenerator(Protocol):
    def complete(self, system: str, prompt: str, max_tokens: int, temperature: float) -> str:  # pragma: no cover
        ...


class OpenAIChatGenerator:
    """Chat-completions backed :class:`TextGenerator`."""

    def __init__(
        self,
        client: OpenAI | None = None,
        *,
        model: str = "gpt-4.1-mini",
        timeout_seconds: float = 60.0,
        api_key: Optional[str] = None,
    ) -> None:
        self.model = model
        self._client = client or get_openai_client(api_key=api_key, timeout_seconds=timeout_seconds)

    @classmethod
    def from_settings(cls, settings: SearchSettings) -> OpenAIChatGenerator:
        return cls(model=settings.generative_model, timeout_seconds=settings.generative_timeout_seconds)

    def complete(self, system: str, prompt: str, max_tokens: int, temperature: float) -> str:
        response = self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            max_tokens=max_tokens,
            temperature=temperature,
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


def get_openai_client(api_key: Optional[str] = None, *, timeout_seconds: float = 60.0) -> OpenAI:
    """OpenAI client with a bounded request timeout; keys come from ``.env`` or the environment."""

    load_dotenv()
    http_client = httpx.Client(timeout=httpx.Timeout(timeout_seconds))
    if api_key is not None:
        return OpenAI(api_key=api_key, http_client=http_client, max_retries=0)
    return OpenAI(http_client=http_client, max_retries=0)


def build_search_prompt(criteria: SearchCriteria) -> str:
    lines: list[str] = []
    if criteria.subject_areas:
        lines.append(f"Major: {', '.join(criteria.subject_areas)}")
    if criteria.min_gpa is not None:
        lines.append(f"Minimum GPA: {criteria.min_gpa:g}")
    if criteria.target_type:
        lines.append(f"Award Type: {criteria.target_type}")
    if criteria.ethnicity:
        lines.append(f"Ethnicity: {criteria.ethnicity}")
    if criteria.gender:
        lines.append(f"Gender: {criteria.gender}")
    if criteria.academic_level:
        lines.append(f"Academic Level: {criteria.academic_level}")
    if criteria.essay_required is not None:
        lines.append(f"Essay Required: {'yes' if criteria.essay_required else 'no'}")
    if criteria.recommendation_required is not None:
        lines.append(f"Recommendation Required: {'yes' if criteria.recommendation_required else 'no'}")
    if criteria.keywords:
        lines.append(f"Search Query: {criteria.keywords}")
    if criteria.geographic_restriction:
        lines.append(f"Geographic Restrictions: {criteria.geographic_restriction}")
    if criteria.amount_range is not None:
        if criteria.amount_range.minimum is not None:
            lines.append(f"Minimum Award: ${criteria.amount_range.minimum:,.0f}")
        if criteria.amount_range.maximum is not None:
            lines.append(f"Maximum Award: ${criteria.amount_range.maximum:,.0f}")
    if criteria.deadline_range is not None:
        if criteria.deadline_range.start is not None:
            lines.append(f"Deadline On Or After: {criteria.deadline_range.start.isoformat()}")
        if criteria.deadline_range.end is not None:
            lines.append(f"Deadline On Or Before: {criteria.deadline_range.end.isoformat()}")

    criteria_text = "\n".join(lines) if lines else "No specific criteria provided"
    return (
        "Find college scholarships matching the following criteria:\n\n"
        f"{criteria_text}\n\n"
        "For each scholarship give: title, organization, amount, description, "
        "eligibility, deadline, url.\n"
        "Format the response as a JSON array of scholarship objects."
    )


def parse_ai_reply(text: str) -> list[dict[str, Any]]:
    if not text or not text.strip():
        return []

    candidates = [text.strip()]
    fenced = _FENCED_JSON.search(text)
    if fenced:
        candidates.append(fenced.group(1))
    start, end = text.find("["), text.rfind("]")
    if start != -1 and end > start:
        candidates.append(text[start : end + 1])

    for candidate in candidates:
        try:
            loaded = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        records = _records_from_payload(loaded)
        if records is not None:
            return records
    return []


def _records_from_payload(loaded: Any) -> list[dict[str, Any]] | None:
    if isinstance(loaded, dict):
        nested = loaded.get("scholarships")
        if isinstance(nested, list):
            loaded = nested
        elif loaded.get("title") or loaded.get("name"):
            loaded = [loaded]
        else:
            return None
    if not isinstance(loaded, list):
        return None
    return [item for item in loaded if isinstance(item, dict)]


class GenerativeRecommendationSource(SourceAdapter):
    name = "generative-ai"
    kind = SourceKind.GENERATIVE

    def __init__(
        self,
        generator: TextGenerator,
        *,
        max_tokens: int = 2000,
        temperature: float = 0.5,
        base_url: str = "",
    ) -> None:
        self._generator = generator
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.base_url = base_url

    async def search(self, criteria: SearchCriteria) -> list[dict[str, Any]]:
        prompt = build_search_prompt(criteria)
        started_at = time.monotonic()
        reply = await asyncio.to_thread(
            self._generator.complete, SYSTEM_PROMPT, prompt, self.max_tokens, self.temperature
        )
        records = parse_ai_reply(reply)
        if not records:
            logger.info("Source=%s reply held no parseable scholarships (%d chars).", self.name, len(reply or ""))
        logger.info("Source=%s records=%d elapsed=%.3fs", self.name, len(records), time.monotonic() - started_at)
        return records
