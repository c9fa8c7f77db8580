from __future__ import annotations

import asyncio
import logging
import time
from abc import abstractmethod
from typing import Any, Mapping

import requests
from bs4 import BeautifulSoup, Tag

from scholarship_search.criteria import SearchCriteria
from scholarship_search.ingest.base import SourceAdapter, SourceKind
from scholarship_search.ingest.http import PoliteHttpClient
from scholarship_search.normalize.schema import UNSPECIFIED

logger = logging.getLogger(__name__)

ACADEMIC_LEVEL_SLUGS: Mapping[str, str] = {
    "High School": "high-school",
    "Undergraduate": "undergraduate",
    "Graduate": "graduate",
}

AMOUNT_UNSPECIFIED = "Amount varies"
DEADLINE_UNSPECIFIED = "No deadline specified"
DESCRIPTION_UNSPECIFIED = "No description available"
ELIGIBILITY_UNSPECIFIED = "Eligibility requirements not specified"


class ScrapeSource(SourceAdapter):
    """One external listing page per search, parsed with site-specific selectors."""

    kind = SourceKind.SCRAPE
    search_url: str

    def __init__(self, http_client: PoliteHttpClient, *, max_results: int = 20) -> None:
        self._http = http_client
        self.max_results = max_results

    @abstractmethod
    def build_params(self, criteria: SearchCriteria) -> dict[str, str]:
        """Map criteria onto this site's query parameters."""

    @abstractmethod
    def parse_html(self, html: str) -> list[dict[str, Any]]:
        """Extract raw records from a fetched listing page."""

    async def search(self, criteria: SearchCriteria) -> list[dict[str, Any]]:
        params = self.build_params(criteria)
        started_at = time.monotonic()
        try:
            html = await asyncio.to_thread(self._http.get_text, self.search_url, params=params or None)
        except requests.RequestException as exc:
            logger.warning(
                "Source=%s fetch failed after retries (%s: %s); contributing no results.",
                self.name,
                type(exc).__name__,
                exc,
            )
            return []

        try:
            records = self.parse_html(html)
        except Exception:
            logger.warning("Source=%s could not parse listing page.", self.name, exc_info=True)
            return []

        logger.info(
            "Source=%s scraped=%d elapsed=%.3fs",
            self.name,
            len(records),
            time.monotonic() - started_at,
        )
        return records[: self.max_results]

    def absolute_url(self, href: str | None) -> str:
        if not href:
            return ""
        href = href.strip()
        if href.startswith(("http://", "https://")):
            return href
        return f"{self.base_url.rstrip('/')}/{href.lstrip('/')}"


def level_slug(academic_level: str) -> str:
    return ACADEMIC_LEVEL_SLUGS.get(academic_level, academic_level.lower())


def make_soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def select_text(element: Tag, selector: str) -> str:
    found = element.select_one(selector)
    if found is None:
        return ""
    return " ".join(found.get_text(" ").split())


def or_unspecified(value: str, sentinel: str = UNSPECIFIED) -> str:
    return value if value else sentinel
