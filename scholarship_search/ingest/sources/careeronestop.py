from __future__ import annotations

import json
import logging
from typing import Any

from bs4 import BeautifulSoup

from scholarship_search.criteria import SearchCriteria
from scholarship_search.ingest.scrape import (
    AMOUNT_UNSPECIFIED,
    DEADLINE_UNSPECIFIED,
    DESCRIPTION_UNSPECIFIED,
    ELIGIBILITY_UNSPECIFIED,
    ScrapeSource,
    level_slug,
    make_soup,
    or_unspecified,
    select_text,
)

logger = logging.getLogger(__name__)

_CARD_SELECTOR = ".scholarship-item, .result-item, .search-result, .scholarship-card, .training-result"
_TITLE_SELECTOR = "h3, h2, .title, .scholarship-title, .name, .result-title"
_AMOUNT_SELECTOR = ".amount, .award-amount, .value, .scholarship-amount, .award"
_DEADLINE_SELECTOR = ".deadline, .due-date, .expires, .application-deadline, .deadline-date"
_DESCRIPTION_SELECTOR = ".description, .summary, .details, .scholarship-description, .result-description"
_ELIGIBILITY_SELECTOR = ".eligibility, .requirements, .criteria, .qualifications"
_HEADER_TITLES = {"scholarship name", "award name"}


class CareerOneStopSource(ScrapeSource):
    """U.S. Department of Labor scholarship finder.

    Result cards are tried first, then JSON-LD blocks, then the plain
    results table (title, amount, deadline columns).
    """

    name = "CareerOneStop"
    base_url = "https://www.careeronestop.org"
    search_url = "https://www.careeronestop.org/Toolkit/Training/find-scholarships.aspx"

    def build_params(self, criteria: SearchCriteria) -> dict[str, str]:
        params: dict[str, str] = {}
        if criteria.keywords:
            params["keyword"] = criteria.keywords
        if criteria.academic_level:
            params["education-level"] = level_slug(criteria.academic_level)
        if criteria.subject_areas:
            params["field-of-study"] = ",".join(criteria.subject_areas)
        if criteria.geographic_restriction:
            params["geographicRestrictions"] = criteria.geographic_restriction
        return params

    def parse_html(self, html: str) -> list[dict[str, Any]]:
        soup = make_soup(html)
        records = self._parse_cards(soup)
        if not records:
            records = self._parse_json_ld(soup)
        if not records:
            records = self._parse_table(soup)
        return records

    def _parse_cards(self, soup: BeautifulSoup) -> list[dict[str, Any]]:
        records: list[dict[str, Any]] = []
        for card in soup.select(_CARD_SELECTOR):
            title = select_text(card, _TITLE_SELECTOR)
            if not title:
                continue
            link = card.find("a", href=True)
            records.append(
                {
                    "title": title,
                    "amount": or_unspecified(select_text(card, _AMOUNT_SELECTOR), AMOUNT_UNSPECIFIED),
                    "deadline": or_unspecified(select_text(card, _DEADLINE_SELECTOR), DEADLINE_UNSPECIFIED),
                    "description": or_unspecified(
                        select_text(card, _DESCRIPTION_SELECTOR), DESCRIPTION_UNSPECIFIED
                    ),
                    "eligibility": or_unspecified(
                        select_text(card, _ELIGIBILITY_SELECTOR), ELIGIBILITY_UNSPECIFIED
                    ),
                    "url": self.absolute_url(link["href"] if link else None),
                }
            )
        return records

    def _parse_json_ld(self, soup: BeautifulSoup) -> list[dict[str, Any]]:
        records: list[dict[str, Any]] = []
        for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
            try:
                payload = json.loads(script.string or "{}")
            except json.JSONDecodeError:
                logger.debug("Skipping malformed JSON-LD block on %s", self.name)
                continue
            items = payload if isinstance(payload, list) else [payload]
            for item in items:
                if not isinstance(item, dict):
                    continue
                if item.get("@type") != "Scholarship" and not item.get("name"):
                    continue
                records.append(
                    {
                        "title": item.get("name") or item.get("title") or "CareerOneStop Scholarship",
                        "description": item.get("description") or DESCRIPTION_UNSPECIFIED,
                        "amount": item.get("amount") or item.get("value") or AMOUNT_UNSPECIFIED,
                        "deadline": (
                            item.get("deadline") or item.get("applicationDeadline") or DEADLINE_UNSPECIFIED
                        ),
                        "eligibility": item.get("eligibility") or ELIGIBILITY_UNSPECIFIED,
                        "url": self.absolute_url(item.get("url") or item.get("link")),
                    }
                )
        return records

    def _parse_table(self, soup: BeautifulSoup) -> list[dict[str, Any]]:
        records: list[dict[str, Any]] = []
        for row in soup.select("table tr"):
            cells = row.find_all("td")
            if len(cells) < 3:
                continue
            title = " ".join(cells[0].get_text(" ").split())
            if not title or title.lower() in _HEADER_TITLES:
                continue
            link = cells[0].find("a", href=True)
            records.append(
                {
                    "title": title,
                    "amount": or_unspecified(" ".join(cells[1].get_text(" ").split()), AMOUNT_UNSPECIFIED),
                    "deadline": or_unspecified(
                        " ".join(cells[2].get_text(" ").split()), DEADLINE_UNSPECIFIED
                    ),
                    "description": "Scholarship from CareerOneStop database",
                    "eligibility": ELIGIBILITY_UNSPECIFIED,
                    "url": self.absolute_url(link["href"] if link else None),
                }
            )
        return records
