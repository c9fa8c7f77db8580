from __future__ import annotations

from typing import Any

from bs4 import Tag

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

_NO_GEOGRAPHIC_RESTRICTION = "No Geographic Restrictions"


class CollegeScholarshipsSource(ScrapeSource):
    """CollegeScholarships.org listing rows.

    Each ``.row`` pairs a summary column (amount, deadline) with a
    description column whose icon list carries eligibility, academic level
    (graduation cap) and location (map marker).
    """

    name = "CollegeScholarships.org"
    base_url = "http://www.collegescholarships.org"
    search_url = "http://www.collegescholarships.org/"

    def build_params(self, criteria: SearchCriteria) -> dict[str, str]:
        params: dict[str, str] = {}
        if criteria.keywords:
            params["keyword"] = criteria.keywords
        if criteria.academic_level:
            params["school-level"] = level_slug(criteria.academic_level)
        if criteria.subject_areas:
            params["major"] = ",".join(criteria.subject_areas)
        if criteria.gender:
            params["gender"] = criteria.gender.lower()
        if criteria.ethnicity:
            params["ethnicity"] = criteria.ethnicity.lower()
        if criteria.geographic_restriction:
            params["geographicRestrictions"] = criteria.geographic_restriction
        return params

    def parse_html(self, html: str) -> list[dict[str, Any]]:
        soup = make_soup(html)
        records: list[dict[str, Any]] = []
        for row in soup.select(".row"):
            summary = row.select_one(".scholarship-summary")
            description = row.select_one(".scholarship-description")
            if summary is None or description is None:
                continue
            record = self._parse_row(summary, description)
            if record is not None:
                records.append(record)
        return records

    def _parse_row(self, summary: Tag, description: Tag) -> dict[str, Any] | None:
        title_link = description.select_one("h4 a")
        if title_link is None:
            return None
        title = " ".join(title_link.get_text(" ").split())
        if not title or "Find Scholarships" in title:
            return None

        paragraphs = summary.find_all("p")
        deadline = ""
        if paragraphs:
            strong = paragraphs[-1].find("strong")
            deadline = " ".join(strong.get_text(" ").split()) if strong else ""

        blurb = ""
        for paragraph in description.find_all("p"):
            if "visible-xs" in (paragraph.get("class") or []):
                continue
            blurb = " ".join(paragraph.get_text(" ").split())
            break

        eligibility: list[str] = []
        levels: list[str] = []
        locations: list[str] = []
        for item in description.select("ul.fa-ul li"):
            text = select_text(item, ".trim")
            if not text or _NO_GEOGRAPHIC_RESTRICTION in text:
                continue
            icon = item.find("i")
            icon_classes = " ".join(icon.get("class") or []) if icon else ""
            if "fa-map-marker" in icon_classes:
                locations.append(text)
            elif "fa-graduation-cap" in icon_classes:
                levels.append(text)
            else:
                eligibility.append(text)

        return {
            "title": title,
            "amount": or_unspecified(select_text(summary, ".lead strong"), AMOUNT_UNSPECIFIED),
            "deadline": or_unspecified(deadline, DEADLINE_UNSPECIFIED),
            "url": self.absolute_url(title_link.get("href")),
            "description": or_unspecified(blurb, DESCRIPTION_UNSPECIFIED),
            "eligibility": or_unspecified(" | ".join(eligibility), ELIGIBILITY_UNSPECIFIED),
            "academicLevel": " | ".join(levels) or None,
            "geographicRestrictions": " | ".join(locations) or None,
        }
