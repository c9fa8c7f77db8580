"""Stable ids for results that arrive without one.

The id hashes what makes a listing the same listing across runs: where it
came from, who offers it, how much, and when it closes. Cosmetic
differences (case, runs of whitespace, a ``www.`` host prefix, a time
component on an ISO deadline) do not change it.
"""

from __future__ import annotations

import hashlib
from datetime import datetime
from typing import Optional
from urllib.parse import urlparse


def _fold(text: Optional[str]) -> str:
    return " ".join((text or "").lower().split())


def _money(value: Optional[float]) -> str:
    return "" if value is None else format(float(value), ".2f")


def _deadline_day(raw: Optional[str]) -> str:
    text = (raw or "").strip()
    if not text:
        return ""
    # Freeform deadlines ("Rolling", "March 1") are kept as folded text.
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return _fold(text)
    return parsed.date().isoformat()


def _site(link: Optional[str]) -> str:
    host = urlparse((link or "").strip()).netloc.lower()
    return host.removeprefix("www.")


def generate_scholarship_id(
    *,
    source: str,
    title: str,
    organization: Optional[str],
    amount_min: Optional[float],
    amount_max: Optional[float],
    deadline: Optional[str],
    url: Optional[str],
) -> str:
    fingerprint = (
        _fold(source),
        _fold(title),
        _fold(organization),
        _money(amount_min),
        _money(amount_max),
        _deadline_day(deadline),
        _site(url),
    )
    return hashlib.sha1("|".join(fingerprint).encode("utf-8")).hexdigest()
