"""Blocking HTTP for the scrape sources.

One :class:`PoliteHttpClient` is shared by every scraper so the request
budget is global rather than per site. Retries with backoff are delegated
to urllib3; the client itself only spaces requests out.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Mapping

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from scholarship_search.config import SearchSettings

logger = logging.getLogger(__name__)

# Fetches slower than this get a warning with the site and status.
SLOW_FETCH_SECONDS = 5.0
MAX_CONNECT_SECONDS = 5.0

# Scholarship sites reject obvious bot user agents.
BROWSER_HEADERS: Mapping[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
}

RETRY_STATUSES = (429, 500, 502, 503, 504)


def build_retry(max_retries: int, backoff_factor: float) -> Retry:
    """Bounded exponential backoff, GET only, for connect/read errors and throttled or 5xx replies."""

    return Retry(
        total=max_retries,
        connect=max_retries,
        read=max_retries,
        status=max_retries,
        backoff_factor=backoff_factor,
        status_forcelist=RETRY_STATUSES,
        allowed_methods=frozenset({"GET"}),
        raise_on_status=False,
    )


class PoliteHttpClient:
    """Session wrapper that keeps at most ``requests_per_second`` fetches in flight per second.

    Callers on different threads share one schedule: each fetch reserves the
    next free slot and sleeps until it arrives.
    """

    def __init__(
        self,
        *,
        requests_per_second: float = 0.5,
        timeout_seconds: float = 15.0,
        max_retries: int = 2,
        backoff_factor: float = 1.0,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.requests_per_second = requests_per_second
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor

        self._session = requests.Session()
        self._session.headers.update(dict(headers or BROWSER_HEADERS))
        retrying = HTTPAdapter(max_retries=build_retry(max_retries, backoff_factor))
        for prefix in ("http://", "https://"):
            self._session.mount(prefix, retrying)

        self._schedule_lock = threading.Lock()
        self._next_slot = 0.0

    @classmethod
    def from_settings(cls, settings: SearchSettings) -> PoliteHttpClient:
        return cls(
            requests_per_second=settings.scrape_requests_per_second,
            timeout_seconds=settings.scrape_timeout_seconds,
            max_retries=settings.scrape_max_retries,
            backoff_factor=settings.scrape_backoff_factor,
        )

    @property
    def timeout_tuple(self) -> tuple[float, float]:
        """``(connect, read)`` for requests; connecting never waits longer than five seconds."""

        connect = min(max(self.timeout_seconds, 1.0), MAX_CONNECT_SECONDS)
        return connect, max(self.timeout_seconds, connect)

    def get_text(self, url: str, *, params: dict[str, Any] | None = None) -> str:
        """GET ``url`` and return the decoded body; HTTP error statuses raise ``requests.HTTPError``."""

        self._wait_for_slot()
        fetch_started = time.monotonic()
        response = self._session.request(method="GET", url=url, params=params, timeout=self.timeout_tuple)
        took = time.monotonic() - fetch_started
        if took > SLOW_FETCH_SECONDS:
            logger.warning("Slow fetch took=%.3fs status=%s url=%s", took, getattr(response, "status_code", "?"), url)
        response.raise_for_status()
        return response.text

    def close(self) -> None:
        self._session.close()

    def _wait_for_slot(self) -> None:
        if self.requests_per_second <= 0:
            return
        spacing = 1.0 / self.requests_per_second
        with self._schedule_lock:
            now = time.monotonic()
            delay = self._next_slot - now
            if delay > 0:
                time.sleep(delay)
                now = time.monotonic()
            self._next_slot = now + spacing
