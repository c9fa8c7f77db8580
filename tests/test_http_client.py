from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest
import requests

from scholarship_search.config import SearchSettings
from scholarship_search.ingest import http as http_module
from scholarship_search.ingest.http import BROWSER_HEADERS, PoliteHttpClient, build_retry


def test_retry_policy_is_bounded_backoff_for_gets() -> None:
    retry = build_retry(max_retries=2, backoff_factor=1.0)

    assert retry.total == 2
    assert retry.backoff_factor == 1.0
    assert 503 in retry.status_forcelist
    assert 429 in retry.status_forcelist
    assert retry.allowed_methods == frozenset({"GET"})


def test_client_from_settings_carries_timeouts() -> None:
    client = PoliteHttpClient.from_settings(SearchSettings.from_mapping({"scrape_timeout_seconds": 12.0}))
    try:
        assert client.timeout_seconds == 12.0
        assert client.timeout_tuple == (5.0, 12.0)
        assert client.max_retries == 2
    finally:
        client.close()


def test_get_text_sends_browser_headers_and_waits_between_requests(monkeypatch: pytest.MonkeyPatch) -> None:
    clock = {"now": 100.0}
    sleeps: list[float] = []

    def fake_monotonic() -> float:
        return clock["now"]

    def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)
        clock["now"] += seconds

    monkeypatch.setattr(http_module.time, "monotonic", fake_monotonic)
    monkeypatch.setattr(http_module.time, "sleep", fake_sleep)

    client = PoliteHttpClient(requests_per_second=0.5, timeout_seconds=15.0)
    seen: list[dict[str, Any]] = []

    def fake_request(**kwargs: Any) -> Any:
        seen.append(kwargs)
        return SimpleNamespace(text="<html>ok</html>", raise_for_status=lambda: None)

    monkeypatch.setattr(client._session, "request", fake_request)
    try:
        assert client.get_text("https://example.org/a", params={"keyword": "x"}) == "<html>ok</html>"
        assert client.get_text("https://example.org/b") == "<html>ok</html>"
    finally:
        client.close()

    assert sleeps == [2.0]
    assert seen[0]["params"] == {"keyword": "x"}
    assert seen[0]["timeout"] == (5.0, 15.0)
    assert client._session.headers["User-Agent"] == BROWSER_HEADERS["User-Agent"]


def test_http_errors_propagate_to_the_caller(monkeypatch: pytest.MonkeyPatch) -> None:
    client = PoliteHttpClient(requests_per_second=0.0)

    def raise_for_status() -> None:
        raise requests.HTTPError("503 Service Unavailable")

    monkeypatch.setattr(
        client._session,
        "request",
        lambda **kwargs: SimpleNamespace(text="", raise_for_status=raise_for_status),
    )
    try:
        with pytest.raises(requests.HTTPError):
            client.get_text("https://example.org")
    finally:
        client.close()
