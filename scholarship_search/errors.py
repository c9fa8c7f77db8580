from __future__ import annotations


class SearchError(Exception):
    """Base class for scholarship search errors."""


class ValidationError(SearchError, ValueError):
    """Raised when search criteria are missing or malformed."""


class AdapterFailure(SearchError):
    """A single data source failed; contained at the adapter boundary."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


class ParseFailure(AdapterFailure):
    """A source responded but the payload could not be interpreted."""


class UpstreamTimeout(AdapterFailure):
    """A source exceeded its bounded wait."""
