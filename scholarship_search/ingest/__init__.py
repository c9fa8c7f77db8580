from __future__ import annotations

from .base import SourceAdapter, SourceKind
from .http import PoliteHttpClient, build_retry
from .registry import list_sources, register_sources

__all__ = [
    "PoliteHttpClient",
    "SourceAdapter",
    "SourceKind",
    "build_retry",
    "list_sources",
    "register_sources",
]
