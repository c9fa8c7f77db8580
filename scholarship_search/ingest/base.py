from __future__ import annotations

from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Any

from scholarship_search.criteria import SearchCriteria


class SourceKind(IntEnum):
    """Source families in trust order; lower values win ranking ties."""

    STRUCTURED_STORE = 0
    GENERATIVE = 1
    SCRAPE = 2


class SourceAdapter(ABC):
    name: str
    kind: SourceKind
    base_url: str = ""

    @abstractmethod
    async def search(self, criteria: SearchCriteria) -> list[dict[str, Any]]:
        """Return raw records for the criteria, in the order the source produced them."""

    def describe(self) -> dict[str, Any]:
        return {"name": self.name, "kind": self.kind.name.lower(), "url": self.base_url}
