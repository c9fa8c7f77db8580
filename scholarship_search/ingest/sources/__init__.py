from __future__ import annotations

from .careeronestop import CareerOneStopSource
from .collegescholarships import CollegeScholarshipsSource
from .generative import GenerativeRecommendationSource, OpenAIChatGenerator, TextGenerator
from .structured_store import QueryPlan, StructuredStoreSource, plan_query

__all__ = [
    "CareerOneStopSource",
    "CollegeScholarshipsSource",
    "GenerativeRecommendationSource",
    "OpenAIChatGenerator",
    "QueryPlan",
    "StructuredStoreSource",
    "TextGenerator",
    "plan_query",
]
