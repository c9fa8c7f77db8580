from __future__ import annotations

import math
from dataclasses import dataclass, fields
from typing import Any, Mapping


@dataclass(frozen=True, slots=True)
class ScoringWeights:
    """Point values for the additive relevance score."""

    presence: float
    term_match_base: float
    term_match_proportional: float
    title_match: float
    academic_level: float
    gender: float
    ethnicity: float

    def __post_init__(self) -> None:
        for item in fields(self):
            value = float(getattr(self, item.name))
            if not math.isfinite(value):
                raise ValueError(f"Scoring weight '{item.name}' must be finite.")
            if value < 0.0:
                raise ValueError(f"Scoring weight '{item.name}' cannot be negative.")

    @classmethod
    def baseline(cls) -> ScoringWeights:
        return cls(
            presence=1.0,
            term_match_base=10.0,
            term_match_proportional=20.0,
            title_match=5.0,
            academic_level=10.0,
            gender=5.0,
            ethnicity=5.0,
        )

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> ScoringWeights:
        values = payload or {}
        baseline = cls.baseline()
        return cls(**{item.name: float(values.get(item.name, getattr(baseline, item.name))) for item in fields(cls)})

    def to_dict(self) -> dict[str, float]:
        return {item.name: float(getattr(self, item.name)) for item in fields(self)}
