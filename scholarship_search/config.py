"""Search configuration.

Values come from the environment (optionally a ``.env`` file loaded with
``python-dotenv``) or from an explicit mapping. Each search service is built
from one immutable :class:`SearchSettings`.
"""

from __future__ import annotations

import math
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[1]
DEFAULT_STORE_PATH = ROOT_DIR / "data" / "processed" / "scholarships_store.parquet"

ENV_PREFIX = "SCHOLARSHIP_SEARCH_"

# Comprehend rejects documents over 5000 bytes.
ANALYSIS_HARD_BYTE_LIMIT = 5000
FALLBACK_LISTING_HARD_CAP = 50


@dataclass(frozen=True, slots=True)
class SearchSettings:
    default_max_results: int = 25
    max_results_cap: int = 100
    search_deadline_seconds: float = 30.0
    scrape_timeout_seconds: float = 15.0
    scrape_max_retries: int = 2
    scrape_backoff_factor: float = 1.0
    scrape_requests_per_second: float = 0.5
    scrape_max_results: int = 20
    generative_model: str = "gpt-4.1-mini"
    generative_max_tokens: int = 2000
    generative_temperature: float = 0.5
    generative_timeout_seconds: float = 60.0
    analysis_language_code: str = "en"
    analysis_max_bytes: int = 4500
    analysis_timeout_seconds: float = 10.0
    fallback_listing_size: int = 25
    aws_region: str = "us-east-1"
    store_path: Path = DEFAULT_STORE_PATH

    def __post_init__(self) -> None:
        for field_name in ("default_max_results", "max_results_cap", "fallback_listing_size", "scrape_max_results"):
            if int(getattr(self, field_name)) <= 0:
                raise ValueError(f"Setting '{field_name}' must be a positive integer.")
        if self.default_max_results > self.max_results_cap:
            raise ValueError("Setting 'default_max_results' cannot exceed 'max_results_cap'.")
        if self.fallback_listing_size > FALLBACK_LISTING_HARD_CAP:
            raise ValueError(
                f"Setting 'fallback_listing_size' must be at most {FALLBACK_LISTING_HARD_CAP}."
            )

        for field_name in (
            "search_deadline_seconds",
            "scrape_timeout_seconds",
            "generative_timeout_seconds",
            "analysis_timeout_seconds",
        ):
            value = float(getattr(self, field_name))
            if not math.isfinite(value) or value <= 0.0:
                raise ValueError(f"Setting '{field_name}' must be a positive number of seconds.")

        if not 10.0 <= self.scrape_timeout_seconds <= 20.0:
            raise ValueError("Setting 'scrape_timeout_seconds' must be between 10 and 20 seconds.")
        if not 0 <= self.scrape_max_retries <= 3:
            raise ValueError("Setting 'scrape_max_retries' must be between 0 and 3.")
        if self.scrape_backoff_factor < 0.0 or self.scrape_requests_per_second < 0.0:
            raise ValueError("Scrape backoff and rate settings cannot be negative.")
        if not 0.0 <= self.generative_temperature <= 1.0:
            raise ValueError("Setting 'generative_temperature' must be between 0.0 and 1.0.")
        if self.generative_max_tokens <= 0:
            raise ValueError("Setting 'generative_max_tokens' must be positive.")
        if not 0 < self.analysis_max_bytes <= ANALYSIS_HARD_BYTE_LIMIT:
            raise ValueError(
                f"Setting 'analysis_max_bytes' must be between 1 and {ANALYSIS_HARD_BYTE_LIMIT}."
            )

    @classmethod
    def baseline(cls) -> SearchSettings:
        return cls()

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> SearchSettings:
        values = dict(payload or {})
        known = {item.name for item in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown search settings: {', '.join(unknown)}")
        if "store_path" in values and values["store_path"] is not None:
            values["store_path"] = Path(values["store_path"])
        return replace(cls.baseline(), **values)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> SearchSettings:
        if environ is None:
            load_dotenv()
            environ = os.environ

        overrides: dict[str, Any] = {}
        for item in fields(cls):
            raw = environ.get(f"{ENV_PREFIX}{item.name.upper()}")
            if raw is None or not raw.strip():
                continue
            overrides[item.name] = _coerce_env_value(item.name, raw.strip())

        region = environ.get("AWS_REGION")
        if region and "aws_region" not in overrides:
            overrides["aws_region"] = region.strip()
        return cls.from_mapping(overrides)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["store_path"] = str(self.store_path)
        return payload


def _coerce_env_value(name: str, raw: str) -> Any:
    baseline = getattr(SearchSettings.baseline(), name)
    if isinstance(baseline, Path):
        return Path(raw)
    if isinstance(baseline, bool):
        return raw.lower() in {"1", "true", "yes", "on"}
    if isinstance(baseline, int):
        try:
            return int(raw)
        except ValueError as exc:
            raise ValueError(f"Environment setting '{name}' must be an integer (got {raw!r}).") from exc
    if isinstance(baseline, float):
        try:
            return float(raw)
        except ValueError as exc:
            raise ValueError(f"Environment setting '{name}' must be a number (got {raw!r}).") from exc
    return raw
