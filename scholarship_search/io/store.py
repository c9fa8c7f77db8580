from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Literal, Mapping, Protocol, Sequence
from uuid import uuid4

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

PredicateOp = Literal["eq", "contains", "contains_any", "lte", "gte"]

# Index name -> partition attribute. One index per query.
INDEX_ATTRIBUTES: dict[str, str] = {
    "EducationLevelIndex": "educationLevel",
    "MajorIndex": "major",
    "LocationIndex": "state",
    "DemographicsIndex": "ethnicity",
    "GenderIndex": "gender",
    "GPAIndex": "minimumGPA",
}

STORE_COLUMNS = [
    "id",
    "title",
    "organization",
    "description",
    "amount",
    "amountMin",
    "amountMax",
    "deadline",
    "eligibility",
    "targetType",
    "gender",
    "ethnicity",
    "educationLevel",
    "major",
    "state",
    "minimumGPA",
    "essayRequired",
    "recommendationRequired",
    "renewable",
    "url",
    "active",
]


@dataclass(frozen=True, slots=True)
class KeyCondition:
    index_name: str
    attribute: str
    value: Any


@dataclass(frozen=True, slots=True)
class FilterPredicate:
    attribute: str
    op: PredicateOp
    value: Any
    missing_ok: bool = False


class ScholarshipStore(Protocol):
    def query(
        self,
        key: KeyCondition,
        filters: Sequence[FilterPredicate] = (),
        *,
        active_only: bool = True,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:  # pragma: no cover
        ...

    def scan(
        self,
        filters: Sequence[FilterPredicate] = (),
        *,
        active_only: bool = True,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:  # pragma: no cover
        ...


class SnapshotScholarshipStore:
    """Index-aware scholarship store over an in-memory snapshot table."""

    def __init__(self, df: pd.DataFrame) -> None:
        table = df.copy()
        for column in STORE_COLUMNS:
            if column not in table.columns:
                table[column] = None
        table["active"] = table["active"].map(_is_truthy).astype(bool)
        self._df = table.reset_index(drop=True)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> SnapshotScholarshipStore:
        rows = [dict(record) for record in records]
        if not rows:
            return cls(pd.DataFrame(columns=STORE_COLUMNS))
        return cls(pd.DataFrame(rows))

    @classmethod
    def from_parquet(cls, path: Path) -> SnapshotScholarshipStore:
        if not path.exists():
            raise FileNotFoundError(
                f"No scholarship store found at '{path}'. Run scripts/build_store.py to create one."
            )
        return cls(pd.read_parquet(path))

    def __len__(self) -> int:
        return len(self._df)

    def query(
        self,
        key: KeyCondition,
        filters: Sequence[FilterPredicate] = (),
        *,
        active_only: bool = True,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        expected_attribute = INDEX_ATTRIBUTES.get(key.index_name)
        if expected_attribute is None:
            raise ValueError(f"Unknown index '{key.index_name}'.")
        if expected_attribute != key.attribute:
            raise ValueError(
                f"Index '{key.index_name}' is keyed on '{expected_attribute}', not '{key.attribute}'."
            )

        mask = _predicate_mask(self._df, FilterPredicate(key.attribute, "eq", key.value))
        return self._select(mask, filters, active_only=active_only, limit=limit)

    def scan(
        self,
        filters: Sequence[FilterPredicate] = (),
        *,
        active_only: bool = True,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        mask = pd.Series(True, index=self._df.index)
        return self._select(mask, filters, active_only=active_only, limit=limit)

    def _select(
        self,
        mask: pd.Series,
        filters: Sequence[FilterPredicate],
        *,
        active_only: bool,
        limit: int | None,
    ) -> list[dict[str, Any]]:
        if active_only:
            mask = mask & self._df["active"]
        for predicate in filters:
            mask = mask & _predicate_mask(self._df, predicate)

        selected = self._df[mask]
        if limit is not None:
            selected = selected.head(limit)
        return [_record_from_row(row) for row in selected.to_dict(orient="records")]


def _predicate_mask(df: pd.DataFrame, predicate: FilterPredicate) -> pd.Series:
    column = df[predicate.attribute] if predicate.attribute in df.columns else pd.Series(None, index=df.index)
    missing = column.map(_is_missing)

    if predicate.op == "eq" and _as_number(predicate.value) is not None:
        values = pd.to_numeric(column, errors="coerce")
        matched = (values - float(predicate.value)).abs() < 1e-9
    elif predicate.op == "contains_any":
        needles = [str(item).strip().lower() for item in predicate.value if str(item).strip()]
        haystack = column.map(lambda value: "" if _is_missing(value) else str(value).strip().lower())
        matched = haystack.map(lambda text: any(needle in text for needle in needles))
    elif predicate.op in ("eq", "contains"):
        needle = str(predicate.value).strip().lower()
        haystack = column.map(lambda value: "" if _is_missing(value) else str(value).strip().lower())
        if predicate.op == "eq":
            matched = haystack == needle
        else:
            matched = haystack.map(lambda text: needle in text)
    else:
        numeric_target = _as_number(predicate.value)
        if numeric_target is not None:
            values = pd.to_numeric(column, errors="coerce")
            target: Any = numeric_target
        else:
            values = column.map(lambda value: None if _is_missing(value) else str(value))
            target = str(predicate.value)
        if predicate.op == "lte":
            matched = values.map(lambda value: value is not None and not pd.isna(value) and value <= target)
        else:
            matched = values.map(lambda value: value is not None and not pd.isna(value) and value >= target)

    matched = matched.astype(bool)
    if predicate.missing_ok:
        return matched | missing
    return matched & ~missing


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, np.number)):
        return float(value)
    return None


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, np.ndarray)):
        return len(value) == 0
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _is_truthy(value: Any) -> bool:
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def _record_from_row(row: Mapping[str, Any]) -> dict[str, Any]:
    record: dict[str, Any] = {}
    for key, value in row.items():
        if isinstance(value, np.ndarray):
            record[key] = value.tolist()
        elif _is_missing(value):
            record[key] = None
        elif isinstance(value, np.generic):
            record[key] = value.item()
        else:
            record[key] = value
    return record


def write_store_parquet(records: Sequence[Mapping[str, Any]], output_path: Path) -> Path:
    df = pd.DataFrame([dict(record) for record in records])
    for column in STORE_COLUMNS:
        if column not in df.columns:
            df[column] = None
    for numeric_column in ("amountMin", "amountMax", "minimumGPA"):
        df[numeric_column] = pd.to_numeric(df[numeric_column], errors="coerce")
    if df["id"].isna().any():
        df["id"] = [value if isinstance(value, str) and value else f"scholarship_{uuid4().hex[:12]}" for value in df["id"]]
    df["active"] = df["active"].map(lambda value: "true" if _is_missing(value) or _is_truthy(value) else "false")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = output_path.parent / f"{output_path.name}.{uuid4().hex}.tmp"
    try:
        df[STORE_COLUMNS].to_parquet(temp_path, index=False, engine="pyarrow")
        temp_path.replace(output_path)
    finally:
        if temp_path.exists():
            temp_path.unlink()
    logger.info("Wrote %d scholarship records to %s", len(df), output_path)
    return output_path


def load_store_records(path: Path) -> list[dict[str, Any]]:
    loaded = json.loads(path.read_text(encoding="utf-8-sig"))
    if isinstance(loaded, dict):
        loaded = loaded.get("scholarships", [loaded])
    if not isinstance(loaded, list):
        raise ValueError(f"Expected a JSON list of scholarship records in '{path}'.")
    return [item for item in loaded if isinstance(item, dict)]
