"""Structured scholarship store backed by a parquet snapshot."""

from scholarship_search.io.store import (
    FilterPredicate,
    KeyCondition,
    ScholarshipStore,
    SnapshotScholarshipStore,
)

__all__ = ["FilterPredicate", "KeyCondition", "ScholarshipStore", "SnapshotScholarshipStore"]
