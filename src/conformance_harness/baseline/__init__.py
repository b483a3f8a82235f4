"""Baseline retrieval and comparison against reference branches."""

from __future__ import annotations

from conformance_harness.baseline.compare import (
    DELTA_IMPROVEMENT,
    DELTA_NEW,
    DELTA_REGRESSION,
    DELTA_UNCHANGED,
    BaselineDelta,
    BaselineResults,
    BaselineSet,
    HistorySource,
    change_flag,
    compare_totals,
    fetch_baseline,
    fetch_baselines,
    per_test_flags,
    primary_branch,
)
from conformance_harness.baseline.history import (
    LEGACY_ARTIFACT_NAMES,
    LocalHistory,
    decode_artifact_files,
    read_zip_members,
)

__all__ = [
    "DELTA_IMPROVEMENT",
    "DELTA_NEW",
    "DELTA_REGRESSION",
    "DELTA_UNCHANGED",
    "LEGACY_ARTIFACT_NAMES",
    "BaselineDelta",
    "BaselineResults",
    "BaselineSet",
    "HistorySource",
    "LocalHistory",
    "change_flag",
    "compare_totals",
    "decode_artifact_files",
    "fetch_baseline",
    "fetch_baselines",
    "per_test_flags",
    "primary_branch",
    "read_zip_members",
]
