"""Compare the current run against results recorded for reference branches."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Protocol, Sequence

from conformance_harness.models import ServerTestResult

logger = logging.getLogger(__name__)

BaselineResults = Dict[str, ServerTestResult]
BaselineSet = Dict[str, BaselineResults]

DELTA_NEW = "new"
DELTA_IMPROVEMENT = "improvement"
DELTA_REGRESSION = "regression"
DELTA_UNCHANGED = "unchanged"

FLAG_NEWLY_PASSING = "+1"
FLAG_NEWLY_FAILING = "-1"


class HistorySource(Protocol):
    def fetch_run_results(
        self, branch: str, *, workflow: str, artifact_name: str
    ) -> Optional[BaselineResults]:
        """Results of the most recent successful run on `branch`, or None."""
        ...


@dataclass(frozen=True)
class BaselineDelta:
    kind: str
    delta: Optional[int] = None

    @property
    def is_new(self) -> bool:
        return self.kind == DELTA_NEW


def compare_totals(
    current: ServerTestResult, baseline: Optional[ServerTestResult]
) -> BaselineDelta:
    if baseline is None or baseline.total == 0:
        return BaselineDelta(kind=DELTA_NEW)
    delta = int(current.passed) - int(baseline.passed)
    if delta > 0:
        return BaselineDelta(kind=DELTA_IMPROVEMENT, delta=delta)
    if delta < 0:
        return BaselineDelta(kind=DELTA_REGRESSION, delta=delta)
    return BaselineDelta(kind=DELTA_UNCHANGED, delta=0)


def change_flag(current: Optional[bool], baseline: Optional[bool]) -> Optional[str]:
    if baseline is None or current is None or baseline == current:
        return None
    return FLAG_NEWLY_PASSING if current else FLAG_NEWLY_FAILING


def per_test_flags(
    current: ServerTestResult, baseline: Optional[ServerTestResult]
) -> Dict[str, str]:
    if baseline is None:
        return {}
    flags: Dict[str, str] = {}
    for name, ok in current.tests.items():
        flag = change_flag(ok, baseline.tests.get(name))
        if flag:
            flags[name] = flag
    return flags


def primary_branch(
    baselines: Optional[Mapping[str, BaselineResults]], preferred: Optional[str] = None
) -> Optional[str]:
    """Branch whose results drive per-test flags: `preferred`, else the first fetched."""
    if preferred:
        return preferred
    if not baselines:
        return None
    return next(iter(baselines))


def fetch_baseline(
    source: HistorySource, branch: str, *, workflow: str, artifact_name: str
) -> Optional[BaselineResults]:
    logger.info("fetching baseline results from %s", branch)
    try:
        results = source.fetch_run_results(branch, workflow=workflow, artifact_name=artifact_name)
    except Exception as e:
        logger.warning("error fetching baseline for %s: %s", branch, e)
        return None
    if not results:
        logger.info("no baseline results found for %s", branch)
        return None
    return dict(results)


def fetch_baselines(
    source: HistorySource,
    branches: Sequence[str],
    *,
    workflow: str,
    artifact_name: str,
) -> BaselineSet:
    baselines: BaselineSet = {}
    for branch in branches:
        results = fetch_baseline(source, branch, workflow=workflow, artifact_name=artifact_name)
        if results is not None:
            baselines[branch] = results
    return baselines
