"""Runtime: target processes, checker invocation, scenario catalog, executor."""

from __future__ import annotations

from conformance_harness.runtime.catalog import (
    list_scenarios,
    parse_scenario_listing,
    stable_scenarios,
)
from conformance_harness.runtime.checker import (
    CheckerInvocationError,
    CheckerRun,
    ConformanceChecker,
)
from conformance_harness.runtime.executor import (
    ConformanceExecutor,
    ExecutorOptions,
    merge_results,
)
from conformance_harness.runtime.process import (
    SetupCommandError,
    TargetStartError,
    http_probe,
    run_setup_commands,
    start_target,
    wait_until_ready,
)

__all__ = [
    "CheckerInvocationError",
    "CheckerRun",
    "ConformanceChecker",
    "ConformanceExecutor",
    "ExecutorOptions",
    "SetupCommandError",
    "TargetStartError",
    "http_probe",
    "list_scenarios",
    "merge_results",
    "parse_scenario_listing",
    "run_setup_commands",
    "stable_scenarios",
    "start_target",
    "wait_until_ready",
]
