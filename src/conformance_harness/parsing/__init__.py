"""Checker output parsing (text in, `ServerTestResult` out)."""

from __future__ import annotations

from conformance_harness.parsing.result_parser import (
    OVERALL_PASSED_MARKER,
    all_test_names,
    judge_scenario_output,
    parse_conformance_output,
    parse_scenario_runs,
    scan_test_lines,
    summary_stats,
)

__all__ = [
    "OVERALL_PASSED_MARKER",
    "all_test_names",
    "judge_scenario_output",
    "parse_conformance_output",
    "parse_scenario_runs",
    "scan_test_lines",
    "summary_stats",
]
