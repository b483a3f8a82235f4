"""Turn the checker's free-form text into structured results.

All pattern matching on checker output lives here. Two strategies are supported:

* per-invocation verdict: one client scenario run passes iff its output contains
  the `OVERALL: PASSED` marker;
* line scan: each line carrying a check or cross glyph followed by a name records
  that name as passed or failed (server runs and legacy text reports).
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, Mapping, Sequence

from conformance_harness.models import ServerTestResult, compute_rate, result_from_tests

OVERALL_PASSED_MARKER = "OVERALL: PASSED"

_PASS_RE = re.compile(r"[✓✅]\s+(.+?)(?::|$)")
_FAIL_RE = re.compile(r"[✗❌]\s+(.+?)(?::|$)")


def judge_scenario_output(text: str) -> bool:
    return OVERALL_PASSED_MARKER in (text or "")


def scan_test_lines(text: str) -> Dict[str, bool]:
    """Return `{test_name: passed}` for every glyph line in `text`.

    Later lines win over earlier ones for the same name.
    """
    tests: Dict[str, bool] = {}
    for line in (text or "").splitlines():
        m = _PASS_RE.search(line)
        if m:
            name = m.group(1).strip()
            if name:
                tests[name] = True
            continue
        m = _FAIL_RE.search(line)
        if m:
            name = m.group(1).strip()
            if name:
                tests[name] = False
    return tests


def parse_conformance_output(server_name: str, output: str) -> ServerTestResult:
    return result_from_tests(server_name, scan_test_lines(output), raw_output=output or "")


def parse_scenario_runs(
    server_name: str,
    outputs: Mapping[str, str],
    *,
    raw_output: str | None = None,
) -> ServerTestResult:
    """Build a result from per-scenario outputs judged one invocation at a time."""
    tests = {scenario: judge_scenario_output(text) for scenario, text in outputs.items()}
    if raw_output is None:
        raw_output = "\n".join(
            f"=== {scenario} ===\n{text}" for scenario, text in outputs.items()
        )
    return result_from_tests(server_name, tests, raw_output=raw_output)


def summary_stats(results: Iterable[ServerTestResult]) -> Dict[str, Any]:
    total_passed = 0
    total_failed = 0
    for r in results:
        total_passed += int(r.passed)
        total_failed += int(r.failed)
    total_tests = total_passed + total_failed
    return {
        "total_passed": total_passed,
        "total_failed": total_failed,
        "total_tests": total_tests,
        "overall_rate": compute_rate(total_passed, total_tests),
    }


def all_test_names(results: Sequence[ServerTestResult]) -> list[str]:
    names: set[str] = set()
    for r in results:
        names.update(r.tests.keys())
    return sorted(names)
