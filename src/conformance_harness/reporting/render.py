"""Markdown rendering of conformance results.

Everything here is a pure function of the results (and, optionally, the baselines);
identical inputs give byte-identical output.
"""

from __future__ import annotations

from typing import List, Mapping, Optional, Sequence

from conformance_harness.baseline.compare import (
    DELTA_IMPROVEMENT,
    DELTA_REGRESSION,
    BaselineResults,
    compare_totals,
    per_test_flags,
    primary_branch,
)
from conformance_harness.models import BadgeData, ServerTestResult
from conformance_harness.parsing import all_test_names, summary_stats

COMMENT_MARKER = "<!-- mcp-conformance-results -->"
COMMENT_TITLE = "MCP Conformance Test Results"
BADGE_LABEL_PREFIX = "MCP Conformance"
BADGE_PASSING_RATE = 60

ICON_NEW = "🆕"
ICON_PASS = "✅"
ICON_FAIL = "❌"
ICON_NOT_RUN = "➖"

_MCP_ICON_BASE = "https://registry.npmmirror.com/@lobehub/icons-static-png/1.74.0/files"

Baselines = Mapping[str, BaselineResults]


def comparison_cell(current: ServerTestResult, baseline: Optional[ServerTestResult]) -> str:
    delta = compare_totals(current, baseline)
    if delta.is_new:
        return ICON_NEW
    if delta.kind == DELTA_IMPROVEMENT:
        return f"🟢 +{delta.delta}"
    if delta.kind == DELTA_REGRESSION:
        return f"🔴 {delta.delta}"
    return "⚪ +0"


def score_cell(result: ServerTestResult) -> str:
    return f"**{result.passed}/{result.total}** ({result.rate}%)"


def summary_table(
    results: Sequence[ServerTestResult], baselines: Optional[Baselines] = None
) -> str:
    branches = list(baselines or {})
    if branches:
        header = "| SDK | Score | " + " | ".join(f"vs {b}" for b in branches) + " |"
        separator = "|-----|:-----:|" + "|".join(":-------:" for _ in branches) + "|"
    else:
        header = "| SDK | Score |"
        separator = "|-----|:-----:|"

    rows = [header, separator]
    for r in results:
        cells = [r.server_name, score_cell(r)]
        for branch in branches:
            cells.append(comparison_cell(r, (baselines or {})[branch].get(r.server_name)))
        rows.append("| " + " | ".join(cells) + " |")
    return "\n".join(rows)


def _test_cell(result: ServerTestResult, test_name: str, flags: Mapping[str, str]) -> str:
    current = result.tests.get(test_name)
    if current is True:
        icon = ICON_PASS
    elif current is False:
        icon = ICON_FAIL
    else:
        icon = ICON_NOT_RUN
    flag = flags.get(test_name)
    return f"{icon} {flag}" if flag else icon


def detail_table(
    results: Sequence[ServerTestResult],
    baselines: Optional[Baselines] = None,
    *,
    primary: Optional[str] = None,
) -> str:
    """Scenarios as rows, targets as columns.

    Change flags (`+1` / `-1`) are computed against the primary baseline branch only.
    Returns an empty string when no result recorded any test.
    """
    names = all_test_names(results)
    if not names:
        return ""

    branch = primary_branch(baselines, primary)
    primary_results = (baselines or {}).get(branch or "") or {}
    flags = {r.server_name: per_test_flags(r, primary_results.get(r.server_name)) for r in results}

    header = "| Scenario | " + " | ".join(r.server_name for r in results) + " |"
    separator = "|----------|" + "|".join(":---:" for _ in results) + "|"
    rows = [header, separator]
    for name in names:
        cells = [_test_cell(r, name, flags[r.server_name]) for r in results]
        rows.append(f"| {name} | " + " | ".join(cells) + " |")
    return "\n".join(rows)


def render_section(
    title: str,
    results: Sequence[ServerTestResult],
    baselines: Optional[Baselines] = None,
    *,
    primary: Optional[str] = None,
) -> str:
    total_failed = sum(r.failed for r in results)
    if total_failed > 0:
        detail_summary = f"{total_failed} failure(s) — click to expand"
    else:
        detail_summary = "All passing — click to expand"
    lines = [
        f"### {title}",
        "",
        summary_table(results, baselines),
        "",
        "<details>",
        f"<summary>{detail_summary}</summary>",
        "",
        detail_table(results, baselines, primary=primary),
        "",
        "</details>",
    ]
    return "\n".join(lines)


def _heading() -> List[str]:
    return [
        "<h2>",
        '<picture style="display: inline-block; vertical-align: middle; margin-right: 8px;">',
        f'  <source media="(prefers-color-scheme: dark)" srcset="{_MCP_ICON_BASE}/dark/mcp.png">',
        f'  <source media="(prefers-color-scheme: light)" srcset="{_MCP_ICON_BASE}/light/mcp.png">',
        f'  <img alt="MCP" src="{_MCP_ICON_BASE}/light/mcp.png" height="32" width="32" '
        'style="display: inline-block; vertical-align: middle;">',
        "</picture>",
        f'<span style="vertical-align: middle;">{COMMENT_TITLE}</span>',
        "</h2>",
    ]


def split_results(
    results: Sequence[ServerTestResult],
) -> tuple[List[ServerTestResult], List[ServerTestResult]]:
    server = [r for r in results if not r.is_client_result]
    client = [r for r in results if r.is_client_result]
    return server, client


def render_comment_body(
    results: Sequence[ServerTestResult],
    *,
    sha: str,
    run_url: str,
    baselines: Optional[Baselines] = None,
    primary: Optional[str] = None,
) -> str:
    """Full pull-request comment; the marker is always the first line."""
    server_results, client_results = split_results(results)
    parts = [COMMENT_MARKER, *_heading(), "", f"**Commit:** `{sha}`"]
    sections = (("Server Conformance", server_results), ("Client Conformance", client_results))
    for title, group in sections:
        if group:
            parts += ["", render_section(title, group, baselines, primary=primary)]
    parts += ["", f"[View full run details]({run_url})"]
    return "\n".join(parts)


def render_job_summary(results: Sequence[ServerTestResult]) -> str:
    stats = summary_stats(results)
    lines = [
        f"# {COMMENT_TITLE}",
        "",
        "| Server | Passed | Failed | Total | Rate |",
        "| --- | --- | --- | --- | --- |",
    ]
    for r in results:
        lines.append(f"| {r.server_name} | {r.passed} | {r.failed} | {r.total} | {r.rate}% |")
    lines += [
        "",
        f"**Overall:** {stats['total_passed']}/{stats['total_tests']} tests passed "
        f"({stats['overall_rate']}%)",
        "",
    ]
    return "\n".join(lines)


def badge_color(result: ServerTestResult) -> str:
    if result.total == 0:
        return "lightgrey"
    if result.passed == result.total:
        return "brightgreen"
    if result.rate >= BADGE_PASSING_RATE:
        return "yellow"
    return "red"


def generate_badge_data(
    result: ServerTestResult, *, label_prefix: str = BADGE_LABEL_PREFIX
) -> BadgeData:
    if result.total == 0:
        message = "no tests"
    else:
        message = f"{result.passed}/{result.total} ({result.rate}%)"
    return BadgeData(
        label=f"{label_prefix} ({result.server_name})",
        message=message,
        color=badge_color(result),
    )


def badge_filename(server_name: str) -> str:
    return f"{server_name.lower()}-conformance.json"
