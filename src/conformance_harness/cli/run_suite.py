from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from conformance_harness.cli import configure_logging
from conformance_harness.config import (
    DEFAULT_RESULTS_DIR,
    ConfigurationError,
    GitHubContext,
    combine_targets,
    load_targets,
    parse_targets_json,
    resolve_token,
)
from conformance_harness.integration.github import GistBadgeStore, GitHubClient
from conformance_harness.models import (
    SCENARIO_CATEGORIES,
    TEST_TYPES,
    ServerTestResult,
    TargetConfig,
)
from conformance_harness.reporting import (
    BundleError,
    render_job_summary,
    update_all_badges,
    write_run_bundle,
)
from conformance_harness.runtime import (
    CheckerInvocationError,
    ConformanceChecker,
    ConformanceExecutor,
    ExecutorOptions,
    http_probe,
    list_scenarios,
)
from conformance_harness.runtime.checker import DEFAULT_CLIENT_TIMEOUT_S
from conformance_harness.runtime.executor import BOTH_RESULT_SHAPES
from conformance_harness.runtime.process import DEFAULT_SETTLE_DELAY_S

logger = logging.getLogger(__name__)


def _load_all_targets(args: argparse.Namespace) -> List[TargetConfig]:
    groups: List[List[TargetConfig]] = []
    if args.targets is not None:
        groups.append(load_targets(args.targets))
    targets_json = args.targets_json or os.environ.get("CONFORMANCE_TARGETS_JSON")
    if targets_json:
        groups.append(parse_targets_json(targets_json))
    return combine_targets(*groups)


def _cmd_list_scenarios(checker: ConformanceChecker, category: str) -> int:
    try:
        scenarios = list_scenarios(checker, category)
    except CheckerInvocationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    print(f"Found {len(scenarios)} stable {category} scenario(s)")
    for s in scenarios:
        print(f"- {s.id}")
    return 0


def _print_results(results: Sequence[ServerTestResult]) -> None:
    for r in results:
        print(f"{r.server_name}: {r.passed}/{r.total} passed ({r.rate}%)")


def _append_text(path: Path, text: str) -> None:
    with path.open("a", encoding="utf-8") as f:
        f.write(text)


def _write_step_outputs(path: Path, results: Sequence[ServerTestResult]) -> None:
    payload = json.dumps([r.to_dict() for r in results], ensure_ascii=False)
    all_passed = all(r.passed == r.total for r in results)
    _append_text(path, f"results={payload}\nall-passed={str(all_passed).lower()}\n")


def _publish_badges(
    args: argparse.Namespace, ctx: GitHubContext, results: Sequence[ServerTestResult]
) -> None:
    gist_id = (args.badge_gist_id or os.environ.get("CONFORMANCE_BADGE_GIST_ID") or "").strip()
    token = resolve_token(args.badge_gist_token, "CONFORMANCE_BADGE_GIST_TOKEN")
    if not gist_id or not token:
        logger.debug("badge gist not configured; skipping badges")
        return
    if not ctx.is_badge_push():
        logger.info("not a push to main/canary (%s %s); skipping badges", ctx.event_name, ctx.ref)
        return
    logger.info("updating badges")
    try:
        with GitHubClient(token, api_url=ctx.api_url) as client:
            update_all_badges(GistBadgeStore(client, gist_id), results)
    except Exception as e:
        logger.warning("failed to update badges: %s", e)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Run the MCP conformance checker against configured targets."
    )
    parser.add_argument(
        "--targets",
        type=Path,
        default=None,
        help="Targets document (.yaml/.yml/.json) with a top-level `targets` list",
    )
    parser.add_argument(
        "--targets_json",
        type=str,
        default=None,
        help="Inline JSON list of targets (default: $CONFORMANCE_TARGETS_JSON)",
    )
    parser.add_argument("--test_type", choices=TEST_TYPES, default="server")
    parser.add_argument(
        "--both_results",
        choices=BOTH_RESULT_SHAPES,
        default="split",
        help="With --test_type both: separate `<name>-client` results (split) or one merged result",
    )
    parser.add_argument(
        "--conformance_version",
        type=str,
        default="latest",
        help="Version of the conformance checker package to run via npx",
    )
    parser.add_argument(
        "--checker_command",
        type=str,
        default=None,
        help="Override the checker base command (shell-split), e.g. 'node ./dist/index.js'",
    )
    parser.add_argument("--settle_delay_s", type=float, default=DEFAULT_SETTLE_DELAY_S)
    parser.add_argument("--client_timeout_s", type=float, default=DEFAULT_CLIENT_TIMEOUT_S)
    parser.add_argument(
        "--probe_http",
        action="store_true",
        help="Poll each target URL for readiness instead of the fixed settle delay",
    )
    parser.add_argument(
        "--list_scenarios",
        choices=SCENARIO_CATEGORIES,
        default=None,
        help="Dry-run: list stable scenarios of this category and exit",
    )
    parser.add_argument("--results_dir", type=Path, default=Path(DEFAULT_RESULTS_DIR))
    parser.add_argument("--no_summary", action="store_true", help="Do not write the job summary")
    parser.add_argument("--badge_gist_id", type=str, default=None)
    parser.add_argument("--badge_gist_token", type=str, default=None)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    checker = ConformanceChecker(version=args.conformance_version, command=args.checker_command)

    if args.list_scenarios is not None:
        return _cmd_list_scenarios(checker, args.list_scenarios)

    try:
        targets = _load_all_targets(args)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    logger.info("running conformance tests for %d target(s)", len(targets))
    options = ExecutorOptions(
        test_type=args.test_type,
        both_results=args.both_results,
        settle_delay_s=args.settle_delay_s,
        client_timeout_s=args.client_timeout_s,
    )
    probe = (lambda t: http_probe(t.url)) if args.probe_http else None
    executor = ConformanceExecutor(checker, options=options, readiness_probe=probe)
    results = executor.run_all(targets)
    _print_results(results)

    ctx = GitHubContext.from_env()
    try:
        write_run_bundle(args.results_dir, results, ctx.run_metadata())
    except BundleError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    print(f"Wrote: {args.results_dir}")

    if not args.no_summary and ctx.step_summary_path is not None:
        _append_text(ctx.step_summary_path, render_job_summary(results))
    if ctx.output_path is not None:
        _write_step_outputs(ctx.output_path, results)

    _publish_badges(args, ctx, results)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
