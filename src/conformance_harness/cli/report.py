from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from conformance_harness.baseline import (
    BaselineSet,
    HistorySource,
    LocalHistory,
    fetch_baselines,
)
from conformance_harness.cli import configure_logging
from conformance_harness.config import (
    DEFAULT_ARTIFACT_NAME,
    DEFAULT_BASELINE_BRANCHES,
    DEFAULT_RESULTS_DIR,
    DEFAULT_WORKFLOW,
    GitHubContext,
    resolve_token,
)
from conformance_harness.integration.github import (
    GitHubArtifactHistory,
    GitHubClient,
    GitHubCommentSink,
)
from conformance_harness.reporting import (
    COMMENT_MODES,
    BundleError,
    load_run_bundle,
    publish_comment,
    render_comment_body,
)

logger = logging.getLogger(__name__)


def _history_source(
    args: argparse.Namespace, ctx: GitHubContext, client: Optional[GitHubClient]
) -> Optional[HistorySource]:
    if args.history_dir is not None:
        return LocalHistory(args.history_dir)
    if client is not None and ctx.repository:
        return GitHubArtifactHistory(client, ctx.repository)
    logger.warning("no token or repository configured; skipping baseline comparison")
    return None


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Render conformance results as a pull-request comment."
    )
    parser.add_argument("--results_dir", type=Path, default=Path(DEFAULT_RESULTS_DIR))
    parser.add_argument("--comment_mode", choices=COMMENT_MODES, default="update")
    parser.add_argument("--no_baseline", action="store_true", help="Skip baseline comparison")
    parser.add_argument(
        "--baseline_branches",
        nargs="+",
        default=list(DEFAULT_BASELINE_BRANCHES),
        help="Branches to compare against; the first one drives per-test change flags",
    )
    parser.add_argument("--artifact_name", type=str, default=DEFAULT_ARTIFACT_NAME)
    parser.add_argument("--workflow", type=str, default=DEFAULT_WORKFLOW)
    parser.add_argument(
        "--history_dir",
        type=Path,
        default=None,
        help="Read baselines from <history_dir>/<branch>/ instead of workflow artifacts",
    )
    parser.add_argument("--repository", type=str, default=None, help="owner/repo override")
    parser.add_argument("--github_token", type=str, default=None)
    parser.add_argument("--out", type=Path, default=None, help="Also write the comment here")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    configure_logging(args.verbose)

    try:
        results, metadata = load_run_bundle(args.results_dir)
    except BundleError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    will_publish = args.comment_mode != "none" and metadata.pr_number is not None
    if not will_publish and args.out is None:
        if args.comment_mode == "none":
            logger.info("comment mode is none; skipping comment")
        else:
            logger.info("not a pull request run; skipping comment")
        return 0

    ctx = GitHubContext.from_env()
    if args.repository:
        ctx = dataclasses.replace(ctx, repository=args.repository)
    token = resolve_token(args.github_token, "CONFORMANCE_GITHUB_TOKEN", "GITHUB_TOKEN")
    client = GitHubClient(token, api_url=ctx.api_url) if token else None
    try:
        baselines: Optional[BaselineSet] = None
        if not args.no_baseline:
            source = _history_source(args, ctx, client)
            if source is not None:
                baselines = fetch_baselines(
                    source,
                    args.baseline_branches,
                    workflow=args.workflow,
                    artifact_name=args.artifact_name,
                )

        body = render_comment_body(
            results,
            sha=metadata.short_sha,
            run_url=ctx.run_url(metadata.run_id),
            baselines=baselines,
            primary=args.baseline_branches[0] if args.baseline_branches else None,
        )
        if args.out is not None:
            args.out.parent.mkdir(parents=True, exist_ok=True)
            args.out.write_text(body + "\n", encoding="utf-8")
            print(f"Wrote: {args.out}")

        if will_publish:
            if client is None or not ctx.repository:
                logger.warning("no token or repository configured; cannot post comment")
            elif publish_comment(
                GitHubCommentSink(client, ctx.repository, metadata.pr_number),
                body,
                mode=args.comment_mode,
            ):
                logger.info("comment posted")
    finally:
        if client is not None:
            client.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
