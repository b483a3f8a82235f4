"""Report rendering, run bundles, badges and comment publishing."""

from __future__ import annotations

from conformance_harness.reporting.badges import BadgeStore, update_all_badges
from conformance_harness.reporting.bundle import (
    BundleError,
    load_run_bundle,
    write_run_bundle,
)
from conformance_harness.reporting.comments import COMMENT_MODES, CommentSink, publish_comment
from conformance_harness.reporting.render import (
    COMMENT_MARKER,
    badge_color,
    badge_filename,
    comparison_cell,
    detail_table,
    generate_badge_data,
    render_comment_body,
    render_job_summary,
    render_section,
    summary_table,
)

__all__ = [
    "COMMENT_MARKER",
    "COMMENT_MODES",
    "BadgeStore",
    "BundleError",
    "CommentSink",
    "badge_color",
    "badge_filename",
    "comparison_cell",
    "detail_table",
    "generate_badge_data",
    "load_run_bundle",
    "publish_comment",
    "render_comment_body",
    "render_job_summary",
    "render_section",
    "summary_table",
    "update_all_badges",
    "write_run_bundle",
]
