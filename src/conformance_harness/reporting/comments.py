from __future__ import annotations

import logging
from typing import Protocol

from conformance_harness.reporting.render import COMMENT_MARKER

logger = logging.getLogger(__name__)

COMMENT_MODES = ("create", "update", "none")


class CommentSink(Protocol):
    def publish(self, body: str, marker: str, mode: str) -> None:
        """Create a comment, or (mode `update`) edit the one containing `marker`."""
        ...


def publish_comment(sink: CommentSink, body: str, *, mode: str = "update") -> bool:
    """Publish `body` through `sink`; failures are logged, never raised."""
    if mode not in COMMENT_MODES:
        raise ValueError(f"comment mode must be one of {list(COMMENT_MODES)}: {mode!r}")
    if mode == "none":
        logger.info("comment mode is none; skipping comment")
        return False
    try:
        sink.publish(body, COMMENT_MARKER, mode)
    except Exception as e:
        logger.warning("failed to publish comment: %s", e)
        return False
    return True
