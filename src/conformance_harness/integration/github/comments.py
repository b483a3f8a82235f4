from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, Optional

from conformance_harness.integration.github.client import GitHubApiError, GitHubClient

logger = logging.getLogger(__name__)

COMMENTS_PER_PAGE = 100


class GitHubCommentSink:
    """Pull-request comments identified by an embedded marker."""

    def __init__(self, client: GitHubClient, repository: str, issue_number: int) -> None:
        self.client = client
        self.repository = repository
        self.issue_number = int(issue_number)

    @property
    def _comments_path(self) -> str:
        return f"repos/{self.repository}/issues/{self.issue_number}/comments"

    def iter_comments(self) -> Iterator[Dict[str, Any]]:
        page = 1
        while True:
            batch = self.client.request_json(
                "GET",
                self._comments_path,
                params={"per_page": COMMENTS_PER_PAGE, "page": page},
            )
            if not isinstance(batch, list) or not batch:
                return
            for c in batch:
                if isinstance(c, dict):
                    yield c
            if len(batch) < COMMENTS_PER_PAGE:
                return
            page += 1

    def find_comment_id(self, marker: str) -> Optional[int]:
        for c in self.iter_comments():
            if marker in str(c.get("body") or ""):
                return int(c["id"])
        return None

    def publish(self, body: str, marker: str, mode: str) -> None:
        if mode == "none":
            return
        if mode == "update":
            try:
                comment_id = self.find_comment_id(marker)
            except GitHubApiError as e:
                logger.warning("error finding existing comment: %s", e)
                comment_id = None
            if comment_id is not None:
                logger.info("updating existing comment %s", comment_id)
                self.client.request_json(
                    "PATCH",
                    f"repos/{self.repository}/issues/comments/{comment_id}",
                    json={"body": body},
                )
                return
            logger.info("no existing comment found; creating a new one")

        self.client.request_json("POST", self._comments_path, json={"body": body})
        logger.info("created comment on #%s", self.issue_number)
