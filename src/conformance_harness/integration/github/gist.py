from __future__ import annotations

import json
import logging

from conformance_harness.integration.github.client import GitHubClient
from conformance_harness.models import BadgeData

logger = logging.getLogger(__name__)


class GistBadgeStore:
    """Badge JSON files in a gist, in the shields.io endpoint format."""

    def __init__(self, client: GitHubClient, gist_id: str) -> None:
        self.client = client
        self.gist_id = gist_id

    def store(self, identifier: str, badge: BadgeData) -> None:
        logger.info("updating badge gist %s file %s", self.gist_id, identifier)
        content = json.dumps(badge.to_dict(), indent=2)
        self.client.request_json(
            "PATCH",
            f"gists/{self.gist_id}",
            json={"files": {identifier: {"content": content}}},
        )
