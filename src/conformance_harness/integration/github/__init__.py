from __future__ import annotations

from conformance_harness.integration.github.client import GitHubApiError, GitHubClient
from conformance_harness.integration.github.comments import GitHubCommentSink
from conformance_harness.integration.github.gist import GistBadgeStore
from conformance_harness.integration.github.history import GitHubArtifactHistory

__all__ = [
    "GistBadgeStore",
    "GitHubApiError",
    "GitHubArtifactHistory",
    "GitHubClient",
    "GitHubCommentSink",
]
