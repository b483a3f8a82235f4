from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from conformance_harness.baseline.compare import BaselineResults
from conformance_harness.baseline.history import (
    LEGACY_ARTIFACT_NAMES,
    decode_artifact_files,
    legacy_server_name,
    read_zip_members,
)
from conformance_harness.integration.github.client import GitHubApiError, GitHubClient

logger = logging.getLogger(__name__)


class GitHubArtifactHistory:
    """Baseline history read from the artifacts of past workflow runs."""

    def __init__(
        self,
        client: GitHubClient,
        repository: str,
        *,
        legacy_artifact_names: Sequence[str] = LEGACY_ARTIFACT_NAMES,
    ) -> None:
        self.client = client
        self.repository = repository
        self.legacy_artifact_names = tuple(legacy_artifact_names)

    def _last_successful_run_id(self, branch: str, workflow: str) -> Optional[int]:
        data = self.client.request_json(
            "GET",
            f"repos/{self.repository}/actions/workflows/{workflow}/runs",
            params={"branch": branch, "status": "success", "per_page": 1},
        )
        runs = (data or {}).get("workflow_runs") or []
        if not runs:
            return None
        return int(runs[0]["id"])

    def _list_artifacts(self, run_id: int) -> List[Dict[str, Any]]:
        data = self.client.request_json(
            "GET", f"repos/{self.repository}/actions/runs/{run_id}/artifacts"
        )
        artifacts = (data or {}).get("artifacts") or []
        return [a for a in artifacts if isinstance(a, dict) and not a.get("expired")]

    def _download_artifact(self, artifact_id: int) -> Dict[str, bytes]:
        payload = self.client.download(
            f"repos/{self.repository}/actions/artifacts/{artifact_id}/zip"
        )
        return read_zip_members(payload)

    def fetch_run_results(
        self, branch: str, *, workflow: str, artifact_name: str
    ) -> Optional[BaselineResults]:
        try:
            run_id = self._last_successful_run_id(branch, workflow)
            if run_id is None:
                logger.info("no successful runs found for %s", branch)
                return None
            logger.info("found run %s for %s", run_id, branch)
            artifacts = {str(a.get("name")): a for a in self._list_artifacts(run_id)}
        except (GitHubApiError, KeyError, TypeError, ValueError) as e:
            logger.warning("error fetching baseline for %s: %s", branch, e)
            return None

        results: BaselineResults = {}
        current = artifacts.get(artifact_name)
        if current is not None:
            try:
                results.update(decode_artifact_files(self._download_artifact(int(current["id"]))))
            except (GitHubApiError, ValueError, OSError) as e:
                logger.warning("failed to read artifact %s for %s: %s", artifact_name, branch, e)

        for legacy_name in self.legacy_artifact_names:
            server_name = legacy_server_name(legacy_name)
            if server_name in results or legacy_name not in artifacts:
                continue
            try:
                files = self._download_artifact(int(artifacts[legacy_name]["id"]))
            except (GitHubApiError, ValueError, OSError) as e:
                logger.debug("failed to download %s: %s", legacy_name, e)
                continue
            decoded = decode_artifact_files(files, legacy_name=server_name)
            if server_name in decoded:
                results[server_name] = decoded[server_name]
                logger.info("loaded legacy baseline for %s from %s", server_name, branch)

        if not results:
            logger.info("no results found in artifacts for %s", branch)
            return None
        return results
