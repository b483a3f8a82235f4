"""Run settings resolved from the environment.

Under GitHub Actions everything here comes from the standard `GITHUB_*` variables;
`CONFORMANCE_*` variables override them for local runs and other CI systems.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from conformance_harness.models import RunMetadata

DEFAULT_RESULTS_DIR = "conformance-results"
DEFAULT_ARTIFACT_NAME = "conformance-results"
DEFAULT_WORKFLOW = "conformance.yml"
DEFAULT_BASELINE_BRANCHES = ("main", "canary")
BADGE_REFS = ("refs/heads/main", "refs/heads/canary")


def _env_path(env: Mapping[str, str], name: str) -> Optional[Path]:
    raw = str(env.get(name) or "").strip()
    return Path(raw) if raw else None


def resolve_token(
    explicit: Optional[str],
    *names: str,
    env: Optional[Mapping[str, str]] = None,
) -> Optional[str]:
    if explicit and explicit.strip():
        return explicit.strip()
    env = os.environ if env is None else env
    for name in names:
        raw = str(env.get(name) or "").strip()
        if raw:
            return raw
    return None


@dataclass(frozen=True)
class GitHubContext:
    repository: str = ""
    event_name: str = ""
    ref: str = ""
    ref_name: str = ""
    sha: str = ""
    run_id: str = ""
    server_url: str = "https://github.com"
    api_url: str = "https://api.github.com"
    event_path: Optional[Path] = None
    step_summary_path: Optional[Path] = None
    output_path: Optional[Path] = None

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "GitHubContext":
        env = os.environ if env is None else env

        def get(name: str, default: str = "") -> str:
            override = str(env.get(f"CONFORMANCE_{name}") or "").strip()
            if override:
                return override
            return str(env.get(f"GITHUB_{name}") or default).strip()

        return cls(
            repository=get("REPOSITORY"),
            event_name=get("EVENT_NAME"),
            ref=get("REF"),
            ref_name=get("REF_NAME"),
            sha=get("SHA"),
            run_id=get("RUN_ID"),
            server_url=get("SERVER_URL", "https://github.com").rstrip("/"),
            api_url=get("API_URL", "https://api.github.com").rstrip("/"),
            event_path=_env_path(env, "GITHUB_EVENT_PATH"),
            step_summary_path=_env_path(env, "GITHUB_STEP_SUMMARY"),
            output_path=_env_path(env, "GITHUB_OUTPUT"),
        )

    @property
    def owner(self) -> str:
        return self.repository.split("/", 1)[0] if "/" in self.repository else ""

    @property
    def repo(self) -> str:
        return self.repository.split("/", 1)[1] if "/" in self.repository else ""

    def event_payload(self) -> Dict[str, Any]:
        if self.event_path is None or not self.event_path.exists():
            return {}
        try:
            data = json.loads(self.event_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return {}
        return data if isinstance(data, dict) else {}

    def run_url(self, run_id: Optional[str] = None) -> str:
        rid = run_id or self.run_id
        return f"{self.server_url}/{self.repository}/actions/runs/{rid}"

    def is_badge_push(self) -> bool:
        return self.event_name == "push" and self.ref in BADGE_REFS

    def run_metadata(self) -> RunMetadata:
        pr_number: Optional[int] = None
        head_sha = self.sha
        base_ref = self.ref_name
        if self.event_name in {"pull_request", "pull_request_target"}:
            pr = self.event_payload().get("pull_request")
            if isinstance(pr, dict):
                number = pr.get("number")
                pr_number = number if isinstance(number, int) else None
                head = pr.get("head") if isinstance(pr.get("head"), dict) else {}
                base = pr.get("base") if isinstance(pr.get("base"), dict) else {}
                head_sha = str(head.get("sha") or head_sha)
                base_ref = str(base.get("ref") or base_ref)
        return RunMetadata(
            head_sha=head_sha,
            base_ref=base_ref,
            run_id=self.run_id,
            pr_number=pr_number,
        )
