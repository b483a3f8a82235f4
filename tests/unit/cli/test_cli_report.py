from __future__ import annotations

import os

import pytest

from conformance_harness.cli import report
from conformance_harness.models import RunMetadata, result_from_tests
from conformance_harness.reporting import COMMENT_MARKER, write_run_bundle


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith(("GITHUB_", "CONFORMANCE_")):
            monkeypatch.delenv(key, raising=False)


class _FakeSink:
    published: list[tuple] = []

    def __init__(self, client, repository, issue_number) -> None:
        self.repository = repository
        self.issue_number = issue_number

    def publish(self, body, marker, mode) -> None:
        _FakeSink.published.append((self.repository, self.issue_number, body, marker, mode))


def _bundle(tmp_path, *, pr_number=7):
    directory = tmp_path / "conformance-results"
    meta = RunMetadata(head_sha="abcdef0123", base_ref="main", run_id="55", pr_number=pr_number)
    write_run_bundle(directory, [result_from_tests("python", {"ping": True, "tools": True})], meta)
    return directory


def test_missing_results_dir_exits_with_error(tmp_path, capsys) -> None:
    assert report.main(["--results_dir", str(tmp_path / "missing")]) == 2
    assert "results directory not found" in capsys.readouterr().err


def test_renders_with_local_baselines_to_file(tmp_path) -> None:
    history = tmp_path / "history"
    write_run_bundle(
        history / "main",
        [result_from_tests("python", {"ping": True, "tools": False})],
        RunMetadata(head_sha="0", base_ref="main", run_id="1"),
    )
    out = tmp_path / "comment.md"
    code = report.main(
        [
            "--results_dir",
            str(_bundle(tmp_path)),
            "--comment_mode",
            "none",
            "--history_dir",
            str(history),
            "--repository",
            "acme/sdk",
            "--out",
            str(out),
        ]
    )
    assert code == 0
    body = out.read_text(encoding="utf-8")
    assert body.startswith(COMMENT_MARKER)
    assert "| SDK | Score | vs main | vs canary |" not in body
    assert "| SDK | Score | vs main |" in body
    assert "| python | **2/2** (100%) | 🟢 +1 |" in body
    assert "| tools | ✅ +1 |" in body
    assert "**Commit:** `abcdef0`" in body
    assert "https://github.com/acme/sdk/actions/runs/55" in body


def test_publishes_comment_for_pull_requests(monkeypatch, tmp_path) -> None:
    _FakeSink.published.clear()
    monkeypatch.setattr(report, "GitHubCommentSink", _FakeSink)
    monkeypatch.setenv("GITHUB_REPOSITORY", "acme/sdk")
    monkeypatch.setenv("GITHUB_TOKEN", "t0ken")
    code = report.main(["--results_dir", str(_bundle(tmp_path)), "--no_baseline"])
    assert code == 0
    [(repository, issue, body, marker, mode)] = _FakeSink.published
    assert (repository, issue, marker, mode) == ("acme/sdk", 7, COMMENT_MARKER, "update")
    assert "vs main" not in body


def test_skips_when_not_a_pull_request(monkeypatch, tmp_path) -> None:
    _FakeSink.published.clear()
    monkeypatch.setattr(report, "GitHubCommentSink", _FakeSink)
    monkeypatch.setenv("GITHUB_TOKEN", "t0ken")
    assert report.main(["--results_dir", str(_bundle(tmp_path, pr_number=None))]) == 0
    assert _FakeSink.published == []
