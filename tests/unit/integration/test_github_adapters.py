from __future__ import annotations

import io
import json
import zipfile

import httpx
import pytest

from conformance_harness.integration.github import (
    GistBadgeStore,
    GitHubApiError,
    GitHubArtifactHistory,
    GitHubClient,
    GitHubCommentSink,
)
from conformance_harness.models import BadgeData, result_from_tests
from conformance_harness.reporting import COMMENT_MARKER


def _zip(files: dict[str, str]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return buf.getvalue()


def _client(handler) -> GitHubClient:
    http = httpx.Client(transport=httpx.MockTransport(handler))
    return GitHubClient("t0ken", api_url="https://api.test", http_client=http)


def test_client_sends_auth_headers_and_raises_on_errors() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/missing":
            return httpx.Response(404, text="Not Found")
        return httpx.Response(200, json={"ok": True})

    client = _client(handler)
    assert client.request_json("GET", "/thing") == {"ok": True}
    assert seen[0].headers["Authorization"] == "Bearer t0ken"
    assert seen[0].headers["Accept"] == "application/vnd.github+json"
    with pytest.raises(GitHubApiError) as exc:
        client.request_json("GET", "missing")
    assert exc.value.status_code == 404


def test_artifact_history_reads_new_and_legacy_artifacts() -> None:
    new_zip = _zip(
        {"python-results.json": json.dumps(result_from_tests("python", {"ping": True}).to_dict())}
    )
    legacy_zip = _zip({"typescript-conformance-results.txt": "✓ ping\n✗ tools\n"})
    requests: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        requests.append(path)
        if path.endswith("/actions/workflows/conformance.yml/runs"):
            assert request.url.params["branch"] == "main"
            assert request.url.params["per_page"] == "1"
            return httpx.Response(200, json={"workflow_runs": [{"id": 77}]})
        if path.endswith("/actions/runs/77/artifacts"):
            return httpx.Response(
                200,
                json={
                    "artifacts": [
                        {"id": 1, "name": "conformance-results"},
                        {"id": 2, "name": "python-conformance-results"},
                        {"id": 3, "name": "typescript-conformance-results"},
                    ]
                },
            )
        if path.endswith("/artifacts/1/zip"):
            return httpx.Response(302, headers={"Location": "https://blob.test/new.zip"})
        if path == "/new.zip":
            return httpx.Response(200, content=new_zip)
        if path.endswith("/artifacts/3/zip"):
            return httpx.Response(200, content=legacy_zip)
        return httpx.Response(404)

    history = GitHubArtifactHistory(_client(handler), "acme/sdk")
    results = history.fetch_run_results(
        "main", workflow="conformance.yml", artifact_name="conformance-results"
    )
    assert results is not None
    assert results["python"].tests == {"ping": True}
    assert results["typescript"].tests == {"ping": True, "tools": False}
    assert not any(p.endswith("/artifacts/2/zip") for p in requests)


def test_artifact_history_without_runs_or_on_errors_is_absent() -> None:
    def no_runs(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"workflow_runs": []})

    def server_error(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    for handler in (no_runs, server_error):
        history = GitHubArtifactHistory(_client(handler), "acme/sdk")
        assert history.fetch_run_results("main", workflow="w.yml", artifact_name="a") is None


def _comments_handler(existing: list[dict], writes: list[tuple[str, str, dict]]):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            page = int(request.url.params["page"])
            return httpx.Response(200, json=existing if page == 1 else [])
        writes.append((request.method, request.url.path, json.loads(request.content)))
        return httpx.Response(200 if request.method == "PATCH" else 201, json={"id": 5})

    return handler


def test_comment_sink_updates_the_marked_comment() -> None:
    writes: list[tuple[str, str, dict]] = []
    existing = [{"id": 1, "body": "unrelated"}, {"id": 2, "body": f"{COMMENT_MARKER}\nold"}]
    sink = GitHubCommentSink(_client(_comments_handler(existing, writes)), "acme/sdk", 12)
    sink.publish("new body", COMMENT_MARKER, "update")
    assert writes == [("PATCH", "/repos/acme/sdk/issues/comments/2", {"body": "new body"})]


def test_comment_sink_creates_when_no_marker_or_create_mode() -> None:
    writes: list[tuple[str, str, dict]] = []
    existing = [{"id": 2, "body": f"{COMMENT_MARKER}\nold"}]
    handler = _comments_handler([{"id": 1, "body": "unrelated"}], writes)
    GitHubCommentSink(_client(handler), "acme/sdk", 12).publish("a", COMMENT_MARKER, "update")
    handler = _comments_handler(existing, writes)
    GitHubCommentSink(_client(handler), "acme/sdk", 12).publish("b", COMMENT_MARKER, "create")
    assert writes == [
        ("POST", "/repos/acme/sdk/issues/12/comments", {"body": "a"}),
        ("POST", "/repos/acme/sdk/issues/12/comments", {"body": "b"}),
    ]


def test_gist_store_patches_badge_file() -> None:
    sent: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "PATCH"
        assert request.url.path == "/gists/abc123"
        sent.append(json.loads(request.content))
        return httpx.Response(200, json={})

    badge = BadgeData(label="MCP Conformance (go)", message="1/1 (100%)", color="brightgreen")
    GistBadgeStore(_client(handler), "abc123").store("go-conformance.json", badge)
    content = sent[0]["files"]["go-conformance.json"]["content"]
    assert json.loads(content) == badge.to_dict()
    assert content.startswith("{\n  ")
