from __future__ import annotations

import subprocess

import httpx
import pytest

from conformance_harness.runtime import process
from conformance_harness.runtime.process import (
    SetupCommandError,
    TargetStartError,
    http_probe,
    run_setup_commands,
    start_target,
    wait_until_ready,
)


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def test_start_target_is_detached_and_returns_nothing(monkeypatch, tmp_path) -> None:
    calls: list[tuple[list[str], dict]] = []

    def fake_popen(args, **kwargs):
        calls.append((list(args), kwargs))
        return object()

    monkeypatch.setattr(process.subprocess, "Popen", fake_popen)
    assert start_target("node server.js", working_directory=str(tmp_path)) is None

    args, kwargs = calls[0]
    assert args == ["bash", "-c", "node server.js"]
    assert kwargs["cwd"] == str(tmp_path)
    assert kwargs["start_new_session"] is True
    assert kwargs["stdout"] is subprocess.DEVNULL
    assert kwargs["stderr"] is subprocess.DEVNULL
    assert kwargs["stdin"] is subprocess.DEVNULL


def test_start_target_wraps_os_errors(monkeypatch, tmp_path) -> None:
    def fake_popen(args, **kwargs):
        raise FileNotFoundError("no such directory")

    monkeypatch.setattr(process.subprocess, "Popen", fake_popen)
    with pytest.raises(TargetStartError):
        start_target("node server.js", working_directory=str(tmp_path / "missing"))


def test_setup_commands_run_in_order_and_stop_on_failure(monkeypatch, tmp_path) -> None:
    seen: list[str] = []

    def fake_run(args, **kwargs):
        seen.append(args[-1])
        code = 3 if args[-1] == "false" else 0
        return subprocess.CompletedProcess(args=args, returncode=code)

    monkeypatch.setattr(process.subprocess, "run", fake_run)
    with pytest.raises(SetupCommandError, match="exit code 3"):
        run_setup_commands(["npm ci", "false", "npm run build"], working_directory=str(tmp_path))
    assert seen == ["npm ci", "false"]


def test_default_readiness_is_a_fixed_settle_delay(monkeypatch) -> None:
    clock = _Clock()
    monkeypatch.setattr(process.time, "sleep", clock.sleep)
    assert wait_until_ready() is True
    assert clock.sleeps == [5.0]


def test_probe_polls_until_ready(monkeypatch) -> None:
    clock = _Clock()
    monkeypatch.setattr(process.time, "sleep", clock.sleep)
    monkeypatch.setattr(process.time, "monotonic", clock.monotonic)
    answers = iter([False, RuntimeError("refused"), True])

    def probe() -> bool:
        answer = next(answers)
        if isinstance(answer, Exception):
            raise answer
        return answer

    assert wait_until_ready(probe=probe, probe_interval_s=0.5) is True
    assert clock.sleeps == [0.5, 0.5]


def test_probe_gives_up_after_deadline(monkeypatch) -> None:
    clock = _Clock()
    monkeypatch.setattr(process.time, "sleep", clock.sleep)
    monkeypatch.setattr(process.time, "monotonic", clock.monotonic)
    assert wait_until_ready(probe=lambda: False, probe_timeout_s=3, probe_interval_s=1) is False
    assert sum(clock.sleeps) == 3


def test_http_probe_treats_client_errors_as_listening(monkeypatch) -> None:
    responses = {"http://up/mcp": 405, "http://broken/mcp": 503}

    def fake_get(url, **kwargs):
        if url not in responses:
            raise httpx.ConnectError("refused")
        return httpx.Response(responses[url], request=httpx.Request("GET", url))

    monkeypatch.setattr(process.httpx, "get", fake_get)
    assert http_probe("http://up/mcp") is True
    assert http_probe("http://broken/mcp") is False
    assert http_probe("http://down/mcp") is False
