"""Subprocess wrapper around the external conformance checker.

The checker is a CLI (by default `npx @modelcontextprotocol/conformance`) with three
entry points used here:

* `server --url <url>`: run every server scenario against a live target;
* `client --command <cmd> --scenario <id> --timeout <ms>`: drive one client scenario;
* `list`: print the human-readable scenario catalog.

stdout and stderr are captured interleaved, exactly as a person would see them.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_CHECKER_PACKAGE = "@modelcontextprotocol/conformance"
DEFAULT_CLIENT_TIMEOUT_S = 30.0

# Extra wall time on top of the checker's own --timeout.
CLIENT_TIMEOUT_GRACE_S = 5.0


class CheckerInvocationError(RuntimeError):
    """Raised when the checker binary cannot be launched at all."""


@dataclass(frozen=True)
class CheckerRun:
    args: list[str]
    output: str
    returncode: Optional[int]
    timed_out: bool = False

    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out


def _as_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


@dataclass(frozen=True)
class ConformanceChecker:
    version: str = "latest"
    command: Optional[str] = None

    def base_argv(self) -> list[str]:
        if self.command and self.command.strip():
            return shlex.split(self.command)
        version = (self.version or "").strip()
        if not version or version == "latest":
            return ["npx", DEFAULT_CHECKER_PACKAGE]
        return ["npx", f"{DEFAULT_CHECKER_PACKAGE}@{version}"]

    def _run(
        self,
        args: Sequence[str],
        *,
        cwd: Optional[str] = None,
        timeout_s: Optional[float] = None,
    ) -> CheckerRun:
        argv = list(args)
        logger.debug("running checker: %s", shlex.join(argv))
        try:
            res = subprocess.run(
                argv,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                encoding="utf-8",
                errors="replace",
                timeout=timeout_s,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            logger.warning("checker timed out after %.1fs: %s", float(timeout_s or 0), argv[-1])
            return CheckerRun(args=argv, output=_as_text(e.output), returncode=None, timed_out=True)
        except OSError as e:
            raise CheckerInvocationError(f"failed to launch checker {argv[0]!r}: {e}") from e
        return CheckerRun(args=argv, output=res.stdout or "", returncode=res.returncode)

    def run_server(self, url: str, *, cwd: Optional[str] = None) -> CheckerRun:
        return self._run([*self.base_argv(), "server", "--url", url], cwd=cwd)

    def run_client_scenario(
        self,
        client_command: str,
        scenario: str,
        *,
        cwd: Optional[str] = None,
        timeout_s: float = DEFAULT_CLIENT_TIMEOUT_S,
    ) -> CheckerRun:
        args = [
            *self.base_argv(),
            "client",
            "--command",
            client_command,
            "--scenario",
            scenario,
            "--timeout",
            str(int(timeout_s * 1000)),
        ]
        return self._run(args, cwd=cwd, timeout_s=timeout_s + CLIENT_TIMEOUT_GRACE_S)

    def list_text(self) -> str:
        run = self._run([*self.base_argv(), "list"])
        if not run.ok():
            logger.warning("checker list exited with %s", run.returncode)
        return run.output
