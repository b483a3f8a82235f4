"""Target process lifecycle: setup, start, settle.

Ownership contract
------------------
`start_target` launches the target detached, in its own session, with every standard
stream bound to the null device, and returns nothing. There is no handle, no PID
bookkeeping and no `stop`. Teardown of the target belongs to the hosting job, which
kills the whole process group when it ends. Do not add PID tracking or kill logic
here: it races with that cleanup and leaks on every path that forgets to call it.

Readiness is a fixed settle delay (`DEFAULT_SETTLE_DELAY_S`). A caller that wants a
real health check passes a `probe`; without one the behaviour is the plain delay.
"""

from __future__ import annotations

import logging
import subprocess
import time
from pathlib import Path
from typing import Callable, Optional, Sequence

import httpx

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_DELAY_S = 5.0
DEFAULT_PROBE_TIMEOUT_S = 60.0
DEFAULT_PROBE_INTERVAL_S = 1.0

SHELL = "bash"


class TargetStartError(RuntimeError):
    """Raised when the target process could not be spawned."""


class SetupCommandError(RuntimeError):
    """Raised when a setup command exits non-zero or cannot be launched."""


def _resolve_cwd(working_directory: Optional[str]) -> Path:
    return Path(working_directory or ".")


def run_setup_commands(commands: Sequence[str], *, working_directory: Optional[str]) -> None:
    cwd = _resolve_cwd(working_directory)
    for command in commands:
        logger.info("setup: %s", command)
        try:
            res = subprocess.run([SHELL, "-c", command], cwd=str(cwd), check=False)
        except OSError as e:
            raise SetupCommandError(f"setup command could not start: {command!r}: {e}") from e
        if res.returncode != 0:
            raise SetupCommandError(
                f"setup command failed with exit code {res.returncode}: {command!r}"
            )


def start_target(command: str, *, working_directory: Optional[str]) -> None:
    """Spawn `command` as a detached background process. Fire and forget."""
    cwd = _resolve_cwd(working_directory)
    logger.info("starting target in %s: %s", cwd, command)
    try:
        subprocess.Popen(
            [SHELL, "-c", command],
            cwd=str(cwd),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as e:
        raise TargetStartError(f"failed to start target {command!r} in {cwd}: {e}") from e


def wait_until_ready(
    *,
    settle_delay_s: float = DEFAULT_SETTLE_DELAY_S,
    probe: Optional[Callable[[], bool]] = None,
    probe_timeout_s: float = DEFAULT_PROBE_TIMEOUT_S,
    probe_interval_s: float = DEFAULT_PROBE_INTERVAL_S,
) -> bool:
    """Best-effort readiness gate.

    Without a probe this sleeps `settle_delay_s` and returns True. With a probe it
    polls until the probe returns True or `probe_timeout_s` elapses, returning
    whether the probe ever succeeded. Either way the caller proceeds.
    """
    if probe is None:
        logger.info("waiting %.1fs for target to settle", settle_delay_s)
        time.sleep(max(0.0, float(settle_delay_s)))
        return True

    deadline = time.monotonic() + max(0.0, float(probe_timeout_s))
    while True:
        try:
            if probe():
                return True
        except Exception as e:
            logger.debug("readiness probe raised: %r", e)
        if time.monotonic() >= deadline:
            logger.warning("target not ready after %.1fs; continuing anyway", probe_timeout_s)
            return False
        time.sleep(max(0.0, float(probe_interval_s)))


def http_probe(url: str, *, timeout_s: float = 2.0) -> bool:
    """True once `url` answers with anything other than a 5xx.

    Protocol endpoints commonly reject a bare GET with 4xx; that still proves the
    server is listening.
    """
    try:
        r = httpx.get(url, timeout=timeout_s)
    except httpx.HTTPError as e:
        logger.debug("probe %s: %s", url, e)
        return False
    return r.status_code < 500
