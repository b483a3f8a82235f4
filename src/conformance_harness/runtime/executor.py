"""Run the conformance checker against every configured target.

Targets, and scenarios within a target, are processed strictly one at a time. Any
failure short of a configuration error degrades into a (possibly empty) result so a
report can always be produced for every target.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from functools import partial
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from conformance_harness.models import (
    TEST_TYPES,
    ServerTestResult,
    TargetConfig,
    empty_result,
    result_from_tests,
)
from conformance_harness.parsing import judge_scenario_output, parse_conformance_output
from conformance_harness.parsing.result_parser import parse_scenario_runs
from conformance_harness.runtime.catalog import list_scenarios
from conformance_harness.runtime.checker import (
    DEFAULT_CLIENT_TIMEOUT_S,
    CheckerInvocationError,
    ConformanceChecker,
)
from conformance_harness.runtime.process import (
    DEFAULT_SETTLE_DELAY_S,
    TargetStartError,
    run_setup_commands,
    start_target,
    wait_until_ready,
)

logger = logging.getLogger(__name__)

BOTH_RESULT_SHAPES = ("split", "merged")


@dataclass(frozen=True)
class ExecutorOptions:
    test_type: str = "server"
    both_results: str = "split"
    settle_delay_s: float = DEFAULT_SETTLE_DELAY_S
    client_timeout_s: float = DEFAULT_CLIENT_TIMEOUT_S

    def __post_init__(self) -> None:
        if self.test_type not in TEST_TYPES:
            raise ValueError(f"test_type must be one of {list(TEST_TYPES)}: {self.test_type!r}")
        if self.both_results not in BOTH_RESULT_SHAPES:
            raise ValueError(
                f"both_results must be one of {list(BOTH_RESULT_SHAPES)}: {self.both_results!r}"
            )

    @property
    def runs_server(self) -> bool:
        return self.test_type in {"server", "both"}

    @property
    def runs_client(self) -> bool:
        return self.test_type in {"client", "both"}


@contextmanager
def _log_group(title: str) -> Iterator[None]:
    in_actions = os.environ.get("GITHUB_ACTIONS") == "true"
    if in_actions:
        print(f"::group::{title}", flush=True)
    try:
        yield
    finally:
        if in_actions:
            print("::endgroup::", flush=True)


def merge_results(
    name: str, server: ServerTestResult, client: ServerTestResult
) -> ServerTestResult:
    tests = dict(server.tests)
    tests.update(client.tests)
    raw = "\n".join(part for part in (server.raw_output, client.raw_output) if part)
    return result_from_tests(name, tests, raw_output=raw)


class ConformanceExecutor:
    def __init__(
        self,
        checker: ConformanceChecker,
        *,
        options: Optional[ExecutorOptions] = None,
        readiness_probe: Optional[Callable[[TargetConfig], bool]] = None,
    ) -> None:
        self.checker = checker
        self.options = options or ExecutorOptions()
        self.readiness_probe = readiness_probe
        self._client_catalog: Optional[List[str]] = None

    def _client_catalog_ids(self) -> List[str]:
        if self._client_catalog is None:
            try:
                self._client_catalog = [s.id for s in list_scenarios(self.checker, "client")]
            except CheckerInvocationError as e:
                logger.warning("could not list client scenarios: %s", e)
                self._client_catalog = []
        return list(self._client_catalog)

    def resolve_client_scenarios(self, target: TargetConfig) -> List[str]:
        if target.scenarios:
            return list(target.scenarios)
        return self._client_catalog_ids()

    def run_server_tests(self, target: TargetConfig) -> ServerTestResult:
        try:
            start_target(target.start_command, working_directory=target.working_directory)
        except TargetStartError as e:
            logger.warning("%s: %s (running checker anyway)", target.name, e)

        probe = partial(self.readiness_probe, target) if self.readiness_probe else None
        wait_until_ready(settle_delay_s=self.options.settle_delay_s, probe=probe)

        logger.info("running server conformance tests against %s (%s)", target.name, target.url)
        try:
            run = self.checker.run_server(target.url)
            output = run.output
        except CheckerInvocationError as e:
            logger.warning("%s: %s", target.name, e)
            output = f"Error: {e}"
        return parse_conformance_output(target.name, output)

    def run_client_tests(
        self, target: TargetConfig, *, result_name: Optional[str] = None
    ) -> ServerTestResult:
        name = result_name or target.client_result_name
        if not target.client_command:
            logger.warning("%s: no client command configured; skipping client tests", target.name)
            return empty_result(name, "No client command configured")

        scenarios = self.resolve_client_scenarios(target)
        if not scenarios:
            logger.warning("%s: no client scenarios to run", target.name)
            return empty_result(name, "No client scenarios to run")

        timeout_s = float(self.options.client_timeout_s)
        outputs: Dict[str, str] = {}
        for scenario in scenarios:
            try:
                run = self.checker.run_client_scenario(
                    target.client_command,
                    scenario,
                    cwd=target.working_directory,
                    timeout_s=timeout_s,
                )
                text = run.output
                if run.timed_out:
                    text = f"{text}\nError: scenario timed out after {timeout_s:g}s"
            except CheckerInvocationError as e:
                logger.warning("%s: scenario %s: %s", target.name, scenario, e)
                text = f"Error: {e}"
            outputs[scenario] = text
            logger.info(
                "%s: %s %s", name, "passed" if judge_scenario_output(text) else "failed", scenario
            )
        return parse_scenario_runs(name, outputs)

    def run_target(self, target: TargetConfig) -> List[ServerTestResult]:
        logger.info("starting conformance run for %s", target.name)
        if target.setup_commands:
            run_setup_commands(target.setup_commands, working_directory=target.working_directory)

        opts = self.options
        if opts.test_type == "server":
            return [self.run_server_tests(target)]
        if opts.test_type == "client":
            return [self.run_client_tests(target)]

        server = self.run_server_tests(target)
        if opts.both_results == "merged":
            client = self.run_client_tests(target, result_name=target.name)
            return [merge_results(target.name, server, client)]
        return [server, self.run_client_tests(target)]

    def _failure_results(self, target: TargetConfig, message: str) -> List[ServerTestResult]:
        opts = self.options
        names: List[str] = []
        if opts.runs_server:
            names.append(target.name)
        if opts.test_type == "client" or (
            opts.test_type == "both" and opts.both_results == "split"
        ):
            names.append(target.client_result_name)
        return [empty_result(n, f"Error: {message}") for n in names]

    def run_all(self, targets: Sequence[TargetConfig]) -> List[ServerTestResult]:
        results: List[ServerTestResult] = []
        for target in targets:
            with _log_group(f"Conformance tests for {target.name}"):
                try:
                    target_results = self.run_target(target)
                except Exception as e:
                    logger.error("failed to run conformance tests for %s: %s", target.name, e)
                    target_results = self._failure_results(target, str(e))
                for r in target_results:
                    logger.info(
                        "%s: %d/%d tests passed (%d%%)", r.server_name, r.passed, r.total, r.rate
                    )
                results.extend(target_results)
        return results
