"""Core data model shared by the executor, parser, comparator and renderer.

Every `ServerTestResult` is built through `result_from_tests`, which derives the
counts and the rate from the per-test map so the invariants

    total == passed + failed
    rate  == round(100 * passed / total)   (0 when total == 0)

hold for anything the rest of the package sees, including results read back from
older artifacts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

SCENARIO_CATEGORIES = ("server", "client")
SCENARIO_MATURITIES = ("stable", "draft", "extension")
TEST_TYPES = ("server", "client", "both")

CLIENT_RESULT_SUFFIX = "-client"


@dataclass(frozen=True)
class Scenario:
    id: str
    category: str
    maturity: str = "stable"

    @property
    def is_stable(self) -> bool:
        return self.maturity == "stable"


@dataclass(frozen=True)
class TargetConfig:
    name: str
    start_command: str
    url: str
    setup_commands: tuple[str, ...] = ()
    working_directory: str = "."
    client_command: Optional[str] = None
    scenarios: tuple[str, ...] = ()

    @property
    def client_result_name(self) -> str:
        return f"{self.name}{CLIENT_RESULT_SUFFIX}"


@dataclass(frozen=True)
class TestResult:
    __test__ = False  # not a pytest test class

    name: str
    passed: bool


def safe_filename(name: str) -> str:
    raw = str(name or "").strip()
    if not raw:
        return "unknown"
    out = []
    for ch in raw:
        if ch.isalnum() or ch in {"-", "_", "."}:
            out.append(ch)
        else:
            out.append("_")
    return "".join(out).strip(".") or "unknown"


def result_file_key(name: str) -> str:
    """Identity of a result on disk; names with equal keys overwrite each other."""
    return safe_filename(name).lower()


def compute_rate(passed: int, total: int) -> int:
    """Percentage of passing tests, rounded half up; 0 for an empty run."""
    if total <= 0:
        return 0
    return (200 * passed + total) // (2 * total)


@dataclass(frozen=True)
class ServerTestResult:
    server_name: str
    passed: int
    failed: int
    total: int
    rate: int
    tests: Mapping[str, bool] = field(default_factory=dict)
    raw_output: str = ""

    @property
    def is_client_result(self) -> bool:
        return CLIENT_RESULT_SUFFIX in self.server_name

    def test_results(self) -> list[TestResult]:
        return [TestResult(name=name, passed=ok) for name, ok in self.tests.items()]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "serverName": self.server_name,
            "passed": self.passed,
            "failed": self.failed,
            "total": self.total,
            "rate": self.rate,
            "tests": dict(self.tests),
            "rawOutput": self.raw_output,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ServerTestResult":
        name = data.get("serverName", data.get("server_name"))
        if not isinstance(name, str) or not name.strip():
            raise ValueError("result is missing serverName")
        raw_tests = data.get("tests")
        tests: Dict[str, bool] = {}
        if isinstance(raw_tests, Mapping):
            for key, value in raw_tests.items():
                tests[str(key)] = bool(value)
        raw_output = data.get("rawOutput", data.get("raw_output", ""))
        return result_from_tests(name.strip(), tests, raw_output=str(raw_output or ""))


def result_from_tests(
    server_name: str,
    tests: Mapping[str, bool],
    *,
    raw_output: str = "",
) -> ServerTestResult:
    frozen = dict(tests)
    passed = sum(1 for ok in frozen.values() if ok)
    failed = len(frozen) - passed
    total = passed + failed
    return ServerTestResult(
        server_name=server_name,
        passed=passed,
        failed=failed,
        total=total,
        rate=compute_rate(passed, total),
        tests=frozen,
        raw_output=raw_output,
    )


def empty_result(server_name: str, raw_output: str = "") -> ServerTestResult:
    return result_from_tests(server_name, {}, raw_output=raw_output)


@dataclass(frozen=True)
class BadgeData:
    label: str
    message: str
    color: str
    schema_version: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schemaVersion": self.schema_version,
            "label": self.label,
            "message": self.message,
            "color": self.color,
        }


@dataclass(frozen=True)
class RunMetadata:
    head_sha: str
    base_ref: str
    run_id: str
    pr_number: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pr_number": self.pr_number,
            "head_sha": self.head_sha,
            "base_ref": self.base_ref,
            "run_id": self.run_id,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RunMetadata":
        pr_raw = data.get("pr_number")
        pr_number: Optional[int]
        try:
            pr_number = int(pr_raw) if pr_raw is not None and str(pr_raw).strip() else None
        except (TypeError, ValueError):
            pr_number = None
        return cls(
            head_sha=str(data.get("head_sha") or ""),
            base_ref=str(data.get("base_ref") or ""),
            run_id=str(data.get("run_id") or ""),
            pr_number=pr_number,
        )

    @property
    def short_sha(self) -> str:
        return self.head_sha[:7]
