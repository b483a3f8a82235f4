from __future__ import annotations

import json

import pytest

from conformance_harness.models import RunMetadata, result_from_tests
from conformance_harness.reporting import BundleError, load_run_bundle, write_run_bundle


def test_bundle_round_trip(tmp_path) -> None:
    results = [
        result_from_tests("python", {"ping": True}, raw_output="✓ ping"),
        result_from_tests("python-client", {"initialize": False}, raw_output="OVERALL: FAILED"),
    ]
    meta = RunMetadata(head_sha="abcdef0123", base_ref="main", run_id="12", pr_number=3)
    written = write_run_bundle(tmp_path / "out", results, meta)

    names = sorted(p.name for p in written)
    assert names == [
        "python-client-output.txt",
        "python-client-results.json",
        "python-output.txt",
        "python-results.json",
        "run-metadata.json",
    ]
    raw = json.loads((tmp_path / "out" / "python-results.json").read_text(encoding="utf-8"))
    assert raw["serverName"] == "python"
    assert raw["rawOutput"] == "✓ ping"
    assert (tmp_path / "out" / "python-output.txt").read_text(encoding="utf-8") == "✓ ping"
    assert not list((tmp_path / "out").glob("*.tmp"))

    loaded, loaded_meta = load_run_bundle(tmp_path / "out")
    assert sorted(r.server_name for r in loaded) == ["python", "python-client"]
    assert loaded_meta == meta


def test_unsafe_names_become_safe_file_names(tmp_path) -> None:
    meta = RunMetadata(head_sha="a", base_ref="b", run_id="1")
    write_run_bundle(tmp_path, [result_from_tests("my sdk:v2", {})], meta)
    assert (tmp_path / "my_sdk_v2-results.json").exists()


def test_missing_pieces_raise_bundle_errors(tmp_path) -> None:
    with pytest.raises(BundleError, match="not found"):
        load_run_bundle(tmp_path / "nope")
    with pytest.raises(BundleError, match="metadata"):
        load_run_bundle(tmp_path)

    meta = RunMetadata(head_sha="a", base_ref="b", run_id="1")
    write_run_bundle(tmp_path, [], meta)
    with pytest.raises(BundleError, match="no test results"):
        load_run_bundle(tmp_path)


def test_results_sharing_a_file_name_are_rejected_before_writing(tmp_path) -> None:
    meta = RunMetadata(head_sha="a", base_ref="b", run_id="1")
    results = [
        result_from_tests("My Server", {"x": True}),
        result_from_tests("My_Server", {"y": False}),
    ]
    with pytest.raises(BundleError, match="same file"):
        write_run_bundle(tmp_path / "out", results, meta)
    assert not (tmp_path / "out").exists()

    with pytest.raises(BundleError):
        write_run_bundle(
            tmp_path / "out",
            [result_from_tests("Go", {}), result_from_tests("go", {})],
            meta,
        )


def test_distinct_names_all_survive_a_round_trip(tmp_path) -> None:
    meta = RunMetadata(head_sha="a", base_ref="b", run_id="1")
    names = ["python", "python-client", "typescript"]
    write_run_bundle(tmp_path, [result_from_tests(n, {"t": True}) for n in names], meta)
    loaded, _ = load_run_bundle(tmp_path)
    assert sorted(r.server_name for r in loaded) == names
