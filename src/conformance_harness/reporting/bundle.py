"""Run bundle: the directory handed from the test phase to the report phase.

Layout::

    <dir>/<name>-results.json   one ServerTestResult per file
    <dir>/<name>-output.txt     raw checker output
    <dir>/run-metadata.json     RunMetadata
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

from conformance_harness.models import (
    RunMetadata,
    ServerTestResult,
    result_file_key,
    safe_filename,
)

logger = logging.getLogger(__name__)

RESULTS_SUFFIX = "-results.json"
OUTPUT_SUFFIX = "-output.txt"
METADATA_FILENAME = "run-metadata.json"


class BundleError(RuntimeError):
    pass


def _json_dumps(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, indent=2)


def _write_text_atomic(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(text, encoding="utf-8")
    tmp_path.replace(path)


def _write_json_atomic(path: Path, obj: Any) -> None:
    _write_text_atomic(path, _json_dumps(obj) + "\n")


def write_run_bundle(
    directory: Path,
    results: Sequence[ServerTestResult],
    metadata: RunMetadata,
) -> List[Path]:
    """Write every result plus the run metadata; returns the files written.

    Raises `BundleError`, before writing anything, when two results would share a file.
    """
    claimed: Dict[str, str] = {}
    for r in results:
        key = result_file_key(r.server_name)
        if key in claimed:
            raise BundleError(
                f"results {claimed[key]!r} and {r.server_name!r} map to the same file "
                f"{safe_filename(r.server_name)}{RESULTS_SUFFIX}"
            )
        claimed[key] = r.server_name

    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for r in results:
        stem = safe_filename(r.server_name)
        results_path = directory / f"{stem}{RESULTS_SUFFIX}"
        output_path = directory / f"{stem}{OUTPUT_SUFFIX}"
        _write_json_atomic(results_path, r.to_dict())
        _write_text_atomic(output_path, r.raw_output)
        written += [results_path, output_path]

    metadata_path = directory / METADATA_FILENAME
    _write_json_atomic(metadata_path, metadata.to_dict())
    written.append(metadata_path)
    logger.info("wrote %d result(s) to %s", len(results), directory)
    return written


def _read_json_object(path: Path) -> dict[str, Any]:
    try:
        obj = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise BundleError(f"could not read {path}: {e}") from e
    if not isinstance(obj, dict):
        raise BundleError(f"expected a JSON object in {path}")
    return obj


def load_run_metadata(directory: Path) -> RunMetadata:
    path = Path(directory) / METADATA_FILENAME
    if not path.exists():
        raise BundleError(f"run metadata not found: {path}")
    return RunMetadata.from_dict(_read_json_object(path))


def load_results(directory: Path) -> List[ServerTestResult]:
    directory = Path(directory)
    results: List[ServerTestResult] = []
    for path in sorted(directory.glob(f"*{RESULTS_SUFFIX}")):
        data = _read_json_object(path)
        try:
            results.append(ServerTestResult.from_dict(data))
        except ValueError as e:
            raise BundleError(f"invalid result file {path}: {e}") from e
    return results


def load_run_bundle(directory: Path) -> Tuple[List[ServerTestResult], RunMetadata]:
    directory = Path(directory)
    if not directory.is_dir():
        raise BundleError(
            f"results directory not found: {directory} (download the run artifacts first)"
        )
    metadata = load_run_metadata(directory)
    results = load_results(directory)
    if not results:
        raise BundleError(f"no test results found in {directory}")
    return results, metadata
