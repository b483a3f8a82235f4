"""Decode historical run artifacts into baseline results.

Two on-disk formats are accepted, transparently:

* structured: `<name>-results.json`, one serialised `ServerTestResult` per file;
* legacy: `<name>-conformance-results.txt`, the checker's raw text, re-parsed with
  the line-scan parser. The server name comes from the file name.

When both formats describe the same server, the structured file wins.
"""

from __future__ import annotations

import io
import json
import logging
import zipfile
from pathlib import Path, PurePosixPath
from typing import Dict, Mapping, Optional, Union

from conformance_harness.baseline.compare import BaselineResults
from conformance_harness.models import ServerTestResult
from conformance_harness.parsing import parse_conformance_output

logger = logging.getLogger(__name__)

RESULTS_JSON_SUFFIX = "-results.json"
LEGACY_TEXT_SUFFIX = "-conformance-results.txt"
LEGACY_ARTIFACT_SUFFIX = "-conformance-results"
LEGACY_ARTIFACT_NAMES = ("python-conformance-results", "typescript-conformance-results")

FileContent = Union[str, bytes]


def _text(content: FileContent) -> str:
    if isinstance(content, bytes):
        return content.decode("utf-8", errors="replace")
    return content


def legacy_server_name(artifact_or_file: str) -> str:
    name = PurePosixPath(artifact_or_file).name
    for suffix in (LEGACY_TEXT_SUFFIX, LEGACY_ARTIFACT_SUFFIX):
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def decode_artifact_files(
    files: Mapping[str, FileContent],
    *,
    legacy_name: Optional[str] = None,
) -> BaselineResults:
    """Decode `{relative_path: content}` into `{server_name: result}`.

    `legacy_name` overrides the server name derived from legacy text file names.
    Files that fail to decode are skipped.
    """
    structured: BaselineResults = {}
    legacy: BaselineResults = {}
    for path in sorted(files):
        filename = PurePosixPath(path).name
        if filename.endswith(LEGACY_TEXT_SUFFIX):
            name = legacy_name or legacy_server_name(filename)
            if name:
                legacy[name] = parse_conformance_output(name, _text(files[path]))
            continue
        if filename.endswith(RESULTS_JSON_SUFFIX):
            try:
                data = json.loads(_text(files[path]))
                result = ServerTestResult.from_dict(data)
            except (json.JSONDecodeError, ValueError, TypeError, AttributeError) as e:
                logger.debug("failed to parse %s: %s", path, e)
                continue
            structured[result.server_name] = result

    merged = dict(legacy)
    merged.update(structured)
    return merged


def read_zip_members(payload: bytes) -> Dict[str, bytes]:
    members: Dict[str, bytes] = {}
    try:
        with zipfile.ZipFile(io.BytesIO(payload)) as zf:
            for info in zf.infolist():
                if info.is_dir():
                    continue
                members[info.filename] = zf.read(info)
    except zipfile.BadZipFile as e:
        raise ValueError(f"artifact is not a zip archive: {e}") from e
    return members


def read_directory_files(directory: Path) -> Dict[str, bytes]:
    files: Dict[str, bytes] = {}
    if not directory.is_dir():
        return files
    for p in sorted(directory.rglob("*")):
        if p.is_file() and (
            p.name.endswith(RESULTS_JSON_SUFFIX) or p.name.endswith(LEGACY_TEXT_SUFFIX)
        ):
            files[p.relative_to(directory).as_posix()] = p.read_bytes()
    return files


class LocalHistory:
    """History kept on the local filesystem, one directory per branch.

    Layout: `<root>/<branch>/<artifact_name>/...` or, without the artifact level,
    `<root>/<branch>/...`. Branch names containing `/` map to nested directories.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def fetch_run_results(
        self, branch: str, *, workflow: str, artifact_name: str
    ) -> Optional[BaselineResults]:
        branch_dir = self.root / branch
        candidate = branch_dir / artifact_name
        directory = candidate if candidate.is_dir() else branch_dir
        files = read_directory_files(directory)
        if not files:
            return None
        return decode_artifact_files(files) or None
