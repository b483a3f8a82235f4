from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence

import yaml
from jsonschema import Draft202012Validator

from conformance_harness.models import TargetConfig, result_file_key


class ConfigurationError(RuntimeError):
    pass


_COMMAND_LIST = {"type": "array", "items": {"type": "string", "minLength": 1}}

TARGET_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["name", "start-command", "url"],
    "properties": {
        "name": {"type": "string", "minLength": 1, "pattern": r"^[^/\\]+$"},
        "start-command": {"type": "string", "minLength": 1},
        "url": {"type": "string", "minLength": 1},
        "setup-commands": _COMMAND_LIST,
        "working-directory": {"type": "string"},
        "client-command": {"type": "string"},
        "scenarios": _COMMAND_LIST,
        "runtime": {"type": "string"},
    },
    "additionalProperties": False,
}

TARGETS_DOCUMENT_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["targets"],
    "properties": {
        "targets": {"type": "array", "items": TARGET_SCHEMA},
    },
}

# underscore spellings accepted as aliases of the dashed keys
_KEY_ALIASES = {
    "start_command": "start-command",
    "setup_commands": "setup-commands",
    "working_directory": "working-directory",
    "client_command": "client-command",
}


def load_yaml_or_json(path: Path) -> Dict[str, Any]:
    """Load a YAML/JSON file into a dict; the top level must be an object."""
    if not path.exists():
        raise FileNotFoundError(path)

    if path.suffix.lower() in {".yaml", ".yml"}:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    elif path.suffix.lower() == ".json":
        data = json.loads(path.read_text(encoding="utf-8"))
    else:
        raise ValueError(f"Unsupported config file extension: {path}")

    if not isinstance(data, dict):
        raise ConfigurationError(f"Top-level config must be an object: {path}")
    return data


def validate_against_schema(
    instance: Any,
    schema: Dict[str, Any],
    *,
    where: str,
) -> None:
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(instance), key=lambda e: [str(p) for p in e.path])
    if errors:
        msgs = []
        for e in errors[:20]:
            loc = "/".join([str(p) for p in e.path])
            msgs.append(f"- {where}:{loc}: {e.message}")
        if len(errors) > 20:
            msgs.append(f"... ({len(errors)-20} more)")
        raise ConfigurationError("\n".join(msgs))


def _normalize_keys(entry: Any) -> Any:
    if not isinstance(entry, Mapping):
        return entry
    out: Dict[str, Any] = {}
    for key, value in entry.items():
        out[_KEY_ALIASES.get(str(key), str(key))] = value
    return out


def _target_from_entry(entry: Mapping[str, Any]) -> TargetConfig:
    client_command = str(entry.get("client-command") or "").strip()
    scenarios = [str(s).strip() for s in (entry.get("scenarios") or [])]
    return TargetConfig(
        name=str(entry["name"]).strip(),
        start_command=str(entry["start-command"]),
        url=str(entry["url"]).strip(),
        setup_commands=tuple(entry.get("setup-commands") or ()),
        working_directory=str(entry.get("working-directory") or "."),
        client_command=client_command or None,
        scenarios=tuple(s for s in scenarios if s),
    )


def check_result_names(targets: Sequence[TargetConfig], *, where: str = "targets") -> None:
    """Reject targets whose results would land in the same run-bundle file.

    A target may produce `<name>` and `<name>-client`; names are compared by their
    file-safe, case-folded form.
    """
    seen: Dict[str, str] = {}
    for t in targets:
        if t.name in seen.values():
            raise ConfigurationError(f"{where}: duplicate target name {t.name!r}")
        for result_name in (t.name, t.client_result_name):
            key = result_file_key(result_name)
            other = seen.get(key)
            if other is not None:
                raise ConfigurationError(
                    f"{where}: target {t.name!r} collides with target {other!r} "
                    f"(both would write results for {result_name!r})"
                )
        for result_name in (t.name, t.client_result_name):
            seen[result_file_key(result_name)] = t.name


def parse_targets(entries: Any, *, where: str = "targets") -> List[TargetConfig]:
    """Validate raw target entries and build `TargetConfig`s.

    An empty or missing target list is a configuration error: there is nothing to run.
    """
    if entries is None:
        entries = []
    if not isinstance(entries, list):
        raise ConfigurationError(f"{where}: expected a list of targets")
    normalized = [_normalize_keys(e) for e in entries]
    validate_against_schema({"targets": normalized}, TARGETS_DOCUMENT_SCHEMA, where=where)
    if not normalized:
        raise ConfigurationError(f"{where}: no targets configured")

    targets = [_target_from_entry(e) for e in normalized]
    check_result_names(targets, where=where)
    return targets


def load_targets(path: Path) -> List[TargetConfig]:
    try:
        data = load_yaml_or_json(path)
    except (yaml.YAMLError, json.JSONDecodeError, ValueError, FileNotFoundError) as e:
        raise ConfigurationError(f"could not read targets file {path}: {e}") from e
    return parse_targets(data.get("targets"), where=str(path))


def parse_targets_json(text: str) -> List[TargetConfig]:
    """Parse an inline JSON list of targets (or a `{"targets": [...]}` object)."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"targets JSON is not valid: {e}") from e
    if isinstance(data, dict):
        data = data.get("targets")
    return parse_targets(data, where="targets_json")


def combine_targets(*groups: Sequence[TargetConfig]) -> List[TargetConfig]:
    combined: List[TargetConfig] = [t for group in groups for t in group]
    if not combined:
        raise ConfigurationError("no targets configured")
    check_result_names(combined)
    return combined
