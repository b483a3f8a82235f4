"""Configuration: target documents and environment-derived run settings."""

from __future__ import annotations

from conformance_harness.config.loader import (
    ConfigurationError,
    combine_targets,
    load_targets,
    load_yaml_or_json,
    parse_targets,
    parse_targets_json,
    validate_against_schema,
)
from conformance_harness.config.settings import (
    DEFAULT_ARTIFACT_NAME,
    DEFAULT_BASELINE_BRANCHES,
    DEFAULT_RESULTS_DIR,
    DEFAULT_WORKFLOW,
    GitHubContext,
    resolve_token,
)

__all__ = [
    "ConfigurationError",
    "DEFAULT_ARTIFACT_NAME",
    "DEFAULT_BASELINE_BRANCHES",
    "DEFAULT_RESULTS_DIR",
    "DEFAULT_WORKFLOW",
    "GitHubContext",
    "combine_targets",
    "load_targets",
    "load_yaml_or_json",
    "parse_targets",
    "parse_targets_json",
    "resolve_token",
    "validate_against_schema",
]
