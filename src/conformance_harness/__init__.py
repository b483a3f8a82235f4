"""Conformance harness for MCP server and client implementations.

- runs the external conformance checker against configured targets
- parses its text output into per-test results
- compares results with baselines recorded for reference branches
- renders job summaries, pull-request comments and status badges
"""

__all__ = [
    "baseline",
    "cli",
    "config",
    "integration",
    "models",
    "parsing",
    "reporting",
    "runtime",
]
