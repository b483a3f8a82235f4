from __future__ import annotations

import pytest

from conformance_harness.runtime.catalog import (
    list_scenarios,
    parse_scenario_listing,
    stable_scenarios,
)

LISTING = """\
MCP conformance scenarios

Server scenarios:
  - server-initialize
  - tools-list
  - tools-call-elicitation [draft]
  - resources-subscribe [extension] experimental

Client scenarios:
  - initialize
  - tools-call  Calls a tool with arguments
  - auth-flow [draft]

Run with --scenario <id> to select one.
"""


class _FakeChecker:
    def __init__(self, text: str) -> None:
        self.text = text
        self.calls = 0

    def list_text(self) -> str:
        self.calls += 1
        return self.text


def test_listing_reports_maturity_per_entry() -> None:
    scenarios = parse_scenario_listing(LISTING, "server")
    assert [(s.id, s.maturity) for s in scenarios] == [
        ("server-initialize", "stable"),
        ("tools-list", "stable"),
        ("tools-call-elicitation", "draft"),
        ("resources-subscribe", "extension"),
    ]
    assert all(s.category == "server" for s in scenarios)


def test_stable_filter_excludes_draft_and_extension() -> None:
    ids = [s.id for s in stable_scenarios(parse_scenario_listing(LISTING, "server"))]
    assert ids == ["server-initialize", "tools-list"]


def test_client_section_ignores_trailing_description() -> None:
    ids = [s.id for s in list_scenarios(_FakeChecker(LISTING), "client")]
    assert ids == ["initialize", "tools-call"]


def test_trailing_colon_is_not_part_of_the_identifier() -> None:
    text = "Client scenarios:\n  - initialize: Tests the handshake\n  - tools-call:\n"
    assert [s.id for s in parse_scenario_listing(text, "client")] == ["initialize", "tools-call"]


def test_section_ends_at_blank_line_after_entries() -> None:
    text = "Client scenarios:\n\n  - a\n  - b\n\n  - not-part-of-it\n"
    assert [s.id for s in parse_scenario_listing(text, "client")] == ["a", "b"]


def test_missing_section_yields_empty_list() -> None:
    assert parse_scenario_listing("Server scenarios:\n  - x\n", "client") == []
    assert list_scenarios(_FakeChecker(""), "server") == []


def test_unknown_category_is_rejected() -> None:
    with pytest.raises(ValueError):
        parse_scenario_listing(LISTING, "proxy")
