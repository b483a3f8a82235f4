from __future__ import annotations

import logging
import re
from typing import Iterable, List

from conformance_harness.models import SCENARIO_CATEGORIES, Scenario
from conformance_harness.runtime.checker import ConformanceChecker

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"\[([A-Za-z_-]+)\]")
_EXCLUDED_TAGS = ("draft", "extension")


def _is_header(stripped: str) -> bool:
    return bool(stripped) and not stripped.startswith("-") and stripped.endswith(":")


def _maturity_of(line: str) -> str:
    for tag in _TAG_RE.findall(line):
        tag = tag.strip().lower()
        if tag in _EXCLUDED_TAGS:
            return tag
    return "stable"


def parse_scenario_listing(text: str, category: str) -> List[Scenario]:
    """Parse the checker's `list` output for one category.

    Expected shape (indentation and header wording vary between checker versions):

        Server scenarios:
          - server-initialize
          - tools-call-elicitation [draft]

        Client scenarios:
          - initialize
    """
    category = str(category or "").strip().lower()
    if category not in SCENARIO_CATEGORIES:
        raise ValueError(f"unknown scenario category: {category!r}")

    scenarios: List[Scenario] = []
    in_section = False
    for raw in (text or "").splitlines():
        stripped = raw.strip()

        if _is_header(stripped):
            if in_section:
                break
            in_section = category in stripped.lower()
            continue

        if not in_section:
            continue

        if not stripped:
            if scenarios:
                break
            continue

        if not stripped.startswith("- "):
            continue
        body = stripped[2:].strip()
        words = _TAG_RE.sub(" ", body).split()
        if not words:
            continue
        # `- initialize: description`
        scenario_id = words[0][:-1] if words[0].endswith(":") else words[0]
        if not scenario_id:
            continue
        scenarios.append(
            Scenario(id=scenario_id, category=category, maturity=_maturity_of(body))
        )
    return scenarios


def stable_scenarios(scenarios: Iterable[Scenario]) -> List[Scenario]:
    return [s for s in scenarios if s.is_stable]


def list_scenarios(checker: ConformanceChecker, category: str) -> List[Scenario]:
    """Stable scenarios of `category`, in the order the checker reports them."""
    listed = parse_scenario_listing(checker.list_text(), category)
    selected = stable_scenarios(listed)
    skipped = len(listed) - len(selected)
    if skipped:
        logger.info("skipping %d draft/extension %s scenario(s)", skipped, category)
    if not selected:
        logger.warning("checker reported no stable %s scenarios", category)
    return selected
