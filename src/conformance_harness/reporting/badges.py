from __future__ import annotations

import logging
import time
from typing import Callable, Protocol, Sequence

from conformance_harness.models import BadgeData, ServerTestResult
from conformance_harness.reporting.render import badge_filename, generate_badge_data

logger = logging.getLogger(__name__)

BADGE_UPDATE_DELAY_S = 2.0


class BadgeStore(Protocol):
    def store(self, identifier: str, badge: BadgeData) -> None:
        ...


def update_all_badges(
    store: BadgeStore,
    results: Sequence[ServerTestResult],
    *,
    delay_s: float = BADGE_UPDATE_DELAY_S,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Publish one badge per result, sequentially, pausing between updates.

    Failures are logged and skipped. Returns the number of badges stored.
    """
    stored = 0
    for i, result in enumerate(results):
        filename = badge_filename(result.server_name)
        try:
            store.store(filename, generate_badge_data(result))
            stored += 1
        except Exception as e:
            logger.warning("failed to update badge for %s: %s", result.server_name, e)
        if i < len(results) - 1 and delay_s > 0:
            logger.info("waiting %gs before next badge update", delay_s)
            sleep(delay_s)
    return stored
