"""In-memory result sink — development stub for ResultSink.

Statistics and achievements each receive every result the report service
acknowledged. The real aggregation (best times, streaks, unlocks) lives
outside the lifecycle core; this stub only keeps the results.

TEAM: Replace with your statistics and achievement managers. Subclass
ResultSink from puzzlesync.hooks.interfaces.

Usage:
    from puzzlesync.hooks.results import InMemoryResultSink

    statistics = InMemoryResultSink("statistics")
    achievements = InMemoryResultSink("achievements")
"""

import logging

from puzzlesync.hooks.interfaces import ResultSink
from puzzlesync.schemas import GameResult

logger = logging.getLogger(__name__)


class InMemoryResultSink(ResultSink):
    """STUB — appends every acknowledged result to ``results``."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.results: list[GameResult] = []

    def add_result(self, result: GameResult) -> None:
        logger.debug(
            "%s: recorded %s/%s result (win=%s)",
            self.name,
            result.config.type.name,
            result.config.subtype.name,
            result.is_win,
        )
        self.results.append(result)
