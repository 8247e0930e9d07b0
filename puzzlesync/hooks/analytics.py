"""Structured analytics logging — development stub for AnalyticsSink.

Emits one structured log line per analytics event. Machine-parseable via
the ``extra`` dict — standard JSON log formatters (e.g., python-json-logger)
pick these up automatically.

Logger name: ``puzzlesync.analytics``

TEAM: Replace with your analytics SDK. Subclass AnalyticsSink from
puzzlesync.hooks.interfaces.
"""

import logging
from datetime import datetime
from typing import Any

from puzzlesync.hooks.interfaces import AnalyticsSink
from puzzlesync.schemas import GameDifficulty, GameSubtype, GameType

logger = logging.getLogger("puzzlesync.analytics")


class LoggingAnalytics(AnalyticsSink):
    """STUB — logs events and keeps them in ``events`` for inspection."""

    def __init__(self) -> None:
        self.events: list[dict[str, Any]] = []

    def game_start(
        self,
        game_type: GameType,
        difficulty: GameDifficulty,
        subtype: GameSubtype,
        started_at: datetime,
        level_id: str | None,
    ) -> None:
        """Logs a game_start event.

        Args:
            game_type: Puzzle family.
            difficulty: Session difficulty.
            subtype: Session category; logged by its analytics name.
            started_at: Session start time, logged as unix seconds.
            level_id: Catalog id of the level being played.
        """
        event = {
            "event": "game_start",
            "game_type": game_type.to_string(),
            "difficulty": difficulty.name.lower(),
            "subtype": subtype.analytics_name,
            "started_at": int(started_at.timestamp()),
            "level_id": level_id,
        }
        self.events.append(event)
        logger.info(
            "Analytics: game_start %s %s %s level=%s",
            event["game_type"],
            event["difficulty"],
            event["subtype"],
            level_id,
            extra=event,
        )
