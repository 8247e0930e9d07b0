"""Session — one play-through's state machine, elapsed time and cost accounting.

A Session is either created fresh (config + level) or rebuilt from its
serialized SessionRecord plus a re-resolved level. The puzzle board itself
lives outside this module: the board reports hints, mistakes and progress
through use_hint(), register_mistake() and record_progress().
"""

from __future__ import annotations

import logging
import math
from datetime import datetime

from puzzlesync.schemas import (
    GameCost,
    GameResult,
    GameSubtype,
    GameType,
    Inventory,
    Level,
    SessionConfig,
    SessionRecord,
    SessionState,
)

logger = logging.getLogger(__name__)


class Player:
    """Resource accounting for one session against the player's inventory.

    Free hints and lives come from the session config; anything used past
    them is drawn from the inventory and counts as cost.
    """

    def __init__(
        self,
        inventory: Inventory,
        config: SessionConfig,
        hints_used: int = 0,
        mistakes: int = 0,
    ) -> None:
        self._inventory = inventory
        self._config = config
        self.hints_used = hints_used
        self.mistakes = mistakes

    @property
    def inventory(self) -> Inventory:
        return self._inventory

    @property
    def hints_left(self) -> int:
        total = self._config.free_hint_count + self._inventory.extra_hint_count
        return max(0, total - self.hints_used)

    @property
    def lives_left(self) -> int:
        total = self._config.free_live_count + self._inventory.extra_live_count
        return max(0, total - self.mistakes)

    def use_hint(self) -> bool:
        """Spends one hint. Returns False if none are left."""
        if self.hints_left == 0:
            return False
        self.hints_used += 1
        return True

    def register_mistake(self) -> bool:
        """Records a mistake. Returns False if the player ran out of lives."""
        self.mistakes += 1
        if self._config.is_no_mistake_mode:
            return True
        total = self._config.free_live_count + self._inventory.extra_live_count
        return self.mistakes <= total

    def calculate_cost(self, elapsed_seconds: float) -> GameCost:
        """Resources consumed beyond the free allowance after elapsed_seconds."""
        hints = max(0, self.hints_used - self._config.free_hint_count)

        lives = 0
        if not self._config.is_no_mistake_mode:
            lives = max(0, self.mistakes - self._config.free_live_count)

        time_units = 0
        time_config = self._config.time_config
        if time_config.time_limit_seconds > 0 and not self._inventory.unlimited_time:
            overtime = elapsed_seconds - time_config.time_limit_seconds
            if overtime > 0:
                time_units = math.ceil(overtime / time_config.time_unit_seconds)

        return GameCost(hints=hints, lives=lives, time_units=time_units)


class Session:
    """A single play-through: config, level, player, clock and lifecycle state.

    Sessions start ACTIVE. pause() and resume() are idempotent and have no
    effect once the session has ended.
    """

    def __init__(
        self,
        inventory: Inventory,
        config: SessionConfig,
        level: Level,
        *,
        start_timestamp: datetime,
        elapsed_seconds: float = 0.0,
        state: SessionState = SessionState.ACTIVE,
        hints_used: int = 0,
        mistakes: int = 0,
        progress: float = 0.0,
        is_win: bool = False,
    ) -> None:
        self._config = config
        self._level = level
        self._player = Player(inventory, config, hints_used=hints_used, mistakes=mistakes)
        self._start_timestamp = start_timestamp
        self._elapsed_seconds = elapsed_seconds
        self._state = state
        self._progress = progress
        self._is_win = is_win
        self._non_sync_cost = GameCost()

    @classmethod
    def from_serialized(cls, inventory: Inventory, data: str, level: Level) -> Session:
        """Rebuilds a session from serialize() output and its re-resolved level.

        Raises:
            pydantic.ValidationError: If data is not a valid SessionRecord.
        """
        record = SessionRecord.model_validate_json(data)
        return cls(
            inventory,
            record.config,
            level,
            start_timestamp=record.start_timestamp,
            elapsed_seconds=record.elapsed_seconds,
            state=record.state,
            hints_used=record.hints_used,
            mistakes=record.mistakes,
            progress=record.progress,
            is_win=record.is_win,
        )

    @staticmethod
    def peek_config(data: str) -> SessionConfig:
        """Reads only the config out of serialized data (to resolve the level first)."""
        return SessionRecord.model_validate_json(data).config

    # -- Identity ----------------------------------------------------------

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def key(self) -> tuple[GameType, GameSubtype]:
        return self._config.key

    @property
    def level(self) -> Level:
        return self._level

    @property
    def player(self) -> Player:
        return self._player

    @property
    def start_timestamp(self) -> datetime:
        return self._start_timestamp

    # -- Progress ----------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def elapsed_seconds(self) -> float:
        return self._elapsed_seconds

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def is_win(self) -> bool:
        return self._is_win

    @property
    def cost(self) -> GameCost:
        return self._player.calculate_cost(self._elapsed_seconds)

    @property
    def non_sync_cost(self) -> GameCost:
        """Cost of other sessions the report service has not acknowledged yet."""
        return self._non_sync_cost

    def set_non_sync_cost(self, cost: GameCost) -> None:
        self._non_sync_cost = cost

    # -- Lifecycle -----------------------------------------------------------

    def is_end(self) -> bool:
        return self._state is SessionState.ENDED

    def pause(self) -> None:
        if self._state is SessionState.ACTIVE:
            self._state = SessionState.PAUSED

    def resume(self) -> None:
        if self._state is SessionState.PAUSED:
            self._state = SessionState.ACTIVE

    def finish(self, is_win: bool) -> None:
        if self.is_end():
            return
        self._is_win = is_win
        self._state = SessionState.ENDED
        logger.info(
            "Session %s/%s on level %s ended (win=%s) after %.1fs",
            self._config.type.name,
            self._config.subtype.name,
            self._level.id,
            is_win,
            self._elapsed_seconds,
        )

    def update(self, delta_seconds: float) -> None:
        """Advances the clock. No-op unless ACTIVE."""
        if self._state is not SessionState.ACTIVE or delta_seconds <= 0:
            return
        self._elapsed_seconds += delta_seconds

    # -- Puzzle board hooks ------------------------------------------------

    def use_hint(self) -> bool:
        if self._state is not SessionState.ACTIVE:
            return False
        return self._player.use_hint()

    def register_mistake(self) -> None:
        if self._state is not SessionState.ACTIVE:
            return
        if not self._player.register_mistake():
            self.finish(is_win=False)

    def record_progress(self, progress: float) -> None:
        """Stores board completion in [0, 1]. Reaching 1.0 wins the session."""
        if self._state is not SessionState.ACTIVE:
            return
        self._progress = min(1.0, max(0.0, progress))
        if self._progress >= 1.0:
            self.finish(is_win=True)

    # -- Serialization -------------------------------------------------------

    def to_record(self) -> SessionRecord:
        return SessionRecord(
            config=self._config,
            start_timestamp=self._start_timestamp,
            elapsed_seconds=self._elapsed_seconds,
            state=self._state,
            hints_used=self._player.hints_used,
            mistakes=self._player.mistakes,
            progress=self._progress,
            is_win=self._is_win,
        )

    def serialize(self) -> str:
        return self.to_record().model_dump_json(by_alias=True)

    def to_result(self) -> GameResult:
        """Snapshot of this session as a report."""
        return GameResult(
            config=self._config,
            start_timestamp=self._start_timestamp,
            elapsed_seconds=self._elapsed_seconds,
            hints_used=self._player.hints_used,
            mistakes=self._player.mistakes,
            progress=self._progress,
            is_win=self._is_win,
            cost=self.cost,
        )
