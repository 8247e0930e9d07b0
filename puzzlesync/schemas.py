"""Core data models — shared enums and Pydantic types for puzzlesync.

Every session, saved record, report and API response flows through these
types. Serialized names are camelCase so the persisted records and the
report wire format read the same way the client and the report service
expect them.

This is a Tier 1 leaf module: it imports only from pydantic and the stdlib.
No project imports allowed — everything else imports from here.

Usage:
    from puzzlesync.schemas import GameType, GameSubtype, SessionConfig, GameResult
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


_TYPE_NAMES: dict[int, str] = {
    1: "Classic_Game",
    2: "Busted_Game",
}


class GameType(IntEnum):
    """Puzzle family. Persisted as its integer value."""

    UNDEFINED = 0
    CLASSIC = 1
    BUSTED = 2

    @classmethod
    def from_string(cls, value: str) -> GameType:
        """Parses the external name ("Classic_Game"), UNDEFINED if unknown."""
        for member_value, name in _TYPE_NAMES.items():
            if name == value:
                return cls(member_value)
        logger.info("Couldn't convert string %r to a game type", value)
        return cls.UNDEFINED

    def to_string(self) -> str:
        """Returns the external name, or "" for UNDEFINED."""
        name = _TYPE_NAMES.get(int(self))
        if name is None:
            logger.info("Couldn't convert game type %s to a string", self.name)
            return ""
        return name


class GameSubtype(IntEnum):
    """Session category: ordinary, daily challenge, or tutorial."""

    COMMON = 0
    TODAY = 1
    TUTORIAL = 2

    @property
    def analytics_name(self) -> str:
        if self is GameSubtype.COMMON:
            return "common_game"
        if self is GameSubtype.TODAY:
            return "today_training"
        return ""


class GameDifficulty(IntEnum):
    EASY = 0
    MEDIUM = 1
    HARD = 2
    EXPERT = 3


class SessionState(str, Enum):
    """Lifecycle state of a single play-through."""

    ACTIVE = "active"
    PAUSED = "paused"
    ENDED = "ended"


# ---------------------------------------------------------------------------
# Base model
# ---------------------------------------------------------------------------


class RecordModel(BaseModel):
    """Base for every persisted or wire-level record (camelCase on the wire)."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dumps to a JSON-compatible dict using serialized field names."""
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Session configuration
# ---------------------------------------------------------------------------


class ScoreConfig(RecordModel):
    """Scoring parameters. Opaque to the lifecycle core — carried and persisted."""

    base_score: int = 1000
    mistake_penalty: int = 50
    hint_penalty: int = 25
    time_penalty_per_second: float = 0.5


class TimeConfig(RecordModel):
    """Time budget of a session.

    time_limit_seconds == 0 means the session is untimed. Time past the limit
    is consumed in whole units of time_unit_seconds.
    """

    time_limit_seconds: int = Field(default=0, ge=0)
    time_unit_seconds: int = Field(default=60, gt=0)


class DifficultyTimeConfig(RecordModel):
    """Default time budget registered for one difficulty."""

    difficulty: GameDifficulty
    time_config: TimeConfig


class SessionConfig(RecordModel):
    """Identity and rules of one session.

    Frozen: level_id and is_no_mistake_mode are decided before the session
    exists and applied by producing a copy (model_copy(update=...)). Once a
    Session holds a config, nothing about it changes.
    """

    type: GameType
    subtype: GameSubtype
    difficulty: GameDifficulty
    score_config: ScoreConfig = Field(default_factory=ScoreConfig)
    time_config: TimeConfig = Field(default_factory=TimeConfig)
    free_live_count: int = Field(default=0, ge=0, alias="health")
    free_hint_count: int = Field(default=0, ge=0, alias="hintCount")
    level_id: str | None = None
    is_no_mistake_mode: bool = False

    @property
    def key(self) -> tuple[GameType, GameSubtype]:
        """Saved-slot key."""
        return self.type, self.subtype

    def serialize(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def deserialize(cls, data: str) -> SessionConfig:
        return cls.model_validate_json(data)


class SessionRecord(RecordModel):
    """Persisted form of a Session. The level itself is re-resolved on load."""

    config: SessionConfig
    start_timestamp: datetime
    elapsed_seconds: float = Field(default=0.0, ge=0)
    state: SessionState = SessionState.PAUSED
    hints_used: int = Field(default=0, ge=0)
    mistakes: int = Field(default=0, ge=0)
    progress: float = Field(default=0.0, ge=0, le=1)
    is_win: bool = False


# ---------------------------------------------------------------------------
# Player resources
# ---------------------------------------------------------------------------


class GameCost(RecordModel):
    """Resources consumed by the player. Adds component-wise."""

    hints: int = 0
    lives: int = 0
    time_units: int = 0

    def __add__(self, other: GameCost) -> GameCost:
        if not isinstance(other, GameCost):
            return NotImplemented
        return GameCost(
            hints=self.hints + other.hints,
            lives=self.lives + other.lives,
            time_units=self.time_units + other.time_units,
        )

    @property
    def is_zero(self) -> bool:
        return self.hints == 0 and self.lives == 0 and self.time_units == 0


class Inventory(RecordModel):
    """Snapshot of the player's purchasable resources."""

    extra_hint_count: int = 0
    extra_live_count: int = 0
    extra_time_seconds: int = 0
    no_ads: bool = False
    unlimited_time: bool = False


class PlayerSettings(RecordModel):
    """Gameplay settings relevant to session creation."""

    unlimited_lives: bool = False


# ---------------------------------------------------------------------------
# Levels
# ---------------------------------------------------------------------------


class Level(RecordModel):
    """A playable puzzle: catalog id plus the raw board text."""

    id: str
    data: str


class LevelDescription(RecordModel):
    """Catalog entry for a level."""

    id: str
    difficulty: GameDifficulty
    data: str

    def to_level(self) -> Level:
        return Level(id=self.id, data=self.data)


# ---------------------------------------------------------------------------
# Reports and delivery
# ---------------------------------------------------------------------------


class GameResult(RecordModel):
    """Finalized outcome of a session, submitted for remote acknowledgment."""

    config: SessionConfig
    start_timestamp: datetime
    elapsed_seconds: float
    hints_used: int = 0
    mistakes: int = 0
    progress: float = 0.0
    is_win: bool = False
    cost: GameCost = Field(default_factory=GameCost)

    @property
    def key(self) -> tuple[GameType, GameSubtype]:
        return self.config.key


class DeliveryError(RecordModel):
    """One error reported by the delivery channel."""

    code: int
    message: str = ""


class DeliveryResponse(RecordModel):
    """Outcome of one delivery attempt."""

    is_completed: bool
    errors: list[DeliveryError] = Field(default_factory=list)
    inventory: Inventory | None = None
    new_achievements: list[str] = Field(default_factory=list)


class ReportAcknowledgment(RecordModel):
    """What the caller of send_report learns about its report."""

    achievements: list[str] = Field(default_factory=list)
    inventory: Inventory | None = None


# ---------------------------------------------------------------------------
# API envelope
# ---------------------------------------------------------------------------


class ApiError(BaseModel):
    """Error detail inside ApiResponse.error.

    code is an uppercase string like "GAME_NOT_STARTED", "NO_ACTIVE_GAME".
    """

    model_config = ConfigDict(frozen=True)

    code: str
    message: str


class ApiResponse(BaseModel):
    """Universal response envelope — every API endpoint returns this shape."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    data: Any | None = None
    error: ApiError | None = None
