"""Level manifest models — the on-disk shape of content/levels.json.

One manifest carries everything a match needs besides the player: default
free lives and hints, the default score config, a time config per
difficulty, the level pools per game type, and the tutorial level.

Tier 1 module: imports only from pydantic and puzzlesync.schemas.
"""

from __future__ import annotations

from pydantic import Field

from puzzlesync.schemas import (
    DifficultyTimeConfig,
    GameDifficulty,
    LevelDescription,
    RecordModel,
    ScoreConfig,
    TimeConfig,
)


class MatchDefaults(RecordModel):
    """Defaults applied to every new SessionConfig."""

    free_lives: int = Field(default=3, ge=0)
    free_hints: int = Field(default=3, ge=0)
    score_config: ScoreConfig = Field(default_factory=ScoreConfig)
    time_configs: list[DifficultyTimeConfig] = Field(default_factory=list)

    def find_time_config(self, difficulty: GameDifficulty) -> TimeConfig | None:
        """Returns the first time config registered for difficulty, or None."""
        for entry in self.time_configs:
            if entry.difficulty == difficulty:
                return entry.time_config
        return None


class LevelManifest(RecordModel):
    """Root object of the level manifest."""

    defaults: MatchDefaults = Field(default_factory=MatchDefaults)
    classic: list[LevelDescription] = Field(default_factory=list)
    busted: list[LevelDescription] = Field(default_factory=list)
    tutorial: LevelDescription | None = None
