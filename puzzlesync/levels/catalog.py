"""Level catalog — indexes the manifest's level pools for lookup and random selection.

Pools are held in a table keyed by GameType. Lookup by id, random choice by
difficulty and the per-type listing all go through that one table, so a new
game type only needs a new pool entry.

Tier 2 module: imports from ``puzzlesync.levels.loader`` (Tier 2),
``puzzlesync.levels.schemas`` (Tier 1) and ``puzzlesync.schemas`` (Tier 1).
"""

from __future__ import annotations

import logging
import random
from pathlib import Path

from puzzlesync.levels.loader import LoadError, load_manifest
from puzzlesync.levels.schemas import LevelManifest, MatchDefaults
from puzzlesync.schemas import GameDifficulty, GameType, Level, LevelDescription

logger = logging.getLogger(__name__)


class LevelCatalog:
    """Indexes level descriptions by game type.

    Args:
        manifest: The validated level manifest. Defaults to an empty one.
    """

    def __init__(self, manifest: LevelManifest | None = None) -> None:
        manifest = manifest or LevelManifest()
        self._defaults = manifest.defaults
        self._tutorial = manifest.tutorial
        self._pools: dict[GameType, tuple[LevelDescription, ...]] = {
            GameType.CLASSIC: tuple(manifest.classic),
            GameType.BUSTED: tuple(manifest.busted),
        }
        self._by_id: dict[GameType, dict[str, LevelDescription]] = {
            game_type: {description.id: description for description in pool}
            for game_type, pool in self._pools.items()
        }

    @classmethod
    def from_file(cls, path: Path) -> LevelCatalog:
        """Loads the manifest at path. Logs and returns an empty catalog on failure.

        Does not raise — a catalog with zero levels is still a valid
        (empty) catalog; Begin() then fails its own precondition checks.
        """
        try:
            manifest = load_manifest(path)
        except LoadError as err:
            logger.error("Level manifest load error [%s] in %s: %s", err.error_type, err.path, err.message)
            return cls()

        catalog = cls(manifest)
        logger.info(
            "Level catalog loaded: %d classic, %d busted, tutorial=%s",
            len(manifest.classic),
            len(manifest.busted),
            manifest.tutorial is not None,
        )
        return catalog

    @property
    def defaults(self) -> MatchDefaults:
        return self._defaults

    def levels_for(
        self, game_type: GameType, difficulty: GameDifficulty | None = None
    ) -> list[LevelDescription]:
        """Returns the pool for game_type, optionally narrowed to one difficulty.

        Unknown types (including UNDEFINED) have an empty pool.
        """
        pool = self._pools.get(game_type, ())
        if difficulty is None:
            return list(pool)
        return [description for description in pool if description.difficulty == difficulty]

    def get_level(self, game_type: GameType, level_id: str) -> Level | None:
        """Returns the level with level_id in game_type's pool, or None."""
        description = self._by_id.get(game_type, {}).get(level_id)
        if description is None:
            return None
        return description.to_level()

    def random_level(
        self,
        game_type: GameType,
        difficulty: GameDifficulty,
        rng: random.Random | None = None,
    ) -> Level | None:
        """Picks a level uniformly at random among game_type's levels of difficulty.

        Returns None when the pool is empty. Callers must treat that as a
        precondition failure.
        """
        candidates = self.levels_for(game_type, difficulty)
        if not candidates:
            return None
        chooser = rng or random
        return chooser.choice(candidates).to_level()

    def tutorial_level(self) -> Level | None:
        """Returns the fixed tutorial level, or None if the manifest has none."""
        if self._tutorial is None:
            return None
        return self._tutorial.to_level()
