"""In-memory profile service — development stub for ProfileService.

Holds one player's inventory and settings in memory. sync() replaces the
inventory with whatever the report service returned.

TEAM: Replace this with your real profile manager. Subclass ProfileService
from puzzlesync.hooks.interfaces and implement all three abstract methods.

Tier 2 service module: imports from puzzlesync.hooks.interfaces (Tier 1)
and puzzlesync.schemas (Tier 1).

Usage:
    from puzzlesync.hooks.profile import InMemoryProfileService

    profile = InMemoryProfileService()
    profile = InMemoryProfileService(settings=PlayerSettings(unlimited_lives=True))
"""

import logging

from puzzlesync.hooks.interfaces import ProfileService
from puzzlesync.schemas import Inventory, PlayerSettings

logger = logging.getLogger(__name__)


class InMemoryProfileService(ProfileService):
    """STUB — a single local player.

    Every inventory passed to sync() is also appended to ``synced`` so
    callers can inspect what the server acknowledged.
    """

    def __init__(
        self,
        inventory: Inventory | None = None,
        settings: PlayerSettings | None = None,
    ) -> None:
        """Initialises the profile.

        Args:
            inventory: Starting inventory. Defaults to an empty inventory.
            settings: Gameplay settings. Defaults to limited lives.
        """
        self._inventory = inventory or Inventory()
        self._settings = settings or PlayerSettings()
        self.synced: list[Inventory] = []

    def get_inventory(self) -> Inventory:
        return self._inventory

    def get_settings(self) -> PlayerSettings:
        return self._settings

    def sync(self, inventory: Inventory) -> None:
        logger.info(
            "Profile synced: hints=%d lives=%d time=%ds",
            inventory.extra_hint_count,
            inventory.extra_live_count,
            inventory.extra_time_seconds,
        )
        self._inventory = inventory
        self.synced.append(inventory)
