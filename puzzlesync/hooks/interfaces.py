"""Hook interfaces — abstract base classes for every external collaborator.

These ABCs define the contracts between the session lifecycle core and the
rest of the game: durable storage, the remote report service, the player's
profile, statistics/achievement aggregation, and analytics. Each one has a
stub implementation that lets the service run end-to-end without real
infrastructure.

Everything except ReportChannel is synchronous: the lifecycle core runs on a
single control thread and never blocks on I/O other than report delivery,
which is the one asynchronous boundary.

Tier 1 leaf module: imports only from abc, datetime (stdlib) and
puzzlesync.schemas (also Tier 1).

TEAM: To implement a real service, subclass the relevant ABC and implement
every abstract method. Python will raise TypeError at instantiation if
any method is missing.

Usage:
    from puzzlesync.hooks.interfaces import KeyValueStore, ReportChannel
    from puzzlesync.hooks.interfaces import ProfileService, ResultSink, AnalyticsSink
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime

from puzzlesync.schemas import (
    DeliveryResponse,
    GameDifficulty,
    GameResult,
    GameSubtype,
    GameType,
    Inventory,
    PlayerSettings,
)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class KeyValueStore(ABC):
    """Durable string key/value storage that survives process suspension.

    The lifecycle core writes a count key plus one key per saved session,
    and the pending report count. Values are opaque strings.

    TEAM: Replace the stub (JsonFileKeyValueStore) with your platform's
    preference store.
    """

    @abstractmethod
    def has(self, key: str) -> bool:
        """Returns True if a value is stored under key."""
        ...

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Returns the value stored under key, or None if absent."""
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Stores value under key, overwriting any previous value."""
        ...


# ---------------------------------------------------------------------------
# Report delivery
# ---------------------------------------------------------------------------


class ReportChannel(ABC):
    """Delivers a batch of finished-session results to the report service.

    The batch always contains every result not yet acknowledged, so the
    service sees duplicates across attempts and must treat them as
    idempotent.

    Implementations must not raise: every failure is returned as a
    DeliveryResponse with is_completed=False and one or more errors. Codes
    are classified by puzzlesync.codes.
    """

    @abstractmethod
    async def send(self, results: Sequence[GameResult]) -> DeliveryResponse:
        """Sends the batch and returns the outcome.

        Args:
            results: Pending results, oldest first.

        Returns:
            The delivery outcome. On success, carries the server-side
            inventory and any newly unlocked achievement ids.
        """
        ...


# ---------------------------------------------------------------------------
# Player profile
# ---------------------------------------------------------------------------


class ProfileService(ABC):
    """The player's profile: inventory snapshot, settings, and server sync.

    TEAM: Replace the stub (InMemoryProfileService) with your profile
    manager.
    """

    @abstractmethod
    def get_inventory(self) -> Inventory:
        """Returns the current inventory snapshot."""
        ...

    @abstractmethod
    def get_settings(self) -> PlayerSettings:
        """Returns the current gameplay settings."""
        ...

    @abstractmethod
    def sync(self, inventory: Inventory) -> None:
        """Replaces the local inventory with the server-acknowledged one."""
        ...


# ---------------------------------------------------------------------------
# Result aggregation
# ---------------------------------------------------------------------------


class ResultSink(ABC):
    """Receives results the report service has acknowledged.

    Statistics and achievements are both sinks. Their aggregation logic
    lives outside the lifecycle core.
    """

    @abstractmethod
    def add_result(self, result: GameResult) -> None:
        """Records one acknowledged result."""
        ...


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


class AnalyticsSink(ABC):
    """Analytics event emitter."""

    @abstractmethod
    def game_start(
        self,
        game_type: GameType,
        difficulty: GameDifficulty,
        subtype: GameSubtype,
        started_at: datetime,
        level_id: str | None,
    ) -> None:
        """Emits a session-start event (new or continued session)."""
        ...
