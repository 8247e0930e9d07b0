"""Session lifecycle manager — start, resume, discard, end and report puzzle sessions.

Reconciles three sources of truth:
- the active session (at most one, process-wide)
- the saved store (paused sessions, one per (type, subtype) slot)
- the report queue (results the report service has not acknowledged)

Threading: every method runs on one control thread, the asyncio event loop
in the service. Nothing here locks. Report delivery is the only asynchronous
step: submission starts an asyncio task and returns at once; the task's
completion handler runs later on the same loop and must re-check the active
session, which may have been replaced or cleared in the meantime.

Error handling: precondition failures (a session already active, nothing to
continue, no time config for a difficulty, no level to play) are logged and
turn the call into a no-op returning None. Delivery failures never reach
the caller; they only decide whether the pending batch is kept.

Tier 3 orchestration module: imports from game/* (Tier 2), delivery/*
(Tier 2), levels/catalog (Tier 2), hooks/interfaces (Tier 1), codes and
schemas (Tier 1).
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Callable
from datetime import datetime

from puzzlesync import codes
from puzzlesync.delivery.queue import REPORT_COUNT_KEY, ReportQueue
from puzzlesync.delivery.report import ReportStatus
from puzzlesync.game.session import Session
from puzzlesync.game.store import SavedSessionStore, started_today
from puzzlesync.hooks.interfaces import (
    AnalyticsSink,
    KeyValueStore,
    ProfileService,
    ReportChannel,
    ResultSink,
)
from puzzlesync.levels.catalog import LevelCatalog
from puzzlesync.schemas import (
    DeliveryError,
    DeliveryResponse,
    GameCost,
    GameDifficulty,
    GameResult,
    GameSubtype,
    GameType,
    Inventory,
    Level,
    ReportAcknowledgment,
    SessionConfig,
)

logger = logging.getLogger(__name__)


def local_now() -> datetime:
    """Current local wall-clock time, timezone-aware."""
    return datetime.now().astimezone()


class SessionLifecycleManager:
    """Owns the active session, the saved store and the report queue.

    Created once at process start and injected where needed. All state
    changes go through its methods, which keeps the one-active-session
    invariant in a single place.

    Args:
        catalog: Level pools and match defaults.
        storage: Durable key/value store for suspend/load.
        channel: Delivery channel to the report service.
        profile: Inventory, settings, and inventory sync.
        statistics: Receives acknowledged results.
        achievements: Receives acknowledged results.
        analytics: Receives game_start events.
        clock: Returns the current local time. Daily sessions expire when
            its date moves past their start date.
        rng: Random source for level selection.
    """

    def __init__(
        self,
        *,
        catalog: LevelCatalog,
        storage: KeyValueStore,
        channel: ReportChannel,
        profile: ProfileService,
        statistics: ResultSink,
        achievements: ResultSink,
        analytics: AnalyticsSink,
        clock: Callable[[], datetime] = local_now,
        rng: random.Random | None = None,
    ) -> None:
        self._catalog = catalog
        self._storage = storage
        self._channel = channel
        self._profile = profile
        self._statistics = statistics
        self._achievements = achievements
        self._analytics = analytics
        self._clock = clock
        self._rng = rng or random.Random()

        self._current: Session | None = None
        self._saved = SavedSessionStore()
        self._queue = ReportQueue()
        self._deliveries: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def current(self) -> Session | None:
        return self._current

    @property
    def pending_report_count(self) -> int:
        return len(self._queue)

    def is_playing(self) -> bool:
        return self._current is not None

    def saved_sessions(self) -> list[Session]:
        return list(self._saved)

    def is_saved(self, game_type: GameType, subtype: GameSubtype) -> bool:
        """Checks whether a saved session can be continued for this slot.

        A TODAY slot only counts if its session started today. Its type must
        match, unless UNDEFINED is passed to accept any type.
        """
        if subtype is not GameSubtype.TODAY:
            return self._saved.find(game_type, subtype) is not None

        daily = self._saved.find_by_subtype(GameSubtype.TODAY)
        if daily is None:
            return False
        if not started_today(daily, self._clock()):
            return False
        return game_type is GameType.UNDEFINED or daily.config.type is game_type

    def get_progress(self, game_type: GameType, subtype: GameSubtype) -> float:
        saved = self._saved.find(game_type, subtype)
        return saved.progress if saved is not None else 0.0

    def get_random_level(self, game_type: GameType, difficulty: GameDifficulty) -> Level | None:
        return self._catalog.random_level(game_type, difficulty, self._rng)

    def get_not_synced_cost(self) -> GameCost:
        """Resources at risk if the report service never hears about them.

        Every saved session counts at its current elapsed time. A queued
        result counts only when its slot has no saved session, so a session
        that is both saved and queued is not counted twice.
        """
        total = GameCost()
        for session in self._saved:
            total += session.player.calculate_cost(session.elapsed_seconds)
        for result in self._queue:
            if self._saved.find(*result.key) is None:
                total += result.cost
        return total

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def begin(
        self,
        game_type: GameType,
        subtype: GameSubtype,
        difficulty: GameDifficulty,
        level_id: str | None = None,
    ) -> Session | None:
        """Starts a new session with the catalog's defaults for difficulty.

        Returns:
            The new session, paused, or None if a precondition failed.
        """
        defaults = self._catalog.defaults
        time_config = defaults.find_time_config(difficulty)
        if time_config is None:
            logger.error(
                "Couldn't start game: no default time config for difficulty %s",
                difficulty.name,
            )
            return None

        config = SessionConfig(
            type=game_type,
            subtype=subtype,
            difficulty=difficulty,
            score_config=defaults.score_config,
            time_config=time_config,
            free_live_count=defaults.free_lives,
            free_hint_count=defaults.free_hints,
            level_id=level_id or None,
        )
        return self.begin_with_config(config)

    def begin_with_config(self, config: SessionConfig) -> Session | None:
        """Starts a new session from a complete config.

        Resolves the level first, so a begin that cannot start leaves saved
        sessions untouched. Then sweeps expired dailies and clears the target
        slot: a TODAY slot is simply superseded, any other slot's previous
        attempt is reported. The new session starts paused; the player
        resumes it explicitly.
        """
        if self.is_playing():
            logger.error("Couldn't start game: a game is already started")
            return None

        level = self._select_level(config)
        if level is None:
            logger.error(
                "Couldn't start game: no level for %s/%s (difficulty=%s, level_id=%r)",
                config.type.name,
                config.subtype.name,
                config.difficulty.name,
                config.level_id,
            )
            return None

        self._discard_outdated_dailies()
        if config.subtype is GameSubtype.TODAY:
            # Any type: there is a single daily slot.
            self._discard(GameType.UNDEFINED, GameSubtype.TODAY, send_report=False)
        else:
            self._discard(config.type, config.subtype, send_report=True)

        settings = self._profile.get_settings()
        config = config.model_copy(
            update={"level_id": level.id, "is_no_mistake_mode": settings.unlimited_lives}
        )

        session = Session(self._profile.get_inventory(), config, level, start_timestamp=self._clock())
        non_sync_cost = self.get_not_synced_cost()
        if not non_sync_cost.is_zero:
            logger.info(
                "Starting with unsynced cost: hints=%d lives=%d time_units=%d",
                non_sync_cost.hints,
                non_sync_cost.lives,
                non_sync_cost.time_units,
            )
        session.set_non_sync_cost(non_sync_cost)
        session.pause()
        self._current = session

        logger.info(
            "Game started: %s/%s %s level=%s",
            config.type.name,
            config.subtype.name,
            config.difficulty.name,
            level.id,
        )
        self._track_start(session)
        return session

    def continue_session(self, game_type: GameType, subtype: GameSubtype) -> Session | None:
        """Reactivates a saved session and takes it out of the store."""
        if self.is_playing():
            logger.error("Couldn't resume game: a game is already started")
            return None

        if subtype is GameSubtype.TODAY:
            saved = self._saved.find_by_subtype(subtype)
        else:
            saved = self._saved.find(game_type, subtype)

        if saved is None:
            logger.error(
                "Couldn't resume game: no saved %s/%s game",
                game_type.name,
                subtype.name,
            )
            return None

        # Remove by the saved session's own key: a daily may carry another type.
        self._saved.remove(*saved.key)

        saved.set_non_sync_cost(self.get_not_synced_cost())
        saved.resume()
        self._current = saved

        logger.info("Game continued: %s/%s level=%s", saved.config.type.name, subtype.name, saved.level.id)
        self._track_start(saved)
        return saved

    def discard(self, game_type: GameType, subtype: GameSubtype) -> None:
        """Drops the saved session at this slot; reported unless it is a daily."""
        self._discard(game_type, subtype, send_report=subtype is not GameSubtype.TODAY)

    def leave(self) -> None:
        """Pauses the active session and keeps it in the saved store."""
        if self._current is None:
            logger.info("There is no active game to leave")
            return

        self._current.pause()
        self._saved.save(self._current)
        self._current = None

    def end(self) -> None:
        """Forgets the active session.

        The saved copy at its slot is dropped without a report. Reporting the
        active session itself is the caller's job, through send_report().
        """
        if self._current is None:
            logger.info("There is no active game to end")
            return

        self._discard(*self._current.key, send_report=False)
        self._current = None

    def send_report(self) -> ReportStatus | None:
        """Reports the active session.

        The returned status is marked sent immediately with the current
        inventory. It is marked delivered when the delivery attempt finishes
        (immediately for tutorials, which are never submitted).

        Returns:
            The report status, or None if no session is active.
        """
        if self._current is None:
            logger.error("There is no active game to send a report for")
            return None

        result = self._current.to_result()
        status = ReportStatus(result)
        acknowledgment = ReportAcknowledgment(achievements=[], inventory=self._profile.get_inventory())

        if result.config.subtype is not GameSubtype.TUTORIAL:
            self._submit_for_delivery(result, status)
        else:
            status.mark_delivered(acknowledgment)

        status.mark_sent(acknowledgment)
        return status

    def update(self, delta_seconds: float) -> None:
        if self._current is not None:
            self._current.update(delta_seconds)

    # ------------------------------------------------------------------
    # Process lifecycle
    # ------------------------------------------------------------------

    def load(self) -> int:
        """Restores saved sessions written by suspend(). Call once at start-up.

        Returns:
            The number of sessions restored.
        """
        inventory = self._profile.get_inventory()

        def build(data: str, config: SessionConfig) -> Session | None:
            if config.subtype is GameSubtype.TUTORIAL:
                level = self._catalog.tutorial_level()
            else:
                level = self._catalog.get_level(config.type, config.level_id or "")
            if level is None:
                logger.warning(
                    "Saved %s/%s game dropped: level %r is no longer in the catalog",
                    config.type.name,
                    config.subtype.name,
                    config.level_id,
                )
                return None
            return Session.from_serialized(inventory, data, level)

        restored = self._saved.restore(self._storage, build)

        pending = self._storage.get(REPORT_COUNT_KEY)
        if pending and pending != "0":
            logger.warning("%s report(s) were pending at last suspend and are not restored", pending)

        logger.info("Session manager loaded: %d saved game(s)", restored)
        return restored

    def suspend(self) -> None:
        """Process is going to the background: save the active game and persist."""
        current = self._current
        if current is not None and not current.is_end() and current.config.subtype is not GameSubtype.TUTORIAL:
            current.pause()
            self._saved.save(current)

        self._saved.persist(self._storage)
        self._storage.set(REPORT_COUNT_KEY, str(len(self._queue)))
        logger.info(
            "Session manager suspended: %d saved game(s), %d pending report(s)",
            len(self._saved),
            len(self._queue),
        )

    def resume(self) -> None:
        """Process is back: the active game lives in memory, drop its saved copy."""
        if self._current is not None:
            self._saved.remove(*self._current.key)

    async def drain(self) -> None:
        """Waits until every in-flight delivery has completed."""
        while self._deliveries:
            await asyncio.gather(*list(self._deliveries))

    # ------------------------------------------------------------------
    # Internal: slots
    # ------------------------------------------------------------------

    def _discard(self, game_type: GameType, subtype: GameSubtype, send_report: bool) -> None:
        if not self.is_saved(game_type, subtype):
            return
        if subtype is GameSubtype.TODAY:
            target = self._saved.find_by_subtype(subtype)
        else:
            target = self._saved.find(game_type, subtype)
        if target is None:
            return
        self._saved.remove(*target.key, on_remove=self._report_removed if send_report else None)

    def _discard_outdated_dailies(self) -> None:
        expired = self._saved.remove_expired_dailies(self._clock(), on_remove=self._report_removed)
        if expired:
            logger.info("Discarded %d outdated daily game(s)", len(expired))

    def _report_removed(self, session: Session) -> None:
        # Tutorials are never submitted.
        if session.config.subtype is not GameSubtype.TUTORIAL:
            self._submit_for_delivery(session.to_result())

    def _select_level(self, config: SessionConfig) -> Level | None:
        if config.subtype is GameSubtype.TUTORIAL:
            return self._catalog.tutorial_level()
        if config.level_id:
            return self._catalog.get_level(config.type, config.level_id)
        return self._catalog.random_level(config.type, config.difficulty, self._rng)

    def _track_start(self, session: Session) -> None:
        config = session.config
        if config.subtype is GameSubtype.TUTORIAL:
            return
        self._analytics.game_start(
            config.type,
            config.difficulty,
            config.subtype,
            session.start_timestamp,
            config.level_id,
        )

    # ------------------------------------------------------------------
    # Internal: delivery
    # ------------------------------------------------------------------

    def _submit_for_delivery(self, result: GameResult, status: ReportStatus | None = None) -> None:
        """Queues result and sends the whole queue in the background."""
        self._queue.append(result)
        batch = self._queue.snapshot()

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                "No event loop — %d report(s) stay queued until the next submission",
                len(batch),
            )
            # No attempt will finish, so the caller is acknowledged now.
            if status is not None:
                status.mark_delivered(ReportAcknowledgment())
            return

        task = loop.create_task(self._deliver(batch, result, status))
        self._deliveries.add(task)
        task.add_done_callback(self._deliveries.discard)

    async def _deliver(
        self,
        batch: list[GameResult],
        result: GameResult,
        status: ReportStatus | None,
    ) -> None:
        try:
            response = await self._channel.send(batch)
        except Exception:
            logger.exception("Report channel raised — treating as no connectivity")
            response = DeliveryResponse(
                is_completed=False,
                errors=[DeliveryError(code=codes.NO_INTERNET, message="Report channel raised.")],
            )
        self._on_delivery_complete(response, result, status)

    def _on_delivery_complete(
        self,
        response: DeliveryResponse,
        result: GameResult,
        status: ReportStatus | None,
    ) -> None:
        achievements: list[str] = []
        inventory = None

        if response.is_completed:
            logger.info("Reports delivered: %d result(s) acknowledged", len(self._queue))
            self._queue.clear()

            inventory = response.inventory
            achievements = list(response.new_achievements)
            self._notify_acknowledged(result, inventory)
        elif codes.should_keep_queue(response.errors):
            logger.warning(
                "Report delivery failed (%s) — keeping %d result(s) for retry",
                ", ".join(str(error.code) for error in response.errors),
                len(self._queue),
            )
        else:
            logger.warning(
                "Report delivery rejected (%s) — dropping %d result(s)",
                ", ".join(str(error.code) for error in response.errors),
                len(self._queue),
            )
            self._queue.clear()

        # The session that triggered this delivery may be gone by now.
        if self._current is not None:
            self._current.set_non_sync_cost(self.get_not_synced_cost())

        if status is not None:
            status.mark_delivered(ReportAcknowledgment(achievements=achievements, inventory=inventory))

    def _notify_acknowledged(self, result: GameResult, inventory: Inventory | None) -> None:
        """Feeds an acknowledged result to the sinks and the profile.

        A failing collaborator is logged and skipped so the others still run
        and the report status is still marked delivered.
        """
        for name, sink in (("statistics", self._statistics), ("achievements", self._achievements)):
            try:
                sink.add_result(result)
            except Exception:
                logger.exception("Result sink %s failed", name)

        if inventory is not None:
            try:
                self._profile.sync(inventory)
            except Exception:
                logger.exception("Profile sync failed")
