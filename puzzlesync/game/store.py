"""Saved session store — paused sessions, at most one per (type, subtype) slot.

TODAY sessions are further limited to one regardless of type: a daily
challenge's type may be reassigned, so the daily slot is matched on subtype
alone.

Mutated only by SessionLifecycleManager. Reporting is the manager's concern:
removal methods accept an ``on_remove`` callback that runs for each session
before it leaves the store.

Persisted layout (KeyValueStore):
    sessions.count      number of saved sessions
    sessions.{idx}      serialized session, idx in [0, count)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from datetime import datetime

from pydantic import ValidationError

from puzzlesync.game.session import Session
from puzzlesync.hooks.interfaces import KeyValueStore
from puzzlesync.schemas import GameSubtype, GameType, SessionConfig

logger = logging.getLogger(__name__)

SESSION_COUNT_KEY = "sessions.count"


def session_key(index: int) -> str:
    return f"sessions.{index}"


def started_today(session: Session, now: datetime) -> bool:
    """Checks whether session started on now's calendar date in local time.

    Both instants are converted to the host's local zone separately, so a
    daylight-saving change between them does not shift either date.
    """
    return session.start_timestamp.astimezone().date() == now.astimezone().date()


class SavedSessionStore:
    """Ordered collection of saved sessions keyed by (type, subtype)."""

    def __init__(self) -> None:
        self._sessions: list[Session] = []

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[Session]:
        return iter(list(self._sessions))

    def find(self, game_type: GameType, subtype: GameSubtype) -> Session | None:
        """Exact (type, subtype) match."""
        for session in self._sessions:
            if session.key == (game_type, subtype):
                return session
        return None

    def find_by_subtype(self, subtype: GameSubtype) -> Session | None:
        """First session of subtype, whatever its type."""
        for session in self._sessions:
            if session.config.subtype is subtype:
                return session
        return None

    def save(self, session: Session) -> None:
        """Stores session, silently replacing whatever occupies its slot."""
        if session.config.subtype is GameSubtype.TODAY:
            self._sessions = [s for s in self._sessions if s.config.subtype is not GameSubtype.TODAY]
        else:
            self.remove(*session.key)
        self._sessions.append(session)

    def remove(
        self,
        game_type: GameType,
        subtype: GameSubtype,
        on_remove: Callable[[Session], None] | None = None,
    ) -> list[Session]:
        """Removes every session at (game_type, subtype).

        Returns:
            The removed sessions, in store order.
        """
        matches = [s for s in self._sessions if s.key == (game_type, subtype)]
        return self._remove_all(matches, on_remove)

    def remove_expired_dailies(
        self,
        now: datetime,
        on_remove: Callable[[Session], None] | None = None,
    ) -> list[Session]:
        """Removes TODAY sessions started on a local calendar date other than now's."""
        expired = [
            s
            for s in self._sessions
            if s.config.subtype is GameSubtype.TODAY and not started_today(s, now)
        ]
        return self._remove_all(expired, on_remove)

    def _remove_all(
        self,
        sessions: list[Session],
        on_remove: Callable[[Session], None] | None,
    ) -> list[Session]:
        for session in sessions:
            if on_remove is not None:
                on_remove(session)
            self._sessions.remove(session)
        return sessions

    # -- Persistence ---------------------------------------------------------

    def persist(self, storage: KeyValueStore) -> None:
        """Writes the count and every serialized session.

        The count is always written, zero included, so sessions removed since
        the last persist are not restored from stale indexed entries.
        """
        storage.set(SESSION_COUNT_KEY, str(len(self._sessions)))
        for index, session in enumerate(self._sessions):
            storage.set(session_key(index), session.serialize())

    def restore(
        self,
        storage: KeyValueStore,
        build: Callable[[str, SessionConfig], Session | None],
    ) -> int:
        """Loads sessions written by persist().

        Args:
            storage: Where persist() wrote to.
            build: Rebuilds a session from its serialized data and config,
                or returns None if it cannot (e.g. the level is gone).

        Returns:
            The number of sessions restored. Unreadable entries are logged
            and skipped.
        """
        raw_count = storage.get(SESSION_COUNT_KEY)
        if raw_count is None:
            return 0
        try:
            count = int(raw_count)
        except ValueError:
            logger.error("Corrupted saved session count %r — nothing restored", raw_count)
            return 0

        restored = 0
        for index in range(count):
            data = storage.get(session_key(index))
            if data is None:
                logger.warning("Saved session %d is missing — skipped", index)
                continue
            try:
                config = Session.peek_config(data)
            except ValidationError:
                logger.exception("Saved session %d is corrupted — skipped", index)
                continue
            session = build(data, config)
            if session is None:
                continue
            self.save(session)
            restored += 1
        return restored
