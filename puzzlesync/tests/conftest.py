"""Shared test fixtures for the session lifecycle tests.

Factory-pattern fixtures that return callables accepting **overrides, plus
ready-made stubs for every collaborator the manager talks to.

Fixtures:
    make_config: Factory for valid SessionConfig instances
    make_session: Factory for Session instances on a fixed level
    manifest / catalog: Small level manifest with every pool populated
    clock: Settable FakeClock (timezone-aware local time)
    set_local_zone / local_timezone: process TZ control, pinned to UTC+2
    kv_store, channel, profile, statistics, achievements, analytics: stubs
    make_manager: Factory wiring a SessionLifecycleManager to the stubs
    key_value_store: Parameterized KeyValueStore for the contract tests
"""

import os
import random
import time
from datetime import datetime, timedelta, timezone

import pytest

from puzzlesync.delivery.mock import MockReportChannel
from puzzlesync.game.manager import SessionLifecycleManager
from puzzlesync.game.session import Session
from puzzlesync.hooks.analytics import LoggingAnalytics
from puzzlesync.hooks.profile import InMemoryProfileService
from puzzlesync.hooks.results import InMemoryResultSink
from puzzlesync.hooks.storage import InMemoryKeyValueStore, JsonFileKeyValueStore
from puzzlesync.levels.catalog import LevelCatalog
from puzzlesync.levels.schemas import LevelManifest, MatchDefaults
from puzzlesync.schemas import (
    DifficultyTimeConfig,
    GameDifficulty,
    GameSubtype,
    GameType,
    Inventory,
    Level,
    LevelDescription,
    SessionConfig,
    TimeConfig,
)

# Fixed UTC+2 offset. The local_timezone fixture pins the process zone to
# the same offset so local-date arithmetic is deterministic on any host.
LOCAL_TZ = timezone(timedelta(hours=2))
T0 = datetime(2026, 3, 14, 12, 0, tzinfo=LOCAL_TZ)

BOARD = "530070000600195000098000060800060003400803001700020006060000280000419005000080079"


class FakeClock:
    """Callable clock whose time only moves when a test says so."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now = self.now + timedelta(**delta)


@pytest.fixture
def set_local_zone():
    """Returns a setter for the process's local timezone (POSIX TZ string).

    The original TZ is restored after the test.
    """
    original = os.environ.get("TZ")

    def _set(tz: str) -> None:
        os.environ["TZ"] = tz
        if hasattr(time, "tzset"):
            time.tzset()

    yield _set

    if original is None:
        os.environ.pop("TZ", None)
    else:
        os.environ["TZ"] = original
    if hasattr(time, "tzset"):
        time.tzset()


@pytest.fixture(autouse=True)
def local_timezone(set_local_zone) -> None:
    # POSIX sign is inverted: "UTC-2" is two hours east of UTC.
    set_local_zone("UTC-2")


# ---------------------------------------------------------------------------
# Config and session factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_config():
    """Returns a factory for valid SessionConfig instances.

    Defaults: classic, common, easy, 3 free lives and hints, 600s limit.
    """

    def _make(**overrides) -> SessionConfig:
        defaults = {
            "type": GameType.CLASSIC,
            "subtype": GameSubtype.COMMON,
            "difficulty": GameDifficulty.EASY,
            "time_config": TimeConfig(time_limit_seconds=600, time_unit_seconds=60),
            "free_live_count": 3,
            "free_hint_count": 3,
            "level_id": "classic-easy-1",
        }
        defaults.update(overrides)
        return SessionConfig(**defaults)

    return _make


@pytest.fixture
def make_session(make_config):
    """Returns a factory for Session instances on a fixed level."""

    def _make(config: SessionConfig | None = None, inventory: Inventory | None = None, **kwargs) -> Session:
        config = config or make_config()
        level = Level(id=config.level_id or "classic-easy-1", data=BOARD)
        kwargs.setdefault("start_timestamp", T0)
        return Session(inventory or Inventory(), config, level, **kwargs)

    return _make


# ---------------------------------------------------------------------------
# Level catalog
# ---------------------------------------------------------------------------


@pytest.fixture
def manifest() -> LevelManifest:
    """Two levels per (type, easy), one per (type, hard), plus a tutorial."""
    return LevelManifest(
        defaults=MatchDefaults(
            free_lives=3,
            free_hints=3,
            time_configs=[
                DifficultyTimeConfig(
                    difficulty=GameDifficulty.EASY,
                    time_config=TimeConfig(time_limit_seconds=600, time_unit_seconds=60),
                ),
                DifficultyTimeConfig(
                    difficulty=GameDifficulty.HARD,
                    time_config=TimeConfig(time_limit_seconds=1200, time_unit_seconds=120),
                ),
            ],
        ),
        classic=[
            LevelDescription(id="classic-easy-1", difficulty=GameDifficulty.EASY, data=BOARD),
            LevelDescription(id="classic-easy-2", difficulty=GameDifficulty.EASY, data=BOARD),
            LevelDescription(id="classic-hard-1", difficulty=GameDifficulty.HARD, data=BOARD),
        ],
        busted=[
            LevelDescription(id="busted-easy-1", difficulty=GameDifficulty.EASY, data=BOARD),
            LevelDescription(id="busted-hard-1", difficulty=GameDifficulty.HARD, data=BOARD),
        ],
        tutorial=LevelDescription(id="tutorial-1", difficulty=GameDifficulty.EASY, data=BOARD),
    )


@pytest.fixture
def catalog(manifest) -> LevelCatalog:
    return LevelCatalog(manifest)


# ---------------------------------------------------------------------------
# Collaborator stubs
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def channel() -> MockReportChannel:
    return MockReportChannel()


@pytest.fixture
def profile() -> InMemoryProfileService:
    return InMemoryProfileService()


@pytest.fixture
def statistics() -> InMemoryResultSink:
    return InMemoryResultSink("statistics")


@pytest.fixture
def achievements() -> InMemoryResultSink:
    return InMemoryResultSink("achievements")


@pytest.fixture
def analytics() -> LoggingAnalytics:
    return LoggingAnalytics()


@pytest.fixture
def make_manager(catalog, kv_store, channel, profile, statistics, achievements, analytics, clock):
    """Returns a factory for SessionLifecycleManager wired to the shared stubs.

    Any constructor argument can be overridden by keyword, e.g. a second
    manager over the same kv_store to simulate a process restart.
    """

    def _make(**overrides) -> SessionLifecycleManager:
        defaults = {
            "catalog": catalog,
            "storage": kv_store,
            "channel": channel,
            "profile": profile,
            "statistics": statistics,
            "achievements": achievements,
            "analytics": analytics,
            "clock": clock,
            "rng": random.Random(7),
        }
        defaults.update(overrides)
        return SessionLifecycleManager(**defaults)

    return _make


# ---------------------------------------------------------------------------
# Contract fixtures (parameterized for future implementations)
# ---------------------------------------------------------------------------


@pytest.fixture(params=["memory", "json_file"])
def key_value_store(request, tmp_path):
    """Yields a KeyValueStore implementation.

    TEAM: Add your platform store here:
        @pytest.fixture(params=["memory", "json_file", "prefs"])
        def key_value_store(request, tmp_path):
            ...
            elif request.param == "prefs":
                yield YourPreferenceStore(test_config)
    """
    if request.param == "memory":
        yield InMemoryKeyValueStore()
    elif request.param == "json_file":
        yield JsonFileKeyValueStore(tmp_path / "saves.json")
