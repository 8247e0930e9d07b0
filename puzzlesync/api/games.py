"""Game API routes — the UI's window into the session lifecycle manager.

Endpoints:
- Queries: current session, saved sessions, slot status, non-synced cost
- Lifecycle: begin, continue, discard, leave, end, report
- Active session: pause, resume, and the puzzle board hooks (hint,
  mistake, progress)
- App lifecycle: suspend and resume the whole manager

Enum values travel by lowercase name ("classic", "today", "hard").
All responses use the ApiResponse envelope. A manager call that turns into
a no-op surfaces as 409 with a specific error code.

Tier 3 orchestration module: imports from deps (Tier 2), game/* (Tier 2-3),
schemas (Tier 1).
"""

from enum import Enum
from typing import Annotated, Any, TypeVar

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, BeforeValidator, Field

from puzzlesync.api.deps import get_session_manager
from puzzlesync.delivery.report import ReportStatus
from puzzlesync.game.manager import SessionLifecycleManager
from puzzlesync.game.session import Session
from puzzlesync.schemas import (
    ApiError,
    ApiResponse,
    GameDifficulty,
    GameSubtype,
    GameType,
)

router = APIRouter()

_E = TypeVar("_E", bound=Enum)


def _enum_from_name(enum_cls: type[_E], value: Any) -> Any:
    """Maps a case-insensitive member name onto enum_cls; other values pass through."""
    if isinstance(value, str):
        try:
            return enum_cls[value.upper()]
        except KeyError:
            raise ValueError(f"Unknown {enum_cls.__name__} {value!r}") from None
    return value


def _game_type_from_name(value: Any) -> Any:
    """Also accepts the external name, e.g. "Busted_Game"."""
    if isinstance(value, str) and value.upper() not in GameType.__members__:
        game_type = GameType.from_string(value)
        if game_type is not GameType.UNDEFINED:
            return game_type
    return _enum_from_name(GameType, value)


GameTypeName = Annotated[GameType, BeforeValidator(_game_type_from_name)]
GameSubtypeName = Annotated[GameSubtype, BeforeValidator(lambda v: _enum_from_name(GameSubtype, v))]
GameDifficultyName = Annotated[
    GameDifficulty, BeforeValidator(lambda v: _enum_from_name(GameDifficulty, v))
]


# ---------------------------------------------------------------------------
# Request bodies (API-boundary types, local to this module)
# ---------------------------------------------------------------------------


class BeginRequest(BaseModel):
    """Request body for POST /games/begin."""

    type: GameTypeName
    subtype: GameSubtypeName = GameSubtype.COMMON
    difficulty: GameDifficultyName = GameDifficulty.EASY
    level_id: str | None = None


class SlotRequest(BaseModel):
    """Request body addressing one saved slot."""

    type: GameTypeName
    subtype: GameSubtypeName = GameSubtype.COMMON


class ProgressRequest(BaseModel):
    """Request body for POST /games/current/progress."""

    progress: float = Field(ge=0.0, le=1.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _conflict(code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail=ApiResponse(ok=False, error=ApiError(code=code, message=message)).model_dump(),
    )


def _path_enum(enum_cls: type[_E], value: str) -> _E:
    """Parses an enum name from the URL path. Raises 422 if unknown."""
    try:
        return _enum_from_name(enum_cls, value)
    except ValueError as exc:
        raise HTTPException(
            status_code=422,
            detail=ApiResponse(
                ok=False,
                error=ApiError(code="VALIDATION_ERROR", message=str(exc)),
            ).model_dump(),
        ) from None


def _require_current(manager: SessionLifecycleManager) -> Session:
    session = manager.current
    if session is None:
        raise _conflict("NO_ACTIVE_GAME", "There is no active game.")
    return session


def _session_view(session: Session) -> dict[str, Any]:
    """Converts a session to the dict returned by every session endpoint."""
    config = session.config
    return {
        "type": config.type.name.lower(),
        "subtype": config.subtype.name.lower(),
        "difficulty": config.difficulty.name.lower(),
        "level_id": config.level_id,
        "board": session.level.data,
        "state": session.state.value,
        "start_timestamp": session.start_timestamp.isoformat(),
        "elapsed_seconds": session.elapsed_seconds,
        "progress": session.progress,
        "is_win": session.is_win,
        "hints_used": session.player.hints_used,
        "hints_left": session.player.hints_left,
        "mistakes": session.player.mistakes,
        "lives_left": session.player.lives_left,
        "no_mistake_mode": config.is_no_mistake_mode,
        "cost": session.cost.model_dump(),
        "non_sync_cost": session.non_sync_cost.model_dump(),
    }


def _report_view(status: ReportStatus) -> dict[str, Any]:
    return {
        "result": status.result.to_wire(),
        "sent": status.sent.to_wire() if status.sent is not None else None,
        "delivered": status.delivered.to_wire() if status.delivered is not None else None,
    }


def _ok(data: Any = None) -> dict[str, Any]:
    return ApiResponse(ok=True, data=data).model_dump()


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@router.get("/games/current")
async def get_current(
    manager: SessionLifecycleManager = Depends(get_session_manager),
) -> dict[str, Any]:
    """Returns the active session, or null data when nothing is being played."""
    session = manager.current
    return _ok(_session_view(session) if session is not None else None)


@router.get("/games/saved")
async def list_saved(
    manager: SessionLifecycleManager = Depends(get_session_manager),
) -> dict[str, Any]:
    return _ok([_session_view(session) for session in manager.saved_sessions()])


@router.get("/games/saved/{game_type}/{subtype}")
async def get_saved_slot(
    game_type: str,
    subtype: str,
    manager: SessionLifecycleManager = Depends(get_session_manager),
) -> dict[str, Any]:
    """Reports whether a slot can be continued and how far its session got."""
    parsed_type = _path_enum(GameType, game_type)
    parsed_subtype = _path_enum(GameSubtype, subtype)
    return _ok({
        "saved": manager.is_saved(parsed_type, parsed_subtype),
        "progress": manager.get_progress(parsed_type, parsed_subtype),
    })


@router.get("/games/cost")
async def get_cost(
    manager: SessionLifecycleManager = Depends(get_session_manager),
) -> dict[str, Any]:
    return _ok({
        "not_synced_cost": manager.get_not_synced_cost().model_dump(),
        "pending_reports": manager.pending_report_count,
    })


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


@router.post("/games/begin")
async def begin_game(
    body: BeginRequest,
    manager: SessionLifecycleManager = Depends(get_session_manager),
) -> dict[str, Any]:
    if manager.is_playing():
        raise _conflict("GAME_ALREADY_ACTIVE", "A game is already being played.")

    session = manager.begin(body.type, body.subtype, body.difficulty, body.level_id)
    if session is None:
        raise _conflict("GAME_NOT_STARTED", "The game could not be started.")
    return _ok(_session_view(session))


@router.post("/games/continue")
async def continue_game(
    body: SlotRequest,
    manager: SessionLifecycleManager = Depends(get_session_manager),
) -> dict[str, Any]:
    if manager.is_playing():
        raise _conflict("GAME_ALREADY_ACTIVE", "A game is already being played.")

    session = manager.continue_session(body.type, body.subtype)
    if session is None:
        raise _conflict("NO_SAVED_GAME", "There is no saved game to continue.")
    return _ok(_session_view(session))


@router.post("/games/discard")
async def discard_game(
    body: SlotRequest,
    manager: SessionLifecycleManager = Depends(get_session_manager),
) -> dict[str, Any]:
    manager.discard(body.type, body.subtype)
    return _ok()


@router.post("/games/leave")
async def leave_game(
    manager: SessionLifecycleManager = Depends(get_session_manager),
) -> dict[str, Any]:
    _require_current(manager)
    manager.leave()
    return _ok()


@router.post("/games/end")
async def end_game(
    manager: SessionLifecycleManager = Depends(get_session_manager),
) -> dict[str, Any]:
    _require_current(manager)
    manager.end()
    return _ok()


@router.post("/games/report")
async def send_report(
    manager: SessionLifecycleManager = Depends(get_session_manager),
) -> dict[str, Any]:
    """Reports the active session.

    Returns right away with the local acknowledgment; ``delivered`` is
    filled in only when the delivery finished before the response was built.
    """
    _require_current(manager)
    status = manager.send_report()
    if status is None:
        raise _conflict("NO_ACTIVE_GAME", "There is no active game.")
    return _ok(_report_view(status))


# ---------------------------------------------------------------------------
# Active session
# ---------------------------------------------------------------------------


@router.post("/games/current/pause")
async def pause_game(
    manager: SessionLifecycleManager = Depends(get_session_manager),
) -> dict[str, Any]:
    session = _require_current(manager)
    session.pause()
    return _ok(_session_view(session))


@router.post("/games/current/resume")
async def resume_game(
    manager: SessionLifecycleManager = Depends(get_session_manager),
) -> dict[str, Any]:
    session = _require_current(manager)
    session.resume()
    return _ok(_session_view(session))


@router.post("/games/current/hint")
async def use_hint(
    manager: SessionLifecycleManager = Depends(get_session_manager),
) -> dict[str, Any]:
    session = _require_current(manager)
    granted = session.use_hint()
    return _ok({"granted": granted, "session": _session_view(session)})


@router.post("/games/current/mistake")
async def register_mistake(
    manager: SessionLifecycleManager = Depends(get_session_manager),
) -> dict[str, Any]:
    session = _require_current(manager)
    session.register_mistake()
    return _ok(_session_view(session))


@router.post("/games/current/progress")
async def record_progress(
    body: ProgressRequest,
    manager: SessionLifecycleManager = Depends(get_session_manager),
) -> dict[str, Any]:
    session = _require_current(manager)
    session.record_progress(body.progress)
    return _ok(_session_view(session))


# ---------------------------------------------------------------------------
# App lifecycle
# ---------------------------------------------------------------------------


@router.post("/app/suspend")
async def suspend_app(
    manager: SessionLifecycleManager = Depends(get_session_manager),
) -> dict[str, Any]:
    manager.suspend()
    return _ok()


@router.post("/app/resume")
async def resume_app(
    manager: SessionLifecycleManager = Depends(get_session_manager),
) -> dict[str, Any]:
    manager.resume()
    return _ok()
