"""Shared FastAPI dependencies — session manager injection.

Module-level singleton set by _init_session_manager() in main.py at startup.
Route handlers access it via FastAPI's Depends() system, never by importing
the singleton directly. Tests swap it with app.dependency_overrides.

TEAM: To wire real services (profile, storage, report channel), change
the construction in main._init_session_manager(). get_session_manager()
and every route handler stay unchanged.

Tier 2 service module: imports from game/manager (Tier 3 core) and
schemas (Tier 1).

Usage:
    from puzzlesync.api.deps import get_session_manager

    @router.get("/something")
    async def do_thing(
        manager: SessionLifecycleManager = Depends(get_session_manager),
    ): ...
"""

import logging

from fastapi import HTTPException

from puzzlesync.game.manager import SessionLifecycleManager
from puzzlesync.schemas import ApiError, ApiResponse

logger = logging.getLogger(__name__)

# Set by _init_session_manager() in main.py at startup
_session_manager: SessionLifecycleManager | None = None


def get_session_manager() -> SessionLifecycleManager:
    """Returns the session manager singleton.

    Raises HTTPException(503) if the manager hasn't been created yet
    (startup not complete).
    """
    if _session_manager is None:
        raise HTTPException(
            status_code=503,
            detail=ApiResponse(
                ok=False,
                error=ApiError(
                    code="SERVICE_UNAVAILABLE",
                    message="Session manager is not yet available. Server is starting up.",
                ),
            ).model_dump(),
        )
    return _session_manager
