"""FastAPI application — entry point, middleware, lifespan, and health endpoint.

Creates the puzzlesync API with:
- API versioning via router prefix (/api/v1/)
- CORS middleware (origins from settings)
- Request logging middleware (raw ASGI — no response body buffering)
- Global exception handlers (HTTPException, validation, catch-all)
- Health endpoint
- Lifespan: runs the session update loop; on shutdown suspends the manager
  and waits for in-flight report deliveries

Run with: uvicorn puzzlesync.main:app --reload

Tier 3 orchestration module: imports from config (Tier 2), deps (Tier 2),
game/* (Tier 2-3), schemas (Tier 1).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import AsyncIterator
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from puzzlesync.config import get_settings
from puzzlesync.schemas import ApiError, ApiResponse

logger = logging.getLogger("puzzlesync")


# ---------------------------------------------------------------------------
# Request logging middleware (raw ASGI)
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware:
    """Logs method, path, status code, and duration for every request.

    Uses raw ASGI to avoid response body buffering. Does NOT log
    request/response bodies, query params, or auth headers.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Wraps the ASGI call to measure timing and capture status code."""
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "?")
        path = scope.get("path", "?")
        start = time.monotonic()
        status_code = 0

        async def logging_send(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 0)
            await send(message)

        try:
            await self.app(scope, receive, logging_send)
        finally:
            duration_ms = (time.monotonic() - start) * 1000
            logger.info("%s %s %d %.1fms", method, path, status_code, duration_ms)


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


def _http_exception_response(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wraps HTTPException in ApiResponse envelope.

    If the detail is already an ApiResponse dict (from deps.py or a route
    helper), returns it directly. Otherwise wraps in a generic error.
    """
    if isinstance(exc.detail, dict) and "ok" in exc.detail:
        return JSONResponse(status_code=exc.status_code, content=exc.detail)

    return JSONResponse(
        status_code=exc.status_code,
        content=ApiResponse(
            ok=False,
            error=ApiError(code="HTTP_ERROR", message=str(exc.detail)),
        ).model_dump(),
    )


def _validation_error_response(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Wraps Pydantic validation errors in ApiResponse envelope."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        loc = " -> ".join(str(part) for part in first.get("loc", []))
        msg = first.get("msg", "Validation error")
        detail = f"{loc}: {msg}" if loc else msg
    else:
        detail = "Request validation failed."

    return JSONResponse(
        status_code=422,
        content=ApiResponse(
            ok=False,
            error=ApiError(code="VALIDATION_ERROR", message=detail),
        ).model_dump(),
    )


def _unhandled_exception_response(request: Request, exc: Exception) -> JSONResponse:
    """Catches all unhandled exceptions — never leaks internals to client.

    Logs the full traceback server-side. Returns a generic 500 response.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

    return JSONResponse(
        status_code=500,
        content=ApiResponse(
            ok=False,
            error=ApiError(
                code="INTERNAL_ERROR",
                message="An unexpected error occurred.",
            ),
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# App creation
# ---------------------------------------------------------------------------


def _init_session_manager(application: FastAPI) -> None:
    """Builds the session manager singleton during app startup.

    Loads the level catalog, opens the save file, creates the report channel
    and the collaborator stubs, then restores saved sessions. A missing or
    broken level manifest is logged and leaves an empty catalog; the
    service still starts.

    Uses local imports to avoid circular imports during module loading.
    """
    from puzzlesync.api import deps
    from puzzlesync.delivery.http import HttpReportChannel
    from puzzlesync.game.manager import SessionLifecycleManager
    from puzzlesync.hooks.analytics import LoggingAnalytics
    from puzzlesync.hooks.profile import InMemoryProfileService
    from puzzlesync.hooks.results import InMemoryResultSink
    from puzzlesync.hooks.storage import JsonFileKeyValueStore
    from puzzlesync.levels.catalog import LevelCatalog

    settings = get_settings()

    channel = HttpReportChannel(
        settings.report_service_url,
        token=settings.report_service_token,
        timeout=settings.report_timeout_seconds,
    )
    if not channel.is_initialized:
        logger.warning(
            "REPORT_SERVICE_URL is not set. Reports will queue until it is configured."
        )

    # TEAM: Replace the stubs with your real profile, statistics,
    # achievement and analytics services.
    manager = SessionLifecycleManager(
        catalog=LevelCatalog.from_file(settings.levels_path),
        storage=JsonFileKeyValueStore(settings.save_path),
        channel=channel,
        profile=InMemoryProfileService(),
        statistics=InMemoryResultSink("statistics"),
        achievements=InMemoryResultSink("achievements"),
        analytics=LoggingAnalytics(),
    )
    manager.load()

    deps._session_manager = manager
    application.state.report_channel = channel


@contextlib.asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Runs the update loop while serving; suspends the manager on shutdown."""
    from puzzlesync.api import deps
    from puzzlesync.game.loop import run_update_loop

    manager = deps._session_manager
    loop_task: asyncio.Task[None] | None = None
    if manager is not None:
        loop_task = asyncio.create_task(
            run_update_loop(manager, get_settings().update_interval_seconds)
        )

    try:
        yield
    finally:
        if loop_task is not None:
            loop_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await loop_task
        try:
            if manager is not None:
                manager.suspend()
                await manager.drain()
        finally:
            channel = getattr(application.state, "report_channel", None)
            if channel is not None:
                await channel.aclose()


def create_app() -> FastAPI:
    """Creates and configures the FastAPI application."""
    settings = get_settings()

    # Configure logging level
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

    application = FastAPI(
        title="puzzlesync",
        description="Puzzle game session lifecycle service",
        version="0.1.0",
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --

    # CORS must be outermost to handle preflight
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request logging (raw ASGI)
    application.add_middleware(RequestLoggingMiddleware)

    # -- Exception handlers --
    application.add_exception_handler(StarletteHTTPException, _http_exception_response)
    application.add_exception_handler(RequestValidationError, _validation_error_response)
    application.add_exception_handler(Exception, _unhandled_exception_response)

    # -- Routers --
    _register_routes(application)

    # -- Session manager --
    _init_session_manager(application)

    return application


def _register_routes(application: FastAPI) -> None:
    """Registers all API routers on the application."""
    from fastapi import APIRouter

    v1 = APIRouter(prefix="/api/v1")

    @v1.get("/health")
    async def health() -> dict[str, Any]:
        return ApiResponse(ok=True, data={"status": "healthy"}).model_dump()

    # Sub-routers (BEFORE including v1 into the app):
    from puzzlesync.api.games import router as games_router

    v1.include_router(games_router, tags=["games"])

    application.include_router(v1)


app = create_app()
