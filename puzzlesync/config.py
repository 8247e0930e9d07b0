"""App configuration — environment variable loading with typed defaults.

Loads settings from .env file (via python-dotenv) and os.environ.
Real environment variables take precedence over .env file values.

Usage:
    from puzzlesync.config import get_settings
    settings = get_settings()
    print(settings.report_service_url)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Only load .env from the project root, never from parent directories.
PROJECT_ROOT = Path(__file__).resolve().parent.parent
_DOTENV_PATH = PROJECT_ROOT / ".env"


@dataclass(frozen=True)
class Settings:
    """Typed configuration for the puzzlesync service.

    All fields have sensible defaults for local development. An empty
    report_service_url leaves the delivery channel uninitialized: reports
    queue up and are retried once a URL is configured.
    """

    # App
    app_env: str
    app_port: int
    log_level: str
    cors_origins: list[str]

    # Report delivery
    report_service_url: str
    report_service_token: str
    report_timeout_seconds: float

    # Content and persistence
    levels_path: Path
    save_path: Path

    # Game loop
    update_interval_seconds: float


def _split_csv(value: str) -> list[str]:
    """Splits a comma-separated string into a list of stripped, non-empty values."""
    return [item.strip() for item in value.split(",") if item.strip()]


def _resolve_path(value: str) -> Path:
    """Resolves a relative path against the project root."""
    path = Path(value)
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    return path


def _positive_float(env_var: str, value: str) -> float:
    """Parses a strictly positive float.

    Raises:
        ValueError: If the value is not a number or not positive.
    """
    number = float(value)
    if number <= 0:
        raise ValueError(f"Invalid value for {env_var}: {value!r}. Must be positive.")
    return number


def _load_settings() -> Settings:
    """Loads configuration from .env file and environment variables.

    Returns:
        A fully resolved Settings instance.
    """
    load_dotenv(_DOTENV_PATH)

    return Settings(
        # App
        app_env=os.environ.get("APP_ENV", "development"),
        app_port=int(os.environ.get("APP_PORT", "8000")),
        log_level=os.environ.get("LOG_LEVEL", "info"),
        cors_origins=_split_csv(
            os.environ.get("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")
        ),
        # Report delivery
        report_service_url=os.environ.get("REPORT_SERVICE_URL", "").rstrip("/"),
        report_service_token=os.environ.get("REPORT_SERVICE_TOKEN", ""),
        report_timeout_seconds=_positive_float(
            "REPORT_TIMEOUT_SECONDS",
            os.environ.get("REPORT_TIMEOUT_SECONDS", "10"),
        ),
        # Content and persistence
        levels_path=_resolve_path(os.environ.get("LEVELS_PATH", "content/levels.json")),
        save_path=_resolve_path(os.environ.get("SAVE_PATH", "data/saves.json")),
        # Game loop
        update_interval_seconds=_positive_float(
            "UPDATE_INTERVAL_SECONDS",
            os.environ.get("UPDATE_INTERVAL_SECONDS", "1"),
        ),
    )


_settings: Settings | None = None


def get_settings() -> Settings:
    """Returns the singleton Settings instance. Loads .env on first call."""
    global _settings
    if _settings is None:
        _settings = _load_settings()
    return _settings
