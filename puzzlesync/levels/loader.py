"""Level loader — reads the level manifest from disk into a validated LevelManifest.

Level ids must be unique within a game type: a saved session is restored by
(type, level id), so a duplicate would make restoration ambiguous.

Tier 2 module: imports from ``puzzlesync.levels.schemas`` (Tier 1) + stdlib.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from puzzlesync.levels.schemas import LevelManifest


class LoadError(Exception):
    """Fatal failure while loading the level manifest.

    Extends ``Exception`` so it can be raised directly, while carrying
    structured fields for logging.

    Attributes:
        path: The manifest path that was being loaded (as string).
        error_type: One of ``"missing_file"``, ``"invalid_json"``,
            ``"validation_error"``, ``"duplicate_level"``.
        message: Human-readable error description.
    """

    def __init__(self, path: str, error_type: str, message: str) -> None:
        self.path = path
        self.error_type = error_type
        self.message = message
        super().__init__(message)


def load_manifest(path: Path) -> LevelManifest:
    """Reads and validates a level manifest.

    Args:
        path: Location of the manifest JSON file.

    Returns:
        The validated, frozen LevelManifest.

    Raises:
        LoadError: If the file is missing, is not valid JSON, fails schema
            validation, or repeats a level id within one game type.
    """
    if not path.is_file():
        raise LoadError(str(path), "missing_file", f"Level manifest not found: {path}")

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise LoadError(str(path), "invalid_json", f"Invalid JSON in {path.name}: {exc}") from exc

    try:
        manifest = LevelManifest.model_validate(raw)
    except ValidationError as exc:
        raise LoadError(str(path), "validation_error", str(exc)) from exc

    for pool_name, pool in (("classic", manifest.classic), ("busted", manifest.busted)):
        seen: set[str] = set()
        for description in pool:
            if description.id in seen:
                raise LoadError(
                    str(path),
                    "duplicate_level",
                    f"Duplicate level id {description.id!r} in {pool_name} pool",
                )
            seen.add(description.id)

    return manifest
