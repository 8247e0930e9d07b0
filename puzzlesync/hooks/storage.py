"""Key/value storage stubs for KeyValueStore.

Two implementations:
- InMemoryKeyValueStore: dict-backed, loses data on restart. Used by tests
  and as the reference implementation of the contract.
- JsonFileKeyValueStore: one JSON object on the local disk. Used by the
  development server so saved sessions survive a restart.

TEAM: Replace JsonFileKeyValueStore with your platform's preference store.
Subclass KeyValueStore from puzzlesync.hooks.interfaces.

Tier 2 service module: imports from puzzlesync.hooks.interfaces (Tier 1).

Usage:
    from puzzlesync.hooks.storage import JsonFileKeyValueStore

    store = JsonFileKeyValueStore("data/saves.json")
    store.set("sessions.count", "0")
"""

import json
import logging
from pathlib import Path

from puzzlesync.hooks.interfaces import KeyValueStore

logger = logging.getLogger(__name__)


class InMemoryKeyValueStore(KeyValueStore):
    """STUB — dict-backed storage, loses data on restart."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def has(self, key: str) -> bool:
        return key in self._values

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class JsonFileKeyValueStore(KeyValueStore):
    """STUB — stores every key in a single JSON file.

    The file is read once at construction and rewritten on every set().
    Writes go to a sibling temp file first and are then moved into place,
    so a crash mid-write leaves the previous contents intact.

    A missing file starts empty. An unreadable or malformed file is logged
    and also starts empty; it is overwritten by the next set().
    """

    def __init__(self, path: str | Path) -> None:
        """Initialises the store from path.

        Args:
            path: Location of the JSON file. Parent directories are created
                on the first write.
        """
        self._path = Path(path)
        self._values: dict[str, str] = self._read()

    @property
    def path(self) -> Path:
        return self._path

    def has(self, key: str) -> bool:
        return key in self._values

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value
        self._write()

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            logger.exception("Failed to read %s — starting with empty storage", self._path)
            return {}
        if not isinstance(raw, dict):
            logger.error("Storage file %s does not hold a JSON object — ignoring it", self._path)
            return {}
        return {str(key): str(value) for key, value in raw.items()}

    def _write(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(self._values, indent=2, sort_keys=True), encoding="utf-8")
        tmp_path.replace(self._path)
