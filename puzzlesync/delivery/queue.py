"""Report queue — finished-session results awaiting remote acknowledgment.

Append-only between flushes. A flush clears the whole queue at once; nothing
is ever removed individually or reordered.

Only the queue length survives suspension (``reports.count``); the payload
does not.
"""

from __future__ import annotations

from collections.abc import Iterator

from puzzlesync.schemas import GameResult

REPORT_COUNT_KEY = "reports.count"


class ReportQueue:
    """Ordered batch of pending results."""

    def __init__(self) -> None:
        self._results: list[GameResult] = []

    def __len__(self) -> int:
        return len(self._results)

    def __iter__(self) -> Iterator[GameResult]:
        return iter(list(self._results))

    def append(self, result: GameResult) -> None:
        self._results.append(result)

    def snapshot(self) -> list[GameResult]:
        """Copy of the current batch, oldest first."""
        return list(self._results)

    def clear(self) -> None:
        self._results.clear()
