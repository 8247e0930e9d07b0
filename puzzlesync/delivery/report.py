"""Report status — the handle send_report() returns to its caller.

Two single-shot stages:
- sent: acknowledged locally, right away, with the player's inventory at
  the time of the call. UI can move on without waiting for the network.
- delivered: set when the delivery attempt this report triggered finishes,
  carrying whatever achievements and inventory that attempt produced.

Both stages are set on the event loop thread. A second mark of the same
stage is ignored.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from puzzlesync.schemas import GameResult, ReportAcknowledgment

logger = logging.getLogger(__name__)


class ReportStatus:
    """Completion handle for one submitted result."""

    def __init__(self, result: GameResult) -> None:
        self.result = result
        self._sent: ReportAcknowledgment | None = None
        self._delivered: ReportAcknowledgment | None = None
        self._delivered_event = asyncio.Event()
        self._callbacks: list[Callable[[ReportStatus], None]] = []

    @property
    def sent(self) -> ReportAcknowledgment | None:
        return self._sent

    @property
    def delivered(self) -> ReportAcknowledgment | None:
        return self._delivered

    @property
    def is_sent(self) -> bool:
        return self._sent is not None

    @property
    def is_delivered(self) -> bool:
        return self._delivered is not None

    def mark_sent(self, acknowledgment: ReportAcknowledgment) -> None:
        if self._sent is not None:
            logger.debug("Report already marked sent — ignoring")
            return
        self._sent = acknowledgment

    def mark_delivered(self, acknowledgment: ReportAcknowledgment) -> None:
        if self._delivered is not None:
            logger.debug("Report already marked delivered — ignoring")
            return
        self._delivered = acknowledgment
        self._delivered_event.set()
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback(self)

    def add_done_callback(self, callback: Callable[[ReportStatus], None]) -> None:
        """Runs callback once delivered. Runs it immediately if already delivered."""
        if self._delivered is not None:
            callback(self)
            return
        self._callbacks.append(callback)

    async def wait_delivered(self) -> ReportAcknowledgment:
        await self._delivered_event.wait()
        assert self._delivered is not None
        return self._delivered
