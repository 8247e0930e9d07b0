"""Background update loop — advances the active session's clock.

Started by the application lifespan and cancelled on shutdown. Deltas are
measured with the monotonic clock, so a late wake-up still adds the real
time that passed.
"""

import asyncio
import logging
import time

from puzzlesync.game.manager import SessionLifecycleManager

logger = logging.getLogger(__name__)


async def run_update_loop(manager: SessionLifecycleManager, interval_seconds: float) -> None:
    """Calls manager.update() every interval_seconds until cancelled.

    Args:
        manager: The session lifecycle manager to tick.
        interval_seconds: Sleep between ticks. Must be positive.
    """
    logger.info("Update loop started (interval=%.2fs)", interval_seconds)
    last = time.monotonic()
    try:
        while True:
            await asyncio.sleep(interval_seconds)
            now = time.monotonic()
            manager.update(now - last)
            last = now
    finally:
        logger.info("Update loop stopped")
