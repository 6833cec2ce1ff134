"""
Auction Clock - Drives round countdowns.

The clock owns no auction state. Every `interval` seconds it asks the
service to tick each active auction; the service applies the tick under
the auction's lock like any other mutation, so a tick never interleaves
with a bid. Ticks run in a worker thread to keep the event loop free
while the lock is held.
"""

import asyncio
from typing import Optional, TYPE_CHECKING

from cricauction.utils.logger import get_logger

if TYPE_CHECKING:
    from cricauction.core.service import AuctionService

logger = get_logger("clock")


class AuctionClock:
    """
    Background countdown task.

    Example:
        >>> clock = AuctionClock(service, interval=1.0)
        >>> await clock.start()
        >>> ...
        >>> await clock.stop()
    """

    def __init__(self, service: "AuctionService", interval: Optional[float] = None):
        self.service = service
        self.interval = interval if interval is not None else service.config.tick_interval
        self.ticks = 0
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the countdown loop."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._tick_loop())
        logger.info(f"Auction clock started ({self.interval}s interval)")

    async def stop(self) -> None:
        """Stop the countdown loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info(f"Auction clock stopped after {self.ticks} ticks")

    async def tick_once(self) -> int:
        """Deliver one tick to every active auction."""
        changed = await asyncio.to_thread(self.service.tick_all)
        self.ticks += 1
        return changed

    async def _tick_loop(self) -> None:
        """Periodically tick all active auctions."""
        while self._running:
            await asyncio.sleep(self.interval)
            try:
                await self.tick_once()
            except Exception as e:
                logger.error(f"Clock tick failed: {e}")
