"""
Trial Monitor Service.

Background loop that re-checks every active subscription session on a fixed
interval so lapsed trials flip to expired without waiting for the next
request from that user.
"""

import asyncio
import logging
from typing import Optional

from services.subscription_engine import SessionRegistry

logger = logging.getLogger(__name__)


class TrialMonitor:
    """Periodic trial-expiry check over a session registry."""

    def __init__(self, registry: SessionRegistry, check_interval: float = 60):
        self.registry = registry
        self.is_running = False
        self.check_interval = check_interval
        self._task: Optional[asyncio.Task] = None

    async def start(self):
        """Run the monitor loop until stop() is called."""
        if self.is_running:
            logger.warning("Trial monitor is already running")
            return

        self.is_running = True
        logger.info("Trial monitor started - checking trials every %s seconds", self.check_interval)

        while self.is_running:
            try:
                self.run_once()
            except Exception as e:
                logger.error(f"Trial monitor error: {e}", exc_info=True)

            await asyncio.sleep(self.check_interval)

    def start_background(self) -> asyncio.Task:
        """Schedule the loop on the running event loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.start())
        return self._task

    async def stop(self):
        """Stop the loop and wait for the background task to finish."""
        if not self.is_running and self._task is None:
            return

        self.is_running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Trial monitor stopped")

    def run_once(self) -> int:
        """Check every session once. Returns the number of newly expired trials."""
        expired = self.registry.check_all()
        if expired:
            logger.info(f"{expired} trial(s) expired")
        else:
            logger.debug("No trials expired")
        return expired
