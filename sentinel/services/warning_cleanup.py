"""
Sentinel - Warning Cleanup Scheduler
====================================

Background service for warning expiry and rate-window housekeeping.

DESIGN:
    Runs every cleanup_interval seconds (hourly by default). Each pass marks
    warnings whose duration has elapsed as expired and sweeps dead keys out
    of the in-memory rate windows. Expiry is also evaluated at read time,
    so a late pass never makes an expired warning count as active.
"""

import asyncio
import time
from typing import TYPE_CHECKING, Optional, Tuple

from sentinel.core.config import get_config
from sentinel.core.logger import logger

if TYPE_CHECKING:
    from sentinel.bot import SentinelBot
    from sentinel.services.automod.rate_windows import RateWindowService
    from sentinel.services.warning_service import WarningService


# =============================================================================
# Cleanup Scheduler
# =============================================================================

class WarningCleanupScheduler:
    """
    Periodic maintenance loop.

    Attributes:
        warning_service: Ledger facade used to mark expirations.
        rate_windows: Sliding windows to sweep.
        interval: Seconds between passes.
        task: Background task reference.
        running: Whether the loop is active.
    """

    def __init__(
        self,
        bot: Optional["SentinelBot"],
        warning_service: "WarningService",
        rate_windows: "RateWindowService",
        interval: Optional[float] = None,
    ) -> None:
        self.bot = bot
        self.warning_service = warning_service
        self.rate_windows = rate_windows
        self.interval = interval if interval is not None else get_config().cleanup_interval
        self.task: Optional[asyncio.Task] = None
        self.running: bool = False

    # =========================================================================
    # Lifecycle Management
    # =========================================================================

    async def start(self) -> None:
        if self.task and not self.task.done():
            self.task.cancel()

        self.running = True
        self.task = asyncio.create_task(self._scheduler_loop())

        logger.tree("Warning Cleanup Started", [
            ("Interval", f"{int(self.interval)}s"),
            ("Status", "Running"),
        ], emoji="⏰")

    async def stop(self) -> None:
        self.running = False

        if self.task and not self.task.done():
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass

        logger.info("Warning Cleanup Stopped")

    # =========================================================================
    # Scheduler Loop
    # =========================================================================

    async def _scheduler_loop(self) -> None:
        if self.bot is not None:
            await self.bot.wait_until_ready()

        while self.running:
            try:
                self.run_once()
                await asyncio.sleep(self.interval)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Warning Cleanup Error", [
                    ("Error", str(e)[:100]),
                ])
                await asyncio.sleep(self.interval)

    def run_once(self, now: Optional[float] = None) -> Tuple[int, int]:
        """
        One maintenance pass.

        Returns:
            (warnings marked expired, rate-window keys removed)
        """
        now = time.time() if now is None else now
        expired = self.warning_service.mark_expired(now)
        swept = self.rate_windows.sweep(now)

        if expired or swept:
            logger.tree("Warning Cleanup Pass", [
                ("Expired Warnings", str(expired)),
                ("Rate Keys Swept", str(swept)),
                ("Tracked Users", str(self.rate_windows.tracked_users)),
            ], emoji="🧹")
        return expired, swept


__all__ = ["WarningCleanupScheduler"]
