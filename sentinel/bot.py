"""
Sentinel - Main Bot Class
=========================

Discord client wiring the auto-moderation pipeline, the warning ledger and
the moderator commands together.
"""

from datetime import datetime
from typing import Optional

import discord
from discord.ext import commands

from sentinel.core.config import get_config
from sentinel.core.database import get_db
from sentinel.core.logger import logger
from sentinel.services.ai import AIService
from sentinel.services.automod.config_store import BlocklistStore
from sentinel.services.automod.handlers import ViolationHandler
from sentinel.services.automod.rate_windows import RateWindowService
from sentinel.services.automod.service import AutoModService
from sentinel.services.logging_service import LoggingService
from sentinel.services.warning_cleanup import WarningCleanupScheduler
from sentinel.services.warning_service import WarningService


# =============================================================================
# SentinelBot Class
# =============================================================================

class SentinelBot(commands.Bot):
    """
    Main Discord bot class.

    DESIGN:
        SERVICE INITIALIZATION ORDER:
        1. setup_hook (before on_ready):
           - Storage-backed services (blocklists, ledger, auto-mod)
           - Command and event cog loading
           - Command tree syncing
        2. on_ready:
           - Error webhook
           - Warning cleanup scheduler
    """

    # =========================================================================
    # Initialization
    # =========================================================================

    def __init__(self) -> None:
        self.config = get_config()

        intents = discord.Intents.default()
        intents.message_content = True
        intents.members = True

        super().__init__(
            command_prefix="!",
            intents=intents,
            help_command=None,
        )

        self.db = get_db()
        self.start_time: datetime = datetime.now()

        # Service placeholders
        self.blocklist_store: Optional[BlocklistStore] = None
        self.rate_windows: Optional[RateWindowService] = None
        self.logging_service: Optional[LoggingService] = None
        self.warning_service: Optional[WarningService] = None
        self.automod: Optional[AutoModService] = None
        self.ai_service: Optional[AIService] = None
        self.warning_cleanup: Optional[WarningCleanupScheduler] = None

        self._ready_initialized: bool = False

        logger.info("Bot Instance Created")

    # =========================================================================
    # Setup Hook
    # =========================================================================

    async def setup_hook(self) -> None:
        """Build services, load cogs and sync commands before on_ready."""
        self._init_services()

        from sentinel.commands import COMMAND_COGS
        for cog in COMMAND_COGS:
            try:
                await self.load_extension(cog)
            except Exception as e:
                logger.error("Failed to Load Cog", [("Cog", cog), ("Error", str(e))])

        from sentinel.events import EVENT_COGS
        for cog in EVENT_COGS:
            try:
                await self.load_extension(cog)
                logger.debug(f"Event Cog Loaded: {cog.split('.')[-1]}")
            except Exception as e:
                logger.error("Failed to Load Event Cog", [("Cog", cog), ("Error", str(e))])

        try:
            synced = await self.tree.sync()
            logger.tree("Commands Synced", [("Count", str(len(synced)))], emoji="✅")
        except discord.HTTPException as e:
            logger.error("Command Sync Failed", [("Error", str(e))])

    def _init_services(self) -> None:
        config = self.config

        self.blocklist_store = BlocklistStore(self.db)
        self.rate_windows = RateWindowService(
            window_seconds=config.link_window_seconds,
            max_links=config.max_links,
            dup_window_seconds=config.dup_window_seconds,
            dup_channel_threshold=config.dup_channel_threshold,
            max_entries=config.rate_max_entries,
        )
        self.logging_service = LoggingService(self)
        self.warning_service = WarningService(self.db, self.logging_service)
        self.automod = AutoModService(
            self,
            self.blocklist_store,
            self.rate_windows,
            ViolationHandler(
                self.warning_service,
                self.logging_service,
                spam_timeout_seconds=config.spam_timeout_seconds,
            ),
            config,
        )
        self.ai_service = AIService(config)
        self.warning_cleanup = WarningCleanupScheduler(
            self, self.warning_service, self.rate_windows, config.cleanup_interval
        )

    # =========================================================================
    # On Ready
    # =========================================================================

    async def on_ready(self) -> None:
        if self._ready_initialized:
            logger.info("Bot Reconnected (skipping re-initialization)")
            return

        self._ready_initialized = True

        if not self.user:
            return

        if self.config.error_webhook_url:
            logger.set_webhook(self.config.error_webhook_url)

        if self.warning_cleanup:
            await self.warning_cleanup.start()

        logger.tree_nested("SENTINEL READY", [
            ("Bot", [
                ("Name", self.user.name),
                ("ID", str(self.user.id)),
                ("Guilds", str(len(self.guilds))),
            ]),
            ("Services", [
                ("Auto-Mod", "Enabled" if self.automod else "Disabled"),
                ("AI Service", "Online" if self.ai_service and self.ai_service.enabled else "Offline"),
                ("Mod Logs", str(self.config.mod_logs_channel_id or "Not set")),
            ]),
        ], emoji="🚀")

    # =========================================================================
    # Shutdown
    # =========================================================================

    async def shutdown(self) -> None:
        """Graceful shutdown with proper cleanup."""
        logger.info("Initiating Graceful Shutdown")

        if self.warning_cleanup:
            await self.warning_cleanup.stop()

        self.db.close()
        await super().close()

        logger.tree("SHUTDOWN COMPLETE", [
            ("Uptime", str(datetime.now() - self.start_time)),
        ], emoji="🛑")

    async def close(self) -> None:
        await self.shutdown()


__all__ = ["SentinelBot"]
