"""
Sentinel - Moderation Log Service
=================================

Audit sink that posts moderation events as embeds to the mod-log channel.

DESIGN:
    log_action() is fire-and-forget: every failure is logged to the console
    and reported as False, never raised, so a missing channel or a Discord
    outage cannot abort the moderation pipeline that called it.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, TYPE_CHECKING

import discord

from sentinel.core.config import EmbedColors, get_config
from sentinel.core.logger import logger

if TYPE_CHECKING:
    from sentinel.bot import SentinelBot


# =============================================================================
# Constants
# =============================================================================

EVENT_TITLES: Dict[str, str] = {
    "automod_action": "🛡️ Auto-Moderation Action",
    "warning_added": "⚠️ Warning Issued",
    "warning_removed": "🗑️ Warning Removed",
    "warnings_cleared": "🧹 Warnings Cleared",
    "auto_escalation": "📈 Auto-Escalation",
    "appeal_resolved": "⚖️ Appeal Resolved",
    "blocklist_updated": "📝 Blocklist Updated",
}

EVENT_COLORS: Dict[str, int] = {
    "automod_action": EmbedColors.TIMEOUT,
    "warning_added": EmbedColors.WARNING,
    "warning_removed": EmbedColors.SUCCESS,
    "warnings_cleared": EmbedColors.SUCCESS,
    "auto_escalation": EmbedColors.LOG_NEGATIVE,
    "appeal_resolved": EmbedColors.INFO,
    "blocklist_updated": EmbedColors.INFO,
}

FIELD_VALUE_LIMIT = 1024


# =============================================================================
# Service
# =============================================================================

class LoggingService:
    """Posts audit embeds to the configured mod-log channel."""

    def __init__(self, bot: Optional["SentinelBot"] = None, channel_id: Optional[int] = None) -> None:
        self.bot = bot
        self._channel_id = channel_id

    @property
    def channel_id(self) -> Optional[int]:
        if self._channel_id is not None:
            return self._channel_id
        return get_config().mod_logs_channel_id

    def build_embed(
        self,
        event_type: str,
        payload: Dict[str, Any],
        actor: Optional[discord.abc.User] = None,
    ) -> discord.Embed:
        embed = discord.Embed(
            title=EVENT_TITLES.get(event_type, event_type.replace("_", " ").title()),
            description=payload.get("description"),
            color=EVENT_COLORS.get(event_type, EmbedColors.INFO),
            timestamp=datetime.now(timezone.utc),
        )
        for key, value in payload.items():
            if key == "description" or value is None:
                continue
            if isinstance(value, (discord.abc.User, discord.abc.GuildChannel)):
                value = f"{value.mention} (`{value.id}`)"
            embed.add_field(
                name=key.replace("_", " ").title(),
                value=str(value)[:FIELD_VALUE_LIMIT] or "-",
                inline=True,
            )
        if actor is not None:
            embed.set_footer(text=f"Actor: {actor} ({actor.id})")
        return embed

    async def log_action(
        self,
        guild: Optional[discord.Guild],
        event_type: str,
        payload: Dict[str, Any],
        actor: Optional[discord.abc.User] = None,
    ) -> bool:
        """
        Send one audit entry.

        Returns:
            True when the embed was delivered, False otherwise.
        """
        if guild is None or not self.channel_id:
            return False

        channel = guild.get_channel(self.channel_id)
        if channel is None:
            logger.debug(f"Mod log channel {self.channel_id} not found in {guild.id}")
            return False

        try:
            await channel.send(embed=self.build_embed(event_type, payload, actor))
            return True
        except discord.HTTPException as e:
            logger.error("Mod Log Send Failed", [
                ("Event", event_type),
                ("Channel", str(self.channel_id)),
                ("Error", str(e)[:100]),
            ])
        except Exception as e:
            logger.error("Mod Log Build Failed", [
                ("Event", event_type),
                ("Error", f"{type(e).__name__}: {str(e)[:100]}"),
            ])
        return False


__all__ = ["LoggingService", "EVENT_TITLES"]
