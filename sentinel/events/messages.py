"""
Sentinel - Message Events
=========================

Routes new and edited guild messages through auto-moderation, and answers
direct mentions of the bot with the AI service.
"""

from typing import TYPE_CHECKING, Optional

import discord
from discord.ext import commands

from sentinel.core.logger import logger

if TYPE_CHECKING:
    from sentinel.bot import SentinelBot
    from sentinel.services.automod.handlers import HandledViolation


MENTION_REPLY_MAX_LENGTH = 2000


class MessageEvents(commands.Cog):
    """Message event handlers."""

    def __init__(self, bot: "SentinelBot") -> None:
        self.bot = bot

    async def _moderate(self, message: discord.Message, is_edit: bool) -> Optional["HandledViolation"]:
        if self.bot.automod is None:
            return None
        try:
            return await self.bot.automod.process_message(message, is_edit=is_edit)
        except Exception as e:
            logger.error("Auto-Moderation Failed", [
                ("User", f"{message.author} ({message.author.id})"),
                ("Channel", str(message.channel.id)),
                ("Edit", str(is_edit)),
                ("Error", f"{type(e).__name__}: {str(e)[:100]}"),
            ])
            return None

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        """
        DESIGN: Moderation runs first. A message that produced a violation
        never reaches the mention reply.
        """
        if message.author.bot or message.guild is None:
            return

        result = await self._moderate(message, is_edit=False)
        if result is not None:
            return

        if self.bot.user is not None and self.bot.user in message.mentions:
            await self._reply_to_mention(message)

    @commands.Cog.listener()
    async def on_message_edit(self, before: discord.Message, after: discord.Message) -> None:
        """Re-check edited content. Embed unfurls and pins do not count."""
        if after.author.bot or after.guild is None:
            return
        if before.content == after.content:
            return

        await self._moderate(after, is_edit=True)

    async def _reply_to_mention(self, message: discord.Message) -> None:
        ai = self.bot.ai_service
        if ai is None or not ai.enabled:
            return

        prompt = message.clean_content.replace(f"@{self.bot.user.name}", "").strip()
        if not prompt:
            return

        async with message.channel.typing():
            reply = await ai.generate(prompt)

        try:
            await message.reply(
                reply[:MENTION_REPLY_MAX_LENGTH],
                mention_author=False,
                allowed_mentions=discord.AllowedMentions.none(),
            )
        except discord.HTTPException as e:
            logger.tree("Mention Reply Failed", [
                ("User", f"{message.author} ({message.author.id})"),
                ("Error", str(e)[:100]),
            ], emoji="⚠️")


async def setup(bot: "SentinelBot") -> None:
    await bot.add_cog(MessageEvents(bot))


__all__ = ["MessageEvents", "setup"]
