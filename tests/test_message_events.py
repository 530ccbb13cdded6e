"""
Sentinel - Message Event Tests
==============================

Tests for routing messages and edits into auto-moderation and for the
mention reply.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from sentinel.events.messages import MessageEvents


@pytest.fixture
def bot():
    bot = MagicMock()
    bot.user = MagicMock()
    bot.user.name = "Sentinel"
    bot.automod.process_message = AsyncMock(return_value=None)
    bot.ai_service.enabled = True
    bot.ai_service.generate = AsyncMock(return_value="Hi!")
    return bot


@pytest.fixture
def cog(bot):
    return MessageEvents(bot)


@pytest.fixture
def message(make_message):
    msg = make_message("hello there")
    msg.mentions = []
    msg.reply = AsyncMock()
    return msg


class TestOnMessage:
    """Tests for new messages."""

    @pytest.mark.asyncio
    async def test_runs_automod(self, cog, bot, message):
        await cog.on_message(message)
        bot.automod.process_message.assert_awaited_once_with(message, is_edit=False)

    @pytest.mark.asyncio
    async def test_ignores_bots(self, cog, bot, message, mock_discord_member):
        mock_discord_member.bot = True
        await cog.on_message(message)
        bot.automod.process_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_automod_error_is_contained(self, cog, bot, message):
        bot.automod.process_message.side_effect = RuntimeError("boom")
        await cog.on_message(message)
        message.reply.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_mention_gets_ai_reply(self, cog, bot, message):
        message.mentions = [bot.user]
        message.clean_content = "@Sentinel how are you?"

        await cog.on_message(message)

        bot.ai_service.generate.assert_awaited_once_with("how are you?")
        assert message.reply.call_args.args[0] == "Hi!"

    @pytest.mark.asyncio
    async def test_violation_skips_reply(self, cog, bot, message):
        bot.automod.process_message.return_value = MagicMock()
        message.mentions = [bot.user]
        message.clean_content = "@Sentinel hi"

        await cog.on_message(message)

        bot.ai_service.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ai_disabled(self, cog, bot, message):
        bot.ai_service.enabled = False
        message.mentions = [bot.user]
        message.clean_content = "@Sentinel hi"

        await cog.on_message(message)

        message.reply.assert_not_awaited()


class TestOnMessageEdit:
    """Tests for edited messages."""

    @pytest.mark.asyncio
    async def test_changed_content_is_rechecked(self, cog, bot, make_message):
        before = make_message("hello")
        after = make_message("hello scam")

        await cog.on_message_edit(before, after)

        bot.automod.process_message.assert_awaited_once_with(after, is_edit=True)

    @pytest.mark.asyncio
    async def test_unchanged_content_is_skipped(self, cog, bot, make_message):
        await cog.on_message_edit(make_message("same"), make_message("same"))
        bot.automod.process_message.assert_not_awaited()
