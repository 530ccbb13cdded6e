"""
Sentinel - Auto-Moderation Pipeline Tests
=========================================

End-to-end tests of AutoModService.process_message() against a real
temporary database and mocked Discord objects.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from sentinel.core.config import get_config
from sentinel.services.automod.escalation import EscalationAction
from sentinel.services.automod.handlers import ViolationHandler
from sentinel.services.automod.models import Severity, ViolationType
from sentinel.services.automod.rate_windows import RateWindowService
from sentinel.services.automod.service import AutoModService

from conftest import BOT_ID, GUILD_ID, NOW, USER_ID, http_error


DOCS_URL = "https://docs.python.org/3/"


def build_automod(store, warning_service, logging_service, bot=None):
    return AutoModService(
        bot=bot,
        store=store,
        rate_windows=RateWindowService(window_seconds=30, max_links=3),
        handler=ViolationHandler(warning_service, logging_service, spam_timeout_seconds=600),
        config=get_config(),
    )


@pytest.fixture
def automod(store, warning_service, mock_logging_service):
    return build_automod(store, warning_service, mock_logging_service)


def logged_actions(logging_service):
    return [c.args[2].get("action") for c in logging_service.log_action.call_args_list]


# =============================================================================
# Warn Path
# =============================================================================

class TestBlockedDomainFlow:
    """Tests for blocked domains through the whole pipeline."""

    @pytest.mark.asyncio
    async def test_blocked_domain_is_deleted_and_warned(self, automod, make_message, test_db, mock_discord_member):
        message = make_message("check out malware-site.com")

        result = await automod.process_message(message, now=NOW)

        assert result.violation.type == ViolationType.BLOCKED_DOMAIN
        assert result.deleted is True
        message.delete.assert_awaited_once()

        assert result.warning is not None
        assert result.warning.severity == Severity.SEVERE
        assert result.warning.moderator_id == BOT_ID
        assert result.active_count == 1
        assert test_db.get_active_warning_count(GUILD_ID, USER_ID) == 1

        assert result.escalation == EscalationAction.WARN
        mock_discord_member.timeout.assert_not_awaited()
        mock_discord_member.kick.assert_not_awaited()

        assert result.notice_sent is True
        notice = message.channel.send.call_args.args[0]
        assert result.warning.id in notice

    @pytest.mark.asyncio
    async def test_kick_threshold(self, automod, make_message, test_db, mock_discord_member):
        # Domain thresholds are warn=1 timeout=2 kick=4 ban=6
        for i in range(3):
            test_db.add_warning(GUILD_ID, USER_ID, f"old {i}", BOT_ID)

        result = await automod.process_message(make_message("check out malware-site.com"), now=NOW)

        assert result.active_count == 4
        assert result.escalation == EscalationAction.KICK
        mock_discord_member.kick.assert_awaited_once()
        mock_discord_member.ban.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_failure_still_warns(self, automod, make_message, test_db):
        message = make_message("check out malware-site.com")
        message.delete.side_effect = http_error(403)

        result = await automod.process_message(message, now=NOW)

        assert result.deleted is False
        assert result.warning is not None
        assert "flagged" in message.channel.send.call_args.args[0]


class TestBlockedWordFlow:
    """Tests for blocked words through the whole pipeline."""

    @pytest.mark.asyncio
    async def test_blocked_word_warns(self, automod, make_message):
        result = await automod.process_message(make_message("that is a scam"), now=NOW)

        assert result.violation.type == ViolationType.BLOCKED_WORD
        assert result.warning.severity == Severity.MODERATE
        assert result.warning.reason == 'Used blocked word: "scam"'

    @pytest.mark.asyncio
    async def test_timeout_threshold_uses_severity_duration(self, automod, make_message, test_db, mock_discord_member):
        for i in range(2):
            test_db.add_warning(GUILD_ID, USER_ID, f"old {i}", BOT_ID)

        result = await automod.process_message(make_message("that is a scam"), now=NOW)

        assert result.escalation == EscalationAction.TIMEOUT
        mock_discord_member.timeout.assert_awaited_once()
        assert mock_discord_member.timeout.call_args.args[0] == timedelta(seconds=3600)

    @pytest.mark.asyncio
    async def test_auto_warn_disabled_only_flags(self, automod, make_message, store, test_db, mock_logging_service):
        store.update(GUILD_ID, "words", lambda c: setattr(c, "auto_warn", False))

        result = await automod.process_message(make_message("that is a scam"), now=NOW)

        assert result.deleted is True
        assert result.warning is None
        assert test_db.get_active_warning_count(GUILD_ID, USER_ID) == 0
        assert "flagged" in logged_actions(mock_logging_service)

    @pytest.mark.asyncio
    async def test_edit_is_checked(self, automod, make_message):
        result = await automod.process_message(make_message("that is a scam"), is_edit=True, now=NOW)
        assert result.violation.type == ViolationType.BLOCKED_WORD


# =============================================================================
# Forced Path
# =============================================================================

class TestForcedTimeout:
    """Tests for violations that time out immediately."""

    @pytest.mark.asyncio
    async def test_keyword_times_out_without_warning(self, automod, make_message, test_db, mock_discord_member):
        message = make_message("free porn here")

        result = await automod.process_message(message, now=NOW)

        assert result.violation.type == ViolationType.BLOCKED_KEYWORD
        assert result.timeout_applied is True
        assert result.warning is None
        assert test_db.get_active_warning_count(GUILD_ID, USER_ID) == 0
        assert mock_discord_member.timeout.call_args.args[0] == timedelta(seconds=600)
        assert "timed out" in message.channel.send.call_args.args[0]

    @pytest.mark.asyncio
    async def test_missing_permission(self, automod, make_message, test_db, mock_discord_guild, mock_discord_member, mock_logging_service):
        mock_discord_guild.me.guild_permissions.moderate_members = False
        message = make_message("free porn here")

        result = await automod.process_message(message, now=NOW)

        assert result.timeout_applied is False
        assert result.deleted is True
        assert result.warning is None
        assert test_db.get_user_warnings(GUILD_ID, USER_ID) == []
        mock_discord_member.timeout.assert_not_awaited()
        assert "Timeout (Failed - No Permission)" in logged_actions(mock_logging_service)
        notice = message.channel.send.call_args.args[0]
        assert "has been removed (automatic timeout failed)" in notice
        assert "Warning issued" not in notice

    @pytest.mark.asyncio
    async def test_timeout_http_error(self, automod, make_message, mock_discord_member, mock_logging_service):
        mock_discord_member.timeout.side_effect = http_error()
        message = make_message("free porn here")
        message.delete.side_effect = http_error()

        result = await automod.process_message(message, now=NOW)

        assert result.timeout_applied is False
        assert result.notice_sent is True
        assert "Timeout (Failed)" in logged_actions(mock_logging_service)
        assert "has been flagged (automatic timeout failed)" in message.channel.send.call_args.args[0]

    @pytest.mark.asyncio
    async def test_link_spam(self, automod, make_message, mock_discord_member):
        results = [
            await automod.process_message(make_message(f"{DOCS_URL}{i}"), now=NOW + i)
            for i in range(4)
        ]

        assert results[:3] == [None, None, None]
        assert results[3].violation.type == ViolationType.LINK_SPAM
        assert results[3].timeout_applied is True
        mock_discord_member.timeout.assert_awaited_once()


# =============================================================================
# Other Violations
# =============================================================================

class TestOtherViolations:
    """Tests for mentions and invites."""

    @pytest.mark.asyncio
    async def test_mention_spam(self, automod, make_message):
        content = " ".join(f"<@{i}>" for i in range(1, 7))
        result = await automod.process_message(make_message(content), now=NOW)
        assert result.violation.type == ViolationType.PING_SPAM
        assert result.warning is not None

    @pytest.mark.asyncio
    async def test_adult_invite(self, store, warning_service, mock_logging_service, make_message):
        bot = MagicMock()
        bot.fetch_invite = AsyncMock(return_value=MagicMock(guild=MagicMock(nsfw_level=discord.NSFWLevel.explicit)))
        automod = build_automod(store, warning_service, mock_logging_service, bot=bot)

        result = await automod.process_message(make_message("join discord.gg/abc123"), now=NOW)

        assert result.violation.type == ViolationType.ADULT_INVITE
        bot.fetch_invite.assert_awaited_once_with("abc123", with_counts=False)


# =============================================================================
# Skipped Messages
# =============================================================================

class TestSkipped:
    """Tests for messages the pipeline ignores."""

    @pytest.mark.asyncio
    async def test_clean_message(self, automod, make_message):
        message = make_message("good morning everyone")
        assert await automod.process_message(message, now=NOW) is None
        message.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_bot_author(self, automod, make_message, mock_discord_member):
        mock_discord_member.bot = True
        assert await automod.process_message(make_message("that is a scam"), now=NOW) is None

    @pytest.mark.asyncio
    async def test_direct_message(self, automod, make_message):
        message = make_message("that is a scam")
        message.guild = None
        assert await automod.process_message(message, now=NOW) is None

    @pytest.mark.asyncio
    async def test_admin_bypass(self, automod, make_message, mock_discord_member):
        mock_discord_member.guild_permissions.administrator = True
        message = make_message(f"that is a scam {DOCS_URL}")

        assert await automod.process_message(message, now=NOW) is None
        message.delete.assert_not_awaited()
        assert automod.rate_windows.tracked_users == 0

    @pytest.mark.asyncio
    async def test_edit_skips_rate_windows(self, automod, make_message):
        await automod.process_message(make_message(f"docs {DOCS_URL}"), is_edit=True, now=NOW)
        assert automod.rate_windows.tracked_users == 0

        await automod.process_message(make_message(f"docs {DOCS_URL}"), now=NOW)
        assert automod.rate_windows.tracked_users == 1


class TestInspectInvite:
    """Tests for invite lookups."""

    @pytest.mark.asyncio
    async def test_no_bot(self, automod):
        assert await automod.inspect_invite("abc") is False

    @pytest.mark.asyncio
    async def test_safe_server(self, store, warning_service, mock_logging_service):
        bot = MagicMock()
        bot.fetch_invite = AsyncMock(return_value=MagicMock(guild=MagicMock(nsfw_level=discord.NSFWLevel.default)))
        automod = build_automod(store, warning_service, mock_logging_service, bot=bot)
        assert await automod.inspect_invite("abc") is False

    @pytest.mark.asyncio
    async def test_lookup_failure_is_not_adult(self, store, warning_service, mock_logging_service):
        bot = MagicMock()
        bot.fetch_invite = AsyncMock(side_effect=http_error(404))
        automod = build_automod(store, warning_service, mock_logging_service, bot=bot)
        assert await automod.inspect_invite("abc") is False
