"""
Sentinel - Test Configuration
=============================

Shared fixtures for all tests: a temporary SQLite database and mocked
Discord objects built on MagicMock / AsyncMock.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest


GUILD_ID = 987654321
USER_ID = 123456789
BOT_ID = 999888777
CHANNEL_ID = 444555666

# 2024-01-01 00:00:00 UTC
NOW = 1704067200.0


@pytest.fixture(autouse=True)
def test_env(monkeypatch, tmp_path):
    """Minimal environment and a fresh config singleton for every test."""
    from sentinel.core import config as config_module

    monkeypatch.setenv("DISCORD_TOKEN", "test-token")
    for name in ("MOD_LOGS_CHANNEL_ID", "ALLOWED_LINK_CHANNEL_ID", "OPENAI_API_KEY", "DEVELOPER_ID", "MODERATOR_IDS", "ERROR_WEBHOOK_URL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config_module, "_config", None)
    yield
    monkeypatch.setattr(config_module, "_config", None)


@pytest.fixture
def temp_db_path(tmp_path):
    return tmp_path / "test_sentinel.db"


@pytest.fixture
def test_db(temp_db_path, monkeypatch):
    """Fresh database instance on a temporary file."""
    from sentinel.core.database import manager as manager_module

    manager_module.DatabaseManager._instance = None
    monkeypatch.setattr(manager_module, "DB_PATH", temp_db_path)

    db = manager_module.DatabaseManager()

    yield db

    db.close()
    manager_module.DatabaseManager._instance = None


@pytest.fixture
def store(test_db):
    from sentinel.services.automod.config_store import BlocklistStore
    return BlocklistStore(test_db)


@pytest.fixture
def mock_logging_service():
    service = MagicMock()
    service.log_action = AsyncMock(return_value=True)
    return service


@pytest.fixture
def warning_service(test_db, mock_logging_service):
    from sentinel.services.warning_service import WarningService
    return WarningService(test_db, mock_logging_service)


# =============================================================================
# Mock Discord Objects
# =============================================================================

@pytest.fixture
def mock_discord_guild():
    guild = MagicMock()
    guild.id = GUILD_ID
    guild.name = "Test Server"
    guild.me = MagicMock()
    guild.me.id = BOT_ID
    guild.me.guild_permissions.moderate_members = True
    guild.get_member = MagicMock(return_value=None)
    guild.get_channel = MagicMock(return_value=None)
    return guild


@pytest.fixture
def mock_discord_member(mock_discord_guild):
    member = MagicMock()
    member.id = USER_ID
    member.name = "testuser"
    member.display_name = "Test User"
    member.mention = f"<@{USER_ID}>"
    member.bot = False
    member.guild = mock_discord_guild
    member.guild_permissions.administrator = False
    member.guild_permissions.moderate_members = False
    member.created_at = datetime(2020, 9, 13, 12, 0, 0, tzinfo=timezone.utc)
    member.timeout = AsyncMock()
    member.kick = AsyncMock()
    member.ban = AsyncMock()
    member.is_timed_out = MagicMock(return_value=False)
    return member


@pytest.fixture
def mock_discord_channel(mock_discord_guild):
    channel = MagicMock()
    channel.id = CHANNEL_ID
    channel.name = "general"
    channel.guild = mock_discord_guild
    channel.send = AsyncMock(return_value=MagicMock(id=111222333))
    return channel


@pytest.fixture
def make_message(mock_discord_member, mock_discord_guild, mock_discord_channel):
    """Factory for guild messages from the test member."""
    def _make(content, channel=None, author=None):
        message = MagicMock()
        message.id = 555000111
        message.content = content
        message.author = author or mock_discord_member
        message.guild = mock_discord_guild
        message.channel = channel or mock_discord_channel
        message.delete = AsyncMock()
        return message
    return _make


@pytest.fixture
def make_channel(mock_discord_guild):
    def _make(channel_id):
        channel = MagicMock()
        channel.id = channel_id
        channel.name = f"channel-{channel_id}"
        channel.guild = mock_discord_guild
        channel.send = AsyncMock()
        return channel
    return _make


@pytest.fixture
def mock_interaction(mock_discord_member, mock_discord_guild):
    interaction = MagicMock()
    interaction.user = mock_discord_member
    interaction.guild = mock_discord_guild
    interaction.response.send_message = AsyncMock()
    interaction.response.defer = AsyncMock()
    interaction.followup.send = AsyncMock()
    return interaction


def http_error(status=500, text="boom"):
    """discord.HTTPException with a mocked response."""
    import discord
    return discord.HTTPException(MagicMock(status=status, reason="Error"), text)
