"""
Sentinel - Configuration Module
===============================

Process-wide settings loaded from environment variables.

DESIGN:
    Only the bot token is required; every moderation knob has a default
    matching the behaviour moderators expect out of the box. Per-guild
    policy (blocked words, domains, thresholds) does not live here, it is
    stored in the database by BlocklistStore and edited through commands.

    - Singleton via get_config()
    - Integer knobs are range-checked and fall back to defaults with a warning
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Set


# =============================================================================
# Configuration Dataclass
# =============================================================================

@dataclass
class Config:
    """
    Bot configuration loaded from the environment.

    Attributes:
        discord_token: Bot authentication token.
        developer_id: User ID allowed to run every command.
        mod_logs_channel_id: Channel receiving audit embeds.
        allowed_link_channel_id: Channel where external links are expected.
        max_mentions: Mentions allowed in a single message.
        spam_timeout_seconds: Length of forced auto-moderation timeouts.
    """

    # -------------------------------------------------------------------------
    # Required
    # -------------------------------------------------------------------------

    discord_token: str

    # -------------------------------------------------------------------------
    # Optional: Identity & Channels
    # -------------------------------------------------------------------------

    developer_id: Optional[int] = None
    mod_logs_channel_id: Optional[int] = None
    allowed_link_channel_id: Optional[int] = None
    moderator_ids: Set[int] = None

    # -------------------------------------------------------------------------
    # Optional: Auto-Moderation
    # -------------------------------------------------------------------------

    max_mentions: int = 5
    spam_timeout_seconds: int = 600
    link_window_seconds: int = 30
    max_links: int = 3
    dup_window_seconds: int = 60
    dup_channel_threshold: int = 3
    rate_max_entries: int = 10000
    cleanup_interval: int = 3600

    # -------------------------------------------------------------------------
    # Optional: AI
    # -------------------------------------------------------------------------

    openai_api_key: Optional[str] = None
    ai_model: str = "gpt-4o-mini"

    # -------------------------------------------------------------------------
    # Optional: Storage & Webhooks
    # -------------------------------------------------------------------------

    data_dir: Path = Path("data")
    error_webhook_url: Optional[str] = None


# =============================================================================
# Embed Colors
# =============================================================================

class EmbedColors:
    """Colour palette for moderation embeds."""

    GREEN = 0x1F5E2E
    GOLD = 0xE6B84A
    RED = 0xDC3545
    ORANGE = 0xFF6B35
    BLUE = 0x3498DB

    SUCCESS = GREEN
    WARNING = GOLD
    INFO = BLUE
    TIMEOUT = ORANGE
    LOG_NEGATIVE = RED


# =============================================================================
# Validation
# =============================================================================

class ConfigValidationError(Exception):
    """Raised when a required setting is missing."""


def _parse_int_optional(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _parse_int_set(value: Optional[str]) -> Set[int]:
    """Parse "1,2,3" into {1, 2, 3}, skipping junk entries."""
    result: Set[int] = set()
    if not value:
        return result
    for part in value.split(","):
        part = part.strip()
        if part.isdigit():
            result.add(int(part))
    return result


def _parse_int_with_default(
    value: Optional[str],
    default: int,
    name: str,
    min_val: Optional[int] = None,
    max_val: Optional[int] = None,
) -> int:
    """
    Parse an optional integer and clamp it to [min_val, max_val].

    Returns:
        The parsed value, the clamped bound, or default when unparseable.
    """
    if not value:
        return default

    from sentinel.core.logger import logger

    try:
        parsed = int(value)
    except ValueError:
        logger.warning(f"Config {name}='{value}' invalid, using default {default}")
        return default

    if min_val is not None and parsed < min_val:
        logger.warning(f"Config {name}={parsed} below min {min_val}, using {min_val}")
        return min_val
    if max_val is not None and parsed > max_val:
        logger.warning(f"Config {name}={parsed} above max {max_val}, using {max_val}")
        return max_val
    return parsed


def _validate_url(value: Optional[str], name: str) -> Optional[str]:
    if not value:
        return None
    if not value.startswith(("https://", "http://")):
        from sentinel.core.logger import logger
        logger.warning(f"Config {name} is not a URL, ignoring")
        return None
    return value


# =============================================================================
# Loading
# =============================================================================

def load_config() -> Config:
    """
    Build a Config from the environment.

    Raises:
        ConfigValidationError: If DISCORD_TOKEN is not set.
    """
    discord_token = os.getenv("DISCORD_TOKEN")
    if not discord_token:
        raise ConfigValidationError("Missing required environment variables: DISCORD_TOKEN")

    moderator_ids = _parse_int_set(os.getenv("MODERATOR_IDS"))

    return Config(
        discord_token=discord_token,
        developer_id=_parse_int_optional(os.getenv("DEVELOPER_ID")),
        mod_logs_channel_id=_parse_int_optional(os.getenv("MOD_LOGS_CHANNEL_ID")),
        allowed_link_channel_id=_parse_int_optional(os.getenv("ALLOWED_LINK_CHANNEL_ID")),
        moderator_ids=moderator_ids or None,
        max_mentions=_parse_int_with_default(
            os.getenv("MAX_MENTIONS"), 5, "MAX_MENTIONS", min_val=1, max_val=100
        ),
        spam_timeout_seconds=_parse_int_with_default(
            os.getenv("SPAM_TIMEOUT_SECONDS"), 600, "SPAM_TIMEOUT_SECONDS", min_val=60, max_val=2419200
        ),
        link_window_seconds=_parse_int_with_default(
            os.getenv("LINK_WINDOW_SECONDS"), 30, "LINK_WINDOW_SECONDS", min_val=1, max_val=3600
        ),
        max_links=_parse_int_with_default(
            os.getenv("MAX_LINKS"), 3, "MAX_LINKS", min_val=1, max_val=50
        ),
        dup_window_seconds=_parse_int_with_default(
            os.getenv("DUP_WINDOW_SECONDS"), 60, "DUP_WINDOW_SECONDS", min_val=1, max_val=3600
        ),
        dup_channel_threshold=_parse_int_with_default(
            os.getenv("DUP_CHANNEL_THRESHOLD"), 3, "DUP_CHANNEL_THRESHOLD", min_val=2, max_val=50
        ),
        rate_max_entries=_parse_int_with_default(
            os.getenv("RATE_MAX_ENTRIES"), 10000, "RATE_MAX_ENTRIES", min_val=100
        ),
        cleanup_interval=_parse_int_with_default(
            os.getenv("CLEANUP_INTERVAL"), 3600, "CLEANUP_INTERVAL", min_val=60
        ),
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        ai_model=os.getenv("AI_MODEL", "gpt-4o-mini"),
        data_dir=Path(os.getenv("DATA_DIR", "data")),
        error_webhook_url=_validate_url(os.getenv("ERROR_WEBHOOK_URL"), "ERROR_WEBHOOK_URL"),
    )


_config: Optional[Config] = None


def get_config() -> Config:
    """Return the process-wide Config, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def validate_and_log_config() -> None:
    """Load the config at startup and print a summary."""
    from sentinel.core.logger import logger

    config = get_config()
    logger.tree("Configuration Validated", [
        ("Mod Logs", str(config.mod_logs_channel_id or "Not set")),
        ("Link Channel", str(config.allowed_link_channel_id or "Not set")),
        ("Link Window", f"{config.max_links} links / {config.link_window_seconds}s"),
        ("Cross-Channel", f"{config.dup_channel_threshold} channels / {config.dup_window_seconds}s"),
        ("AI", config.ai_model if config.openai_api_key else "Disabled"),
    ], emoji="⚙️")


# =============================================================================
# Permission Helpers
# =============================================================================

def is_developer(user_id: int) -> bool:
    return get_config().developer_id == user_id


def is_admin(member) -> bool:
    """True when the member holds the Administrator permission."""
    if member is None:
        return False
    permissions = getattr(member, "guild_permissions", None)
    return bool(permissions and permissions.administrator)


def has_mod_role(member) -> bool:
    """Developer, listed moderators, admins and members who can moderate."""
    if member is None:
        return False

    config = get_config()
    if is_developer(member.id):
        return True
    if config.moderator_ids and member.id in config.moderator_ids:
        return True
    permissions = member.guild_permissions
    return bool(permissions.administrator or permissions.moderate_members)


async def check_mod_permission(interaction) -> bool:
    """Reply with an error and return False when the caller is not staff."""
    if not has_mod_role(interaction.user):
        await interaction.response.send_message(
            "❌ You don't have permission to use this command.",
            ephemeral=True,
        )
        return False
    return True


__all__ = [
    "Config",
    "ConfigValidationError",
    "EmbedColors",
    "get_config",
    "load_config",
    "validate_and_log_config",
    "is_developer",
    "is_admin",
    "has_mod_role",
    "check_mod_permission",
]
