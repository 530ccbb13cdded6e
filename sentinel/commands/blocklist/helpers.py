"""
Sentinel - Blocklist Command Helpers
====================================

Config mutators applied inside BlocklistStore.update(). Each one edits the
config in place and raises ValueError to abort the write with a message
the moderator sees.
"""

from typing import Optional

from sentinel.services.automod.config_store import KIND_DOMAINS, BlocklistConfig
from sentinel.services.automod.escalation import EscalationThresholds
from sentinel.services.automod.matchers import extract_domain
from sentinel.services.automod.models import Severity


TOGGLE_SETTINGS = ("enabled", "auto_warn", "auto_escalation", "bypass_admins", "log_violations")
DOMAIN_ONLY_SETTINGS = ("delete_messages",)
MAX_ITEM_LENGTH = 100


def normalize_item(kind: str, raw: str) -> str:
    """
    Lowercase a word, or reduce a domain/URL to its bare hostname.

    Raises:
        ValueError: Empty, too long, or not a domain.
    """
    item = (raw or "").strip().lower()
    if not item or len(item) > MAX_ITEM_LENGTH:
        raise ValueError(f"Entries must be 1-{MAX_ITEM_LENGTH} characters")

    if kind == KIND_DOMAINS:
        domain = extract_domain(item)
        if domain is None:
            raise ValueError(f"`{raw}` is not a valid domain")
        if domain.startswith("www."):
            domain = domain[4:]
        return domain
    return item


def add_item(config: BlocklistConfig, item: str, severity: Severity = Severity.MINOR) -> None:
    """Block an item and file it under exactly one severity bucket."""
    config.items.add(item)
    for members in config.severity_levels.values():
        members.discard(item)
    config.severity_levels.setdefault(severity, set()).add(item)


def remove_item(config: BlocklistConfig, item: str) -> None:
    if item not in config.items:
        raise ValueError(f"`{item}` is not blocked")
    config.items.discard(item)
    for members in config.severity_levels.values():
        members.discard(item)


def toggle_whitelist(config: BlocklistConfig, item: str, remove: bool = False) -> None:
    if remove:
        if item not in config.whitelist:
            raise ValueError(f"`{item}` is not whitelisted")
        config.whitelist.discard(item)
    else:
        config.whitelist.add(item)


def toggle_allowed_channel(config: BlocklistConfig, channel_id: int, remove: bool = False) -> None:
    """Add or remove a channel where link checks are skipped."""
    if config.kind != KIND_DOMAINS:
        raise ValueError("Allowed channels only apply to blocked domains")
    if remove:
        if channel_id not in config.allowed_channels:
            raise ValueError(f"<#{channel_id}> is not an allowed channel")
        config.allowed_channels.discard(channel_id)
    else:
        config.allowed_channels.add(int(channel_id))


def set_setting(config: BlocklistConfig, name: str, value: bool) -> None:
    allowed = TOGGLE_SETTINGS + (DOMAIN_ONLY_SETTINGS if config.kind == KIND_DOMAINS else ())
    if name not in allowed:
        raise ValueError(f"Unknown setting `{name}`")
    setattr(config, name, bool(value))


def set_thresholds(
    config: BlocklistConfig,
    warn: Optional[int] = None,
    timeout: Optional[int] = None,
    kick: Optional[int] = None,
    ban: Optional[int] = None,
) -> None:
    """Replace thresholds; unspecified ones keep their current value."""
    current = config.escalation_thresholds
    config.escalation_thresholds = EscalationThresholds(
        warn=current.warn if warn is None else warn,
        timeout=current.timeout if timeout is None else timeout,
        kick=current.kick if kick is None else kick,
        ban=current.ban if ban is None else ban,
    )


__all__ = [
    "TOGGLE_SETTINGS",
    "normalize_item",
    "add_item",
    "remove_item",
    "toggle_whitelist",
    "toggle_allowed_channel",
    "set_setting",
    "set_thresholds",
]
