"""
Blocklist Config Store
======================

Per-guild blocked-word and blocked-domain policy, persisted as JSON rows.

DESIGN:
    load() never fails: a missing row is replaced by persisted defaults, and
    an unreadable row yields in-memory defaults for that call without
    touching storage, so a moderator can still inspect what was there.
    update() runs the whole read-modify-write inside one SQLite transaction,
    so two concurrent edits cannot overwrite each other.
"""

import json
import sqlite3
from dataclasses import dataclass, field, fields
from typing import Any, Callable, ClassVar, Dict, Optional, Set, Type, Union

from sentinel.core.database import get_db, DatabaseManager
from sentinel.core.logger import logger

from .escalation import EscalationThresholds
from .models import Severity


# =============================================================================
# Constants
# =============================================================================

KIND_WORDS = "words"
KIND_DOMAINS = "domains"


def _default_buckets(minor, moderate, severe) -> Dict[Severity, Set[str]]:
    return {
        Severity.MINOR: set(minor),
        Severity.MODERATE: set(moderate),
        Severity.SEVERE: set(severe),
    }


# =============================================================================
# Config Models
# =============================================================================

@dataclass
class BlocklistConfig:
    """Fields shared by word and domain policy."""

    kind: ClassVar[str] = ""
    items_field: ClassVar[str] = ""

    enabled: bool = True
    auto_warn: bool = True
    auto_escalation: bool = True
    bypass_admins: bool = True
    log_violations: bool = True
    whitelist: Set[str] = field(default_factory=set)
    severity_levels: Dict[Severity, Set[str]] = field(default_factory=dict)
    escalation_thresholds: EscalationThresholds = field(default_factory=EscalationThresholds)

    @property
    def items(self) -> Set[str]:
        return getattr(self, self.items_field)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "severity_levels":
                value = {s.value: sorted(members) for s, members in value.items()}
            elif f.name == "escalation_thresholds":
                value = value.to_dict()
            elif isinstance(value, set):
                value = sorted(value)
            data[f.name] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BlocklistConfig":
        """
        Overlay stored values on the defaults.

        Raises:
            ValueError: If the document has the wrong shape.
        """
        if not isinstance(data, dict):
            raise ValueError("Blocklist config must be a JSON object")

        config = cls()
        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            if f.name == "severity_levels":
                value = {
                    Severity.parse(s): {str(m).lower() for m in members}
                    for s, members in value.items()
                }
            elif f.name == "escalation_thresholds":
                try:
                    value = EscalationThresholds.from_mapping(value, config.escalation_thresholds)
                except (TypeError, ValueError) as e:
                    logger.warning("Invalid Stored Thresholds, Using Defaults", [
                        ("Kind", cls.kind),
                        ("Error", str(e)),
                    ])
                    continue
            elif f.name == "allowed_channels":
                value = {int(c) for c in value}
            elif f.name in ("whitelist", cls.items_field):
                value = {str(v).lower().strip() for v in value}
            else:
                value = bool(value)
            setattr(config, f.name, value)
        return config


@dataclass
class BlockedWordsConfig(BlocklistConfig):
    kind: ClassVar[str] = KIND_WORDS
    items_field: ClassVar[str] = "blocked_words"

    blocked_words: Set[str] = field(
        default_factory=lambda: {"spam", "scam", "fraud", "hack", "exploit"}
    )
    severity_levels: Dict[Severity, Set[str]] = field(
        default_factory=lambda: _default_buckets(
            ["spam", "annoying"], ["scam", "fraud"], ["hack", "exploit", "ddos"]
        )
    )


@dataclass
class BlockedDomainsConfig(BlocklistConfig):
    kind: ClassVar[str] = KIND_DOMAINS
    items_field: ClassVar[str] = "blocked_domains"

    blocked_domains: Set[str] = field(
        default_factory=lambda: {"malware-site.com", "phishing-example.com", "spam-links.net"}
    )
    whitelist: Set[str] = field(
        default_factory=lambda: {
            "discord.com", "github.com", "google.com",
            "youtube.com", "twitter.com", "reddit.com",
        }
    )
    severity_levels: Dict[Severity, Set[str]] = field(
        default_factory=lambda: _default_buckets(
            ["spam-links.net"], ["suspicious-site.com"], ["malware-site.com", "phishing-example.com"]
        )
    )
    escalation_thresholds: EscalationThresholds = field(
        default_factory=lambda: EscalationThresholds(warn=1, timeout=2, kick=4, ban=6)
    )
    allowed_channels: Set[int] = field(default_factory=set)
    delete_messages: bool = True


AnyBlocklistConfig = Union[BlockedWordsConfig, BlockedDomainsConfig]

CONFIG_TYPES: Dict[str, Type[BlocklistConfig]] = {
    KIND_WORDS: BlockedWordsConfig,
    KIND_DOMAINS: BlockedDomainsConfig,
}


def _config_type(kind: str) -> Type[BlocklistConfig]:
    try:
        return CONFIG_TYPES[kind]
    except KeyError:
        raise ValueError(f"Unknown blocklist kind: {kind}") from None


# =============================================================================
# Store
# =============================================================================

class BlocklistStore:
    """Loads and persists blocklist configs per guild."""

    def __init__(self, db: Optional[DatabaseManager] = None) -> None:
        self.db = db or get_db()

    def load(self, guild_id: int, kind: str) -> AnyBlocklistConfig:
        """
        Current config for a guild.

        Returns:
            The stored config merged over defaults, or defaults (persisted
            when absent, in-memory only when the row is unreadable).
        """
        config_type = _config_type(kind)

        try:
            raw = self.db.get_blocklist_config(guild_id, kind)
        except sqlite3.Error as e:
            logger.error("Blocklist Load Failed", [
                ("Guild", str(guild_id)),
                ("Kind", kind),
                ("Error", str(e)),
            ])
            return config_type()

        if raw is None:
            config = config_type()
            self.save(guild_id, config)
            return config

        try:
            return config_type.from_dict(json.loads(raw))
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning("Corrupt Blocklist Config, Using Defaults", [
                ("Guild", str(guild_id)),
                ("Kind", kind),
                ("Error", str(e)[:100]),
            ])
            return config_type()

    def load_words(self, guild_id: int) -> BlockedWordsConfig:
        return self.load(guild_id, KIND_WORDS)

    def load_domains(self, guild_id: int) -> BlockedDomainsConfig:
        return self.load(guild_id, KIND_DOMAINS)

    def save(self, guild_id: int, config: BlocklistConfig) -> bool:
        try:
            self.db.save_blocklist_config(guild_id, config.kind, json.dumps(config.to_dict()))
            return True
        except sqlite3.Error as e:
            logger.error("Blocklist Save Failed", [
                ("Guild", str(guild_id)),
                ("Kind", config.kind),
                ("Error", str(e)),
            ])
            return False

    def update(
        self,
        guild_id: int,
        kind: str,
        mutator: Callable[[AnyBlocklistConfig], None],
    ) -> Optional[AnyBlocklistConfig]:
        """
        Atomically apply `mutator` to the stored config.

        The mutator edits the config in place. A ValueError raised by it
        (e.g. invalid thresholds) aborts the update and propagates.

        Returns:
            The new config, or None if storage failed.
        """
        config_type = _config_type(kind)
        result: Dict[str, AnyBlocklistConfig] = {}

        def transform(raw: Optional[str]) -> str:
            config = config_type()
            if raw is not None:
                try:
                    config = config_type.from_dict(json.loads(raw))
                except (ValueError, TypeError, AttributeError):
                    logger.warning("Corrupt Blocklist Config Replaced On Update", [
                        ("Guild", str(guild_id)),
                        ("Kind", kind),
                    ])
            mutator(config)
            result["config"] = config
            return json.dumps(config.to_dict())

        try:
            self.db.update_blocklist_config(guild_id, kind, transform)
        except sqlite3.Error as e:
            logger.error("Blocklist Update Failed", [
                ("Guild", str(guild_id)),
                ("Kind", kind),
                ("Error", str(e)),
            ])
            return None
        return result["config"]


__all__ = [
    "KIND_WORDS",
    "KIND_DOMAINS",
    "BlocklistConfig",
    "BlockedWordsConfig",
    "BlockedDomainsConfig",
    "BlocklistStore",
]
