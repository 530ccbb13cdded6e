"""
Auto-Moderation Data Models
===========================

Dataclasses shared by matchers, detectors, the violation handler and the
warning ledger.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


# =============================================================================
# Enums
# =============================================================================

class Severity(str, Enum):
    """Severity bucket of a blocked word/domain, carried onto warnings."""
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"

    @classmethod
    def parse(cls, value: Any, default: "Severity" = None) -> "Severity":
        """Lenient parse; unknown values fall back to default (minor)."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return default or cls.MINOR


class ViolationType(str, Enum):
    """Every policy breach the pipeline can report, in no particular order."""
    BLOCKED_WORD = "blocked_word"
    BLOCKED_KEYWORD = "blocked_keyword"
    BYPASS_ATTEMPT = "bypass_attempt"
    SUSPICIOUS_FORMATTING = "suspicious_formatting"
    HIGH_THREAT = "high_threat"
    ACCOUNT_TOO_NEW = "account_too_new"
    PING_SPAM = "ping_spam"
    BLOCKED_DOMAIN = "blocked_domain"
    ADULT_SITE = "adult_site"
    LINK_SPAM = "link_spam"
    RAPID_POSTING = "rapid_posting"
    CROSS_CHANNEL_SPAM = "cross_channel_spam"
    ADULT_INVITE = "adult_invite"


VIOLATION_REASONS: Dict[ViolationType, str] = {
    ViolationType.BLOCKED_WORD: "using a blocked word",
    ViolationType.BLOCKED_KEYWORD: "using blocked/inappropriate language",
    ViolationType.BYPASS_ATTEMPT: "attempting to bypass word filters",
    ViolationType.SUSPICIOUS_FORMATTING: "suspicious text formatting patterns",
    ViolationType.HIGH_THREAT: "high threat content detected",
    ViolationType.ACCOUNT_TOO_NEW: "new account suspicious activity",
    ViolationType.PING_SPAM: "excessive mentions detected",
    ViolationType.BLOCKED_DOMAIN: "posting a blocked domain",
    ViolationType.ADULT_SITE: "posting adult/inappropriate content",
    ViolationType.LINK_SPAM: "suspicious link posting behavior",
    ViolationType.RAPID_POSTING: "posting messages too rapidly",
    ViolationType.CROSS_CHANNEL_SPAM: "posting the same message across multiple channels",
    ViolationType.ADULT_INVITE: "posting invite to adult/NSFW server",
}


# =============================================================================
# Warning Ledger
# =============================================================================

@dataclass
class Warning:
    """
    One ledger entry. Never deleted; removal and expiry are soft.

    duration is in seconds, 0 meaning permanent.
    """
    id: str
    guild_id: int
    user_id: int
    moderator_id: int
    reason: str
    severity: Severity = Severity.MINOR
    duration: float = 0.0
    created_at: float = 0.0
    removed: bool = False
    removed_by: Optional[int] = None
    removed_reason: Optional[str] = None
    removed_at: Optional[float] = None
    appeal_status: Optional[str] = None
    appeal_reason: Optional[str] = None
    appealed_at: Optional[float] = None

    @property
    def expires_at(self) -> Optional[float]:
        return self.created_at + self.duration if self.duration > 0 else None

    def is_expired(self, now: float) -> bool:
        return self.duration > 0 and now > self.created_at + self.duration

    def is_active(self, now: float) -> bool:
        return not self.removed and not self.is_expired(now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "guild_id": self.guild_id,
            "user_id": self.user_id,
            "moderator_id": self.moderator_id,
            "reason": self.reason,
            "severity": self.severity.value,
            "duration": self.duration,
            "created_at": self.created_at,
            "removed": self.removed,
            "removed_by": self.removed_by,
            "removed_reason": self.removed_reason,
            "removed_at": self.removed_at,
            "appeal_status": self.appeal_status,
            "appeal_reason": self.appeal_reason,
            "appealed_at": self.appealed_at,
        }


# =============================================================================
# Classification & Violations
# =============================================================================

@dataclass
class Classification:
    """Output of matchers.classify() for one message."""
    urls: List[str] = field(default_factory=list)
    invites: List[str] = field(default_factory=list)
    blocked_keyword_hit: bool = False
    bypass_attempt: bool = False
    suspicious_formatting: bool = False
    suspicion_score: int = 0
    mention_count: int = 0


@dataclass(frozen=True)
class ActionBundle:
    """What the handler does for a violation."""
    delete_message: bool = True
    send_notice: bool = True
    force_escalation: bool = False


@dataclass
class Violation:
    """
    A detected breach.

    policy names the blocklist config ("words" or "domains") whose
    auto_warn/auto_escalation flags govern the ledger step.
    """
    type: ViolationType
    bundle: ActionBundle
    matched: Optional[str] = None
    severity: Severity = Severity.MINOR
    policy: str = "words"

    @property
    def reason(self) -> str:
        return VIOLATION_REASONS.get(self.type, self.type.value.replace("_", " "))


__all__ = [
    "Severity",
    "ViolationType",
    "VIOLATION_REASONS",
    "Warning",
    "Classification",
    "ActionBundle",
    "Violation",
]
