"""
Violation Detectors
===================

Ordered, independently testable checks over one classified message.

DESIGN:
    Each detector looks at a MessageContext and returns a Violation or None.
    dispatch() walks DEFAULT_DETECTORS in priority order and stops at the
    first hit, so the priority of a rule is its position in the list. A
    detector that raises is logged and treated as "no violation".
"""

from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Sequence

from sentinel.core.logger import logger

from .config_store import BlockedDomainsConfig, BlockedWordsConfig, KIND_DOMAINS, KIND_WORDS
from .constants import (
    FORCE_FORMATTING_SCORE,
    HIGH_THREAT_SCORE,
    MAX_MENTIONS,
    NEW_ACCOUNT_SCORE,
    NEW_ACCOUNT_SECONDS,
)
from .matchers import (
    find_blocked_domain,
    find_blocked_word,
    is_adult_site,
    is_whitelisted_url,
    severity_of,
)
from .models import ActionBundle, Classification, Violation, ViolationType


InviteInspector = Callable[[str], Awaitable[bool]]

FORCED = ActionBundle(delete_message=True, send_notice=True, force_escalation=True)
WARN_ONLY = ActionBundle(delete_message=True, send_notice=True, force_escalation=False)


# =============================================================================
# Context
# =============================================================================

@dataclass
class RateSignals:
    """Rate-window verdicts computed before dispatch (URL messages only)."""
    link_spam: bool = False
    rapid_posting: bool = False
    cross_channel: bool = False


@dataclass
class MessageContext:
    """Everything a detector may look at for one message."""
    content: str
    classification: Classification
    guild_id: int
    channel_id: int
    user_id: int
    is_admin: bool
    words: BlockedWordsConfig
    domains: BlockedDomainsConfig
    account_age: Optional[float] = None
    max_mentions: int = MAX_MENTIONS
    allowed_link_channel_id: Optional[int] = None
    rates: RateSignals = field(default_factory=RateSignals)
    invite_inspector: Optional[InviteInspector] = None


# =============================================================================
# Base
# =============================================================================

class Detector:
    """Base class; subclasses set `name` and implement detect()."""

    name = "detector"

    async def detect(self, ctx: MessageContext) -> Optional[Violation]:
        raise NotImplementedError


# =============================================================================
# Content Detectors
# =============================================================================

class BlockedWordDetector(Detector):
    """Guild blocked words. Admin bypass suppresses the action, not the detection."""

    name = "blocked_word"

    async def detect(self, ctx: MessageContext) -> Optional[Violation]:
        if not ctx.words.enabled:
            return None

        word = find_blocked_word(ctx.content, ctx.words)
        if word is None:
            return None

        severity = severity_of(word, ctx.words.severity_levels)
        if ctx.is_admin and ctx.words.bypass_admins:
            logger.tree("Blocked Word (Admin Bypass)", [
                ("User", str(ctx.user_id)),
                ("Word", word),
                ("Severity", severity.value),
            ], emoji="🛡️")
            return None

        return Violation(
            type=ViolationType.BLOCKED_WORD,
            bundle=WARN_ONLY,
            matched=word,
            severity=severity,
            policy=KIND_WORDS,
        )


class KeywordDetector(Detector):
    """Built-in prohibited terms; always a forced timeout for non-admins."""

    name = "blocked_keyword"

    async def detect(self, ctx: MessageContext) -> Optional[Violation]:
        if not ctx.classification.blocked_keyword_hit:
            return None
        if ctx.is_admin:
            logger.debug(f"Admin bypass for blocked keyword from {ctx.user_id}")
            return None
        return Violation(ViolationType.BLOCKED_KEYWORD, FORCED)


class BypassAttemptDetector(Detector):
    name = "bypass_attempt"

    async def detect(self, ctx: MessageContext) -> Optional[Violation]:
        if ctx.is_admin or not ctx.classification.bypass_attempt:
            return None
        return Violation(ViolationType.BYPASS_ATTEMPT, FORCED)


class SuspiciousFormattingDetector(Detector):
    """Forced only when the aggregate score backs it up."""

    name = "suspicious_formatting"

    async def detect(self, ctx: MessageContext) -> Optional[Violation]:
        if ctx.is_admin or not ctx.classification.suspicious_formatting:
            return None
        forced = ctx.classification.suspicion_score >= FORCE_FORMATTING_SCORE
        return Violation(ViolationType.SUSPICIOUS_FORMATTING, FORCED if forced else WARN_ONLY)


class HighThreatDetector(Detector):
    name = "high_threat"

    async def detect(self, ctx: MessageContext) -> Optional[Violation]:
        if ctx.is_admin or ctx.classification.suspicion_score < HIGH_THREAT_SCORE:
            return None
        return Violation(ViolationType.HIGH_THREAT, FORCED)


class NewAccountDetector(Detector):
    name = "account_too_new"

    async def detect(self, ctx: MessageContext) -> Optional[Violation]:
        if ctx.is_admin or ctx.account_age is None:
            return None
        if ctx.account_age < NEW_ACCOUNT_SECONDS and ctx.classification.suspicion_score >= NEW_ACCOUNT_SCORE:
            return Violation(ViolationType.ACCOUNT_TOO_NEW, FORCED)
        return None


class MentionSpamDetector(Detector):
    name = "ping_spam"

    async def detect(self, ctx: MessageContext) -> Optional[Violation]:
        if ctx.classification.mention_count <= ctx.max_mentions:
            return None
        if ctx.is_admin:
            logger.debug(f"Admin bypass for mention limit from {ctx.user_id}")
            return None
        return Violation(ViolationType.PING_SPAM, WARN_ONLY)


# =============================================================================
# URL Detectors
# =============================================================================

class BlockedDomainDetector(Detector):
    """Guild blocked domains outside the allowed channels; whitelist wins."""

    name = "blocked_domain"

    async def detect(self, ctx: MessageContext) -> Optional[Violation]:
        urls = ctx.classification.urls
        if not urls or not ctx.domains.enabled:
            return None
        if ctx.is_admin and ctx.domains.bypass_admins:
            return None
        if ctx.channel_id in ctx.domains.allowed_channels:
            return None

        domain = find_blocked_domain(urls, ctx.domains)
        if domain is None:
            return None

        return Violation(
            type=ViolationType.BLOCKED_DOMAIN,
            bundle=ActionBundle(
                delete_message=ctx.domains.delete_messages,
                send_notice=True,
                force_escalation=False,
            ),
            matched=domain,
            severity=severity_of(domain, ctx.domains.severity_levels),
            policy=KIND_DOMAINS,
        )


class AdultLinkDetector(Detector):
    """Adult sites anywhere but the designated link channel."""

    name = "adult_site"

    async def detect(self, ctx: MessageContext) -> Optional[Violation]:
        if ctx.is_admin or not ctx.classification.urls:
            return None
        if ctx.allowed_link_channel_id is not None and ctx.channel_id == ctx.allowed_link_channel_id:
            return None
        for url in ctx.classification.urls:
            if not is_whitelisted_url(url) and is_adult_site(url):
                return Violation(
                    ViolationType.ADULT_SITE,
                    WARN_ONLY,
                    matched=url,
                    policy=KIND_DOMAINS,
                )
        return None


# =============================================================================
# Rate Detectors
# =============================================================================

class LinkSpamDetector(Detector):
    name = "link_spam"

    async def detect(self, ctx: MessageContext) -> Optional[Violation]:
        if ctx.is_admin or not ctx.classification.urls or not ctx.rates.link_spam:
            return None
        return Violation(ViolationType.LINK_SPAM, FORCED)


class RapidPostingDetector(Detector):
    name = "rapid_posting"

    async def detect(self, ctx: MessageContext) -> Optional[Violation]:
        if ctx.is_admin or not ctx.classification.urls or not ctx.rates.rapid_posting:
            return None
        return Violation(ViolationType.RAPID_POSTING, FORCED)


class CrossChannelSpamDetector(Detector):
    name = "cross_channel_spam"

    async def detect(self, ctx: MessageContext) -> Optional[Violation]:
        if ctx.is_admin or not ctx.classification.urls or not ctx.rates.cross_channel:
            return None
        return Violation(ViolationType.CROSS_CHANNEL_SPAM, FORCED)


# =============================================================================
# Invite Detector
# =============================================================================

class AdultInviteDetector(Detector):
    """
    Invites to servers with NSFW channels.

    The inspector is injected; a failed lookup counts as "not adult".
    """

    name = "adult_invite"

    async def detect(self, ctx: MessageContext) -> Optional[Violation]:
        if ctx.is_admin or not ctx.classification.invites or ctx.invite_inspector is None:
            return None
        for code in ctx.classification.invites:
            if await ctx.invite_inspector(code):
                return Violation(ViolationType.ADULT_INVITE, WARN_ONLY, matched=code)
        return None


# =============================================================================
# Dispatch
# =============================================================================

DEFAULT_DETECTORS: List[Detector] = [
    BlockedWordDetector(),
    KeywordDetector(),
    BypassAttemptDetector(),
    SuspiciousFormattingDetector(),
    HighThreatDetector(),
    NewAccountDetector(),
    MentionSpamDetector(),
    BlockedDomainDetector(),
    AdultLinkDetector(),
    LinkSpamDetector(),
    RapidPostingDetector(),
    CrossChannelSpamDetector(),
    AdultInviteDetector(),
]


async def dispatch(detectors: Sequence[Detector], ctx: MessageContext) -> Optional[Violation]:
    """First violation reported by the detectors, in order."""
    for detector in detectors:
        try:
            violation = await detector.detect(ctx)
        except Exception as e:
            logger.error("Detector Failed", [
                ("Detector", detector.name),
                ("User", str(ctx.user_id)),
                ("Error", f"{type(e).__name__}: {str(e)[:100]}"),
            ])
            continue
        if violation is not None:
            return violation
    return None


__all__ = [
    "Detector",
    "MessageContext",
    "RateSignals",
    "InviteInspector",
    "BlockedWordDetector",
    "KeywordDetector",
    "BypassAttemptDetector",
    "SuspiciousFormattingDetector",
    "HighThreatDetector",
    "NewAccountDetector",
    "MentionSpamDetector",
    "BlockedDomainDetector",
    "AdultLinkDetector",
    "LinkSpamDetector",
    "RapidPostingDetector",
    "CrossChannelSpamDetector",
    "AdultInviteDetector",
    "DEFAULT_DETECTORS",
    "dispatch",
]
