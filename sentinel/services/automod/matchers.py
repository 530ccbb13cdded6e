"""
Auto-Moderation Pattern Matchers
================================

Pure functions that turn raw message text into classification signals.

DESIGN:
    Nothing here touches Discord, the database or the clock. Every matcher
    treats malformed input as "no match" and never raises, so a detector
    built on top of them can only fail towards letting a message through.
"""

import re
from typing import Iterable, List, Mapping, Optional, TYPE_CHECKING
from urllib.parse import urlsplit

from .constants import (
    ADULT_DOMAINS,
    BARE_DOMAIN_PATTERN,
    CAPS_MIN_LENGTH,
    CAPS_PATTERN,
    CAPS_RATIO,
    CHAR_REPEAT_PATTERN,
    CONVERSATIONAL_MIN_LENGTH,
    CYRILLIC_PATTERN,
    DENSE_URLS,
    DENSE_URLS_MAX_LENGTH,
    FORMATTING_RUN_PATTERN,
    INVITE_PATTERN,
    KEYWORD_PATTERN,
    LATIN_PATTERN,
    LEET_MIN_SUBSTITUTIONS,
    LEET_MIN_WORD_LENGTH,
    LEET_SUBSTITUTIONS,
    MANY_URLS,
    MEDIA_WHITELIST_CONTAINS,
    MEDIA_WHITELIST_EXACT,
    MEDIA_WHITELIST_SUFFIXES,
    MENTION_PATTERN,
    MIXED_SCRIPT_MAX_LENGTH,
    NON_WORD_PATTERN,
    OBVIOUS_BYPASS_PATTERNS,
    PARTIAL_PATTERN,
    PROHIBITED_TERMS,
    PUNCTUATION_RUN_PATTERN,
    SCORE_BYPASS,
    SCORE_CAPS,
    SCORE_CHAR_REPEAT,
    SCORE_CONVERSATIONAL_REDUCTION,
    SCORE_DENSE_URLS,
    SCORE_FORMATTING,
    SCORE_KEYWORD,
    SCORE_MANY_URLS,
    SCORE_PARTIAL,
    SCORE_VERY_YOUNG_ACCOUNT,
    SCORE_YOUNG_ACCOUNT,
    SPACING_PATTERN,
    URL_PATTERN,
    VERY_YOUNG_ACCOUNT_SECONDS,
    WHITESPACE_PATTERN,
    YOUNG_ACCOUNT_SECONDS,
    ZERO_WIDTH_PATTERN,
)
from .models import Classification, Severity

if TYPE_CHECKING:
    from .config_store import BlockedDomainsConfig, BlockedWordsConfig


_TRAILING_PUNCTUATION = ".,;:!?)]}>'\""
_WORD_CLEAN_PATTERN = re.compile(r"[^\w]")


def _leet_pattern(word: str) -> Optional["re.Pattern[str]"]:
    """Substitution regex for a term, or None when it has too few substitutable letters."""
    if len(word) < LEET_MIN_WORD_LENGTH:
        return None
    pattern = re.escape(word)
    substitutions = 0
    for char, replacement in LEET_SUBSTITUTIONS.items():
        if char in pattern:
            pattern = pattern.replace(char, replacement)
            substitutions += 1
    if substitutions < LEET_MIN_SUBSTITUTIONS:
        return None
    return re.compile(pattern, re.IGNORECASE)


_LEET_PATTERNS: List["re.Pattern[str]"] = [
    p for p in (_leet_pattern(w) for w in PROHIBITED_TERMS) if p is not None
]


# =============================================================================
# Extraction
# =============================================================================

def extract_urls(content: str) -> List[str]:
    """
    Scheme URLs, www. URLs and bare host.tld mentions, in order of appearance.

    Trailing sentence punctuation is stripped from each match.
    """
    if not content:
        return []

    found = []
    for match in URL_PATTERN.finditer(content):
        found.append((match.start(), match.group(0).rstrip(_TRAILING_PUNCTUATION)))

    remainder = URL_PATTERN.sub(lambda m: " " * len(m.group(0)), content)
    for match in BARE_DOMAIN_PATTERN.finditer(remainder):
        found.append((match.start(), match.group(0).rstrip(_TRAILING_PUNCTUATION)))

    return [url for _, url in sorted(found) if url]


def extract_invites(content: str) -> List[str]:
    """Invite codes from discord.gg / discord(app).com/invite links."""
    if not content:
        return []
    return INVITE_PATTERN.findall(content)


def extract_domain(url: str) -> Optional[str]:
    """
    Lowercased hostname of a URL, scheme optional.

    Returns:
        The hostname, or None when the URL cannot be parsed.
    """
    if not url:
        return None
    candidate = url if url.lower().startswith(("http://", "https://")) else f"https://{url}"
    try:
        hostname = urlsplit(candidate).hostname
    except ValueError:
        return None
    if not hostname or "." not in hostname:
        return None
    return hostname.lower().rstrip(".")


def count_mentions(content: str) -> int:
    if not content:
        return 0
    return len(MENTION_PATTERN.findall(content))


# =============================================================================
# Domain Predicates
# =============================================================================

def _domain_matches(domain: str, entry: str) -> bool:
    entry = entry.lower().strip()
    return bool(entry) and (domain == entry or domain.endswith("." + entry))


def is_adult_site(url: str) -> bool:
    domain = extract_domain(url)
    if not domain:
        return False
    return any(_domain_matches(domain, bad) for bad in ADULT_DOMAINS)


def is_whitelisted_url(url: str) -> bool:
    """Built-in media hosts (YouTube, Discord CDN, Tenor) are always allowed."""
    domain = extract_domain(url)
    if not domain:
        return False
    return (
        domain.endswith(MEDIA_WHITELIST_SUFFIXES)
        or domain in MEDIA_WHITELIST_EXACT
        or any(part in domain for part in MEDIA_WHITELIST_CONTAINS)
    )


def find_blocked_domain(urls: Iterable[str], config: "BlockedDomainsConfig") -> Optional[str]:
    """
    First blocked-domain entry matched by any URL.

    A URL whose host is on the config whitelist is skipped entirely, even if
    the same host is also blocked.

    Returns:
        The matching entry from blocked_domains, or None.
    """
    for url in urls:
        domain = extract_domain(url)
        if not domain:
            continue
        if any(_domain_matches(domain, allowed) for allowed in config.whitelist):
            continue
        for blocked in sorted(config.blocked_domains):
            if _domain_matches(domain, blocked):
                return blocked
    return None


# =============================================================================
# Word Predicates
# =============================================================================

def find_blocked_word(content: str, config: "BlockedWordsConfig") -> Optional[str]:
    """
    First blocked word or phrase in the content, case-insensitive.

    Single words are matched against punctuation-stripped tokens. Entries
    containing spaces or symbols are matched as substrings. Whitelisted
    tokens are skipped before the block list is consulted.
    """
    if not content:
        return None

    lowered = content.lower()
    blocked = {w.lower() for w in config.blocked_words}
    whitelist = {w.lower() for w in config.whitelist}

    for token in lowered.split():
        clean = _WORD_CLEAN_PATTERN.sub("", token)
        if not clean or clean in whitelist:
            continue
        if clean in blocked:
            return clean

    for phrase in sorted(blocked):
        if _WORD_CLEAN_PATTERN.sub("", phrase) == phrase or phrase in whitelist:
            continue
        if phrase in lowered:
            return phrase
    return None


def severity_of(item: Optional[str], buckets: Mapping[Severity, Iterable[str]]) -> Severity:
    """Severity bucket of a word/domain; the first bucket holding it wins, default minor."""
    if not item or not buckets:
        return Severity.MINOR
    item = item.lower()
    for severity, members in buckets.items():
        if item in {m.lower() for m in members}:
            return Severity.parse(severity)
    return Severity.MINOR


def has_blocked_keyword(content: str) -> bool:
    """Explicit or partial prohibited term as a whole word."""
    if not content:
        return False
    return bool(KEYWORD_PATTERN.search(content) or PARTIAL_PATTERN.search(content))


# =============================================================================
# Heuristics
# =============================================================================

def normalize_text(text: str) -> str:
    """Strip zero-width characters and punctuation, collapse whitespace, lowercase."""
    text = ZERO_WIDTH_PATTERN.sub("", text)
    text = NON_WORD_PATTERN.sub("", text)
    text = WHITESPACE_PATTERN.sub(" ", text)
    return text.lower().strip()


def detect_bypass_attempt(text: str) -> bool:
    """Obfuscated prohibited terms: obvious patterns first, then leetspeak."""
    if not text:
        return False
    normalized = normalize_text(text)
    if any(p.search(normalized) for p in OBVIOUS_BYPASS_PATTERNS):
        return True
    return any(p.search(normalized) for p in _LEET_PATTERNS)


def detect_suspicious_formatting(text: str) -> bool:
    if not text:
        return False
    if FORMATTING_RUN_PATTERN.search(text):
        return True
    if SPACING_PATTERN.search(text):
        return True
    # Mixed scripts in short messages are usually homoglyph obfuscation
    return (
        len(text) < MIXED_SCRIPT_MAX_LENGTH
        and bool(CYRILLIC_PATTERN.search(text))
        and bool(LATIN_PATTERN.search(text))
    )


def calculate_suspicion_score(text: str, account_age: Optional[float] = None) -> int:
    """
    Additive risk score for a message.

    Args:
        text: Message content.
        account_age: Seconds since the author's account was created, if known.

    Returns:
        Non-negative score. Detectors act on 15 (forced formatting / new
        account) and 25 (high threat).
    """
    if not text:
        return 0

    score = 0
    if KEYWORD_PATTERN.search(text):
        score += SCORE_KEYWORD
    if PARTIAL_PATTERN.search(text):
        score += SCORE_PARTIAL
    if detect_bypass_attempt(text):
        score += SCORE_BYPASS
    if detect_suspicious_formatting(text):
        score += SCORE_FORMATTING

    url_count = len(URL_PATTERN.findall(text))
    if url_count > MANY_URLS:
        score += SCORE_MANY_URLS
    if url_count > DENSE_URLS and len(text) < DENSE_URLS_MAX_LENGTH:
        score += SCORE_DENSE_URLS

    if len(text) > CAPS_MIN_LENGTH:
        caps_ratio = len(CAPS_PATTERN.findall(text)) / len(text)
        if caps_ratio > CAPS_RATIO:
            score += SCORE_CAPS

    if CHAR_REPEAT_PATTERN.search(text) and not PUNCTUATION_RUN_PATTERN.search(text):
        score += SCORE_CHAR_REPEAT

    if account_age is not None:
        if account_age < YOUNG_ACCOUNT_SECONDS:
            score += SCORE_YOUNG_ACCOUNT
        if account_age < VERY_YOUNG_ACCOUNT_SECONDS:
            score += SCORE_VERY_YOUNG_ACCOUNT

    if len(text) > CONVERSATIONAL_MIN_LENGTH and " " in text and "http" not in text:
        score = max(0, score - SCORE_CONVERSATIONAL_REDUCTION)

    return score


# =============================================================================
# Classification
# =============================================================================

def classify(content: str, account_age: Optional[float] = None) -> Classification:
    """Run every matcher over one message."""
    content = content or ""
    return Classification(
        urls=extract_urls(content),
        invites=extract_invites(content),
        blocked_keyword_hit=has_blocked_keyword(content),
        bypass_attempt=detect_bypass_attempt(content),
        suspicious_formatting=detect_suspicious_formatting(content),
        suspicion_score=calculate_suspicion_score(content, account_age),
        mention_count=count_mentions(content),
    )


__all__ = [
    "classify",
    "extract_urls",
    "extract_invites",
    "extract_domain",
    "count_mentions",
    "is_adult_site",
    "is_whitelisted_url",
    "find_blocked_domain",
    "find_blocked_word",
    "severity_of",
    "has_blocked_keyword",
    "normalize_text",
    "detect_bypass_attempt",
    "detect_suspicious_formatting",
    "calculate_suspicion_score",
]
