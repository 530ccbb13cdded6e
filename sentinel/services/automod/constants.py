"""
Auto-Moderation Constants
=========================

Patterns, term lists, scores and limits used by the matchers and detectors.
"""

import re
from typing import Dict, FrozenSet, List, Tuple


# =============================================================================
# Prohibited Terms
# =============================================================================

PROHIBITED_TERMS: List[str] = [
    "porn", "pornography", "xxx", "nude", "naked", "hardcore", "erotic", "erotica",
    "fetish", "bdsm", "bondage", "threesome", "orgy", "cum", "cock", "dick",
    "pussy", "vagina", "penis", "anal", "blowjob", "handjob", "tit", "tits",
    "boobs", "ass", "butt", "creampie", "slut", "whore", "cumshot", "masturbate", "masturbation",
    "nsfw", "18+", "adult", "mature", "x-rated", "r-rated", "softcore", "semi-nude",
    "undressing", "strip", "undressed", "topless", "bottomless", "bare", "nudity",
    "sensorial", "intimate", "sexual", "sensual", "sex", "onlyfans", "chaturbate",
    "xvideos", "pornhub", "brazzers", "milf", "dildo", "vibrator", "escort",
    "camgirl", "camboy", "webcam", "livecam", "sexchat", "cybersex", "sextoy",
]

# First half is explicit, second half only partially suspicious
_HALF = len(PROHIBITED_TERMS) // 2
EXPLICIT_TERMS: List[str] = PROHIBITED_TERMS[:_HALF]
PARTIAL_TERMS: List[str] = PROHIBITED_TERMS[_HALF:]


def _word_regex(words: List[str]) -> "re.Pattern[str]":
    return re.compile(
        r"\b(" + "|".join(re.escape(w) for w in words) + r")\b",
        re.IGNORECASE | re.ASCII,
    )


KEYWORD_PATTERN = _word_regex(EXPLICIT_TERMS)
PARTIAL_PATTERN = _word_regex(PARTIAL_TERMS)


# =============================================================================
# Links & Invites
# =============================================================================

URL_PATTERN = re.compile(r"(https?://\S+|www\.\S+)", re.IGNORECASE)

# Bare "host.tld/path" mentions without scheme or www. Limited to common TLDs
# so file names like "notes.txt" are not treated as links.
BARE_DOMAIN_TLDS: Tuple[str, ...] = (
    "com", "net", "org", "io", "gg", "co", "me", "xyz", "info", "biz", "ru",
    "tk", "ly", "app", "dev", "tv", "us", "uk", "de", "fr", "to", "cc",
    "site", "online", "live", "link", "club", "shop", "top", "fun",
)
BARE_DOMAIN_PATTERN = re.compile(
    r"(?<![\w@/.:-])((?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+(?:"
    + "|".join(BARE_DOMAIN_TLDS)
    + r"))(/\S*)?(?![\w.-]*\w)",
    re.IGNORECASE,
)

INVITE_PATTERN = re.compile(
    r"(?:https?://)?(?:canary\.|ptb\.)?(?:discord(?:app)?\.com/invite|discord\.gg)/([A-Za-z0-9\-]+)",
    re.IGNORECASE,
)

MENTION_PATTERN = re.compile(r"<@[!&]?\d+>")

ADULT_DOMAINS: FrozenSet[str] = frozenset({
    "onlyfans.com",
    "bangbros.com",
    "adultfriendfinder.com",
    "cams.com",
})

# Media hosts whose links never count as adult content
MEDIA_WHITELIST_SUFFIXES: Tuple[str, ...] = ("youtube.com",)
MEDIA_WHITELIST_EXACT: FrozenSet[str] = frozenset({
    "youtu.be",
    "media.discordapp.net",
    "cdn.discordapp.com",
})
MEDIA_WHITELIST_CONTAINS: Tuple[str, ...] = ("tenor.com",)


# =============================================================================
# Bypass & Formatting
# =============================================================================

ZERO_WIDTH_PATTERN = re.compile("[\u200B\u200C\u200D\u200E\u200F\uFEFF]")
NON_WORD_PATTERN = re.compile(r"[^\w\s]", re.ASCII)
WHITESPACE_PATTERN = re.compile(r"\s+")

OBVIOUS_BYPASS_PATTERNS: List["re.Pattern[str]"] = [
    re.compile(r"p[o0*@][r*][n*]", re.IGNORECASE),
    re.compile(r"s[e3*@][x*]", re.IGNORECASE),
    re.compile(r"f[u*@][c*k]", re.IGNORECASE),
]

LEET_SUBSTITUTIONS: Dict[str, str] = {
    "a": "[a@4]",
    "e": "[e3]",
    "i": "[i1]",
    "o": "[o0]",
    "s": "[s$5]",
}
LEET_MIN_WORD_LENGTH = 4
LEET_MIN_SUBSTITUTIONS = 3

FORMATTING_RUN_PATTERN = re.compile(r"(\*{3,}|_{3,}|`{3,}|~{3,})")
SPACING_PATTERN = re.compile(r"\w\s{3,}\w")
CYRILLIC_PATTERN = re.compile("[\u0400-\u04FF]")
LATIN_PATTERN = re.compile(r"[a-zA-Z]")
MIXED_SCRIPT_MAX_LENGTH = 50

CAPS_PATTERN = re.compile(r"[A-Z]")
CHAR_REPEAT_PATTERN = re.compile(r"(.)\1{6,}")
PUNCTUATION_RUN_PATTERN = re.compile(r"[.!?]{3,}")


# =============================================================================
# Suspicion Score
# =============================================================================

SCORE_KEYWORD = 20
SCORE_PARTIAL = 8
SCORE_BYPASS = 25
SCORE_FORMATTING = 12
SCORE_MANY_URLS = 8
SCORE_DENSE_URLS = 5
SCORE_CAPS = 6
SCORE_CHAR_REPEAT = 4
SCORE_YOUNG_ACCOUNT = 8
SCORE_VERY_YOUNG_ACCOUNT = 15
SCORE_CONVERSATIONAL_REDUCTION = 3

MANY_URLS = 5
DENSE_URLS = 2
DENSE_URLS_MAX_LENGTH = 50
CAPS_MIN_LENGTH = 20
CAPS_RATIO = 0.8
CONVERSATIONAL_MIN_LENGTH = 10

YOUNG_ACCOUNT_SECONDS = 3 * 86400
VERY_YOUNG_ACCOUNT_SECONDS = 43200

FORCE_FORMATTING_SCORE = 15
HIGH_THREAT_SCORE = 25
NEW_ACCOUNT_SCORE = 15
NEW_ACCOUNT_SECONDS = 86400


# =============================================================================
# Rate Windows
# =============================================================================

LINK_WINDOW_SECONDS = 30
MAX_LINKS = 3
DUP_WINDOW_SECONDS = 60
DUP_CHANNEL_THRESHOLD = 3

RAPID_WINDOW_SECONDS = 10
RAPID_MIN_POSTS = 5
RAPID_MIN_GAP_SECONDS = 2

ADAPTIVE_DAY_SECONDS = 86400
ADAPTIVE_WEEK_SECONDS = 7 * 86400

RATE_MAX_ENTRIES = 10000
RATE_SWEEP_INTERVAL = 60


# =============================================================================
# Enforcement
# =============================================================================

SPAM_TIMEOUT_SECONDS = 600
MAX_MENTIONS = 5
NOTICE_DELETE_AFTER = 15
