"""
Sentinel - Matcher Tests
========================

Tests for URL/invite extraction, blocklist lookups and the text heuristics.
"""

import pytest

from sentinel.services.automod.config_store import BlockedDomainsConfig, BlockedWordsConfig
from sentinel.services.automod.matchers import (
    calculate_suspicion_score,
    classify,
    count_mentions,
    detect_bypass_attempt,
    detect_suspicious_formatting,
    extract_domain,
    extract_invites,
    extract_urls,
    find_blocked_domain,
    find_blocked_word,
    has_blocked_keyword,
    is_adult_site,
    is_whitelisted_url,
    normalize_text,
    severity_of,
)
from sentinel.services.automod.models import Severity


# =============================================================================
# Extraction
# =============================================================================

class TestExtractUrls:
    """Tests for URL extraction."""

    def test_scheme_url(self):
        assert extract_urls("see https://example.com/page now") == ["https://example.com/page"]

    def test_www_url(self):
        assert extract_urls("visit www.example.org today") == ["www.example.org"]

    def test_bare_domain(self):
        assert extract_urls("check out malware-site.com") == ["malware-site.com"]

    def test_trailing_punctuation_stripped(self):
        assert extract_urls("go to https://example.com/a.") == ["https://example.com/a"]

    def test_order_of_appearance(self):
        urls = extract_urls("first example.net then https://second.io/x")
        assert urls == ["example.net", "https://second.io/x"]

    def test_file_names_are_not_urls(self):
        assert extract_urls("open notes.txt and main.py") == []

    def test_email_is_not_a_url(self):
        assert extract_urls("mail me at someone@example.com") == []

    def test_empty(self):
        assert extract_urls("") == []
        assert extract_urls(None) == []


class TestExtractDomain:
    """Tests for hostname extraction."""

    def test_lowercases_host(self):
        assert extract_domain("https://Sub.Example.COM/path") == "sub.example.com"

    def test_scheme_optional(self):
        assert extract_domain("example.com/path") == "example.com"

    def test_host_without_dot_is_rejected(self):
        assert extract_domain("http://localhost/") is None

    def test_empty(self):
        assert extract_domain("") is None


class TestInvitesAndMentions:
    """Tests for invite codes and mention counting."""

    def test_discord_gg(self):
        assert extract_invites("join discord.gg/abc123 now") == ["abc123"]

    def test_invite_url(self):
        assert extract_invites("https://discord.com/invite/XyZ-9") == ["XyZ-9"]

    def test_no_invite(self):
        assert extract_invites("hello there") == []

    def test_count_mentions(self):
        assert count_mentions("<@1> <@!2> <@&3> hi") == 3

    def test_count_mentions_empty(self):
        assert count_mentions("") == 0


# =============================================================================
# Blocklists
# =============================================================================

class TestFindBlockedWord:
    """Tests for guild blocked-word lookups."""

    def test_case_insensitive(self):
        config = BlockedWordsConfig()
        assert find_blocked_word("This is a SCAM offer", config) == "scam"

    def test_punctuation_stripped(self):
        config = BlockedWordsConfig()
        assert find_blocked_word("total scam!!", config) == "scam"

    def test_substring_of_word_does_not_match(self):
        config = BlockedWordsConfig()
        assert find_blocked_word("scampi for dinner", config) is None

    def test_whitelisted_word_skipped(self):
        config = BlockedWordsConfig()
        config.whitelist.add("scam")
        assert find_blocked_word("scam", config) is None

    def test_phrase_matched_as_substring(self):
        config = BlockedWordsConfig(blocked_words={"free nitro"})
        assert find_blocked_word("Get FREE NITRO here", config) == "free nitro"

    def test_no_match(self):
        assert find_blocked_word("good morning everyone", BlockedWordsConfig()) is None


class TestSeverityOf:
    """Tests for severity bucket lookup."""

    def test_bucketed_word(self):
        config = BlockedWordsConfig()
        assert severity_of("hack", config.severity_levels) == Severity.SEVERE
        assert severity_of("fraud", config.severity_levels) == Severity.MODERATE

    def test_unbucketed_defaults_to_minor(self):
        config = BlockedWordsConfig(blocked_words={"ripoff"})
        assert severity_of("ripoff", config.severity_levels) == Severity.MINOR

    def test_empty_buckets_default_to_minor(self):
        assert severity_of("anything", {}) == Severity.MINOR
        assert severity_of(None, {Severity.SEVERE: {"x"}}) == Severity.MINOR

    def test_first_bucket_wins(self):
        buckets = {Severity.MODERATE: {"dup"}, Severity.SEVERE: {"dup"}}
        assert severity_of("dup", buckets) == Severity.MODERATE

    def test_every_blocked_word_reports_its_bucket(self):
        config = BlockedWordsConfig()
        for severity, members in config.severity_levels.items():
            for word in members & config.blocked_words:
                hit = find_blocked_word(f"about {word} today", config)
                assert hit == word
                assert severity_of(hit, config.severity_levels) == severity


class TestFindBlockedDomain:
    """Tests for blocked-domain lookups."""

    def test_exact_match(self):
        config = BlockedDomainsConfig()
        assert find_blocked_domain(["malware-site.com"], config) == "malware-site.com"

    def test_subdomain_match(self):
        config = BlockedDomainsConfig()
        assert find_blocked_domain(["https://cdn.malware-site.com/x"], config) == "malware-site.com"

    def test_lookalike_does_not_match(self):
        config = BlockedDomainsConfig()
        assert find_blocked_domain(["https://notmalware-site.com"], config) is None

    def test_whitelist_takes_precedence(self):
        config = BlockedDomainsConfig()
        config.blocked_domains.add("github.com")
        assert find_blocked_domain(["https://github.com/repo"], config) is None

    def test_whitelist_skips_only_that_url(self):
        config = BlockedDomainsConfig()
        urls = ["https://github.com", "spam-links.net"]
        assert find_blocked_domain(urls, config) == "spam-links.net"


class TestSitePredicates:
    """Tests for adult-site and media whitelist checks."""

    def test_adult_site(self):
        assert is_adult_site("https://onlyfans.com/someone") is True
        assert is_adult_site("https://www.cams.com") is True

    def test_not_adult_site(self):
        assert is_adult_site("https://example.com") is False
        assert is_adult_site("") is False

    def test_media_whitelist(self):
        assert is_whitelisted_url("https://www.youtube.com/watch?v=1") is True
        assert is_whitelisted_url("https://youtu.be/abc") is True
        assert is_whitelisted_url("https://cdn.discordapp.com/a.png") is True
        assert is_whitelisted_url("https://media.tenor.com/x.gif") is True
        assert is_whitelisted_url("https://example.com") is False


# =============================================================================
# Heuristics
# =============================================================================

class TestKeywordsAndBypass:
    """Tests for prohibited terms and obfuscation."""

    def test_keyword_whole_word(self):
        assert has_blocked_keyword("no porn here") is True

    def test_keyword_partial_term(self):
        assert has_blocked_keyword("NSFW channel") is True

    def test_clean_text(self):
        assert has_blocked_keyword("good morning everyone") is False

    def test_normalize_text(self):
        assert normalize_text("He\u200bllo,   World!") == "hello world"

    def test_obvious_bypass(self):
        assert detect_bypass_attempt("p0rn") is True

    def test_leet_bypass(self):
        assert detect_bypass_attempt("m4sturb4t3") is True

    def test_clean_text_is_not_bypass(self):
        assert detect_bypass_attempt("good morning everyone") is False
        assert detect_bypass_attempt("") is False


class TestSuspiciousFormatting:
    """Tests for formatting heuristics."""

    def test_formatting_run(self):
        assert detect_suspicious_formatting("hello ***world***") is True

    def test_spacing(self):
        assert detect_suspicious_formatting("h    i") is True

    def test_mixed_scripts_in_short_text(self):
        assert detect_suspicious_formatting("p\u0430yp\u0430l login") is True

    def test_plain_text(self):
        assert detect_suspicious_formatting("just a normal message") is False


class TestSuspicionScore:
    """Tests for the additive suspicion score."""

    def test_clean_text_scores_zero(self):
        assert calculate_suspicion_score("good morning everyone") == 0

    def test_empty_scores_zero(self):
        assert calculate_suspicion_score("") == 0

    def test_young_account_adds(self):
        # Short text, so no conversational reduction applies
        assert calculate_suspicion_score("hello", account_age=3600) == 23
        assert calculate_suspicion_score("hello", account_age=2 * 86400) == 8
        assert calculate_suspicion_score("hello", account_age=30 * 86400) == 0

    def test_keyword_scores_high(self):
        assert calculate_suspicion_score("porn") >= 25

    def test_conversational_reduction_never_negative(self):
        assert calculate_suspicion_score("this is a long friendly sentence") == 0


class TestClassify:
    """Tests for the combined classification."""

    def test_collects_all_signals(self):
        result = classify("hi <@1> see https://example.com and discord.gg/abc")
        assert result.urls == ["https://example.com", "discord.gg/abc"]
        assert result.invites == ["abc"]
        assert result.mention_count == 1
        assert result.blocked_keyword_hit is False

    @pytest.mark.parametrize("content", ["", None])
    def test_empty_content(self, content):
        result = classify(content)
        assert result.urls == []
        assert result.suspicion_score == 0
