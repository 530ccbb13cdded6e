"""
Sentinel - Commands Package
===========================

Slash command Cogs, loaded dynamically with load_extension().

Available Commands:
    /warn, /warnings, /unwarn, /clearwarnings: Warning ledger (moderator)
    /appeal: Appeal your own warning (everyone)
    /resolveappeal, /warnstats, /exportwarnings: Ledger admin (moderator)
    /blockedwords, /blockeddomains: Blocklist administration (moderator)
"""

# =============================================================================
# Command Cog Registry
# =============================================================================

COMMAND_COGS = [
    "sentinel.commands.warn",
    "sentinel.commands.blocklist",
]


__all__ = [
    "COMMAND_COGS",
]
