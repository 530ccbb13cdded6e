"""
Sentinel - Discord Auto-Moderation Bot
======================================

Content filtering, rate limiting and a warning ledger with escalation.
"""

__version__ = "1.0.0"
