"""
Sentinel - Events Package
=========================

Event handler Cogs, loaded dynamically with load_extension().

DESIGN:
    - messages.py: message create/edit routed through auto-moderation
"""

# =============================================================================
# Event Cog Registry
# =============================================================================

EVENT_COGS = [
    "sentinel.events.messages",
]


__all__ = [
    "EVENT_COGS",
]
