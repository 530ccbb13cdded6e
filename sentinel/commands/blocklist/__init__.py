"""
Sentinel - Blocklist Command Package
====================================
"""

from typing import TYPE_CHECKING

from sentinel.core.logger import logger

from .cog import BlocklistCog

if TYPE_CHECKING:
    from sentinel.bot import SentinelBot


async def setup(bot: "SentinelBot") -> None:
    """Load the Blocklist cog."""
    await bot.add_cog(BlocklistCog(bot))
    logger.tree("Blocklist Cog Loaded", [
        ("Groups", "/blockedwords, /blockeddomains"),
    ], emoji="📝")


__all__ = ["BlocklistCog", "setup"]
