"""
Sentinel - Warn Command Package
===============================
"""

from typing import TYPE_CHECKING

from sentinel.core.logger import logger

from .cog import WarnCog

if TYPE_CHECKING:
    from sentinel.bot import SentinelBot


async def setup(bot: "SentinelBot") -> None:
    """Load the Warn cog."""
    await bot.add_cog(WarnCog(bot))
    logger.tree("Warn Cog Loaded", [
        ("Commands", "/warn, /warnings, /unwarn, /clearwarnings"),
        ("Appeals", "/appeal, /resolveappeal"),
        ("Reports", "/warnstats, /exportwarnings"),
    ], emoji="⚠️")


__all__ = ["WarnCog", "setup"]
