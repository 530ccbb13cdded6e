"""
Auto-Moderation Service
=======================

Per-message pipeline: classify, update rate windows, dispatch detectors,
hand the first violation to the ViolationHandler.
"""

import time
from typing import List, Optional, Sequence, TYPE_CHECKING

import discord

from sentinel.core.config import Config, get_config, is_admin
from sentinel.core.logger import logger

from .config_store import BlocklistStore
from .detectors import DEFAULT_DETECTORS, Detector, MessageContext, RateSignals, dispatch
from .handlers import HandledViolation, ViolationHandler
from .matchers import classify
from .rate_windows import RateWindowService

if TYPE_CHECKING:
    from sentinel.bot import SentinelBot


ADULT_NSFW_LEVELS = (discord.NSFWLevel.explicit, discord.NSFWLevel.age_restricted)


class AutoModService:
    """
    Auto-moderation entry point used by the message listeners.

    DESIGN:
        Collaborators are injected so tests can drive the pipeline with an
        in-memory clock and mocked Discord objects. Blocklists are read from
        the store on every message; there is no config cache to invalidate.
    """

    def __init__(
        self,
        bot: Optional["SentinelBot"],
        store: BlocklistStore,
        rate_windows: RateWindowService,
        handler: ViolationHandler,
        config: Optional[Config] = None,
        detectors: Sequence[Detector] = DEFAULT_DETECTORS,
    ) -> None:
        self.bot = bot
        self.store = store
        self.rate_windows = rate_windows
        self.handler = handler
        self.config = config or get_config()
        self.detectors: List[Detector] = list(detectors)

        logger.tree("Auto-Moderation Service Loaded", [
            ("Detectors", str(len(self.detectors))),
            ("Link Window", f"{rate_windows.max_links} links / {rate_windows.window_seconds}s"),
            ("Max Mentions", str(self.config.max_mentions)),
            ("Link Channel", str(self.config.allowed_link_channel_id or "Not set")),
        ], emoji="🛡️")

    # =========================================================================
    # Pipeline
    # =========================================================================

    async def process_message(
        self,
        message: discord.Message,
        is_edit: bool = False,
        now: Optional[float] = None,
    ) -> Optional[HandledViolation]:
        """
        Run the full pipeline for one message.

        Edits are checked against the same detectors but never touch the
        rate windows.

        Returns:
            What was done for the violation, or None if the message is clean.
        """
        if message.author.bot or message.guild is None:
            return None

        now = time.time() if now is None else now
        author = message.author
        guild_id = message.guild.id
        content = message.content or ""
        admin = is_admin(author)

        created_at = getattr(author, "created_at", None)
        account_age = now - created_at.timestamp() if created_at else None

        classification = classify(content, account_age)
        words = self.store.load_words(guild_id)
        domains = self.store.load_domains(guild_id)

        rates = RateSignals()
        if classification.urls and not is_edit and not admin:
            rates = self._update_rates(author.id, message.channel.id, content, account_age, now)

        ctx = MessageContext(
            content=content,
            classification=classification,
            guild_id=guild_id,
            channel_id=message.channel.id,
            user_id=author.id,
            is_admin=admin,
            words=words,
            domains=domains,
            account_age=account_age,
            max_mentions=self.config.max_mentions,
            allowed_link_channel_id=self.config.allowed_link_channel_id,
            rates=rates,
            invite_inspector=self.inspect_invite,
        )

        logger.debug(
            f"Auto-mod {author.id}: score={classification.suspicion_score} "
            f"bypass={classification.bypass_attempt} format={classification.suspicious_formatting} "
            f"urls={len(classification.urls)} edit={is_edit}"
        )

        violation = await dispatch(self.detectors, ctx)
        if violation is None:
            return None
        return await self.handler.handle(message, violation, ctx)

    def _update_rates(
        self,
        user_id: int,
        channel_id: int,
        content: str,
        account_age: Optional[float],
        now: float,
    ) -> RateSignals:
        windows = self.rate_windows
        windows.register_post(user_id, now)
        return RateSignals(
            link_spam=windows.is_spamming(user_id, account_age, now),
            rapid_posting=windows.is_rapid_posting(user_id, now),
            cross_channel=windows.is_cross_channel_spam(
                user_id, windows.content_key(content), channel_id, now
            ),
        )

    # =========================================================================
    # Invite Inspection
    # =========================================================================

    async def inspect_invite(self, code: str) -> bool:
        """True when the invite points at an age-restricted or explicit server."""
        if self.bot is None:
            return False
        try:
            invite = await self.bot.fetch_invite(code, with_counts=False)
        except discord.HTTPException as e:
            logger.debug(f"Invite lookup failed for {code}: {e}")
            return False

        guild = getattr(invite, "guild", None)
        return getattr(guild, "nsfw_level", None) in ADULT_NSFW_LEVELS


__all__ = ["AutoModService"]
