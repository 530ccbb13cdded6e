"""
Sentinel - Blocklist Command Cog
================================

Moderator commands for per-guild blocked words and blocked domains.

DESIGN:
    Both groups share one implementation keyed by blocklist kind. Every
    edit goes through BlocklistStore.update(), so concurrent edits from two
    moderators are applied one after the other instead of overwriting.

Commands:
    /blockedwords add|remove|whitelist|list|config|thresholds
    /blockeddomains add|remove|whitelist|channels|list|config|thresholds
"""

from functools import partial
from typing import Callable, Optional, TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from sentinel.core.config import EmbedColors, check_mod_permission
from sentinel.core.logger import logger
from sentinel.services.automod.config_store import KIND_DOMAINS, KIND_WORDS, BlocklistConfig
from sentinel.services.automod.models import Severity

from .helpers import (
    TOGGLE_SETTINGS,
    add_item,
    normalize_item,
    remove_item,
    set_setting,
    set_thresholds,
    toggle_allowed_channel,
    toggle_whitelist,
)

if TYPE_CHECKING:
    from sentinel.bot import SentinelBot


# =============================================================================
# Constants
# =============================================================================

SEVERITY_CHOICES = [
    app_commands.Choice(name="Minor", value=Severity.MINOR.value),
    app_commands.Choice(name="Moderate", value=Severity.MODERATE.value),
    app_commands.Choice(name="Severe", value=Severity.SEVERE.value),
]

SETTING_CHOICES = [
    app_commands.Choice(name=name.replace("_", " ").title(), value=name)
    for name in TOGGLE_SETTINGS + ("delete_messages",)
]

LIST_PREVIEW_LIMIT = 1000

KIND_LABELS = {KIND_WORDS: "Blocked Words", KIND_DOMAINS: "Blocked Domains"}


def summarize_config(config: BlocklistConfig) -> discord.Embed:
    """Embed listing items per severity, the whitelist and the switches."""
    embed = discord.Embed(title=f"📝 {KIND_LABELS[config.kind]}", color=EmbedColors.INFO)

    for severity in Severity:
        members = sorted(config.severity_levels.get(severity, set()) & config.items)
        value = ", ".join(f"`{m}`" for m in members) or "-"
        embed.add_field(name=severity.value.title(), value=value[:LIST_PREVIEW_LIMIT], inline=False)

    unbucketed = sorted(config.items - set().union(*config.severity_levels.values()))
    if unbucketed:
        embed.add_field(
            name="Unclassified (minor)",
            value=", ".join(f"`{m}`" for m in unbucketed)[:LIST_PREVIEW_LIMIT],
            inline=False,
        )

    embed.add_field(
        name="Whitelist",
        value=(", ".join(f"`{w}`" for w in sorted(config.whitelist)) or "-")[:LIST_PREVIEW_LIMIT],
        inline=False,
    )

    if config.kind == KIND_DOMAINS:
        embed.add_field(
            name="Allowed Link Channels",
            value=(", ".join(f"<#{c}>" for c in sorted(config.allowed_channels)) or "-")[:LIST_PREVIEW_LIMIT],
            inline=False,
        )

    switches = [f"{name}: {'✅' if getattr(config, name) else '❌'}" for name in TOGGLE_SETTINGS]
    if config.kind == KIND_DOMAINS:
        switches.append(f"delete_messages: {'✅' if config.delete_messages else '❌'}")
    embed.add_field(name="Settings", value="\n".join(switches), inline=True)

    t = config.escalation_thresholds
    embed.add_field(
        name="Escalation",
        value=f"warn `{t.warn}` · timeout `{t.timeout}` · kick `{t.kick}` · ban `{t.ban}`",
        inline=True,
    )
    return embed


# =============================================================================
# Blocklist Cog
# =============================================================================

class BlocklistCog(commands.Cog):
    """Blocked words and blocked domains administration."""

    words = app_commands.Group(
        name="blockedwords",
        description="Manage blocked words",
        guild_only=True,
    )
    domains = app_commands.Group(
        name="blockeddomains",
        description="Manage blocked domains",
        guild_only=True,
    )

    def __init__(self, bot: "SentinelBot") -> None:
        self.bot = bot

    # =========================================================================
    # Shared Implementation
    # =========================================================================

    async def _apply(
        self,
        interaction: discord.Interaction,
        kind: str,
        mutator: Callable[[BlocklistConfig], None],
        summary: str,
    ) -> None:
        if not await check_mod_permission(interaction):
            return

        try:
            config = self.bot.blocklist_store.update(interaction.guild.id, kind, mutator)
        except ValueError as e:
            await interaction.response.send_message(f"❌ {e}.", ephemeral=True)
            return

        if config is None:
            await interaction.response.send_message(
                "❌ Could not save the change. Please try again.",
                ephemeral=True,
            )
            return

        logger.tree("Blocklist Updated", [
            ("Guild", f"{interaction.guild.name} ({interaction.guild.id})"),
            ("Kind", kind),
            ("Change", summary),
            ("Moderator", f"{interaction.user} ({interaction.user.id})"),
        ], emoji="📝")

        await self.bot.logging_service.log_action(interaction.guild, "blocklist_updated", {
            "list": KIND_LABELS[kind],
            "change": summary,
            "moderator": interaction.user,
        }, interaction.user)

        await interaction.response.send_message(f"✅ {summary}", ephemeral=True)

    async def _add(self, interaction, kind, item, severity) -> None:
        try:
            item = normalize_item(kind, item)
        except ValueError as e:
            await interaction.response.send_message(f"❌ {e}.", ephemeral=True)
            return
        level = Severity.parse(severity.value if severity else None)
        await self._apply(
            interaction, kind,
            partial(add_item, item=item, severity=level),
            f"Blocked `{item}` ({level.value})",
        )

    async def _remove(self, interaction, kind, item) -> None:
        try:
            item = normalize_item(kind, item)
        except ValueError as e:
            await interaction.response.send_message(f"❌ {e}.", ephemeral=True)
            return
        await self._apply(interaction, kind, partial(remove_item, item=item), f"Unblocked `{item}`")

    async def _whitelist(self, interaction, kind, item, remove) -> None:
        try:
            item = normalize_item(kind, item)
        except ValueError as e:
            await interaction.response.send_message(f"❌ {e}.", ephemeral=True)
            return
        await self._apply(
            interaction, kind,
            partial(toggle_whitelist, item=item, remove=bool(remove)),
            f"{'Removed' if remove else 'Added'} `{item}` {'from' if remove else 'to'} the whitelist",
        )

    async def _list(self, interaction, kind) -> None:
        if not await check_mod_permission(interaction):
            return
        config = self.bot.blocklist_store.load(interaction.guild.id, kind)
        await interaction.response.send_message(embed=summarize_config(config), ephemeral=True)

    async def _config(self, interaction, kind, setting, value) -> None:
        await self._apply(
            interaction, kind,
            partial(set_setting, name=setting.value, value=value),
            f"Set `{setting.value}` to `{value}`",
        )

    async def _thresholds(self, interaction, kind, warn, timeout, kick, ban) -> None:
        await self._apply(
            interaction, kind,
            partial(set_thresholds, warn=warn, timeout=timeout, kick=kick, ban=ban),
            "Escalation thresholds updated",
        )

    # =========================================================================
    # /blockedwords
    # =========================================================================

    @words.command(name="add", description="Block a word or phrase")
    @app_commands.choices(severity=SEVERITY_CHOICES)
    async def words_add(
        self,
        interaction: discord.Interaction,
        word: str,
        severity: Optional[app_commands.Choice[str]] = None,
    ) -> None:
        await self._add(interaction, KIND_WORDS, word, severity)

    @words.command(name="remove", description="Unblock a word or phrase")
    async def words_remove(self, interaction: discord.Interaction, word: str) -> None:
        await self._remove(interaction, KIND_WORDS, word)

    @words.command(name="whitelist", description="Add or remove a whitelisted word")
    async def words_whitelist(self, interaction: discord.Interaction, word: str, remove: bool = False) -> None:
        await self._whitelist(interaction, KIND_WORDS, word, remove)

    @words.command(name="list", description="Show blocked words and settings")
    async def words_list(self, interaction: discord.Interaction) -> None:
        await self._list(interaction, KIND_WORDS)

    @words.command(name="config", description="Toggle a blocked-words setting")
    @app_commands.choices(setting=SETTING_CHOICES[:-1])
    async def words_config(
        self,
        interaction: discord.Interaction,
        setting: app_commands.Choice[str],
        value: bool,
    ) -> None:
        await self._config(interaction, KIND_WORDS, setting, value)

    @words.command(name="thresholds", description="Set escalation thresholds for word violations")
    async def words_thresholds(
        self,
        interaction: discord.Interaction,
        warn: Optional[app_commands.Range[int, 1, 100]] = None,
        timeout: Optional[app_commands.Range[int, 1, 100]] = None,
        kick: Optional[app_commands.Range[int, 1, 100]] = None,
        ban: Optional[app_commands.Range[int, 1, 100]] = None,
    ) -> None:
        await self._thresholds(interaction, KIND_WORDS, warn, timeout, kick, ban)

    # =========================================================================
    # /blockeddomains
    # =========================================================================

    @domains.command(name="add", description="Block a domain")
    @app_commands.choices(severity=SEVERITY_CHOICES)
    async def domains_add(
        self,
        interaction: discord.Interaction,
        domain: str,
        severity: Optional[app_commands.Choice[str]] = None,
    ) -> None:
        await self._add(interaction, KIND_DOMAINS, domain, severity)

    @domains.command(name="remove", description="Unblock a domain")
    async def domains_remove(self, interaction: discord.Interaction, domain: str) -> None:
        await self._remove(interaction, KIND_DOMAINS, domain)

    @domains.command(name="whitelist", description="Add or remove a whitelisted domain")
    async def domains_whitelist(self, interaction: discord.Interaction, domain: str, remove: bool = False) -> None:
        await self._whitelist(interaction, KIND_DOMAINS, domain, remove)

    @domains.command(name="channels", description="Add or remove a channel where links are allowed")
    @app_commands.describe(channel="Channel to allow links in", remove="Remove the channel instead")
    async def domains_channels(
        self,
        interaction: discord.Interaction,
        channel: discord.TextChannel,
        remove: bool = False,
    ) -> None:
        await self._apply(
            interaction, KIND_DOMAINS,
            partial(toggle_allowed_channel, channel_id=channel.id, remove=bool(remove)),
            f"{'Removed' if remove else 'Added'} {channel.mention} {'from' if remove else 'to'} the allowed link channels",
        )

    @domains.command(name="list", description="Show blocked domains and settings")
    async def domains_list(self, interaction: discord.Interaction) -> None:
        await self._list(interaction, KIND_DOMAINS)

    @domains.command(name="config", description="Toggle a blocked-domains setting")
    @app_commands.choices(setting=SETTING_CHOICES)
    async def domains_config(
        self,
        interaction: discord.Interaction,
        setting: app_commands.Choice[str],
        value: bool,
    ) -> None:
        await self._config(interaction, KIND_DOMAINS, setting, value)

    @domains.command(name="thresholds", description="Set escalation thresholds for domain violations")
    async def domains_thresholds(
        self,
        interaction: discord.Interaction,
        warn: Optional[app_commands.Range[int, 1, 100]] = None,
        timeout: Optional[app_commands.Range[int, 1, 100]] = None,
        kick: Optional[app_commands.Range[int, 1, 100]] = None,
        ban: Optional[app_commands.Range[int, 1, 100]] = None,
    ) -> None:
        await self._thresholds(interaction, KIND_DOMAINS, warn, timeout, kick, ban)


__all__ = ["BlocklistCog", "summarize_config"]
