"""
Sentinel - Warn Command Cog
===========================

Warning ledger commands.

Features:
    - /warn <user> <reason> [severity] [hours]: Issue a warning
    - /warnings <user>: List a user's warnings
    - /unwarn <id> [reason]: Remove a warning
    - /clearwarnings <user> [reason]: Remove every warning of a user
    - /appeal <id> <reason>: Appeal one of your own warnings
    - /resolveappeal <id> <approve> [note]: Approve or deny an appeal
    - /warnstats: Guild warning statistics
    - /exportwarnings [format]: Download the guild's ledger
"""

import io
import time
from datetime import datetime, timezone
from typing import List, Optional, TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from sentinel.core.config import EmbedColors, check_mod_permission
from sentinel.core.database import AppealError, get_db
from sentinel.core.logger import logger
from sentinel.services.automod.models import Severity, Warning

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

EXPORT_CHOICES = [
    app_commands.Choice(name="JSON", value="json"),
    app_commands.Choice(name="CSV", value="csv"),
]

MAX_LISTED_WARNINGS = 10


def format_warning_line(warning: Warning, now: float) -> str:
    """One line per warning for the /warnings embed."""
    if warning.removed:
        status = "🗑️ removed"
    elif warning.is_expired(now):
        status = "⌛ expired"
    else:
        expires = warning.expires_at
        status = f"🟡 active until <t:{int(expires)}:R>" if expires else "🟡 active"

    created = f"<t:{int(warning.created_at)}:R>"
    appeal = f" · appeal {warning.appeal_status}" if warning.appeal_status else ""
    return f"`{warning.id}` {status} · {warning.severity.value} · {created}{appeal}\n└ {warning.reason[:80]}"


# =============================================================================
# Warn Cog
# =============================================================================

class WarnCog(commands.Cog):
    """Warning ledger commands."""

    def __init__(self, bot: "SentinelBot") -> None:
        self.bot = bot
        self.db = get_db()

    # =========================================================================
    # Warn
    # =========================================================================

    @app_commands.command(name="warn", description="Issue a warning to a user")
    @app_commands.describe(
        user="The user to warn",
        reason="Reason for the warning",
        severity="How serious the violation is",
        hours="Hours until the warning expires (empty = never)",
    )
    @app_commands.choices(severity=SEVERITY_CHOICES)
    @app_commands.guild_only()
    async def warn(
        self,
        interaction: discord.Interaction,
        user: discord.Member,
        reason: str,
        severity: Optional[app_commands.Choice[str]] = None,
        hours: Optional[app_commands.Range[int, 1, 8760]] = None,
    ) -> None:
        if not await check_mod_permission(interaction):
            return
        if user.bot or user.id == interaction.user.id:
            await interaction.response.send_message("❌ You can't warn that user.", ephemeral=True)
            return

        await interaction.response.defer()

        level = Severity.parse(severity.value if severity else None)
        words = self.bot.blocklist_store.load_words(interaction.guild.id)
        thresholds = words.escalation_thresholds if words.auto_escalation else None

        warning, active, action = await self.bot.warning_service.issue_warning(
            user,
            interaction.user,
            reason[:500],
            level,
            (hours or 0) * 3600,
            thresholds,
        )

        logger.tree("USER WARNED", [
            ("User", f"{user} ({user.id})"),
            ("Moderator", f"{interaction.user} ({interaction.user.id})"),
            ("Warning", warning.id),
            ("Active", str(active)),
            ("Escalation", action.value if action else "-"),
        ], emoji="👮")

        embed = discord.Embed(title="⚠️ User Warned", color=EmbedColors.GOLD)
        embed.add_field(name="User", value=user.mention, inline=True)
        embed.add_field(name="Moderator", value=interaction.user.mention, inline=True)
        embed.add_field(name="Warning", value=f"`{warning.id}`", inline=True)
        embed.add_field(name="Active Warnings", value=f"`{active}`", inline=True)
        embed.add_field(name="Severity", value=level.value, inline=True)
        if action is not None:
            embed.add_field(name="Escalation", value=action.value, inline=True)
        embed.add_field(name="Reason", value=reason[:1024], inline=False)

        try:
            await interaction.followup.send(embed=embed)
        except discord.HTTPException as e:
            logger.error("Warn Followup Failed", [
                ("User", f"{user} ({user.id})"),
                ("Error", str(e)[:100]),
            ])

    # =========================================================================
    # Listing
    # =========================================================================

    @app_commands.command(name="warnings", description="List a user's warnings")
    @app_commands.describe(user="The user to look up")
    @app_commands.guild_only()
    async def warnings(self, interaction: discord.Interaction, user: discord.Member) -> None:
        if not await check_mod_permission(interaction):
            return

        now = time.time()
        history = await self.bot.warning_service.get_user_warnings(interaction.guild.id, user.id)
        active = sum(1 for w in history if w.is_active(now))

        embed = discord.Embed(
            title=f"📋 Warnings for {user.display_name}",
            color=EmbedColors.INFO,
        )
        if not history:
            embed.description = "No warnings on record."
        else:
            lines: List[str] = [format_warning_line(w, now) for w in history[:MAX_LISTED_WARNINGS]]
            if len(history) > MAX_LISTED_WARNINGS:
                lines.append(f"... and {len(history) - MAX_LISTED_WARNINGS} more")
            embed.description = "\n".join(lines)[:4096]
        embed.set_footer(text=f"{active} active · {len(history)} total")

        await interaction.response.send_message(embed=embed, ephemeral=True)

    # =========================================================================
    # Removal
    # =========================================================================

    @app_commands.command(name="unwarn", description="Remove a warning by ID")
    @app_commands.describe(warning_id="The 8-character warning ID", reason="Why it is removed")
    @app_commands.guild_only()
    async def unwarn(
        self,
        interaction: discord.Interaction,
        warning_id: str,
        reason: Optional[str] = None,
    ) -> None:
        if not await check_mod_permission(interaction):
            return

        words = self.bot.blocklist_store.load_words(interaction.guild.id)
        warning = await self.bot.warning_service.remove_warning(
            interaction.guild,
            warning_id.strip(),
            interaction.user.id,
            reason,
            words.escalation_thresholds,
        )
        if warning is None:
            await interaction.response.send_message(
                f"❌ No active warning `{warning_id.upper()}` in this server.",
                ephemeral=True,
            )
            return

        await interaction.response.send_message(
            f"✅ Warning `{warning.id}` removed from <@{warning.user_id}>.",
            ephemeral=True,
        )

    @app_commands.command(name="clearwarnings", description="Remove every warning of a user")
    @app_commands.describe(user="The user to clear", reason="Why the warnings are cleared")
    @app_commands.guild_only()
    async def clearwarnings(
        self,
        interaction: discord.Interaction,
        user: discord.Member,
        reason: Optional[str] = None,
    ) -> None:
        if not await check_mod_permission(interaction):
            return

        cleared = await self.bot.warning_service.clear_warnings(
            interaction.guild, user.id, interaction.user.id, reason
        )
        await interaction.response.send_message(
            f"🧹 Cleared {cleared} warning(s) from {user.mention}.",
            ephemeral=True,
            allowed_mentions=discord.AllowedMentions.none(),
        )

    # =========================================================================
    # Appeals
    # =========================================================================

    @app_commands.command(name="appeal", description="Appeal one of your warnings")
    @app_commands.describe(warning_id="The warning ID", reason="Why the warning should be removed (20-500 characters)")
    @app_commands.guild_only()
    async def appeal(self, interaction: discord.Interaction, warning_id: str, reason: str) -> None:
        existing = self.db.get_warning(warning_id.strip())
        if existing is None or existing.guild_id != interaction.guild.id:
            await interaction.response.send_message("❌ Warning not found.", ephemeral=True)
            return

        try:
            warning = self.db.submit_appeal(existing.id, interaction.user.id, reason)
        except AppealError as e:
            await interaction.response.send_message(f"❌ {e}.", ephemeral=True)
            return

        await self.bot.logging_service.log_action(interaction.guild, "appeal_resolved", {
            "description": "New appeal submitted",
            "warning_id": warning.id,
            "user": interaction.user,
            "original_reason": warning.reason,
            "appeal": warning.appeal_reason,
        }, interaction.user)
        await interaction.response.send_message(
            f"📝 Appeal for `{warning.id}` submitted. A moderator will review it.",
            ephemeral=True,
        )

    @app_commands.command(name="resolveappeal", description="Approve or deny a warning appeal")
    @app_commands.describe(warning_id="The warning ID", approve="Approve (removes the warning) or deny", note="Note for the log")
    @app_commands.guild_only()
    async def resolveappeal(
        self,
        interaction: discord.Interaction,
        warning_id: str,
        approve: bool,
        note: Optional[str] = None,
    ) -> None:
        if not await check_mod_permission(interaction):
            return

        words = self.bot.blocklist_store.load_words(interaction.guild.id)
        try:
            warning = await self.bot.warning_service.resolve_appeal(
                interaction.guild,
                warning_id.strip(),
                interaction.user.id,
                approve,
                note,
                words.escalation_thresholds,
            )
        except AppealError as e:
            await interaction.response.send_message(f"❌ {e}.", ephemeral=True)
            return

        if warning is None:
            await interaction.response.send_message("❌ Warning not found.", ephemeral=True)
            return

        await self.bot.logging_service.log_action(interaction.guild, "appeal_resolved", {
            "warning_id": warning.id,
            "user": f"<@{warning.user_id}>",
            "outcome": "Approved" if approve else "Denied",
            "note": note,
        }, interaction.user)
        await interaction.response.send_message(
            f"⚖️ Appeal for `{warning.id}` {'approved' if approve else 'denied'}.",
            ephemeral=True,
        )

    # =========================================================================
    # Reporting
    # =========================================================================

    @app_commands.command(name="warnstats", description="Warning statistics for this server")
    @app_commands.guild_only()
    async def warnstats(self, interaction: discord.Interaction) -> None:
        if not await check_mod_permission(interaction):
            return

        stats = self.db.get_warning_stats(interaction.guild.id)

        embed = discord.Embed(title="📊 Warning Statistics", color=EmbedColors.INFO)
        embed.add_field(name="Total", value=f"`{stats['total']}`", inline=True)
        embed.add_field(name="Active", value=f"`{stats['active']}`", inline=True)
        embed.add_field(name="Expired", value=f"`{stats['expired']}`", inline=True)
        embed.add_field(name="Removed", value=f"`{stats['removed']}`", inline=True)
        embed.add_field(name="Pending Appeals", value=f"`{stats['pending_appeals']}`", inline=True)
        embed.add_field(
            name="Active by Severity",
            value="\n".join(f"{k}: `{v}`" for k, v in stats["by_severity"].items()),
            inline=True,
        )
        if stats["top_offenders"]:
            embed.add_field(
                name="Top Offenders",
                value="\n".join(f"<@{uid}>: `{count}`" for uid, count in stats["top_offenders"]),
                inline=False,
            )

        await interaction.response.send_message(embed=embed, ephemeral=True)

    @app_commands.command(name="exportwarnings", description="Export this server's warning ledger")
    @app_commands.choices(fmt=EXPORT_CHOICES)
    @app_commands.rename(fmt="format")
    @app_commands.guild_only()
    async def exportwarnings(
        self,
        interaction: discord.Interaction,
        fmt: Optional[app_commands.Choice[str]] = None,
    ) -> None:
        if not await check_mod_permission(interaction):
            return

        extension = fmt.value if fmt else "json"
        data = self.db.export_warnings(interaction.guild.id, extension)
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d")

        await interaction.response.send_message(
            f"📦 Warning export for **{interaction.guild.name}**",
            file=discord.File(io.BytesIO(data.encode("utf-8")), filename=f"warnings-{stamp}.{extension}"),
            ephemeral=True,
        )


__all__ = ["WarnCog", "format_warning_line"]
