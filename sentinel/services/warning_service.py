"""
Sentinel - Warning Service
==========================

Async facade over the warning ledger plus threshold-driven escalation.

DESIGN:
    The ledger is the source of truth. A warning is committed before any
    platform action is attempted, and a failed timeout/kick/ban is logged
    without touching the stored warning. Warn-then-escalate for one user
    runs under a per-(guild, user) asyncio.Lock, and the insert plus active
    count is a single SQLite transaction, so concurrent violations from the
    same user cannot both read a stale count.
"""

import asyncio
import time
import weakref
from datetime import timedelta
from typing import List, Optional, Tuple

import discord

from sentinel.core.database import DatabaseManager, get_db
from sentinel.core.logger import logger
from sentinel.services.automod.escalation import (
    EscalationAction,
    EscalationThresholds,
    timeout_duration_for,
)
from sentinel.services.automod.models import Severity, Warning
from sentinel.services.logging_service import LoggingService


class WarningService:
    """Records warnings and applies escalation actions."""

    def __init__(
        self,
        db: Optional[DatabaseManager] = None,
        logging_service: Optional[LoggingService] = None,
    ) -> None:
        self.db = db or get_db()
        self.logging_service = logging_service or LoggingService()
        # Entries vanish once no coroutine holds or awaits the lock
        self._locks: "weakref.WeakValueDictionary[Tuple[int, int], asyncio.Lock]" = weakref.WeakValueDictionary()

    def lock(self, guild_id: int, user_id: int) -> asyncio.Lock:
        """Lock serialising ledger writes and escalation for one member."""
        key = (guild_id, user_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    # =========================================================================
    # Ledger
    # =========================================================================

    async def add_warning(
        self,
        guild_id: int,
        user_id: int,
        reason: str,
        moderator_id: int,
        severity: Severity = Severity.MINOR,
        duration: float = 0,
        now: Optional[float] = None,
    ) -> Warning:
        warning, _ = await self.add_warning_and_count(
            guild_id, user_id, reason, moderator_id, severity, duration, now
        )
        return warning

    async def add_warning_and_count(
        self,
        guild_id: int,
        user_id: int,
        reason: str,
        moderator_id: int,
        severity: Severity = Severity.MINOR,
        duration: float = 0,
        now: Optional[float] = None,
    ) -> Tuple[Warning, int]:
        return self.db.add_warning_and_count(
            guild_id, user_id, reason, moderator_id, severity, duration, now
        )

    async def issue_warning(
        self,
        member: discord.Member,
        moderator: discord.abc.User,
        reason: str,
        severity: Severity = Severity.MINOR,
        duration: float = 0,
        thresholds: Optional[EscalationThresholds] = None,
    ) -> Tuple[Warning, int, Optional[EscalationAction]]:
        """
        Manual warning from a moderator.

        Escalation runs only when thresholds are passed in, i.e. when the
        guild has auto-escalation enabled.

        Returns:
            (warning, active count after insert, escalation action or None)
        """
        guild = member.guild
        action: Optional[EscalationAction] = None

        async with self.lock(guild.id, member.id):
            warning, active = self.db.add_warning_and_count(
                guild.id, member.id, reason, moderator.id, severity, duration
            )
            if thresholds is not None:
                action = await self.escalate(
                    member, active, thresholds, severity, f"Auto-escalation: {reason}"
                )

        await self.logging_service.log_action(guild, "warning_added", {
            "user": member,
            "warning_id": warning.id,
            "severity": warning.severity.value,
            "duration": f"{int(duration)}s" if duration else "Permanent",
            "reason": reason,
            "active_warnings": active,
        }, moderator)
        return warning, active, action

    async def clear_warnings(
        self,
        guild: discord.Guild,
        user_id: int,
        removed_by: int,
        reason: Optional[str] = None,
    ) -> int:
        """Soft-remove every warning of a user and lift any active timeout."""
        async with self.lock(guild.id, user_id):
            cleared = self.db.clear_warnings(guild.id, user_id, removed_by, reason)

        if cleared:
            member = guild.get_member(user_id)
            if member is not None and member.is_timed_out():
                try:
                    await member.timeout(None, reason="Warnings cleared")
                except discord.HTTPException as e:
                    logger.error("Timeout Lift Failed", [
                        ("User ID", str(user_id)),
                        ("Error", str(e)[:100]),
                    ])

            await self.logging_service.log_action(guild, "warnings_cleared", {
                "user": f"<@{user_id}>",
                "cleared": cleared,
                "reason": reason or "No reason provided",
            })
        return cleared

    async def get_user_warnings(self, guild_id: int, user_id: int) -> List[Warning]:
        return self.db.get_user_warnings(guild_id, user_id)

    async def remove_warning(
        self,
        guild: discord.Guild,
        warning_id: str,
        removed_by: int,
        reason: Optional[str] = None,
        thresholds: Optional[EscalationThresholds] = None,
    ) -> Optional[Warning]:
        """
        Manually remove a warning and lift an active timeout once the user's
        active count drops below the timeout threshold.

        Returns:
            The removed Warning, or None if it was unknown, already removed
            or belongs to another guild.
        """
        existing = self.db.get_warning(warning_id)
        if existing is None or existing.guild_id != guild.id:
            return None

        async with self.lock(guild.id, existing.user_id):
            warning = self.db.remove_warning(warning_id, removed_by, reason)
            if warning is None:
                return None
            active = self.db.get_active_warning_count(guild.id, warning.user_id)

        thresholds = thresholds or EscalationThresholds()
        if active < thresholds.timeout:
            await self._lift_timeout(guild, warning)

        await self.logging_service.log_action(guild, "warning_removed", {
            "user": f"<@{warning.user_id}>",
            "warning_id": warning.id,
            "original_reason": warning.reason,
            "removal_reason": reason or "No reason provided",
            "active_warnings": active,
        })
        return warning

    async def resolve_appeal(
        self,
        guild: discord.Guild,
        warning_id: str,
        moderator_id: int,
        approved: bool,
        note: Optional[str] = None,
        thresholds: Optional[EscalationThresholds] = None,
    ) -> Optional[Warning]:
        """
        Approve or deny a pending appeal. An approval removes the warning
        and lifts an active timeout the same way a manual removal does.

        Returns:
            The resolved Warning, or None if it is unknown or belongs to
            another guild.

        Raises:
            AppealError: If the warning has no pending appeal.
        """
        existing = self.db.get_warning(warning_id)
        if existing is None or existing.guild_id != guild.id:
            return None

        async with self.lock(guild.id, existing.user_id):
            warning = self.db.resolve_appeal(existing.id, moderator_id, approved, note)
            active = self.db.get_active_warning_count(guild.id, warning.user_id)

        thresholds = thresholds or EscalationThresholds()
        if approved and active < thresholds.timeout:
            await self._lift_timeout(guild, warning)
        return warning

    async def _lift_timeout(self, guild: discord.Guild, warning: Warning) -> None:
        member = guild.get_member(warning.user_id)
        if member is None or not member.is_timed_out():
            return
        try:
            await member.timeout(None, reason=f"Warning {warning.id} removed")
            logger.tree("Timeout Lifted", [
                ("User ID", str(warning.user_id)),
                ("Warning", warning.id),
            ], emoji="🔓")
        except discord.HTTPException as e:
            logger.error("Timeout Lift Failed", [
                ("User ID", str(warning.user_id)),
                ("Error", str(e)[:100]),
            ])

    # =========================================================================
    # Escalation
    # =========================================================================

    async def escalate(
        self,
        member: discord.Member,
        active_count: int,
        thresholds: EscalationThresholds,
        severity: Severity = Severity.MINOR,
        reason: str = "Auto-escalation: Too many warnings",
    ) -> Optional[EscalationAction]:
        """
        Apply the highest action the active count has reached.

        "warn" has no platform call; the caller's notice covers it. Platform
        failures are logged and the action is still returned, since the
        ledger already reflects the intended state.

        Returns:
            The action selected, or None below the warn threshold.
        """
        action = thresholds.action_for(active_count)
        if action is None or action == EscalationAction.WARN:
            return action

        duration = timeout_duration_for(severity)
        try:
            if action == EscalationAction.BAN:
                await member.ban(reason=reason)
            elif action == EscalationAction.KICK:
                await member.kick(reason=reason)
            else:
                await member.timeout(timedelta(seconds=duration), reason=reason)
        except discord.HTTPException as e:
            logger.error("Auto-Escalation Failed", [
                ("User", f"{member} ({member.id})"),
                ("Action", action.value),
                ("Active Warnings", str(active_count)),
                ("Error", str(e)[:100]),
            ])
            return action

        logger.tree("Auto-Escalation Applied", [
            ("User", f"{member} ({member.id})"),
            ("Action", action.value),
            ("Active Warnings", str(active_count)),
            ("Duration", f"{duration // 60}m" if action == EscalationAction.TIMEOUT else "-"),
        ], emoji="📈")

        await self.logging_service.log_action(member.guild, "auto_escalation", {
            "user": member,
            "action": action.value,
            "warning_count": active_count,
            "duration": f"{duration // 60} minutes" if action == EscalationAction.TIMEOUT else None,
            "reason": reason,
        }, member)
        return action

    # =========================================================================
    # Maintenance
    # =========================================================================

    def mark_expired(self, now: Optional[float] = None) -> int:
        return self.db.mark_expired_warnings(time.time() if now is None else now)


__all__ = ["WarningService"]
