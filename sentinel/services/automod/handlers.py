"""
Violation Handler
=================

Applies the action bundle of a detected violation: delete, forced timeout
or ledger warning plus escalation, then one notice to the violator.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, TYPE_CHECKING

import discord

from sentinel.core.logger import logger

from .config_store import KIND_DOMAINS
from .constants import NOTICE_DELETE_AFTER, SPAM_TIMEOUT_SECONDS
from .escalation import EscalationAction
from .models import Violation, ViolationType, Warning

if TYPE_CHECKING:
    from sentinel.services.logging_service import LoggingService
    from sentinel.services.warning_service import WarningService
    from .detectors import MessageContext


# =============================================================================
# Result
# =============================================================================

@dataclass
class HandledViolation:
    """What the handler actually did for one violation."""
    violation: Violation
    deleted: bool = False
    timeout_applied: bool = False
    warning: Optional[Warning] = None
    active_count: int = 0
    escalation: Optional[EscalationAction] = None
    notice_sent: bool = False


# =============================================================================
# Handler
# =============================================================================

class ViolationHandler:
    """
    Executes violations against Discord and the warning ledger.

    Every platform call is best-effort: failures are logged and the next
    step still runs.
    """

    def __init__(
        self,
        warning_service: "WarningService",
        logging_service: "LoggingService",
        spam_timeout_seconds: int = SPAM_TIMEOUT_SECONDS,
    ) -> None:
        self.warning_service = warning_service
        self.logging_service = logging_service
        self.spam_timeout_seconds = spam_timeout_seconds

    async def handle(
        self,
        message: discord.Message,
        violation: Violation,
        ctx: "MessageContext",
    ) -> HandledViolation:
        result = HandledViolation(violation=violation)

        logger.tree("Violation Detected", [
            ("User", f"{message.author} ({message.author.id})"),
            ("Type", violation.type.value),
            ("Matched", violation.matched or "-"),
            ("Severity", violation.severity.value),
            ("Score", str(ctx.classification.suspicion_score)),
            ("Forced", str(violation.bundle.force_escalation)),
        ], emoji="🛡️")

        if violation.bundle.delete_message:
            result.deleted = await self._delete(message)

        if violation.bundle.force_escalation:
            result.timeout_applied = await self._apply_forced_timeout(message, violation)
        else:
            await self._record_and_escalate(message, violation, ctx, result)

        if violation.bundle.send_notice:
            result.notice_sent = await self._send_notice(message, result)

        return result

    # =========================================================================
    # Steps
    # =========================================================================

    async def _delete(self, message: discord.Message) -> bool:
        try:
            await message.delete()
            return True
        except discord.NotFound:
            logger.debug(f"Message {message.id} already deleted")
        except discord.HTTPException as e:
            logger.tree("Violation Message Delete Failed", [
                ("User", str(message.author)),
                ("Channel", str(getattr(message.channel, "name", message.channel.id))),
                ("Error", str(e)[:100]),
            ], emoji="⚠️")
        return False

    async def _apply_forced_timeout(self, message: discord.Message, violation: Violation) -> bool:
        guild = message.guild
        member = message.author
        minutes = self.spam_timeout_seconds // 60
        bot_member = guild.me

        if bot_member is None or not bot_member.guild_permissions.moderate_members:
            logger.error("Auto-Mod Timeout Skipped", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("User", f"{member} ({member.id})"),
                ("Reason", "Bot lacks Moderate Members permission"),
            ])
            await self.logging_service.log_action(guild, "automod_action", {
                "user": member,
                "action": "Timeout (Failed - No Permission)",
                "reason": f"Auto-moderation: {violation.type.value}",
                "channel": message.channel,
            }, member)
            return False

        try:
            await member.timeout(
                timedelta(seconds=self.spam_timeout_seconds),
                reason=f"Auto-moderation: {violation.type.value}",
            )
        except discord.HTTPException as e:
            logger.error("Auto-Mod Timeout Failed", [
                ("User", f"{member} ({member.id})"),
                ("Type", violation.type.value),
                ("Error", str(e)[:100]),
            ])
            await self.logging_service.log_action(guild, "automod_action", {
                "user": member,
                "action": "Timeout (Failed)",
                "reason": f"Auto-moderation: {violation.type.value}",
                "channel": message.channel,
            }, member)
            return False

        await self.logging_service.log_action(guild, "automod_action", {
            "user": member,
            "action": "Timeout",
            "reason": violation.reason,
            "duration": f"{minutes} minutes",
            "channel": message.channel,
        }, member)
        return True

    async def _record_and_escalate(
        self,
        message: discord.Message,
        violation: Violation,
        ctx: "MessageContext",
        result: HandledViolation,
    ) -> None:
        policy = ctx.domains if violation.policy == KIND_DOMAINS else ctx.words

        if policy.auto_warn:
            async with self.warning_service.lock(message.guild.id, message.author.id):
                result.warning, result.active_count = await self.warning_service.add_warning_and_count(
                    message.guild.id,
                    message.author.id,
                    self._warning_reason(violation),
                    message.guild.me.id if message.guild.me else 0,
                    violation.severity,
                    0,
                )
                if policy.auto_escalation:
                    result.escalation = await self.warning_service.escalate(
                        message.author,
                        result.active_count,
                        policy.escalation_thresholds,
                        violation.severity,
                    )

        if policy.log_violations:
            await self.logging_service.log_action(message.guild, "automod_action", {
                "user": message.author,
                "action": "warning" if result.warning else "flagged",
                "reason": violation.reason,
                "warning_id": result.warning.id if result.warning else None,
                "escalation": result.escalation.value if result.escalation else None,
                "channel": message.channel,
                "message_content": (message.content or "")[:500],
            }, message.author)

    async def _send_notice(self, message: discord.Message, result: HandledViolation) -> bool:
        try:
            await message.channel.send(
                self._notice_text(message.author, result),
                allowed_mentions=discord.AllowedMentions(
                    everyone=False, users=[message.author], roles=False, replied_user=False,
                ),
                delete_after=NOTICE_DELETE_AFTER,
            )
            return True
        except discord.HTTPException as e:
            logger.error("Violation Notice Failed", [
                ("User", f"{message.author} ({message.author.id})"),
                ("Error", str(e)[:100]),
            ])
            return False

    # =========================================================================
    # Text
    # =========================================================================

    @staticmethod
    def _warning_reason(violation: Violation) -> str:
        if violation.type == ViolationType.BLOCKED_WORD:
            return f'Used blocked word: "{violation.matched}"'
        if violation.type == ViolationType.BLOCKED_DOMAIN:
            return f'Posted blocked domain: "{violation.matched}"'
        return f"Auto-moderation: {violation.reason}"

    def _notice_text(self, author: discord.abc.User, result: HandledViolation) -> str:
        violation = result.violation
        action = "removed" if result.deleted else "flagged"
        mention = author.mention

        if violation.bundle.force_escalation:
            if result.timeout_applied:
                return (
                    f"🔇 {mention}, {violation.reason} detected. "
                    f"You have been timed out for {self.spam_timeout_seconds // 60} minutes."
                )
            return (
                f"⚠️ {mention}, {violation.reason} detected. "
                f"Your message has been {action} (automatic timeout failed)."
            )

        if violation.type == ViolationType.BLOCKED_WORD:
            text = f"{mention}, your message contained a blocked word and has been {action}."
        elif violation.type == ViolationType.BLOCKED_DOMAIN:
            text = f"{mention}, your message contained a blocked domain and has been {action}."
        else:
            text = f"{mention}, {violation.reason} detected. Further violations will result in a timeout."

        if result.warning:
            text += f" You have been issued a warning (`{result.warning.id}`)."
        if result.escalation and result.escalation != EscalationAction.WARN:
            text += f" Escalation applied: **{result.escalation.value}**."
        return text


__all__ = ["ViolationHandler", "HandledViolation"]
