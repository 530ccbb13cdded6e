"""
Sentinel - Database Warning Operations Module
=============================================

Warning ledger operations.

DESIGN:
    Warnings are never hard-deleted. Removal sets removed/removed_by/
    removed_reason, expiry is recomputed from created_at + duration on every
    read. The persisted `expired` column is only a reporting marker written
    by the cleanup sweep.
"""

import csv
import io
import json
import sqlite3
import time
from collections import Counter
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

from sentinel.core.logger import logger
from sentinel.core.database.base import generate_warning_id
from sentinel.services.automod.models import Severity, Warning

if TYPE_CHECKING:
    from sentinel.core.database.manager import DatabaseManager


# =============================================================================
# Constants
# =============================================================================

APPEAL_MIN_LENGTH = 20
APPEAL_MAX_LENGTH = 500
APPEAL_RESUBMIT_COOLDOWN = 5 * 60

APPEAL_PENDING = "pending"
APPEAL_APPROVED = "approved"
APPEAL_DENIED = "denied"

EXPORT_FIELDS = [
    "id", "guild_id", "user_id", "moderator_id", "reason", "severity",
    "duration", "created_at", "removed", "removed_by", "removed_reason",
    "removed_at", "appeal_status", "appeal_reason", "appealed_at",
]

_ACTIVE_SQL = "removed = 0 AND (duration = 0 OR created_at + duration >= ?)"


class AppealError(ValueError):
    """Raised when an appeal cannot be submitted or resolved."""


def _row_to_warning(row: sqlite3.Row) -> Warning:
    return Warning(
        id=row["id"],
        guild_id=row["guild_id"],
        user_id=row["user_id"],
        moderator_id=row["moderator_id"],
        reason=row["reason"],
        severity=Severity.parse(row["severity"]),
        duration=row["duration"] or 0.0,
        created_at=row["created_at"],
        removed=bool(row["removed"]),
        removed_by=row["removed_by"],
        removed_reason=row["removed_reason"],
        removed_at=row["removed_at"],
        appeal_status=row["appeal_status"],
        appeal_reason=row["appeal_reason"],
        appealed_at=row["appealed_at"],
    )


class WarningsMixin:
    """Mixin for warning-related database operations."""

    # =========================================================================
    # Create
    # =========================================================================

    def _unused_warning_id(self: "DatabaseManager", tx=None) -> str:
        while True:
            warning_id = generate_warning_id()
            if tx is not None:
                tx.execute("SELECT 1 FROM warnings WHERE id = ?", (warning_id,))
                exists = tx.fetchone()
            else:
                exists = self.fetchone("SELECT 1 FROM warnings WHERE id = ?", (warning_id,))
            if not exists:
                return warning_id

    def add_warning(
        self: "DatabaseManager",
        guild_id: int,
        user_id: int,
        reason: str,
        moderator_id: int,
        severity: Severity = Severity.MINOR,
        duration: float = 0,
        now: Optional[float] = None,
    ) -> Warning:
        """
        Record a warning.

        Args:
            guild_id: Guild where the warning was issued.
            user_id: Warned user.
            reason: Human-readable reason.
            moderator_id: Issuer (the bot's own ID for automatic warnings).
            severity: Severity bucket.
            duration: Seconds until expiry, 0 for permanent.
            now: Creation time, defaults to time.time().

        Returns:
            The stored Warning.
        """
        warning, _ = self.add_warning_and_count(
            guild_id, user_id, reason, moderator_id, severity, duration, now
        )
        return warning

    def add_warning_and_count(
        self: "DatabaseManager",
        guild_id: int,
        user_id: int,
        reason: str,
        moderator_id: int,
        severity: Severity = Severity.MINOR,
        duration: float = 0,
        now: Optional[float] = None,
    ) -> Tuple[Warning, int]:
        """
        Insert a warning and read the user's active count in one transaction.

        Returns:
            (warning, active_count) where active_count includes the new warning.
        """
        now = time.time() if now is None else now
        severity = Severity.parse(severity)
        duration = max(0.0, float(duration or 0))

        with self.transaction() as tx:
            warning_id = self._unused_warning_id(tx)
            tx.execute(
                """INSERT INTO warnings
                   (id, guild_id, user_id, moderator_id, reason, severity, duration, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (warning_id, guild_id, user_id, moderator_id, reason, severity.value, duration, now)
            )
            tx.execute(
                f"SELECT COUNT(*) AS count FROM warnings "
                f"WHERE guild_id = ? AND user_id = ? AND {_ACTIVE_SQL}",
                (guild_id, user_id, now)
            )
            row = tx.fetchone()
            active_count = row["count"] if row else 1

        warning = Warning(
            id=warning_id,
            guild_id=guild_id,
            user_id=user_id,
            moderator_id=moderator_id,
            reason=reason,
            severity=severity,
            duration=duration,
            created_at=now,
        )

        logger.tree("Warning Added", [
            ("ID", warning_id),
            ("User ID", str(user_id)),
            ("Moderator ID", str(moderator_id)),
            ("Severity", severity.value),
            ("Reason", reason[:50]),
            ("Active Count", str(active_count)),
        ], emoji="⚠️")

        return warning, active_count

    # =========================================================================
    # Read
    # =========================================================================

    def get_warning(self: "DatabaseManager", warning_id: str) -> Optional[Warning]:
        row = self.fetchone("SELECT * FROM warnings WHERE id = ?", (warning_id.upper(),))
        return _row_to_warning(row) if row else None

    def get_user_warnings(
        self: "DatabaseManager",
        guild_id: int,
        user_id: int,
        include_removed: bool = True,
    ) -> List[Warning]:
        """All warnings for a user in a guild, newest first."""
        query = "SELECT * FROM warnings WHERE guild_id = ? AND user_id = ?"
        if not include_removed:
            query += " AND removed = 0"
        rows = self.fetchall(query + " ORDER BY created_at DESC", (guild_id, user_id))
        return [_row_to_warning(row) for row in rows]

    def get_active_warning_count(
        self: "DatabaseManager",
        guild_id: int,
        user_id: int,
        now: Optional[float] = None,
    ) -> int:
        """Count of warnings that are neither removed nor expired at `now`."""
        now = time.time() if now is None else now
        row = self.fetchone(
            f"SELECT COUNT(*) AS count FROM warnings "
            f"WHERE guild_id = ? AND user_id = ? AND {_ACTIVE_SQL}",
            (guild_id, user_id, now)
        )
        return row["count"] if row else 0

    def get_all_warnings(self: "DatabaseManager", guild_id: int) -> List[Warning]:
        rows = self.fetchall(
            "SELECT * FROM warnings WHERE guild_id = ? ORDER BY created_at DESC",
            (guild_id,)
        )
        return [_row_to_warning(row) for row in rows]

    # =========================================================================
    # Update
    # =========================================================================

    def remove_warning(
        self: "DatabaseManager",
        warning_id: str,
        removed_by: int,
        reason: Optional[str] = None,
        now: Optional[float] = None,
    ) -> Optional[Warning]:
        """
        Soft-remove a warning.

        Returns:
            The updated Warning, or None if it does not exist or was
            already removed.
        """
        now = time.time() if now is None else now
        cursor = self.execute(
            """UPDATE warnings
               SET removed = 1, removed_by = ?, removed_reason = ?, removed_at = ?
               WHERE id = ? AND removed = 0""",
            (removed_by, reason or "No reason provided", now, warning_id.upper())
        )
        if cursor.rowcount == 0:
            return None

        logger.tree("Warning Removed", [
            ("ID", warning_id.upper()),
            ("Removed By", str(removed_by)),
            ("Reason", (reason or "None")[:50]),
        ], emoji="🗑️")
        return self.get_warning(warning_id)

    def clear_warnings(
        self: "DatabaseManager",
        guild_id: int,
        user_id: int,
        removed_by: int,
        reason: Optional[str] = None,
        now: Optional[float] = None,
    ) -> int:
        """Soft-remove every unremoved warning of a user. Returns the count."""
        now = time.time() if now is None else now
        cursor = self.execute(
            """UPDATE warnings
               SET removed = 1, removed_by = ?, removed_reason = ?, removed_at = ?
               WHERE guild_id = ? AND user_id = ? AND removed = 0""",
            (removed_by, reason or "Warnings cleared", now, guild_id, user_id)
        )
        cleared = cursor.rowcount

        logger.tree("Warnings Cleared", [
            ("User ID", str(user_id)),
            ("Cleared", str(cleared)),
            ("By", str(removed_by)),
        ], emoji="🧹")
        return cleared

    def edit_warning(
        self: "DatabaseManager",
        warning_id: str,
        reason: Optional[str] = None,
        severity: Optional[Severity] = None,
        duration: Optional[float] = None,
    ) -> Optional[Warning]:
        """Change reason, severity or duration of an existing warning."""
        updates: List[str] = []
        params: List[Any] = []
        if reason is not None:
            updates.append("reason = ?")
            params.append(reason)
        if severity is not None:
            updates.append("severity = ?")
            params.append(Severity.parse(severity).value)
        if duration is not None:
            updates.append("duration = ?")
            params.append(max(0.0, float(duration)))

        if updates:
            params.append(warning_id.upper())
            cursor = self.execute(
                f"UPDATE warnings SET {', '.join(updates)} WHERE id = ?",
                tuple(params)
            )
            if cursor.rowcount == 0:
                return None
            logger.tree("Warning Edited", [
                ("ID", warning_id.upper()),
                ("Fields", ", ".join(u.split(" ")[0] for u in updates)),
            ], emoji="✏️")

        return self.get_warning(warning_id)

    def mark_expired_warnings(self: "DatabaseManager", now: Optional[float] = None) -> int:
        """Set the expired marker on warnings whose duration has elapsed."""
        now = time.time() if now is None else now
        cursor = self.execute(
            """UPDATE warnings SET expired = 1
               WHERE expired = 0 AND removed = 0 AND duration > 0
               AND created_at + duration < ?""",
            (now,)
        )
        return cursor.rowcount

    # =========================================================================
    # Appeals
    # =========================================================================

    def submit_appeal(
        self: "DatabaseManager",
        warning_id: str,
        user_id: int,
        reason: str,
        now: Optional[float] = None,
    ) -> Warning:
        """
        File an appeal against one of the user's own warnings.

        Raises:
            AppealError: Unknown warning, someone else's warning, removed
                warning, reason length out of range, or a pending appeal
                submitted within the last APPEAL_RESUBMIT_COOLDOWN seconds.
        """
        now = time.time() if now is None else now
        reason = (reason or "").strip()
        if not APPEAL_MIN_LENGTH <= len(reason) <= APPEAL_MAX_LENGTH:
            raise AppealError(
                f"Appeal reason must be {APPEAL_MIN_LENGTH}-{APPEAL_MAX_LENGTH} characters"
            )

        warning = self.get_warning(warning_id)
        if warning is None or warning.user_id != user_id:
            raise AppealError("Warning not found")
        if warning.removed:
            raise AppealError("Warning has already been removed")
        if (
            warning.appeal_status == APPEAL_PENDING
            and warning.appealed_at is not None
            and now - warning.appealed_at < APPEAL_RESUBMIT_COOLDOWN
        ):
            raise AppealError("An appeal for this warning is already pending")

        self.execute(
            """UPDATE warnings
               SET appeal_status = ?, appeal_reason = ?, appealed_at = ?
               WHERE id = ?""",
            (APPEAL_PENDING, reason, now, warning.id)
        )

        logger.tree("Appeal Submitted", [
            ("Warning", warning.id),
            ("User ID", str(user_id)),
        ], emoji="📝")
        return self.get_warning(warning.id)

    def resolve_appeal(
        self: "DatabaseManager",
        warning_id: str,
        moderator_id: int,
        approved: bool,
        note: Optional[str] = None,
        now: Optional[float] = None,
    ) -> Warning:
        """
        Approve or deny a pending appeal. Approval soft-removes the warning.

        Raises:
            AppealError: If the warning has no pending appeal.
        """
        now = time.time() if now is None else now
        warning = self.get_warning(warning_id)
        if warning is None or warning.appeal_status != APPEAL_PENDING:
            raise AppealError("No pending appeal for this warning")

        with self.transaction() as tx:
            tx.execute(
                "UPDATE warnings SET appeal_status = ? WHERE id = ?",
                (APPEAL_APPROVED if approved else APPEAL_DENIED, warning.id)
            )
            if approved:
                tx.execute(
                    """UPDATE warnings
                       SET removed = 1, removed_by = ?, removed_reason = ?, removed_at = ?
                       WHERE id = ? AND removed = 0""",
                    (moderator_id, note or "Appeal approved", now, warning.id)
                )

        logger.tree("Appeal Resolved", [
            ("Warning", warning.id),
            ("Moderator ID", str(moderator_id)),
            ("Outcome", "Approved" if approved else "Denied"),
        ], emoji="⚖️")
        return self.get_warning(warning.id)

    # =========================================================================
    # Reporting
    # =========================================================================

    def get_warning_stats(
        self: "DatabaseManager",
        guild_id: int,
        now: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Totals, status breakdown, active per-severity counts and top offenders."""
        now = time.time() if now is None else now
        warnings = self.get_all_warnings(guild_id)

        active = [w for w in warnings if w.is_active(now)]
        removed = [w for w in warnings if w.removed]
        expired = [w for w in warnings if not w.removed and w.is_expired(now)]

        by_severity = {s.value: 0 for s in Severity}
        for w in active:
            by_severity[w.severity.value] += 1

        offenders = Counter(w.user_id for w in active)

        return {
            "total": len(warnings),
            "active": len(active),
            "expired": len(expired),
            "removed": len(removed),
            "by_severity": by_severity,
            "pending_appeals": sum(1 for w in warnings if w.appeal_status == APPEAL_PENDING),
            "top_offenders": offenders.most_common(5),
        }

    def export_warnings(self: "DatabaseManager", guild_id: int, fmt: str = "json") -> str:
        """
        Serialize every warning of a guild.

        Raises:
            ValueError: If fmt is neither "json" nor "csv".
        """
        rows = [w.to_dict() for w in self.get_all_warnings(guild_id)]
        fmt = fmt.lower()

        if fmt == "json":
            return json.dumps(rows, indent=2)
        if fmt == "csv":
            buffer = io.StringIO()
            writer = csv.DictWriter(buffer, fieldnames=EXPORT_FIELDS)
            writer.writeheader()
            writer.writerows(rows)
            return buffer.getvalue()
        raise ValueError(f"Unsupported export format: {fmt}")


__all__ = [
    "WarningsMixin",
    "AppealError",
    "APPEAL_PENDING",
    "APPEAL_APPROVED",
    "APPEAL_DENIED",
]
