"""
Database Schema Module
======================

Table definitions for the warning ledger and per-guild blocklists.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sentinel.core.database.manager import DatabaseManager


class SchemaMixin:
    """Mixin for database schema initialization."""

    def _init_tables(self: "DatabaseManager") -> None:
        """
        Initialize all database tables.

        DESIGN: Tables are created if not exist, allowing safe restarts.
        Warnings are soft-deleted only, so the table doubles as the audit trail.
        """
        conn = self._ensure_connection()
        cursor = conn.cursor()

        # -----------------------------------------------------------------
        # Warnings Table
        # DESIGN: duration 0 = permanent; expired is a reporting marker set
        # by the cleanup sweep, activeness is always recomputed from time
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS warnings (
                id TEXT PRIMARY KEY,
                guild_id INTEGER NOT NULL,
                user_id INTEGER NOT NULL,
                moderator_id INTEGER NOT NULL,
                reason TEXT NOT NULL,
                severity TEXT NOT NULL DEFAULT 'minor',
                duration REAL NOT NULL DEFAULT 0,
                created_at REAL NOT NULL,
                removed INTEGER NOT NULL DEFAULT 0,
                removed_by INTEGER,
                removed_reason TEXT,
                removed_at REAL,
                expired INTEGER NOT NULL DEFAULT 0,
                appeal_status TEXT,
                appeal_reason TEXT,
                appealed_at REAL
            )
        """)
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_warnings_guild_user "
            "ON warnings(guild_id, user_id)"
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_warnings_created "
            "ON warnings(created_at)"
        )

        # -----------------------------------------------------------------
        # Blocklist Configs Table
        # DESIGN: One JSON document per (guild, kind), kind is words/domains
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS blocklist_configs (
                guild_id INTEGER NOT NULL,
                kind TEXT NOT NULL,
                data TEXT NOT NULL,
                updated_at REAL NOT NULL,
                PRIMARY KEY (guild_id, kind)
            )
        """)

        conn.commit()
