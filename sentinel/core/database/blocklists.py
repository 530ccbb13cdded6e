"""
Sentinel - Database Blocklist Operations Module
===============================================

Raw storage for per-guild blocklist documents (one JSON row per guild and
kind). Parsing and defaults live in BlocklistStore.
"""

import time
from typing import Callable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from sentinel.core.database.manager import DatabaseManager


class BlocklistsMixin:
    """Mixin for blocklist config rows."""

    def get_blocklist_config(self: "DatabaseManager", guild_id: int, kind: str) -> Optional[str]:
        """Raw JSON document, or None if the guild has none yet."""
        row = self.fetchone(
            "SELECT data FROM blocklist_configs WHERE guild_id = ? AND kind = ?",
            (guild_id, kind)
        )
        return row["data"] if row else None

    def save_blocklist_config(self: "DatabaseManager", guild_id: int, kind: str, data: str) -> None:
        self.execute(
            """INSERT INTO blocklist_configs (guild_id, kind, data, updated_at)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(guild_id, kind) DO UPDATE
               SET data = excluded.data, updated_at = excluded.updated_at""",
            (guild_id, kind, data, time.time())
        )

    def update_blocklist_config(
        self: "DatabaseManager",
        guild_id: int,
        kind: str,
        transform: Callable[[Optional[str]], str],
    ) -> str:
        """
        Read-modify-write a document inside one transaction.

        Args:
            transform: Receives the current raw JSON (or None) and returns
                the new raw JSON. Exceptions roll the transaction back.

        Returns:
            The stored JSON.
        """
        with self.transaction() as tx:
            tx.execute(
                "SELECT data FROM blocklist_configs WHERE guild_id = ? AND kind = ?",
                (guild_id, kind)
            )
            row = tx.fetchone()
            data = transform(row["data"] if row else None)
            tx.execute(
                """INSERT INTO blocklist_configs (guild_id, kind, data, updated_at)
                   VALUES (?, ?, ?, ?)
                   ON CONFLICT(guild_id, kind) DO UPDATE
                   SET data = excluded.data, updated_at = excluded.updated_at""",
                (guild_id, kind, data, time.time())
            )
        return data
