"""
Sentinel - Database Module
==========================

SQLite persistence for the warning ledger and per-guild blocklists.
"""

from sentinel.core.database.manager import (
    DatabaseManager,
    get_db,
    DATA_DIR,
    DB_PATH,
)
from sentinel.core.database.base import _safe_json_loads, generate_warning_id
from sentinel.core.database.warnings import (
    AppealError,
    APPEAL_PENDING,
    APPEAL_APPROVED,
    APPEAL_DENIED,
)

__all__ = [
    "DatabaseManager",
    "get_db",
    "DATA_DIR",
    "DB_PATH",
    "_safe_json_loads",
    "generate_warning_id",
    "AppealError",
    "APPEAL_PENDING",
    "APPEAL_APPROVED",
    "APPEAL_DENIED",
]
