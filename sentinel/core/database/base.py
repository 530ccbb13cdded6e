"""
Database Helpers
================

Small helpers shared by the database mixins.
"""

import json
import secrets
import string
from typing import Any, Optional

from sentinel.core.logger import logger


# =============================================================================
# Constants
# =============================================================================

WARNING_ID_LENGTH = 8
WARNING_ID_ALPHABET = string.ascii_uppercase + string.digits


# =============================================================================
# Helper Functions
# =============================================================================

def _safe_json_loads(value: Optional[str], default: Any = None) -> Any:
    """Safely parse JSON, returning default on error."""
    if not value:
        return default
    try:
        return json.loads(value)
    except (json.JSONDecodeError, ValueError):
        logger.warning(f"Corrupted JSON in database: {value[:50] if len(value) > 50 else value}")
        return default


def generate_warning_id() -> str:
    """Random 8-char uppercase alphanumeric identifier."""
    return "".join(secrets.choice(WARNING_ID_ALPHABET) for _ in range(WARNING_ID_LENGTH))


__all__ = ["_safe_json_loads", "generate_warning_id", "WARNING_ID_LENGTH"]
