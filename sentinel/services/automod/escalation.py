"""
Escalation State Machine
========================

Maps a user's active-warning count onto an enforcement action.

A user is implicitly clean, warned, timed out, kicked or banned depending on
which threshold their active count has reached. Only the highest threshold
reached is applied for a given violation.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from .models import Severity


# =============================================================================
# Enums
# =============================================================================

class EscalationAction(str, Enum):
    WARN = "warn"
    TIMEOUT = "timeout"
    KICK = "kick"
    BAN = "ban"


class ModerationState(str, Enum):
    CLEAN = "clean"
    WARNED = "warned"
    TIMED_OUT = "timed_out"
    KICKED = "kicked"
    BANNED = "banned"


_STATE_FOR_ACTION: Dict[EscalationAction, ModerationState] = {
    EscalationAction.WARN: ModerationState.WARNED,
    EscalationAction.TIMEOUT: ModerationState.TIMED_OUT,
    EscalationAction.KICK: ModerationState.KICKED,
    EscalationAction.BAN: ModerationState.BANNED,
}

# Threshold-driven timeout length, keyed by the newest warning's severity
TIMEOUT_DURATIONS: Dict[Severity, int] = {
    Severity.MINOR: 10 * 60,
    Severity.MODERATE: 60 * 60,
    Severity.SEVERE: 6 * 60 * 60,
}


def timeout_duration_for(severity: Severity) -> int:
    return TIMEOUT_DURATIONS.get(severity, TIMEOUT_DURATIONS[Severity.MODERATE])


# =============================================================================
# Thresholds
# =============================================================================

@dataclass(frozen=True)
class EscalationThresholds:
    """
    Active-warning counts that trigger each action.

    Raises:
        ValueError: If the values are not positive and strictly increasing
            in the order warn < timeout < kick < ban.
    """
    warn: int = 1
    timeout: int = 3
    kick: int = 5
    ban: int = 7

    def __post_init__(self) -> None:
        values = [self.warn, self.timeout, self.kick, self.ban]
        if any(not isinstance(v, int) or isinstance(v, bool) or v < 1 for v in values):
            raise ValueError(f"Thresholds must be positive integers: {values}")
        if any(a >= b for a, b in zip(values, values[1:])):
            raise ValueError(f"Thresholds must increase warn < timeout < kick < ban: {values}")

    @classmethod
    def from_mapping(
        cls,
        data: Optional[Mapping[str, Any]],
        default: Optional["EscalationThresholds"] = None,
    ) -> "EscalationThresholds":
        """Build from a stored mapping; missing keys come from default."""
        base = default or cls()
        if not data:
            return base
        return cls(
            warn=int(data.get("warn", base.warn)),
            timeout=int(data.get("timeout", base.timeout)),
            kick=int(data.get("kick", base.kick)),
            ban=int(data.get("ban", base.ban)),
        )

    def to_dict(self) -> Dict[str, int]:
        return {"warn": self.warn, "timeout": self.timeout, "kick": self.kick, "ban": self.ban}

    def action_for(self, active_count: int) -> Optional[EscalationAction]:
        """Highest action whose threshold the count has reached, or None."""
        if active_count >= self.ban:
            return EscalationAction.BAN
        if active_count >= self.kick:
            return EscalationAction.KICK
        if active_count >= self.timeout:
            return EscalationAction.TIMEOUT
        if active_count >= self.warn:
            return EscalationAction.WARN
        return None

    def state_for(self, active_count: int) -> ModerationState:
        action = self.action_for(active_count)
        return _STATE_FOR_ACTION[action] if action else ModerationState.CLEAN


__all__ = [
    "EscalationAction",
    "ModerationState",
    "EscalationThresholds",
    "TIMEOUT_DURATIONS",
    "timeout_duration_for",
]
