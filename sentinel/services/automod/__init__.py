"""
Auto-Moderation Package
=======================

Pure building blocks (models, escalation, matchers, rate windows) are
re-exported here. The store, detectors, handler and service depend on the
database layer and are imported from their own modules.
"""

from .models import (
    ActionBundle,
    Classification,
    Severity,
    Violation,
    ViolationType,
    VIOLATION_REASONS,
    Warning,
)
from .escalation import (
    EscalationAction,
    EscalationThresholds,
    ModerationState,
    timeout_duration_for,
)
from .matchers import classify, severity_of
from .rate_windows import RateWindowService

__all__ = [
    "ActionBundle",
    "Classification",
    "Severity",
    "Violation",
    "ViolationType",
    "VIOLATION_REASONS",
    "Warning",
    "EscalationAction",
    "EscalationThresholds",
    "ModerationState",
    "timeout_duration_for",
    "classify",
    "severity_of",
    "RateWindowService",
]
