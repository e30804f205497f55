from packages.escalation.clock import as_utc, utcnow
from packages.escalation.metadata import (
    ESCALATION_METADATA_KEY,
    as_mapping,
    merge_escalation_metadata,
)
from packages.escalation.policy import (
    ACTION_REQUIRED_STATUSES,
    AUTO_HANDOFF_STATUSES,
    HANDOFF_GRACE_MINUTES,
    MAX_ESCALATION_LEVEL,
    EscalationDecision,
    decide_escalation,
    escalation_event_type,
    handoff_due_at,
    level_for,
    normalize_level,
    overdue_minutes,
    should_auto_handoff,
)

__all__ = [
    "ACTION_REQUIRED_STATUSES",
    "AUTO_HANDOFF_STATUSES",
    "ESCALATION_METADATA_KEY",
    "HANDOFF_GRACE_MINUTES",
    "MAX_ESCALATION_LEVEL",
    "EscalationDecision",
    "as_mapping",
    "as_utc",
    "decide_escalation",
    "escalation_event_type",
    "handoff_due_at",
    "level_for",
    "merge_escalation_metadata",
    "normalize_level",
    "overdue_minutes",
    "should_auto_handoff",
    "utcnow",
]
