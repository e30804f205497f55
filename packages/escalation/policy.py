from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

ACTION_REQUIRED_STATUSES: tuple[str, ...] = ("pending", "options_sent", "handoff")
AUTO_HANDOFF_STATUSES: frozenset[str] = frozenset({"pending", "options_sent"})

# (minimum overdue minutes, level), highest threshold first.
ESCALATION_THRESHOLDS: tuple[tuple[int, int], ...] = ((180, 3), (60, 2), (15, 1))

MAX_ESCALATION_LEVEL = 5
AUTO_HANDOFF_MIN_LEVEL = 2
HANDOFF_GRACE_MINUTES = 30


@dataclass(frozen=True)
class EscalationDecision:
    overdue_minutes: int
    previous_level: int
    target_level: int
    escalate: bool
    auto_handoff: bool


def level_for(overdue_minutes: int) -> int:
    for minimum, level in ESCALATION_THRESHOLDS:
        if overdue_minutes >= minimum:
            return level
    return 0


def normalize_level(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if not math.isfinite(value):
        return 0
    return max(0, min(MAX_ESCALATION_LEVEL, math.floor(value)))


def should_auto_handoff(target_level: int, current_status: str) -> bool:
    return target_level >= AUTO_HANDOFF_MIN_LEVEL and current_status in AUTO_HANDOFF_STATUSES


def overdue_minutes(now: datetime, due_at: datetime) -> int:
    elapsed = (now - due_at).total_seconds()
    return max(1, math.floor(elapsed / 60))


def handoff_due_at(now: datetime, minutes: int = HANDOFF_GRACE_MINUTES) -> datetime:
    return now + timedelta(minutes=max(1, minutes))


def decide_escalation(overdue: int, current_level: Any, current_status: str) -> EscalationDecision:
    previous_level = normalize_level(current_level)
    target_level = level_for(overdue)
    if target_level <= previous_level:
        return EscalationDecision(
            overdue_minutes=overdue,
            previous_level=previous_level,
            target_level=target_level,
            escalate=False,
            auto_handoff=False,
        )
    return EscalationDecision(
        overdue_minutes=overdue,
        previous_level=previous_level,
        target_level=target_level,
        escalate=True,
        auto_handoff=should_auto_handoff(target_level, current_status),
    )


def escalation_event_type(level: int) -> str:
    return f"reschedule_request_escalated_l{level}"
