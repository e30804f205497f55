from __future__ import annotations

import uuid
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from packages.escalation import (
    ESCALATION_METADATA_KEY,
    as_mapping,
    as_utc,
    handoff_due_at,
    merge_escalation_metadata,
    normalize_level,
    overdue_minutes,
    utcnow,
)

from ..models import ACTION_REQUIRED_STATUSES, RescheduleRequest, RescheduleRequestStatus
from ..schemas import RescheduleRequestPatchRequest
from ..tenancy import tenant_scoped
from .events import write_automation_event

OPTIONS_SENT_SLA_MINUTES = 120


@dataclass(frozen=True)
class QueueEntry:
    request: RescheduleRequest
    escalation_level: int
    is_overdue: bool
    overdue_minutes: int | None


@dataclass(frozen=True)
class QueueSnapshot:
    generated_at: datetime
    entries: list[QueueEntry]
    counts: dict[str, int]
    action_required: int
    overdue_action_required: int
    escalated_action_required: int


def _status_value(status: Any) -> str:
    return status.value if isinstance(status, RescheduleRequestStatus) else str(status)


def describe_queue_entry(row: RescheduleRequest, now: datetime) -> QueueEntry:
    due_at = as_utc(row.sla_due_at)
    action_required = row.status in ACTION_REQUIRED_STATUSES
    is_overdue = bool(action_required and due_at is not None and due_at < now)
    return QueueEntry(
        request=row,
        escalation_level=normalize_level(row.escalation_level),
        is_overdue=is_overdue,
        overdue_minutes=overdue_minutes(now, due_at) if is_overdue and due_at is not None else None,
    )


def list_reschedule_queue(
    db: Session,
    tenant_id: uuid.UUID,
    status_filter: str = "all",
    limit: int = 60,
    now: datetime | None = None,
) -> QueueSnapshot:
    snapshot_now = as_utc(now) or utcnow()
    stmt = tenant_scoped(select(RescheduleRequest), tenant_id, RescheduleRequest)
    if status_filter != "all":
        stmt = stmt.where(RescheduleRequest.status == RescheduleRequestStatus(status_filter))
    rows = db.scalars(stmt.order_by(RescheduleRequest.requested_at.desc()).limit(limit)).all()

    entries = [describe_queue_entry(row, snapshot_now) for row in rows]
    action_entries = [entry for entry in entries if entry.request.status in ACTION_REQUIRED_STATUSES]
    return QueueSnapshot(
        generated_at=snapshot_now,
        entries=entries,
        counts=dict(Counter(_status_value(row.status) for row in rows)),
        action_required=len(action_entries),
        overdue_action_required=sum(1 for entry in action_entries if entry.is_overdue),
        escalated_action_required=sum(1 for entry in action_entries if entry.escalation_level > 0),
    )


def get_reschedule_request(db: Session, tenant_id: uuid.UUID, request_id: uuid.UUID) -> RescheduleRequest | None:
    return db.scalar(
        tenant_scoped(
            select(RescheduleRequest).where(RescheduleRequest.id == request_id),
            tenant_id,
            RescheduleRequest,
        )
    )


def apply_staff_update(
    db: Session,
    tenant_id: uuid.UUID,
    request_id: uuid.UUID,
    patch: RescheduleRequestPatchRequest,
    now: datetime | None = None,
) -> RescheduleRequest | None:
    """Apply a staff triage change (status, note, assignee, deadline) to one request."""
    row = get_reschedule_request(db=db, tenant_id=tenant_id, request_id=request_id)
    if row is None:
        return None

    update_now = as_utc(now) or utcnow()
    fields = patch.model_fields_set
    metadata = as_mapping(row.metadata_json)
    if "note" in fields:
        metadata["staffNote"] = patch.note or None
    metadata["staffUpdatedAt"] = update_now.isoformat()

    if patch.status is not None:
        new_status = RescheduleRequestStatus(patch.status)
        row.status = new_status
        row.resolved_at = update_now if new_status == RescheduleRequestStatus.CLOSED else None
        if "sla_due_at" not in fields:
            if new_status == RescheduleRequestStatus.CLOSED:
                row.sla_due_at = None
                row.escalation_level = 0
                row.last_escalated_at = None
                if ESCALATION_METADATA_KEY in metadata:
                    metadata = merge_escalation_metadata(metadata, {"level": 0, "resetAt": update_now.isoformat()})
            elif new_status == RescheduleRequestStatus.HANDOFF:
                row.sla_due_at = handoff_due_at(update_now)
            elif new_status == RescheduleRequestStatus.OPTIONS_SENT:
                row.sla_due_at = update_now + timedelta(minutes=OPTIONS_SENT_SLA_MINUTES)

    if "assignee" in fields:
        assignee = (patch.assignee or "").strip()
        row.assigned_to = assignee or None
        row.assigned_at = update_now if assignee else None

    if "sla_due_at" in fields:
        row.sla_due_at = patch.sla_due_at

    row.metadata_json = metadata
    row.updated_at = update_now
    db.flush()

    write_automation_event(
        db=db,
        tenant_id=tenant_id,
        lead_id=row.lead_id,
        conversation_id=row.conversation_id,
        event_type="reschedule_request_status_updated",
        payload_json={
            "requestId": str(row.id),
            "status": patch.status,
            "note": patch.note,
            "assignee": patch.assignee,
            "slaDueAt": patch.sla_due_at.isoformat() if patch.sla_due_at is not None else None,
        },
    )
    db.commit()
    db.refresh(row)
    return row
