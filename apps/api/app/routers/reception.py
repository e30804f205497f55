from __future__ import annotations

import uuid
from dataclasses import asdict

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from sqlalchemy.orm import Session

from packages.escalation import utcnow

from ..db import get_db
from ..models import Role
from ..schemas import (
    EscalationSweepRequest,
    EscalationSweepResponse,
    QueueStatusFilter,
    RescheduleQueueFilters,
    RescheduleQueueResponse,
    RescheduleRequestPatchRequest,
    RescheduleRequestResponse,
)
from ..services.reschedule_escalation import SweepRun, run_escalation_sweep
from ..services.reschedule_requests import (
    QueueEntry,
    apply_staff_update,
    describe_queue_entry,
    list_reschedule_queue,
)
from ..tenancy import (
    RequestContext,
    get_request_context,
    has_cron_access,
    require_db,
    require_role,
    resolve_request_context,
)

router = APIRouter(prefix="/reception/reschedule-requests", tags=["reception"])


def _serialize_entry(entry: QueueEntry) -> RescheduleRequestResponse:
    row = entry.request
    return RescheduleRequestResponse(
        id=row.id,
        tenant_id=row.tenant_id,
        booking_id=row.booking_id,
        lead_id=row.lead_id,
        conversation_id=row.conversation_id,
        status=row.status,
        requested_at=row.requested_at,
        resolved_at=row.resolved_at,
        assigned_to=row.assigned_to,
        assigned_at=row.assigned_at,
        sla_due_at=row.sla_due_at,
        escalation_level=entry.escalation_level,
        last_escalated_at=row.last_escalated_at,
        is_overdue=entry.is_overdue,
        overdue_minutes=entry.overdue_minutes,
        latest_customer_message=row.latest_customer_message,
        option_batch=row.option_batch,
        metadata_json=row.metadata_json or {},
        updated_at=row.updated_at,
    )


def _serialize_run(run: SweepRun) -> EscalationSweepResponse:
    return EscalationSweepResponse.model_validate(asdict(run))


@router.get("", response_model=RescheduleQueueResponse)
def list_reschedule_requests(
    status_filter: QueueStatusFilter = Query(default="all", alias="status"),
    limit: int = Query(default=60, ge=1, le=200),
    db: Session | None = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> RescheduleQueueResponse:
    session = require_db(db)
    snapshot = list_reschedule_queue(
        db=session,
        tenant_id=context.current_tenant_id,
        status_filter=status_filter,
        limit=limit,
    )
    return RescheduleQueueResponse(
        generated_at=snapshot.generated_at,
        filters=RescheduleQueueFilters(status=status_filter, limit=limit),
        counts=snapshot.counts,
        action_required=snapshot.action_required,
        overdue_action_required=snapshot.overdue_action_required,
        escalated_action_required=snapshot.escalated_action_required,
        requests=[_serialize_entry(entry) for entry in snapshot.entries],
    )


@router.post("/escalate", response_model=EscalationSweepResponse)
def trigger_escalation_sweep(
    payload: EscalationSweepRequest | None = None,
    db: Session | None = Depends(get_db),
    x_cron_secret: str | None = Header(default=None),
    x_reception_user_id: str | None = Header(default=None),
    x_reception_tenant_id: str | None = Header(default=None),
    x_reception_role: str | None = Header(default=None),
) -> EscalationSweepResponse:
    body = payload or EscalationSweepRequest()
    if has_cron_access(x_cron_secret):
        session = require_db(db)
        run = run_escalation_sweep(
            db=session,
            tenant_id=body.tenant_id,
            dry_run=body.dry_run,
            limit_tenants=body.limit_tenants,
            max_rows=body.max_rows,
        )
        return _serialize_run(run)

    context = resolve_request_context(
        db=db,
        user_id_header=x_reception_user_id,
        tenant_id_header=x_reception_tenant_id,
        role_header=x_reception_role,
    )
    session = require_db(db)
    run = run_escalation_sweep(
        db=session,
        tenant_id=context.current_tenant_id,
        dry_run=body.dry_run,
        max_rows=body.max_rows,
    )
    return _serialize_run(run)


@router.patch("/{request_id}", response_model=RescheduleRequestResponse)
def update_reschedule_request(
    request_id: uuid.UUID,
    payload: RescheduleRequestPatchRequest,
    db: Session | None = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> RescheduleRequestResponse:
    require_role(context, Role.AGENT)
    session = require_db(db)
    row = apply_staff_update(
        db=session,
        tenant_id=context.current_tenant_id,
        request_id=request_id,
        patch=payload,
    )
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="reschedule_request_not_found")
    return _serialize_entry(describe_queue_entry(row, utcnow()))
