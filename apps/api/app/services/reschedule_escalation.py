"""Overdue reschedule-request escalation sweeps.

A sweep loads one tenant's action-required requests whose SLA deadline has passed,
raises their escalation level according to how overdue they are, hands requests to a
human once they cross the auto-handoff level, and appends one automation event per
transition. Levels only ever rise, so re-running a sweep is a no-op until a request
crosses the next threshold.

State updates and event writes are committed separately: a failed event write is
counted and noted but never rolls back the escalation it describes.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from sqlalchemy import String, cast, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from packages.escalation import (
    EscalationDecision,
    as_utc,
    decide_escalation,
    escalation_event_type,
    handoff_due_at,
    merge_escalation_metadata,
    overdue_minutes,
    utcnow,
)

from ..models import ACTION_REQUIRED_STATUSES, RescheduleRequest, RescheduleRequestStatus
from ..settings import settings
from .events import write_automation_event

logger = logging.getLogger(__name__)

MIN_SWEEP_ROWS = 1
MAX_SWEEP_ROWS = 500

SweepMode = Literal["direct", "discovered"]


@dataclass(frozen=True)
class EscalationCandidate:
    id: uuid.UUID
    booking_id: uuid.UUID
    lead_id: uuid.UUID | None
    conversation_id: uuid.UUID | None
    status: str
    sla_due_at: Any
    escalation_level: Any
    metadata: Any


@dataclass
class SweepResult:
    tenant_id: uuid.UUID
    dry_run: bool
    checked: int = 0
    overdue: int = 0
    escalated: int = 0
    auto_handoff: int = 0
    errors: int = 0
    max_level_reached: int = 0
    notes: list[str] = field(default_factory=list)


@dataclass
class SweepTotals:
    tenants: int = 0
    checked: int = 0
    overdue: int = 0
    escalated: int = 0
    auto_handoff: int = 0
    errors: int = 0
    max_level_reached: int = 0


@dataclass
class SweepRun:
    mode: SweepMode
    dry_run: bool
    generated_at: datetime
    tenants: list[SweepResult]
    totals: SweepTotals
    notes: list[str] = field(default_factory=list)


def _error_message(exc: Exception) -> str:
    lines = str(exc).strip().splitlines()
    return (lines[0] if lines else exc.__class__.__name__)[:200]


def clamp_max_rows(value: int | None) -> int:
    requested = settings.escalation_default_max_rows if value is None else int(value)
    return min(MAX_SWEEP_ROWS, max(MIN_SWEEP_ROWS, requested))


def _snapshot(row: Any) -> EscalationCandidate:
    status = row.status.value if isinstance(row.status, RescheduleRequestStatus) else str(row.status)
    return EscalationCandidate(
        id=row.id,
        booking_id=row.booking_id,
        lead_id=row.lead_id,
        conversation_id=row.conversation_id,
        status=status,
        sla_due_at=row.sla_due_at,
        escalation_level=row.escalation_level,
        metadata=row.metadata_json,
    )


def list_escalation_tenants(db: Session, scan_limit: int | None = None) -> list[uuid.UUID]:
    """Tenants with at least one action-required request, best effort.

    Scans a bounded number of rows; any database error yields an empty list so a
    scheduled run simply sweeps nobody this cycle.
    """
    limit = max(1, scan_limit if scan_limit is not None else settings.escalation_discovery_scan_limit)
    try:
        tenant_ids = db.scalars(
            select(RescheduleRequest.tenant_id)
            .where(RescheduleRequest.status.in_(ACTION_REQUIRED_STATUSES))
            .order_by(RescheduleRequest.sla_due_at.asc().nulls_last())
            .limit(limit)
        ).all()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("reschedule escalation tenant discovery failed", exc_info=True)
        return []
    return list(dict.fromkeys(tenant_id for tenant_id in tenant_ids if tenant_id is not None))


def _load_overdue_requests(
    db: Session,
    tenant_id: uuid.UUID,
    now: datetime,
    max_rows: int,
) -> list[EscalationCandidate]:
    # Due dates come back as text and are parsed per row, so one corrupt value
    # cannot fail the whole query.
    rows = db.execute(
        select(
            RescheduleRequest.id,
            RescheduleRequest.booking_id,
            RescheduleRequest.lead_id,
            RescheduleRequest.conversation_id,
            RescheduleRequest.status,
            cast(RescheduleRequest.sla_due_at, String).label("sla_due_at"),
            RescheduleRequest.escalation_level,
            RescheduleRequest.metadata_json,
        )
        .where(
            RescheduleRequest.tenant_id == tenant_id,
            RescheduleRequest.status.in_(ACTION_REQUIRED_STATUSES),
            RescheduleRequest.sla_due_at.is_not(None),
            RescheduleRequest.sla_due_at <= now,
        )
        .order_by(RescheduleRequest.sla_due_at.asc(), RescheduleRequest.id.asc())
        .limit(max_rows)
    ).all()
    return [_snapshot(row) for row in rows]


def _build_update_values(
    candidate: EscalationCandidate,
    decision: EscalationDecision,
    now: datetime,
) -> dict[str, Any]:
    escalation: dict[str, Any] = {
        "level": decision.target_level,
        "escalatedAt": now.isoformat(),
        "overdueMinutes": decision.overdue_minutes,
        "previousLevel": decision.previous_level,
        "previousStatus": candidate.status,
    }
    if decision.auto_handoff:
        escalation["autoHandoff"] = True

    values: dict[str, Any] = {
        "escalation_level": decision.target_level,
        "last_escalated_at": now,
        "updated_at": now,
        "metadata_json": merge_escalation_metadata(candidate.metadata, escalation),
    }
    if decision.auto_handoff:
        values["status"] = RescheduleRequestStatus.HANDOFF
        values["sla_due_at"] = handoff_due_at(now)
    return values


def _apply_escalation_update(
    db: Session,
    candidate: EscalationCandidate,
    tenant_id: uuid.UUID,
    target_level: int,
    values: dict[str, Any],
) -> bool:
    result = db.execute(
        update(RescheduleRequest)
        .where(
            RescheduleRequest.id == candidate.id,
            RescheduleRequest.tenant_id == tenant_id,
            RescheduleRequest.escalation_level < target_level,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return bool(result.rowcount)


def _record_escalation_event(
    db: Session,
    tenant_id: uuid.UUID,
    candidate: EscalationCandidate,
    decision: EscalationDecision,
) -> None:
    write_automation_event(
        db=db,
        tenant_id=tenant_id,
        lead_id=candidate.lead_id,
        conversation_id=candidate.conversation_id,
        event_type=escalation_event_type(decision.target_level),
        payload_json={
            "requestId": str(candidate.id),
            "bookingId": str(candidate.booking_id),
            "previousStatus": candidate.status,
            "currentStatus": RescheduleRequestStatus.HANDOFF.value if decision.auto_handoff else candidate.status,
            "previousLevel": decision.previous_level,
            "level": decision.target_level,
            "overdueMinutes": decision.overdue_minutes,
            "autoHandoff": decision.auto_handoff,
        },
        success=True,
    )
    db.commit()


def _count_escalation(result: SweepResult, decision: EscalationDecision) -> None:
    result.escalated += 1
    if decision.auto_handoff:
        result.auto_handoff += 1
    result.max_level_reached = max(result.max_level_reached, decision.target_level)


def run_escalation_sweep_for_tenant(
    db: Session,
    tenant_id: uuid.UUID,
    dry_run: bool = False,
    max_rows: int | None = None,
    now: datetime | None = None,
) -> SweepResult:
    sweep_now = as_utc(now) or utcnow()
    limit = clamp_max_rows(max_rows)
    result = SweepResult(tenant_id=tenant_id, dry_run=dry_run)

    try:
        candidates = _load_overdue_requests(db=db, tenant_id=tenant_id, now=sweep_now, max_rows=limit)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("reschedule escalation query failed", extra={"tenant_id": str(tenant_id)}, exc_info=True)
        result.errors = 1
        result.notes.append(f"query_failed:{_error_message(exc)}")
        return result

    result.checked = len(candidates)
    for candidate in candidates:
        due_at = as_utc(candidate.sla_due_at)
        if due_at is None:
            logger.warning(
                "reschedule escalation skipped unparseable due date",
                extra={"tenant_id": str(tenant_id), "request_id": str(candidate.id)},
            )
            continue

        result.overdue += 1
        decision = decide_escalation(
            overdue=overdue_minutes(sweep_now, due_at),
            current_level=candidate.escalation_level,
            current_status=candidate.status,
        )
        result.max_level_reached = max(result.max_level_reached, decision.previous_level)
        if not decision.escalate:
            continue

        if dry_run:
            _count_escalation(result, decision)
            continue

        values = _build_update_values(candidate=candidate, decision=decision, now=sweep_now)
        try:
            applied = _apply_escalation_update(
                db=db,
                candidate=candidate,
                tenant_id=tenant_id,
                target_level=decision.target_level,
                values=values,
            )
        except SQLAlchemyError as exc:
            db.rollback()
            result.errors += 1
            result.notes.append(f"update_failed:{candidate.id}:{_error_message(exc)}")
            logger.warning(
                "reschedule escalation update failed",
                extra={"tenant_id": str(tenant_id), "request_id": str(candidate.id)},
            )
            continue

        if not applied:
            result.notes.append(f"update_skipped:{candidate.id}")
            continue

        _count_escalation(result, decision)
        try:
            _record_escalation_event(db=db, tenant_id=tenant_id, candidate=candidate, decision=decision)
        except SQLAlchemyError as exc:
            db.rollback()
            result.errors += 1
            result.notes.append(f"event_failed:{candidate.id}:{_error_message(exc)}")
            logger.warning(
                "reschedule escalation event write failed",
                extra={"tenant_id": str(tenant_id), "request_id": str(candidate.id)},
            )

    logger.info(
        "reschedule escalation sweep finished",
        extra={
            "tenant_id": str(tenant_id),
            "dry_run": dry_run,
            "checked": result.checked,
            "overdue": result.overdue,
            "escalated": result.escalated,
            "auto_handoff": result.auto_handoff,
            "errors": result.errors,
        },
    )
    return result


def _sweep_tenant_isolated(
    db: Session,
    tenant_id: uuid.UUID,
    dry_run: bool,
    max_rows: int | None,
) -> SweepResult:
    try:
        return run_escalation_sweep_for_tenant(db=db, tenant_id=tenant_id, dry_run=dry_run, max_rows=max_rows)
    except Exception as exc:  # noqa: BLE001 - one tenant must not abort the run
        db.rollback()
        logger.exception("reschedule escalation sweep crashed", extra={"tenant_id": str(tenant_id)})
        return SweepResult(tenant_id=tenant_id, dry_run=dry_run, errors=1, notes=[f"sweep_failed:{_error_message(exc)}"])


def summarize_results(results: list[SweepResult]) -> SweepTotals:
    totals = SweepTotals(tenants=len(results))
    for row in results:
        totals.checked += row.checked
        totals.overdue += row.overdue
        totals.escalated += row.escalated
        totals.auto_handoff += row.auto_handoff
        totals.errors += row.errors
        totals.max_level_reached = max(totals.max_level_reached, row.max_level_reached)
    return totals


def run_escalation_sweep(
    db: Session | None,
    tenant_id: uuid.UUID | None = None,
    dry_run: bool = False,
    limit_tenants: int | None = None,
    max_rows: int | None = None,
) -> SweepRun:
    mode: SweepMode = "direct" if tenant_id is not None else "discovered"
    if db is None:
        logger.error("reschedule escalation sweep skipped: database not configured")
        return SweepRun(
            mode=mode,
            dry_run=dry_run,
            generated_at=utcnow(),
            tenants=[],
            totals=SweepTotals(),
            notes=["database_not_configured"],
        )

    if tenant_id is not None:
        targets = [tenant_id]
    else:
        discovered = list_escalation_tenants(db)
        limit = len(discovered) if limit_tenants is None else max(0, limit_tenants)
        targets = discovered[:limit]

    results = [
        _sweep_tenant_isolated(db=db, tenant_id=target, dry_run=dry_run, max_rows=max_rows) for target in targets
    ]
    return SweepRun(
        mode=mode,
        dry_run=dry_run,
        generated_at=utcnow(),
        tenants=results,
        totals=summarize_results(results),
    )
