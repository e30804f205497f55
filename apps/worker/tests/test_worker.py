# ruff: noqa: E402
import os
import uuid
from collections.abc import Generator
from datetime import datetime, timedelta, timezone

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.models import Base, RescheduleRequest, RescheduleRequestStatus, Tenant
from receptionflow_worker import main as worker_main
from receptionflow_worker.main import ping, reschedule_escalation_tick

TENANT_ID = uuid.UUID("dddddddd-dddd-dddd-dddd-dddddddddddd")


@pytest.fixture()
def worker_sessions(monkeypatch) -> Generator[sessionmaker[Session], None, None]:
    engine = create_engine("sqlite+pysqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, class_=Session)
    monkeypatch.setattr(worker_main, "SessionLocal", factory)
    yield factory
    engine.dispose()


def _seed_overdue(factory: sessionmaker[Session], minutes: int) -> uuid.UUID:
    with factory() as db:
        if db.get(Tenant, TENANT_ID) is None:
            db.add(Tenant(id=TENANT_ID, name="Worker Clinic"))
            db.flush()
        row = RescheduleRequest(
            tenant_id=TENANT_ID,
            booking_id=uuid.uuid4(),
            status=RescheduleRequestStatus.PENDING,
            requested_at=datetime.now(timezone.utc),
            sla_due_at=datetime.now(timezone.utc) - timedelta(minutes=minutes),
            escalation_level=0,
            option_batch=0,
            metadata_json={},
        )
        db.add(row)
        db.commit()
        return row.id


def test_ping_task() -> None:
    assert ping() == "pong"


def test_beat_schedule_registers_escalation_tick() -> None:
    entry = worker_main.app.conf.beat_schedule["reschedule-escalation-tick"]
    assert entry["task"] == "worker.reception.reschedule_escalation_tick"
    assert entry["schedule"] == float(worker_main.settings.escalation_sweep_interval_seconds)


def test_escalation_tick_discovers_and_escalates(worker_sessions) -> None:
    request_id = _seed_overdue(worker_sessions, minutes=65)

    summary = reschedule_escalation_tick()

    assert summary["mode"] == "discovered"
    assert summary["totals"]["tenants"] == 1
    assert summary["totals"]["escalated"] == 1
    assert summary["totals"]["auto_handoff"] == 1
    assert summary["notes"] == []
    with worker_sessions() as db:
        row = db.get(RescheduleRequest, request_id)
        assert row.escalation_level == 2
        assert row.status == RescheduleRequestStatus.HANDOFF


def test_escalation_tick_dry_run_for_single_tenant(worker_sessions) -> None:
    request_id = _seed_overdue(worker_sessions, minutes=20)

    summary = reschedule_escalation_tick(tenant_id=str(TENANT_ID), dry_run=True)

    assert summary["mode"] == "direct"
    assert summary["dry_run"] is True
    assert summary["totals"]["escalated"] == 1
    with worker_sessions() as db:
        assert db.get(RescheduleRequest, request_id).escalation_level == 0


def test_escalation_tick_without_database(monkeypatch) -> None:
    monkeypatch.setattr(worker_main, "SessionLocal", None)

    summary = reschedule_escalation_tick()

    assert summary["notes"] == ["database_not_configured"]
    assert summary["totals"]["tenants"] == 0
