from __future__ import annotations
# ruff: noqa: E402

import os
import sys
import uuid
from collections.abc import Callable, Generator
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

API_ROOT = Path(__file__).resolve().parents[1]
WORKER_ROOT = Path(__file__).resolve().parents[2] / "worker"
if str(API_ROOT) not in sys.path:
    sys.path.insert(0, str(API_ROOT))
if str(WORKER_ROOT) not in sys.path:
    sys.path.insert(0, str(WORKER_ROOT))

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["APP_ENV"] = "development"
os.environ["DEV_AUTH_BYPASS"] = "false"

from app.db import get_db
from app.main import app
from app.models import AutomationEvent, Base, Membership, RescheduleRequest, RescheduleRequestStatus, Role, Tenant, User
from app.settings import settings

TEST_USER_ID = uuid.UUID("aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa")
TEST_TENANT_ID = uuid.UUID("bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb")
OTHER_TENANT_ID = uuid.UUID("cccccccc-cccc-cccc-cccc-cccccccccccc")
CRON_SECRET = "test-cron-secret"


@pytest.fixture()
def db_engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        "sqlite+pysqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(db_engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=db_engine, autocommit=False, autoflush=False, class_=Session)


@pytest.fixture()
def db_session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    with session_factory() as session:
        yield session
        session.rollback()


@pytest.fixture()
def seeded_context(db_session: Session) -> dict[str, str]:
    user = User(id=TEST_USER_ID, email="frontdesk@receptionflow.local")
    tenant = Tenant(id=TEST_TENANT_ID, name="Harbour Clinic")
    other_tenant = Tenant(id=OTHER_TENANT_ID, name="Hilltop Clinic")
    db_session.add_all([user, tenant, other_tenant])
    db_session.flush()
    db_session.add(Membership(tenant_id=TEST_TENANT_ID, user_id=TEST_USER_ID, role=Role.AGENT))
    db_session.commit()
    return {
        "X-Reception-User-Id": str(TEST_USER_ID),
        "X-Reception-Tenant-Id": str(TEST_TENANT_ID),
        "X-Reception-Role": Role.AGENT.value,
    }


@pytest.fixture()
def make_request(db_session: Session, seeded_context: dict[str, str]) -> Callable[..., uuid.UUID]:
    def _make(
        sla_due_at: datetime | None,
        tenant_id: uuid.UUID = TEST_TENANT_ID,
        status: RescheduleRequestStatus = RescheduleRequestStatus.PENDING,
        escalation_level: int = 0,
        metadata: dict[str, Any] | None = None,
        requested_at: datetime | None = None,
    ) -> uuid.UUID:
        row = RescheduleRequest(
            tenant_id=tenant_id,
            booking_id=uuid.uuid4(),
            lead_id=uuid.uuid4(),
            conversation_id=uuid.uuid4(),
            status=status,
            requested_at=requested_at or datetime.now(timezone.utc),
            sla_due_at=sla_due_at,
            escalation_level=escalation_level,
            option_batch=0,
            metadata_json=metadata or {},
        )
        db_session.add(row)
        db_session.commit()
        return row.id

    return _make


@pytest.fixture()
def fetch_request(db_session: Session) -> Callable[[uuid.UUID], RescheduleRequest]:
    def _fetch(request_id: uuid.UUID) -> RescheduleRequest:
        db_session.expire_all()
        row = db_session.get(RescheduleRequest, request_id)
        assert row is not None
        return row

    return _fetch


@pytest.fixture()
def event_types(db_session: Session) -> Callable[..., list[str]]:
    def _types(tenant_id: uuid.UUID = TEST_TENANT_ID) -> list[str]:
        db_session.expire_all()
        return list(
            db_session.scalars(
                select(AutomationEvent.event_type)
                .where(AutomationEvent.tenant_id == tenant_id)
                .order_by(AutomationEvent.event_type.asc())
            ).all()
        )

    return _types


@pytest.fixture()
def event_count(db_session: Session) -> Callable[[], int]:
    def _count() -> int:
        return int(db_session.scalar(select(func.count()).select_from(AutomationEvent)) or 0)

    return _count


@pytest.fixture()
def api_db(session_factory: sessionmaker[Session]) -> Generator[None, None, None]:
    def _override() -> Generator[Session, None, None]:
        with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override
    yield
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture()
def cron_secret(monkeypatch: pytest.MonkeyPatch) -> str:
    monkeypatch.setattr(settings, "reception_cron_secret", CRON_SECRET)
    return CRON_SECRET
