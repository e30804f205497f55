from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy import JSON as JsonType
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import Uuid

from packages.escalation import ACTION_REQUIRED_STATUSES as ACTION_REQUIRED_STATUS_VALUES


class Base(DeclarativeBase):
    pass


class Role(str, enum.Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"
    AGENT = "agent"


class RescheduleRequestStatus(str, enum.Enum):
    PENDING = "pending"
    OPTIONS_SENT = "options_sent"
    HANDOFF = "handoff"
    CONFIRMED = "confirmed"
    CLOSED = "closed"


ACTION_REQUIRED_STATUSES: tuple[RescheduleRequestStatus, ...] = tuple(
    RescheduleRequestStatus(value) for value in ACTION_REQUIRED_STATUS_VALUES
)


class IdMixin:
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )


class SoftDeleteMixin:
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class Tenant(Base, IdMixin, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "tenants"
    __table_args__ = (UniqueConstraint("name", name="uq_tenants_name"), Index("ix_tenants_created_at", "created_at"))

    name: Mapped[str] = mapped_column(String(255), nullable=False)


class User(Base, IdMixin, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        Index("ix_users_created_at", "created_at"),
    )

    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)


class Membership(Base, IdMixin, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "memberships"
    __table_args__ = (
        UniqueConstraint("tenant_id", "user_id", name="uq_memberships_tenant_user"),
        Index("ix_memberships_tenant_id", "tenant_id"),
    )

    tenant_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("tenants.id"), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    role: Mapped[Role] = mapped_column(Enum(Role, name="role_enum"), nullable=False)


class RescheduleRequest(Base, IdMixin, TimestampMixin):
    __tablename__ = "reschedule_requests"
    __table_args__ = (
        UniqueConstraint("booking_id", name="uq_reschedule_requests_booking_id"),
        CheckConstraint(
            "escalation_level >= 0 AND escalation_level <= 5",
            name="chk_reschedule_requests_escalation_level",
        ),
        Index("ix_reschedule_requests_tenant_status_requested", "tenant_id", "status", "requested_at"),
        Index("ix_reschedule_requests_tenant_sla_due", "tenant_id", "sla_due_at"),
        Index(
            "ix_reschedule_requests_escalation",
            "tenant_id",
            "status",
            "escalation_level",
            "sla_due_at",
        ),
    )

    tenant_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("tenants.id"), nullable=False)
    booking_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    lead_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    conversation_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    status: Mapped[RescheduleRequestStatus] = mapped_column(
        Enum(RescheduleRequestStatus, name="reschedule_request_status_enum"),
        nullable=False,
        default=RescheduleRequestStatus.PENDING,
    )
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    assigned_to: Mapped[str | None] = mapped_column(String(120), nullable=True)
    assigned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    sla_due_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    escalation_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_escalated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    latest_customer_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    option_batch: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    metadata_json: Mapped[dict[str, object]] = mapped_column(JsonType, nullable=False, default=dict)


class AutomationEvent(Base, IdMixin):
    __tablename__ = "automation_events"
    __table_args__ = (
        Index("ix_automation_events_tenant_id", "tenant_id"),
        Index("ix_automation_events_tenant_type_created", "tenant_id", "event_type", "created_at"),
    )

    tenant_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("tenants.id"), nullable=False)
    lead_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    conversation_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    event_type: Mapped[str] = mapped_column(String(120), nullable=False)
    payload_json: Mapped[dict[str, object]] = mapped_column(JsonType, nullable=False, default=dict)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
