from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, model_validator

from .models import RescheduleRequestStatus

QueueStatusFilter = Literal["all", "pending", "options_sent", "handoff", "confirmed", "closed"]


class EscalationSweepRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tenant_id: uuid.UUID | None = None
    dry_run: bool = False
    limit_tenants: int | None = Field(default=None, ge=1, le=200)
    max_rows: int | None = Field(default=None, ge=1, le=500)


class TenantSweepResponse(BaseModel):
    tenant_id: uuid.UUID
    dry_run: bool
    checked: int
    overdue: int
    escalated: int
    auto_handoff: int
    errors: int
    max_level_reached: int
    notes: list[str] = Field(default_factory=list)


class SweepTotalsResponse(BaseModel):
    tenants: int
    checked: int
    overdue: int
    escalated: int
    auto_handoff: int
    errors: int
    max_level_reached: int


class EscalationSweepResponse(BaseModel):
    mode: Literal["direct", "discovered"]
    dry_run: bool
    generated_at: datetime
    tenants: list[TenantSweepResponse]
    totals: SweepTotalsResponse
    notes: list[str] = Field(default_factory=list)


class RescheduleRequestResponse(BaseModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    booking_id: uuid.UUID
    lead_id: uuid.UUID | None
    conversation_id: uuid.UUID | None
    status: RescheduleRequestStatus
    requested_at: datetime
    resolved_at: datetime | None
    assigned_to: str | None
    assigned_at: datetime | None
    sla_due_at: datetime | None
    escalation_level: int
    last_escalated_at: datetime | None
    is_overdue: bool
    overdue_minutes: int | None
    latest_customer_message: str | None
    option_batch: int
    metadata_json: dict[str, object]
    updated_at: datetime


class RescheduleQueueFilters(BaseModel):
    status: QueueStatusFilter
    limit: int


class RescheduleQueueResponse(BaseModel):
    generated_at: datetime
    filters: RescheduleQueueFilters
    counts: dict[str, int]
    action_required: int
    overdue_action_required: int
    escalated_action_required: int
    requests: list[RescheduleRequestResponse]


class RescheduleRequestPatchRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    status: Literal["handoff", "closed", "options_sent"] | None = None
    note: str | None = Field(default=None, max_length=400)
    assignee: str | None = Field(default=None, max_length=120)
    sla_due_at: AwareDatetime | None = None

    @model_validator(mode="after")
    def require_any_field(self) -> "RescheduleRequestPatchRequest":
        if not self.model_fields_set:
            raise ValueError("Provide at least one field to update.")
        return self
