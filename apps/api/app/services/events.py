from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy.orm import Session

from ..models import AutomationEvent


def write_automation_event(
    db: Session,
    tenant_id: uuid.UUID,
    event_type: str,
    payload_json: dict[str, Any] | None = None,
    lead_id: uuid.UUID | None = None,
    conversation_id: uuid.UUID | None = None,
    success: bool = True,
) -> AutomationEvent:
    event = AutomationEvent(
        tenant_id=tenant_id,
        lead_id=lead_id,
        conversation_id=conversation_id,
        event_type=event_type,
        payload_json=payload_json or {},
        success=success,
    )
    db.add(event)
    db.flush()
    return event
