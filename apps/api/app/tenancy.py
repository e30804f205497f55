from __future__ import annotations

import hmac
import uuid
from dataclasses import dataclass
from typing import Any

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from .db import get_db
from .models import Membership, Role
from .settings import settings


ROLE_ORDER: dict[Role, int] = {
    Role.OWNER: 4,
    Role.ADMIN: 3,
    Role.MEMBER: 2,
    Role.AGENT: 1,
}


@dataclass(frozen=True)
class RequestContext:
    current_user_id: uuid.UUID
    current_tenant_id: uuid.UUID
    current_role: Role


def tenant_scoped(stmt: Any, tenant_id: uuid.UUID, model: Any) -> Any:
    return stmt.where(getattr(model, "tenant_id") == tenant_id)


def require_role(context: RequestContext, minimum_role: Role) -> None:
    if ROLE_ORDER[context.current_role] < ROLE_ORDER[minimum_role]:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="insufficient role")


def require_db(db: Session | None) -> Session:
    if db is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="database_not_configured")
    return db


def has_cron_access(provided: str | None) -> bool:
    expected = (settings.reception_cron_secret or "").strip()
    if not expected:
        return False
    candidate = (provided or "").strip()
    if not candidate:
        return False
    return hmac.compare_digest(candidate.encode(), expected.encode())


def _parse_role(value: str) -> Role:
    try:
        return Role(value)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid role header") from exc


def resolve_request_context(
    db: Session | None,
    user_id_header: str | None,
    tenant_id_header: str | None,
    role_header: str | None,
) -> RequestContext:
    if settings.dev_auth_bypass:
        return RequestContext(
            current_user_id=uuid.UUID(settings.dev_user_id),
            current_tenant_id=uuid.UUID(settings.dev_tenant_id),
            current_role=_parse_role(settings.dev_role),
        )

    if not user_id_header or not tenant_id_header or not role_header:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing auth context headers")

    try:
        user_id = uuid.UUID(user_id_header)
        tenant_id = uuid.UUID(tenant_id_header)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid auth context headers") from exc

    role = _parse_role(role_header)
    session = require_db(db)
    membership = session.scalar(
        select(Membership).where(
            Membership.tenant_id == tenant_id,
            Membership.user_id == user_id,
            Membership.deleted_at.is_(None),
        )
    )
    if membership is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="tenant membership required")

    return RequestContext(current_user_id=user_id, current_tenant_id=tenant_id, current_role=role)


def get_request_context(
    db: Session | None = Depends(get_db),
    x_reception_user_id: str | None = Header(default=None),
    x_reception_tenant_id: str | None = Header(default=None),
    x_reception_role: str | None = Header(default=None),
) -> RequestContext:
    return resolve_request_context(
        db=db,
        user_id_header=x_reception_user_id,
        tenant_id_header=x_reception_tenant_id,
        role_header=x_reception_role,
    )
