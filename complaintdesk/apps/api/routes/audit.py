from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from complaintdesk.apps.api.deps import get_db, require_role
from complaintdesk.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from complaintdesk.apps.api.response import SuccessEnvelope, success_response
from complaintdesk.core.config import get_settings
from complaintdesk.domain.records import ROLE_ADMIN, Actor
from complaintdesk.persistence.repos import audit as audit_repo


router = APIRouter(prefix="/audit-logs", tags=["audit"], responses=DEFAULT_ERROR_RESPONSES)


class AuditLogResponse(BaseModel):
    id: int
    action: str
    admin_id: str | None
    timestamp: str


class AuditLogPage(BaseModel):
    items: list[AuditLogResponse]
    next_offset: int | None


@router.get("", response_model=SuccessEnvelope[AuditLogPage])
async def list_audit_logs(
    request: Request,
    admin_id: str | None = None,
    offset: int = Query(default=0, ge=0),
    limit: int | None = Query(default=None, ge=1, le=500),
    _actor: Actor = Depends(require_role(ROLE_ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    page_size = limit or get_settings().audit_log_page_size
    try:
        # Fetch one extra row to know whether another page exists.
        rows = await audit_repo.list_logs(db, admin_id=admin_id, offset=offset, limit=page_size + 1)
    except SQLAlchemyError as exc:
        raise HTTPException(status_code=503, detail="Database error while listing audit logs") from exc
    has_more = len(rows) > page_size
    items = [
        AuditLogResponse(
            id=row.id,
            action=row.action,
            admin_id=row.admin_id,
            timestamp=row.timestamp.isoformat(),
        )
        for row in rows[:page_size]
    ]
    data = AuditLogPage(items=items, next_offset=offset + page_size if has_more else None)
    return success_response(request=request, data=data)
