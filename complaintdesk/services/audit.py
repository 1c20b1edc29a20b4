from __future__ import annotations

from datetime import datetime
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from complaintdesk.domain.models import AuditLog
from complaintdesk.domain.records import utc_now
from complaintdesk.persistence.db import SessionLocal
from complaintdesk.services.changes import COLLECTION_AUDIT_LOGS, change_feed


logger = logging.getLogger(__name__)


async def record_event(
    *,
    action: str,
    admin_id: str | None,
    session: AsyncSession | None = None,
    occurred_at: datetime | None = None,
    best_effort: bool = True,
) -> bool:
    # Append-only and best-effort: the privileged action has already committed by now.
    entry = AuditLog(action=action, admin_id=admin_id, timestamp=occurred_at or utc_now())

    if session is None:
        async with SessionLocal() as audit_session:
            return await _write(audit_session, entry, best_effort=best_effort)
    return await _write(session, entry, best_effort=best_effort)


async def _write(session: AsyncSession, entry: AuditLog, *, best_effort: bool) -> bool:
    try:
        session.add(entry)
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        level = logger.warning if best_effort else logger.error
        level("audit_event_write_failed action=%s admin_id=%s", entry.action, entry.admin_id, exc_info=exc)
        if not best_effort:
            raise
        return False
    change_feed.publish(COLLECTION_AUDIT_LOGS, str(entry.id))
    return True
