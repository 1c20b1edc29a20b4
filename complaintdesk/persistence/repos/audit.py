from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from complaintdesk.domain.models import AuditLog


async def list_logs(
    session: AsyncSession,
    *,
    admin_id: str | None = None,
    offset: int = 0,
    limit: int = 50,
) -> list[AuditLog]:
    # Newest first; id breaks ties between entries written in the same instant.
    stmt = select(AuditLog)
    if admin_id:
        stmt = stmt.where(AuditLog.admin_id == admin_id)
    stmt = stmt.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).offset(offset).limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())
