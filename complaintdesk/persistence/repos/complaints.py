from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from complaintdesk.domain.models import Complaint


async def get_complaint(session: AsyncSession, complaint_id: str) -> Complaint | None:
    return await session.get(Complaint, complaint_id)


async def list_for_user(session: AsyncSession, user_id: str) -> list[Complaint]:
    # Newest first, matching every dashboard listing.
    result = await session.execute(
        select(Complaint)
        .where(Complaint.user_id == user_id)
        .order_by(Complaint.created_at.desc(), Complaint.id)
    )
    return list(result.scalars().all())


async def list_for_org(session: AsyncSession, org_id: str) -> list[Complaint]:
    result = await session.execute(
        select(Complaint)
        .where(Complaint.org_id == org_id)
        .order_by(Complaint.created_at.desc(), Complaint.id)
    )
    return list(result.scalars().all())


async def list_all(session: AsyncSession) -> list[Complaint]:
    result = await session.execute(select(Complaint).order_by(Complaint.created_at.desc(), Complaint.id))
    return list(result.scalars().all())
