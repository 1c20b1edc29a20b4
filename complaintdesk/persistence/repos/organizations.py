from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from complaintdesk.domain.models import Organization


async def get_organization(session: AsyncSession, org_id: str) -> Organization | None:
    return await session.get(Organization, org_id)


async def get_by_domain(session: AsyncSession, email_domain: str) -> Organization | None:
    result = await session.execute(
        select(Organization).where(Organization.email_domain == email_domain.lower())
    )
    return result.scalars().first()


async def list_organizations(session: AsyncSession) -> list[Organization]:
    # Directory order decides which organization wins if duplicate domains ever exist.
    result = await session.execute(select(Organization).order_by(Organization.created_at, Organization.id))
    return list(result.scalars().all())
