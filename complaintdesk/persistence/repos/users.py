from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from complaintdesk.domain.models import User


async def get_user(session: AsyncSession, user_id: str) -> User | None:
    return await session.get(User, user_id)


async def list_users(session: AsyncSession, *, role: str | None = None) -> list[User]:
    stmt = select(User)
    if role:
        stmt = stmt.where(User.role == role)
    result = await session.execute(stmt.order_by(User.created_at, User.id))
    return list(result.scalars().all())
