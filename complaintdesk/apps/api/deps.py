from __future__ import annotations

from typing import AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from complaintdesk.core.config import get_settings
from complaintdesk.domain.records import Actor
from complaintdesk.persistence.db import get_session
from complaintdesk.persistence.repos import users as users_repo


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    # One AsyncSession per request; context manager ensures close on success/error.
    async with get_session() as session:
        yield session


def _auth_error(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": "AUTH_UNAUTHORIZED", "message": message},
    )


def get_subject_id(request: Request) -> str:
    # The identity provider authenticates upstream and forwards its subject id.
    header = get_settings().identity_header
    subject_id = request.headers.get(header)
    if not subject_id:
        raise _auth_error(f"Missing {header} header")
    return subject_id


async def get_current_actor(
    subject_id: str = Depends(get_subject_id),
    db: AsyncSession = Depends(get_db),
) -> Actor:
    try:
        user = await users_repo.get_user(db, subject_id)
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"code": "STORE_UNAVAILABLE", "message": "Failed to load user profile; please retry"},
        ) from exc
    if user is None:
        raise _auth_error("User data not found")
    return Actor.from_model(user)


def require_role(*roles: str):
    # Dependency factory to enforce role gates before any handler logic runs.
    async def _dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"code": "AUTH_FORBIDDEN", "message": f"Requires role: {', '.join(roles)}"},
            )
        return actor

    return _dependency
