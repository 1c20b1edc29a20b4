from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from complaintdesk.apps.api.deps import get_current_actor, get_db, get_subject_id, require_role
from complaintdesk.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from complaintdesk.apps.api.response import SuccessEnvelope, success_response
from complaintdesk.domain.records import ROLE_ADMIN, Actor
from complaintdesk.persistence.repos import users as users_repo
from complaintdesk.services import tenancy


router = APIRouter(prefix="/users", tags=["users"], responses=DEFAULT_ERROR_RESPONSES)


class UserResponse(BaseModel):
    id: str
    email: str
    name: str | None
    role: str
    org_id: str | None
    created_at: str | None


class RegisterUserRequest(BaseModel):
    user_id: str = Field(min_length=1)
    email: str = Field(min_length=1)
    role: str = "user"
    name: str | None = None

    model_config = {"extra": "forbid"}


def to_user_response(user) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        org_id=user.org_id,
        created_at=user.created_at.isoformat() if user.created_at else None,
    )


@router.post("/register", status_code=201, response_model=SuccessEnvelope[UserResponse])
async def register_user(
    request: Request,
    payload: RegisterUserRequest,
    subject_id: str = Depends(get_subject_id),
    db: AsyncSession = Depends(get_db),
) -> dict:
    # Callers may only create the profile for the subject they authenticated as.
    if payload.user_id != subject_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "AUTH_FORBIDDEN", "message": "user_id does not match the authenticated subject"},
        )
    user = await tenancy.register_user(
        db,
        user_id=payload.user_id,
        email=payload.email,
        role=payload.role,
        name=payload.name,
    )
    return success_response(request=request, data=to_user_response(user))


@router.get("/me", response_model=SuccessEnvelope[UserResponse])
async def get_me(
    request: Request,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> dict:
    user = await users_repo.get_user(db, actor.user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User data not found")
    return success_response(request=request, data=to_user_response(user))


@router.get("", response_model=SuccessEnvelope[list[UserResponse]])
async def list_users(
    request: Request,
    role: str | None = None,
    _actor: Actor = Depends(require_role(ROLE_ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    try:
        users = await users_repo.list_users(db, role=role)
    except SQLAlchemyError as exc:
        raise HTTPException(status_code=503, detail="Database error while listing users") from exc
    return success_response(request=request, data=[to_user_response(user) for user in users])
