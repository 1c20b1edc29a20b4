from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from complaintdesk.apps.api.deps import get_current_actor, get_db, require_role
from complaintdesk.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from complaintdesk.apps.api.response import SuccessEnvelope, success_response
from complaintdesk.apps.api.routes.users import UserResponse, to_user_response
from complaintdesk.domain.records import ROLE_ADMIN, Actor
from complaintdesk.persistence.repos import organizations as organizations_repo
from complaintdesk.services import tenancy


router = APIRouter(prefix="/organizations", tags=["organizations"], responses=DEFAULT_ERROR_RESPONSES)


class OrganizationResponse(BaseModel):
    id: str
    name: str
    email_domain: str
    created_at: str | None


class CreateOrganizationRequest(BaseModel):
    # Emptiness is checked by the tenancy service so whitespace-only values are rejected too.
    name: str = ""
    email_domain: str = ""

    model_config = {"extra": "forbid"}


class AssignManagerRequest(BaseModel):
    user_id: str = Field(min_length=1)


def to_organization_response(org) -> OrganizationResponse:
    return OrganizationResponse(
        id=org.id,
        name=org.name,
        email_domain=org.email_domain,
        created_at=org.created_at.isoformat() if org.created_at else None,
    )


@router.post("", status_code=201, response_model=SuccessEnvelope[OrganizationResponse])
async def create_organization(
    request: Request,
    payload: CreateOrganizationRequest,
    actor: Actor = Depends(require_role(ROLE_ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    org = await tenancy.create_organization(
        db,
        actor=actor,
        name=payload.name,
        email_domain=payload.email_domain,
    )
    return success_response(request=request, data=to_organization_response(org))


@router.get("", response_model=SuccessEnvelope[list[OrganizationResponse]])
async def list_organizations(
    request: Request,
    _actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> dict:
    try:
        organizations = await organizations_repo.list_organizations(db)
    except SQLAlchemyError as exc:
        raise HTTPException(status_code=503, detail="Database error while listing organizations") from exc
    return success_response(request=request, data=[to_organization_response(org) for org in organizations])


@router.post("/{org_id}/managers", response_model=SuccessEnvelope[UserResponse])
async def assign_manager(
    org_id: str,
    request: Request,
    payload: AssignManagerRequest,
    actor: Actor = Depends(require_role(ROLE_ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    user = await tenancy.assign_manager(db, actor=actor, org_id=org_id, user_id=payload.user_id)
    return success_response(request=request, data=to_user_response(user))
