from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from complaintdesk.apps.api.deps import get_db, require_role
from complaintdesk.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from complaintdesk.apps.api.response import SuccessEnvelope, success_response
from complaintdesk.core.config import get_settings
from complaintdesk.domain.records import (
    ROLE_ADMIN,
    ROLE_MANAGER,
    ROLE_USER,
    Actor,
    ComplaintRecord,
    OrganizationRecord,
    UserRecord,
)
from complaintdesk.persistence.repos import organizations as organizations_repo
from complaintdesk.persistence.repos import users as users_repo
from complaintdesk.services import insights
from complaintdesk.services.complaints import list_visible_complaints
from complaintdesk.services.dashboards import activity_timeline, complaint_stats, workflow_health
from complaintdesk.services.scorecard import build_scorecards


router = APIRouter(prefix="/dashboard", tags=["dashboard"], responses=DEFAULT_ERROR_RESPONSES)


class UserDashboardResponse(BaseModel):
    stats: dict[str, int]
    activity: list[dict[str, Any]]


class ManagerDashboardResponse(BaseModel):
    org_id: str | None
    stats: dict[str, int]
    workflow: dict[str, Any]
    priority_distribution: dict[str, int]
    category_distribution: dict[str, int]
    status_distribution: dict[str, int]


class AdminDashboardResponse(BaseModel):
    stats: dict[str, int]
    insights: list[dict[str, str]]
    scorecards: list[dict[str, Any]]
    priority_distribution: dict[str, int]
    emotion_distribution: dict[str, int]
    category_distribution: dict[str, int]
    status_distribution: dict[str, int]
    resolution_rate: int
    complaints_by_org: list[dict[str, Any]]
    complaints_by_day: dict[str, int]


async def _visible_records(db: AsyncSession, actor: Actor) -> list[ComplaintRecord]:
    complaints = await list_visible_complaints(db, actor=actor)
    return [ComplaintRecord.from_model(complaint) for complaint in complaints]


@router.get("/user", response_model=SuccessEnvelope[UserDashboardResponse])
async def user_dashboard(
    request: Request,
    actor: Actor = Depends(require_role(ROLE_USER)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    records = await _visible_records(db, actor)
    timeline = activity_timeline(records, limit=get_settings().activity_timeline_limit)
    data = UserDashboardResponse(
        stats=complaint_stats(records).to_dict(),
        activity=[entry.to_dict() for entry in timeline],
    )
    return success_response(request=request, data=data)


@router.get("/manager", response_model=SuccessEnvelope[ManagerDashboardResponse])
async def manager_dashboard(
    request: Request,
    actor: Actor = Depends(require_role(ROLE_MANAGER)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    records = await _visible_records(db, actor)
    health = workflow_health(records, stuck_after_hours=get_settings().stuck_after_hours)
    data = ManagerDashboardResponse(
        org_id=actor.org_id,
        stats=complaint_stats(records).to_dict(),
        workflow=health.to_dict(),
        priority_distribution=insights.distribution(records, "priority"),
        category_distribution=insights.distribution(records, "category"),
        status_distribution=insights.status_distribution(records),
    )
    return success_response(request=request, data=data)


@router.get("/admin", response_model=SuccessEnvelope[AdminDashboardResponse])
async def admin_dashboard(
    request: Request,
    actor: Actor = Depends(require_role(ROLE_ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    records = await _visible_records(db, actor)
    try:
        organizations = [OrganizationRecord.from_model(org) for org in await organizations_repo.list_organizations(db)]
        users = [UserRecord.from_model(user) for user in await users_repo.list_users(db)]
    except SQLAlchemyError as exc:
        raise HTTPException(status_code=503, detail="Database error while loading dashboard") from exc

    data = AdminDashboardResponse(
        stats=complaint_stats(records).to_dict(),
        insights=[insight.to_dict() for insight in insights.generate_insights(records)],
        scorecards=[card.to_dict() for card in build_scorecards(users, records, organizations)],
        priority_distribution=insights.distribution(records, "priority"),
        emotion_distribution=insights.distribution(records, "emotion"),
        category_distribution=insights.distribution(records, "category"),
        status_distribution=insights.status_distribution(records),
        resolution_rate=insights.resolution_rate(records),
        complaints_by_org=insights.complaints_by_org(records, organizations),
        complaints_by_day=insights.complaints_by_day(records),
    )
    return success_response(request=request, data=data)
