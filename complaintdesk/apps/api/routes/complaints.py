from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from complaintdesk.apps.api.deps import get_current_actor, get_db
from complaintdesk.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from complaintdesk.apps.api.response import SuccessEnvelope, success_response
from complaintdesk.apps.api.routes.analyze import ComplaintAnalysisPayload
from complaintdesk.domain.records import Actor, ComplaintRecord
from complaintdesk.services import complaints as complaint_service
from complaintdesk.services import workflow
from complaintdesk.services.dashboards import filter_by_state


router = APIRouter(prefix="/complaints", tags=["complaints"], responses=DEFAULT_ERROR_RESPONSES)


class ComplaintResponse(BaseModel):
    id: str
    title: str
    description: str
    user_id: str | None
    user_name: str | None
    user_email: str | None
    org_id: str | None
    status: str
    effective_status: str
    created_at: str | None
    ai_analysis: dict[str, str] | None
    workflow_status: str | None
    status_history: dict[str, str] | None
    assigned_manager_id: str | None
    assigned_manager_name: str | None
    user_satisfaction_rating: int | None
    resolved_at: str | None
    last_updated: str | None


class AutoReplyPayload(BaseModel):
    category: str
    greeting: str
    apology: str
    action: str
    timeline: str
    closing: str
    ticket_note: str


class SubmittedComplaintResponse(BaseModel):
    complaint: ComplaintResponse
    auto_reply: AutoReplyPayload


class SubmitComplaintRequest(BaseModel):
    title: str = ""
    description: str = ""

    model_config = {"extra": "forbid"}


class RateComplaintRequest(BaseModel):
    rating: int


class StageChangeRequest(BaseModel):
    target: str = Field(min_length=1)


class AssignComplaintRequest(BaseModel):
    # Defaults to the calling manager.
    manager_id: str | None = None


class DeleteComplaintResponse(BaseModel):
    id: str
    deleted: bool


def _iso(value: Any) -> str | None:
    return value.isoformat() if value is not None else None


def to_complaint_response(complaint) -> ComplaintResponse:
    record = ComplaintRecord.from_model(complaint)
    return ComplaintResponse(
        id=record.id,
        title=record.title,
        description=record.description,
        user_id=record.user_id,
        user_name=record.user_name,
        user_email=record.user_email,
        org_id=record.org_id,
        status=record.status,
        effective_status=workflow.effective_status(record),
        created_at=_iso(record.created_at),
        ai_analysis=dict(record.ai_analysis) if record.ai_analysis else None,
        workflow_status=record.workflow_status,
        status_history=dict(record.status_history) if record.status_history is not None else None,
        assigned_manager_id=record.assigned_manager_id,
        assigned_manager_name=record.assigned_manager_name,
        user_satisfaction_rating=record.user_satisfaction_rating,
        resolved_at=_iso(record.resolved_at),
        last_updated=_iso(record.last_updated),
    )


@router.post("", status_code=201, response_model=SuccessEnvelope[SubmittedComplaintResponse])
async def submit_complaint(
    request: Request,
    payload: SubmitComplaintRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> dict:
    submitted = await complaint_service.submit_complaint(
        db,
        actor=actor,
        title=payload.title,
        description=payload.description,
    )
    data = SubmittedComplaintResponse(
        complaint=to_complaint_response(submitted.complaint),
        auto_reply=AutoReplyPayload(**submitted.auto_reply.to_dict()),
    )
    return success_response(request=request, data=data)


@router.get("", response_model=SuccessEnvelope[list[ComplaintResponse]])
async def list_complaints(
    request: Request,
    state: str = Query(default="all", pattern="^(all|pending|resolved)$"),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> dict:
    complaints = await complaint_service.list_visible_complaints(db, actor=actor)
    if state != "all":
        visible_ids = {record.id for record in filter_by_state(map(ComplaintRecord.from_model, complaints), state)}
        complaints = [complaint for complaint in complaints if complaint.id in visible_ids]
    return success_response(request=request, data=[to_complaint_response(c) for c in complaints])


@router.delete("/{complaint_id}", response_model=SuccessEnvelope[DeleteComplaintResponse])
async def delete_complaint(
    complaint_id: str,
    request: Request,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await complaint_service.delete_complaint(db, actor=actor, complaint_id=complaint_id)
    return success_response(request=request, data=DeleteComplaintResponse(id=complaint_id, deleted=True))


@router.post("/{complaint_id}/rating", response_model=SuccessEnvelope[ComplaintResponse])
async def rate_complaint(
    complaint_id: str,
    request: Request,
    payload: RateComplaintRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> dict:
    complaint = await complaint_service.rate_complaint(
        db,
        actor=actor,
        complaint_id=complaint_id,
        rating=payload.rating,
    )
    return success_response(request=request, data=to_complaint_response(complaint))


@router.post("/{complaint_id}/stage", response_model=SuccessEnvelope[ComplaintResponse])
async def advance_stage(
    complaint_id: str,
    request: Request,
    payload: StageChangeRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> dict:
    complaint = await workflow.advance_stage(db, actor=actor, complaint_id=complaint_id, target=payload.target)
    return success_response(request=request, data=to_complaint_response(complaint))


@router.post("/{complaint_id}/assign", response_model=SuccessEnvelope[ComplaintResponse])
async def assign_complaint(
    complaint_id: str,
    request: Request,
    payload: AssignComplaintRequest | None = None,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> dict:
    complaint = await workflow.assign_complaint(
        db,
        actor=actor,
        complaint_id=complaint_id,
        manager_id=payload.manager_id if payload else None,
    )
    return success_response(request=request, data=to_complaint_response(complaint))


@router.post("/{complaint_id}/reanalyze", response_model=SuccessEnvelope[ComplaintAnalysisPayload])
async def reanalyze_complaint(
    complaint_id: str,
    request: Request,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> dict:
    analysis = await workflow.reanalyze_complaint(db, actor=actor, complaint_id=complaint_id)
    return success_response(request=request, data=ComplaintAnalysisPayload(**analysis.to_dict()))


@router.get("/{complaint_id}", response_model=SuccessEnvelope[ComplaintResponse])
async def get_complaint(
    complaint_id: str,
    request: Request,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> dict:
    complaint = await workflow.load_complaint(db, complaint_id)
    visible = (
        actor.is_admin
        or complaint.user_id == actor.user_id
        or (actor.is_manager and actor.org_id is not None and actor.org_id == complaint.org_id)
    )
    if not visible:
        raise HTTPException(status_code=404, detail=f"Complaint {complaint_id} not found")
    return success_response(request=request, data=to_complaint_response(complaint))
