from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from complaintdesk.core.errors import InvalidTransitionError, NotFoundError, StoreError
from complaintdesk.domain.models import Complaint
from complaintdesk.domain.records import (
    STATUS_RESOLVED,
    Actor,
    ComplaintRecord,
    ROLE_MANAGER,
    format_timestamp,
    utc_now,
)
from complaintdesk.persistence.repos import complaints as complaints_repo
from complaintdesk.persistence.repos import users as users_repo
from complaintdesk.services.access import require_org_manager
from complaintdesk.services.changes import COLLECTION_COMPLAINTS, change_feed
from complaintdesk.services.classifier import ComplaintAnalysis, classify_complaint


logger = logging.getLogger(__name__)

STAGE_SUBMITTED = "submitted"
STAGE_ANALYZED = "analyzed"
STAGE_ASSIGNED = "assigned"
STAGE_IN_PROGRESS = "in-progress"
STAGE_RESOLVED = "resolved"

WORKFLOW_STAGES: tuple[str, ...] = (
    STAGE_SUBMITTED,
    STAGE_ANALYZED,
    STAGE_ASSIGNED,
    STAGE_IN_PROGRESS,
    STAGE_RESOLVED,
)
# History is scanned latest-stage first so the furthest stage reached wins.
_HISTORY_SCAN_ORDER: tuple[str, ...] = tuple(reversed(WORKFLOW_STAGES))


def effective_status(record: ComplaintRecord) -> str:
    """Derive the single lifecycle stage of a complaint.

    Precedence: explicit ``workflow_status``, then the furthest stage present in
    ``status_history``, then ``analyzed`` when an analysis exists, else
    ``submitted``.
    """
    if record.workflow_status:
        return record.workflow_status
    if record.status_history is not None:
        for stage in _HISTORY_SCAN_ORDER:
            if stage in record.status_history:
                return stage
    if record.ai_analysis:
        return STAGE_ANALYZED
    return STAGE_SUBMITTED


def stage_index(stage: str | None) -> int:
    # Unknown stages collapse to the initial stage.
    if stage in WORKFLOW_STAGES:
        return WORKFLOW_STAGES.index(stage)
    return 0


def next_stage(record: ComplaintRecord) -> str | None:
    current = stage_index(effective_status(record))
    if current + 1 < len(WORKFLOW_STAGES):
        return WORKFLOW_STAGES[current + 1]
    return None


@dataclass(frozen=True)
class StageTransition:
    from_stage: str
    to_stage: str
    status_history: dict[str, str]
    status: str
    occurred_at: datetime


def plan_transition(record: ComplaintRecord, target: str, *, now: datetime | None = None) -> StageTransition:
    # Pure guard: only the immediate successor of the effective stage is accepted.
    if target not in WORKFLOW_STAGES:
        raise InvalidTransitionError(f"Unknown workflow stage: {target}")
    target_index = WORKFLOW_STAGES.index(target)
    if target_index == 0:
        raise InvalidTransitionError("The submitted stage cannot be set manually")
    current = effective_status(record)
    current_index = stage_index(current)
    if target_index != current_index + 1:
        raise InvalidTransitionError(f"Cannot move complaint from {current} to {target}")

    occurred_at = now or utc_now()
    history = dict(record.status_history or {})
    # First arrival wins; an existing timestamp is never rewritten.
    history.setdefault(target, format_timestamp(occurred_at))
    status = STATUS_RESOLVED if target == STAGE_RESOLVED else record.status
    return StageTransition(
        from_stage=current,
        to_stage=target,
        status_history=history,
        status=status,
        occurred_at=occurred_at,
    )


def apply_transition(complaint: Complaint, transition: StageTransition) -> None:
    complaint.workflow_status = transition.to_stage
    complaint.status_history = transition.status_history
    complaint.status = transition.status
    complaint.last_updated = transition.occurred_at
    if transition.to_stage == STAGE_RESOLVED and complaint.resolved_at is None:
        complaint.resolved_at = transition.occurred_at


async def load_complaint(session: AsyncSession, complaint_id: str) -> Complaint:
    try:
        complaint = await complaints_repo.get_complaint(session, complaint_id)
    except SQLAlchemyError as exc:
        raise StoreError("Failed to load complaint; please retry") from exc
    if complaint is None:
        raise NotFoundError(f"Complaint {complaint_id} not found")
    return complaint


async def commit_or_raise(session: AsyncSession, message: str) -> None:
    # Single-record writes either land completely or leave the prior state in place.
    try:
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        raise StoreError(message) from exc


async def advance_stage(
    session: AsyncSession,
    *,
    actor: Actor,
    complaint_id: str,
    target: str,
    now: datetime | None = None,
) -> Complaint:
    complaint = await load_complaint(session, complaint_id)
    require_org_manager(actor, complaint.org_id)
    transition = plan_transition(ComplaintRecord.from_model(complaint), target, now=now)
    apply_transition(complaint, transition)
    await commit_or_raise(session, "Failed to update complaint status; please retry")
    logger.info(
        "complaint_stage_advanced complaint_id=%s from=%s to=%s actor_id=%s",
        complaint.id,
        transition.from_stage,
        transition.to_stage,
        actor.user_id,
    )
    change_feed.publish(COLLECTION_COMPLAINTS, complaint.id)
    return complaint


async def assign_complaint(
    session: AsyncSession,
    *,
    actor: Actor,
    complaint_id: str,
    manager_id: str | None = None,
    now: datetime | None = None,
) -> Complaint:
    # Records the handling manager; moves analyzed -> assigned, later stages only change the assignee.
    complaint = await load_complaint(session, complaint_id)
    require_org_manager(actor, complaint.org_id)
    resolved_manager_id = manager_id or actor.user_id
    manager = await users_repo.get_user(session, resolved_manager_id)
    if manager is None or manager.role != ROLE_MANAGER or manager.org_id != complaint.org_id:
        raise NotFoundError(f"Manager {resolved_manager_id} not found in this organization")

    record = ComplaintRecord.from_model(complaint)
    current = effective_status(record)
    if current == STAGE_SUBMITTED:
        raise InvalidTransitionError(
            "Complaint has not been analyzed yet; re-analyze it before assigning a manager"
        )
    if stage_index(current) < stage_index(STAGE_ASSIGNED):
        apply_transition(complaint, plan_transition(record, STAGE_ASSIGNED, now=now))
    else:
        complaint.last_updated = now or utc_now()
    complaint.assigned_manager_id = manager.id
    complaint.assigned_manager_name = manager.name or manager.email
    await commit_or_raise(session, "Failed to assign complaint; please retry")
    logger.info(
        "complaint_assigned complaint_id=%s manager_id=%s actor_id=%s",
        complaint.id,
        manager.id,
        actor.user_id,
    )
    change_feed.publish(COLLECTION_COMPLAINTS, complaint.id)
    return complaint


async def reanalyze_complaint(
    session: AsyncSession,
    *,
    actor: Actor,
    complaint_id: str,
    now: datetime | None = None,
) -> ComplaintAnalysis:
    complaint = await load_complaint(session, complaint_id)
    require_org_manager(actor, complaint.org_id)
    analysis = classify_complaint(complaint.title, complaint.description)
    complaint.ai_analysis = analysis.to_dict()
    history = dict(complaint.status_history or {})
    if STAGE_ANALYZED not in history:
        # Adding a history key can only move the derived stage forward, never back.
        history[STAGE_ANALYZED] = format_timestamp(now or utc_now())
        complaint.status_history = history
    complaint.last_updated = now or utc_now()
    await commit_or_raise(session, "Failed to save complaint analysis; please retry")
    logger.info(
        "complaint_reanalyzed complaint_id=%s category=%s priority=%s",
        complaint.id,
        analysis.category,
        analysis.priority,
    )
    change_feed.publish(COLLECTION_COMPLAINTS, complaint.id)
    return analysis
