from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from complaintdesk.core.errors import (
    AuthorizationError,
    ComplaintValidationError,
    RatingValidationError,
    StoreError,
)
from complaintdesk.domain.models import Complaint
from complaintdesk.domain.records import (
    STATUS_OPEN,
    Actor,
    ComplaintRecord,
    format_timestamp,
    utc_now,
)
from complaintdesk.persistence.repos import complaints as complaints_repo
from complaintdesk.services.access import require_owner_or_admin
from complaintdesk.services.auto_reply import AutoReply, build_auto_reply
from complaintdesk.services.changes import COLLECTION_COMPLAINTS, change_feed
from complaintdesk.services.classifier import classify_complaint
from complaintdesk.services.workflow import (
    STAGE_ANALYZED,
    STAGE_RESOLVED,
    STAGE_SUBMITTED,
    commit_or_raise,
    effective_status,
    load_complaint,
)


logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


@dataclass(frozen=True)
class SubmittedComplaint:
    complaint: Complaint
    auto_reply: AutoReply


async def submit_complaint(
    session: AsyncSession,
    *,
    actor: Actor,
    title: str | None,
    description: str | None,
    now: datetime | None = None,
) -> SubmittedComplaint:
    clean_title = (title or "").strip()
    clean_description = (description or "").strip()
    if not clean_title or not clean_description:
        raise ComplaintValidationError("Complaint title and description are required")
    if not actor.org_id:
        raise AuthorizationError("No organization linked to your account")

    created_at = now or utc_now()
    stamp = format_timestamp(created_at)
    # Classified exactly once here; later changes only come from an explicit re-analysis.
    analysis = classify_complaint(clean_title, clean_description)
    complaint = Complaint(
        id=uuid4().hex,
        title=clean_title,
        description=clean_description,
        user_id=actor.user_id,
        user_name=actor.display_name,
        user_email=actor.email or "",
        org_id=actor.org_id,
        status=STATUS_OPEN,
        created_at=created_at,
        ai_analysis=analysis.to_dict(),
        status_history={STAGE_SUBMITTED: stamp, STAGE_ANALYZED: stamp},
        last_updated=created_at,
    )
    session.add(complaint)
    await commit_or_raise(session, "Failed to submit complaint; please retry")
    logger.info(
        "complaint_submitted complaint_id=%s org_id=%s category=%s priority=%s",
        complaint.id,
        complaint.org_id,
        analysis.category,
        analysis.priority,
    )
    change_feed.publish(COLLECTION_COMPLAINTS, complaint.id)
    return SubmittedComplaint(
        complaint=complaint,
        auto_reply=build_auto_reply(clean_title, clean_description, actor.name or actor.display_name),
    )


async def rate_complaint(
    session: AsyncSession,
    *,
    actor: Actor,
    complaint_id: str,
    rating: int,
) -> Complaint:
    complaint = await load_complaint(session, complaint_id)
    if actor.user_id != complaint.user_id:
        raise AuthorizationError("Only the submitter can rate this complaint")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise RatingValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
    if effective_status(ComplaintRecord.from_model(complaint)) != STAGE_RESOLVED:
        raise RatingValidationError("Only resolved complaints can be rated")
    complaint.user_satisfaction_rating = rating
    await commit_or_raise(session, "Failed to save rating; please retry")
    change_feed.publish(COLLECTION_COMPLAINTS, complaint.id)
    return complaint


async def delete_complaint(session: AsyncSession, *, actor: Actor, complaint_id: str) -> None:
    complaint = await load_complaint(session, complaint_id)
    require_owner_or_admin(actor, complaint.user_id)
    await session.delete(complaint)
    await commit_or_raise(session, "Failed to delete complaint; please retry")
    logger.info("complaint_deleted complaint_id=%s actor_id=%s", complaint_id, actor.user_id)
    change_feed.publish(COLLECTION_COMPLAINTS, complaint_id)


async def list_visible_complaints(session: AsyncSession, *, actor: Actor) -> list[Complaint]:
    # Submitters see their own complaints, managers their organization's, admins everything.
    try:
        if actor.is_admin:
            return await complaints_repo.list_all(session)
        if actor.is_manager:
            if not actor.org_id:
                raise AuthorizationError("No organization assigned")
            return await complaints_repo.list_for_org(session, actor.org_id)
        return await complaints_repo.list_for_user(session, actor.user_id)
    except SQLAlchemyError as exc:
        raise StoreError("Failed to load complaints; please retry") from exc
