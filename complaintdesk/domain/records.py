from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

from complaintdesk.domain.models import Complaint, Organization, User


ROLE_USER = "user"
ROLE_MANAGER = "manager"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_MANAGER, ROLE_ADMIN)

STATUS_OPEN = "open"
STATUS_RESOLVED = "resolved"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # Some drivers hand back naive datetimes; everything stored here is UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    # Accept datetimes, ISO-8601 strings and epoch milliseconds from document-shaped input.
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return as_utc(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def format_timestamp(value: datetime) -> str:
    return as_utc(value).isoformat()


def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    # Document input may use camelCase (stored shape) or snake_case (ORM shape).
    for key in keys:
        if key in data:
            return data[key]
    return None


@dataclass(frozen=True)
class Actor:
    # The acting identity, passed explicitly into every core operation.
    user_id: str
    role: str
    org_id: str | None = None
    email: str | None = None
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_manager(self) -> bool:
        return self.role == ROLE_MANAGER

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        if self.email and "@" in self.email:
            return self.email.split("@")[0]
        return self.email or "Anonymous"

    @classmethod
    def from_model(cls, user: User) -> Actor:
        return cls(user_id=user.id, role=user.role, org_id=user.org_id, email=user.email, name=user.name)


@dataclass(frozen=True)
class OrganizationRecord:
    id: str
    name: str
    email_domain: str
    created_at: datetime | None = None

    @classmethod
    def from_model(cls, org: Organization) -> OrganizationRecord:
        return cls(
            id=org.id,
            name=org.name,
            email_domain=org.email_domain,
            created_at=parse_timestamp(org.created_at),
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> OrganizationRecord:
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name") or ""),
            email_domain=str(_pick(data, "emailDomain", "email_domain") or ""),
            created_at=parse_timestamp(_pick(data, "createdAt", "created_at")),
        )


@dataclass(frozen=True)
class UserRecord:
    id: str
    email: str
    role: str
    org_id: str | None = None
    name: str | None = None

    @classmethod
    def from_model(cls, user: User) -> UserRecord:
        return cls(id=user.id, email=user.email, role=user.role, org_id=user.org_id, name=user.name)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> UserRecord:
        return cls(
            id=str(data.get("id", "")),
            email=str(data.get("email") or ""),
            role=str(data.get("role") or ROLE_USER),
            org_id=_pick(data, "orgId", "org_id"),
            name=data.get("name"),
        )


@dataclass(frozen=True)
class ComplaintRecord:
    """Read-only view of a complaint used by every derivation function.

    ``ai_analysis``, ``workflow_status`` and ``status_history`` are each optional;
    ``None`` means the field was never written, which is distinct from an empty
    history mapping.
    """

    id: str
    title: str = ""
    description: str = ""
    user_id: str | None = None
    user_name: str | None = None
    user_email: str | None = None
    org_id: str | None = None
    status: str = STATUS_OPEN
    created_at: datetime | None = None
    ai_analysis: Mapping[str, str] | None = None
    workflow_status: str | None = None
    status_history: Mapping[str, str] | None = None
    assigned_manager_id: str | None = None
    assigned_manager_name: str | None = None
    user_satisfaction_rating: int | None = None
    resolved_at: datetime | None = None
    last_updated: datetime | None = None

    @property
    def category(self) -> str | None:
        return self.ai_analysis.get("category") if self.ai_analysis else None

    @property
    def priority(self) -> str | None:
        return self.ai_analysis.get("priority") if self.ai_analysis else None

    @property
    def emotion(self) -> str | None:
        return self.ai_analysis.get("emotion") if self.ai_analysis else None

    def history_time(self, stage: str) -> datetime | None:
        if not self.status_history:
            return None
        return parse_timestamp(self.status_history.get(stage))

    @classmethod
    def from_model(cls, complaint: Complaint) -> ComplaintRecord:
        return cls(
            id=complaint.id,
            title=complaint.title,
            description=complaint.description,
            user_id=complaint.user_id,
            user_name=complaint.user_name,
            user_email=complaint.user_email,
            org_id=complaint.org_id,
            status=complaint.status or STATUS_OPEN,
            created_at=parse_timestamp(complaint.created_at),
            ai_analysis=dict(complaint.ai_analysis) if complaint.ai_analysis else None,
            workflow_status=complaint.workflow_status,
            status_history=dict(complaint.status_history) if complaint.status_history is not None else None,
            assigned_manager_id=complaint.assigned_manager_id,
            assigned_manager_name=complaint.assigned_manager_name,
            user_satisfaction_rating=complaint.user_satisfaction_rating,
            resolved_at=parse_timestamp(complaint.resolved_at),
            last_updated=parse_timestamp(complaint.last_updated),
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ComplaintRecord:
        history = _pick(data, "statusHistory", "status_history")
        analysis = _pick(data, "aiAnalysis", "ai_analysis")
        rating = _pick(data, "userSatisfactionRating", "user_satisfaction_rating")
        return cls(
            id=str(data.get("id", "")),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            user_id=_pick(data, "userId", "user_id"),
            user_name=_pick(data, "userName", "user_name"),
            user_email=_pick(data, "userEmail", "user_email"),
            org_id=_pick(data, "orgId", "org_id"),
            status=str(data.get("status") or STATUS_OPEN),
            created_at=parse_timestamp(_pick(data, "createdAt", "created_at")),
            ai_analysis=dict(analysis) if analysis else None,
            workflow_status=_pick(data, "workflowStatus", "workflow_status") or None,
            status_history=dict(history) if history is not None else None,
            assigned_manager_id=_pick(data, "assignedManagerId", "assigned_manager_id") or None,
            assigned_manager_name=_pick(data, "assignedManagerName", "assigned_manager_name"),
            user_satisfaction_rating=int(rating) if rating is not None else None,
            resolved_at=parse_timestamp(_pick(data, "resolvedAt", "resolved_at")),
            last_updated=parse_timestamp(_pick(data, "lastUpdated", "last_updated")),
        )
