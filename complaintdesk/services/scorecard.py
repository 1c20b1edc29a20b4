from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Iterable, Sequence

from complaintdesk.domain.records import (
    ROLE_MANAGER,
    ComplaintRecord,
    OrganizationRecord,
    UserRecord,
)
from complaintdesk.services.grading import Threshold, grade, round_half_up
from complaintdesk.services.workflow import STAGE_IN_PROGRESS, STAGE_RESOLVED, effective_status


STATUS_EXCELLENT = "excellent"
STATUS_GOOD = "good"
STATUS_NEEDS_IMPROVEMENT = "needs-improvement"
STATUS_NEW = "new"

PERFORMANCE_BANDS = (
    Threshold(STATUS_EXCELLENT, 80),
    Threshold(STATUS_GOOD, 50),
    Threshold(STATUS_NEEDS_IMPROVEMENT, 0, strict=True),
)

UNASSIGNED_ORG_NAME = "Unassigned"
_SECONDS_PER_HOUR = 3600.0


@dataclass(frozen=True)
class ManagerScorecard:
    manager_id: str
    email: str
    org_id: str | None
    org_name: str
    total: int
    resolved: int
    in_progress: int
    pending: int
    resolution_rate: int
    avg_resolution_hours: float | None
    status: str

    @property
    def avg_time_label(self) -> str:
        if self.avg_resolution_hours is None:
            return "-"
        return f"{self.avg_resolution_hours:.1f}h"

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["avg_time"] = self.avg_time_label
        return payload


def assigned_complaints(manager: UserRecord, complaints: Sequence[ComplaintRecord]) -> list[ComplaintRecord]:
    # Direct assignment or shared organization both count, so managers of one org overlap.
    return [
        complaint
        for complaint in complaints
        if complaint.assigned_manager_id == manager.id
        or (manager.org_id is not None and complaint.org_id == manager.org_id)
    ]


def average_resolution_hours(resolved: Iterable[ComplaintRecord]) -> float | None:
    durations: list[float] = []
    for complaint in resolved:
        resolved_time = complaint.history_time(STAGE_RESOLVED) or complaint.resolved_at
        if complaint.created_at is None or resolved_time is None:
            continue
        durations.append((resolved_time - complaint.created_at).total_seconds() / _SECONDS_PER_HOUR)
    if not durations:
        return None
    return sum(durations) / len(durations)


def build_scorecard(
    manager: UserRecord,
    complaints: Sequence[ComplaintRecord],
    org_names: dict[str, str],
) -> ManagerScorecard:
    assigned = assigned_complaints(manager, complaints)
    resolved: list[ComplaintRecord] = []
    in_progress = 0
    for complaint in assigned:
        stage = effective_status(complaint)
        if stage == STAGE_RESOLVED:
            resolved.append(complaint)
        elif stage == STAGE_IN_PROGRESS:
            in_progress += 1
    pending = len(assigned) - len(resolved) - in_progress
    raw_rate = len(resolved) / len(assigned) * 100 if assigned else 0.0
    return ManagerScorecard(
        manager_id=manager.id,
        email=manager.email,
        org_id=manager.org_id,
        org_name=org_names.get(manager.org_id or "", UNASSIGNED_ORG_NAME),
        total=len(assigned),
        resolved=len(resolved),
        in_progress=in_progress,
        pending=pending,
        resolution_rate=round_half_up(raw_rate),
        avg_resolution_hours=average_resolution_hours(resolved),
        # Banding uses the unrounded rate, so 79.6% is still "good".
        status=grade(raw_rate, PERFORMANCE_BANDS, STATUS_NEW),
    )


def build_scorecards(
    users: Iterable[UserRecord],
    complaints: Iterable[ComplaintRecord],
    organizations: Iterable[OrganizationRecord] = (),
) -> list[ManagerScorecard]:
    records = list(complaints)
    org_names = {org.id: org.name for org in organizations}
    cards = [build_scorecard(user, records, org_names) for user in users if user.role == ROLE_MANAGER]
    # Stable sort keeps directory order among managers with equal resolved counts.
    return sorted(cards, key=lambda card: card.resolved, reverse=True)
