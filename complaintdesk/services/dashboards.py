from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Iterable, Sequence

from complaintdesk.domain.records import ComplaintRecord, utc_now
from complaintdesk.services.workflow import (
    STAGE_ANALYZED,
    STAGE_ASSIGNED,
    STAGE_IN_PROGRESS,
    STAGE_RESOLVED,
    STAGE_SUBMITTED,
    WORKFLOW_STAGES,
    effective_status,
)


_SECONDS_PER_HOUR = 3600.0


@dataclass(frozen=True)
class ComplaintStats:
    total: int
    pending: int
    resolved: int
    in_progress: int
    critical: int

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def complaint_stats(complaints: Iterable[ComplaintRecord]) -> ComplaintStats:
    total = pending = resolved = in_progress = critical = 0
    for complaint in complaints:
        total += 1
        stage = effective_status(complaint)
        if stage == STAGE_RESOLVED:
            resolved += 1
        else:
            pending += 1
        if stage == STAGE_IN_PROGRESS:
            in_progress += 1
        if (complaint.priority or "").lower() == "critical":
            critical += 1
    return ComplaintStats(
        total=total,
        pending=pending,
        resolved=resolved,
        in_progress=in_progress,
        critical=critical,
    )


def filter_by_state(complaints: Iterable[ComplaintRecord], state: str) -> list[ComplaintRecord]:
    # Manager list filter: all, pending (anything not resolved) or resolved.
    if state == "pending":
        return [c for c in complaints if effective_status(c) != STAGE_RESOLVED]
    if state == "resolved":
        return [c for c in complaints if effective_status(c) == STAGE_RESOLVED]
    if state == "all":
        return list(complaints)
    raise ValueError(f"Unsupported complaint filter: {state}")


@dataclass(frozen=True)
class WorkflowHealth:
    avg_stage_hours: dict[str, float]
    bottleneck_stage: str | None
    max_delay_hours: float
    stuck_count: int
    resolved_count: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def workflow_health(
    complaints: Sequence[ComplaintRecord],
    *,
    now: datetime | None = None,
    stuck_after_hours: float = 24,
) -> WorkflowHealth:
    """Average dwell time per stage and the slowest stage for a manager view.

    A stage delay is measured between consecutive history entries. Complaints
    that are not resolved and have not been touched for ``stuck_after_hours``
    count as stuck.
    """
    current_time = now or utc_now()
    delays: dict[str, list[float]] = {}
    for complaint in complaints:
        if not complaint.status_history:
            continue
        for previous, stage in zip(WORKFLOW_STAGES, WORKFLOW_STAGES[1:]):
            started = complaint.history_time(previous)
            reached = complaint.history_time(stage)
            if started is None or reached is None:
                continue
            delays.setdefault(stage, []).append((reached - started).total_seconds() / _SECONDS_PER_HOUR)

    avg_stage_hours = {stage: sum(values) / len(values) for stage, values in delays.items()}
    bottleneck_stage: str | None = None
    max_delay = 0.0
    for stage, average in avg_stage_hours.items():
        if average > max_delay:
            max_delay = average
            bottleneck_stage = stage

    stuck = 0
    resolved = 0
    for complaint in complaints:
        if effective_status(complaint) == STAGE_RESOLVED:
            resolved += 1
            continue
        last_touch = complaint.last_updated or complaint.created_at
        if last_touch is None:
            continue
        if (current_time - last_touch).total_seconds() / _SECONDS_PER_HOUR > stuck_after_hours:
            stuck += 1

    return WorkflowHealth(
        avg_stage_hours=avg_stage_hours,
        bottleneck_stage=bottleneck_stage,
        max_delay_hours=max_delay,
        stuck_count=stuck,
        resolved_count=resolved,
    )


@dataclass(frozen=True)
class ActivityEntry:
    id: str
    complaint_id: str
    title: str
    message: str
    stage: str
    time: datetime

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["time"] = self.time.isoformat()
        return payload


def _stage_message(complaint: ComplaintRecord, stage: str) -> str:
    if stage == STAGE_ANALYZED:
        return "AI analyzed your complaint and determined priority"
    if stage == STAGE_ASSIGNED:
        if complaint.assigned_manager_name:
            return f"Assigned to {complaint.assigned_manager_name} for review"
        return "A manager has been assigned to handle your case"
    if stage == STAGE_IN_PROGRESS:
        return "Manager is actively working on your complaint"
    return "Your complaint has been resolved! Please rate your experience"


def activity_timeline(complaints: Iterable[ComplaintRecord], *, limit: int = 15) -> list[ActivityEntry]:
    entries: list[ActivityEntry] = []
    for complaint in complaints:
        if complaint.created_at is not None:
            entries.append(
                ActivityEntry(
                    id=f"{complaint.id}-created",
                    complaint_id=complaint.id,
                    title=complaint.title,
                    message="You submitted a new complaint",
                    stage=STAGE_SUBMITTED,
                    time=complaint.created_at,
                )
            )
        for stage in WORKFLOW_STAGES[1:]:
            reached = complaint.history_time(stage)
            if reached is None:
                continue
            entries.append(
                ActivityEntry(
                    id=f"{complaint.id}-{stage}",
                    complaint_id=complaint.id,
                    title=complaint.title,
                    message=_stage_message(complaint, stage),
                    stage=stage,
                    time=reached,
                )
            )
        # Analyses written without a history entry are shown at submission time.
        if complaint.ai_analysis and complaint.history_time(STAGE_ANALYZED) is None and complaint.created_at:
            entries.append(
                ActivityEntry(
                    id=f"{complaint.id}-ai",
                    complaint_id=complaint.id,
                    title=complaint.title,
                    message=(
                        f"AI detected: {complaint.priority or 'Normal'} priority - "
                        f"{complaint.category or 'General'}"
                    ),
                    stage=STAGE_ANALYZED,
                    time=complaint.created_at,
                )
            )
    entries.sort(key=lambda entry: entry.time, reverse=True)
    return entries[:limit]
