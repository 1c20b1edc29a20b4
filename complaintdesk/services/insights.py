from __future__ import annotations

import calendar
from collections import Counter
from dataclasses import asdict, dataclass
from typing import Callable, Iterable, Sequence

from complaintdesk.domain.records import STATUS_RESOLVED, ComplaintRecord, OrganizationRecord
from complaintdesk.services.classifier import DEFAULT_CATEGORY
from complaintdesk.services.grading import Threshold, grade, round_half_up
from complaintdesk.services.workflow import STAGE_RESOLVED, WORKFLOW_STAGES, effective_status


MAX_INSIGHTS = 6

SEVERITY_HIGH = "high"
SEVERITY_MEDIUM = "medium"
SEVERITY_LOW = "low"

HIGH_PRIORITIES = ("Critical", "High")
NEGATIVE_EMOTIONS = ("Frustrated", "Angry", "Upset", "Disappointed")

PATTERN_MIN_ORGS = 2
SPIKE_MIN_COUNT = 3
EMOTION_MIN_COUNT = 3

PATTERN_SEVERITY = (Threshold(SEVERITY_HIGH, 3),)
SPIKE_SEVERITY = (Threshold(SEVERITY_HIGH, 5),)
PRIORITY_SEVERITY = (Threshold(SEVERITY_HIGH, 30, strict=True),)
EMOTION_SEVERITY = (Threshold(SEVERITY_HIGH, 5),)
BACKLOG_SEVERITY = (Threshold(SEVERITY_HIGH, 5),)


@dataclass(frozen=True)
class Insight:
    type: str
    title: str
    description: str
    severity: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


Detector = Callable[[Sequence[ComplaintRecord]], list[Insight]]


def _category_of(complaint: ComplaintRecord) -> str:
    return complaint.category or DEFAULT_CATEGORY


def detect_cross_org_patterns(complaints: Sequence[ComplaintRecord]) -> list[Insight]:
    orgs_by_category: dict[str, set[str]] = {}
    for complaint in complaints:
        orgs = orgs_by_category.setdefault(_category_of(complaint), set())
        if complaint.org_id:
            orgs.add(complaint.org_id)
    insights: list[Insight] = []
    for category, orgs in orgs_by_category.items():
        if len(orgs) < PATTERN_MIN_ORGS:
            continue
        insights.append(
            Insight(
                type="pattern",
                title=f"{category} issues are common across {len(orgs)} organizations",
                description=f"Multiple institutions reporting similar {category.lower()} concerns",
                severity=grade(len(orgs), PATTERN_SEVERITY, SEVERITY_MEDIUM),
            )
        )
    return insights


def detect_monthly_spikes(complaints: Sequence[ComplaintRecord]) -> list[Insight]:
    # Buckets by month name, so the same month of different years shares a bucket.
    counts: Counter[tuple[str, str]] = Counter()
    for complaint in complaints:
        if complaint.created_at is None:
            continue
        month = calendar.month_name[complaint.created_at.month]
        counts[(month, _category_of(complaint))] += 1
    insights: list[Insight] = []
    for (month, category), count in counts.items():
        if count < SPIKE_MIN_COUNT:
            continue
        insights.append(
            Insight(
                type="spike",
                title=f"{category} complaints spike in {month}",
                description=f"{count} complaints recorded - consider proactive measures",
                severity=grade(count, SPIKE_SEVERITY, SEVERITY_MEDIUM),
            )
        )
    return insights


def detect_priority_alert(complaints: Sequence[ComplaintRecord]) -> list[Insight]:
    urgent = sum(1 for complaint in complaints if complaint.priority in HIGH_PRIORITIES)
    if urgent == 0:
        return []
    percentage = round_half_up(urgent / len(complaints) * 100)
    return [
        Insight(
            type="alert",
            title=f"{percentage}% of complaints are high priority",
            description=f"{urgent} complaints require immediate attention",
            severity=grade(percentage, PRIORITY_SEVERITY, SEVERITY_MEDIUM),
        )
    ]


def detect_emotion_alert(complaints: Sequence[ComplaintRecord]) -> list[Insight]:
    negative = sum(1 for complaint in complaints if complaint.emotion in NEGATIVE_EMOTIONS)
    if negative < EMOTION_MIN_COUNT:
        return []
    return [
        Insight(
            type="emotion",
            title=f"{negative} complaints show negative sentiment",
            description="Customer satisfaction may need attention",
            severity=grade(negative, EMOTION_SEVERITY, SEVERITY_MEDIUM),
        )
    ]


def detect_unassigned_backlog(complaints: Sequence[ComplaintRecord]) -> list[Insight]:
    # Uses the legacy status flag, not the derived stage.
    unassigned = sum(
        1
        for complaint in complaints
        if not complaint.assigned_manager_id and complaint.status != STATUS_RESOLVED
    )
    if unassigned == 0:
        return []
    return [
        Insight(
            type="action",
            title=f"{unassigned} complaints pending assignment",
            description="These complaints need manager assignment",
            severity=grade(unassigned, BACKLOG_SEVERITY, SEVERITY_LOW),
        )
    ]


DETECTORS: tuple[Detector, ...] = (
    detect_cross_org_patterns,
    detect_monthly_spikes,
    detect_priority_alert,
    detect_emotion_alert,
    detect_unassigned_backlog,
)


def generate_insights(
    complaints: Iterable[ComplaintRecord],
    *,
    limit: int = MAX_INSIGHTS,
) -> list[Insight]:
    records = list(complaints)
    insights: list[Insight] = []
    for detector in DETECTORS:
        insights.extend(detector(records))
    return insights[:limit]


def distribution(
    complaints: Iterable[ComplaintRecord],
    field: str,
    *,
    missing_label: str | None = None,
) -> dict[str, int]:
    # Counts analysis labels (category, priority or emotion); unlabeled complaints are skipped unless named.
    if field not in ("category", "priority", "emotion"):
        raise ValueError(f"Unsupported distribution field: {field}")
    counts: Counter[str] = Counter()
    for complaint in complaints:
        value = getattr(complaint, field)
        if value:
            counts[value] += 1
        elif missing_label is not None:
            counts[missing_label] += 1
    return dict(counts)


def status_distribution(complaints: Iterable[ComplaintRecord]) -> dict[str, int]:
    counts = {stage: 0 for stage in WORKFLOW_STAGES}
    for complaint in complaints:
        stage = effective_status(complaint)
        counts[stage] = counts.get(stage, 0) + 1
    return counts


def _rate(resolved: int, total: int) -> int:
    return round_half_up(resolved / total * 100) if total else 0


def resolution_rate(complaints: Iterable[ComplaintRecord]) -> int:
    statuses = [effective_status(complaint) for complaint in complaints]
    return _rate(statuses.count(STAGE_RESOLVED), len(statuses))


def complaints_by_org(
    complaints: Iterable[ComplaintRecord],
    organizations: Sequence[OrganizationRecord],
) -> list[dict[str, object]]:
    # Side-by-side volume and resolution per organization, in directory order.
    counts: Counter[str | None] = Counter()
    resolved: Counter[str | None] = Counter()
    for complaint in complaints:
        counts[complaint.org_id] += 1
        if effective_status(complaint) == STAGE_RESOLVED:
            resolved[complaint.org_id] += 1
    return [
        {
            "org_id": org.id,
            "name": org.name,
            "count": counts[org.id],
            "resolved": resolved[org.id],
            "resolution_rate": _rate(resolved[org.id], counts[org.id]),
        }
        for org in organizations
    ]


def complaints_by_day(complaints: Iterable[ComplaintRecord]) -> dict[str, int]:
    counts: Counter[str] = Counter()
    for complaint in complaints:
        if complaint.created_at is not None:
            counts[complaint.created_at.date().isoformat()] += 1
    return dict(sorted(counts.items()))
