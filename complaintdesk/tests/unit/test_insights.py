from __future__ import annotations

from datetime import datetime, timezone

import pytest

from complaintdesk.domain.records import ComplaintRecord, OrganizationRecord
from complaintdesk.services.insights import (
    MAX_INSIGHTS,
    complaints_by_day,
    complaints_by_org,
    resolution_rate,
    detect_cross_org_patterns,
    detect_emotion_alert,
    detect_monthly_spikes,
    detect_priority_alert,
    detect_unassigned_backlog,
    distribution,
    generate_insights,
    status_distribution,
)


def _complaint(
    index: int,
    *,
    org_id: str = "o1",
    category: str | None = "Hostel",
    priority: str = "Low",
    emotion: str = "Calm",
    created_at: datetime | None = None,
    assigned_manager_id: str | None = "m1",
    status: str = "open",
    workflow_status: str | None = None,
) -> ComplaintRecord:
    analysis = None
    if category is not None:
        analysis = {"summary": "s", "category": category, "priority": priority, "emotion": emotion}
    return ComplaintRecord(
        id=f"c{index}",
        org_id=org_id,
        ai_analysis=analysis,
        created_at=created_at or datetime(2026, 3, 10, tzinfo=timezone.utc),
        assigned_manager_id=assigned_manager_id,
        status=status,
        workflow_status=workflow_status,
    )


def test_monthly_spike_severity_escalates() -> None:
    three = [_complaint(i) for i in range(3)]
    insights = detect_monthly_spikes(three)
    assert len(insights) == 1
    assert insights[0].type == "spike"
    assert insights[0].title == "Hostel complaints spike in March"
    assert insights[0].severity == "medium"

    five = [_complaint(i) for i in range(5)]
    assert detect_monthly_spikes(five)[0].severity == "high"


def test_monthly_spike_ignores_small_groups() -> None:
    complaints = [
        _complaint(0),
        _complaint(1),
        _complaint(2, created_at=datetime(2026, 4, 1, tzinfo=timezone.utc)),
    ]
    assert detect_monthly_spikes(complaints) == []


def test_cross_org_pattern() -> None:
    two_orgs = [_complaint(0, org_id="o1"), _complaint(1, org_id="o2")]
    insights = detect_cross_org_patterns(two_orgs)
    assert [insight.severity for insight in insights] == ["medium"]
    assert insights[0].title == "Hostel issues are common across 2 organizations"

    three_orgs = two_orgs + [_complaint(2, org_id="o3")]
    assert detect_cross_org_patterns(three_orgs)[0].severity == "high"
    assert detect_cross_org_patterns([_complaint(0), _complaint(1)]) == []


def test_unanalyzed_complaints_group_as_general() -> None:
    complaints = [_complaint(0, org_id="o1", category=None), _complaint(1, org_id="o2", category=None)]
    assert detect_cross_org_patterns(complaints)[0].title.startswith("General issues")


def test_priority_alert_threshold_is_strict() -> None:
    # 3 of 10 is exactly 30%, which stays medium.
    complaints = [_complaint(i, priority="High" if i < 3 else "Low") for i in range(10)]
    insight = detect_priority_alert(complaints)[0]
    assert insight.title == "30% of complaints are high priority"
    assert insight.severity == "medium"

    complaints = [_complaint(i, priority="Critical" if i < 4 else "Low") for i in range(10)]
    assert detect_priority_alert(complaints)[0].severity == "high"
    assert detect_priority_alert([_complaint(0)]) == []


def test_priority_alert_rounds_half_up() -> None:
    # 1 of 8 is 12.5%.
    complaints = [_complaint(i, priority="High" if i == 0 else "Low") for i in range(8)]
    assert detect_priority_alert(complaints)[0].title.startswith("13%")


def test_emotion_alert() -> None:
    two = [_complaint(i, emotion="Angry") for i in range(2)]
    assert detect_emotion_alert(two) == []
    three = two + [_complaint(2, emotion="Upset")]
    assert detect_emotion_alert(three)[0].severity == "medium"
    five = three + [_complaint(3, emotion="Frustrated"), _complaint(4, emotion="Disappointed")]
    assert detect_emotion_alert(five)[0].severity == "high"


def test_unassigned_backlog_uses_legacy_status() -> None:
    complaints = [
        _complaint(0, assigned_manager_id=None),
        _complaint(1, assigned_manager_id=None, status="resolved"),
        _complaint(2),
    ]
    insight = detect_unassigned_backlog(complaints)[0]
    assert insight.title == "1 complaints pending assignment"
    assert insight.severity == "low"
    many = [_complaint(i, assigned_manager_id=None) for i in range(5)]
    assert detect_unassigned_backlog(many)[0].severity == "high"


def test_generate_insights_is_capped_and_ordered() -> None:
    complaints = []
    categories = ["Hostel", "Finance", "Academics", "Administration", "Infrastructure"]
    for offset, category in enumerate(categories):
        for org in ("o1", "o2", "o3"):
            complaints.append(
                _complaint(
                    len(complaints),
                    org_id=org,
                    category=category,
                    priority="Critical",
                    emotion="Angry",
                    assigned_manager_id=None,
                )
            )
    insights = generate_insights(complaints)
    assert len(insights) == MAX_INSIGHTS
    assert [insight.type for insight in insights] == ["pattern"] * 5 + ["spike"]


def test_generate_insights_empty() -> None:
    assert generate_insights([]) == []


def test_distributions() -> None:
    complaints = [
        _complaint(0, priority="High"),
        _complaint(1, priority="High"),
        _complaint(2, category=None),
    ]
    assert distribution(complaints, "priority") == {"High": 2}
    assert distribution(complaints, "category", missing_label="General") == {"Hostel": 2, "General": 1}
    with pytest.raises(ValueError):
        distribution(complaints, "title")


def test_status_distribution_is_zero_filled() -> None:
    complaints = [_complaint(0), _complaint(1, workflow_status="resolved")]
    assert status_distribution(complaints) == {
        "submitted": 0,
        "analyzed": 1,
        "assigned": 0,
        "in-progress": 0,
        "resolved": 1,
    }


def test_complaints_by_org_and_day() -> None:
    organizations = [
        OrganizationRecord(id="o1", name="Acme", email_domain="acme.com"),
        OrganizationRecord(id="o2", name="Globex", email_domain="globex.org"),
    ]
    complaints = [
        _complaint(0, created_at=datetime(2026, 3, 11, 8, tzinfo=timezone.utc)),
        _complaint(1, created_at=datetime(2026, 3, 10, 9, tzinfo=timezone.utc)),
    ]
    assert complaints_by_org(complaints, organizations) == [
        {"org_id": "o1", "name": "Acme", "count": 2, "resolved": 0, "resolution_rate": 0},
        {"org_id": "o2", "name": "Globex", "count": 0, "resolved": 0, "resolution_rate": 0},
    ]
    assert list(complaints_by_day(complaints).items()) == [("2026-03-10", 1), ("2026-03-11", 1)]


def test_complaints_by_org_compares_resolution_rates() -> None:
    organizations = [
        OrganizationRecord(id="o1", name="Acme", email_domain="acme.com"),
        OrganizationRecord(id="o2", name="Globex", email_domain="globex.org"),
    ]
    acme = [
        _complaint(0, workflow_status="resolved"),
        _complaint(1, workflow_status="resolved"),
        _complaint(2, workflow_status="in-progress"),
    ]
    # A legacy status alone does not make a complaint resolved.
    globex = [_complaint(3 + i, org_id="o2", status="resolved") for i in range(7)]
    globex.append(_complaint(10, org_id="o2", workflow_status="resolved"))
    rows = complaints_by_org(acme + globex, organizations)

    assert [(row["name"], row["count"], row["resolved"], row["resolution_rate"]) for row in rows] == [
        ("Acme", 3, 2, 67),
        ("Globex", 8, 1, 13),
    ]
    assert resolution_rate(acme + globex) == 27
    assert resolution_rate([_complaint(0, status="resolved")]) == 0
    assert resolution_rate([]) == 0
