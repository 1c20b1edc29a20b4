from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from complaintdesk.apps.api.main import create_app
from complaintdesk.tests.utils.directory import (
    auth_headers,
    create_test_complaint,
    create_test_organization,
    create_test_user,
)


HOSTEL_HIGH = {"summary": "s", "category": "Hostel", "priority": "High", "emotion": "Angry"}


@pytest.mark.asyncio
async def test_admin_dashboard_aggregates_all_organizations() -> None:
    app = create_app()
    admin = await create_test_user(role="admin")
    first = await create_test_organization(name="First")
    second = await create_test_organization(name="Second")
    student_a = await create_test_user(role="user", org_id=first)
    student_b = await create_test_user(role="user", org_id=second)
    manager = await create_test_user(role="manager", org_id=first)
    created = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)

    for owner in (student_a, student_a, student_b):
        await create_test_complaint(owner=owner, created_at=created, ai_analysis=HOSTEL_HIGH)
    await create_test_complaint(
        owner=student_a,
        created_at=created,
        ai_analysis=HOSTEL_HIGH,
        workflow_status="resolved",
        status_history={"resolved": (created + timedelta(hours=4)).isoformat()},
        assigned_manager_id=manager.user_id,
    )

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/v1/dashboard/admin", headers=auth_headers(admin.user_id))
        denied = await client.get("/v1/dashboard/admin", headers=auth_headers(manager.user_id))

    assert denied.status_code == 403
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["stats"]["total"] == 4
    assert data["stats"]["resolved"] == 1
    assert [insight["type"] for insight in data["insights"]] == ["pattern", "spike", "alert", "emotion", "action"]
    assert data["insights"][1]["severity"] == "medium"
    assert data["insights"][2]["title"] == "100% of complaints are high priority"
    assert data["insights"][4]["title"] == "3 complaints pending assignment"

    [card] = data["scorecards"]
    assert card["manager_id"] == manager.user_id
    assert card["total"] == 3
    assert card["resolved"] == 1
    assert card["resolution_rate"] == 33
    assert card["avg_time"] == "4.0h"
    assert card["org_name"] == "First"

    assert data["priority_distribution"] == {"High": 4}
    assert data["status_distribution"]["resolved"] == 1
    assert data["status_distribution"]["analyzed"] == 3
    comparison = {
        item["name"]: (item["count"], item["resolved"], item["resolution_rate"])
        for item in data["complaints_by_org"]
    }
    assert comparison == {"First": (3, 1, 33), "Second": (1, 0, 0)}
    assert data["resolution_rate"] == 25
    assert data["complaints_by_day"] == {"2026-03-10": 4}


@pytest.mark.asyncio
async def test_manager_dashboard_is_scoped_to_organization() -> None:
    app = create_app()
    org_id = await create_test_organization()
    other_org = await create_test_organization(name="Other")
    manager = await create_test_user(role="manager", org_id=org_id)
    unbound = await create_test_user(role="manager", org_id=None)
    student = await create_test_user(role="user", org_id=org_id)
    outsider = await create_test_user(role="user", org_id=other_org)

    await create_test_complaint(owner=student, ai_analysis=HOSTEL_HIGH, workflow_status="in-progress")
    await create_test_complaint(owner=outsider, ai_analysis=HOSTEL_HIGH)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/v1/dashboard/manager", headers=auth_headers(manager.user_id))
        no_org = await client.get("/v1/dashboard/manager", headers=auth_headers(unbound.user_id))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["org_id"] == org_id
    assert data["stats"] == {"total": 1, "pending": 1, "resolved": 0, "in_progress": 1, "critical": 0}
    assert data["status_distribution"]["in-progress"] == 1
    assert data["category_distribution"] == {"Hostel": 1}
    assert no_org.status_code == 403


@pytest.mark.asyncio
async def test_user_dashboard_shows_own_activity() -> None:
    app = create_app()
    org_id = await create_test_organization()
    student = await create_test_user(role="user", org_id=org_id)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        await client.post(
            "/v1/complaints",
            json={"title": "Exam result", "description": "My marks are missing"},
            headers=auth_headers(student.user_id),
        )
        response = await client.get("/v1/dashboard/user", headers=auth_headers(student.user_id))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["stats"]["total"] == 1
    assert data["stats"]["pending"] == 1
    assert {entry["stage"] for entry in data["activity"]} == {"submitted", "analyzed"}
