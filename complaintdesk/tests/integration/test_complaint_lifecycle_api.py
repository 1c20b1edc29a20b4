from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from complaintdesk.apps.api.main import create_app
from complaintdesk.tests.utils.directory import (
    auth_headers,
    create_test_complaint,
    create_test_organization,
    create_test_user,
)


@pytest.mark.asyncio
async def test_complaint_moves_through_workflow() -> None:
    app = create_app()
    org_id = await create_test_organization(name="Acme", email_domain="acme.edu")
    student = await create_test_user(role="user", org_id=org_id, name="Asha Rao")
    manager = await create_test_user(role="manager", org_id=org_id, name="Dana")

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        submitted = await client.post(
            "/v1/complaints",
            json={"title": "URGENT", "description": "water issue in hostel, please fix immediately"},
            headers=auth_headers(student.user_id),
        )
        assert submitted.status_code == 201
        body = submitted.json()["data"]
        complaint = body["complaint"]
        complaint_id = complaint["id"]
        assert complaint["ai_analysis"]["category"] == "Hostel"
        assert complaint["ai_analysis"]["priority"] == "Critical"
        assert complaint["effective_status"] == "analyzed"
        assert set(complaint["status_history"]) == {"submitted", "analyzed"}
        assert complaint["org_id"] == org_id
        assert body["auto_reply"]["greeting"] == "Thank you for reaching out, Asha!"

        skipped = await client.post(
            f"/v1/complaints/{complaint_id}/stage",
            json={"target": "in-progress"},
            headers=auth_headers(manager.user_id),
        )
        assert skipped.status_code == 409
        assert skipped.json()["error"]["code"] == "INVALID_TRANSITION"

        by_student = await client.post(
            f"/v1/complaints/{complaint_id}/stage",
            json={"target": "assigned"},
            headers=auth_headers(student.user_id),
        )
        assert by_student.status_code == 403

        assigned = await client.post(
            f"/v1/complaints/{complaint_id}/assign",
            json={},
            headers=auth_headers(manager.user_id),
        )
        assert assigned.status_code == 200
        assigned_data = assigned.json()["data"]
        assert assigned_data["effective_status"] == "assigned"
        assert assigned_data["assigned_manager_id"] == manager.user_id
        assert assigned_data["assigned_manager_name"] == "Dana"
        assigned_at = assigned_data["status_history"]["assigned"]

        early_rating = await client.post(
            f"/v1/complaints/{complaint_id}/rating",
            json={"rating": 5},
            headers=auth_headers(student.user_id),
        )
        assert early_rating.status_code == 422

        for target in ("in-progress", "resolved"):
            moved = await client.post(
                f"/v1/complaints/{complaint_id}/stage",
                json={"target": target},
                headers=auth_headers(manager.user_id),
            )
            assert moved.status_code == 200
            assert moved.json()["data"]["effective_status"] == target

        resolved = moved.json()["data"]
        assert resolved["status"] == "resolved"
        assert resolved["resolved_at"] is not None
        assert resolved["status_history"]["assigned"] == assigned_at

        beyond = await client.post(
            f"/v1/complaints/{complaint_id}/stage",
            json={"target": "resolved"},
            headers=auth_headers(manager.user_id),
        )
        assert beyond.status_code == 409

        bad_rating = await client.post(
            f"/v1/complaints/{complaint_id}/rating",
            json={"rating": 6},
            headers=auth_headers(student.user_id),
        )
        assert bad_rating.status_code == 422

        rated = await client.post(
            f"/v1/complaints/{complaint_id}/rating",
            json={"rating": 4},
            headers=auth_headers(student.user_id),
        )
        assert rated.status_code == 200
        assert rated.json()["data"]["user_satisfaction_rating"] == 4


@pytest.mark.asyncio
async def test_submit_requires_fields_and_organization() -> None:
    app = create_app()
    org_id = await create_test_organization()
    student = await create_test_user(role="user", org_id=org_id)
    orphan = await create_test_user(role="user", org_id=None)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        missing = await client.post(
            "/v1/complaints",
            json={"title": "Only a title", "description": "  "},
            headers=auth_headers(student.user_id),
        )
        no_org = await client.post(
            "/v1/complaints",
            json={"title": "Lost", "description": "No organization"},
            headers=auth_headers(orphan.user_id),
        )
        listing = await client.get("/v1/complaints", headers=auth_headers(student.user_id))

    assert missing.status_code == 422
    assert no_org.status_code == 403
    assert listing.json()["data"] == []


@pytest.mark.asyncio
async def test_reanalyze_overwrites_analysis_without_moving_stage() -> None:
    app = create_app()
    org_id = await create_test_organization()
    student = await create_test_user(role="user", org_id=org_id)
    manager = await create_test_user(role="manager", org_id=org_id)
    outsider = await create_test_user(role="manager", org_id=await create_test_organization(name="Other"))
    # Legacy document: no analysis, no history, no explicit stage.
    complaint_id = await create_test_complaint(
        owner=student,
        title="Scholarship delay",
        description="My scholarship payment is delayed",
    )

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        before = await client.get(f"/v1/complaints/{complaint_id}", headers=auth_headers(manager.user_id))
        assert before.json()["data"]["effective_status"] == "submitted"

        denied = await client.post(
            f"/v1/complaints/{complaint_id}/reanalyze",
            headers=auth_headers(outsider.user_id),
        )
        assert denied.status_code == 403

        first = await client.post(
            f"/v1/complaints/{complaint_id}/reanalyze",
            headers=auth_headers(manager.user_id),
        )
        second = await client.post(
            f"/v1/complaints/{complaint_id}/reanalyze",
            headers=auth_headers(manager.user_id),
        )
        assert first.status_code == 200
        assert first.json()["data"] == second.json()["data"]
        assert first.json()["data"]["category"] == "Finance"
        assert first.json()["data"]["priority"] == "High"

        after = await client.get(f"/v1/complaints/{complaint_id}", headers=auth_headers(manager.user_id))
        data = after.json()["data"]
        assert data["effective_status"] == "analyzed"
        assert data["workflow_status"] is None
        assert list(data["status_history"]) == ["analyzed"]

        hidden = await client.get(f"/v1/complaints/{complaint_id}", headers=auth_headers(outsider.user_id))
        assert hidden.status_code == 404


@pytest.mark.asyncio
async def test_admin_cannot_work_complaints() -> None:
    app = create_app()
    org_id = await create_test_organization()
    student = await create_test_user(role="user", org_id=org_id)
    admin = await create_test_user(role="admin")

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        submitted = await client.post(
            "/v1/complaints",
            json={"title": "Wifi down", "description": "The campus wifi is down in the library"},
            headers=auth_headers(student.user_id),
        )
        complaint_id = submitted.json()["data"]["complaint"]["id"]

        stage = await client.post(
            f"/v1/complaints/{complaint_id}/stage",
            json={"target": "assigned"},
            headers=auth_headers(admin.user_id),
        )
        assign = await client.post(
            f"/v1/complaints/{complaint_id}/assign",
            json={},
            headers=auth_headers(admin.user_id),
        )
        reanalyze = await client.post(
            f"/v1/complaints/{complaint_id}/reanalyze",
            headers=auth_headers(admin.user_id),
        )
        after = await client.get(f"/v1/complaints/{complaint_id}", headers=auth_headers(admin.user_id))

    for response in (stage, assign, reanalyze):
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "AUTH_FORBIDDEN"
        assert response.json()["error"]["message"] == "Manager role required"
    assert after.json()["data"]["effective_status"] == "analyzed"
    assert after.json()["data"]["assigned_manager_id"] is None


@pytest.mark.asyncio
async def test_assigning_unanalyzed_complaint_asks_for_reanalysis() -> None:
    app = create_app()
    org_id = await create_test_organization()
    student = await create_test_user(role="user", org_id=org_id)
    manager = await create_test_user(role="manager", org_id=org_id)
    complaint_id = await create_test_complaint(owner=student)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        refused = await client.post(
            f"/v1/complaints/{complaint_id}/assign",
            json={},
            headers=auth_headers(manager.user_id),
        )
        assert refused.status_code == 409
        assert refused.json()["error"]["code"] == "INVALID_TRANSITION"
        assert "re-analyze" in refused.json()["error"]["message"]

        await client.post(f"/v1/complaints/{complaint_id}/reanalyze", headers=auth_headers(manager.user_id))
        assigned = await client.post(
            f"/v1/complaints/{complaint_id}/assign",
            json={},
            headers=auth_headers(manager.user_id),
        )
    assert assigned.status_code == 200
    assert assigned.json()["data"]["effective_status"] == "assigned"


@pytest.mark.asyncio
async def test_visibility_filters_and_delete() -> None:
    app = create_app()
    org_id = await create_test_organization()
    other_org = await create_test_organization(name="Other")
    student = await create_test_user(role="user", org_id=org_id)
    classmate = await create_test_user(role="user", org_id=org_id)
    manager = await create_test_user(role="manager", org_id=org_id)
    admin = await create_test_user(role="admin")
    stranger = await create_test_user(role="user", org_id=other_org)

    open_id = await create_test_complaint(owner=student, title="Open one")
    resolved_id = await create_test_complaint(owner=student, title="Done one", workflow_status="resolved")
    await create_test_complaint(owner=classmate, title="Classmate")
    await create_test_complaint(owner=stranger, title="Elsewhere")

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        mine = await client.get("/v1/complaints", headers=auth_headers(student.user_id))
        assert {item["id"] for item in mine.json()["data"]} == {open_id, resolved_id}

        org_all = await client.get("/v1/complaints", headers=auth_headers(manager.user_id))
        assert len(org_all.json()["data"]) == 3
        pending = await client.get("/v1/complaints?state=pending", headers=auth_headers(manager.user_id))
        assert resolved_id not in {item["id"] for item in pending.json()["data"]}
        done = await client.get("/v1/complaints?state=resolved", headers=auth_headers(manager.user_id))
        assert [item["id"] for item in done.json()["data"]] == [resolved_id]
        invalid = await client.get("/v1/complaints?state=closed", headers=auth_headers(manager.user_id))
        assert invalid.status_code == 422

        everything = await client.get("/v1/complaints", headers=auth_headers(admin.user_id))
        assert len(everything.json()["data"]) == 4

        not_owner = await client.delete(f"/v1/complaints/{open_id}", headers=auth_headers(classmate.user_id))
        assert not_owner.status_code == 403
        deleted = await client.delete(f"/v1/complaints/{open_id}", headers=auth_headers(student.user_id))
        assert deleted.status_code == 200
        assert deleted.json()["data"] == {"id": open_id, "deleted": True}
        gone = await client.delete(f"/v1/complaints/{open_id}", headers=auth_headers(admin.user_id))
        assert gone.status_code == 404
