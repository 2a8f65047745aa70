import re
from datetime import date, timedelta

import pytest

JOB_NUMBER = re.compile(r"^JOB\d{13}[A-Z0-9]{4}$")


def _job_payload(**overrides):
    payload = {
        "title": "Fix sink",
        "description": "Kitchen sink is leaking under the basin",
        "category": "plumbing",
        "estimated_budget": 250,
        "location": {"address": "14 Harbour Road", "city": "Cape Town"},
    }
    payload.update(overrides)
    return payload


async def _create_job(client, headers, **overrides):
    response = await client.post("/api/v1/jobs", headers=headers, json=_job_payload(**overrides))
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_create_job(client, auth_headers):
    data = await _create_job(client, auth_headers)
    assert data["status"] == "PENDING"
    assert JOB_NUMBER.match(data["job_number"])
    assert data["estimated_budget"] == "250.00"
    assert data["total_amount"] is None
    assert data["vendor_id"] is None
    assert data["priority"] == "MEDIUM"
    assert data["allowed_actions"] == ["cancel"]
    assert data["version"] == 1


@pytest.mark.asyncio
async def test_create_job_rejects_past_date(client, auth_headers):
    response = await client.post(
        "/api/v1/jobs",
        headers=auth_headers,
        json=_job_payload(requested_time_slot={
            "date": (date.today() - timedelta(days=2)).isoformat(),
            "start_time": "09:00",
            "end_time": "11:00",
        }),
    )
    assert response.status_code == 400
    assert response.json()["code"] == "bad_request"


@pytest.mark.asyncio
async def test_create_job_validation(client, auth_headers):
    response = await client.post(
        "/api/v1/jobs", headers=auth_headers, json=_job_payload(category="roofing")
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_vendor_cannot_create_job(client, vendor_headers):
    response = await client.post("/api/v1/jobs", headers=vendor_headers, json=_job_payload())
    assert response.status_code == 403
    assert response.json()["code"] == "permission_denied"


@pytest.mark.asyncio
async def test_requires_auth(client):
    response = await client.get("/api/v1/jobs", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_jobs_scoped_to_customer(client, auth_headers, other_customer):
    from jobhub.common.security import create_access_token

    await _create_job(client, auth_headers, title="Mine")
    other_headers = {"Authorization": f"Bearer {create_access_token({'sub': str(other_customer.id)})}"}
    await _create_job(client, other_headers, title="Theirs")

    response = await client.get("/api/v1/jobs", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["title"] == "Mine"
    assert data["total_pages"] == 1


@pytest.mark.asyncio
async def test_list_jobs_status_filter(client, auth_headers, admin_headers):
    await _create_job(client, auth_headers)
    response = await client.get("/api/v1/jobs?status=PENDING", headers=admin_headers)
    assert response.json()["total"] == 1
    response = await client.get("/api/v1/jobs?status=PAID", headers=admin_headers)
    assert response.json()["total"] == 0


@pytest.mark.asyncio
async def test_status_metadata(client):
    response = await client.get("/api/v1/jobs/status-metadata")
    assert response.status_code == 200
    data = response.json()
    assert len(data) == 10
    completed = next(m for m in data if m["status"] == "COMPLETED")
    assert completed["is_terminal"] is True
    assert completed["color"] == "green"


@pytest.mark.asyncio
async def test_get_job_hidden_from_other_customer(client, auth_headers, other_customer):
    from jobhub.common.security import create_access_token

    job = await _create_job(client, auth_headers)
    other_headers = {"Authorization": f"Bearer {create_access_token({'sub': str(other_customer.id)})}"}
    response = await client.get(f"/api/v1/jobs/{job['id']}", headers=other_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_get_missing_job(client, auth_headers):
    response = await client.get(
        "/api/v1/jobs/00000000-0000-0000-0000-000000000000", headers=auth_headers
    )
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


@pytest.mark.asyncio
async def test_assign_and_accept(client, auth_headers, admin_headers, vendor_headers, vendor_user):
    job = await _create_job(client, auth_headers)

    response = await client.post(
        f"/api/v1/jobs/{job['id']}/assign",
        headers=admin_headers,
        json={"vendor_id": str(vendor_user.id)},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "ASSIGNED"
    assert response.json()["vendor_id"] == str(vendor_user.id)

    response = await client.post(
        f"/api/v1/jobs/{job['id']}/respond",
        headers=vendor_headers,
        json={"response": "ACCEPTED"},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "IN_DISCUSSION"
    assert response.json()["allowed_actions"] == ["send_quote"]

    history = (await client.get(f"/api/v1/jobs/{job['id']}/history", headers=auth_headers)).json()
    assert [h["status"] for h in history] == ["PENDING", "ASSIGNED", "IN_DISCUSSION"]
    assert history[2]["from_status"] == "ASSIGNED"
    assert history[2]["actor_role"] == "vendor"


@pytest.mark.asyncio
async def test_customer_cannot_assign(client, auth_headers, vendor_user):
    job = await _create_job(client, auth_headers)
    response = await client.post(
        f"/api/v1/jobs/{job['id']}/assign",
        headers=auth_headers,
        json={"vendor_id": str(vendor_user.id)},
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_assign_requires_vendor_account(client, auth_headers, admin_headers, customer_user):
    job = await _create_job(client, auth_headers)
    response = await client.post(
        f"/api/v1/jobs/{job['id']}/assign",
        headers=admin_headers,
        json={"vendor_id": str(customer_user.id)},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_unassigned_vendor_cannot_respond(
    client, auth_headers, admin_headers, vendor_user, other_vendor_headers
):
    job = await _create_job(client, auth_headers)
    await client.post(
        f"/api/v1/jobs/{job['id']}/assign", headers=admin_headers, json={"vendor_id": str(vendor_user.id)}
    )
    response = await client.post(
        f"/api/v1/jobs/{job['id']}/respond",
        headers=other_vendor_headers,
        json={"response": "ACCEPTED"},
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_vendor_rejects_assignment(client, auth_headers, admin_headers, vendor_headers, vendor_user):
    job = await _create_job(client, auth_headers)
    await client.post(
        f"/api/v1/jobs/{job['id']}/assign", headers=admin_headers, json={"vendor_id": str(vendor_user.id)}
    )
    response = await client.post(
        f"/api/v1/jobs/{job['id']}/respond",
        headers=vendor_headers,
        json={"response": "REJECTED", "reason": "Fully booked"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "REJECTED"
    assert data["rejection_reason"] == "Fully booked"
    assert data["is_terminal"] is True


@pytest.mark.asyncio
async def test_unassign_then_reassign(
    client, auth_headers, admin_headers, vendor_user, other_vendor, other_vendor_headers
):
    job = await _create_job(client, auth_headers)
    await client.post(
        f"/api/v1/jobs/{job['id']}/assign", headers=admin_headers, json={"vendor_id": str(vendor_user.id)}
    )
    response = await client.post(
        f"/api/v1/jobs/{job['id']}/unassign", headers=admin_headers, json={"reason": "No response"}
    )
    assert response.status_code == 200
    assert response.json()["status"] == "PENDING"
    assert response.json()["vendor_id"] is None

    await client.post(
        f"/api/v1/jobs/{job['id']}/assign", headers=admin_headers, json={"vendor_id": str(other_vendor.id)}
    )
    response = await client.post(
        f"/api/v1/jobs/{job['id']}/respond", headers=other_vendor_headers, json={"response": "ACCEPTED"}
    )
    assert response.json()["status"] == "IN_DISCUSSION"


@pytest.mark.asyncio
async def test_cancel_pending_job(client, auth_headers):
    job = await _create_job(client, auth_headers)
    response = await client.post(
        f"/api/v1/jobs/{job['id']}/cancel", headers=auth_headers, json={"reason": "changed mind"}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "CANCELLED"
    assert data["cancellation_reason"] == "changed mind"
    assert data["cancelled_at"] is not None


@pytest.mark.asyncio
async def test_cancel_twice_is_invalid(client, auth_headers):
    job = await _create_job(client, auth_headers)
    await client.post(f"/api/v1/jobs/{job['id']}/cancel", headers=auth_headers, json={})
    response = await client.post(f"/api/v1/jobs/{job['id']}/cancel", headers=auth_headers, json={})
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_transition"


@pytest.mark.asyncio
async def test_stale_if_match_is_conflict(client, auth_headers):
    job = await _create_job(client, auth_headers)
    response = await client.post(
        f"/api/v1/jobs/{job['id']}/cancel",
        headers={**auth_headers, "If-Match": str(job["version"] + 1)},
        json={},
    )
    assert response.status_code == 409
    assert response.json()["code"] == "conflict"

    response = await client.post(
        f"/api/v1/jobs/{job['id']}/cancel",
        headers={**auth_headers, "If-Match": f'"{job["version"]}"'},
        json={},
    )
    assert response.status_code == 200
    assert response.json()["version"] == job["version"] + 1


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["service"] == "jobhub"
