import json

import pytest
from sqlalchemy import select

from jobhub.db.models.payment import Payment


def _succeeded_event(intent_id: str, amount_cents: int) -> str:
    return json.dumps({
        "type": "payment_intent.succeeded",
        "data": {"object": {"id": intent_id, "amount": amount_cents, "amount_received": amount_cents}},
    })


async def _create_intent(client, job_id, headers):
    response = await client.post(f"/api/v1/jobs/{job_id}/payments/intent", headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_create_payment_intent(client, flow, auth_headers):
    job = await flow.quote_accepted()
    data = await _create_intent(client, job.id, auth_headers)
    assert data["amount"] == "130.00"
    assert data["status"] == "pending"
    assert data["stripe_payment_intent_id"].startswith("pi_")
    assert data["client_secret"]


@pytest.mark.asyncio
async def test_intent_requires_accepted_quote(client, flow, auth_headers):
    job = await flow.quote_sent()
    response = await client.post(f"/api/v1/jobs/{job.id}/payments/intent", headers=auth_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_webhook_confirms_payment(client, flow, auth_headers, db_session):
    job = await flow.quote_accepted()
    intent = await _create_intent(client, job.id, auth_headers)

    response = await client.post(
        "/api/v1/payments/webhook",
        content=_succeeded_event(intent["stripe_payment_intent_id"], 13000),
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "succeeded"

    job_data = (await client.get(f"/api/v1/jobs/{job.id}", headers=auth_headers)).json()
    assert job_data["status"] == "PAID"
    assert job_data["current_stage"] == "PAYMENT_RECEIVED"

    # Stripe redelivers events; the second delivery is acknowledged without effect
    response = await client.post(
        "/api/v1/payments/webhook",
        content=_succeeded_event(intent["stripe_payment_intent_id"], 13000),
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "succeeded"


@pytest.mark.asyncio
async def test_webhook_amount_mismatch_needs_reconciliation(client, flow, auth_headers, db_session):
    job = await flow.quote_accepted()
    intent = await _create_intent(client, job.id, auth_headers)

    response = await client.post(
        "/api/v1/payments/webhook",
        content=_succeeded_event(intent["stripe_payment_intent_id"], 9900),
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "requires_reconciliation"

    payment = (await db_session.execute(
        select(Payment).where(Payment.stripe_payment_intent_id == intent["stripe_payment_intent_id"])
    )).scalar_one()
    assert payment.status == "requires_reconciliation"
    assert payment.metadata_json["received_amount"] == "99.00"

    job_data = (await client.get(f"/api/v1/jobs/{job.id}", headers=auth_headers)).json()
    assert job_data["status"] == "QUOTE_ACCEPTED"


@pytest.mark.asyncio
async def test_webhook_unknown_intent_is_ignored(client):
    response = await client.post(
        "/api/v1/payments/webhook",
        content=_succeeded_event("pi_unknown", 100),
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "ignored"


@pytest.mark.asyncio
async def test_webhook_invalid_json(client):
    response = await client.post(
        "/api/v1/payments/webhook",
        content="not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_confirm_endpoint_admin_only(client, flow, auth_headers, admin_headers):
    job = await flow.quote_accepted()
    body = {"quote_id": str(flow.quote.id), "amount": "130.00", "payment_reference": "manual-1"}

    response = await client.post(f"/api/v1/jobs/{job.id}/payments/confirm", headers=auth_headers, json=body)
    assert response.status_code == 403

    response = await client.post(
        f"/api/v1/jobs/{job.id}/payments/confirm",
        headers=admin_headers,
        json={**body, "amount": "99.00"},
    )
    assert response.status_code == 422
    assert response.json()["code"] == "amount_mismatch"

    response = await client.post(f"/api/v1/jobs/{job.id}/payments/confirm", headers=admin_headers, json=body)
    assert response.status_code == 200
    assert response.json()["status"] == "PAID"
