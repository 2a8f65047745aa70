import hashlib
import hmac
import json
import time
from datetime import timedelta
from decimal import Decimal

import pytest
from starlette.websockets import WebSocketState

from jobhub.api.ws import ConnectionManager
from jobhub.common.enums import JobStatus, QuoteStatus
from jobhub.config import settings
from jobhub.core.lifecycle.service import JobLifecycleService
from jobhub.db.base import utcnow
from jobhub.db.models.quote import Quote
from jobhub.integrations.stripe_client import StripeClient, from_cents, to_cents
from jobhub.tasks.quote_tasks import sweep_expired_quotes


# ---------------------------------------------------------------------------
# Stripe
# ---------------------------------------------------------------------------

def test_cents_conversion():
    assert to_cents(Decimal("130.00")) == 13000
    assert to_cents(Decimal("0.10")) == 10
    assert from_cents(13000) == Decimal("130.00")
    assert from_cents(9999) == Decimal("99.99")


@pytest.mark.asyncio
async def test_mock_payment_intent():
    client = StripeClient()
    intent = await client.create_payment_intent(Decimal("130.00"), job_id="j1", quote_id="q1")
    assert intent["id"].startswith("pi_")
    assert intent["amount"] == 13000
    assert intent["metadata"] == {"job_id": "j1", "quote_id": "q1"}
    assert await client.health_check() is True


def _signed(secret: str, payload: bytes, timestamp: int) -> str:
    digest = hmac.new(secret.encode(), f"{timestamp}.{payload.decode()}".encode(), hashlib.sha256)
    return f"t={timestamp},v1={digest.hexdigest()}"


def test_webhook_signature(monkeypatch):
    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", "sk_test_123")
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", "whsec_test")
    client = StripeClient()
    payload = json.dumps({"type": "payment_intent.succeeded"}).encode()
    now = int(time.time())

    event = client.verify_webhook_signature(payload, _signed("whsec_test", payload, now))
    assert event["type"] == "payment_intent.succeeded"

    with pytest.raises(ValueError):
        client.verify_webhook_signature(payload, _signed("whsec_other", payload, now))
    with pytest.raises(ValueError):
        client.verify_webhook_signature(payload, _signed("whsec_test", payload, now - 3600))
    with pytest.raises(ValueError):
        client.verify_webhook_signature(payload, "garbage")


# ---------------------------------------------------------------------------
# Quote expiry sweep
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_sweep_expires_past_deadline(session_factory, committed_quote_job):
    flow = committed_quote_job
    async with session_factory() as db:
        quote = await db.get(Quote, flow.quote.id)
        quote.valid_until = utcnow() - timedelta(hours=2)
        await db.commit()

    assert await sweep_expired_quotes(session_factory) == 1
    assert await sweep_expired_quotes(session_factory) == 0

    async with session_factory() as db:
        quote = await db.get(Quote, flow.quote.id)
        job = await JobLifecycleService(db).load_job(flow.job.id)
        assert quote.status == QuoteStatus.EXPIRED.value
        assert job.status == JobStatus.QUOTE_SENT.value


@pytest.mark.asyncio
async def test_sweep_leaves_live_quotes(session_factory, committed_quote_job):
    assert await sweep_expired_quotes(session_factory) == 0


# ---------------------------------------------------------------------------
# WebSocket fan-out
# ---------------------------------------------------------------------------

class FakeSocket:
    def __init__(self, fail: bool = False):
        self.client_state = WebSocketState.CONNECTED
        self.sent: list[dict] = []
        self.fail = fail

    async def accept(self):
        pass

    async def send_text(self, text: str):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(json.loads(text))


@pytest.mark.asyncio
async def test_broadcast_reaches_job_subscribers():
    manager = ConnectionManager()
    watcher, other = FakeSocket(), FakeSocket()
    await manager.connect("job-1", watcher)
    await manager.connect("job-2", other)

    await manager.broadcast("job-1", "job.status_changed", {"to_status": "PAID", "version": 7})

    assert len(watcher.sent) == 1
    assert watcher.sent[0]["event"] == "job.status_changed"
    assert watcher.sent[0]["job_id"] == "job-1"
    assert watcher.sent[0]["data"]["version"] == 7
    assert other.sent == []


@pytest.mark.asyncio
async def test_broken_socket_is_dropped():
    manager = ConnectionManager()
    healthy, broken = FakeSocket(), FakeSocket(fail=True)
    await manager.connect("job-1", healthy)
    await manager.connect("job-1", broken)
    assert manager.subscribers("job-1") == 2

    await manager.broadcast("job-1", "message.created", {"sequence": 3})

    assert manager.subscribers("job-1") == 1
    assert healthy.sent[0]["data"] == {"sequence": 3}
