"""Stripe client for collecting payment on accepted quotes.

Talks to the Stripe REST API when a real key is configured and returns
mock payment intents for development when the key starts with ``mock_``.
The engine never trusts this client's view of a payment; confirmation
arrives separately through the webhook.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import httpx

from jobhub.common.exceptions import ExternalServiceError
from jobhub.config import settings
from jobhub.integrations.base import BaseIntegration

WEBHOOK_TOLERANCE_SECONDS = 300


def _is_mock() -> bool:
    return settings.STRIPE_SECRET_KEY.startswith("mock_")


def to_cents(amount: Decimal) -> int:
    return int((amount * 100).to_integral_value())


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(Decimal("0.01"))


class StripeClient(BaseIntegration):
    """Payment intents and webhook verification, with a mock fallback."""

    BASE_URL = "https://api.stripe.com/v1"

    def __init__(self) -> None:
        super().__init__("stripe")

    def _headers(self, idempotency_key: str | None = None) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {settings.STRIPE_SECRET_KEY}"}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        return headers

    async def health_check(self) -> bool:
        if _is_mock():
            self.logger.info("Stripe health check: OK (mock)")
            return True
        try:
            async with httpx.AsyncClient(timeout=10) as client:
                resp = await client.get(f"{self.BASE_URL}/balance", headers=self._headers())
                return resp.status_code == 200
        except httpx.HTTPError as e:
            self.logger.error("Stripe health check failed: %s", e)
            return False

    # ------------------------------------------------------------------
    # Payment Intents
    # ------------------------------------------------------------------

    async def create_payment_intent(
        self,
        amount: Decimal,
        job_id: str,
        quote_id: str,
        description: str = "",
        metadata: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Create an intent for an accepted quote.

        The idempotency key is derived from the quote so a retried request
        returns the existing intent instead of charging twice.
        """
        amount_cents = to_cents(amount)
        meta = {"job_id": job_id, "quote_id": quote_id, **(metadata or {})}

        if not _is_mock():
            payload: dict[str, Any] = {
                "amount": amount_cents,
                "currency": settings.CURRENCY,
                "description": description,
            }
            for k, v in meta.items():
                payload[f"metadata[{k}]"] = v
            try:
                async with httpx.AsyncClient(timeout=30) as client:
                    resp = await client.post(
                        f"{self.BASE_URL}/payment_intents",
                        headers=self._headers(idempotency_key=f"quote-{quote_id}"),
                        data=payload,
                    )
                    resp.raise_for_status()
            except httpx.HTTPError as e:
                self.logger.error("Stripe payment intent failed for job %s: %s", job_id, e)
                raise ExternalServiceError("Stripe", str(e)) from e
            data = resp.json()
            self.logger.info("Created payment intent: %s ($%.2f)", data["id"], amount_cents / 100)
            return data

        pi_id = f"pi_{uuid.uuid4().hex[:24]}"
        self.logger.info("Mock payment intent: %s ($%.2f)", pi_id, amount_cents / 100)
        return {
            "id": pi_id,
            "object": "payment_intent",
            "amount": amount_cents,
            "currency": settings.CURRENCY,
            "status": "requires_payment_method",
            "client_secret": f"{pi_id}_secret_{uuid.uuid4().hex[:12]}",
            "description": description,
            "metadata": meta,
            "created": int(datetime.now(timezone.utc).timestamp()),
        }

    # ------------------------------------------------------------------
    # Webhook signature verification
    # ------------------------------------------------------------------

    def verify_webhook_signature(self, payload: bytes, sig_header: str) -> dict[str, Any]:
        """Verify a Stripe webhook signature. Returns the parsed event."""
        webhook_secret = settings.STRIPE_WEBHOOK_SECRET

        if _is_mock() or not webhook_secret:
            try:
                return json.loads(payload)
            except json.JSONDecodeError as e:
                raise ValueError("Webhook payload is not valid JSON") from e

        try:
            parts = dict(item.split("=", 1) for item in sig_header.split(","))
        except ValueError as e:
            raise ValueError("Malformed Stripe-Signature header") from e
        timestamp = parts.get("t", "")
        signature = parts.get("v1", "")
        if not timestamp.isdigit():
            raise ValueError("Malformed Stripe-Signature header")

        signed_payload = f"{timestamp}.{payload.decode()}"
        expected = hmac.new(
            webhook_secret.encode(), signed_payload.encode(), hashlib.sha256
        ).hexdigest()

        if not hmac.compare_digest(expected, signature):
            raise ValueError("Invalid Stripe webhook signature")

        if abs(time.time() - int(timestamp)) > WEBHOOK_TOLERANCE_SECONDS:
            raise ValueError("Stripe webhook timestamp too old")

        return json.loads(payload)
