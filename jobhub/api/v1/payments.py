import uuid
from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel as PydanticModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jobhub.api.deps import expected_version, get_actor, get_db
from jobhub.common.enums import JobStatus, PaymentStatus, QuoteStatus, UserRole
from jobhub.common.exceptions import (
    AmountMismatchError,
    BadRequestError,
    InvalidTransitionError,
    PermissionDeniedError,
    QuoteExpiredError,
)
from jobhub.common.logging import get_logger
from jobhub.core.lifecycle.access import ensure_job_party
from jobhub.core.lifecycle.schemas import Actor
from jobhub.core.lifecycle.service import JobLifecycleService
from jobhub.db.models.payment import Payment
from jobhub.db.models.quote import Quote
from jobhub.integrations.stripe_client import StripeClient, from_cents

logger = get_logger("api.v1.payments")

router = APIRouter(tags=["Payments"])


# ---------- Schemas ----------


class PaymentIntentResponse(PydanticModel):
    id: uuid.UUID
    job_id: uuid.UUID
    quote_id: uuid.UUID
    amount: Decimal
    currency: str
    status: str
    stripe_payment_intent_id: str | None
    client_secret: str | None
    created_at: datetime


class ConfirmPaymentRequest(PydanticModel):
    quote_id: uuid.UUID
    amount: Decimal
    payment_reference: str | None = None


class ConfirmPaymentResponse(PydanticModel):
    job_id: uuid.UUID
    status: str
    paid_at: datetime | None
    current_stage: str | None
    version: int


# ---------- Endpoints ----------


@router.post("/jobs/{job_id}/payments/intent", response_model=PaymentIntentResponse, status_code=201)
async def create_payment_intent(
    job_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    if actor.role != UserRole.CUSTOMER:
        raise PermissionDeniedError("Only the customer can pay for a job")
    job = await JobLifecycleService(db).load_job(job_id)
    ensure_job_party(job, actor)

    if job.status != JobStatus.QUOTE_ACCEPTED.value:
        raise InvalidTransitionError("create_payment_intent", job.status)
    quote = await db.get(Quote, job.active_quote_id) if job.active_quote_id else None
    if quote is None or quote.status != QuoteStatus.ACCEPTED.value:
        raise QuoteExpiredError("The job has no accepted quote to pay")

    stripe = StripeClient()
    intent = await stripe.create_payment_intent(
        amount=quote.amount,
        job_id=str(job.id),
        quote_id=str(quote.id),
        description=f"{job.job_number}: {job.title}",
        metadata={"user_id": str(actor.id)},
    )

    payment = Payment(
        job_id=job.id,
        quote_id=quote.id,
        user_id=actor.id,
        amount=quote.amount,
        currency=intent.get("currency", "usd"),
        stripe_payment_intent_id=intent["id"],
        status=PaymentStatus.PENDING.value,
        metadata_json={"stripe_status": intent.get("status")},
    )
    db.add(payment)
    await db.flush()
    await db.refresh(payment)

    logger.info("Payment intent %s created for job %s", intent["id"], job.job_number)
    return PaymentIntentResponse(
        id=payment.id, job_id=payment.job_id, quote_id=payment.quote_id, amount=payment.amount,
        currency=payment.currency, status=payment.status,
        stripe_payment_intent_id=payment.stripe_payment_intent_id,
        client_secret=intent.get("client_secret"), created_at=payment.created_at,
    )


@router.post("/jobs/{job_id}/payments/confirm", response_model=ConfirmPaymentResponse)
async def confirm_payment(
    job_id: uuid.UUID,
    body: ConfirmPaymentRequest,
    actor: Actor = Depends(get_actor),
    version: int | None = Depends(expected_version),
    db: AsyncSession = Depends(get_db),
):
    job = await JobLifecycleService(db).confirm_payment(
        job_id, body.quote_id, body.amount, actor,
        payment_reference=body.payment_reference, expected_version=version,
    )
    return ConfirmPaymentResponse(
        job_id=job.id, status=job.status, paid_at=job.paid_at,
        current_stage=job.current_stage, version=job.version,
    )


@router.post("/payments/webhook")
async def stripe_webhook(request: Request, db: AsyncSession = Depends(get_db)):
    """Handle Stripe webhook events."""
    payload = await request.body()
    sig = request.headers.get("stripe-signature", "")

    stripe = StripeClient()
    try:
        event = stripe.verify_webhook_signature(payload, sig)
    except ValueError:
        raise BadRequestError("Invalid webhook signature")

    event_type = event.get("type", "")
    intent = event.get("data", {}).get("object", {})

    if event_type == "payment_intent.succeeded":
        return await _handle_payment_succeeded(intent, db)
    elif event_type == "payment_intent.payment_failed":
        payment = await _find_payment(intent.get("id"), db)
        if payment:
            error = intent.get("last_payment_error") or {}
            payment.metadata_json = {**(payment.metadata_json or {}), "last_error": error.get("message")}
            logger.warning("Payment %s failed: %s", payment.stripe_payment_intent_id, error.get("message"))

    return {"status": "received"}


# ---------- Helpers ----------


async def _find_payment(intent_id: str | None, db: AsyncSession) -> Payment | None:
    if not intent_id:
        return None
    result = await db.execute(
        select(Payment).where(Payment.stripe_payment_intent_id == intent_id)
    )
    return result.scalar_one_or_none()


async def _handle_payment_succeeded(intent: dict, db: AsyncSession) -> dict:
    payment = await _find_payment(intent.get("id"), db)
    if payment is None:
        logger.warning("Webhook for unknown payment intent %s", intent.get("id"))
        return {"status": "ignored"}
    if payment.status != PaymentStatus.PENDING.value:
        return {"status": payment.status}

    cents = intent.get("amount_received") or intent.get("amount") or 0
    received = from_cents(int(cents))

    try:
        await JobLifecycleService(db).confirm_payment(
            payment.job_id, payment.quote_id, received, Actor.system(),
            payment_reference=payment.stripe_payment_intent_id,
        )
    except AmountMismatchError as e:
        payment.status = PaymentStatus.REQUIRES_RECONCILIATION.value
        payment.metadata_json = {
            **(payment.metadata_json or {}),
            "received_amount": str(received),
            "error": e.detail,
        }
        logger.error("Payment %s needs reconciliation: %s", payment.stripe_payment_intent_id, e.detail)
        return {"status": payment.status}
    except (QuoteExpiredError, InvalidTransitionError) as e:
        payment.status = PaymentStatus.REQUIRES_RECONCILIATION.value
        payment.metadata_json = {**(payment.metadata_json or {}), "error": e.detail}
        logger.error("Payment %s could not be applied: %s", payment.stripe_payment_intent_id, e.detail)
        return {"status": payment.status}

    payment.status = PaymentStatus.SUCCEEDED.value
    logger.info("Payment %s succeeded", payment.stripe_payment_intent_id)
    return {"status": payment.status}
