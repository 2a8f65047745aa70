from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from jobhub.api.deps import expected_version, get_actor, get_db
from jobhub.core.lifecycle.schemas import Actor, QuoteData
from jobhub.core.lifecycle.service import JobLifecycleService
from jobhub.db.models.job import Job
from jobhub.db.models.quote import Quote

router = APIRouter(prefix="/jobs/{job_id}/quotes", tags=["Quotes"])


# ---------- Schemas ----------

class QuoteResponse(BaseModel):
    id: uuid.UUID
    job_id: uuid.UUID
    vendor_id: uuid.UUID
    amount: Decimal
    description: str | None
    breakdown: list | None
    valid_until: datetime
    terms: str | None
    payment_terms: str | None
    estimated_duration: Decimal | None
    inclusions: list | None
    exclusions: list | None
    status: str
    rejection_reason: str | None
    responded_at: datetime | None
    superseded_by_id: uuid.UUID | None
    created_at: datetime


class QuoteActionResponse(BaseModel):
    quote: QuoteResponse
    job_status: str
    job_version: int
    total_amount: Decimal | None


class RejectQuoteRequest(BaseModel):
    reason: str | None = None


# ---------- Endpoints ----------

@router.get("", response_model=list[QuoteResponse])
async def list_quotes(
    job_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    quotes = await JobLifecycleService(db).list_quotes(job_id, actor)
    return [_quote_response(q) for q in quotes]


@router.post("", response_model=QuoteActionResponse, status_code=201)
async def send_quote(
    job_id: uuid.UUID,
    body: QuoteData,
    actor: Actor = Depends(get_actor),
    version: int | None = Depends(expected_version),
    db: AsyncSession = Depends(get_db),
):
    job, quote = await JobLifecycleService(db).send_quote(job_id, actor, body, expected_version=version)
    return _action_response(job, quote)


@router.post("/resend", response_model=QuoteActionResponse, status_code=201)
async def resend_quote(
    job_id: uuid.UUID,
    body: QuoteData,
    actor: Actor = Depends(get_actor),
    version: int | None = Depends(expected_version),
    db: AsyncSession = Depends(get_db),
):
    job, quote = await JobLifecycleService(db).resend_quote(job_id, actor, body, expected_version=version)
    return _action_response(job, quote)


@router.post("/{quote_id}/accept", response_model=QuoteActionResponse)
async def accept_quote(
    job_id: uuid.UUID,
    quote_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    version: int | None = Depends(expected_version),
    db: AsyncSession = Depends(get_db),
):
    job, quote = await JobLifecycleService(db).accept_quote(job_id, quote_id, actor, expected_version=version)
    return _action_response(job, quote)


@router.post("/{quote_id}/reject", response_model=QuoteActionResponse)
async def reject_quote(
    job_id: uuid.UUID,
    quote_id: uuid.UUID,
    body: RejectQuoteRequest,
    actor: Actor = Depends(get_actor),
    version: int | None = Depends(expected_version),
    db: AsyncSession = Depends(get_db),
):
    job, quote = await JobLifecycleService(db).reject_quote(
        job_id, quote_id, actor, reason=body.reason, expected_version=version,
    )
    return _action_response(job, quote)


# ---------- Helpers ----------

def _quote_response(q: Quote) -> QuoteResponse:
    return QuoteResponse(
        id=q.id, job_id=q.job_id, vendor_id=q.vendor_id, amount=q.amount,
        description=q.description, breakdown=q.breakdown, valid_until=q.valid_until,
        terms=q.terms, payment_terms=q.payment_terms, estimated_duration=q.estimated_duration,
        inclusions=q.inclusions, exclusions=q.exclusions, status=q.status,
        rejection_reason=q.rejection_reason, responded_at=q.responded_at,
        superseded_by_id=q.superseded_by_id, created_at=q.created_at,
    )


def _action_response(job: Job, quote: Quote) -> QuoteActionResponse:
    return QuoteActionResponse(
        quote=_quote_response(quote),
        job_status=job.status,
        job_version=job.version,
        total_amount=job.total_amount,
    )
