"""Job submission, assignment and top-level lifecycle actions."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from jobhub.api.deps import expected_version, get_actor, get_db
from jobhub.common.enums import AssignmentResponse, JobStatus
from jobhub.common.pagination import PaginatedResponse, PaginationParams
from jobhub.core.lifecycle.schemas import Actor, JobCreateData, StatusMetadata
from jobhub.core.lifecycle.service import JobLifecycleService
from jobhub.core.lifecycle.state_machine import allowed_actions, is_terminal, status_label, status_metadata
from jobhub.db.models.job import Job

router = APIRouter(prefix="/jobs", tags=["Jobs"])


# ---------- Schemas ----------

class JobResponse(BaseModel):
    id: uuid.UUID
    job_number: str
    customer_id: uuid.UUID
    vendor_id: uuid.UUID | None
    title: str
    description: str
    category: str
    priority: str
    is_emergency: bool
    status: str
    status_label: str
    is_terminal: bool
    allowed_actions: list[str]
    location: dict | None
    requested_time_slot: dict | None
    estimated_duration: Decimal | None
    estimated_budget: Decimal | None
    total_amount: Decimal | None
    subtotal: Decimal | None
    tax_amount: Decimal | None
    active_quote_id: uuid.UUID | None
    current_stage: str | None
    special_instructions: str | None
    access_instructions: str | None
    contact_number: str | None
    images: list | None
    videos: list | None
    rejection_reason: str | None
    cancellation_reason: str | None
    last_message_sequence: int
    version: int
    paid_at: datetime | None
    started_at: datetime | None
    completed_at: datetime | None
    cancelled_at: datetime | None
    created_at: datetime
    updated_at: datetime


class JobListResponse(PaginatedResponse[JobResponse]):
    pass


class AssignRequest(BaseModel):
    vendor_id: uuid.UUID


class UnassignRequest(BaseModel):
    reason: str | None = None


class RespondRequest(BaseModel):
    response: AssignmentResponse
    reason: str | None = None


class CancelRequest(BaseModel):
    reason: str | None = None


class HistoryEntry(BaseModel):
    status: str
    from_status: str | None
    action: str
    actor_id: str | None
    actor_role: str
    notes: str | None
    at: str


# ---------- Endpoints ----------

@router.post("", response_model=JobResponse, status_code=201)
async def create_job(
    body: JobCreateData,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    job = await JobLifecycleService(db).create_job(actor, body)
    return _job_response(job, actor)


@router.get("", response_model=JobListResponse)
async def list_jobs(
    status: JobStatus | None = Query(None, description="Filter by status"),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    params: PaginationParams = Depends(),
):
    items, total = await JobLifecycleService(db).list_jobs(actor, params, status=status)
    return JobListResponse(
        items=[_job_response(j, actor) for j in items],
        total=total, page=params.page, page_size=params.page_size,
        total_pages=params.total_pages(total),
    )


@router.get("/status-metadata", response_model=list[StatusMetadata])
async def get_status_metadata():
    return status_metadata()


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    job = await JobLifecycleService(db).get_job(job_id, actor)
    return _job_response(job, actor)


@router.get("/{job_id}/history", response_model=list[HistoryEntry])
async def get_history(
    job_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    entries = await JobLifecycleService(db).history(job_id, actor)
    return [
        HistoryEntry(
            status=e["status"], from_status=e.get("from"), action=e["action"],
            actor_id=e.get("actor_id"), actor_role=e["actor_role"], notes=e.get("notes"), at=e["at"],
        )
        for e in entries
    ]


@router.post("/{job_id}/assign", response_model=JobResponse)
async def assign_vendor(
    job_id: uuid.UUID,
    body: AssignRequest,
    actor: Actor = Depends(get_actor),
    version: int | None = Depends(expected_version),
    db: AsyncSession = Depends(get_db),
):
    job = await JobLifecycleService(db).assign_vendor(job_id, body.vendor_id, actor, expected_version=version)
    return _job_response(job, actor)


@router.post("/{job_id}/unassign", response_model=JobResponse)
async def unassign_vendor(
    job_id: uuid.UUID,
    body: UnassignRequest,
    actor: Actor = Depends(get_actor),
    version: int | None = Depends(expected_version),
    db: AsyncSession = Depends(get_db),
):
    job = await JobLifecycleService(db).unassign_vendor(job_id, actor, reason=body.reason, expected_version=version)
    return _job_response(job, actor)


@router.post("/{job_id}/respond", response_model=JobResponse)
async def respond_to_assignment(
    job_id: uuid.UUID,
    body: RespondRequest,
    actor: Actor = Depends(get_actor),
    version: int | None = Depends(expected_version),
    db: AsyncSession = Depends(get_db),
):
    job = await JobLifecycleService(db).respond_to_assignment(
        job_id, actor, body.response, reason=body.reason, expected_version=version,
    )
    return _job_response(job, actor)


@router.post("/{job_id}/start", response_model=JobResponse)
async def start_work(
    job_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    version: int | None = Depends(expected_version),
    db: AsyncSession = Depends(get_db),
):
    job = await JobLifecycleService(db).start_work(job_id, actor, expected_version=version)
    return _job_response(job, actor)


@router.post("/{job_id}/cancel", response_model=JobResponse)
async def cancel_job(
    job_id: uuid.UUID,
    body: CancelRequest,
    actor: Actor = Depends(get_actor),
    version: int | None = Depends(expected_version),
    db: AsyncSession = Depends(get_db),
):
    job = await JobLifecycleService(db).cancel(job_id, actor, reason=body.reason, expected_version=version)
    return _job_response(job, actor)


# ---------- Helpers ----------

def _job_response(job: Job, actor: Actor) -> JobResponse:
    return JobResponse(
        id=job.id,
        job_number=job.job_number,
        customer_id=job.customer_id,
        vendor_id=job.vendor_id,
        title=job.title,
        description=job.description,
        category=job.category,
        priority=job.priority,
        is_emergency=job.is_emergency,
        status=job.status,
        status_label=status_label(job.status),
        is_terminal=is_terminal(job.status),
        allowed_actions=allowed_actions(job.status, actor.role),
        location=job.location,
        requested_time_slot=job.requested_time_slot,
        estimated_duration=job.estimated_duration,
        estimated_budget=job.estimated_budget,
        total_amount=job.total_amount,
        subtotal=job.subtotal,
        tax_amount=job.tax_amount,
        active_quote_id=job.active_quote_id,
        current_stage=job.current_stage,
        special_instructions=job.special_instructions,
        access_instructions=job.access_instructions,
        contact_number=job.contact_number,
        images=job.images,
        videos=job.videos,
        rejection_reason=job.rejection_reason,
        cancellation_reason=job.cancellation_reason,
        last_message_sequence=job.message_seq or 0,
        version=job.version,
        paid_at=job.paid_at,
        started_at=job.started_at,
        completed_at=job.completed_at,
        cancelled_at=job.cancelled_at,
        created_at=job.created_at,
        updated_at=job.updated_at,
    )
