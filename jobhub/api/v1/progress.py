from __future__ import annotations

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from jobhub.api.deps import expected_version, get_actor, get_db
from jobhub.common.enums import ProgressStage
from jobhub.core.lifecycle.progress import STAGE_TITLES
from jobhub.core.lifecycle.schemas import Actor
from jobhub.core.lifecycle.service import JobLifecycleService
from jobhub.db.models.progress import ProgressUpdate

router = APIRouter(prefix="/jobs/{job_id}", tags=["Progress"])


# ---------- Schemas ----------

class ProgressCreate(BaseModel):
    stage: ProgressStage
    description: str | None = None
    images: list[str] = []


class ProgressResponse(BaseModel):
    id: uuid.UUID
    job_id: uuid.UUID
    sequence: int
    stage: str
    stage_title: str
    stage_index: int
    description: str | None
    images: list | None
    author_id: uuid.UUID | None
    is_system_update: bool
    created_at: datetime


class ProgressCreateResponse(BaseModel):
    update: ProgressResponse
    job_status: str
    current_stage: str | None
    job_version: int


class FeedbackCreate(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: str | None = None


class FeedbackResponse(BaseModel):
    id: uuid.UUID
    job_id: uuid.UUID
    customer_id: uuid.UUID
    rating: int
    comment: str | None
    created_at: datetime


# ---------- Endpoints ----------

@router.get("/progress", response_model=list[ProgressResponse])
async def list_progress(
    job_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    updates = await JobLifecycleService(db).list_progress(job_id, actor)
    return [_progress_response(u) for u in updates]


@router.post("/progress", response_model=ProgressCreateResponse, status_code=201)
async def post_progress(
    job_id: uuid.UUID,
    body: ProgressCreate,
    actor: Actor = Depends(get_actor),
    version: int | None = Depends(expected_version),
    db: AsyncSession = Depends(get_db),
):
    job, update = await JobLifecycleService(db).post_progress_update(
        job_id, actor, body.stage,
        description=body.description, images=body.images, expected_version=version,
    )
    return ProgressCreateResponse(
        update=_progress_response(update),
        job_status=job.status,
        current_stage=job.current_stage,
        job_version=job.version,
    )


@router.post("/feedback", response_model=FeedbackResponse, status_code=201)
async def submit_feedback(
    job_id: uuid.UUID,
    body: FeedbackCreate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    fb = await JobLifecycleService(db).submit_feedback(job_id, actor, body.rating, body.comment)
    return FeedbackResponse(
        id=fb.id, job_id=fb.job_id, customer_id=fb.customer_id,
        rating=fb.rating, comment=fb.comment, created_at=fb.created_at,
    )


# ---------- Helpers ----------

def _progress_response(u: ProgressUpdate) -> ProgressResponse:
    return ProgressResponse(
        id=u.id, job_id=u.job_id, sequence=u.sequence, stage=u.stage,
        stage_title=STAGE_TITLES[ProgressStage(u.stage)], stage_index=u.stage_index,
        description=u.description, images=u.images, author_id=u.author_id,
        is_system_update=u.is_system_update, created_at=u.created_at,
    )
