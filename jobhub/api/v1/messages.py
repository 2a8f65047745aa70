from __future__ import annotations

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from jobhub.api.deps import get_actor, get_db
from jobhub.core.lifecycle.schemas import Actor
from jobhub.core.lifecycle.service import JobLifecycleService
from jobhub.core.messaging.schemas import ConversationSummary, MessageCreateData
from jobhub.core.messaging.service import MessageService
from jobhub.db.models.message import Message

router = APIRouter(prefix="/jobs/{job_id}/messages", tags=["Messages"])


# ---------- Schemas ----------

class MessageResponse(BaseModel):
    id: uuid.UUID
    job_id: uuid.UUID
    sequence: int
    sender_id: uuid.UUID | None
    sender_role: str | None
    message_type: str
    content: str
    quote_id: uuid.UUID | None
    contact_info: dict | None
    priority: str
    system_action: str | None
    system_data: dict | None
    created_at: datetime


class MessageListResponse(BaseModel):
    items: list[MessageResponse]
    last_sequence: int
    has_more: bool


# ---------- Endpoints ----------

@router.get("", response_model=MessageListResponse)
async def list_messages(
    job_id: uuid.UUID,
    since: int = Query(0, ge=0, description="Return messages with a greater sequence number"),
    limit: int = Query(50, ge=1, le=200),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    job = await JobLifecycleService(db).load_job(job_id)
    messages = await MessageService(db).list_since(job, actor, since=since, limit=limit)
    cursor = messages[-1].sequence if messages else since
    return MessageListResponse(
        items=[_message_response(m) for m in messages],
        last_sequence=cursor,
        has_more=cursor < (job.message_seq or 0),
    )


@router.post("", response_model=MessageResponse, status_code=201)
async def post_message(
    job_id: uuid.UUID,
    body: MessageCreateData,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    job = await JobLifecycleService(db).load_job(job_id)
    message = await MessageService(db).post_message(job, actor, body)
    return _message_response(message)


@router.get("/summary", response_model=ConversationSummary)
async def conversation_summary(
    job_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    job = await JobLifecycleService(db).load_job(job_id)
    return await MessageService(db).summary(job, actor)


# ---------- Helpers ----------

def _message_response(m: Message) -> MessageResponse:
    return MessageResponse(
        id=m.id, job_id=m.job_id, sequence=m.sequence, sender_id=m.sender_id,
        sender_role=m.sender_role, message_type=m.message_type, content=m.content,
        quote_id=m.quote_id, contact_info=m.contact_info, priority=m.priority,
        system_action=m.system_action, system_data=m.system_data, created_at=m.created_at,
    )
