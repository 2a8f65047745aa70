"""Per-job message log.

Messages are append-only and ordered by a sequence number allocated from
``Job.message_seq``. Allocating from the job row ties every append to the
job's optimistic version, so two concurrent writers can never be handed
the same number.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from jobhub.common.enums import MessagePriority, MessageType, UserRole
from jobhub.common.events import emit
from jobhub.common.exceptions import BadRequestError, NotFoundError, PermissionDeniedError
from jobhub.common.logging import get_logger
from jobhub.config import settings
from jobhub.core.lifecycle.access import ensure_participant
from jobhub.core.lifecycle.schemas import Actor
from jobhub.core.messaging import system_messages
from jobhub.core.messaging.schemas import ConversationSummary, MessageCreateData
from jobhub.db.concurrency import flush_or_conflict
from jobhub.db.models.job import Job
from jobhub.db.models.message import Message
from jobhub.db.models.quote import Quote

logger = get_logger("messaging.service")


class MessageService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------------------------
    # Appending
    # ------------------------------------------------------------------

    def append(
        self,
        job: Job,
        *,
        content: str,
        message_type: MessageType = MessageType.TEXT,
        sender: Actor | None = None,
        quote_id: uuid.UUID | None = None,
        contact_info: dict | None = None,
        priority: MessagePriority = MessagePriority.NORMAL,
        system_action: str | None = None,
        system_data: dict | None = None,
    ) -> Message:
        """Stage a message on the session; the caller flushes."""
        job.message_seq = (job.message_seq or 0) + 1
        message = Message(
            job_id=job.id,
            sequence=job.message_seq,
            sender_id=sender.id if sender else None,
            sender_role=sender.role.value if sender else None,
            message_type=message_type.value,
            content=content,
            quote_id=quote_id,
            contact_info=contact_info,
            priority=priority.value,
            system_action=system_action,
            system_data=system_data,
        )
        self.db.add(message)
        return message

    def append_system(self, job: Job, action: str, details: dict[str, Any] | None = None) -> Message:
        details = details or {}
        return self.append(
            job,
            content=system_messages.render(action, details),
            message_type=MessageType.SYSTEM,
            priority=MessagePriority.HIGH,
            system_action=action,
            system_data={"job_number": job.job_number, **details},
        )

    async def post_message(self, job: Job, actor: Actor, data: MessageCreateData) -> Message:
        ensure_participant(job, actor)

        if data.message_type == MessageType.SYSTEM:
            raise BadRequestError("System messages are generated by the platform and cannot be posted")
        if job.vendor_id is None:
            raise BadRequestError("No vendor assigned to this job yet")

        content = (data.content or "").strip()
        contact_info = None

        if data.message_type == MessageType.TEXT:
            if not content:
                raise BadRequestError("Message content is required")

        elif data.message_type == MessageType.QUOTE:
            if actor.role != UserRole.VENDOR:
                raise PermissionDeniedError("Only the assigned vendor can share a quote")
            if data.quote_id is None:
                raise BadRequestError("A quote message must reference a quote")
            quote = await self.db.get(Quote, data.quote_id)
            if quote is None or quote.job_id != job.id:
                raise NotFoundError("Quote", str(data.quote_id))
            content = content or f"Quote: ${quote.amount:.2f} - {quote.description or ''}".rstrip(" -")

        elif data.message_type == MessageType.CONTACT_INFO:
            if data.contact_info is None or not (data.contact_info.phone or data.contact_info.email):
                raise BadRequestError("Contact information must include a phone number or email")
            contact_info = data.contact_info.model_dump(mode="json")
            content = content or "Shared contact information"

        if len(content) > settings.MESSAGE_MAX_LENGTH:
            raise BadRequestError(f"Message exceeds {settings.MESSAGE_MAX_LENGTH} characters")

        message = self.append(
            job,
            content=content,
            message_type=data.message_type,
            sender=actor,
            quote_id=data.quote_id if data.message_type == MessageType.QUOTE else None,
            contact_info=contact_info,
            priority=data.priority,
        )
        await flush_or_conflict(self.db, job, message)

        logger.info(
            "Message %d posted on job %s by %s (%s)",
            message.sequence, job.job_number, actor.id, data.message_type.value,
        )
        await emit(str(job.id), "message.created", message_event(message))
        return message

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    async def list_since(self, job: Job, actor: Actor, since: int = 0, limit: int | None = None) -> list[Message]:
        """Messages with a sequence number greater than ``since``, oldest first."""
        ensure_participant(job, actor)
        limit = min(limit or settings.MESSAGE_PAGE_LIMIT, settings.MESSAGE_PAGE_LIMIT)
        result = await self.db.execute(
            select(Message)
            .where(
                Message.job_id == job.id,
                Message.sequence > since,
                Message.is_deleted.is_(False),
            )
            .order_by(Message.sequence.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def summary(self, job: Job, actor: Actor) -> ConversationSummary:
        ensure_participant(job, actor)
        total = (await self.db.execute(
            select(func.count()).select_from(Message).where(
                Message.job_id == job.id, Message.is_deleted.is_(False)
            )
        )).scalar() or 0
        quote_count = (await self.db.execute(
            select(func.count()).select_from(Message).where(
                Message.job_id == job.id,
                Message.message_type == MessageType.QUOTE.value,
                Message.is_deleted.is_(False),
            )
        )).scalar() or 0
        last = (await self.db.execute(
            select(Message)
            .where(Message.job_id == job.id, Message.is_deleted.is_(False))
            .order_by(Message.sequence.desc())
            .limit(1)
        )).scalar_one_or_none()

        return ConversationSummary(
            job_id=job.id,
            total_messages=total,
            last_sequence=job.message_seq or 0,
            has_quote=quote_count > 0,
            last_message_id=last.id if last else None,
            last_message_type=last.message_type if last else None,
            last_message_preview=last.content[:120] if last else None,
        )


def message_event(message: Message) -> dict[str, Any]:
    return {
        "message_id": str(message.id),
        "sequence": message.sequence,
        "message_type": message.message_type,
        "sender_id": str(message.sender_id) if message.sender_id else None,
        "content": message.content,
    }
