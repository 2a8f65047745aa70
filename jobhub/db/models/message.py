import uuid

from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from jobhub.common.enums import MessagePriority, MessageType
from jobhub.db.base import BaseModel


class Message(BaseModel):
    __tablename__ = "messages"
    __table_args__ = (UniqueConstraint("job_id", "sequence", name="uq_messages_job_sequence"),)

    job_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("jobs.id"), nullable=False, index=True
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    sender_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=True
    )
    sender_role: Mapped[str | None] = mapped_column(String(20), nullable=True)
    message_type: Mapped[MessageType] = mapped_column(
        String(20), nullable=False, default=MessageType.TEXT
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    quote_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("quotes.id"), nullable=True
    )
    contact_info: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    priority: Mapped[MessagePriority] = mapped_column(
        String(10), nullable=False, default=MessagePriority.NORMAL
    )
    system_action: Mapped[str | None] = mapped_column(String(50), nullable=True)
    system_data: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
