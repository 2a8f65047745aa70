import uuid

from pydantic import BaseModel

from jobhub.common.enums import MessagePriority, MessageType
from jobhub.core.lifecycle.schemas import ContactInfo


class MessageCreateData(BaseModel):
    content: str | None = None
    message_type: MessageType = MessageType.TEXT
    quote_id: uuid.UUID | None = None
    contact_info: ContactInfo | None = None
    priority: MessagePriority = MessagePriority.NORMAL


class ConversationSummary(BaseModel):
    job_id: uuid.UUID
    total_messages: int
    last_sequence: int
    has_quote: bool
    last_message_id: uuid.UUID | None
    last_message_type: str | None
    last_message_preview: str | None
