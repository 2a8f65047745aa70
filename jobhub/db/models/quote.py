import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from jobhub.common.enums import QuoteStatus
from jobhub.db.base import BaseModel


class Quote(BaseModel):
    __tablename__ = "quotes"

    job_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("jobs.id"), nullable=False, index=True
    )
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    breakdown: Mapped[list | None] = mapped_column(JSONB, nullable=True, default=list)
    valid_until: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    terms: Mapped[str | None] = mapped_column(Text, nullable=True)
    payment_terms: Mapped[str | None] = mapped_column(Text, nullable=True)
    estimated_duration: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    inclusions: Mapped[list | None] = mapped_column(JSONB, nullable=True, default=list)
    exclusions: Mapped[list | None] = mapped_column(JSONB, nullable=True, default=list)
    status: Mapped[QuoteStatus] = mapped_column(
        String(20), nullable=False, default=QuoteStatus.ACTIVE, index=True
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    superseded_by_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
