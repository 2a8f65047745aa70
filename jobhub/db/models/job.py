import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from jobhub.common.enums import JobCategory, JobPriority, JobStatus
from jobhub.db.base import BaseModel


class Job(BaseModel):
    __tablename__ = "jobs"

    job_number: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)
    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    vendor_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True
    )

    # Request details
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[JobCategory] = mapped_column(String(30), nullable=False)
    priority: Mapped[JobPriority] = mapped_column(
        String(20), nullable=False, default=JobPriority.MEDIUM
    )
    is_emergency: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    location: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    requested_time_slot: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    estimated_duration: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    special_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    access_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    contact_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    images: Mapped[list | None] = mapped_column(JSONB, nullable=True, default=list)
    videos: Mapped[list | None] = mapped_column(JSONB, nullable=True, default=list)

    # Pricing
    estimated_budget: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    total_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    subtotal: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    tax_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    active_quote_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    payment_reference: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Lifecycle
    status: Mapped[JobStatus] = mapped_column(
        String(20), nullable=False, default=JobStatus.PENDING, index=True
    )
    current_stage: Mapped[str | None] = mapped_column(String(30), nullable=True)
    message_seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    progress_seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    history: Mapped[list | None] = mapped_column(JSONB, nullable=True, default=list)
    assignment_attempts: Mapped[list | None] = mapped_column(JSONB, nullable=True, default=list)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_by_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Optimistic concurrency: every UPDATE is conditioned on the version read
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
