"""Initial schema - users, jobs, quotes, messages, progress, feedback, payments

Revision ID: 001
Revises: None
Create Date: 2026-10-16
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("is_deleted", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    # Users
    op.create_table(
        "users",
        *_base_columns(),
        sa.Column("email", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="customer"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
    )

    # Jobs
    op.create_table(
        "jobs",
        *_base_columns(),
        sa.Column("job_number", sa.String(32), unique=True, nullable=False, index=True),
        sa.Column(
            "customer_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "vendor_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id"),
            nullable=True,
            index=True,
        ),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("category", sa.String(30), nullable=False),
        sa.Column("priority", sa.String(20), nullable=False, server_default="MEDIUM"),
        sa.Column("is_emergency", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("location", postgresql.JSONB, nullable=True),
        sa.Column("requested_time_slot", postgresql.JSONB, nullable=True),
        sa.Column("estimated_duration", sa.Numeric(6, 2), nullable=True),
        sa.Column("special_instructions", sa.Text, nullable=True),
        sa.Column("access_instructions", sa.Text, nullable=True),
        sa.Column("contact_number", sa.String(50), nullable=True),
        sa.Column("images", postgresql.JSONB, nullable=True),
        sa.Column("videos", postgresql.JSONB, nullable=True),
        sa.Column("estimated_budget", sa.Numeric(14, 2), nullable=True),
        sa.Column("total_amount", sa.Numeric(14, 2), nullable=True),
        sa.Column("subtotal", sa.Numeric(14, 2), nullable=True),
        sa.Column("tax_amount", sa.Numeric(14, 2), nullable=True),
        sa.Column("active_quote_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("payment_reference", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING", index=True),
        sa.Column("current_stage", sa.String(30), nullable=True),
        sa.Column("message_seq", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("progress_seq", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("history", postgresql.JSONB, nullable=True),
        sa.Column("assignment_attempts", postgresql.JSONB, nullable=True),
        sa.Column("rejection_reason", sa.Text, nullable=True),
        sa.Column("cancellation_reason", sa.Text, nullable=True),
        sa.Column("cancelled_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer, nullable=False),
    )

    # Quotes
    op.create_table(
        "quotes",
        *_base_columns(),
        sa.Column(
            "job_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("jobs.id"),
            nullable=False,
            index=True,
        ),
        sa.Column("vendor_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("breakdown", postgresql.JSONB, nullable=True),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=False),
        sa.Column("terms", sa.Text, nullable=True),
        sa.Column("payment_terms", sa.Text, nullable=True),
        sa.Column("estimated_duration", sa.Numeric(6, 2), nullable=True),
        sa.Column("inclusions", postgresql.JSONB, nullable=True),
        sa.Column("exclusions", postgresql.JSONB, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="ACTIVE", index=True),
        sa.Column("rejection_reason", sa.Text, nullable=True),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("superseded_by_id", postgresql.UUID(as_uuid=True), nullable=True),
    )

    # Messages
    op.create_table(
        "messages",
        *_base_columns(),
        sa.Column(
            "job_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("jobs.id"),
            nullable=False,
            index=True,
        ),
        sa.Column("sequence", sa.Integer, nullable=False),
        sa.Column("sender_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("sender_role", sa.String(20), nullable=True),
        sa.Column("message_type", sa.String(20), nullable=False, server_default="TEXT"),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("quote_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("quotes.id"), nullable=True),
        sa.Column("contact_info", postgresql.JSONB, nullable=True),
        sa.Column("priority", sa.String(10), nullable=False, server_default="NORMAL"),
        sa.Column("system_action", sa.String(50), nullable=True),
        sa.Column("system_data", postgresql.JSONB, nullable=True),
        sa.UniqueConstraint("job_id", "sequence", name="uq_messages_job_sequence"),
    )

    # Progress updates
    op.create_table(
        "progress_updates",
        *_base_columns(),
        sa.Column(
            "job_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("jobs.id"),
            nullable=False,
            index=True,
        ),
        sa.Column("sequence", sa.Integer, nullable=False),
        sa.Column("stage", sa.String(30), nullable=False),
        sa.Column("stage_index", sa.SmallInteger, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("images", postgresql.JSONB, nullable=True),
        sa.Column("author_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("is_system_update", sa.Boolean, nullable=False, server_default=sa.text("false")),
    )

    # Feedback
    op.create_table(
        "job_feedback",
        *_base_columns(),
        sa.Column(
            "job_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("jobs.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("rating", sa.SmallInteger, nullable=False),
        sa.Column("comment", sa.Text, nullable=True),
    )

    # Payments
    op.create_table(
        "payments",
        *_base_columns(),
        sa.Column(
            "job_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("jobs.id"),
            nullable=False,
            index=True,
        ),
        sa.Column("quote_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("quotes.id"), nullable=False),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id"),
            nullable=False,
            index=True,
        ),
        sa.Column("stripe_payment_intent_id", sa.String(255), unique=True, nullable=True),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="usd"),
        sa.Column("status", sa.String(30), nullable=False, server_default="pending"),
        sa.Column("metadata_json", postgresql.JSONB, nullable=True),
    )


def downgrade() -> None:
    op.drop_table("payments")
    op.drop_table("job_feedback")
    op.drop_table("progress_updates")
    op.drop_table("messages")
    op.drop_table("quotes")
    op.drop_table("jobs")
    op.drop_table("users")
