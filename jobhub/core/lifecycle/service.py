"""Job lifecycle engine.

Every mutating call follows the same order: role, transition legality,
participant, the caller's expected version, operation-specific
preconditions, then the mutation. Nothing is written before all checks
have passed, and the flush is guarded by the job's version column so a
concurrent writer that committed first turns this call into a Conflict.
"""

import secrets
import string
import uuid
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from jobhub.common.enums import (
    AssignmentResponse,
    JobAction,
    JobStatus,
    MessageType,
    ProgressStage,
    QuoteStatus,
    UserRole,
)
from jobhub.common.events import emit
from jobhub.common.exceptions import (
    AmountMismatchError,
    BadRequestError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    OutOfOrderStageError,
    PermissionDeniedError,
    QuoteExpiredError,
)
from jobhub.common.logging import get_logger
from jobhub.common.pagination import PaginationParams, paginate
from jobhub.config import settings
from jobhub.core.lifecycle import progress as stages
from jobhub.core.lifecycle import quotes as pricing
from jobhub.core.lifecycle.access import ensure_job_party, ensure_participant
from jobhub.core.lifecycle.schemas import Actor, JobCreateData, QuoteData, TransitionRule
from jobhub.core.lifecycle.state_machine import check_actor, check_transition, is_terminal
from jobhub.core.messaging.service import MessageService, message_event
from jobhub.db.base import utcnow
from jobhub.db.concurrency import flush_or_conflict
from jobhub.db.models.job import Job
from jobhub.db.models.progress import JobFeedback, ProgressUpdate
from jobhub.db.models.quote import Quote
from jobhub.db.models.user import User

logger = get_logger("lifecycle.service")

_JOB_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


def generate_job_number(now: datetime | None = None) -> str:
    now = now or utcnow()
    millis = int(now.timestamp() * 1000)
    suffix = "".join(secrets.choice(_JOB_NUMBER_ALPHABET) for _ in range(4))
    return f"{settings.JOB_NUMBER_PREFIX}{millis:013d}{suffix}"


class JobLifecycleService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.messages = MessageService(db)
        self._pending_events: list[tuple[str, dict[str, Any]]] = []

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def load_job(self, job_id: uuid.UUID) -> Job:
        result = await self.db.execute(
            select(Job).where(Job.id == job_id, Job.is_deleted.is_(False))
        )
        job = result.scalar_one_or_none()
        if not job:
            raise NotFoundError("Job", str(job_id))
        return job

    async def get_job(self, job_id: uuid.UUID, actor: Actor) -> Job:
        job = await self.load_job(job_id)
        ensure_participant(job, actor)
        return job

    async def list_jobs(
        self,
        actor: Actor,
        params: PaginationParams,
        status: JobStatus | None = None,
    ) -> tuple[list[Job], int]:
        query = select(Job).where(Job.is_deleted.is_(False))
        if actor.role == UserRole.CUSTOMER:
            query = query.where(Job.customer_id == actor.id)
        elif actor.role == UserRole.VENDOR:
            query = query.where(Job.vendor_id == actor.id)
        if status is not None:
            query = query.where(Job.status == status.value)

        return await paginate(self.db, query, params, Job)

    async def history(self, job_id: uuid.UUID, actor: Actor) -> list[dict]:
        job = await self.get_job(job_id, actor)
        return list(job.history or [])

    async def list_quotes(self, job_id: uuid.UUID, actor: Actor) -> list[Quote]:
        job = await self.get_job(job_id, actor)
        result = await self.db.execute(
            select(Quote)
            .where(Quote.job_id == job.id, Quote.is_deleted.is_(False))
            .order_by(Quote.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_progress(self, job_id: uuid.UUID, actor: Actor) -> list[ProgressUpdate]:
        job = await self.get_job(job_id, actor)
        result = await self.db.execute(
            select(ProgressUpdate)
            .where(ProgressUpdate.job_id == job.id, ProgressUpdate.is_deleted.is_(False))
            .order_by(ProgressUpdate.sequence.asc())
        )
        return list(result.scalars().all())

    async def get_feedback(self, job_id: uuid.UUID) -> JobFeedback | None:
        result = await self.db.execute(select(JobFeedback).where(JobFeedback.job_id == job_id))
        return result.scalar_one_or_none()

    # ------------------------------------------------------------------
    # Creation and assignment
    # ------------------------------------------------------------------

    async def create_job(self, actor: Actor, data: JobCreateData) -> Job:
        if actor.role != UserRole.CUSTOMER:
            raise PermissionDeniedError("Only customers can submit jobs")

        now = utcnow()
        if data.requested_time_slot and data.requested_time_slot.date < now.date():
            raise BadRequestError("Requested date cannot be in the past")

        job = Job(
            job_number=generate_job_number(now),
            customer_id=actor.id,
            title=data.title,
            description=data.description,
            category=data.category.value,
            priority=data.priority.value,
            is_emergency=data.is_emergency,
            location=data.location.model_dump() if data.location else None,
            requested_time_slot=(
                data.requested_time_slot.model_dump(mode="json") if data.requested_time_slot else None
            ),
            estimated_duration=data.estimated_duration,
            estimated_budget=(
                pricing.round_money(data.estimated_budget) if data.estimated_budget is not None else None
            ),
            special_instructions=data.special_instructions,
            access_instructions=data.access_instructions,
            contact_number=data.contact_number,
            images=list(data.images),
            videos=list(data.videos),
            status=JobStatus.PENDING.value,
            message_seq=0,
            progress_seq=0,
            history=[_history_entry(None, JobStatus.PENDING, "create_job", actor, now=now)],
            assignment_attempts=[],
        )
        self.db.add(job)
        await flush_or_conflict(self.db, job)

        logger.info("Job %s created by customer %s", job.job_number, actor.id)
        return job

    async def assign_vendor(
        self,
        job_id: uuid.UUID,
        vendor_id: uuid.UUID,
        actor: Actor,
        expected_version: int | None = None,
    ) -> Job:
        job, rule = await self._prepare(job_id, JobAction.ASSIGN_VENDOR, actor, expected_version)

        vendor = await self.db.get(User, vendor_id)
        if not vendor or vendor.is_deleted:
            raise NotFoundError("Vendor", str(vendor_id))
        if vendor.role != UserRole.VENDOR or not vendor.is_active:
            raise BadRequestError("Jobs can only be assigned to active vendors")

        now = utcnow()
        job.vendor_id = vendor.id
        job.assignment_attempts = [
            *(job.assignment_attempts or []),
            {
                "vendor_id": str(vendor.id),
                "assigned_at": now.isoformat(),
                "response": AssignmentResponse.PENDING.value,
                "responded_at": None,
                "reason": None,
            },
        ]
        self._change_status(job, rule, actor, details={"vendor_name": vendor.full_name}, now=now)
        await self._commit(job)

        logger.info("Job %s assigned to vendor %s", job.job_number, vendor.id)
        return job

    async def unassign_vendor(
        self,
        job_id: uuid.UUID,
        actor: Actor,
        reason: str | None = None,
        expected_version: int | None = None,
    ) -> Job:
        job, rule = await self._prepare(job_id, JobAction.UNASSIGN_VENDOR, actor, expected_version)

        now = utcnow()
        previous_vendor = job.vendor_id
        job.assignment_attempts = _close_attempt(
            job.assignment_attempts, response=None, reason=reason, now=now, withdrawn=True
        )
        job.vendor_id = None
        self._change_status(job, rule, actor, notes=reason, now=now)
        await self._commit(job)

        logger.info("Vendor %s unassigned from job %s", previous_vendor, job.job_number)
        return job

    async def respond_to_assignment(
        self,
        job_id: uuid.UUID,
        actor: Actor,
        response: AssignmentResponse,
        reason: str | None = None,
        expected_version: int | None = None,
    ) -> Job:
        if response == AssignmentResponse.ACCEPTED:
            action = JobAction.ACCEPT_ASSIGNMENT
        elif response == AssignmentResponse.REJECTED:
            action = JobAction.REJECT_ASSIGNMENT
        else:
            raise BadRequestError("Response must be ACCEPTED or REJECTED")

        job, rule = await self._prepare(job_id, action, actor, expected_version)

        now = utcnow()
        job.assignment_attempts = _close_attempt(
            job.assignment_attempts, response=response, reason=reason, now=now
        )
        details: dict[str, Any] = {}
        if response == AssignmentResponse.REJECTED:
            job.rejection_reason = reason
            details["reason"] = reason
        self._change_status(job, rule, actor, notes=reason, details=details, now=now)
        await self._commit(job)

        logger.info("Vendor %s %s job %s", actor.id, response.value.lower(), job.job_number)
        return job

    # ------------------------------------------------------------------
    # Quotes
    # ------------------------------------------------------------------

    async def send_quote(
        self,
        job_id: uuid.UUID,
        actor: Actor,
        data: QuoteData,
        expected_version: int | None = None,
    ) -> tuple[Job, Quote]:
        job, rule = await self._prepare(job_id, JobAction.SEND_QUOTE, actor, expected_version)
        quote = await self._create_quote(job, actor, data)

        self._apply_quote_totals(job, quote)
        self._append_quote_message(job, actor, quote)
        self._change_status(job, rule, actor, details={"amount": f"{quote.amount:.2f}"})
        await self._commit(job, quote)

        logger.info("Quote %s (%s) sent on job %s", quote.id, quote.amount, job.job_number)
        return job, quote

    async def resend_quote(
        self,
        job_id: uuid.UUID,
        actor: Actor,
        data: QuoteData,
        expected_version: int | None = None,
    ) -> tuple[Job, Quote]:
        job, rule = await self._prepare(job_id, JobAction.RESEND_QUOTE, actor, expected_version)
        previous = await self.db.get(Quote, job.active_quote_id) if job.active_quote_id else None
        quote = await self._create_quote(job, actor, data)

        if previous is not None:
            if previous.status == QuoteStatus.ACTIVE.value:
                previous.status = QuoteStatus.SUPERSEDED.value
                previous.responded_at = utcnow()
            previous.superseded_by_id = quote.id

        self._apply_quote_totals(job, quote)
        self._append_quote_message(job, actor, quote)
        self._change_status(job, rule, actor, notes=f"Superseded quote {previous.id}" if previous else None)
        await self._commit(job, quote)

        logger.info(
            "Quote %s resent on job %s, superseding %s",
            quote.id, job.job_number, previous.id if previous else None,
        )
        return job, quote

    async def accept_quote(
        self,
        job_id: uuid.UUID,
        quote_id: uuid.UUID,
        actor: Actor,
        expected_version: int | None = None,
    ) -> tuple[Job, Quote]:
        job, rule, quote = await self._prepare_quote_decision(
            job_id, quote_id, JobAction.ACCEPT_QUOTE, actor, expected_version
        )

        now = utcnow()
        if pricing.is_past_deadline(quote.valid_until, now):
            raise QuoteExpiredError("This quote has passed its validity deadline")

        quote.status = QuoteStatus.ACCEPTED.value
        quote.responded_at = now
        self._change_status(job, rule, actor, details={"amount": f"{quote.amount:.2f}"}, now=now)
        await self._commit(job, quote)

        logger.info("Quote %s accepted on job %s", quote.id, job.job_number)
        return job, quote

    async def reject_quote(
        self,
        job_id: uuid.UUID,
        quote_id: uuid.UUID,
        actor: Actor,
        reason: str | None = None,
        expected_version: int | None = None,
    ) -> tuple[Job, Quote]:
        job, rule, quote = await self._prepare_quote_decision(
            job_id, quote_id, JobAction.REJECT_QUOTE, actor, expected_version
        )

        now = utcnow()
        quote.status = QuoteStatus.REJECTED.value
        quote.rejection_reason = reason
        quote.responded_at = now
        job.total_amount = None
        job.subtotal = None
        job.tax_amount = None
        job.active_quote_id = None
        self._change_status(job, rule, actor, notes=reason, details={"reason": reason}, now=now)
        await self._commit(job, quote)

        logger.info("Quote %s rejected on job %s", quote.id, job.job_number)
        return job, quote

    async def expire_stale_quotes(self, now: datetime | None = None) -> int:
        """Mark ACTIVE quotes past their deadline EXPIRED. Job status is left alone.

        Runs as a single conditional UPDATE so a quote accepted or rejected
        while the sweep is running keeps its decision.
        """
        now = now or utcnow()
        result = await self.db.execute(
            update(Quote)
            .where(
                Quote.status == QuoteStatus.ACTIVE.value,
                Quote.valid_until < now,
                Quote.is_deleted.is_(False),
            )
            .values(status=QuoteStatus.EXPIRED.value)
            .returning(Quote.id, Quote.job_id)
            .execution_options(synchronize_session="fetch")
        )
        expired = result.all()
        for quote_id, job_id in expired:
            logger.info("Quote %s on job %s expired", quote_id, job_id)
        return len(expired)

    # ------------------------------------------------------------------
    # Payment, work and progress
    # ------------------------------------------------------------------

    async def confirm_payment(
        self,
        job_id: uuid.UUID,
        quote_id: uuid.UUID,
        amount: Decimal | str | float,
        actor: Actor,
        payment_reference: str | None = None,
        expected_version: int | None = None,
    ) -> Job:
        job, rule = await self._prepare(job_id, JobAction.CONFIRM_PAYMENT, actor, expected_version)

        quote = await self.db.get(Quote, quote_id)
        if (
            quote is None
            or quote.id != job.active_quote_id
            or quote.status != QuoteStatus.ACCEPTED.value
        ):
            raise QuoteExpiredError("Payment does not reference the job's accepted quote")

        try:
            received = Decimal(str(amount))
        except InvalidOperation as e:
            raise AmountMismatchError(quote.amount, amount) from e
        if received != quote.amount:
            logger.warning(
                "Payment amount mismatch on job %s: expected %s, received %s",
                job.job_number, quote.amount, received,
            )
            raise AmountMismatchError(quote.amount, received)

        now = utcnow()
        job.paid_at = now
        job.payment_reference = payment_reference
        update = self._append_progress(
            job,
            ProgressStage.PAYMENT_RECEIVED,
            description=f"Payment of ${quote.amount:.2f} received",
            author=None,
        )
        self._change_status(job, rule, actor, notes=payment_reference, now=now)
        await self._commit(job, update)

        logger.info("Payment %s confirmed for job %s", payment_reference, job.job_number)
        return job

    async def start_work(
        self,
        job_id: uuid.UUID,
        actor: Actor,
        expected_version: int | None = None,
    ) -> Job:
        job, rule = await self._prepare(job_id, JobAction.START_WORK, actor, expected_version)

        now = utcnow()
        job.started_at = now
        self._change_status(job, rule, actor, now=now)
        await self._commit(job)

        logger.info("Work started on job %s", job.job_number)
        return job

    async def post_progress_update(
        self,
        job_id: uuid.UUID,
        actor: Actor,
        stage: ProgressStage,
        description: str | None = None,
        images: list[str] | None = None,
        expected_version: int | None = None,
    ) -> tuple[Job, ProgressUpdate]:
        check_actor(JobAction.POST_PROGRESS, actor.role)
        job = await self.load_job(job_id)
        ensure_job_party(job, actor)
        self._check_version(job, expected_version)

        if stage == ProgressStage.PAYMENT_RECEIVED:
            raise BadRequestError("Payment receipt is recorded by the platform")

        status = JobStatus(job.status)
        finishing = False
        if status == JobStatus.COMPLETED:
            # Closed jobs only take audit entries at or after completion
            if stage.rank < ProgressStage.WORK_COMPLETED.rank:
                raise InvalidTransitionError(JobAction.POST_PROGRESS.value, status.value)
        else:
            check_transition(JobAction.POST_PROGRESS, status)
            if stage.rank > ProgressStage.WORK_COMPLETED.rank:
                raise InvalidTransitionError(JobAction.POST_PROGRESS.value, status.value)
            finishing = stages.completes_work(stage)

        if settings.ENFORCE_STAGE_ORDER and stages.is_regression(stage, job.current_stage):
            raise OutOfOrderStageError(stage.value, job.current_stage)

        update = self._append_progress(job, stage, description=description, images=images, author=actor)
        if finishing:
            rule = check_transition(JobAction.COMPLETE_WORK, status)
            job.completed_at = utcnow()
            self._change_status(job, rule, actor, notes=description)
        await self._commit(job, update)

        logger.info(
            "Progress %s posted on job %s by vendor %s", stage.value, job.job_number, actor.id
        )
        return job, update

    async def cancel(
        self,
        job_id: uuid.UUID,
        actor: Actor,
        reason: str | None = None,
        expected_version: int | None = None,
    ) -> Job:
        job, rule = await self._prepare(job_id, JobAction.CANCEL, actor, expected_version)

        now = utcnow()
        job.cancellation_reason = reason
        job.cancelled_by_id = actor.id
        job.cancelled_at = now
        self._change_status(job, rule, actor, notes=reason, details={"reason": reason}, now=now)
        await self._commit(job)

        logger.info("Job %s cancelled by %s", job.job_number, actor.id)
        return job

    async def submit_feedback(
        self,
        job_id: uuid.UUID,
        actor: Actor,
        rating: int,
        comment: str | None = None,
    ) -> JobFeedback:
        if actor.role != UserRole.CUSTOMER:
            raise PermissionDeniedError("Only the customer can leave feedback")
        job = await self.load_job(job_id)
        ensure_job_party(job, actor)

        if job.status != JobStatus.COMPLETED.value or not stages.feedback_unlocked(job.current_stage):
            raise InvalidTransitionError("submit_feedback", job.status)
        if not 1 <= rating <= 5:
            raise BadRequestError("Rating must be between 1 and 5")
        if await self.get_feedback(job.id):
            raise ConflictError("Feedback has already been submitted for this job")

        feedback = JobFeedback(job_id=job.id, customer_id=actor.id, rating=rating, comment=comment)
        self.db.add(feedback)
        await flush_or_conflict(self.db, feedback)

        logger.info("Feedback (%d) submitted for job %s", rating, job.job_number)
        return feedback

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _prepare(
        self,
        job_id: uuid.UUID,
        action: JobAction,
        actor: Actor,
        expected_version: int | None,
    ) -> tuple[Job, TransitionRule]:
        check_actor(action, actor.role)
        job = await self.load_job(job_id)
        rule = check_transition(action, job.status)
        ensure_job_party(job, actor)
        self._check_version(job, expected_version)
        return job, rule

    async def _prepare_quote_decision(
        self,
        job_id: uuid.UUID,
        quote_id: uuid.UUID,
        action: JobAction,
        actor: Actor,
        expected_version: int | None,
    ) -> tuple[Job, TransitionRule, Quote]:
        """Like ``_prepare``, but a decision on a quote that has already been
        decided, superseded or expired reports QuoteExpired rather than an
        illegal transition. Terminal jobs still refuse with InvalidTransition.
        """
        check_actor(action, actor.role)
        job = await self.load_job(job_id)
        quote = await self.db.get(Quote, quote_id)
        if quote is not None and quote.job_id != job.id:
            quote = None

        try:
            rule = check_transition(action, job.status)
        except InvalidTransitionError:
            if quote is None or is_terminal(job.status):
                raise
            ensure_job_party(job, actor)
            raise QuoteExpiredError() from None

        ensure_job_party(job, actor)
        self._check_version(job, expected_version)
        if quote is None:
            raise NotFoundError("Quote", str(quote_id))
        if quote.id != job.active_quote_id or quote.status != QuoteStatus.ACTIVE.value:
            raise QuoteExpiredError()
        return job, rule, quote

    @staticmethod
    def _check_version(job: Job, expected_version: int | None) -> None:
        if expected_version is not None and expected_version != job.version:
            raise ConflictError()

    async def _create_quote(self, job: Job, actor: Actor, data: QuoteData) -> Quote:
        amount = pricing.compute_quote_amount(data)
        valid_until = pricing.resolve_valid_until(data)

        quote = Quote(
            job_id=job.id,
            vendor_id=actor.id,
            amount=amount,
            description=data.description,
            breakdown=pricing.serialize_breakdown(data),
            valid_until=valid_until,
            terms=data.terms,
            payment_terms=data.payment_terms,
            estimated_duration=data.estimated_duration,
            inclusions=list(data.inclusions),
            exclusions=list(data.exclusions),
            status=QuoteStatus.ACTIVE.value,
        )
        self.db.add(quote)
        # Insert the quote on its own so messages referencing it follow it
        await self.db.flush()
        return quote

    @staticmethod
    def _apply_quote_totals(job: Job, quote: Quote) -> None:
        subtotal, tax = pricing.split_tax(quote.amount)
        job.total_amount = quote.amount
        job.subtotal = subtotal
        job.tax_amount = tax
        job.active_quote_id = quote.id

    def _append_quote_message(self, job: Job, actor: Actor, quote: Quote) -> None:
        content = f"Quote: ${quote.amount:.2f}"
        if quote.description:
            content = f"{content} - {quote.description}"
        message = self.messages.append(
            job,
            content=content[: settings.MESSAGE_MAX_LENGTH],
            message_type=MessageType.QUOTE,
            sender=actor,
            quote_id=quote.id,
        )
        self._pending_events.append(("message.created", {"message": message}))

    def _append_progress(
        self,
        job: Job,
        stage: ProgressStage,
        description: str | None,
        author: Actor | None,
        images: list[str] | None = None,
    ) -> ProgressUpdate:
        job.progress_seq = (job.progress_seq or 0) + 1
        job.current_stage = stages.advance(job.current_stage, stage).value
        update = ProgressUpdate(
            job_id=job.id,
            sequence=job.progress_seq,
            stage=stage.value,
            stage_index=stage.rank,
            description=description or stages.STAGE_TITLES[stage],
            images=list(images or []),
            author_id=author.id if author else None,
            is_system_update=author is None,
        )
        self.db.add(update)
        self._pending_events.append(("progress.created", {"update": update}))
        return update

    def _change_status(
        self,
        job: Job,
        rule: TransitionRule,
        actor: Actor,
        notes: str | None = None,
        details: dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> None:
        from_status = JobStatus(job.status)
        job.status = rule.to_status.value
        job.history = [
            *(job.history or []),
            _history_entry(from_status, rule.to_status, rule.action.value, actor, notes=notes, now=now),
        ]
        if rule.to_status == from_status:
            return

        message = self.messages.append_system(job, rule.notice or rule.action.value.upper(), details)
        self._pending_events.append(("message.created", {"message": message}))
        self._pending_events.append((
            "job.status_changed",
            {"from": from_status.value, "to": rule.to_status.value, "action": rule.action.value},
        ))

    async def _commit(self, job: Job, *created: Any) -> None:
        await flush_or_conflict(self.db, job, *created)
        await self._publish(job)

    async def _publish(self, job: Job) -> None:
        events, self._pending_events = self._pending_events, []
        for event, payload in events:
            if event == "message.created":
                data = message_event(payload["message"])
            elif event == "progress.created":
                update = payload["update"]
                data = {
                    "update_id": str(update.id),
                    "sequence": update.sequence,
                    "stage": update.stage,
                    "is_system_update": update.is_system_update,
                }
            else:
                data = {**payload, "version": job.version}
            await emit(str(job.id), event, data)


def _history_entry(
    from_status: JobStatus | None,
    to_status: JobStatus,
    action: str,
    actor: Actor,
    notes: str | None = None,
    now: datetime | None = None,
) -> dict:
    return {
        "status": to_status.value,
        "from": from_status.value if from_status else None,
        "action": action,
        "actor_id": str(actor.id) if actor.id else None,
        "actor_role": actor.role.value,
        "notes": notes,
        "at": (now or utcnow()).isoformat(),
    }


def _close_attempt(
    attempts: list | None,
    response: AssignmentResponse | None,
    reason: str | None,
    now: datetime,
    withdrawn: bool = False,
) -> list:
    """Record the outcome on the latest open assignment attempt."""
    attempts = [dict(a) for a in (attempts or [])]
    for attempt in reversed(attempts):
        if attempt.get("response") == AssignmentResponse.PENDING.value and not attempt.get("withdrawn_at"):
            if withdrawn:
                attempt["withdrawn_at"] = now.isoformat()
            else:
                attempt["response"] = response.value
                attempt["responded_at"] = now.isoformat()
            attempt["reason"] = reason
            break
    return attempts
