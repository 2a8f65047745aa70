import uuid
from decimal import Decimal

import pytest

from jobhub.common.enums import AssignmentResponse, JobStatus, ProgressStage
from jobhub.common.exceptions import InvalidTransitionError
from jobhub.core.lifecycle.schemas import Actor


async def _reach(flow, status: JobStatus):
    if status == JobStatus.COMPLETED:
        return await flow.completed()
    if status == JobStatus.CANCELLED:
        job = await flow.pending()
        return await flow.service.cancel(job.id, flow.customer, reason="Changed my mind")
    job = await flow.assigned()
    return await flow.service.respond_to_assignment(
        job.id, flow.vendor, AssignmentResponse.REJECTED, reason="Fully booked"
    )


def _attempts(flow, job):
    service = flow.service
    quote_id = flow.quote.id if flow.quote else uuid.uuid4()
    return {
        "assign": lambda: service.assign_vendor(job.id, flow.vendor.id, flow.admin),
        "send_quote": lambda: service.send_quote(job.id, flow.vendor, flow.quote_data()),
        "accept_quote": lambda: service.accept_quote(job.id, quote_id, flow.customer),
        "reject_quote": lambda: service.reject_quote(job.id, quote_id, flow.customer),
        "confirm_payment": lambda: service.confirm_payment(
            job.id, quote_id, Decimal("130.00"), Actor.system()
        ),
        "start_work": lambda: service.start_work(job.id, flow.vendor),
        "cancel": lambda: service.cancel(job.id, flow.customer),
    }


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [JobStatus.COMPLETED, JobStatus.CANCELLED, JobStatus.REJECTED])
async def test_terminal_jobs_refuse_every_action(flow, status):
    job = await _reach(flow, status)
    assert job.status == status.value
    version = job.version

    for name, attempt in _attempts(flow, job).items():
        with pytest.raises(InvalidTransitionError):
            await attempt()

    job = await flow.service.load_job(job.id)
    assert job.status == status.value
    assert job.version == version


@pytest.mark.asyncio
async def test_rejected_job_refuses_progress(flow):
    job = await _reach(flow, JobStatus.REJECTED)
    with pytest.raises(InvalidTransitionError):
        await flow.service.post_progress_update(job.id, flow.vendor, ProgressStage.WORK_SCHEDULED)


@pytest.mark.asyncio
async def test_completed_job_has_no_allowed_actions(client, flow, auth_headers):
    job = await _reach(flow, JobStatus.COMPLETED)
    response = await client.get(f"/api/v1/jobs/{job.id}", headers=auth_headers)
    data = response.json()
    assert data["is_terminal"] is True
    assert data["allowed_actions"] == []
