from jobhub.common.enums import UserRole
from jobhub.common.exceptions import PermissionDeniedError
from jobhub.core.lifecycle.schemas import Actor
from jobhub.db.models.job import Job


def is_operator(actor: Actor) -> bool:
    return actor.role in (UserRole.ADMIN, UserRole.SYSTEM)


def is_participant(job: Job, actor: Actor) -> bool:
    if is_operator(actor):
        return True
    if actor.role == UserRole.CUSTOMER:
        return job.customer_id == actor.id
    if actor.role == UserRole.VENDOR:
        return job.vendor_id is not None and job.vendor_id == actor.id
    return False


def ensure_participant(job: Job, actor: Actor) -> None:
    if not is_participant(job, actor):
        raise PermissionDeniedError("You do not have access to this job")


def ensure_job_party(job: Job, actor: Actor) -> None:
    """Customer actions need the job's customer, vendor actions its assigned vendor."""
    if actor.role == UserRole.CUSTOMER and job.customer_id != actor.id:
        raise PermissionDeniedError("You can only act on your own jobs")
    if actor.role == UserRole.VENDOR and (job.vendor_id is None or job.vendor_id != actor.id):
        raise PermissionDeniedError("You are not assigned to this job")
