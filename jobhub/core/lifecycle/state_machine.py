"""Canonical job state machine.

Every status change in the system goes through ``check_transition``; the
tables below are the only place the legal edges, the actors allowed to
take them and the per-status display metadata are defined.
"""

from jobhub.common.enums import JobAction, JobStatus, UserRole
from jobhub.common.exceptions import InvalidTransitionError, PermissionDeniedError
from jobhub.core.lifecycle.schemas import StatusMetadata, TransitionRule

TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.CANCELLED, JobStatus.REJECTED})

# Statuses in which the job carries a quoted total
PRICED_STATUSES = frozenset({
    JobStatus.QUOTE_SENT,
    JobStatus.QUOTE_ACCEPTED,
    JobStatus.PAID,
    JobStatus.IN_PROGRESS,
    JobStatus.COMPLETED,
})

_OPERATORS = frozenset({UserRole.ADMIN, UserRole.SYSTEM})

TRANSITIONS: dict[JobAction, TransitionRule] = {
    rule.action: rule
    for rule in [
        TransitionRule(
            action=JobAction.ASSIGN_VENDOR,
            from_statuses=frozenset({JobStatus.PENDING}),
            to_status=JobStatus.ASSIGNED,
            actors=_OPERATORS,
            notice="JOB_ASSIGNED",
        ),
        TransitionRule(
            action=JobAction.UNASSIGN_VENDOR,
            from_statuses=frozenset({JobStatus.ASSIGNED}),
            to_status=JobStatus.PENDING,
            actors=_OPERATORS,
            notice="JOB_UNASSIGNED",
        ),
        TransitionRule(
            action=JobAction.ACCEPT_ASSIGNMENT,
            from_statuses=frozenset({JobStatus.ASSIGNED}),
            to_status=JobStatus.IN_DISCUSSION,
            actors=frozenset({UserRole.VENDOR}),
            notice="VENDOR_ACCEPTED",
        ),
        TransitionRule(
            action=JobAction.REJECT_ASSIGNMENT,
            from_statuses=frozenset({JobStatus.ASSIGNED}),
            to_status=JobStatus.REJECTED,
            actors=frozenset({UserRole.VENDOR}),
            notice="VENDOR_REJECTED",
        ),
        TransitionRule(
            action=JobAction.SEND_QUOTE,
            from_statuses=frozenset({JobStatus.IN_DISCUSSION}),
            to_status=JobStatus.QUOTE_SENT,
            actors=frozenset({UserRole.VENDOR}),
            notice="QUOTE_SENT",
        ),
        TransitionRule(
            action=JobAction.RESEND_QUOTE,
            from_statuses=frozenset({JobStatus.QUOTE_SENT}),
            to_status=JobStatus.QUOTE_SENT,
            actors=frozenset({UserRole.VENDOR}),
        ),
        TransitionRule(
            action=JobAction.ACCEPT_QUOTE,
            from_statuses=frozenset({JobStatus.QUOTE_SENT}),
            to_status=JobStatus.QUOTE_ACCEPTED,
            actors=frozenset({UserRole.CUSTOMER}),
            notice="QUOTE_ACCEPTED",
        ),
        TransitionRule(
            action=JobAction.REJECT_QUOTE,
            from_statuses=frozenset({JobStatus.QUOTE_SENT}),
            to_status=JobStatus.IN_DISCUSSION,
            actors=frozenset({UserRole.CUSTOMER}),
            notice="QUOTE_REJECTED",
        ),
        TransitionRule(
            action=JobAction.CONFIRM_PAYMENT,
            from_statuses=frozenset({JobStatus.QUOTE_ACCEPTED}),
            to_status=JobStatus.PAID,
            actors=_OPERATORS,
            notice="PAYMENT_RECEIVED",
        ),
        TransitionRule(
            action=JobAction.START_WORK,
            from_statuses=frozenset({JobStatus.PAID}),
            to_status=JobStatus.IN_PROGRESS,
            actors=frozenset({UserRole.VENDOR}),
            notice="WORK_STARTED",
        ),
        TransitionRule(
            action=JobAction.POST_PROGRESS,
            from_statuses=frozenset({JobStatus.IN_PROGRESS}),
            to_status=JobStatus.IN_PROGRESS,
            actors=frozenset({UserRole.VENDOR}),
        ),
        TransitionRule(
            action=JobAction.COMPLETE_WORK,
            from_statuses=frozenset({JobStatus.IN_PROGRESS}),
            to_status=JobStatus.COMPLETED,
            actors=frozenset({UserRole.VENDOR}),
            notice="WORK_COMPLETED",
        ),
        TransitionRule(
            action=JobAction.CANCEL,
            from_statuses=frozenset({JobStatus.PENDING, JobStatus.ASSIGNED}),
            to_status=JobStatus.CANCELLED,
            actors=frozenset({UserRole.CUSTOMER}),
            notice="JOB_CANCELLED",
        ),
    ]
}

# label, colour, description
_STATUS_DISPLAY: dict[JobStatus, tuple[str, str, str]] = {
    JobStatus.PENDING: ("Pending", "yellow", "Submitted and waiting for a vendor to be assigned"),
    JobStatus.ASSIGNED: ("Assigned", "blue", "A vendor has been assigned and has not responded yet"),
    JobStatus.IN_DISCUSSION: ("In Discussion", "purple", "Vendor and customer are discussing details"),
    JobStatus.QUOTE_SENT: ("Quote Sent", "orange", "Vendor has sent a quote for review"),
    JobStatus.QUOTE_ACCEPTED: ("Quote Accepted", "green", "Quote accepted, waiting for payment"),
    JobStatus.PAID: ("Paid", "green", "Payment received, work can begin"),
    JobStatus.IN_PROGRESS: ("In Progress", "blue", "Work is under way"),
    JobStatus.COMPLETED: ("Completed", "green", "Work has been completed"),
    JobStatus.CANCELLED: ("Cancelled", "red", "Cancelled by the customer"),
    JobStatus.REJECTED: ("Rejected", "red", "The assigned vendor declined the job"),
}


def is_terminal(status: JobStatus | str) -> bool:
    return JobStatus(status) in TERMINAL_STATUSES


def check_actor(action: JobAction, role: UserRole | str) -> TransitionRule:
    rule = TRANSITIONS[action]
    if UserRole(role) not in rule.actors:
        raise PermissionDeniedError(
            f"Only {', '.join(sorted(r.value for r in rule.actors))} may {action.value.replace('_', ' ')}"
        )
    return rule


def check_transition(action: JobAction, current_status: JobStatus | str) -> TransitionRule:
    rule = TRANSITIONS[action]
    status = JobStatus(current_status)
    if status not in rule.from_statuses:
        raise InvalidTransitionError(action.value, status.value)
    return rule


def allowed_actions(status: JobStatus | str, role: UserRole | str | None = None) -> list[str]:
    status = JobStatus(status)
    role = UserRole(role) if role is not None else None
    return [
        rule.action.value
        for rule in TRANSITIONS.values()
        if status in rule.from_statuses and (role is None or role in rule.actors)
    ]


def status_label(status: JobStatus | str) -> str:
    return _STATUS_DISPLAY[JobStatus(status)][0]


def status_metadata() -> list[StatusMetadata]:
    items = []
    for status in JobStatus:
        label, color, description = _STATUS_DISPLAY[status]
        items.append(StatusMetadata(
            status=status,
            label=label,
            color=color,
            description=description,
            is_terminal=status in TERMINAL_STATUSES,
            allowed_actions={
                role.value: allowed_actions(status, role) for role in UserRole
            },
        ))
    return items
