import pytest

from jobhub.common.enums import JobAction, JobStatus, UserRole
from jobhub.common.exceptions import InvalidTransitionError, PermissionDeniedError
from jobhub.core.lifecycle.state_machine import (
    TERMINAL_STATUSES,
    TRANSITIONS,
    allowed_actions,
    check_actor,
    check_transition,
    is_terminal,
    status_label,
    status_metadata,
)


def test_every_action_has_a_rule():
    assert set(TRANSITIONS) == set(JobAction)


def test_transition_targets_are_defined_statuses():
    for rule in TRANSITIONS.values():
        assert rule.to_status in JobStatus
        assert rule.from_statuses <= set(JobStatus)


def test_terminal_statuses_have_no_outgoing_edges():
    for rule in TRANSITIONS.values():
        assert not (rule.from_statuses & TERMINAL_STATUSES)


def test_status_changes_carry_a_notice():
    for rule in TRANSITIONS.values():
        if rule.to_status in rule.from_statuses:
            assert rule.notice is None
        else:
            assert rule.notice is not None


def test_check_transition_legal():
    rule = check_transition(JobAction.ACCEPT_QUOTE, JobStatus.QUOTE_SENT)
    assert rule.to_status == JobStatus.QUOTE_ACCEPTED


def test_check_transition_illegal():
    with pytest.raises(InvalidTransitionError) as exc:
        check_transition(JobAction.CANCEL, JobStatus.IN_PROGRESS)
    assert exc.value.status_code == 400
    assert exc.value.code == "invalid_transition"


@pytest.mark.parametrize("status", [JobStatus.PENDING, JobStatus.ASSIGNED])
def test_cancel_window(status):
    assert check_transition(JobAction.CANCEL, status).to_status == JobStatus.CANCELLED


@pytest.mark.parametrize(
    "status",
    [s for s in JobStatus if s not in (JobStatus.PENDING, JobStatus.ASSIGNED)],
)
def test_cancel_rejected_outside_window(status):
    with pytest.raises(InvalidTransitionError):
        check_transition(JobAction.CANCEL, status)


def test_check_actor_rejects_wrong_role():
    with pytest.raises(PermissionDeniedError):
        check_actor(JobAction.SEND_QUOTE, UserRole.CUSTOMER)
    with pytest.raises(PermissionDeniedError):
        check_actor(JobAction.CONFIRM_PAYMENT, UserRole.VENDOR)
    assert check_actor(JobAction.CONFIRM_PAYMENT, UserRole.SYSTEM).to_status == JobStatus.PAID


def test_allowed_actions_by_role():
    assert allowed_actions(JobStatus.QUOTE_SENT, UserRole.CUSTOMER) == ["accept_quote", "reject_quote"]
    assert allowed_actions(JobStatus.QUOTE_SENT, UserRole.VENDOR) == ["resend_quote"]
    assert allowed_actions(JobStatus.COMPLETED) == []


def test_is_terminal():
    assert is_terminal(JobStatus.REJECTED)
    assert is_terminal("CANCELLED")
    assert not is_terminal(JobStatus.PAID)


def test_status_metadata_covers_every_status():
    metadata = status_metadata()
    assert [m.status for m in metadata] == list(JobStatus)
    pending = metadata[0]
    assert pending.label == "Pending"
    assert pending.allowed_actions["admin"] == ["assign_vendor"]
    assert pending.allowed_actions["customer"] == ["cancel"]
    assert status_label(JobStatus.QUOTE_ACCEPTED) == "Quote Accepted"
