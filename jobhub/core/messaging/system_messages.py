"""Text for the SYSTEM messages appended on status changes."""

from typing import Any

TEMPLATES: dict[str, str] = {
    "JOB_ASSIGNED": "A vendor has been assigned to your job. They will contact you soon.",
    "JOB_UNASSIGNED": "The vendor assignment was withdrawn. The job is waiting for a new vendor.",
    "VENDOR_ACCEPTED": "The vendor has accepted your job and will contact you to discuss details.",
    "VENDOR_REJECTED": "The vendor declined this job. Reason: {reason}",
    "QUOTE_SENT": "A quote of ${amount} has been sent for review.",
    "QUOTE_ACCEPTED": "Quote accepted. Amount: ${amount}",
    "QUOTE_REJECTED": "Quote rejected. Reason: {reason}",
    "PAYMENT_RECEIVED": "Payment has been received. Work can now begin.",
    "WORK_STARTED": "The vendor has started work on this job.",
    "WORK_COMPLETED": "Work has been completed. You can now leave feedback.",
    "JOB_CANCELLED": "The job was cancelled. Reason: {reason}",
}


def render(action: str, details: dict[str, Any]) -> str:
    template = TEMPLATES.get(action)
    if template is None:
        return f"System notification: {action}"
    values = {"reason": "No reason provided", **{k: v for k, v in details.items() if v is not None}}
    return template.format(**values)
