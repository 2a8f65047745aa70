import enum


class UserRole(str, enum.Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"
    ADMIN = "admin"
    SYSTEM = "system"


class JobStatus(str, enum.Enum):
    PENDING = "PENDING"
    ASSIGNED = "ASSIGNED"
    IN_DISCUSSION = "IN_DISCUSSION"
    QUOTE_SENT = "QUOTE_SENT"
    QUOTE_ACCEPTED = "QUOTE_ACCEPTED"
    PAID = "PAID"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"


class JobAction(str, enum.Enum):
    ASSIGN_VENDOR = "assign_vendor"
    UNASSIGN_VENDOR = "unassign_vendor"
    ACCEPT_ASSIGNMENT = "accept_assignment"
    REJECT_ASSIGNMENT = "reject_assignment"
    SEND_QUOTE = "send_quote"
    RESEND_QUOTE = "resend_quote"
    ACCEPT_QUOTE = "accept_quote"
    REJECT_QUOTE = "reject_quote"
    CONFIRM_PAYMENT = "confirm_payment"
    START_WORK = "start_work"
    POST_PROGRESS = "post_progress"
    COMPLETE_WORK = "complete_work"
    CANCEL = "cancel"


class JobCategory(str, enum.Enum):
    PLUMBING = "plumbing"
    ELECTRICAL = "electrical"
    CLEANING = "cleaning"
    GARDENING = "gardening"
    PAINTING = "painting"
    SECURITY = "security"
    HVAC = "hvac"
    GENERAL = "general"


class JobPriority(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    EMERGENCY = "EMERGENCY"


class AssignmentResponse(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class QuoteStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    SUPERSEDED = "SUPERSEDED"
    EXPIRED = "EXPIRED"


class MessageType(str, enum.Enum):
    TEXT = "TEXT"
    QUOTE = "QUOTE"
    CONTACT_INFO = "CONTACT_INFO"
    SYSTEM = "SYSTEM"


class MessagePriority(str, enum.Enum):
    NORMAL = "NORMAL"
    HIGH = "HIGH"


class ContactMethod(str, enum.Enum):
    PHONE = "phone"
    EMAIL = "email"
    MESSAGE = "message"


class ProgressStage(str, enum.Enum):
    """Work stages in execution order; declaration order is the canonical ordering."""

    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    MATERIALS_ORDERED = "MATERIALS_ORDERED"
    WORK_SCHEDULED = "WORK_SCHEDULED"
    WORK_IN_PROGRESS = "WORK_IN_PROGRESS"
    WORK_COMPLETED = "WORK_COMPLETED"
    CUSTOMER_APPROVAL = "CUSTOMER_APPROVAL"
    JOB_CLOSED = "JOB_CLOSED"

    @property
    def rank(self) -> int:
        return list(ProgressStage).index(self)


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    REQUIRES_RECONCILIATION = "requires_reconciliation"
