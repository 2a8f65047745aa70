import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from jobhub.common.enums import (
    ContactMethod,
    JobAction,
    JobCategory,
    JobPriority,
    JobStatus,
    UserRole,
)


class Actor(BaseModel):
    """Authenticated caller as supplied by the identity collaborator."""

    id: uuid.UUID | None = None
    role: UserRole

    @classmethod
    def system(cls) -> "Actor":
        return cls(id=None, role=UserRole.SYSTEM)


class TransitionRule(BaseModel):
    action: JobAction
    from_statuses: frozenset[JobStatus]
    to_status: JobStatus
    actors: frozenset[UserRole]
    notice: str | None = None  # system message action key, None when status is unchanged


class StatusMetadata(BaseModel):
    status: JobStatus
    label: str
    color: str
    description: str
    is_terminal: bool
    allowed_actions: dict[str, list[str]]


class Location(BaseModel):
    address: str
    city: str
    state: str | None = None
    zip_code: str | None = None
    latitude: float | None = None
    longitude: float | None = None


class TimeSlot(BaseModel):
    date: date
    start_time: str = Field(pattern=r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")
    end_time: str = Field(pattern=r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")


class JobCreateData(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    description: str = Field(min_length=1)
    category: JobCategory
    priority: JobPriority = JobPriority.MEDIUM
    is_emergency: bool = False
    location: Location | None = None
    requested_time_slot: TimeSlot | None = None
    estimated_duration: Decimal | None = Field(default=None, ge=Decimal("0.5"))
    estimated_budget: Decimal | None = Field(default=None, ge=0)
    special_instructions: str | None = None
    access_instructions: str | None = None
    contact_number: str | None = None
    images: list[str] = []
    videos: list[str] = []


class QuoteLineItem(BaseModel):
    item: str
    quantity: Decimal
    unit_price: Decimal


class QuoteData(BaseModel):
    """Vendor input for a quote; amount is derived from breakdown when one is given."""

    amount: Decimal | None = None
    breakdown: list[QuoteLineItem] = []
    description: str | None = None
    valid_until: datetime | None = None
    terms: str | None = None
    payment_terms: str | None = None
    estimated_duration: Decimal | None = None
    inclusions: list[str] = []
    exclusions: list[str] = []


class ContactInfo(BaseModel):
    phone: str | None = None
    email: str | None = None
    preferred_contact_method: ContactMethod | None = None
    available_times: str | None = None

    @field_validator("phone", "email")
    @classmethod
    def _strip(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return v.strip() or None
