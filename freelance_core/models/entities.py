"""
Core Data Models for Freelance Core

These models define the schemas for every record kept in the local store.
They are designed to:
1. Round-trip exactly through the JSON blobs in device storage
2. Keep the persisted camelCase layout (clientId, hourlyRate, ...)
3. Load old blobs without migration code

DESIGN DECISION: Models carry types, not business rules.
Required-field checks live in the EntityValidator, so a record that
was saved by an older, more lenient client still loads.
"""

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from freelance_core.identifiers import generate_id


def utcnow() -> datetime:
    """Timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def blank_to_none(v: Any) -> Any:
    """Forms store an untouched optional date as "" rather than omitting it."""
    if isinstance(v, str) and not v.strip():
        return None
    return v


def as_utc(v: Optional[datetime]) -> Optional[datetime]:
    """
    Make a timestamp timezone-aware.

    Naive values are taken to be UTC. Aware values are converted to UTC,
    so every stored timestamp compares and sorts against every other.
    """
    if v is None:
        return None
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


def _json_number(v: Decimal) -> Union[int, float]:
    if v == v.to_integral_value():
        return int(v)
    return float(v)


# Written as a plain JSON number (50, 122.85), the way the mobile client
# stores money. Python-side values stay Decimal.
Money = Annotated[
    Decimal,
    PlainSerializer(_json_number, return_type=Union[int, float], when_used="json"),
]


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ProjectStatus(str, Enum):
    """Lifecycle of a project."""
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"


class ProjectType(str, Enum):
    """How a project is billed."""
    HOURLY = "hourly"
    FIXED = "fixed"


class AdjustmentType(str, Enum):
    """
    How a discount or tax value is interpreted.

    FLAT: absolute currency amount
    PERCENTAGE: proportion of the computed base
    """
    FLAT = "flat"
    PERCENTAGE = "percentage"


class InvoiceStatus(str, Enum):
    """
    Stored invoice status.

    CRITICAL: "overdue" is NOT a stored status. It is derived at read
    time from due_date and status (see invoicing.calculator).
    """
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"


class InvoiceDisplayStatus(str, Enum):
    """Status as shown to the user, including the derived overdue state."""
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"


# =============================================================================
# BASE
# =============================================================================

class StoredModel(BaseModel):
    """
    Base for everything persisted as JSON.

    Attributes are snake_case in Python and camelCase on disk.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    def to_storage_dict(self) -> dict[str, Any]:
        """JSON-ready dict using the persisted key names."""
        return self.model_dump(mode="json", by_alias=True)


class Entity(StoredModel):
    """A record with identity, kept in one of the named collections."""

    id: str = Field(
        default_factory=generate_id,
        min_length=1,
        description="Opaque unique id, generated at creation"
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        description="When the record was created (UTC)"
    )

    @field_validator('created_at')
    @classmethod
    def created_at_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


# =============================================================================
# CLIENTS / PROJECTS / TASKS
# =============================================================================

class Client(Entity):
    """Someone the freelancer bills."""

    name: str = Field(
        ...,
        max_length=200,
        description="Client name (required, validated non-blank)"
    )
    company: str = ""
    email: str = ""
    phone: Optional[str] = None
    notes: str = ""
    currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="ISO 4217 code"
    )

    @field_validator('currency')
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()


class Project(Entity):
    """
    A piece of work for one client.

    client_id is a reference, not ownership: the client may be deleted
    and the project keeps the dangling id.
    """

    client_id: str = Field(
        ...,
        description="Owning client's id (may dangle)"
    )
    name: str = Field(
        ...,
        max_length=200,
        description="Project name (required, validated non-blank)"
    )
    description: str = ""
    status: ProjectStatus = ProjectStatus.ACTIVE
    project_type: ProjectType = ProjectType.HOURLY
    hourly_rate: Money = Field(
        default=Decimal("0"),
        ge=0,
        description="Rate for hourly projects"
    )
    fixed_budget: Optional[Money] = Field(
        default=None,
        ge=0,
        description="Budget for fixed-price projects"
    )
    currency: str = "USD"
    start_date: date = Field(default_factory=date.today)
    deadline: Optional[date] = None
    tags: list[str] = Field(
        default_factory=list,
        description="Set of tags (unique, insertion order kept)"
    )
    deliverables: list[str] = Field(default_factory=list)
    time_tracking_enabled: bool = True
    attachments: list[str] = Field(
        default_factory=list,
        description="Attachment filenames"
    )
    private_notes: str = ""

    @field_validator('deadline', 'fixed_budget', mode='before')
    @classmethod
    def blank_optionals(cls, v: Any) -> Any:
        return blank_to_none(v)

    @field_validator('tags')
    @classmethod
    def unique_tags(cls, v: list[str]) -> list[str]:
        """Tags behave as a set: drop blanks and repeats, keep first-seen order."""
        seen: dict[str, None] = {}
        for tag in v:
            tag = tag.strip()
            if tag:
                seen.setdefault(tag, None)
        return list(seen)


class Task(Entity):
    """A to-do inside a project."""

    project_id: str
    title: str = Field(
        ...,
        max_length=200,
        description="Task title (required, validated non-blank)"
    )
    description: str = ""
    completed: bool = False
    due_date: Optional[date] = None

    @field_validator('due_date', mode='before')
    @classmethod
    def blank_due_date(cls, v: Any) -> Any:
        return blank_to_none(v)


class TimeLog(Entity):
    """
    A block of time spent on a project.

    CRITICAL: duration and hourly_rate are historical facts.
    The rate is a snapshot taken when the time was logged and is never
    recomputed if the project's rate changes later.
    """

    project_id: str
    task_id: Optional[str] = None
    description: str = ""
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: int = Field(
        ...,
        ge=0,
        frozen=True,
        description="Minutes worked"
    )
    hourly_rate: Money = Field(
        ...,
        ge=0,
        frozen=True,
        description="Rate snapshot at logging time"
    )

    @field_validator('task_id', 'end_time', mode='before')
    @classmethod
    def blank_optionals(cls, v: Any) -> Any:
        return blank_to_none(v)

    @field_validator('start_time', 'end_time')
    @classmethod
    def times_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    @property
    def earnings(self) -> Decimal:
        """Value of this log at its snapshot rate."""
        return Decimal(self.duration) / Decimal(60) * self.hourly_rate


# =============================================================================
# INVOICES
# =============================================================================

class InvoiceItem(StoredModel):
    """
    A single invoice line.

    amount == quantity * rate when the item is created (filled in if
    omitted). It is NOT recomputed afterwards; see is_consistent.
    """

    id: str = Field(default_factory=generate_id)
    description: str = Field(
        ...,
        max_length=500,
        description="What is being billed"
    )
    quantity: Money = Field(
        default=Decimal("1"),
        description="Units billed (hours, pieces, ...)"
    )
    rate: Money = Field(
        default=Decimal("0"),
        description="Price per unit"
    )
    amount: Money = Field(
        ...,
        description="Line amount as stored"
    )

    @model_validator(mode='before')
    @classmethod
    def default_amount(cls, data: Any) -> Any:
        """Fill amount from quantity * rate when it wasn't supplied."""
        if isinstance(data, dict) and data.get("amount") is None:
            try:
                quantity = Decimal(str(data.get("quantity", 1)))
                rate = Decimal(str(data.get("rate", 0)))
            except InvalidOperation:
                # Let field validation report the bad value
                return data
            data = {**data, "amount": quantity * rate}
        return data

    @property
    def is_consistent(self) -> bool:
        """Does the stored amount still equal quantity * rate?"""
        return self.amount == self.quantity * self.rate

    def with_recomputed_amount(self) -> "InvoiceItem":
        return self.model_copy(update={"amount": self.quantity * self.rate})


class Invoice(Entity):
    """
    An invoice for one client, optionally tied to one project.

    subtotal / discount_amount / tax_amount / total are derived by the
    invoice calculator and stored alongside the configuration
    (discount, tax and their types) that produced them.
    """

    client_id: str = ""
    project_id: Optional[str] = None
    invoice_number: str = ""
    items: list[InvoiceItem] = Field(default_factory=list)

    # Adjustment configuration
    discount: Money = Decimal("0")
    discount_type: AdjustmentType = AdjustmentType.FLAT
    tax: Money = Decimal("0")
    tax_type: AdjustmentType = AdjustmentType.PERCENTAGE

    # Derived totals
    subtotal: Money = Decimal("0")
    discount_amount: Money = Decimal("0")
    tax_amount: Money = Decimal("0")
    total: Money = Decimal("0")

    status: InvoiceStatus = InvoiceStatus.DRAFT
    issue_date: date = Field(default_factory=date.today)
    due_date: Optional[date] = Field(
        default=None,
        description="Payment due date (required, validated)"
    )
    notes: str = ""
    terms: str = Field(
        default="",
        alias="termsAndConditions",
        description="Terms and conditions text"
    )
    currency: str = "USD"

    # Set once on first transition into the status, never overwritten
    sent_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None

    @field_validator('status', mode='before')
    @classmethod
    def legacy_overdue(cls, v: Any) -> Any:
        """Older blobs stored the derived "overdue" state; read it as sent."""
        if v == "overdue":
            return InvoiceStatus.SENT
        return v

    @field_validator('project_id', 'due_date', 'sent_at', 'paid_at', mode='before')
    @classmethod
    def blank_optionals(cls, v: Any) -> Any:
        return blank_to_none(v)

    @field_validator('sent_at', 'paid_at')
    @classmethod
    def stamps_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    def with_status(
        self,
        status: InvoiceStatus,
        now: Optional[datetime] = None,
    ) -> "Invoice":
        """
        Return a copy in the new status.

        sent_at / paid_at are stamped only the first time the invoice
        enters that status.
        """
        now = as_utc(now) if now else utcnow()
        update: dict[str, Any] = {"status": status}
        if status == InvoiceStatus.SENT and self.sent_at is None:
            update["sent_at"] = now
        if status == InvoiceStatus.PAID and self.paid_at is None:
            update["paid_at"] = now
        return self.model_copy(update=update)
