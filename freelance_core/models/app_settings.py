"""
AppSettings - the user's global preferences record.

DESIGN DECISION: The default table is the set of field defaults below.
A persisted record may be partial (written by an older client, before a
field existed). Loading validates it against this model, so any missing
field is backfilled from the table here without migration code.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from freelance_core.models.entities import Money, StoredModel, as_utc, blank_to_none


class BillingPreference(str, Enum):
    """Default billing type offered when creating a project."""
    HOURLY = "hourly"
    FIXED = "fixed"
    ASK = "ask"


class DueDateWindow(str, Enum):
    """Days between issue and due date for new invoices."""
    WEEK = "7"
    HALF_MONTH = "15"
    MONTH = "30"


class TimeFormat(str, Enum):
    H12 = "12h"
    H24 = "24h"


class TimeIncrement(str, Enum):
    QUARTER_HOUR = "15m"
    HALF_HOUR = "30m"
    HOUR = "1h"


class ReminderTime(str, Enum):
    MORNING = "Morning"
    EVENING = "Evening"
    EVERY_2_HOURS = "Every 2 hours"


class ThemeMode(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    AUTO = "auto"


class AppSettings(StoredModel):
    """
    Global defaults and preferences.

    This is a single record, not a collection. Every field has a
    default, so a loaded instance is always fully populated.
    """

    # Money
    currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="Base currency (ISO 4217)"
    )
    default_hourly_rate: Money = Field(
        default=Decimal("50"),
        ge=0,
        description="Rate pre-filled on new projects and invoice items"
    )
    tax_rate: Money = Field(
        default=Decimal("0"),
        ge=0,
        description="Percentage tax pre-filled on new invoices"
    )
    invoice_prefix: str = Field(
        default="INV",
        max_length=20,
        description="Prefix for generated invoice numbers"
    )

    # Exchange-rate snapshot (fetched by an external collaborator)
    exchange_rates: dict[str, Money] = Field(
        default_factory=dict,
        description="Units of each currency per 1 unit of `currency`"
    )
    last_exchange_rate_update: Optional[datetime] = Field(
        default=None,
        description="When the snapshot was taken (None = never)"
    )

    # Billing / invoicing defaults
    default_billing_type: BillingPreference = BillingPreference.HOURLY
    invoice_due_date_window: DueDateWindow = DueDateWindow.MONTH
    default_invoice_notes: str = "Thank you for your business!"

    # Time tracking
    time_tracking_enabled: bool = True
    time_format: TimeFormat = TimeFormat.H24
    time_increment: TimeIncrement = TimeIncrement.QUARTER_HOUR
    remind_to_log_time: bool = False
    remind_time: ReminderTime = ReminderTime.EVENING
    auto_stop_timer: bool = False
    auto_stop_time_hours: int = Field(default=8, ge=1, le=24)

    # Notifications / appearance / security
    notifications: bool = True
    biometric_lock: bool = False
    theme_mode: ThemeMode = ThemeMode.AUTO
    upcoming_invoice_reminders: bool = True
    time_logging_reminders: bool = False
    payment_confirmations: bool = True
    auto_backup: bool = False

    @field_validator('currency')
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()

    @field_validator('last_exchange_rate_update', mode='before')
    @classmethod
    def blank_timestamp(cls, v):
        # Older records stored "" for "never fetched"
        return blank_to_none(v)

    @field_validator('last_exchange_rate_update')
    @classmethod
    def timestamp_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    @property
    def due_days(self) -> int:
        return int(self.invoice_due_date_window.value)

    def due_date_for(self, issue_date: date) -> date:
        """Default due date for an invoice issued on issue_date."""
        return issue_date + timedelta(days=self.due_days)
