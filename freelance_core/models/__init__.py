"""
Data Models Package

This package contains all Pydantic models used in Freelance Core.
Every record written to or read from the store conforms to these schemas.
"""

from freelance_core.models.entities import (
    AdjustmentType,
    Client,
    Entity,
    Invoice,
    InvoiceDisplayStatus,
    InvoiceItem,
    InvoiceStatus,
    Project,
    ProjectStatus,
    ProjectType,
    StoredModel,
    Task,
    TimeLog,
    utcnow,
)
from freelance_core.models.app_settings import (
    AppSettings,
    BillingPreference,
    DueDateWindow,
    ReminderTime,
    ThemeMode,
    TimeFormat,
    TimeIncrement,
)
from freelance_core.models.activity import (
    ActivityEvent,
    ActivityEventBuilder,
    ActivityEventType,
    ActivitySeverity,
)
from freelance_core.models.validation import (
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    # Entity models
    "AdjustmentType",
    "Client",
    "Entity",
    "Invoice",
    "InvoiceDisplayStatus",
    "InvoiceItem",
    "InvoiceStatus",
    "Project",
    "ProjectStatus",
    "ProjectType",
    "StoredModel",
    "Task",
    "TimeLog",
    "utcnow",
    # Settings record
    "AppSettings",
    "BillingPreference",
    "DueDateWindow",
    "ReminderTime",
    "ThemeMode",
    "TimeFormat",
    "TimeIncrement",
    # Activity models
    "ActivityEvent",
    "ActivityEventBuilder",
    "ActivityEventType",
    "ActivitySeverity",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
]
