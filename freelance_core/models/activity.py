"""
Activity Models for Freelance Core

Every store operation and every entity change emits an activity event.
Events go to the structured log only. They are NOT persisted: records
have no audit trail, no versioning and no history.

This provides:
1. A single shape for everything the logger emits
2. Correlation of the events belonging to one user action
3. Loud, visible write failures next to quiet read recoveries
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class ActivityEventType(str, Enum):
    """Types of events we emit."""
    # Collections
    COLLECTION_LOADED = "collection_loaded"
    COLLECTION_LOAD_FAILED = "collection_load_failed"
    COLLECTION_SAVED = "collection_saved"
    COLLECTION_SAVE_FAILED = "collection_save_failed"

    # Settings record
    SETTINGS_LOADED = "settings_loaded"
    SETTINGS_LOAD_FAILED = "settings_load_failed"
    SETTINGS_SAVED = "settings_saved"
    SETTINGS_SAVE_FAILED = "settings_save_failed"
    ONBOARDING_COMPLETED = "onboarding_completed"

    # Entities
    ENTITY_CREATED = "entity_created"
    ENTITY_UPDATED = "entity_updated"
    ENTITY_DELETED = "entity_deleted"
    VALIDATION_FAILED = "validation_failed"
    INVOICE_STATUS_CHANGED = "invoice_status_changed"

    # Exchange rates
    EXCHANGE_RATES_UPDATED = "exchange_rates_updated"
    EXCHANGE_RATES_FAILED = "exchange_rates_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class ActivitySeverity(str, Enum):
    """Severity level for activity events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ActivityEvent(BaseModel):
    """A single activity event."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    event_type: ActivityEventType
    severity: ActivitySeverity = ActivitySeverity.INFO

    # Context - which slot / record is this about?
    storage_key: Optional[str] = None
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None

    correlation_id: Optional[UUID] = Field(
        default=None,
        description="Ties together the events of one user action"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "storage_key": self.storage_key,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class ActivityEventBuilder:
    """
    Helper class to build activity events with common patterns.

    Usage:
        event = ActivityEventBuilder.collection_saved("clients", 3)
        event = ActivityEventBuilder.entity_deleted("client", client_id)
    """

    @staticmethod
    def collection_loaded(key: str, count: int) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.COLLECTION_LOADED,
            severity=ActivitySeverity.DEBUG,
            storage_key=key,
            description=f"Loaded {count} items from {key}",
            details={"count": count},
        )

    @staticmethod
    def collection_load_failed(key: str, error_message: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.COLLECTION_LOAD_FAILED,
            severity=ActivitySeverity.WARNING,
            storage_key=key,
            description=f"Could not read {key}; falling back to an empty collection",
            error_message=error_message,
        )

    @staticmethod
    def collection_saved(key: str, count: int) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.COLLECTION_SAVED,
            storage_key=key,
            description=f"Saved {count} items to {key}",
            details={"count": count},
        )

    @staticmethod
    def collection_save_failed(key: str, error_message: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.COLLECTION_SAVE_FAILED,
            severity=ActivitySeverity.ERROR,
            storage_key=key,
            description=f"Failed to save {key}",
            error_message=error_message,
        )

    @staticmethod
    def settings_loaded(from_defaults: bool) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.SETTINGS_LOADED,
            severity=ActivitySeverity.DEBUG,
            storage_key="settings",
            description="Settings loaded" + (" (defaults)" if from_defaults else ""),
            details={"from_defaults": from_defaults},
        )

    @staticmethod
    def settings_load_failed(error_message: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.SETTINGS_LOAD_FAILED,
            severity=ActivitySeverity.WARNING,
            storage_key="settings",
            description="Could not read settings; using defaults",
            error_message=error_message,
        )

    @staticmethod
    def settings_saved() -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.SETTINGS_SAVED,
            storage_key="settings",
            description="Settings saved",
        )

    @staticmethod
    def settings_save_failed(error_message: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.SETTINGS_SAVE_FAILED,
            severity=ActivitySeverity.ERROR,
            storage_key="settings",
            description="Failed to save settings",
            error_message=error_message,
        )

    @staticmethod
    def onboarding_completed() -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.ONBOARDING_COMPLETED,
            storage_key="onboardingCompleted",
            description="Onboarding completed",
        )

    @staticmethod
    def entity_changed(
        event_type: ActivityEventType,
        entity_type: str,
        entity_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> ActivityEvent:
        verb = {
            ActivityEventType.ENTITY_CREATED: "created",
            ActivityEventType.ENTITY_UPDATED: "updated",
            ActivityEventType.ENTITY_DELETED: "deleted",
        }[event_type]
        return ActivityEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} {verb}: {entity_id}",
        )

    @staticmethod
    def validation_failed(
        entity_type: str,
        entity_id: Optional[str],
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.VALIDATION_FAILED,
            severity=ActivitySeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} validation failed with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def invoice_status_changed(
        invoice_id: str,
        old_status: str,
        new_status: str,
        correlation_id: Optional[UUID] = None,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.INVOICE_STATUS_CHANGED,
            entity_type="invoice",
            entity_id=invoice_id,
            correlation_id=correlation_id,
            description=f"Invoice status changed: {old_status} -> {new_status}",
            details={"old_status": old_status, "new_status": new_status},
        )

    @staticmethod
    def exchange_rates_updated(base_currency: str, count: int) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.EXCHANGE_RATES_UPDATED,
            storage_key="settings",
            description=f"Exchange rates updated for {base_currency}",
            details={"base_currency": base_currency, "rate_count": count},
        )

    @staticmethod
    def exchange_rates_failed(base_currency: str, error_message: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.EXCHANGE_RATES_FAILED,
            severity=ActivitySeverity.WARNING,
            storage_key="settings",
            description=f"Exchange rate update failed for {base_currency}; keeping the old snapshot",
            details={"base_currency": base_currency},
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.SYSTEM_ERROR,
            severity=ActivitySeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
