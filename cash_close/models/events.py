"""
Operational Event Models

These are log events about what the closing workflow did (saved, rejected,
prompted for reconciliation...). They go to the structured log only; the
per-record audit trail lives in `cash_close.models.audit`.

Free-text notes are never copied into an event.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from cash_close.models.audit import utc_now


class ClosingEventType(str, Enum):
    """Types of events we log."""
    # Save path
    RECORD_SAVED = "record_saved"
    SAVE_REJECTED = "save_rejected"
    VERSION_CONFLICT = "version_conflict"
    RECORD_DELETED = "record_deleted"

    # Reconciliation
    RECONCILIATION_PROMPTED = "reconciliation_prompted"
    RECONCILIATION_CONFIRMED = "reconciliation_confirmed"
    RECONCILIATION_CANCELLED = "reconciliation_cancelled"
    RECONCILIATION_NOT_FOUND = "reconciliation_not_found"

    # Summary
    SUMMARY_GENERATED = "summary_generated"
    SUMMARY_FALLBACK_USED = "summary_fallback_used"

    # System events
    STORAGE_ERROR = "storage_error"


class EventSeverity(str, Enum):
    """Severity level for events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ClosingEvent(BaseModel):
    """A single operational event."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(default_factory=utc_now)
    event_type: ClosingEventType
    severity: EventSeverity = EventSeverity.INFO
    record_date: Optional[str] = Field(
        default=None,
        description="Closing date the event is about"
    )
    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "record_date": self.record_date,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class ClosingEventBuilder:
    """
    Helper class to build events with common patterns.

    Usage:
        event = ClosingEventBuilder.record_saved("2024-01-11", 3, "Maria")
    """

    @staticmethod
    def record_saved(
        record_date: str,
        version: int,
        actor_name: str,
        change_count: int,
    ) -> ClosingEvent:
        return ClosingEvent(
            event_type=ClosingEventType.RECORD_SAVED,
            record_date=record_date,
            description=f"Closing saved for {record_date} by {actor_name}",
            details={
                "version": version,
                "actor_name": actor_name,
                "change_count": change_count,
            },
        )

    @staticmethod
    def save_rejected(record_date: str, reasons: list[str]) -> ClosingEvent:
        return ClosingEvent(
            event_type=ClosingEventType.SAVE_REJECTED,
            severity=EventSeverity.WARNING,
            record_date=record_date,
            description=f"Save rejected for {record_date}",
            details={"reasons": reasons},
        )

    @staticmethod
    def version_conflict(
        record_date: str,
        expected_version: Optional[int],
        stored_version: int,
    ) -> ClosingEvent:
        return ClosingEvent(
            event_type=ClosingEventType.VERSION_CONFLICT,
            severity=EventSeverity.WARNING,
            record_date=record_date,
            description=f"Stored record for {record_date} changed since it was loaded",
            details={
                "expected_version": expected_version,
                "stored_version": stored_version,
            },
        )

    @staticmethod
    def record_deleted(record_date: str, existed: bool) -> ClosingEvent:
        return ClosingEvent(
            event_type=ClosingEventType.RECORD_DELETED,
            record_date=record_date,
            description=f"Closing deleted for {record_date}",
            details={"existed": existed},
        )

    @staticmethod
    def reconciliation_prompted(
        record_date: str,
        prior_date: str,
        staff_count: int,
        manual: bool,
    ) -> ClosingEvent:
        return ClosingEvent(
            event_type=ClosingEventType.RECONCILIATION_PROMPTED,
            record_date=record_date,
            description=f"Prior day {prior_date} offered for reconciliation",
            details={
                "prior_date": prior_date,
                "staff_count": staff_count,
                "manual": manual,
            },
        )

    @staticmethod
    def reconciliation_confirmed(
        record_date: str,
        prior_date: str,
        carried: int,
        skipped_duplicates: int,
    ) -> ClosingEvent:
        return ClosingEvent(
            event_type=ClosingEventType.RECONCILIATION_CONFIRMED,
            record_date=record_date,
            description=f"{carried} unpaid obligation(s) carried from {prior_date}",
            details={
                "prior_date": prior_date,
                "carried": carried,
                "skipped_duplicates": skipped_duplicates,
            },
        )

    @staticmethod
    def reconciliation_cancelled(record_date: str, prior_date: str) -> ClosingEvent:
        return ClosingEvent(
            event_type=ClosingEventType.RECONCILIATION_CANCELLED,
            record_date=record_date,
            description="Reconciliation cancelled; save aborted",
            details={"prior_date": prior_date},
        )

    @staticmethod
    def reconciliation_not_found(record_date: str) -> ClosingEvent:
        return ClosingEvent(
            event_type=ClosingEventType.RECONCILIATION_NOT_FOUND,
            record_date=record_date,
            description=f"No closing found before {record_date}",
        )

    @staticmethod
    def summary_generated(record_date: str, used_ai: bool) -> ClosingEvent:
        return ClosingEvent(
            event_type=ClosingEventType.SUMMARY_GENERATED,
            record_date=record_date,
            description=f"Summary generated for {record_date}",
            details={"used_ai": used_ai},
        )

    @staticmethod
    def summary_fallback_used(record_date: str, error_message: str) -> ClosingEvent:
        return ClosingEvent(
            event_type=ClosingEventType.SUMMARY_FALLBACK_USED,
            severity=EventSeverity.WARNING,
            record_date=record_date,
            description="AI summary unavailable; static summary used",
            error_message=error_message,
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        record_date: Optional[str] = None,
    ) -> ClosingEvent:
        return ClosingEvent(
            event_type=ClosingEventType.STORAGE_ERROR,
            severity=EventSeverity.ERROR,
            record_date=record_date,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={"operation": operation},
        )
