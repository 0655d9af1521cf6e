"""
Data Models Package

This package contains all Pydantic models used in the Cash Close system.
All data flowing through the system must conform to these schemas.
"""

from cash_close.models.record import (
    ClosingDraft,
    DailyRecord,
    DebtItem,
    DeliveryCommand,
    Money,
    PendingItem,
    RiderLedger,
    SalesChannel,
    SalesChannels,
    StaffMember,
    StaffPayment,
    StaffRole,
    StaffShift,
    format_display_date,
    format_money,
    staff_name_map,
    to_money,
)
from cash_close.models.audit import (
    INITIAL_CLOSE,
    UNKNOWN_ACTOR,
    UNSPECIFIED_CHANGE,
    AuditEntry,
    ChangeKind,
    FieldChange,
    utc_now,
)
from cash_close.models.events import (
    ClosingEvent,
    ClosingEventBuilder,
    ClosingEventType,
    EventSeverity,
)

__all__ = [
    # Record models
    "ClosingDraft",
    "DailyRecord",
    "DebtItem",
    "DeliveryCommand",
    "Money",
    "PendingItem",
    "RiderLedger",
    "SalesChannel",
    "SalesChannels",
    "StaffMember",
    "StaffPayment",
    "StaffRole",
    "StaffShift",
    "format_display_date",
    "format_money",
    "staff_name_map",
    "to_money",
    # Audit models
    "INITIAL_CLOSE",
    "UNKNOWN_ACTOR",
    "UNSPECIFIED_CHANGE",
    "AuditEntry",
    "ChangeKind",
    "FieldChange",
    "utc_now",
    # Operational events
    "ClosingEvent",
    "ClosingEventBuilder",
    "ClosingEventType",
    "EventSeverity",
]
