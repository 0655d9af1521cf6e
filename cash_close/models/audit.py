"""
Audit Models for Cash Close

Every save of a daily record leaves one AuditEntry in that record's log.
Entries are produced from a typed list of FieldChange objects, which is
rendered to text only at the last moment. Other consumers (exports,
reports) can work on the typed changes directly.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


INITIAL_CLOSE = "Initial close"
UNSPECIFIED_CHANGE = "Record updated (no field-level change detected)"
UNKNOWN_ACTOR = "Unknown"


def utc_now() -> datetime:
    """Timezone-aware current time used for every stored timestamp."""
    return datetime.now(timezone.utc)


class ChangeKind(str, Enum):
    """What happened to a field between two versions of a record."""
    SALES_CHANGED = "sales_changed"
    PAYMENT_ADDED = "payment_added"
    PAYMENT_CHANGED = "payment_changed"
    PAYMENT_REMOVED = "payment_removed"
    COUNT_CHANGED = "count_changed"
    NOTES_CHANGED = "notes_changed"


class FieldChange(BaseModel):
    """
    A single field-level difference between two record versions.

    `subject` names the sales channel, staff id or list label the change
    is about. `old` and `new` hold raw values; for payments they are
    (amount, delivery_count) pairs.
    """
    model_config = ConfigDict(frozen=True)

    kind: ChangeKind
    field: str = Field(
        ...,
        description="Record field the change belongs to (sales, payments, debts, ...)"
    )
    subject: Optional[str] = Field(
        default=None,
        description="Channel, staff id or list label"
    )
    old: Any = None
    new: Any = None


class AuditEntry(BaseModel):
    """
    One immutable line of a record's audit trail.

    Owned by exactly one DailyRecord.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the save happened (UTC)"
    )
    actor_name: str = Field(
        ...,
        min_length=1,
        description="Name of the staff member who closed the record"
    )
    description: str = Field(
        ...,
        min_length=1,
        description="Human-readable summary of what changed"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "actor_name": self.actor_name,
            "description": self.description,
        }
