"""
Audit Trail Builder

Produces the new audit log for a save. Pure functions: the log passed in
is never modified, a new list is returned.
"""

from datetime import datetime
from typing import Optional

from cash_close.audit.diff import describe_changes
from cash_close.models.audit import INITIAL_CLOSE, UNKNOWN_ACTOR, AuditEntry, utc_now
from cash_close.models.record import DailyRecord, StaffMember


DESCRIPTION_SEPARATOR = "; "


def resolve_actor_name(
    staff_id: Optional[str],
    staff: list[StaffMember],
) -> str:
    """Name of the closer, or UNKNOWN_ACTOR; never fails the save."""
    if staff_id:
        for member in staff:
            if member.id == staff_id:
                return member.name
    return UNKNOWN_ACTOR


def build_save_description(
    previous: Optional[DailyRecord],
    current: DailyRecord,
    staff_names: Optional[dict[str, str]] = None,
) -> str:
    """
    The description for this save's audit entry.

    First save of a date -> INITIAL_CLOSE; otherwise the diff lines joined
    into one entry.
    """
    if previous is None:
        return INITIAL_CLOSE
    return DESCRIPTION_SEPARATOR.join(describe_changes(previous, current, staff_names))


def append_entry(
    audit_log: list[AuditEntry],
    actor_name: str,
    description: str,
    now: Optional[datetime] = None,
) -> list[AuditEntry]:
    """Return `audit_log` plus one new entry."""
    entry = AuditEntry(
        timestamp=now or utc_now(),
        actor_name=actor_name or UNKNOWN_ACTOR,
        description=description,
    )
    return [*audit_log, entry]
