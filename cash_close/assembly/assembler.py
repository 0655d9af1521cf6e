"""
Record Assembler

Turns the operator's ClosingDraft into a persistable DailyRecord, and
turns a stored DailyRecord back into a draft for editing.

The two directions are deliberately asymmetric:
- assemble() drops every payment whose amount is not positive, even if
  the staff id is still "active" in the draft
- draft_from_record() derives active staff ids from the persisted
  payments only

So a staff member with a zero amount does not survive a save/reload
cycle. derive_active_staff_ids() is the single place that rule lives.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from cash_close.models.audit import utc_now
from cash_close.models.record import (
    ClosingDraft,
    DailyRecord,
    RiderLedger,
    StaffPayment,
)


class ClosingError(Exception):
    """Base exception for the closing workflow."""
    pass


class MissingCloserError(ClosingError):
    """The staff member performing the close was not selected."""

    def __init__(self, record_date: str):
        self.record_date = record_date
        super().__init__(
            f"Select who is closing the register before saving {record_date}"
        )


def _unique(ids: list[str]) -> list[str]:
    seen = set()
    ordered = []
    for staff_id in ids:
        if staff_id and staff_id not in seen:
            seen.add(staff_id)
            ordered.append(staff_id)
    return ordered


def _merge_dates(*date_lists: list[str]) -> list[str]:
    return sorted(set().union(*date_lists))


def build_payments(draft: ClosingDraft) -> list[StaffPayment]:
    """
    One payment per active staff id, in activation order.

    Zero amounts are excluded from the persisted list.
    """
    payments = []
    for staff_id in _unique(draft.active_staff_ids):
        amount = draft.payments.get(staff_id, Decimal("0.00"))
        if amount <= 0:
            continue
        payments.append(StaffPayment(
            staff_id=staff_id,
            amount=amount,
            delivery_count=draft.delivery_counts.get(staff_id, 0),
            is_paid=draft.paid_flags.get(staff_id),
        ))
    return payments


def assemble(
    draft: ClosingDraft,
    previous: Optional[DailyRecord] = None,
    now: Optional[datetime] = None,
) -> DailyRecord:
    """
    Build the candidate record for a save.

    Args:
        draft: Current field state
        previous: The stored record for the same date, if any
        now: Save timestamp (defaults to the current UTC time)

    Returns:
        A new DailyRecord carrying the previous audit log unchanged;
        the caller appends this save's audit entry.

    Raises:
        MissingCloserError: If no closer is selected
        ValueError: If `previous` belongs to a different date
    """
    if not draft.closed_by_staff_id:
        raise MissingCloserError(draft.date)
    if previous is not None and previous.date != draft.date:
        raise ValueError(
            f"Cannot merge draft for {draft.date} into record for {previous.date}"
        )

    now = now or utc_now()

    return DailyRecord(
        date=draft.date,
        sales=draft.sales.model_copy(),
        payments=build_payments(draft),
        debts=[debt.model_copy() for debt in draft.debts],
        pending_payables=[item.model_copy() for item in draft.pending_payables],
        rider_ledger=RiderLedger(rides=list(draft.rides)),
        rider_commands={
            rider_id: [command.model_copy() for command in commands]
            for rider_id, commands in draft.rider_commands.items()
            if commands
        },
        notes=draft.notes,
        closed_by_staff_id=draft.closed_by_staff_id,
        is_closed=True,
        audit_log=list(previous.audit_log) if previous else [],
        reconciled_prior_dates=_merge_dates(
            previous.reconciled_prior_dates if previous else [],
            draft.reconciled_prior_dates,
        ),
        version=(previous.version if previous else 0) + 1,
        created_at=previous.created_at if previous else now,
        updated_at=now,
    )


def derive_active_staff_ids(record: DailyRecord) -> list[str]:
    """Staff ids that count as active when a stored record is reopened."""
    return _unique([p.staff_id for p in record.payments if p.amount > 0])


def empty_draft(record_date: str) -> ClosingDraft:
    """Draft for a date with no stored record."""
    return ClosingDraft(date=record_date)


def draft_from_record(record: DailyRecord) -> ClosingDraft:
    """Reopen a stored record for editing."""
    active_ids = derive_active_staff_ids(record)
    payments = {}
    delivery_counts = {}
    paid_flags = {}
    for payment in record.payments:
        if payment.staff_id not in active_ids:
            continue
        payments[payment.staff_id] = payment.amount
        if payment.delivery_count:
            delivery_counts[payment.staff_id] = payment.delivery_count
        if payment.is_paid is not None:
            paid_flags[payment.staff_id] = payment.is_paid

    # Riders with logged commands keep their count even without a payment yet
    for rider_id, commands in record.rider_commands.items():
        if commands and rider_id not in delivery_counts:
            delivery_counts[rider_id] = len(commands)

    return ClosingDraft(
        date=record.date,
        sales=record.sales.model_copy(),
        payments=payments,
        delivery_counts=delivery_counts,
        paid_flags=paid_flags,
        active_staff_ids=active_ids,
        debts=[debt.model_copy() for debt in record.debts],
        pending_payables=[item.model_copy() for item in record.pending_payables],
        notes=record.notes,
        closed_by_staff_id=record.closed_by_staff_id or "",
        rides=list(record.rider_ledger.rides) if record.rider_ledger else [],
        rider_commands={
            rider_id: [command.model_copy() for command in commands]
            for rider_id, commands in record.rider_commands.items()
        },
        reconciled_prior_dates=list(record.reconciled_prior_dates),
        base_version=record.version,
    )
