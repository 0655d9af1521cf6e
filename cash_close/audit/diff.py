"""
Record Diff Engine

Compares two versions of the same day's record and reports what changed,
field by field, in a fixed order:

    sales channels -> payments (added, changed, removed) -> debts -> pendencies -> notes

Two stages:
1. compute_changes() returns typed FieldChange objects
2. render_change() turns one change into the text stored in the audit log

Debts and pendencies are compared by count only; editing an item without
changing how many there are is not reported. Notes report only that they
changed, never their content.
"""

from decimal import Decimal
from typing import Optional

from cash_close.models.audit import UNSPECIFIED_CHANGE, ChangeKind, FieldChange
from cash_close.models.record import DailyRecord, SalesChannel, StaffPayment


COUNTED_LISTS = [
    ("debts", "Debts"),
    ("pending_payables", "Pending payables"),
]


def _payment_values(payment: StaffPayment) -> tuple[Decimal, int]:
    # A missing delivery count and a zero count mean the same thing
    return payment.amount, payment.delivery_count or 0


def _sales_changes(previous: DailyRecord, current: DailyRecord) -> list[FieldChange]:
    changes = []
    for channel in SalesChannel:
        old = previous.sales.amount_for(channel)
        new = current.sales.amount_for(channel)
        if old != new:
            changes.append(FieldChange(
                kind=ChangeKind.SALES_CHANGED,
                field="sales",
                subject=channel.value,
                old=old,
                new=new,
            ))
    return changes


def _payment_changes(previous: DailyRecord, current: DailyRecord) -> list[FieldChange]:
    previous_by_staff = {p.staff_id: p for p in previous.payments}
    current_ids = {p.staff_id for p in current.payments}

    added = []
    changed = []
    for payment in current.payments:
        before = previous_by_staff.get(payment.staff_id)
        if before is None:
            added.append(FieldChange(
                kind=ChangeKind.PAYMENT_ADDED,
                field="payments",
                subject=payment.staff_id,
                new=_payment_values(payment),
            ))
        elif _payment_values(before) != _payment_values(payment):
            changed.append(FieldChange(
                kind=ChangeKind.PAYMENT_CHANGED,
                field="payments",
                subject=payment.staff_id,
                old=_payment_values(before),
                new=_payment_values(payment),
            ))

    removed = [
        FieldChange(
            kind=ChangeKind.PAYMENT_REMOVED,
            field="payments",
            subject=payment.staff_id,
            old=_payment_values(payment),
        )
        for payment in previous.payments
        if payment.staff_id not in current_ids
    ]
    return added + changed + removed


def _count_changes(previous: DailyRecord, current: DailyRecord) -> list[FieldChange]:
    changes = []
    for field, label in COUNTED_LISTS:
        old = len(getattr(previous, field))
        new = len(getattr(current, field))
        if old != new:
            changes.append(FieldChange(
                kind=ChangeKind.COUNT_CHANGED,
                field=field,
                subject=label,
                old=old,
                new=new,
            ))
    return changes


def compute_changes(previous: DailyRecord, current: DailyRecord) -> list[FieldChange]:
    """
    Typed differences between two versions of a record.

    Returns an empty list when nothing tracked differs.
    """
    changes = []
    changes.extend(_sales_changes(previous, current))
    changes.extend(_payment_changes(previous, current))
    changes.extend(_count_changes(previous, current))
    if previous.notes != current.notes:
        changes.append(FieldChange(kind=ChangeKind.NOTES_CHANGED, field="notes"))
    return changes


def _staff_label(staff_id: Optional[str], staff_names: dict[str, str]) -> str:
    return staff_names.get(staff_id or "", staff_id or "?")


def _deliveries_suffix(count: int) -> str:
    return f" [{count} deliveries]" if count else ""


def render_change(
    change: FieldChange,
    staff_names: Optional[dict[str, str]] = None,
) -> str:
    """Render one change as an audit-log line."""
    staff_names = staff_names or {}

    if change.kind == ChangeKind.SALES_CHANGED:
        label = SalesChannel(change.subject).label
        return f"{label}: {change.old:.2f} → {change.new:.2f}"

    if change.kind == ChangeKind.PAYMENT_ADDED:
        amount, deliveries = change.new
        name = _staff_label(change.subject, staff_names)
        return f"Payment added: {name} ({amount:.2f}){_deliveries_suffix(deliveries)}"

    if change.kind == ChangeKind.PAYMENT_CHANGED:
        old_amount, old_deliveries = change.old
        new_amount, new_deliveries = change.new
        parts = []
        if old_amount != new_amount:
            parts.append(f"{old_amount:.2f} → {new_amount:.2f}")
        if old_deliveries != new_deliveries:
            parts.append(f"deliveries {old_deliveries} → {new_deliveries}")
        name = _staff_label(change.subject, staff_names)
        return f"Payment changed: {name} ({', '.join(parts)})"

    if change.kind == ChangeKind.PAYMENT_REMOVED:
        return f"Payment removed: {_staff_label(change.subject, staff_names)}"

    if change.kind == ChangeKind.COUNT_CHANGED:
        return f"{change.subject} ({change.old} → {change.new})"

    if change.kind == ChangeKind.NOTES_CHANGED:
        return "Notes changed"

    raise ValueError(f"Unknown change kind: {change.kind}")


def describe_changes(
    previous: DailyRecord,
    current: DailyRecord,
    staff_names: Optional[dict[str, str]] = None,
) -> list[str]:
    """
    Ordered, human-readable differences between two record versions.

    Never empty: when nothing tracked differs the single fallback line
    UNSPECIFIED_CHANGE is returned.
    """
    lines = [
        render_change(change, staff_names)
        for change in compute_changes(previous, current)
    ]
    return lines or [UNSPECIFIED_CHANGE]
