"""
Prior-Day Reconciliation Workflow

Before the first save of a day, the operator is shown the staff payments
of the nearest earlier closing and marks which of them were actually
paid. Every payment left unmarked becomes a pending payable on the day
being saved:

    name = "<staff name> (Ref. DD/MM/YYYY)", amount = prior amount,
    reference_date = prior date

Session states:

    IDLE --start--> PROMPTING --confirm--> RESOLVED
                        |
                        +----cancel----> IDLE (session discarded)

Which dates were already resolved is kept in memory for the lifetime of
the PriorDayReconciler only. Two things guard against offering the same
obligations twice across restarts:
- the saved record lists the prior dates it reconciled against
  (`reconciled_prior_dates`), which suppresses the automatic prompt
- carried items are skipped when an identical (name, reference date,
  amount) pendency is already present
"""

from decimal import Decimal
from enum import Enum
from typing import NamedTuple, Optional

from cash_close.assembly import ClosingError
from cash_close.models.record import (
    ClosingDraft,
    DailyRecord,
    PendingItem,
    format_display_date,
)
from cash_close.models.audit import UNKNOWN_ACTOR
from cash_close.services.storage import RecordStoreInterface


class ReconciliationState(str, Enum):
    IDLE = "idle"
    PROMPTING = "prompting"
    RESOLVED = "resolved"


class ReconciliationStateError(ClosingError):
    """An operation was attempted in the wrong session state."""
    pass


class CarryForward(NamedTuple):
    """Outcome of moving unpaid obligations into a pendency list."""
    pending: list[PendingItem]
    added: list[PendingItem]
    skipped: list[PendingItem]


def find_nearest_prior(
    records: list[DailyRecord],
    target_date: str,
) -> Optional[DailyRecord]:
    """
    The stored record with the greatest date strictly before `target_date`.

    ISO dates are zero-padded, so string comparison is date comparison.
    """
    earlier = [record for record in records if record.date < target_date]
    if not earlier:
        return None
    return max(earlier, key=lambda record: record.date)


def carried_item_name(staff_name: str, prior_date: str) -> str:
    return f"{staff_name} (Ref. {format_display_date(prior_date)})"


def _pending_key(item: PendingItem) -> tuple[str, Optional[str], Decimal]:
    return item.name, item.reference_date, item.amount


def carry_forward_unpaid(
    prior: DailyRecord,
    acknowledged_ids: set[str],
    existing: list[PendingItem],
    staff_names: dict[str, str],
    deduplicate: bool = True,
) -> CarryForward:
    """
    Append one pendency per unacknowledged prior payment to `existing`.

    Args:
        prior: The earlier closing being reconciled
        acknowledged_ids: Staff ids the operator marked as paid
        existing: Pendencies already in the current day's draft
        staff_names: staff id -> display name
        deduplicate: Skip items already present by (name, reference_date, amount)

    Returns:
        CarryForward with the full new list and what was added/skipped.
        `existing` is not modified.
    """
    seen = {_pending_key(item) for item in existing}
    added = []
    skipped = []

    for payment in prior.payments:
        if payment.staff_id in acknowledged_ids or payment.amount <= 0:
            continue
        item = PendingItem(
            name=carried_item_name(
                staff_names.get(payment.staff_id, UNKNOWN_ACTOR), prior.date
            ),
            amount=payment.amount,
            reference_date=prior.date,
        )
        if deduplicate and _pending_key(item) in seen:
            skipped.append(item)
            continue
        seen.add(_pending_key(item))
        added.append(item)

    return CarryForward(pending=[*existing, *added], added=added, skipped=skipped)


class ReconciliationSession:
    """
    One operator confirmation of a prior day's staff payments.

    Only the paid/unpaid mark can change while prompting; amounts come
    from the prior record as stored. Payments already flagged as paid in
    the prior record start out marked.
    """

    def __init__(
        self,
        target_date: str,
        prior_record: DailyRecord,
        manual: bool = False,
    ):
        self.target_date = target_date
        self.prior_record = prior_record
        self.manual = manual
        self.acknowledged_staff_ids: set[str] = {
            p.staff_id for p in prior_record.payments if p.is_paid
        }
        self.state = ReconciliationState.PROMPTING
        self.result: Optional[CarryForward] = None

    @property
    def prior_date(self) -> str:
        return self.prior_record.date

    @property
    def staff_ids(self) -> list[str]:
        return [p.staff_id for p in self.prior_record.payments]

    @property
    def unpaid_staff_ids(self) -> list[str]:
        return [sid for sid in self.staff_ids if sid not in self.acknowledged_staff_ids]

    def _require_prompting(self) -> None:
        if self.state != ReconciliationState.PROMPTING:
            raise ReconciliationStateError(
                f"Reconciliation for {self.target_date} is {self.state.value}, not prompting"
            )

    def is_marked_paid(self, staff_id: str) -> bool:
        return staff_id in self.acknowledged_staff_ids

    def mark_paid(self, staff_id: str, paid: bool = True) -> None:
        self._require_prompting()
        if staff_id not in self.staff_ids:
            raise ValueError(
                f"Staff {staff_id} has no payment on {self.prior_date}"
            )
        if paid:
            self.acknowledged_staff_ids.add(staff_id)
        else:
            self.acknowledged_staff_ids.discard(staff_id)

    def toggle_paid(self, staff_id: str) -> bool:
        """Flip the mark for one staff member; returns the new mark."""
        paid = not self.is_marked_paid(staff_id)
        self.mark_paid(staff_id, paid)
        return paid

    def confirm(
        self,
        existing: list[PendingItem],
        staff_names: dict[str, str],
        deduplicate: bool = True,
    ) -> CarryForward:
        """Resolve the session, carrying every unmarked payment forward."""
        self._require_prompting()
        self.result = carry_forward_unpaid(
            self.prior_record,
            set(self.acknowledged_staff_ids),
            existing,
            staff_names,
            deduplicate=deduplicate,
        )
        self.state = ReconciliationState.RESOLVED
        return self.result

    def cancel(self) -> None:
        self._require_prompting()
        self.state = ReconciliationState.IDLE


class PriorDayReconciler:
    """
    Decides when to prompt and keeps the per-date session bookkeeping.

    At most one open session exists per target date.
    """

    def __init__(self, store: RecordStoreInterface):
        self._store = store
        self._resolved_dates: set[str] = set()
        self._open_sessions: dict[str, ReconciliationSession] = {}

    def find_prior(self, target_date: str) -> Optional[DailyRecord]:
        return find_nearest_prior(self._store.list_all(), target_date)

    def is_resolved(self, target_date: str) -> bool:
        return target_date in self._resolved_dates

    def prior_to_prompt_for(self, draft: ClosingDraft) -> Optional[DailyRecord]:
        """
        The prior record to reconcile before saving `draft`, or None.

        Prompts only when the day has no stored record yet, an earlier
        record exists, the date was not resolved in this runtime, and the
        draft was not already reconciled against that prior date.
        """
        if self.is_resolved(draft.date):
            return None
        if self._store.get_by_date(draft.date) is not None:
            return None
        prior = self.find_prior(draft.date)
        if prior is None or prior.date in draft.reconciled_prior_dates:
            return None
        return prior

    def should_prompt(self, draft: ClosingDraft) -> bool:
        return self.prior_to_prompt_for(draft) is not None

    def open_session(
        self,
        target_date: str,
        prior: DailyRecord,
        manual: bool = False,
    ) -> ReconciliationSession:
        session = self._open_sessions.get(target_date)
        if session is not None and session.state == ReconciliationState.PROMPTING:
            return session
        session = ReconciliationSession(target_date, prior, manual=manual)
        self._open_sessions[target_date] = session
        return session

    def close_session(self, session: ReconciliationSession) -> None:
        """Forget an open session; resolved ones also mark their date."""
        if self._open_sessions.get(session.target_date) is session:
            del self._open_sessions[session.target_date]
        if session.state == ReconciliationState.RESOLVED:
            self._resolved_dates.add(session.target_date)

    def forget(self, target_date: str) -> None:
        """Drop all state for a date (used when its record is deleted)."""
        self._resolved_dates.discard(target_date)
        self._open_sessions.pop(target_date, None)
