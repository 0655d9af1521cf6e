"""Tests for the prior-day reconciliation workflow."""

import pytest
from decimal import Decimal

from cash_close.assembly import empty_draft
from cash_close.models.record import DailyRecord, PendingItem, StaffPayment
from cash_close.reconciliation import (
    PriorDayReconciler,
    ReconciliationSession,
    ReconciliationState,
    ReconciliationStateError,
    carried_item_name,
    carry_forward_unpaid,
    find_nearest_prior,
)
from cash_close.services.storage import InMemoryRecordStore


NAMES = {"a": "A", "b": "B", "att": "Maria"}


def _records(*dates):
    return [DailyRecord(date=d, closed_by_staff_id="att") for d in dates]


class TestNearestPrior:
    """Tests for find_nearest_prior()."""

    def test_picks_latest_earlier_date(self):
        """Test 2024-01-11 → 2024-01-10."""
        records = _records("2024-01-05", "2024-01-10", "2024-01-08")
        assert find_nearest_prior(records, "2024-01-11").date == "2024-01-10"

    def test_skips_later_dates(self):
        """Test 2024-01-09 → 2024-01-08, not 2024-01-10."""
        records = _records("2024-01-05", "2024-01-08", "2024-01-10")
        assert find_nearest_prior(records, "2024-01-09").date == "2024-01-08"

    def test_same_date_is_not_prior(self):
        """Test that the target date itself is never its own prior."""
        records = _records("2024-01-10")
        assert find_nearest_prior(records, "2024-01-10") is None

    def test_no_records(self):
        """Test the empty store."""
        assert find_nearest_prior([], "2024-01-10") is None

    def test_crosses_month_and_year(self):
        """Test that string comparison is date comparison across boundaries."""
        records = _records("2023-12-31", "2023-11-30")
        assert find_nearest_prior(records, "2024-01-01").date == "2023-12-31"


class TestCarryForward:
    """Tests for carry_forward_unpaid()."""

    def test_reference_scenario(self, prior_record):
        """Test A marked paid, B carried as 'B (Ref. 10/01/2024)' for 30."""
        result = carry_forward_unpaid(prior_record, {"a"}, [], NAMES)

        assert len(result.added) == 1
        item = result.added[0]
        assert item.name == "B (Ref. 10/01/2024)"
        assert item.amount == Decimal("30.00")
        assert item.reference_date == "2024-01-10"
        assert result.pending == result.added

    def test_appends_to_existing(self, prior_record):
        """Test that carried items go after the current pendencies."""
        existing = [PendingItem(name="Gás", amount=80)]
        result = carry_forward_unpaid(prior_record, set(), existing, NAMES)
        assert [p.name for p in result.pending] == [
            "Gás",
            "A (Ref. 10/01/2024)",
            "B (Ref. 10/01/2024)",
        ]
        assert len(existing) == 1

    def test_all_paid_adds_nothing(self, prior_record):
        """Test that acknowledging everyone carries nothing."""
        result = carry_forward_unpaid(prior_record, {"a", "b"}, [], NAMES)
        assert result.added == []
        assert result.pending == []

    def test_unknown_staff_name(self, prior_record):
        """Test the placeholder name for staff missing from the directory."""
        result = carry_forward_unpaid(prior_record, {"a"}, [], {})
        assert result.added[0].name == "Unknown (Ref. 10/01/2024)"

    def test_deduplicates_second_confirmation(self, prior_record):
        """Test that confirming twice does not duplicate the pendency."""
        first = carry_forward_unpaid(prior_record, {"a"}, [], NAMES)
        second = carry_forward_unpaid(prior_record, {"a"}, first.pending, NAMES)
        assert second.added == []
        assert len(second.skipped) == 1
        assert len(second.pending) == 1

    def test_dedup_can_be_disabled(self, prior_record):
        """Test the documented duplicating behavior when dedup is off."""
        first = carry_forward_unpaid(prior_record, {"a"}, [], NAMES)
        second = carry_forward_unpaid(
            prior_record, {"a"}, first.pending, NAMES, deduplicate=False
        )
        assert len(second.pending) == 2

    def test_item_name_helper(self):
        """Test the carried item name format."""
        assert carried_item_name("Ana", "2023-12-31") == "Ana (Ref. 31/12/2023)"


class TestReconciliationSession:
    """Tests for the session state machine."""

    def test_starts_prompting_with_prior_paid_flags(self, prior_record):
        """Test initial state and pre-marked payments."""
        record = prior_record.model_copy(update={"payments": [
            StaffPayment(staff_id="a", amount=50, is_paid=True),
            StaffPayment(staff_id="b", amount=30),
        ]})
        session = ReconciliationSession("2024-01-11", record)
        assert session.state == ReconciliationState.PROMPTING
        assert session.is_marked_paid("a")
        assert session.unpaid_staff_ids == ["b"]

    def test_toggle(self, prior_record):
        """Test toggling a mark on and off."""
        session = ReconciliationSession("2024-01-11", prior_record)
        assert session.toggle_paid("a") is True
        assert session.toggle_paid("a") is False
        assert session.unpaid_staff_ids == ["a", "b"]

    def test_mark_unknown_staff(self, prior_record):
        """Test that only staff from the prior payments can be marked."""
        session = ReconciliationSession("2024-01-11", prior_record)
        with pytest.raises(ValueError):
            session.mark_paid("att")

    def test_confirm_resolves(self, prior_record):
        """Test the reference scenario through the session."""
        session = ReconciliationSession("2024-01-11", prior_record)
        session.mark_paid("a")
        result = session.confirm([], NAMES)
        assert session.state == ReconciliationState.RESOLVED
        assert [p.name for p in result.added] == ["B (Ref. 10/01/2024)"]
        assert session.result is result

    def test_cannot_edit_after_confirm(self, prior_record):
        """Test that a resolved session is closed to edits."""
        session = ReconciliationSession("2024-01-11", prior_record)
        session.confirm([], NAMES)
        with pytest.raises(ReconciliationStateError):
            session.toggle_paid("a")
        with pytest.raises(ReconciliationStateError):
            session.confirm([], NAMES)

    def test_cancel_returns_to_idle(self, prior_record):
        """Test cancel and that a cancelled session cannot be confirmed."""
        session = ReconciliationSession("2024-01-11", prior_record)
        session.cancel()
        assert session.state == ReconciliationState.IDLE
        with pytest.raises(ReconciliationStateError):
            session.confirm([], NAMES)


class TestPriorDayReconciler:
    """Tests for when the automatic prompt applies."""

    def test_prompts_for_new_day_with_prior(self, prior_record):
        """Test the basic prompting condition."""
        reconciler = PriorDayReconciler(InMemoryRecordStore([prior_record]))
        draft = empty_draft("2024-01-11")
        assert reconciler.prior_to_prompt_for(draft).date == "2024-01-10"
        assert reconciler.should_prompt(draft)

    def test_no_prompt_when_day_already_stored(self, prior_record):
        """Test that editing an existing record never prompts."""
        today = DailyRecord(date="2024-01-11", closed_by_staff_id="att")
        reconciler = PriorDayReconciler(InMemoryRecordStore([prior_record, today]))
        assert not reconciler.should_prompt(empty_draft("2024-01-11"))

    def test_no_prompt_without_prior(self):
        """Test the first day ever."""
        reconciler = PriorDayReconciler(InMemoryRecordStore())
        assert not reconciler.should_prompt(empty_draft("2024-01-11"))

    def test_no_prompt_once_resolved(self, prior_record):
        """Test the per-runtime resolved set."""
        reconciler = PriorDayReconciler(InMemoryRecordStore([prior_record]))
        session = reconciler.open_session("2024-01-11", prior_record)
        session.confirm([], NAMES)
        reconciler.close_session(session)

        assert reconciler.is_resolved("2024-01-11")
        assert not reconciler.should_prompt(empty_draft("2024-01-11"))

    def test_no_prompt_when_draft_marked(self, prior_record):
        """Test that the persisted marker suppresses the prompt in a new runtime."""
        reconciler = PriorDayReconciler(InMemoryRecordStore([prior_record]))
        draft = empty_draft("2024-01-11")
        draft.reconciled_prior_dates = ["2024-01-10"]
        assert not reconciler.should_prompt(draft)

    def test_cancelled_session_prompts_again(self, prior_record):
        """Test that cancelling leaves the date unresolved."""
        reconciler = PriorDayReconciler(InMemoryRecordStore([prior_record]))
        session = reconciler.open_session("2024-01-11", prior_record)
        session.cancel()
        reconciler.close_session(session)
        assert reconciler.should_prompt(empty_draft("2024-01-11"))

    def test_one_open_session_per_date(self, prior_record):
        """Test that reopening while prompting returns the same session."""
        reconciler = PriorDayReconciler(InMemoryRecordStore([prior_record]))
        first = reconciler.open_session("2024-01-11", prior_record)
        assert reconciler.open_session("2024-01-11", prior_record) is first

    def test_forget(self, prior_record):
        """Test that forgetting a date clears its resolved flag."""
        reconciler = PriorDayReconciler(InMemoryRecordStore([prior_record]))
        session = reconciler.open_session("2024-01-11", prior_record)
        session.confirm([], NAMES)
        reconciler.close_session(session)
        reconciler.forget("2024-01-11")
        assert not reconciler.is_resolved("2024-01-11")
