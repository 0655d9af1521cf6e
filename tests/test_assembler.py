"""Tests for the record assembler and draft derivation."""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from cash_close.assembly import (
    MissingCloserError,
    assemble,
    build_payments,
    derive_active_staff_ids,
    draft_from_record,
    empty_draft,
)
from cash_close.models.audit import AuditEntry
from cash_close.models.record import DeliveryCommand, PendingItem


NOW = datetime(2024, 1, 11, 22, 0, tzinfo=timezone.utc)
LATER = datetime(2024, 1, 11, 23, 30, tzinfo=timezone.utc)


class TestAssemble:
    """Tests for assemble()."""

    def test_missing_closer_rejected(self, draft):
        """Test that a draft without a closer cannot be assembled."""
        draft.closed_by_staff_id = ""
        with pytest.raises(MissingCloserError) as exc_info:
            assemble(draft, now=NOW)
        assert exc_info.value.record_date == "2024-01-11"

    def test_closer_present_accepted(self, draft):
        """Test that the same draft with a closer assembles."""
        record = assemble(draft, now=NOW)
        assert record.closed_by_staff_id == "att"
        assert record.is_closed is True

    def test_first_save_timestamps_and_version(self, draft):
        """Test created/updated timestamps and version for a new date."""
        record = assemble(draft, now=NOW)
        assert record.created_at == NOW
        assert record.updated_at == NOW
        assert record.version == 1
        assert record.audit_log == []

    def test_resave_keeps_created_at_and_log(self, draft):
        """Test that a later save keeps createdAt and carries the log forward."""
        entry = AuditEntry(timestamp=NOW, actor_name="Maria", description="Initial close")
        first = assemble(draft, now=NOW).model_copy(update={"audit_log": [entry]})

        second = assemble(draft, previous=first, now=LATER)

        assert second.created_at == NOW
        assert second.updated_at == LATER
        assert second.version == 2
        assert second.audit_log == [entry]

    def test_previous_for_other_date_rejected(self, draft, prior_record):
        """Test that a record for another date cannot be the previous version."""
        with pytest.raises(ValueError):
            assemble(draft, previous=prior_record, now=NOW)

    def test_zero_amount_payment_excluded(self, draft):
        """Test that active staff with amount 0 are not persisted."""
        draft.activate_staff("b", amount="0")
        record = assemble(draft, now=NOW)
        assert [p.staff_id for p in record.payments] == ["a"]

    def test_active_without_amount_excluded(self, draft):
        """Test that active staff with no amount entered are not persisted."""
        draft.activate_staff("b")
        record = assemble(draft, now=NOW)
        assert record.payment_for("b") is None

    def test_rider_ledger_derived_from_rides(self, draft):
        """Test count and total of the iFood rider ledger."""
        draft.rides = ["7.50", "8.00"]
        record = assemble(draft, now=NOW)
        assert record.rider_ledger.count == 2
        assert record.rider_ledger.total_cost == Decimal("15.50")

    def test_empty_command_lists_dropped(self, draft):
        """Test that riders whose commands were all removed leave no key."""
        draft.rider_commands = {
            "a": [DeliveryCommand(code="1", amount=10)],
            "b": [],
        }
        record = assemble(draft, now=NOW)
        assert list(record.rider_commands) == ["a"]

    def test_reconciled_dates_merged(self, draft):
        """Test that reconciliation markers accumulate across saves."""
        draft.reconciled_prior_dates = ["2024-01-09"]
        first = assemble(draft, now=NOW)
        draft.reconciled_prior_dates = ["2024-01-10"]
        second = assemble(draft, previous=first, now=LATER)
        assert second.reconciled_prior_dates == ["2024-01-09", "2024-01-10"]


class TestBuildPayments:
    """Tests for payment list construction."""

    def test_order_and_fields(self, draft):
        """Test activation order, delivery count default and paid flag."""
        draft.activate_staff("b", amount="30")
        draft.paid_flags = {"b": True}
        payments = build_payments(draft)
        assert [p.staff_id for p in payments] == ["a", "b"]
        assert payments[0].delivery_count == 3
        assert payments[1].delivery_count == 0
        assert payments[1].is_paid is True
        assert payments[0].is_paid is None


class TestDraftDerivation:
    """Tests for reopening stored records."""

    def test_zero_payment_does_not_survive_reload(self, draft):
        """Test that staff with a zero amount are not active after reload."""
        draft.activate_staff("b", amount="0")
        record = assemble(draft, now=NOW)
        reopened = draft_from_record(record)
        assert "b" not in reopened.active_staff_ids
        assert reopened.active_staff_ids == ["a"]

    def test_derive_active_staff_ids(self, prior_record):
        """Test derivation from persisted payments."""
        assert derive_active_staff_ids(prior_record) == ["a", "b"]

    def test_reload_restores_fields(self, draft):
        """Test that a reopened draft re-assembles to the same content."""
        draft.pending_payables = [PendingItem(name="Gás", amount=80)]
        draft.notes = "Troco conferido"
        draft.rides = ["6"]
        record = assemble(draft, now=NOW)

        reopened = draft_from_record(record)

        assert reopened.base_version == 1
        assert reopened.payments == {"a": Decimal("45.00")}
        assert reopened.delivery_counts == {"a": 3}
        assert reopened.notes == "Troco conferido"
        assert reopened.rides == [Decimal("6.00")]
        assert reopened.pending_payables[0].name == "Gás"

    def test_command_count_restored_without_payment(self, draft):
        """Test that a rider with commands keeps a delivery count on reload."""
        draft.rider_commands = {"b": [DeliveryCommand(code="1", amount=10)]}
        record = assemble(draft, now=NOW)
        reopened = draft_from_record(record)
        assert reopened.delivery_counts["b"] == 1

    def test_empty_draft(self):
        """Test a fresh draft for an unsaved date."""
        draft = empty_draft("2024-01-12")
        assert draft.base_version is None
        assert draft.closed_by_staff_id == ""
        assert draft.total_sales == Decimal("0.00")
