"""Tests for period consolidation."""

from datetime import date
from decimal import Decimal

import pytest

from cash_close.models.record import DailyRecord, DebtItem, PendingItem, RiderLedger, StaffPayment
from cash_close.reports import PeriodType, consolidate, consolidate_period, period_start


def _record(day, ifood, kcms=0, sgv=0, **extra):
    return DailyRecord(date=day, sales={"ifood": ifood, "kcms": kcms, "sgv": sgv}, **extra)


@pytest.fixture
def records():
    return [
        _record("2024-01-10", 100, 50, 25, payments=[StaffPayment(staff_id="a", amount=50)]),
        _record(
            "2024-01-11", 200,
            debts=[DebtItem(name="João", amount=12)],
            pending_payables=[PendingItem(name="Gás", amount=80)],
            rider_ledger=RiderLedger(rides=["8", "7"]),
        ),
        _record("2023-12-01", 999),
    ]


class TestPeriodStart:
    """Tests for the predefined windows."""

    @pytest.mark.parametrize("period,expected", [
        (PeriodType.WEEKLY, date(2024, 3, 8)),
        (PeriodType.MONTHLY, date(2024, 2, 15)),
        (PeriodType.BIMONTHLY, date(2024, 1, 15)),
        (PeriodType.QUARTERLY, date(2023, 12, 15)),
        (PeriodType.SEMIANNUAL, date(2023, 9, 15)),
        (PeriodType.ANNUAL, date(2023, 3, 15)),
    ])
    def test_windows(self, period, expected):
        """Test each window ending on 2024-03-15."""
        assert period_start(period, date(2024, 3, 15)) == expected

    def test_clamps_to_month_end(self):
        """Test that 31 March minus one month is 29 February."""
        assert period_start(PeriodType.MONTHLY, date(2024, 3, 31)) == date(2024, 2, 29)


class TestConsolidate:
    """Tests for consolidate()."""

    def test_totals(self, records):
        """Test every aggregate over January."""
        summary = consolidate(records, date(2024, 1, 1), date(2024, 1, 31))

        assert summary.record_count == 2
        assert summary.record_dates == ["2024-01-10", "2024-01-11"]
        assert summary.sales.ifood == Decimal("300.00")
        assert summary.sales.kcms == Decimal("50.00")
        assert summary.total_sales == Decimal("375.00")
        assert summary.total_payments == Decimal("50.00")
        assert summary.total_pending == Decimal("80.00")
        assert summary.total_debts == Decimal("12.00")
        assert summary.rider_cost == Decimal("15.00")
        assert summary.data_found is True

    def test_bounds_inclusive(self, records):
        """Test that both window ends are included."""
        summary = consolidate(records, date(2024, 1, 10), date(2024, 1, 10))
        assert summary.record_dates == ["2024-01-10"]

    def test_empty_window(self, records):
        """Test that an empty window reports no data."""
        summary = consolidate(records, date(2022, 1, 1), date(2022, 12, 31))
        assert summary.data_found is False
        assert summary.total_sales == Decimal("0.00")

    def test_inverted_window(self, records):
        """Test that an end before the start is rejected."""
        with pytest.raises(ValueError):
            consolidate(records, date(2024, 2, 1), date(2024, 1, 1))

    def test_consolidate_period(self, records):
        """Test a predefined window ending on a given day."""
        summary = consolidate_period(records, PeriodType.WEEKLY, today=date(2024, 1, 12))
        assert summary.start_date == "2024-01-05"
        assert summary.end_date == "2024-01-12"
        assert summary.record_count == 2
