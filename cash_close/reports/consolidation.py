"""
Period Consolidation

Adds up the stored closings inside a date window: sales per channel,
staff payments, pendencies, fiado and iFood rider cost.

DESIGN DECISION: Consolidation is DETERMINISTIC and reads only stored
records. Nothing here is estimated; an empty window is reported as such
(`data_found` is False) rather than as a row of zeros that looks real.
"""

import calendar
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from cash_close.models.record import DailyRecord, SalesChannels


class PeriodType(str, Enum):
    """Predefined windows ending today."""
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    BIMONTHLY = "bimonthly"
    QUARTERLY = "quarterly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"


_MONTHS_BACK = {
    PeriodType.MONTHLY: 1,
    PeriodType.BIMONTHLY: 2,
    PeriodType.QUARTERLY: 3,
    PeriodType.SEMIANNUAL: 6,
    PeriodType.ANNUAL: 12,
}


def _months_before(day: date, months: int) -> date:
    """Same day-of-month `months` earlier, clamped to the month's last day."""
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def period_start(period: PeriodType, today: date) -> date:
    """First date of the window that ends on `today`."""
    if period == PeriodType.WEEKLY:
        return today - timedelta(days=7)
    return _months_before(today, _MONTHS_BACK[period])


class ConsolidatedSummary(BaseModel):
    """Totals over every record with start_date <= date <= end_date."""

    start_date: str
    end_date: str
    record_count: int = 0
    sales: SalesChannels = Field(default_factory=SalesChannels)
    total_payments: Decimal = Decimal("0.00")
    total_pending: Decimal = Decimal("0.00")
    total_debts: Decimal = Decimal("0.00")
    rider_cost: Decimal = Decimal("0.00")
    record_dates: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def total_sales(self) -> Decimal:
        return self.sales.total

    @computed_field
    @property
    def data_found(self) -> bool:
        return self.record_count > 0


def consolidate(
    records: list[DailyRecord],
    start: date,
    end: date,
) -> ConsolidatedSummary:
    """
    Consolidate the records whose date falls inside [start, end].

    Raises:
        ValueError: If the window ends before it starts
    """
    if end < start:
        raise ValueError(f"Period ends ({end}) before it starts ({start})")

    start_key, end_key = start.isoformat(), end.isoformat()
    selected = sorted(
        (r for r in records if start_key <= r.date <= end_key),
        key=lambda r: r.date,
    )

    ifood = kcms = sgv = Decimal("0.00")
    payments = pending = debts = rider_cost = Decimal("0.00")
    for record in selected:
        ifood += record.sales.ifood
        kcms += record.sales.kcms
        sgv += record.sales.sgv
        payments += record.total_staff_payments
        pending += record.total_pending
        debts += record.total_debts
        if record.rider_ledger is not None:
            rider_cost += record.rider_ledger.total_cost

    return ConsolidatedSummary(
        start_date=start_key,
        end_date=end_key,
        record_count=len(selected),
        sales=SalesChannels(ifood=ifood, kcms=kcms, sgv=sgv),
        total_payments=payments,
        total_pending=pending,
        total_debts=debts,
        rider_cost=rider_cost,
        record_dates=[r.date for r in selected],
    )


def consolidate_period(
    records: list[DailyRecord],
    period: PeriodType,
    today: Optional[date] = None,
) -> ConsolidatedSummary:
    """Consolidate a predefined window ending today."""
    today = today or date.today()
    return consolidate(records, period_start(period, today), today)
