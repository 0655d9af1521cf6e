"""Reporting over stored closings."""

from cash_close.reports.consolidation import (
    ConsolidatedSummary,
    PeriodType,
    consolidate,
    consolidate_period,
    period_start,
)

__all__ = [
    "ConsolidatedSummary",
    "PeriodType",
    "consolidate",
    "consolidate_period",
    "period_start",
]
