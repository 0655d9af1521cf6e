"""Summary generation agents."""

from cash_close.agents.summary_agent import (
    SummaryAgent,
    SummaryResult,
    build_static_summary,
)

__all__ = ["SummaryAgent", "SummaryResult", "build_static_summary"]
