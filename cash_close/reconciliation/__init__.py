"""Prior-day reconciliation package."""

from cash_close.reconciliation.workflow import (
    CarryForward,
    PriorDayReconciler,
    ReconciliationSession,
    ReconciliationState,
    ReconciliationStateError,
    carried_item_name,
    carry_forward_unpaid,
    find_nearest_prior,
)

__all__ = [
    "CarryForward",
    "PriorDayReconciler",
    "ReconciliationSession",
    "ReconciliationState",
    "ReconciliationStateError",
    "carried_item_name",
    "carry_forward_unpaid",
    "find_nearest_prior",
]
