"""
Rider Delivery Commands

In-house riders log each delivered order ticket ("comanda") on the day's
draft. A rider's delivery count always equals the number of commands
logged for them; adding a command also puts the rider on the day's
payment list (with no amount until the operator enters one).

These functions edit the draft only. Persisting goes through the normal
save path, so every change is audited like any other edit.
"""

from decimal import Decimal
from typing import Any, Optional

from cash_close.models.record import (
    ClosingDraft,
    DeliveryCommand,
    StaffMember,
    StaffRole,
)


def _sync_delivery_count(draft: ClosingDraft, rider_id: str) -> None:
    count = len(draft.rider_commands.get(rider_id, []))
    draft.delivery_counts = {**draft.delivery_counts, rider_id: count}


def add_delivery_command(
    draft: ClosingDraft,
    rider_id: str,
    code: str,
    amount: Any,
    type: str = "Cartão",
    payment_method: Optional[str] = None,
    delivery_fee: Any = None,
) -> DeliveryCommand:
    """
    Log one command for a rider and return it.

    Raises:
        pydantic.ValidationError: If the code is empty or the amount invalid
    """
    command = DeliveryCommand(
        code=code,
        type=type,
        payment_method=payment_method,
        amount=amount,
        delivery_fee=delivery_fee,
    )
    commands = [*draft.rider_commands.get(rider_id, []), command]
    draft.rider_commands = {**draft.rider_commands, rider_id: commands}
    draft.activate_staff(rider_id)
    _sync_delivery_count(draft, rider_id)
    return command


def remove_delivery_command(
    draft: ClosingDraft,
    rider_id: str,
    command_id: str,
) -> bool:
    """Remove a command; returns False when it was not logged."""
    commands = draft.rider_commands.get(rider_id, [])
    remaining = [c for c in commands if c.id != command_id]
    if len(remaining) == len(commands):
        return False

    draft.rider_commands = {**draft.rider_commands, rider_id: remaining}
    _sync_delivery_count(draft, rider_id)
    return True


def commands_total(commands: list[DeliveryCommand]) -> Decimal:
    """Order value carried by a rider's commands."""
    return sum((c.amount for c in commands), Decimal("0.00"))


def active_riders(draft: ClosingDraft, staff: list[StaffMember]) -> list[StaffMember]:
    """Riders on the day's payment list or with commands already logged."""
    visible = set(draft.active_staff_ids)
    visible.update(rider_id for rider_id, commands in draft.rider_commands.items() if commands)
    return [m for m in staff if m.role == StaffRole.MOTOBOY and m.id in visible]
