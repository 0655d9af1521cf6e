"""Rider delivery command log."""

from cash_close.deliveries.commands import (
    active_riders,
    add_delivery_command,
    commands_total,
    remove_delivery_command,
)

__all__ = [
    "active_riders",
    "add_delivery_command",
    "commands_total",
    "remove_delivery_command",
]
