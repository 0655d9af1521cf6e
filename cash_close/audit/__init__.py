"""Audit package: record diffs, audit trail, operational logging."""

from cash_close.audit.diff import (
    compute_changes,
    describe_changes,
    render_change,
)
from cash_close.audit.logger import ClosingEventLogger, configure_logging
from cash_close.audit.trail import (
    append_entry,
    build_save_description,
    resolve_actor_name,
)

__all__ = [
    "ClosingEventLogger",
    "append_entry",
    "build_save_description",
    "compute_changes",
    "configure_logging",
    "describe_changes",
    "render_change",
    "resolve_actor_name",
]
