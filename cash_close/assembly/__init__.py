"""Record assembly package."""

from cash_close.assembly.assembler import (
    ClosingError,
    MissingCloserError,
    assemble,
    build_payments,
    derive_active_staff_ids,
    draft_from_record,
    empty_draft,
)

__all__ = [
    "ClosingError",
    "MissingCloserError",
    "assemble",
    "build_payments",
    "derive_active_staff_ids",
    "draft_from_record",
    "empty_draft",
]
