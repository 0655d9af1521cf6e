"""Validation package for closing drafts."""

from cash_close.validation.validator import (
    ClosingValidator,
    ValidationIssue,
    ValidationResult,
)

__all__ = ["ClosingValidator", "ValidationIssue", "ValidationResult"]
