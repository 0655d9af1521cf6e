"""
Pre-Save Validation

Runs on the draft before anything is assembled or persisted.

ERRORS block the save:
- No closer selected
- A payment or delivery log for a staff id that is not in the directory

WARNINGS are reported but never block:
- Closer not in the directory (the audit entry names "Unknown")
- Active staff without a positive amount (they will be dropped on save)
- Closer whose role is not Atendente
- No sales entered on any channel

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the operator to review.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from cash_close.models.audit import utc_now
from cash_close.models.record import ClosingDraft, StaffMember, StaffRole


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'unknown_reference', 'will_be_dropped')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """Outcome of validating one draft."""

    record_date: str
    validated_at: datetime = Field(default_factory=utc_now)
    issues: list[ValidationIssue] = Field(default_factory=list)

    @computed_field
    @property
    def is_valid(self) -> bool:
        return not any(issue.severity == "error" for issue in self.issues)

    @property
    def errors(self) -> list[str]:
        return [i.message for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> list[str]:
        return [i.message for i in self.issues if i.severity == "warning"]


class ClosingValidator:
    """Checks a ClosingDraft against the staff directory."""

    def _check_closer(
        self,
        draft: ClosingDraft,
        staff_by_id: dict[str, StaffMember],
    ) -> list[ValidationIssue]:
        if not draft.closed_by_staff_id:
            return [ValidationIssue(
                field="closed_by_staff_id",
                issue_type="missing",
                message="No one is selected as closing the register",
                severity="error",
                suggested_fix="Select the staff member responsible for this close",
            )]

        closer = staff_by_id.get(draft.closed_by_staff_id)
        if closer is None:
            return [ValidationIssue(
                field="closed_by_staff_id",
                issue_type="unknown_reference",
                message=f"Closer {draft.closed_by_staff_id} is not in the staff directory",
                severity="warning",
                suggested_fix="The close will be recorded as made by Unknown",
            )]

        if closer.role != StaffRole.ATTENDANT:
            return [ValidationIssue(
                field="closed_by_staff_id",
                issue_type="unusual_role",
                message=f"{closer.name} is registered as {closer.role.value}, not {StaffRole.ATTENDANT.value}",
                severity="warning",
            )]
        return []

    def _check_staff_references(
        self,
        draft: ClosingDraft,
        staff_by_id: dict[str, StaffMember],
    ) -> list[ValidationIssue]:
        issues = []
        referenced = [
            ("payments", staff_id) for staff_id in draft.active_staff_ids
        ] + [
            ("rider_commands", rider_id)
            for rider_id, commands in draft.rider_commands.items()
            if commands
        ]

        reported = set()
        for field, staff_id in referenced:
            if staff_id in staff_by_id or (field, staff_id) in reported:
                continue
            reported.add((field, staff_id))
            issues.append(ValidationIssue(
                field=field,
                issue_type="unknown_reference",
                message=f"Staff {staff_id} is not in the staff directory",
                severity="error",
                suggested_fix="Remove the entry or register the staff member first",
            ))
        return issues

    def _check_amounts(
        self,
        draft: ClosingDraft,
        staff_by_id: dict[str, StaffMember],
    ) -> list[ValidationIssue]:
        issues = []

        for staff_id in draft.active_staff_ids:
            amount = draft.payments.get(staff_id)
            if amount is None or amount <= 0:
                member = staff_by_id.get(staff_id)
                name = member.name if member else staff_id
                issues.append(ValidationIssue(
                    field="payments",
                    issue_type="will_be_dropped",
                    message=f"{name} has no amount and will not be saved",
                    severity="warning",
                    suggested_fix="Enter an amount or remove the staff member",
                ))

        if draft.total_sales == 0:
            issues.append(ValidationIssue(
                field="sales",
                issue_type="empty",
                message="No sales entered on any channel",
                severity="warning",
            ))
        return issues

    def validate(
        self,
        draft: ClosingDraft,
        staff: list[StaffMember],
    ) -> ValidationResult:
        """
        Validate a draft before saving.

        Args:
            draft: The operator's current field state
            staff: The staff directory

        Returns:
            ValidationResult with all issues found
        """
        staff_by_id = {member.id: member for member in staff}

        issues = []
        issues.extend(self._check_closer(draft, staff_by_id))
        issues.extend(self._check_staff_references(draft, staff_by_id))
        issues.extend(self._check_amounts(draft, staff_by_id))

        return ValidationResult(record_date=draft.date, issues=issues)

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """Operator-facing text for a validation result."""
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."

        lines = []

        if not result.is_valid:
            lines.append("❌ The close cannot be saved yet:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
