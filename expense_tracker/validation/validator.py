"""
Expense and Template Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - STRUCTURAL VALIDATION:
- Required fields for the record's kind (template vs single expense)
- Known recurrence unit and end type
- Positive interval and count
- No template-only fields on single expenses
- Description length

STAGE 2 - SEMANTIC VALIDATION:
- End date before start date
- Start dates far in the future
- Missing or negative amounts

The recurrence engine itself never validates: it tolerates malformed
templates (skipping or freezing them). This module guards the entry points
where the user creates or edits a record, so malformed data is caught before
it is stored.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for human review.
"""

import datetime as dt
from typing import Optional

from expense_tracker.config import AppSettings, get_settings
from expense_tracker.models.expense import (
    Expense,
    RecurrenceEndType,
    RecurrenceUnit,
    ValidationIssue,
    ValidationResult,
)


MAX_DESCRIPTION_LENGTH = 500


class ExpenseValidator:
    """
    Validates single expenses and recurring templates.

    Stage 2 only runs when stage 1 found no errors.
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def _validate_template_structure(self, template: Expense) -> list[ValidationIssue]:
        issues = []

        if template.date is None:
            issues.append(ValidationIssue(
                field="date",
                issue_type="missing",
                message="A recurring expense needs a start date",
                severity="error",
                suggested_fix="Pick the date of the first occurrence",
            ))

        if not template.recurrence:
            issues.append(ValidationIssue(
                field="recurrence",
                issue_type="missing",
                message="A recurring expense needs a repeat unit",
                severity="error",
                suggested_fix="Choose daily, weekly, monthly or yearly",
            ))
        elif RecurrenceUnit.parse(template.recurrence) is None:
            issues.append(ValidationIssue(
                field="recurrence",
                issue_type="invalid_value",
                message=f"Unknown repeat unit: {template.recurrence}",
                severity="error",
                suggested_fix="Choose daily, weekly, monthly or yearly",
            ))

        if template.recurrence_interval is not None and template.recurrence_interval < 1:
            issues.append(ValidationIssue(
                field="recurrence_interval",
                issue_type="invalid_value",
                message="The repeat interval must be at least 1",
                severity="error",
            ))

        if template.recurring_expense_id is not None:
            issues.append(ValidationIssue(
                field="recurring_expense_id",
                issue_type="inconsistent",
                message="A recurring expense cannot itself point to another recurring expense",
                severity="error",
            ))

        end_type_value = template.recurrence_end_type
        if end_type_value and end_type_value not in {e.value for e in RecurrenceEndType}:
            issues.append(ValidationIssue(
                field="recurrence_end_type",
                issue_type="invalid_value",
                message=f"Unknown end rule: {end_type_value}",
                severity="error",
                suggested_fix="Choose forever, after a number of times, or on a date",
            ))

        end_type = template.end_type
        if end_type == RecurrenceEndType.DATE and template.recurrence_end_date is None:
            issues.append(ValidationIssue(
                field="recurrence_end_date",
                issue_type="missing",
                message="An end date is required when the expense ends on a date",
                severity="error",
            ))
        if end_type == RecurrenceEndType.COUNT and (
            template.recurrence_count is None or template.recurrence_count < 1
        ):
            issues.append(ValidationIssue(
                field="recurrence_count",
                issue_type="invalid_value",
                message="The number of occurrences must be at least 1",
                severity="error",
            ))

        return issues

    def _validate_single_structure(self, expense: Expense) -> list[ValidationIssue]:
        issues = []

        if expense.date is None:
            issues.append(ValidationIssue(
                field="date",
                issue_type="missing",
                message="An expense needs a date",
                severity="error",
            ))

        if expense.carries_recurrence_fields:
            issues.append(ValidationIssue(
                field="recurrence",
                issue_type="inconsistent",
                message="A single expense cannot carry repeat settings",
                severity="error",
                suggested_fix="Clear the repeat settings or mark the expense as recurring",
            ))

        return issues

    def _validate_payload(self, expense: Expense) -> list[ValidationIssue]:
        issues = []

        if expense.description and len(expense.description) > MAX_DESCRIPTION_LENGTH:
            issues.append(ValidationIssue(
                field="description",
                issue_type="too_long",
                message=f"Description is longer than {MAX_DESCRIPTION_LENGTH} characters",
                severity="error",
                suggested_fix="Shorten the description",
            ))

        return issues

    def _validate_semantic(self, expense: Expense) -> list[ValidationIssue]:
        issues = []
        today = dt.date.today()

        if expense.amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="No amount entered",
                severity="warning",
            ))
        elif expense.amount < 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({expense.amount}) is negative",
                severity="warning",
                suggested_fix="Please verify the amount",
            ))

        tolerance = dt.timedelta(days=self._settings.future_date_tolerance_days)
        if expense.date and expense.date > today + tolerance:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Date ({expense.date}) is far in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        if (
            expense.is_template
            and expense.end_type == RecurrenceEndType.DATE
            and expense.recurrence_end_date
            and expense.date
            and expense.recurrence_end_date < expense.date
        ):
            issues.append(ValidationIssue(
                field="recurrence_end_date",
                issue_type="inconsistent",
                message="The end date is before the start date",
                severity="error",
                suggested_fix="Pick an end date on or after the start date",
            ))

        return issues

    def validate(self, expense: Expense) -> ValidationResult:
        """
        Run both validation stages.

        Args:
            expense: A single expense or a recurring template

        Returns:
            ValidationResult with all issues found
        """
        if expense.is_template:
            issues = self._validate_template_structure(expense)
        else:
            issues = self._validate_single_structure(expense)
        issues.extend(self._validate_payload(expense))

        # Only run stage 2 if stage 1 passes
        if not any(issue.severity == "error" for issue in issues):
            issues.extend(self._validate_semantic(expense))

        warnings = [issue.message for issue in issues if issue.severity == "warning"]

        return ValidationResult(
            expense_id=expense.id,
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
            warnings=warnings,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what we show next to the expense form.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."

        lines = []

        if result.has_errors:
            lines.append("❌ Please fix the following:")
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
