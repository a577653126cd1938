"""
Tests for expense and template validation
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

from expense_tracker.config import AppSettings
from expense_tracker.models.expense import Expense, Frequency
from expense_tracker.validation import ExpenseValidator


@pytest.fixture
def validator() -> ExpenseValidator:
    return ExpenseValidator(AppSettings(future_date_tolerance_days=30))


def make_template(**overrides) -> Expense:
    fields = {
        "date": date(2024, 1, 1),
        "amount": Decimal("800.00"),
        "frequency": Frequency.RECURRING,
        "recurrence": "monthly",
    }
    fields.update(overrides)
    return Expense(**fields)


def error_fields(result) -> set:
    return {issue.field for issue in result.issues if issue.severity == "error"}


class TestTemplateValidation:
    """Tests for recurring template checks."""

    def test_valid_template(self, validator):
        """Test a well-formed template passes."""
        result = validator.validate(make_template(
            recurrence_end_type="count",
            recurrence_count=12,
        ))
        assert result.is_valid
        assert result.issues == []

    def test_missing_start_date(self, validator):
        """Test a template without a date."""
        result = validator.validate(make_template(date=None))
        assert not result.is_valid
        assert "date" in error_fields(result)

    def test_missing_and_unknown_unit(self, validator):
        """Test templates without a usable unit."""
        assert "recurrence" in error_fields(validator.validate(make_template(recurrence=None)))
        assert "recurrence" in error_fields(validator.validate(make_template(recurrence="hourly")))

    def test_interval_below_one(self, validator):
        """Test a zero interval is rejected."""
        result = validator.validate(make_template(recurrence_interval=0))
        assert "recurrence_interval" in error_fields(result)

    def test_template_linked_to_template(self, validator):
        """Test a template may not carry a back-reference."""
        result = validator.validate(make_template(recurring_expense_id=uuid4()))
        assert "recurring_expense_id" in error_fields(result)

    def test_unknown_end_type(self, validator):
        """Test an unrecognized end rule."""
        result = validator.validate(make_template(recurrence_end_type="someday"))
        assert "recurrence_end_type" in error_fields(result)

    def test_date_end_requires_end_date(self, validator):
        """Test a date rule without its end date."""
        result = validator.validate(make_template(recurrence_end_type="date"))
        assert "recurrence_end_date" in error_fields(result)

    def test_count_end_requires_positive_count(self, validator):
        """Test a count rule without a usable count."""
        result = validator.validate(make_template(
            recurrence_end_type="count",
            recurrence_count=0,
        ))
        assert "recurrence_count" in error_fields(result)

    def test_end_date_before_start(self, validator):
        """Test the semantic end-before-start check."""
        result = validator.validate(make_template(
            recurrence_end_type="date",
            recurrence_end_date=date(2023, 12, 1),
        ))
        assert not result.is_valid
        assert "recurrence_end_date" in error_fields(result)

    def test_semantic_checks_skipped_on_structural_errors(self, validator):
        """Test stage 2 only runs when stage 1 passes."""
        result = validator.validate(make_template(recurrence=None, amount=None))
        assert all(issue.field != "amount" for issue in result.issues)


class TestSingleExpenseValidation:
    """Tests for single expense checks."""

    def test_valid_single_expense(self, validator):
        """Test a plain single expense."""
        result = validator.validate(Expense(date=date(2024, 1, 1), amount=Decimal("5")))
        assert result.is_valid

    def test_generated_instance_is_valid(self, validator):
        """Test an instance linked to a template passes."""
        expense = Expense(
            date=date(2024, 1, 1),
            amount=Decimal("5"),
            recurring_expense_id=uuid4(),
        )
        assert validator.validate(expense).is_valid

    def test_single_expense_needs_date(self, validator):
        """Test a single expense without a date."""
        result = validator.validate(Expense(amount=Decimal("5")))
        assert "date" in error_fields(result)

    def test_single_expense_with_recurrence_fields(self, validator):
        """Test a single expense carrying template-only fields."""
        expense = Expense(
            date=date(2024, 1, 1),
            amount=Decimal("5"),
            recurrence="monthly",
        )
        result = validator.validate(expense)
        assert "recurrence" in error_fields(result)

    def test_amount_warnings(self, validator):
        """Test missing and negative amounts only warn."""
        missing = validator.validate(Expense(date=date(2024, 1, 1)))
        negative = validator.validate(Expense(date=date(2024, 1, 1), amount=Decimal("-3")))
        assert missing.is_valid and missing.warnings
        assert negative.is_valid and negative.warnings

    def test_far_future_date_warns(self, validator):
        """Test a date beyond the configured tolerance."""
        far = date.today() + timedelta(days=60)
        result = validator.validate(Expense(date=far, amount=Decimal("5")))
        assert result.is_valid
        assert any(issue.issue_type == "future_date" for issue in result.issues)

    def test_long_description_rejected(self, validator):
        """Test a description over the length limit."""
        expense = Expense(date=date(2024, 1, 1), amount=Decimal("5"), description="x" * 501)
        result = validator.validate(expense)
        assert error_fields(result) == {"description"}

    def test_padded_description_accepted(self, validator):
        """Test surrounding whitespace is left for the user to keep."""
        expense = Expense(date=date(2024, 1, 1), amount=Decimal("5"), description="  Lunch  ")
        result = validator.validate(expense)
        assert result.is_valid
        assert expense.description == "  Lunch  "


class TestUserFriendlySummary:
    """Tests for the form summary text."""

    def test_all_passed(self, validator):
        """Test the summary of a clean result."""
        result = validator.validate(Expense(date=date(2024, 1, 1), amount=Decimal("5")))
        assert validator.get_user_friendly_summary(result) == "✅ All checks passed."

    def test_errors_and_fixes_listed(self, validator):
        """Test errors appear with their suggested fix."""
        result = validator.validate(make_template(recurrence="hourly"))
        summary = validator.get_user_friendly_summary(result)
        assert "Please fix the following" in summary
        assert "Unknown repeat unit: hourly" in summary
        assert "Choose daily, weekly, monthly or yearly" in summary


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
