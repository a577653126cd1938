"""
Active-Template Filter

Decides which templates the recurring list should still show. Exhausted
templates are hidden, never deleted.

This mirrors the Termination Evaluator but works only from stored data
(the template and the expense collection), so it can be evaluated without
running a generation pass. It is never used to stop generation.
"""

from collections.abc import Iterable

from expense_tracker.models.expense import Expense, Frequency, RecurrenceEndType
from expense_tracker.recurrence.rules import next_due
from expense_tracker.recurrence.termination import count_limit


def is_active(template: Expense, existing_expenses: Iterable[Expense]) -> bool:
    """Return True if `template` can still produce occurrences."""
    if template.frequency != Frequency.RECURRING:
        return False

    end_type = template.end_type

    if end_type == RecurrenceEndType.COUNT:
        limit = count_limit(template)
        if limit is None:
            return True
        generated = sum(
            1 for expense in existing_expenses
            if expense.recurring_expense_id == template.id
        )
        return generated < limit

    if end_type == RecurrenceEndType.DATE:
        end_date = template.recurrence_end_date
        if end_date is None:
            return True

        position = template.last_generated_date or template.date
        if position is None:
            return True
        if position > end_date:
            return False

        upcoming = next_due(template, position)
        return upcoming is not None and upcoming <= end_date

    return True


def active_templates(
    templates: Iterable[Expense],
    existing_expenses: Iterable[Expense],
) -> list[Expense]:
    """Visible templates, newest start date first."""
    expenses = list(existing_expenses)
    visible = [template for template in templates if is_active(template, expenses)]
    # Templates without a start date sort last.
    visible.sort(key=lambda t: (t.date is not None, t.date), reverse=True)
    return visible
