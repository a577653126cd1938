"""
Detach/Convert Operation

Used when the user edits a recurring expense and switches it to a single
one. The template goes away (no further occurrences) and the edited data
lives on as an independent expense. Instances generated earlier keep their
back-reference; they are not rewritten.
"""

from typing import Optional
from uuid import uuid4

from expense_tracker.models.expense import DetachResult, Expense, Frequency


def detach(edited: Expense, template: Optional[Expense]) -> DetachResult:
    """
    Convert `edited` into a standalone single expense.

    Args:
        edited: The data submitted from the edit form
        template: The template the edit originated from, if any

    Returns:
        DetachResult with the new expense (fresh id, no recurrence fields,
        no template link) and the id of the template to delete
    """
    expense = edited.without_recurrence(
        id=uuid4(),
        frequency=Frequency.SINGLE,
        recurring_expense_id=None,
    )
    return DetachResult(
        expense=expense,
        template_to_delete=template.id if template is not None else None,
    )
