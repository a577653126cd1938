"""
Termination Evaluator

Decides whether a template must stop producing occurrences at a given
candidate due date. All decisions are plain boolean returns; nothing here
raises.
"""

import datetime as dt
from typing import Optional

from expense_tracker.models.expense import Expense, RecurrenceEndType


def count_limit(template: Expense) -> Optional[int]:
    """The template's occurrence limit, or None when it is unlimited."""
    count = template.recurrence_count
    return count if count and count > 0 else None


def should_stop(
    template: Expense,
    candidate_due: dt.date,
    generated_so_far: int,
) -> bool:
    """
    Return True if `candidate_due` must not be materialized.

    Args:
        template: The recurring template being walked
        candidate_due: The occurrence about to be generated
        generated_so_far: Instances referencing the template, counting both
            the stored ones and those queued earlier in the same pass

    FOREVER never stops. DATE stops once the candidate falls after the end
    date. COUNT stops once the limit has been reached.
    """
    end_type = template.end_type

    if end_type == RecurrenceEndType.DATE:
        end_date = template.recurrence_end_date
        return end_date is not None and candidate_due > end_date

    if end_type == RecurrenceEndType.COUNT:
        limit = count_limit(template)
        return limit is not None and generated_so_far >= limit

    return False
