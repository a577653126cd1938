"""
Recurrence Rule Evaluator

Given a template and a date, compute the next date the template is due.

DESIGN DECISION: Month and year steps ROLL FORWARD on overflow instead of
clamping to the end of the month. The target year/month is computed first,
then the original day-of-month is applied and any excess days spill into
the following month:

    2024-01-31 + 1 month  -> 2024-03-02   (February 2024 has 29 days)
    2024-02-29 + 1 year   -> 2025-03-01

Because each step starts from the previous occurrence, a template started
on the 31st drifts (01-31, 03-02, 04-02, ...). Existing stored cursors were
produced with this rule, so it is kept as is.
"""

import datetime as dt
from typing import Optional

from expense_tracker.models.expense import Expense, Frequency, RecurrenceUnit


def effective_interval(template: Expense) -> int:
    """Units between occurrences. Missing, zero or negative means 1."""
    interval = template.recurrence_interval
    return interval if interval and interval > 0 else 1


def roll_forward(year: int, month: int, day: int) -> dt.date:
    """
    Build a date, letting a day past the end of the month spill over.

    `month` may be outside 1..12; whole years are carried into `year`.
    """
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    return dt.date(year, month, 1) + dt.timedelta(days=day - 1)


def add_months(d: dt.date, months: int) -> dt.date:
    return roll_forward(d.year, d.month + months, d.day)


def add_years(d: dt.date, years: int) -> dt.date:
    return roll_forward(d.year + years, d.month, d.day)


def next_due(template: Expense, from_date: dt.date) -> Optional[dt.date]:
    """
    Return the occurrence after `from_date`, or None.

    None means "no further occurrences": the record is not a template or its
    recurrence unit is absent or unrecognized.
    """
    if template.frequency != Frequency.RECURRING:
        return None

    unit = RecurrenceUnit.parse(template.recurrence)
    interval = effective_interval(template)

    if unit == RecurrenceUnit.DAILY:
        return from_date + dt.timedelta(days=interval)
    elif unit == RecurrenceUnit.WEEKLY:
        return from_date + dt.timedelta(weeks=interval)
    elif unit == RecurrenceUnit.MONTHLY:
        return add_months(from_date, interval)
    elif unit == RecurrenceUnit.YEARLY:
        return add_years(from_date, interval)
    return None


_SINGULAR = {
    RecurrenceUnit.DAILY: "Every day",
    RecurrenceUnit.WEEKLY: "Every week",
    RecurrenceUnit.MONTHLY: "Every month",
    RecurrenceUnit.YEARLY: "Every year",
}

_PLURAL_NOUNS = {
    RecurrenceUnit.DAILY: "days",
    RecurrenceUnit.WEEKLY: "weeks",
    RecurrenceUnit.MONTHLY: "months",
    RecurrenceUnit.YEARLY: "years",
}


def describe_recurrence(template: Expense) -> str:
    """Short label for list views, e.g. 'Every month' or 'Every 2 weeks'."""
    unit = RecurrenceUnit.parse(template.recurrence)
    if template.frequency != Frequency.RECURRING or not template.recurrence:
        return "Not recurring"
    if unit is None:
        return "Recurring"

    interval = effective_interval(template)
    if interval > 1:
        return f"Every {interval} {_PLURAL_NOUNS[unit]}"
    return _SINGULAR[unit]
