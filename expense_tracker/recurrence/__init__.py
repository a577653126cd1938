"""Recurring-expense scheduling engine."""

from expense_tracker.recurrence.active import active_templates, is_active
from expense_tracker.recurrence.detach import detach
from expense_tracker.recurrence.engine import apply_generation, generate, materialize
from expense_tracker.recurrence.rules import (
    add_months,
    add_years,
    describe_recurrence,
    next_due,
)
from expense_tracker.recurrence.termination import should_stop

__all__ = [
    "active_templates",
    "add_months",
    "add_years",
    "apply_generation",
    "describe_recurrence",
    "detach",
    "generate",
    "is_active",
    "materialize",
    "next_due",
    "should_stop",
]
