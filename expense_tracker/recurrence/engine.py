"""
Generation Engine

Turns recurring templates into concrete dated expenses.

GUARANTEES:
- Pure: inputs are never mutated, a GenerationResult delta is returned
- Idempotent: a second pass with the same inputs and `today` is empty
- At most one instance per (template id, date)
- A template's cursor (last_generated_date) only ever moves forward

The engine does not distinguish a first run from a catch-up run. Each
template resumes from its stored cursor and walks forward to `today`,
materializing every occurrence that is not already present.
"""

import datetime as dt
from collections import Counter
from collections.abc import Iterable
from uuid import UUID, uuid4

import structlog

from expense_tracker.models.expense import Expense, Frequency, GenerationResult
from expense_tracker.recurrence.rules import next_due
from expense_tracker.recurrence.termination import should_stop


logger = structlog.get_logger(__name__)


def materialize(template: Expense, due: dt.date) -> Expense:
    """
    Create the instance of `template` due on `due`.

    The instance copies the template's payload, gets a fresh id, and carries
    no recurrence fields. The template itself is left untouched.
    """
    return template.without_recurrence(
        id=uuid4(),
        date=due,
        frequency=Frequency.SINGLE,
        recurring_expense_id=template.id,
    )


def generate(
    templates: Iterable[Expense],
    existing_expenses: Iterable[Expense],
    today: dt.date,
) -> GenerationResult:
    """
    Materialize every missing occurrence up to and including `today`.

    Args:
        templates: Current recurring templates
        existing_expenses: Current expense collection (all kinds)
        today: Upper bound for due dates, normally the local date

    Returns:
        GenerationResult with the instances to prepend and the templates
        whose cursor advanced
    """
    expenses = list(existing_expenses)

    # (template id, date) pairs already present, and per-template counts.
    # Both are extended as instances are queued so the pass stays consistent
    # with itself.
    occupied: set[tuple[UUID, dt.date]] = set()
    generated: Counter[UUID] = Counter()
    for expense in expenses:
        if expense.recurring_expense_id is None:
            continue
        generated[expense.recurring_expense_id] += 1
        if expense.date is not None:
            occupied.add((expense.recurring_expense_id, expense.date))

    new_instances: list[Expense] = []
    updated_templates: list[Expense] = []

    for template in templates:
        if template.frequency != Frequency.RECURRING:
            continue
        if template.date is None:
            logger.warning(
                "template_skipped_missing_date",
                template_id=str(template.id),
            )
            continue

        cursor = template.last_generated_date or template.date
        if template.last_generated_date is None:
            due = template.date
        else:
            due = next_due(template, cursor)

        pending_cursor = template.last_generated_date

        while due is not None and due <= today:
            if should_stop(template, due, generated[template.id]):
                break

            key = (template.id, due)
            if key not in occupied:
                new_instances.append(materialize(template, due))
                occupied.add(key)
                generated[template.id] += 1

            cursor = due
            pending_cursor = cursor
            due = next_due(template, cursor)

        if pending_cursor != template.last_generated_date:
            updated_templates.append(
                template.model_copy(update={"last_generated_date": pending_cursor})
            )

    if new_instances or updated_templates:
        logger.debug(
            "generation_pass_completed",
            today=today.isoformat(),
            new_instances=len(new_instances),
            updated_templates=len(updated_templates),
        )

    return GenerationResult(
        new_instances=new_instances,
        updated_templates=updated_templates,
    )


def apply_generation(
    expenses: Iterable[Expense],
    templates: Iterable[Expense],
    result: GenerationResult,
) -> tuple[list[Expense], list[Expense]]:
    """
    Apply a generation delta to the two collections.

    New instances are prepended to the expenses, updated templates replace
    their stored counterpart by id. Returns (expenses, templates) as new
    lists.
    """
    updated = {template.id: template for template in result.updated_templates}
    merged_templates = [updated.get(template.id, template) for template in templates]
    merged_expenses = [*result.new_instances, *expenses]
    return merged_expenses, merged_templates
