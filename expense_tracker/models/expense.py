"""
Core Data Models for the Expense Tracker

One record shape, `Expense`, covers all three kinds of stored expense:
1. A standalone single expense entered by the user
2. A recurring TEMPLATE (frequency == "recurring")
3. A generated INSTANCE of a template (single, with recurring_expense_id set)

DESIGN DECISION: We keep the single shared shape with a `frequency`
discriminator rather than two record types. Stored collections stay
compatible with records written by earlier versions of the app
(camelCase keys, unknown payload fields preserved).

Recurrence unit and end type are stored as plain strings. The engine must
tolerate unknown values (it freezes the template instead of failing to load
the whole collection), so parsing happens through the enums' `parse`
helpers, not at validation time.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Frequency(str, Enum):
    """
    Discriminator between templates and everything else.

    A record with RECURRING is a template. Generated instances are always
    SINGLE even though they link back to their template.
    """
    SINGLE = "single"
    RECURRING = "recurring"


class RecurrenceUnit(str, Enum):
    """Unit a template advances by on each occurrence."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["RecurrenceUnit"]:
        """Return the unit for a stored value, or None if absent/unknown."""
        return _UNITS_BY_VALUE.get(value) if value else None


class RecurrenceEndType(str, Enum):
    """
    How a template's run comes to an end.

    Absent or unrecognized values behave as FOREVER.
    """
    FOREVER = "forever"
    COUNT = "count"
    DATE = "date"

    @classmethod
    def parse(cls, value: Optional[str]) -> "RecurrenceEndType":
        return _END_TYPES_BY_VALUE.get(value, cls.FOREVER) if value else cls.FOREVER


_UNITS_BY_VALUE = {unit.value: unit for unit in RecurrenceUnit}
_END_TYPES_BY_VALUE = {end.value: end for end in RecurrenceEndType}

# Fields that only make sense on a template. Instances and detached
# expenses never carry them.
RECURRENCE_FIELDS = (
    "recurrence",
    "recurrence_interval",
    "recurrence_end_type",
    "recurrence_end_date",
    "recurrence_count",
    "last_generated_date",
    "monthly_recurrence_type",
    "recurrence_days",
)


# =============================================================================
# CORE EXPENSE MODEL
# =============================================================================

class Expense(BaseModel):
    """
    A stored expense record: single expense, template, or instance.

    Serialized with camelCase keys (`recurringExpenseId`,
    `lastGeneratedDate`, ...). Fields this model does not know about are
    kept as extras and written back unchanged.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    # Identity
    id: UUID = Field(
        default_factory=uuid4,
        description="Unique expense ID, immutable once assigned"
    )
    date: Optional[dt.date] = Field(
        default=None,
        description="Effective day; for a template, the first occurrence"
    )

    # Payload (never touched by the recurrence engine)
    amount: Optional[Decimal] = Field(
        default=None,
        description="Expense amount, stored as a JSON number"
    )
    description: Optional[str] = None
    category: Optional[str] = None
    account_id: Optional[str] = None

    # Discriminator and back-reference
    frequency: Frequency = Field(
        default=Frequency.SINGLE,
        description="'recurring' marks a template"
    )
    recurring_expense_id: Optional[UUID] = Field(
        default=None,
        description="Template this instance was generated from"
    )

    # Template-only fields
    recurrence: Optional[str] = Field(
        default=None,
        description="daily | weekly | monthly | yearly"
    )
    recurrence_interval: Optional[int] = Field(
        default=None,
        description="Units between occurrences (missing means 1)"
    )
    recurrence_end_type: Optional[str] = Field(
        default=None,
        description="forever | count | date (missing means forever)"
    )
    recurrence_end_date: Optional[dt.date] = None
    recurrence_count: Optional[int] = None
    last_generated_date: Optional[dt.date] = Field(
        default=None,
        description="Cursor: date of the most recently materialized occurrence"
    )
    monthly_recurrence_type: Optional[str] = None
    recurrence_days: Optional[list[int]] = None

    @field_validator(
        "date",
        "recurrence_end_date",
        "last_generated_date",
        "recurrence",
        "recurrence_end_type",
        "recurring_expense_id",
        "recurrence_interval",
        "recurrence_count",
        "recurrence_days",
        "amount",
        mode="before",
    )
    @classmethod
    def blank_as_missing(cls, v: Any) -> Any:
        """Older records store unset values as empty strings."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_serializer("amount", when_used="json-unless-none")
    def amount_as_number(self, v: Decimal) -> Union[int, float]:
        """Amounts are written back as plain JSON numbers."""
        return int(v) if v == v.to_integral_value() else float(v)

    @property
    def is_template(self) -> bool:
        return self.frequency == Frequency.RECURRING

    @property
    def is_instance(self) -> bool:
        """True for a single expense generated from a template."""
        return self.frequency == Frequency.SINGLE and self.recurring_expense_id is not None

    @property
    def unit(self) -> Optional[RecurrenceUnit]:
        return RecurrenceUnit.parse(self.recurrence)

    @property
    def end_type(self) -> RecurrenceEndType:
        return RecurrenceEndType.parse(self.recurrence_end_type)

    @property
    def carries_recurrence_fields(self) -> bool:
        return any(getattr(self, name) is not None for name in RECURRENCE_FIELDS)

    def without_recurrence(self, **update: Any) -> "Expense":
        """
        Return a copy with every template-only field cleared.

        Extra keyword arguments are applied on top (field names, not
        aliases). The receiver is never modified.
        """
        cleared = {name: None for name in RECURRENCE_FIELDS}
        cleared.update(update)
        return self.model_copy(update=cleared)

    def to_record(self) -> dict:
        """Convert to the JSON-compatible dict written to storage."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_record(cls, record: dict) -> "Expense":
        return cls.model_validate(record)


# =============================================================================
# ENGINE RESULTS
# =============================================================================

class GenerationResult(BaseModel):
    """
    Delta produced by one generation pass.

    The caller prepends `new_instances` to the expense collection and
    merges `updated_templates` into the template collection by id.
    """

    new_instances: list[Expense] = Field(default_factory=list)
    updated_templates: list[Expense] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.new_instances and not self.updated_templates


class DetachResult(BaseModel):
    """Outcome of converting a template-linked expense into a single one."""

    expense: Expense = Field(
        ...,
        description="New standalone single expense"
    )
    template_to_delete: Optional[UUID] = Field(
        default=None,
        description="Template the caller must delete, if any"
    )


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'inconsistent')"
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
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """Result of validating one expense or template definition."""

    expense_id: UUID
    validated_at: dt.datetime = Field(
        default_factory=lambda: dt.datetime.now(dt.timezone.utc)
    )
    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
