"""
Data Models Package

This package contains all Pydantic models used in the Expense Tracker.
All data flowing through the system must conform to these schemas.
"""

from expense_tracker.models.expense import (
    RECURRENCE_FIELDS,
    DetachResult,
    Expense,
    Frequency,
    GenerationResult,
    RecurrenceEndType,
    RecurrenceUnit,
    ValidationIssue,
    ValidationResult,
)
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Expense models
    "RECURRENCE_FIELDS",
    "DetachResult",
    "Expense",
    "Frequency",
    "GenerationResult",
    "RecurrenceEndType",
    "RecurrenceUnit",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
