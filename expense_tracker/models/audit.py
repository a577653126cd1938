"""
Audit Models for the Expense Tracker

Every change to the stored collections is logged for audit purposes:
user edits, generation passes, conversions, and migrations. This gives a
history that explains where every generated expense came from.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Recurrence engine
    GENERATION_COMPLETED = "generation_completed"

    # Templates
    TEMPLATE_CREATED = "template_created"
    TEMPLATE_UPDATED = "template_updated"
    TEMPLATE_DELETED = "template_deleted"

    # Expenses
    EXPENSE_CREATED = "expense_created"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"
    EXPENSE_DETACHED = "expense_detached"

    # Validation
    VALIDATION_FAILED = "validation_failed"

    # Storage
    LEGACY_COLLECTION_MIGRATED = "legacy_collection_migrated"
    STORAGE_ERROR = "storage_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'template', 'collection')"
    )
    entity_id: Optional[UUID] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one refresh)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_record(self) -> dict:
        """
        Convert to a flat record for the audit collection.

        `details` is JSON-encoded so every backend (including spreadsheet
        rows) can hold it as a single cell.
        """
        record = self.to_log_dict()
        record["details"] = json.dumps(self.details, default=str) if self.details else ""
        return record


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.generation_completed(3, 1, correlation_id)
        event = AuditEventBuilder.expense_detached(expense_id, template_id)
    """

    @staticmethod
    def generation_completed(
        new_instances: int,
        updated_templates: int,
        today: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GENERATION_COMPLETED,
            entity_type="collection",
            correlation_id=correlation_id,
            description=(
                f"Generated {new_instances} recurring expenses, "
                f"advanced {updated_templates} templates"
            ),
            details={
                "new_instances": new_instances,
                "updated_templates": updated_templates,
                "today": today,
            },
        )

    @staticmethod
    def template_changed(
        event_type: AuditEventType,
        template_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        verb = event_type.value.split("_")[-1]
        return AuditEvent(
            event_type=event_type,
            entity_type="template",
            entity_id=template_id,
            correlation_id=correlation_id,
            description=f"Recurring template {verb}",
            is_user_action=True,
        )

    @staticmethod
    def expense_changed(
        event_type: AuditEventType,
        expense_id: UUID,
        amount: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        verb = event_type.value.split("_")[-1]
        return AuditEvent(
            event_type=event_type,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense {verb}",
            details={"amount": amount} if amount is not None else {},
            is_user_action=True,
        )

    @staticmethod
    def expense_detached(
        expense_id: UUID,
        template_id: Optional[UUID],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DETACHED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description="Recurring expense converted to a single expense",
            details={
                "deleted_template_id": str(template_id) if template_id else None,
            },
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        expense_id: UUID,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Validation failed with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def legacy_collection_migrated(
        source_key: str,
        target_key: str,
        record_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEGACY_COLLECTION_MIGRATED,
            entity_type="collection",
            correlation_id=correlation_id,
            description=f"Copied {record_count} records from {source_key} to {target_key}",
            details={
                "source_key": source_key,
                "target_key": target_key,
                "record_count": record_count,
            },
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"Storage operation failed: {operation}",
            details={"operation": operation},
            error_message=error_message,
        )
