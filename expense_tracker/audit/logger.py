"""
Audit Logger

DESIGN DECISION: Every change to the stored collections is logged.
This provides:
1. Traceability of generated expenses back to their templates
2. Debugging capability when a cursor looks wrong
3. User can see history of their edits

The audit logger:
- Is async, matching the record store it writes to
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from expense_tracker.services.storage import RecordStoreInterface

# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit collection of a record store (for persistence)
    """

    def __init__(
        self,
        storage: Optional[RecordStoreInterface] = None,
        audit_key: str = "audit_log",
    ):
        """
        Initialize audit logger.

        Args:
            storage: Record store for persistence.
                    If None, only logs locally.
            audit_key: Collection the events are appended to
        """
        self._storage = storage
        self._audit_key = audit_key
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        # Always log locally
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        # Persist to storage if available
        if self._storage:
            try:
                return await self._storage.append_record(self._audit_key, event.to_record())
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_generation_completed(
        self,
        new_instances: int,
        updated_templates: int,
        today: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a generation pass that produced changes."""
        event = AuditEventBuilder.generation_completed(
            new_instances=new_instances,
            updated_templates=updated_templates,
            today=today,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_template_change(
        self,
        event_type: AuditEventType,
        template_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log template creation, update or deletion."""
        event = AuditEventBuilder.template_changed(
            event_type=event_type,
            template_id=template_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_expense_change(
        self,
        event_type: AuditEventType,
        expense_id: UUID,
        amount: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log expense creation, update or deletion."""
        event = AuditEventBuilder.expense_changed(
            event_type=event_type,
            expense_id=expense_id,
            amount=amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_expense_detached(
        self,
        expense_id: UUID,
        template_id: Optional[UUID],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log conversion of a recurring expense into a single one."""
        event = AuditEventBuilder.expense_detached(
            expense_id=expense_id,
            template_id=template_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        expense_id: UUID,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log validation failure."""
        event = AuditEventBuilder.validation_failed(
            expense_id=expense_id,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_legacy_migrated(
        self,
        source_key: str,
        target_key: str,
        record_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a collection copied over from an older key."""
        event = AuditEventBuilder.legacy_collection_migrated(
            source_key=source_key,
            target_key=target_key,
            record_count=record_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed storage operation."""
        event = AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a refresh).
    Pass it through all subsequent operations.
    """
    return uuid4()
