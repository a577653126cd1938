"""
Expense Ledger - Main Orchestrator

This module ties together the record store, the recurrence engine, the
validator and the audit logger. It defines the flows the UI layer calls:
1. Refresh (load → generate → persist deltas)
2. Single expense CRUD
3. Template CRUD, including converting a template into a single expense
4. Recurring list view (active templates only)

DESIGN DECISION: The recurrence engine is pure and never touches storage.
The ledger is the only component that reads and writes collections, and it
only writes what the engine returned. Expenses are always saved before
templates: if the second write fails, the next refresh finds the instances
already present and the pass is a no-op apart from advancing the cursor.
"""

import datetime as dt
from typing import Optional
from uuid import UUID

import structlog
from pydantic import BaseModel, Field, ValidationError

from expense_tracker.audit import AuditLogger, create_correlation_id
from expense_tracker.config import AppSettings, get_settings
from expense_tracker.models.audit import AuditEventType
from expense_tracker.models.expense import (
    Expense,
    Frequency,
    GenerationResult,
    ValidationResult,
)
from expense_tracker.recurrence import (
    active_templates,
    apply_generation,
    detach,
    generate,
)
from expense_tracker.services.storage import (
    DuplicateError,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
    InMemoryRecordStore,
    JsonFileRecordStore,
    NotFoundError,
    RecordStoreInterface,
    StorageError,
)
from expense_tracker.validation import ExpenseValidator


logger = structlog.get_logger(__name__)


class InvalidExpenseError(ValueError):
    """Raised when a user-submitted expense or template fails validation."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = "; ".join(
            issue.message for issue in result.issues if issue.severity == "error"
        )
        super().__init__(f"Invalid expense: {messages}")


class LedgerSnapshot(BaseModel):
    """Both collections as loaded from the store."""

    expenses: list[Expense] = Field(default_factory=list)
    templates: list[Expense] = Field(default_factory=list)


class ExpenseLedger:
    """
    Orchestrates every read and write of the expense collections.

    The ledger holds no state between calls: each operation loads the
    collections it needs, computes the change, and saves it.
    """

    def __init__(
        self,
        store: RecordStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[ExpenseValidator] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._store = store
        self._settings = settings or get_settings().app
        self._audit_logger = audit_logger
        self._validator = validator or ExpenseValidator(self._settings)

    # -------------------------------------------------------------------------
    # Collections
    # -------------------------------------------------------------------------

    async def _load_collection(self, key: str) -> list[Expense]:
        records = await self._store.load_records(key)
        try:
            return [Expense.from_record(record) for record in records]
        except ValidationError as e:
            raise StorageError(f"Collection {key} holds malformed records: {e}")

    async def _save_collection(self, key: str, expenses: list[Expense]) -> None:
        await self._store.save_records(key, [expense.to_record() for expense in expenses])

    async def load(self) -> LedgerSnapshot:
        """Load both collections."""
        return LedgerSnapshot(
            expenses=await self._load_collection(self._settings.expenses_key),
            templates=await self._load_collection(self._settings.templates_key),
        )

    async def migrate_legacy_collections(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> dict[str, str]:
        """
        Fill empty collections from older keys.

        For each current collection that is empty, the first legacy key
        holding a non-empty list is copied over. Unreadable legacy data is
        logged and skipped. Legacy collections are left in place.

        Returns:
            {target_key: source_key} for every collection copied
        """
        migrated = {}
        plan = [
            (self._settings.expenses_key, self._settings.legacy_expense_keys_list),
            (self._settings.templates_key, self._settings.legacy_template_keys_list),
        ]

        for target_key, legacy_keys in plan:
            if await self._store.has_records(target_key):
                continue

            for legacy_key in legacy_keys:
                try:
                    records = await self._store.load_records(legacy_key)
                except StorageError as e:
                    logger.warning(
                        "legacy_collection_unreadable",
                        key=legacy_key,
                        error=str(e),
                    )
                    continue
                if not records:
                    continue

                await self._store.save_records(target_key, records)
                migrated[target_key] = legacy_key
                logger.info(
                    "legacy_collection_migrated",
                    source_key=legacy_key,
                    target_key=target_key,
                    record_count=len(records),
                )
                if self._audit_logger:
                    await self._audit_logger.log_legacy_migrated(
                        source_key=legacy_key,
                        target_key=target_key,
                        record_count=len(records),
                        correlation_id=correlation_id,
                    )
                break

        return migrated

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    async def refresh(
        self,
        today: Optional[dt.date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> GenerationResult:
        """
        Materialize every missing recurring expense up to `today`.

        Call on load and whenever templates, expenses, or the day change.
        Nothing is written when the pass produces no changes.
        """
        correlation_id = correlation_id or create_correlation_id()
        today = today or dt.date.today()

        try:
            snapshot = await self.load()
            result = generate(snapshot.templates, snapshot.expenses, today)
            if result.is_empty:
                return result

            expenses, templates = apply_generation(
                snapshot.expenses, snapshot.templates, result
            )
            await self._save_collection(self._settings.expenses_key, expenses)
            await self._save_collection(self._settings.templates_key, templates)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_storage_error(
                    operation="refresh",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_generation_completed(
                new_instances=len(result.new_instances),
                updated_templates=len(result.updated_templates),
                today=today.isoformat(),
                correlation_id=correlation_id,
            )

        return result

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    async def _ensure_valid(
        self,
        expense: Expense,
        correlation_id: Optional[UUID],
    ) -> ValidationResult:
        result = self._validator.validate(expense)
        if result.has_errors:
            if self._audit_logger:
                issues = [
                    {"field": i.field, "type": i.issue_type, "message": i.message}
                    for i in result.issues
                ]
                await self._audit_logger.log_validation_failed(
                    expense_id=expense.id,
                    issues=issues,
                    correlation_id=correlation_id,
                )
            raise InvalidExpenseError(result)
        return result

    # -------------------------------------------------------------------------
    # Single expenses
    # -------------------------------------------------------------------------

    async def add_expense(
        self,
        expense: Expense,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Add a single expense at the top of the collection.

        Raises:
            DuplicateError: If an expense with this id is already stored
        """
        if expense.is_template:
            raise ValueError("Recurring expenses must be added with add_template")
        await self._ensure_valid(expense, correlation_id)

        expenses = await self._load_collection(self._settings.expenses_key)
        if any(e.id == expense.id for e in expenses):
            raise DuplicateError(f"Expense already exists: {expense.id}")
        await self._save_collection(self._settings.expenses_key, [expense, *expenses])

        if self._audit_logger:
            await self._audit_logger.log_expense_change(
                event_type=AuditEventType.EXPENSE_CREATED,
                expense_id=expense.id,
                amount=str(expense.amount) if expense.amount is not None else None,
                correlation_id=correlation_id,
            )
        return expense

    async def update_expense(
        self,
        expense: Expense,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Replace a stored single expense by id.

        Raises:
            NotFoundError: If no expense has this id
        """
        if expense.is_template:
            raise ValueError("Recurring expenses must be updated with update_template")
        await self._ensure_valid(expense, correlation_id)

        expenses = await self._load_collection(self._settings.expenses_key)
        if not any(e.id == expense.id for e in expenses):
            raise NotFoundError(f"Expense not found: {expense.id}")

        updated = [expense if e.id == expense.id else e for e in expenses]
        await self._save_collection(self._settings.expenses_key, updated)

        if self._audit_logger:
            await self._audit_logger.log_expense_change(
                event_type=AuditEventType.EXPENSE_UPDATED,
                expense_id=expense.id,
                amount=str(expense.amount) if expense.amount is not None else None,
                correlation_id=correlation_id,
            )
        return expense

    async def delete_expense(
        self,
        expense_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Delete a single expense (generated or not).

        Deleting a generated instance leaves its template's cursor alone.
        Returns False if nothing had this id.
        """
        expenses = await self._load_collection(self._settings.expenses_key)
        remaining = [e for e in expenses if e.id != expense_id]
        if len(remaining) == len(expenses):
            return False

        await self._save_collection(self._settings.expenses_key, remaining)

        if self._audit_logger:
            await self._audit_logger.log_expense_change(
                event_type=AuditEventType.EXPENSE_DELETED,
                expense_id=expense_id,
                correlation_id=correlation_id,
            )
        return True

    # -------------------------------------------------------------------------
    # Templates
    # -------------------------------------------------------------------------

    async def add_template(
        self,
        template: Expense,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Add a recurring template at the top of the collection.

        Raises:
            DuplicateError: If a template with this id is already stored
        """
        if not template.is_template:
            raise ValueError("Single expenses must be added with add_expense")
        await self._ensure_valid(template, correlation_id)

        templates = await self._load_collection(self._settings.templates_key)
        if any(t.id == template.id for t in templates):
            raise DuplicateError(f"Recurring expense already exists: {template.id}")
        await self._save_collection(self._settings.templates_key, [template, *templates])

        if self._audit_logger:
            await self._audit_logger.log_template_change(
                event_type=AuditEventType.TEMPLATE_CREATED,
                template_id=template.id,
                correlation_id=correlation_id,
            )
        return template

    async def update_template(
        self,
        template: Expense,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Replace a stored template by id.

        The stored cursor is kept; only the engine moves it.

        Raises:
            NotFoundError: If no template has this id
        """
        if not template.is_template:
            raise ValueError("Use submit_template_edit to turn a template into a single expense")
        await self._ensure_valid(template, correlation_id)

        templates = await self._load_collection(self._settings.templates_key)
        stored = next((t for t in templates if t.id == template.id), None)
        if stored is None:
            raise NotFoundError(f"Recurring expense not found: {template.id}")

        template = template.model_copy(
            update={"last_generated_date": stored.last_generated_date}
        )
        updated = [template if t.id == template.id else t for t in templates]
        await self._save_collection(self._settings.templates_key, updated)

        if self._audit_logger:
            await self._audit_logger.log_template_change(
                event_type=AuditEventType.TEMPLATE_UPDATED,
                template_id=template.id,
                correlation_id=correlation_id,
            )
        return template

    async def delete_template(
        self,
        template_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Delete a template. Instances it already generated are kept.

        Returns False if nothing had this id.
        """
        templates = await self._load_collection(self._settings.templates_key)
        remaining = [t for t in templates if t.id != template_id]
        if len(remaining) == len(templates):
            return False

        await self._save_collection(self._settings.templates_key, remaining)

        if self._audit_logger:
            await self._audit_logger.log_template_change(
                event_type=AuditEventType.TEMPLATE_DELETED,
                template_id=template_id,
                correlation_id=correlation_id,
            )
        return True

    async def submit_template_edit(
        self,
        edited: Expense,
        original: Expense,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Handle the edit form submitted for a recurring template.

        If the user switched the frequency away from recurring, the template
        is deleted and the edited data is stored as a new single expense.
        Otherwise this is a plain template update.

        Returns:
            The stored single expense or template
        """
        correlation_id = correlation_id or create_correlation_id()

        if edited.frequency == Frequency.RECURRING:
            return await self.update_template(edited, correlation_id=correlation_id)

        result = detach(edited, original)
        await self._ensure_valid(result.expense, correlation_id)

        expenses = await self._load_collection(self._settings.expenses_key)
        templates = await self._load_collection(self._settings.templates_key)

        await self._save_collection(
            self._settings.expenses_key, [result.expense, *expenses]
        )
        if result.template_to_delete is not None:
            await self._save_collection(
                self._settings.templates_key,
                [t for t in templates if t.id != result.template_to_delete],
            )

        if self._audit_logger:
            await self._audit_logger.log_expense_detached(
                expense_id=result.expense.id,
                template_id=result.template_to_delete,
                correlation_id=correlation_id,
            )
        return result.expense

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    async def list_active_templates(self) -> list[Expense]:
        """Templates the recurring list should show, newest first."""
        snapshot = await self.load()
        return active_templates(snapshot.templates, snapshot.expenses)


def create_record_store(settings: AppSettings) -> RecordStoreInterface:
    """Build the record store selected by `storage_backend`."""
    if settings.storage_backend == "memory":
        return InMemoryRecordStore()
    if settings.storage_backend == "google_sheets":
        return GoogleSheetsRecordStore(GoogleSheetsClient())
    return JsonFileRecordStore(settings.data_path)


def create_app_components(
    settings: Optional[AppSettings] = None,
) -> tuple[ExpenseLedger, AuditLogger]:
    """
    Factory function to create all application components.

    Falls back to an in-memory store if the configured backend cannot be
    set up, so the app still starts (nothing will persist).

    Returns:
        (ledger, audit_logger)
    """
    settings = settings or get_settings().app

    try:
        store = create_record_store(settings)
    except Exception as e:
        # Storage not configured - continue without persistence
        logger.warning(
            "storage_not_configured",
            backend=settings.storage_backend,
            error=str(e),
        )
        store = InMemoryRecordStore()

    audit_logger = AuditLogger(store, audit_key=settings.audit_key)
    ledger = ExpenseLedger(
        store=store,
        audit_logger=audit_logger,
        settings=settings,
    )
    return ledger, audit_logger
