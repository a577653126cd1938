"""Services package."""

from expense_tracker.services.storage import (
    ConnectionError,
    DuplicateError,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
    InMemoryRecordStore,
    JsonFileRecordStore,
    NotFoundError,
    RecordStoreInterface,
    StorageError,
)

__all__ = [
    # Storage services
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsClient",
    "GoogleSheetsRecordStore",
    "InMemoryRecordStore",
    "JsonFileRecordStore",
    "NotFoundError",
    "RecordStoreInterface",
    "StorageError",
]
