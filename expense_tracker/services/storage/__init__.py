"""
Storage Services Package

Provides the abstract record store interface and concrete implementations.
JSON files are the default backend; Google Sheets and in-memory stores are
swappable through configuration.
"""

from expense_tracker.services.storage.interface import (
    ConnectionError,
    DuplicateError,
    NotFoundError,
    RecordStoreInterface,
    StorageError,
)
from expense_tracker.services.storage.memory import InMemoryRecordStore
from expense_tracker.services.storage.json_file import JsonFileRecordStore
from expense_tracker.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
)

__all__ = [
    # Interface
    "RecordStoreInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # Implementations
    "GoogleSheetsClient",
    "GoogleSheetsRecordStore",
    "InMemoryRecordStore",
    "JsonFileRecordStore",
]
