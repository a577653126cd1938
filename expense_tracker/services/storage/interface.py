"""
Abstract Storage Interface

DESIGN DECISION: Persistence is an opaque key-value store of record lists.
Each collection ("expenses", "recurring templates", the audit log) is
loaded and saved as a whole. This allows us to:
1. Swap the backend (JSON files, Google Sheets, a real database later)
2. Use in-memory storage for testing
3. Keep the recurrence engine completely unaware of storage

The interface is intentionally simple - we're not building a full ORM.
Records are plain JSON-compatible dicts; models convert to and from them.
"""

from abc import ABC, abstractmethod


class RecordStoreInterface(ABC):
    """
    Abstract interface for collection storage.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def load_records(self, key: str) -> list[dict]:
        """
        Load a whole collection.

        Args:
            key: Collection name (e.g. 'expenses_v2')

        Returns:
            The stored records in order; an empty list if the collection
            does not exist

        Raises:
            StorageError: If the collection exists but cannot be read
        """
        pass

    @abstractmethod
    async def save_records(self, key: str, records: list[dict]) -> bool:
        """
        Replace a whole collection.

        Args:
            key: Collection name
            records: Records to store, in order

        Returns:
            True if saved successfully

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def has_records(self, key: str) -> bool:
        """
        Check whether a collection exists and holds at least one record.

        Unreadable collections count as empty.
        """
        pass

    async def append_record(self, key: str, record: dict) -> bool:
        """
        Append one record to a collection.

        Backends with a native append override this.
        """
        records = await self.load_records(key)
        records.append(record)
        return await self.save_records(key, records)


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
