"""In-memory record store, for tests and throwaway sessions."""

import copy
from typing import Optional

from expense_tracker.services.storage.interface import RecordStoreInterface


class InMemoryRecordStore(RecordStoreInterface):
    """Keeps deep copies so callers can't mutate stored records in place."""

    def __init__(self, initial: Optional[dict[str, list[dict]]] = None):
        self._collections: dict[str, list[dict]] = copy.deepcopy(initial or {})

    async def load_records(self, key: str) -> list[dict]:
        return copy.deepcopy(self._collections.get(key, []))

    async def save_records(self, key: str, records: list[dict]) -> bool:
        self._collections[key] = copy.deepcopy(records)
        return True

    async def has_records(self, key: str) -> bool:
        return bool(self._collections.get(key))

    async def append_record(self, key: str, record: dict) -> bool:
        self._collections.setdefault(key, []).append(copy.deepcopy(record))
        return True
