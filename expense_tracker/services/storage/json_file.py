"""
JSON File Storage Implementation

One `<key>.json` file per collection inside a data directory, each holding
a JSON array of records. This is the local-first default: the same shape
the app has always kept in the browser's key-value storage.

Writes are atomic (temp file + os.replace), so a crash mid-write leaves the
previous collection intact.
"""

import json
import os
from pathlib import Path
from typing import Union

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from expense_tracker.services.storage.interface import (
    RecordStoreInterface,
    StorageError,
)


_io_retry = retry(
    retry=retry_if_exception_type(OSError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
    reraise=True,
)


class JsonFileRecordStore(RecordStoreInterface):
    """Stores each collection as a JSON array on disk."""

    def __init__(self, directory: Union[str, Path]):
        self._directory = Path(directory).expanduser()

    def _path_for(self, key: str) -> Path:
        if not key or any(sep in key for sep in ("/", "\\")) or key.startswith("."):
            raise StorageError(f"Invalid collection key: {key!r}")
        return self._directory / f"{key}.json"

    @_io_retry
    def _read(self, path: Path) -> str:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    @_io_retry
    def _write(self, path: Path, payload: str) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp, path)
        finally:
            tmp.unlink(missing_ok=True)

    async def load_records(self, key: str) -> list[dict]:
        path = self._path_for(key)
        if not path.exists():
            return []

        try:
            data = json.loads(self._read(path))
        except OSError as e:
            raise StorageError(f"Failed to read collection {key}: {e}")
        except json.JSONDecodeError as e:
            raise StorageError(f"Collection {key} is not valid JSON: {e}")

        if not isinstance(data, list):
            raise StorageError(f"Collection {key} does not hold a list of records")
        return data

    async def save_records(self, key: str, records: list[dict]) -> bool:
        path = self._path_for(key)
        try:
            self._write(path, json.dumps(records, indent=2, ensure_ascii=False))
            return True
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to save collection {key}: {e}")

    async def has_records(self, key: str) -> bool:
        try:
            return bool(await self.load_records(key))
        except StorageError:
            return False
