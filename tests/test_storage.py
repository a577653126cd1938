"""
Tests for the record stores

The Google Sheets store is exercised against an in-process fake worksheet;
no network calls are made.
"""

import asyncio
import json
import re
import pytest
from tenacity import wait_none

from expense_tracker.services.storage import (
    GoogleSheetsRecordStore,
    InMemoryRecordStore,
    JsonFileRecordStore,
    StorageError,
)
from expense_tracker.services.storage.google_sheets import RECORD_COLUMNS


class FakeWorksheet:
    """Mimics the gspread Worksheet calls the store uses."""

    def __init__(self):
        self.rows = [list(RECORD_COLUMNS)]
        self.row_count = 1000

    def get_all_values(self):
        values = [list(row) for row in self.rows]
        # gspread trims trailing empty rows
        while values and not any(values[-1]):
            values.pop()
        return values

    def add_rows(self, rows):
        self.row_count += rows

    def update(self, range_name=None, values=None, value_input_option=None):
        assert range_name == "A1"
        for index, row in enumerate(values):
            if index < len(self.rows):
                self.rows[index] = list(row)
            else:
                self.rows.append(list(row))

    def batch_clear(self, ranges):
        for cell_range in ranges:
            start, end = map(int, re.findall(r"\d+", cell_range))
            for index in range(start - 1, min(end, len(self.rows))):
                self.rows[index] = ["", ""]

    def append_row(self, row, value_input_option=None):
        self.rows.append(list(row))


class FailingUpdateWorksheet(FakeWorksheet):
    """A worksheet whose writes are rejected, e.g. over quota."""

    def update(self, range_name=None, values=None, value_input_option=None):
        raise RuntimeError("Quota exceeded")


class FakeSheetsClient:
    """Hands out one fake worksheet per collection key."""

    def __init__(self):
        self.worksheets = {}

    def get_worksheet(self, key):
        return self.worksheets.setdefault(key, FakeWorksheet())


class TestInMemoryRecordStore:
    """Tests for the in-memory store."""

    def test_missing_collection_is_empty(self):
        """Test loading an unknown key."""
        store = InMemoryRecordStore()
        assert asyncio.run(store.load_records("expenses_v2")) == []
        assert not asyncio.run(store.has_records("expenses_v2"))

    def test_save_and_load(self):
        """Test records come back in order."""
        store = InMemoryRecordStore()
        asyncio.run(store.save_records("expenses_v2", [{"id": "a"}, {"id": "b"}]))
        assert asyncio.run(store.load_records("expenses_v2")) == [{"id": "a"}, {"id": "b"}]
        assert asyncio.run(store.has_records("expenses_v2"))

    def test_loaded_records_are_copies(self):
        """Test callers can't mutate stored data in place."""
        store = InMemoryRecordStore({"expenses_v2": [{"id": "a"}]})
        records = asyncio.run(store.load_records("expenses_v2"))
        records[0]["id"] = "changed"
        records.append({"id": "b"})
        assert asyncio.run(store.load_records("expenses_v2")) == [{"id": "a"}]

    def test_append_record(self):
        """Test appending to a new collection."""
        store = InMemoryRecordStore()
        asyncio.run(store.append_record("audit_log", {"event_id": "1"}))
        asyncio.run(store.append_record("audit_log", {"event_id": "2"}))
        assert [r["event_id"] for r in asyncio.run(store.load_records("audit_log"))] == ["1", "2"]


class TestJsonFileRecordStore:
    """Tests for the JSON file store."""

    def test_missing_file_is_empty(self, tmp_path):
        """Test loading a collection that was never saved."""
        store = JsonFileRecordStore(tmp_path)
        assert asyncio.run(store.load_records("expenses_v2")) == []

    def test_save_writes_json_array(self, tmp_path):
        """Test the on-disk format."""
        store = JsonFileRecordStore(tmp_path / "data")
        asyncio.run(store.save_records("expenses_v2", [{"id": "a", "amount": "5"}]))

        path = tmp_path / "data" / "expenses_v2.json"
        assert json.loads(path.read_text(encoding="utf-8")) == [{"id": "a", "amount": "5"}]
        assert not (tmp_path / "data" / "expenses_v2.tmp").exists()

    def test_save_replaces_collection(self, tmp_path):
        """Test that a second save overwrites the first."""
        store = JsonFileRecordStore(tmp_path)
        asyncio.run(store.save_records("recurring_expenses_v1", [{"id": "a"}]))
        asyncio.run(store.save_records("recurring_expenses_v1", [{"id": "b"}]))
        assert asyncio.run(store.load_records("recurring_expenses_v1")) == [{"id": "b"}]

    def test_default_append(self, tmp_path):
        """Test the interface's load-append-save fallback."""
        store = JsonFileRecordStore(tmp_path)
        asyncio.run(store.append_record("audit_log", {"event_id": "1"}))
        asyncio.run(store.append_record("audit_log", {"event_id": "2"}))
        assert len(asyncio.run(store.load_records("audit_log"))) == 2

    def test_invalid_json_raises(self, tmp_path):
        """Test a corrupt collection file."""
        (tmp_path / "expenses_v2.json").write_text("{not json", encoding="utf-8")
        store = JsonFileRecordStore(tmp_path)
        with pytest.raises(StorageError):
            asyncio.run(store.load_records("expenses_v2"))
        assert not asyncio.run(store.has_records("expenses_v2"))

    def test_non_list_raises(self, tmp_path):
        """Test a file that holds an object instead of a list."""
        (tmp_path / "expenses_v2.json").write_text('{"id": "a"}', encoding="utf-8")
        store = JsonFileRecordStore(tmp_path)
        with pytest.raises(StorageError, match="list of records"):
            asyncio.run(store.load_records("expenses_v2"))

    @pytest.mark.parametrize("key", ["", "../escape", "a/b", ".hidden"])
    def test_invalid_keys_rejected(self, tmp_path, key):
        """Test that keys can't point outside the data directory."""
        store = JsonFileRecordStore(tmp_path)
        with pytest.raises(StorageError, match="Invalid collection key"):
            asyncio.run(store.load_records(key))


class TestGoogleSheetsRecordStore:
    """Tests for the Google Sheets store against a fake client."""

    def test_save_and_load(self):
        """Test records round-trip through worksheet rows."""
        client = FakeSheetsClient()
        store = GoogleSheetsRecordStore(client)
        records = [{"id": "a", "amount": "5"}, {"id": "b", "description": "Café"}]

        asyncio.run(store.save_records("expenses_v2", records))

        sheet = client.worksheets["expenses_v2"]
        assert sheet.rows[0] == RECORD_COLUMNS
        assert sheet.rows[1][0] == "a"
        assert asyncio.run(store.load_records("expenses_v2")) == records

    def test_shorter_save_clears_leftover_rows(self):
        """Test saving fewer records than before drops the extra rows."""
        client = FakeSheetsClient()
        store = GoogleSheetsRecordStore(client)
        asyncio.run(store.save_records("expenses_v2", [{"id": "a"}, {"id": "b"}, {"id": "c"}]))
        asyncio.run(store.save_records("expenses_v2", [{"id": "z"}]))

        assert asyncio.run(store.load_records("expenses_v2")) == [{"id": "z"}]

    def test_large_save_grows_worksheet(self):
        """Test the grid is extended when the rows don't fit."""
        client = FakeSheetsClient()
        sheet = client.get_worksheet("expenses_v2")
        sheet.row_count = 2
        store = GoogleSheetsRecordStore(client)
        records = [{"id": str(n)} for n in range(5)]

        asyncio.run(store.save_records("expenses_v2", records))

        assert sheet.row_count >= 6
        assert asyncio.run(store.load_records("expenses_v2")) == records

    def test_failed_save_keeps_previous_rows(self, monkeypatch):
        """Test a rejected write leaves the stored collection intact."""
        monkeypatch.setattr(GoogleSheetsRecordStore._write_rows.retry, "wait", wait_none())
        client = FakeSheetsClient()
        store = GoogleSheetsRecordStore(client)
        asyncio.run(store.save_records("expenses_v2", [{"id": "a"}, {"id": "b"}]))

        failing = FailingUpdateWorksheet()
        failing.rows = client.worksheets["expenses_v2"].rows
        client.worksheets["expenses_v2"] = failing

        with pytest.raises(StorageError, match="Quota exceeded"):
            asyncio.run(store.save_records("expenses_v2", [{"id": "c"}]))
        assert asyncio.run(store.load_records("expenses_v2")) == [{"id": "a"}, {"id": "b"}]

    def test_empty_worksheet(self):
        """Test a worksheet holding only the header."""
        store = GoogleSheetsRecordStore(FakeSheetsClient())
        assert asyncio.run(store.load_records("expenses_v2")) == []
        assert not asyncio.run(store.has_records("expenses_v2"))

    def test_blank_rows_skipped(self):
        """Test that empty rows between records are ignored."""
        client = FakeSheetsClient()
        sheet = client.get_worksheet("expenses_v2")
        sheet.rows.append(["", ""])
        sheet.rows.append(["a", json.dumps({"id": "a"})])
        store = GoogleSheetsRecordStore(client)
        assert asyncio.run(store.load_records("expenses_v2")) == [{"id": "a"}]

    def test_malformed_row_raises(self):
        """Test a row whose payload is not a JSON object."""
        client = FakeSheetsClient()
        client.get_worksheet("expenses_v2").rows.append(["a", "not json"])
        store = GoogleSheetsRecordStore(client)
        with pytest.raises(StorageError, match="Malformed row 2"):
            asyncio.run(store.load_records("expenses_v2"))

    def test_append_record_uses_event_id(self):
        """Test audit events are appended with their event id."""
        client = FakeSheetsClient()
        store = GoogleSheetsRecordStore(client)
        asyncio.run(store.append_record("audit_log", {"event_id": "e1", "details": ""}))

        sheet = client.worksheets["audit_log"]
        assert sheet.rows[-1][0] == "e1"
        assert asyncio.run(store.load_records("audit_log")) == [{"event_id": "e1", "details": ""}]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
