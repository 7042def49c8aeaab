"""Tests for ledger storage backends."""

import asyncio
import json
import time
from datetime import date
from unittest.mock import MagicMock

import pytest

from mmm.models.ledger import Group, Transaction
from mmm.services.storage import (
    CorruptDataError,
    GoogleSheetsBlobStore,
    InMemoryBlobStore,
    JsonFileBlobStore,
    StorageError,
)
from mmm.services.storage.google_sheets import MAX_CELL_CHARS


def _ledger():
    groups = [Group(id="g1", name="Office", budget=15000, members=3)]
    transactions = [
        Transaction(
            id="t2", date=date(2024, 5, 2), merchant="ร้านกาแฟ", amount=55,
            ownership="group", group_id="g1", items=("latte",),
        ),
        Transaction(id="t1", date=date(2024, 5, 1), merchant="Salary", amount=50000, type="income"),
    ]
    return transactions, groups


class TestInMemoryStorage:
    """Tests for the in-memory blob store."""

    @pytest.mark.asyncio
    async def test_empty_load(self):
        """Test loading before any save gives empty collections."""
        storage = InMemoryBlobStore()
        assert await storage.load() == ([], [])

    @pytest.mark.asyncio
    async def test_save_then_load_preserves_order_and_fields(self):
        """Test persisted state comes back in the same order with the same values."""
        transactions, groups = _ledger()
        storage = InMemoryBlobStore()
        assert await storage.save(transactions, groups) is True

        loaded_transactions, loaded_groups = await storage.load()
        assert loaded_transactions == transactions
        assert loaded_groups == groups

    @pytest.mark.asyncio
    async def test_blobs_use_camel_case(self):
        """Test blob keys and the persisted JSON shape."""
        transactions, groups = _ledger()
        storage = InMemoryBlobStore()
        await storage.save(transactions, groups)

        stored = json.loads(storage.blobs["mmm_transactions"])
        assert stored[0]["groupId"] == "g1"
        assert stored[0]["merchant"] == "ร้านกาแฟ"
        assert json.loads(storage.blobs["mmm_groups"])[0]["members"] == 3

    @pytest.mark.asyncio
    async def test_invalid_transactions_are_skipped(self):
        """Test a record that no longer validates is dropped on load."""
        storage = InMemoryBlobStore()
        storage.blobs["mmm_transactions"] = json.dumps([
            {"id": "ok", "date": "2024-05-01", "merchant": "Cafe", "amount": 10, "type": "expense"},
            {"id": "bad", "date": "2024-05-01", "merchant": "Cafe", "amount": -10},
            "not a record",
        ])
        transactions, _ = await storage.load()
        assert [t.id for t in transactions] == ["ok"]

    @pytest.mark.asyncio
    async def test_group_with_bad_budget_is_kept(self):
        """Test a stored zero budget survives loading so alerts can flag it."""
        storage = InMemoryBlobStore()
        storage.blobs["mmm_groups"] = json.dumps([
            {"id": "g1", "name": "Office", "budget": 0, "members": 1, "icon": "🏢"},
            {"id": "g2", "name": "", "budget": 0},
        ])
        _, groups = await storage.load()
        assert [g.id for g in groups] == ["g1"]
        assert groups[0].budget == 0

    @pytest.mark.asyncio
    async def test_corrupt_blob(self):
        """Test undecodable JSON raises CorruptDataError."""
        storage = InMemoryBlobStore()
        storage.blobs["mmm_transactions"] = "{not json"
        with pytest.raises(CorruptDataError):
            await storage.load()

    @pytest.mark.asyncio
    async def test_non_array_blob(self):
        """Test a blob that is not an array is corrupt."""
        storage = InMemoryBlobStore()
        storage.blobs["mmm_groups"] = json.dumps({"id": "g1"})
        with pytest.raises(CorruptDataError):
            await storage.load()


class SlowBlobStore(InMemoryBlobStore):
    """In-memory store whose reads and writes block like a remote call."""

    def __init__(self, delay: float = 0.2):
        super().__init__()
        self.delay = delay

    def _read_blob(self, key):
        time.sleep(self.delay)
        return super()._read_blob(key)

    def _write_blob(self, key, value):
        time.sleep(self.delay)
        super()._write_blob(key, value)


async def _ticks_during(operation) -> int:
    """Count event loop turns taken while ``operation`` runs."""
    ticks = 0
    done = asyncio.Event()

    async def ticker():
        nonlocal ticks
        while not done.is_set():
            await asyncio.sleep(0.01)
            ticks += 1

    task = asyncio.create_task(ticker())
    try:
        await operation
    finally:
        done.set()
        await task
    return ticks


class TestBlockingBackends:
    """Tests that slow blob I/O leaves the event loop responsive."""

    @pytest.mark.asyncio
    async def test_save_does_not_block_the_loop(self):
        """Test other tasks keep running while a slow save is in progress."""
        transactions, groups = _ledger()
        storage = SlowBlobStore()
        assert await _ticks_during(storage.save(transactions, groups)) > 0
        assert json.loads(storage.blobs["mmm_groups"])[0]["id"] == "g1"

    @pytest.mark.asyncio
    async def test_load_does_not_block_the_loop(self):
        """Test other tasks keep running while a slow load is in progress."""
        transactions, groups = _ledger()
        storage = SlowBlobStore(delay=0)
        await storage.save(transactions, groups)
        storage.delay = 0.2
        assert await _ticks_during(storage.load()) > 0

    @pytest.mark.asyncio
    async def test_concurrent_saves_do_not_interleave(self):
        """Test two overlapping saves leave both blobs from the same call."""
        transactions, groups = _ledger()
        storage = SlowBlobStore(delay=0.05)
        await asyncio.gather(
            storage.save(transactions, groups),
            storage.save(transactions[:1], []),
        )
        stored_transactions = json.loads(storage.blobs["mmm_transactions"])
        stored_groups = json.loads(storage.blobs["mmm_groups"])
        assert (len(stored_transactions), len(stored_groups)) in ((2, 1), (1, 0))


class TestJsonFileStorage:
    """Tests for the JSON file blob store."""

    @pytest.mark.asyncio
    async def test_round_trip_through_files(self, tmp_path):
        """Test a second store over the same directory reads what the first wrote."""
        transactions, groups = _ledger()
        await JsonFileBlobStore(tmp_path / "data").save(transactions, groups)

        reader = JsonFileBlobStore(tmp_path / "data")
        assert reader.path_for("mmm_groups").exists()
        assert await reader.load() == (transactions, groups)

    @pytest.mark.asyncio
    async def test_no_temp_files_left(self, tmp_path):
        """Test atomic writes clean up after themselves."""
        transactions, groups = _ledger()
        storage = JsonFileBlobStore(tmp_path)
        await storage.save(transactions, groups)
        await storage.save(transactions[:1], groups)
        assert sorted(p.name for p in tmp_path.iterdir()) == [
            "mmm_groups.json",
            "mmm_transactions.json",
        ]

    @pytest.mark.asyncio
    async def test_missing_directory_loads_empty(self, tmp_path):
        """Test a data dir that does not exist yet is an empty ledger."""
        storage = JsonFileBlobStore(tmp_path / "absent")
        assert await storage.load() == ([], [])

    @pytest.mark.asyncio
    async def test_unwritable_location(self, tmp_path):
        """Test OS errors surface as StorageError."""
        blocker = tmp_path / "file"
        blocker.write_text("x")
        storage = JsonFileBlobStore(blocker / "sub")
        transactions, groups = _ledger()
        with pytest.raises(StorageError):
            await storage.save(transactions, groups)


class TestGoogleSheetsStorage:
    """Tests for the Google Sheets blob store (mocked client)."""

    def _store(self, rows):
        sheet = MagicMock()
        sheet.get_all_values.return_value = rows
        client = MagicMock()
        client.get_ledger_sheet.return_value = sheet
        return GoogleSheetsBlobStore(client=client), sheet

    @pytest.mark.asyncio
    async def test_reads_rows_by_key(self):
        """Test blobs are looked up by the key column."""
        store, _ = self._store([
            ["key", "value"],
            ["mmm_groups", json.dumps([{"id": "g1", "name": "Office", "budget": 100}])],
        ])
        transactions, groups = await store.load()
        assert transactions == []
        assert groups[0].name == "Office"

    @pytest.mark.asyncio
    async def test_save_appends_then_updates(self):
        """Test a missing key row is appended and an existing one updated."""
        store, sheet = self._store([
            ["key", "value"],
            ["mmm_groups", "[]"],
        ])
        await store.save([], [])
        sheet.append_row.assert_called_once_with(
            ["mmm_transactions", "[]"], value_input_option="RAW"
        )
        sheet.update_cell.assert_called_once_with(2, 2, "[]")

    def test_oversized_blob_rejected(self):
        """Test blobs beyond the cell limit raise without writing."""
        store, sheet = self._store([["key", "value"]])
        with pytest.raises(StorageError):
            store._write_blob("mmm_transactions", "x" * (MAX_CELL_CHARS + 1))
        sheet.append_row.assert_not_called()
