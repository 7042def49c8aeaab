"""
Abstract Storage Interface

DESIGN DECISION: The ledger is persisted as two JSON blobs, one per
collection, under two logical keys (transactions ledger, groups ledger).
This allows us to:
1. Swap local files for Google Sheets (or anything that stores text by key)
2. Use in-memory storage for testing
3. Keep the ledger core free of any storage concern

Persistence is last-write-wins with no transactionality: save() rewrites
both blobs from the current snapshot. Blob reads and writes run in a worker
thread so a slow backend never blocks the event loop; saves are serialised
so two snapshots never interleave their blobs.

Loading is lenient. Blobs written by older versions, or edited by hand,
may hold records that no longer validate. An invalid transaction is
skipped and logged; a group whose only fault is its budget is kept as-is
so that budget checks flag it instead of the group silently vanishing.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any, Optional

import structlog
from pydantic import ValidationError

from mmm.models.ledger import Group, Transaction, group_to_storage_dict


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger persistence.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def load(self) -> tuple[list[Transaction], list[Group]]:
        """
        Load both collections.

        Returns:
            (transactions, groups); empty lists when nothing was saved yet

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def save(
        self,
        transactions: Sequence[Transaction],
        groups: Sequence[Group],
    ) -> bool:
        """
        Persist both collections, replacing what was stored.

        Returns:
            True if saved successfully

        Raises:
            StorageError: If save fails
        """
        pass


class BlobLedgerStorage(LedgerStorageInterface):
    """
    Ledger storage over a key/value text store.

    Subclasses provide _read_blob / _write_blob; this class owns the JSON
    encoding of the two collections.
    """

    def __init__(self, transactions_key: str, groups_key: str):
        self.transactions_key = transactions_key
        self.groups_key = groups_key
        self._save_lock = asyncio.Lock()
        self._logger = structlog.get_logger(__name__)

    @abstractmethod
    def _read_blob(self, key: str) -> Optional[str]:
        """Stored text for ``key``, or None when absent."""
        pass

    @abstractmethod
    def _write_blob(self, key: str, value: str) -> None:
        """Replace the text stored under ``key``."""
        pass

    async def load(self) -> tuple[list[Transaction], list[Group]]:
        try:
            raw_transactions = await asyncio.to_thread(
                self._read_blob, self.transactions_key
            )
            raw_groups = await asyncio.to_thread(self._read_blob, self.groups_key)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read ledger: {e}") from e

        transactions = [
            t for t in (
                self._decode_transaction(record)
                for record in self._decode_array(raw_transactions, self.transactions_key)
            )
            if t is not None
        ]
        groups = [
            g for g in (
                self._decode_group(record)
                for record in self._decode_array(raw_groups, self.groups_key)
            )
            if g is not None
        ]
        return transactions, groups

    async def save(
        self,
        transactions: Sequence[Transaction],
        groups: Sequence[Group],
    ) -> bool:
        transactions_json = json.dumps(
            [t.to_storage_dict() for t in transactions],
            ensure_ascii=False,
        )
        groups_json = json.dumps(
            [group_to_storage_dict(g) for g in groups],
            ensure_ascii=False,
        )
        try:
            async with self._save_lock:
                await asyncio.to_thread(
                    self._write_blob, self.transactions_key, transactions_json
                )
                await asyncio.to_thread(
                    self._write_blob, self.groups_key, groups_json
                )
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save ledger: {e}") from e

    def _decode_array(self, raw: Optional[str], key: str) -> list[Any]:
        if raw is None or not raw.strip():
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptDataError(f"Blob '{key}' is not valid JSON: {e}") from e
        if not isinstance(data, list):
            raise CorruptDataError(f"Blob '{key}' must hold a JSON array")
        return data

    def _decode_transaction(self, record: Any) -> Optional[Transaction]:
        try:
            return Transaction.model_validate(record)
        except ValidationError as e:
            self._logger.warning(
                "stored_transaction_skipped",
                record_id=record.get("id") if isinstance(record, dict) else None,
                error_count=e.error_count(),
            )
            return None

    def _decode_group(self, record: Any) -> Optional[Group]:
        try:
            return Group.model_validate(record)
        except ValidationError as e:
            group = _group_with_unchecked_budget(record)
            self._logger.warning(
                "stored_group_invalid",
                record_id=record.get("id") if isinstance(record, dict) else None,
                kept=group is not None,
                error_count=e.error_count(),
            )
            return group


def _group_with_unchecked_budget(record: Any) -> Optional[Group]:
    """Keep a stored group whose budget fails validation but is a number."""
    if not isinstance(record, dict):
        return None
    try:
        budget = float(record.get("budget"))
    except (TypeError, ValueError):
        return None
    try:
        # Validate everything except the budget
        checked = Group.model_validate({**record, "budget": 1})
    except ValidationError:
        return None
    return Group.model_construct(
        id=checked.id,
        name=checked.name,
        budget=budget,
        members=checked.members,
        icon=checked.icon,
    )


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class CorruptDataError(StorageError):
    """A stored blob could not be decoded."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
