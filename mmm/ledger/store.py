"""
Ledger Store

The single in-memory source of truth for transactions and groups.
All mutation passes through here.

DESIGN DECISION: State is an immutable LedgerSnapshot that is swapped
whole on every successful mutation (copy-on-write):
1. Readers never see a half-applied change
2. snapshot() needs no lock
3. A failed mutation leaves the previous snapshot in place

Writers are serialised through one lock, so the store is safe to share
between a UI thread and background work.

Ordering conventions:
- Transactions: newest insertion first. A brand new transaction goes to
  index 0 whatever its date; a replacement keeps its position.
- Groups: insertion order, which is also display order.
"""

import threading
from collections.abc import Iterable, Mapping
from typing import Any, Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict

from mmm.models.ledger import Group, Ownership, Transaction
from mmm.validation import LedgerError, validate_group, validate_transaction


class NotFoundError(LedgerError):
    """Update targeted an id that is not in the ledger."""
    pass


class DuplicateError(LedgerError):
    """Attempted to add an entity whose id already exists."""
    pass


class LedgerSnapshot(BaseModel):
    """
    A consistent, read-only view of both ledger collections.

    The aggregation engine and view selector only ever read snapshots.
    """
    model_config = ConfigDict(frozen=True)

    transactions: tuple[Transaction, ...] = ()
    groups: tuple[Group, ...] = ()

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        for transaction in self.transactions:
            if transaction.id == transaction_id:
                return transaction
        return None

    def get_group(self, group_id: str) -> Optional[Group]:
        for group in self.groups:
            if group.id == group_id:
                return group
        return None


def _index_of(entities: tuple, entity_id: str) -> Optional[int]:
    for idx, entity in enumerate(entities):
        if entity.id == entity_id:
            return idx
    return None


def _last_write_wins(entities: Iterable) -> tuple:
    """Collapse duplicate ids: first position, last value."""
    by_id: dict[str, Any] = {}
    for entity in entities:
        by_id[entity.id] = entity
    return tuple(by_id.values())


class LedgerStore:
    """
    In-memory ledger with invariant-preserving mutations.

    Every mutation validates first and returns the new snapshot.
    On failure the exception propagates and the store is unchanged.
    """

    def __init__(
        self,
        transactions: Iterable[Transaction] = (),
        groups: Iterable[Group] = (),
    ):
        self._lock = threading.Lock()
        self._snapshot = LedgerSnapshot(
            transactions=_last_write_wins(transactions),
            groups=_last_write_wins(groups),
        )
        self._logger = structlog.get_logger(__name__)

    @classmethod
    def from_state(
        cls,
        transactions: Iterable[Transaction],
        groups: Iterable[Group],
    ) -> "LedgerStore":
        """
        Seed a store from persisted state.

        Duplicate ids collapse with the last record winning. A group transaction whose group is gone
        is loaded as personal so it can still be edited and saved.
        """
        groups = _last_write_wins(groups)
        group_ids = {group.id for group in groups}
        logger = structlog.get_logger(__name__)

        loaded = []
        for transaction in transactions:
            if (
                transaction.ownership == Ownership.GROUP
                and transaction.group_id not in group_ids
            ):
                logger.warning(
                    "dangling_group_reference",
                    transaction_id=transaction.id,
                    group_id=transaction.group_id,
                )
                transaction = transaction.model_copy(
                    update={"ownership": Ownership.PERSONAL, "group_id": None}
                )
            loaded.append(transaction)
        return cls(transactions=loaded, groups=groups)

    def snapshot(self) -> LedgerSnapshot:
        """Current consistent view of both collections."""
        return self._snapshot

    def add_or_replace_transaction(
        self,
        data: Union[Transaction, Mapping[str, Any]],
    ) -> LedgerSnapshot:
        """
        Insert a new transaction at the front, or replace one in place.

        Raises:
            InvalidTransaction: The store is unchanged
        """
        with self._lock:
            current = self._snapshot
            transaction = validate_transaction(data, current.groups)

            idx = _index_of(current.transactions, transaction.id)
            if idx is None:
                transactions = (transaction,) + current.transactions
            else:
                transactions = (
                    current.transactions[:idx]
                    + (transaction,)
                    + current.transactions[idx + 1:]
                )

            self._snapshot = current.model_copy(
                update={"transactions": transactions}
            )
            self._logger.debug(
                "transaction_stored",
                transaction_id=transaction.id,
                replaced=idx is not None,
                position=0 if idx is None else idx,
            )
            return self._snapshot

    def add_group(
        self,
        data: Union[Group, Mapping[str, Any]],
    ) -> LedgerSnapshot:
        """
        Append a new group.

        Raises:
            InvalidGroup: The store is unchanged
            DuplicateError: A group with this id already exists
        """
        with self._lock:
            current = self._snapshot
            group = validate_group(data)

            if _index_of(current.groups, group.id) is not None:
                raise DuplicateError(f"Group already exists: {group.id}")

            self._snapshot = current.model_copy(
                update={"groups": current.groups + (group,)}
            )
            self._logger.debug("group_added", group_id=group.id)
            return self._snapshot

    def update_group(
        self,
        data: Union[Group, Mapping[str, Any]],
    ) -> LedgerSnapshot:
        """
        Replace the group with the same id, keeping its position.

        Raises:
            InvalidGroup: The store is unchanged
            NotFoundError: No group has this id
        """
        with self._lock:
            current = self._snapshot
            group = validate_group(data)

            idx = _index_of(current.groups, group.id)
            if idx is None:
                raise NotFoundError(f"Group not found: {group.id}")

            groups = current.groups[:idx] + (group,) + current.groups[idx + 1:]
            self._snapshot = current.model_copy(update={"groups": groups})
            self._logger.debug("group_updated", group_id=group.id)
            return self._snapshot

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return self._snapshot.get_transaction(transaction_id)

    def get_group(self, group_id: str) -> Optional[Group]:
        return self._snapshot.get_group(group_id)
