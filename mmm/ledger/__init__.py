"""Ledger store package."""

from mmm.ledger.store import (
    DuplicateError,
    LedgerSnapshot,
    LedgerStore,
    NotFoundError,
)

__all__ = [
    "DuplicateError",
    "LedgerSnapshot",
    "LedgerStore",
    "NotFoundError",
]
