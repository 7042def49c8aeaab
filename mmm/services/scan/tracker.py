"""
Stale scan guard.

A scan can take seconds. If the user starts another scan, or leaves the
entry form, before it finishes, the late result must not overwrite what
the form now shows. Each scan gets a token; only the result for the most
recent token is accepted.
"""

import threading
from typing import Optional
from uuid import UUID

from mmm.audit import create_correlation_id
from mmm.models.ledger import (
    Ownership,
    ScanResult,
    Transaction,
    TransactionType,
)
from mmm.validation import validate_transaction


class ScanRequestTracker:
    """Issues scan tokens and tells whether a token is still current."""

    def __init__(self):
        self._lock = threading.Lock()
        self._current: Optional[UUID] = None

    def begin(self) -> UUID:
        """Start a scan, superseding any scan in flight."""
        token = create_correlation_id()
        with self._lock:
            self._current = token
        return token

    def is_current(self, token: UUID) -> bool:
        with self._lock:
            return self._current == token

    def accept(self, token: UUID) -> bool:
        """
        Claim the result for ``token``.

        Returns True once for the current token and clears it, so the
        same result cannot be applied twice.
        """
        with self._lock:
            if self._current is None or self._current != token:
                return False
            self._current = None
            return True

    def cancel(self) -> None:
        """Discard whatever scan is in flight (form closed or reset)."""
        with self._lock:
            self._current = None


def draft_from_scan(
    result: ScanResult,
    ownership: Ownership = Ownership.PERSONAL,
    group_id: Optional[str] = None,
    type: TransactionType = TransactionType.EXPENSE,
    slip_url: Optional[str] = None,
) -> Transaction:
    """
    Pre-fill an unsaved transaction from a scan.

    The draft gets a fresh id; saving it inserts a new record.

    Raises:
        InvalidTransaction: If the ownership/group combination is invalid
    """
    return validate_transaction({
        "date": result.date,
        "merchant": result.merchant,
        "amount": result.amount,
        "type": type,
        "ownership": ownership,
        "group_id": group_id,
        "category": result.category,
        "items": tuple(result.items),
        "slip_url": slip_url,
    })
