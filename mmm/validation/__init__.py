"""Validation package."""

from mmm.validation.validator import (
    InvalidGroup,
    InvalidTransaction,
    LedgerError,
    validate_group,
    validate_transaction,
)

__all__ = [
    "InvalidGroup",
    "InvalidTransaction",
    "LedgerError",
    "validate_group",
    "validate_transaction",
]
