"""
Data Models Package

This package contains all Pydantic models used in MMM.
All data flowing through the ledger must conform to these schemas.
"""

from mmm.models.ledger import (
    DEFAULT_CATEGORY,
    GROUP_FILTER_ALL,
    GROUP_FILTER_PERSONAL,
    RESERVED_GROUP_IDS,
    SCAN_ERROR_MERCHANT,
    SUGGESTED_CATEGORIES,
    Group,
    Ownership,
    ScanResult,
    Transaction,
    TransactionType,
    ValidationIssue,
    group_to_storage_dict,
    new_id,
)
from mmm.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "DEFAULT_CATEGORY",
    "GROUP_FILTER_ALL",
    "GROUP_FILTER_PERSONAL",
    "RESERVED_GROUP_IDS",
    "SCAN_ERROR_MERCHANT",
    "SUGGESTED_CATEGORIES",
    "Group",
    "Ownership",
    "ScanResult",
    "Transaction",
    "TransactionType",
    "ValidationIssue",
    "group_to_storage_dict",
    "new_id",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
