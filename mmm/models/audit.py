"""
Audit Models for MMM

Every ledger mutation, scan, and persistence attempt is recorded as an
audit event. This provides:
1. Traceability of what changed the ledger and when
2. Debugging information when a scan or save goes wrong
3. A record of failures the user is never shown (persistence is silent)

DESIGN DECISION: Audit events are append-only. We never modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clip(text: str, limit: int = 80) -> str:
    """Shorten free text for a one-line description."""
    return text if len(text) <= limit else text[:limit - 3] + "..."


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger mutations
    TRANSACTION_SAVED = "transaction_saved"
    TRANSACTION_REPLACED = "transaction_replaced"
    GROUP_ADDED = "group_added"
    GROUP_UPDATED = "group_updated"
    VALIDATION_FAILED = "validation_failed"

    # Receipt scanning
    SCAN_COMPLETED = "scan_completed"
    SCAN_FAILED = "scan_failed"
    SCAN_DISCARDED_STALE = "scan_discarded_stale"

    # Persistence
    LEDGER_LOADED = "ledger_loaded"
    LEDGER_SAVED = "ledger_saved"
    PERSISTENCE_FAILED = "persistence_failed"

    # Reports
    REPORT_EXPORTED = "report_exported"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'group', 'scan')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one scan request)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_saved(txn, replaced=False)
        event = AuditEventBuilder.scan_failed(error, correlation_id)
    """

    @staticmethod
    def transaction_saved(
        transaction_id: str,
        merchant: str,
        amount: float,
        replaced: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.TRANSACTION_REPLACED
                if replaced
                else AuditEventType.TRANSACTION_SAVED
            ),
            entity_type="transaction",
            entity_id=transaction_id,
            description=(
                f"Transaction {'replaced' if replaced else 'saved'}: "
                f"{_clip(merchant)} - {amount:,.2f}"
            ),
            details={
                "merchant": merchant,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def group_saved(
        group_id: str,
        name: str,
        budget: float,
        updated: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.GROUP_UPDATED
                if updated
                else AuditEventType.GROUP_ADDED
            ),
            entity_type="group",
            entity_id=group_id,
            description=f"Group {'updated' if updated else 'added'}: {_clip(name)}",
            details={
                "name": name,
                "budget": budget,
            },
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        entity_type: str,
        entity_id: Optional[str],
        issues: list[dict],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} rejected with {len(issues)} issues",
            details={
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def scan_completed(
        merchant: str,
        amount: float,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SCAN_COMPLETED,
            entity_type="scan",
            correlation_id=correlation_id,
            description=f"Slip scanned: {_clip(merchant)}",
            details={
                "merchant": merchant,
                "amount": amount,
            },
        )

    @staticmethod
    def scan_failed(
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SCAN_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="scan",
            correlation_id=correlation_id,
            description="Slip scan failed; returned fallback record",
        )

    @staticmethod
    def scan_discarded_stale(
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SCAN_DISCARDED_STALE,
            entity_type="scan",
            correlation_id=correlation_id,
            description="Scan result arrived after a newer request; discarded",
        )

    @staticmethod
    def ledger_loaded(
        transaction_count: int,
        group_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOADED,
            entity_type="ledger",
            description=(
                f"Ledger loaded: {transaction_count} transactions, "
                f"{group_count} groups"
            ),
            details={
                "transaction_count": transaction_count,
                "group_count": group_count,
            },
        )

    @staticmethod
    def ledger_saved(
        transaction_count: int,
        group_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_SAVED,
            severity=AuditSeverity.DEBUG,
            entity_type="ledger",
            description="Ledger saved",
            details={
                "transaction_count": transaction_count,
                "group_count": group_count,
            },
        )

    @staticmethod
    def persistence_failed(
        operation: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSISTENCE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            description=f"Ledger {operation} failed; in-memory state kept",
            error_message=error_message,
            details={
                "operation": operation,
            },
        )

    @staticmethod
    def report_exported(
        filename: str,
        row_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPORT_EXPORTED,
            entity_type="report",
            description=f"Report exported: {filename}",
            details={
                "filename": filename,
                "row_count": row_count,
            },
            is_user_action=True,
        )
