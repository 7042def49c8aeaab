"""
Audit Logger

DESIGN DECISION: Every ledger mutation, scan and persistence attempt is
logged. This provides:
1. Traceability of what changed the ledger
2. Debugging capability when a scan or a save goes wrong
3. A record of persistence failures, which the user is never shown

The audit logger:
- Is async so callers in the service flow can await it uniformly
- Never raises: a logging failure must not break a save
- Keeps a bounded in-memory trail of recent events for inspection
- Supports correlation IDs to trace related events (one scan request)
"""

import logging
from collections import deque
from typing import Optional
from uuid import UUID, uuid4

import structlog

from mmm.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(log_level: str = "INFO") -> None:
    """Route the stdlib root logger (and so structlog) at ``log_level``."""
    logging.basicConfig(format="%(message)s", level=log_level.upper())
    logging.getLogger().setLevel(log_level.upper())


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (JSON lines via structlog)
    2. An in-memory trail of the most recent events
    """

    def __init__(self, max_recent: int = 200):
        """
        Args:
            max_recent: How many events the in-memory trail keeps
        """
        self._recent: deque[AuditEvent] = deque(maxlen=max_recent)
        self._logger = structlog.get_logger(__name__)

    @property
    def recent_events(self) -> list[AuditEvent]:
        """Recorded events, oldest first."""
        return list(self._recent)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True if the event was recorded.
        """
        self._recent.append(event)
        try:
            log_dict = event.to_log_dict()
            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            # A broken log sink must not fail the ledger operation
            logging.getLogger(__name__).error(
                "audit log write failed for %s: %s", event.event_id, e
            )
            return False
        return True

    async def log_transaction_saved(
        self,
        transaction_id: str,
        merchant: str,
        amount: float,
        replaced: bool,
    ) -> None:
        """Log a transaction insert or replacement."""
        await self.log(AuditEventBuilder.transaction_saved(
            transaction_id=transaction_id,
            merchant=merchant,
            amount=amount,
            replaced=replaced,
        ))

    async def log_group_saved(
        self,
        group_id: str,
        name: str,
        budget: float,
        updated: bool,
    ) -> None:
        await self.log(AuditEventBuilder.group_saved(
            group_id=group_id,
            name=name,
            budget=budget,
            updated=updated,
        ))

    async def log_validation_failed(
        self,
        entity_type: str,
        entity_id: Optional[str],
        issues: list[dict],
    ) -> None:
        """Log a rejected mutation."""
        await self.log(AuditEventBuilder.validation_failed(
            entity_type=entity_type,
            entity_id=entity_id,
            issues=issues,
        ))

    async def log_scan_completed(
        self,
        merchant: str,
        amount: float,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.scan_completed(
            merchant=merchant,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_scan_failed(self, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.scan_failed(correlation_id))

    async def log_scan_discarded(self, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.scan_discarded_stale(correlation_id))

    async def log_ledger_loaded(self, transaction_count: int, group_count: int) -> None:
        await self.log(AuditEventBuilder.ledger_loaded(transaction_count, group_count))

    async def log_ledger_saved(self, transaction_count: int, group_count: int) -> None:
        await self.log(AuditEventBuilder.ledger_saved(transaction_count, group_count))

    async def log_persistence_failed(self, operation: str, error_message: str) -> None:
        """Log a failed load or save; the in-memory ledger is unaffected."""
        await self.log(AuditEventBuilder.persistence_failed(
            operation=operation,
            error_message=error_message,
        ))

    async def log_report_exported(self, filename: str, row_count: int) -> None:
        await self.log(AuditEventBuilder.report_exported(filename, row_count))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., a slip scan) and pass
    it through all subsequent operations.
    """
    return uuid4()
