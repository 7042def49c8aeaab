"""
Main Orchestrator for MMM

This module ties together all the components and defines the
end-to-end flows for:
1. Entry (validate → mutate store → persist → audit)
2. Scan (image → Gemini → proposed data → stale check → entry form)
3. Views (snapshot → aggregation → dashboard / report / groups)
4. Export (report filter → CSV bytes + filename)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing reaches the store without validation
- A scan only ever proposes data; the user saves it through entry
- Persistence is fire-and-forget: a failed save is audited, never
  rolled back and never raised, so the in-memory ledger stays usable
- Every step is audited
"""

from typing import Any, Optional, Union
from uuid import UUID

import structlog
from pydantic import BaseModel, ConfigDict

from mmm.aggregation import Clock, TimeFilter, system_clock
from mmm.audit import AuditLogger, configure_logging
from mmm.config import StorageBackend, get_settings
from mmm.export import encode_csv, export_csv, report_filename
from mmm.ledger import LedgerSnapshot, LedgerStore
from mmm.models.ledger import GROUP_FILTER_ALL, Group, ScanResult, Transaction
from mmm.services.scan import GeminiSlipScanner, ScanRequestTracker
from mmm.services.storage import (
    GoogleSheetsBlobStore,
    InMemoryBlobStore,
    JsonFileBlobStore,
    LedgerStorageInterface,
    StorageError,
)
from mmm.validation import (
    InvalidGroup,
    InvalidTransaction,
    validate_group,
    validate_transaction,
)
from mmm.views import (
    DashboardModel,
    GroupBudgetRow,
    ReportModel,
    build_dashboard,
    build_group_overview,
    build_report,
)


class ScanOutcome(BaseModel):
    """A finished scan, tagged with the request token it answers."""
    model_config = ConfigDict(frozen=True)

    token: UUID
    result: ScanResult

    @property
    def is_fallback(self) -> bool:
        return self.result.is_fallback


class LedgerService:
    """
    Application service over one ledger.

    Flow for a receipt:
    1. scan_slip() → ScanOutcome (never raises)
    2. accept_scan() → the result, or None if a newer scan superseded it
    3. User edits the draft
    4. save_transaction() → validated, stored, persisted

    Without storage the ledger lives in memory only.
    """

    def __init__(
        self,
        store: Optional[LedgerStore] = None,
        storage: Optional[LedgerStorageInterface] = None,
        scanner: Optional[GeminiSlipScanner] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Clock = system_clock,
        recent_limit: int = 5,
    ):
        self._store = store or LedgerStore()
        self._storage = storage
        self._scanner = scanner
        self._audit_logger = audit_logger or AuditLogger()
        self._clock = clock
        self._recent_limit = recent_limit
        self._scan_tracker = ScanRequestTracker()
        self._logger = structlog.get_logger(__name__)

    @property
    def store(self) -> LedgerStore:
        return self._store

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit_logger

    def snapshot(self) -> LedgerSnapshot:
        return self._store.snapshot()

    def _get_scanner(self) -> GeminiSlipScanner:
        if self._scanner is None:
            self._scanner = GeminiSlipScanner(clock=self._clock)
        return self._scanner

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    async def load(self) -> LedgerSnapshot:
        """
        Replace the in-memory ledger with the persisted one.

        A storage failure is audited and leaves the current ledger as is.
        """
        if self._storage is None:
            return self.snapshot()

        try:
            transactions, groups = await self._storage.load()
        except StorageError as e:
            await self._audit_logger.log_persistence_failed("load", str(e))
            return self.snapshot()

        self._store = LedgerStore.from_state(transactions, groups)
        snapshot = self.snapshot()
        await self._audit_logger.log_ledger_loaded(
            len(snapshot.transactions),
            len(snapshot.groups),
        )
        return snapshot

    async def _persist(self, snapshot: LedgerSnapshot) -> bool:
        if self._storage is None:
            return True
        try:
            await self._storage.save(snapshot.transactions, snapshot.groups)
        except StorageError as e:
            await self._audit_logger.log_persistence_failed("save", str(e))
            return False
        await self._audit_logger.log_ledger_saved(
            len(snapshot.transactions),
            len(snapshot.groups),
        )
        return True

    # -------------------------------------------------------------------------
    # Entry
    # -------------------------------------------------------------------------

    async def save_transaction(
        self,
        data: Union[Transaction, dict[str, Any]],
    ) -> Transaction:
        """
        Save a new transaction, or replace the one with the same id.

        Raises:
            InvalidTransaction: Nothing was stored
        """
        try:
            transaction = validate_transaction(data, self.snapshot().groups)
            replaced = self._store.get_transaction(transaction.id) is not None
            snapshot = self._store.add_or_replace_transaction(transaction)
        except InvalidTransaction as e:
            await self._audit_logger.log_validation_failed(
                "transaction",
                _entity_id(data),
                e.issue_dicts(),
            )
            raise

        await self._audit_logger.log_transaction_saved(
            transaction_id=transaction.id,
            merchant=transaction.merchant,
            amount=transaction.amount,
            replaced=replaced,
        )
        await self._persist(snapshot)
        return transaction

    async def add_group(self, data: Union[Group, dict[str, Any]]) -> Group:
        """
        Create a group.

        Raises:
            InvalidGroup: Nothing was stored
            DuplicateError: The id is taken
        """
        try:
            group = validate_group(data)
            snapshot = self._store.add_group(group)
        except InvalidGroup as e:
            await self._audit_logger.log_validation_failed(
                "group", _entity_id(data), e.issue_dicts()
            )
            raise

        await self._audit_logger.log_group_saved(
            group.id, group.name, group.budget, updated=False
        )
        await self._persist(snapshot)
        return group

    async def update_group(self, data: Union[Group, dict[str, Any]]) -> Group:
        """
        Edit an existing group in place.

        Raises:
            InvalidGroup: Nothing was stored
            NotFoundError: No group has this id
        """
        try:
            group = validate_group(data)
            snapshot = self._store.update_group(group)
        except InvalidGroup as e:
            await self._audit_logger.log_validation_failed(
                "group", _entity_id(data), e.issue_dicts()
            )
            raise

        await self._audit_logger.log_group_saved(
            group.id, group.name, group.budget, updated=True
        )
        await self._persist(snapshot)
        return group

    # -------------------------------------------------------------------------
    # Scanning
    # -------------------------------------------------------------------------

    async def scan_slip(self, image_bytes: bytes, mime_type: str) -> ScanOutcome:
        """
        Scan a slip. Starting a scan supersedes any scan still in flight.

        Never raises; a failed scan yields the fallback result.
        """
        token = self._scan_tracker.begin()
        result = await self._get_scanner().scan_slip(image_bytes, mime_type)

        if result.is_fallback:
            await self._audit_logger.log_scan_failed(token)
        else:
            await self._audit_logger.log_scan_completed(
                result.merchant, result.amount, token
            )
        return ScanOutcome(token=token, result=result)

    async def accept_scan(self, outcome: ScanOutcome) -> Optional[ScanResult]:
        """
        The scan result to pre-fill the entry form with.

        Returns None when a newer scan started, or the form was reset,
        after this one began.
        """
        if self._scan_tracker.accept(outcome.token):
            return outcome.result
        await self._audit_logger.log_scan_discarded(outcome.token)
        return None

    def cancel_scan(self) -> None:
        """Entry form closed or reset: any pending scan result is stale."""
        self._scan_tracker.cancel()

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def dashboard(self) -> DashboardModel:
        return build_dashboard(self.snapshot(), recent_limit=self._recent_limit)

    def report(
        self,
        group_filter: str = GROUP_FILTER_ALL,
        time_filter: Union[TimeFilter, str] = TimeFilter.CURRENT_MONTH,
    ) -> ReportModel:
        return build_report(
            self.snapshot(),
            group_filter=group_filter,
            time_filter=time_filter,
            clock=self._clock,
        )

    def group_overview(self) -> list[GroupBudgetRow]:
        return build_group_overview(self.snapshot())

    async def export_report(
        self,
        group_filter: str = GROUP_FILTER_ALL,
        time_filter: Union[TimeFilter, str] = TimeFilter.CURRENT_MONTH,
    ) -> tuple[str, bytes]:
        """
        CSV download of the filtered report.

        Returns:
            (filename, file bytes with UTF-8 BOM)

        Raises:
            ExportError: If the filtered list is empty
        """
        report = self.report(group_filter, time_filter)
        text = export_csv(report.transactions, self.snapshot().groups)
        filename = report_filename(self._clock())
        await self._audit_logger.log_report_exported(
            filename, len(report.transactions)
        )
        return filename, encode_csv(text)


def _entity_id(data: Any) -> Optional[str]:
    if isinstance(data, (Transaction, Group)):
        return data.id
    if isinstance(data, dict):
        value = data.get("id")
        return str(value) if value is not None else None
    return None


def create_storage(
    backend: Optional[StorageBackend] = None,
) -> LedgerStorageInterface:
    """
    Build the configured storage backend.

    Google Sheets falls back to in-memory storage when it is not
    configured, so the app still runs.
    """
    settings = get_settings()
    storage_settings = settings.storage
    backend = StorageBackend(backend or storage_settings.backend)
    keys = {
        "transactions_key": storage_settings.transactions_key,
        "groups_key": storage_settings.groups_key,
    }

    if backend == StorageBackend.GOOGLE_SHEETS:
        try:
            return GoogleSheetsBlobStore(**keys)
        except Exception as e:
            structlog.get_logger(__name__).warning(
                "google_sheets_not_configured",
                error=str(e),
                fallback=StorageBackend.MEMORY.value,
            )
            return InMemoryBlobStore(**keys)
    if backend == StorageBackend.JSON:
        return JsonFileBlobStore(storage_settings.data_dir, **keys)
    return InMemoryBlobStore(**keys)


def create_ledger_service(
    backend: Optional[StorageBackend] = None,
    clock: Clock = system_clock,
) -> LedgerService:
    """
    Factory function to create the application service.

    Call ``await service.load()`` before first use to read persisted data.
    """
    settings = get_settings()
    configure_logging(settings.app.effective_log_level)

    return LedgerService(
        storage=create_storage(backend),
        audit_logger=AuditLogger(),
        clock=clock,
        recent_limit=settings.app.recent_transactions_limit,
    )
