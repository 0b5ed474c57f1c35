"""
Audit Logger

DESIGN DECISION: Every change to a ledger is logged.
This provides:
1. Traceability of appends and deletes on the transaction log
2. Debugging capability when imports skip rows
3. A history of account, currency and rate changes

The audit logger:
- Is async to match the storage interfaces
- Gracefully handles failures (an audit write never breaks a ledger operation)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from pocket_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from pocket_ledger.models.validation import ValidationIssue
from pocket_ledger.services.storage import AuditStorageInterface


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


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence), when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_transaction_added(
        self,
        ledger_key: str,
        transaction_id: str,
        transaction_type: str,
        amount: float,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a transaction appended to the log."""
        event = AuditEventBuilder.transaction_added(
            ledger_key=ledger_key,
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_deleted(
        self,
        ledger_key: str,
        transaction_id: str,
        found: bool,
    ) -> None:
        event = AuditEventBuilder.transaction_deleted(
            ledger_key=ledger_key,
            transaction_id=transaction_id,
            found=found,
        )
        await self.log(event)

    async def log_transaction_rejected(
        self,
        ledger_key: str,
        issues: list[ValidationIssue],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a submission that failed validation."""
        event = AuditEventBuilder.transaction_rejected(
            ledger_key=ledger_key,
            issues=[issue.model_dump() for issue in issues],
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_import_completed(
        self,
        ledger_key: str,
        imported: int,
        skipped: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.import_completed(
            ledger_key=ledger_key,
            imported=imported,
            skipped=skipped,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_query_executed(
        self,
        ledger_key: str,
        query_id: UUID,
        result_count: int,
    ) -> None:
        """Log query execution."""
        event = AuditEventBuilder.query_executed(
            ledger_key=ledger_key,
            query_id=query_id,
            result_count=result_count,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        ledger_key: Optional[str] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            ledger_key=ledger_key,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        ledger_key: Optional[str] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            ledger_key=ledger_key,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a multi-step action (e.g., a CSV import).
    Pass it through all subsequent operations.
    """
    return uuid4()
