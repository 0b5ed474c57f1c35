"""
Audit Models for Pocket Ledger

Every change to a ledger is logged for audit purposes.
This provides:
1. Traceability of every append and delete on the transaction log
2. Debugging information when an import skips rows
3. A history of account, currency and rate changes

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from pocket_ledger.models.transaction import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Transaction log
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_DELETED = "transaction_deleted"
    TRANSACTION_REJECTED = "transaction_rejected"

    # Configuration
    ACCOUNT_ADDED = "account_added"
    ACCOUNT_UPDATED = "account_updated"
    ACCOUNT_REMOVED = "account_removed"
    CURRENCY_ADDED = "currency_added"
    RATE_SET = "rate_set"
    RATES_REFRESHED = "rates_refreshed"
    SYNC_KEY_CHANGED = "sync_key_changed"

    # Bulk import/export
    IMPORT_COMPLETED = "import_completed"
    EXPORT_COMPLETED = "export_completed"

    # Reads
    QUERY_EXECUTED = "query_executed"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


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

    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context
    ledger_key: Optional[str] = Field(
        default=None,
        description="Ledger (sync key) the event belongs to"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'account', 'rate')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one CSV import)"
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

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "ledger_key": self.ledger_key,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_row(self) -> list:
        """
        Convert to a flat row for tabular audit storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, ledger_key, entity_type,
         entity_id, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.ledger_key or "",
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, ensure_ascii=False) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_added(ledger_key, tx_id, "expense", 120.0)
        event = AuditEventBuilder.import_completed(ledger_key, 40, 2, correlation_id)
    """

    @staticmethod
    def transaction_added(
        ledger_key: str,
        transaction_id: str,
        transaction_type: str,
        amount: float,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            ledger_key=ledger_key,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"{transaction_type.capitalize()} of {amount:,.2f} recorded",
            details={
                "type": transaction_type,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        ledger_key: str,
        transaction_id: str,
        found: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            severity=AuditSeverity.INFO if found else AuditSeverity.WARNING,
            ledger_key=ledger_key,
            entity_type="transaction",
            entity_id=transaction_id,
            description=(
                "Transaction deleted" if found
                else "Delete requested for a transaction that does not exist"
            ),
            details={"found": found},
            is_user_action=True,
        )

    @staticmethod
    def transaction_rejected(
        ledger_key: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_REJECTED,
            severity=AuditSeverity.WARNING,
            ledger_key=ledger_key,
            entity_type="transaction",
            correlation_id=correlation_id,
            description=f"Transaction rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def account_added(
        ledger_key: str,
        account_id: str,
        name: str,
        currency: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_ADDED,
            ledger_key=ledger_key,
            entity_type="account",
            entity_id=account_id,
            description=f"Account added: {name} ({currency})",
            details={"name": name, "currency": currency},
            is_user_action=True,
        )

    @staticmethod
    def account_updated(
        ledger_key: str,
        account_id: str,
        changes: dict[str, Any],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_UPDATED,
            ledger_key=ledger_key,
            entity_type="account",
            entity_id=account_id,
            description=f"Account updated: {', '.join(sorted(changes)) or 'no changes'}",
            details={"changes": changes},
            is_user_action=True,
        )

    @staticmethod
    def account_removed(
        ledger_key: str,
        account_id: str,
        referencing_transactions: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_REMOVED,
            severity=(
                AuditSeverity.WARNING if referencing_transactions
                else AuditSeverity.INFO
            ),
            ledger_key=ledger_key,
            entity_type="account",
            entity_id=account_id,
            description=(
                f"Account removed; {referencing_transactions} transactions "
                "still reference it"
            ),
            details={"referencing_transactions": referencing_transactions},
            is_user_action=True,
        )

    @staticmethod
    def currency_added(ledger_key: str, currency: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CURRENCY_ADDED,
            ledger_key=ledger_key,
            entity_type="currency",
            entity_id=currency,
            description=f"Currency added: {currency}",
            is_user_action=True,
        )

    @staticmethod
    def rate_set(ledger_key: str, currency: str, rate: float) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATE_SET,
            ledger_key=ledger_key,
            entity_type="rate",
            entity_id=currency,
            description=f"Exchange rate for {currency} set to {rate}",
            details={"currency": currency, "rate": rate},
            is_user_action=True,
        )

    @staticmethod
    def rates_refreshed(
        ledger_key: str,
        rates: dict[str, float],
        missing: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATES_REFRESHED,
            severity=AuditSeverity.WARNING if missing else AuditSeverity.INFO,
            ledger_key=ledger_key,
            entity_type="rate",
            description=f"Exchange rates refreshed for {len(rates)} currencies",
            details={"rates": rates, "missing": missing},
            is_user_action=True,
        )

    @staticmethod
    def sync_key_changed(old_key: str, new_key: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_KEY_CHANGED,
            ledger_key=new_key,
            entity_type="ledger",
            entity_id=new_key,
            description="Switched to a different ledger",
            details={"previous_key": old_key},
            is_user_action=True,
        )

    @staticmethod
    def import_completed(
        ledger_key: str,
        imported: int,
        skipped: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_COMPLETED,
            severity=AuditSeverity.WARNING if skipped else AuditSeverity.INFO,
            ledger_key=ledger_key,
            entity_type="import",
            correlation_id=correlation_id,
            description=f"Imported {imported} transactions, skipped {skipped} rows",
            details={"imported": imported, "skipped": skipped},
            is_user_action=True,
        )

    @staticmethod
    def export_completed(ledger_key: str, row_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_COMPLETED,
            ledger_key=ledger_key,
            entity_type="export",
            description=f"Exported {row_count} transactions",
            details={"rows": row_count},
            is_user_action=True,
        )

    @staticmethod
    def query_executed(
        ledger_key: str,
        query_id: UUID,
        result_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUERY_EXECUTED,
            severity=AuditSeverity.DEBUG,
            ledger_key=ledger_key,
            entity_type="query",
            entity_id=str(query_id),
            description=f"History query returned {result_count} results",
            details={"result_count": result_count},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        ledger_key: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            ledger_key=ledger_key,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        ledger_key: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            ledger_key=ledger_key,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
        )
