"""Tests for in-memory storage and the audit logger."""

import asyncio
from datetime import date
from uuid import uuid4

import pytest

from pocket_ledger.audit import AuditLogger, create_correlation_id
from pocket_ledger.models.account import Account
from pocket_ledger.models.audit import AuditEventBuilder, AuditEventType
from pocket_ledger.models.transaction import ExpenseTransaction
from pocket_ledger.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryLedgerConfig,
    InMemoryTransactionLog,
    NotFoundError,
    StorageError,
)


def expense(amount=10.0, tx_id=None):
    return ExpenseTransaction(
        id=tx_id,
        amount=amount,
        from_account="cash",
        event_date=date(2024, 5, 1),
    )


class TestInMemoryTransactionLog:
    """Tests for the transaction log backend."""

    def test_append_assigns_id(self):
        """Test stored transactions get an id."""
        log = InMemoryTransactionLog()
        stored = asyncio.run(log.append_transaction("ledger-1", expense()))
        assert stored.id
        assert asyncio.run(log.list_transactions("ledger-1")) == [stored]

    def test_duplicate_id_rejected(self):
        """Test an id cannot be stored twice."""
        log = InMemoryTransactionLog()
        asyncio.run(log.append_transaction("ledger-1", expense(tx_id="t1")))
        with pytest.raises(DuplicateError):
            asyncio.run(log.append_transaction("ledger-1", expense(tx_id="t1")))

    def test_ledgers_are_partitioned(self):
        """Test ledger keys never see each other's data."""
        log = InMemoryTransactionLog()
        asyncio.run(log.append_transaction("ledger-1", expense()))
        assert asyncio.run(log.list_transactions("ledger-2")) == []

    def test_delete(self):
        """Test delete reports whether anything was removed."""
        log = InMemoryTransactionLog()
        stored = asyncio.run(log.append_transaction("ledger-1", expense()))
        assert asyncio.run(log.delete_transaction("ledger-1", stored.id)) is True
        assert asyncio.run(log.delete_transaction("ledger-1", stored.id)) is False
        assert asyncio.run(log.list_transactions("ledger-1")) == []


class TestInMemoryLedgerConfig:
    """Tests for the configuration backend."""

    def test_accounts(self):
        """Test add, update and remove of accounts."""
        storage = InMemoryLedgerConfig()
        account = asyncio.run(storage.add_account("ledger-1", "Wallet", "usd"))
        assert account.currency == "USD"

        renamed = Account(id=account.id, name="Travel wallet", currency="USD")
        asyncio.run(storage.update_account("ledger-1", renamed))
        assert asyncio.run(storage.list_accounts("ledger-1")) == [renamed]

        assert asyncio.run(storage.remove_account("ledger-1", account.id)) is True
        assert asyncio.run(storage.list_accounts("ledger-1")) == []

    def test_update_missing_account(self):
        """Test updating an unknown account raises NotFoundError."""
        storage = InMemoryLedgerConfig()
        with pytest.raises(NotFoundError):
            asyncio.run(storage.update_account("ledger-1", Account(id="x", name="X")))

    def test_rates_merge(self):
        """Test rate updates merge into the table."""
        storage = InMemoryLedgerConfig()
        asyncio.run(storage.set_exchange_rate("ledger-1", "usd", 31.5))
        asyncio.run(storage.set_exchange_rates("ledger-1", {"AUD": 21.0}))
        assert asyncio.run(storage.get_exchange_rates("ledger-1")) == {"USD": 31.5, "AUD": 21.0}

    def test_currencies(self):
        """Test the currency list is replaced as a whole."""
        storage = InMemoryLedgerConfig()
        assert asyncio.run(storage.get_currencies("ledger-1")) == []
        asyncio.run(storage.set_currencies("ledger-1", ["TWD", "jpy"]))
        assert asyncio.run(storage.get_currencies("ledger-1")) == ["TWD", "JPY"]


class FailingAuditStorage(AuditStorageInterface):
    async def append_event(self, event):
        raise StorageError("disk full")

    async def get_events_by_correlation_id(self, correlation_id):
        return []

    async def get_recent_events(self, limit=100, ledger_key=None):
        return []


class TestAuditLogger:
    """Tests for the audit logger."""

    def test_local_only(self):
        """Test logging without storage succeeds."""
        logger = AuditLogger()
        event = AuditEventBuilder.currency_added("ledger-1", "JPY")
        assert asyncio.run(logger.log(event)) is True

    def test_persists_events(self):
        """Test events reach storage and can be found by correlation id."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()

        asyncio.run(logger.log_import_completed("ledger-1", 3, 0, correlation_id))
        asyncio.run(logger.log_transaction_deleted("ledger-1", "t1", found=False))

        related = asyncio.run(storage.get_events_by_correlation_id(correlation_id))
        assert [e.event_type for e in related] == [AuditEventType.IMPORT_COMPLETED]

        recent = asyncio.run(storage.get_recent_events())
        assert len(recent) == 2
        assert recent[0].timestamp >= recent[1].timestamp
        assert asyncio.run(storage.get_recent_events(limit=1))[0] in recent

    def test_recent_events_by_ledger(self):
        """Test recent events can be narrowed to one ledger."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        asyncio.run(logger.log(AuditEventBuilder.currency_added("ledger-1", "JPY")))
        asyncio.run(logger.log(AuditEventBuilder.currency_added("ledger-2", "USD")))

        events = asyncio.run(storage.get_recent_events(ledger_key="ledger-2"))
        assert [e.entity_id for e in events] == ["USD"]

    def test_storage_failure_does_not_raise(self):
        """Test a failing audit backend returns False instead of raising."""
        logger = AuditLogger(FailingAuditStorage())
        event = AuditEventBuilder.system_error("boom", "details")
        assert asyncio.run(logger.log(event)) is False

    def test_correlation_ids_unique(self):
        """Test correlation ids are fresh UUIDs."""
        assert create_correlation_id() != create_correlation_id()
        assert isinstance(create_correlation_id(), type(uuid4()))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
