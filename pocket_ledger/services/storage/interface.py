"""
Abstract Storage Interface

DESIGN DECISION: We define abstract interfaces for the storage collaborators.
This allows us to:
1. Plug in any backend (document store, spreadsheet, SQL) later
2. Use in-memory storage for testing
3. Keep the engines completely free of I/O

Every ledger is partitioned by its ledger key (the user's sync key).
The transaction log is append/delete only; there is no update.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from pocket_ledger.models.account import Account
from pocket_ledger.models.audit import AuditEvent
from pocket_ledger.models.transaction import TransactionBase


class TransactionLogStorage(ABC):
    """
    Abstract interface for the transaction log.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def list_transactions(self, ledger_key: str) -> list[TransactionBase]:
        """
        Read the whole log for a ledger.

        Args:
            ledger_key: Partition to read

        Returns:
            All transactions, oldest submission first
        """
        pass

    @abstractmethod
    async def append_transaction(
        self,
        ledger_key: str,
        transaction: TransactionBase,
    ) -> TransactionBase:
        """
        Append one transaction.

        Args:
            ledger_key: Partition to write
            transaction: The transaction to store; an id is assigned
                if it has none

        Returns:
            The stored transaction, carrying its id

        Raises:
            DuplicateError: If a stored transaction already has this id
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_transaction(self, ledger_key: str, transaction_id: str) -> bool:
        """
        Delete a transaction by id. Irreversible.

        Returns:
            True if a transaction was deleted, False if none matched
        """
        pass


class LedgerConfigStorage(ABC):
    """
    Abstract interface for a ledger's account registry and rate table.
    """

    @abstractmethod
    async def list_accounts(self, ledger_key: str) -> list[Account]:
        """Registered accounts; empty if the user has not created any."""
        pass

    @abstractmethod
    async def add_account(self, ledger_key: str, name: str, currency: str) -> Account:
        """
        Register an account.

        Returns:
            The stored account, carrying its storage-assigned id
        """
        pass

    @abstractmethod
    async def update_account(self, ledger_key: str, account: Account) -> Account:
        """
        Replace an account's name and currency.

        Raises:
            NotFoundError: If no account has this id
        """
        pass

    @abstractmethod
    async def remove_account(self, ledger_key: str, account_id: str) -> bool:
        """
        Remove an account. Transactions referencing it are left untouched.

        Returns:
            True if an account was removed
        """
        pass

    @abstractmethod
    async def get_exchange_rates(self, ledger_key: str) -> dict[str, float]:
        """Current rate table (currency code -> base-currency units)."""
        pass

    @abstractmethod
    async def set_exchange_rate(self, ledger_key: str, currency: str, rate: float) -> None:
        """Set a single rate."""
        pass

    @abstractmethod
    async def set_exchange_rates(self, ledger_key: str, rates: dict[str, float]) -> None:
        """Merge several rates into the table."""
        pass

    @abstractmethod
    async def get_currencies(self, ledger_key: str) -> list[str]:
        """Currencies the user has enabled; empty if never set."""
        pass

    @abstractmethod
    async def set_currencies(self, ledger_key: str, currencies: list[str]) -> None:
        """Replace the enabled currency list."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one CSV import).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
        ledger_key: Optional[str] = None,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events, optionally for one ledger.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass
