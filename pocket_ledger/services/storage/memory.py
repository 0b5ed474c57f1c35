"""
In-Memory Storage Implementation

Dict-backed implementations of the storage interfaces. Used by the test
suite and as the default backend when no remote store is configured.

Each ledger key gets its own partition; nothing is shared between them.
Data lives for the lifetime of the process only.
"""

from collections import defaultdict
from typing import Optional
from uuid import UUID, uuid4

from pocket_ledger.models.account import Account
from pocket_ledger.models.audit import AuditEvent
from pocket_ledger.models.transaction import TransactionBase
from pocket_ledger.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LedgerConfigStorage,
    NotFoundError,
    TransactionLogStorage,
)


def _new_id() -> str:
    return uuid4().hex


class InMemoryTransactionLog(TransactionLogStorage):
    """Transaction log kept in a list per ledger key."""

    def __init__(self):
        self._logs: dict[str, list[TransactionBase]] = defaultdict(list)

    async def list_transactions(self, ledger_key: str) -> list[TransactionBase]:
        return list(self._logs[ledger_key])

    async def append_transaction(
        self,
        ledger_key: str,
        transaction: TransactionBase,
    ) -> TransactionBase:
        log = self._logs[ledger_key]
        if transaction.id is None:
            transaction = transaction.model_copy(update={"id": _new_id()})
        elif any(stored.id == transaction.id for stored in log):
            raise DuplicateError(f"Transaction already exists: {transaction.id}")

        log.append(transaction)
        return transaction

    async def delete_transaction(self, ledger_key: str, transaction_id: str) -> bool:
        log = self._logs[ledger_key]
        for index, stored in enumerate(log):
            if stored.id == transaction_id:
                del log[index]
                return True
        return False


class InMemoryLedgerConfig(LedgerConfigStorage):
    """Account registry, rate table and currency list per ledger key."""

    def __init__(self):
        self._accounts: dict[str, list[Account]] = defaultdict(list)
        self._rates: dict[str, dict[str, float]] = defaultdict(dict)
        self._currencies: dict[str, list[str]] = defaultdict(list)

    async def list_accounts(self, ledger_key: str) -> list[Account]:
        return list(self._accounts[ledger_key])

    async def add_account(self, ledger_key: str, name: str, currency: str) -> Account:
        account = Account(id=_new_id(), name=name, currency=currency)
        self._accounts[ledger_key].append(account)
        return account

    async def update_account(self, ledger_key: str, account: Account) -> Account:
        accounts = self._accounts[ledger_key]
        for index, stored in enumerate(accounts):
            if stored.id == account.id:
                accounts[index] = account
                return account
        raise NotFoundError(f"Account not found: {account.id}")

    async def remove_account(self, ledger_key: str, account_id: str) -> bool:
        accounts = self._accounts[ledger_key]
        for index, stored in enumerate(accounts):
            if stored.id == account_id:
                del accounts[index]
                return True
        return False

    async def get_exchange_rates(self, ledger_key: str) -> dict[str, float]:
        return dict(self._rates[ledger_key])

    async def set_exchange_rate(self, ledger_key: str, currency: str, rate: float) -> None:
        self._rates[ledger_key][currency.upper()] = float(rate)

    async def set_exchange_rates(self, ledger_key: str, rates: dict[str, float]) -> None:
        for currency, rate in rates.items():
            self._rates[ledger_key][currency.upper()] = float(rate)

    async def get_currencies(self, ledger_key: str) -> list[str]:
        return list(self._currencies[ledger_key])

    async def set_currencies(self, ledger_key: str, currencies: list[str]) -> None:
        self._currencies[ledger_key] = [code.upper() for code in currencies]


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log held in a single list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        matching = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(matching, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
        ledger_key: Optional[str] = None,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if ledger_key is None or e.ledger_key == ledger_key
        ]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
