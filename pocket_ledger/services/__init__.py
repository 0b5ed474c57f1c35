"""Services package."""

from pocket_ledger.services.rates import (
    ExchangeRateService,
    RateFetchError,
    RateServiceError,
)
from pocket_ledger.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryLedgerConfig,
    InMemoryTransactionLog,
    LedgerConfigStorage,
    NotFoundError,
    StorageError,
    TransactionLogStorage,
)

__all__ = [
    # Rate services
    "ExchangeRateService",
    "RateFetchError",
    "RateServiceError",
    # Storage services
    "AuditStorageInterface",
    "DuplicateError",
    "InMemoryAuditStorage",
    "InMemoryLedgerConfig",
    "InMemoryTransactionLog",
    "LedgerConfigStorage",
    "NotFoundError",
    "StorageError",
    "TransactionLogStorage",
]
