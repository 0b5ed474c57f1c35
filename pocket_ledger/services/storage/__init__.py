"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements an in-memory backend, but designed to be swappable.
"""

from pocket_ledger.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LedgerConfigStorage,
    NotFoundError,
    StorageError,
    TransactionLogStorage,
)
from pocket_ledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryLedgerConfig,
    InMemoryTransactionLog,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LedgerConfigStorage",
    "TransactionLogStorage",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryLedgerConfig",
    "InMemoryTransactionLog",
]
