"""Validation package."""

from pocket_ledger.validation.validator import (
    LedgerValidationError,
    TransactionValidator,
)

__all__ = [
    "LedgerValidationError",
    "TransactionValidator",
]
