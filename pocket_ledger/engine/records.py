"""
Transaction Record Coercion

The engines accept whatever the storage collaborator hands them: model
instances, raw mappings (e.g. documents straight from the backend), or a
mix of both. Rows that cannot be read are skipped one at a time and
counted; a single bad row never aborts a computation.
"""

import math
from typing import Any, Iterable, Mapping

import structlog
from pydantic import BaseModel, Field, ValidationError

from pocket_ledger.models.transaction import (
    TRANSACTION_CLASSES,
    TransactionBase,
    parse_transaction,
)


logger = structlog.get_logger(__name__)


class CoercionResult(BaseModel):
    """Readable transactions plus a count of rows that were not."""
    transactions: list[TransactionBase] = Field(default_factory=list)
    skipped: int = 0


def coerce_transactions(rows: Iterable[Any]) -> CoercionResult:
    """
    Turn a mixed iterable of records into transaction models.

    Skips (and counts):
    - mappings that fail model validation (unparseable amount, missing
      required account, unknown type...)
    - transactions whose amount is not finite
    - anything that is neither a mapping nor a transaction model
    """
    transactions: list[TransactionBase] = []
    skipped = 0

    for index, row in enumerate(rows):
        if isinstance(row, TRANSACTION_CLASSES):
            tx = row
        elif isinstance(row, Mapping):
            try:
                tx = parse_transaction(row)
            except ValidationError as e:
                skipped += 1
                logger.debug(
                    "transaction_row_skipped",
                    row_index=index,
                    reason="invalid",
                    error_count=e.error_count(),
                )
                continue
        else:
            skipped += 1
            logger.debug(
                "transaction_row_skipped",
                row_index=index,
                reason="unsupported_type",
                row_type=type(row).__name__,
            )
            continue

        if not math.isfinite(tx.amount):
            skipped += 1
            logger.debug(
                "transaction_row_skipped",
                row_index=index,
                reason="non_finite_amount",
            )
            continue

        transactions.append(tx)

    return CoercionResult(transactions=transactions, skipped=skipped)
