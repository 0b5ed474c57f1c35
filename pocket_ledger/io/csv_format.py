"""
Delimited Text Import/Export

Column layout (header row required on import):

    type,name,amount,date,subCategory,fromAccount,toAccount,exchangeRate

Export quotes a field only when it contains a comma, a double quote or a
line break, doubling any embedded quotes. A UTF-8 byte order mark is
prepended so spreadsheet applications pick the right encoding; import
strips it again.

Import applies the same rules as interactive entry. Each row becomes one
transaction or is skipped; the report carries counts, not per-row errors.
"""

import csv
import io
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

import structlog
from pydantic import BaseModel, Field, ValidationError, computed_field

from pocket_ledger.models.transaction import (
    TransactionBase,
    TransactionType,
    parse_transaction,
    utc_now,
)


logger = structlog.get_logger(__name__)

CSV_COLUMNS = [
    "type",
    "name",
    "amount",
    "date",
    "subCategory",
    "fromAccount",
    "toAccount",
    "exchangeRate",
]

BOM = "\ufeff"

# Kinds that cannot exist without a source / destination account
_NEEDS_FROM = {TransactionType.EXPENSE, TransactionType.TRANSFER, TransactionType.ADJUSTMENT}
_NEEDS_TO = {TransactionType.INCOME, TransactionType.TRANSFER}


class ImportReport(BaseModel):
    """Outcome of one import."""

    transactions: list[TransactionBase] = Field(default_factory=list)
    total_rows: int = Field(default=0, ge=0)
    skipped_count: int = Field(default=0, ge=0)

    @computed_field
    @property
    def imported_count(self) -> int:
        return len(self.transactions)


# =============================================================================
# EXPORT
# =============================================================================

def _format_number(value: Optional[float]) -> str:
    if value is None:
        return ""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def transaction_to_row(tx: TransactionBase) -> list[str]:
    """Flatten a transaction into CSV cells in ``CSV_COLUMNS`` order."""
    return [
        tx.type,
        tx.name,
        _format_number(tx.amount),
        tx.event_date.isoformat(),
        getattr(tx, "sub_category", None) or "",
        getattr(tx, "from_account", None) or "",
        getattr(tx, "to_account", None) or "",
        _format_number(getattr(tx, "exchange_rate", None)),
    ]


def export_transactions(
    transactions: Iterable[TransactionBase],
    include_bom: bool = True,
) -> str:
    """
    Serialize the log, oldest submission first.

    Writing in submission order means a re-import (which stamps rows in
    file order) folds them in the same order as the exported log.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for tx in sorted(transactions, key=lambda t: t.created_at):
        writer.writerow(transaction_to_row(tx))

    text = buffer.getvalue()
    return BOM + text if include_bom else text


def template_csv(include_bom: bool = True) -> str:
    """Header-only file users can fill in and import."""
    return export_transactions([], include_bom=include_bom)


# =============================================================================
# IMPORT
# =============================================================================

def _clean(value: Optional[str]) -> str:
    return value.strip() if isinstance(value, str) else ""


def _row_to_record(
    row: dict,
    fallback_account_id: str,
    today: date,
    created_at: datetime,
) -> Optional[dict]:
    """Map one CSV row onto transaction fields, or None if it must be skipped."""
    cells = {_clean(key): _clean(value) for key, value in row.items() if key}

    raw_type = cells.get("type", "").lower()
    raw_amount = cells.get("amount", "")
    if not raw_type or not raw_amount:
        return None

    try:
        tx_type = TransactionType(raw_type)
    except ValueError:
        return None

    try:
        amount = float(raw_amount)
    except ValueError:
        return None

    from_account = cells.get("fromAccount") or None
    to_account = cells.get("toAccount") or None
    if tx_type in _NEEDS_FROM and not from_account:
        from_account = fallback_account_id
    if tx_type in _NEEDS_TO and not to_account:
        to_account = fallback_account_id

    return {
        "type": tx_type.value,
        "name": cells.get("name", ""),
        "amount": amount,
        "date": cells.get("date") or today.isoformat(),
        "subCategory": cells.get("subCategory") or None,
        "fromAccount": from_account,
        "toAccount": to_account,
        "exchangeRate": cells.get("exchangeRate") or None,
        "created_at": created_at,
    }


def import_transactions(
    text: str,
    fallback_account_id: str,
    today: date,
    now: Optional[datetime] = None,
) -> ImportReport:
    """
    Parse delimited text into transactions.

    Args:
        text: File contents, with or without a byte order mark
        fallback_account_id: Used when a row omits an account its kind needs
        today: Date given to rows without one (the import moment)
        now: Base submission timestamp; rows are stamped in file order

    Skipped rows: no type or amount, unknown type, unparseable amount,
    unparseable date, or anything else the transaction model rejects.
    """
    if text.startswith(BOM):
        text = text[len(BOM):]
    now = now or utc_now()

    reader = csv.DictReader(io.StringIO(text))
    transactions = []
    total = 0
    skipped = 0

    for offset, row in enumerate(reader):
        total += 1
        record = _row_to_record(
            row,
            fallback_account_id,
            today,
            created_at=now + timedelta(microseconds=offset),
        )
        if record is None:
            skipped += 1
            logger.debug("import_row_skipped", line=offset + 2, reason="unreadable")
            continue

        try:
            transactions.append(parse_transaction(record))
        except ValidationError as e:
            skipped += 1
            logger.debug(
                "import_row_skipped",
                line=offset + 2,
                reason="invalid",
                error_count=e.error_count(),
            )

    return ImportReport(
        transactions=transactions,
        total_rows=total,
        skipped_count=skipped,
    )
