"""Bulk import/export of the transaction log."""

from pocket_ledger.io.csv_format import (
    CSV_COLUMNS,
    ImportReport,
    export_transactions,
    import_transactions,
    template_csv,
    transaction_to_row,
)

__all__ = [
    "CSV_COLUMNS",
    "ImportReport",
    "export_transactions",
    "import_transactions",
    "template_csv",
    "transaction_to_row",
]
