"""
Ledger engines: balances, valuation and analytics.

All functions here are pure. They read the transaction log and a
``LedgerConfig`` and return new values; nothing is cached or mutated.
"""

from pocket_ledger.engine.analytics import (
    OTHER_CATEGORY,
    build_dashboard,
    category_breakdown,
    converted_amount,
    expense_statistics,
    historical_trend,
    income_expense_summary,
    percentile,
    window_bounds,
)
from pocket_ledger.engine.balances import (
    BalanceMap,
    compute_balances,
    find_unrated_transfers,
    transfer_credit,
    usable_transfer_rate,
)
from pocket_ledger.engine.records import CoercionResult, coerce_transactions
from pocket_ledger.engine.valuation import (
    is_priced,
    rate_for,
    to_base_currency,
    valuation_of,
    value_accounts,
)

__all__ = [
    # Records
    "CoercionResult",
    "coerce_transactions",
    # Balances
    "BalanceMap",
    "compute_balances",
    "find_unrated_transfers",
    "transfer_credit",
    "usable_transfer_rate",
    # Valuation
    "is_priced",
    "rate_for",
    "to_base_currency",
    "valuation_of",
    "value_accounts",
    # Analytics
    "OTHER_CATEGORY",
    "build_dashboard",
    "category_breakdown",
    "converted_amount",
    "expense_statistics",
    "historical_trend",
    "income_expense_summary",
    "percentile",
    "window_bounds",
]
