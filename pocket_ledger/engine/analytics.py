"""
Analytics Engine

Read-only projections of the transaction log:
(a) historical trend of total valuation
(b) income/expense summary over a rolling window
(c) sub-category breakdown for income or expenses
(d) descriptive statistics over expense amounts

Every function is a pure function of (log, config, window, today). None of
them keep state between calls; callers that want caching memoize at the
call site.

WINDOW: ``window_days`` N covers the calendar days [today - N, today],
inclusive on both ends. Future-dated entries are outside every window.

CONVERSION: Income is converted with its destination account's currency,
expenses with their source account's currency, both at the current
configured rate. Unknown accounts and missing rates convert at 1.
"""

from collections import defaultdict
from datetime import date, timedelta
from typing import Any, Iterable, Optional, Sequence, Union

import numpy as np

from pocket_ledger.engine.balances import compute_balances, find_unrated_transfers
from pocket_ledger.engine.records import coerce_transactions
from pocket_ledger.engine.valuation import (
    to_base_currency,
    valuation_of,
    value_accounts,
)
from pocket_ledger.models.account import LedgerConfig
from pocket_ledger.models.analytics import (
    CategoryTotal,
    DashboardSnapshot,
    ExpenseStatistics,
    IncomeExpenseSummary,
    TrendPoint,
)
from pocket_ledger.models.transaction import TransactionBase, TransactionType


OTHER_CATEGORY = "Other"

CATEGORY_TYPES = (TransactionType.INCOME, TransactionType.EXPENSE)


# =============================================================================
# HELPERS
# =============================================================================

def window_bounds(window_days: int, today: date) -> tuple[date, date]:
    """First and last calendar day of a window ending today."""
    if window_days < 0:
        raise ValueError(f"window_days must be non-negative, got {window_days}")
    return today - timedelta(days=window_days), today


def _in_window(
    transactions: Iterable[TransactionBase],
    start: date,
    end: date,
    tx_type: Optional[TransactionType] = None,
) -> list[TransactionBase]:
    return [
        tx for tx in transactions
        if start <= tx.event_date <= end
        and (tx_type is None or tx.type == tx_type)
    ]


def converted_amount(tx: TransactionBase, config: LedgerConfig) -> float:
    """
    Income or expense amount in the base currency.

    Income uses the currency of the account it arrived in, expenses the
    currency of the account they left.
    """
    if tx.type == TransactionType.INCOME:
        account_id = tx.to_account
    else:
        account_id = getattr(tx, "from_account", None)
    return valuation_of(
        tx.amount,
        config.currency_of(account_id),
        config.exchange_rates,
        config.base_currency,
    )


def percentile(values: Sequence[float], p: float) -> Optional[float]:
    """
    Percentile of a sequence by linear interpolation (numpy's default method).

    For ``count`` values the position is ``(count - 1) * p`` in sorted
    order. Returns None for an empty sequence.
    """
    if not 0 <= p <= 1:
        raise ValueError(f"p must be within [0, 1], got {p}")
    if len(values) == 0:
        return None
    return float(np.percentile(values, p * 100))


# =============================================================================
# (a) HISTORICAL TREND
# =============================================================================

def historical_trend(
    transactions: Iterable[Any],
    config: LedgerConfig,
    window_days: int,
    today: date,
) -> list[TrendPoint]:
    """
    Total valuation at the end of each day in the window, oldest first.

    Each point is an independent replay of the balance engine over the
    transactions dated on or before that day. O(days x transactions),
    which is fine at personal-ledger scale.
    """
    start, end = window_bounds(window_days, today)
    readable = coerce_transactions(transactions).transactions

    points = []
    day = start
    while day <= end:
        upto = [tx for tx in readable if tx.event_date <= day]
        balances = compute_balances(upto, config.accounts)
        points.append(TrendPoint(
            day=day,
            total=to_base_currency(
                balances,
                config.accounts,
                config.exchange_rates,
                config.base_currency,
            ),
        ))
        day += timedelta(days=1)

    return points


# =============================================================================
# (b) INCOME / EXPENSE SUMMARY
# =============================================================================

def income_expense_summary(
    transactions: Iterable[Any],
    config: LedgerConfig,
    window_days: int,
    today: date,
) -> IncomeExpenseSummary:
    """Converted income and expense totals over the window, and their difference."""
    start, end = window_bounds(window_days, today)
    in_window = _in_window(coerce_transactions(transactions).transactions, start, end)

    income = sum(
        converted_amount(tx, config)
        for tx in in_window if tx.type == TransactionType.INCOME
    )
    expense = sum(
        converted_amount(tx, config)
        for tx in in_window if tx.type == TransactionType.EXPENSE
    )

    return IncomeExpenseSummary(
        window_days=window_days,
        start=start,
        end=end,
        income_total=income,
        expense_total=expense,
        net=income - expense,
    )


# =============================================================================
# (c) CATEGORY BREAKDOWN
# =============================================================================

def category_breakdown(
    transactions: Iterable[Any],
    config: LedgerConfig,
    window_days: int,
    today: date,
    tx_type: Union[TransactionType, str] = TransactionType.EXPENSE,
    other_label: str = OTHER_CATEGORY,
) -> list[CategoryTotal]:
    """
    Converted totals per sub-category, largest first.

    Transactions without a sub-category land in the ``other_label`` bucket.
    Ties are ordered by name so the output is stable.
    """
    tx_type = TransactionType(tx_type)
    if tx_type not in CATEGORY_TYPES:
        raise ValueError(f"Category breakdown supports income or expense, got {tx_type.value}")

    start, end = window_bounds(window_days, today)
    totals: dict[str, float] = defaultdict(float)
    for tx in _in_window(coerce_transactions(transactions).transactions, start, end, tx_type):
        bucket = (tx.sub_category or "").strip() or other_label
        totals[bucket] += converted_amount(tx, config)

    return [
        CategoryTotal(name=name, value=value)
        for name, value in sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    ]


# =============================================================================
# (d) EXPENSE STATISTICS
# =============================================================================

def expense_statistics(
    transactions: Iterable[Any],
    config: LedgerConfig,
    window_days: int,
    today: date,
) -> ExpenseStatistics:
    """
    Count, mean, min, max and quartiles of converted expense amounts.

    Returns ``ExpenseStatistics.no_data()`` when the window has no expenses.
    """
    start, end = window_bounds(window_days, today)
    amounts = sorted(
        converted_amount(tx, config)
        for tx in _in_window(
            coerce_transactions(transactions).transactions,
            start,
            end,
            TransactionType.EXPENSE,
        )
    )
    if not amounts:
        return ExpenseStatistics.no_data()

    q1, median, q3 = np.percentile(amounts, [25, 50, 75])
    return ExpenseStatistics(
        count=len(amounts),
        total=float(np.sum(amounts)),
        mean=float(np.mean(amounts)),
        minimum=amounts[0],
        maximum=amounts[-1],
        q1=float(q1),
        median=float(median),
        q3=float(q3),
    )


# =============================================================================
# DASHBOARD
# =============================================================================

def build_dashboard(
    transactions: Iterable[Any],
    config: LedgerConfig,
    window_days: int,
    today: date,
    stat_type: Union[TransactionType, str] = TransactionType.EXPENSE,
    other_label: str = OTHER_CATEGORY,
) -> DashboardSnapshot:
    """Run every projection once over the same log and config."""
    coerced = coerce_transactions(transactions)
    readable = coerced.transactions
    stat_type = TransactionType(stat_type)

    balances = compute_balances(readable, config.accounts)
    unrated = find_unrated_transfers(readable, config.accounts)

    return DashboardSnapshot(
        as_of=today,
        window_days=window_days,
        stat_type=stat_type.value,
        balances=balances,
        valuation=value_accounts(
            balances,
            config.accounts,
            config.exchange_rates,
            config.base_currency,
        ),
        trend=historical_trend(readable, config, window_days, today),
        summary=income_expense_summary(readable, config, window_days, today),
        categories=category_breakdown(
            readable, config, window_days, today, stat_type, other_label
        ),
        statistics=expense_statistics(readable, config, window_days, today),
        skipped_rows=coerced.skipped,
        unrated_transfer_ids=[tx.id or "" for tx in unrated],
    )
