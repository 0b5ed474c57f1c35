"""
Valuation Engine

Converts native-currency balances into the base currency.

MISSING RATES: A currency with no configured rate (or a rate that is
zero, negative or not finite) is valued at 1 and reported back as
"unpriced". The total is therefore always a number, and the caller can
tell when it is built on an assumption.

Only registered accounts are valued. Balances left behind by deleted
accounts stay in the raw balance map but never reach the total.
"""

import math
from typing import Iterable, Mapping, Optional

from pocket_ledger.models.account import DEFAULT_BASE_CURRENCY, Account
from pocket_ledger.models.analytics import AccountValuation, PortfolioValuation


def _valid_rate(rate: Optional[float]) -> bool:
    return rate is not None and math.isfinite(rate) and rate > 0


def is_priced(
    currency: Optional[str],
    rates: Mapping[str, float],
    base_currency: str = DEFAULT_BASE_CURRENCY,
) -> bool:
    """True if ``currency`` is the base currency or has a usable rate."""
    if currency == base_currency:
        return True
    return bool(currency) and _valid_rate(rates.get(currency))


def rate_for(
    currency: Optional[str],
    rates: Mapping[str, float],
    base_currency: str = DEFAULT_BASE_CURRENCY,
) -> float:
    """Base-currency units per unit of ``currency``; 1 when unpriced."""
    if currency == base_currency or not currency:
        return 1.0
    rate = rates.get(currency)
    if _valid_rate(rate):
        return float(rate)
    return 1.0


def valuation_of(
    balance: float,
    currency: Optional[str],
    rates: Mapping[str, float],
    base_currency: str = DEFAULT_BASE_CURRENCY,
) -> float:
    """Value ``balance`` (held in ``currency``) in the base currency."""
    if currency == base_currency:
        return balance
    return balance * rate_for(currency, rates, base_currency)


def to_base_currency(
    balances: Mapping[str, float],
    accounts: Iterable[Account],
    rates: Mapping[str, float],
    base_currency: str = DEFAULT_BASE_CURRENCY,
) -> float:
    """Total valuation of all registered accounts in the base currency."""
    return sum(
        valuation_of(balances.get(account.id, 0.0), account.currency, rates, base_currency)
        for account in accounts
    )


def value_accounts(
    balances: Mapping[str, float],
    accounts: Iterable[Account],
    rates: Mapping[str, float],
    base_currency: str = DEFAULT_BASE_CURRENCY,
) -> PortfolioValuation:
    """
    Per-account breakdown of the total valuation.

    Rows are sorted by base-currency value, largest first. Each row's
    share of the total is filled in only when the total is positive.
    """
    rows = []
    unpriced = set()
    for account in accounts:
        balance = balances.get(account.id, 0.0)
        priced = is_priced(account.currency, rates, base_currency)
        if not priced:
            unpriced.add(account.currency)
        rate = rate_for(account.currency, rates, base_currency)
        rows.append(AccountValuation(
            account_id=account.id,
            name=account.name,
            currency=account.currency,
            balance=balance,
            rate=rate,
            value=valuation_of(balance, account.currency, rates, base_currency),
            priced=priced,
        ))

    total = sum(row.value for row in rows)
    if total > 0:
        rows = [
            row.model_copy(update={"share_percent": row.value / total * 100})
            for row in rows
        ]
    rows.sort(key=lambda row: row.value, reverse=True)

    return PortfolioValuation(
        base_currency=base_currency,
        total=total,
        accounts=rows,
        unpriced_currencies=sorted(unpriced),
    )
