"""
Balance Engine

Folds the transaction log into a per-account balance map.

DESIGN DECISION: Balances are never stored. Every call replays the whole
log from zero, so the result depends only on the inputs and can be
recomputed whenever the log or the account registry changes.

ORDERING: The fold runs in submission order (``created_at``), not event
date. Entries made one after another apply in the order they were made,
even when one of them is back-dated. The trend replay in the analytics
engine filters on event date instead; the two views can disagree for
back-dated rows and that is expected.
"""

import math
from typing import Any, Iterable, Optional

from pocket_ledger.engine.records import coerce_transactions
from pocket_ledger.models.account import Account
from pocket_ledger.models.transaction import (
    TransactionBase,
    TransactionType,
    TransferTransaction,
)


BalanceMap = dict[str, float]


def usable_transfer_rate(rate: Optional[float]) -> bool:
    """A transfer rate is applied only when present, finite and non-zero."""
    return rate is not None and math.isfinite(rate) and rate != 0


def _is_cross_currency(
    tx: TransferTransaction,
    currencies: dict[str, str],
) -> bool:
    return currencies.get(tx.from_account) != currencies.get(tx.to_account)


def transfer_credit(
    tx: TransferTransaction,
    currencies: dict[str, str],
) -> float:
    """
    Amount credited to the destination of a transfer.

    Same currency: the amount unchanged. Different currencies: amount
    times the transfer's own rate. A cross-currency transfer without a
    usable rate falls back to 1:1; ``find_unrated_transfers`` reports it.
    """
    if _is_cross_currency(tx, currencies) and usable_transfer_rate(tx.exchange_rate):
        return tx.amount * tx.exchange_rate
    return tx.amount


def _apply(
    balances: BalanceMap,
    tx: TransactionBase,
    currencies: dict[str, str],
) -> None:
    def credit(account_id: str, delta: float) -> None:
        balances[account_id] = balances.get(account_id, 0.0) + delta

    if tx.type == TransactionType.INCOME:
        credit(tx.to_account, tx.amount)
    elif tx.type == TransactionType.EXPENSE:
        credit(tx.from_account, -tx.amount)
    elif tx.type == TransactionType.ADJUSTMENT:
        credit(tx.from_account, tx.amount)
    elif tx.type == TransactionType.TRANSFER:
        credit(tx.from_account, -tx.amount)
        credit(tx.to_account, transfer_credit(tx, currencies))


def compute_balances(
    transactions: Iterable[Any],
    accounts: Iterable[Account],
) -> BalanceMap:
    """
    Compute every account's balance in its own currency.

    Args:
        transactions: Transaction models and/or raw records, in any order
        accounts: The account registry

    Returns:
        Map of account id to balance. Every registered account is present
        (0.0 if untouched). Ids of deleted or never-registered accounts
        that transactions still reference are present too; callers that
        render by account simply never look them up.
    """
    accounts = list(accounts)
    currencies = {account.id: account.currency for account in accounts}
    balances: BalanceMap = {account.id: 0.0 for account in accounts}

    readable = coerce_transactions(transactions).transactions
    for tx in sorted(readable, key=lambda t: t.created_at):
        _apply(balances, tx, currencies)

    return balances


def find_unrated_transfers(
    transactions: Iterable[Any],
    accounts: Iterable[Account],
) -> list[TransferTransaction]:
    """
    Cross-currency transfers that were booked 1:1 for lack of a rate.

    The input form refuses these, but records edited directly in storage
    can still carry them.
    """
    currencies = {account.id: account.currency for account in accounts}
    return [
        tx
        for tx in coerce_transactions(transactions).transactions
        if tx.type == TransactionType.TRANSFER
        and _is_cross_currency(tx, currencies)
        and not usable_transfer_rate(tx.exchange_rate)
    ]
