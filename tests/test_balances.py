"""
Tests for the balance engine.

Balances are a replay of the log; every test builds a small log and
checks the folded result.
"""

import itertools
from datetime import date, datetime, timedelta, timezone

import pytest

from pocket_ledger.engine.balances import (
    compute_balances,
    find_unrated_transfers,
    transfer_credit,
    usable_transfer_rate,
)
from pocket_ledger.engine.records import coerce_transactions
from pocket_ledger.models.account import Account
from pocket_ledger.models.transaction import (
    AdjustmentTransaction,
    ExpenseTransaction,
    IncomeTransaction,
    TransferTransaction,
)


T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
DAY = date(2024, 3, 1)

ACCOUNTS = [
    Account(id="cash", name="Cash", currency="TWD"),
    Account(id="bank", name="Bank", currency="TWD"),
    Account(id="aud", name="AU Savings", currency="AUD"),
]


def at(seconds: int) -> datetime:
    return T0 + timedelta(seconds=seconds)


def income(amount, to_account="cash", seconds=0, **kw):
    return IncomeTransaction(
        amount=amount, to_account=to_account, event_date=DAY, created_at=at(seconds), **kw
    )


def expense(amount, from_account="cash", seconds=0, **kw):
    return ExpenseTransaction(
        amount=amount, from_account=from_account, event_date=DAY, created_at=at(seconds), **kw
    )


def transfer(amount, from_account, to_account, rate=None, seconds=0):
    return TransferTransaction(
        amount=amount,
        from_account=from_account,
        to_account=to_account,
        exchange_rate=rate,
        event_date=DAY,
        created_at=at(seconds),
    )


class TestComputeBalances:
    """Tests for compute_balances."""

    def test_empty_log_gives_zero_for_every_account(self):
        """Test an empty log yields 0.0 for all registered accounts."""
        assert compute_balances([], ACCOUNTS) == {"cash": 0.0, "bank": 0.0, "aud": 0.0}

    def test_income_and_expense(self):
        """Test income credits and expenses debit."""
        balances = compute_balances(
            [income(1000, seconds=0), expense(250, seconds=1)],
            ACCOUNTS,
        )
        assert balances["cash"] == 750

    def test_adjustment_is_signed_delta(self):
        """Test adjustments add their signed amount."""
        log = [
            income(100, seconds=0),
            AdjustmentTransaction(amount=-30, from_account="cash", event_date=DAY, created_at=at(1)),
            AdjustmentTransaction(amount=5, from_account="cash", event_date=DAY, created_at=at(2)),
        ]
        assert compute_balances(log, ACCOUNTS)["cash"] == 75

    def test_same_currency_transfer_conserves_total(self):
        """Test a same-currency transfer moves money without creating any."""
        log = [income(500, seconds=0), transfer(200, "cash", "bank", seconds=1)]
        balances = compute_balances(log, ACCOUNTS)
        assert balances["cash"] == 300
        assert balances["bank"] == 200
        assert balances["cash"] + balances["bank"] == 500

    def test_same_currency_transfer_ignores_rate(self):
        """Test a rate on a same-currency transfer has no effect."""
        balances = compute_balances([transfer(200, "cash", "bank", rate=3.0)], ACCOUNTS)
        assert balances["bank"] == 200

    def test_cross_currency_transfer_uses_rate(self):
        """Test the destination receives amount times the transfer's rate."""
        balances = compute_balances([transfer(2000, "cash", "aud", rate=0.048)], ACCOUNTS)
        assert balances["cash"] == -2000
        assert balances["aud"] == pytest.approx(96.0)

    @pytest.mark.parametrize("rate", [None, 0.0])
    def test_cross_currency_transfer_without_rate_books_one_to_one(self, rate):
        """Test a missing or zero rate falls back to 1:1."""
        balances = compute_balances([transfer(100, "cash", "aud", rate=rate)], ACCOUNTS)
        assert balances["aud"] == 100

    def test_order_invariance(self):
        """Test the result does not depend on the order of the input list."""
        log = [
            income(1000, seconds=0),
            expense(120, seconds=1),
            transfer(300, "cash", "aud", rate=0.05, seconds=2),
            AdjustmentTransaction(amount=-7, from_account="bank", event_date=DAY, created_at=at(3)),
        ]
        expected = compute_balances(log, ACCOUNTS)
        for permutation in itertools.permutations(log):
            assert compute_balances(list(permutation), ACCOUNTS) == expected

    def test_deleted_account_does_not_crash(self):
        """Test transactions referencing an unregistered account still fold."""
        log = [income(100, to_account="old-wallet"), expense(20, from_account="old-wallet", seconds=1)]
        balances = compute_balances(log, ACCOUNTS)
        assert balances["old-wallet"] == 80
        assert balances["cash"] == 0.0

    def test_raw_records_are_coerced_and_bad_rows_skipped(self):
        """Test mappings are parsed and unreadable rows are skipped."""
        log = [
            {"type": "income", "amount": "50", "date": "2024-03-01", "toAccount": "cash",
             "createdTimestamp": "2024-03-01T09:00:00Z"},
            {"type": "income", "amount": "lots", "date": "2024-03-01", "toAccount": "cash"},
            {"type": "expense", "amount": 5, "date": "2024-03-01"},
            "not a record",
        ]
        assert compute_balances(log, ACCOUNTS)["cash"] == 50

    def test_inputs_are_not_mutated(self):
        """Test the engine leaves its inputs unchanged."""
        log = [expense(10, seconds=1), income(30, seconds=0)]
        snapshot = list(log)
        compute_balances(log, ACCOUNTS)
        assert log == snapshot


class TestTransferHelpers:
    """Tests for transfer rate handling."""

    @pytest.mark.parametrize("rate,usable", [
        (None, False),
        (0.0, False),
        (float("inf"), False),
        (0.5, True),
        (-2.0, True),
    ])
    def test_usable_transfer_rate(self, rate, usable):
        """Test which rates the fold applies."""
        assert usable_transfer_rate(rate) is usable

    def test_transfer_credit_unknown_accounts_treated_as_same_currency(self):
        """Test two unknown accounts compare as the same currency."""
        tx = transfer(100, "ghost-a", "ghost-b", rate=4.0)
        assert transfer_credit(tx, {}) == 100

    def test_find_unrated_transfers(self):
        """Test cross-currency transfers booked 1:1 are reported."""
        flagged = transfer(100, "cash", "aud", rate=None, seconds=1)
        log = [
            flagged,
            transfer(100, "cash", "aud", rate=0.05, seconds=2),
            transfer(100, "cash", "bank", seconds=3),
        ]
        assert find_unrated_transfers(log, ACCOUNTS) == [flagged]

    def test_nan_rate_record_booked_one_to_one(self):
        """Test a stored transfer with a NaN rate debits, credits 1:1 and is flagged."""
        log = [{
            "id": "t1",
            "type": "transfer",
            "amount": 100,
            "date": "2024-03-01",
            "fromAccount": "cash",
            "toAccount": "aud",
            "exchangeRate": float("nan"),
        }]
        balances = compute_balances(log, ACCOUNTS)
        assert balances["cash"] == -100
        assert balances["aud"] == 100
        assert [tx.id for tx in find_unrated_transfers(log, ACCOUNTS)] == ["t1"]


class TestCoercion:
    """Tests for coerce_transactions."""

    def test_counts_skipped_rows(self):
        """Test each unreadable row is counted once."""
        result = coerce_transactions([
            income(10),
            {"type": "nope"},
            42,
        ])
        assert len(result.transactions) == 1
        assert result.skipped == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
