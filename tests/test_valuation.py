"""Tests for the valuation engine."""

import pytest

from pocket_ledger.engine.valuation import (
    is_priced,
    rate_for,
    to_base_currency,
    valuation_of,
    value_accounts,
)
from pocket_ledger.models.account import Account


ACCOUNTS = [
    Account(id="cash", name="Cash", currency="TWD"),
    Account(id="usd", name="US Broker", currency="USD"),
    Account(id="aud", name="AU Savings", currency="AUD"),
]

RATES = {"USD": 32.0, "AUD": 21.0}


class TestRates:
    """Tests for rate lookup."""

    def test_base_currency_is_one(self):
        """Test the base currency always converts at 1."""
        assert rate_for("TWD", {"TWD": 5.0}, "TWD") == 1.0
        assert is_priced("TWD", {}, "TWD") is True

    @pytest.mark.parametrize("rate", [None, 0.0, -3.0, float("nan"), float("inf")])
    def test_invalid_rate_treated_as_unpriced(self, rate):
        """Test missing or unusable rates fall back to 1 and count as unpriced."""
        rates = {} if rate is None else {"JPY": rate}
        assert rate_for("JPY", rates, "TWD") == 1.0
        assert is_priced("JPY", rates, "TWD") is False

    def test_valuation_of(self):
        """Test a balance is multiplied by its currency's rate."""
        assert valuation_of(10, "USD", RATES, "TWD") == 320.0
        assert valuation_of(10, "TWD", RATES, "TWD") == 10


class TestToBaseCurrency:
    """Tests for the total valuation."""

    def test_total(self):
        """Test every registered account is converted and summed."""
        balances = {"cash": 1000.0, "usd": 10.0, "aud": 2.0}
        assert to_base_currency(balances, ACCOUNTS, RATES, "TWD") == pytest.approx(1362.0)

    def test_orphan_balances_excluded(self):
        """Test balances of deleted accounts never reach the total."""
        balances = {"cash": 100.0, "deleted": 1_000_000.0}
        assert to_base_currency(balances, ACCOUNTS, RATES, "TWD") == 100.0

    def test_empty(self):
        """Test no balances gives zero."""
        assert to_base_currency({}, ACCOUNTS, RATES, "TWD") == 0


class TestValueAccounts:
    """Tests for the per-account breakdown."""

    def test_sorted_with_shares(self):
        """Test rows are sorted by value with shares of the total."""
        result = value_accounts(
            {"cash": 100.0, "usd": 10.0, "aud": 0.0},
            ACCOUNTS,
            RATES,
            "TWD",
        )
        assert result.total == 420.0
        assert [row.account_id for row in result.accounts] == ["usd", "cash", "aud"]
        assert result.accounts[0].share_percent == pytest.approx(320 / 420 * 100)
        assert result.is_fully_priced

    def test_unpriced_currency_reported(self):
        """Test a currency without a rate is listed as unpriced."""
        result = value_accounts({"usd": 5.0}, ACCOUNTS, {}, "TWD")
        assert result.unpriced_currencies == ["AUD", "USD"]
        usd_row = next(row for row in result.accounts if row.account_id == "usd")
        assert usd_row.priced is False
        assert usd_row.value == 5.0

    def test_no_shares_when_total_not_positive(self):
        """Test shares are left empty for a zero or negative total."""
        result = value_accounts({"cash": -50.0}, ACCOUNTS, RATES, "TWD")
        assert result.total == -50.0
        assert all(row.share_percent is None for row in result.accounts)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
