"""
Tests for Pocket Ledger

Test strategy:
1. Unit tests for individual components (models, engines, validators)
2. Integration tests for flows (in-memory storage, mocked HTTP)
3. No real API calls in tests (use mocks)
"""

import pytest
from datetime import date, datetime, timezone
from uuid import uuid4

from pydantic import ValidationError

from pocket_ledger.models.account import Account, LedgerConfig
from pocket_ledger.models.analytics import ExpenseStatistics
from pocket_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from pocket_ledger.models.query import HistoryQuery
from pocket_ledger.models.transaction import (
    AdjustmentTransaction,
    ExpenseTransaction,
    IncomeTransaction,
    TransactionType,
    TransferTransaction,
    parse_transaction,
)
from pocket_ledger.models.validation import ValidationIssue, ValidationResult


class TestTransactionModels:
    """Tests for the transaction union."""

    def test_parse_income(self):
        """Test an income record builds an IncomeTransaction."""
        tx = parse_transaction({
            "type": "income",
            "name": "Salary",
            "amount": 50000,
            "date": "2024-03-01",
            "toAccount": "bank",
            "subCategory": "Salary",
        })
        assert isinstance(tx, IncomeTransaction)
        assert tx.to_account == "bank"
        assert tx.sub_category == "Salary"
        assert tx.event_date == date(2024, 3, 1)

    def test_parse_accepts_enum_type(self):
        """Test a TransactionType member is accepted as the tag."""
        tx = parse_transaction({
            "type": TransactionType.EXPENSE,
            "amount": 10,
            "date": "2024-03-01",
            "from_account": "cash",
        })
        assert isinstance(tx, ExpenseTransaction)
        assert tx.type == TransactionType.EXPENSE

    def test_construct_with_enum_type(self):
        """Test the package imports and a variant accepts a TransactionType member."""
        import pocket_ledger

        assert pocket_ledger.__version__
        tx = IncomeTransaction(
            type=TransactionType.INCOME,
            amount=5,
            event_date=date(2024, 3, 1),
            to_account="bank",
        )
        assert tx.type == TransactionType.INCOME

    @pytest.mark.parametrize("rate", [float("nan"), float("inf"), "nan", "-inf"])
    def test_non_finite_rate_reads_as_none(self, rate):
        """Test an unusable transfer rate keeps the transfer, without a rate."""
        tx = parse_transaction({
            "type": "transfer",
            "amount": 100,
            "date": "2024-03-01",
            "fromAccount": "cash",
            "toAccount": "bank",
            "exchangeRate": rate,
        })
        assert tx.exchange_rate is None

    def test_numeric_rate_string_parsed(self):
        """Test a rate typed into a form is read as a number."""
        tx = parse_transaction({
            "type": "transfer",
            "amount": 100,
            "date": "2024-03-01",
            "fromAccount": "cash",
            "toAccount": "bank",
            "exchangeRate": " 0.05 ",
        })
        assert tx.exchange_rate == 0.05

    def test_income_requires_destination(self):
        """Test income without a destination account is rejected."""
        with pytest.raises(ValidationError):
            parse_transaction({"type": "income", "amount": 10, "date": "2024-03-01"})

    def test_expense_rejects_negative_amount(self):
        """Test that negative expense amounts are rejected."""
        with pytest.raises(ValidationError):
            ExpenseTransaction(amount=-5, event_date=date(2024, 3, 1), from_account="cash")

    def test_adjustment_allows_negative_amount(self):
        """Test that adjustments carry a signed delta."""
        tx = AdjustmentTransaction(amount=-42.5, event_date=date(2024, 3, 1), from_account="cash")
        assert tx.amount == -42.5

    def test_rejects_non_finite_amount(self):
        """Test that NaN and infinity never become amounts."""
        with pytest.raises(ValidationError):
            parse_transaction({
                "type": "adjustment",
                "amount": float("nan"),
                "date": "2024-03-01",
                "fromAccount": "cash",
            })

    def test_unknown_type_rejected(self):
        """Test an unknown type tag is rejected."""
        with pytest.raises(ValidationError):
            parse_transaction({"type": "refund", "amount": 1, "date": "2024-03-01"})

    def test_blank_optional_fields_read_as_none(self):
        """Test empty strings from forms mean 'not provided'."""
        tx = parse_transaction({
            "type": "transfer",
            "amount": 100,
            "date": "2024-03-01",
            "fromAccount": "cash",
            "toAccount": "bank",
            "exchangeRate": "",
        })
        assert isinstance(tx, TransferTransaction)
        assert tx.exchange_rate is None

    def test_extra_fields_ignored(self):
        """Test fields of other variants are dropped."""
        tx = parse_transaction({
            "type": "expense",
            "amount": 10,
            "date": "2024-03-01",
            "fromAccount": "cash",
            "exchangeRate": 3.2,
        })
        assert not hasattr(tx, "exchange_rate")

    def test_naive_timestamp_read_as_utc(self):
        """Test naive submission timestamps are made timezone-aware."""
        tx = parse_transaction({
            "type": "expense",
            "amount": 10,
            "date": "2024-03-01",
            "fromAccount": "cash",
            "createdTimestamp": "2024-03-01T08:00:00",
        })
        assert tx.created_at == datetime(2024, 3, 1, 8, tzinfo=timezone.utc)

    def test_transactions_are_frozen(self):
        """Test that a stored transaction cannot be edited in place."""
        tx = ExpenseTransaction(amount=5, event_date=date(2024, 3, 1), from_account="cash")
        with pytest.raises(ValidationError):
            tx.amount = 6

    def test_account_ids(self):
        """Test referenced account ids, source first."""
        tx = TransferTransaction(
            amount=5,
            event_date=date(2024, 3, 1),
            from_account="cash",
            to_account="bank",
        )
        assert tx.account_ids == ("cash", "bank")


class TestAccountModels:
    """Tests for accounts and ledger configuration."""

    def test_currency_upper_cased(self):
        """Test that currency codes are normalized."""
        account = Account(id="a1", name="Wallet", currency=" usd ")
        assert account.currency == "USD"

    def test_invalid_currency_rejected(self):
        """Test that currency codes must be three letters."""
        with pytest.raises(ValidationError):
            Account(id="a1", name="Wallet", currency="US")

    def test_currency_of_unknown_account(self):
        """Test lookups of unregistered ids return None."""
        config = LedgerConfig(accounts=[Account(id="cash", name="Cash")])
        assert config.currency_of("cash") == "TWD"
        assert config.currency_of("gone") is None
        assert config.currency_of(None) is None

    def test_default_accounts_used_when_empty(self):
        """Test the built-in registry replaces an empty one only."""
        defaults = [Account(id="cash", name="Cash")]
        empty = LedgerConfig()
        assert empty.with_default_accounts(defaults).account_ids == ["cash"]

        own = LedgerConfig(accounts=[Account(id="bank", name="Bank")])
        assert own.with_default_accounts(defaults).account_ids == ["bank"]

    def test_rate_keys_upper_cased(self):
        """Test rate table keys are normalized."""
        config = LedgerConfig(exchange_rates={"usd": 31.5})
        assert config.exchange_rates == {"USD": 31.5}


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            description="Expense recorded",
        )
        assert event.event_type == AuditEventType.TRANSACTION_ADDED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEventBuilder.account_added("ledger-1", "acc1", "Wallet", "USD")
        log_dict = event.to_log_dict()

        assert "event_id" in log_dict
        assert log_dict["event_type"] == "account_added"
        assert log_dict["details"]["currency"] == "USD"

    def test_audit_event_to_row(self):
        """Test conversion to a flat storage row."""
        event = AuditEventBuilder.transaction_deleted("ledger-1", "tx1", found=True)
        row = event.to_row()

        assert len(row) == 12
        assert row[2] == "transaction_deleted"
        assert row[4] == "ledger-1"
        assert row[11] == "True"

    def test_builder_import_completed(self):
        """Test import events carry counts and the correlation id."""
        correlation_id = uuid4()
        event = AuditEventBuilder.import_completed("ledger-1", 8, 2, correlation_id)

        assert event.event_type == AuditEventType.IMPORT_COMPLETED
        assert event.severity == AuditSeverity.WARNING
        assert event.correlation_id == correlation_id
        assert event.details == {"imported": 8, "skipped": 2}

    def test_builder_account_removed_with_references(self):
        """Test removing a referenced account is flagged as a warning."""
        event = AuditEventBuilder.account_removed("ledger-1", "acc1", 3)
        assert event.severity == AuditSeverity.WARNING
        assert event.is_user_action is True


class TestValidationResult:
    """Tests for validation result model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            schema_valid=False,
            semantic_valid=False,
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="negative_amount",
                    message="Amount cannot be negative",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1
        assert result.error_messages == ["Amount cannot be negative"]

    def test_validation_result_warnings_only(self):
        """Test result with only warnings."""
        result = ValidationResult(
            schema_valid=True,
            semantic_valid=True,
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="account",
                    issue_type="unknown_account",
                    message="Account 'x' is not registered",
                    severity="warning",
                ),
            ],
            warnings=["Account 'x' is not registered"],
        )
        assert result.has_errors is False
        assert result.error_count == 0


class TestDerivedModels:
    """Tests for query and statistics models."""

    def test_no_data_statistics(self):
        """Test the explicit no-data marker."""
        stats = ExpenseStatistics.no_data()
        assert stats.has_data is False
        assert stats.count == 0
        assert stats.median is None

    def test_history_query_sort_values(self):
        """Test only the two sort orders are accepted."""
        assert HistoryQuery(sort_by="date").sort_by == "date"
        with pytest.raises(ValidationError):
            HistoryQuery(sort_by="amount")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
