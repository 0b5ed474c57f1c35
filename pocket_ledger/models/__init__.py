"""
Data Models Package

This package contains all Pydantic models used in Pocket Ledger.
All data flowing into and out of the engines conforms to these schemas.
"""

from pocket_ledger.models.account import (
    CURRENCY_CODE_PATTERN,
    DEFAULT_BASE_CURRENCY,
    Account,
    LedgerConfig,
)
from pocket_ledger.models.analytics import (
    AccountValuation,
    CategoryTotal,
    DashboardSnapshot,
    ExpenseStatistics,
    IncomeExpenseSummary,
    PortfolioValuation,
    TrendPoint,
)
from pocket_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from pocket_ledger.models.query import HistoryQuery, QueryResult
from pocket_ledger.models.transaction import (
    TRANSACTION_CLASSES,
    AdjustmentTransaction,
    ExpenseTransaction,
    IncomeTransaction,
    Transaction,
    TransactionAdapter,
    TransactionBase,
    TransactionType,
    TransferTransaction,
    parse_transaction,
    utc_now,
)
from pocket_ledger.models.validation import ValidationIssue, ValidationResult

__all__ = [
    # Accounts and configuration
    "CURRENCY_CODE_PATTERN",
    "DEFAULT_BASE_CURRENCY",
    "Account",
    "LedgerConfig",
    # Transactions
    "TRANSACTION_CLASSES",
    "AdjustmentTransaction",
    "ExpenseTransaction",
    "IncomeTransaction",
    "Transaction",
    "TransactionAdapter",
    "TransactionBase",
    "TransactionType",
    "TransferTransaction",
    "parse_transaction",
    "utc_now",
    # Derived values
    "AccountValuation",
    "CategoryTotal",
    "DashboardSnapshot",
    "ExpenseStatistics",
    "IncomeExpenseSummary",
    "PortfolioValuation",
    "TrendPoint",
    # Queries
    "HistoryQuery",
    "QueryResult",
    # Validation
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
