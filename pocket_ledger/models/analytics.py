"""
Derived Value Models

Outputs of the valuation and analytics engines. None of these are ever
persisted; they are rebuilt from the transaction log on demand.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


# =============================================================================
# VALUATION
# =============================================================================

class AccountValuation(BaseModel):
    """One registered account valued in the base currency."""

    account_id: str
    name: str
    currency: str
    balance: float = Field(
        ...,
        description="Balance in the account's own currency"
    )
    rate: float = Field(
        ...,
        description="Rate applied to convert into the base currency"
    )
    value: float = Field(
        ...,
        description="Balance converted to the base currency"
    )
    share_percent: Optional[float] = Field(
        default=None,
        description="Share of the total valuation, when the total is positive"
    )
    priced: bool = Field(
        default=True,
        description="False when no rate was configured and 1 was assumed"
    )


class PortfolioValuation(BaseModel):
    """Net worth across registered accounts."""

    base_currency: str
    total: float = 0.0
    accounts: list[AccountValuation] = Field(default_factory=list)
    unpriced_currencies: list[str] = Field(
        default_factory=list,
        description="Currencies valued at an assumed rate of 1"
    )

    @property
    def is_fully_priced(self) -> bool:
        return not self.unpriced_currencies


# =============================================================================
# ANALYTICS
# =============================================================================

class TrendPoint(BaseModel):
    """Total valuation at the end of one calendar day."""

    day: date
    total: float


class IncomeExpenseSummary(BaseModel):
    """Income and expense totals over a rolling window, in base currency."""

    window_days: int = Field(ge=0)
    start: date
    end: date
    income_total: float = 0.0
    expense_total: float = 0.0
    net: float = 0.0


class CategoryTotal(BaseModel):
    """Converted sum for one sub-category bucket."""

    name: str
    value: float


class ExpenseStatistics(BaseModel):
    """
    Descriptive statistics over expense amounts in base currency.

    When there are no expenses in the window, ``count`` is 0 and every
    other field is None. Use ``has_data`` rather than comparing numbers.
    """

    count: int = Field(default=0, ge=0)
    total: Optional[float] = None
    mean: Optional[float] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    q1: Optional[float] = None
    median: Optional[float] = None
    q3: Optional[float] = None

    @property
    def has_data(self) -> bool:
        return self.count > 0

    @classmethod
    def no_data(cls) -> "ExpenseStatistics":
        return cls()


class DashboardSnapshot(BaseModel):
    """Everything the dashboard shows, computed in one pass."""

    as_of: date
    window_days: int
    stat_type: str
    balances: dict[str, float] = Field(
        default_factory=dict,
        description="Raw balance map, including keys of deleted accounts"
    )
    valuation: PortfolioValuation
    trend: list[TrendPoint] = Field(default_factory=list)
    summary: IncomeExpenseSummary
    categories: list[CategoryTotal] = Field(default_factory=list)
    statistics: ExpenseStatistics = Field(default_factory=ExpenseStatistics)
    skipped_rows: int = Field(
        default=0,
        description="Stored rows that could not be read and were ignored"
    )
    unrated_transfer_ids: list[str] = Field(
        default_factory=list,
        description="Cross-currency transfers booked 1:1 for lack of a rate"
    )
