"""
Account and Ledger Configuration Models

The engines never read global state. Everything they need besides the
transaction log (registered accounts, exchange rates, base currency) is
passed in explicitly as a ``LedgerConfig``.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


CURRENCY_CODE_PATTERN = r"^[A-Z]{3}$"

DEFAULT_BASE_CURRENCY = "TWD"


def _normalize_code(v: Any) -> Any:
    if isinstance(v, str):
        return v.strip().upper()
    return v


class Account(BaseModel):
    """
    A user-defined account holding money in a single currency.

    Deleting an account does not touch the transactions that reference
    it; their balance simply stops being displayed.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Unique account identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    currency: str = Field(
        default=DEFAULT_BASE_CURRENCY,
        pattern=CURRENCY_CODE_PATTERN,
        description="ISO-4217-like currency code"
    )

    @field_validator("currency", mode="before")
    @classmethod
    def normalize_currency(cls, v: Any) -> Any:
        return _normalize_code(v)


class LedgerConfig(BaseModel):
    """
    Account registry plus exchange rate table for one ledger.

    ``exchange_rates`` maps a non-base currency code to the number of
    base-currency units one unit of it is worth.
    """
    model_config = ConfigDict(frozen=True)

    accounts: list[Account] = Field(default_factory=list)
    exchange_rates: dict[str, float] = Field(default_factory=dict)
    currencies: list[str] = Field(default_factory=list)
    base_currency: str = Field(
        default=DEFAULT_BASE_CURRENCY,
        pattern=CURRENCY_CODE_PATTERN,
    )

    @field_validator("base_currency", mode="before")
    @classmethod
    def normalize_base(cls, v: Any) -> Any:
        return _normalize_code(v)

    @field_validator("exchange_rates", mode="before")
    @classmethod
    def normalize_rate_keys(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {_normalize_code(k): rate for k, rate in v.items()}
        return v

    def get_account(self, account_id: Optional[str]) -> Optional[Account]:
        """Look up a registered account by id."""
        if not account_id:
            return None
        for account in self.accounts:
            if account.id == account_id:
                return account
        return None

    def currency_of(self, account_id: Optional[str]) -> Optional[str]:
        """Currency of a registered account, or None if unknown."""
        account = self.get_account(account_id)
        return account.currency if account else None

    @property
    def account_ids(self) -> list[str]:
        return [account.id for account in self.accounts]

    def with_default_accounts(self, defaults: list[Account]) -> "LedgerConfig":
        """Return this config, or a copy using ``defaults`` if no accounts exist."""
        if self.accounts:
            return self
        return self.model_copy(update={"accounts": list(defaults)})
