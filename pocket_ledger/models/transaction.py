"""
Transaction Models for Pocket Ledger

A transaction is one of four kinds: income, expense, transfer or
adjustment. Each kind is its own model with its own required fields,
and the four are combined into a discriminated union on ``type``.

DESIGN DECISION: One model per kind instead of one flat record with
optional fields. An income without a destination account, or an expense
carrying an exchange rate, is rejected at construction time rather than
discovered later inside the balance fold.

Transactions are frozen. The ledger has no edit operation; a wrong entry
is deleted and re-entered.

Field aliases accept the camelCase names used by the stored records and
the CSV format (``date``, ``fromAccount``, ``subCategory``...).
"""

import math
from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Mapping, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
)


def utc_now() -> datetime:
    """Timezone-aware current time, used as the default ordering key."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """The four kinds of ledger event."""
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"
    ADJUSTMENT = "adjustment"


# =============================================================================
# TRANSACTION VARIANTS
# =============================================================================

class TransactionBase(BaseModel):
    """
    Fields shared by every transaction kind.

    ``created_at`` is the ordering key for the balance fold. It is the
    moment the record was submitted, which can differ from ``event_date``
    for back-dated entries.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        frozen=True,
        allow_inf_nan=False,
        extra="ignore",
    )

    id: Optional[str] = Field(
        default=None,
        description="Identifier assigned by storage on append"
    )
    name: str = Field(
        default="",
        max_length=200,
        description="Free-text label, e.g. 'Lunch'"
    )
    amount: float = Field(
        ...,
        description="Amount in the source account's currency"
    )
    event_date: date = Field(
        ...,
        validation_alias=AliasChoices("event_date", "date"),
        description="Calendar date of the event (no time zone)"
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        validation_alias=AliasChoices("created_at", "createdTimestamp", "timestamp"),
        description="Submission timestamp, the fold ordering key"
    )

    @field_validator(
        "sub_category", "from_account", "to_account",
        mode="before",
        check_fields=False,
    )
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        """Empty cells from forms and CSV rows mean 'not provided'."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Naive timestamps are read as UTC so that all keys compare."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def account_ids(self) -> tuple[str, ...]:
        """Account ids this transaction touches, source first."""
        ids = []
        for attr in ("from_account", "to_account"):
            value = getattr(self, attr, None)
            if value:
                ids.append(value)
        return tuple(ids)


class IncomeTransaction(TransactionBase):
    """Money arriving into ``to_account``."""
    type: Literal["income"] = "income"
    amount: float = Field(..., ge=0, description="Non-negative amount received")
    to_account: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("to_account", "toAccount"),
    )
    sub_category: Optional[str] = Field(
        default=None,
        max_length=100,
        validation_alias=AliasChoices("sub_category", "subCategory"),
    )


class ExpenseTransaction(TransactionBase):
    """Money leaving ``from_account``."""
    type: Literal["expense"] = "expense"
    amount: float = Field(..., ge=0, description="Non-negative amount spent")
    from_account: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("from_account", "fromAccount"),
    )
    sub_category: Optional[str] = Field(
        default=None,
        max_length=100,
        validation_alias=AliasChoices("sub_category", "subCategory"),
    )


class TransferTransaction(TransactionBase):
    """
    Money moving between two accounts.

    ``exchange_rate`` is the number of ``to_account`` currency units per
    unit of ``from_account`` currency. It only matters when the two
    currencies differ.
    """
    type: Literal["transfer"] = "transfer"
    from_account: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("from_account", "fromAccount"),
    )
    to_account: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("to_account", "toAccount"),
    )
    exchange_rate: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("exchange_rate", "exchangeRate"),
    )

    @field_validator("exchange_rate", mode="before")
    @classmethod
    def unusable_rate_to_none(cls, v: Any) -> Any:
        """
        Blank, NaN and infinite rates all mean 'no rate given'.

        The transfer is still booked (1:1) and reported as unrated, instead
        of the whole record being dropped.
        """
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            if not v.strip():
                return None
            try:
                number = float(v)
            except ValueError:
                return v
        elif isinstance(v, (int, float)):
            number = float(v)
        else:
            return v
        return number if math.isfinite(number) else None


class AdjustmentTransaction(TransactionBase):
    """
    Manual correction on ``from_account``.

    The amount is a signed delta: positive raises the balance, negative
    lowers it.
    """
    type: Literal["adjustment"] = "adjustment"
    from_account: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("from_account", "fromAccount"),
    )


Transaction = Annotated[
    Union[
        IncomeTransaction,
        ExpenseTransaction,
        TransferTransaction,
        AdjustmentTransaction,
    ],
    Field(discriminator="type"),
]

TRANSACTION_CLASSES = (
    IncomeTransaction,
    ExpenseTransaction,
    TransferTransaction,
    AdjustmentTransaction,
)

TransactionAdapter = TypeAdapter(Transaction)


def parse_transaction(data: Mapping[str, Any]) -> TransactionBase:
    """
    Validate one raw record into the matching transaction model.

    Raises:
        pydantic.ValidationError: if the record is malformed
    """
    record = dict(data)
    if isinstance(record.get("type"), Enum):
        record["type"] = record["type"].value
    return TransactionAdapter.validate_python(record)
