"""
History Query Models

The history view is a filtered, sorted read of the transaction log.
Queries are plain data; ``QueryExecutor`` runs them against storage.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from pocket_ledger.models.transaction import TransactionType, utc_now


class HistoryQuery(BaseModel):
    """A filtered read of the transaction log."""

    query_id: UUID = Field(
        default_factory=uuid4
    )
    created_at: datetime = Field(
        default_factory=utc_now
    )

    # Filters
    type_filter: Optional[TransactionType] = Field(
        default=None,
        description="Only this kind of transaction; None means all"
    )
    account_filter: Optional[str] = Field(
        default=None,
        description="Account id matched against either side of the transaction"
    )

    sort_by: str = Field(
        default="timestamp",
        pattern="^(timestamp|date)$",
        description="Newest-first by submission time, or by event date"
    )
    limit: Optional[int] = Field(
        default=None,
        ge=1,
        description="Maximum number of rows; None returns everything"
    )


class QueryResult(BaseModel):
    """Result of executing a history query."""

    query_id: UUID
    executed_at: datetime = Field(
        default_factory=utc_now
    )

    success: bool
    error_message: Optional[str] = None

    data_found: bool = Field(
        ...,
        description="Was any data found?"
    )
    result_count: int = Field(
        ge=0,
        description="Number of results"
    )
    results: list[Any] = Field(
        default_factory=list,
        description="Matching transactions, newest first"
    )
    query_description: str = Field(
        ...,
        description="Human-readable description of what was queried"
    )
