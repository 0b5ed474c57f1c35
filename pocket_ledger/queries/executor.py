"""
Query Execution Engine

DESIGN DECISION: Query execution is DETERMINISTIC.
A ``HistoryQuery`` says what to show; this engine reads the stored log
and returns exactly the matching transactions. Nothing is estimated or
summarized here; the analytics engine does that.

Ordering is always newest first:
- ``timestamp``: by submission time
- ``date``: by event date, ties broken by submission time
"""

from pocket_ledger.engine.records import coerce_transactions
from pocket_ledger.models.query import HistoryQuery, QueryResult
from pocket_ledger.models.transaction import TransactionBase
from pocket_ledger.services.storage import StorageError, TransactionLogStorage


class QueryExecutor:
    """
    Executes history queries against one ledger's transaction log.

    GUARANTEES:
    - Only returns real data from storage
    - Clear "no data found" if nothing matches
    - Storage failures come back as an unsuccessful result, never raised
    """

    def __init__(self, storage: TransactionLogStorage, ledger_key: str):
        self._storage = storage
        self._ledger_key = ledger_key

    async def execute(self, query: HistoryQuery) -> QueryResult:
        """Execute a history query and return the matching transactions."""
        try:
            stored = await self._storage.list_transactions(self._ledger_key)
        except StorageError as e:
            return QueryResult(
                query_id=query.query_id,
                success=False,
                error_message=str(e),
                data_found=False,
                result_count=0,
                query_description=f"Query failed: {str(e)}",
            )

        transactions = [
            tx for tx in coerce_transactions(stored).transactions
            if self._matches(tx, query)
        ]
        transactions.sort(key=self._sort_key(query.sort_by), reverse=True)
        if query.limit is not None:
            transactions = transactions[:query.limit]

        return QueryResult(
            query_id=query.query_id,
            success=True,
            data_found=len(transactions) > 0,
            result_count=len(transactions),
            results=transactions,
            query_description=self._describe(query),
        )

    def _matches(self, tx: TransactionBase, query: HistoryQuery) -> bool:
        if query.type_filter is not None and tx.type != query.type_filter:
            return False
        if query.account_filter and query.account_filter not in tx.account_ids:
            return False
        return True

    def _sort_key(self, sort_by: str):
        if sort_by == "date":
            return lambda tx: (tx.event_date, tx.created_at)
        return lambda tx: tx.created_at

    def _describe(self, query: HistoryQuery) -> str:
        """Format the query for display."""
        desc_parts = ["Listing transactions"]
        if query.type_filter is not None:
            desc_parts.append(f"type: {query.type_filter.value}")
        if query.account_filter:
            desc_parts.append(f"account: {query.account_filter}")
        desc_parts.append(
            "by date" if query.sort_by == "date" else "by time entered"
        )
        if query.limit is not None:
            desc_parts.append(f"latest {query.limit}")
        return " | ".join(desc_parts)
