"""Query execution package."""

from pocket_ledger.queries.executor import QueryExecutor

__all__ = ["QueryExecutor"]
