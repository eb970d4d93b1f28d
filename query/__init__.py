"""
WorkLedger Query Module
=======================
Read-only reporting: predicate queries and per-key history.
"""

from query.executor import QueryExecutor, QueryResult
from query.history import HistoryEntry, HistoryReader

__all__ = ["QueryExecutor", "QueryResult", "HistoryEntry", "HistoryReader"]
