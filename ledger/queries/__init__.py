"""Query construction and aggregation package."""

from ledger.queries.aggregation import MonthlyTable, PurchaseStatsEngine
from ledger.queries.builder import CypherQuery, PurchaseQueryBuilder, QueryKind

__all__ = [
    "CypherQuery",
    "MonthlyTable",
    "PurchaseQueryBuilder",
    "PurchaseStatsEngine",
    "QueryKind",
]
