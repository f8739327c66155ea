"""
Data Models Package

This package contains all Pydantic models used in the Purchase Ledger.
All data crossing the ledger boundary must conform to these schemas.
"""

from ledger.models.purchase import (
    OTHER_CATEGORY,
    CategoryStat,
    MonthlyCategoryStat,
    MonthlyPurchaseStats,
    MonthlyStatsQuery,
    Purchase,
    PurchaseCreate,
    PurchaseQuery,
    PurchaseStats,
    PurchaseUpdate,
    StatsQuery,
)
from ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Purchase models
    "OTHER_CATEGORY",
    "CategoryStat",
    "MonthlyCategoryStat",
    "MonthlyPurchaseStats",
    "MonthlyStatsQuery",
    "Purchase",
    "PurchaseCreate",
    "PurchaseQuery",
    "PurchaseStats",
    "PurchaseUpdate",
    "StatsQuery",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
