"""Services package."""

from ledger.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    GraphClient,
    GraphSession,
    InMemoryAuditStorage,
    Neo4jClient,
    Neo4jGraphSession,
    Neo4jPurchaseRepository,
    PurchaseStorageInterface,
    StorageError,
    StorageInconsistencyError,
    ensure_schema,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "GraphClient",
    "GraphSession",
    "InMemoryAuditStorage",
    "Neo4jClient",
    "Neo4jGraphSession",
    "Neo4jPurchaseRepository",
    "PurchaseStorageInterface",
    "StorageError",
    "StorageInconsistencyError",
    "ensure_schema",
]
