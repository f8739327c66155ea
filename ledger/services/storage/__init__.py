"""
Storage Services Package

Provides the graph-store capability interfaces and their Neo4j
implementation, plus the purchase repository and audit storage built
on top of them.
"""

from ledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    GraphClient,
    GraphSession,
    PurchaseStorageInterface,
    StorageError,
    StorageInconsistencyError,
)
from ledger.services.storage.neo4j_client import Neo4jClient, Neo4jGraphSession
from ledger.services.storage.schema import ensure_schema
from ledger.services.storage.memory import InMemoryAuditStorage
from ledger.services.storage.repository import Neo4jPurchaseRepository

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "GraphClient",
    "GraphSession",
    "PurchaseStorageInterface",
    # Exceptions
    "ConnectionError",
    "StorageError",
    "StorageInconsistencyError",
    # Neo4j implementation
    "Neo4jClient",
    "Neo4jGraphSession",
    "Neo4jPurchaseRepository",
    "ensure_schema",
    # Audit storage
    "InMemoryAuditStorage",
]
