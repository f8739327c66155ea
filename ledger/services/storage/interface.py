"""
Abstract Storage Interfaces

DESIGN DECISION: The graph store is consumed as a capability:
"execute a parameterized query, return rows". Everything above that
line (query construction, ownership rules, aggregation) is plain
Python that never touches driver objects.

This allows us to:
1. Test the ledger logic against a scripted in-process session
2. Keep neo4j types from leaking to callers
3. Keep purchase logic decoupled from connection management

The interfaces are intentionally small - we're not building an OGM.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Any, Optional
from uuid import UUID

from ledger.models.audit import AuditEvent
from ledger.models.purchase import (
    Purchase,
    PurchaseCreate,
    PurchaseQuery,
    PurchaseUpdate,
)


Row = dict[str, Any]


class GraphSession(ABC):
    """
    One logical unit of work against the graph store.

    Statements executed on the same session see each other's writes.
    """

    @abstractmethod
    async def execute_read(self, query: str, params: Optional[dict] = None) -> list[Row]:
        """
        Run a read-only statement.

        Returns:
            Rows as plain dicts keyed by the RETURN aliases
        """
        pass

    @abstractmethod
    async def execute_write(self, query: str, params: Optional[dict] = None) -> list[Row]:
        """
        Run a statement in a write transaction.

        The write is committed before this returns and is visible to
        reads issued later on this session or on any session from the
        same client.
        """
        pass


class GraphClient(ABC):
    """Hands out sessions. Each operation takes its own and releases it."""

    @abstractmethod
    def session(self) -> AbstractAsyncContextManager[GraphSession]:
        """
        Open a session, closed unconditionally when the block exits.

        Usage:
            async with client.session() as session:
                rows = await session.execute_read(query, params)
        """
        pass

    @property
    def uri(self) -> str:
        """Where the store lives, for logs."""
        return ""

    @property
    def database(self) -> Optional[str]:
        return None

    async def verify_connectivity(self) -> None:
        """Raise ConnectionError when the store cannot be reached."""
        return None

    async def close(self) -> None:
        """Release pooled connections. Sessions must not be opened afterwards."""
        return None


class PurchaseStorageInterface(ABC):
    """
    Abstract interface for purchase storage operations.

    Every method that takes a user id is scoped to that owner.
    """

    @abstractmethod
    async def create_purchase(self, data: PurchaseCreate) -> Purchase:
        """
        Create a purchase owned by data.user_id.

        Returns:
            The stored purchase with its generated id

        Raises:
            StorageInconsistencyError: If the write returned no record
        """
        pass

    @abstractmethod
    async def list_purchases(self, query: PurchaseQuery) -> list[Purchase]:
        """
        List a user's purchases, newest first.

        Args:
            query: Owner, optional category and date filters, pagination

        Returns:
            Matching purchases (empty for an unknown user, never an error)
        """
        pass

    @abstractmethod
    async def update_purchase(
        self,
        purchase_id: str,
        user_id: str,
        changes: PurchaseUpdate,
    ) -> Optional[Purchase]:
        """
        Apply a partial update.

        Returns:
            The updated purchase, or None if it does not exist or is
            owned by another user
        """
        pass

    @abstractmethod
    async def delete_purchase(self, purchase_id: str, user_id: str) -> bool:
        """
        Delete a purchase and all its relationships.

        Returns:
            True if deleted, False if not found or not owned
        """
        pass

    @abstractmethod
    async def ensure_user_exists(self, user_id: str) -> None:
        """Idempotently create the User node."""
        pass

    @abstractmethod
    async def ensure_category_exists(self, category_id: str) -> None:
        """Idempotently create the Category node."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for a correlation ID, in chronological order."""
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Get all events for a specific entity, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageInconsistencyError(StorageError):
    """A write that must return a record returned none."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
