"""
Main Orchestrator for Purchase Ledger

This module ties the components together behind one caller-facing
facade, LedgerService, which exposes:
1. Purchase CRUD (create, list, update, delete)
2. Spending reports (totals, monthly series)
3. User / category existence guarantees

DESIGN DECISION: The orchestrator enforces the boundaries:
- No caller sees a store-specific type; inputs and outputs are models
- Ownership mismatches come back as None / False, never as exceptions
- Every operation is audited
- The service is only handed out after the store answered a probe
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from ledger.audit import AuditLogger, create_correlation_id
from ledger.config import LedgerSettings, Settings, get_settings
from ledger.models.purchase import (
    MonthlyPurchaseStats,
    MonthlyStatsQuery,
    Purchase,
    PurchaseCreate,
    PurchaseQuery,
    PurchaseStats,
    PurchaseUpdate,
    StatsQuery,
)
from ledger.queries import PurchaseQueryBuilder, PurchaseStatsEngine
from ledger.services.storage import (
    ConnectionError,
    GraphClient,
    InMemoryAuditStorage,
    Neo4jClient,
    Neo4jPurchaseRepository,
    PurchaseStorageInterface,
    StorageError,
    StorageInconsistencyError,
    ensure_schema,
)


class LedgerService:
    """
    Caller-facing purchase ledger.

    Every method accepts an optional correlation_id that is attached to
    the audit events it produces; a fresh one is created otherwise.

    Usage:
        async with await create_app_components() as ledger:
            purchase = await ledger.create_purchase(PurchaseCreate(...))
    """

    def __init__(
        self,
        client: GraphClient,
        settings: Optional[LedgerSettings] = None,
        repository: Optional[PurchaseStorageInterface] = None,
        stats_engine: Optional[PurchaseStatsEngine] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        builder = PurchaseQueryBuilder()
        self._client = client
        self._settings = settings or LedgerSettings()
        self._repository = repository or Neo4jPurchaseRepository(client, builder)
        self._stats_engine = stats_engine or PurchaseStatsEngine(client, builder)
        self._audit_logger = audit_logger or AuditLogger()

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit_logger

    # =========================================================================
    # PURCHASES
    # =========================================================================

    async def create_purchase(
        self,
        data: PurchaseCreate,
        correlation_id: Optional[UUID] = None,
    ) -> Purchase:
        """
        Create a purchase for data.user_id.

        Raises:
            StorageInconsistencyError: If the store acknowledged no record
            StorageError: On any other store failure
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            purchase = await self._repository.create_purchase(data)
        except StorageError as e:
            await self._log_storage_failure("create_purchase", e, correlation_id)
            raise

        await self._audit_logger.log_purchase_created(
            purchase_id=purchase.id,
            user_id=data.user_id,
            price=purchase.price,
            category_id=purchase.category_id,
            correlation_id=correlation_id,
        )
        return purchase

    async def list_purchases(
        self,
        user_id: str,
        category_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        correlation_id: Optional[UUID] = None,
    ) -> list[Purchase]:
        """
        List a user's purchases, newest first.

        limit defaults to the configured page size and is capped at the
        configured maximum.

        Raises:
            pydantic.ValidationError: On malformed filters
        """
        correlation_id = correlation_id or create_correlation_id()

        if limit is None:
            limit = self._settings.default_page_size
        query = PurchaseQuery(
            user_id=user_id,
            category_id=category_id,
            start_date=start_date,
            end_date=end_date,
            limit=min(limit, self._settings.max_page_size),
            offset=offset,
        )

        try:
            purchases = await self._repository.list_purchases(query)
        except StorageError as e:
            await self._log_storage_failure("list_purchases", e, correlation_id)
            raise

        await self._audit_logger.log_purchases_listed(
            user_id=user_id,
            result_count=len(purchases),
            filters=query.model_dump(mode="json", exclude={"user_id"}, exclude_none=True),
            correlation_id=correlation_id,
        )
        return purchases

    async def update_purchase(
        self,
        purchase_id: str,
        user_id: str,
        changes: PurchaseUpdate,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[Purchase]:
        """
        Apply a partial update to an owned purchase.

        Returns:
            The updated purchase, or None when it does not exist or
            belongs to someone else
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            purchase = await self._repository.update_purchase(purchase_id, user_id, changes)
        except StorageError as e:
            await self._log_storage_failure("update_purchase", e, correlation_id)
            raise

        if purchase is None:
            await self._audit_logger.log_purchase_not_found(
                purchase_id=purchase_id,
                user_id=user_id,
                operation="update",
                correlation_id=correlation_id,
            )
            return None

        await self._audit_logger.log_purchase_updated(
            purchase_id=purchase_id,
            user_id=user_id,
            fields=list(changes.changes()),
            correlation_id=correlation_id,
        )
        return purchase

    async def delete_purchase(
        self,
        purchase_id: str,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Delete an owned purchase and all its relationships.

        Returns:
            True if deleted, False if not found or not owned
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            deleted = await self._repository.delete_purchase(purchase_id, user_id)
        except StorageError as e:
            await self._log_storage_failure("delete_purchase", e, correlation_id)
            raise

        if deleted:
            await self._audit_logger.log_purchase_deleted(
                purchase_id=purchase_id,
                user_id=user_id,
                correlation_id=correlation_id,
            )
        else:
            await self._audit_logger.log_purchase_not_found(
                purchase_id=purchase_id,
                user_id=user_id,
                operation="delete",
                correlation_id=correlation_id,
            )
        return deleted

    async def ensure_user_exists(self, user_id: str) -> None:
        await self._repository.ensure_user_exists(user_id)

    async def ensure_category_exists(self, category_id: str) -> None:
        await self._repository.ensure_category_exists(category_id)

    # =========================================================================
    # REPORTS
    # =========================================================================

    async def get_purchase_stats(
        self,
        user_id: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> PurchaseStats:
        """Totals report over an optional date range."""
        correlation_id = correlation_id or create_correlation_id()
        query = StatsQuery(user_id=user_id, start_date=start_date, end_date=end_date)

        try:
            stats = await self._stats_engine.get_purchase_stats(query)
        except StorageError as e:
            await self._log_storage_failure("get_purchase_stats", e, correlation_id)
            raise

        await self._audit_logger.log_stats_computed(
            user_id=user_id,
            report="summary",
            details={
                "total_count": stats.total_count,
                "categories": len(stats.categories_stats),
            },
            correlation_id=correlation_id,
        )
        return stats

    async def get_monthly_purchase_stats(
        self,
        user_id: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        months: Optional[int] = None,
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> MonthlyPurchaseStats:
        """
        Monthly series report.

        Args:
            user_id: Owner
            start_date: First instant of the window, derived when absent
            end_date: Last instant of the window, now when absent
            months: Number of buckets, the configured default when absent
            now: Reference time for the default end_date

        Raises:
            ValueError: If months exceeds the configured maximum
        """
        correlation_id = correlation_id or create_correlation_id()

        if months is None:
            months = self._settings.default_months
        if months > self._settings.max_months:
            raise ValueError(
                f"months must be at most {self._settings.max_months}, got {months}"
            )
        query = MonthlyStatsQuery(
            user_id=user_id,
            start_date=start_date,
            end_date=end_date,
            months=months,
        )

        try:
            stats = await self._stats_engine.get_monthly_purchase_stats(query, now=now)
        except StorageError as e:
            await self._log_storage_failure("get_monthly_purchase_stats", e, correlation_id)
            raise

        await self._audit_logger.log_stats_computed(
            user_id=user_id,
            report="monthly",
            details={
                "months": months,
                "first_month": stats.month_keys[0],
                "categories": len(stats.category_stats),
            },
            correlation_id=correlation_id,
        )
        return stats

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def close(self) -> None:
        """Close the store connection."""
        await self._client.close()
        await self._audit_logger.log_store_closed(self._client.uri)

    async def __aenter__(self) -> "LedgerService":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _log_storage_failure(
        self,
        operation: str,
        error: StorageError,
        correlation_id: UUID,
    ) -> None:
        if isinstance(error, StorageInconsistencyError):
            await self._audit_logger.log_storage_inconsistency(
                operation=operation,
                error_message=str(error),
                correlation_id=correlation_id,
            )
        else:
            await self._audit_logger.log_error(
                error_type=type(error).__name__,
                error_message=str(error),
                details={"operation": operation},
                correlation_id=correlation_id,
            )


async def create_app_components(
    settings: Optional[Settings] = None,
    client: Optional[GraphClient] = None,
    bootstrap_schema: Optional[bool] = None,
) -> LedgerService:
    """
    Factory function to create a connected LedgerService.

    Args:
        settings: Application settings. Loaded from the environment if None.
        client: Graph client to use instead of a Neo4jClient built from
                settings.
        bootstrap_schema: Create constraints and indexes before returning.
                          Defaults to NEO4J_ENSURE_SCHEMA for a built
                          client and to False for an injected one.

    Returns:
        A LedgerService whose store has answered a connectivity probe

    Raises:
        ConnectionError: If the store cannot be reached.
        StorageError: If the schema bootstrap fails.
        In both cases the client is closed and no service is returned.
    """
    settings = settings or get_settings()
    ledger_settings = settings.ledger

    if client is None:
        neo4j_settings = settings.neo4j
        client = Neo4jClient(neo4j_settings, encrypted=settings.use_encryption)
        if bootstrap_schema is None:
            bootstrap_schema = neo4j_settings.ensure_schema
    elif bootstrap_schema is None:
        bootstrap_schema = False

    audit_logger = AuditLogger(InMemoryAuditStorage(ledger_settings.audit_buffer_size))

    try:
        await client.verify_connectivity()
    except ConnectionError as e:
        await audit_logger.log_store_connection_failed(client.uri, str(e))
        await client.close()
        raise

    await audit_logger.log_store_connected(client.uri, client.database)

    if bootstrap_schema:
        try:
            await ensure_schema(client)
        except StorageError as e:
            await audit_logger.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                details={"operation": "ensure_schema"},
            )
            await client.close()
            raise

    return LedgerService(
        client,
        settings=ledger_settings,
        audit_logger=audit_logger,
    )
