"""
Audit Logger

DESIGN DECISION: Every ledger mutation and every report is logged.
This provides:
1. Traceability of who changed which purchase
2. A record of ownership mismatches that callers only see as "not found"
3. Debugging context when the graph store misbehaves

The audit logger:
- Is async so it can persist events without blocking the main flow
- Never lets a failing audit store break a ledger operation
- Supports correlation IDs to trace the events of one request
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from ledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An AuditStorageInterface backend, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("ledger.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage is not None:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_purchase_created(
        self,
        purchase_id: str,
        user_id: str,
        price: float,
        category_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log purchase creation."""
        await self.log(AuditEventBuilder.purchase_created(
            purchase_id=purchase_id,
            user_id=user_id,
            price=price,
            category_id=category_id,
            correlation_id=correlation_id,
        ))

    async def log_purchase_updated(
        self,
        purchase_id: str,
        user_id: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.purchase_updated(
            purchase_id=purchase_id,
            user_id=user_id,
            fields=fields,
            correlation_id=correlation_id,
        ))

    async def log_purchase_deleted(
        self,
        purchase_id: str,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.purchase_deleted(
            purchase_id=purchase_id,
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_purchase_not_found(
        self,
        purchase_id: str,
        user_id: str,
        operation: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an update/delete that matched no owned purchase."""
        await self.log(AuditEventBuilder.purchase_not_found(
            purchase_id=purchase_id,
            user_id=user_id,
            operation=operation,
            correlation_id=correlation_id,
        ))

    async def log_purchases_listed(
        self,
        user_id: str,
        result_count: int,
        filters: dict,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.purchases_listed(
            user_id=user_id,
            result_count=result_count,
            filters=filters,
            correlation_id=correlation_id,
        ))

    async def log_stats_computed(
        self,
        user_id: str,
        report: str,
        details: dict,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a totals ("summary") or "monthly" report."""
        await self.log(AuditEventBuilder.stats_computed(
            user_id=user_id,
            report=report,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_store_connected(self, uri: str, database: Optional[str]) -> None:
        await self.log(AuditEventBuilder.store_connected(uri=uri, database=database))

    async def log_store_connection_failed(self, uri: str, error_message: str) -> None:
        await self.log(AuditEventBuilder.store_connection_failed(
            uri=uri,
            error_message=error_message,
        ))

    async def log_store_closed(self, uri: str) -> None:
        await self.log(AuditEventBuilder.store_closed(uri=uri))

    async def log_storage_inconsistency(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.storage_inconsistency(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new caller request and pass it through
    every ledger operation made on its behalf.
    """
    return uuid4()
