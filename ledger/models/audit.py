"""
Audit Models for Purchase Ledger

Every significant action in the system is logged for audit purposes.
This provides:
1. Complete traceability of all ledger mutations
2. Debugging information when the store misbehaves
3. A record of ownership mismatches (without leaking them to callers)

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Purchases
    PURCHASE_CREATED = "purchase_created"
    PURCHASE_UPDATED = "purchase_updated"
    PURCHASE_DELETED = "purchase_deleted"
    PURCHASE_NOT_FOUND = "purchase_not_found"
    PURCHASES_LISTED = "purchases_listed"

    # Reports
    STATS_COMPUTED = "stats_computed"
    MONTHLY_STATS_COMPUTED = "monthly_stats_computed"

    # Store lifecycle
    STORE_CONNECTED = "store_connected"
    STORE_CONNECTION_FAILED = "store_connection_failed"
    STORE_CLOSED = "store_closed"
    STORAGE_INCONSISTENCY = "storage_inconsistency"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'purchase', 'user', 'store')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one API request)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    # Additional data (event-specific)
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.purchase_created(purchase_id, user_id, 42.5)
        event = AuditEventBuilder.purchase_not_found(purchase_id, user_id, "update")
    """

    @staticmethod
    def purchase_created(
        purchase_id: str,
        user_id: str,
        price: float,
        category_id: Optional[str],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PURCHASE_CREATED,
            entity_type="purchase",
            entity_id=purchase_id,
            correlation_id=correlation_id,
            description=f"Purchase created: {price:.2f}",
            details={
                "user_id": user_id,
                "price": price,
                "category_id": category_id,
            },
        )

    @staticmethod
    def purchase_updated(
        purchase_id: str,
        user_id: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PURCHASE_UPDATED,
            entity_type="purchase",
            entity_id=purchase_id,
            correlation_id=correlation_id,
            description=f"Purchase updated: {', '.join(fields) or 'updatedAt'}",
            details={
                "user_id": user_id,
                "fields": fields,
            },
        )

    @staticmethod
    def purchase_deleted(
        purchase_id: str,
        user_id: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PURCHASE_DELETED,
            entity_type="purchase",
            entity_id=purchase_id,
            correlation_id=correlation_id,
            description="Purchase deleted with all relationships",
            details={
                "user_id": user_id,
            },
        )

    @staticmethod
    def purchase_not_found(
        purchase_id: str,
        user_id: str,
        operation: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PURCHASE_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            entity_type="purchase",
            entity_id=purchase_id,
            correlation_id=correlation_id,
            description=f"Purchase not found for {operation} (missing or not owned)",
            details={
                "user_id": user_id,
                "operation": operation,
            },
        )

    @staticmethod
    def purchases_listed(
        user_id: str,
        result_count: int,
        filters: dict,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PURCHASES_LISTED,
            severity=AuditSeverity.DEBUG,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"Listed {result_count} purchases",
            details={
                "result_count": result_count,
                "filters": filters,
            },
        )

    @staticmethod
    def stats_computed(
        user_id: str,
        report: str,
        details: dict,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        event_type = (
            AuditEventType.MONTHLY_STATS_COMPUTED
            if report == "monthly"
            else AuditEventType.STATS_COMPUTED
        )
        return AuditEvent(
            event_type=event_type,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"{report.capitalize()} report computed",
            details=details,
        )

    @staticmethod
    def store_connected(uri: str, database: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_CONNECTED,
            entity_type="store",
            description="Graph store connectivity verified",
            details={
                "uri": uri,
                "database": database,
            },
        )

    @staticmethod
    def store_connection_failed(uri: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_CONNECTION_FAILED,
            severity=AuditSeverity.CRITICAL,
            entity_type="store",
            description="Graph store connectivity could not be verified",
            error_message=error_message,
            details={
                "uri": uri,
            },
        )

    @staticmethod
    def store_closed(uri: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_CLOSED,
            entity_type="store",
            description="Graph store connection closed",
            details={
                "uri": uri,
            },
        )

    @staticmethod
    def storage_inconsistency(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_INCONSISTENCY,
            severity=AuditSeverity.ERROR,
            description=f"Storage inconsistency during {operation}",
            error_message=error_message,
            details={
                "operation": operation,
            },
            correlation_id=correlation_id,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
