"""
Audit Models for Ledger Core

Every significant action in the ledger is logged for audit purposes:
user mutations, recurrence runs, saves, imports and raised alerts.

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
    # User mutations
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_REMOVED = "transaction_removed"
    BUDGET_LIMIT_SET = "budget_limit_set"
    BUDGET_LIMIT_REMOVED = "budget_limit_removed"
    CURRENCY_ADDED = "currency_added"
    CURRENCY_REMOVED = "currency_removed"
    CATEGORY_ADDED = "category_added"
    DEBT_UPDATED = "debt_updated"
    GOAL_UPDATED = "goal_updated"
    VALIDATION_REJECTED = "validation_rejected"

    # Recurrence
    INSTANCES_MATERIALIZED = "instances_materialized"
    TEMPLATE_SKIPPED = "template_skipped"

    # Pipeline
    PASS_COMPLETED = "pass_completed"
    BUDGET_ALERT = "budget_alert"

    # Persistence
    STATE_SAVED = "state_saved"
    SAVE_FAILED = "save_failed"
    RECORD_QUARANTINED = "record_quarantined"

    # Exchange
    IMPORT_COMPLETED = "import_completed"
    IMPORT_ROW_SKIPPED = "import_row_skipped"


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
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'template', 'state')"
    )
    entity_id: Optional[str] = None

    # Correlation - all events of one pass share an id
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
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
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_added(transaction_id, kind, amount)
        event = AuditEventBuilder.template_skipped(template_id, reason, correlation_id)
    """

    @staticmethod
    def transaction_added(
        transaction_id: UUID,
        kind: str,
        amount: str,
        currency: str,
        is_template: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            entity_type="template" if is_template else "transaction",
            entity_id=str(transaction_id),
            correlation_id=correlation_id,
            description=f"{kind.capitalize()} of {amount} {currency} added",
            details={"kind": kind, "amount": amount, "currency": currency},
            is_user_action=True,
        )

    @staticmethod
    def transaction_removed(
        transaction_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_REMOVED,
            entity_type="transaction",
            entity_id=str(transaction_id),
            correlation_id=correlation_id,
            description="Transaction removed",
            is_user_action=True,
        )

    @staticmethod
    def settings_changed(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        description: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        """Category, currency, budget limit, debt and goal changes."""
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=description,
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def validation_rejected(
        error_code: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_REJECTED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Mutation rejected: {error_code}",
            details=details or {},
            error_code=error_code,
            error_message=error_message,
            is_user_action=True,
        )

    @staticmethod
    def instances_materialized(
        count: int,
        as_of: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INSTANCES_MATERIALIZED,
            entity_type="state",
            correlation_id=correlation_id,
            description=f"{count} recurring instance(s) materialized up to {as_of}",
            details={"count": count, "as_of": as_of},
        )

    @staticmethod
    def template_skipped(
        template_id: Optional[str],
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TEMPLATE_SKIPPED,
            severity=AuditSeverity.WARNING,
            entity_type="template",
            entity_id=template_id,
            correlation_id=correlation_id,
            description="Recurring template skipped during expansion",
            error_message=reason,
        )

    @staticmethod
    def record_quarantined(
        record_id: Optional[str],
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_QUARANTINED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            entity_id=record_id,
            correlation_id=correlation_id,
            description="Stored transaction record failed validation",
            error_message=reason,
        )

    @staticmethod
    def budget_alert(
        category: str,
        severity: str,
        percent: Optional[str],
        period: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_ALERT,
            severity=AuditSeverity.WARNING,
            entity_type="category",
            entity_id=category,
            correlation_id=correlation_id,
            description=f"Budget {severity} for {category}",
            details={"severity": severity, "percent_of_limit": percent, "period": period},
        )

    @staticmethod
    def pass_completed(
        as_of: str,
        new_instances: int,
        skipped_templates: int,
        periods: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PASS_COMPLETED,
            entity_type="state",
            correlation_id=correlation_id,
            description=f"Ledger pass completed as of {as_of}",
            details={
                "new_instances": new_instances,
                "skipped_templates": skipped_templates,
                "periods": periods,
            },
        )

    @staticmethod
    def state_saved(
        key: str,
        transaction_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_SAVED,
            entity_type="state",
            entity_id=key,
            correlation_id=correlation_id,
            description="Ledger state saved",
            details={"transaction_count": transaction_count},
        )

    @staticmethod
    def save_failed(
        key: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="state",
            entity_id=key,
            correlation_id=correlation_id,
            description="Ledger state could not be saved",
            error_code="StoreWriteFailure",
            error_message=error_message,
        )

    @staticmethod
    def import_row_skipped(
        line_number: int,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_ROW_SKIPPED,
            severity=AuditSeverity.WARNING,
            entity_type="import_row",
            entity_id=str(line_number),
            correlation_id=correlation_id,
            description=f"Import row {line_number} skipped",
            error_code="MalformedImportRow",
            error_message=reason,
        )

    @staticmethod
    def import_completed(
        imported: int,
        skipped: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_COMPLETED,
            severity=AuditSeverity.WARNING if skipped else AuditSeverity.INFO,
            entity_type="state",
            correlation_id=correlation_id,
            description=f"CSV import completed: {imported} row(s) imported, {skipped} skipped",
            details={"imported": imported, "skipped": skipped},
            is_user_action=True,
        )
