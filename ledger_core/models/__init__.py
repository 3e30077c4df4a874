"""
Data Models Package

This package contains all Pydantic models used in Ledger Core.
All data flowing through the system must conform to these schemas.
"""

from ledger_core.models.transaction import (
    MaterializedKey,
    RecurrenceRule,
    Transaction,
    TransactionType,
    instance_id,
    period_key,
)
from ledger_core.models.budget import (
    Alert,
    AlertSeverity,
    BudgetLimit,
    Debt,
    Goal,
    PeriodSummary,
)
from ledger_core.models.ledger import LedgerState, QuarantinedRecord
from ledger_core.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "MaterializedKey",
    "RecurrenceRule",
    "Transaction",
    "TransactionType",
    "instance_id",
    "period_key",
    # Budget models
    "Alert",
    "AlertSeverity",
    "BudgetLimit",
    "Debt",
    "Goal",
    "PeriodSummary",
    # State
    "LedgerState",
    "QuarantinedRecord",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
