"""Recurring transaction expansion package."""

from ledger_core.recurrence.engine import (
    ExpansionResult,
    RecurrenceEngine,
    SkippedTemplate,
    occurrences,
    validate_template,
)

__all__ = [
    "ExpansionResult",
    "RecurrenceEngine",
    "SkippedTemplate",
    "occurrences",
    "validate_template",
]
