"""Mutation validation package."""

from ledger_core.validation.validator import LedgerValidator, positive_amount, sanitize_text

__all__ = ["LedgerValidator", "positive_amount", "sanitize_text"]
