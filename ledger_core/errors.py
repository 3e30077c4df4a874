"""
Ledger Error Kinds

Every rejection the core can produce is a LedgerError subclass carrying an
ErrorKind. Callers that only care about the category of failure can switch
on `error.kind`; callers that care about the specific case can catch the
subclass.

IMPORTANT: Validation errors reject the mutation outright.
Nothing is ever partially applied.
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Finite set of failure categories."""
    INVALID_RECURRENCE_RULE = "InvalidRecurrenceRule"
    NEGATIVE_OR_ZERO_AMOUNT = "NegativeOrZeroAmount"
    UNKNOWN_CURRENCY = "UnknownCurrency"
    DUPLICATE_CURRENCY_CODE = "DuplicateCurrencyCode"
    PROTECTED_BASE_CURRENCY = "ProtectedBaseCurrency"
    INVALID_CURRENCY_RATE = "InvalidCurrencyRate"
    CURRENCY_IN_USE = "CurrencyInUse"
    UNKNOWN_CATEGORY = "UnknownCategory"
    DUPLICATE_BUDGET_LIMIT = "DuplicateBudgetLimit"
    PROTECTED_INSTANCE = "ProtectedInstance"
    NOT_FOUND = "NotFound"
    MALFORMED_IMPORT_ROW = "MalformedImportRow"
    STORE_WRITE_FAILURE = "StoreWriteFailure"


class LedgerError(Exception):
    """Base exception for all ledger rejections."""

    kind: ErrorKind

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.kind.value,
            "message": self.message,
            **self.details,
        }


class InvalidRecurrenceRule(LedgerError):
    """Template has an unrecognized cadence."""
    kind = ErrorKind.INVALID_RECURRENCE_RULE


class NegativeOrZeroAmount(LedgerError):
    """Amounts must be strictly positive."""
    kind = ErrorKind.NEGATIVE_OR_ZERO_AMOUNT


class UnknownCurrency(LedgerError):
    """Currency code is not in the rate table."""
    kind = ErrorKind.UNKNOWN_CURRENCY


class DuplicateCurrencyCode(LedgerError):
    """Currency code is already in the rate table."""
    kind = ErrorKind.DUPLICATE_CURRENCY_CODE


class ProtectedBaseCurrency(LedgerError):
    """The base currency cannot be removed or re-rated."""
    kind = ErrorKind.PROTECTED_BASE_CURRENCY


class InvalidCurrencyRate(LedgerError):
    """Rates must be strictly positive."""
    kind = ErrorKind.INVALID_CURRENCY_RATE


class CurrencyInUse(LedgerError):
    """Currency is still referenced by stored transactions."""
    kind = ErrorKind.CURRENCY_IN_USE


class UnknownCategory(LedgerError):
    """Category is not in the configured category set."""
    kind = ErrorKind.UNKNOWN_CATEGORY


class DuplicateBudgetLimit(LedgerError):
    """A category already has a budget limit."""
    kind = ErrorKind.DUPLICATE_BUDGET_LIMIT


class ProtectedInstance(LedgerError):
    """Materialized instances are owned by the recurrence engine."""
    kind = ErrorKind.PROTECTED_INSTANCE


class NotFound(LedgerError):
    """Referenced record does not exist."""
    kind = ErrorKind.NOT_FOUND


class MalformedImportRow(LedgerError):
    """A CSV row could not be parsed."""
    kind = ErrorKind.MALFORMED_IMPORT_ROW

    def __init__(self, message: str, line_number: int, details: Optional[dict[str, Any]] = None):
        super().__init__(message, details)
        self.line_number = line_number


class StoreWriteFailure(LedgerError):
    """Persisting the ledger state failed; nothing was written."""
    kind = ErrorKind.STORE_WRITE_FAILURE
