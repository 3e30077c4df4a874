"""
Mutation Validation

Every user mutation passes through here before it touches the ledger
state. Checks run in a fixed order so the caller always gets the most
specific ErrorKind:

1. Amount is a positive number          -> NegativeOrZeroAmount
2. Cadence is recognized                -> InvalidRecurrenceRule
3. Currency is in the rate table        -> UnknownCurrency
4. Category is in the category set      -> UnknownCategory
5. Schema (dates, lengths, types)       -> pydantic ValidationError

IMPORTANT: Validation NEVER silently fixes data, with one exception:
free text is sanitized (markup characters stripped, trimmed, truncated)
because it is echoed back into HTML by the presentation layer.
"""

import re
from decimal import Decimal
from typing import Any, Mapping, Optional

from ledger_core import money
from ledger_core.config import get_settings
from ledger_core.currency import normalize_code
from ledger_core.errors import (
    DuplicateBudgetLimit,
    InvalidRecurrenceRule,
    NegativeOrZeroAmount,
    ProtectedInstance,
    UnknownCategory,
    UnknownCurrency,
)
from ledger_core.models.budget import BudgetLimit, Debt, Goal
from ledger_core.models.ledger import LedgerState
from ledger_core.models.transaction import RecurrenceRule, Transaction
from ledger_core.recurrence import validate_template

_UNSAFE_CHARS = re.compile(r"[<>\"'&]")


def sanitize_text(value: Any, max_length: Optional[int] = None) -> Any:
    """
    Strip markup characters, trim and cap the length of user text.

    Non-strings are returned unchanged.
    """
    if not isinstance(value, str):
        return value
    if max_length is None:
        max_length = get_settings().ledger.text_max_length
    return _UNSAFE_CHARS.sub("", value).strip()[:max_length]


def positive_amount(value: Any, field: str = "amount") -> Decimal:
    """Parse an amount that must be strictly positive."""
    try:
        amount = money.to_decimal(value)
    except (TypeError, ValueError):
        raise NegativeOrZeroAmount(f"{field} is not a number: {value!r}", {field: str(value)})
    if not amount.is_finite() or amount <= 0:
        raise NegativeOrZeroAmount(f"{field} must be greater than zero", {field: str(value)})
    return amount


class LedgerValidator:
    """Validates mutations against the current ledger state."""

    def __init__(self, text_max_length: Optional[int] = None):
        self._max_length = text_max_length or get_settings().ledger.text_max_length

    def sanitize(self, value: Any) -> Any:
        return sanitize_text(value, self._max_length)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def build_transaction(self, record: Mapping[str, Any], state: LedgerState) -> Transaction:
        """
        Turn a raw exchange record into a validated Transaction.

        Raises:
            NegativeOrZeroAmount, InvalidRecurrenceRule, UnknownCurrency,
            UnknownCategory, ProtectedInstance, pydantic.ValidationError
        """
        data = dict(record)

        if data.get("originTemplateId", data.get("origin_template_id")) is not None:
            raise ProtectedInstance("Materialized instances can only be created by recurrence")

        positive_amount(data.get("amount"))

        rule = str(data.get("recurrenceRule", data.get("recurrence_rule", "none"))).strip().lower()
        if rule not in {r.value for r in RecurrenceRule}:
            raise InvalidRecurrenceRule(f"Unrecognized cadence: {rule!r}", {"recurrence_rule": rule})
        data.pop("recurrence_rule", None)
        data["recurrenceRule"] = rule

        if "description" in data:
            data["description"] = self.sanitize(data["description"] or "")
        if isinstance(data.get("category"), str):
            data["category"] = data["category"].strip()

        transaction = Transaction.model_validate(data)
        self.validate_transaction(transaction, state)
        return transaction

    def validate_transaction(self, transaction: Transaction, state: LedgerState) -> None:
        if transaction.amount <= 0:
            raise NegativeOrZeroAmount("amount must be greater than zero")

        if transaction.is_template:
            validate_template(transaction)

        if transaction.currency_code not in state.currencies:
            raise UnknownCurrency(
                f"Unknown currency: {transaction.currency_code}",
                {"currency": transaction.currency_code},
            )

        if transaction.category not in state.categories:
            raise UnknownCategory(
                f"Unknown category: {transaction.category}",
                {"category": transaction.category},
            )

    # ------------------------------------------------------------------
    # Budget limits
    # ------------------------------------------------------------------

    def build_budget_limit(
        self,
        category: str,
        threshold: money.Number,
        state: LedgerState,
        replace: bool = False,
    ) -> BudgetLimit:
        """
        Raises:
            UnknownCategory, DuplicateBudgetLimit (unless replace=True),
            ValueError for a negative or unparseable threshold
        """
        category = category.strip()
        if category not in state.categories:
            raise UnknownCategory(f"Unknown category: {category}", {"category": category})
        if not replace and state.limit_for(category) is not None:
            raise DuplicateBudgetLimit(
                f"Category {category} already has a limit", {"category": category}
            )
        return BudgetLimit(category=category, threshold=money.to_cents(threshold))

    # ------------------------------------------------------------------
    # Debts and goals
    # ------------------------------------------------------------------

    def build_debt(self, name: str, initial: money.Number) -> Debt:
        return Debt(name=self.sanitize(name), initial=money.to_cents(positive_amount(initial, "initial")))

    def build_goal(self, name: str, target: money.Number) -> Goal:
        return Goal(name=self.sanitize(name), target=money.to_cents(positive_amount(target, "target")))

    def validate_payment(self, amount: money.Number) -> Decimal:
        """Payments and contributions: positive, rounded to the cent."""
        return money.to_cents(positive_amount(amount))

    def validate_currency_code(self, code: str) -> str:
        code = normalize_code(code)
        if not re.fullmatch(r"[A-Z]{3}", code):
            raise UnknownCurrency(f"Invalid currency code: {code!r}", {"currency": code})
        return code
