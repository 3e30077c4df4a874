"""
Ledger State

The whole persisted dataset as one pydantic model. Transitions are pure:
every `with_*` method returns a new state and leaves the receiver untouched,
so a failed save never leaves a half-applied state in memory.

DESIGN DECISION: Stored transaction records are validated one by one on
load. A record that fails validation, or whose currency is missing from
the rate table, is quarantined verbatim instead of failing the whole load.
Quarantined records are written back on save and retried on every load.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Optional
from uuid import UUID

from pydantic import BaseModel, Field, ValidationError, model_validator

from ledger_core.models.budget import BudgetLimit, Debt, Goal
from ledger_core.models.transaction import MaterializedKey, Transaction


class QuarantinedRecord(BaseModel):
    """A stored transaction record that could not be validated."""

    record: dict[str, Any]
    reason: str

    @property
    def record_id(self) -> Optional[str]:
        value = self.record.get("id")
        return str(value) if value is not None else None

    @property
    def looks_recurring(self) -> bool:
        rule = self.record.get("recurrenceRule", self.record.get("recurring", "none"))
        return str(rule).strip().lower() not in ("", "none")


class LedgerState(BaseModel):
    """
    Everything the ledger persists.

    Invariants: the base currency is in the rate table with rate exactly 1;
    every other rate is positive; at most one budget limit per category;
    categories are unique.
    """

    base_currency: str = Field(default="PHP", min_length=3, max_length=3)
    transactions: list[Transaction] = Field(default_factory=list)
    quarantined: list[QuarantinedRecord] = Field(default_factory=list)
    debts: list[Debt] = Field(default_factory=list)
    goals: list[Goal] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    currencies: dict[str, Decimal] = Field(default_factory=dict)
    budget_limits: list[BudgetLimit] = Field(default_factory=list)
    last_updated: Optional[datetime] = None

    @model_validator(mode='after')
    def validate_invariants(self) -> 'LedgerState':
        if self.currencies.get(self.base_currency) != Decimal("1"):
            raise ValueError(
                f"Base currency {self.base_currency} must be in the rate table with rate 1"
            )
        for code, rate in self.currencies.items():
            if rate <= 0:
                raise ValueError(f"Rate for {code} must be positive")

        if len(set(self.categories)) != len(self.categories):
            raise ValueError("Categories must be unique")

        limit_categories = [limit.category for limit in self.budget_limits]
        if len(set(limit_categories)) != len(limit_categories):
            raise ValueError("At most one budget limit per category")

        return self

    # ------------------------------------------------------------------
    # Construction and serialization
    # ------------------------------------------------------------------

    @classmethod
    def new(cls, base_currency: str, categories: Iterable[str]) -> 'LedgerState':
        base = base_currency.upper()
        return cls(
            base_currency=base,
            categories=list(dict.fromkeys(categories)),
            currencies={base: Decimal("1")},
        )

    def to_payload(self) -> str:
        data = self.model_dump(mode="json", exclude={"transactions"})
        data["transactions"] = [t.to_record() for t in self.transactions]
        return json.dumps(data)

    @classmethod
    def from_payload(cls, payload: str) -> 'LedgerState':
        """
        Rebuild state from a stored payload.

        Raises ValueError if the payload is not a JSON object or the
        non-transaction sections are invalid.
        """
        data = json.loads(payload)
        if not isinstance(data, dict):
            raise ValueError("Stored ledger state must be a JSON object")

        known_currencies = set(data.get("currencies") or {})

        # quarantined records are retried so they recover once fixed
        records = list(data.get("transactions") or [])
        records.extend(
            q["record"] for q in data.get("quarantined") or []
            if isinstance(q, dict) and "record" in q
        )

        transactions = []
        quarantined = []
        for record in records:
            try:
                transaction = Transaction.model_validate(record)
            except ValidationError as e:
                reason = _first_error(e)
            else:
                if transaction.currency_code in known_currencies:
                    transactions.append(transaction)
                    continue
                reason = f"currencyCode: Unknown currency {transaction.currency_code}"
            quarantined.append({
                "record": record if isinstance(record, dict) else {"raw": record},
                "reason": reason,
            })

        data["transactions"] = transactions
        data["quarantined"] = quarantined
        return cls.model_validate(data)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def templates(self) -> list[Transaction]:
        return [t for t in self.transactions if t.is_template]

    @property
    def quarantined_templates(self) -> list[QuarantinedRecord]:
        return [q for q in self.quarantined if q.looks_recurring]

    def materialized_keys(self) -> set[MaterializedKey]:
        return {
            t.materialized_key for t in self.transactions
            if t.materialized_key is not None
        }

    def find_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        return next((t for t in self.transactions if t.id == transaction_id), None)

    def limit_for(self, category: str) -> Optional[BudgetLimit]:
        return next((b for b in self.budget_limits if b.category == category), None)

    def currency_in_use(self, code: str) -> bool:
        return any(t.currency_code == code for t in self.transactions)

    # ------------------------------------------------------------------
    # Pure transitions
    # ------------------------------------------------------------------

    def with_transactions(self, new: Iterable[Transaction]) -> 'LedgerState':
        return self.model_copy(update={"transactions": [*self.transactions, *new]})

    def without_transaction(self, transaction_id: UUID) -> 'LedgerState':
        return self.model_copy(update={
            "transactions": [t for t in self.transactions if t.id != transaction_id],
        })

    def with_category(self, category: str) -> 'LedgerState':
        if category in self.categories:
            return self
        return self.model_copy(update={"categories": [*self.categories, category]})

    def with_budget_limit(self, limit: BudgetLimit) -> 'LedgerState':
        if self.limit_for(limit.category) is not None:
            return self.model_copy(update={
                "budget_limits": [
                    limit if b.category == limit.category else b for b in self.budget_limits
                ],
            })
        return self.model_copy(update={"budget_limits": [*self.budget_limits, limit]})

    def without_budget_limit(self, category: str) -> 'LedgerState':
        return self.model_copy(update={
            "budget_limits": [b for b in self.budget_limits if b.category != category],
        })

    def with_currencies(self, currencies: dict[str, Decimal]) -> 'LedgerState':
        return self.model_copy(update={"currencies": dict(currencies)})

    def with_debt(self, debt: Debt) -> 'LedgerState':
        if any(d.id == debt.id for d in self.debts):
            return self.model_copy(update={
                "debts": [debt if d.id == debt.id else d for d in self.debts],
            })
        return self.model_copy(update={"debts": [*self.debts, debt]})

    def without_debt(self, debt_id: UUID) -> 'LedgerState':
        return self.model_copy(update={"debts": [d for d in self.debts if d.id != debt_id]})

    def with_goal(self, goal: Goal) -> 'LedgerState':
        if any(g.id == goal.id for g in self.goals):
            return self.model_copy(update={
                "goals": [goal if g.id == goal.id else g for g in self.goals],
            })
        return self.model_copy(update={"goals": [*self.goals, goal]})

    def without_goal(self, goal_id: UUID) -> 'LedgerState':
        return self.model_copy(update={"goals": [g for g in self.goals if g.id != goal_id]})

    def touched(self, when: datetime) -> 'LedgerState':
        return self.model_copy(update={"last_updated": when})


def _first_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg', 'invalid')}" if location else first.get("msg", "invalid")
