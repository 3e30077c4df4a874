"""
Budget, Summary and Alert Models

PeriodSummary and Alert are derived data: they are recomputed on every
aggregation pass and never persisted. BudgetLimit is configuration.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ledger_core import money


class AlertSeverity(str, Enum):
    """How close a category is to its limit."""
    OK = "ok"
    WARNING = "warning"
    EXCEEDED = "exceeded"


class BudgetLimit(BaseModel):
    """
    Monthly spending limit for one category.

    The period is implicit: always a calendar month.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    category: str = Field(
        ...,
        min_length=1,
        max_length=50,
    )
    threshold: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Maximum expense per month, in base currency"
    )


class PeriodSummary(BaseModel):
    """
    Totals for one calendar month, in base currency.

    Invariant: the category breakdown sums exactly to the expense total.
    """

    period: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}$",
        description="Period key, e.g. 2024-02"
    )
    income_total: Decimal = Field(default=money.ZERO)
    expense_total: Decimal = Field(default=money.ZERO)
    category_totals: dict[str, Decimal] = Field(default_factory=dict)
    transaction_count: int = Field(default=0, ge=0)

    @model_validator(mode='after')
    def validate_category_sum(self) -> 'PeriodSummary':
        if money.total(self.category_totals.values()) != self.expense_total:
            raise ValueError("Category totals do not sum to the expense total")
        return self

    @property
    def net(self) -> Decimal:
        """Income minus expense; negative means over budget."""
        return money.subtract(self.income_total, self.expense_total)

    def spent_on(self, category: str) -> Decimal:
        return self.category_totals.get(category, money.ZERO)


class Alert(BaseModel):
    """Classification of one category's spending against its limit."""
    model_config = ConfigDict(frozen=True)

    category: str
    severity: AlertSeverity
    percent_of_limit: Optional[Decimal] = Field(
        default=None,
        description="Spent as a percentage of the limit; None when the limit is zero"
    )
    spent: Decimal
    limit: Decimal
    period: Optional[str] = None

    @property
    def needs_attention(self) -> bool:
        return self.severity is not AlertSeverity.OK


class Debt(BaseModel):
    """Money owed, paid down over time."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=50)
    initial: Decimal = Field(..., gt=0, decimal_places=2)
    paid: Decimal = Field(default=money.ZERO, ge=0, decimal_places=2)

    @property
    def remaining(self) -> Decimal:
        return money.subtract(self.initial, self.paid)

    @property
    def is_paid_off(self) -> bool:
        return self.paid >= self.initial


class Goal(BaseModel):
    """Savings target, filled by contributions."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=50)
    target: Decimal = Field(..., gt=0, decimal_places=2)
    saved: Decimal = Field(default=money.ZERO, ge=0, decimal_places=2)

    @property
    def is_reached(self) -> bool:
        return self.saved >= self.target
