"""
Transaction Models

A Transaction is both the unit of aggregation and, when its recurrence rule
is not `none`, a template: its date is the anchor from which the recurrence
engine materializes dated instances.

DESIGN DECISION: The model serializes with the exchange-record field names
(`type`, `currencyCode`, `recurrenceRule`, `originTemplateId`) so the same
structure is used for persistence and for any outer collaborator, while
Python code uses snake_case attributes.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4, uuid5

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TransactionType(str, Enum):
    """Direction of money flow."""
    INCOME = "income"
    EXPENSE = "expense"


class RecurrenceRule(str, Enum):
    """
    Cadence of a template.

    NONE marks an ordinary transaction (or a materialized instance).
    """
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def is_recurring(self) -> bool:
        return self is not RecurrenceRule.NONE


def period_key(day: dt.date) -> str:
    """Calendar-month grouping key, e.g. '2024-02'."""
    return f"{day.year:04d}-{day.month:02d}"


def instance_id(template_id: UUID, effective_date: dt.date) -> UUID:
    """Deterministic id for the instance of a template on a given date."""
    return uuid5(template_id, effective_date.isoformat())


MaterializedKey = tuple[UUID, dt.date]


class Transaction(BaseModel):
    """
    A single income or expense record.

    Invariants: amount > 0 with at most two decimal places; date is a valid
    calendar date. Materialized instances carry `origin_template_id` and
    never recur themselves.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
        frozen=True,
    )

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique transaction ID"
    )
    date: dt.date = Field(
        ...,
        description="Effective date (anchor date for templates)"
    )
    kind: TransactionType = Field(
        ...,
        alias="type",
        description="income or expense"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Amount in the transaction's own currency"
    )
    currency_code: str = Field(
        ...,
        alias="currencyCode",
        min_length=3,
        max_length=3,
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=50,
    )
    description: str = Field(
        default="",
        max_length=200,
    )
    recurrence_rule: RecurrenceRule = Field(
        default=RecurrenceRule.NONE,
        alias="recurrenceRule",
    )
    origin_template_id: Optional[UUID] = Field(
        default=None,
        alias="originTemplateId",
        description="Template this record was materialized from"
    )

    @field_validator('currency_code')
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()

    @property
    def is_template(self) -> bool:
        return self.recurrence_rule.is_recurring

    @property
    def is_instance(self) -> bool:
        return self.origin_template_id is not None

    @property
    def period(self) -> str:
        return period_key(self.date)

    @property
    def materialized_key(self) -> Optional[MaterializedKey]:
        if self.origin_template_id is None:
            return None
        return (self.origin_template_id, self.date)

    def materialize(self, effective_date: dt.date) -> 'Transaction':
        """Concrete instance of this template on `effective_date`."""
        return self.model_copy(update={
            "id": instance_id(self.id, effective_date),
            "date": effective_date,
            "recurrence_rule": RecurrenceRule.NONE,
            "origin_template_id": self.id,
        })

    def to_record(self) -> dict:
        """Exchange record: JSON-safe, camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
