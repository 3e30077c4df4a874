"""
Ledger Aggregator

Groups transactions into calendar-month summaries in base currency.

Each amount is normalized and rounded to the cent before it is added, and
every running sum is rounded again after each addition. Sums of cent
values are exact in Decimal, so any permutation of the same transactions
produces identical summaries.
"""

from decimal import Decimal
from typing import Iterable

from ledger_core import money
from ledger_core.currency import CurrencyConverter
from ledger_core.models.budget import Debt, Goal, PeriodSummary
from ledger_core.models.transaction import Transaction, TransactionType


class _PeriodTotals:
    """Mutable accumulator for one period; frozen into a PeriodSummary."""

    def __init__(self, period: str):
        self.period = period
        self.income = money.ZERO
        self.expense = money.ZERO
        self.categories: dict[str, Decimal] = {}
        self.count = 0

    def add(self, kind: TransactionType, category: str, amount: Decimal) -> None:
        self.count += 1
        if kind is TransactionType.INCOME:
            self.income = money.add(self.income, amount)
            return
        self.expense = money.add(self.expense, amount)
        self.categories[category] = money.add(self.categories.get(category, money.ZERO), amount)

    def freeze(self) -> PeriodSummary:
        return PeriodSummary(
            period=self.period,
            income_total=self.income,
            expense_total=self.expense,
            category_totals=dict(sorted(self.categories.items())),
            transaction_count=self.count,
        )


class LedgerAggregator:
    """
    Builds PeriodSummary objects from a transaction set.

    Summaries are never persisted; call `aggregate` again whenever the
    transaction set or the rate table changes.
    """

    def __init__(self, converter: CurrencyConverter):
        self._converter = converter

    def aggregate(self, transactions: Iterable[Transaction]) -> dict[str, PeriodSummary]:
        """
        Summarize every period that has at least one transaction.

        Raises:
            UnknownCurrency: a transaction uses a code missing from the table
        """
        totals: dict[str, _PeriodTotals] = {}

        for transaction in transactions:
            period = transaction.period
            if period not in totals:
                totals[period] = _PeriodTotals(period)
            totals[period].add(
                transaction.kind,
                transaction.category,
                self._converter.convert(transaction.amount, transaction.currency_code),
            )

        return {period: totals[period].freeze() for period in sorted(totals)}

    def summary_for(self, transactions: Iterable[Transaction], period: str) -> PeriodSummary:
        """Summary for one period; empty if nothing happened in it."""
        in_period = (t for t in transactions if t.period == period)
        return self.aggregate(in_period).get(period) or PeriodSummary(period=period)


def debt_outstanding(debts: Iterable[Debt]) -> Decimal:
    """Total still owed across all debts (overpayments count as zero)."""
    return money.total(max(d.remaining, money.ZERO) for d in debts)


def savings_total(goals: Iterable[Goal]) -> Decimal:
    return money.total(g.saved for g in goals)
