"""
Tests for the ledger aggregator

Money sums are checked against exact Decimal values, never floats.
"""

import random
import pytest
from datetime import date
from decimal import Decimal

from ledger_core import money
from ledger_core.aggregation import LedgerAggregator, debt_outstanding, savings_total
from ledger_core.currency import CurrencyConverter
from ledger_core.errors import UnknownCurrency
from ledger_core.models.budget import Debt, Goal
from ledger_core.models.transaction import Transaction, TransactionType

CATEGORIES = ["Food", "Bills", "Transport", "Shopping", "Other"]


def tx(day: date, kind: str, amount: str, category: str = "Food", currency: str = "PHP") -> Transaction:
    return Transaction(
        date=day,
        kind=TransactionType(kind),
        amount=Decimal(amount),
        currency_code=currency,
        category=category,
    )


@pytest.fixture
def aggregator():
    return LedgerAggregator(CurrencyConverter("PHP", {"USD": "56", "JPY": "0.385"}))


class TestAggregate:
    """Tests for monthly summaries."""

    def test_monthly_summaries(self, aggregator):
        """Test grouping, conversion and category breakdown."""
        transactions = [
            tx(date(2024, 1, 1), "income", "1000.00", "Other"),
            tx(date(2024, 1, 3), "expense", "100.10", "Food"),
            tx(date(2024, 1, 9), "expense", "10.00", "Transport", "USD"),
            tx(date(2024, 2, 2), "expense", "50.00", "Food"),
        ]

        summaries = aggregator.aggregate(transactions)

        assert list(summaries) == ["2024-01", "2024-02"]
        january = summaries["2024-01"]
        assert january.income_total == Decimal("1000.00")
        assert january.expense_total == Decimal("660.10")
        assert january.category_totals == {
            "Food": Decimal("100.10"),
            "Transport": Decimal("560.00"),
        }
        assert january.transaction_count == 3
        assert january.net == Decimal("339.90")
        assert summaries["2024-02"].expense_total == Decimal("50.00")

    def test_cents_do_not_drift(self, aggregator):
        """Test 0.10 + 0.20 inside a summary."""
        summaries = aggregator.aggregate([
            tx(date(2024, 1, 1), "expense", "0.10"),
            tx(date(2024, 1, 2), "expense", "0.20"),
        ])
        assert summaries["2024-01"].expense_total == Decimal("0.30")

    def test_hundred_cents(self, aggregator):
        """Test that one hundred one-cent expenses total exactly 1.00."""
        transactions = [tx(date(2024, 1, 1), "expense", "0.01") for _ in range(100)]
        assert aggregator.aggregate(transactions)["2024-01"].expense_total == Decimal("1.00")

    def test_income_not_in_category_totals(self, aggregator):
        """Test that income never shows up in the expense breakdown."""
        summaries = aggregator.aggregate([tx(date(2024, 1, 1), "income", "10.00", "Food")])
        assert summaries["2024-01"].category_totals == {}
        assert summaries["2024-01"].expense_total == Decimal("0.00")

    def test_empty_input(self, aggregator):
        """Test that no transactions means no periods."""
        assert aggregator.aggregate([]) == {}

    def test_summary_for_missing_period(self, aggregator):
        """Test the empty summary for a quiet month."""
        summary = aggregator.summary_for([tx(date(2024, 1, 1), "expense", "5.00")], "2024-03")
        assert summary.period == "2024-03"
        assert summary.expense_total == Decimal("0.00")
        assert summary.transaction_count == 0

    def test_unknown_currency(self, aggregator):
        """Test that a code missing from the rate table is an error."""
        with pytest.raises(UnknownCurrency):
            aggregator.aggregate([tx(date(2024, 1, 1), "expense", "5.00", currency="EUR")])


class TestAggregateProperties:
    """Order independence and the category-sum invariant over random sets."""

    def random_transactions(self, seed: int, count: int = 200) -> list[Transaction]:
        rng = random.Random(seed)
        return [
            tx(
                date(2024, rng.randint(1, 12), rng.randint(1, 28)),
                rng.choice(["income", "expense", "expense"]),
                str(Decimal(rng.randint(1, 100000)) / 100),
                rng.choice(CATEGORIES),
                rng.choice(["PHP", "USD", "JPY"]),
            )
            for _ in range(count)
        ]

    @pytest.mark.parametrize("seed", [1, 7, 42])
    def test_category_totals_sum_to_expense(self, aggregator, seed):
        """Test the breakdown invariant on random data."""
        for summary in aggregator.aggregate(self.random_transactions(seed)).values():
            assert money.total(summary.category_totals.values()) == summary.expense_total

    @pytest.mark.parametrize("seed", [3, 11])
    def test_order_independence(self, aggregator, seed):
        """Test that permutations give identical summaries."""
        transactions = self.random_transactions(seed)
        expected = aggregator.aggregate(transactions)

        rng = random.Random(seed)
        for _ in range(5):
            shuffled = transactions[:]
            rng.shuffle(shuffled)
            assert aggregator.aggregate(shuffled) == expected


class TestBalances:
    """Tests for debt and savings totals."""

    def test_debt_outstanding(self):
        """Test that overpayments count as nothing owed."""
        debts = [
            Debt(name="Car", initial=Decimal("1000.00"), paid=Decimal("250.50")),
            Debt(name="Card", initial=Decimal("200.00"), paid=Decimal("300.00")),
        ]
        assert debt_outstanding(debts) == Decimal("749.50")

    def test_savings_total(self):
        """Test summing goal savings."""
        goals = [
            Goal(name="Laptop", target=Decimal("50000"), saved=Decimal("0.10")),
            Goal(name="Trip", target=Decimal("20000"), saved=Decimal("0.20")),
        ]
        assert savings_total(goals) == Decimal("0.30")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
