"""
Tests for mutation validation and text sanitization
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from ledger_core.errors import (
    DuplicateBudgetLimit,
    InvalidRecurrenceRule,
    NegativeOrZeroAmount,
    ProtectedInstance,
    UnknownCategory,
    UnknownCurrency,
)
from ledger_core.models.budget import BudgetLimit
from ledger_core.models.ledger import LedgerState
from ledger_core.models.transaction import RecurrenceRule, TransactionType
from ledger_core.validation import LedgerValidator, positive_amount, sanitize_text


@pytest.fixture
def state():
    return LedgerState(
        base_currency="PHP",
        categories=["Food", "Bills"],
        currencies={"PHP": Decimal("1"), "USD": Decimal("56")},
        budget_limits=[BudgetLimit(category="Bills", threshold=Decimal("3000.00"))],
    )


@pytest.fixture
def validator():
    return LedgerValidator(text_max_length=50)


def record(**overrides) -> dict:
    data = {
        "date": "2024-01-05",
        "type": "expense",
        "amount": "120.50",
        "currencyCode": "PHP",
        "category": "Food",
        "description": "Lunch",
        "recurrenceRule": "none",
    }
    data.update(overrides)
    return data


class TestSanitizeText:
    """Tests for free-text cleanup."""

    def test_strips_markup_characters(self):
        """Test that script-injection characters are removed."""
        assert sanitize_text('<script>alert("xss")</script>', 50) == "scriptalert(xss)/script"

    def test_trims_whitespace(self):
        """Test that surrounding whitespace is removed."""
        assert sanitize_text("  Groceries  ", 50) == "Groceries"

    def test_truncates(self):
        """Test the length cap."""
        assert sanitize_text("a" * 80, 50) == "a" * 50

    def test_non_strings_pass_through(self):
        """Test that non-text values are returned unchanged."""
        assert sanitize_text(42, 50) == 42
        assert sanitize_text(None, 50) is None


class TestBuildTransaction:
    """Tests for turning raw records into transactions."""

    def test_valid_record(self, validator, state):
        """Test a valid expense."""
        tx = validator.build_transaction(record(), state)
        assert tx.kind == TransactionType.EXPENSE
        assert tx.amount == Decimal("120.50")

    def test_description_is_sanitized(self, validator, state):
        """Test that descriptions lose markup characters."""
        tx = validator.build_transaction(
            record(description='<b>Lunch</b> & "drinks"'), state
        )
        assert tx.description == "bLunch/b  drinks"

    def test_recurring_template(self, validator, state):
        """Test that cadence names are case-insensitive."""
        tx = validator.build_transaction(record(recurrenceRule="Monthly"), state)
        assert tx.recurrence_rule == RecurrenceRule.MONTHLY
        assert tx.is_template

    @pytest.mark.parametrize("amount", ["0", "-5", "abc", None])
    def test_bad_amount(self, validator, state, amount):
        """Test that non-positive or unparseable amounts are rejected."""
        with pytest.raises(NegativeOrZeroAmount):
            validator.build_transaction(record(amount=amount), state)

    def test_unknown_cadence(self, validator, state):
        """Test that unrecognized cadences are rejected."""
        with pytest.raises(InvalidRecurrenceRule):
            validator.build_transaction(record(recurrenceRule="yearly"), state)

    def test_unknown_currency(self, validator, state):
        """Test that the currency must be in the rate table."""
        with pytest.raises(UnknownCurrency):
            validator.build_transaction(record(currencyCode="EUR"), state)

    def test_unknown_category(self, validator, state):
        """Test that the category must be configured."""
        with pytest.raises(UnknownCategory):
            validator.build_transaction(record(category="Travel"), state)

    def test_instance_cannot_be_created_directly(self, validator, state):
        """Test that records carrying an origin template are refused."""
        with pytest.raises(ProtectedInstance):
            validator.build_transaction(record(originTemplateId=str(uuid4())), state)

    def test_invalid_date(self, validator, state):
        """Test that schema errors surface as ValueError."""
        with pytest.raises(ValueError):
            validator.build_transaction(record(date="2024-02-30"), state)

    def test_amount_checked_before_currency(self, validator, state):
        """Test that the most specific error comes first."""
        with pytest.raises(NegativeOrZeroAmount):
            validator.build_transaction(record(amount="0", currencyCode="EUR"), state)


class TestOtherMutations:
    """Tests for limits, debts, goals and currency codes."""

    def test_budget_limit(self, validator, state):
        """Test a new limit is rounded to cents."""
        limit = validator.build_budget_limit("Food", "1500.005", state)
        assert limit.threshold == Decimal("1500.01")

    def test_duplicate_budget_limit(self, validator, state):
        """Test that a second limit needs replace=True."""
        with pytest.raises(DuplicateBudgetLimit):
            validator.build_budget_limit("Bills", "100", state)
        assert validator.build_budget_limit("Bills", "100", state, replace=True).threshold == Decimal("100.00")

    def test_budget_limit_unknown_category(self, validator, state):
        """Test that limits need a configured category."""
        with pytest.raises(UnknownCategory):
            validator.build_budget_limit("Travel", "100", state)

    def test_debt_requires_positive_initial(self, validator):
        """Test debt creation."""
        assert validator.build_debt(" Car <loan> ", "1000").name == "Car loan"
        with pytest.raises(NegativeOrZeroAmount):
            validator.build_debt("Car", 0)

    def test_goal_requires_positive_target(self, validator):
        """Test goal creation."""
        assert validator.build_goal("Laptop", "50000").target == Decimal("50000.00")
        with pytest.raises(NegativeOrZeroAmount):
            validator.build_goal("Laptop", "-1")

    def test_payment(self, validator):
        """Test payment amounts."""
        assert validator.validate_payment(0.1) == Decimal("0.10")
        with pytest.raises(NegativeOrZeroAmount):
            validator.validate_payment(0)

    def test_currency_code(self, validator):
        """Test currency code normalization."""
        assert validator.validate_currency_code(" usd ") == "USD"
        with pytest.raises(UnknownCurrency):
            validator.validate_currency_code("US")
        with pytest.raises(UnknownCurrency):
            validator.validate_currency_code("U$D")

    def test_positive_amount(self):
        """Test the shared amount check."""
        assert positive_amount("12.5") == Decimal("12.5")
        with pytest.raises(NegativeOrZeroAmount):
            positive_amount("Infinity")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
