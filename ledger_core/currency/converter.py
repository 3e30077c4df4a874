"""
Currency Converter

Maintains the rate table and normalizes amounts to the base currency.

Every rate is a direct multiplier to base: amount_in_base = amount * rate.
There is no transitive conversion and no rate inference.
"""

from decimal import Decimal
from typing import Mapping, Optional

from ledger_core import money
from ledger_core.errors import (
    DuplicateCurrencyCode,
    InvalidCurrencyRate,
    ProtectedBaseCurrency,
    UnknownCurrency,
)

BASE_RATE = Decimal("1")


def normalize_code(code: str) -> str:
    return code.strip().upper()


class CurrencyConverter:
    """
    Rate table keyed by currency code.

    The base currency is always present with rate exactly 1 and can be
    neither removed nor re-rated.
    """

    def __init__(self, base_code: str, rates: Optional[Mapping[str, money.Number]] = None):
        self._base = normalize_code(base_code)
        self._rates: dict[str, Decimal] = {self._base: BASE_RATE}

        for code, rate in (rates or {}).items():
            code = normalize_code(code)
            if code == self._base:
                if money.to_decimal(rate) != BASE_RATE:
                    raise ProtectedBaseCurrency(
                        f"Base currency {code} must have rate 1",
                        {"currency": code, "rate": str(rate)},
                    )
                continue
            self.add_rate(code, rate)

    @property
    def base_code(self) -> str:
        return self._base

    @property
    def rates(self) -> dict[str, Decimal]:
        """Copy of the rate table."""
        return dict(self._rates)

    def __contains__(self, code: str) -> bool:
        return normalize_code(code) in self._rates

    def rate_for(self, code: str) -> Decimal:
        try:
            return self._rates[normalize_code(code)]
        except KeyError:
            raise UnknownCurrency(f"Unknown currency: {code}", {"currency": code})

    def convert(self, amount: money.Number, code: str) -> Decimal:
        """Amount in base currency, rounded to the cent."""
        return money.to_cents(money.to_decimal(amount) * self.rate_for(code))

    def add_rate(self, code: str, rate: money.Number) -> None:
        code = normalize_code(code)
        if code in self._rates:
            raise DuplicateCurrencyCode(f"Currency {code} already exists", {"currency": code})

        value = money.to_decimal(rate)
        if not value.is_finite() or value <= 0:
            raise InvalidCurrencyRate(
                f"Rate for {code} must be positive",
                {"currency": code, "rate": str(rate)},
            )
        self._rates[code] = value

    def remove_rate(self, code: str) -> None:
        code = normalize_code(code)
        if code == self._base:
            raise ProtectedBaseCurrency(
                f"Base currency {code} cannot be removed", {"currency": code}
            )
        if code not in self._rates:
            raise UnknownCurrency(f"Unknown currency: {code}", {"currency": code})
        del self._rates[code]
