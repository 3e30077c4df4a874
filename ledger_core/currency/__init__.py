"""Currency normalization package."""

from ledger_core.currency.converter import CurrencyConverter, normalize_code

__all__ = ["CurrencyConverter", "normalize_code"]
