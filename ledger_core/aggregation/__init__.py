"""Period aggregation package."""

from ledger_core.aggregation.aggregator import LedgerAggregator, debt_outstanding, savings_total

__all__ = ["LedgerAggregator", "debt_outstanding", "savings_total"]
