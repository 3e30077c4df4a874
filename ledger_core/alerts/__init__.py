"""Budget alert package."""

from ledger_core.alerts.evaluator import AlertEvaluator

__all__ = ["AlertEvaluator"]
