"""
Budget Alert Evaluator

Classifies each configured limit against a period's category totals.
Pure: delivering the alerts (banner, sound, push) is up to the caller.
"""

from decimal import Decimal
from typing import Iterable, Optional

from ledger_core import money
from ledger_core.config import get_settings
from ledger_core.models.budget import Alert, AlertSeverity, BudgetLimit, PeriodSummary

HUNDRED = Decimal("100")


class AlertEvaluator:
    """
    One Alert per limit, in configuration order.

    percent >= exceeded_percent  -> exceeded
    percent >= warning_percent   -> warning
    otherwise                    -> ok
    A zero limit is exceeded immediately.
    """

    def __init__(
        self,
        warning_percent: Optional[float] = None,
        exceeded_percent: Optional[float] = None,
    ):
        settings = get_settings().ledger
        self._warning = money.to_decimal(
            settings.warning_percent if warning_percent is None else warning_percent
        )
        self._exceeded = money.to_decimal(
            settings.exceeded_percent if exceeded_percent is None else exceeded_percent
        )
        if self._warning > self._exceeded:
            raise ValueError("warning_percent cannot be above exceeded_percent")

    def classify(self, percent: Decimal) -> AlertSeverity:
        if percent >= self._exceeded:
            return AlertSeverity.EXCEEDED
        if percent >= self._warning:
            return AlertSeverity.WARNING
        return AlertSeverity.OK

    def evaluate(
        self,
        summary: Optional[PeriodSummary],
        limits: Iterable[BudgetLimit],
    ) -> list[Alert]:
        """
        Args:
            summary: Totals for the period; None is treated as no spending
            limits: Configured limits, in display order
        """
        alerts = []
        for limit in limits:
            spent = summary.spent_on(limit.category) if summary else money.ZERO

            if limit.threshold == 0:
                severity, percent = AlertSeverity.EXCEEDED, None
            else:
                exact = spent / limit.threshold * HUNDRED
                severity, percent = self.classify(exact), money.to_cents(exact)

            alerts.append(Alert(
                category=limit.category,
                severity=severity,
                percent_of_limit=percent,
                spent=spent,
                limit=limit.threshold,
                period=summary.period if summary else None,
            ))
        return alerts
