"""
Recurrence Engine

Expands recurring templates into concrete dated instances.

GUARANTEES:
- Idempotent: an instance is emitted for (template id, date) only if that
  key is not already materialized. Running twice with the same inputs
  yields nothing the second time.
- Incremental: a later as-of date yields only the new occurrences.
- Two-phase: inputs are never mutated. New instances are collected into a
  separate list which the caller merges once.
- Isolated: a malformed template is skipped with a reason; the others
  still expand.

Step n from the anchor is computed from the anchor itself (not from step
n-1), so month-end clamping never drifts: Jan 31 -> Feb 29 -> Mar 31.
"""

from datetime import date, timedelta
from typing import Iterable, Iterator, Mapping, Optional, Union
from uuid import UUID

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, Field

from ledger_core import money
from ledger_core.audit import AuditLogger
from ledger_core.errors import InvalidRecurrenceRule, LedgerError, NegativeOrZeroAmount
from ledger_core.models.audit import AuditEventBuilder
from ledger_core.models.ledger import QuarantinedRecord
from ledger_core.models.transaction import MaterializedKey, RecurrenceRule, Transaction

TemplateInput = Union[Transaction, QuarantinedRecord, Mapping]

RECURRING_RULES = {
    RecurrenceRule.DAILY.value,
    RecurrenceRule.WEEKLY.value,
    RecurrenceRule.MONTHLY.value,
}


class SkippedTemplate(BaseModel):
    """A template that could not be expanded, and why."""

    template_id: Optional[str] = None
    reason: str


class ExpansionResult(BaseModel):
    """New instances to merge, plus the templates that were skipped."""

    instances: list[Transaction] = Field(default_factory=list)
    skipped: list[SkippedTemplate] = Field(default_factory=list)

    @property
    def keys(self) -> set[MaterializedKey]:
        return {i.materialized_key for i in self.instances}


def validate_template(template: Union[Transaction, Mapping]) -> None:
    """
    Creation-time check for a recurring template.

    Raises:
        NegativeOrZeroAmount: amount missing, unparseable or <= 0
        InvalidRecurrenceRule: cadence is not daily, weekly or monthly
    """
    if isinstance(template, Transaction):
        amount, rule = template.amount, template.recurrence_rule.value
    else:
        amount = template.get("amount")
        rule = template.get("recurrenceRule", template.get("recurrence_rule"))

    try:
        value = money.to_decimal(amount)
    except (TypeError, ValueError):
        raise NegativeOrZeroAmount(f"Template amount is not a number: {amount!r}")
    if not value.is_finite() or value <= 0:
        raise NegativeOrZeroAmount(
            "Template amount must be positive", {"amount": str(amount)}
        )

    if str(rule).strip().lower() not in RECURRING_RULES:
        raise InvalidRecurrenceRule(
            f"Unrecognized cadence: {rule!r}", {"recurrence_rule": str(rule)}
        )


def step_offset(rule: RecurrenceRule, steps: int):
    if rule is RecurrenceRule.DAILY:
        return timedelta(days=steps)
    if rule is RecurrenceRule.WEEKLY:
        return timedelta(weeks=steps)
    if rule is RecurrenceRule.MONTHLY:
        # relativedelta clamps to the last day of shorter months
        return relativedelta(months=steps)
    raise InvalidRecurrenceRule(f"Unrecognized cadence: {rule.value!r}")


def occurrences(anchor: date, rule: RecurrenceRule, as_of: date) -> Iterator[date]:
    """Strictly increasing cadence boundaries after `anchor`, up to `as_of`."""
    steps = 1
    while True:
        candidate = anchor + step_offset(rule, steps)
        if candidate > as_of:
            return
        yield candidate
        steps += 1


class RecurrenceEngine:
    """Materializes recurring templates up to an as-of date."""

    def __init__(self, audit_logger: Optional[AuditLogger] = None):
        self._audit_logger = audit_logger

    def expand(
        self,
        templates: Iterable[TemplateInput],
        already_materialized: Iterable[MaterializedKey],
        as_of: date,
        correlation_id: Optional[UUID] = None,
    ) -> ExpansionResult:
        """
        Compute the instances that are due but not yet materialized.

        Args:
            templates: Transaction models, raw exchange records or
                quarantined records; non-models are validated one by one
            already_materialized: (template id, effective date) keys
            as_of: Last date (inclusive) to materialize

        Returns:
            ExpansionResult with new instances in template order, then
            date order, and any skipped templates
        """
        seen = set(already_materialized)
        result = ExpansionResult()

        for raw in templates:
            try:
                template = self._coerce(raw)
                due = [
                    template.materialize(day)
                    for day in occurrences(template.date, template.recurrence_rule, as_of)
                    if (template.id, day) not in seen
                ]
            except (LedgerError, ValueError, OverflowError) as e:
                skipped = SkippedTemplate(template_id=_template_id(raw), reason=str(e))
                result.skipped.append(skipped)
                if self._audit_logger:
                    self._audit_logger.log(AuditEventBuilder.template_skipped(
                        template_id=skipped.template_id,
                        reason=skipped.reason,
                        correlation_id=correlation_id,
                    ))
                continue

            seen.update(instance.materialized_key for instance in due)
            result.instances.extend(due)

        if self._audit_logger and result.instances:
            self._audit_logger.log(AuditEventBuilder.instances_materialized(
                count=len(result.instances),
                as_of=as_of.isoformat(),
                correlation_id=correlation_id,
            ))

        return result

    @staticmethod
    def _coerce(raw: TemplateInput) -> Transaction:
        if isinstance(raw, QuarantinedRecord):
            raise ValueError(raw.reason)
        if not isinstance(raw, Transaction):
            if not isinstance(raw, Mapping):
                raise ValueError(f"Not a transaction record: {type(raw).__name__}")
            validate_template(raw)
            raw = Transaction.model_validate(raw)
        validate_template(raw)
        if raw.is_instance:
            raise InvalidRecurrenceRule("Materialized instances cannot recur")
        return raw


def _template_id(raw: TemplateInput) -> Optional[str]:
    if isinstance(raw, Transaction):
        return str(raw.id)
    if isinstance(raw, QuarantinedRecord):
        return raw.record_id
    if isinstance(raw, Mapping) and raw.get("id") is not None:
        return str(raw["id"])
    return None
