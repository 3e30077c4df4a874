"""
Main Orchestrator for Ledger Core

This module ties together all the components and defines the
end-to-end flows for:
1. Ledger pass (load → expand → aggregate → alert → persist)
2. User mutations (load → validate → apply → persist)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every flow holds the store exclusively from load to save
- Nothing is persisted unless every step before the save succeeded
- A failed save leaves the stored state untouched and is reported
- Every step is audited

The components it calls are pure; this is the only place with I/O.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional, TypeVar, Union
from uuid import UUID

from pydantic import BaseModel, Field

from ledger_core import money
from ledger_core.aggregation import LedgerAggregator, debt_outstanding, savings_total
from ledger_core.alerts import AlertEvaluator
from ledger_core.audit import AuditLogger, create_correlation_id
from ledger_core.config import LedgerSettings, get_settings
from ledger_core.currency import CurrencyConverter
from ledger_core.errors import (
    CurrencyInUse,
    LedgerError,
    NotFound,
    ProtectedInstance,
    StoreWriteFailure,
)
from ledger_core.exchange import ImportResult, export_csv, import_csv
from ledger_core.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from ledger_core.models.budget import Alert, BudgetLimit, Debt, Goal, PeriodSummary
from ledger_core.models.ledger import LedgerState, QuarantinedRecord
from ledger_core.models.transaction import Transaction, period_key
from ledger_core.recurrence import RecurrenceEngine, SkippedTemplate
from ledger_core.services.storage import InMemoryStore, StorageError, StoreInterface
from ledger_core.validation import LedgerValidator

T = TypeVar("T")


class PassResult(BaseModel):
    """Everything one ledger pass produced, for the presentation layer."""

    as_of: date
    period: str
    summaries: dict[str, PeriodSummary] = Field(default_factory=dict)
    alerts: list[Alert] = Field(default_factory=list)
    new_instances: list[Transaction] = Field(default_factory=list)
    skipped_templates: list[SkippedTemplate] = Field(default_factory=list)
    quarantined: list[QuarantinedRecord] = Field(default_factory=list)
    debt_outstanding: Decimal
    savings_total: Decimal

    @property
    def current_summary(self) -> PeriodSummary:
        return self.summaries.get(self.period) or PeriodSummary(period=self.period)


class _LedgerFlow:
    """Shared load/persist plumbing for flows over one store key."""

    def __init__(
        self,
        store: StoreInterface,
        settings: Optional[LedgerSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._settings = settings or get_settings().ledger
        self._audit_logger = audit_logger

    def _audit(self, event: AuditEvent) -> None:
        if self._audit_logger:
            self._audit_logger.log(event)

    def _load(self) -> LedgerState:
        payload = self._store.load(self._settings.store_key)
        if payload is None:
            return LedgerState.new(
                self._settings.base_currency,
                self._settings.categories_list,
            )
        return LedgerState.from_payload(payload)

    def _persist(self, state: LedgerState, correlation_id: UUID) -> LedgerState:
        """
        Write the whole state or fail the flow.

        Raises:
            StoreWriteFailure: the store refused or raised; nothing was written
        """
        key = self._settings.store_key
        state = state.touched(datetime.now(timezone.utc))

        try:
            saved = self._store.save(key, state.to_payload())
        except StorageError as e:
            self._audit(AuditEventBuilder.save_failed(key, str(e), correlation_id))
            raise StoreWriteFailure(f"Failed to save ledger state: {e}", {"key": key}) from e

        if not saved:
            self._audit(AuditEventBuilder.save_failed(key, "store reported failure", correlation_id))
            raise StoreWriteFailure("Store reported a failed save", {"key": key})

        self._audit(AuditEventBuilder.state_saved(key, len(state.transactions), correlation_id))
        return state


class LedgerPipeline(_LedgerFlow):
    """
    Runs one full ledger pass.

    Flow:
    1. Load → Read the stored state (exclusive access from here on)
    2. Expand → Materialize due recurring instances
    3. Aggregate → Monthly summaries in base currency
    4. Alert → Classify the period's spending against limits
    5. Persist → Save merged instances, only if there are any

    Steps 2-4 are pure. If any of them raises, nothing is saved.
    """

    def __init__(
        self,
        store: StoreInterface,
        settings: Optional[LedgerSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        engine: Optional[RecurrenceEngine] = None,
        evaluator: Optional[AlertEvaluator] = None,
    ):
        super().__init__(store, settings, audit_logger)
        self._engine = engine or RecurrenceEngine(audit_logger)
        self._evaluator = evaluator or AlertEvaluator(
            self._settings.warning_percent,
            self._settings.exceeded_percent,
        )

    def run_pass(self, as_of: Optional[date] = None, period: Optional[str] = None) -> PassResult:
        """
        Args:
            as_of: Last date to materialize (default: today)
            period: Period key to evaluate alerts for (default: as_of's month)

        Raises:
            StoreWriteFailure: new instances could not be saved
        """
        correlation_id = create_correlation_id()
        as_of = as_of or date.today()
        period = period or period_key(as_of)

        with self._store.exclusive():
            state = self._load()

            for record in state.quarantined:
                self._audit(AuditEventBuilder.record_quarantined(
                    record.record_id, record.reason, correlation_id
                ))

            expansion = self._engine.expand(
                [*state.templates, *state.quarantined_templates],
                state.materialized_keys(),
                as_of,
                correlation_id,
            )
            merged = state.with_transactions(expansion.instances)

            converter = CurrencyConverter(merged.base_currency, merged.currencies)
            summaries = LedgerAggregator(converter).aggregate(merged.transactions)
            current = summaries.get(period) or PeriodSummary(period=period)
            alerts = self._evaluator.evaluate(current, merged.budget_limits)

            if expansion.instances:
                merged = self._persist(merged, correlation_id)

        for alert in alerts:
            if alert.needs_attention:
                self._audit(AuditEventBuilder.budget_alert(
                    category=alert.category,
                    severity=alert.severity.value,
                    percent=str(alert.percent_of_limit) if alert.percent_of_limit is not None else None,
                    period=alert.period,
                    correlation_id=correlation_id,
                ))
        self._audit(AuditEventBuilder.pass_completed(
            as_of=as_of.isoformat(),
            new_instances=len(expansion.instances),
            skipped_templates=len(expansion.skipped),
            periods=len(summaries),
            correlation_id=correlation_id,
        ))

        return PassResult(
            as_of=as_of,
            period=period,
            summaries=summaries,
            alerts=alerts,
            new_instances=expansion.instances,
            skipped_templates=expansion.skipped,
            quarantined=merged.quarantined,
            debt_outstanding=debt_outstanding(merged.debts),
            savings_total=savings_total(merged.goals),
        )


class LedgerBook(_LedgerFlow):
    """
    Applies user mutations to the stored ledger.

    Each call holds the store exclusively, validates against the current
    state, applies one pure transition and saves once. A rejected
    mutation raises its LedgerError and changes nothing.
    """

    def __init__(
        self,
        store: StoreInterface,
        settings: Optional[LedgerSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[LedgerValidator] = None,
    ):
        super().__init__(store, settings, audit_logger)
        self._validator = validator or LedgerValidator(self._settings.text_max_length)
        self._pending: list[AuditEvent] = []

    def _record(self, event: AuditEvent) -> None:
        """Queue an event; it is logged only once the mutation is saved."""
        self._pending.append(event)

    def _apply(self, change: Callable[[LedgerState, UUID], tuple[LedgerState, T]]) -> T:
        correlation_id = create_correlation_id()
        with self._store.exclusive():
            self._pending = []
            state = self._load()
            try:
                new_state, result = change(state, correlation_id)
            # pydantic.ValidationError is a ValueError
            except (LedgerError, ValueError) as e:
                if isinstance(e, LedgerError):
                    code, message, details = e.kind.value, e.message, e.details
                else:
                    code, message, details = type(e).__name__, str(e), {}
                self._audit(AuditEventBuilder.validation_rejected(
                    code, message, details, correlation_id
                ))
                raise
            self._persist(new_state, correlation_id)
            for event in self._pending:
                self._audit(event)
            return result

    def state(self) -> LedgerState:
        """Snapshot of the stored state."""
        with self._store.exclusive():
            return self._load()

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def add_transaction(self, record: Union[Transaction, Mapping[str, Any]]) -> Transaction:
        def change(state: LedgerState, correlation_id: UUID):
            if isinstance(record, Transaction):
                if record.is_instance:
                    raise ProtectedInstance("Materialized instances can only be created by recurrence")
                transaction = record.model_copy(update={
                    "description": self._validator.sanitize(record.description),
                })
                self._validator.validate_transaction(transaction, state)
            else:
                transaction = self._validator.build_transaction(record, state)

            self._record(AuditEventBuilder.transaction_added(
                transaction_id=transaction.id,
                kind=transaction.kind.value,
                amount=str(transaction.amount),
                currency=transaction.currency_code,
                is_template=transaction.is_template,
                correlation_id=correlation_id,
            ))
            return state.with_transactions([transaction]), transaction

        return self._apply(change)

    def remove_transaction(self, transaction_id: UUID) -> None:
        def change(state: LedgerState, correlation_id: UUID):
            transaction = state.find_transaction(transaction_id)
            if transaction is None:
                raise NotFound(f"Transaction {transaction_id} not found")
            if transaction.is_instance:
                raise ProtectedInstance(
                    "Materialized instances are owned by their template",
                    {"template_id": str(transaction.origin_template_id)},
                )
            self._record(AuditEventBuilder.transaction_removed(transaction_id, correlation_id))
            return state.without_transaction(transaction_id), None

        self._apply(change)

    # ------------------------------------------------------------------
    # Categories and budget limits
    # ------------------------------------------------------------------

    def add_category(self, name: str) -> str:
        def change(state: LedgerState, correlation_id: UUID):
            category = self._validator.sanitize(name)
            if not category:
                raise ValueError("Category name cannot be blank")
            self._record(AuditEventBuilder.settings_changed(
                AuditEventType.CATEGORY_ADDED, "category", category,
                f"Category {category} added", correlation_id=correlation_id,
            ))
            return state.with_category(category), category

        return self._apply(change)

    def set_budget_limit(self, category: str, threshold, replace: bool = False) -> BudgetLimit:
        def change(state: LedgerState, correlation_id: UUID):
            limit = self._validator.build_budget_limit(category, threshold, state, replace=replace)
            self._record(AuditEventBuilder.settings_changed(
                AuditEventType.BUDGET_LIMIT_SET, "category", limit.category,
                f"Budget limit for {limit.category} set to {limit.threshold}",
                {"threshold": str(limit.threshold)}, correlation_id,
            ))
            return state.with_budget_limit(limit), limit

        return self._apply(change)

    def remove_budget_limit(self, category: str) -> None:
        def change(state: LedgerState, correlation_id: UUID):
            if state.limit_for(category) is None:
                raise NotFound(f"No budget limit for {category}")
            self._record(AuditEventBuilder.settings_changed(
                AuditEventType.BUDGET_LIMIT_REMOVED, "category", category,
                f"Budget limit for {category} removed", correlation_id=correlation_id,
            ))
            return state.without_budget_limit(category), None

        self._apply(change)

    # ------------------------------------------------------------------
    # Currencies
    # ------------------------------------------------------------------

    def add_currency(self, code: str, rate) -> Decimal:
        def change(state: LedgerState, correlation_id: UUID):
            normalized = self._validator.validate_currency_code(code)
            converter = CurrencyConverter(state.base_currency, state.currencies)
            converter.add_rate(normalized, rate)
            self._record(AuditEventBuilder.settings_changed(
                AuditEventType.CURRENCY_ADDED, "currency", normalized,
                f"Currency {normalized} added", {"rate": str(rate)}, correlation_id,
            ))
            return state.with_currencies(converter.rates), converter.rate_for(normalized)

        return self._apply(change)

    def remove_currency(self, code: str) -> None:
        def change(state: LedgerState, correlation_id: UUID):
            converter = CurrencyConverter(state.base_currency, state.currencies)
            converter.remove_rate(code)
            normalized = code.strip().upper()
            if state.currency_in_use(normalized):
                raise CurrencyInUse(
                    f"Currency {normalized} is used by stored transactions",
                    {"currency": normalized},
                )
            self._record(AuditEventBuilder.settings_changed(
                AuditEventType.CURRENCY_REMOVED, "currency", normalized,
                f"Currency {normalized} removed", correlation_id=correlation_id,
            ))
            return state.with_currencies(converter.rates), None

        self._apply(change)

    # ------------------------------------------------------------------
    # Debts and goals
    # ------------------------------------------------------------------

    def add_debt(self, name: str, initial) -> Debt:
        def change(state: LedgerState, correlation_id: UUID):
            debt = self._validator.build_debt(name, initial)
            self._audit_debt(debt, f"Debt {debt.name} added", correlation_id)
            return state.with_debt(debt), debt

        return self._apply(change)

    def record_debt_payment(self, debt_id: UUID, amount) -> Debt:
        """Returns the updated debt; check `is_paid_off` for completion."""
        def change(state: LedgerState, correlation_id: UUID):
            payment = self._validator.validate_payment(amount)
            debt = next((d for d in state.debts if d.id == debt_id), None)
            if debt is None:
                raise NotFound(f"Debt {debt_id} not found")
            updated = debt.model_copy(update={"paid": money.add(debt.paid, payment)})
            self._audit_debt(updated, f"Payment of {payment} towards {debt.name}", correlation_id)
            return state.with_debt(updated), updated

        return self._apply(change)

    def remove_debt(self, debt_id: UUID) -> None:
        def change(state: LedgerState, correlation_id: UUID):
            if not any(d.id == debt_id for d in state.debts):
                raise NotFound(f"Debt {debt_id} not found")
            return state.without_debt(debt_id), None

        self._apply(change)

    def add_goal(self, name: str, target) -> Goal:
        def change(state: LedgerState, correlation_id: UUID):
            goal = self._validator.build_goal(name, target)
            self._audit_goal(goal, f"Goal {goal.name} added", correlation_id)
            return state.with_goal(goal), goal

        return self._apply(change)

    def record_goal_contribution(self, goal_id: UUID, amount) -> Goal:
        """Returns the updated goal; check `is_reached` for completion."""
        def change(state: LedgerState, correlation_id: UUID):
            contribution = self._validator.validate_payment(amount)
            goal = next((g for g in state.goals if g.id == goal_id), None)
            if goal is None:
                raise NotFound(f"Goal {goal_id} not found")
            updated = goal.model_copy(update={"saved": money.add(goal.saved, contribution)})
            self._audit_goal(updated, f"Saved {contribution} for {goal.name}", correlation_id)
            return state.with_goal(updated), updated

        return self._apply(change)

    def remove_goal(self, goal_id: UUID) -> None:
        def change(state: LedgerState, correlation_id: UUID):
            if not any(g.id == goal_id for g in state.goals):
                raise NotFound(f"Goal {goal_id} not found")
            return state.without_goal(goal_id), None

        self._apply(change)

    def _audit_debt(self, debt: Debt, description: str, correlation_id: UUID) -> None:
        self._record(AuditEventBuilder.settings_changed(
            AuditEventType.DEBT_UPDATED, "debt", str(debt.id), description,
            {"remaining": str(debt.remaining), "paid_off": debt.is_paid_off}, correlation_id,
        ))

    def _audit_goal(self, goal: Goal, description: str, correlation_id: UUID) -> None:
        self._record(AuditEventBuilder.settings_changed(
            AuditEventType.GOAL_UPDATED, "goal", str(goal.id), description,
            {"saved": str(goal.saved), "reached": goal.is_reached}, correlation_id,
        ))

    # ------------------------------------------------------------------
    # CSV exchange
    # ------------------------------------------------------------------

    def export_csv(self) -> str:
        with self._store.exclusive():
            return export_csv(self._load())

    def import_csv(self, text: str) -> ImportResult:
        """
        Replace the stored dataset with the contents of a CSV document.

        Malformed rows are skipped and reported; the import itself only
        fails if the result cannot be saved.
        """
        def change(state: LedgerState, correlation_id: UUID):
            result = import_csv(
                text,
                base_currency=state.base_currency,
                categories=state.categories,
                text_max_length=self._settings.text_max_length,
            )
            for row in result.skipped_rows:
                self._record(AuditEventBuilder.import_row_skipped(
                    row.line_number, row.reason, correlation_id
                ))
            self._record(AuditEventBuilder.import_completed(
                result.imported_rows, result.skipped_count, correlation_id
            ))
            return result.state, result

        return self._apply(change)


def create_ledger_components(
    store: Optional[StoreInterface] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> tuple[LedgerPipeline, LedgerBook]:
    """
    Create a pipeline and a book sharing one store.

    Defaults to an in-memory store and a log-only audit logger.
    """
    store = store or InMemoryStore()
    audit_logger = audit_logger or AuditLogger()
    return (
        LedgerPipeline(store, audit_logger=audit_logger),
        LedgerBook(store, audit_logger=audit_logger),
    )
