"""
CSV Exchange Format

Layout:

    Type,Date,Amount,Currency,Category,Description,Recurring
    expense,2024-01-05,120.50,PHP,Food,Lunch,none
    ...

    Debts:
    Name,Initial,Paid
    ...

    Goals:
    Name,Target,Saved
    ...

    Currencies:
    Code,Rate
    ...

    Budget Limits:
    Category,Limit
    ...

Materialized recurring instances are not exported: the next ledger pass
regenerates them from their template.

Import never aborts on a bad row. Each malformed row is skipped and
reported with its line number and reason.
"""

import csv
import io
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from ledger_core import money
from ledger_core.currency import CurrencyConverter, normalize_code
from ledger_core.errors import LedgerError, MalformedImportRow
from ledger_core.models.budget import BudgetLimit, Debt, Goal
from ledger_core.models.ledger import LedgerState
from ledger_core.models.transaction import RecurrenceRule, Transaction, TransactionType
from ledger_core.validation import positive_amount, sanitize_text

TRANSACTIONS = "Transactions"
TRANSACTION_HEADER = ["Type", "Date", "Amount", "Currency", "Category", "Description", "Recurring"]

DEBTS = "Debts:"
GOALS = "Goals:"
CURRENCIES = "Currencies:"
BUDGET_LIMITS = "Budget Limits:"

SECTION_HEADERS = {
    TRANSACTIONS: TRANSACTION_HEADER,
    DEBTS: ["Name", "Initial", "Paid"],
    GOALS: ["Name", "Target", "Saved"],
    CURRENCIES: ["Code", "Rate"],
    BUDGET_LIMITS: ["Category", "Limit"],
}


class SkippedRow(BaseModel):
    """A row the importer could not use."""

    line_number: int
    section: str
    reason: str


class ImportResult(BaseModel):
    """Imported state plus a report of what was skipped."""

    state: LedgerState
    imported_rows: int = 0
    skipped_rows: list[SkippedRow] = Field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped_rows)


# ----------------------------------------------------------------------
# Export
# ----------------------------------------------------------------------

def export_csv(state: LedgerState) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")

    writer.writerow(TRANSACTION_HEADER)
    for t in state.transactions:
        if t.is_instance:
            continue
        writer.writerow([
            t.kind.value,
            t.date.isoformat(),
            str(t.amount),
            t.currency_code,
            t.category,
            t.description,
            t.recurrence_rule.value,
        ])

    _write_section(writer, DEBTS, ([d.name, str(d.initial), str(d.paid)] for d in state.debts))
    _write_section(writer, GOALS, ([g.name, str(g.target), str(g.saved)] for g in state.goals))
    _write_section(writer, CURRENCIES, ([code, str(rate)] for code, rate in state.currencies.items()))
    _write_section(
        writer,
        BUDGET_LIMITS,
        ([b.category, str(b.threshold)] for b in state.budget_limits),
    )

    return buffer.getvalue()


def _write_section(writer, marker: str, rows: Iterable[list[str]]) -> None:
    writer.writerow([])
    writer.writerow([marker])
    writer.writerow(SECTION_HEADERS[marker])
    writer.writerows(rows)


# ----------------------------------------------------------------------
# Import
# ----------------------------------------------------------------------

class _Importer:
    """Single-use state machine over the rows of one CSV document."""

    def __init__(self, base_currency: str, categories: Iterable[str], text_max_length: Optional[int]):
        self.base = normalize_code(base_currency)
        self.categories = list(dict.fromkeys(categories))
        self.max_length = text_max_length
        self.converter = CurrencyConverter(self.base)
        self.transactions: list[tuple[int, Transaction]] = []
        self.debts: list[Debt] = []
        self.goals: list[Goal] = []
        self.limits: dict[str, BudgetLimit] = {}
        self.skipped: list[SkippedRow] = []
        self.imported = 0

    def run(self, text: str) -> ImportResult:
        section = TRANSACTIONS
        expect_header = True
        reader = csv.reader(io.StringIO(text))

        for row in reader:
            line = reader.line_num
            cells = [c.strip() for c in row]
            if not any(cells):
                continue

            # spreadsheet exports pad marker lines with empty cells
            if cells[0] in SECTION_HEADERS and cells[0] != TRANSACTIONS and not any(cells[1:]):
                section, expect_header = cells[0], True
                continue

            if expect_header:
                expect_header = False
                if [c.lower() for c in cells] == [h.lower() for h in SECTION_HEADERS[section]]:
                    continue

            try:
                self._parse_row(section, cells, line)
                self.imported += 1
            except MalformedImportRow as e:
                self._skip(e.line_number, section, e.message)
            except (LedgerError, ValueError) as e:
                self._skip(line, section, str(e))

        return self._finish()

    def _skip(self, line: int, section: str, reason: str) -> None:
        self.skipped.append(SkippedRow(line_number=line, section=section, reason=reason))

    def _parse_row(self, section: str, cells: list[str], line: int) -> None:
        expected = len(SECTION_HEADERS[section])
        if len(cells) != expected:
            raise MalformedImportRow(
                f"Expected {expected} columns, found {len(cells)}", line
            )

        if section == TRANSACTIONS:
            self.transactions.append((line, self._parse_transaction(cells, line)))
        elif section == DEBTS:
            name, initial, paid = cells
            self.debts.append(Debt(
                name=sanitize_text(name, self.max_length),
                initial=money.to_cents(positive_amount(initial, "initial")),
                paid=money.to_cents(paid or "0"),
            ))
        elif section == GOALS:
            name, target, saved = cells
            self.goals.append(Goal(
                name=sanitize_text(name, self.max_length),
                target=money.to_cents(positive_amount(target, "target")),
                saved=money.to_cents(saved or "0"),
            ))
        elif section == CURRENCIES:
            self._parse_currency(cells, line)
        elif section == BUDGET_LIMITS:
            category, threshold = cells
            if category in self.limits:
                raise MalformedImportRow(f"Duplicate budget limit for {category}", line)
            self.limits[category] = BudgetLimit(category=category, threshold=money.to_cents(threshold))

    def _parse_transaction(self, cells: list[str], line: int) -> Transaction:
        kind, day, amount, currency, category, description, recurring = cells

        if kind.lower() not in {t.value for t in TransactionType}:
            raise MalformedImportRow(f"Unknown transaction type: {kind!r}", line)
        rule = (recurring or RecurrenceRule.NONE.value).lower()
        if rule not in {r.value for r in RecurrenceRule}:
            raise MalformedImportRow(f"Unrecognized cadence: {recurring!r}", line)
        try:
            effective = date.fromisoformat(day)
        except ValueError:
            raise MalformedImportRow(f"Invalid date: {day!r}", line)

        return Transaction(
            date=effective,
            kind=TransactionType(kind.lower()),
            amount=positive_amount(amount),
            currency_code=currency,
            category=category,
            description=sanitize_text(description, self.max_length),
            recurrence_rule=RecurrenceRule(rule),
        )

    def _parse_currency(self, cells: list[str], line: int) -> None:
        code, rate = normalize_code(cells[0]), cells[1]
        if code == self.base:
            if money.to_decimal(rate) != Decimal("1"):
                raise MalformedImportRow(f"Base currency {code} must have rate 1", line)
            return
        # DuplicateCurrencyCode / InvalidCurrencyRate propagate as skips
        self.converter.add_rate(code, rate)

    def _finish(self) -> ImportResult:
        transactions = []
        for line, transaction in self.transactions:
            if transaction.currency_code not in self.converter:
                self.imported -= 1
                self._skip(line, TRANSACTIONS, f"Unknown currency: {transaction.currency_code}")
                continue
            transactions.append(transaction)

        categories = list(dict.fromkeys([
            *self.categories,
            *(t.category for t in transactions),
            *self.limits,
        ]))

        state = LedgerState(
            base_currency=self.base,
            transactions=transactions,
            debts=self.debts,
            goals=self.goals,
            categories=categories,
            currencies=self.converter.rates,
            budget_limits=list(self.limits.values()),
        )
        skipped = sorted(self.skipped, key=lambda s: s.line_number)
        return ImportResult(state=state, imported_rows=self.imported, skipped_rows=skipped)


def import_csv(
    text: str,
    base_currency: str,
    categories: Iterable[str] = (),
    text_max_length: Optional[int] = None,
) -> ImportResult:
    """
    Parse an exported document back into a LedgerState.

    Args:
        text: CSV document
        base_currency: Base currency of the resulting state
        categories: Categories the state starts with; categories used by
            imported rows are appended
        text_max_length: Cap for names and descriptions

    Returns:
        ImportResult; `skipped_count` is the number of malformed rows
    """
    return _Importer(base_currency, categories, text_max_length).run(text)
