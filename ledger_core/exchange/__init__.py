"""CSV exchange package."""

from ledger_core.exchange.csv_format import (
    TRANSACTION_HEADER,
    ImportResult,
    SkippedRow,
    export_csv,
    import_csv,
)

__all__ = [
    "TRANSACTION_HEADER",
    "ImportResult",
    "SkippedRow",
    "export_csv",
    "import_csv",
]
