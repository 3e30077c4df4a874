"""Services package."""

from ledger_core.services.storage import (
    AuditSinkInterface,
    InMemoryAuditSink,
    InMemoryStore,
    JsonFileStore,
    StorageError,
    StoreInterface,
)

__all__ = [
    "AuditSinkInterface",
    "InMemoryAuditSink",
    "InMemoryStore",
    "JsonFileStore",
    "StorageError",
    "StoreInterface",
]
