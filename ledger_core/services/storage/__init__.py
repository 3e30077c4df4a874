"""
Storage Services Package

Provides the abstract store contract and its in-memory and JSON file
implementations.
"""

from ledger_core.services.storage.interface import (
    AuditSinkInterface,
    StorageError,
    StoreInterface,
)
from ledger_core.services.storage.memory import InMemoryAuditSink, InMemoryStore
from ledger_core.services.storage.json_file import JsonFileStore

__all__ = [
    # Interfaces
    "AuditSinkInterface",
    "StoreInterface",
    # Exceptions
    "StorageError",
    # Implementations
    "InMemoryAuditSink",
    "InMemoryStore",
    "JsonFileStore",
]
