"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the ledger core agnostic to the storage medium
2. Use in-memory storage for testing
3. Add caching layers transparently

The contract is intentionally tiny: a key maps to one serialized state.
A prior `save` must be visible to a subsequent `load`.
"""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, Optional

from ledger_core.models.audit import AuditEvent


class StoreInterface(ABC):
    """
    Abstract interface for ledger state storage.

    Every implementation carries its own lock. A full ledger pass holds it
    through `exclusive()` so reads, merges and writes of one pass never
    interleave with another pass on the same store.
    """

    def __init__(self):
        self._lock = threading.Lock()

    @contextmanager
    def exclusive(self) -> Iterator['StoreInterface']:
        """Hold the store for the duration of the block; released on any exit."""
        with self._lock:
            yield self

    @abstractmethod
    def load(self, key: str) -> Optional[str]:
        """
        Load the serialized state stored under a key.

        Args:
            key: Storage key

        Returns:
            The serialized state, or None if nothing is stored

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def save(self, key: str, payload: str) -> bool:
        """
        Replace the serialized state stored under a key.

        Implementations must write all of `payload` or nothing.

        Args:
            key: Storage key
            payload: Serialized state

        Returns:
            True if saved successfully, False otherwise

        Raises:
            StorageError: If the backend cannot be written
        """
        pass


class AuditSinkInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass

