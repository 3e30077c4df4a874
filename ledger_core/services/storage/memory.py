"""In-memory storage backends for tests and embedding."""

from typing import Optional

from ledger_core.models.audit import AuditEvent
from ledger_core.services.storage.interface import AuditSinkInterface, StoreInterface


class InMemoryStore(StoreInterface):
    """Dictionary-backed store. Saves are atomic by construction."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        super().__init__()
        self._data: dict[str, str] = dict(initial or {})

    def load(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def save(self, key: str, payload: str) -> bool:
        self._data[key] = payload
        return True

    def keys(self) -> list[str]:
        return list(self._data)


class InMemoryAuditSink(AuditSinkInterface):
    """Keeps audit events in a list, newest last."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    def of_type(self, event_type) -> list[AuditEvent]:
        return [e for e in self.events if e.event_type == event_type]
