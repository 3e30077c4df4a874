"""
Tests for storage backends and the audit logger
"""

import importlib

import pytest

from ledger_core.audit import AuditLogger
from ledger_core.models.audit import AuditEventBuilder, AuditEventType
from ledger_core.services.storage import (
    AuditSinkInterface,
    InMemoryAuditSink,
    InMemoryStore,
    JsonFileStore,
    StorageError,
)


class TestPackageExports:
    """Tests for the storage package surface."""

    @pytest.mark.parametrize("module_name", [
        "ledger_core.services",
        "ledger_core.services.storage",
    ])
    def test_all_exports_resolve(self, module_name):
        """Test that every name in __all__ is defined."""
        module = importlib.import_module(module_name)
        for name in module.__all__:
            assert hasattr(module, name), name

    def test_services_reexport_storage(self):
        """Test that the services package exposes the store classes."""
        from ledger_core import services
        assert services.InMemoryStore is InMemoryStore
        assert services.StorageError is StorageError


class TestInMemoryStore:
    """Tests for the dictionary-backed store."""

    def test_load_missing(self):
        """Test that an unknown key loads as None."""
        assert InMemoryStore().load("budgetData") is None

    def test_save_and_load(self):
        """Test a save followed by a load."""
        store = InMemoryStore()
        assert store.save("budgetData", '{"a": 1}') is True
        assert store.load("budgetData") == '{"a": 1}'
        assert store.keys() == ["budgetData"]

    def test_exclusive_releases_on_error(self):
        """Test that the store lock is released when a flow raises."""
        store = InMemoryStore()
        with pytest.raises(RuntimeError):
            with store.exclusive():
                raise RuntimeError("boom")
        assert not store._lock.locked()


class TestJsonFileStore:
    """Tests for the file-backed store."""

    def test_load_missing(self, tmp_path):
        """Test that a missing file loads as None."""
        assert JsonFileStore(str(tmp_path)).load("budgetData") is None

    def test_save_and_load(self, tmp_path):
        """Test that a payload is written to <key>.json."""
        store = JsonFileStore(str(tmp_path / "ledger"))
        assert store.save("budgetData", '{"transactions": []}') is True
        assert store.load("budgetData") == '{"transactions": []}'
        assert (tmp_path / "ledger" / "budgetData.json").exists()

    def test_overwrite_leaves_no_temp_files(self, tmp_path):
        """Test that replacing a payload cleans up after itself."""
        store = JsonFileStore(str(tmp_path))
        store.save("budgetData", "first")
        store.save("budgetData", "second")
        assert store.load("budgetData") == "second"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["budgetData.json"]

    @pytest.mark.parametrize("key", ["", "../escape", ".hidden", "a/b"])
    def test_invalid_keys(self, tmp_path, key):
        """Test that keys cannot escape the store directory."""
        with pytest.raises(StorageError):
            JsonFileStore(str(tmp_path)).load(key)


class FailingSink(AuditSinkInterface):
    def append_event(self, event) -> bool:
        raise StorageError("sink offline")


class TestAuditLogger:
    """Tests for audit logging."""

    def test_events_reach_sink(self):
        """Test that logged events are appended to the sink."""
        sink = InMemoryAuditSink()
        logger = AuditLogger(sink)
        assert logger.log(AuditEventBuilder.state_saved("budgetData", 3)) is True
        assert [e.event_type for e in sink.events] == [AuditEventType.STATE_SAVED]

    def test_sink_failure_is_not_raised(self):
        """Test that a failing sink does not break the caller."""
        logger = AuditLogger(FailingSink())
        assert logger.log(AuditEventBuilder.state_saved("budgetData", 3)) is False

    def test_no_sink(self):
        """Test logging without a sink."""
        assert AuditLogger().log(AuditEventBuilder.state_saved("budgetData", 0)) is True


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
