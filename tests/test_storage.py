"""
Tests for the key-value backends and the audit logger.
"""

import asyncio

import pytest

from bizhub.audit import AuditLogger
from bizhub.models.audit import AuditEventBuilder, AuditEventType
from bizhub.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemoryKeyValueStore,
    JsonFileClient,
    JsonFileKeyValueStore,
    JsonLinesAuditStorage,
    StorageConnectionError,
    StorageError,
)


class TestInMemoryKeyValueStore:
    """Tests for the dict-backed store."""

    def test_missing_key_is_none(self):
        """Test reading an absent key."""
        store = InMemoryKeyValueStore()
        assert asyncio.run(store.get_item("nope")) is None

    def test_set_and_get(self):
        """Test a value comes back equal."""
        store = InMemoryKeyValueStore()
        asyncio.run(store.set_item("k", [{"a": 1}]))
        assert asyncio.run(store.get_item("k")) == [{"a": 1}]

    def test_values_are_copied(self):
        """Test the stored value does not alias the caller's object."""
        store = InMemoryKeyValueStore()
        value = [{"a": 1}]
        asyncio.run(store.set_item("k", value))
        value[0]["a"] = 2
        assert asyncio.run(store.get_item("k")) == [{"a": 1}]

    def test_rejects_unserializable_values(self):
        """Test values that JSON cannot hold raise StorageError."""
        store = InMemoryKeyValueStore()
        with pytest.raises(StorageError):
            asyncio.run(store.set_item("k", {"when": object()}))

    def test_remove_absent_key_is_not_an_error(self):
        """Test removing a key twice."""
        store = InMemoryKeyValueStore()
        asyncio.run(store.set_item("k", 1))
        asyncio.run(store.remove_item("k"))
        asyncio.run(store.remove_item("k"))
        assert asyncio.run(store.get_all_keys()) == []

    def test_clear(self):
        """Test clear drops every key."""
        store = InMemoryKeyValueStore()
        asyncio.run(store.set_item("a", 1))
        asyncio.run(store.set_item("b", 2))
        asyncio.run(store.clear())
        assert asyncio.run(store.get_all_keys()) == []


class TestJsonFileKeyValueStore:
    """Tests for the one-file-per-key backend."""

    def test_round_trip(self, tmp_path):
        """Test a value written to disk reads back equal."""
        store = JsonFileKeyValueStore(JsonFileClient(tmp_path))
        asyncio.run(store.set_item("bizhub_clients", [{"id": "c1"}]))
        assert (tmp_path / "bizhub_clients.json").exists()
        assert asyncio.run(store.get_item("bizhub_clients")) == [{"id": "c1"}]

    def test_missing_key_is_none(self, tmp_path):
        """Test reading a key with no file."""
        store = JsonFileKeyValueStore(JsonFileClient(tmp_path))
        assert asyncio.run(store.get_item("absent")) is None

    def test_unsafe_key_characters_are_replaced(self, tmp_path):
        """Test keys cannot escape the data directory."""
        client = JsonFileClient(tmp_path)
        path = client.path_for("../evil/key")
        assert path.parent == tmp_path
        assert "/" not in path.name

    def test_corrupt_file_raises_storage_error(self, tmp_path):
        """Test unreadable JSON surfaces as StorageError."""
        (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
        store = JsonFileKeyValueStore(JsonFileClient(tmp_path))
        with pytest.raises(StorageError):
            asyncio.run(store.get_item("broken"))

    def test_keys_and_removal(self, tmp_path):
        """Test listing and removing keys."""
        store = JsonFileKeyValueStore(JsonFileClient(tmp_path))
        asyncio.run(store.set_item("a", 1))
        asyncio.run(store.set_item("b", 2))
        asyncio.run(store.remove_item("a"))
        assert asyncio.run(store.get_all_keys()) == ["b"]
        asyncio.run(store.clear())
        assert asyncio.run(store.get_all_keys()) == []

    def test_connect_fails_when_data_dir_is_a_file(self, tmp_path):
        """Test a blocked data directory raises StorageConnectionError."""
        blocker = tmp_path / "data"
        blocker.write_text("", encoding="utf-8")
        with pytest.raises(StorageConnectionError):
            JsonFileClient(blocker / "nested").connect()


class TestJsonLinesAuditStorage:
    """Tests for the append-only audit file."""

    def test_append_and_query(self, tmp_path):
        """Test events are appended and found by entity and recency."""
        storage = JsonLinesAuditStorage(
            log_path=tmp_path / "audit.jsonl",
            client=JsonFileClient(tmp_path),
        )
        first = AuditEventBuilder.record_created("client", "c1", "Acme")
        second = AuditEventBuilder.record_deleted("client", "c1")
        assert asyncio.run(storage.append_event(first))
        assert asyncio.run(storage.append_event(second))

        by_entity = asyncio.run(storage.get_events_by_entity("client", "c1"))
        assert [e.event_id for e in by_entity] == [first.event_id, second.event_id]

        recent = asyncio.run(storage.get_recent_events(limit=1))
        assert len(recent) == 1

    def test_malformed_lines_are_skipped(self, tmp_path):
        """Test a damaged line does not hide the others."""
        path = tmp_path / "audit.jsonl"
        storage = JsonLinesAuditStorage(log_path=path, client=JsonFileClient(tmp_path))
        asyncio.run(storage.append_event(AuditEventBuilder.record_created("task", "t1", "x")))
        with path.open("a", encoding="utf-8") as fh:
            fh.write("garbage\n")
        assert len(asyncio.run(storage.get_recent_events())) == 1


class FailingAuditStorage(AuditStorageInterface):
    async def append_event(self, event):
        raise RuntimeError("audit backend down")

    async def get_events_by_correlation_id(self, correlation_id):
        return []

    async def get_events_by_entity(self, entity_type, entity_id):
        return []

    async def get_recent_events(self, limit=100):
        return []


class TestAuditLogger:
    """Tests for the audit logging service."""

    def test_local_only_logger_succeeds(self):
        """Test logging with no storage configured."""
        logger = AuditLogger()
        event = AuditEventBuilder.record_created("client", "c1", "Acme")
        assert asyncio.run(logger.log(event)) is True

    def test_persists_to_storage(self):
        """Test events reach the configured storage."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        asyncio.run(logger.log_record_created("client", "c1", "Acme"))
        events = asyncio.run(storage.get_recent_events())
        assert [e.event_type for e in events] == [AuditEventType.RECORD_CREATED]

    def test_storage_failure_is_swallowed(self):
        """Test a broken audit backend never breaks the caller."""
        logger = AuditLogger(FailingAuditStorage())
        event = AuditEventBuilder.record_deleted("client", "c1")
        assert asyncio.run(logger.log(event)) is False
