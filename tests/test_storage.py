"""
Unit tests for storage layer.

Tests the event model's persisted form and the key-value stores.
"""

import os
import tempfile
from datetime import datetime, timezone

import pytest

from usage_ledger.storage.db import get_connection
from usage_ledger.storage.models import UsageEvent
from usage_ledger.storage.repository import (
    InMemoryKeyValueStore,
    SQLiteKeyValueStore,
    StorageError
)


class TestUsageEvent:
    """Test the usage event record."""
    
    def test_total_tokens_is_derived(self):
        """Total tokens is always input + output."""
        event = UsageEvent(
            conversation_id="c1",
            model_id="m1",
            input_tokens=10,
            output_tokens=20,
            timestamp=datetime(2024, 1, 1, 12, 0, 0).astimezone()
        )
        assert event.total_tokens == 30
    
    def test_to_dict_uses_persisted_field_names(self):
        """Test serialized keys and ISO timestamp."""
        timestamp = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        event = UsageEvent("c1", "m1", 10, 20, timestamp)
        
        assert event.to_dict() == {
            "conversationId": "c1",
            "modelId": "m1",
            "inputTokens": 10,
            "outputTokens": 20,
            "totalTokens": 30,
            "timestamp": "2024-01-01T12:00:00+00:00",
        }
    
    def test_from_dict_round_trip(self):
        """Test that a serialized event parses back to an equal event."""
        event = UsageEvent("c1", "m1", 7, 3, datetime(2024, 3, 5, 8, 30).astimezone())
        assert UsageEvent.from_dict(event.to_dict()) == event
    
    def test_from_dict_recomputes_total(self):
        """A tampered totalTokens is ignored."""
        event = UsageEvent.from_dict({
            "conversationId": "c1",
            "modelId": "m1",
            "inputTokens": 5,
            "outputTokens": 5,
            "totalTokens": 999,
            "timestamp": "2024-01-01T12:00:00+00:00",
        })
        assert event.total_tokens == 10
    
    def test_from_dict_accepts_utc_z_suffix(self):
        """Browser-style ISO strings ending in Z parse to the same instant."""
        event = UsageEvent.from_dict({
            "conversationId": "c1",
            "modelId": "m1",
            "inputTokens": 1,
            "outputTokens": 1,
            "timestamp": "2024-01-01T12:00:00.000Z",
        })
        assert event.timestamp == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert event.timestamp.utcoffset() is not None
    
    def test_from_dict_naive_timestamp_is_local(self):
        """Naive timestamps are interpreted in the local time zone."""
        event = UsageEvent.from_dict({
            "conversationId": "c1",
            "modelId": "m1",
            "inputTokens": 1,
            "outputTokens": 1,
            "timestamp": "2024-01-01T12:00:00",
        })
        assert event.timestamp == datetime(2024, 1, 1, 12, 0).astimezone()
    
    def test_from_dict_clamps_negative_counts(self):
        """Negative persisted counts are clamped to zero."""
        event = UsageEvent.from_dict({
            "conversationId": "c1",
            "modelId": "m1",
            "inputTokens": -4,
            "outputTokens": 6,
            "timestamp": "2024-01-01T12:00:00+00:00",
        })
        assert event.input_tokens == 0
        assert event.total_tokens == 6
    
    @pytest.mark.parametrize("raw_timestamp", [
        "0001-01-01T00:00:00+14:00",
        "9999-12-31T23:59:59-14:00",
    ])
    def test_from_dict_out_of_range_timestamp_raises(self, raw_timestamp):
        """Timestamps that overflow on conversion raise ValueError."""
        with pytest.raises(ValueError, match="timestamp out of range"):
            UsageEvent.from_dict({
                "conversationId": "c1",
                "modelId": "m1",
                "inputTokens": 1,
                "outputTokens": 1,
                "timestamp": raw_timestamp,
            })
    
    @pytest.mark.parametrize("field,value", [
        ("conversationId", None),
        ("conversationId", 42),
        ("modelId", {"name": "m1"}),
    ])
    def test_from_dict_non_string_ids_raise(self, field, value):
        """Ids must be strings; nothing is coerced."""
        data = {
            "conversationId": "c1",
            "modelId": "m1",
            "inputTokens": 1,
            "outputTokens": 1,
            "timestamp": "2024-01-01T12:00:00+00:00",
        }
        data[field] = value
        with pytest.raises(TypeError, match=f"{field} must be a string"):
            UsageEvent.from_dict(data)
    
    def test_from_dict_missing_field_raises(self):
        """Missing fields raise KeyError."""
        with pytest.raises(KeyError):
            UsageEvent.from_dict({"conversationId": "c1"})
    
    def test_from_dict_non_integer_tokens_raises(self):
        """Non-integer token counts raise TypeError."""
        with pytest.raises(TypeError, match="inputTokens must be an integer"):
            UsageEvent.from_dict({
                "conversationId": "c1",
                "modelId": "m1",
                "inputTokens": "10",
                "outputTokens": 1,
                "timestamp": "2024-01-01T12:00:00+00:00",
            })
    
    def test_event_is_immutable(self):
        """Events cannot be modified after creation."""
        event = UsageEvent("c1", "m1", 1, 1, datetime.now().astimezone())
        with pytest.raises(AttributeError):
            event.input_tokens = 100


class TestSQLiteKeyValueStore:
    """Test the SQLite-backed key-value store."""
    
    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = os.path.join(self.temp_dir, "test.db")
    
    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)
    
    def test_schema_creation(self):
        """Verify table is created correctly."""
        SQLiteKeyValueStore(self.db_path).initialize_schema()
        
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute("PRAGMA table_info(kv_store)")
            column_names = [col[1] for col in cursor.fetchall()]
            assert column_names == ["key", "value"]
        finally:
            conn.close()
    
    def test_get_missing_key_on_fresh_database(self):
        """A database without the table reads as empty."""
        store = SQLiteKeyValueStore(self.db_path)
        assert store.get("anything") is None
    
    def test_set_and_get(self):
        """Test storing and reading a value."""
        store = SQLiteKeyValueStore(self.db_path)
        store.set("k", '{"a": 1}')
        assert store.get("k") == '{"a": 1}'
    
    def test_set_replaces_value(self):
        """Test that set overwrites the previous value."""
        store = SQLiteKeyValueStore(self.db_path)
        store.set("k", "first")
        store.set("k", "second")
        assert store.get("k") == "second"
    
    def test_persistence_across_instances(self):
        """Test that data persists across store instances."""
        SQLiteKeyValueStore(self.db_path).set("k", "v")
        assert SQLiteKeyValueStore(self.db_path).get("k") == "v"
    
    def test_delete(self):
        """Test removing a key."""
        store = SQLiteKeyValueStore(self.db_path)
        store.set("k", "v")
        store.delete("k")
        assert store.get("k") is None
    
    def test_delete_on_fresh_database(self):
        """Deleting from a database without the table is a no-op."""
        SQLiteKeyValueStore(self.db_path).delete("k")
    
    def test_unopenable_path_raises_storage_error(self):
        """Backend errors surface as StorageError."""
        bad_path = os.path.join(self.temp_dir, "missing", "dir", "test.db")
        store = SQLiteKeyValueStore(bad_path)
        with pytest.raises(StorageError):
            store.set("k", "v")


class TestInMemoryKeyValueStore:
    """Test the in-memory key-value store."""
    
    def test_get_set_delete(self):
        store = InMemoryKeyValueStore()
        assert store.get("k") is None
        store.set("k", "v")
        assert store.get("k") == "v"
        store.delete("k")
        assert store.get("k") is None
    
    def test_initial_data_is_copied(self):
        initial = {"k": "v"}
        store = InMemoryKeyValueStore(initial)
        store.set("k", "changed")
        assert initial["k"] == "v"
    
    def test_delete_missing_key(self):
        InMemoryKeyValueStore().delete("missing")
